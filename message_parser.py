"""Route a message to the parser for its format."""

from loguru import logger

from errors import ParseError, UnsupportedFormat
from format_detect import detect_format
from models import FormatTag
from parser_astm import parse_astm
from parser_cda import parse_cda
from parser_fhir import parse_fhir
from parser_hl7v2 import parse_hl7v2
from parser_json import parse_json
from parser_xml import parse_xml


PARSERS = {
    FormatTag.HL7V2: parse_hl7v2,
    FormatTag.HL7V3: parse_cda,
    FormatTag.FHIR: parse_fhir,
    FormatTag.ASTM: parse_astm,
    FormatTag.JSON: parse_json,
    FormatTag.XML: parse_xml,
}


def parse(content, fmt):
    """Parse ``content`` as ``fmt`` and return a ParseResult.

    Every failure is raised as a ParseError (or one of its subclasses) whose
    message reads ``Failed to parse {fmt} message: {detail}``.
    """
    tag = str(fmt.value if isinstance(fmt, FormatTag) else fmt)
    try:
        try:
            fmt = FormatTag(tag)
        except ValueError:
            raise UnsupportedFormat(tag, f"Unsupported format: {tag}")
        return PARSERS[fmt](content)
    except ParseError as e:
        raise _rewrap(type(e), tag, str(e)) from e
    except Exception as e:
        raise _rewrap(ParseError, tag, str(e) or type(e).__name__) from e


def _rewrap(error_cls, tag, detail):
    message = f"Failed to parse {tag} message: {detail}"
    logger.warning(message)
    return error_cls(tag, detail, message)


def detect_and_parse(content):
    """Detect the format and parse with it."""
    detection = detect_format(content)
    if detection is None:
        message = "Failed to parse message: Could not detect message format"
        logger.warning(message)
        raise UnsupportedFormat(None, "Could not detect message format", message)
    return detection, parse(content, detection.format)
