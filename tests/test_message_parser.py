"""Tests for format dispatch and error reporting."""

import pytest

import message_parser
from config import MAX_MESSAGE_BYTES
from errors import MalformedInput, ParseError, SizeLimitExceeded, UnsupportedFormat
from message_parser import PARSERS, detect_and_parse, parse
from models import FormatTag
from samples import ASTM_RESULT, CDA_DOCUMENT, FHIR_PATIENT, GENERIC_XML, HL7_ORU


def test_every_format_has_a_parser():
    assert set(PARSERS) == set(FormatTag)


@pytest.mark.parametrize("content, fmt", [
    (HL7_ORU, "hl7v2"),
    (CDA_DOCUMENT, "hl7v3"),
    (FHIR_PATIENT, "fhir"),
    (ASTM_RESULT, "astm"),
    ('{"a": 1}', "json"),
    (GENERIC_XML, "xml"),
])
def test_parse_by_tag(content, fmt):
    result = parse(content, fmt)
    assert result.format is FormatTag(fmt)
    assert set(result.to_dict()) == {"format", "version", "formatted", "analysis"}


def test_parse_accepts_format_tag():
    assert parse(HL7_ORU, FormatTag.HL7V2).analysis["segmentCount"] == 3


def test_unsupported_format():
    with pytest.raises(UnsupportedFormat) as excinfo:
        parse("ISA*00*", "edi")
    assert str(excinfo.value) == "Failed to parse edi message: Unsupported format: edi"
    assert excinfo.value.format == "edi"


def test_malformed_xml_is_reported_for_the_format():
    with pytest.raises(MalformedInput) as excinfo:
        parse("<a><b></a>", "xml")
    err = excinfo.value
    assert str(err).startswith("Failed to parse xml message: Invalid XML format")
    assert err.detail.startswith("Invalid XML format")
    assert err.format == "xml"
    assert isinstance(err, ValueError)


def test_size_limit():
    content = '"' + "a" * (11 * 1024 * 1024) + '"'
    assert len(content) > MAX_MESSAGE_BYTES
    with pytest.raises(SizeLimitExceeded) as excinfo:
        parse(content, "json")
    message = str(excinfo.value)
    assert message.startswith("Failed to parse json message:")
    assert "too large" in message


def test_unexpected_errors_are_wrapped(monkeypatch):
    def boom(content):
        raise RuntimeError("boom")

    monkeypatch.setitem(message_parser.PARSERS, FormatTag.JSON, boom)
    with pytest.raises(ParseError) as excinfo:
        parse("{}", "json")
    assert str(excinfo.value) == "Failed to parse json message: boom"
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_detect_and_parse():
    detection, result = detect_and_parse(HL7_ORU)
    assert detection.format is FormatTag.HL7V2
    assert result.analysis["segmentCount"] == 3


def test_detect_and_parse_nothing_detected():
    with pytest.raises(UnsupportedFormat) as excinfo:
        detect_and_parse("hello world")
    assert str(excinfo.value) == "Failed to parse message: Could not detect message format"


def test_detected_format_that_fails_to_parse():
    with pytest.raises(MalformedInput) as excinfo:
        detect_and_parse('{"a": ')
    assert str(excinfo.value).startswith("Failed to parse json message: Invalid JSON format")
