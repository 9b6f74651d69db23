"""Parser for generic XML documents."""

import re

from loguru import logger

from models import FormatTag, ParseResult
from parser_json import check_size
from xml_mapper import (
    child_listing,
    count_elements,
    load_document,
    namespace_declarations,
    pretty_print,
    xml_to_object,
)


XML_DECL_VERSION_RE = re.compile(r"""<\?xml[^>]+version\s*=\s*["']([^"']+)["']""", re.I)


def parse_xml(content):
    check_size(content, FormatTag.XML)
    doc = load_document(content, FormatTag.XML)
    root = doc.root

    analysis = {
        "rootElement": doc.tag_name(root),
        "structure": child_listing(doc),
        "detailedStructure": xml_to_object(doc),
        "elementCount": count_elements(root),
        "namespaces": namespace_declarations(doc),
    }
    logger.debug("XML document <{}> with {} elements", analysis["rootElement"], analysis["elementCount"])

    match = XML_DECL_VERSION_RE.search(content)
    return ParseResult(
        format=FormatTag.XML,
        version=match.group(1) if match else None,
        formatted=pretty_print(content),
        analysis=analysis,
    )
