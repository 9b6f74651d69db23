"""Parser for HL7 v3 / CDA (Clinical Document Architecture) XML documents."""

from loguru import logger

from config import STRUCTURE_LIMIT
from models import FormatTag, ParseResult
from xml_mapper import (
    child_listing,
    count_elements,
    load_document,
    pretty_print,
    text_content,
    xml_to_object,
)


def parse_cda(content):
    """Parse a CDA document.

    ``templateId`` and ``code`` come from attributes on the root, else from
    the first ``templateId``/``code`` element below it.
    """
    doc = load_document(content, FormatTag.HL7V3)
    root = doc.root

    template_id = root.get("templateId") or _descendant_attr(doc, "templateId", "root")
    code = root.get("code") or _descendant_attr(doc, "code", "code")

    analysis = {
        "documentType": doc.tag_name(root),
        "templateId": template_id,
        "code": code,
        "structure": child_listing(doc),
        "detailedStructure": xml_to_object(doc),
        "elementCount": count_elements(root),
    }

    title = _child(doc, root, "title")
    if title is not None:
        analysis["title"] = text_content(title).strip()
    sections = _section_titles(doc)
    if sections:
        analysis["sections"] = sections

    logger.debug("CDA {} with {} elements", analysis["documentType"], analysis["elementCount"])

    return ParseResult(
        format=FormatTag.HL7V3,
        version="CDA",
        formatted=pretty_print(content),
        analysis=analysis,
    )


def _descendant_attr(doc, local_name, attr):
    elem = doc.find_descendant(doc.root, local_name)
    return elem.get(attr, "") if elem is not None else ""


def _child(doc, elem, local_name):
    for child in elem:
        if doc.local_name(child) == local_name:
            return child
    return None


def _section_titles(doc):
    """Titles of the ``section`` elements in the structured body, in document order."""
    titles = []
    for elem in doc.root.iter():
        if doc.local_name(elem) != "section":
            continue
        title = _child(doc, elem, "title")
        code = _child(doc, elem, "code")
        if title is not None:
            titles.append(text_content(title).strip())
        elif code is not None:
            titles.append(code.get("displayName", code.get("code", "")))
        if len(titles) >= STRUCTURE_LIMIT:
            break
    return titles
