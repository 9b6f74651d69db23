"""Tests for XML to dict conversion and the generic XML parser."""

import xml.etree.ElementTree as ET

import pytest

from errors import MalformedInput
from models import FormatTag
from parser_xml import parse_xml
from samples import GENERIC_XML
from xml_mapper import count_elements, load_document, parse_document, pretty_print, xml_to_object


def test_repeated_children_become_a_list():
    doc = parse_document("<r><item>1</item><item>2</item><single>3</single></r>")
    assert xml_to_object(doc) == {
        "item": [{"#text": "1"}, {"#text": "2"}],
        "single": {"#text": "3"},
    }


def test_attributes_and_empty_elements():
    doc = parse_document('<r a="1"><empty/><v b="2">x</v></r>')
    assert xml_to_object(doc) == {
        "@attributes": {"a": "1"},
        "empty": {},
        "v": {"@attributes": {"b": "2"}, "#text": "x"},
    }


def test_mixed_content_keeps_elements_only():
    doc = parse_document("<r>text<b/>tail</r>")
    assert xml_to_object(doc) == {"b": {}}


def test_prefixes_are_preserved():
    doc = parse_document(
        '<r xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">'
        '<value xsi:type="PQ" value="1"/></r>'
    )
    assert xml_to_object(doc) == {
        "@attributes": {"xmlns:xsi": "http://www.w3.org/2001/XMLSchema-instance"},
        "value": {"@attributes": {"xsi:type": "PQ", "value": "1"}},
    }


def test_xml_lang_attribute():
    doc = parse_document('<r xml:lang="en"/>')
    assert doc.attributes(doc.root) == [("xml:lang", "en")]


def test_count_elements_excludes_root():
    doc = parse_document("<a><b><c/></b><d/></a>")
    assert count_elements(doc.root) == 3


def test_byte_order_mark_is_ignored():
    doc = parse_document("\ufeff<a/>")
    assert doc.tag_name(doc.root) == "a"


def test_not_well_formed():
    with pytest.raises(ET.ParseError):
        parse_document("<a><b></a>")
    with pytest.raises(MalformedInput) as excinfo:
        load_document("<a><b></a>", FormatTag.XML)
    assert excinfo.value.format is FormatTag.XML
    assert str(excinfo.value).startswith("Invalid XML format")


def test_pretty_print():
    assert pretty_print("<a><b>x</b><c/></a>") == "<a>\n<b>x</b>\n<c/>\n</a>"
    assert pretty_print("<not xml") == "<not xml"


def test_pretty_print_keeps_prolog():
    text = '<?xml version="1.0" encoding="UTF-8"?>\n<!-- note -->\n<?render mode?>\n<a><b>x</b></a>'
    assert pretty_print(text).split("\n") == [
        '<?xml version="1.0" encoding="UTF-8"?>',
        "<!-- note -->",
        "<?render mode?>",
        "<a>",
        "<b>x</b>",
        "</a>",
    ]


def test_generic_document():
    result = parse_xml(GENERIC_XML)

    assert result.format is FormatTag.XML
    assert result.version == "1.0"
    assert result.formatted.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<catalog')
    assert "<title>A</title>" in result.formatted

    analysis = result.analysis
    assert analysis["rootElement"] == "catalog"
    assert analysis["elementCount"] == 5
    assert analysis["namespaces"] == [
        'xmlns="urn:example:catalog"',
        'xmlns:x="urn:example:extra"',
    ]
    assert analysis["structure"][0] == {
        "name": "book",
        "attributes": ['id="1"'],
        "hasChildren": True,
        "textContent": "A",
    }
    assert analysis["structure"][2]["name"] == "x:note"
    assert analysis["structure"][2]["textContent"] == "hi"

    detailed = analysis["detailedStructure"]
    assert [b["@attributes"]["id"] for b in detailed["book"]] == ["1", "2"]
    assert detailed["x:note"] == {"#text": "hi"}


def test_document_without_declaration():
    result = parse_xml("<root><child/></root>")
    assert result.version is None
    assert result.analysis["namespaces"] == []
    assert result.analysis["structure"] == [
        {"name": "child", "attributes": [], "hasChildren": False, "textContent": ""}
    ]


def test_malformed_document():
    with pytest.raises(MalformedInput):
        parse_xml("<a><b></a>")
