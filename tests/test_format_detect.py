"""Tests for format detection, version labels and confidence scoring."""

import pytest

from format_detect import (
    _detect_by_json,
    _detect_by_xml,
    calculate_confidence,
    detect_format,
    detect_version,
    get_message_type,
)
from models import FormatTag
from samples import (
    ASTM_RESULT,
    CDA_DOCUMENT,
    FHIR_PATIENT,
    FHIR_PATIENT_XML,
    GENERIC_XML,
    HL7_ADT_WITH_TRAILING_FIELDS,
    HL7_ORU,
)


def test_hl7v2_message():
    result = detect_format(HL7_ORU)
    assert result.format is FormatTag.HL7V2
    # MSH-12 at end of line is not a standalone |2.5| match
    assert result.version is None
    assert result.confidence == 1.0


def test_hl7v2_version_between_separators():
    result = detect_format(HL7_ADT_WITH_TRAILING_FIELDS)
    assert result.format is FormatTag.HL7V2
    assert result.version == "v2.5"
    assert result.confidence == 0.9


def test_hl7v2_wins_over_json():
    result = detect_format('["x|MSH|y"]')
    assert result.format is FormatTag.HL7V2


def test_fhir_json():
    result = detect_format(FHIR_PATIENT)
    assert result.to_dict() == {"format": "fhir", "version": None, "confidence": 0.9}


def test_fhir_json_version_label():
    result = detect_format('{"resourceType": "CapabilityStatement", "fhirVersion": "4.0.1"}')
    assert result.format is FormatTag.FHIR
    assert result.version == "4.0.1"


def test_unknown_resource_type_is_plain_json():
    result = detect_format('{"resourceType":"Foo"}')
    assert result.format is FormatTag.JSON
    assert result.confidence == 0.8


def test_fhir_xml():
    result = detect_format(FHIR_PATIENT_XML)
    assert result.format is FormatTag.FHIR
    assert result.version == "FHIR"
    assert result.confidence == 0.6


def test_cda_document():
    result = detect_format(CDA_DOCUMENT)
    assert result.format is FormatTag.HL7V3
    assert result.confidence == 1.0


def test_astm_with_framing_characters():
    result = detect_format(ASTM_RESULT)
    assert result.format is FormatTag.ASTM
    assert result.version == "E1394"
    assert result.confidence == 0.8


def test_astm_without_framing():
    result = detect_format("1H|\\^&|||LIS\r2L|1|N")
    assert result.format is FormatTag.ASTM
    assert result.version is None


def test_malformed_json_keeps_low_confidence():
    result = detect_format('{"a": ')
    assert result.format is FormatTag.JSON
    assert result.confidence == 0.3


def test_generic_xml():
    result = detect_format(GENERIC_XML)
    assert result.format is FormatTag.XML
    assert result.version is None
    assert result.confidence == 0.8


@pytest.mark.parametrize("content", ["", "   \n\t", "hello world", None, 42])
def test_nothing_detected(content):
    assert detect_format(content) is None


def test_surrounding_whitespace_is_ignored():
    assert detect_format("\n\n  " + HL7_ORU + "\n") == detect_format(HL7_ORU)


def test_json_fallback():
    assert _detect_by_json('{"a": 1}').format is FormatTag.JSON
    assert _detect_by_json('{"entry": [{"resource": {}}]}').format is FormatTag.FHIR
    assert _detect_by_json('{"resourceType": "Anything"}').confidence == 0.9
    assert _detect_by_json("42") is None
    assert _detect_by_json("not json") is None


def test_xml_fallback():
    fhir = _detect_by_xml('<Patient xmlns="http://hl7.org/fhir"/>')
    assert fhir.format is FormatTag.FHIR
    assert fhir.version == "FHIR"

    assert _detect_by_xml('<root xmlns="urn:hl7-org:v3"/>').format is FormatTag.HL7V3
    assert _detect_by_xml("<ClinicalDocument/>").format is FormatTag.HL7V3

    plain = _detect_by_xml("<a><b/></a>")
    assert plain.format is FormatTag.XML
    assert plain.confidence == 0.7

    assert _detect_by_xml("<a>") is None


def test_detect_version_unknown_format_family():
    assert detect_version("<?xml version='1.0'?><a/>", FormatTag.XML) is None
    assert detect_version("whatever", "json") is None


def test_detect_version_first_match_wins():
    assert detect_version("E1238 then E1381", "astm") == "E1381"


def test_confidence_is_clamped():
    assert calculate_confidence("[", FormatTag.JSON) == 0.3
    assert calculate_confidence("MSH|PID|OBX|", FormatTag.HL7V2) == 1.0
    assert 0.0 <= calculate_confidence("STX1H|x|1L|ETX", FormatTag.ASTM) <= 1.0


def test_message_type_sniffing():
    assert get_message_type(HL7_ORU, FormatTag.HL7V2) == "ORU"
    assert get_message_type(FHIR_PATIENT, "fhir") == "Patient"
    assert get_message_type("{}", FormatTag.JSON) is None


def test_deeply_nested_json_does_not_raise():
    content = "[" * 100000
    result = detect_format(content)
    assert result.format is FormatTag.JSON
    assert result.confidence == 0.3
    assert _detect_by_json(content) is None
