"""Tests for the ASTM record parser."""

from models import FormatTag
from parser_astm import detect_standard, parse_astm, parse_fields
from samples import ASTM_RESULT


def test_result_message():
    result = parse_astm(ASTM_RESULT)

    assert result.format is FormatTag.ASTM
    assert result.version == "E1394"
    assert result.analysis["recordTypes"] == ["H", "P", "O", "R", "L"]
    assert result.analysis["recordCount"] == 5
    assert result.analysis["records"][0]["name"] == (
        "H - Header Record - Contains sender and receiver information"
    )
    # Lines are kept as received, framing characters included
    assert result.formatted == ASTM_RESULT.replace("\r", "\n")


def test_header_fields():
    header = parse_astm(ASTM_RESULT).records[0]
    by_position = {f.position: f for f in header.fields}

    assert header.sequence == "1"
    assert by_position[1].name == "Delimiter Definition"
    assert by_position[1].value == "\\^&"
    assert by_position[4].name == "Sender Name/ID"
    assert by_position[4].value == "Analyzer^1.0"
    assert by_position[11].value == "P"
    assert by_position[12].name == "Version Number"
    assert by_position[12].value == "E1394-97"


def test_result_record():
    record = parse_astm(ASTM_RESULT).records[3]
    assert record.type == "R"
    assert record.sequence == "4"
    assert record.fields[1].name == "Data Value"
    assert record.fields[1].value == "^^^GLU"


def test_terminator_uses_generic_field_names():
    terminator = parse_astm(ASTM_RESULT).records[-1]
    assert terminator.raw == "5L|1|N\x03"
    assert [(f.name, f.value) for f in terminator.fields] == [
        ("L Field 1", "1"),
        ("L Field 2", "N"),
    ]


def test_analysis_lists_non_empty_fields_only():
    patient = parse_astm(ASTM_RESULT).analysis["records"][1]
    assert [f["position"] for f in patient["fields"]] == [1, 3, 5, 7, 8]


def test_non_record_lines_are_skipped():
    result = parse_astm("garbage\r1H|\\^&\rfoo bar\n\n")
    assert result.analysis["recordCount"] == 1
    assert result.formatted == "1H|\\^&"
    assert result.version is None


def test_unknown_record_type():
    record = parse_astm("1X|a").records[0]
    assert record.name == "X"
    assert record.fields[0].name == "X Field 1"


def test_parse_fields_positions():
    fields = parse_fields(["a", "", "c"], "Q")
    assert [f.position for f in fields] == [1, 2, 3]


def test_detect_standard():
    assert detect_standard("1H|...|E1381-95") == "E1381"
    assert detect_standard("no standard") is None


def test_syn_is_not_a_framing_character():
    result = parse_astm("\x161H|\\^&\r\x022L|1|N\x03")
    assert result.analysis["recordTypes"] == ["L"]
