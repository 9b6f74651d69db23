"""Parser for ASTM E1394 / LIS2-A2 laboratory instrument records."""

import re
from types import MappingProxyType

from loguru import logger

from config import FIELD_PREVIEW_LIMIT
from models import Field, FormatTag, ParseResult, Segment
from parser_hl7v2 import split_lines


RECORD_TYPES = MappingProxyType({
    "H": "Header Record - Contains sender and receiver information",
    "P": "Patient Information Record - Contains patient demographics",
    "O": "Test Order Record - Contains test order information",
    "R": "Result Record - Contains test results",
    "C": "Comment Record - Contains comments",
    "M": "Manufacturer Information Record - Contains manufacturer info",
    "S": "Scientific Record - Contains scientific data",
    "Q": "Request Information Record - Contains query parameters",
    "L": "Terminator Record - Indicates end of transmission",
})

# Field names per record type, index 0 = the first field after the type code.
FIELD_NAMES = MappingProxyType({
    "H": (
        "Delimiter Definition", "Message Control ID", "Access Password",
        "Sender Name/ID", "Sender Address", "Reserved", "Sender Phone",
        "Sender Characteristics", "Receiver ID", "Comment", "Processing ID",
        "Version Number", "Timestamp",
    ),
    "P": (
        "Practice Patient ID", "Lab Patient ID", "Patient ID 3", "Patient Name",
        "Mother's Maiden Name", "Birth Date", "Patient Sex", "Patient Race",
        "Patient Address", "Reserved", "Patient Phone", "Attending Physician",
    ),
    "O": (
        "Specimen ID", "Instrument Specimen ID", "Universal Test ID", "Priority",
        "Requested Date/Time", "Collection Date/Time", "Collection End Time",
        "Collection Volume", "Collector ID", "Action Code", "Danger Code",
        "Relevant Clinical Info",
    ),
    "R": (
        "Universal Test ID", "Data Value", "Units", "Reference Range",
        "Abnormal Flag", "Nature of QC", "Result Status", "Date Changed",
        "Operator ID", "Date/Time Started", "Date/Time Completed", "Instrument ID",
    ),
})

STANDARDS = ("E1381", "E1394", "E1238")

# STX, ETX, EOT, ENQ, ACK, NAK, ETB. SYN (0x16) is not in the set and stays in the line.
CONTROL_CHARS_RE = re.compile(r"[\x02\x03\x04\x05\x06\x15\x17]")
RECORD_RE = re.compile(r"^(\d+)([A-Z])\|(.*)")


def parse_astm(content):
    """Parse ASTM records.

    Lines that do not start with ``<sequence><type>|`` once control
    characters are removed are skipped, so ``formatted`` only carries the
    matched lines.
    """
    records = []
    skipped = 0

    for line in split_lines(content):
        cleaned = CONTROL_CHARS_RE.sub("", line)
        match = RECORD_RE.match(cleaned)
        if not match:
            skipped += 1
            continue

        sequence, record_type, data = match.groups()
        records.append(Segment(
            type=record_type,
            name=RECORD_TYPES.get(record_type, record_type),
            fields=parse_fields(data.split("|"), record_type),
            raw=line,
            sequence=sequence,
        ))

    if skipped:
        logger.debug("Skipped {} non-record lines", skipped)
    logger.debug("ASTM message with {} records", len(records))

    analysis = {
        "recordTypes": list(dict.fromkeys(rec.type for rec in records)),
        "recordCount": len(records),
        "records": [
            {
                "name": f"{rec.type} - {rec.name}",
                "fields": [f.to_dict() for f in rec.non_empty_fields(FIELD_PREVIEW_LIMIT)],
            }
            for rec in records
        ],
    }

    return ParseResult(
        format=FormatTag.ASTM,
        version=detect_standard(content),
        formatted="\n".join(rec.raw for rec in records),
        analysis=analysis,
        records=tuple(records),
    )


def parse_fields(values, record_type):
    names = FIELD_NAMES.get(record_type, ())
    fields = []
    for idx, value in enumerate(values):
        position = idx + 1
        name = names[idx] if idx < len(names) else f"{record_type} Field {position}"
        fields.append(Field(name=name, value=value, position=position))
    return tuple(fields)


def detect_standard(content):
    """Return the first ASTM standard identifier mentioned anywhere in the text."""
    for standard in STANDARDS:
        if standard in content:
            return standard
    return None
