"""Parser for HL7 v2.x pipe-delimited (ER7) messages."""

import re
from types import MappingProxyType

from loguru import logger

from config import FIELD_PREVIEW_LIMIT
from models import Field, FormatTag, ParseResult, Segment


# Message type (MSH-9.1) descriptions
MESSAGE_TYPES = MappingProxyType({
    "ACK": "General acknowledgment",
    "ADR": "ADT response",
    "ADT": "Admission, discharge, transfer",
    "BAR": "Add/change billing account",
    "DFT": "Detailed financial transaction",
    "DOC": "Document response",
    "DSR": "Display response",
    "EAC": "Automated equipment command",
    "EAN": "Automated equipment notification",
    "EAR": "Automated equipment response",
    "EDR": "Enhanced display response",
    "EQQ": "Embedded query language query",
    "ERP": "Event replay response",
    "ESR": "Automated equipment status update acknowledgment",
    "ESU": "Automated equipment status update",
    "INR": "Automated equipment inventory request",
    "INU": "Automated equipment inventory update",
    "LSR": "Automated equipment log/service request",
    "LSU": "Automated equipment log/service update",
    "MCF": "Delayed acknowledgment",
    "MDM": "Medical document management",
    "MFD": "Master files delayed application acknowledgment",
    "MFK": "Master files application acknowledgment",
    "MFN": "Master files notification",
    "MFQ": "Master files query",
    "MFR": "Master files response",
    "NMD": "Application management data message",
    "NMQ": "Application management query message",
    "NMR": "Application management response message",
    "OMD": "Dietary order",
    "OMG": "General clinical order",
    "OMI": "Imaging order",
    "OML": "Laboratory order",
    "OMN": "Non-stock requisition order",
    "OMP": "Pharmacy/treatment order",
    "OMS": "Stock requisition order",
    "OPL": "Population/location-based laboratory order",
    "OPR": "Population/location-based laboratory order acknowledgment",
    "OPU": "Unsolicited population/location-based laboratory observation",
    "ORA": "Observation report acknowledgment",
    "ORD": "Dietary order acknowledgment",
    "ORF": "Query for results of observation",
    "ORG": "General clinical order acknowledgment",
    "ORI": "Imaging order acknowledgment",
    "ORL": "Laboratory acknowledgment",
    "ORM": "Order message",
    "ORN": "Non-stock requisition - General order acknowledgment",
    "ORP": "Pharmacy/treatment order acknowledgment",
    "ORR": "General order response message response to any ORM",
    "ORS": "Stock requisition - Order acknowledgment",
    "ORU": "Unsolicited transmission of an observation message",
    "OUL": "Unsolicited laboratory observation",
    "PEX": "Unsolicited personnel/equipment status update",
    "PGL": "Patient goal message",
    "PIN": "Patient insurance information",
    "PMU": "Add personnel record",
    "PPG": "Patient pathway message (goal-oriented)",
    "PPP": "Patient pathway message (problem-oriented)",
    "PPR": "Patient problem message",
    "PPT": "Patient pathway goal-oriented response",
    "PPV": "Patient goal response",
    "PRR": "Patient problem response",
    "PTR": "Patient pathway problem-oriented response",
    "QBP": "Query by parameter",
    "QCK": "Query general acknowledgment",
    "QCN": "Cancel query",
    "QRY": "Query, original mode",
    "QSB": "Create subscription",
    "QSX": "Cancel subscription/acknowledge message",
    "QVR": "Query for previous events",
    "RAR": "Pharmacy/treatment administration acknowledgment",
    "RAS": "Pharmacy/treatment administration",
    "RCI": "Return clinical information",
    "RCL": "Return clinical list",
    "RDE": "Pharmacy/treatment encoded order",
    "RDR": "Pharmacy/treatment dispense acknowledgment",
    "RDS": "Pharmacy/treatment dispense",
    "RDY": "Display based response",
    "REF": "Patient referral",
    "RER": "Pharmacy/treatment encoded order acknowledgment",
    "RGR": "Pharmacy/treatment dose acknowledgment",
    "RGV": "Pharmacy/treatment give",
    "ROR": "Pharmacy/treatment order response",
    "RPA": "Return patient authorization",
    "RPI": "Return patient information",
    "RPL": "Return patient display list",
    "RPR": "Return patient list",
    "RQA": "Request patient authorization",
    "RQC": "Request clinical information",
    "RQI": "Request patient information",
    "RQP": "Request patient demographics",
    "RRA": "Pharmacy/treatment administration acknowledgment",
    "RRD": "Return patient display data",
    "RRE": "Pharmacy/treatment encoded order acknowledgment",
    "RRG": "Pharmacy/treatment give acknowledgment",
    "RRI": "Return referral information",
    "RSP": "Segment pattern response",
    "RTB": "Tabular response",
    "SIU": "Schedule information unsolicited",
    "SPQ": "Stored procedure request",
    "SQM": "Schedule query message",
    "SQR": "Schedule query response",
    "SRM": "Schedule request message",
    "SRR": "Scheduled request response",
    "SSR": "Specimen status request message",
    "SSU": "Specimen status update message",
    "SUR": "Summary product experience report",
    "TBR": "Tabular data response",
    "TCR": "Automated equipment test code settings request",
    "TCU": "Automated equipment test code settings update",
    "UDM": "Unsolicited display update message",
    "VXQ": "Query for vaccination record",
    "VXR": "Vaccination record response",
    "VXU": "Unsolicited vaccination record update",
    "VXX": "Response for vaccination query with multiple PID matches",
})

SEGMENT_NAMES = MappingProxyType({
    "MSH": "Message Header",
    "SFT": "Software Segment",
    "UAC": "User Authentication Credential",
    "EVN": "Event Type",
    "PID": "Patient Identification",
    "PD1": "Patient Additional Demographics",
    "ARV": "Access Restriction",
    "ROL": "Role",
    "NK1": "Next of Kin / Associated Parties",
    "PV1": "Patient Visit",
    "PV2": "Patient Visit - Additional Information",
    "DB1": "Disability",
    "OBX": "Observation/Result",
    "AL1": "Patient Allergy Information",
    "DG1": "Diagnosis",
    "DRG": "Diagnosis Related Group",
    "PR1": "Procedures",
    "GT1": "Guarantor",
    "IN1": "Insurance",
    "IN2": "Insurance Additional Information",
    "IN3": "Insurance Additional Information, Certification",
    "ACC": "Accident",
    "UB1": "UB82",
    "UB2": "UB92 Data",
    "PDA": "Patient Death and Autopsy",
    "ORC": "Common Order",
    "OBR": "Observation Request",
    "NTE": "Notes and Comments",
    "CTI": "Clinical Trial Identification",
    "FT1": "Financial Transaction",
    "CTD": "Contact Data",
    "PRD": "Provider Data",
    "PRT": "Participation Information",
    "TXA": "Transcription Document Header",
    "CON": "Consent Segment",
    "MSA": "Message Acknowledgment",
    "ERR": "Error",
    "QAK": "Query Acknowledgment",
    "QPD": "Query Parameter Definition",
    "QRI": "Query Response Instance",
    "DSC": "Continuation Pointer",
    "QRD": "Original-Style Query Definition",
    "QRF": "Original-Style Query Filter",
    "RCP": "Response Control Parameter",
    "SPM": "Specimen",
    "SAC": "Specimen and Container Detail",
    "TCD": "Test Code Detail",
    "SID": "Substance Identifier",
    "TCC": "Test Code Configuration",
    "RXO": "Pharmacy/Treatment Order",
    "RXR": "Pharmacy/Treatment Route",
    "RXC": "Pharmacy/Treatment Component Order",
    "RXE": "Pharmacy/Treatment Encoded Order",
    "RXD": "Pharmacy/Treatment Dispense",
    "RXG": "Pharmacy/Treatment Give",
    "RXA": "Pharmacy/Treatment Administration",
    "BPO": "Blood Product Order",
    "BPX": "Blood Product Dispense Status",
    "BTX": "Blood Product Transfusion/Disposition",
    "SCH": "Scheduling Activity Information",
    "AIG": "Appointment Information - General Resource",
    "AIL": "Appointment Information - Location Resource",
    "AIP": "Appointment Information - Personnel Resource",
    "AIS": "Appointment Information - Service",
    "APR": "Appointment Preferences",
    "RGS": "Resource Group",
    "NDS": "Notification Detail",
})

# Field names per segment, index 0 = field 1 (MSH-1 is the field separator).
FIELD_NAMES = MappingProxyType({
    "MSH": (
        "Field Separator", "Encoding Characters", "Sending Application",
        "Sending Facility", "Receiving Application", "Receiving Facility",
        "Date/Time of Message", "Security", "Message Type", "Message Control ID",
        "Processing ID", "Version ID", "Sequence Number", "Continuation Pointer",
        "Accept Acknowledgment Type", "Application Acknowledgment Type",
        "Country Code", "Character Set", "Principal Language of Message",
    ),
    "EVN": (
        "Event Type Code", "Recorded Date/Time", "Date/Time Planned Event",
        "Event Reason Code", "Operator ID", "Event Occurred", "Event Facility",
    ),
    "PID": (
        "Set ID", "Patient ID", "Patient Identifier List", "Alternate Patient ID",
        "Patient Name", "Mother's Maiden Name", "Date/Time of Birth",
        "Administrative Sex", "Patient Alias", "Race", "Patient Address",
        "County Code", "Phone Number - Home", "Phone Number - Business",
        "Primary Language", "Marital Status", "Religion", "Patient Account Number",
        "SSN Number - Patient", "Driver's License Number - Patient",
        "Mother's Identifier", "Ethnic Group", "Birth Place",
        "Multiple Birth Indicator", "Birth Order", "Citizenship",
        "Veterans Military Status", "Nationality", "Patient Death Date and Time",
        "Patient Death Indicator",
    ),
    "PV1": (
        "Set ID", "Patient Class", "Assigned Patient Location", "Admission Type",
        "Preadmit Number", "Prior Patient Location", "Attending Doctor",
        "Referring Doctor", "Consulting Doctor", "Hospital Service",
        "Temporary Location", "Preadmit Test Indicator", "Re-admission Indicator",
        "Admit Source", "Ambulatory Status", "VIP Indicator", "Admitting Doctor",
        "Patient Type", "Visit Number",
    ),
    "ORC": (
        "Order Control", "Placer Order Number", "Filler Order Number",
        "Placer Group Number", "Order Status", "Response Flag", "Quantity/Timing",
        "Parent", "Date/Time of Transaction", "Entered By", "Verified By",
        "Ordering Provider",
    ),
    "OBR": (
        "Set ID", "Placer Order Number", "Filler Order Number",
        "Universal Service Identifier", "Priority", "Requested Date/Time",
        "Observation Date/Time", "Observation End Date/Time", "Collection Volume",
        "Collector Identifier", "Specimen Action Code", "Danger Code",
        "Relevant Clinical Information", "Specimen Received Date/Time",
        "Specimen Source", "Ordering Provider", "Order Callback Phone Number",
        "Placer Field 1", "Placer Field 2", "Filler Field 1", "Filler Field 2",
        "Results Rpt/Status Chng - Date/Time", "Charge to Practice",
        "Diagnostic Serv Sect ID", "Result Status",
    ),
    "OBX": (
        "Set ID", "Value Type", "Observation Identifier", "Observation Sub-ID",
        "Observation Value", "Units", "References Range", "Abnormal Flags",
        "Probability", "Nature of Abnormal Test", "Observation Result Status",
        "Effective Date of Reference Range", "User Defined Access Checks",
        "Date/Time of the Observation", "Producer's ID", "Responsible Observer",
        "Observation Method",
    ),
    "NTE": ("Set ID", "Source of Comment", "Comment", "Comment Type"),
})

LINE_SPLIT_RE = re.compile(r"\r\n|\r|\n")


def parse_hl7v2(content):
    """Parse an HL7 v2.x message into segments and an analysis summary.

    Every non-blank line becomes a segment; ``formatted`` is those lines
    rejoined with ``\\n``.
    """
    segments = []
    message_type = ""
    version = ""

    for line in split_lines(content):
        segment_type = line[:3]
        parts = line.split("|")

        if segment_type == "MSH":
            message_type = get_field(parts, "MSH", 9).split("^")[0]
            version = get_field(parts, "MSH", 12)

        segments.append(Segment(
            type=segment_type,
            name=SEGMENT_NAMES.get(segment_type, segment_type),
            fields=parse_fields(parts, segment_type),
            raw=line,
        ))

    logger.debug("HL7 v2 message {} with {} segments", message_type or "?", len(segments))

    analysis = {
        "messageType": f"{message_type} - {MESSAGE_TYPES.get(message_type, 'Unknown')}",
        "segments": [
            {
                "name": f"{seg.type} - {seg.name}",
                "fields": [f.to_dict() for f in seg.non_empty_fields(FIELD_PREVIEW_LIMIT)],
            }
            for seg in segments
        ],
        "segmentCount": len(segments),
        "version": version or None,
    }

    return ParseResult(
        format=FormatTag.HL7V2,
        version=version or None,
        formatted="\n".join(seg.raw for seg in segments),
        analysis=analysis,
        records=tuple(segments),
    )


def split_lines(content):
    """Split on CR, LF or CRLF and drop blank lines."""
    return [line for line in LINE_SPLIT_RE.split(content) if line.strip()]


def get_field(parts, segment_type, field_num):
    """Get a field by its HL7 number from a segment already split on ``|``.

    MSH is special: MSH-1 is the field separator itself, so MSH-n sits at
    split index n - 1 while every other segment's field n sits at index n.
    """
    if segment_type == "MSH":
        if field_num == 1:
            return "|"
        idx = field_num - 1
    else:
        idx = field_num
    return parts[idx] if 0 < idx < len(parts) else ""


def parse_fields(parts, segment_type):
    """Name each field of a split segment; unmapped positions become ``SEG.n``."""
    names = FIELD_NAMES.get(segment_type, ())
    offset = 1 if segment_type == "MSH" else 0

    fields = []
    if segment_type == "MSH":
        fields.append(Field(name=names[0], value="|", position=1))

    for idx in range(1, len(parts)):
        position = idx + offset
        name = names[position - 1] if position <= len(names) else f"{segment_type}.{position}"
        fields.append(Field(name=name, value=parts[idx], position=position))
    return tuple(fields)
