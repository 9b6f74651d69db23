"""Parser for FHIR (Fast Healthcare Interoperability Resources) resources in JSON or XML."""

import json
import re
from types import MappingProxyType

from loguru import logger

from errors import MalformedInput
from models import FormatTag, ParseResult
from parser_json import summarize_entries, top_level_entries
from xml_mapper import load_document, pretty_print, xml_to_object


RESOURCE_DESCRIPTIONS = MappingProxyType({
    "Patient": "Demographics and other administrative information about an individual",
    "Observation": "Measurements and simple assertions made about a patient",
    "Condition": "A clinical condition, problem, diagnosis, or other event",
    "Procedure": "An action that is or was performed on a patient",
    "MedicationRequest": "An order or request for medication",
    "DiagnosticReport": "The findings and interpretation of diagnostic tests",
    "Encounter": "An interaction between a patient and healthcare provider",
    "Organization": "A formally or informally recognized grouping of people",
    "Practitioner": "A person who is directly or indirectly involved in healthcare",
    "Location": "Details and position information for a physical place",
    "AllergyIntolerance": "Risk of harmful or undesirable physiological response",
    "Immunization": "Describes the event of a patient being administered a vaccine",
    "Bundle": "A container for a collection of resources",
    "OperationOutcome": "Information about the success/failure of an action",
    "MedicationStatement": "A record of a medication that is being consumed by a patient",
    "Goal": "Describes the intended objective(s) for a patient",
    "CarePlan": "Describes the intention of how one or more practitioners intend to deliver care",
    "CareTeam": "The Care Team includes all the people and organizations who plan to participate",
    "Device": "A type of a manufactured item that is used in healthcare",
    "DeviceRequest": "Represents a request for a patient to employ a medical device",
    "DeviceUseStatement": "A record of a device being used by a patient",
    "Flag": "Prospective warnings of potential issues when providing care to the patient",
    "List": "A collection of resources",
    "Composition": "A set of healthcare-related information that is assembled together",
    "DocumentReference": "A reference to a document",
    "Media": "A photo, video, or audio recording acquired or used in healthcare",
    "Specimen": "A sample to be used for analysis",
    "BodyStructure": "Record details about an anatomical structure",
    "Substance": "A homogeneous material with definite composition",
    "Task": "A task to be performed",
    "Appointment": "A booking of a healthcare event among patient(s), practitioner(s), "
                   "related person(s) and/or device(s)",
    "AppointmentResponse": "A reply to an appointment request for a patient and/or practitioner(s)",
    "Schedule": "A container for slots of time that may be available for booking appointments",
    "Slot": "A slot of time on a schedule that may be available for booking appointments",
    "HealthcareService": "The details of a healthcare service available at a location",
    "Coverage": "Financial instrument which may be used to reimburse or pay for "
                "health care products and services",
    "Claim": "A provider issued list of professional services and products",
    "ClaimResponse": "Remittance resource",
    "PaymentNotice": "This resource provides the status of the payment for goods and services rendered",
    "PaymentReconciliation": "This resource provides the details including amount of a payment",
})

FHIR_VERSION_RE = re.compile(r'"fhirVersion"\s*:\s*"([^"]+)"', re.I)
FHIR_XML_VERSION_RE = re.compile(r"""<fhirVersion\s+value\s*=\s*["']([^"']+)["']""", re.I)

RELEASES = (("4.0", "R4"), ("4.3", "R4B"), ("5.0", "R5"))


def parse_fhir(content):
    """Parse a FHIR resource given as JSON or XML."""
    is_xml = content.strip().startswith("<")

    if is_xml:
        doc = load_document(content, FormatTag.FHIR)
        data = xml_to_object(doc)
        # In XML the root element names the resource
        resource_type = doc.local_name(doc.root)
        formatted = pretty_print(content)
    else:
        try:
            data = json.loads(content)
        except (ValueError, RecursionError) as e:
            raise MalformedInput(FormatTag.FHIR, f"Invalid JSON format ({e})")
        resource_type = _resource_type(data)
        formatted = json.dumps(data, indent=2, ensure_ascii=False)

    entries = [(k, v) for k, v in top_level_entries(data) if k != "resourceType"]
    analysis = {
        "resourceType": resource_type,
        "description": RESOURCE_DESCRIPTIONS.get(resource_type, "Unknown resource type"),
        "structure": summarize_entries(entries),
        "detailedStructure": data,
        "fieldCount": len(top_level_entries(data)),
    }
    if resource_type == "Bundle" and isinstance(data, dict):
        analysis.update(_bundle_summary(data))

    logger.debug("FHIR {} resource ({})", resource_type, "xml" if is_xml else "json")

    return ParseResult(
        format=FormatTag.FHIR,
        version=extract_fhir_version(content),
        formatted=formatted,
        analysis=analysis,
    )


def _resource_type(data):
    if isinstance(data, dict):
        for key in ("resourceType", "name"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return "Unknown"


def _bundle_summary(bundle):
    """Count the resources carried in a Bundle's entries, by type."""
    entries = bundle.get("entry", [])
    if isinstance(entries, dict):
        entries = [entries]
    if not isinstance(entries, list):
        return {}

    by_type = {}
    for entry in entries:
        resource = entry.get("resource", entry) if isinstance(entry, dict) else None
        if isinstance(resource, dict):
            rt = _resource_type(resource)
            by_type[rt] = by_type.get(rt, 0) + 1
    return {"entryCount": len(entries), "entryResourceTypes": by_type}


def extract_fhir_version(content):
    """fhirVersion mapped to a release name (R4, R4B, R5), else the raw value."""
    match = FHIR_VERSION_RE.search(content) or FHIR_XML_VERSION_RE.search(content)
    if not match:
        return None
    version = match.group(1)
    for prefix, release in RELEASES:
        if version.startswith(prefix):
            return release
    return version
