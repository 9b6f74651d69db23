"""Auto-detect healthcare message format from content."""

import json
import re
import xml.etree.ElementTree as ET

from loguru import logger

from models import DetectionResult, FormatTag
from xml_mapper import parse_document


FHIR_RESOURCE_TYPES = (
    "Patient|Observation|Bundle|Condition|Procedure|DiagnosticReport|Encounter|"
    "Organization|Practitioner|Location|AllergyIntolerance|Immunization|Medication|"
    "MedicationRequest|MedicationStatement|Goal|CarePlan|CareTeam|Device|DeviceRequest|"
    "DeviceUseStatement|PractitionerRole|RelatedPerson|HealthcareService|ServiceRequest|"
    "Appointment|AppointmentResponse|Schedule|Slot|Coverage|Claim|ClaimResponse|"
    "ExplanationOfBenefit|Contract|ImmunizationEvaluation|ImmunizationRecommendation|"
    "MeasureReport|QuestionnaireResponse|Task|Communication|CommunicationRequest|"
    "RequestGroup|Basic|Binary|DocumentReference|List|Library|Measure|PlanDefinition|"
    "ActivityDefinition|Questionnaire|OperationDefinition|SearchParameter|"
    "CompartmentDefinition|ImplementationGuide|CapabilityStatement|StructureDefinition|"
    "ValueSet|CodeSystem|ConceptMap|NamingSystem|TerminologyCapabilities|InsurancePlan|"
    "SubstanceDefinition|RegulatedAuthorization|MedicinalProductDefinition|"
    "ClinicalUseDefinition|Evidence|EvidenceReport|EvidenceVariable|ResearchStudy|"
    "ResearchSubject|EventDefinition|ChargeItemDefinition|Invoice|Account|PaymentNotice|"
    "PaymentReconciliation|AuditEvent|Consent|Provenance|DocumentManifest|SupplyDelivery|"
    "SupplyRequest|VisionPrescription|RiskAssessment|GuidanceResponse|DetectedIssue|Flag|"
    "AdverseEvent|FamilyMemberHistory|ClinicalImpression|ImagingStudy|Media|Specimen|"
    "BodyStructure|ImagingSelection|MolecularSequence|GenomicStudy|"
    "BiologicallyDerivedProduct|Substance|NutritionOrder|NutritionIntake|InventoryReport|"
    "InventoryItem|Transport|DeviceAssociation|DeviceDispense|DeviceUsage|"
    "MessageDefinition|MessageHeader|SubscriptionTopic|Subscription|SubscriptionStatus|"
    "Parameters|OperationOutcome|Composition|Resource"
)

# Checked in this order; the first family with any matching pattern wins.
FORMAT_PATTERNS = (
    (FormatTag.HL7V2, (
        re.compile(r"^MSH\|"),
        re.compile(r"\|MSH\|"),
        re.compile(r"MSH\^~\\&"),
    )),
    (FormatTag.HL7V3, (
        re.compile(r"<ClinicalDocument[^>]*xmlns[^>]*hl7\.org", re.I),
        re.compile(r"<ClinicalDocument[^>]*xmlns[^>]*CDA", re.I),
        re.compile(r"<ClinicalDocument", re.I),
        re.compile(r"<ContinuityOfCareRecord", re.I),
    )),
    (FormatTag.FHIR, (
        re.compile(r'"resourceType"\s*:\s*"(' + FHIR_RESOURCE_TYPES + r')"', re.I),
        re.compile(r"""<([^>]+\s+)?resourceType\s*=\s*["']?(Patient|Observation|Bundle|[^"'>\s]+)["']?""", re.I),
        re.compile(r"<Bundle[^>]*xmlns[^>]*fhir", re.I),
        re.compile(r"<Patient[^>]*xmlns[^>]*fhir", re.I),
    )),
    (FormatTag.ASTM, (
        re.compile(r"^\d+H\|"),
        re.compile(r"^\d+P\|"),
        re.compile(r"^\d+O\|"),
        re.compile(r"^\d+R\|"),
        re.compile(r"^\d+L\|"),
        re.compile(r"\x02\d+[HPORL]\|"),
        # Control characters pasted as escaped text
        re.compile(r"\\x02\d+[HPORL]\|"),
        re.compile(r"STX\d+[HPORL]\|"),
    )),
    (FormatTag.JSON, (
        re.compile(r"^\s*\{"),
        re.compile(r"^\s*\["),
    )),
    (FormatTag.XML, (
        re.compile(r"^\s*<\?xml", re.I),
        re.compile(r"^\s*<[^>]+>"),
    )),
)

# (pattern, label); a pattern with a capture group reports the captured text instead.
# The hl7v2 patterns only match a version standing alone between two
# field separators, so an MSH-12 at end of line is not picked up.
VERSION_PATTERNS = {
    FormatTag.HL7V2: (
        (re.compile(r"\|2\.1\|"), "v2.1"),
        (re.compile(r"\|2\.2\|"), "v2.2"),
        (re.compile(r"\|2\.3\|"), "v2.3"),
        (re.compile(r"\|2\.4\|"), "v2.4"),
        (re.compile(r"\|2\.5\|"), "v2.5"),
        (re.compile(r"\|2\.6\|"), "v2.6"),
        (re.compile(r"\|2\.7\|"), "v2.7"),
        (re.compile(r"\|2\.8\|"), "v2.8"),
        (re.compile(r"\|2\.9\|"), "v2.9"),
    ),
    FormatTag.HL7V3: (
        (re.compile(r"CDA.*Release.*2", re.I), "CDA R2"),
        (re.compile(r"CDA.*Release.*3", re.I), "CDA R3"),
        (re.compile(r"xmlns.*CDA", re.I), "CDA"),
    ),
    FormatTag.FHIR: (
        (re.compile(r'"fhirVersion"\s*:\s*"([^"]+)"', re.I), None),
        (re.compile(r"xmlns.*fhir", re.I), "FHIR"),
    ),
    FormatTag.ASTM: (
        (re.compile(r"E1381", re.I), "E1381"),
        (re.compile(r"E1394", re.I), "E1394"),
        (re.compile(r"E1238", re.I), "E1238"),
    ),
}

MSH_TYPE_RE = re.compile(r"MSH\|[^|]*\|[^|]*\|[^|]*\|[^|]*\|[^|]*\|[^|]*\|[^|]*\|([^|^]*)", re.I)
RESOURCE_TYPE_RE = re.compile(r'"resourceType"\s*:\s*"([^"]+)"', re.I)


def detect_format(content):
    """Guess the format of a pasted message.

    Returns a DetectionResult, or None when nothing matches (not an error).
    """
    if not content or not isinstance(content, str):
        return None

    stripped = content.strip()

    for fmt, patterns in FORMAT_PATTERNS:
        if any(p.search(stripped) for p in patterns):
            result = DetectionResult(
                format=fmt,
                version=detect_version(stripped, fmt),
                confidence=calculate_confidence(stripped, fmt),
            )
            logger.debug("Detected {} (confidence {})", fmt.value, result.confidence)
            return result

    result = _detect_by_json(stripped) or _detect_by_xml(stripped)
    if result is None:
        logger.debug("No format matched")
    return result


def _detect_by_json(stripped):
    try:
        data = json.loads(stripped)
    except (ValueError, RecursionError):
        return None
    if not isinstance(data, (dict, list)):
        return None

    if isinstance(data, dict) and (data.get("resourceType") or _has_bundle_entry(data)):
        return DetectionResult(FormatTag.FHIR, detect_version(stripped, FormatTag.FHIR), 0.9)
    return DetectionResult(FormatTag.JSON, None, 0.8)


def _has_bundle_entry(data):
    entries = data.get("entry")
    if not (isinstance(entries, list) and entries and isinstance(entries[0], dict)):
        return False
    resource = entries[0].get("resource")
    # An empty resource object still marks a bundle entry
    return isinstance(resource, (dict, list)) or bool(resource)


def _detect_by_xml(stripped):
    try:
        doc = parse_document(stripped)
    except ET.ParseError:
        return None

    default_ns = "".join(uri for prefix, uri in doc.declarations() if not prefix)
    if "fhir" in default_ns:
        return DetectionResult(FormatTag.FHIR, detect_version(stripped, FormatTag.FHIR), 0.9)
    if doc.tag_name(doc.root) == "ClinicalDocument" or "hl7" in default_ns:
        return DetectionResult(FormatTag.HL7V3, detect_version(stripped, FormatTag.HL7V3), 0.9)
    return DetectionResult(FormatTag.XML, detect_version(stripped, FormatTag.XML), 0.7)


def detect_version(content, fmt):
    """Return the version label for ``fmt``, or None when no pattern matches."""
    for pattern, label in VERSION_PATTERNS.get(FormatTag(fmt), ()):
        match = pattern.search(content)
        if match:
            if match.groups():
                return match.group(1)
            return label
    return None


def calculate_confidence(content, fmt):
    """Heuristic score in [0, 1] for how strongly ``content`` looks like ``fmt``."""
    fmt = FormatTag(fmt)
    confidence = 0.5

    if fmt is FormatTag.HL7V2:
        if "MSH|" in content:
            confidence += 0.3
        if "PID|" in content:
            confidence += 0.1
        if "OBX|" in content:
            confidence += 0.1
    elif fmt is FormatTag.HL7V3:
        if "ClinicalDocument" in content:
            confidence += 0.3
        if "xmlns" in content and "hl7" in content:
            confidence += 0.2
    elif fmt is FormatTag.FHIR:
        if "resourceType" in content:
            confidence += 0.3
        if "Bundle" in content or "Patient" in content:
            confidence += 0.1
    elif fmt is FormatTag.ASTM:
        if re.search(r"\d+H\|", content):
            confidence += 0.2
        if re.search(r"\d+L\|", content):
            confidence += 0.1
        if "STX" in content or "ETX" in content:
            confidence += 0.1
    elif fmt is FormatTag.JSON:
        # The json family triggers on a leading bracket only, so check it parses
        try:
            json.loads(content)
            confidence += 0.3
        except (ValueError, RecursionError):
            confidence -= 0.2
    elif fmt is FormatTag.XML:
        if "<?xml" in content:
            confidence += 0.2
        if "xmlns" in content:
            confidence += 0.1

    return round(min(max(confidence, 0.0), 1.0), 2)


def get_message_type(content, fmt):
    """Cheap message-type sniff: MSH-9 for hl7v2, resourceType for fhir."""
    fmt = FormatTag(fmt)
    if fmt is FormatTag.HL7V2:
        match = MSH_TYPE_RE.search(content)
        if match and match.group(1):
            return match.group(1).split("^")[0]
    elif fmt is FormatTag.FHIR:
        match = RESOURCE_TYPE_RE.search(content)
        if match:
            return match.group(1)
    return None
