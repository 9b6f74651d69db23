"""Value objects returned by the format detector and the message parsers."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class FormatTag(str, Enum):
    """Formats the engine knows about, in detection priority order."""

    HL7V2 = "hl7v2"
    HL7V3 = "hl7v3"
    FHIR = "fhir"
    ASTM = "astm"
    JSON = "json"
    XML = "xml"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class DetectionResult:
    format: FormatTag
    version: Optional[str]
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": self.format.value,
            "version": self.version,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class Field:
    """One delimited field of an HL7 segment or ASTM record (position >= 1)."""

    name: str
    value: str
    position: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value, "position": self.position}


@dataclass(frozen=True)
class Segment:
    """An HL7 v2 segment or an ASTM record.

    ``raw`` is the source line exactly as it appeared in the input.
    ``sequence`` is only set for ASTM records (the frame sequence number).
    """

    type: str
    name: str
    fields: Tuple[Field, ...]
    raw: str
    sequence: Optional[str] = None

    def non_empty_fields(self, limit=None):
        found = [f for f in self.fields if f.value]
        return found[:limit] if limit is not None else found

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type,
            "name": self.name,
            "fields": [f.to_dict() for f in self.fields],
            "raw": self.raw,
        }
        if self.sequence is not None:
            data["sequence"] = self.sequence
        return data


@dataclass(frozen=True)
class ParseResult:
    format: FormatTag
    version: Optional[str]
    formatted: str
    analysis: Dict[str, Any]
    # Segment/record list, populated for hl7v2 and astm only
    records: Tuple[Segment, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": self.format.value,
            "version": self.version,
            "formatted": self.formatted,
            "analysis": self.analysis,
        }


@dataclass(frozen=True)
class TreeNode:
    key: str
    type: str
    value: Optional[str] = None
    is_priority: bool = False
    children: Tuple["TreeNode", ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        data = {"key": self.key, "type": self.type}
        if self.value is not None:
            data["value"] = self.value
        if self.is_priority:
            data["isPriority"] = True
        data["children"] = [c.to_dict() for c in self.children]
        return data
