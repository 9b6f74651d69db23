"""Parser for generic JSON documents, plus the summary helpers FHIR reuses."""

import json

from loguru import logger

from config import MAX_JSON_DEPTH, MAX_MESSAGE_BYTES, STRUCTURE_LIMIT, SUMMARY_VALUE_CHARS
from errors import MalformedInput, SizeLimitExceeded
from models import FormatTag, ParseResult


def parse_json(content):
    """Parse a JSON document and summarize its top level."""
    size = check_size(content, FormatTag.JSON)

    try:
        data = json.loads(content)
    except (ValueError, RecursionError) as e:
        raise MalformedInput(FormatTag.JSON, f"Invalid JSON format ({e})")

    depth = calculate_depth(data)
    logger.debug("JSON document: {} bytes, depth {}", size, depth)

    return ParseResult(
        format=FormatTag.JSON,
        version=None,
        formatted=json.dumps(data, indent=2, ensure_ascii=False),
        analysis={
            "type": "Array" if isinstance(data, list) else "Object",
            "structure": analyze_structure(data),
            "detailedStructure": data,
            "size": size,
            "depth": depth,
        },
    )


def check_size(content, fmt):
    """Return the UTF-8 byte length, refusing anything over the ceiling."""
    size = len(content.encode("utf-8"))
    if size > MAX_MESSAGE_BYTES:
        raise SizeLimitExceeded(fmt, f"Message too large (max {MAX_MESSAGE_BYTES // (1024 * 1024)}MB)")
    return size


def value_type(value):
    """Type label for a decoded JSON value (``array`` for lists)."""
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict) or value is None:
        return "object"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "string"


def to_display(value):
    """String form of a scalar the way it reads in JSON."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def summarize_value(value):
    if isinstance(value, list):
        return f"Array({len(value)})"
    if isinstance(value, dict):
        return f"Object with {len(value)} properties"
    if isinstance(value, str) and len(value) > SUMMARY_VALUE_CHARS:
        return value[:SUMMARY_VALUE_CHARS] + "..."
    return to_display(value)


def top_level_entries(data):
    """``(key, value)`` pairs of a mapping, or index/value pairs of a list."""
    if isinstance(data, dict):
        return list(data.items())
    if isinstance(data, list):
        return [(str(idx), item) for idx, item in enumerate(data)]
    return []


def summarize_entries(entries, limit=STRUCTURE_LIMIT):
    return [
        {"name": key, "type": value_type(value), "value": summarize_value(value)}
        for key, value in entries[:limit]
    ]


def analyze_structure(data):
    if isinstance(data, list):
        structure = [{"name": "Array", "type": "array", "value": f"{len(data)} items"}]
        if data:
            first = data[0]
            structure.append({
                "name": "First Item Type",
                "type": value_type(first),
                "value": value_type(first),
            })
        return structure
    if isinstance(data, dict):
        return summarize_entries(top_level_entries(data))
    return []


def calculate_depth(data, current_depth=0):
    """Deepest nesting level of lists/dicts, capped at MAX_JSON_DEPTH.

    A scalar or an empty container is depth ``current_depth``; each level
    of containment adds one.
    """
    if current_depth >= MAX_JSON_DEPTH:
        return MAX_JSON_DEPTH

    if isinstance(data, dict):
        children = data.values()
    elif isinstance(data, list):
        children = data
    else:
        return current_depth

    deepest = current_depth
    for child in children:
        deepest = max(deepest, calculate_depth(child, current_depth + 1))
    return deepest
