"""Bounded tree view of a parsed message, for interactive inspection.

Depth and node count are capped per call; anything past the caps becomes
a ``truncated`` leaf, so arbitrarily deep or wide input still yields a
small tree.
"""

import re

from config import (
    MAX_TREE_DEPTH,
    MAX_TREE_ITEMS,
    TREE_ARRAY_ITEMS,
    TREE_OBJECT_ENTRIES,
    TREE_VALUE_CHARS,
)
from models import FormatTag, TreeNode


PRIORITY_FIELDS = frozenset(name.lower() for name in (
    "resourceType", "id", "status", "code", "name", "type", "value",
    "system", "display", "reference", "url", "version", "title",
))

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
DIGITS_RE = re.compile(r"^\d+$")


def data_type(value):
    if value is None:
        return "null"
    if isinstance(value, list):
        return f"array[{len(value)}]"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "integer" if value.is_integer() else "float"
    if isinstance(value, str):
        if DATE_RE.match(value):
            return "date"
        if DIGITS_RE.match(value):
            return "numeric string"
        if len(value) > 50:
            return "text"
        return "string"
    return type(value).__name__


def format_value(value):
    if value is None:
        return "null"
    if isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)
    if len(text) > TREE_VALUE_CHARS:
        return text[:TREE_VALUE_CHARS] + "(...)"
    return text


def is_priority(key):
    return key.lower() in PRIORITY_FIELDS


class TreeBuilder:
    """Builds one tree. Not shared between calls: it carries the node counter."""

    def __init__(self, max_depth=MAX_TREE_DEPTH, max_items=MAX_TREE_ITEMS):
        self.max_depth = max_depth
        self.max_items = max_items
        self.count = 0

    def _exhausted(self, depth):
        return depth > self.max_depth or self.count >= self.max_items

    def truncated(self, key):
        return TreeNode(key=key, type="truncated", value="(truncated)")

    def build_children(self, entries, build, depth):
        """Build ``(key, value)`` entries until a cap trips, then end with one truncated leaf."""
        built = []
        for key, value in entries:
            if self._exhausted(depth):
                built.append(self.truncated(key))
                break
            built.append(build(key, value, depth))
        return tuple(built)

    def leaf(self, key, value, depth=0):
        if self._exhausted(depth):
            return self.truncated(key)
        self.count += 1
        return TreeNode(
            key=key,
            type=data_type(value),
            value=format_value(value),
            is_priority=is_priority(key),
        )

    def node(self, key, value, depth=0):
        if self._exhausted(depth):
            return self.truncated(key)

        if isinstance(value, list):
            self.count += 1
            children = self.build_children(
                ((f"[{idx}]", item) for idx, item in enumerate(value[:TREE_ARRAY_ITEMS])),
                self.node,
                depth + 1,
            )
            return TreeNode(
                key=key,
                type=f"array[{len(value)}]",
                value=f"Array({len(value)})",
                is_priority=is_priority(key),
                children=children,
            )

        if isinstance(value, dict):
            if is_table(value):
                return self.table(key, value, depth)
            self.count += 1
            # Stable sort: priority keys first, source order otherwise
            entries = sorted(value.items(), key=lambda kv: not is_priority(kv[0]))
            children = self.build_children(entries[:TREE_OBJECT_ENTRIES], self.node, depth + 1)
            return TreeNode(
                key=key,
                type="object",
                value=f"Object({len(value)})",
                is_priority=is_priority(key),
                children=children,
            )

        return self.leaf(key, value, depth)

    def table(self, key, item, depth):
        """Render an XHTML-style table (thead/tbody/tr) as header -> cell rows."""
        self.count += 1
        attrs = item.get("@attributes") or {}
        info = ", ".join(f'{name}="{attrs[name]}"' for name in ("border", "width") if name in attrs)

        headers = []
        thead = item.get("thead")
        if isinstance(thead, dict) and thead.get("tr"):
            header_row = _as_list(thead["tr"])[0]
            if isinstance(header_row, dict) and "th" in header_row:
                headers = [extract_text(th) for th in _as_list(header_row["th"])]

        tbody = item.get("tbody")
        if isinstance(tbody, dict) and tbody.get("tr"):
            rows = _as_list(tbody["tr"])
        else:
            rows = _as_list(item.get("tr", []))
            # A leading row of th cells is the header
            if rows and isinstance(rows[0], dict) and "th" in rows[0] and "td" not in rows[0]:
                if not headers:
                    headers = [extract_text(th) for th in _as_list(rows[0]["th"])]
                rows = rows[1:]

        children = []
        for row_idx, row in enumerate(rows[:TREE_ARRAY_ITEMS]):
            if not isinstance(row, dict) or "td" not in row:
                continue
            if self._exhausted(depth + 1):
                children.append(self.truncated(f"Row {row_idx + 1}"))
                break
            self.count += 1
            cells = self.build_children(
                (
                    (headers[cell_idx] if cell_idx < len(headers) else f"Column {cell_idx + 1}", extract_text(cell))
                    for cell_idx, cell in enumerate(_as_list(row["td"]))
                ),
                self.leaf,
                depth + 2,
            )
            children.append(TreeNode(key=f"Row {row_idx + 1}", type="tableRow", children=cells))

        return TreeNode(key=key or "Table", type="table", value=info or None, children=tuple(children))

    def record(self, segment, depth=1):
        """Node for an HL7 segment / ASTM record: its non-empty fields as leaves."""
        key = f"{segment.type} - {segment.name}"
        if self._exhausted(depth):
            return self.truncated(key)
        self.count += 1
        children = self.build_children(
            ((field.name, field.value) for field in segment.non_empty_fields()),
            self.leaf,
            depth + 1,
        )
        return TreeNode(key=key, type="object", value=segment.raw[:50], children=children)


def is_table(item):
    if not isinstance(item, dict):
        return False
    if item.get("thead") or item.get("tbody") or item.get("tr"):
        return True
    return isinstance(item.get("th"), list) or isinstance(item.get("td"), list)


def extract_text(element):
    """Best-effort text of a converted XML element (a cell, a header...)."""
    if isinstance(element, str):
        return element.strip()
    if isinstance(element, dict):
        if isinstance(element.get("#text"), str):
            return element["#text"].strip()
        for key, value in element.items():
            if key == "@attributes":
                continue
            text = extract_text(value)
            if text:
                return text
        return ""
    if isinstance(element, list):
        return " ".join(t for t in (extract_text(e) for e in element) if t)
    return "" if element is None else str(element).strip()


def _as_list(value):
    return value if isinstance(value, list) else [value]


def build_tree(value, key="root", max_depth=MAX_TREE_DEPTH, max_items=MAX_TREE_ITEMS):
    """Tree for any decoded JSON value or converted XML object."""
    return TreeBuilder(max_depth, max_items).node(key, value)


def tree_for_result(result, max_depth=MAX_TREE_DEPTH, max_items=MAX_TREE_ITEMS):
    """Tree for a ParseResult: records for hl7v2/astm, detailedStructure otherwise."""
    builder = TreeBuilder(max_depth, max_items)
    analysis = result.analysis

    if result.format in (FormatTag.HL7V2, FormatTag.ASTM):
        builder.count += 1
        key = analysis.get("messageType") if result.format is FormatTag.HL7V2 else "ASTM Message"
        children = builder.build_children(
            ((f"{seg.type} - {seg.name}", seg) for seg in result.records[:TREE_ARRAY_ITEMS]),
            lambda _key, seg, depth: builder.record(seg, depth),
            1,
        )
        return TreeNode(
            key=key,
            type=f"array[{len(result.records)}]",
            value=result.version,
            children=children,
        )

    key = (analysis.get("resourceType") or analysis.get("documentType")
           or analysis.get("rootElement") or "root")
    return builder.node(key, analysis.get("detailedStructure"))
