"""Turn parsed XML into nested dicts and re-serialize it for display.

Shared by the CDA, FHIR (XML flavour) and generic XML parsers.
"""

import re
import xml.etree.ElementTree as ET
from xml.dom import minidom
from xml.parsers.expat import ExpatError

from config import STRUCTURE_LIMIT, TEXT_PREVIEW_CHARS
from errors import MalformedInput


XML_NS = "http://www.w3.org/XML/1998/namespace"
XML_DECL_RE = re.compile(r"<\?xml\s[^?]*\?>")
BLANK_LINE_RE = re.compile(r"^\s*\n", re.M)


class XmlDocument:
    """A parsed XML tree that remembers namespace prefixes.

    ElementTree expands ``prefix:tag`` into ``{uri}tag`` and drops the
    ``xmlns`` attributes, so the declarations seen while parsing are kept
    here to give tag and attribute names back their source spelling.
    """

    def __init__(self, root, declarations):
        self.root = root
        self._declarations = declarations  # id(element) -> [(prefix, uri)]
        self._prefixes = {XML_NS: "xml"}
        for decls in declarations.values():
            for prefix, uri in decls:
                self._prefixes.setdefault(uri, prefix)

    def qname(self, name):
        """Map ``{uri}local`` to ``prefix:local`` (or ``local`` for a default namespace)."""
        if not name.startswith("{"):
            return name
        uri, local = name[1:].split("}", 1)
        prefix = self._prefixes.get(uri)
        return f"{prefix}:{local}" if prefix else local

    def tag_name(self, element):
        return self.qname(element.tag)

    def local_name(self, element):
        return element.tag.split("}")[-1]

    def declarations(self, element=None):
        element = self.root if element is None else element
        return list(self._declarations.get(id(element), []))

    def attributes(self, element):
        """Return ``[(name, value)]`` with namespace declarations first, like a DOM."""
        attrs = []
        for prefix, uri in self.declarations(element):
            attrs.append((f"xmlns:{prefix}" if prefix else "xmlns", uri))
        for name, value in element.attrib.items():
            attrs.append((self.qname(name), value))
        return attrs

    def find_descendant(self, element, local_name):
        """First descendant (document order, excluding ``element``) with this local name."""
        for node in element.iter():
            if node is not element and self.local_name(node) == local_name:
                return node
        return None


def parse_document(text):
    """Parse XML text. Raises ``ET.ParseError`` when it is not well-formed."""
    parser = ET.XMLPullParser(events=("start-ns", "start"))
    parser.feed(text.lstrip("\ufeff").strip())
    parser.close()

    root = None
    declarations = {}
    pending = []
    for event, payload in parser.read_events():
        if event == "start-ns":
            pending.append(payload)
        else:
            if root is None:
                root = payload
            if pending:
                declarations[id(payload)] = pending
                pending = []
    return XmlDocument(root, declarations)


def load_document(text, fmt):
    """parse_document, with parse failures reported as MalformedInput for ``fmt``."""
    try:
        return parse_document(text)
    except ET.ParseError as e:
        raise MalformedInput(fmt, f"Invalid XML format ({e})")


def xml_to_object(doc, element=None):
    """Convert an element into nested dicts.

    Attributes go under ``@attributes``; an element whose only content is
    text stores it under ``#text``. Children are grouped by tag name: a tag
    seen once maps to a single dict, a repeated tag to a list of dicts.
    """
    element = doc.root if element is None else element
    obj = {}

    attrs = doc.attributes(element)
    if attrs:
        obj["@attributes"] = dict(attrs)

    if len(element) == 0 and element.text:
        obj["#text"] = element.text
        return obj

    # Always collect as lists; collapse single occurrences when rendering
    grouped = {}
    for child in element:
        grouped.setdefault(doc.tag_name(child), []).append(xml_to_object(doc, child))
    for tag, items in grouped.items():
        obj[tag] = items[0] if len(items) == 1 else items
    return obj


def pretty_print(xml_text):
    """Re-serialize the document and put every ``><`` boundary on its own line.

    The source XML declaration and any prolog comments or processing
    instructions are kept. Returns the input unchanged if it does not parse.
    """
    text = xml_text.lstrip("\ufeff").strip()
    try:
        dom = minidom.parseString(text)
    except (ExpatError, ValueError):
        return xml_text

    declaration = XML_DECL_RE.match(text)
    parts = [declaration.group(0)] if declaration else []
    parts.extend(node.toxml() for node in dom.childNodes)

    reflowed = "".join(parts).replace("><", ">\n<")
    return BLANK_LINE_RE.sub("", reflowed)


def text_content(element):
    return "".join(element.itertext())


def count_elements(element):
    """Number of descendant elements, not counting ``element`` itself."""
    return sum(1 for _ in element.iter()) - 1


def child_listing(doc, element=None, limit=STRUCTURE_LIMIT):
    """Shallow listing of the direct children of ``element``."""
    element = doc.root if element is None else element
    listing = []
    for child in list(element)[:limit]:
        text = text_content(child).strip()
        listing.append({
            "name": doc.tag_name(child),
            "attributes": [f'{name}="{value}"' for name, value in doc.attributes(child)],
            "hasChildren": len(child) > 0,
            "textContent": text[:TEXT_PREVIEW_CHARS],
        })
    return listing


def namespace_declarations(doc, element=None):
    """``xmlns*`` declarations on ``element`` (the root by default) as ``name="uri"`` strings."""
    element = doc.root if element is None else element
    return [
        f'{"xmlns:" + prefix if prefix else "xmlns"}="{uri}"'
        for prefix, uri in doc.declarations(element)
    ]
