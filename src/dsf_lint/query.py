"""Namespace-agnostic access to parsed BPMN and FHIR documents.

BPMN files and FHIR XML files are parsed with defusedxml. FHIR JSON files are
converted into the element shape of FHIR XML so every rule can query both
encodings through the same local-name paths.
"""

import json
import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import fromstring as defused_fromstring

from .errors import DocumentParseError

logger = logging.getLogger(__name__)

FHIR_NAMESPACE = "http://hl7.org/fhir"

# Keys of JSON objects that FHIR XML carries as attributes
_JSON_ATTRIBUTE_KEYS = ("id", "sliceName", "url")

_SEGMENT_PATTERN = re.compile(r"^(?P<name>[\w*-]+)(?:\[@(?P<attr>[\w:-]+)=['\"](?P<value>[^'\"]*)['\"]\])?$")


def get_local_name(tag: str) -> str:
    """Strip the namespace part of a qualified tag or attribute name."""
    return tag.split('}')[-1] if tag else tag


def is_blank(value: str | None) -> bool:
    """True for None or whitespace-only strings."""
    return value is None or not value.strip()


def split_path(path: str) -> list[str]:
    """Split a query path on "/" outside predicates and quoted values."""
    segments, current = [], []
    depth, quote = 0, None
    for char in path:
        if quote:
            if char == quote:
                quote = None
        elif char in "'\"" and depth:
            quote = char
        elif char == "[":
            depth += 1
        elif char == "]":
            depth = max(depth - 1, 0)
        elif char == "/" and not depth:
            segments.append("".join(current))
            current = []
            continue
        current.append(char)
    segments.append("".join(current))
    return [s for s in segments if s]


class QueryNode:
    """Read-only view over an ElementTree element addressed by local names."""

    __slots__ = ("element",)

    def __init__(self, element: ET.Element):
        self.element = element

    def __repr__(self) -> str:
        return f"QueryNode({self.name!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, QueryNode) and other.element is self.element

    def __hash__(self) -> int:
        return id(self.element)

    @property
    def name(self) -> str:
        return get_local_name(self.element.tag)

    @property
    def text(self) -> str:
        """Whitespace-trimmed text content of this element and its descendants."""
        return "".join(self.element.itertext()).strip()

    def attr(self, name: str) -> str | None:
        """Attribute value by local name, ignoring namespace prefixes."""
        if name in self.element.attrib:
            return self.element.attrib[name]
        for key, value in self.element.attrib.items():
            if get_local_name(key) == name:
                return value
        return None

    def children(self, name: str | None = None) -> list["QueryNode"]:
        return [QueryNode(child) for child in self.element
                if isinstance(child.tag, str) and (name in (None, "*") or get_local_name(child.tag) == name)]

    def child(self, name: str) -> "QueryNode | None":
        for child in self.element:
            if isinstance(child.tag, str) and get_local_name(child.tag) == name:
                return QueryNode(child)
        return None

    def iter(self, name: str | None = None) -> Iterator["QueryNode"]:
        """Iterate over descendants (excluding self) with the given local name."""
        for element in self.element.iter():
            if element is self.element or not isinstance(element.tag, str):
                continue
            if name is None or get_local_name(element.tag) == name:
                yield QueryNode(element)

    def find_all(self, path: str) -> list["QueryNode"]:
        """Resolve a '/'-separated local-name path.

        Each segment may carry one attribute predicate, e.g.
        ``extension[@url='message-name']/valueString``.
        """
        current = [self]
        for segment in split_path(path):
            match = _SEGMENT_PATTERN.match(segment)
            if not match:
                raise ValueError(f"Unsupported path segment: {segment!r}")
            name, attr, expected = match.group("name", "attr", "value")
            current = [
                child
                for node in current
                for child in node.children(name)
                if attr is None or child.attr(attr) == expected
            ]
            if not current:
                break
        return current

    def find(self, path: str) -> "QueryNode | None":
        found = self.find_all(path)
        return found[0] if found else None

    def value(self, path: str | None = None) -> str | None:
        """FHIR primitive value: the ``value`` attribute of the node at path."""
        node = self.find(path) if path else self
        return node.attr("value") if node is not None else None

    def values(self, path: str) -> list[str]:
        return [v for v in (node.attr("value") for node in self.find_all(path)) if v is not None]


def parse_xml(content: bytes | str, source: str = "<string>") -> QueryNode:
    """Parse BPMN or FHIR XML with defusedxml."""
    try:
        return QueryNode(defused_fromstring(content))
    except (ET.ParseError, DefusedXmlException) as e:
        raise DocumentParseError(source, str(e)) from e


def parse_json(content: bytes | str, source: str = "<string>") -> QueryNode:
    """Parse a FHIR JSON resource into the FHIR XML element shape."""
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DocumentParseError(source, str(e)) from e
    if not isinstance(data, dict) or "resourceType" not in data:
        raise DocumentParseError(source, "JSON does not appear to be a FHIR resource (missing resourceType)")
    return QueryNode(_resource_to_element(data))


def _resource_to_element(data: dict[str, Any]) -> ET.Element:
    root = ET.Element(f"{{{FHIR_NAMESPACE}}}{data['resourceType']}")
    for key, value in data.items():
        if key != "resourceType":
            _append_json(root, key, value)
    return root


def _append_json(parent: ET.Element, key: str, value: Any) -> None:
    if value is None:
        return
    tag = f"{{{FHIR_NAMESPACE}}}{key}"
    if isinstance(value, list):
        for item in value:
            _append_json(parent, key, item)
    elif isinstance(value, dict):
        element = ET.SubElement(parent, tag)
        if "resourceType" in value:
            element.append(_resource_to_element(value))
            return
        for attr_key in _JSON_ATTRIBUTE_KEYS:
            if attr_key in value and not isinstance(value[attr_key], (dict, list)):
                element.set(attr_key, _json_scalar(value[attr_key]))
        for child_key, child_value in value.items():
            if child_key not in _JSON_ATTRIBUTE_KEYS:
                _append_json(element, child_key, child_value)
    else:
        ET.SubElement(parent, tag, {"value": _json_scalar(value)})


def _json_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def load_document(path: Path) -> QueryNode:
    """Load a BPMN, FHIR XML or FHIR JSON file.

    Raises:
        DocumentParseError: If the file cannot be read or parsed
    """
    try:
        content = path.read_bytes()
    except OSError as e:
        raise DocumentParseError(str(path), str(e)) from e

    logger.debug(f"Parsing {path}")
    if path.suffix.lower() == ".json":
        return parse_json(content, str(path))
    return parse_xml(content, str(path))
