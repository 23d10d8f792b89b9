"""Small helpers over :mod:`xml.etree.ElementTree` used by the grammar.

The grammar engine works on a DOM-like tree where text, comments and
processing instructions may sit between elements. ElementTree keeps text on
``.text``/``.tail`` and, when parsed with :func:`parse_xml`, represents
comments and processing instructions as nodes whose ``tag`` is not a string.
Skipping those is the grammar's job, so every helper here that enumerates
children only yields real elements.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

XS_NS = "{http://www.w3.org/2001/XMLSchema}"

UNBOUNDED = "unbounded"

# Closed set of attributes the grammar ever reads from an element.
RECOGNIZED_ATTRIBUTES = (
    "name",
    "type",
    "base",
    "abstract",
    "value",
    "ref",
    "minOccurs",
    "maxOccurs",
)


def parse_xml(text: str) -> ET.Element:
    """Parse XML text keeping comments and processing instructions as nodes.

    Raises:
        xml.etree.ElementTree.ParseError: If ``text`` is not well-formed.
    """
    parser = ET.XMLParser(
        target=ET.TreeBuilder(insert_comments=True, insert_pis=True)
    )
    parser.feed(text)
    return parser.close()


def is_element(node: Optional[ET.Element]) -> bool:
    """Return True for element nodes (comments and PIs have callable tags)."""
    return node is not None and isinstance(node.tag, str)


def local_name(node: ET.Element) -> str:
    """Return the unqualified tag name of an element (``''`` for non-elements)."""
    if not is_element(node):
        return ""
    tag = node.tag.rsplit("}", 1)[-1]
    return tag.rsplit(":", 1)[-1]


def local_type_name(value: Optional[str]) -> Optional[str]:
    """Strip a ``prefix:`` from a QName attribute value."""
    if value is None:
        return None
    if ":" in value:
        return value.split(":", 1)[1]
    return value


def attribs(node: Optional[ET.Element]) -> Dict[str, str]:
    """Return the recognized attributes present on ``node``."""
    if not is_element(node):
        return {}
    return {
        key: node.get(key)
        for key in RECOGNIZED_ATTRIBUTES
        if node.get(key) is not None
    }


def find_children(node: ET.Element) -> List[ET.Element]:
    """Direct child elements in document order."""
    return [child for child in node if is_element(child)]


def find_child(node: ET.Element, name: str) -> Optional[ET.Element]:
    """First direct child element whose local name is ``name``."""
    for child in find_children(node):
        if local_name(child) == name:
            return child
    return None


def child_names(node: ET.Element) -> List[str]:
    return [local_name(child) for child in find_children(node)]


def cap_first(value: str) -> str:
    if not value:
        return ""
    return value[0].upper() + value[1:]
