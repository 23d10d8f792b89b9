"""Core data structures for representing a parsed XSD as a typed AST.

Every grammar rule in :mod:`xsd_typegen.xsd_grammar` produces an
``ASTNode``. Nodes are plain dataclasses so they can be cached, serialized
for API responses, or walked by the TypeScript emitter without pulling in
any framework.

Overview:
        * ``ASTNode`` carries the rule tag (``node_type``), the declared
            identifier (``name``), a string keyed attribute map and an ordered
            list of child nodes.
        * ``EnumValue`` is the element type of the ``values`` attribute written
            by enumeration rules.

Typical construction (simplified)::

        from xsd_typegen.models import ASTNode

        field = ASTNode("Field").prop("fieldName", "intField?").prop("fieldType", "number")
        test = ASTNode("Class").named("Test")
        test.children.append(field)

        [n.node_type for n in test.iter_nodes()]   # ['Class', 'Field']
        payload = test.to_dict()

Design notes:
        * Attribute values are one of: ``str``, ``list[ASTNode]``, ``list[str]``
            or ``list[EnumValue]``. Boolean flags (``array``, ``optional``,
            ``element``) are stored as the strings ``"true"`` / ``"false"``.
        * ``node_type`` is fixed once a node is constructed; ``merge`` always
            keeps the receiver's tag.
        * Attribute keys are only ever added or overwritten, never removed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Union

from .field_types import get_field_type
from .xml_utils import UNBOUNDED, attribs, cap_first, is_element

if TYPE_CHECKING:  # pragma: no cover - for type checkers only
    from xml.etree.ElementTree import Element


@dataclass
class EnumValue:
    """A single literal of an enumeration, in declaration order."""

    value: str


AttrValue = Union[str, List["ASTNode"], List[str], List[EnumValue]]


@dataclass
class ASTNode:
    """A node of the AST derived from an XSD document.

    Attributes:
        node_type: Tag of the rule that produced the node (``Class``,
            ``Field``, ``AliasType``, ``Enumeration``, ``Group``, ``schema``...).
        name: Declared identifier, empty for anonymous constructs.
        attr: Rule specific attributes (``fieldName``, ``fieldType``, ``type``,
            ``extends``, ``values``, ``separator``, ``label`` ...).
        children: Ordered child nodes; order drives emitted field order.

    Example:
        >>> node = ASTNode("Field").prop("fieldName", "age")
        >>> node.attr["fieldName"]
        'age'
        >>> node.node_type = "Class"
        Traceback (most recent call last):
        ...
        AttributeError: node_type is immutable once set
    """

    node_type: str
    name: str = ""
    attr: Dict[str, AttrValue] = field(default_factory=dict)
    children: List["ASTNode"] = field(default_factory=list)

    def __setattr__(self, key: str, value: object) -> None:
        if key == "node_type" and "node_type" in self.__dict__:
            raise AttributeError("node_type is immutable once set")
        super().__setattr__(key, value)

    # ---------------- Builders ---------------- #

    def prop(self, key: str, value: object) -> "ASTNode":
        """Set a scalar attribute; ``None`` values are ignored."""
        if value is None:
            return self
        self.attr[key] = value if isinstance(value, list) else str(value)
        return self

    def named(self, name: str) -> "ASTNode":
        self.name = name
        return self

    def add_name(self, element: "Element", prefix: str = "") -> "ASTNode":
        """Name the node after the element's ``name`` attribute, capitalized."""
        self.name = prefix + cap_first(attribs(element).get("name", ""))
        return self

    def prefix_field_name(self, prefix: str) -> "ASTNode":
        return self.prop("fieldName", prefix + str(self.attr.get("fieldName", "")))

    def add_field(
        self,
        element: "Element",
        field_type: Optional[str] = None,
        default_namespace: Optional[str] = None,
    ) -> "ASTNode":
        """Populate ``fieldName``/``fieldType`` from a field-like element.

        ``minOccurs="0"`` appends ``?`` to the field name and
        ``maxOccurs="unbounded"`` appends ``[]`` to the field type.
        """
        attrs = attribs(element)
        resolved = field_type or get_field_type(attrs.get("type", ""), default_namespace)
        is_optional = attrs.get("minOccurs") == "0"
        is_array = attrs.get("maxOccurs") == UNBOUNDED

        self.prop("fieldName", attrs.get("name", "") + ("?" if is_optional else ""))
        self.prop("fieldType", resolved + ("[]" if is_array else ""))
        return self.add_attribs(element)

    def add_attribs(self, element: "Element") -> "ASTNode":
        """Copy the recognized XML attributes of ``element`` onto the node.

        ``name`` becomes the node name, ``maxOccurs`` becomes the ``array``
        flag and ``minOccurs`` the ``optional`` flag; everything else is
        copied verbatim. Empty values are skipped.
        """
        if not is_element(element):
            return self
        for key, value in attribs(element).items():
            if not value:
                continue
            if key == "name":
                self.name = value
            elif key == "maxOccurs":
                self.attr["array"] = _flag(value == UNBOUNDED)
            elif key == "minOccurs":
                self.attr["optional"] = _flag(value == "0")
            else:
                self.attr[key] = value
        return self

    def add_enum_value(self, value: str) -> "ASTNode":
        values = self.attr.setdefault("values", [])
        if isinstance(values, list):
            values.append(EnumValue(value))  # type: ignore[arg-type]
        return self

    # ---------------- Combination ---------------- #

    def merge(self, other: "ASTNode") -> "ASTNode":
        """Return a new node combining ``self`` with ``other``.

        Scalars from ``other`` override those of ``self``; list attributes and
        children are concatenated (``self`` first). The result keeps
        ``self.node_type``. Neither operand is mutated.
        """
        result = ASTNode(self.node_type, name=other.name or self.name)
        for key, value in self.attr.items():
            result.attr[key] = list(value) if isinstance(value, list) else value
        for key, value in other.attr.items():
            if isinstance(value, list):
                existing = result.attr.get(key)
                head = existing if isinstance(existing, list) else []
                result.attr[key] = head + list(value)
            else:
                result.attr[key] = value
        result.children = list(self.children) + list(other.children)
        return result

    # ---------------- Traversal ---------------- #

    def flag(self, key: str) -> bool:
        """Return True when a boolean attribute is set to ``"true"``."""
        return self.attr.get(key) == "true"

    def iter_nodes(self) -> "List[ASTNode]":
        """Return a depth-first list of this node and all descendants.

        Example:
            >>> parent = ASTNode("Class", name="A")
            >>> parent.children.append(ASTNode("Field", name="b"))
            >>> [n.name for n in parent.iter_nodes()]
            ['A', 'b']
        """
        nodes: List[ASTNode] = [self]
        for child in self.children:
            nodes.extend(child.iter_nodes())
        return nodes

    def to_dict(self) -> dict:
        """Convert the node (recursively) into a JSON-serializable dictionary."""
        return {
            "node_type": self.node_type,
            "name": self.name,
            "attr": {key: _attr_to_json(value) for key, value in self.attr.items()},
            "children": [child.to_dict() for child in self.children],
        }


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _attr_to_json(value: AttrValue) -> object:
    if not isinstance(value, list):
        return value
    rendered: list = []
    for item in value:
        if isinstance(item, ASTNode):
            rendered.append(item.to_dict())
        elif isinstance(item, EnumValue):
            rendered.append({"value": item.value})
        else:
            rendered.append(item)
    return rendered
