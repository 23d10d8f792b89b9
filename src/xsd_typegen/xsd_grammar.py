"""XSD grammar: wires parslets into rules producing a typed AST.

The grammar recognizes a deliberately limited subset of XML Schema. Each
top-level declaration of a ``<schema>`` is offered to an ordered list of
rules and the first rule that structurally matches produces the node. Rules
are guarded by their terminal factories, which inspect the element (and its
descendants where needed) and decline by returning ``None``. Constructs no
rule recognizes are dropped without error.

Top-level rules in priority order (the ``label`` attribute of the node names
the rule that won):

    ======================  ============================================
    DATE_ALIAS              simpleType restricting ``date``/``dateTime``
    NUMBER_ALIAS            simpleType restricting a numeric base + facet
    STRING_ALIAS            simpleType restricting a string base + facet
    STRING_ELEMENT_ALIAS    untyped element with string restriction + facet
    NUMBER_ELEMENT_ALIAS    untyped element with numeric restriction + facet
    EMPTY_CLASS             complexType without content
    ENUM_ELEMENT            untyped element with an inline enumeration
    ENUM_TYPE               simpleType enumeration
    ELEMENT_CLASS           untyped element with a structured complexType
    COMPLEX_CLASS           complexType with sequence/choice/all
    EXTENDED_CLASS          complexType using complexContent extension
    NAMED_GROUP             ``<group name=...>``
    ATTRIBUTE_GROUP         ``<attributeGroup name=...>``
    ATTRIBUTE_CLASS         untyped element whose complexType has attributes only
    REFERENCE_CLASS         complexType with attribute/group references only
    EMPTY_ELEMENT_CLASS     untyped element without content
    TOP_FIELD               typed (or abstract) element without content
    ======================  ============================================

Fields inside classes are parsed by the mutually recursive ``FIELD`` rule
(wrapper arrays, nested complex elements, inline simple types, typed
elements, group and element references, choices and nested sequences).

Typical usage:
        from xsd_typegen.xsd_grammar import GrammarConfig, parse_xsd, class_nodes
        from xsd_typegen.hierarchy import sort_classes_by_hierarchy

        ast = parse_xsd("orders.xsd", GrammarConfig(schema_name="orders"))
        for node in sort_classes_by_hierarchy(class_nodes(ast)):
                print(node.name, [c.attr.get("fieldName") for c in node.children])
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Dict, FrozenSet, List, Optional, Union

from .field_types import ANY_TYPE, NUMBER_TYPE, get_field_type
from .hierarchy import GROUP_PREFIX
from .models import ASTNode
from .parsing import (
    NEWLINE,
    AstNodeFactory,
    Matcher,
    OneOf,
    Proxy,
    Terminal,
    ast_class,
    ast_enum_value,
    ast_field,
    ast_restriction,
    match,
)
from .regexp2alias import MAX_LENGTH, literal_union, regexp_pattern2type_alias
from .xml_utils import (
    UNBOUNDED,
    cap_first,
    find_child,
    find_children,
    is_element,
    local_name,
    local_type_name,
    parse_xml,
)

logger = logging.getLogger(__name__)

DATE_BASES: FrozenSet[str] = frozenset({"date", "dateTime"})
NUMERIC_BASES: FrozenSet[str] = frozenset(
    {
        "float",
        "double",
        "decimal",
        "integer",
        "int",
        "long",
        "short",
        "byte",
        "positiveInteger",
        "negativeInteger",
        "nonNegativeInteger",
        "nonPositiveInteger",
        "unsignedLong",
        "unsignedInt",
        "unsignedShort",
        "unsignedByte",
    }
)
STRING_BASES: FrozenSet[str] = frozenset({"string", "normalizedString", "token", "anyURI"})

RESTRICTION_FACETS = (
    "pattern",
    "length",
    "minLength",
    "maxLength",
    "minInclusive",
    "maxInclusive",
    "minExclusive",
    "maxExclusive",
)

ANNOTATION_TAGS = frozenset({"annotation", "documentation"})
STRUCTURED_CONTENT = frozenset({"sequence", "all", "group", "complexContent"})
CLASS_CONTENT = frozenset({"sequence", "choice", "all"})
ATTRIBUTE_CONTENT = frozenset({"attribute", "attributeGroup", "anyAttribute", "choice"})
REFERENCE_CONTENT = frozenset({"attribute", "attributeGroup", "group", "anyAttribute"})


class InvalidSchemaError(ValueError):
    """Raised when a document cannot be parsed as a schema at all."""


@dataclass
class GrammarConfig:
    """Configuration for :class:`XsdGrammar`.

    Args:
        schema_name: Name given to the ``schema`` root node.
        default_namespace: Namespace placed in front of unqualified type
            references (``Order`` becomes ``ns.Order``).
        regexp_max_length: Longest literal produced when expanding ``pattern``
            facets into literal unions.
    """

    schema_name: str = "schema"
    default_namespace: Optional[str] = None
    regexp_max_length: int = MAX_LENGTH

    def to_dict(self) -> Dict[str, Union[str, int, None]]:
        return asdict(self)


# ---------------- Structural guards ---------------- #


def _content(element: Optional[ET.Element]) -> List[ET.Element]:
    """Child elements other than annotations."""
    if element is None:
        return []
    return [c for c in find_children(element) if local_name(c) not in ANNOTATION_TAGS]


def _content_names(element: Optional[ET.Element]) -> FrozenSet[str]:
    return frozenset(local_name(c) for c in _content(element))


def _is_untyped_named(element: ET.Element) -> bool:
    return bool(element.get("name")) and not element.get("type") and not element.get("ref")


def _base(restriction: Optional[ET.Element]) -> str:
    if restriction is None:
        return ""
    return local_type_name(restriction.get("base")) or ""


def _has_facet(restriction: Optional[ET.Element]) -> bool:
    return any(name in RESTRICTION_FACETS for name in _content_names(restriction))


def _has_enumeration(restriction: Optional[ET.Element]) -> bool:
    return "enumeration" in _content_names(restriction)


def _inline_restriction(element: ET.Element) -> Optional[ET.Element]:
    simple_type = find_child(element, "simpleType")
    return find_child(simple_type, "restriction") if simple_type is not None else None


def _facet_values(restriction: ET.Element, facet: str) -> List[str]:
    return [
        c.get("value")
        for c in _content(restriction)
        if local_name(c) == facet and c.get("value") is not None
    ]


# ---------------- Mergers ---------------- #


def merge_nodes(left: ASTNode, right: ASTNode) -> ASTNode:
    return left.merge(right)


def facet_merger(left: ASTNode, right: ASTNode) -> ASTNode:
    """Merge a facet; several ``pattern`` facets are alternatives of each other."""
    merged = left.merge(right)
    previous, pattern = left.attr.get("pattern"), right.attr.get("pattern")
    if isinstance(previous, str) and isinstance(pattern, str):
        merged.prop("pattern", f"{previous}|{pattern}")
    return merged


def extension_merger(left: ASTNode, right: ASTNode) -> ASTNode:
    """Append the fields of a sequence after an extension's base reference."""
    if left.node_type == "Extension":
        left.children.extend(right.children)
        return left
    return left.merge(right)


class XsdGrammar:
    """Rule graph for the supported XSD subset.

    Every instance assembles its own rules (including the ``FIELD`` proxy) so
    grammars with different configurations can be used side by side.

    Args:
        config: Grammar configuration; defaults to :class:`GrammarConfig`.
        log: Logger receiving the DEBUG level rule trace.

    Example:
        >>> from xsd_typegen.xml_utils import parse_xml
        >>> root = parse_xml(
        ...     '<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">'
        ...     '<xs:complexType name="Test"><xs:sequence>'
        ...     '<xs:element name="intField" type="xs:int" minOccurs="0"/>'
        ...     '</xs:sequence></xs:complexType></xs:schema>'
        ... )
        >>> ast = XsdGrammar().parse(root)
        >>> cls = ast.children[0]
        >>> cls.node_type, cls.name, cls.children[0].attr["fieldName"]
        ('Class', 'Test', 'intField?')
    """

    def __init__(self, config: Optional[GrammarConfig] = None, log: Optional[logging.Logger] = None) -> None:
        self.config = config or GrammarConfig()
        self.log = log or logger
        self.field_proxy = Proxy("FIELD")
        self.schema = self._assemble()

    def parse(self, element: Optional[ET.Element]) -> ASTNode:
        """Parse a schema root element.

        Returns:
            The ``schema`` node whose children are the recognized top-level
            declarations, or an ``empty`` node if ``element`` is not a schema.

        Raises:
            InvalidSchemaError: If there is no root element or the document is
                nested too deeply to walk.
        """
        if not is_element(element):
            raise InvalidSchemaError("Invalid XSD: no root element")
        try:
            result = self.schema.parse(element, "", self.log)
        except RecursionError as exc:
            raise InvalidSchemaError("Invalid XSD: nesting too deep") from exc
        if result is None:
            self.log.debug("root <%s> is not a schema", local_name(element))
            return ASTNode("empty")
        return result

    # ---------------- Type helpers ---------------- #

    def field_type(self, type_name: Optional[str]) -> str:
        return get_field_type(type_name, self.config.default_namespace)

    def scalar_type(self, base: Optional[str]) -> str:
        """Target scalar for a restriction base."""
        local = local_type_name(base) or ""
        if local in DATE_BASES:
            return "Date"
        if local in NUMERIC_BASES:
            return NUMBER_TYPE
        if local in STRING_BASES:
            return "string"
        return self.field_type(base)

    def inline_type(self, element: ET.Element) -> str:
        """Type expression for an element or attribute with an inline simpleType."""
        restriction = _inline_restriction(element)
        if restriction is None:
            return ANY_TYPE
        scalar = self.scalar_type(restriction.get("base"))
        if scalar not in ("string", NUMBER_TYPE):
            return scalar
        values = list(dict.fromkeys(_facet_values(restriction, "enumeration")))
        if values:
            return literal_union(values, scalar) or scalar
        patterns = _facet_values(restriction, "pattern")
        if patterns:
            return regexp_pattern2type_alias("|".join(patterns), scalar, self.config.regexp_max_length)
        return scalar

    def alias_merger(self, left: ASTNode, right: ASTNode) -> ASTNode:
        """Merge a restriction into an alias, expanding its pattern if any."""
        merged = left.merge(right)
        pattern = merged.attr.get("pattern")
        if isinstance(pattern, str) and pattern:
            value = str(merged.attr.get("value", "string"))
            merged.prop(
                "type",
                regexp_pattern2type_alias(pattern, value, self.config.regexp_max_length),
            )
        return merged

    # ---------------- Terminal factories ---------------- #

    def schema_node(self, element: ET.Element) -> ASTNode:
        return (
            ASTNode("schema")
            .add_attribs(element)
            .named(self.config.schema_name)
            .prop("separator", NEWLINE)
        )

    def simple_alias(self, bases: FrozenSet[str], value: str, needs_facet: bool = True) -> AstNodeFactory:
        def factory(element: ET.Element) -> Optional[ASTNode]:
            restriction = find_child(element, "restriction")
            if not element.get("name") or _base(restriction) not in bases:
                return None
            if needs_facet and not _has_facet(restriction):
                return None
            return ASTNode("AliasType").add_name(element).prop("value", value).prop("type", value)

        return factory

    def element_alias(self, bases: FrozenSet[str], value: str) -> AstNodeFactory:
        def factory(element: ET.Element) -> Optional[ASTNode]:
            if not _is_untyped_named(element):
                return None
            restriction = _inline_restriction(element)
            if _base(restriction) not in bases or not _has_facet(restriction):
                return None
            return (
                ASTNode("AliasType")
                .add_name(element)
                .prop("value", value)
                .prop("type", value)
                .prop("element", "true")
            )

        return factory

    def empty_class(self, element: ET.Element) -> Optional[ASTNode]:
        if not element.get("name") or _content(element):
            return None
        return ast_class(element).prop("separator", NEWLINE)

    def enum_element(self, element: ET.Element) -> Optional[ASTNode]:
        if not _is_untyped_named(element):
            return None
        restriction = _inline_restriction(element)
        if not _has_enumeration(restriction):
            return None
        return (
            ASTNode("Enumeration")
            .add_name(element)
            .prop("value", self.scalar_type(restriction.get("base")))
            .prop("element", "true")
        )

    def enum_type(self, element: ET.Element) -> Optional[ASTNode]:
        restriction = find_child(element, "restriction")
        if not element.get("name") or not _has_enumeration(restriction):
            return None
        return ASTNode("Enumeration").add_name(element).prop("value", self.scalar_type(restriction.get("base")))

    def element_class(self, allowed: FrozenSet[str], require_all: bool) -> AstNodeFactory:
        """Untyped element whose inline complexType content fits ``allowed``."""

        def factory(element: ET.Element) -> Optional[ASTNode]:
            if not _is_untyped_named(element):
                return None
            names = _content_names(find_child(element, "complexType"))
            if not names:
                return None
            fits = names <= allowed if require_all else bool(names & allowed)
            if not fits:
                return None
            return ast_class(element).prop("element", "true").prop("separator", NEWLINE)

        return factory

    def complex_class(self, allowed: FrozenSet[str], require_all: bool) -> AstNodeFactory:
        """Named complexType whose content fits ``allowed``."""

        def factory(element: ET.Element) -> Optional[ASTNode]:
            names = _content_names(element)
            if not element.get("name") or not names:
                return None
            fits = names <= allowed if require_all else bool(names & allowed)
            return ast_class(element).prop("separator", NEWLINE) if fits else None

        return factory

    def empty_element_class(self, element: ET.Element) -> Optional[ASTNode]:
        if not _is_untyped_named(element):
            return None
        content = _content(element)
        if content and (len(content) > 1 or local_name(content[0]) != "complexType" or _content(content[0])):
            return None
        return ast_class(element).prop("element", "true").prop("separator", NEWLINE)

    def top_field(self, element: ET.Element) -> Optional[ASTNode]:
        if _content(element) or not (element.get("type") or element.get("abstract")):
            return None
        return ASTNode("AliasType").add_attribs(element).prop("element", "true")

    def named_group(self, kind: str) -> AstNodeFactory:
        def factory(element: ET.Element) -> Optional[ASTNode]:
            name = element.get("name")
            if not name or element.get("ref"):
                return None
            return (
                ASTNode("Group")
                .named(GROUP_PREFIX + cap_first(name))
                .prop("group", kind)
                .prop("separator", NEWLINE)
            )

        return factory

    def group_reference(self, kind: str) -> AstNodeFactory:
        def factory(element: ET.Element) -> Optional[ASTNode]:
            if not element.get("ref"):
                return None
            return ASTNode("Fields").add_attribs(element).prop("group", kind)

        return factory

    def element_reference(self, element: ET.Element) -> Optional[ASTNode]:
        ref = element.get("ref")
        if not ref:
            return None
        optional = "?" if element.get("minOccurs") == "0" else ""
        array = "[]" if element.get("maxOccurs") == UNBOUNDED else ""
        return (
            ASTNode("Reference")
            .add_attribs(element)
            .prop("fieldName", local_type_name(ref) + optional)
            .prop("fieldType", self.field_type(ref) + array)
        )

    def array_field(self, element: ET.Element) -> Optional[ASTNode]:
        """Wrapper element holding a single unbounded item, emitted as ``T[]``."""
        if not _is_untyped_named(element):
            return None
        body = _content(find_child(element, "complexType"))
        if len(body) != 1 or local_name(body[0]) != "sequence":
            return None
        items = _content(body[0])
        if len(items) != 1 or local_name(items[0]) != "element":
            return None
        item = items[0]
        if item.get("maxOccurs") != UNBOUNDED:
            return None
        reference = item.get("type") or item.get("ref")
        if not reference:
            return None
        return (
            ast_field()
            .add_field(element, f"{self.field_type(reference)}[]")
            .prop("wrapper", "true")
            .prop("item", item.get("name") or local_type_name(item.get("ref")))
        )

    def nested_field(self, element: ET.Element) -> Optional[ASTNode]:
        if not _is_untyped_named(element) or not _content(find_child(element, "complexType")):
            return None
        return ast_field().add_field(element, cap_first(element.get("name", ""))).prop("nested", "true")

    def simple_field(self, element: ET.Element) -> Optional[ASTNode]:
        if not _is_untyped_named(element) or find_child(element, "simpleType") is None:
            return None
        field_type = self.inline_type(element)
        if "|" in field_type and element.get("maxOccurs") == UNBOUNDED:
            field_type = f"({field_type})"
        return ast_field().add_field(element, field_type)

    def typed_field(self, element: ET.Element) -> Optional[ASTNode]:
        if element.get("ref"):
            return None
        if element.get("type"):
            return ast_field().add_field(element, default_namespace=self.config.default_namespace)
        if element.get("name") and not _content(element):
            return ast_field().add_field(element, ANY_TYPE)
        return None

    def attribute_field(self, element: ET.Element) -> Optional[ASTNode]:
        if not element.get("name"):
            return None
        field_type = None if element.get("type") else self.inline_type(element)
        return (
            ast_field()
            .add_field(element, field_type, self.config.default_namespace)
            .prefix_field_name("$")
        )

    def extension(self, element: ET.Element) -> Optional[ASTNode]:
        base = element.get("base")
        if not base:
            return None
        return ASTNode("Extension").prop("extends", self.field_type(base)).prop("base", base)

    # ---------------- Assembly ---------------- #

    def _assemble(self) -> Matcher:
        def container(tag: str) -> Callable[[ET.Element], ASTNode]:
            return lambda element: ASTNode(cap_first(tag))

        restriction = Matcher(
            "restriction",
            Terminal("restriction", lambda e: ASTNode("Restrictions").prop("base", e.get("base"))),
        )
        for facet in RESTRICTION_FACETS:
            restriction.add_child(Terminal(facet, ast_restriction), facet_merger)
        restriction.add_child(Terminal("enumeration", ast_enum_value), merge_nodes)

        simple_body = match(Terminal("simpleType", container("simpleType"))).add_child(restriction, merge_nodes)

        # Fields
        SEQUENCE = match(Terminal("sequence", container("sequence"))).add_child(self.field_proxy)
        ALL = match(Terminal("all", container("all"))).add_child(self.field_proxy)
        CHOICE = (
            match(Terminal("choice", lambda e: ASTNode("Choice").add_attribs(e)))
            .add_child(self.field_proxy)
            .labeled("CHOICE")
        )
        REFGROUP = match(Terminal("group", self.group_reference("group"))).labeled("REF_GROUP")
        ATTREFGRP = match(Terminal("attributeGroup", self.group_reference("attributeGroup"))).labeled("ATTR_GROUP_REF")
        REF_ELM = match(Terminal("element", self.element_reference)).labeled("REF_ELEMENT")
        ATTRIBUTE = match(Terminal("attribute", self.attribute_field)).labeled("ATTRIBUTE")

        EXTENSION = (
            match(Terminal("extension", self.extension))
            .add_child(SEQUENCE, extension_merger)
            .add_child(ALL, extension_merger)
            .add_children([CHOICE, REFGROUP, ATTREFGRP, ATTRIBUTE])
        )
        CCONTENT = match(Terminal("complexContent", container("complexContent"))).add_child(EXTENSION, merge_nodes)

        def with_class_body(matcher: Matcher) -> Matcher:
            return (
                matcher.add_child(SEQUENCE, merge_nodes)
                .add_child(ALL, merge_nodes)
                .add_child(CCONTENT, merge_nodes)
                .add_children([CHOICE, REFGROUP, ATTREFGRP, ATTRIBUTE])
            )

        complex_body = with_class_body(match(Terminal("complexType", container("complexType"))))

        ARRFIELD = match(Terminal("element", self.array_field)).labeled("ARRFIELD")
        CMPFIELD = match(Terminal("element", self.nested_field)).add_child(complex_body, merge_nodes).labeled("CMPFIELD")
        SIMPLE_FIELD = match(Terminal("element", self.simple_field)).labeled("SIMPLE_FIELD")
        FLD_ELM = match(Terminal("element", self.typed_field)).labeled("FIELD_ELM")

        FIELD = OneOf(
            "FIELD",
            [ARRFIELD, CMPFIELD, SIMPLE_FIELD, FLD_ELM, REFGROUP, REF_ELM, CHOICE, SEQUENCE],
        ).labeled("FIELD")
        self.field_proxy.bind(FIELD)

        # Top-level declarations
        rules = [
            match(Terminal("simpleType", self.simple_alias(DATE_BASES, "Date", needs_facet=False)))
            .add_child(restriction, merge_nodes)
            .labeled("DATE_ALIAS"),
            match(Terminal("simpleType", self.simple_alias(NUMERIC_BASES, NUMBER_TYPE)))
            .add_child(restriction, self.alias_merger)
            .labeled("NUMBER_ALIAS"),
            match(Terminal("simpleType", self.simple_alias(STRING_BASES, "string")))
            .add_child(restriction, self.alias_merger)
            .labeled("STRING_ALIAS"),
            match(Terminal("element", self.element_alias(STRING_BASES, "string")))
            .add_child(simple_body, self.alias_merger)
            .labeled("STRING_ELEMENT_ALIAS"),
            match(Terminal("element", self.element_alias(NUMERIC_BASES, NUMBER_TYPE)))
            .add_child(simple_body, self.alias_merger)
            .labeled("NUMBER_ELEMENT_ALIAS"),
            match(Terminal("complexType", self.empty_class)).labeled("EMPTY_CLASS"),
            match(Terminal("element", self.enum_element)).add_child(simple_body, merge_nodes).labeled("ENUM_ELEMENT"),
            match(Terminal("simpleType", self.enum_type)).add_child(restriction, merge_nodes).labeled("ENUM_TYPE"),
            match(Terminal("element", self.element_class(STRUCTURED_CONTENT, require_all=False)))
            .add_child(complex_body, merge_nodes)
            .labeled("ELEMENT_CLASS"),
            with_class_body(match(Terminal("complexType", self.complex_class(CLASS_CONTENT, require_all=False)))).labeled(
                "COMPLEX_CLASS"
            ),
            with_class_body(
                match(Terminal("complexType", self.complex_class(frozenset({"complexContent"}), require_all=False)))
            ).labeled("EXTENDED_CLASS"),
            match(Terminal("group", self.named_group("group")))
            .add_child(SEQUENCE, merge_nodes)
            .add_child(ALL, merge_nodes)
            .add_child(CHOICE)
            .labeled("NAMED_GROUP"),
            match(Terminal("attributeGroup", self.named_group("attributeGroup")))
            .add_children([ATTRIBUTE, ATTREFGRP])
            .labeled("ATTRIBUTE_GROUP"),
            match(Terminal("element", self.element_class(ATTRIBUTE_CONTENT, require_all=True)))
            .add_child(complex_body, merge_nodes)
            .labeled("ATTRIBUTE_CLASS"),
            with_class_body(match(Terminal("complexType", self.complex_class(REFERENCE_CONTENT, require_all=True)))).labeled(
                "REFERENCE_CLASS"
            ),
            match(Terminal("element", self.empty_element_class)).labeled("EMPTY_ELEMENT_CLASS"),
            match(Terminal("element", self.top_field)).labeled("TOP_FIELD"),
        ]
        types = OneOf("TYPES", rules)
        return match(Terminal("schema", self.schema_node)).add_child(types)


def class_nodes(ast: ASTNode) -> List[ASTNode]:
    """Top-level class and group declarations of a parsed schema."""
    return [node for node in ast.children if node.node_type in ("Class", "Group")]


def parse_xsd_string(
    text: str,
    config: Optional[GrammarConfig] = None,
    log: Optional[logging.Logger] = None,
) -> ASTNode:
    """Parse XSD source text into an AST.

    Raises:
        InvalidSchemaError: If ``text`` is empty or not well-formed XML.
    """
    if not text or not text.strip():
        raise InvalidSchemaError("Invalid XSD: empty document")
    try:
        root = parse_xml(text)
    except ET.ParseError as exc:
        raise InvalidSchemaError(f"Invalid XSD: {exc}") from exc
    return XsdGrammar(config, log).parse(root)


def parse_xsd(
    xsd_path: Union[str, Path],
    config: Optional[GrammarConfig] = None,
    log: Optional[logging.Logger] = None,
) -> ASTNode:
    """Read and parse an XSD file.

    Args:
        xsd_path: Path of the ``.xsd`` file.
        config: Grammar configuration.
        log: Logger receiving the rule trace.

    Returns:
        The ``schema`` :class:`~xsd_typegen.models.ASTNode`.

    Raises:
        OSError: If the file cannot be read.
        InvalidSchemaError: If the file is not a parsable schema document.
    """
    path = Path(xsd_path)
    logger.debug("parsing %s", path)
    return parse_xsd_string(path.read_text(encoding="utf-8"), config, log)
