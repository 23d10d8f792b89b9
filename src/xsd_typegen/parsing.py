"""Parslet combinators used to describe the XSD grammar.

A *parslet* is anything exposing ``parse(element, indent="", log=None)`` and
returning an :class:`~xsd_typegen.models.ASTNode` on a match or ``None``
when the rule does not apply. ``None`` is ordinary control flow, never an
error. Four kinds exist and the set is closed:

* :class:`Terminal` matches one element by local tag name and builds a node
  through an optional factory (factories double as guards by returning
  ``None``).
* :class:`OneOf` is ordered alternation; the first alternative that produces
  a node wins.
* :class:`Matcher` wraps a terminal and folds the results of child parslets,
  tried against each direct child element, into the terminal's node.
* :class:`Proxy` is an assign-once forward reference so mutually recursive
  rules can be wired before their target exists.

Every ``parse`` call accepts the logger used for the rule trace; the grammar
passes its own logger down so tracing can be enabled per grammar instance
without any module-level switch.

Example:
    >>> from xsd_typegen.xml_utils import parse_xml
    >>> element = parse_xml('<sequence><element name="a" type="xs:int"/></sequence>')
    >>> field = Terminal("element")
    >>> seq = Matcher("sequence", Terminal("sequence")).add_child(field)
    >>> node = seq.parse(element)
    >>> [child.name for child in node.children]
    ['a']
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Callable, List, Optional, Sequence, Tuple, Union

from .field_types import get_field_type
from .models import ASTNode
from .xml_utils import attribs, find_children, is_element, local_name

logger = logging.getLogger(__name__)

NEWLINE = "\n"

AstNodeFactory = Callable[[ET.Element], Optional[ASTNode]]
AstNodeMerger = Callable[[ASTNode, ASTNode], ASTNode]

__all__ = [
    "AstNodeFactory",
    "AstNodeMerger",
    "GrammarAssemblyError",
    "Matcher",
    "NEWLINE",
    "OneOf",
    "Parslet",
    "Proxy",
    "Terminal",
    "ast_class",
    "ast_enum_value",
    "ast_field",
    "ast_node",
    "ast_restriction",
    "get_field_type",
    "match",
    "one_of",
]


class GrammarAssemblyError(RuntimeError):
    """Raised when the rule graph itself is wired incorrectly."""


class Terminal:
    """Match a single element by its unqualified tag name.

    ``name`` may carry a label after a colon (``"attribute:attr"``); the label
    is stamped on nodes produced by the factory.
    """

    def __init__(self, name: str, factory: Optional[AstNodeFactory] = None) -> None:
        base, _, label = name.partition(":")
        self.name = base
        self.label = label
        self.factory = factory

    def __repr__(self) -> str:
        return f"Terminal({self.name!r})"

    def parse(
        self,
        element: ET.Element,
        indent: str = "",
        log: Optional[logging.Logger] = None,
    ) -> Optional[ASTNode]:
        log = log or logger
        if not is_element(element) or local_name(element) != self.name:
            return None
        log.debug("%sterminal %s matched", indent, self.name)

        if self.factory is None:
            return ASTNode(self.name).add_attribs(element)

        result = self.factory(element)
        if result is not None and self.label:
            result.prop("label", self.label)
        return result


class OneOf:
    """Ordered alternation over parslets (earlier options take precedence)."""

    def __init__(self, name: str, options: Sequence["Parslet"], label: str = "") -> None:
        self.name = name
        self.options: List[Parslet] = list(options)
        self.label = label

    def __repr__(self) -> str:
        return f"OneOf({self.name!r}, {len(self.options)} options)"

    def labeled(self, label: str) -> "OneOf":
        self.label = label
        return self

    def parse(
        self,
        element: ET.Element,
        indent: str = "",
        log: Optional[logging.Logger] = None,
    ) -> Optional[ASTNode]:
        log = log or logger
        for option in self.options:
            result = option.parse(element, indent + "  ", log)
            if result is not None:
                log.debug("%s%s: %r won for <%s>", indent, self.name, option, local_name(element))
                if self.label:
                    result.prop("label", self.label)
                return result
        log.debug("%s%s: no option for <%s>", indent, self.name, local_name(element))
        return None


class Matcher:
    """A terminal plus child parslets folded into the terminal's node.

    For every direct child element the registered child parslets are tried in
    registration order and the first result is combined with the accumulated
    node: through the merger registered with that parslet, else through the
    matcher's default merger, else by appending it to ``children``.
    """

    def __init__(
        self,
        name: str,
        terminal: Terminal,
        default_merger: Optional[AstNodeMerger] = None,
        label: str = "",
    ) -> None:
        self.name = name
        self.terminal = terminal
        self.default_merger = default_merger
        self.label = label
        self._children: List[Tuple[Parslet, Optional[AstNodeMerger]]] = []

    def __repr__(self) -> str:
        return f"Matcher({self.label or self.name!r})"

    def labeled(self, label: str) -> "Matcher":
        self.label = label
        return self

    def add_child(self, parslet: "Parslet", merger: Optional[AstNodeMerger] = None) -> "Matcher":
        self._children.append((parslet, merger))
        return self

    def add_children(self, parslets: Sequence["Parslet"]) -> "Matcher":
        for parslet in parslets:
            self.add_child(parslet)
        return self

    def parse(
        self,
        element: ET.Element,
        indent: str = "",
        log: Optional[logging.Logger] = None,
    ) -> Optional[ASTNode]:
        log = log or logger
        result = self.terminal.parse(element, indent, log)
        if result is None:
            return None
        if self.label:
            result.prop("label", self.label)
        if not self._children:
            return result

        for child in find_children(element):
            for parslet, merger in self._children:
                child_result = parslet.parse(child, indent + "  ", log)
                if child_result is None:
                    continue
                log.debug(
                    "%s%r: <%s> -> %s", indent, self, local_name(child), child_result.node_type
                )
                combine = merger or self.default_merger
                if combine is not None:
                    result = combine(result, child_result)
                else:
                    result.children.append(child_result)
                break
        return result


class Proxy:
    """Assign-once forward reference to another parslet."""

    def __init__(self, name: str = "proxy") -> None:
        self.name = name
        self._target: Optional[Parslet] = None

    def __repr__(self) -> str:
        return f"Proxy({self.name!r})"

    @property
    def bound(self) -> bool:
        return self._target is not None

    def bind(self, target: "Parslet") -> "Proxy":
        if self._target is not None:
            raise GrammarAssemblyError(f"proxy {self.name!r} is already bound")
        self._target = target
        return self

    def parse(
        self,
        element: ET.Element,
        indent: str = "",
        log: Optional[logging.Logger] = None,
    ) -> Optional[ASTNode]:
        if self._target is None:
            raise GrammarAssemblyError(f"proxy {self.name!r} used before it was bound")
        return self._target.parse(element, indent, log)


Parslet = Union[Terminal, OneOf, Matcher, Proxy]


def match(terminal: Terminal, merger: Optional[AstNodeMerger] = None) -> Matcher:
    """Wrap ``terminal`` in a :class:`Matcher` named after it."""
    return Matcher(terminal.name, terminal, merger)


def one_of(options: Sequence[Parslet], name: str = "OneOf") -> OneOf:
    return OneOf(name, options)


# ---------------- Node factories ---------------- #


def ast_node(node_type: str) -> ASTNode:
    return ASTNode(node_type)


def ast_class(element: Optional[ET.Element] = None) -> ASTNode:
    """A ``Class`` node named after ``element`` (capitalized) when given."""
    result = ASTNode("Class")
    if element is not None:
        result.add_name(element)
    return result


def ast_field() -> ASTNode:
    return ASTNode("Field")


def ast_enum_value(element: ET.Element) -> Optional[ASTNode]:
    value = attribs(element).get("value")
    if value is None:
        return None
    return ASTNode("Enumeration").add_enum_value(value)


def ast_restriction(element: ET.Element) -> Optional[ASTNode]:
    """A ``Restrictions`` node holding one facet (``{facet: value}``)."""
    value = attribs(element).get("value")
    if value is None:
        return None
    return ASTNode("Restrictions").prop(local_name(element), value)
