"""Tests for the parslet combinators and type mapping."""

import logging

import pytest

from xsd_typegen.models import ASTNode
from xsd_typegen.parsing import (
    GrammarAssemblyError,
    Matcher,
    OneOf,
    Proxy,
    Terminal,
    ast_enum_value,
    ast_restriction,
    get_field_type,
    match,
)
from xsd_typegen.xml_utils import find_children, local_name, parse_xml


def test_terminal_rejects_other_tags():
    element = parse_xml("<sequence/>")
    assert Terminal("choice").parse(element) is None
    assert Terminal("sequence").parse(element).node_type == "sequence"


def test_terminal_ignores_namespace_prefix():
    element = parse_xml('<xs:element xmlns:xs="http://www.w3.org/2001/XMLSchema" name="a"/>')
    node = Terminal("element").parse(element)
    assert node is not None
    assert node.name == "a"


def test_terminal_rejects_comments():
    root = parse_xml("<schema><!-- note --><element name='a'/></schema>")
    comment = list(root)[0]
    assert local_name(comment) == ""
    assert Terminal("element").parse(comment) is None


def test_terminal_factory_can_decline():
    terminal = Terminal("element", lambda e: None if e.get("type") is None else ASTNode("Field"))
    assert terminal.parse(parse_xml("<element name='a'/>")) is None
    assert terminal.parse(parse_xml("<element name='a' type='b'/>")) is not None


def test_terminal_label_is_stamped_on_factory_result():
    terminal = Terminal("attribute:attr", lambda e: ASTNode("Field"))
    assert terminal.name == "attribute"
    assert terminal.parse(parse_xml("<attribute/>")).attr["label"] == "attr"


def test_one_of_first_match_wins():
    first = Terminal("element", lambda e: ASTNode("First") if e.get("type") else None)
    second = Terminal("element", lambda e: ASTNode("Second"))
    rule = OneOf("pick", [first, second], label="PICK")

    typed = rule.parse(parse_xml("<element type='x'/>"))
    untyped = rule.parse(parse_xml("<element/>"))

    assert typed.node_type == "First"
    assert untyped.node_type == "Second"
    assert typed.attr["label"] == "PICK"
    assert rule.parse(parse_xml("<attribute/>")) is None


def test_matcher_appends_children_without_merger():
    element = parse_xml(
        "<sequence>text<element name='a'/><!-- c --><other/><element name='b'/></sequence>"
    )
    rule = match(Terminal("sequence")).add_child(Terminal("element"))
    node = rule.parse(element)
    assert [child.name for child in node.children] == ["a", "b"]


def test_matcher_without_children_returns_terminal_result():
    rule = Matcher("seq", Terminal("sequence"), label="SEQ")
    node = rule.parse(parse_xml("<sequence><element name='a'/></sequence>"))
    assert node.children == []
    assert node.attr["label"] == "SEQ"


def test_matcher_fails_when_terminal_fails():
    rule = match(Terminal("sequence")).add_child(Terminal("element"))
    assert rule.parse(parse_xml("<choice><element/></choice>")) is None


def test_matcher_per_child_merger_beats_default():
    calls = []

    def default(left, right):
        calls.append("default")
        return left.merge(right)

    def special(left, right):
        calls.append("special")
        return left.merge(right)

    rule = (
        Matcher("restriction", Terminal("restriction", lambda e: ASTNode("Restrictions")), default)
        .add_child(Terminal("pattern", ast_restriction), special)
        .add_child(Terminal("enumeration", ast_enum_value))
    )
    node = rule.parse(
        parse_xml("<restriction><pattern value='A'/><enumeration value='x'/></restriction>")
    )
    assert calls == ["special", "default"]
    assert node.node_type == "Restrictions"
    assert node.attr["pattern"] == "A"
    assert [v.value for v in node.attr["values"]] == ["x"]


def test_matcher_first_child_parslet_wins_per_element():
    rule = match(Terminal("sequence")).add_children(
        [Terminal("element", lambda e: ASTNode("First")), Terminal("element", lambda e: ASTNode("Second"))]
    )
    node = rule.parse(parse_xml("<sequence><element/><element/></sequence>"))
    assert [child.node_type for child in node.children] == ["First", "First"]


def test_proxy_supports_recursion():
    field = Proxy("FIELD")
    choice = match(Terminal("choice")).add_child(field)
    element = Terminal("element")
    field.bind(OneOf("FIELD", [element, choice]))

    node = field.parse(parse_xml("<choice><element name='a'/><choice><element name='b'/></choice></choice>"))
    assert node.node_type == "choice"
    assert node.children[0].name == "a"
    assert node.children[1].children[0].name == "b"


def test_proxy_must_be_bound_once():
    proxy = Proxy("FIELD")
    assert not proxy.bound
    with pytest.raises(GrammarAssemblyError):
        proxy.parse(parse_xml("<element/>"))
    proxy.bind(Terminal("element"))
    assert proxy.bound
    with pytest.raises(GrammarAssemblyError):
        proxy.bind(Terminal("element"))


def test_parse_trace_goes_to_given_logger(caplog):
    trace = logging.getLogger("test.trace")
    rule = OneOf("pick", [Terminal("element")])
    with caplog.at_level(logging.DEBUG, logger="test.trace"):
        rule.parse(parse_xml("<element/>"), log=trace)
    assert any(record.name == "test.trace" for record in caplog.records)


def test_find_children_skips_non_elements():
    root = parse_xml("<a><?pi data?><!-- c --><b/>tail<c/></a>")
    assert [local_name(child) for child in find_children(root)] == ["b", "c"]


@pytest.mark.parametrize(
    "type_name, namespace, expected",
    [
        ("xs:string", None, "string"),
        ("xs:int", None, "number"),
        ("decimal", None, "number"),
        ("xs:dateTime", None, "Date"),
        ("xs:boolean", None, "boolean"),
        ("xs:base64Binary", None, "string"),
        ("", None, "any"),
        (None, None, "any"),
        ("Order", None, "Order"),
        ("order", "Tns", "tns.Order"),
        ("Dep:node", None, "dep.Node"),
        ("Dep:node", "tns", "dep.Node"),
        ("Number", None, "number"),
        ("xs:String", None, "xs.String"),
    ],
)
def test_get_field_type(type_name, namespace, expected):
    assert get_field_type(type_name, namespace) == expected
