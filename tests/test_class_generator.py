"""Tests for TypeScript emission."""

from pathlib import Path

import pytest

from xsd_typegen.class_generator import ClassGenerator, GeneratorOptions, enum_key, split_array_suffix
from xsd_typegen.hierarchy import InheritanceCycleError

FIXTURES = Path(__file__).resolve().parent / "fixtures" / "schema"


def generate(body, **options):
    text = f'<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">{body}</xs:schema>'
    generator = ClassGenerator(GeneratorOptions(**options))
    return generator, generator.generate_class_file(text)


@pytest.fixture(scope="module")
def orders():
    generator = ClassGenerator(GeneratorOptions(schema_name="orders"))
    source = generator.generate_class_file((FIXTURES / "orders.xsd").read_text())
    return generator, source


def test_simple_class():
    generator, source = generate(
        '<xs:complexType name="Test"><xs:sequence>'
        '<xs:element name="intField" type="xs:int" minOccurs="0"/>'
        '<xs:element name="label" type="xs:string"/>'
        "</xs:sequence></xs:complexType>"
    )
    assert generator.types == {"Test"}
    assert source == (
        "export class Test {\n"
        '  public "@class": string;\n'
        "  public intField?: number;\n"
        "  public label!: string;\n"
        "\n"
        "  constructor(props?: Test) {\n"
        '    this["@class"] = "xsd.Test";\n'
        "    if (props) {\n"
        "      this.intField = props.intField;\n"
        "      this.label = props.label;\n"
        "    }\n"
        "  }\n"
        "}\n"
    )


def test_pattern_alias():
    _, source = generate(
        '<xs:simpleType name="ABC"><xs:restriction base="xs:string">'
        '<xs:pattern value="A|B|C"/></xs:restriction></xs:simpleType>'
    )
    assert source == 'export type ABC = "A"|"B"|"C";\n'


def test_string_enumeration_becomes_enum():
    _, source = generate(
        '<xs:simpleType name="Status"><xs:restriction base="xs:string">'
        '<xs:enumeration value="open"/><xs:enumeration value="in-transit"/>'
        '<xs:enumeration value="1st"/>'
        "</xs:restriction></xs:simpleType>"
    )
    assert source == (
        "export enum Status {\n"
        '  open = "open",\n'
        '  in_transit = "in-transit",\n'
        '  _1st = "1st",\n'
        "}\n"
    )


def test_numeric_enumeration_becomes_union():
    _, source = generate(
        '<xs:simpleType name="Rating"><xs:restriction base="xs:int">'
        '<xs:enumeration value="1"/><xs:enumeration value="2"/>'
        "</xs:restriction></xs:simpleType>"
    )
    assert source == "export type Rating = 1|2;\n"


def test_enum_key_deduplicates():
    taken = set()
    assert enum_key("a-b", taken) == "a_b"
    assert enum_key("a.b", taken) == "a_b_2"
    assert enum_key("", taken) == "_"


def test_dependencies_are_imported():
    _, source = generate(
        '<xs:complexType name="Holder"><xs:sequence>'
        '<xs:element name="node" type="dep:node"/>'
        "</xs:sequence></xs:complexType>",
        dependencies={"dep": "./dep"},
    )
    assert source.startswith('import * as dep from "./dep";\n\n')
    assert "public node!: dep.Node;" in source


def test_class_prefix_option():
    _, source = generate('<xs:complexType name="Marker"/>', class_prefix="orders.")
    assert 'this["@class"] = "orders.Marker";' in source


def test_top_field_alias_skipped_when_same_as_type():
    _, source = generate(
        '<xs:complexType name="Order"><xs:sequence><xs:element name="id" type="xs:string"/>'
        '</xs:sequence></xs:complexType><xs:element name="order" type="Order"/>'
        '<xs:element name="note" type="xs:string"/>'
    )
    assert "export type Order" not in source
    assert "export type Note = string;" in source


def test_fixture_ordering(orders):
    _, source = orders
    positions = [
        source.index(marker)
        for marker in (
            "export type Currency",
            "export type Quantity",
            "export enum Status",
            "export class Entity",
            "export class Customer",
            "export class Order extends Entity",
            "export class OrderLine",
        )
    ]
    assert positions == sorted(positions)
    assert "group_" not in source


def test_fixture_types(orders):
    generator, _ = orders
    assert generator.types == {"Entity", "Customer", "Order", "OrderLine"}


def test_fixture_aliases(orders):
    _, source = orders
    assert 'export type Currency = "EUR"|"USD"|"GBP";' in source
    assert "export type Quantity = number;" in source


def test_fixture_derived_class(orders):
    _, source = orders
    block = source[source.index("export class Order extends Entity") :]
    block = block[: block.index("\n}\n")]

    assert '"@class": string' not in block
    assert "public status!: Status;" in block
    assert "public currency!: Currency;" in block
    assert "public lines!: OrderLine[];" in block
    assert "public customer!: Customer;" in block
    assert "public note?: string[];" in block
    assert "public $createdBy!: string;" in block
    assert "super(props);" in block
    assert 'this["@class"] = "xsd.Order";' in block
    assert "this.lines = props.lines.map((item) => new OrderLine(item));" in block
    assert "this.customer = new Customer(props.customer);" in block


def test_fixture_choice_members_are_optional(orders):
    _, source = orders
    assert "public price?: number;" in source
    assert "public free?: boolean;" in source
    assert "public quantity!: Quantity;" in source


def test_fixture_nested_class(orders):
    _, source = orders
    assert "public email?: string;" in source
    assert 'this["@class"] = "xsd.Customer";' in source


def test_optional_class_fields_are_guarded():
    _, source = generate(
        '<xs:complexType name="Item"/>'
        '<xs:complexType name="Box"><xs:sequence>'
        '<xs:element name="item" type="Item" minOccurs="0"/>'
        '<xs:element name="spares" type="Item" minOccurs="0" maxOccurs="unbounded"/>'
        "</xs:sequence></xs:complexType>"
    )
    assert "this.item = props.item ? new Item(props.item) : undefined;" in source
    assert "this.spares = props.spares?.map((item) => new Item(item));" in source


def test_non_identifier_members_are_quoted():
    _, source = generate(
        '<xs:complexType name="Odd"><xs:sequence>'
        '<xs:element name="first-name" type="xs:string"/>'
        "</xs:sequence></xs:complexType>"
    )
    assert 'public "first-name"!: string;' in source
    assert 'this["first-name"] = props["first-name"];' in source


def test_local_namespace_is_dropped_for_declared_types():
    _, source = generate(
        '<xs:complexType name="Item"/>'
        '<xs:complexType name="Box"><xs:sequence>'
        '<xs:element name="item" type="Item"/>'
        "</xs:sequence></xs:complexType>",
        default_namespace="tns",
    )
    assert "public item!: Item;" in source


def test_empty_schema_generates_nothing():
    generator, source = generate("")
    assert source == ""
    assert generator.types == set()


def test_cycle_raises():
    generator = ClassGenerator()
    with pytest.raises(InheritanceCycleError):
        generator.generate_class_file((FIXTURES / "cycle.xsd").read_text())


def inline_item(field, xsd_type):
    return (
        '<xs:element name="item"><xs:complexType><xs:sequence>'
        f'<xs:element name="{field}" type="{xsd_type}"/>'
        "</xs:sequence></xs:complexType></xs:element>"
    )


def test_nested_classes_with_same_field_name_get_distinct_names():
    generator, source = generate(
        f'<xs:complexType name="A"><xs:sequence>{inline_item("x", "xs:int")}</xs:sequence></xs:complexType>'
        f'<xs:complexType name="B"><xs:sequence>{inline_item("y", "xs:string")}</xs:sequence></xs:complexType>'
    )
    assert source.count("export class Item ") == 1
    assert source.count("export class BItem ") == 1
    assert generator.types == {"Item", "A", "BItem", "B"}

    item = source[source.index("export class Item ") :]
    assert "public x!: number;" in item[: item.index("\n}\n")]
    b_item = source[source.index("export class BItem ") :]
    assert "public y!: string;" in b_item[: b_item.index("\n}\n")]

    b_class = source[source.index("export class B ") :]
    assert "public item!: BItem;" in b_class
    assert "this.item = new BItem(props.item);" in b_class


def test_nested_class_does_not_shadow_top_level_class():
    generator, source = generate(
        '<xs:complexType name="Item"><xs:sequence><xs:element name="sku" type="xs:string"/></xs:sequence></xs:complexType>'
        f'<xs:complexType name="Box"><xs:sequence>{inline_item("x", "xs:int")}</xs:sequence></xs:complexType>'
    )
    assert source.count("export class Item ") == 1
    assert "export class BoxItem " in source
    assert "public item!: BoxItem;" in source
    assert generator.types == {"Item", "BoxItem", "Box"}


def test_nested_array_keeps_suffix_when_renamed():
    _, source = generate(
        '<xs:complexType name="Item"/>'
        '<xs:complexType name="Box"><xs:sequence>'
        '<xs:element name="item" maxOccurs="unbounded"><xs:complexType><xs:sequence>'
        '<xs:element name="x" type="xs:int"/>'
        "</xs:sequence></xs:complexType></xs:element>"
        "</xs:sequence></xs:complexType>"
    )
    assert "public item!: BoxItem[];" in source
    assert "this.item = props.item.map((item) => new BoxItem(item));" in source


def test_split_array_suffix():
    assert split_array_suffix("Item[][]") == ("Item", "[][]")
    assert split_array_suffix("Item") == ("Item", "")
    assert split_array_suffix("[]") == ("", "[]")
