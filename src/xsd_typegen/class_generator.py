"""Render a parsed schema AST as TypeScript source.

The generator consumes the ``schema`` node produced by
:class:`~xsd_typegen.xsd_grammar.XsdGrammar` and emits, in order:

1. namespace imports for configured dependencies
2. type aliases (simple type aliases, element aliases, top-level elements)
3. enumerations (``export enum`` for strings, literal unions for numbers)
4. classes, bases before derived classes

Fields are flattened per class: sequences are inlined, choice members become
optional, group references are replaced by the fields of the referenced
group and nested anonymous complex elements are emitted as classes of their
own ahead of the class using them.

Example:
        from xsd_typegen.class_generator import ClassGenerator, GeneratorOptions

        generator = ClassGenerator(GeneratorOptions(dependencies={"dep": "./dep"}))
        source = generator.generate_class_file(xsd_text)
        print(sorted(generator.types))
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from .field_types import ANY_TYPE, get_field_type
from .hierarchy import GROUP_PREFIX, sort_classes_by_hierarchy
from .models import ASTNode, EnumValue
from .regexp2alias import MAX_LENGTH, literal_union, quote_literal
from .xml_utils import cap_first, local_type_name
from .xsd_grammar import GrammarConfig, class_nodes, parse_xsd_string

logger = logging.getLogger(__name__)

CLASS_PREFIX = "xsd."
INDENT = "  "

_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")


@dataclass
class GeneratorOptions:
    """Options for :class:`ClassGenerator`.

    Args:
        dependencies: Namespace alias to module path, emitted as
            ``import * as alias from "path";``.
        class_prefix: Prefix of the ``@class`` discriminator value.
        schema_name: Name of the parsed schema node.
        default_namespace: Namespace for unqualified type references.
        regexp_max_length: Longest literal produced from ``pattern`` facets.
    """

    dependencies: Dict[str, str] = field(default_factory=dict)
    class_prefix: str = CLASS_PREFIX
    schema_name: str = "schema"
    default_namespace: Optional[str] = None
    regexp_max_length: int = MAX_LENGTH

    def grammar_config(self) -> GrammarConfig:
        return GrammarConfig(
            schema_name=self.schema_name,
            default_namespace=self.default_namespace,
            regexp_max_length=self.regexp_max_length,
        )


@dataclass
class Property:
    name: str
    type: str
    optional: bool = False


@dataclass
class ClassModel:
    name: str
    extends: Optional[str] = None
    properties: List[Property] = field(default_factory=list)


def member(name: str) -> str:
    return name if _IDENTIFIER.match(name) else quote_literal(name)


def access(target: str, name: str) -> str:
    return f"{target}.{name}" if _IDENTIFIER.match(name) else f"{target}[{quote_literal(name)}]"


def split_array_suffix(type_expr: str) -> Tuple[str, str]:
    """Split ``Item[][]`` into ``("Item", "[][]")``."""
    base, suffix = type_expr, ""
    while base.endswith("[]"):
        base, suffix = base[:-2], suffix + "[]"
    return base, suffix


def enum_key(value: str, taken: Set[str]) -> str:
    key = re.sub(r"[^\w$]", "_", value) or "_"
    if key[0].isdigit():
        key = "_" + key
    candidate, counter = key, 2
    while candidate in taken:
        candidate = f"{key}_{counter}"
        counter += 1
    taken.add(candidate)
    return candidate


class ClassGenerator:
    """Generate TypeScript declarations from an XSD AST.

    Attributes:
        types: Names of the classes emitted by the last generation call.
    """

    def __init__(self, options: Optional[GeneratorOptions] = None) -> None:
        self.options = options or GeneratorOptions()
        self.types: Set[str] = set()
        self._declared: Set[str] = set()
        self._taken: Set[str] = set()
        self._groups: Dict[Tuple[str, str], ASTNode] = {}
        logger.debug("dependencies: %s", self.options.dependencies)

    def generate_class_file(self, xsd: str) -> str:
        """Parse ``xsd`` text and return the generated TypeScript source."""
        ast = parse_xsd_string(xsd, self.options.grammar_config())
        return self.generate(ast)

    def generate(self, ast: ASTNode) -> str:
        """Return TypeScript source for a parsed ``schema`` node.

        Raises:
            InheritanceCycleError: If the schema's classes extend each other
                in a cycle.
        """
        declarations = ast.children
        self._groups = {
            (str(node.attr.get("group", "group")), node.name): node
            for node in declarations
            if node.node_type == "Group"
        }
        self._declared = {
            self._declared_name(node)
            for node in declarations
            if node.node_type in ("Class", "AliasType", "Enumeration")
        }
        self._taken = set(self._declared)

        models: List[ClassModel] = []
        for node in sort_classes_by_hierarchy(class_nodes(ast)):
            models.extend(self._class_models(node))
        self.types = {model.name for model in models}
        self._declared |= self.types

        blocks: List[str] = []
        imports = [
            f'import * as {alias} from "{path}";'
            for alias, path in self.options.dependencies.items()
        ]
        if imports:
            blocks.append("\n".join(imports))
        blocks.extend(filter(None, (self._alias(node) for node in declarations if node.node_type == "AliasType")))
        blocks.extend(self._enum(node) for node in declarations if node.node_type == "Enumeration")
        blocks.extend(self._class(model) for model in models)
        logger.debug("generated %d declarations", len(blocks))
        return "\n\n".join(blocks) + "\n" if blocks else ""

    # ---------------- Model building ---------------- #

    @staticmethod
    def _declared_name(node: ASTNode) -> str:
        return cap_first(node.name)

    def _resolve(self, type_expr: str) -> str:
        """Drop the namespace of references to types declared in this schema."""
        base, suffix = split_array_suffix(type_expr)
        if "." in base and not base.startswith(('"', "(")):
            namespace, _, name = base.rpartition(".")
            if namespace not in self.options.dependencies and name in self._declared:
                base = name
        return base + suffix

    def _class_models(self, node: ASTNode) -> List[ClassModel]:
        nested: List[ClassModel] = []
        properties = self._properties(node.children, node.name, nested, optional=False, seen=set())
        extends = node.attr.get("extends")
        model = ClassModel(
            name=node.name,
            extends=self._resolve(extends) if isinstance(extends, str) and extends else None,
            properties=properties,
        )
        return nested + [model]

    def _properties(
        self,
        children: List[ASTNode],
        owner: str,
        nested: List[ClassModel],
        optional: bool,
        seen: Set[str],
    ) -> List[Property]:
        result: List[Property] = []
        for child in children:
            kind = child.node_type
            if kind in ("Field", "Reference"):
                result.append(self._property(child, owner, nested, optional))
            elif kind in ("Sequence", "All"):
                result.extend(self._properties(child.children, owner, nested, optional, seen))
            elif kind == "Choice":
                result.extend(self._properties(child.children, owner, nested, True, seen))
            elif kind == "Fields":
                result.extend(self._group_fields(child, owner, nested, optional, seen))
            else:
                logger.debug("skipping %s node in class body", kind)

        unique: Dict[str, Property] = {}
        for prop in result:
            unique.setdefault(prop.name, prop)
        return list(unique.values())

    def _group_fields(self, node: ASTNode, owner: str, nested: List[ClassModel], optional: bool, seen: Set[str]) -> List[Property]:
        kind = str(node.attr.get("group", "group"))
        name = GROUP_PREFIX + cap_first(local_type_name(str(node.attr.get("ref", ""))) or "")
        group = self._groups.get((kind, name))
        if group is None or name in seen:
            logger.debug("unresolved %s reference %s", kind, node.attr.get("ref"))
            return []
        optional = optional or node.flag("optional")
        return self._properties(group.children, owner, nested, optional, seen | {name})

    def _property(self, node: ASTNode, owner: str, nested: List[ClassModel], optional: bool) -> Property:
        raw_name = str(node.attr.get("fieldName") or node.name)
        field_type = str(node.attr.get("fieldType") or ANY_TYPE)
        if node.flag("nested"):
            base, suffix = split_array_suffix(field_type)
            nested_name = self._nested_class_name(owner, base)
            field_type = nested_name + suffix
            nested.extend(self._class_models(ASTNode("Class", name=nested_name, attr=dict(node.attr), children=node.children)))
        is_optional = optional or raw_name.endswith("?")
        return Property(raw_name.rstrip("?"), self._resolve(field_type), is_optional)

    def _nested_class_name(self, owner: str, name: str) -> str:
        """Pick a class name for an anonymous complex element.

        The element's own name is kept while it is free. Otherwise the owning
        class name is prepended, then a counter appended.
        """
        candidate = name
        if candidate in self._taken:
            candidate = cap_first(owner) + name
            counter = 2
            while candidate in self._taken:
                candidate = f"{cap_first(owner)}{name}{counter}"
                counter += 1
        self._taken.add(candidate)
        return candidate

    # ---------------- Rendering ---------------- #

    def _alias(self, node: ASTNode) -> Optional[str]:
        name = self._declared_name(node)
        if "value" in node.attr:
            target = str(node.attr.get("type") or node.attr["value"])
        else:
            raw = node.attr.get("type")
            if not isinstance(raw, str) or not raw:
                return None
            target = self._resolve(get_field_type(raw, self.options.default_namespace))
        if target == name:
            return None
        return f"export type {name} = {target};"

    def _enum(self, node: ASTNode) -> str:
        name = self._declared_name(node)
        values = [item.value for item in node.attr.get("values", []) if isinstance(item, EnumValue)]
        values = list(dict.fromkeys(values))
        scalar = str(node.attr.get("value", "string"))
        if scalar != "string":
            # numeric and date enumerations become literal unions
            union = literal_union(values, scalar) if values else None
            return f"export type {name} = {union or scalar};"
        taken: Set[str] = set()
        members = [f"{INDENT}{enum_key(value, taken)} = {quote_literal(value)}," for value in values]
        return "\n".join([f"export enum {name} {{", *members, "}"])

    def _class(self, model: ClassModel) -> str:
        header = f"export class {model.name}"
        if model.extends:
            header += f" extends {model.extends}"
        lines = [header + " {"]
        if not model.extends:
            lines.append(f'{INDENT}public "@class": string;')
        for prop in model.properties:
            marker = "?" if prop.optional else "!"
            lines.append(f"{INDENT}public {member(prop.name)}{marker}: {prop.type};")
        if len(lines) > 1:
            lines.append("")
        lines.extend(self._constructor(model))
        lines.append("}")
        return "\n".join(lines)

    def _constructor(self, model: ClassModel) -> List[str]:
        body = INDENT * 2
        lines = [f"{INDENT}constructor(props?: {model.name}) {{"]
        if model.extends:
            lines.append(f"{body}super(props);")
        lines.append(f'{body}this["@class"] = "{self.options.class_prefix}{model.name}";')
        if model.properties:
            lines.append(f"{body}if (props) {{")
            for prop in model.properties:
                lines.append(f"{body}{INDENT}{access('this', prop.name)} = {self._initializer(prop)};")
            lines.append(f"{body}}}")
        lines.append(f"{INDENT}}}")
        return lines

    def _initializer(self, prop: Property) -> str:
        source = access("props", prop.name)
        is_array = prop.type.endswith("[]")
        base = prop.type[:-2] if is_array else prop.type
        if base not in self.types:
            return source
        if is_array:
            chain = "?." if prop.optional else "."
            return f"{source}{chain}map((item) => new {base}(item))"
        if prop.optional:
            return f"{source} ? new {base}({source}) : undefined"
        return f"new {base}({source})"
