"""Map XSD primitive type names onto target (TypeScript) scalar names."""

from __future__ import annotations

from typing import Optional

from .xml_utils import cap_first

ANY_TYPE = "any"
NUMBER_TYPE = "number"

PRIMITIVE_TYPES = {
    "string": "string",
    "float": NUMBER_TYPE,
    "double": NUMBER_TYPE,
    "int": NUMBER_TYPE,
    "integer": NUMBER_TYPE,
    "long": NUMBER_TYPE,
    "positiveInteger": NUMBER_TYPE,
    "nonNegativeInteger": NUMBER_TYPE,
    "decimal": NUMBER_TYPE,
    "dateTime": "Date",
    "date": "Date",
    "base64Binary": "string",
    "boolean": "boolean",
}


def get_field_type(type_name: Optional[str], default_namespace: Optional[str] = None) -> str:
    """Resolve an XSD type reference to the name emitted for it.

    Primitive types are looked up by their local name (case kept). Anything
    else is treated as a reference to a declared class or alias: the
    namespace prefix is lower-cased and the local part capitalized, joined
    with ``.``. When ``default_namespace`` is given, unqualified references
    are placed in that namespace.

    Example:
        >>> get_field_type("xs:int")
        'number'
        >>> get_field_type("dep:node")
        'dep.Node'
        >>> get_field_type("Order", "Tns")
        'tns.Order'
        >>> get_field_type("")
        'any'
    """
    if not type_name:
        return ANY_TYPE

    segments = type_name.split(":")
    key = segments[-1]
    if key in PRIMITIVE_TYPES:
        return PRIMITIVE_TYPES[key]

    if default_namespace and len(segments) == 1:
        resolved = f"{default_namespace.lower()}.{cap_first(type_name)}"
    else:
        resolved = ".".join(
            [segment.lower() for segment in segments[:-1]] + [cap_first(key)]
        )
    if resolved == "Number":
        resolved = NUMBER_TYPE
    return resolved or ANY_TYPE
