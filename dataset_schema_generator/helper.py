"""Helper functionality that is used in other modules of this package."""

from __future__ import annotations

import re
from collections.abc import Iterable

from dataset_schema_generator import schema_types
from dataset_schema_generator.catalog import TypeDescriptor

INVALID_NAME_PATTERN = re.compile(r"[^0-9a-zA-Z]")


def is_valid_name(name: str) -> bool:
    """Check, whether a name may be emitted as an element name.

    Only ASCII letters and digits are allowed. Underscores, whitespace and
    non-ASCII letters anywhere in the name make it invalid, as does an empty name.

    Args:
        name (str): The type or member name.

    Returns:
        bool: True, if the name is safe to emit.
    """
    if not name:
        return False

    return INVALID_NAME_PATTERN.search(name) is None


def map_type(scalar_type_name: str) -> str:
    """Map a scalar type name to its XML Schema primitive type.

    E.g. `Int32` becomes `integer` and `UInt16` becomes `unsignedShort`.
    Unknown names, including references to other catalog types, map to `string`.

    Args:
        scalar_type_name (str): The scalar type name.

    Returns:
        str: The XML Schema type name, without namespace prefix.
    """
    return schema_types.SCALAR_TYPE_TO_XSD.get(scalar_type_name, schema_types.DEFAULT_XSD_TYPE)


def qualified_xsd_type(scalar_type_name: str) -> str:
    """Like `map_type`, but prefixed for use in a `type` attribute, e.g. `xs:integer`."""
    return f"{schema_types.XS_PREFIX}:{map_type(scalar_type_name)}"


def key_name(type_name: str) -> str:
    """Converts a type name to the name of its synthetic key member.

    E.g. `Order` becomes `TXID_Order`.

    Args:
        type_name (str): The type name.

    Returns:
        str: The key member name.
    """
    return f"{schema_types.KEY_PREFIX}{type_name}"


def dedupe_types(types: Iterable[TypeDescriptor]) -> list[TypeDescriptor]:
    """Drop types whose name was seen before. The first occurrence wins.

    Args:
        types (Iterable[TypeDescriptor]): The types in catalog order.

    Returns:
        list[TypeDescriptor]: The unique types, in catalog order.
    """
    seen: set[str] = set()
    unique_types: list[TypeDescriptor] = []

    for type_descriptor in types:
        if type_descriptor.name in seen:
            continue

        seen.add(type_descriptor.name)
        unique_types.append(type_descriptor)

    return unique_types
