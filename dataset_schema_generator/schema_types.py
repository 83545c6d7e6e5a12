"""Type and namespace definitions that are common in generated dataset schemas."""

from __future__ import annotations

XS_NAMESPACE = "http://www.w3.org/2001/XMLSchema"
MSDATA_NAMESPACE = "urn:schemas-microsoft-com:xml-msdata"

NAMESPACES = {
    "xs": XS_NAMESPACE,
    "msdata": MSDATA_NAMESPACE,
}

XS_PREFIX = "xs"

# Prefix of the synthetic integer key that every emitted type carries.
KEY_PREFIX = "TXID_"

KEY_TYPE = "Int32"

DATASET_LOCALE = "en-US"

DEFAULT_XSD_TYPE = "string"

SCALAR_TYPE_TO_XSD = {
    "Int32": "integer",
    "Int64": "integer",
    "Single": "float",
    "Boolean": "boolean",
    "Byte": "byte",
    "SByte": "byte",
    "Decimal": "decimal",
    "Double": "double",
    "UInt32": "unsignedInt",
    "UInt64": "unsignedLong",
    "Int16": "short",
    "UInt16": "unsignedShort",
}

CAPNP_TYPE_TO_SCALAR = {
    "void": "Void",
    "bool": "Boolean",
    "int8": "SByte",
    "int16": "Int16",
    "int32": "Int32",
    "int64": "Int64",
    "uint8": "Byte",
    "uint16": "UInt16",
    "uint32": "UInt32",
    "uint64": "UInt64",
    "float32": "Single",
    "float64": "Double",
    "text": "String",
    "data": "Data",
}


class CapnpFieldType:
    """Types of capnproto fields."""

    GROUP = "group"
    SLOT = "slot"


class CapnpElementType:
    """Types of capnproto elements."""

    ENUM = "enum"
    STRUCT = "struct"
    CONST = "const"
    LIST = "list"
    ANY_POINTER = "anyPointer"
    INTERFACE = "interface"
