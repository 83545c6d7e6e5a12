"""Generate relational dataset schemas (XML Schema with msdata relationships) from type catalogs."""

from dataset_schema_generator.builder import SchemaBuilder, serialize
from dataset_schema_generator.catalog import MemberDescriptor, MemberKind, TypeCatalog, TypeDescriptor

__all__ = [
    "MemberDescriptor",
    "MemberKind",
    "SchemaBuilder",
    "TypeCatalog",
    "TypeDescriptor",
    "serialize",
]
