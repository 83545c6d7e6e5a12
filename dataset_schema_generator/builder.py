"""Generate a relational dataset schema from a type catalog."""

from __future__ import annotations

import logging

from lxml import etree

from dataset_schema_generator import helper, schema_types
from dataset_schema_generator.catalog import MemberDescriptor, TypeCatalog, TypeDescriptor
from dataset_schema_generator.document import DocumentAssembler
from dataset_schema_generator.relationships import RelationshipCollector

logger = logging.getLogger(__name__)


class SchemaBuilder:
    """A class that builds the schema document for one catalog.

    Each builder owns its document and relationship collector, so a builder is used for
    exactly one serialization.
    """

    def __init__(self, catalog: TypeCatalog):
        """Initialize the builder with a catalog.

        Args:
            catalog (TypeCatalog): The catalog to build the schema for. It is not modified.
        """
        self._catalog = catalog
        self._assembler = DocumentAssembler(catalog.name)
        self._relationships = RelationshipCollector()

        self.types = helper.dedupe_types(catalog.types)

        # Types with invalid names stay in here: they are still relationship targets.
        self.type_names: set[str] = {type_descriptor.name for type_descriptor in self.types}

        self.emitted_types: list[str] = []

    @property
    def relationships(self) -> RelationshipCollector:
        return self._relationships

    def gen_member(self, type_name: str, member: MemberDescriptor, sequence: etree._Element) -> None:
        """Emit a member element and record a relationship, if the member references a type.

        Args:
            type_name (str): The name of the declaring type.
            member (MemberDescriptor): The member to emit.
            sequence (etree._Element): The sequence node of the declaring type.
        """
        if member.return_type_name in self.type_names:
            self._relationships.record(type_name, member.return_type_name)

        self._assembler.add_member(sequence, member.name, helper.qualified_xsd_type(member.return_type_name))

    def gen_type(self, type_descriptor: TypeDescriptor) -> bool:
        """Emit the element declaration of a type with all of its eligible members.

        Properties come first, then methods. A member is skipped if its name is invalid,
        already taken within the type, or if it is a property without getter.

        Args:
            type_descriptor (TypeDescriptor): The type to emit.

        Returns:
            bool: False, if the type name is invalid and nothing was emitted.
        """
        if not helper.is_valid_name(type_descriptor.name):
            return False

        sequence = self._assembler.add_type(type_descriptor.name)
        member_names: set[str] = set()

        for member in type_descriptor.properties:
            if not helper.is_valid_name(member.name) or member.name in member_names or not member.is_readable:
                continue

            self.gen_member(type_descriptor.name, member, sequence)
            member_names.add(member.name)

        for member in type_descriptor.methods:
            if not helper.is_valid_name(member.name) or member.name in member_names:
                continue

            self.gen_member(type_descriptor.name, member, sequence)
            member_names.add(member.name)

        self._assembler.add_member(
            sequence,
            helper.key_name(type_descriptor.name),
            helper.qualified_xsd_type(schema_types.KEY_TYPE),
        )
        self.emitted_types.append(type_descriptor.name)

        return True

    def generate_all_types(self) -> None:
        """Emit all types in catalog order, then attach the collected relationships."""
        for type_descriptor in self.types:
            self.gen_type(type_descriptor)

        self._assembler.attach_relationships(self._relationships)

    def dumps(self) -> str:
        """Render the document, without XML declaration."""
        return self._assembler.tostring()


def serialize(catalog: TypeCatalog) -> str:
    """Entry-point for converting a catalog into a dataset schema document.

    Args:
        catalog (TypeCatalog): The catalog to convert.

    Returns:
        str: The rendered document.
    """
    builder = SchemaBuilder(catalog)
    builder.generate_all_types()

    logger.debug(
        "Serialized catalog '%s': %d of %d type(s), %d relationship(s).",
        catalog.name,
        len(builder.emitted_types),
        len(builder.types),
        len(builder.relationships),
    )

    return builder.dumps()
