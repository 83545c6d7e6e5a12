"""Assembly of the dataset schema document.

The document has the shape

    <CatalogName>
      <xs:schema id="CatalogName">
        <xs:element name="CatalogName" msdata:IsDataSet="true" msdata:Locale="en-US">
          <xs:complexType>
            <xs:choice minOccurs="0" maxOccurs="unbounded">
              ... one xs:element per type, then the relationship annotations ...
            </xs:choice>
          </xs:complexType>
        </xs:element>
      </xs:schema>
    </CatalogName>

and is rendered without an XML declaration.

`xs:schema` declares only the `xs` and `msdata` prefixes. An empty default namespace
(`xmlns=""`) is not emitted: the root element is in no namespace, so it would not change
how the document is read, and lxml does not accept an empty default namespace in `nsmap`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from lxml import etree

from dataset_schema_generator import schema_types
from dataset_schema_generator.relationships import RelationshipDescriptor

logger = logging.getLogger(__name__)


class InvalidCatalogNameError(ValueError):
    """Raised when a catalog name cannot be used as the root element name."""

    pass


def xs(tag: str) -> str:
    """The qualified name of a tag in the XML Schema namespace."""
    return f"{{{schema_types.XS_NAMESPACE}}}{tag}"


def msdata(name: str) -> str:
    """The qualified name of a tag or attribute in the msdata namespace."""
    return f"{{{schema_types.MSDATA_NAMESPACE}}}{name}"


class DocumentAssembler:
    """Owns the document tree and renders it.

    The assembler only knows about structure. Which types and members are emitted is
    decided by the schema builder, which writes into the `choice` node.
    """

    def __init__(self, name: str):
        """Create the document skeleton for a catalog.

        Args:
            name (str): The logical catalog name, used for the root element, the schema id
                and the dataset element.

        Raises:
            InvalidCatalogNameError: If the name is not a legal XML element name.
        """
        self.name = name

        try:
            self._root = etree.Element(name)
        except ValueError as e:
            raise InvalidCatalogNameError(f"The catalog name '{name}' is not a valid element name.") from e

        self._schema = etree.SubElement(
            self._root,
            xs("schema"),
            attrib={"id": name},
            nsmap=schema_types.NAMESPACES,
        )

        dataset_element = etree.SubElement(
            self._schema,
            xs("element"),
            attrib={
                "name": name,
                msdata("IsDataSet"): "true",
                msdata("Locale"): schema_types.DATASET_LOCALE,
            },
        )
        complex_type = etree.SubElement(dataset_element, xs("complexType"))
        self._choice = etree.SubElement(
            complex_type,
            xs("choice"),
            attrib={"minOccurs": "0", "maxOccurs": "unbounded"},
        )

    @property
    def root(self) -> etree._Element:
        return self._root

    @property
    def choice(self) -> etree._Element:
        """The node that receives the type elements and relationship annotations."""
        return self._choice

    def add_type(self, type_name: str) -> etree._Element:
        """Append an element declaration for a type.

        Args:
            type_name (str): The type name.

        Returns:
            etree._Element: The `xs:sequence` node that receives the member elements.
        """
        type_element = etree.SubElement(self._choice, xs("element"), attrib={"name": type_name})
        complex_type = etree.SubElement(type_element, xs("complexType"))

        return etree.SubElement(complex_type, xs("sequence"))

    def add_member(self, sequence: etree._Element, member_name: str, xsd_type: str) -> etree._Element:
        """Append a member element to the sequence of a type.

        Args:
            sequence (etree._Element): The sequence node, as returned by `add_type`.
            member_name (str): The member name.
            xsd_type (str): The prefixed schema type, e.g. `xs:integer`.

        Returns:
            etree._Element: The new member element.
        """
        return etree.SubElement(sequence, xs("element"), attrib={"name": member_name, "type": xsd_type})

    def attach_relationships(self, relationships: Iterable[RelationshipDescriptor]) -> int:
        """Append one annotation per relationship after all type elements.

        Args:
            relationships (Iterable[RelationshipDescriptor]): The relationships, in order.

        Returns:
            int: The number of attached annotations.
        """
        count = 0

        for relationship in relationships:
            annotation = etree.SubElement(self._choice, xs("annotation"))
            appinfo = etree.SubElement(annotation, xs("appinfo"))
            etree.SubElement(
                appinfo,
                msdata("Relationship"),
                attrib={
                    "name": relationship.name,
                    msdata("parent"): relationship.parent_type,
                    msdata("child"): relationship.child_type,
                    msdata("parentkey"): relationship.parent_key,
                    msdata("childkey"): relationship.child_key,
                },
            )
            count += 1

        logger.debug("Attached %d relationship(s) to '%s'.", count, self.name)

        return count

    def tostring(self) -> str:
        """Render the root element subtree, without XML declaration."""
        return etree.tostring(self._root, encoding="unicode")
