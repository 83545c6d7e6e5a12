"""Pytest configuration and fixtures for dataset schema generator tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from lxml import etree

from dataset_schema_generator.catalog import MemberDescriptor, MemberKind, TypeCatalog, TypeDescriptor
from dataset_schema_generator.schema_types import NAMESPACES

TYPE_ELEMENTS_XPATH = "xs:schema/xs:element/xs:complexType/xs:choice/xs:element"
RELATIONSHIPS_XPATH = "xs:schema/xs:element/xs:complexType/xs:choice/xs:annotation/xs:appinfo/msdata:Relationship"


def prop(name: str, return_type_name: str, readable: bool = True) -> MemberDescriptor:
    """Shorthand for a property member."""
    return MemberDescriptor(name, return_type_name, MemberKind.PROPERTY, is_readable=readable)


def method(name: str, return_type_name: str, special: bool = False) -> MemberDescriptor:
    """Shorthand for a method member."""
    return MemberDescriptor(name, return_type_name, MemberKind.METHOD, is_special=special)


def parse_document(document: str) -> etree._Element:
    """Parse a generated document into its root element."""
    return etree.fromstring(document)


def type_names(root: etree._Element) -> list[str]:
    """The names of all emitted type elements, in document order."""
    return [element.get("name") for element in root.xpath(TYPE_ELEMENTS_XPATH, namespaces=NAMESPACES)]


def members_of(root: etree._Element, type_name: str) -> list[tuple[str, str]]:
    """The (name, type) pairs of the member elements of an emitted type."""
    elements = root.xpath(
        f"{TYPE_ELEMENTS_XPATH}[@name=$name]/xs:complexType/xs:sequence/xs:element",
        namespaces=NAMESPACES,
        name=type_name,
    )
    return [(element.get("name"), element.get("type")) for element in elements]


def relationships_of(root: etree._Element) -> list[dict[str, str]]:
    """The relationship annotations, as plain dicts with unprefixed attribute names."""
    relationships = []
    for element in root.xpath(RELATIONSHIPS_XPATH, namespaces=NAMESPACES):
        relationships.append({etree.QName(key).localname: value for key, value in element.attrib.items()})
    return relationships


@pytest.fixture
def order_catalog() -> TypeCatalog:
    """An order referencing a customer."""
    return TypeCatalog(
        "OrderSystem",
        [
            TypeDescriptor("Order", [prop("Id", "Int32"), prop("CustomerRef", "Customer")]),
            TypeDescriptor("Customer", [prop("Name", "String")]),
        ],
    )


@pytest.fixture
def models_source(tmp_path) -> Path:
    """A Python module with a few related classes."""
    path = tmp_path / "shop_models.py"
    path.write_text('''
from __future__ import annotations

from decimal import Decimal


class Customer:
    name: str
    active: bool

    def __init__(self, name: str):
        self.name = name


class Order:
    id: int
    total: Decimal
    customer: Customer

    @property
    def paid(self) -> bool:
        return False

    note = property(None, lambda self, value: None)

    def describe(self) -> str:
        return ""

    def _hidden(self) -> int:
        return 0

    @staticmethod
    def create() -> Order:
        return Order()

    class Line:
        quantity: int
        weight: float
''')
    return path


@pytest.fixture
def capnp_source(tmp_path) -> Path:
    """A Cap'n Proto schema with structs and an interface."""
    path = tmp_path / "shop.capnp"
    path.write_text("""
@0xdbb9ad1f14bf0b40;

struct Customer {
  name @0 :Text;
  age @1 :UInt16;
}

struct Order {
  id @0 :Int64;
  customer @1 :Customer;
  total @2 :Float64;
}

interface Shop {
  order @0 (id :Int64) -> (order :Order);
  ping @1 () -> ();
}
""")
    return path
