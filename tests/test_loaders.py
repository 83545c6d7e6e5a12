"""Tests for building catalogs from Python modules and Cap'n Proto schemas."""

from __future__ import annotations

import sys
import types
import typing
from decimal import Decimal

import pytest
from conftest import members_of, parse_document, relationships_of, type_names

from dataset_schema_generator.builder import serialize
from dataset_schema_generator.catalog import MemberKind
from dataset_schema_generator.loaders import (
    CatalogLoadError,
    catalog_from_module,
    load_capnp_catalog,
    load_catalog,
    load_module_catalog,
    load_python_catalog,
    members_from_class,
    python_type_name,
)


def by_name(catalog):
    return {type_descriptor.name: type_descriptor for type_descriptor in catalog.types}


class TestPythonTypeNames:
    @pytest.mark.parametrize(
        "annotation, expected",
        [
            (int, "Int64"),
            (float, "Double"),
            (bool, "Boolean"),
            (str, "String"),
            (Decimal, "Decimal"),
            (None, "Void"),
            (type(None), "Void"),
            ("int", "Int64"),
            ("None", "Void"),
            ("Customer", "Customer"),
            (typing.List[int], "Object"),
            (typing.Optional[Decimal], "Decimal"),
            (int | None, "Int64"),
            (typing.Union[int, str], "Object"),
            (typing.Optional["Customer"], "Customer"),
            ("Customer | None", "Customer"),
            ("None | Customer", "Customer"),
            ("Optional[Customer]", "Customer"),
            ("typing.Optional['Customer']", "Customer"),
            ("Optional[int]", "Int64"),
            ("int | str", "Object"),
        ],
    )
    def test_conversion(self, annotation, expected):
        assert python_type_name(annotation) == expected

    def test_class_becomes_its_name(self):
        class Customer:
            pass

        assert python_type_name(Customer) == "Customer"

    def test_optional_class_becomes_its_name(self):
        class Customer:
            pass

        assert python_type_name(Customer | None) == "Customer"
        assert python_type_name(typing.Optional[Customer]) == "Customer"
        assert python_type_name(Customer | int) == "Object"


class TestMembersFromClass:
    def test_inherited_members_follow_own_members(self):
        class Base:
            base_id: int

            def describe(self) -> str:
                return ""

        class Derived(Base):
            name: str

            def describe(self) -> bool:
                return True

        members = members_from_class(Derived)
        names = [member.name for member in members]

        assert names.index("name") < names.index("base_id")
        describe = [member for member in members if member.name == "describe"]
        assert describe[0].return_type_name == "Boolean"

    def test_static_and_class_methods_are_excluded(self):
        class Thing:
            @staticmethod
            def create() -> int:
                return 0

            @classmethod
            def build(cls) -> int:
                return 0

            def run(self) -> None:
                return None

        members = {member.name: member for member in members_from_class(Thing)}

        assert "create" not in members
        assert "build" not in members
        assert members["run"].kind == MemberKind.METHOD
        assert members["run"].return_type_name == "Void"

    def test_unannotated_method(self):
        class Thing:
            def run(self):
                pass

        members = {member.name: member for member in members_from_class(Thing)}

        assert members["run"].return_type_name == "Object"


class TestPythonCatalog:
    def test_types_in_definition_order(self, models_source):
        catalog = load_python_catalog(models_source)

        assert catalog.name == "shop_models"
        assert [t.name for t in catalog.types] == ["Customer", "Order", "Line"]

    def test_properties(self, models_source):
        order = by_name(load_python_catalog(models_source))["Order"]

        properties = {member.name: member for member in order.properties}
        assert properties["id"].return_type_name == "Int64"
        assert properties["total"].return_type_name == "Decimal"
        assert properties["customer"].return_type_name == "Customer"
        assert properties["paid"].return_type_name == "Boolean"
        assert properties["paid"].is_readable
        assert not properties["note"].is_readable

    def test_methods(self, models_source):
        order = by_name(load_python_catalog(models_source))["Order"]

        method_names = [member.name for member in order.methods]
        assert "describe" in method_names
        assert "_hidden" in method_names
        assert "create" not in method_names
        assert "Line" not in method_names

    def test_module_is_not_left_registered(self, models_source):
        load_python_catalog(models_source)

        assert "_dataset_schema_shop_models" not in sys.modules

    def test_serialized(self, models_source):
        root = parse_document(serialize(load_python_catalog(models_source)))

        assert type_names(root) == ["Customer", "Order", "Line"]
        assert members_of(root, "Order") == [
            ("id", "xs:integer"),
            ("total", "xs:decimal"),
            ("customer", "xs:string"),
            ("paid", "xs:boolean"),
            ("describe", "xs:string"),
            ("TXID_Order", "xs:integer"),
        ]
        assert members_of(root, "Line") == [("quantity", "xs:integer"), ("weight", "xs:double"), ("TXID_Line", "xs:integer")]
        assert [r["name"] for r in relationships_of(root)] == ["Order_Customer"]

    @pytest.mark.parametrize(
        "header, extra",
        [
            ("", ""),
            ("from __future__ import annotations\n", ""),
            # An unresolvable annotation leaves all annotations of the class unevaluated.
            ("from __future__ import annotations\n", "    ghost: Ghost | None\n"),
        ],
    )
    def test_optional_reference(self, tmp_path, header, extra):
        path = tmp_path / "optional_models.py"
        path.write_text(
            f"{header}from typing import Optional\n\n\n"
            "class Customer:\n    name: str\n\n\n"
            "class Order:\n    customer: Customer | None\n    other: Optional[Customer]\n"
            f"{extra}"
        )

        catalog = load_python_catalog(path)

        properties = {member.name: member for member in by_name(catalog)["Order"].properties}
        assert properties["customer"].return_type_name == "Customer"
        assert properties["other"].return_type_name == "Customer"
        root = parse_document(serialize(catalog))
        assert [r["name"] for r in relationships_of(root)] == ["Order_Customer", "Order_Customer"]

    def test_broken_source(self, tmp_path):
        path = tmp_path / "broken.py"
        path.write_text("raise RuntimeError('boom')\n")

        with pytest.raises(CatalogLoadError) as exc_info:
            load_python_catalog(path)

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_from_module_object(self):
        module = types.ModuleType("inventory")
        exec("class Item:\n    sku: str\n", module.__dict__)

        catalog = catalog_from_module(module)

        assert catalog.name == "inventory"
        assert [t.name for t in catalog.types] == ["Item"]

    def test_imported_classes_are_ignored(self, tmp_path):
        path = tmp_path / "importer.py"
        path.write_text("from decimal import Decimal\nfrom collections import OrderedDict\n\nclass Local:\n    pass\n")

        catalog = load_python_catalog(path)

        assert [t.name for t in catalog.types] == ["Local"]


class TestModuleCatalog:
    def test_import_by_name(self, tmp_path, monkeypatch):
        (tmp_path / "warehouse_models.py").write_text("class Shelf:\n    level: int\n")
        monkeypatch.syspath_prepend(str(tmp_path))

        catalog = load_module_catalog("warehouse_models")

        assert catalog.name == "warehouse_models"
        assert [t.name for t in catalog.types] == ["Shelf"]

    def test_missing_module(self):
        with pytest.raises(CatalogLoadError):
            load_module_catalog("dataset_schema_generator_no_such_module")


class TestCapnpCatalog:
    def test_types(self, capnp_source):
        catalog = load_capnp_catalog(capnp_source)

        assert catalog.name == "shop"
        assert sorted(t.name for t in catalog.types) == ["Customer", "Order", "Shop"]

    def test_struct_fields(self, capnp_source):
        types_by_name = by_name(load_capnp_catalog(capnp_source))

        assert [(m.name, m.return_type_name) for m in types_by_name["Customer"].properties] == [
            ("name", "String"),
            ("age", "UInt16"),
        ]
        assert [(m.name, m.return_type_name) for m in types_by_name["Order"].properties] == [
            ("id", "Int64"),
            ("customer", "Customer"),
            ("total", "Double"),
        ]

    def test_interface_methods(self, capnp_source):
        shop = by_name(load_capnp_catalog(capnp_source))["Shop"]

        assert shop.properties == []
        assert sorted((m.name, m.return_type_name) for m in shop.methods) == [("order", "Order"), ("ping", "Void")]

    def test_serialized_relationships(self, capnp_source):
        root = parse_document(serialize(load_capnp_catalog(capnp_source)))

        assert sorted(r["name"] for r in relationships_of(root)) == ["Order_Customer", "Shop_Order"]
        assert ("age", "xs:unsignedShort") in members_of(root, "Customer")


class TestLoadCatalog:
    def test_dispatch(self, models_source, capnp_source):
        assert load_catalog(models_source).name == "shop_models"
        assert load_catalog(capnp_source).name == "shop"

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "types.json"
        path.write_text("{}")

        with pytest.raises(CatalogLoadError):
            load_catalog(path)
