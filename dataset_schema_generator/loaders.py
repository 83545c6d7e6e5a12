"""Build type catalogs from Python modules and Cap'n Proto schemas.

The loaders are the introspection side of the generator: they read type definitions
and produce a read-only `TypeCatalog`. The schema builder never looks beyond that catalog.
"""

from __future__ import annotations

import decimal
import importlib
import importlib.util
import inspect
import logging
import re
import sys
import typing
from collections.abc import Iterator, Sequence
from pathlib import Path
from types import ModuleType, UnionType
from typing import Any

import capnp

from dataset_schema_generator import schema_types
from dataset_schema_generator.catalog import MemberDescriptor, MemberKind, TypeCatalog, TypeDescriptor

if hasattr(capnp, "remove_import_hook"):
    capnp.remove_import_hook()


logger = logging.getLogger(__name__)

PY_SUFFIX = ".py"
CAPNP_SUFFIX = ".capnp"

PYTHON_TYPE_TO_SCALAR: dict[Any, str] = {
    int: "Int64",
    float: "Double",
    bool: "Boolean",
    str: "String",
    decimal.Decimal: "Decimal",
    bytes: "Data",
}

# Used for annotations that could not be evaluated and are still strings.
PYTHON_TYPE_NAME_TO_SCALAR = {python_type.__name__: scalar for python_type, scalar in PYTHON_TYPE_TO_SCALAR.items()}

UNANNOTATED_TYPE = "Object"
VOID_TYPE = "Void"

_MISSING = inspect.Parameter.empty

_OPTIONAL_NAME_PATTERN = re.compile(r"^(?:typing\.)?Optional\[(?P<inner>.+)\]$")
_NONE_NAMES = ("None", "NoneType")


class CatalogLoadError(Exception):
    """Raised when a catalog cannot be loaded from its source."""

    pass


def _get_annotations(obj: Any) -> dict[str, Any]:
    """Get the own annotations of a class or function, evaluated where possible."""
    try:
        return dict(inspect.get_annotations(obj, eval_str=True))
    except Exception as e:
        logger.debug(f"Could not evaluate annotations of {obj!r}: {e}")

    try:
        return dict(inspect.get_annotations(obj))
    except Exception as e:
        logger.debug(f"Could not read annotations of {obj!r}: {e}")
        return {}


def _is_class_var(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return annotation.startswith(("ClassVar", "typing.ClassVar"))

    return annotation is typing.ClassVar or typing.get_origin(annotation) is typing.ClassVar


def _optional_members(annotation: Any) -> list[Any] | None:
    """Get the members of a union annotation without `None`, or None if it is no union."""
    if typing.get_origin(annotation) not in (typing.Union, UnionType):
        return None

    return [member for member in typing.get_args(annotation) if member is not type(None)]


def _unwrap_optional_name(annotation: str) -> str:
    """Strip `Optional[...]` and `| None` from an unevaluated annotation.

    A union of several types cannot be represented by one member type and becomes `Object`.
    """
    annotation = annotation.strip().strip("'\"")

    match = _OPTIONAL_NAME_PATTERN.match(annotation)
    if match:
        return _unwrap_optional_name(match.group("inner"))

    # Only unions of plain names; anything subscripted is left as it is.
    if "|" in annotation and "[" not in annotation:
        names = [name.strip() for name in annotation.split("|") if name.strip() not in _NONE_NAMES]
        return names[0] if len(names) == 1 else UNANNOTATED_TYPE

    return annotation


def python_type_name(annotation: Any) -> str:
    """Convert a Python annotation into a scalar type name of the catalog.

    E.g. `int` becomes `Int64`, a class becomes its name and a missing annotation
    becomes `Object`. Optional annotations (`Customer | None`, `Optional[Customer]`) are
    named after the type they wrap, so that they still reference it.

    Args:
        annotation (Any): The annotation, possibly an unevaluated string.

    Returns:
        str: The type name.
    """
    if annotation is _MISSING:
        return UNANNOTATED_TYPE

    if annotation is None or annotation is type(None):
        return VOID_TYPE

    if isinstance(annotation, typing.ForwardRef):
        annotation = annotation.__forward_arg__

    if isinstance(annotation, str):
        if annotation.strip() in _NONE_NAMES:
            return VOID_TYPE

        annotation = _unwrap_optional_name(annotation)
        return PYTHON_TYPE_NAME_TO_SCALAR.get(annotation, annotation)

    members = _optional_members(annotation)
    if members is not None:
        return python_type_name(members[0]) if len(members) == 1 else UNANNOTATED_TYPE

    try:
        return PYTHON_TYPE_TO_SCALAR[annotation]

    except (KeyError, TypeError):
        pass

    if inspect.isclass(annotation):
        return annotation.__name__

    return UNANNOTATED_TYPE


def _return_type_name(function: Any) -> str:
    if function is None:
        return UNANNOTATED_TYPE

    return python_type_name(_get_annotations(function).get("return", _MISSING))


def _iter_classes(namespace: dict[str, Any], qualname_prefix: str, module_name: str) -> Iterator[type]:
    """Yield the classes defined in a namespace, each followed by its nested classes."""
    for obj in list(namespace.values()):
        if not inspect.isclass(obj) or obj.__module__ != module_name:
            continue

        # Skip aliases and imports of classes defined elsewhere in the module.
        if obj.__qualname__ != f"{qualname_prefix}{obj.__name__}":
            continue

        yield obj
        yield from _iter_classes(vars(obj), f"{obj.__qualname__}.", module_name)


def members_from_class(cls: type) -> list[MemberDescriptor]:
    """Collect the public instance members of a class, most derived class first.

    Annotated class attributes and properties become properties. Plain functions become
    methods, static and class methods are left out.

    Args:
        cls (type): The class to inspect.

    Returns:
        list[MemberDescriptor]: The members, in declaration order per class.
    """
    members: list[MemberDescriptor] = []

    for klass in cls.__mro__:
        if klass is object:
            continue

        for name, annotation in _get_annotations(klass).items():
            if _is_class_var(annotation):
                continue

            members.append(MemberDescriptor(name, python_type_name(annotation), MemberKind.PROPERTY))

        for name, attribute in vars(klass).items():
            if isinstance(attribute, property):
                members.append(
                    MemberDescriptor(
                        name,
                        _return_type_name(attribute.fget),
                        MemberKind.PROPERTY,
                        is_readable=attribute.fget is not None,
                    )
                )

            elif inspect.isfunction(attribute):
                members.append(MemberDescriptor(name, _return_type_name(attribute), MemberKind.METHOD))

    return members


def catalog_from_module(module: ModuleType, name: str | None = None) -> TypeCatalog:
    """Build a catalog from the classes that a Python module defines.

    Args:
        module (ModuleType): The imported module.
        name (str | None, optional): The catalog name. Defaults to the module name.

    Returns:
        TypeCatalog: The catalog, with types in definition order.
    """
    types = [
        TypeDescriptor(cls.__name__, members_from_class(cls))
        for cls in _iter_classes(vars(module), "", module.__name__)
    ]

    return TypeCatalog(name or module.__name__, types)


def load_module_catalog(module_name: str) -> TypeCatalog:
    """Import a module by its dotted name and build its catalog.

    Raises:
        CatalogLoadError: If the module cannot be imported.
    """
    try:
        module = importlib.import_module(module_name)
    except Exception as e:
        raise CatalogLoadError(f"Could not import module '{module_name}': {e}") from e

    return catalog_from_module(module)


def load_python_catalog(path: str | Path) -> TypeCatalog:
    """Execute a Python source file as a module and build its catalog.

    The catalog is named after the file stem.

    Args:
        path (str | Path): The path to the *.py file.

    Returns:
        TypeCatalog: The catalog.

    Raises:
        CatalogLoadError: If the file cannot be executed.
    """
    path = Path(path)
    module_name = f"_dataset_schema_{path.stem}"

    module_spec = importlib.util.spec_from_file_location(module_name, path)
    if module_spec is None or module_spec.loader is None:
        raise CatalogLoadError(f"Could not load '{path}' as a Python module.")

    module = importlib.util.module_from_spec(module_spec)

    # Registered while inspecting, so that annotations can be resolved against the module.
    sys.modules[module_name] = module
    try:
        module_spec.loader.exec_module(module)
        return catalog_from_module(module, name=path.stem)

    except Exception as e:
        raise CatalogLoadError(f"Could not load '{path}': {e}") from e

    finally:
        sys.modules.pop(module_name, None)


class CapnpCatalogReader:
    """Reads the structs and interfaces of a loaded Cap'n Proto module into a catalog.

    Structs become types with one property per field. Interfaces become types with one
    method per RPC method.
    """

    def __init__(self, module: ModuleType):
        self._module = module
        self.type_names: dict[int, str] = {}
        self._schemas: list[tuple[list[str], Any]] = []

    def _collect_nested(self, schema: Any, path: list[str]) -> None:
        for nested_node in schema.node.nestedNodes:
            try:
                nested_schema = schema.get_nested(nested_node.name)
            except Exception as e:
                logger.debug(f"Could not resolve nested node {nested_node.name}: {e}")
                continue

            node_type = nested_schema.node.which()
            if node_type not in (schema_types.CapnpElementType.STRUCT, schema_types.CapnpElementType.INTERFACE):
                continue

            nested_path = path + [nested_node.name]
            self.type_names[nested_schema.node.id] = nested_node.name
            self._schemas.append((nested_path, nested_schema))
            self._collect_nested(nested_schema, nested_path)

    def get_type_name(self, type_reader: Any) -> str:
        """Extract the catalog type name from a capnp type reader.

        Args:
            type_reader (Any): The type reader to get the type name from.

        Returns:
            str: The scalar type name, or the name of the referenced struct or interface.
        """
        type_reader_type = type_reader.which()

        try:
            return schema_types.CAPNP_TYPE_TO_SCALAR[type_reader_type]

        except KeyError:
            pass

        if type_reader_type == schema_types.CapnpElementType.STRUCT:
            return self.type_names.get(type_reader.struct.typeId, "Struct")

        if type_reader_type == schema_types.CapnpElementType.INTERFACE:
            return self.type_names.get(type_reader.interface.typeId, "Interface")

        return type_reader_type

    def _struct_members(self, schema: Any) -> list[MemberDescriptor]:
        members = []

        for field in schema.node.struct.fields:
            if field.which() == schema_types.CapnpFieldType.SLOT:
                return_type_name = self.get_type_name(field.slot.type)
            else:
                return_type_name = "Group"

            members.append(MemberDescriptor(field.name, return_type_name, MemberKind.PROPERTY))

        return members

    def _interface_members(self, path: list[str]) -> list[MemberDescriptor]:
        runtime_interface: Any = self._module
        for name in path:
            runtime_interface = getattr(runtime_interface, name)

        members = []

        for method_name, method in runtime_interface.schema.methods.items():
            result_fields = list(method.result_type.node.struct.fields)

            if not result_fields:
                return_type_name = VOID_TYPE
            elif len(result_fields) == 1 and result_fields[0].which() == schema_types.CapnpFieldType.SLOT:
                return_type_name = self.get_type_name(result_fields[0].slot.type)
            else:
                return_type_name = "Struct"

            members.append(MemberDescriptor(method_name, return_type_name, MemberKind.METHOD))

        return members

    def read(self, name: str) -> TypeCatalog:
        """Read all structs and interfaces, nested ones included.

        Args:
            name (str): The catalog name.

        Returns:
            TypeCatalog: The catalog, with types in schema order.
        """
        self._collect_nested(self._module.schema, [])

        types = []
        for path, schema in self._schemas:
            if schema.node.which() == schema_types.CapnpElementType.STRUCT:
                members = self._struct_members(schema)
            else:
                members = self._interface_members(path)

            types.append(TypeDescriptor(path[-1], members))

        return TypeCatalog(name, types)


def load_capnp_catalog(path: str | Path, import_paths: Sequence[str] | None = None) -> TypeCatalog:
    """Load a *.capnp schema and build its catalog.

    The catalog is named after the schema file name without suffix.

    Args:
        path (str | Path): The path to the schema.
        import_paths (Sequence[str] | None, optional): Additional import paths for absolute imports.

    Returns:
        TypeCatalog: The catalog.

    Raises:
        CatalogLoadError: If the schema cannot be parsed.
    """
    path = Path(path)
    parser = capnp.SchemaParser()

    try:
        module = parser.load(str(path), imports=list(import_paths or []))
    except Exception as e:
        raise CatalogLoadError(f"Could not load schema '{path}': {e}") from e

    return CapnpCatalogReader(module).read(path.stem)


def load_catalog(path: str | Path, import_paths: Sequence[str] | None = None) -> TypeCatalog:
    """Load a catalog from a *.py or *.capnp file, depending on its suffix.

    Raises:
        CatalogLoadError: If the suffix is not supported, or loading fails.
    """
    path = Path(path)

    if path.suffix == PY_SUFFIX:
        return load_python_catalog(path)

    if path.suffix == CAPNP_SUFFIX:
        return load_capnp_catalog(path, import_paths)

    raise CatalogLoadError(f"Unsupported catalog source '{path}'; expected a {PY_SUFFIX} or {CAPNP_SUFFIX} file.")
