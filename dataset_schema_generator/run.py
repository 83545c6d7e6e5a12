"""Top-level module for schema generation."""

from __future__ import annotations

import argparse
import glob
import logging
import os.path

from lxml import etree

from dataset_schema_generator import helper
from dataset_schema_generator.builder import serialize
from dataset_schema_generator.catalog import TypeCatalog
from dataset_schema_generator.document import msdata, xs
from dataset_schema_generator.loaders import CAPNP_SUFFIX, PY_SUFFIX, load_catalog, load_module_catalog

logger = logging.getLogger(__name__)

XML_SUFFIX = ".xml"
SOURCE_SUFFIXES = (PY_SUFFIX, CAPNP_SUFFIX)

RELATIONSHIP_ATTRIBUTES = ("parent", "child", "parentkey", "childkey")


class OutputCollisionError(Exception):
    """Raised when two catalogs would be written to the same output file."""

    pass


class SchemaVerificationError(Exception):
    """Raised when a generated document does not have the expected dataset schema structure."""

    pass


def verify_schema_document(document: str) -> None:
    """Re-parse a generated document and check its structure.

    Checks the root/schema/dataset element nesting, that every type element ends with its
    synthetic key, and that every relationship names its keys after the key convention.

    Args:
        document: The rendered document.

    Raises:
        SchemaVerificationError: If the document is malformed or deviates from the structure.
    """
    try:
        root = etree.fromstring(document)
    except etree.XMLSyntaxError as e:
        raise SchemaVerificationError(f"The document is not well-formed: {e}") from e

    name = root.tag
    schema = root.find(xs("schema"))
    if schema is None or schema.get("id") != name:
        raise SchemaVerificationError(f"Expected an xs:schema with id '{name}' below the root element.")

    dataset_element = schema.find(xs("element"))
    if dataset_element is None or dataset_element.get(msdata("IsDataSet")) != "true":
        raise SchemaVerificationError("Expected the dataset element with msdata:IsDataSet='true'.")

    choice = dataset_element.find(f"{xs('complexType')}/{xs('choice')}")
    if choice is None:
        raise SchemaVerificationError("Expected an xs:complexType/xs:choice inside the dataset element.")

    for type_element in choice.findall(xs("element")):
        type_name = type_element.get("name", "")
        members = type_element.findall(f"{xs('complexType')}/{xs('sequence')}/{xs('element')}")

        if not members or members[-1].get("name") != helper.key_name(type_name):
            raise SchemaVerificationError(f"Type '{type_name}' does not end with its key member.")

    for relationship in choice.iterfind(f"{xs('annotation')}/{xs('appinfo')}/{msdata('Relationship')}"):
        values = {attribute: relationship.get(msdata(attribute)) for attribute in RELATIONSHIP_ATTRIBUTES}

        if None in values.values():
            raise SchemaVerificationError(f"Relationship '{relationship.get('name')}' lacks msdata attributes.")

        if (
            values["parentkey"] != helper.key_name(values["parent"])
            or values["childkey"] != helper.key_name(values["child"])
            or relationship.get("name") != f"{values['parent']}_{values['child']}"
        ):
            raise SchemaVerificationError(f"Relationship '{relationship.get('name')}' breaks the key convention.")


def generate_schema(catalog: TypeCatalog, output_file_path: str, verify: bool = True) -> str:
    """Serialize a catalog and write the document to a file.

    Args:
        catalog (TypeCatalog): The catalog to serialize.
        output_file_path (str): The file to write.
        verify (bool, optional): Verify the document before writing. Defaults to True.

    Returns:
        str: The written document.
    """
    document = serialize(catalog)

    if verify:
        verify_schema_document(document)

    with open(output_file_path, "w", encoding="utf8") as output_file:
        output_file.write(document)

    logger.info("Wrote schema for '%s' to '%s'.", catalog.name, output_file_path)

    return document


def find_source_paths(
    paths: list[str], excludes: list[str], root_directory: str, recursive: bool = False
) -> list[str]:
    """Resolve files, directories and glob expressions into catalog source files.

    Args:
        paths (list[str]): Paths or glob expressions, relative to the root directory.
        excludes (list[str]): Paths or glob expressions to exclude.
        root_directory (str): The directory to resolve against.
        recursive (bool, optional): Search directories and `**` globs recursively. Defaults to False.

    Returns:
        list[str]: The sorted source file paths.
    """
    excluded_paths: set[str] = set()
    for exclude in excludes:
        exclude_path = os.path.join(root_directory, exclude)
        if os.path.isfile(exclude_path):
            excluded_paths.add(exclude_path)
        else:
            excluded_paths = excluded_paths.union(glob.glob(exclude_path, recursive=recursive))

    search_paths: set[str] = set()
    for path in paths:
        search_path = os.path.join(root_directory, path)

        if recursive and os.path.isdir(search_path):
            for root, _, files in os.walk(search_path):
                for file in files:
                    if file.endswith(SOURCE_SUFFIXES):
                        search_paths.add(os.path.join(root, file))

        elif os.path.isdir(search_path):
            for file in os.listdir(search_path):
                file_path = os.path.join(search_path, file)
                if os.path.isfile(file_path) and file.endswith(SOURCE_SUFFIXES):
                    search_paths.add(file_path)

        else:
            search_paths = search_paths.union(
                p for p in glob.glob(search_path, recursive=recursive) if p.endswith(SOURCE_SUFFIXES)
            )

    return sorted(search_paths - excluded_paths)


def determine_output_paths(catalogs: list[tuple[TypeCatalog, str]], output_dir: str = "") -> list[str]:
    """Determine the output file of each catalog.

    Without an output directory, each document is written beside its source. With one, the
    source directories are kept relative to their common base, so that same-named sources in
    different directories do not overwrite each other.

    Args:
        catalogs (list[tuple[TypeCatalog, str]]): Pairs of catalog and source directory.
        output_dir (str, optional): The absolute output directory. Defaults to "".

    Returns:
        list[str]: The output file paths, in catalog order.

    Raises:
        OutputCollisionError: If two catalogs resolve to the same output file.
    """
    source_directories = [os.path.abspath(source_directory) for _, source_directory in catalogs]
    common_base = os.path.commonpath(source_directories) if output_dir else ""

    output_file_paths: list[str] = []
    for (catalog, _), source_directory in zip(catalogs, source_directories):
        if output_dir:
            output_directory = os.path.normpath(os.path.join(output_dir, os.path.relpath(source_directory, common_base)))
        else:
            output_directory = source_directory

        output_file_path = os.path.join(output_directory, catalog.name + XML_SUFFIX)
        if output_file_path in output_file_paths:
            raise OutputCollisionError(f"More than one catalog would be written to '{output_file_path}'.")

        output_file_paths.append(output_file_path)

    return output_file_paths


def run(args: argparse.Namespace, root_directory: str) -> list[str]:
    """Run the generator on source files and importable modules.

    Uses `generate_schema` on the catalog of each input.

    Args:
        args (argparse.Namespace): The arguments that were passed when calling the generator.
        root_directory (str): The directory, from which the generator is executed.

    Returns:
        list[str]: The paths of the written documents.
    """
    paths: list[str] = getattr(args, "paths", [])
    modules: list[str] = getattr(args, "modules", [])
    excludes: list[str] = getattr(args, "excludes", [])
    recursive: bool = getattr(args, "recursive", False)
    output_dir: str = getattr(args, "output_dir", "")
    import_paths: list[str] = getattr(args, "import_paths", [])
    verify: bool = not getattr(args, "skip_verify", False)

    absolute_import_paths = [os.path.join(root_directory, p) for p in import_paths]

    # Pairs of (catalog, directory that the output goes to if no output directory is set).
    catalogs: list[tuple[TypeCatalog, str]] = []

    for path in find_source_paths(paths, excludes, root_directory, recursive):
        catalogs.append((load_catalog(path, absolute_import_paths), os.path.dirname(path)))

    for module_name in modules:
        catalogs.append((load_module_catalog(module_name), root_directory))

    if not catalogs:
        logger.warning("No catalog sources found.")
        return []

    if output_dir:
        output_dir = os.path.join(root_directory, output_dir)

    # Resolved up front, so that a collision is reported before anything is written.
    output_file_paths = determine_output_paths(catalogs, output_dir)

    written_paths: list[str] = []
    for (catalog, _), output_file_path in zip(catalogs, output_file_paths):
        os.makedirs(os.path.dirname(output_file_path), exist_ok=True)
        generate_schema(catalog, output_file_path, verify=verify)
        written_paths.append(output_file_path)

    logger.info("Generated %d schema(s).", len(written_paths))

    return written_paths
