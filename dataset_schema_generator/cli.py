"""Command-line interface for generating dataset schemas from *.py modules and *.capnp schemas."""

from __future__ import annotations

import argparse
import logging
import os.path
from collections.abc import Sequence

from dataset_schema_generator.run import run

logger = logging.getLogger(__name__)


def _add_recursive_argument(parser: argparse.ArgumentParser):
    """Add a recursive argument to a parser.

    Args:
        parser (argparse.ArgumentParser): The parser to add the argument to.
    """
    parser.add_argument(
        "-r",
        "--recursive",
        dest="recursive",
        default=False,
        action="store_true",
        help="recursively search for *.py and *.capnp files with a given glob expression.",
    )


def setup_parser() -> argparse.ArgumentParser:
    """Setup for the parser.

    Returns:
        argparse.ArgumentParser: The parser after setup.
    """
    parser = argparse.ArgumentParser(description="Generate relational dataset schemas from type definitions.")

    parser.add_argument(
        "-p",
        "--paths",
        type=str,
        nargs="+",
        default=[],
        help="path or glob expressions that match *.py or *.capnp files to generate schemas for.",
    )

    parser.add_argument(
        "-m",
        "--modules",
        type=str,
        nargs="+",
        default=[],
        help="importable Python modules (dotted names) to generate schemas for.",
    )

    parser.add_argument(
        "-e",
        "--excludes",
        type=str,
        nargs="+",
        default=[],
        help="path or glob expressions to exclude from path matches.",
    )

    parser.add_argument(
        "-o",
        "--output-dir",
        type=str,
        default="",
        help=(
            "directory to write all generated schemas, keeping the source directory structure; "
            "defaults to alongside each source if omitted."
        ),
    )

    parser.add_argument(
        "-I",
        "--import-path",
        dest="import_paths",
        type=str,
        nargs="+",
        default=[],
        help="additional import paths for resolving absolute imports in *.capnp schemas.",
    )

    parser.add_argument(
        "--no-verify",
        dest="skip_verify",
        default=False,
        action="store_true",
        help="skip the structural verification of generated schemas.",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        dest="verbose",
        default=False,
        action="store_true",
        help="enable debug logging.",
    )

    _add_recursive_argument(parser)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the schema generator.

    Args:
        argv (Sequence[str] | None, optional): Run arguments. Defaults to None.

    Returns:
        int: Error code.
    """
    parser = setup_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    root_directory = os.getcwd()
    logger.info("Working from root directory: %s", root_directory)

    if not args.paths and not args.modules:
        parser.error("at least one of --paths or --modules is required.")

    run(args, root_directory)

    return 0
