"""Command-line interface for pybuilddeps."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pybuilddeps.config import load_config
from pybuilddeps.errors import PyBuildDepsError
from pybuilddeps.pipeline import run
from pybuilddeps.renderer.report import result_to_json, write_json
from pybuilddeps.renderer.starlark import result_to_starlark, write_starlark

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="pybuilddeps",
        description="Derive build targets and their dependencies from Python imports.",
    )
    parser.add_argument(
        "project_dir",
        type=Path,
        help="Path to the project (workspace root) to analyze",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output file path (default: stdout)",
    )
    parser.add_argument(
        "--format",
        choices=("json", "build"),
        default="json",
        help="Output a JSON report or BUILD file bodies (default: json)",
    )
    parser.add_argument(
        "--root-dir",
        default=None,
        help="Root directory for Python code, relative to the project",
    )
    parser.add_argument(
        "--external-modules",
        dest="external_module_map_path",
        default=None,
        help="Path to the manifest of external modules (TSV or YAML)",
    )
    parser.add_argument(
        "--internal-modules",
        dest="internal_module_list_path",
        default=None,
        help="Path to the list of interpreter-internal modules",
    )
    parser.add_argument(
        "--repo-prefix",
        dest="external_repo_name_prefix",
        default=None,
        help="Name prefix under which the external repositories are defined",
    )
    parser.add_argument(
        "--name-template",
        default=None,
        help="Template for target names, containing {module_name}",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with an error on unresolved imports or dependency cycles",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) output",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(message)s")
    if args.verbose:
        logging.getLogger("pybuilddeps").setLevel(logging.DEBUG)

    try:
        config = load_config(args.project_dir).with_overrides(
            root_dir=args.root_dir,
            external_module_map_path=args.external_module_map_path,
            internal_module_list_path=args.internal_module_list_path,
            external_repo_name_prefix=args.external_repo_name_prefix,
            name_template=args.name_template,
        )
        result = run(args.project_dir, config)
    except PyBuildDepsError as e:
        logger.error("%s", e)
        sys.exit(1)

    if args.output is None:
        if args.format == "build":
            sys.stdout.write(result_to_starlark(result))
        else:
            sys.stdout.write(result_to_json(result) + "\n")
    else:
        if args.format == "build":
            write_starlark(result, args.output)
        else:
            write_json(result, args.output)
        logger.info("Wrote %s", args.output)

    if args.strict and (result.unresolved or result.cycles):
        logger.error(
            "%d targets have unresolved imports, %d dependency cycles",
            len(result.unresolved),
            len(result.cycles),
        )
        sys.exit(1)
