"""Render a PipelineResult as a JSON report."""

from __future__ import annotations

import json
from pathlib import Path

from pybuilddeps.analysis import Cycle
from pybuilddeps.model import BuildUnit
from pybuilddeps.pipeline import PipelineResult


def _unit_to_dict(unit: BuildUnit) -> dict:
    d: dict = {
        "kind": unit.kind,
        "name": unit.name,
        "module": unit.module_key,
        "srcs": unit.srcs,
        "imports": unit.imports,
        "deps": unit.deps,
        "tags": unit.tags,
    }
    if unit.main is not None:
        d["main"] = unit.main
    if unit.visibility:
        d["visibility"] = unit.visibility
    return d


def _cycle_to_dict(cycle: Cycle) -> dict:
    return {
        "targets": cycle.targets,
        "edges": [
            {"from": e.source, "to": e.target, "imports": e.imports}
            for e in cycle.edges
        ],
    }


def result_to_json(result: PipelineResult) -> str:
    """Serialize *result* into a stable, indented JSON document."""
    data = {
        "packages": [
            {
                "dir": package.rel,
                "python_package": package.pkg_path,
                "units": [_unit_to_dict(u) for u in package.units],
            }
            for package in result.packages
        ],
        "unresolved": result.unresolved,
        "cycles": [_cycle_to_dict(c) for c in result.cycles],
    }
    return json.dumps(data, indent=2, sort_keys=True)


def write_json(result: PipelineResult, output_path: Path) -> None:
    """Write the JSON report to *output_path*."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(result_to_json(result) + "\n")
