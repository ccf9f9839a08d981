"""Render build units as Starlark BUILD file text."""

from __future__ import annotations

import json
from pathlib import Path

from pybuilddeps.model import BuildUnit
from pybuilddeps.pipeline import PackageResult, PipelineResult

RULES_LOAD = "@rules_python//python:defs.bzl"


def _string_list(values: list[str]) -> str:
    if len(values) <= 1:
        return "[" + ", ".join(json.dumps(v) for v in values) + "]"
    items = "".join(f"        {json.dumps(v)},\n" for v in values)
    return "[\n" + items + "    ]"


def render_unit(unit: BuildUnit) -> str:
    lines = [f"{unit.kind}(", f"    name = {json.dumps(unit.name)},"]
    lines.append(f"    srcs = {_string_list(unit.srcs)},")
    if unit.main is not None:
        lines.append(f"    main = {json.dumps(unit.main)},")
    lines.append(f"    imports = {_string_list([unit.imports])},")
    if unit.deps:
        lines.append(f"    deps = {_string_list(unit.deps)},")
    lines.append(f"    tags = {_string_list(unit.tags)},")
    if unit.visibility:
        lines.append(f"    visibility = {_string_list(unit.visibility)},")
    lines.append(")")
    return "\n".join(lines)


def render_build_file(units: list[BuildUnit]) -> str:
    """Return a BUILD file body defining *units*, with the load statement they need."""
    kinds = sorted({u.kind for u in units})
    symbols = ", ".join(json.dumps(k) for k in kinds)
    parts = [f"load({json.dumps(RULES_LOAD)}, {symbols})"]
    parts.extend(render_unit(u) for u in units)
    return "\n\n".join(parts) + "\n"


def render_package(package: PackageResult) -> str:
    path = f"{package.rel}/BUILD.bazel" if package.rel else "BUILD.bazel"
    return f"# {path}\n{render_build_file(package.units)}"


def result_to_starlark(result: PipelineResult) -> str:
    return "\n".join(render_package(p) for p in result.packages)


def write_starlark(result: PipelineResult, output_path: Path) -> None:
    """Write every BUILD file body of *result* to *output_path*."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(result_to_starlark(result))
