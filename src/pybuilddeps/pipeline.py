"""Orchestrator: walk → analyze packages → index → resolve."""

from __future__ import annotations

import logging
import os
import posixpath
from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from pybuilddeps.analysis import Cycle, find_cycles
from pybuilddeps.config import Configuration, load_config, load_directory_config
from pybuilddeps.index import MemoryImportIndex
from pybuilddeps.model import BuildUnit, Label, Module
from pybuilddeps.python.package import load_package
from pybuilddeps.python.resolver import ImportResolver
from pybuilddeps.python.rules import generate_build_unit, published_imports

logger = logging.getLogger(__name__)

_SKIP = {
    "__pycache__",
    "node_modules",
}


@dataclass
class PackageResult:
    """Modules and generated units of one directory."""

    rel: str  # slash separated, relative to the project directory
    pkg_path: str
    modules: dict[str, Module] = field(default_factory=dict)
    units: list[BuildUnit] = field(default_factory=list)
    # Configuration in effect for this directory.
    config: Configuration = field(default_factory=Configuration)

    def label(self, unit: BuildUnit) -> Label:
        return Label(pkg=self.rel, name=unit.name)


@dataclass
class PipelineResult:
    """Everything generated for a project tree."""

    packages: list[PackageResult] = field(default_factory=list)
    # Unresolved import specifiers, keyed by the label of the unit needing them.
    unresolved: dict[str, list[str]] = field(default_factory=dict)
    cycles: list[Cycle] = field(default_factory=list)


def _walk_directories(
    project_dir: Path, config: Configuration
) -> Iterator[tuple[str, Path, Configuration]]:
    """Yield ``(rel, path, config)`` for every directory, top-down and sorted.

    *config* applies to the project directory itself; every other directory
    starts from its parent's configuration plus its own ``.pybuilddeps.toml``.
    """
    scopes: dict[str, Configuration] = {}
    for dirpath, dirnames, _filenames in os.walk(project_dir):
        path = Path(dirpath)
        rel = path.relative_to(project_dir).as_posix()
        rel = "" if rel == "." else rel
        if rel:
            scope = load_directory_config(path, rel, scopes[posixpath.dirname(rel)])
        else:
            scope = config
        scopes[rel] = scope
        dirnames[:] = sorted(
            d
            for d in dirnames
            if not d.startswith(".")
            and d not in _SKIP
            and not scope.is_excluded(f"{rel}/{d}" if rel else d)
        )
        yield rel, path, scope


def _warn_duplicate_names(rel: str, units: list[BuildUnit]) -> None:
    counts = Counter(u.name for u in units)
    for name, count in sorted(counts.items()):
        if count > 1:
            logger.warning(
                "Package %r: %d units are named %r; they share one label",
                rel,
                count,
                name,
            )


def analyze_tree(project_dir: Path, config: Configuration) -> list[PackageResult]:
    """Analyze every package directory and generate its (not yet resolved) units."""
    if config.root_dir and not (project_dir / config.root_dir).is_dir():
        logger.warning("Python root %s is not a directory", project_dir / config.root_dir)
    packages: list[PackageResult] = []
    for rel, path, scope in _walk_directories(project_dir, config):
        if not scope.enable:
            logger.debug("Package %r: disabled", rel)
            continue
        pkg_path = scope.python_package_path(rel)
        if pkg_path is None:
            continue
        modules = load_package(pkg_path, path)
        if not modules:
            continue
        result = PackageResult(
            rel=rel,
            pkg_path=pkg_path,
            modules={m.import_spec: m for m in modules},
            config=scope,
        )
        relative_root = scope.relative_root(rel)
        for module in modules:
            result.units.append(
                generate_build_unit(
                    module,
                    result.modules,
                    name_template=scope.name_template,
                    relative_root=relative_root,
                )
            )
        _warn_duplicate_names(rel, result.units)
        logger.debug("Package %r: %d units", rel, len(result.units))
        packages.append(result)
    return packages


def build_index(packages: list[PackageResult]) -> MemoryImportIndex:
    """Index every published import of every unit, then freeze the index."""
    index = MemoryImportIndex()
    for package in packages:
        for unit in package.units:
            label = package.label(unit)
            for imp in published_imports(unit, package.pkg_path):
                index.add(imp, label)
    index.freeze()
    logger.debug("Import index: %d specifiers", len(index))
    return index


def run(project_dir: Path, config: Configuration | None = None) -> PipelineResult:
    """Run the full pipeline over *project_dir* and return the resolved units."""
    project_dir = project_dir.resolve()
    config = config or load_config(project_dir)

    resolvers: dict[tuple, ImportResolver] = {}
    # Project tables load before any source is parsed.
    root_tables = config.load_tables(project_dir)

    packages = analyze_tree(project_dir, config)
    index = build_index(packages)
    resolvers[config.tables_key] = ImportResolver(index, *root_tables)

    result = PipelineResult(packages=packages)
    graph: dict[str, dict[str, list[str]]] = {}
    for package in packages:
        key = package.config.tables_key
        resolver = resolvers.get(key)
        if resolver is None:
            resolver = ImportResolver(index, *package.config.load_tables(project_dir))
            resolvers[key] = resolver
        for unit in package.units:
            label = str(package.label(unit))
            module = package.modules[unit.module_key]
            resolution = resolver.resolve(
                module, package.modules, self_label=package.label(unit)
            )
            unit.deps = resolution.deps
            edges = graph.setdefault(label, {})
            for target, imports in resolution.origins.items():
                edges.setdefault(target, []).extend(imports)
            if resolution.unresolved:
                result.unresolved.setdefault(label, []).extend(resolution.unresolved)

    result.cycles = find_cycles(graph)
    for cycle in result.cycles:
        logger.warning("Dependency cycle across packages: %s", cycle.describe())

    logger.info(
        "Generated %d units in %d packages",
        sum(len(p.units) for p in packages),
        len(packages),
    )
    return result
