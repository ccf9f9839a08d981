"""Load the external module map and internal module list.

Both tables are read once per source path and shared as read-only snapshots.
"""

from __future__ import annotations

import csv
import functools
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

import yaml

from pybuilddeps.errors import ManifestError
from pybuilddeps.model import ExternalModule
from pybuilddeps.python import import_spec

logger = logging.getLogger(__name__)

ExternalModuleMap = Mapping[str, ExternalModule]
InternalModuleSet = frozenset[str]

_MODULE_KINDS = ("py", "so")
_YAML_SUFFIXES = (".yaml", ".yml")


# ---------------------------------------------------------------------------
# internal module list
# ---------------------------------------------------------------------------


def parse_internal_module_list(lines: Iterable[str]) -> InternalModuleSet:
    """Parse one import specifier per line; ``#`` starts a comment line."""
    names: set[str] = set()
    for line in lines:
        if line.startswith("#"):
            continue
        name = line.strip()
        if name:
            names.add(name)
    return frozenset(names)


@functools.lru_cache(maxsize=None)
def read_internal_module_list(path: Path) -> InternalModuleSet:
    """Read the internal module list at *path*."""
    try:
        with open(path, encoding="utf-8") as f:
            names = parse_internal_module_list(f)
    except OSError as e:
        raise ManifestError(str(path), f"opening Python internal module list: {e}") from e
    logger.debug("Loaded %d internal modules from %s", len(names), path)
    return names


# ---------------------------------------------------------------------------
# external module map
# ---------------------------------------------------------------------------


def external_target(dist: str, name_prefix: str = "") -> str:
    """Return the target of the repository holding distribution *dist*."""
    return f"@{name_prefix}{dist}//:pkg"


def parse_external_module_tsv(
    lines: Iterable[str],
    name_prefix: str = "",
    *,
    source: str = "<manifest>",
) -> ExternalModuleMap:
    """Parse the tab separated manifest of ``dist, package, module, kind`` records.

    A specifier listed twice with the same kind is ambiguous and rejected;
    with different kinds (a ``.py`` and a ``.so`` of the same name) the first
    record wins.
    """
    modules: dict[str, ExternalModule] = {}
    reader = csv.reader(
        (line for line in lines if not line.startswith("#")),
        delimiter="\t",
    )
    for record in reader:
        if not record:
            continue
        if len(record) != 4:
            raise ManifestError(
                source,
                f"record {reader.line_num}: expected 4 fields, got {len(record)}: {record!r}",
            )
        dist, pkg, name, kind = record
        if kind not in _MODULE_KINDS:
            raise ManifestError(
                source, f"record {reader.line_num}: unknown module kind {kind!r}"
            )
        try:
            spec = import_spec(pkg.replace(".", "/"), name)
        except ValueError as e:
            raise ManifestError(source, f"record {reader.line_num}: {e}") from e

        existing = modules.get(spec)
        if existing is not None:
            if existing.kind == kind:
                raise ManifestError(
                    source,
                    f"duplicate entries in Python external module manifest for "
                    f"{spec!r}: {existing.dist} and {dist}",
                )
            continue

        modules[spec] = ExternalModule(
            dist=dist,
            pkg_path=pkg.replace(".", "/"),
            module=name,
            target=external_target(dist, name_prefix),
            kind=kind,
        )
    return MappingProxyType(modules)


def parse_external_module_yaml(
    text: str,
    *,
    source: str = "<manifest>",
) -> ExternalModuleMap:
    """Parse a ``manifest.modules_mapping`` YAML document of specifier -> distribution.

    Scalars are read as plain strings, so specifiers such as ``on`` or ``no``
    stay module names instead of becoming booleans.
    """
    try:
        data = yaml.load(text, Loader=yaml.BaseLoader)
    except yaml.YAMLError as e:
        raise ManifestError(source, f"failed to decode yaml manifest file: {e}") from e

    manifest = data.get("manifest") if isinstance(data, dict) else None
    mapping = manifest.get("modules_mapping") if isinstance(manifest, dict) else None
    if not isinstance(mapping, dict):
        raise ManifestError(source, "missing 'manifest.modules_mapping' mapping")

    modules: dict[str, ExternalModule] = {}
    for spec, dist in mapping.items():
        if not isinstance(spec, str) or not isinstance(dist, str):
            raise ManifestError(
                source, f"invalid modules_mapping entry {spec!r}: {dist!r}"
            )
        modules[spec] = ExternalModule(dist=dist)
    return MappingProxyType(modules)


@functools.lru_cache(maxsize=None)
def read_external_module_map(path: Path, name_prefix: str = "") -> ExternalModuleMap:
    """Read the external module map at *path*; YAML if the suffix says so, else TSV."""
    try:
        with open(path, encoding="utf-8", newline="") as f:
            if path.suffix in _YAML_SUFFIXES:
                modules = parse_external_module_yaml(f.read(), source=str(path))
            else:
                modules = parse_external_module_tsv(f, name_prefix, source=str(path))
    except OSError as e:
        raise ManifestError(str(path), f"opening Python external module map: {e}") from e
    logger.debug("Loaded %d external modules from %s", len(modules), path)
    return modules


def clear_manifest_cache() -> None:
    """Forget every table read so far."""
    read_internal_module_list.cache_clear()
    read_external_module_map.cache_clear()
