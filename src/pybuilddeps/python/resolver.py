"""Resolve the external imports of a module to build targets."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from pybuilddeps.index import ImportIndex
from pybuilddeps.manifest import ExternalModuleMap, InternalModuleSet
from pybuilddeps.model import Label, Module
from pybuilddeps.python import LANGUAGE, split_last

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """Targets a module depends on, and the imports nothing could satisfy."""

    deps: list[str] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)
    # Target -> the import specifiers (or ancestor package) that produced it.
    origins: dict[str, list[str]] = field(default_factory=dict)


def transitive_imports(module: Module, siblings: Mapping[str, Module]) -> list[str]:
    """Return the external imports of *module* and of every in-package dep it closes over.

    Siblings are compiled into the same unit, so their imports count too.
    """
    seen: set[str] = set()
    result: list[str] = []
    owners = [module] + [siblings[key] for key in sorted(module.in_package_deps)]
    for owner in owners:
        for imp in owner.external_imports:
            if imp not in seen:
                seen.add(imp)
                result.append(imp)
    return result


def _candidates(imp: str) -> list[str]:
    """*imp* itself, then *imp* without its last segment if it has one."""
    parent, last = split_last(imp)
    return [imp, parent] if last else [imp]


class ImportResolver:
    """Map import specifiers to targets using the index, then the static tables.

    The index and tables are read-only snapshots, so one resolver can serve
    every package of a tree.
    """

    def __init__(
        self,
        index: ImportIndex,
        external_modules: ExternalModuleMap | None = None,
        internal_modules: InternalModuleSet | None = None,
    ) -> None:
        self._index = index
        self._external = external_modules or {}
        self._internal = internal_modules or frozenset()

    def find_in_index(self, imp: str) -> str | None:
        """Return the preferred indexed target for exactly *imp*.

        A target named after its own package (the package root library) wins;
        otherwise the smallest label keeps the choice deterministic.
        """
        labels = sorted(self._index.find(imp, LANGUAGE), key=str)
        for label in labels:
            if label.is_canonical:
                return str(label)
        if labels:
            return str(labels[0])
        return None

    def find_target(self, imp: str) -> tuple[str | None, bool]:
        """Return ``(target, resolved)`` for *imp*.

        ``resolved`` with a None target means the import is satisfied without
        a dependency (an interpreter-internal module, or a manifest entry that
        names no target).
        """
        candidates = _candidates(imp)
        for candidate in candidates:
            target = self.find_in_index(candidate)
            if target is not None:
                return target, True
        for candidate in candidates:
            external = self._external.get(candidate)
            if external is not None:
                return external.target or None, True
        for candidate in candidates:
            if candidate in self._internal:
                return None, True
        return None, False

    def parent_target(self, module: Module) -> str | None:
        """Return the target of the nearest ancestor package found in the index."""
        found = self._find_parent(module)
        return found[1] if found is not None else None

    def _find_parent(self, module: Module) -> tuple[str, str] | None:
        parent, last = split_last(module.import_spec)
        while last:
            target = self.find_in_index(parent)
            if target is not None:
                return parent, target
            parent, last = split_last(parent)
        return None

    def resolve(
        self,
        module: Module,
        siblings: Mapping[str, Module],
        *,
        self_label: Label | None = None,
    ) -> Resolution:
        """Resolve every import *module* needs, plus its parent package.

        Unresolved imports are logged and reported; they never abort resolution.
        """
        origins: dict[str, list[str]] = {}
        unresolved: list[str] = []
        for imp in transitive_imports(module, siblings):
            target, ok = self.find_target(imp)
            if target is not None:
                origins.setdefault(target, []).append(imp)
            elif not ok:
                logger.warning(
                    "could not find build target for import %r in %s",
                    imp,
                    module.import_spec,
                )
                unresolved.append(imp)

        parent = self._find_parent(module)
        if parent is not None:
            spec, target = parent
            imports = origins.setdefault(target, [])
            if spec not in imports:
                imports.append(spec)
        if self_label is not None:
            origins.pop(str(self_label), None)
        return Resolution(
            deps=sorted(origins),
            unresolved=unresolved,
            origins=origins,
        )
