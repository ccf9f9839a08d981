"""Group the modules of one directory and compute their in-package dependencies."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from pybuilddeps.errors import ParseError
from pybuilddeps.model import Module, ParsedModule
from pybuilddeps.python import PACKAGE_INIT, import_spec, module_name, split_last
from pybuilddeps.python.parser import parse_path

logger = logging.getLogger(__name__)


class PackageContext:
    """Modules of one package directory, keyed by import specifier."""

    def __init__(
        self,
        pkg_path: str,
        modules: Iterable[Module],
        sub_packages: Iterable[str] = (),
    ) -> None:
        self.pkg_path = pkg_path
        self.dotted_path = pkg_path.replace("/", ".")
        self.modules: dict[str, Module] = {}
        for module in modules:
            if module.import_spec in self.modules:
                raise ValueError(f"duplicate module {module.import_spec!r} in package")
            self.modules[module.import_spec] = module
        self.sub_packages = frozenset(sub_packages)

    def find_in_package_import(self, imp: str) -> str | None:
        """Return the key of the module satisfying *imp*, or None if it is external."""
        parent, last = split_last(imp)
        if last and parent == self.dotted_path and last in self.sub_packages:
            # Could also be a symbol of the package root, but symbols are not
            # tracked, so the subpackage wins.
            return None
        if imp in self.modules:
            return imp
        if parent in self.modules:
            return parent
        return None

    def process_imports(self, module: Module) -> None:
        """Split the imports of *module* into direct in-package deps and external imports."""
        for imp in module.imports:
            dep = self.find_in_package_import(imp)
            if dep is None:
                module.external_imports.append(imp)
            elif dep != module.import_spec:
                module.in_package_deps.add(dep)

    def close(self, module: Module) -> None:
        """Expand the in-package deps of *module* to everything reachable from them."""
        pending = list(module.in_package_deps)
        while pending:
            dep = self.modules[pending.pop()]
            for depdep in dep.in_package_deps:
                if depdep == module.import_spec or depdep in module.in_package_deps:
                    # Cycle, or already expanded.
                    continue
                module.in_package_deps.add(depdep)
                pending.append(depdep)

    def analyze(self) -> list[Module]:
        """Classify every import, close every module, and return modules sorted by specifier."""
        for module in self.modules.values():
            self.process_imports(module)
        for module in self.modules.values():
            self.close(module)
        return [self.modules[key] for key in sorted(self.modules)]


def analyze_package(
    pkg_path: str,
    parsed: Mapping[str, ParsedModule],
    sub_packages: Iterable[str] = (),
) -> list[Module]:
    """Build the closed module graph for one package.

    *parsed* maps each ``.py`` filename directly inside the package directory
    to its parse result.
    """
    modules: list[Module] = []
    for filename in sorted(parsed):
        named = module_name(filename)
        if named is None or named[1] != "py":
            continue
        name = named[0]
        if not pkg_path and not name:
            logger.warning(
                "skipping %s at the Python root: it has no importable name", filename
            )
            continue
        modules.append(
            Module(
                import_spec=import_spec(pkg_path, name),
                pkg_path=pkg_path,
                name=name,
                filename=filename,
                parsed=parsed[filename],
            )
        )
    return PackageContext(pkg_path, modules, sub_packages).analyze()


def find_sub_packages(directory: Path) -> list[str]:
    """Return the names of subdirectories of *directory* that are packages."""
    return sorted(
        child.name
        for child in directory.iterdir()
        if child.is_dir() and (child / PACKAGE_INIT).is_file()
    )


def load_package(pkg_path: str, directory: Path) -> list[Module]:
    """Parse every Python file directly in *directory* and analyze the package.

    Files that fail to parse are logged and left out; the rest of the package
    is still analyzed.
    """
    package = pkg_path.replace("/", ".")
    parsed: dict[str, ParsedModule] = {}
    for path in sorted(directory.iterdir()):
        if not path.is_file():
            continue
        named = module_name(path.name)
        if named is None or named[1] != "py":
            continue
        try:
            parsed[path.name] = parse_path(path, package=package)
        except ParseError as e:
            logger.warning("unable to generate rule for Python module: %s", e)
            continue

    logger.debug("Package %r: %d modules parsed", pkg_path, len(parsed))
    return analyze_package(pkg_path, parsed, find_sub_packages(directory))
