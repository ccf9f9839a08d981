"""Generate one build unit (library, binary or test) per Python module."""

from __future__ import annotations

import posixpath
from collections.abc import Mapping

from pybuilddeps.model import BuildUnit, Module
from pybuilddeps.python import import_spec, module_name

KIND_LIBRARY = "py_library"
KIND_BINARY = "py_binary"
KIND_TEST = "py_test"

MANAGED_TAG = "pybuilddeps-managed"
VISIBILITY_PUBLIC = "//visibility:public"

MAIN_MODULE = "__main__"
TEST_MODULE = "__test__"


def unit_kind(module: Module) -> str:
    name = module.name
    if name == TEST_MODULE or name.startswith("test_") or name.endswith("_test"):
        return KIND_TEST
    if name == MAIN_MODULE or module.has_main_guard:
        return KIND_BINARY
    return KIND_LIBRARY


def unit_name(module: Module, name_template: str = "{module_name}") -> str:
    """Name the unit for *module*.

    The package root is named after its directory; ``__main__`` and
    ``__test__`` get ``_bin`` and ``_test`` suffixes on the directory name.
    """
    pkg_name = posixpath.basename(module.pkg_path)
    name = module.name
    if name == "":
        name = pkg_name
    elif name == MAIN_MODULE:
        name = f"{pkg_name}_bin"
    elif name == TEST_MODULE:
        name = f"{pkg_name}_test"
    return name_template.replace("{module_name}", name)


def generate_build_unit(
    module: Module,
    siblings: Mapping[str, Module],
    *,
    name_template: str = "{module_name}",
    relative_root: str = ".",
) -> BuildUnit:
    """Return the unit for *module*, embedding the sources of its closed in-package deps."""
    kind = unit_kind(module)
    srcs = sorted(
        {module.filename} | {siblings[key].filename for key in module.in_package_deps}
    )
    visibility: list[str] = []
    if not module.name.startswith("_") and kind != KIND_TEST:
        visibility = [VISIBILITY_PUBLIC]
    return BuildUnit(
        kind=kind,
        name=unit_name(module, name_template),
        module_key=module.import_spec,
        srcs=srcs,
        main=module.filename if kind == KIND_BINARY else None,
        imports=relative_root,
        tags=[MANAGED_TAG],
        visibility=visibility,
    )


def published_imports(unit: BuildUnit, pkg_path: str) -> list[str]:
    """Return the import specifiers *unit* makes available to other packages.

    Tests publish nothing.
    """
    if unit.kind not in (KIND_LIBRARY, KIND_BINARY):
        return []
    specs: list[str] = []
    for src in unit.srcs:
        named = module_name(src)
        if named is None:
            continue
        name = named[0]
        if not pkg_path and not name:
            continue
        specs.append(import_spec(pkg_path, name))
    return specs
