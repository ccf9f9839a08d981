"""Python language support: shared naming helpers."""

from __future__ import annotations

import posixpath

LANGUAGE = "py"
PACKAGE_INIT = "__init__.py"


def module_name(filename: str) -> tuple[str, str] | None:
    """Return ``(module_name, kind)`` for *filename*, or None if it is not a module.

    ``__init__.py`` maps to the blank name of the package itself.  Compiled
    extensions lose every extension, so ``a.cpython-311-x86_64-linux-gnu.so``
    is module ``a`` of kind ``"so"``.
    """
    stem, ext = posixpath.splitext(filename)
    if ext == ".py":
        if filename == PACKAGE_INIT:
            return "", "py"
        return stem, "py"
    if ext == ".so":
        while ext:
            stem, ext = posixpath.splitext(stem)
        return stem, "so"
    return None


def import_spec(pkg_path: str, name: str) -> str:
    """Join a slash separated package path and a module name into a dotted specifier."""
    if not pkg_path and not name:
        raise ValueError("package path and module name can not both be blank")
    parts = [pkg_path.replace("/", ".")] if pkg_path else []
    if name:
        parts.append(name)
    return ".".join(parts)


def split_last(spec: str) -> tuple[str, str]:
    """Split off the last dotted segment: ``"a.b.c"`` -> ``("a.b", "c")``.

    A specifier without a dot comes back unchanged with a blank segment.
    """
    parent, sep, last = spec.rpartition(".")
    if not sep:
        return spec, ""
    return parent, last
