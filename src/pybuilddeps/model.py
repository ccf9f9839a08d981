"""Data model shared by the analysis, resolution and rendering stages."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ParsedModule:
    """Imports and main-guard flag extracted from one source file."""

    imports: tuple[str, ...] = ()
    has_main_guard: bool = False


@dataclass
class Module:
    """A Python module inside one package directory.

    ``in_package_deps`` holds the import specifiers of sibling modules rather
    than the modules themselves; the package's module map is the arena they
    index into.
    """

    import_spec: str
    pkg_path: str  # slash separated
    name: str  # "" for __init__.py
    filename: str
    parsed: ParsedModule = field(default_factory=ParsedModule)
    in_package_deps: set[str] = field(default_factory=set)
    external_imports: list[str] = field(default_factory=list)

    @property
    def imports(self) -> tuple[str, ...]:
        return self.parsed.imports

    @property
    def has_main_guard(self) -> bool:
        return self.parsed.has_main_guard


@dataclass(frozen=True, order=True)
class Label:
    """A build target identifier."""

    repo: str = ""
    pkg: str = ""
    name: str = ""

    @property
    def is_canonical(self) -> bool:
        """True if the target is named after its own package directory."""
        return self.name == posixpath.basename(self.pkg)

    def __str__(self) -> str:
        repo = f"@{self.repo}" if self.repo else ""
        if self.is_canonical:
            return f"{repo}//{self.pkg}"
        return f"{repo}//{self.pkg}:{self.name}"


@dataclass(frozen=True)
class ExternalModule:
    """A module shipped by a third-party distribution."""

    dist: str
    pkg_path: str = ""  # slash separated
    module: str = ""
    target: str = ""  # empty when the manifest carries no target
    kind: str = "py"  # "py" or "so"


@dataclass
class BuildUnit:
    """The library, binary or test generated for one module."""

    kind: str
    name: str
    module_key: str
    srcs: list[str] = field(default_factory=list)
    main: str | None = None
    imports: str = "."
    tags: list[str] = field(default_factory=list)
    visibility: list[str] = field(default_factory=list)
    deps: list[str] = field(default_factory=list)
