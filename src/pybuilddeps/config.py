"""Project configuration, read from .pybuilddeps.toml or pyproject.toml."""

from __future__ import annotations

import dataclasses
import fnmatch
import logging
import posixpath
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pybuilddeps.errors import ConfigError
from pybuilddeps.manifest import (
    ExternalModuleMap,
    InternalModuleSet,
    read_external_module_map,
    read_internal_module_list,
)

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".pybuilddeps.toml"
MODULE_NAME_PLACEHOLDER = "{module_name}"

_DIRECTORY_RELATIVE_KEYS = (
    "root_dir",
    "internal_module_list_path",
    "external_module_map_path",
)


@dataclass(frozen=True)
class Configuration:
    """Settings for one directory and, unless overridden below it, its subtree.

    Paths are stored slash separated and relative to the project directory.
    """

    # Generate units for this directory.
    enable: bool = True
    # Root directory for Python code.
    root_dir: str = ""
    # Import specifiers resolvable without a dependency (stdlib, system installs).
    internal_module_list_path: str | None = None
    # Import specifier -> distribution manifest (TSV, or YAML by suffix).
    external_module_map_path: str | None = None
    # Name prefix under which the external repositories are defined, e.g. "pip_".
    external_repo_name_prefix: str = ""
    name_template: str = MODULE_NAME_PLACEHOLDER
    # Glob patterns of project-relative directories to skip.
    exclude: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if MODULE_NAME_PLACEHOLDER not in self.name_template:
            raise ConfigError(
                f"name_template {self.name_template!r} lacks {MODULE_NAME_PLACEHOLDER}"
            )
        object.__setattr__(self, "root_dir", self.root_dir.strip("/"))

    @classmethod
    def _validate(cls, data: dict[str, Any]) -> dict[str, Any]:
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown configuration keys: {', '.join(unknown)}")
        values: dict[str, Any] = {}
        for key, value in data.items():
            if key == "exclude":
                if not isinstance(value, list) or not all(
                    isinstance(v, str) for v in value
                ):
                    raise ConfigError("exclude must be a list of strings")
                value = tuple(value)
            elif key == "enable":
                if not isinstance(value, bool):
                    raise ConfigError(f"enable must be a boolean, got {value!r}")
            elif not isinstance(value, str):
                raise ConfigError(f"{key} must be a string, got {value!r}")
            values[key] = value
        return values

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Configuration:
        return cls(**cls._validate(data))

    def with_overrides(self, **overrides: Any) -> Configuration:
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)

    def for_directory(self, rel: str, data: dict[str, Any]) -> Configuration:
        """Return the configuration of directory *rel* given its own settings.

        ``root_dir`` and the table paths in *data* are relative to *rel*;
        ``exclude`` patterns stay project-relative.  Unset keys are inherited.
        """
        values = self._validate(data)
        for key in _DIRECTORY_RELATIVE_KEYS:
            if key in values:
                path = posixpath.normpath(posixpath.join(rel, values[key]))
                values[key] = "" if path == "." else path
        return dataclasses.replace(self, **values)

    def python_package_path(self, rel: str) -> str | None:
        """Return the slash separated Python package path of directory *rel*.

        Returns None when *rel* is outside the Python root.
        """
        path = posixpath.relpath(rel or ".", self.root_dir or ".")
        if path == ".":
            return ""
        if path == ".." or path.startswith("../"):
            return None
        return path

    def relative_root(self, rel: str) -> str:
        """Return the path from directory *rel* back to the Python root."""
        return posixpath.relpath(self.root_dir or ".", rel or ".")

    def is_excluded(self, rel: str) -> bool:
        return any(fnmatch.fnmatch(rel, pattern) for pattern in self.exclude)

    @property
    def tables_key(self) -> tuple[str | None, str, str | None]:
        """The settings that select the static tables."""
        return (
            self.external_module_map_path,
            self.external_repo_name_prefix,
            self.internal_module_list_path,
        )

    def load_tables(
        self, project_dir: Path
    ) -> tuple[ExternalModuleMap | None, InternalModuleSet | None]:
        """Load the external module map and internal module list, if configured."""
        external = None
        internal = None
        if self.external_module_map_path:
            external = read_external_module_map(
                (project_dir / self.external_module_map_path).resolve(),
                self.external_repo_name_prefix,
            )
        if self.internal_module_list_path:
            internal = read_internal_module_list(
                (project_dir / self.internal_module_list_path).resolve()
            )
        return external, internal


def load_config(project_dir: Path) -> Configuration:
    """Read the pybuilddeps configuration of *project_dir*.

    ``.pybuilddeps.toml`` (``[pybuilddeps]`` table) takes priority over
    ``[tool.pybuilddeps]`` in ``pyproject.toml``; without either the defaults
    apply.
    """
    config_toml = project_dir / CONFIG_FILENAME
    if config_toml.exists():
        data = _read_toml(config_toml)
        return Configuration.from_dict(data.get("pybuilddeps", {}))

    pyproject = project_dir / "pyproject.toml"
    if pyproject.exists():
        data = _read_toml(pyproject)
        return Configuration.from_dict(data.get("tool", {}).get("pybuilddeps", {}))

    return Configuration()


def load_directory_config(
    directory: Path, rel: str, parent: Configuration
) -> Configuration:
    """Apply the ``.pybuilddeps.toml`` of *directory*, if any, on top of *parent*.

    *rel* is the directory relative to the project.  Without a file the parent
    configuration carries over unchanged.
    """
    config_toml = directory / CONFIG_FILENAME
    if not config_toml.is_file():
        return parent
    data = _read_toml(config_toml).get("pybuilddeps", {})
    logger.debug("Directory %r overrides %s", rel, ", ".join(sorted(data)) or "nothing")
    return parent.for_directory(rel, data)


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"could not parse {path}: {e}") from e
