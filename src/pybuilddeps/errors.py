"""Error types raised by pybuilddeps."""

from __future__ import annotations


class PyBuildDepsError(Exception):
    """Base class for all pybuilddeps errors."""


class ParseError(PyBuildDepsError):
    """A source file could not be read or parsed."""

    def __init__(self, filename: str, message: str) -> None:
        super().__init__(f"parsing Python file {filename!r}: {message}")
        self.filename = filename


class ManifestError(PyBuildDepsError):
    """An external module map or internal module list is unusable."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class ConfigError(PyBuildDepsError):
    """The pybuilddeps configuration is invalid."""
