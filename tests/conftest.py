"""Shared fixtures: on-disk source trees and a clean manifest cache."""

from __future__ import annotations

from pathlib import Path

import pytest

from pybuilddeps.manifest import clear_manifest_cache


@pytest.fixture(autouse=True)
def _clear_manifest_cache():
    """Tables are cached by path; tmp paths can repeat across tests."""
    clear_manifest_cache()
    try:
        yield
    finally:
        clear_manifest_cache()


@pytest.fixture
def make_tree(tmp_path):
    """Write ``{relative path: content}`` under tmp_path and return the root."""

    def _make(files: dict[str, str]) -> Path:
        for rel, content in files.items():
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return tmp_path

    return _make
