"""Import index protocol: lookup from import specifier to publishing build targets."""

from __future__ import annotations

from collections import defaultdict
from typing import Protocol

from pybuilddeps.model import Label
from pybuilddeps.python import LANGUAGE


class ImportIndex(Protocol):
    """Read-only view over the targets that publish each import specifier."""

    def find(self, imp: str, lang: str = LANGUAGE) -> list[Label]:
        """Return every target publishing *imp* for language *lang*."""
        ...


class MemoryImportIndex:
    """In-memory ImportIndex filled by the pipeline, then frozen before resolution."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], list[Label]] = defaultdict(list)
        self._frozen = False

    def add(self, imp: str, label: Label, lang: str = LANGUAGE) -> None:
        if self._frozen:
            raise RuntimeError("import index is frozen")
        labels = self._entries[(lang, imp)]
        if label not in labels:
            labels.append(label)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def find(self, imp: str, lang: str = LANGUAGE) -> list[Label]:
        return list(self._entries.get((lang, imp), ()))

    def __len__(self) -> int:
        return len(self._entries)
