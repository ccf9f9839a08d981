"""Extract import specifiers and the ``__main__`` guard from Python source via AST."""

from __future__ import annotations

import ast
import logging
import warnings
from pathlib import Path

from pybuilddeps.errors import ParseError
from pybuilddeps.model import ParsedModule

logger = logging.getLogger(__name__)


def parse_source(
    content: str,
    filename: str = "<unknown>",
    *,
    package: str | None = None,
) -> ParsedModule:
    """Parse *content* and return its imports and main-guard flag.

    *filename* is only used in diagnostics.  *package* is the dotted package
    the file belongs to ("" for a top-level module); relative imports are
    skipped when it is None.
    """
    visitor = _ImportVisitor(filename, package)
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", SyntaxWarning)
            tree = ast.parse(content, filename=filename)
        visitor.visit(tree)
    except (SyntaxError, ValueError) as e:
        raise ParseError(filename, str(e)) from e
    except (RecursionError, MemoryError) as e:
        # Both the parser and the visitor recurse per nesting level.
        raise ParseError(filename, f"source too deeply nested: {e}") from e
    return ParsedModule(
        imports=tuple(sorted(visitor.imports)),
        has_main_guard=visitor.has_main_guard,
    )


def parse_path(path: Path, *, package: str | None = None) -> ParsedModule:
    """Read and parse the Python file at *path*."""
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(str(path), str(e)) from e
    return parse_source(content, str(path), package=package)


class _ImportVisitor(ast.NodeVisitor):
    """Collect imports anywhere in the tree, in document order."""

    def __init__(self, filename: str, package: str | None) -> None:
        self.imports: set[str] = set()
        self.has_main_guard = False
        self._filename = filename
        self._package = package

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self.imports.add(alias.name)

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        module = self._absolute_module(node)
        if module is None:
            return
        for alias in node.names:
            if alias.name == "*":
                self.imports.add(module)
            else:
                self.imports.add(f"{module}.{alias.name}")

    def visit_If(self, node: ast.If) -> None:
        kept = self._type_checking_branch(node.test, node.body, node.orelse)
        if kept is not None:
            for stmt in kept:
                self.visit(stmt)
            return
        if not self.has_main_guard and _is_main_guard(node.test):
            self.has_main_guard = True
        self.generic_visit(node)

    def _type_checking_branch(
        self,
        test: ast.expr,
        body: list[ast.stmt],
        orelse: list[ast.stmt],
    ) -> list[ast.stmt] | None:
        """Return the branch taken when type checking, or None if *test* is not a TYPE_CHECKING check."""
        if isinstance(test, ast.UnaryOp) and isinstance(test.op, ast.Not):
            return self._type_checking_branch(test.operand, orelse, body)
        if isinstance(test, ast.Attribute):
            if (
                "typing" in self.imports
                and isinstance(test.value, ast.Name)
                and test.value.id == "typing"
                and test.attr == "TYPE_CHECKING"
            ):
                return body
        elif isinstance(test, ast.Name):
            if "typing.TYPE_CHECKING" in self.imports and test.id == "TYPE_CHECKING":
                return body
        return None

    def _absolute_module(self, node: ast.ImportFrom) -> str | None:
        if not node.level:
            return node.module
        if self._package is None:
            logger.debug(
                "%s:%d: skipping relative import without a known package",
                self._filename,
                node.lineno,
            )
            return None
        parts = self._package.split(".") if self._package else []
        if node.level > len(parts):
            logger.debug(
                "%s:%d: relative import beyond top-level package",
                self._filename,
                node.lineno,
            )
            return None
        base = ".".join(parts[: len(parts) - node.level + 1])
        if node.module:
            return f"{base}.{node.module}"
        return base


def _is_main_guard(test: ast.expr) -> bool:
    """Check for ``__name__ == "__main__"``."""
    if not (
        isinstance(test, ast.Compare)
        and len(test.ops) == 1
        and isinstance(test.ops[0], ast.Eq)
        and len(test.comparators) == 1
    ):
        return False
    left, right = test.left, test.comparators[0]
    return (
        isinstance(left, ast.Name)
        and left.id == "__name__"
        and isinstance(right, ast.Constant)
        and right.value == "__main__"
    )
