"""Import classes and functions from Python source via AST."""

from __future__ import annotations

import ast
import logging
import warnings
from collections.abc import Callable, Iterable
from pathlib import Path

from moduliths.importers.base import scope
from moduliths.memo import Lazy
from moduliths.model import Symbol, SymbolUniverse

logger = logging.getLogger(__name__)

_SKIP_DIRS = {"__pycache__", "build", "dist", "node_modules"}
_TEST_DIRS = {"tests", "test"}


def is_python_project(project_dir: Path) -> bool:
    """Return True if *project_dir* contains a Python project indicator."""
    return (project_dir / "pixi.toml").exists() or (
        project_dir / "pyproject.toml"
    ).exists()


def find_source_root(project_dir: Path) -> Path:
    """Return ``src/`` for src-layout projects, the project dir otherwise."""
    src = project_dir / "src"
    return src if src.is_dir() else project_dir


class PythonSourceImporter:
    """Build the symbol universe of the Python packages below *source_root*."""

    def __init__(
        self,
        source_root: Path,
        *,
        auxiliary_namespaces: Iterable[str] = (),
    ):
        self._source_root = source_root
        self._auxiliary = tuple(auxiliary_namespaces)
        self._symbols = Lazy(self._parse_all)

    def import_scoped(
        self,
        packages: Iterable[str],
        ignored: Callable[[Symbol], bool] | None = None,
    ) -> SymbolUniverse:
        return scope(self._symbols.get(), packages, ignored, self._auxiliary)

    def _parse_all(self) -> list[Symbol]:
        symbols: list[Symbol] = []
        file_count = 0
        for py_file in sorted(self._source_root.rglob("*.py")):
            relative = py_file.relative_to(self._source_root)
            if any(
                part in _SKIP_DIRS or part.startswith(".") for part in relative.parts[:-1]
            ):
                continue

            is_package = py_file.name == "__init__.py"
            parts = list(relative.parts[:-1]) if is_package else [
                *relative.parts[:-1],
                py_file.stem,
            ]
            if not parts:
                continue
            module_name = ".".join(parts)

            extracted = _extract_symbols(
                py_file, module_name, is_package, _is_test_file(relative)
            )
            if extracted:
                file_count += 1
                symbols.extend(extracted)

        logger.debug("Python AST: %d files, %d symbols", file_count, len(symbols))
        return symbols


def _is_test_file(relative: Path) -> bool:
    name = relative.name
    if name == "conftest.py" or name.startswith("test_") or name.endswith("_test.py"):
        return True
    return any(part in _TEST_DIRS for part in relative.parts[:-1])


def _resolve_relative(module_name: str, is_package: bool, level: int, target: str | None) -> str:
    """Resolve ``from <level dots><target> import ...`` inside *module_name*."""
    parts = module_name.split(".")
    if not is_package:
        parts = parts[:-1]
    if level > 1:
        parts = parts[: len(parts) - (level - 1)]
    if target:
        parts.append(target)
    return ".".join(parts)


def _import_table(tree: ast.Module, module_name: str, is_package: bool) -> dict[str, str]:
    """Map local names bound by imports and top-level definitions to qualified names."""
    table: dict[str, str] = {}
    for node in tree.body:
        if isinstance(node, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
            table[node.name] = f"{module_name}.{node.name}"

    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    table[alias.asname] = alias.name
                else:
                    head = alias.name.split(".")[0]
                    table[head] = head
        elif isinstance(node, ast.ImportFrom):
            if node.level:
                source = _resolve_relative(module_name, is_package, node.level, node.module)
            else:
                source = node.module or ""
            if not source:
                continue
            for alias in node.names:
                if alias.name == "*":
                    continue
                table[alias.asname or alias.name] = f"{source}.{alias.name}"
    return table


def _dotted(node: ast.expr) -> list[str] | None:
    """Return ``["a", "b", "c"]`` for an ``a.b.c`` expression, else None."""
    parts: list[str] = []
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if not isinstance(node, ast.Name):
        return None
    parts.append(node.id)
    return list(reversed(parts))


class _ReferenceCollector(ast.NodeVisitor):
    """Collect qualified names of imported symbols used within a definition."""

    def __init__(self, table: dict[str, str]) -> None:
        self.table = table
        self.references: list[str] = []

    def resolve(self, node: ast.expr) -> str | None:
        parts = _dotted(node)
        if parts is None or parts[0] not in self.table:
            return None
        return ".".join([self.table[parts[0]], *parts[1:]])

    def _add(self, name: str) -> None:
        if name not in self.references:
            self.references.append(name)

    def visit_Attribute(self, node: ast.Attribute) -> None:
        resolved = self.resolve(node)
        if resolved is not None:
            self._add(resolved)
        else:
            self.generic_visit(node)

    def visit_Name(self, node: ast.Name) -> None:
        resolved = self.resolve(node)
        if resolved is not None:
            self._add(resolved)


def _extract_symbols(
    file_path: Path, module_name: str, is_package: bool, is_test: bool
) -> list[Symbol]:
    """Return a symbol for each top-level class and function in *file_path*."""
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", SyntaxWarning)
            tree = ast.parse(file_path.read_text(encoding="utf-8"))
    except (OSError, SyntaxError, UnicodeDecodeError) as e:
        logger.debug("Skipping %s: %s", file_path, e)
        return []

    table = _import_table(tree, module_name, is_package)
    results: list[Symbol] = []

    for node in tree.body:
        if not isinstance(node, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
            continue

        name = f"{module_name}.{node.name}"
        collector = _ReferenceCollector(table)
        collector.visit(node)

        supertypes: list[str] = []
        if isinstance(node, ast.ClassDef):
            for base in node.bases:
                resolved = collector.resolve(base)
                if resolved is not None and resolved not in supertypes:
                    supertypes.append(resolved)

        results.append(
            Symbol(
                name=name,
                namespace=module_name,
                references=tuple(r for r in collector.references if r != name),
                supertypes=tuple(supertypes),
                is_test=is_test,
            )
        )

    return results
