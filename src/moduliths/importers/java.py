"""Import top-level Java types and their type references via javalang."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from moduliths.importers.base import scope
from moduliths.memo import Lazy
from moduliths.model import Symbol, SymbolUniverse

logger = logging.getLogger(__name__)

# Files to skip when walking Java sources.
_SKIP_FILES = {"package-info.java", "module-info.java"}

# Regex patterns for fallback extraction when javalang fails on modern Java.
_PACKAGE_RE = re.compile(r"^\s*package\s+([\w.]+)\s*;", re.MULTILINE)
_IMPORT_RE = re.compile(r"^\s*import\s+(static\s+)?([\w.]+)(\.\*)?\s*;", re.MULTILINE)
_TYPE_RE = re.compile(
    r"^(?:public\s+|protected\s+|private\s+)?"
    r"(?:static\s+|final\s+|abstract\s+|sealed\s+)*"
    r"(?:class|interface|enum|record)\s+(\w+)"
    r"(?:\s*<[^>]*>)?"
    r"(?:\s*\([^)]*\))?"
    r"(?:\s+extends\s+([\w.<>,\s]+?))?"
    r"(?:\s+implements\s+([\w.<>,\s]+?))?"
    r"\s*\{",
    re.MULTILINE,
)


def is_java_project(project_dir: Path) -> bool:
    return (
        (project_dir / "pom.xml").exists()
        or (project_dir / "build.gradle.kts").exists()
        or (project_dir / "build.gradle").exists()
    )


@dataclass
class _RawType:
    """A top-level type with unresolved (simple or qualified) type names."""

    name: str
    supertypes: list[str] = field(default_factory=list)
    references: list[str] = field(default_factory=list)


@dataclass
class _CompilationUnit:
    package: str
    imports: dict[str, str] = field(default_factory=dict)  # simple name -> fqn
    wildcards: list[str] = field(default_factory=list)
    types: list[_RawType] = field(default_factory=list)
    is_test: bool = False


class JavaSourceImporter:
    """Build the symbol universe from ``src/main/java`` and ``src/test/java``."""

    def __init__(
        self,
        project_dir: Path,
        *,
        auxiliary_namespaces: Iterable[str] = (),
    ):
        self._project_dir = project_dir
        self._auxiliary = tuple(auxiliary_namespaces)
        self._symbols = Lazy(self._parse_all)

    def import_scoped(
        self,
        packages: Iterable[str],
        ignored: Callable[[Symbol], bool] | None = None,
    ) -> SymbolUniverse:
        return scope(self._symbols.get(), packages, ignored, self._auxiliary)

    def _parse_all(self) -> list[Symbol]:
        try:
            import javalang  # noqa: F401
        except ImportError:
            logger.warning(
                "javalang not installed — skipping Java symbol extraction. "
                "Install with: pip install moduliths[java]"
            )
            return []

        units: list[_CompilationUnit] = []
        for source_dir, is_test in (
            (self._project_dir / "src" / "main" / "java", False),
            (self._project_dir / "src" / "test" / "java", True),
        ):
            if not source_dir.is_dir():
                continue
            for java_file in sorted(source_dir.rglob("*.java")):
                if java_file.name in _SKIP_FILES:
                    continue
                unit = _parse_file(java_file)
                if unit is None:
                    continue
                if not unit.package:
                    rel = java_file.relative_to(source_dir).parent
                    unit.package = ".".join(rel.parts)
                unit.is_test = is_test
                units.append(unit)

        known = {
            f"{u.package}.{t.name}" if u.package else t.name
            for u in units
            for t in u.types
        }
        symbols = [_resolve(unit, raw, known) for unit in units for raw in unit.types]
        logger.debug("Java source: %d files, %d types", len(units), len(symbols))
        return symbols


def _resolve_name(unit: _CompilationUnit, name: str, known: set[str]) -> str | None:
    """Resolve a type name as written in *unit* to a fully qualified name."""
    head, _, rest = name.partition(".")
    if head in unit.imports:
        return unit.imports[head] + (f".{rest}" if rest else "")
    local = f"{unit.package}.{head}" if unit.package else head
    if local in known:
        return local + (f".{rest}" if rest else "")
    for wildcard in unit.wildcards:
        candidate = f"{wildcard}.{head}"
        if candidate in known:
            return candidate + (f".{rest}" if rest else "")
    if rest and head[:1].islower():
        return name
    return None


def _resolve(unit: _CompilationUnit, raw: _RawType, known: set[str]) -> Symbol:
    name = f"{unit.package}.{raw.name}" if unit.package else raw.name

    def _resolve_all(names: Iterable[str]) -> tuple[str, ...]:
        result: list[str] = []
        for n in names:
            resolved = _resolve_name(unit, n, known)
            if resolved is not None and resolved != name and resolved not in result:
                result.append(resolved)
        return tuple(result)

    return Symbol(
        name=name,
        namespace=unit.package,
        references=_resolve_all([*raw.references, *unit.imports]),
        supertypes=_resolve_all(raw.supertypes),
        is_test=unit.is_test,
    )


def _parse_file(java_file: Path) -> _CompilationUnit | None:
    """Parse a single Java file, falling back to regexes on syntax errors."""
    try:
        source = java_file.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug("Could not read %s: %s", java_file, e)
        return None

    import javalang

    try:
        tree = javalang.parse.parse(source)
    except (javalang.parser.JavaSyntaxError, javalang.tokenizer.LexerError):
        logger.debug("javalang could not parse %s, using fallback", java_file)
        return _parse_fallback(source)

    unit = _CompilationUnit(package=tree.package.name if tree.package else "")
    for imp in tree.imports:
        if imp.static:
            # static imports name a member; the type is the enclosing path
            type_path = imp.path if imp.wildcard else imp.path.rsplit(".", 1)[0]
            unit.imports.setdefault(type_path.rsplit(".", 1)[-1], type_path)
        elif imp.wildcard:
            unit.wildcards.append(imp.path)
        else:
            unit.imports[imp.path.rsplit(".", 1)[-1]] = imp.path

    for type_decl in tree.types:
        if type_decl is None:
            continue
        unit.types.append(_extract_type(type_decl))

    return unit


def _reference_type_name(node) -> str:
    """Join a javalang ``ReferenceType`` chain (``java`` → ``util`` → ``List``)."""
    parts = [node.name]
    sub = getattr(node, "sub_type", None)
    while sub is not None:
        parts.append(sub.name)
        sub = getattr(sub, "sub_type", None)
    return ".".join(parts)


def _extract_type(type_decl) -> _RawType:
    import javalang

    raw = _RawType(name=type_decl.name)

    extends = getattr(type_decl, "extends", None)
    if extends is not None:
        for ext in extends if isinstance(extends, list) else [extends]:
            raw.supertypes.append(_reference_type_name(ext))
    for impl in getattr(type_decl, "implements", None) or []:
        raw.supertypes.append(_reference_type_name(impl))

    nested: set[int] = set()
    for _, node in type_decl.filter(javalang.tree.ReferenceType):
        if id(node) in nested:
            continue
        sub = node.sub_type
        while sub is not None:
            nested.add(id(sub))
            sub = sub.sub_type
        type_name = _reference_type_name(node)
        if type_name not in raw.references:
            raw.references.append(type_name)

    for _, node in type_decl.filter(javalang.tree.Annotation):
        if node.name not in raw.references:
            raw.references.append(node.name)

    for node_type in (javalang.tree.MethodInvocation, javalang.tree.MemberReference):
        for _, node in type_decl.filter(node_type):
            qualifier = node.qualifier or ""
            # Only qualifiers that look like type names (Foo.bar(), Foo.CONSTANT).
            if qualifier[:1].isupper() and qualifier not in raw.references:
                raw.references.append(qualifier)

    return raw


def _simplify_type(type_str: str) -> str:
    """Strip generics from a type like ``List<String>``."""
    return re.sub(r"<[^>]*>", "", type_str).strip()


def _parse_fallback(source: str) -> _CompilationUnit:
    """Regex-based extraction for files javalang can't parse (newer Java)."""
    package_match = _PACKAGE_RE.search(source)
    unit = _CompilationUnit(package=package_match.group(1) if package_match else "")

    for m in _IMPORT_RE.finditer(source):
        path = m.group(2)
        if m.group(3):
            unit.wildcards.append(path)
        elif m.group(1):
            type_path = path.rsplit(".", 1)[0]
            unit.imports.setdefault(type_path.rsplit(".", 1)[-1], type_path)
        else:
            unit.imports[path.rsplit(".", 1)[-1]] = path

    # only top-level declarations start at column zero
    for m in _TYPE_RE.finditer(source):
        raw = _RawType(name=m.group(1))
        for group in (m.group(2), m.group(3)):
            if group:
                for name in _simplify_type(group).split(","):
                    name = name.strip()
                    if name and name != "Object":
                        raw.supertypes.append(name)
        unit.types.append(raw)

    return unit
