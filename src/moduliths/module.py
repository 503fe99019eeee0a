"""A single architectural module: one direct child namespace of a root."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable
from typing import TYPE_CHECKING

from moduliths.errors import DependencyViolation
from moduliths.memo import Lazy
from moduliths.model import Symbol
from moduliths.namespace import Namespace

if TYPE_CHECKING:
    from moduliths.modules import Modules

logger = logging.getLogger(__name__)


class Module:
    """Symbols below one base namespace plus their declared allowed dependencies."""

    def __init__(
        self,
        base_package: Namespace,
        symbols: Iterable[Symbol],
        *,
        use_fully_qualified_name: bool = False,
        allowed_dependencies: Iterable[str] = (),
    ):
        self.base_package = base_package
        self.name = base_package.name if use_fully_qualified_name else base_package.local_name
        self.symbols: tuple[Symbol, ...] = tuple(
            s for s in symbols if self.contains(s)
        )
        self.allowed_dependencies = frozenset(allowed_dependencies)
        self._outgoing = Lazy(self._compute_outgoing)

    def __repr__(self) -> str:
        return f"Module({self.name!r}, base_package={self.base_package.name!r})"

    def contains(self, symbol: Symbol | str) -> bool:
        """Return True if *symbol* (or a fully qualified name) lives in this module."""
        if isinstance(symbol, Symbol):
            return self.base_package.contains_namespace(symbol.namespace)
        return self.base_package.contains(symbol)

    def _compute_outgoing(self) -> list[tuple[str, str]]:
        """All (source, target) references leaving this module's namespace."""
        pairs: list[tuple[str, str]] = []
        for symbol in self.symbols:
            for target in symbol.dependencies:
                if not self.base_package.contains(target):
                    pairs.append((symbol.name, target))
        return pairs

    def get_dependency_references(
        self, modules: Modules
    ) -> list[tuple[str, str, Module]]:
        """Return ``(source, target, target_module)`` for every cross-module reference."""
        result: list[tuple[str, str, Module]] = []
        for source, target in self._outgoing.get():
            target_module = modules.get_module_by_type(target)
            if target_module is not None and target_module is not self:
                result.append((source, target, target_module))
        return result

    def _direct_dependencies(self, modules: Modules) -> list[Module]:
        seen: set[str] = set()
        result: list[Module] = []
        for _source, _target, module in self.get_dependency_references(modules):
            if module.name not in seen:
                seen.add(module.name)
                result.append(module)
        return result

    def get_dependencies(self, modules: Modules, depth: int | None = 1) -> list[Module]:
        """Return the modules this one depends on, up to *depth* hops.

        ``None`` means unbounded.  Results are de-duplicated, never include
        this module, and come in breadth-first discovery order.
        """
        if depth is not None and depth <= 0:
            return []

        visited: set[str] = {self.name}
        result: list[Module] = []
        queue: deque[tuple[Module, int]] = deque([(self, 0)])

        while queue:
            current, hops = queue.popleft()
            if depth is not None and hops >= depth:
                continue
            for dependency in current._direct_dependencies(modules):
                if dependency.name in visited:
                    continue
                visited.add(dependency.name)
                result.append(dependency)
                queue.append((dependency, hops + 1))

        return result

    def get_base_packages(
        self, modules: Modules, depth: int | None = 1
    ) -> list[Namespace]:
        """Return this module's base package and those of its dependencies."""
        return [self.base_package] + [
            m.base_package for m in self.get_dependencies(modules, depth)
        ]

    def detect_violations(self, modules: Modules) -> list[DependencyViolation]:
        """Return one violation per reference into a non-allowed module."""
        if not self.allowed_dependencies:
            return []

        for declared in sorted(self.allowed_dependencies):
            if declared != self.name and modules.get_module_by_name(declared) is None:
                logger.warning(
                    "Module '%s' declares a dependency on unknown module '%s'",
                    self.name,
                    declared,
                )

        return [
            DependencyViolation(
                module=self.name,
                target_module=target_module.name,
                source=source,
                target=target,
                allowed=self.allowed_dependencies,
            )
            for source, target, target_module in self.get_dependency_references(modules)
            if target_module.name not in self.allowed_dependencies
        ]

    def verify_dependencies(self, modules: Modules) -> None:
        """Raise if this module references a module it is not allowed to.

        The raised violation carries every further offending reference.
        """
        violations = self.detect_violations(modules)
        if violations:
            first, *rest = violations
            raise DependencyViolation(
                module=first.module,
                target_module=first.target_module,
                source=first.source,
                target=first.target,
                allowed=first.allowed,
                additional=rest,
            )
