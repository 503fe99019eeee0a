"""The registry of all modules of a modulith and its global verification."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from typing import TYPE_CHECKING

from moduliths.analysis import (
    build_slice_graph,
    cycle_witnesses,
    find_cycles,
)
from moduliths.errors import (
    AggregateVerificationError,
    ConfigurationError,
    CycleViolation,
    Violation,
)
from moduliths.memo import Lazy
from moduliths.model import Symbol, SymbolUniverse
from moduliths.module import Module
from moduliths.namespace import Namespace, NamespaceTree

if TYPE_CHECKING:
    from moduliths.config import ModulithConfig
    from moduliths.importers.base import Importer

logger = logging.getLogger(__name__)

# Namespaces always imported next to the roots so their types can be
# classified; they never form modules.
FRAMEWORK_PACKAGES: tuple[str, ...] = ()


def _check_roots_disjoint(packages: list[str]) -> None:
    for outer in packages:
        for inner in packages:
            if outer != inner and Namespace(outer).contains_namespace(inner):
                raise ConfigurationError(
                    f"Root packages must not overlap: '{inner}' is nested in '{outer}'"
                )


class Modules:
    """All modules below a set of root namespaces."""

    def __init__(
        self,
        packages: Iterable[str],
        universe: SymbolUniverse,
        *,
        use_fully_qualified_module_names: bool = False,
        allowed_dependencies: Callable[[Namespace, str], Iterable[str]] | None = None,
    ):
        """Partition *universe* into one module per direct child of each root.

        *universe* is expected to be scoped already (see :meth:`of`).
        *allowed_dependencies* is called with each module's base package and
        name and returns the module names it may depend on.
        """
        root_names = sorted(dict.fromkeys(packages))
        if not root_names:
            raise ConfigurationError("At least one root package is required")
        _check_roots_disjoint(root_names)

        self.universe = universe
        self.verified = False

        tree = NamespaceTree(universe)
        self.modules: dict[str, Module] = {}

        for root in root_names:
            for base_package in tree.direct_children(root):
                name = (
                    base_package.name
                    if use_fully_qualified_module_names
                    else base_package.local_name
                )
                declared = (
                    allowed_dependencies(base_package, name)
                    if allowed_dependencies
                    else ()
                )
                module = Module(
                    base_package,
                    universe.in_namespace(base_package.name),
                    use_fully_qualified_name=use_fully_qualified_module_names,
                    allowed_dependencies=declared,
                )
                existing = self.modules.get(module.name)
                if existing is not None:
                    raise ConfigurationError(
                        f"Module name '{module.name}' is used by both "
                        f"{existing.base_package} and {module.base_package}; "
                        "enable fully qualified module names"
                    )
                self.modules[module.name] = module

        self.root_packages: list[Namespace] = [
            tree.resolve_single(root) for root in root_names
        ]
        self._owners = Lazy(self._index_owners)

        logger.debug(
            "Modules for %s: %s", root_names, [m.name for m in self.modules.values()]
        )

    @classmethod
    def of(
        cls,
        config: ModulithConfig,
        importer: Importer,
        ignored: Callable[[Symbol], bool] | None = None,
        auxiliary_packages: Iterable[str] = FRAMEWORK_PACKAGES,
    ) -> Modules:
        """Import the roots declared by *config* and build their modules.

        *auxiliary_packages* are imported alongside the roots but belong to no
        module.
        """
        ignore_patterns = config.ignored_predicate()

        def _ignored(symbol: Symbol) -> bool:
            return ignore_patterns(symbol) or (ignored is not None and ignored(symbol))

        packages = config.root_packages
        universe = importer.import_scoped(
            [*packages, *auxiliary_packages], ignored=_ignored
        )
        logger.debug("Imported %d symbols for %s", len(universe), packages)

        def _declared(base_package: Namespace, name: str) -> Iterable[str]:
            return config.allowed_dependencies_for(base_package.name, name)

        return cls(
            packages,
            universe,
            use_fully_qualified_module_names=config.use_fully_qualified_module_names,
            allowed_dependencies=_declared,
        )

    def __iter__(self) -> Iterator[Module]:
        return iter(self.modules.values())

    def __len__(self) -> int:
        return len(self.modules)

    def _index_owners(self) -> dict[str, str]:
        owners: dict[str, str] = {}
        for module in self.modules.values():
            for symbol in module.symbols:
                owners.setdefault(symbol.name, module.name)
        return owners

    def contains(self, symbol: Symbol | str) -> bool:
        return any(module.contains(symbol) for module in self.modules.values())

    def within_root_packages(self, name: str) -> bool:
        """Return True if *name* lives below any root package."""
        return any(root.contains(name) for root in self.root_packages)

    def get_module_by_name(self, name: str) -> Module | None:
        if not name:
            raise ValueError("Module name must not be empty")
        return self.modules.get(name)

    def get_module_by_type(self, symbol: Symbol | str) -> Module | None:
        """Return the module containing *symbol* (a Symbol or fully qualified name)."""
        name = symbol.name if isinstance(symbol, Symbol) else symbol
        owner = self._owners.get().get(name)
        if owner is not None:
            return self.modules[owner]
        return next((m for m in self.modules.values() if m.contains(symbol)), None)

    def get_module_by_base_package(self, name: str) -> Module | None:
        return next(
            (m for m in self.modules.values() if m.base_package.name == name), None
        )

    def _slice_of(self, name: str) -> str | None:
        module = self.get_module_by_type(name)
        return module.name if module is not None else None

    def get_dependency_graph(self) -> dict[str, list[str]]:
        """Return module name -> names of its direct dependencies."""
        return {
            module.name: [d.name for d in module.get_dependencies(self, 1)]
            for module in self.modules.values()
        }

    def detect_violations(self) -> list[Violation]:
        """Run the cycle check and every module's dependency check."""
        violations: list[Violation] = []

        graph = build_slice_graph(self.universe, self._slice_of)
        for cycle in find_cycles(graph):
            violations.append(CycleViolation(cycle, cycle_witnesses(graph, cycle)))

        for module in self.modules.values():
            violations.extend(module.detect_violations(self))

        return violations

    def verify(self) -> None:
        """Verify the module structure, raising on any violation.

        Once verification succeeded, further calls return immediately.
        """
        if self.verified:
            return

        violations = self.detect_violations()
        if violations:
            raise AggregateVerificationError(violations)

        self.verified = True
        logger.debug("Verified %d modules", len(self.modules))
