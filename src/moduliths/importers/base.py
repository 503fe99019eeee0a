"""Importer protocol — all symbol importers conform to this interface."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Protocol

from moduliths.model import Symbol, SymbolUniverse
from moduliths.namespace import Namespace


class Importer(Protocol):
    """Protocol for symbol universe importers."""

    def import_scoped(
        self,
        packages: Iterable[str],
        ignored: Callable[[Symbol], bool] | None = None,
    ) -> SymbolUniverse:
        """Return the production symbols at or below *packages*, minus *ignored*."""
        ...


def scope(
    symbols: Iterable[Symbol],
    packages: Iterable[str],
    ignored: Callable[[Symbol], bool] | None = None,
    auxiliary_namespaces: Iterable[str] = (),
) -> SymbolUniverse:
    """Filter *symbols* down to the requested namespaces.

    Auxiliary namespaces are always imported in addition to *packages*; test
    symbols are always dropped.
    """
    roots = [Namespace(p) for p in (*packages, *auxiliary_namespaces)]

    def _keep(symbol: Symbol) -> bool:
        if symbol.is_test:
            return False
        if not any(r.contains_namespace(symbol.namespace) for r in roots):
            return False
        return ignored is None or not ignored(symbol)

    return SymbolUniverse(s for s in symbols if _keep(s))


class InMemoryImporter:
    """Serve a fixed, synthetic set of symbols."""

    def __init__(
        self,
        symbols: Iterable[Symbol],
        *,
        auxiliary_namespaces: Iterable[str] = (),
    ):
        self._symbols = list(symbols)
        self._auxiliary = tuple(auxiliary_namespaces)

    def import_scoped(
        self,
        packages: Iterable[str],
        ignored: Callable[[Symbol], bool] | None = None,
    ) -> SymbolUniverse:
        return scope(self._symbols, packages, ignored, self._auxiliary)
