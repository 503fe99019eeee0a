"""Dotted namespaces and the tree of namespaces found in a symbol universe."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from moduliths.errors import ConfigurationError
from moduliths.model import SymbolUniverse

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class Namespace:
    """A dotted path such as ``com.acme.orders``."""

    name: str

    @property
    def local_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    @property
    def parent(self) -> Namespace | None:
        if "." not in self.name:
            return None
        return Namespace(self.name.rsplit(".", 1)[0])

    def contains(self, fully_qualified_name: str) -> bool:
        """Return True if *fully_qualified_name* lives in this namespace or below.

        Matches whole segments only: ``com.acme.orders`` does not contain
        ``com.acme.ordersx.Bar``.
        """
        return fully_qualified_name.startswith(self.name + ".")

    def contains_namespace(self, other: Namespace | str) -> bool:
        """Return True if *other* equals this namespace or is nested inside it."""
        other_name = other.name if isinstance(other, Namespace) else other
        return other_name == self.name or self.contains(other_name)

    def __str__(self) -> str:
        return self.name


class NamespaceTree:
    """Every namespace that holds at least one symbol, directly or below."""

    def __init__(self, universe: SymbolUniverse):
        self._populated: set[str] = set()
        for symbol in universe:
            parts = symbol.namespace.split(".") if symbol.namespace else []
            for i in range(1, len(parts) + 1):
                self._populated.add(".".join(parts[:i]))
        logger.debug("Namespace tree: %d populated namespaces", len(self._populated))

    def __contains__(self, namespace: object) -> bool:
        return namespace in self._populated

    def resolve_single(self, namespace: str) -> Namespace:
        """Return the node for *namespace*, which must hold symbols."""
        if namespace not in self._populated:
            raise ConfigurationError(
                f"No types found in or below namespace '{namespace}'"
            )
        return Namespace(namespace)

    def direct_children(self, namespace: str) -> list[Namespace]:
        """Return the populated namespaces exactly one segment below *namespace*."""
        depth = namespace.count(".") + 1
        prefix = namespace + "."
        return [
            Namespace(name)
            for name in sorted(self._populated)
            if name.startswith(prefix) and name.count(".") == depth
        ]

    @staticmethod
    def contains(namespace: str, fully_qualified_name: str) -> bool:
        return Namespace(namespace).contains(fully_qualified_name)
