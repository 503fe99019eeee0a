"""Language-agnostic data model for the imported symbol universe."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Symbol:
    """A type (class, interface, function, ...) and what it refers to."""

    name: str  # fully qualified, e.g. "com.acme.orders.Order"
    namespace: str  # e.g. "com.acme.orders"
    references: tuple[str, ...] = field(default_factory=tuple)
    supertypes: tuple[str, ...] = field(default_factory=tuple)
    is_test: bool = False

    @classmethod
    def of(
        cls,
        name: str,
        references: Iterable[str] = (),
        supertypes: Iterable[str] = (),
        *,
        is_test: bool = False,
    ) -> Symbol:
        """Create a symbol whose namespace is everything before the last dot."""
        namespace = name.rsplit(".", 1)[0] if "." in name else ""
        return cls(
            name=name,
            namespace=namespace,
            references=tuple(references),
            supertypes=tuple(supertypes),
            is_test=is_test,
        )

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    @property
    def dependencies(self) -> list[str]:
        """Supertypes followed by references, de-duplicated, without self."""
        seen: set[str] = {self.name}
        result: list[str] = []
        for target in (*self.supertypes, *self.references):
            if target not in seen:
                seen.add(target)
                result.append(target)
        return result


class SymbolUniverse:
    """Immutable, ordered set of symbols indexed by fully qualified name."""

    def __init__(self, symbols: Iterable[Symbol] = ()):
        self._symbols: dict[str, Symbol] = {}
        for symbol in symbols:
            self._symbols.setdefault(symbol.name, symbol)

    def __iter__(self) -> Iterator[Symbol]:
        return iter(self._symbols.values())

    def __len__(self) -> int:
        return len(self._symbols)

    def __contains__(self, name: object) -> bool:
        return name in self._symbols

    def __repr__(self) -> str:
        return f"SymbolUniverse({len(self)} symbols)"

    def get(self, name: str) -> Symbol | None:
        return self._symbols.get(name)

    def that(self, predicate: Callable[[Symbol], bool]) -> SymbolUniverse:
        """Return a new universe holding only the symbols matching *predicate*."""
        return SymbolUniverse(s for s in self if predicate(s))

    def in_namespace(self, namespace: str) -> list[Symbol]:
        """Return the symbols at or below *namespace*."""
        prefix = namespace + "."
        return [
            s
            for s in self
            if s.namespace == namespace or s.namespace.startswith(prefix)
        ]
