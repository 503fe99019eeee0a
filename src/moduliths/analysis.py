"""Module-level graph analysis (slice graph, cycle detection)."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from moduliths.model import Symbol

# source slice -> target slice -> first witnessing (source symbol, target symbol)
SliceGraph = dict[str, dict[str, tuple[str, str]]]


def build_slice_graph(
    symbols: Iterable[Symbol],
    slice_of: Callable[[str], str | None],
) -> SliceGraph:
    """Project symbol references onto slices.

    *slice_of* maps a fully qualified name to its slice (module name) or None
    for names outside every slice; those are dropped.  Edges within a single
    slice are dropped as well.
    """
    graph: SliceGraph = {}
    for symbol in symbols:
        source_slice = slice_of(symbol.name)
        if source_slice is None:
            continue
        edges = graph.setdefault(source_slice, {})
        for target in symbol.dependencies:
            target_slice = slice_of(target)
            if target_slice is None or target_slice == source_slice:
                continue
            edges.setdefault(target_slice, (symbol.name, target))
            graph.setdefault(target_slice, {})
    return graph


# Upper bound on reported cycles per strongly-connected component.
MAX_CYCLES_PER_COMPONENT = 100


def _components(graph: SliceGraph) -> list[list[str]]:
    """Group mutually reachable slices (Tarjan); singletons are left out."""
    order: dict[str, int] = {}
    low: dict[str, int] = {}
    pending: list[str] = []
    pending_set: set[str] = set()
    groups: list[list[str]] = []

    def _connect(v: str) -> None:
        order[v] = low[v] = len(order)
        pending.append(v)
        pending_set.add(v)

        for w in graph[v]:
            if w not in order:
                _connect(w)
                low[v] = min(low[v], low[w])
            elif w in pending_set:
                low[v] = min(low[v], order[w])

        if low[v] != order[v]:
            return
        group: list[str] = []
        while True:
            w = pending.pop()
            pending_set.discard(w)
            group.append(w)
            if w == v:
                break
        if len(group) > 1:
            groups.append(group)

    for v in graph:
        if v not in order:
            _connect(v)
    return groups


def _cycles_in(
    graph: SliceGraph, component: list[str], limit: int
) -> list[list[str]]:
    """Enumerate the elementary cycles of one component.

    Each cycle is rooted at its member that comes first in *graph* order and
    only passes through later members, so every cycle is found exactly once.
    """
    members = set(component)
    rank = {v: i for i, v in enumerate(v for v in graph if v in members)}
    found: list[list[str]] = []

    for start in sorted(component, key=rank.__getitem__):
        allowed = {v for v in component if rank[v] > rank[start]}
        path = [start]
        on_path = {start}

        def _walk(v: str) -> None:
            for w in graph[v]:
                if len(found) >= limit:
                    return
                if w == start:
                    found.append(list(path))
                elif w in allowed and w not in on_path:
                    path.append(w)
                    on_path.add(w)
                    _walk(w)
                    path.pop()
                    on_path.discard(w)

        _walk(start)
    return found


def find_cycles(
    graph: SliceGraph, limit: int = MAX_CYCLES_PER_COMPONENT
) -> list[list[str]]:
    """Return every elementary cycle of *graph*, at most *limit* per component.

    A cycle lists slices in traversal order; its last slice depends on the
    first one again.
    """
    cycles: list[list[str]] = []
    for component in _components(graph):
        cycles.extend(_cycles_in(graph, component, limit))
    return cycles


def cycle_witnesses(
    graph: SliceGraph, cycle: list[str]
) -> list[tuple[str, str, str, str]]:
    """Return ``(source_slice, target_slice, source, target)`` for each cycle edge."""
    witnesses: list[tuple[str, str, str, str]] = []
    for i, source_slice in enumerate(cycle):
        target_slice = cycle[(i + 1) % len(cycle)]
        source, target = graph[source_slice][target_slice]
        witnesses.append((source_slice, target_slice, source, target))
    return witnesses
