"""Compute-once wrapper for derived values."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")

_UNSET = object()


class Lazy(Generic[T]):
    """Evaluate *compute* on first access and cache the result forever.

    Concurrent first readers block on a lock so the computation runs at most
    once; later reads skip the lock entirely.
    """

    def __init__(self, compute: Callable[[], T]):
        self._compute = compute
        self._value: object = _UNSET
        self._lock = threading.Lock()

    def get(self) -> T:
        value = self._value
        if value is _UNSET:
            with self._lock:
                value = self._value
                if value is _UNSET:
                    value = self._compute()
                    self._value = value
        return value  # type: ignore[return-value]

    @property
    def is_computed(self) -> bool:
        return self._value is not _UNSET
