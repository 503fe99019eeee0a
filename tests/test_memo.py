"""Tests for the compute-once wrapper."""

import threading
import time

from moduliths.memo import Lazy


def test_computes_once():
    calls = []
    lazy = Lazy(lambda: calls.append(1) or len(calls))
    assert not lazy.is_computed
    assert lazy.get() == 1
    assert lazy.get() == 1
    assert lazy.is_computed
    assert calls == [1]


def test_caches_none():
    calls = []
    lazy = Lazy(lambda: calls.append(1))
    assert lazy.get() is None
    assert lazy.get() is None
    assert len(calls) == 1


def test_concurrent_readers_compute_once():
    calls = []
    barrier = threading.Barrier(8)

    def compute():
        calls.append(1)
        time.sleep(0.05)
        return "value"

    lazy = Lazy(compute)
    results = []

    def read():
        barrier.wait()
        results.append(lazy.get())

    threads = [threading.Thread(target=read) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == ["value"] * 8
    assert len(calls) == 1
