"""Tests for the shared scatter/gather helper."""

import threading
import time

from sapnwrfc_exporter.engine.fanout import parallel_map


def test_maps_all_items_and_drops_none():
    result = parallel_map(lambda x: None if x % 2 else x * 10, range(6))
    assert sorted(result) == [0, 20, 40]


def test_empty_input():
    assert parallel_map(lambda x: x, []) == []


def test_runs_concurrently():
    barrier = threading.Barrier(4, timeout=2)

    def wait_for_all(x):
        barrier.wait()
        return x

    assert sorted(parallel_map(wait_for_all, range(4))) == [0, 1, 2, 3]


def test_failing_task_is_logged_and_skipped(caplog):
    def boom(x):
        if x == 1:
            raise RuntimeError("boom")
        return x

    assert sorted(parallel_map(boom, range(3), name="test")) == [0, 2]
    assert "test: task failed" in caplog.text


def test_deadline_abandons_slow_tasks():
    release = threading.Event()

    def work(x):
        if x == "slow":
            release.wait(5)
        return x

    start = time.monotonic()
    try:
        result = parallel_map(work, ["fast", "slow"], deadline=time.monotonic() + 0.3)
    finally:
        release.set()

    assert result == ["fast"]
    assert time.monotonic() - start < 2


def test_nested_calls_do_not_deadlock():
    def outer(x):
        return sum(parallel_map(lambda y: x * y, range(5)))

    assert sorted(parallel_map(outer, range(10))) == [10 * x for x in range(10)]
