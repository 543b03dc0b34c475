"""Tests for the bounded fan-out helper."""

import threading
import time

import pytest

from modelmatch.errors import NotFoundError
from modelmatch.fanout import fan_out


def test_results_keyed_by_item():
    assert fan_out(lambda x: x * 2, [1, 2, 3], max_workers=2) == {1: 2, 2: 4, 3: 6}


def test_duplicates_are_called_once():
    calls = []
    lock = threading.Lock()

    def record(item):
        with lock:
            calls.append(item)
        return item

    fan_out(record, ["a", "b", "a"], max_workers=4)
    assert sorted(calls) == ["a", "b"]


def test_client_errors_are_captured():
    def lookup(item):
        if item == "gone":
            raise NotFoundError("gone")
        return item

    results = fan_out(lookup, ["ok", "gone"], max_workers=2)
    assert results["ok"] == "ok"
    assert isinstance(results["gone"], NotFoundError)


def test_other_errors_propagate():
    def broken(item):
        raise RuntimeError("bug")

    with pytest.raises(RuntimeError):
        fan_out(broken, [1], max_workers=1)


def test_parallelism_is_bounded():
    active = 0
    peak = 0
    lock = threading.Lock()

    def work(item):
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.01)
        with lock:
            active -= 1

    fan_out(work, range(12), max_workers=3)
    assert peak <= 3


def test_empty_input():
    assert fan_out(lambda x: x, [], max_workers=4) == {}
