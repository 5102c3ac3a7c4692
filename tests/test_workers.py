"""Tests for daemon worker futures."""

from __future__ import annotations

import threading

import pytest

from ipsentry.workers import spawn


def test_result_is_delivered():
    assert spawn(lambda a, b=0: a + b, 2, b=3, name="adder").result(timeout=1) == 5


def test_exception_is_delivered():
    def boom():
        raise ValueError("bad payload")

    with pytest.raises(ValueError, match="bad payload"):
        spawn(boom, name="boom").result(timeout=1)


def test_runs_on_named_daemon_thread():
    future = spawn(lambda: (threading.current_thread().name, threading.current_thread().daemon), name="geo-test")
    assert future.result(timeout=1) == ("geo-test", True)
