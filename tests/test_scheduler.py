"""Tests for watch-mode scheduling and interface-change polling."""

from __future__ import annotations

from threading import Lock

import psutil

from ipsentry.scheduler.jobs import (
    CHANGE_JOB_ID,
    PANEL_JOB_ID,
    NetworkChangeWatcher,
    build_scheduler,
    schedule_watch,
    serialized,
)


class FingerprintSequence:
    def __init__(self, *values):
        self.values = list(values)

    def __call__(self):
        value = self.values.pop(0)
        if isinstance(value, Exception):
            raise value
        return frozenset(value)


class TestNetworkChangeWatcher:
    def test_first_poll_sets_baseline(self):
        fired: list[int] = []
        watcher = NetworkChangeWatcher(lambda: fired.append(1), fingerprint=FingerprintSequence({("en0", "10.0.0.2")}))

        assert not watcher.poll()
        assert fired == []

    def test_fires_only_on_difference(self):
        fired: list[int] = []
        sequence = FingerprintSequence(
            {("en0", "10.0.0.2")},
            {("en0", "10.0.0.2")},
            {("en0", "10.0.0.3")},
            {("en0", "10.0.0.3")},
        )
        watcher = NetworkChangeWatcher(lambda: fired.append(1), fingerprint=sequence)

        assert [watcher.poll() for _ in range(4)] == [False, False, True, False]
        assert fired == [1]

    def test_listing_errors_are_not_changes(self):
        fired: list[int] = []
        sequence = FingerprintSequence(
            {("en0", "10.0.0.2")},
            OSError("boom"),
            psutil.Error(),
            {("en0", "10.0.0.2")},
        )
        watcher = NetworkChangeWatcher(lambda: fired.append(1), fingerprint=sequence)

        assert [watcher.poll() for _ in range(4)] == [False, False, False, False]
        assert fired == []


def test_serialized_holds_lock():
    lock = Lock()
    seen: list[bool] = []
    serialized(lambda: seen.append(lock.locked()), lock)()

    assert seen == [True]
    assert not lock.locked()


def test_schedule_watch_registers_jobs():
    scheduler = build_scheduler()
    watcher = schedule_watch(
        scheduler,
        run_panel=lambda: None,
        run_event=lambda: None,
        panel_interval=60,
        poll_interval=2,
        fingerprint=lambda: frozenset(),
    )

    panel_job = scheduler.get_job(PANEL_JOB_ID)
    poll_job = scheduler.get_job(CHANGE_JOB_ID)
    assert panel_job is not None and poll_job is not None
    assert panel_job.trigger.interval.total_seconds() == 60
    assert poll_job.trigger.interval.total_seconds() == 2
    assert poll_job.func == watcher.poll
