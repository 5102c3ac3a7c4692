"""Watch mode: periodic panel refresh and local network-change polling."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import socket
from threading import Lock
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
import psutil

PANEL_JOB_ID = "panel_refresh"
CHANGE_JOB_ID = "network_change_poll"
DEFAULT_PANEL_INTERVAL_SECONDS = 600
DEFAULT_POLL_INTERVAL_SECONDS = 5

Fingerprint = frozenset[tuple[str, str]]

logger = logging.getLogger(__name__)


def interface_fingerprint() -> Fingerprint:
    """Return ``(interface, address)`` pairs for IPv4/IPv6 addresses on interfaces that are up."""
    stats = psutil.net_if_stats()
    entries: set[tuple[str, str]] = set()
    for name, addresses in psutil.net_if_addrs().items():
        stat = stats.get(name)
        if stat is not None and not stat.isup:
            continue
        for item in addresses:
            if item.family in (socket.AF_INET, socket.AF_INET6):
                entries.add((name, item.address))
    return frozenset(entries)


class NetworkChangeWatcher:
    """Fires ``on_change`` when the local interface fingerprint differs from the last poll."""

    def __init__(
        self,
        on_change: Callable[[], object],
        *,
        fingerprint: Callable[[], Fingerprint] = interface_fingerprint,
    ) -> None:
        self.on_change = on_change
        self.fingerprint = fingerprint
        self._last: Fingerprint | None = None

    def poll(self) -> bool:
        try:
            current = self.fingerprint()
        except (OSError, psutil.Error) as exc:
            logger.warning("Interface listing failed: %s", exc)
            return False

        if self._last is None:
            self._last = current
            return False
        if current == self._last:
            return False

        logger.info("Local interfaces changed (%d -> %d addresses)", len(self._last), len(current))
        self._last = current
        self.on_change()
        return True


def serialized(func: Callable[[], object], lock: Lock) -> Callable[[], None]:
    """Wrap ``func`` so concurrent scheduler jobs never run checks at the same time."""

    def runner() -> None:
        with lock:
            func()

    return runner


def build_scheduler() -> BackgroundScheduler:
    """Create and return a background scheduler instance."""
    return BackgroundScheduler()


def schedule_watch(
    scheduler: BackgroundScheduler,
    *,
    run_panel: Callable[[], object],
    run_event: Callable[[], object],
    panel_interval: float = DEFAULT_PANEL_INTERVAL_SECONDS,
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    fingerprint: Callable[[], Fingerprint] = interface_fingerprint,
) -> NetworkChangeWatcher:
    """Register the panel refresh and change-poll jobs; the panel runs once immediately."""
    lock = Lock()
    watcher = NetworkChangeWatcher(serialized(run_event, lock), fingerprint=fingerprint)
    scheduler.add_job(
        serialized(run_panel, lock),
        "interval",
        seconds=panel_interval,
        id=PANEL_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(timezone.utc),
    )
    scheduler.add_job(
        watcher.poll,
        "interval",
        seconds=poll_interval,
        id=CHANGE_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info("Watching: panel every %ss, interface poll every %ss", panel_interval, poll_interval)
    return watcher
