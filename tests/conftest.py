"""Shared fakes for provider, storage and sink collaborators."""

from __future__ import annotations

import threading
import time
from typing import Any

import pytest

from ipsentry.net.traffic import RequestLog
from ipsentry.storage import PreferenceStore


class FakeHttp:
    """Stands in for ``HttpClient``: canned JSON/text per URL, optional per-URL delay."""

    def __init__(
        self,
        json_routes: dict[str, Any] | None = None,
        text_routes: dict[str, str] | None = None,
        *,
        delays: dict[str, float] | None = None,
        default_policy: str = "Proxy",
    ) -> None:
        self.json_routes = dict(json_routes or {})
        self.text_routes = dict(text_routes or {})
        self.delays = dict(delays or {})
        self.default_policy = default_policy
        self.request_log = RequestLog()
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def _hit(self, url: str, policy: str | None) -> None:
        with self._lock:
            self.calls.append(url)
        self.request_log.record(url, policy or self.default_policy)
        delay = self.delays.get(url)
        if delay:
            time.sleep(delay)

    def get_json(self, url: str, policy: str | None = None) -> Any:
        self._hit(url, policy)
        return self.json_routes.get(url)

    def get_text(self, url: str, policy: str | None = None) -> str | None:
        self._hit(url, policy)
        return self.text_routes.get(url)

    def close(self) -> None:
        pass

    def called(self, fragment: str) -> bool:
        return any(fragment in url for url in self.calls)


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    def notify(self, title: str, subtitle: str, body: str) -> None:
        self.sent.append((title, subtitle, body))


class RecordingDisplay:
    def __init__(self) -> None:
        self.shown: list[Any] = []

    def show(self, result: Any) -> None:
        self.shown.append(result)


@pytest.fixture
def store(tmp_path) -> PreferenceStore:
    return PreferenceStore(tmp_path / "state.db")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def display() -> RecordingDisplay:
    return RecordingDisplay()
