"""Recent-request introspection used to infer the routing policy of probe requests."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
import logging
from threading import Lock
from typing import Any, Protocol

import requests

logger = logging.getLogger(__name__)

DEFAULT_LOG_SIZE = 200


@dataclass(frozen=True, slots=True)
class RequestRecord:
    url: str
    policy_name: str


class TrafficLog(Protocol):
    """Source of recent outbound requests, newest first."""

    def recent(self, limit: int) -> list[RequestRecord]:
        """Return at most ``limit`` records, newest first."""


class RequestLog:
    """In-process log fed by :class:`ipsentry.net.http.HttpClient`."""

    def __init__(self, maxlen: int = DEFAULT_LOG_SIZE) -> None:
        self._records: deque[RequestRecord] = deque(maxlen=maxlen)
        self._lock = Lock()

    def record(self, url: str, policy_name: str) -> None:
        with self._lock:
            self._records.append(RequestRecord(url=url, policy_name=policy_name))

    def recent(self, limit: int) -> list[RequestRecord]:
        with self._lock:
            items = list(self._records)
        items.reverse()
        return items[: max(0, int(limit))]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


class SurgeTrafficLog:
    """Reads ``/v1/requests/recent`` from a Surge-compatible HTTP API."""

    def __init__(self, base_url: str, api_key: str = "", *, timeout_seconds: float = 2.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    def _fetch(self) -> Any:
        headers = {"X-Key": self.api_key} if self.api_key else {}
        response = requests.get(
            f"{self.base_url}/v1/requests/recent",
            headers=headers,
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    def recent(self, limit: int) -> list[RequestRecord]:
        try:
            payload = self._fetch()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Traffic API unavailable: %s", exc)
            return []

        entries = payload.get("requests") if isinstance(payload, dict) else None
        records: list[RequestRecord] = []
        for entry in entries or []:
            if not isinstance(entry, dict):
                continue
            url = entry.get("URL") or entry.get("url")
            policy = entry.get("policyName")
            if url and policy:
                records.append(RequestRecord(url=str(url), policy_name=str(policy)))
        return records[: max(0, int(limit))]
