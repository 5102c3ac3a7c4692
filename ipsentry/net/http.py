"""HTTP fetch helpers with per-request routing policies."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import requests

from .traffic import RequestLog

DIRECT_POLICY = "DIRECT"
DEFAULT_TIMEOUT_SECONDS = 5.0
USER_AGENT = "ipsentry/1.0"

logger = logging.getLogger(__name__)


class HttpClient:
    """JSON and raw-text GET helpers that never raise on transport failure.

    ``policies`` maps a policy name to a proxy URL; ``None`` (or the ``DIRECT``
    policy) bypasses every proxy. Each request is recorded in ``request_log``
    under the policy that carried it.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        policies: Mapping[str, str | None] | None = None,
        default_policy: str = DIRECT_POLICY,
        request_log: RequestLog | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.policies: dict[str, str | None] = {DIRECT_POLICY: None, **dict(policies or {})}
        self.default_policy = default_policy
        self.request_log = request_log if request_log is not None else RequestLog()
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)

    def _proxies_for(self, policy: str) -> dict[str, str | None] | None:
        if policy not in self.policies:
            logger.warning("Unknown policy %s, using session defaults", policy)
            return None
        proxy_url = self.policies[policy]
        return {"http": proxy_url, "https": proxy_url}

    def _get(self, url: str, policy: str | None) -> requests.Response:
        policy_name = policy or self.default_policy
        self.request_log.record(url, policy_name)
        response = self.session.get(
            url,
            timeout=self.timeout_seconds,
            proxies=self._proxies_for(policy_name),
        )
        if response.status_code >= 400:
            logger.debug("%s answered HTTP %s", url, response.status_code)
        return response

    def get_json(self, url: str, policy: str | None = None) -> Any | None:
        """Return the decoded JSON body, or ``None`` on any transport or decode failure."""
        try:
            return self._get(url, policy).json()
        except requests.RequestException as exc:
            logger.info("GET %s failed: %s", url, exc)
        except ValueError:
            logger.info("GET %s returned a non-JSON body", url)
        return None

    def get_text(self, url: str, policy: str | None = None) -> str | None:
        """Return the raw body, or ``None`` on transport failure."""
        try:
            return self._get(url, policy).text or None
        except requests.RequestException as exc:
            logger.info("GET %s failed: %s", url, exc)
            return None

    def close(self) -> None:
        self.session.close()


def build_http_client(
    *,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    egress_proxy: str = "",
    egress_policy: str = "Proxy",
    request_log: RequestLog | None = None,
) -> HttpClient:
    """Client whose default route is ``egress_policy`` when a proxy URL is configured."""
    policies: dict[str, str | None] = {}
    default_policy = DIRECT_POLICY
    if egress_proxy:
        policies[egress_policy] = egress_proxy
        default_policy = egress_policy
    return HttpClient(
        timeout_seconds=timeout_seconds,
        policies=policies,
        default_policy=default_policy,
        request_log=request_log,
    )
