"""Inbound/outbound address acquisition."""

from __future__ import annotations

from concurrent.futures import Future, wait
from dataclasses import dataclass
import logging
import time
from typing import Any

from ..errors import AcquisitionError
from ..workers import spawn
from .http import DIRECT_POLICY, HttpClient
from .ip_utils import looks_like_ipv6

INBOUND_IP_URL = "https://api.bilibili.com/x/web-interface/zone"
OUTBOUND_IPV4_URL = "https://api-ipv4.ip.sb/geoip"
OUTBOUND_IPV6_URL = "https://api-ipv6.ip.sb/geoip"
DEFAULT_IPV6_TIMEOUT_SECONDS = 3.0

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AddressSet:
    """Addresses seen on this run plus the raw payloads that reported them."""

    inbound: str
    outbound_v4: str
    outbound_v6: str | None = None
    inbound_raw: Any = None
    outbound_raw: Any = None
    v6_raw: Any = None

    @property
    def has_ipv6(self) -> bool:
        return self.outbound_v6 is not None


def _inbound_address(payload: Any) -> str | None:
    data = payload.get("data") if isinstance(payload, dict) else None
    addr = data.get("addr") if isinstance(data, dict) else None
    return str(addr) if addr else None


def _ip_field(payload: Any) -> str | None:
    ip = payload.get("ip") if isinstance(payload, dict) else None
    return str(ip) if ip else None


def _race_ipv6(future: Future, started_at: float, timeout_seconds: float) -> Any:
    """Return the v6 payload if it arrives before the timer, else ``None``."""
    remaining = max(0.0, timeout_seconds - (time.monotonic() - started_at))
    done, _ = wait([future], timeout=remaining)
    if future not in done:
        logger.info("IPv6 lookup lost the %.1fs race; treating as absent", timeout_seconds)
        return None
    return future.result()


def acquire_addresses(
    http: HttpClient,
    *,
    ipv6_timeout: float = DEFAULT_IPV6_TIMEOUT_SECONDS,
) -> AddressSet:
    """Fetch inbound, outbound v4 and (raced) outbound v6 addresses concurrently.

    Raises :class:`AcquisitionError` when inbound or outbound v4 is missing.
    """
    started_at = time.monotonic()
    inbound_future = spawn(http.get_json, INBOUND_IP_URL, DIRECT_POLICY, name="acquire-inbound")
    outbound_future = spawn(http.get_json, OUTBOUND_IPV4_URL, name="acquire-outbound-v4")
    v6_future = spawn(http.get_json, OUTBOUND_IPV6_URL, name="acquire-outbound-v6")

    inbound_raw = inbound_future.result()
    outbound_raw = outbound_future.result()
    v6_raw = _race_ipv6(v6_future, started_at, ipv6_timeout)

    inbound = _inbound_address(inbound_raw)
    outbound_v4 = _ip_field(outbound_raw)
    if not inbound or not outbound_v4:
        raise AcquisitionError(
            "Unable to acquire inbound or outbound IPv4 address",
            inbound=inbound,
            outbound_v4=outbound_v4,
        )

    outbound_v6 = _ip_field(v6_raw)
    if outbound_v6 and not looks_like_ipv6(outbound_v6):
        # The v6 endpoint answers over IPv4 when the host has no IPv6 route.
        logger.info("IPv6 endpoint returned %s; no IPv6 connectivity", outbound_v6)
        outbound_v6 = None

    return AddressSet(
        inbound=inbound,
        outbound_v4=outbound_v4,
        outbound_v6=outbound_v6,
        inbound_raw=inbound_raw,
        outbound_raw=outbound_raw,
        v6_raw=v6_raw if outbound_v6 else None,
    )
