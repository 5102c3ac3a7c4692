"""Fraud/risk score resolution across reputation providers, cached by address."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import re
from typing import Any

from ..net.http import HttpClient
from ..storage import RISK_CACHE_KEY, PreferenceStore
from .fallback import first_success, first_success_concurrent

IPQS_URL = "https://ipqualityscore.com/api/json/ip/{key}/{ip}?strictness=1"
PROXYCHECK_URL = "https://proxycheck.io/v2/{ip}?risk=1&vpn=1"
SCAMALYTICS_URL = "https://scamalytics.com/ip/{ip}"

DEFAULT_SCORE = 50
SCAMALYTICS_SCORE_PATTERN = re.compile(r"Fraud Score[^0-9]*([0-9]{1,3})", re.IGNORECASE)

logger = logging.getLogger(__name__)


class RiskSource(str, Enum):
    IPQS = "IPQS"
    PROXYCHECK = "ProxyCheck"
    SCAMALYTICS = "Scamalytics"
    DEFAULT = "Default"
    CACHE = "Cache"


@dataclass(frozen=True, slots=True)
class RiskAssessment:
    score: int
    source: RiskSource
    from_cache: bool = False


@dataclass(frozen=True, slots=True)
class RiskLevel:
    max_score: int
    label: str
    color: str


RISK_LEVELS = (
    RiskLevel(15, "Pristine IP", "#0D6E3D"),
    RiskLevel(25, "Clean IP", "#2E9F5E"),
    RiskLevel(40, "Normal IP", "#8BC34A"),
    RiskLevel(50, "Slight risk IP", "#FFC107"),
    RiskLevel(70, "Moderate risk IP", "#FF9800"),
    RiskLevel(100, "High risk IP", "#F44336"),
)


def risk_level(score: int) -> RiskLevel:
    """Return the first level whose upper bound covers ``score``."""
    for level in RISK_LEVELS:
        if score <= level.max_score:
            return level
    return RISK_LEVELS[-1]


def _coerce_score(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    if number != number:  # NaN
        return None
    return max(0, min(100, round(number)))


def parse_scamalytics_score(html: str | None) -> int | None:
    """Extract the fraud score from a Scamalytics page."""
    if not html:
        return None
    match = SCAMALYTICS_SCORE_PATTERN.search(html)
    return _coerce_score(match.group(1)) if match else None


def _ipqs_lookup(http: HttpClient, ip: str, api_key: str) -> int | None:
    data = http.get_json(IPQS_URL.format(key=api_key, ip=ip))
    if isinstance(data, dict) and data.get("success") is True:
        score = _coerce_score(data.get("fraud_score"))
        if score is not None:
            return score
    if isinstance(data, dict):
        logger.info("IPQS fallback: success=%s message=%s", data.get("success"), data.get("message", ""))
    else:
        logger.info("IPQS fallback: request failed")
    return None


def _proxycheck_lookup(http: HttpClient, ip: str) -> int | None:
    data = http.get_json(PROXYCHECK_URL.format(ip=ip))
    entry = data.get(ip) if isinstance(data, dict) else None
    score = _coerce_score(entry.get("risk")) if isinstance(entry, dict) else None
    if score is None:
        logger.info("ProxyCheck gave no risk for %s: %s", ip, str(data)[:100] if data else "request failed")
    return score


def _scamalytics_lookup(http: HttpClient, ip: str) -> int | None:
    html = http.get_text(SCAMALYTICS_URL.format(ip=ip))
    score = parse_scamalytics_score(html)
    if score is None:
        logger.info("Scamalytics gave no score for %s: %s", ip, "parse failed" if html else "request failed")
    return score


class RiskResolver:
    """Cache, then IPQS (with a key), then ProxyCheck and Scamalytics in parallel, then 50."""

    def __init__(self, http: HttpClient, store: PreferenceStore, *, ipqs_key: str = "") -> None:
        self.http = http
        self.store = store
        self.ipqs_key = ipqs_key

    def _cached(self, ip: str) -> RiskAssessment | None:
        entry = self.store.get_preference(RISK_CACHE_KEY)
        if not isinstance(entry, dict) or entry.get("ip") != ip:
            return None
        score = _coerce_score(entry.get("score"))
        if score is None:
            return None
        try:
            source = RiskSource(str(entry.get("source")))
        except ValueError:
            source = RiskSource.CACHE
        logger.info("Risk score cache hit: %s%% (%s)", score, source.value)
        return RiskAssessment(score=score, source=source, from_cache=True)

    def _save(self, ip: str, score: int, source: RiskSource) -> RiskAssessment:
        self.store.set_preference(RISK_CACHE_KEY, {"ip": ip, "score": score, "source": source.value})
        logger.info("Risk score cached: %s%% (%s)", score, source.value)
        return RiskAssessment(score=score, source=source)

    def resolve(self, ip: str) -> RiskAssessment:
        cached = self._cached(ip)
        if cached is not None:
            return cached

        hit = None
        if self.ipqs_key:
            hit = first_success([(RiskSource.IPQS, lambda: _ipqs_lookup(self.http, ip, self.ipqs_key))])
        if hit is None:
            hit = first_success_concurrent(
                [
                    (RiskSource.PROXYCHECK, lambda: _proxycheck_lookup(self.http, ip)),
                    (RiskSource.SCAMALYTICS, lambda: _scamalytics_lookup(self.http, ip)),
                ]
            )
        if hit is None:
            return self._save(ip, DEFAULT_SCORE, RiskSource.DEFAULT)
        source, score = hit
        return self._save(ip, score, source)
