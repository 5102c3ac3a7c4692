"""Residential/datacenter and broadcast/native classification of the egress IP."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re

from ..net.http import HttpClient
from .fallback import first_success

IPPURE_INFO_URL = "https://my.ippure.com/v1/info"
IPPURE_CARD_URL = "https://my.ippure.com/v1/card"

RESIDENTIAL_PATTERN = re.compile(r"住宅|[Rr]esidential")
BROADCAST_PATTERN = re.compile(r"廣播|广播|[Bb]roadcast|[Aa]nnounced")

UNKNOWN_LABEL = "Unknown"

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IPTypeAssessment:
    """``None`` on either field means the providers could not tell."""

    is_residential: bool | None = None
    is_broadcast: bool | None = None

    @property
    def type_label(self) -> str:
        if self.is_residential is None:
            return UNKNOWN_LABEL
        return "Residential IP" if self.is_residential else "Datacenter IP"

    @property
    def origin_label(self) -> str:
        if self.is_broadcast is None:
            return UNKNOWN_LABEL
        return "Broadcast IP" if self.is_broadcast else "Native IP"


UNKNOWN_IP_TYPE = IPTypeAssessment()


def _from_info(http: HttpClient) -> IPTypeAssessment | None:
    info = http.get_json(IPPURE_INFO_URL)
    residential = info.get("isResidential") if isinstance(info, dict) else None
    if not isinstance(residential, bool):
        logger.info("IPPure info has no isResidential field, trying the card page")
        return None
    broadcast = info.get("isBroadcast")
    return IPTypeAssessment(
        is_residential=residential,
        is_broadcast=broadcast if isinstance(broadcast, bool) else None,
    )


def classify_card_html(html: str) -> IPTypeAssessment:
    """Classify the IPPure card page by keyword."""
    return IPTypeAssessment(
        is_residential=bool(RESIDENTIAL_PATTERN.search(html)),
        is_broadcast=bool(BROADCAST_PATTERN.search(html)),
    )


def _from_card(http: HttpClient) -> IPTypeAssessment | None:
    html = http.get_text(IPPURE_CARD_URL)
    if not html:
        return None
    result = classify_card_html(html)
    logger.info("IPPure card classified as %s | %s", result.type_label, result.origin_label)
    return result


def resolve_ip_type(http: HttpClient) -> IPTypeAssessment:
    """Structured endpoint first, HTML card second, unknown/unknown last."""
    hit = first_success([("info", lambda: _from_info(http)), ("card", lambda: _from_card(http))])
    if hit is None:
        logger.info("Every IPPure endpoint failed")
        return UNKNOWN_IP_TYPE
    return hit[1]
