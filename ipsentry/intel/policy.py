"""Infer which routing policy carried the outbound probe requests."""

from __future__ import annotations

import logging
import re
import time
from typing import Callable

from ..net.traffic import TrafficLog
from ..storage import LAST_POLICY_KEY, PreferenceStore
from .fallback import first_success

UNKNOWN_POLICY = "Unknown"
PROBE_URL_PATTERN = re.compile(r"(api(-ipv4)?\.ip\.sb|ipinfo\.io)", re.IGNORECASE)
FIRST_SEARCH_LIMIT = 10
RETRY_SEARCH_LIMIT = 5
DEFAULT_RETRY_DELAY_SECONDS = 0.5

logger = logging.getLogger(__name__)


def find_policy_in_recent(traffic: TrafficLog, limit: int, pattern: re.Pattern[str] = PROBE_URL_PATTERN) -> str | None:
    """Return the policy of the newest request among ``limit`` whose URL matches ``pattern``."""
    for record in traffic.recent(limit)[:limit]:
        if pattern.search(record.url):
            return record.policy_name or None
    return None


def discover_policy(
    traffic: TrafficLog,
    store: PreferenceStore,
    *,
    retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Search the traffic log twice, then fall back to the last stored policy, then ``Unknown``."""

    def retry() -> str | None:
        logger.info("No policy record yet, retrying in %.1fs", retry_delay)
        sleep(retry_delay)
        return find_policy_in_recent(traffic, RETRY_SEARCH_LIMIT)

    hit = first_success(
        [
            ("recent", lambda: find_policy_in_recent(traffic, FIRST_SEARCH_LIMIT)),
            ("retry", retry),
        ]
    )
    if hit is not None:
        tier, policy = hit
        logger.info("Found proxy policy %s (%s search)", policy, tier)
        store.set_preference(LAST_POLICY_KEY, policy)
        return policy

    stored = store.get_preference(LAST_POLICY_KEY)
    if isinstance(stored, str) and stored:
        logger.info("Using last stored policy %s", stored)
        return stored

    logger.info("No policy information available")
    return UNKNOWN_POLICY
