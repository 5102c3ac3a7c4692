"""Ordered "first success wins" fallback chains."""

from __future__ import annotations

import logging
from typing import Callable, Sequence, TypeVar

from ..workers import spawn

T = TypeVar("T")

Tier = tuple[str, Callable[[], T | None]]

logger = logging.getLogger(__name__)


def first_success(tiers: Sequence[Tier[T]]) -> tuple[str, T] | None:
    """Run ``tiers`` in order and return ``(name, value)`` of the first non-``None`` result."""
    for name, attempt in tiers:
        value = attempt()
        if value is not None:
            return name, value
        logger.debug("Tier %s produced nothing, falling back", name)
    return None


def first_success_concurrent(tiers: Sequence[Tier[T]]) -> tuple[str, T] | None:
    """Start every tier at once but consume results in tier order.

    A later tier never wins over an earlier one that succeeds, whichever finishes first.
    """
    futures = [(name, spawn(attempt, name=f"tier-{name}")) for name, attempt in tiers]
    for name, future in futures:
        value = future.result()
        if value is not None:
            return name, value
        logger.debug("Tier %s produced nothing, falling back", name)
    return None
