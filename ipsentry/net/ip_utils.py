"""IP helpers for address classification and display."""

from __future__ import annotations


def looks_like_ipv6(value: str | None) -> bool:
    """Return ``True`` when ``value`` has IPv6 shape (contains a colon)."""
    return bool(value) and ":" in str(value)


def mask_ip(value: str | None) -> str | None:
    """Hide the middle of an address: ``1.2.3.4`` -> ``1.*.*.4``, ``2001:db8::1`` -> ``2001:*:*:1``."""
    if not value:
        return value
    if ":" in value:
        parts = value.split(":")
        if len(parts) <= 2:
            return value
        return ":".join([parts[0], *("*" for _ in parts[1:-1]), parts[-1]])
    parts = value.split(".")
    if len(parts) != 4:
        return value
    return f"{parts[0]}.*.*.{parts[3]}"
