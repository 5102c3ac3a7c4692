"""Persistence for run-to-run state and check history."""

from .preferences import (
    DB_PATH,
    LAST_POLICY_KEY,
    LAST_SNAPSHOT_KEY,
    RISK_CACHE_KEY,
    SETTINGS_KEY,
    PreferenceStore,
)

__all__ = [
    "DB_PATH",
    "LAST_POLICY_KEY",
    "LAST_SNAPSHOT_KEY",
    "RISK_CACHE_KEY",
    "SETTINGS_KEY",
    "PreferenceStore",
]
