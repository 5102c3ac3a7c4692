"""Network-change detection against the last persisted snapshot."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

from ..net.addresses import AddressSet
from ..storage import LAST_SNAPSHOT_KEY, PreferenceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NetworkSnapshot:
    inbound: str
    outbound_v4: str
    outbound_v6: str | None = None

    @classmethod
    def from_addresses(cls, addresses: AddressSet) -> NetworkSnapshot:
        return cls(inbound=addresses.inbound, outbound_v4=addresses.outbound_v4, outbound_v6=addresses.outbound_v6)

    @classmethod
    def from_stored(cls, value: Any) -> NetworkSnapshot | None:
        if not isinstance(value, dict):
            return None
        inbound, outbound_v4 = value.get("inbound"), value.get("outbound_v4")
        outbound_v6 = value.get("outbound_v6")
        if not isinstance(inbound, str) or not isinstance(outbound_v4, str):
            return None
        if outbound_v6 is not None and not isinstance(outbound_v6, str):
            return None
        return cls(inbound=inbound, outbound_v4=outbound_v4, outbound_v6=outbound_v6)

    def to_stored(self) -> dict[str, str | None]:
        return {"inbound": self.inbound, "outbound_v4": self.outbound_v4, "outbound_v6": self.outbound_v6}


class ChangeDetector:
    """Compares the current address tuple with the one stored on the previous event."""

    def __init__(self, store: PreferenceStore) -> None:
        self.store = store

    def last_snapshot(self) -> NetworkSnapshot | None:
        return NetworkSnapshot.from_stored(self.store.get_preference(LAST_SNAPSHOT_KEY))

    def has_changed(self, addresses: AddressSet) -> bool:
        """Return ``True`` and persist the new snapshot unless it equals the stored one."""
        current = NetworkSnapshot.from_addresses(addresses)
        if current == self.last_snapshot():
            logger.info("Network identity unchanged, skipping")
            return False
        logger.info("Network identity changed")
        self.store.set_preference(LAST_SNAPSHOT_KEY, current.to_stored())
        return True
