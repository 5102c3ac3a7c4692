"""Tests for network-change detection."""

from __future__ import annotations

from ipsentry.alerts.change import ChangeDetector, NetworkSnapshot
from ipsentry.net.addresses import AddressSet
from ipsentry.storage import LAST_SNAPSHOT_KEY


def _addresses(inbound="1.1.1.1", v4="2.2.2.2", v6=None) -> AddressSet:
    return AddressSet(inbound=inbound, outbound_v4=v4, outbound_v6=v6)


class TestChangeDetector:
    def test_first_run_is_a_change_and_persists(self, store):
        detector = ChangeDetector(store)

        assert detector.has_changed(_addresses())
        assert store.get_preference(LAST_SNAPSHOT_KEY) == {
            "inbound": "1.1.1.1",
            "outbound_v4": "2.2.2.2",
            "outbound_v6": None,
        }

    def test_identical_addresses_are_not_a_change(self, store):
        detector = ChangeDetector(store)
        detector.has_changed(_addresses(v6="2001:db8::1"))
        assert not detector.has_changed(_addresses(v6="2001:db8::1"))

    def test_absent_ipv6_twice_is_not_a_change(self, store):
        detector = ChangeDetector(store)

        assert detector.has_changed(_addresses())
        assert not detector.has_changed(_addresses())

    def test_empty_stored_ipv6_differs_from_absent(self, store):
        store.set_preference(LAST_SNAPSHOT_KEY, {"inbound": "1.1.1.1", "outbound_v4": "2.2.2.2", "outbound_v6": ""})
        detector = ChangeDetector(store)

        assert detector.has_changed(_addresses())
        assert detector.last_snapshot().outbound_v6 is None

    def test_any_field_difference_is_a_change(self, store):
        detector = ChangeDetector(store)
        detector.has_changed(_addresses())

        assert detector.has_changed(_addresses(inbound="9.9.9.9"))
        assert detector.has_changed(_addresses(inbound="9.9.9.9", v4="8.8.8.8"))
        assert detector.has_changed(_addresses(inbound="9.9.9.9", v4="8.8.8.8", v6="2001:db8::2"))
        assert detector.last_snapshot() == NetworkSnapshot("9.9.9.9", "8.8.8.8", "2001:db8::2")

    def test_losing_ipv6_is_a_change(self, store):
        detector = ChangeDetector(store)
        detector.has_changed(_addresses(v6="2001:db8::1"))
        assert detector.has_changed(_addresses())

    def test_corrupt_snapshot_counts_as_changed(self, store):
        store.write(LAST_SNAPSHOT_KEY, "{not json")
        assert ChangeDetector(store).has_changed(_addresses())

    def test_wrongly_typed_snapshot_counts_as_changed(self, store):
        store.set_preference(LAST_SNAPSHOT_KEY, {"inbound": 1, "outbound_v4": "2.2.2.2"})
        detector = ChangeDetector(store)

        assert detector.last_snapshot() is None
        assert detector.has_changed(_addresses())
