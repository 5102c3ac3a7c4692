"""Tests for routing-policy discovery from recent traffic."""

from __future__ import annotations

from ipsentry.intel.policy import UNKNOWN_POLICY, discover_policy, find_policy_in_recent
from ipsentry.net.traffic import RequestLog
from ipsentry.storage import LAST_POLICY_KEY


class DelayedLog(RequestLog):
    """A log whose probe record only becomes visible after the first search."""

    def __init__(self, late_url: str, late_policy: str) -> None:
        super().__init__()
        self.late = (late_url, late_policy)
        self.searches: list[int] = []

    def recent(self, limit):
        self.searches.append(limit)
        if len(self.searches) == 2:
            self.record(*self.late)
        return super().recent(limit)


def _noop_sleep(seconds: float) -> None:
    pass


class TestFindPolicy:
    def test_newest_match_wins(self):
        log = RequestLog()
        log.record("https://ipinfo.io/1.1.1.1/json", "Old")
        log.record("https://api-ipv4.ip.sb/geoip", "New")
        assert find_policy_in_recent(log, 10) == "New"

    def test_only_searches_within_limit(self):
        log = RequestLog()
        log.record("https://api.ip.sb/geoip/1.1.1.1", "Hidden")
        for index in range(10):
            log.record(f"https://example.com/{index}", "Noise")
        assert find_policy_in_recent(log, 10) is None
        assert find_policy_in_recent(log, 11) == "Hidden"

    def test_bilibili_does_not_match(self):
        log = RequestLog()
        log.record("https://api.bilibili.com/x/web-interface/zone", "DIRECT")
        assert find_policy_in_recent(log, 10) is None


class TestDiscoverPolicy:
    def test_first_search_hit_is_persisted(self, store):
        log = RequestLog()
        log.record("https://api-ipv4.ip.sb/geoip", "HK-01")
        assert discover_policy(log, store, sleep=_noop_sleep) == "HK-01"
        assert store.get_preference(LAST_POLICY_KEY) == "HK-01"

    def test_retry_after_delay_searches_five(self, store):
        log = DelayedLog("https://ipinfo.io/2.2.2.2/json", "JP-02")
        slept: list[float] = []
        assert discover_policy(log, store, retry_delay=0.5, sleep=slept.append) == "JP-02"
        assert slept == [0.5]
        assert log.searches == [10, 5]
        assert store.get_preference(LAST_POLICY_KEY) == "JP-02"

    def test_falls_back_to_stored_policy(self, store):
        store.set_preference(LAST_POLICY_KEY, "US-03")
        assert discover_policy(RequestLog(), store, sleep=_noop_sleep) == "US-03"

    def test_unknown_when_nothing_stored(self, store):
        assert discover_policy(RequestLog(), store, sleep=_noop_sleep) == UNKNOWN_POLICY
        assert store.get_preference(LAST_POLICY_KEY) is None

    def test_later_failed_run_inherits_last_good_value(self, store):
        log = RequestLog()
        log.record("https://api.ip.sb/geoip/1.1.1.1", "SG-04")
        discover_policy(log, store, sleep=_noop_sleep)
        assert discover_policy(RequestLog(), store, sleep=_noop_sleep) == "SG-04"
