"""Tests for provider payload normalization and geo reconciliation."""

from __future__ import annotations

from itertools import permutations

import pytest

from ipsentry.config import GeoLanguage
from ipsentry.intel.geo import (
    AddressRole,
    BilibiliPayload,
    GeoRecord,
    IpInfoPayload,
    IpSbPayload,
    reconcile_geo,
    same_location,
)

IPSB_RAW = {
    "ip": "2.2.2.2",
    "country_code": "us",
    "country": "United States",
    "city": "Ashburn",
    "region": "Virginia",
    "organization": "Amazon.com",
}
IPINFO_RAW = {"ip": "2.2.2.2", "country": "US", "city": "Ashburn", "region": "Virginia", "org": "AS16509 Amazon.com, Inc."}
BILI_CN_RAW = {"code": 0, "data": {"addr": "2.2.2.2", "country": "中国", "province": "广东", "city": "深圳", "isp": "电信"}}
BILI_US_RAW = {"code": 0, "data": {"addr": "2.2.2.2", "country": "美国", "province": "弗吉尼亚州", "city": "", "isp": "亚马逊"}}


class TestNormalizers:
    def test_ipsb(self):
        record = IpSbPayload.parse(IPSB_RAW).normalize()
        assert record == GeoRecord("US", "United States", "Ashburn", "Virginia", "Amazon.com")

    def test_ipsb_rejects_non_dict_and_empty(self):
        assert IpSbPayload.parse(None) is None
        assert IpSbPayload.parse("error") is None
        assert IpSbPayload.parse({"ip": "1.1.1.1"}) is None

    def test_ipinfo_strips_asn(self):
        record = IpInfoPayload.parse(IPINFO_RAW).normalize()
        assert record.carrier == "Amazon.com, Inc."
        assert record.country_code == "US"
        assert record.country_name is None

    def test_ipinfo_requires_country(self):
        assert IpInfoPayload.parse({"city": "Nowhere"}) is None
        assert IpInfoPayload.parse({"error": {"title": "Rate limit"}}) is None

    def test_ipinfo_org_that_is_only_an_asn(self):
        assert IpInfoPayload.parse({"country": "DE", "org": "AS3320"}).normalize().carrier is None

    def test_bilibili_localizes_state_carrier(self):
        record = BilibiliPayload.parse(BILI_CN_RAW).normalize()
        assert record == GeoRecord(None, "中国", "深圳", "广东", "中国电信")

    def test_bilibili_traditional_names(self):
        raw = {"data": {"country": "中國", "province": "香港", "isp": "移動"}}
        assert BilibiliPayload.parse(raw).normalize().carrier == "中國移動"

    def test_bilibili_empty_city_becomes_absent(self):
        assert BilibiliPayload.parse(BILI_US_RAW).normalize().city is None

    def test_bilibili_requires_country(self):
        assert BilibiliPayload.parse({"code": -400, "data": None}) is None
        assert BilibiliPayload.parse({"data": {"country": ""}}) is None


class TestPrimaryLanguage:
    def test_inbound_prefers_ipsb(self):
        record = reconcile_geo(
            AddressRole.INBOUND,
            [IpSbPayload.parse(IPSB_RAW), IpInfoPayload.parse(IPINFO_RAW)],
        )
        assert record.carrier == "Amazon.com"

    def test_outbound_prefers_ipinfo(self):
        record = reconcile_geo(
            AddressRole.OUTBOUND_V4,
            [IpSbPayload.parse(IPSB_RAW), IpInfoPayload.parse(IPINFO_RAW)],
        )
        assert record.carrier == "Amazon.com, Inc."

    def test_outbound_falls_back_to_ipsb(self):
        record = reconcile_geo(AddressRole.OUTBOUND_V6, [None, IpSbPayload.parse(IPSB_RAW)])
        assert record.country_name == "United States"

    def test_bilibili_ignored_in_primary_mode(self):
        record = reconcile_geo(
            AddressRole.OUTBOUND_V4,
            [BilibiliPayload.parse(BILI_CN_RAW), IpInfoPayload.parse(IPINFO_RAW)],
        )
        assert record.country_code == "US"

    def test_nothing_to_merge(self):
        assert reconcile_geo(AddressRole.OUTBOUND_V4, [None, None]) is None


class TestLocalLanguage:
    def test_home_country_keeps_local_carrier_and_backfills_code(self):
        record = reconcile_geo(
            AddressRole.OUTBOUND_V4,
            [
                BilibiliPayload.parse(BILI_CN_RAW),
                IpInfoPayload.parse({"country": "CN", "org": "AS4134 CHINANET"}),
                IpSbPayload.parse({"country_code": "HK", "organization": "Other"}),
            ],
            language=GeoLanguage.LOCAL,
        )
        assert record == GeoRecord("CN", "中国", "深圳", "广东", "中国电信")

    def test_foreign_country_takes_carrier_from_ipinfo(self):
        record = reconcile_geo(
            AddressRole.OUTBOUND_V4,
            [BilibiliPayload.parse(BILI_US_RAW), IpInfoPayload.parse(IPINFO_RAW), IpSbPayload.parse(IPSB_RAW)],
            language=GeoLanguage.LOCAL,
        )
        assert record.country_name == "美国"
        assert record.region == "弗吉尼亚州"
        assert record.carrier == "Amazon.com, Inc."
        assert record.country_code == "US"

    def test_foreign_country_falls_back_to_ipsb_fields(self):
        record = reconcile_geo(
            AddressRole.INBOUND,
            [BilibiliPayload.parse(BILI_US_RAW), IpSbPayload.parse(IPSB_RAW)],
            language=GeoLanguage.LOCAL,
        )
        assert (record.country_code, record.carrier) == ("US", "Amazon.com")

    def test_no_backfill_leaves_code_absent(self):
        record = reconcile_geo(AddressRole.OUTBOUND_V4, [BilibiliPayload.parse(BILI_US_RAW)], language=GeoLanguage.LOCAL)
        assert record.country_code is None
        assert record.carrier is None

    def test_custom_home_country(self):
        record = reconcile_geo(
            AddressRole.OUTBOUND_V4,
            [BilibiliPayload.parse(BILI_US_RAW), IpInfoPayload.parse(IPINFO_RAW)],
            language=GeoLanguage.LOCAL,
            home_countries=frozenset({"美国"}),
        )
        assert record.carrier == "亚马逊"

    def test_without_bilibili_uses_primary_rule(self):
        record = reconcile_geo(
            AddressRole.OUTBOUND_V4,
            [IpSbPayload.parse(IPSB_RAW), IpInfoPayload.parse(IPINFO_RAW)],
            language=GeoLanguage.LOCAL,
        )
        assert record.carrier == "Amazon.com, Inc."

    def test_country_text_by_mode(self):
        record = GeoRecord(country_code="US", country_name="美国")
        assert record.country_text(GeoLanguage.PRIMARY) == "US"
        assert record.country_text(GeoLanguage.LOCAL) == "美国"


@pytest.mark.parametrize("language", list(GeoLanguage))
@pytest.mark.parametrize("role", list(AddressRole))
def test_merge_ignores_arrival_order(language, role):
    payloads = [
        IpSbPayload.parse(IPSB_RAW),
        IpInfoPayload.parse(IPINFO_RAW),
        BilibiliPayload.parse(BILI_US_RAW),
    ]
    results = {reconcile_geo(role, list(order), language=language) for order in permutations(payloads)}
    assert len(results) == 1


def test_conflicting_duplicate_shapes_rejected():
    with pytest.raises(ValueError):
        reconcile_geo(
            AddressRole.OUTBOUND_V4,
            [IpInfoPayload.parse(IPINFO_RAW), IpInfoPayload.parse({"country": "DE"})],
        )


class TestSameLocation:
    def test_same_country_and_carrier(self):
        assert same_location(GeoRecord("US", carrier="Acme Net"), GeoRecord("US", city="Other", carrier="Acme Net"))

    def test_carrier_differs(self):
        assert not same_location(GeoRecord("US", carrier="Acme Net"), GeoRecord("US", carrier="Acme"))

    def test_country_differs(self):
        assert not same_location(GeoRecord("US", carrier="Acme Net"), GeoRecord("DE", carrier="Acme Net"))
