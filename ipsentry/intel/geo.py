"""Geo/carrier payload normalization and per-address reconciliation.

Three provider shapes are understood:

* ``IpSbPayload`` (ip.sb): ISO code, English country name, city, region, organization.
* ``IpInfoPayload`` (ipinfo.io): ISO code, city, region and an ``AS<n> ``-prefixed org.
* ``BilibiliPayload`` (bilibili): localized country, province, city and carrier,
  without an ISO code.

Reconciliation depends on the language mode and on which address is being
described; it never depends on the order in which payloads arrived.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
import logging
import re
from typing import Any, Iterable, Union

from ..config import DEFAULT_HOME_COUNTRIES, GeoLanguage
from ..net.http import HttpClient

IPSB_GEO_URL = "https://api.ip.sb/geoip/{ip}"
IPINFO_URL = "https://ipinfo.io/{ip}/json"
BILIBILI_GEO_URL = "https://api.live.bilibili.com/ip_service/v1/ip_service/get_ip_addr?ip={ip}"

ASN_PREFIX = re.compile(r"^AS\d+\s*")
STATE_CARRIERS = frozenset({"移動", "聯通", "電信", "廣電", "移动", "联通", "电信", "广电"})

logger = logging.getLogger(__name__)


class AddressRole(str, Enum):
    INBOUND = "inbound"
    OUTBOUND_V4 = "outbound_v4"
    OUTBOUND_V6 = "outbound_v6"


@dataclass(frozen=True, slots=True)
class GeoRecord:
    """Canonical location/carrier; a missing field is ``None``, never ``""``."""

    country_code: str | None = None
    country_name: str | None = None
    city: str | None = None
    region: str | None = None
    carrier: str | None = None

    def country_text(self, language: GeoLanguage) -> str | None:
        """ISO code in primary mode, localized name in local mode."""
        if language is GeoLanguage.LOCAL:
            return self.country_name or self.country_code
        return self.country_code or self.country_name


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True, slots=True)
class IpSbPayload:
    country_code: str | None = None
    country: str | None = None
    city: str | None = None
    region: str | None = None
    organization: str | None = None

    @classmethod
    def parse(cls, raw: Any) -> IpSbPayload | None:
        if not isinstance(raw, dict):
            return None
        payload = cls(
            country_code=_text(raw.get("country_code")),
            country=_text(raw.get("country")),
            city=_text(raw.get("city")),
            region=_text(raw.get("region")),
            organization=_text(raw.get("organization")),
        )
        return payload if payload != cls() else None

    def normalize(self) -> GeoRecord:
        return GeoRecord(
            country_code=self.country_code.upper() if self.country_code else None,
            country_name=self.country,
            city=self.city,
            region=self.region,
            carrier=self.organization,
        )


@dataclass(frozen=True, slots=True)
class IpInfoPayload:
    country: str
    city: str | None = None
    region: str | None = None
    org: str | None = None

    @classmethod
    def parse(cls, raw: Any) -> IpInfoPayload | None:
        if not isinstance(raw, dict):
            return None
        country = _text(raw.get("country"))
        if not country:
            return None
        return cls(country=country, city=_text(raw.get("city")), region=_text(raw.get("region")), org=_text(raw.get("org")))

    def normalize(self) -> GeoRecord:
        carrier = _text(ASN_PREFIX.sub("", self.org)) if self.org else None
        return GeoRecord(
            country_code=self.country.upper(),
            city=self.city,
            region=self.region,
            carrier=carrier,
        )


@dataclass(frozen=True, slots=True)
class BilibiliPayload:
    country: str
    province: str | None = None
    city: str | None = None
    isp: str | None = None

    @classmethod
    def parse(cls, raw: Any) -> BilibiliPayload | None:
        data = raw.get("data") if isinstance(raw, dict) else None
        if not isinstance(data, dict):
            return None
        country = _text(data.get("country"))
        if not country:
            return None
        return cls(country=country, province=_text(data.get("province")), city=_text(data.get("city")), isp=_text(data.get("isp")))

    def normalize(self) -> GeoRecord:
        carrier = self.isp
        if carrier in STATE_CARRIERS:
            carrier = f"{self.country}{carrier}"
        return GeoRecord(country_name=self.country, city=self.city, region=self.province, carrier=carrier)


ProviderGeoPayload = Union[IpSbPayload, IpInfoPayload, BilibiliPayload]


def fetch_ipsb(http: HttpClient, ip: str) -> IpSbPayload | None:
    return IpSbPayload.parse(http.get_json(IPSB_GEO_URL.format(ip=ip)))


def fetch_ipinfo(http: HttpClient, ip: str) -> IpInfoPayload | None:
    return IpInfoPayload.parse(http.get_json(IPINFO_URL.format(ip=ip)))


def fetch_bilibili(http: HttpClient, ip: str) -> BilibiliPayload | None:
    return BilibiliPayload.parse(http.get_json(BILIBILI_GEO_URL.format(ip=ip)))


def _by_shape(payloads: Iterable[ProviderGeoPayload | None]) -> dict[type, ProviderGeoPayload]:
    shapes: dict[type, ProviderGeoPayload] = {}
    for payload in payloads:
        if payload is None:
            continue
        existing = shapes.get(type(payload))
        if existing is not None and existing != payload:
            raise ValueError(f"conflicting {type(payload).__name__} payloads for one address")
        shapes[type(payload)] = payload
    return shapes


def _first(*values: str | None) -> str | None:
    for value in values:
        if value:
            return value
    return None


def reconcile_geo(
    role: AddressRole,
    payloads: Iterable[ProviderGeoPayload | None],
    *,
    language: GeoLanguage = GeoLanguage.PRIMARY,
    home_countries: frozenset[str] = DEFAULT_HOME_COUNTRIES,
) -> GeoRecord | None:
    """Merge at most one payload per shape into a single record for one address.

    Primary mode takes the whole record from one provider: ip.sb first for the
    inbound address, ipinfo.io first for outbound addresses. Local mode uses
    bilibili for place names when present, keeps its carrier only inside a home
    country, and always backfills the ISO code from ipinfo.io then ip.sb.
    """
    shapes = _by_shape(payloads)
    sb = shapes.get(IpSbPayload)
    info = shapes.get(IpInfoPayload)
    bili = shapes.get(BilibiliPayload)
    sb_rec = sb.normalize() if sb else None
    info_rec = info.normalize() if info else None

    if language is GeoLanguage.LOCAL and bili is not None:
        local = bili.normalize()
        if local.country_name in home_countries:
            carrier = local.carrier
        else:
            carrier = _first(info_rec and info_rec.carrier, sb_rec and sb_rec.carrier)
        return replace(
            local,
            country_code=_first(info_rec and info_rec.country_code, sb_rec and sb_rec.country_code),
            carrier=carrier,
        )

    if role is AddressRole.INBOUND:
        return sb_rec or info_rec
    return info_rec or sb_rec


def same_location(v4: GeoRecord | None, v6: GeoRecord | None) -> bool:
    """Dual-stack paths match when ISO country code and carrier are identical."""
    v4 = v4 or GeoRecord()
    v6 = v6 or GeoRecord()
    return v4.country_code == v6.country_code and v4.carrier == v6.carrier
