"""Panel and notification text for a finished network check."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Mapping

from ..config import CheckConfig
from ..intel.geo import GeoRecord, same_location
from ..intel.iptype import IPTypeAssessment
from ..intel.risk import RiskAssessment, risk_level
from ..net.addresses import AddressSet
from ..net.ip_utils import mask_ip

NEUTRAL_COLOR = "#9E9E9E"
UNKNOWN_TEXT = "Unknown"
SUPERSCRIPT_V4 = "⁴"
SUPERSCRIPT_V6 = "⁶"
_REGIONAL_INDICATOR_A = 0x1F1E6


class ResultKind(str, Enum):
    PANEL = "panel"
    NOTIFICATION = "notification"
    SILENT = "silent"
    ACQUISITION_FAILED = "acquisition_failed"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class CheckResult:
    """The single terminal result of a run."""

    kind: ResultKind
    title: str = ""
    subtitle: str = ""
    body: str = ""
    color: str = NEUTRAL_COLOR
    icon: str = "leaf"
    report: dict[str, Any] | None = None

    @property
    def is_failure(self) -> bool:
        return self.kind in {ResultKind.ACQUISITION_FAILED, ResultKind.TIMEOUT}

    def to_payload(self) -> dict[str, Any]:
        """Host-panel shaped payload; empty for silent results."""
        if self.kind is ResultKind.SILENT:
            return {}
        payload: dict[str, Any] = {
            "kind": self.kind.value,
            "title": self.title,
            "content": self.body,
            "icon": self.icon,
            "icon-color": self.color,
        }
        if self.subtitle:
            payload["subtitle"] = self.subtitle
        if self.report is not None:
            payload["report"] = self.report
        return payload


@dataclass(frozen=True, slots=True)
class NetworkReport:
    policy: str
    risk: RiskAssessment
    ip_type: IPTypeAssessment
    addresses: AddressSet
    inbound_geo: GeoRecord | None = None
    outbound_geo: GeoRecord | None = None
    v6_geo: GeoRecord | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "policy": self.policy,
            "risk": {"score": self.risk.score, "source": self.risk.source.value, "cached": self.risk.from_cache},
            "ip_type": {"is_residential": self.ip_type.is_residential, "is_broadcast": self.ip_type.is_broadcast},
            "inbound": self.addresses.inbound,
            "outbound_v4": self.addresses.outbound_v4,
            "outbound_v6": self.addresses.outbound_v6,
            "inbound_geo": asdict(self.inbound_geo) if self.inbound_geo else None,
            "outbound_geo": asdict(self.outbound_geo) if self.outbound_geo else None,
            "v6_geo": asdict(self.v6_geo) if self.v6_geo else None,
        }


def country_flag(country_code: str | None, overrides: Mapping[str, str] | None = None) -> str:
    """Regional-indicator flag for a two-letter code, after applying ``overrides``."""
    if not country_code or len(country_code) != 2 or not country_code.isalpha():
        return ""
    code = country_code.upper()
    code = (overrides or {}).get(code, code)
    return "".join(chr(_REGIONAL_INDICATOR_A + ord(letter) - ord("A")) for letter in code)


def format_geo(country_code: str | None, *parts: str | None, overrides: Mapping[str, str] | None = None) -> str:
    text = " ".join(item for item in (country_flag(country_code, overrides), ", ".join(p for p in parts if p)) if item)
    return text or UNKNOWN_TEXT


def _carrier(geo: GeoRecord | None) -> str:
    return (geo.carrier if geo else None) or UNKNOWN_TEXT


class _Formatter:
    def __init__(self, config: CheckConfig) -> None:
        self.config = config

    def ip(self, value: str | None) -> str:
        shown = mask_ip(value) if self.config.mask_ip else value
        return shown or UNKNOWN_TEXT

    def panel_location(self, geo: GeoRecord | None) -> str:
        geo = geo or GeoRecord()
        return format_geo(
            geo.country_code,
            geo.city,
            geo.region,
            geo.country_text(self.config.language),
            overrides=self.config.flag_overrides,
        )

    def short_location(self, geo: GeoRecord | None) -> str:
        geo = geo or GeoRecord()
        return format_geo(
            geo.country_code,
            geo.city,
            geo.country_name or geo.country_code,
            overrides=self.config.flag_overrides,
        )


def _outbound_lines(report: NetworkReport, fmt: _Formatter) -> list[str]:
    addresses = report.addresses
    if not addresses.has_ipv6:
        return [
            f"Outbound IP: {fmt.ip(addresses.outbound_v4)}",
            f"Location: {fmt.panel_location(report.outbound_geo)}",
            f"Carrier: {_carrier(report.outbound_geo)}",
        ]

    if same_location(report.outbound_geo, report.v6_geo):
        return [
            f"Outbound IP{SUPERSCRIPT_V4}: {fmt.ip(addresses.outbound_v4)}",
            f"Outbound IP{SUPERSCRIPT_V6}: {fmt.ip(addresses.outbound_v6)}",
            f"Location: {fmt.panel_location(report.outbound_geo)}",
            f"Carrier: {_carrier(report.outbound_geo)}",
        ]

    return [
        f"Outbound IP{SUPERSCRIPT_V4}: {fmt.ip(addresses.outbound_v4)}",
        f"Location{SUPERSCRIPT_V4}: {fmt.panel_location(report.outbound_geo)}",
        f"Carrier{SUPERSCRIPT_V4}: {_carrier(report.outbound_geo)}",
        "",
        f"Outbound IP{SUPERSCRIPT_V6}: {fmt.ip(addresses.outbound_v6)}",
        f"Location{SUPERSCRIPT_V6}: {fmt.panel_location(report.v6_geo)}",
        f"Carrier{SUPERSCRIPT_V6}: {_carrier(report.v6_geo)}",
    ]


def build_panel(report: NetworkReport, config: CheckConfig) -> CheckResult:
    fmt = _Formatter(config)
    level = risk_level(report.risk.score)
    lines = [
        f"IP risk: {report.risk.score}% {level.label} ({report.risk.source.value})",
        "",
        f"IP type: {report.ip_type.type_label} | {report.ip_type.origin_label}",
        "",
        f"Inbound IP: {fmt.ip(report.addresses.inbound)}",
        f"Location: {fmt.panel_location(report.inbound_geo)}",
        f"Carrier: {_carrier(report.inbound_geo)}",
        "",
        *_outbound_lines(report, fmt),
    ]
    return CheckResult(
        kind=ResultKind.PANEL,
        title=f"Proxy policy: {report.policy}",
        body="\n".join(lines),
        color=level.color,
        icon="leaf.fill",
        report=report.to_dict(),
    )


def build_notification(report: NetworkReport, config: CheckConfig) -> CheckResult:
    fmt = _Formatter(config)
    level = risk_level(report.risk.score)
    body = "\n".join(
        [
            f"Ⓓ {fmt.short_location(report.inbound_geo)} · {_carrier(report.inbound_geo)}",
            f"🅟 {fmt.short_location(report.outbound_geo)} · {_carrier(report.outbound_geo)}",
            f"🅟 Risk: {report.risk.score}% {level.label} | Type: "
            f"{report.ip_type.type_label} · {report.ip_type.origin_label}",
        ]
    )
    return CheckResult(
        kind=ResultKind.NOTIFICATION,
        title=f"🔄 Network switched | {report.policy}",
        subtitle=f"Ⓓ {fmt.ip(report.addresses.inbound)} 🅟 {fmt.ip(report.addresses.outbound_v4)}",
        body=body,
        color=level.color,
        icon="leaf.fill",
        report=report.to_dict(),
    )


def acquisition_failed_result() -> CheckResult:
    return CheckResult(
        kind=ResultKind.ACQUISITION_FAILED,
        title="IP lookup failed",
        body="Unable to acquire the inbound or outbound IPv4 address",
    )


def timeout_result() -> CheckResult:
    return CheckResult(kind=ResultKind.TIMEOUT, title="Check timed out", body="API requests timed out")


SILENT_RESULT = CheckResult(kind=ResultKind.SILENT)

