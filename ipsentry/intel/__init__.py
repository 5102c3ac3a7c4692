"""Intel package: risk, IP type, routing policy and geo/carrier reconciliation."""

from .fallback import first_success, first_success_concurrent
from .geo import (
    AddressRole,
    BilibiliPayload,
    GeoRecord,
    IpInfoPayload,
    IpSbPayload,
    ProviderGeoPayload,
    reconcile_geo,
    same_location,
)
from .iptype import IPTypeAssessment, resolve_ip_type
from .policy import UNKNOWN_POLICY, discover_policy
from .risk import RiskAssessment, RiskLevel, RiskResolver, RiskSource, risk_level

__all__ = [
    "AddressRole",
    "BilibiliPayload",
    "GeoRecord",
    "IPTypeAssessment",
    "IpInfoPayload",
    "IpSbPayload",
    "ProviderGeoPayload",
    "RiskAssessment",
    "RiskLevel",
    "RiskResolver",
    "RiskSource",
    "UNKNOWN_POLICY",
    "discover_policy",
    "first_success",
    "first_success_concurrent",
    "reconcile_geo",
    "resolve_ip_type",
    "risk_level",
    "same_location",
]
