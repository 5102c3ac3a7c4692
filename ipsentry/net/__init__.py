"""Network package: HTTP fetching, traffic introspection and address acquisition."""

from .addresses import AddressSet, acquire_addresses
from .http import DIRECT_POLICY, HttpClient, build_http_client
from .ip_utils import looks_like_ipv6, mask_ip
from .traffic import RequestLog, RequestRecord, SurgeTrafficLog, TrafficLog

__all__ = [
    "AddressSet",
    "DIRECT_POLICY",
    "HttpClient",
    "RequestLog",
    "RequestRecord",
    "SurgeTrafficLog",
    "TrafficLog",
    "acquire_addresses",
    "build_http_client",
    "looks_like_ipv6",
    "mask_ip",
]
