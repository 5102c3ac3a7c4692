"""ipsentry: inbound/outbound IP identity, risk and change detection."""

__version__ = "1.0.0"
