"""Exception types raised inside ipsentry."""

from __future__ import annotations


class IPSentryError(Exception):
    """Base class for ipsentry errors."""


class AcquisitionError(IPSentryError):
    """Inbound or outbound IPv4 address could not be determined."""

    def __init__(self, message: str, *, inbound: str | None = None, outbound_v4: str | None = None) -> None:
        super().__init__(message)
        self.inbound = inbound
        self.outbound_v4 = outbound_v4


class ConfigurationError(IPSentryError):
    """A configuration value is present but unusable."""

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key
