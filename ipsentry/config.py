"""Run configuration: one immutable value built at startup and passed explicitly."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
import os
from typing import Any, Mapping

from .errors import ConfigurationError

ENV_PREFIX = "IPSENTRY_"
DEFAULT_HOME_COUNTRIES = frozenset({"中國", "中国"})

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}
_UNSET_TEXT = {"", "null", "None"}


class TriggerMode(str, Enum):
    """What caused this run."""

    PANEL = "panel"
    REQUEST = "request"
    EVENT = "event"


class GeoLanguage(str, Enum):
    """Which provider family names places and carriers."""

    PRIMARY = "en"
    LOCAL = "zh"


@dataclass(frozen=True, slots=True)
class CheckConfig:
    trigger: TriggerMode = TriggerMode.EVENT
    ipqs_key: str = ""
    language: GeoLanguage = GeoLanguage.PRIMARY
    event_delay: float = 2.0
    mask_ip: bool = False
    run_timeout: float = 10.0
    ipv6_timeout: float = 3.0
    policy_retry_delay: float = 0.5
    http_timeout: float = 5.0
    home_countries: frozenset[str] = DEFAULT_HOME_COUNTRIES
    flag_overrides: Mapping[str, str] = field(default_factory=dict)
    egress_proxy: str = ""
    egress_policy: str = "Proxy"
    traffic_api_url: str = ""
    traffic_api_key: str = ""
    db_path: str = ""

    @property
    def is_event(self) -> bool:
        return self.trigger is TriggerMode.EVENT

    @property
    def is_local_language(self) -> bool:
        return self.language is GeoLanguage.LOCAL


# Environment variable -> config field.
ENV_FIELDS = {
    "IPQS_API_KEY": "ipqs_key",
    f"{ENV_PREFIX}IPQS_KEY": "ipqs_key",
    f"{ENV_PREFIX}LANG": "language",
    f"{ENV_PREFIX}EVENT_DELAY": "event_delay",
    f"{ENV_PREFIX}MASK_IP": "mask_ip",
    f"{ENV_PREFIX}RUN_TIMEOUT": "run_timeout",
    f"{ENV_PREFIX}IPV6_TIMEOUT": "ipv6_timeout",
    f"{ENV_PREFIX}POLICY_RETRY_DELAY": "policy_retry_delay",
    f"{ENV_PREFIX}HTTP_TIMEOUT": "http_timeout",
    f"{ENV_PREFIX}HOME_COUNTRIES": "home_countries",
    f"{ENV_PREFIX}FLAG_OVERRIDES": "flag_overrides",
    f"{ENV_PREFIX}EGRESS_PROXY": "egress_proxy",
    f"{ENV_PREFIX}EGRESS_POLICY": "egress_policy",
    f"{ENV_PREFIX}TRAFFIC_API": "traffic_api_url",
    f"{ENV_PREFIX}TRAFFIC_API_KEY": "traffic_api_key",
    f"{ENV_PREFIX}DB": "db_path",
}

# Short setting names accepted by ``ipsentry config set``.
SETTING_ALIASES = {
    "lang": "language",
    "TYPE": "trigger",
    "type": "trigger",
}


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{key} must be a boolean, got {value!r}", key=key)


def _parse_seconds(key: str, value: Any) -> float:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be a number of seconds, got {value!r}", key=key) from None
    if seconds < 0:
        raise ConfigurationError(f"{key} must not be negative", key=key)
    return seconds


def _parse_language(key: str, value: Any) -> GeoLanguage:
    text = str(value).strip().lower()
    if text in {"en", "primary"}:
        return GeoLanguage.PRIMARY
    if text in {"zh", "local"}:
        return GeoLanguage.LOCAL
    raise ConfigurationError(f"{key} must be 'en' or 'zh', got {value!r}", key=key)


def _parse_trigger(key: str, value: Any) -> TriggerMode:
    try:
        return TriggerMode(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(f"{key} must be one of panel/request/event, got {value!r}", key=key) from None


def _parse_flag_overrides(key: str, value: Any) -> dict[str, str]:
    """Accept a mapping or ``"TW=CN,XX=YY"``."""
    if isinstance(value, Mapping):
        items = value.items()
    else:
        items = []
        for chunk in str(value).split(","):
            if not chunk.strip():
                continue
            source, sep, target = chunk.partition("=")
            if not sep:
                raise ConfigurationError(f"{key} entries must look like XX=YY, got {chunk!r}", key=key)
            items.append((source, target))
    overrides: dict[str, str] = {}
    for source, target in items:
        src, dst = str(source).strip().upper(), str(target).strip().upper()
        if len(src) != 2 or len(dst) != 2:
            raise ConfigurationError(f"{key} codes must be two letters: {source}={target}", key=key)
        overrides[src] = dst
    return overrides


def _parse_names(key: str, value: Any) -> frozenset[str]:
    if isinstance(value, (list, tuple, set, frozenset)):
        names = [str(item).strip() for item in value]
    else:
        names = [item.strip() for item in str(value).split(",")]
    names = [name for name in names if name]
    if not names:
        raise ConfigurationError(f"{key} needs at least one name", key=key)
    return frozenset(names)


_PARSERS = {
    "trigger": _parse_trigger,
    "language": _parse_language,
    "event_delay": _parse_seconds,
    "mask_ip": _parse_bool,
    "run_timeout": _parse_seconds,
    "ipv6_timeout": _parse_seconds,
    "policy_retry_delay": _parse_seconds,
    "http_timeout": _parse_seconds,
    "home_countries": _parse_names,
    "flag_overrides": _parse_flag_overrides,
}

CONFIG_FIELDS = frozenset(item.name for item in fields(CheckConfig))


def normalize_setting_key(key: str) -> str:
    """Map a user-facing setting name to a ``CheckConfig`` field name."""
    name = SETTING_ALIASES.get(key, key).strip()
    if name not in CONFIG_FIELDS:
        raise ConfigurationError(f"Unknown setting: {key}", key=key)
    return name


def _apply(values: dict[str, Any], source: Mapping[str, Any] | None) -> None:
    for key, value in (source or {}).items():
        if value is None or (isinstance(value, str) and value.strip() in _UNSET_TEXT):
            continue
        name = normalize_setting_key(key)
        parser = _PARSERS.get(name)
        values[name] = parser(name, value) if parser else str(value).strip()


def load_config(
    overrides: Mapping[str, Any] | None = None,
    *,
    stored: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> CheckConfig:
    """Build the run configuration.

    Precedence, lowest first: defaults, environment, stored settings, ``overrides``.
    Values of ``None``, ``""`` or ``"null"`` leave the lower layer in place.
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    _apply(values, {ENV_FIELDS[name]: env[name] for name in ENV_FIELDS if name in env})
    _apply(values, stored if isinstance(stored, Mapping) else None)
    _apply(values, overrides)
    return CheckConfig(**values)


def resolve_trigger(*, panel: bool = False, request: bool = False) -> TriggerMode:
    """Panel and request are explicit; anything else is a network-change event."""
    if panel:
        return TriggerMode.PANEL
    if request:
        return TriggerMode.REQUEST
    return TriggerMode.EVENT
