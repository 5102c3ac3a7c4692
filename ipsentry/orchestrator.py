"""Sequences one network check and races it against the watchdog."""

from __future__ import annotations

from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
import logging
import time
from typing import Any, Callable

from .alerts.change import ChangeDetector
from .alerts.sinks import Display, Notifier
from .config import CheckConfig
from .errors import AcquisitionError
from .export.panel import (
    SILENT_RESULT,
    CheckResult,
    NetworkReport,
    ResultKind,
    acquisition_failed_result,
    build_notification,
    build_panel,
    timeout_result,
)
from .intel.geo import (
    AddressRole,
    BilibiliPayload,
    GeoRecord,
    IpSbPayload,
    ProviderGeoPayload,
    fetch_bilibili,
    fetch_ipinfo,
    fetch_ipsb,
    reconcile_geo,
)
from .intel.iptype import resolve_ip_type
from .intel.policy import discover_policy
from .intel.risk import RiskResolver
from .net.addresses import AddressSet, acquire_addresses
from .net.http import HttpClient
from .net.traffic import TrafficLog
from .storage import PreferenceStore
from .workers import spawn

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CheckDependencies:
    """External collaborators of one run."""

    http: HttpClient
    store: PreferenceStore
    traffic: TrafficLog
    sleep: Callable[[float], None] = time.sleep


class NetworkCheck:
    """One invocation: acquire, gate on change, resolve in parallel, reconcile, build."""

    def __init__(self, config: CheckConfig, deps: CheckDependencies) -> None:
        self.config = config
        self.deps = deps

    def run(self) -> CheckResult:
        config = self.config
        if config.is_event and config.event_delay > 0:
            logger.info("Waiting %.1fs for the network to settle", config.event_delay)
            self.deps.sleep(config.event_delay)

        try:
            addresses = acquire_addresses(self.deps.http, ipv6_timeout=config.ipv6_timeout)
        except AcquisitionError as exc:
            logger.warning("%s (inbound=%s, outbound=%s)", exc, exc.inbound, exc.outbound_v4)
            return acquisition_failed_result()
        logger.info("Inbound %s, outbound %s, IPv6 %s", addresses.inbound, addresses.outbound_v4, addresses.outbound_v6)

        if config.is_event and not ChangeDetector(self.deps.store).has_changed(addresses):
            return SILENT_RESULT

        report = self._build_report(addresses)
        if config.is_event:
            return build_notification(report, config)
        return build_panel(report, config)

    def _build_report(self, addresses: AddressSet) -> NetworkReport:
        config = self.config
        http = self.deps.http
        local = config.is_local_language
        resolver = RiskResolver(http, self.deps.store, ipqs_key=config.ipqs_key)
        v6 = addresses.outbound_v6

        policy_future = spawn(
            discover_policy,
            self.deps.traffic,
            self.deps.store,
            retry_delay=config.policy_retry_delay,
            sleep=self.deps.sleep,
            name="check-policy",
        )
        risk_future = spawn(resolver.resolve, addresses.outbound_v4, name="check-risk")
        ip_type_future = spawn(resolve_ip_type, http, name="check-ip-type")
        inbound_sb_future = spawn(fetch_ipsb, http, addresses.inbound, name="geo-inbound-ipsb")
        outbound_info_future = spawn(fetch_ipinfo, http, addresses.outbound_v4, name="geo-outbound-ipinfo")
        outbound_bili_future = (
            spawn(fetch_bilibili, http, addresses.outbound_v4, name="geo-outbound-bilibili") if local else None
        )
        v6_info_future = spawn(fetch_ipinfo, http, v6, name="geo-v6-ipinfo") if v6 else None
        v6_bili_future = spawn(fetch_bilibili, http, v6, name="geo-v6-bilibili") if v6 and local else None

        policy = policy_future.result()
        risk = risk_future.result()
        ip_type = ip_type_future.result()
        inbound_payloads = [
            inbound_sb_future.result(),
            BilibiliPayload.parse(addresses.inbound_raw) if local else None,
        ]
        outbound_payloads = [
            outbound_info_future.result(),
            IpSbPayload.parse(addresses.outbound_raw),
            _result_or_none(outbound_bili_future),
        ]
        v6_payloads = [
            _result_or_none(v6_info_future),
            IpSbPayload.parse(addresses.v6_raw),
            _result_or_none(v6_bili_future),
        ]

        def reconcile(role: AddressRole, payloads: list[ProviderGeoPayload | None]) -> GeoRecord | None:
            return reconcile_geo(role, payloads, language=config.language, home_countries=config.home_countries)

        return NetworkReport(
            policy=policy,
            risk=risk,
            ip_type=ip_type,
            addresses=addresses,
            inbound_geo=reconcile(AddressRole.INBOUND, inbound_payloads),
            outbound_geo=reconcile(AddressRole.OUTBOUND_V4, outbound_payloads),
            v6_geo=reconcile(AddressRole.OUTBOUND_V6, v6_payloads) if v6 else None,
        )


def _result_or_none(future: Future | None) -> Any:
    return future.result() if future is not None else None


def run_with_watchdog(check: Callable[[], CheckResult], timeout_seconds: float) -> CheckResult:
    """Return ``check()``'s result, or the timeout result if it is not ready in time.

    A check that finishes after the deadline is abandoned and its result discarded.
    """
    future = spawn(check, name="network-check")
    try:
        return future.result(timeout=timeout_seconds)
    except FutureTimeout:
        logger.warning("Check did not finish within %.1fs", timeout_seconds)
        return timeout_result()


def dispatch_result(result: CheckResult, config: CheckConfig, *, display: Display, notifier: Notifier) -> None:
    """Send the terminal result to the sink matching the trigger mode."""
    if result.kind is ResultKind.SILENT:
        return
    if config.is_event:
        notifier.notify(result.title, result.subtitle, result.body)
    else:
        display.show(result)


def execute_check(
    config: CheckConfig,
    deps: CheckDependencies,
    *,
    display: Display,
    notifier: Notifier,
) -> CheckResult:
    """Run one guarded check, dispatch it exactly once and record it in history."""
    result = run_with_watchdog(NetworkCheck(config, deps).run, config.run_timeout)
    dispatch_result(result, config, display=display, notifier=notifier)
    if result.report is not None:
        deps.store.record_check_history(config.trigger.value, result.report)
    return result
