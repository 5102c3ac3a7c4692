"""Command-line entry point for ipsentry."""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
import logging
import os
import sys
import threading
from typing import Any, Sequence

from rich.console import Console
from rich.table import Table

from .alerts.sinks import ConsoleDisplay, ConsoleNotifier
from .config import CheckConfig, TriggerMode, load_config, normalize_setting_key, resolve_trigger
from .errors import ConfigurationError
from .export.writers import export_check_result
from .logging_config import setup_logging
from .net.http import build_http_client
from .net.traffic import RequestLog, SurgeTrafficLog
from .orchestrator import CheckDependencies, execute_check
from .scheduler.jobs import DEFAULT_PANEL_INTERVAL_SECONDS, DEFAULT_POLL_INTERVAL_SECONDS, build_scheduler, schedule_watch
from .storage import SETTINGS_KEY, PreferenceStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ipsentry", description="Inbound/outbound IP identity and risk check.")
    parser.add_argument("--db", help="state database path (default ~/.ipsentry/ipsentry.db)")
    parser.add_argument("--log-level", default=os.getenv("IPSENTRY_LOG_LEVEL", "WARNING"))
    parser.add_argument("--log-file")
    sub = parser.add_subparsers(dest="command", required=True)

    run_options = argparse.ArgumentParser(add_help=False)
    run_options.add_argument("--lang", choices=["en", "zh"], help="geo language: en (ISO codes) or zh (localized)")
    run_options.add_argument("--ipqs-key", help="IPQualityScore API key")
    run_options.add_argument("--event-delay", type=float, help="seconds to wait after a network change")
    run_options.add_argument("--timeout", type=float, dest="run_timeout", help="overall run timeout in seconds")
    run_options.add_argument("--mask-ip", action="store_true", default=None, help="hide the middle of addresses")
    run_options.add_argument("--egress-proxy", help="proxy URL used for outbound probes")
    run_options.add_argument("--traffic-api", dest="traffic_api_url", help="Surge-style HTTP API base URL")

    check = sub.add_parser("check", parents=[run_options], help="run one check")
    mode = check.add_mutually_exclusive_group()
    mode.add_argument("--panel", action="store_true", help="manual panel query")
    mode.add_argument("--request", action="store_true", help="request-triggered query")
    check.add_argument("--json-out", help="also write the result to this JSON file")

    watch = sub.add_parser("watch", parents=[run_options], help="refresh periodically and notify on network changes")
    watch.add_argument("--interval", type=float, default=DEFAULT_PANEL_INTERVAL_SECONDS, help="panel refresh seconds")
    watch.add_argument("--poll", type=float, default=DEFAULT_POLL_INTERVAL_SECONDS, help="interface poll seconds")

    history = sub.add_parser("history", help="list recent check reports")
    history.add_argument("--limit", type=int, default=10)

    config = sub.add_parser("config", help="show or change stored settings")
    config_sub = config.add_subparsers(dest="action", required=True)
    config_sub.add_parser("show")
    config_set = config_sub.add_parser("set")
    config_set.add_argument("key")
    config_set.add_argument("value")
    config_unset = config_sub.add_parser("unset")
    config_unset.add_argument("key")
    return parser


def _open_store(args: argparse.Namespace) -> PreferenceStore:
    return PreferenceStore(args.db or os.getenv("IPSENTRY_DB") or None)


def _run_overrides(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "language": args.lang,
        "ipqs_key": args.ipqs_key,
        "event_delay": args.event_delay,
        "run_timeout": args.run_timeout,
        "mask_ip": args.mask_ip,
        "egress_proxy": args.egress_proxy,
        "traffic_api_url": args.traffic_api_url,
        "db_path": args.db,
    }


def _build_config(args: argparse.Namespace, store: PreferenceStore, trigger: TriggerMode) -> CheckConfig:
    overrides = _run_overrides(args)
    overrides["trigger"] = trigger.value
    return load_config(overrides, stored=store.get_preference(SETTINGS_KEY, {}))


def build_dependencies(config: CheckConfig, store: PreferenceStore) -> CheckDependencies:
    request_log = RequestLog()
    http = build_http_client(
        timeout_seconds=config.http_timeout,
        egress_proxy=config.egress_proxy,
        egress_policy=config.egress_policy,
        request_log=request_log,
    )
    if config.traffic_api_url:
        traffic = SurgeTrafficLog(config.traffic_api_url, config.traffic_api_key)
    else:
        traffic = request_log
    return CheckDependencies(http=http, store=store, traffic=traffic)


def _run_check(args: argparse.Namespace, store: PreferenceStore) -> int:
    config = _build_config(args, store, resolve_trigger(panel=args.panel, request=args.request))
    logger.info("Trigger %s, language %s", config.trigger.value, config.language.value)
    deps = build_dependencies(config, store)
    try:
        result = execute_check(config, deps, display=ConsoleDisplay(), notifier=ConsoleNotifier())
    finally:
        deps.http.close()
    if args.json_out:
        export_check_result(args.json_out, result)
    return 1 if result.is_failure else 0


def _run_watch(args: argparse.Namespace, store: PreferenceStore) -> int:
    panel_config = _build_config(args, store, TriggerMode.PANEL)
    event_config = replace(panel_config, trigger=TriggerMode.EVENT)
    display, notifier = ConsoleDisplay(), ConsoleNotifier()

    def run(config: CheckConfig) -> None:
        deps = build_dependencies(config, store)
        try:
            execute_check(config, deps, display=display, notifier=notifier)
        finally:
            deps.http.close()

    scheduler = build_scheduler()
    schedule_watch(
        scheduler,
        run_panel=lambda: run(panel_config),
        run_event=lambda: run(event_config),
        panel_interval=args.interval,
        poll_interval=args.poll,
    )
    stop = threading.Event()
    scheduler.start()
    try:
        stop.wait()
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.shutdown(wait=False)
    return 0


def _show_history(args: argparse.Namespace, store: PreferenceStore) -> int:
    table = Table(title="Recent checks")
    for column in ("When", "Trigger", "Policy", "Risk", "Outbound"):
        table.add_column(column)
    for entry in store.list_check_history(args.limit):
        summary = entry["summary"]
        risk = summary.get("risk") or {}
        table.add_row(
            str(entry["created_at"]),
            str(entry["trigger"]),
            str(summary.get("policy", "")),
            f"{risk.get('score', '?')}% ({risk.get('source', '?')})",
            str(summary.get("outbound_v4", "")),
        )
    Console().print(table)
    return 0


def _manage_config(args: argparse.Namespace, store: PreferenceStore) -> int:
    settings = store.get_preference(SETTINGS_KEY, {})
    if not isinstance(settings, dict):
        settings = {}

    if args.action == "show":
        Console().print_json(json.dumps(settings, ensure_ascii=False))
        return 0

    key = normalize_setting_key(args.key)
    if args.action == "set":
        candidate = {**settings, key: args.value}
        load_config(stored=candidate, environ={})
        settings = candidate
    else:
        settings.pop(key, None)
    store.set_preference(SETTINGS_KEY, settings)
    return 0


COMMANDS = {
    "check": _run_check,
    "watch": _run_watch,
    "history": _show_history,
    "config": _manage_config,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Application entrypoint."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)
    store = _open_store(args)
    try:
        return COMMANDS[args.command](args, store)
    except ConfigurationError as exc:
        print(f"ipsentry: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
