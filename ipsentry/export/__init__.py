"""Output building: panel/notification text and JSON export."""

from .panel import (
    SILENT_RESULT,
    CheckResult,
    NetworkReport,
    ResultKind,
    acquisition_failed_result,
    build_notification,
    build_panel,
    country_flag,
    format_geo,
    timeout_result,
)
from .writers import export_check_result, export_json_document

__all__ = [
    "SILENT_RESULT",
    "CheckResult",
    "NetworkReport",
    "ResultKind",
    "acquisition_failed_result",
    "build_notification",
    "build_panel",
    "country_flag",
    "export_check_result",
    "export_json_document",
    "format_geo",
    "timeout_result",
]
