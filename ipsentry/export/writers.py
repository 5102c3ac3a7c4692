"""JSON writers for check results."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .panel import CheckResult


def export_json_document(path: str | Path, payload: dict[str, Any]) -> Path:
    """Write a formatted JSON document and return the destination path."""
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return target


def export_check_result(path: str | Path, result: CheckResult) -> Path:
    """Write the terminal result's host payload; silent runs produce ``{}``."""
    return export_json_document(path, result.to_payload())
