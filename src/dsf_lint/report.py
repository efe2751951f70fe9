"""JSON and Markdown reports of a validation result.

JSON reports are checked against REPORT_SCHEMA before they are written so
that CI consumers can rely on their shape.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import jsonschema
from slugify import slugify

from . import __version__
from .errors import ReportError
from .validation import Severity, ValidationResult

logger = logging.getLogger(__name__)

REPORT_SCHEMA_VERSION = "1.0.0"

_NULLABLE_STRING = {"type": ["string", "null"]}

REPORT_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "dsf-lint report",
    "type": "object",
    "required": ["schemaVersion", "dsfLintVersion", "generatedAt", "plugin", "status", "passed", "counters", "items"],
    "properties": {
        "schemaVersion": {"type": "string"},
        "dsfLintVersion": {"type": "string"},
        "generatedAt": {"type": "string"},
        "plugin": {"type": "string", "minLength": 1},
        "projectRoot": _NULLABLE_STRING,
        "apiVersion": _NULLABLE_STRING,
        "status": {"enum": [s.value for s in Severity]},
        "passed": {"type": "boolean"},
        "counters": {
            "type": "object",
            "required": [s.value for s in Severity],
            "additionalProperties": {"type": "integer", "minimum": 0},
        },
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["severity", "kind", "message"],
                "properties": {
                    "severity": {"enum": [s.value for s in Severity]},
                    "kind": {"type": "string", "minLength": 1},
                    "message": {"type": "string"},
                    "file": _NULLABLE_STRING,
                    "elementId": _NULLABLE_STRING,
                    "processId": _NULLABLE_STRING,
                    "reference": _NULLABLE_STRING,
                },
                "additionalProperties": False,
            },
        },
    },
    "additionalProperties": False,
}


def build_report(result: ValidationResult, plugin: str, project_root: Path | None = None,
                 api_version: str | None = None, include_success: bool = True) -> dict[str, Any]:
    report = {
        "schemaVersion": REPORT_SCHEMA_VERSION,
        "dsfLintVersion": __version__,
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "plugin": plugin,
        "projectRoot": str(project_root) if project_root else None,
        "apiVersion": api_version,
    }
    report.update(result.to_dict(include_success=include_success))
    return report


def validate_report(report: dict[str, Any]) -> None:
    """Check a report against REPORT_SCHEMA.

    Raises:
        ReportError: If the report does not conform
    """
    try:
        jsonschema.validate(report, REPORT_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ReportError(f"Invalid report at {e.json_path}: {e.message}") from e


def report_file_name(plugin: str) -> str:
    return f"{slugify(plugin) or 'plugin'}-report.json"


def write_report(report: dict[str, Any], report_dir: Path) -> Path:
    """Validate and write a report as ``<slugified plugin>-report.json``."""
    validate_report(report)
    report_dir.mkdir(parents=True, exist_ok=True)
    path = report_dir / report_file_name(report["plugin"])
    with open(path, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2)
    logger.info(f"Wrote report {path}")
    return path


def render_markdown(result: ValidationResult, plugin: str, include_success: bool = True,
                    fail_on_warn: bool = False) -> str:
    lines = [
        f"# Validation Report: {plugin}",
        "",
        f"**Status:** {result.status.value}",
        f"**Exit Code:** {result.exit_code(fail_on_warn)}",
        "",
        "## Counters",
    ]
    lines.extend(f"- {key}: {value}" for key, value in result.counters.items())

    items = [i for i in result.items if include_success or i.severity != Severity.SUCCESS]
    if items:
        lines.extend(["", "## Items"])
        for item in items:
            location = " ".join(part for part in (item.file, item.element_id or item.reference) if part)
            suffix = f" ({location})" if location else ""
            lines.append(f"- **{item.severity.value.upper()}** {item.kind}: {item.message}{suffix}")
    return "\n".join(lines)
