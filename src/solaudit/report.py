"""Findings report rendering for checklist review sessions.

Renders the checklist state as markdown or JSON. Output depends only on
checklist state (no timestamps), so identical state renders byte-identical
reports.
"""

from __future__ import annotations

import contextlib
import json
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from solaudit_core import redact

from .errors import ReportError, ValidationError
from .models import Category, Checklist, Finding, Item, Severity
from .tracker import ProgressTracker

__all__ = [
    "REPORT_FORMATS",
    "OrderedFinding",
    "build_report_data",
    "ordered_findings",
    "render",
    "render_json",
    "write_report",
]

REPORT_FORMATS = ("markdown", "json")

MAX_REPORT_SIZE_MB = 50

_BACKTICK_RUN = re.compile(r"`+")


@dataclass(frozen=True)
class OrderedFinding:
    category: Category
    item: Item
    finding: Finding


def ordered_findings(checklist: Checklist) -> list[OrderedFinding]:
    """Findings ordered by severity (critical first), category, item, then list position."""
    keyed: list[tuple[tuple[int, int, int, int], OrderedFinding]] = []
    for cat_idx, category in enumerate(checklist.categories):
        for item_idx, item in enumerate(category.items):
            for pos, finding in enumerate(item.findings):
                key = (-finding.severity.rank, cat_idx, item_idx, pos)
                keyed.append((key, OrderedFinding(category, item, finding)))
    keyed.sort(key=lambda pair: pair[0])
    return [entry for _, entry in keyed]


def _severity_counts(entries: list[OrderedFinding]) -> dict[str, int]:
    counts = {severity.value: 0 for severity in Severity.descending()}
    for entry in entries:
        counts[entry.finding.severity.value] += 1
    return counts


def render(checklist: Checklist) -> str:
    """Render the checklist state as a markdown findings report."""
    tracker = ProgressTracker(checklist)
    entries = ordered_findings(checklist)
    counts = _severity_counts(entries)
    items = list(checklist.items())
    reviewed = sum(1 for item in items if item.reviewed)

    lines = [
        f"# {_inline(checklist.title)} - Findings Report",
        "",
        f"Checklist version: {_inline(checklist.version)}",
        "",
        "## Executive Summary",
        "",
        f"- Completion: {_percent(tracker.completion())} ({reviewed}/{len(items)} items reviewed)",
        f"- Total findings: {len(entries)}",
        "",
        "| Severity | Count |",
        "|---|---:|",
    ]
    for severity in Severity.descending():
        lines.append(f"| {severity.label} | {counts[severity.value]} |")

    lines += [
        "",
        "### Category Progress",
        "",
        "| Category | Reviewed | Total | Completion |",
        "|---|---:|---:|---:|",
    ]
    for row in tracker.category_progress():
        lines.append(
            f"| {_cell(row.name)} | {row.reviewed} | {row.total} | {_percent(row.fraction)} |"
        )

    lines += ["", "## Findings", ""]
    if not entries:
        lines += ["_No findings recorded._", ""]
    for number, entry in enumerate(entries, start=1):
        lines += _finding_block(number, entry)

    return "\n".join(lines).rstrip("\n") + "\n"


def _finding_block(number: int, entry: OrderedFinding) -> list[str]:
    finding = entry.finding
    block = [
        f"### {number}. [{finding.severity.label}] {entry.item.item_id}: "
        f"{_inline(finding.description)}",
        "",
        f"- Category: {_inline(entry.category.name)}",
        f"- Checklist item: {_inline(entry.item.description)}",
        f"- Item status: {entry.item.status.value}",
    ]
    if finding.code_ref is not None:
        block.append(f"- Location: `{finding.code_ref}`")
    if finding.remediation:
        block.append(f"- Remediation: {_inline(finding.remediation)}")
    if finding.tool:
        block.append(f"- Source: {_inline(finding.tool)}")
    block.append("")
    if finding.tool_output:
        output = redact(finding.tool_output).rstrip("\n")
        fence = _fence_for(output)
        block += [fence, output, fence, ""]
    return block


def _fence_for(text: str) -> str:
    longest = max((len(run) for run in _BACKTICK_RUN.findall(text)), default=0)
    return "`" * max(3, longest + 1)


def _percent(fraction: float) -> str:
    return f"{fraction * 100:.1f}%"


def _inline(text: str) -> str:
    return " ".join(text.split())


def _cell(text: str) -> str:
    return _inline(text).replace("|", "\\|")


def build_report_data(checklist: Checklist) -> dict[str, Any]:
    """Report content as a JSON-serialisable dict, in report order."""
    tracker = ProgressTracker(checklist)
    entries = ordered_findings(checklist)
    items = list(checklist.items())
    return {
        "version": "1.0.0",
        "checklist": {"title": checklist.title, "version": checklist.version},
        "summary": {
            "total_items": len(items),
            "reviewed_items": sum(1 for item in items if item.reviewed),
            "completion": round(tracker.completion(), 4),
            "total_findings": len(entries),
            **_severity_counts(entries),
        },
        "categories": [
            {
                "name": row.name,
                "reviewed": row.reviewed,
                "total": row.total,
                "completion": round(row.fraction, 4),
            }
            for row in tracker.category_progress()
        ],
        "findings": [
            {
                "item_id": entry.item.item_id,
                "category": entry.category.name,
                "item_status": entry.item.status.value,
                **_redacted(entry.finding),
            }
            for entry in entries
        ],
    }


def _redacted(finding: Finding) -> dict[str, Any]:
    data = finding.to_dict()
    if finding.tool_output:
        data["tool_output"] = redact(finding.tool_output)
    return data


def render_json(checklist: Checklist) -> str:
    return json.dumps(build_report_data(checklist), indent=2, ensure_ascii=False) + "\n"


def write_report(checklist: Checklist, output_path: Path, fmt: str = "markdown") -> Path:
    """Render and atomically write a report.

    Raises:
        ValidationError: If the format is unknown.
        ReportError: If the report cannot be written.
    """
    if fmt not in REPORT_FORMATS:
        raise ValidationError(
            f"unknown report format {fmt!r} (expected one of: {', '.join(REPORT_FORMATS)})",
            value=fmt,
        )
    content = render(checklist) if fmt == "markdown" else render_json(checklist)
    try:
        _write_atomic(output_path, content)
    except (OSError, ValueError) as exc:
        raise ReportError(f"Failed to write report: {exc}", value=output_path.name) from exc
    return output_path


def _write_atomic(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)

    encoded = content.encode("utf-8")
    size_mb = len(encoded) / (1024 * 1024)
    if size_mb > MAX_REPORT_SIZE_MB:
        raise ValueError(f"Report too large: {size_mb:.1f}MB > {MAX_REPORT_SIZE_MB}MB")

    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=str(path.parent), prefix=".solaudit-report-", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)
    try:
        os.write(temp_fd, encoded)
        os.close(temp_fd)
        os.chmod(temp_path, 0o644)
        temp_path.replace(path)
    except Exception:
        with contextlib.suppress(OSError):
            temp_path.unlink()
        raise
