"""Rich CLI output for solaudit.

TTY-aware rendering: rich tables and panels on a terminal, plain text
otherwise (pipes, CI logs, captured output).
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from .models import Severity

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import Checklist
    from .report import OrderedFinding
    from .tracker import CategoryProgress

__all__ = [
    "console",
    "render_findings",
    "render_items",
    "render_progress",
    "sanitize_error",
    "sanitize_for_terminal",
    "splash",
]

ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]")

SOLAUDIT_THEME = Theme(
    {
        "info": "dim cyan",
        "warning": "yellow",
        "danger": "bold red",
        "success": "bold green",
        "muted": "dim white",
        "brand": "bold cyan",
    }
)

SEVERITY_STYLES = {
    Severity.CRITICAL: "bold white on red",
    Severity.HIGH: "bold red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
    Severity.INFO: "dim white",
}

STATUS_MARKS = {"pending": " ", "done": "x", "na": "-"}

console = Console(theme=SOLAUDIT_THEME)

VERSION = "0.1.0"


def splash(*, force_plain: bool = False) -> str:
    if force_plain or not console.is_terminal:
        return f"solaudit v{VERSION} - Solidity security review tracker"

    panel = Panel(
        Text("solaudit", style="brand"),
        subtitle=f"[muted]v{VERSION} - Solidity security review tracker[/muted]",
        border_style="blue",
        padding=(0, 2),
    )
    return _capture(panel)


def render_progress(
    rows: Sequence[CategoryProgress],
    overall: float,
    *,
    force_plain: bool = False,
) -> str:
    """Render per-category completion as a table.

    Args:
        rows: Category progress rows, in checklist order.
        overall: Overall completion fraction.
        force_plain: If True, return plain text regardless of TTY.
    """
    if force_plain or not console.is_terminal:
        lines = ["Progress:"]
        for row in rows:
            name = sanitize_for_terminal(row.name)
            lines.append(f"  {name}: {row.reviewed}/{row.total} ({row.fraction * 100:.1f}%)")
        lines.append(f"Overall: {overall * 100:.1f}%")
        return "\n".join(lines)

    table = Table(title="Review Progress", show_header=True, header_style="bold")
    table.add_column("Category", style="cyan")
    table.add_column("Reviewed", justify="right")
    table.add_column("Total", justify="right", style="muted")
    table.add_column("Completion", justify="right")
    for row in rows:
        style = "success" if row.reviewed == row.total else ""
        table.add_row(
            sanitize_for_terminal(row.name),
            str(row.reviewed),
            str(row.total),
            Text(f"{row.fraction * 100:.1f}%", style=style),
        )
    table.add_section()
    table.add_row("Overall", "", "", f"{overall * 100:.1f}%", style="bold")
    return _capture(table)


def render_items(checklist: Checklist, *, force_plain: bool = False) -> str:
    """Render every item with its status and finding count."""
    if force_plain or not console.is_terminal:
        lines = []
        for category in checklist.categories:
            lines.append(sanitize_for_terminal(category.name))
            for item in category.items:
                mark = STATUS_MARKS[item.status.value]
                suffix = f" ({len(item.findings)} findings)" if item.findings else ""
                description = sanitize_for_terminal(item.description)
                lines.append(f"  [{mark}] {item.item_id}: {description}{suffix}")
        return "\n".join(lines)

    table = Table(title=sanitize_for_terminal(checklist.title), show_header=True)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Findings", justify="right")
    table.add_column("Description")
    for category in checklist.categories:
        table.add_section()
        table.add_row(sanitize_for_terminal(category.name), "", "", "", style="bold")
        for item in category.items:
            table.add_row(
                item.item_id,
                item.status.value,
                str(len(item.findings)) if item.findings else "",
                sanitize_for_terminal(item.description),
            )
    return _capture(table)


def render_findings(entries: Sequence[OrderedFinding], *, force_plain: bool = False) -> str:
    """Render findings in report order."""
    if not entries:
        return "No findings recorded."

    if force_plain or not console.is_terminal:
        lines = ["Findings:"]
        for entry in entries:
            description = sanitize_for_terminal(entry.finding.description)
            lines.append(
                f"  [{entry.finding.severity.label}] {entry.item.item_id}: {description}"
            )
        return "\n".join(lines)

    table = Table(title="Findings", show_header=True, header_style="bold")
    table.add_column("Severity")
    table.add_column("Item", style="cyan", no_wrap=True)
    table.add_column("Location", style="muted")
    table.add_column("Description")
    for entry in entries:
        finding = entry.finding
        table.add_row(
            Text(finding.severity.label, style=SEVERITY_STYLES[finding.severity]),
            entry.item.item_id,
            sanitize_for_terminal(str(finding.code_ref)) if finding.code_ref else "",
            sanitize_for_terminal(finding.description),
        )
    return _capture(table)


def _capture(renderable: object) -> str:
    with console.capture() as capture:
        console.print(renderable)
    result: str = capture.get()
    return result


def sanitize_for_terminal(text: str) -> str:
    """Strip ANSI escape sequences from untrusted content (tool output, definitions)."""
    return ANSI_ESCAPE_PATTERN.sub("", text)


def sanitize_error(error: str | Exception, *, max_length: int = 200) -> str:
    """Sanitize error messages for user display.

    Strips escape sequences and full filesystem paths, and truncates.
    """
    message = str(error) if isinstance(error, Exception) else error
    message = ANSI_ESCAPE_PATTERN.sub("", message)
    message = re.sub(r"(?<![\w.])/[^\s:'\"]+", "[path]", message)
    message = re.sub(r"[A-Za-z]:\\[^\s:'\"]+", "[path]", message)

    if len(message) > max_length:
        message = message[:max_length] + "..."

    return message
