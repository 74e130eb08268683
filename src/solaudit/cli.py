from __future__ import annotations

import argparse
import logging
import re
import shlex
import sys
from collections.abc import Sequence
from pathlib import Path

from .config import Config, ConfigOverrides, default_config_text, load_config
from .errors import ChecklistError, ValidationError
from .loader import default_definition, read_definition
from .models import CodeReference, Finding, Severity, Status
from .output import (
    render_findings,
    render_items,
    render_progress,
    sanitize_error,
    splash,
)
from .paths import app_base_dir, config_path, ensure_dir
from .report import REPORT_FORMATS, ordered_findings, render, render_json, write_report
from .session import SessionStore
from .tools import ToolCapture, capture_tool_output, read_tool_output

logger = logging.getLogger(__name__)

LINE_RANGE_PATTERN = re.compile(r"^(\d+)(?:-(\d+))?$")


def main(argv: Sequence[str] | None = None) -> int:
    args = list(argv) if argv is not None else sys.argv[1:]
    if not args:
        return _handle_no_args()

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=str, help="Path to config file")
    common.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    parser = argparse.ArgumentParser(prog="solaudit")
    subparsers = parser.add_subparsers(dest="command")

    init_parser = subparsers.add_parser(
        "init", parents=[common], help="initialize config and directories"
    )
    init_parser.add_argument("--force", action="store_true", help="Overwrite existing config")

    new_parser = subparsers.add_parser(
        "new", parents=[common], help="start a review session from a checklist"
    )
    new_parser.add_argument("session", help="Session id (3-64 chars: letters, digits, ._-)")
    new_parser.add_argument(
        "--checklist", type=str, help="Checklist definition (.yaml/.yml/.json)"
    )

    subparsers.add_parser("list", parents=[common], help="list review sessions")

    items_parser = subparsers.add_parser(
        "items", parents=[common], help="show checklist items and their status"
    )
    items_parser.add_argument("session")

    status_parser = subparsers.add_parser(
        "status", parents=[common], help="show review progress"
    )
    status_parser.add_argument("session")
    status_parser.add_argument("--category", type=str, help="Limit to one category")

    set_parser = subparsers.add_parser("set", parents=[common], help="set an item's status")
    set_parser.add_argument("session")
    set_parser.add_argument("item")
    set_parser.add_argument("status", help="pending, done or na")

    finding_parser = subparsers.add_parser(
        "finding", parents=[common], help="record a finding against an item"
    )
    finding_parser.add_argument("session")
    finding_parser.add_argument("item")
    finding_parser.add_argument(
        "--severity",
        required=True,
        help=f"One of: {', '.join(s.value for s in Severity)}",
    )
    finding_parser.add_argument("--description", required=True, help="What is wrong")
    finding_parser.add_argument("--file", type=str, help="Source file of the issue")
    finding_parser.add_argument("--lines", type=str, help="Line or range, e.g. 42 or 42-57")
    finding_parser.add_argument("--remediation", type=str, help="Suggested fix")
    finding_parser.add_argument(
        "--status", type=str, help="Also set the item's status (e.g. done)"
    )
    attach = finding_parser.add_mutually_exclusive_group()
    attach.add_argument("--tool-output", type=str, help="Attach saved tool output from a file")
    attach.add_argument(
        "--run",
        type=str,
        help='Run an analysis tool and attach its output, e.g. "slither ."',
    )
    finding_parser.add_argument("--cwd", type=str, help="Working directory for --run")

    note_parser = subparsers.add_parser("note", parents=[common], help="add a note to an item")
    note_parser.add_argument("session")
    note_parser.add_argument("item")
    note_parser.add_argument("text")

    report_parser = subparsers.add_parser(
        "report", parents=[common], help="render the findings report"
    )
    report_parser.add_argument("session")
    report_parser.add_argument("--output", type=str, help="Write to a file instead of stdout")
    report_parser.add_argument("--format", choices=REPORT_FORMATS, help="Report format")

    parsed = parser.parse_args(args)
    if parsed.command is None:
        parser.print_help()
        return 1

    _configure_logging(parsed.verbose)
    try:
        if parsed.command == "init":
            return _command_init(parsed.config, parsed.force)
        cfg = _load_config(parsed)
        store = SessionStore(cfg.sessions_dir)
        if parsed.command == "new":
            return _command_new(store, cfg, parsed.session)
        if parsed.command == "list":
            return _command_list(store)
        if parsed.command == "items":
            return _command_items(store, parsed.session)
        if parsed.command == "status":
            return _command_status(store, parsed.session, parsed.category)
        if parsed.command == "set":
            return _command_set(store, parsed.session, parsed.item, parsed.status)
        if parsed.command == "finding":
            return _command_finding(store, cfg, parsed)
        if parsed.command == "note":
            return _command_note(store, parsed.session, parsed.item, parsed.text)
        if parsed.command == "report":
            return _command_report(store, cfg, parsed.session, parsed.output)
    except ChecklistError as exc:
        logger.debug("command %s failed", parsed.command, exc_info=True)
        print(f"Error: {sanitize_error(exc)}")
        return 1

    parser.print_help()
    return 1


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _handle_no_args() -> int:
    print(splash())
    if not config_path().exists():
        print("No config found. Run `solaudit init` to create one.")
    print("Run one of:")
    print("  solaudit new <session>")
    print("  solaudit status <session>")
    print("  solaudit report <session>")
    return 0


def _command_init(config_override: str | None, force: bool) -> int:
    cfg_path = _resolve_config_path(config_override)
    if cfg_path.exists() and not force:
        print(f"Config already exists at {cfg_path}. Use --force to overwrite.")
        return 1

    base_dir = app_base_dir()
    ensure_dir(base_dir)
    ensure_dir(base_dir / "sessions")
    ensure_dir(cfg_path.parent)

    cfg_path.write_text(default_config_text(base_dir), encoding="utf-8")
    print(splash())
    print(f"Initialized config at {cfg_path}")
    return 0


def _load_config(parsed: argparse.Namespace) -> Config:
    overrides = ConfigOverrides(
        checklist_path=(
            Path(parsed.checklist).expanduser().resolve()
            if getattr(parsed, "checklist", None)
            else None
        ),
        report_format=getattr(parsed, "format", None),
    )
    return load_config(
        _resolve_config_path(parsed.config), base_dir=app_base_dir(), overrides=overrides
    )


def _command_new(store: SessionStore, cfg: Config, session_id: str) -> int:
    if cfg.checklist_path is not None:
        definition = read_definition(cfg.checklist_path)
    else:
        definition = default_definition()
    session = store.create(session_id, definition)
    checklist = session.checklist
    item_count = sum(len(c.items) for c in checklist.categories)
    print(
        f"Created session {session_id}: {checklist.title} "
        f"({len(checklist.categories)} categories, {item_count} items)"
    )
    return 0


def _command_list(store: SessionStore) -> int:
    session_ids = store.list_ids()
    if not session_ids:
        print("No sessions found. Run `solaudit new <session>`.")
        return 0
    for session_id in session_ids:
        print(session_id)
    return 0


def _command_items(store: SessionStore, session_id: str) -> int:
    session = store.load(session_id)
    print(render_items(session.checklist))
    return 0


def _command_status(store: SessionStore, session_id: str, category: str | None) -> int:
    session = store.load(session_id)
    tracker = session.tracker
    if category is not None:
        fraction = tracker.completion(category)
        print(f"{category}: {fraction * 100:.1f}%")
        return 0
    print(render_progress(tracker.category_progress(), tracker.completion()))
    print(render_findings(ordered_findings(session.checklist)))
    return 0


def _command_set(store: SessionStore, session_id: str, item_id: str, status: str) -> int:
    session = store.load(session_id)
    changed = session.tracker.set_status(item_id, status)
    if changed:
        store.save(session)
        print(f"{item_id}: {Status.parse(status).value}")
    else:
        print(f"{item_id}: already {Status.parse(status).value}")
    return 0


def _command_finding(store: SessionStore, cfg: Config, parsed: argparse.Namespace) -> int:
    session = store.load(parsed.session)
    tracker = session.tracker
    # Fail on an unknown item or bad status before running any tool.
    tracker.checklist.get_item(parsed.item)
    new_status = Status.parse(parsed.status) if parsed.status else None

    capture = _capture_tool(parsed, cfg)
    finding = Finding(
        severity=Severity.parse(parsed.severity),
        description=parsed.description,
        code_ref=_code_reference(parsed.file, parsed.lines),
        remediation=parsed.remediation,
        tool=capture.tool if capture else None,
        tool_output=capture.output if capture else None,
    )
    tracker.add_finding(parsed.item, finding)
    if new_status is not None:
        tracker.set_status(parsed.item, new_status)
    store.save(session)
    print(f"Recorded {finding.severity.label} finding on {parsed.item}")
    return 0


def _capture_tool(parsed: argparse.Namespace, cfg: Config) -> ToolCapture | None:
    if parsed.tool_output:
        return read_tool_output(Path(parsed.tool_output).expanduser())
    if parsed.run:
        command = shlex.split(parsed.run)
        cwd = Path(parsed.cwd).expanduser().resolve() if parsed.cwd else None
        capture = capture_tool_output(command, cwd=cwd, timeout_seconds=cfg.tool_timeout_seconds)
        print(f"Captured {capture.tool} output (exit code {capture.exit_code})")
        return capture
    return None


def _code_reference(file: str | None, lines: str | None) -> CodeReference | None:
    if not file:
        if lines:
            raise ValidationError("--lines requires --file", value=lines)
        return None
    if not lines:
        return CodeReference(file=file, start_line=1)
    match = LINE_RANGE_PATTERN.match(lines.strip())
    if not match:
        raise ValidationError(f"invalid line range {lines!r} (expected N or N-M)", value=lines)
    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else None
    return CodeReference(file=file, start_line=start, end_line=end)


def _command_note(store: SessionStore, session_id: str, item_id: str, text: str) -> int:
    session = store.load(session_id)
    session.tracker.add_note(item_id, text)
    store.save(session)
    print(f"Note added to {item_id}")
    return 0


def _command_report(
    store: SessionStore, cfg: Config, session_id: str, output: str | None
) -> int:
    session = store.load(session_id)
    if output:
        path = write_report(
            session.checklist, Path(output).expanduser().resolve(), cfg.report_format
        )
        print(f"Report written: {path}")
        return 0
    if cfg.report_format == "json":
        sys.stdout.write(render_json(session.checklist))
    else:
        sys.stdout.write(render(session.checklist))
    return 0


def _resolve_config_path(config_override: str | None) -> Path:
    if config_override:
        return Path(config_override).expanduser().resolve()
    return config_path()
