from __future__ import annotations

import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from .errors import ChecklistError
from .paths import resolve_under
from .report import REPORT_FORMATS


class ConfigError(ChecklistError):
    """Configuration file could not be read or has invalid values."""


@dataclass(frozen=True)
class Config:
    sessions_dir: Path
    checklist_path: Path | None = None
    report_format: str = "markdown"
    tool_timeout_seconds: int = 300


@dataclass(frozen=True)
class ConfigOverrides:
    checklist_path: Path | None = None
    report_format: str | None = None


def default_config(base_dir: Path) -> Config:
    return Config(sessions_dir=base_dir / "sessions")


def default_config_text(base_dir: Path) -> str:
    cfg = default_config(base_dir)
    return (
        "# solaudit configuration\n"
        f'sessions_dir = "{cfg.sessions_dir.as_posix()}"\n'
        "# checklist_path = \"my-checklist.yaml\"  # bundled Solidity checklist when unset\n"
        f'report_format = "{cfg.report_format}"\n'
        f"tool_timeout_seconds = {cfg.tool_timeout_seconds}\n"
    )


def load_config(
    path: Path,
    *,
    base_dir: Path,
    overrides: ConfigOverrides | None = None,
) -> Config:
    """Load config: defaults, then the TOML file, then command-line overrides."""
    cfg = default_config(base_dir)
    if path.exists():
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigError(f"{path.name}: {type(exc).__name__}", value=path.name) from exc
        cfg = _apply_file_values(cfg, data, base_dir)

    if overrides:
        if overrides.checklist_path is not None:
            cfg = replace(cfg, checklist_path=overrides.checklist_path)
        if overrides.report_format is not None:
            cfg = replace(cfg, report_format=_report_format(overrides.report_format))
    return cfg


def _apply_file_values(cfg: Config, data: dict[str, Any], base_dir: Path) -> Config:
    if sessions_dir := data.get("sessions_dir"):
        cfg = replace(cfg, sessions_dir=resolve_under(base_dir, Path(str(sessions_dir))))
    if checklist_path := data.get("checklist_path"):
        cfg = replace(cfg, checklist_path=resolve_under(base_dir, Path(str(checklist_path))))
    if "report_format" in data:
        cfg = replace(cfg, report_format=_report_format(str(data["report_format"])))
    if "tool_timeout_seconds" in data:
        timeout = data["tool_timeout_seconds"]
        if not isinstance(timeout, int) or isinstance(timeout, bool) or timeout <= 0:
            raise ConfigError("tool_timeout_seconds must be a positive integer", value=timeout)
        cfg = replace(cfg, tool_timeout_seconds=timeout)
    return cfg


def _report_format(value: str) -> str:
    if value not in REPORT_FORMATS:
        raise ConfigError(
            f"report_format must be one of: {', '.join(REPORT_FORMATS)}", value=value
        )
    return value
