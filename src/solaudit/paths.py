from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "solaudit.toml"


def app_base_dir() -> Path:
    override = os.environ.get("SOLAUDIT_HOME")
    if override:
        return Path(override).expanduser().resolve()
    return (Path.home() / ".solaudit").resolve()


def config_path() -> Path:
    return app_base_dir() / CONFIG_FILENAME


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def resolve_under(base_dir: Path, path: Path) -> Path:
    """Resolve a possibly relative path against the app base dir."""
    expanded = path.expanduser()
    if expanded.is_absolute():
        return expanded.resolve()
    return (base_dir / expanded).resolve()
