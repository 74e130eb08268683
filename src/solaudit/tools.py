"""Plain-text capture of external analysis tool output.

Tools such as Slither, Mythril or Echidna are run as opaque subprocesses.
Their output is never parsed; it is redacted, bounded and attached to a
finding as-is.
"""

from __future__ import annotations

import logging
import shutil
import subprocess  # nosec B404
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from solaudit_core import redact

from .errors import ToolError

logger = logging.getLogger(__name__)

__all__ = [
    "MAX_OUTPUT_BYTES",
    "ToolCapture",
    "capture_tool_output",
    "read_tool_output",
]

MAX_OUTPUT_BYTES = 64 * 1024

_TRUNCATION_MARKER = "\n[... output truncated ...]\n"


@dataclass(frozen=True)
class ToolCapture:
    tool: str
    output: str
    exit_code: int | None = None
    truncated: bool = False


def capture_tool_output(
    command: Sequence[str],
    cwd: Path | None = None,
    timeout_seconds: int = 300,
) -> ToolCapture:
    """Run a tool without a shell and capture its combined output.

    A non-zero exit code is not an error: analyzers commonly exit non-zero
    when they report issues.

    Raises:
        ToolError: If the command is empty, not on PATH, fails to start or times out.
    """
    if not command:
        raise ToolError("no tool command given")
    tool = command[0]
    executable = shutil.which(tool)
    if not executable:
        raise ToolError(f"tool not found on PATH: {tool}", value=tool)

    logger.info("running %s", tool)
    try:
        result = subprocess.run(  # noqa: S603  # nosec B603
            [executable, *command[1:]],
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout_seconds,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise ToolError(f"{tool} timed out after {timeout_seconds}s", value=tool) from exc
    except OSError as exc:
        raise ToolError(f"{tool} failed to start: {type(exc).__name__}", value=tool) from exc

    combined = result.stdout
    if result.stderr:
        combined = f"{combined}\n{result.stderr}" if combined else result.stderr
    output, truncated = _bound(combined)
    logger.debug("%s exited with %d (%d chars captured)", tool, result.returncode, len(output))
    return ToolCapture(
        tool=Path(tool).name,
        output=output,
        exit_code=result.returncode,
        truncated=truncated,
    )


def read_tool_output(path: Path, tool: str | None = None) -> ToolCapture:
    """Capture previously saved tool output from a text file."""
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ToolError(f"{path.name}: {type(exc).__name__}", value=path.name) from exc
    output, truncated = _bound(raw.decode("utf-8", errors="replace"))
    return ToolCapture(tool=tool or path.stem, output=output, truncated=truncated)


def _bound(text: str) -> tuple[str, bool]:
    text = redact(text.strip())
    encoded = text.encode("utf-8")
    if len(encoded) <= MAX_OUTPUT_BYTES:
        return text, False
    kept = encoded[:MAX_OUTPUT_BYTES].decode("utf-8", errors="ignore")
    return kept + _TRUNCATION_MARKER.rstrip("\n"), True
