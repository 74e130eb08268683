"""Error types raised by checklist loading, tracking and reporting."""

from __future__ import annotations

__all__ = [
    "ChecklistError",
    "ParseError",
    "ReportError",
    "SessionError",
    "ToolError",
    "UnknownItemError",
    "ValidationError",
]


class ChecklistError(Exception):
    """Base error carrying enough context to correct the input."""

    def __init__(
        self,
        message: str,
        *,
        item_id: str | None = None,
        category: str | None = None,
        value: object = None,
    ) -> None:
        super().__init__(message)
        self.item_id = item_id
        self.category = category
        self.value = value


class ParseError(ChecklistError):
    """Malformed checklist definition. Fatal for the load that raised it."""


class UnknownItemError(ChecklistError):
    """An operation referenced an item identifier not in the checklist."""


class ValidationError(ChecklistError):
    """Rejected status, severity, finding or category value."""


class ReportError(ChecklistError):
    """Report could not be written."""


class SessionError(ChecklistError):
    """Session snapshot missing, invalid or unreadable."""


class ToolError(ChecklistError):
    """External analysis tool could not be run or its output read."""
