from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from solaudit_core import redact

from .errors import ValidationError
from .models import Checklist, Finding, Status

logger = logging.getLogger(__name__)

__all__ = [
    "CategoryProgress",
    "ProgressTracker",
]


@dataclass(frozen=True)
class CategoryProgress:
    name: str
    reviewed: int
    total: int

    @property
    def fraction(self) -> float:
        return self.reviewed / self.total if self.total else 0.0


class ProgressTracker:
    """Mutates item status, findings and notes of a loaded checklist.

    Every operation validates its input before touching state, so a rejected
    call leaves the checklist exactly as it was.
    """

    def __init__(self, checklist: Checklist) -> None:
        self._checklist = checklist

    @property
    def checklist(self) -> Checklist:
        return self._checklist

    def set_status(self, item_id: str, status: Status | str) -> bool:
        """Set an item's status. Returns False when the status was already set."""
        item = self._checklist.get_item(item_id)
        try:
            new_status = Status.parse(status)
        except ValidationError as exc:
            exc.item_id = item_id
            exc.category = self._checklist.category_of(item_id).name
            raise
        if item.status is new_status:
            return False
        logger.debug("item %s: %s -> %s", item_id, item.status.value, new_status.value)
        item.status = new_status
        return True

    def add_finding(self, item_id: str, finding: Finding | Mapping[str, Any]) -> Finding:
        """Append a finding to an item. The item's status is left unchanged."""
        item = self._checklist.get_item(item_id)
        if not isinstance(finding, Finding):
            try:
                finding = Finding.from_dict(finding)
            except ValidationError as exc:
                exc.item_id = item_id
                raise
        item.findings.append(finding)
        logger.info(
            "item %s: %s finding recorded: %s",
            item_id,
            finding.severity.value,
            redact(finding.description),
        )
        return finding

    def add_note(self, item_id: str, text: str) -> None:
        item = self._checklist.get_item(item_id)
        if not text.strip():
            raise ValidationError("note must not be empty", item_id=item_id)
        item.notes.append(text.strip())

    def completion(self, category_name: str | None = None) -> float:
        """Fraction of items no longer pending, for one category or the whole checklist."""
        if category_name is not None:
            items = list(self._checklist.get_category(category_name).items)
        else:
            items = list(self._checklist.items())
        if not items:
            return 0.0
        return sum(1 for item in items if item.reviewed) / len(items)

    def category_progress(self) -> list[CategoryProgress]:
        return [
            CategoryProgress(
                name=category.name,
                reviewed=sum(1 for item in category.items if item.reviewed),
                total=len(category.items),
            )
            for category in self._checklist.categories
        ]
