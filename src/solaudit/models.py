from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import UnknownItemError, ValidationError

__all__ = [
    "Category",
    "Checklist",
    "CodeReference",
    "Finding",
    "Item",
    "Severity",
    "Status",
]


class Status(str, Enum):
    PENDING = "pending"
    DONE = "done"
    NOT_APPLICABLE = "na"

    @classmethod
    def parse(cls, value: str | Status) -> Status:
        if isinstance(value, Status):
            return value
        normalized = str(value).strip().lower().replace("/", "")
        if normalized in ("n-a", "not_applicable", "notapplicable"):
            normalized = "na"
        try:
            return cls(normalized)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationError(
                f"invalid status {value!r} (expected one of: {allowed})", value=value
            ) from None


class Severity(str, Enum):
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: str | Severity) -> Severity:
        if isinstance(value, Severity):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationError(
                f"invalid severity {value!r} (expected one of: {allowed})", value=value
            ) from None

    @classmethod
    def descending(cls) -> list[Severity]:
        return sorted(cls, key=lambda s: s.rank, reverse=True)


_SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


@dataclass(frozen=True)
class CodeReference:
    file: str
    start_line: int
    end_line: int | None = None

    def __post_init__(self) -> None:
        if not self.file.strip():
            raise ValidationError("code reference needs a file", value=self.file)
        if self.start_line < 1:
            raise ValidationError("start line must be >= 1", value=self.start_line)
        if self.end_line is not None and self.end_line < self.start_line:
            raise ValidationError(
                f"end line {self.end_line} is before start line {self.start_line}",
                value=self.end_line,
            )

    def __str__(self) -> str:
        if self.end_line is None or self.end_line == self.start_line:
            return f"{self.file}:{self.start_line}"
        return f"{self.file}:{self.start_line}-{self.end_line}"


@dataclass(frozen=True)
class Finding:
    """A vulnerability or observation recorded against a checklist item."""

    severity: Severity
    description: str
    code_ref: CodeReference | None = None
    remediation: str | None = None
    tool: str | None = None
    tool_output: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.severity, Severity):
            object.__setattr__(self, "severity", Severity.parse(self.severity))
        if not self.description or not self.description.strip():
            raise ValidationError("finding description must not be empty")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Finding:
        code_ref = None
        file = data.get("file")
        if file:
            try:
                start_raw = data.get("start_line")
                start = int(start_raw) if start_raw is not None else 1
                end_raw = data.get("end_line")
                end = int(end_raw) if end_raw is not None else None
            except (TypeError, ValueError):
                raise ValidationError(
                    "line numbers must be integers", value=data.get("start_line")
                ) from None
            code_ref = CodeReference(file=str(file), start_line=start, end_line=end)
        return cls(
            severity=Severity.parse(data.get("severity", "")),
            description=str(data.get("description") or ""),
            code_ref=code_ref,
            remediation=data.get("remediation") or None,
            tool=data.get("tool") or None,
            tool_output=data.get("tool_output") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "description": self.description,
            "file": self.code_ref.file if self.code_ref else None,
            "start_line": self.code_ref.start_line if self.code_ref else None,
            "end_line": self.code_ref.end_line if self.code_ref else None,
            "remediation": self.remediation,
            "tool": self.tool,
            "tool_output": self.tool_output,
        }


@dataclass
class Item:
    item_id: str
    description: str
    status: Status = Status.PENDING
    findings: list[Finding] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def reviewed(self) -> bool:
        return self.status is not Status.PENDING


@dataclass(frozen=True)
class Category:
    name: str
    items: tuple[Item, ...]


@dataclass(frozen=True)
class Checklist:
    """Ordered categories of items; the shape is fixed once constructed."""

    title: str
    version: str
    categories: tuple[Category, ...]
    _index: dict[str, tuple[Category, Item]] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        for category in self.categories:
            for item in category.items:
                self._index[item.item_id] = (category, item)

    def items(self) -> Iterator[Item]:
        for category in self.categories:
            yield from category.items

    def get_item(self, item_id: str) -> Item:
        return self._lookup(item_id)[1]

    def category_of(self, item_id: str) -> Category:
        return self._lookup(item_id)[0]

    def get_category(self, name: str) -> Category:
        for category in self.categories:
            if category.name == name:
                return category
        raise ValidationError(f"unknown category {name!r}", category=name, value=name)

    def _lookup(self, item_id: str) -> tuple[Category, Item]:
        try:
            return self._index[item_id]
        except KeyError:
            raise UnknownItemError(f"unknown item {item_id!r}", item_id=item_id) from None
