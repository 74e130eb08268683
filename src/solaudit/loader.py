"""Checklist definition loader.

Supports loading definitions from:
- Python mappings (already-parsed documents)
- YAML (.yaml/.yml) or JSON (.json) files
- The bundled Solidity security checklist
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from .errors import ParseError
from .models import Category, Checklist, Item

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_CHECKLIST",
    "default_definition",
    "load_checklist_from_path",
    "load_default_checklist",
    "parse_definition",
    "read_definition",
]

DEFAULT_CHECKLIST = "solidity.yaml"

# Definitions are hand-written documents; anything larger is a mistake.
MAX_DEFINITION_SIZE_MB = 5

_YAML_SUFFIXES = (".yaml", ".yml")


def parse_definition(data: Any) -> Checklist:
    """Build a checklist with every item pending from a parsed definition.

    Raises:
        ParseError: On structural problems, duplicate category names,
            empty categories or duplicate item identifiers.
    """
    if not isinstance(data, Mapping):
        raise ParseError("checklist definition must be a mapping")

    raw_categories = data.get("categories")
    if not isinstance(raw_categories, list) or not raw_categories:
        raise ParseError("checklist definition needs a non-empty 'categories' list")

    title = str(data.get("title") or "Security Review Checklist")
    version = str(data.get("version") or "1")

    seen_ids: dict[str, str] = {}
    seen_names: set[str] = set()
    categories: list[Category] = []

    for position, raw_category in enumerate(raw_categories, start=1):
        if not isinstance(raw_category, Mapping):
            raise ParseError(f"category #{position} must be a mapping")
        name = raw_category.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ParseError(f"category #{position} has no name")
        name = name.strip()
        if name in seen_names:
            raise ParseError(f"duplicate category {name!r}", category=name)
        seen_names.add(name)

        raw_items = raw_category.get("items")
        if not isinstance(raw_items, list) or not raw_items:
            raise ParseError(f"category {name!r} has no items", category=name)

        items = []
        for raw_item in raw_items:
            item = _parse_item(raw_item, name)
            if item.item_id in seen_ids:
                first = seen_ids[item.item_id]
                raise ParseError(
                    f"duplicate item id {item.item_id!r} in {name!r} "
                    f"(first defined in {first!r})",
                    item_id=item.item_id,
                    category=name,
                )
            seen_ids[item.item_id] = name
            items.append(item)
        categories.append(Category(name=name, items=tuple(items)))

    logger.debug(
        "parsed checklist %r: %d categories, %d items", title, len(categories), len(seen_ids)
    )
    return Checklist(title=title, version=version, categories=tuple(categories))


def _parse_item(raw: Any, category: str) -> Item:
    if not isinstance(raw, Mapping):
        raise ParseError(f"item in {category!r} must be a mapping", category=category)
    item_id = raw.get("id")
    if item_id is not None and not isinstance(item_id, str):
        raise ParseError(
            f"item id {item_id!r} in {category!r} must be a string (quote numeric ids)",
            category=category,
            value=item_id,
        )
    if not item_id or not item_id.strip():
        raise ParseError(f"item in {category!r} has no id", category=category)
    item_id = item_id.strip()
    description = raw.get("description")
    if not isinstance(description, str) or not description.strip():
        raise ParseError(
            f"item {item_id!r} has no description", item_id=item_id, category=category
        )
    return Item(item_id=item_id, description=" ".join(description.split()))


def read_definition(path: Path) -> dict[str, Any]:
    """Read a definition file into a mapping without validating its shape.

    Error messages include the file name only, never the full path.
    """
    if not path.is_file():
        raise ParseError(f"{path.name}: definition file not found", value=path.name)

    size_mb = path.stat().st_size / (1024 * 1024)
    if size_mb > MAX_DEFINITION_SIZE_MB:
        raise ParseError(
            f"{path.name}: file too large ({size_mb:.1f} MB, max {MAX_DEFINITION_SIZE_MB} MB)",
            value=path.name,
        )

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(f"{path.name}: {type(exc).__name__}", value=path.name) from exc

    return _decode(content, path.suffix.lower(), path.name)


def _decode(content: str, suffix: str, name: str) -> dict[str, Any]:
    try:
        if suffix == ".json":
            data = json.loads(content)
        elif suffix in _YAML_SUFFIXES:
            data = yaml.safe_load(content)
        else:
            raise ParseError(f"{name}: unsupported definition format {suffix!r}", value=suffix)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ParseError(f"{name}: {type(exc).__name__}", value=name) from exc

    if not isinstance(data, dict):
        raise ParseError(f"{name}: checklist definition must be a mapping", value=name)
    return data


def load_checklist_from_path(path: Path) -> Checklist:
    return parse_definition(read_definition(path))


def default_definition() -> dict[str, Any]:
    text = resources.files("solaudit.data").joinpath(DEFAULT_CHECKLIST).read_text(encoding="utf-8")
    return _decode(text, ".yaml", DEFAULT_CHECKLIST)


def load_default_checklist() -> Checklist:
    """Load the bundled Solidity security review checklist."""
    return parse_definition(default_definition())
