from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import ChecklistError, SessionError
from .loader import parse_definition
from .models import Checklist
from .tracker import ProgressTracker

logger = logging.getLogger(__name__)

SESSION_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]{3,64}$")

SCHEMA_VERSION = 1


@dataclass
class Session:
    session_id: str
    definition: dict[str, Any]
    tracker: ProgressTracker

    @property
    def checklist(self) -> Checklist:
        return self.tracker.checklist


class SessionStore:
    """JSON snapshots of review sessions, one file per session id."""

    def __init__(self, base_dir: Path) -> None:
        self._base_dir = base_dir
        self._base_dir.mkdir(parents=True, exist_ok=True)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def create(self, session_id: str, definition: dict[str, Any]) -> Session:
        path = self._path_for(session_id)
        if path.exists():
            raise SessionError(f"session {session_id!r} already exists", value=session_id)
        # YAML yields dates and other scalars JSON cannot hold; snapshot them as strings.
        definition = json.loads(json.dumps(definition, default=str))
        session = Session(
            session_id=session_id,
            definition=definition,
            tracker=ProgressTracker(parse_definition(definition)),
        )
        self.save(session)
        return session

    def save(self, session: Session) -> Path:
        path = self._path_for(session.session_id)
        path.write_text(
            json.dumps(
                {
                    "schema_version": SCHEMA_VERSION,
                    "session_id": session.session_id,
                    "definition": session.definition,
                    "items": [
                        {
                            "id": item.item_id,
                            "status": item.status.value,
                            "notes": list(item.notes),
                            "findings": [f.to_dict() for f in item.findings],
                        }
                        for item in session.checklist.items()
                    ],
                },
                indent=2,
                sort_keys=True,
            ),
            encoding="utf-8",
        )
        return path

    def load(self, session_id: str) -> Session:
        """Rebuild a session: parse the stored definition, then replay its state."""
        path = self._path_for(session_id)
        if not path.exists():
            raise SessionError(f"session {session_id!r} not found", value=session_id)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise SessionError(
                f"session {session_id!r} unreadable: {type(exc).__name__}", value=session_id
            ) from exc
        if not isinstance(data, dict) or not isinstance(data.get("definition"), dict):
            raise SessionError(f"session {session_id!r} has invalid metadata", value=session_id)

        definition: dict[str, Any] = data["definition"]
        tracker = ProgressTracker(parse_definition(definition))
        try:
            for entry in data.get("items", []):
                item_id = entry["id"]
                tracker.set_status(item_id, entry.get("status", "pending"))
                for note in entry.get("notes", []):
                    tracker.add_note(item_id, note)
                for finding in entry.get("findings", []):
                    tracker.add_finding(item_id, finding)
        except (ChecklistError, AttributeError, KeyError, TypeError) as exc:
            raise SessionError(
                f"session {session_id!r} state does not match its checklist: {exc}",
                value=session_id,
            ) from exc
        logger.debug("loaded session %s", session_id)
        return Session(session_id=session_id, definition=definition, tracker=tracker)

    def list_ids(self) -> list[str]:
        return sorted(
            p.stem for p in self._base_dir.glob("*.json") if SESSION_ID_PATTERN.fullmatch(p.stem)
        )

    def _path_for(self, session_id: str) -> Path:
        if not SESSION_ID_PATTERN.fullmatch(session_id):
            raise SessionError(
                "session id must be 3-64 chars (letters, digits, ._-)", value=session_id
            )
        target = (self._base_dir / f"{session_id}.json").resolve()
        base = self._base_dir.resolve()
        if not target.is_relative_to(base):
            raise SessionError("path traversal detected", value=session_id)
        return target
