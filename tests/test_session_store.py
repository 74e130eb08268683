from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from solaudit.errors import SessionError
from solaudit.models import CodeReference, Finding, Severity, Status
from solaudit.report import render
from solaudit.session import SessionStore

DEFINITION: dict[str, Any] = {
    "title": "Session test",
    "categories": [
        {
            "name": "Reentrancy",
            "items": [
                {"id": "RE-1", "description": "CEI pattern"},
                {"id": "RE-2", "description": "guards"},
            ],
        }
    ],
}


def test_create_and_reload(tmp_path: Path) -> None:
    store = SessionStore(tmp_path)
    session = store.create("audit-1", DEFINITION)
    session.tracker.set_status("RE-1", Status.DONE)
    session.tracker.add_note("RE-1", "withdraw() reviewed")
    session.tracker.add_finding(
        "RE-1",
        Finding(
            severity=Severity.HIGH,
            description="missing nonReentrant guard",
            code_ref=CodeReference("Vault.sol", 10, 20),
        ),
    )
    store.save(session)

    loaded = store.load("audit-1")

    assert loaded.checklist.get_item("RE-1").status is Status.DONE
    assert loaded.checklist.get_item("RE-1").notes == ["withdraw() reviewed"]
    assert loaded.tracker.completion("Reentrancy") == 0.5
    assert render(loaded.checklist) == render(session.checklist)


def test_create_refuses_existing(tmp_path: Path) -> None:
    store = SessionStore(tmp_path)
    store.create("audit-1", DEFINITION)

    with pytest.raises(SessionError):
        store.create("audit-1", DEFINITION)


def test_list_ids(tmp_path: Path) -> None:
    store = SessionStore(tmp_path)
    store.create("beta", DEFINITION)
    store.create("alpha", DEFINITION)

    assert store.list_ids() == ["alpha", "beta"]


@pytest.mark.parametrize("session_id", ["..", "a/b/c", "x", "../../etc/passwd"])
def test_rejects_invalid_ids(tmp_path: Path, session_id: str) -> None:
    store = SessionStore(tmp_path)

    with pytest.raises(SessionError):
        store.load(session_id)


def test_missing_session(tmp_path: Path) -> None:
    with pytest.raises(SessionError):
        SessionStore(tmp_path).load("nothing-here")


def test_corrupt_snapshot(tmp_path: Path) -> None:
    (tmp_path / "broken.json").write_text("{not json")

    with pytest.raises(SessionError):
        SessionStore(tmp_path).load("broken")


def test_state_for_unknown_item_is_rejected(tmp_path: Path) -> None:
    store = SessionStore(tmp_path)
    store.create("audit-1", DEFINITION)
    path = tmp_path / "audit-1.json"
    data = json.loads(path.read_text())
    data["items"].append({"id": "RE-99", "status": "done"})
    path.write_text(json.dumps(data))

    with pytest.raises(SessionError):
        store.load("audit-1")
