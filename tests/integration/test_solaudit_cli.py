"""Integration tests driving the solaudit CLI end to end."""

from __future__ import annotations

import json
import shlex
import sys
from pathlib import Path

import pytest

from solaudit.cli import main

CHECKLIST_YAML = """\
title: Reentrancy only
version: "1"
categories:
  - name: Reentrancy
    items:
      - id: RE-1
        description: State changes before external calls.
      - id: RE-2
        description: nonReentrant on functions touching shared state.
"""


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    base_dir = tmp_path / "solaudit_home"
    monkeypatch.setenv("SOLAUDIT_HOME", str(base_dir))
    return base_dir


@pytest.fixture
def checklist_file(tmp_path: Path) -> Path:
    path = tmp_path / "reentrancy.yaml"
    path.write_text(CHECKLIST_YAML)
    return path


@pytest.mark.integration
class TestInit:
    def test_init_writes_config(self, home: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["init"]) == 0

        assert (home / "solaudit.toml").exists()
        assert (home / "sessions").is_dir()
        assert "Initialized config" in capsys.readouterr().out

    def test_init_refuses_overwrite_without_force(self, home: Path) -> None:
        assert main(["init"]) == 0
        assert main(["init"]) == 1
        assert main(["init", "--force"]) == 0

    def test_no_args_shows_usage(self, home: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([]) == 0

        out = capsys.readouterr().out
        assert "solaudit" in out
        assert "solaudit init" in out


@pytest.mark.integration
class TestReviewWorkflow:
    def test_documented_reentrancy_example(
        self, home: Path, checklist_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["new", "vault", "--checklist", str(checklist_file)]) == 0
        assert main(["set", "vault", "RE-1", "done"]) == 0
        assert (
            main(
                [
                    "finding",
                    "vault",
                    "RE-1",
                    "--severity",
                    "high",
                    "--description",
                    "missing nonReentrant guard",
                    "--file",
                    "src/Vault.sol",
                    "--lines",
                    "42-57",
                ]
            )
            == 0
        )
        capsys.readouterr()

        assert main(["status", "vault", "--category", "Reentrancy"]) == 0
        assert "Reentrancy: 50.0%" in capsys.readouterr().out

        assert main(["set", "vault", "RE-99", "done"]) == 1
        assert "unknown item 'RE-99'" in capsys.readouterr().out

        assert main(["status", "vault", "--category", "Reentrancy"]) == 0
        assert "Reentrancy: 50.0%" in capsys.readouterr().out

        assert main(["report", "vault"]) == 0
        report = capsys.readouterr().out
        assert "| High | 1 |" in report
        assert "### 1. [High] RE-1: missing nonReentrant guard" in report
        assert "- Location: `src/Vault.sol:42-57`" in report

    def test_bundled_checklist_by_default(
        self, home: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["new", "default-run"]) == 0
        assert "Solidity Smart Contract Security Review" in capsys.readouterr().out

        assert main(["items", "default-run"]) == 0
        assert "RE-1" in capsys.readouterr().out

    def test_set_is_idempotent(
        self, home: Path, checklist_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["new", "idem", "--checklist", str(checklist_file)])
        snapshot = home / "sessions" / "idem.json"

        assert main(["set", "idem", "RE-2", "na"]) == 0
        first = snapshot.read_text()
        assert main(["set", "idem", "RE-2", "na"]) == 0

        assert snapshot.read_text() == first
        assert "already na" in capsys.readouterr().out

    def test_invalid_status_and_severity(self, home: Path, checklist_file: Path) -> None:
        main(["new", "bad", "--checklist", str(checklist_file)])

        assert main(["set", "bad", "RE-1", "finished"]) == 1
        assert (
            main(["finding", "bad", "RE-1", "--severity", "huge", "--description", "x"]) == 1
        )
        assert (
            main(
                [
                    "finding",
                    "bad",
                    "RE-1",
                    "--severity",
                    "low",
                    "--description",
                    "x",
                    "--lines",
                    "12",
                ]
            )
            == 1
        )

        data = json.loads((home / "sessions" / "bad.json").read_text())
        assert all(item["status"] == "pending" for item in data["items"])
        assert all(not item["findings"] for item in data["items"])

    def test_finding_with_status_and_note(
        self, home: Path, checklist_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["new", "combo", "--checklist", str(checklist_file)])

        assert (
            main(
                [
                    "finding",
                    "combo",
                    "RE-2",
                    "--severity",
                    "medium",
                    "--description",
                    "guard missing on claim()",
                    "--remediation",
                    "add nonReentrant",
                    "--status",
                    "done",
                ]
            )
            == 0
        )
        assert main(["note", "combo", "RE-2", "claim() and withdraw() checked"]) == 0
        capsys.readouterr()

        assert main(["status", "combo"]) == 0
        out = capsys.readouterr().out
        assert "Reentrancy: 1/2 (50.0%)" in out
        assert "[Medium] RE-2: guard missing on claim()" in out

    def test_attach_saved_tool_output(
        self, home: Path, checklist_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["new", "tools", "--checklist", str(checklist_file)])
        output_file = tmp_path / "slither.txt"
        output_file.write_text("Reentrancy in Vault.withdraw() (src/Vault.sol#42-57)\n")

        assert (
            main(
                [
                    "finding",
                    "tools",
                    "RE-1",
                    "--severity",
                    "high",
                    "--description",
                    "reentrancy-eth",
                    "--tool-output",
                    str(output_file),
                ]
            )
            == 0
        )
        capsys.readouterr()

        assert main(["report", "tools"]) == 0
        report = capsys.readouterr().out
        assert "- Source: slither" in report
        assert "Reentrancy in Vault.withdraw()" in report

    def test_run_tool_and_attach(
        self, home: Path, checklist_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["new", "runner", "--checklist", str(checklist_file)])
        command = f"{shlex.quote(sys.executable)} -c \"print('INFO:Detectors: ok')\""

        assert (
            main(
                [
                    "finding",
                    "runner",
                    "RE-1",
                    "--severity",
                    "info",
                    "--description",
                    "analyzer run",
                    "--run",
                    command,
                ]
            )
            == 0
        )
        capsys.readouterr()

        main(["report", "runner"])
        assert "INFO:Detectors: ok" in capsys.readouterr().out

    def test_report_to_file_as_json(
        self, home: Path, checklist_file: Path, tmp_path: Path
    ) -> None:
        main(["new", "export", "--checklist", str(checklist_file)])
        main(["set", "export", "RE-1", "done"])
        output = tmp_path / "reports" / "export.json"

        assert main(["report", "export", "--format", "json", "--output", str(output)]) == 0

        data = json.loads(output.read_text())
        assert data["summary"]["completion"] == 0.5
        assert data["summary"]["total_findings"] == 0

    def test_list_sessions(self, home: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["list"]) == 0
        assert "No sessions found" in capsys.readouterr().out

        main(["new", "one"])
        capsys.readouterr()
        assert main(["list"]) == 0
        assert capsys.readouterr().out.strip() == "one"

    def test_duplicate_ids_in_checklist_fail(
        self, home: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "dup.json"
        path.write_text(
            json.dumps(
                {
                    "categories": [
                        {"name": "A", "items": [{"id": "X-1", "description": "a"}]},
                        {"name": "B", "items": [{"id": "X-1", "description": "b"}]},
                    ]
                }
            )
        )

        assert main(["new", "dup", "--checklist", str(path)]) == 1
        assert "duplicate item id 'X-1'" in capsys.readouterr().out
        assert not (home / "sessions" / "dup.json").exists()

    def test_yaml_date_version_is_accepted(
        self, home: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "dated.yaml"
        path.write_text(CHECKLIST_YAML.replace('version: "1"', "version: 2024-01-01"))

        assert main(["new", "dated", "--checklist", str(path)]) == 0
        capsys.readouterr()

        assert main(["report", "dated"]) == 0
        assert "Checklist version: 2024-01-01" in capsys.readouterr().out

    def test_unknown_session(self, home: Path) -> None:
        assert main(["status", "ghost"]) == 1
