"""Golden output for the markdown report; layout changes must be deliberate."""

from __future__ import annotations

import pytest

from solaudit.loader import parse_definition
from solaudit.models import CodeReference, Finding, Severity, Status
from solaudit.report import render
from solaudit.tracker import ProgressTracker

EXPECTED = """\
# Reentrancy Review - Findings Report

Checklist version: 1

## Executive Summary

- Completion: 50.0% (1/2 items reviewed)
- Total findings: 1

| Severity | Count |
|---|---:|
| Critical | 0 |
| High | 1 |
| Medium | 0 |
| Low | 0 |
| Info | 0 |

### Category Progress

| Category | Reviewed | Total | Completion |
|---|---:|---:|---:|
| Reentrancy | 1 | 2 | 50.0% |

## Findings

### 1. [High] RE-1: missing nonReentrant guard

- Category: Reentrancy
- Checklist item: State changes before external calls.
- Item status: done
- Location: `src/Vault.sol:42`
- Remediation: Add nonReentrant to withdraw().
"""


@pytest.mark.regression
def test_markdown_report_golden() -> None:
    tracker = ProgressTracker(
        parse_definition(
            {
                "title": "Reentrancy Review",
                "version": "1",
                "categories": [
                    {
                        "name": "Reentrancy",
                        "items": [
                            {"id": "RE-1", "description": "State changes before external calls."},
                            {"id": "RE-2", "description": "Guards on shared state."},
                        ],
                    }
                ],
            }
        )
    )
    tracker.set_status("RE-1", Status.DONE)
    tracker.add_finding(
        "RE-1",
        Finding(
            severity=Severity.HIGH,
            description="missing nonReentrant guard",
            code_ref=CodeReference("src/Vault.sol", 42),
            remediation="Add nonReentrant to withdraw().",
        ),
    )

    assert render(tracker.checklist) == EXPECTED
