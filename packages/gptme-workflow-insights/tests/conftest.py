"""Shared fixtures for workflow insights tests."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

SCENARIO_START = datetime(2026, 2, 17, 10, 0, tzinfo=timezone.utc)


def _iso(minutes: float) -> str:
    return (SCENARIO_START + timedelta(minutes=minutes)).isoformat().replace("+00:00", "Z")


@pytest.fixture
def scenario_data() -> dict:
    """A build struggle, a tool-heavy conversation and four commits within the hour."""
    return {
        "shell_commands": [
            {"text": "cd proj", "timestamp": _iso(-1)},
            {"text": "cargo build", "timestamp": _iso(0)},
            {"text": "cargo build", "timestamp": _iso(1)},
            {"text": "cargo build", "timestamp": _iso(2)},
            {"text": "vim src/main.rs", "timestamp": _iso(3)},
        ],
        "conversations": [
            {
                "id": "conv-1",
                "start": _iso(10),
                "end": _iso(30),
                "message_count": 12,
                "tool_use_count": 6,
                "project_path": "/home/dev/proj",
            }
        ],
        "commits": [
            {
                "hash": f"c{i}",
                "timestamp": _iso(35 + i * 10),
                "insertions": 20,
                "deletions": 10,
                "files_changed": 2,
                "language_breakdown": {"Rust": 30},
            }
            for i in range(4)
        ],
    }


@pytest.fixture
def scenario_file(tmp_path: Path, scenario_data: dict) -> Path:
    path = tmp_path / "batch.json"
    path.write_text(json.dumps(scenario_data))
    return path
