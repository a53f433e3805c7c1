"""Pytest configuration and fixtures."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from devday.git import GitActivity, GitCommit
from devday.protocol import Session, TokenUsage, ToolKind
from devday.recap import build_day_recap

DAY = "2026-02-17"


def local_iso(hour: int, minute: int = 0, second: int = 0, day: str = DAY) -> str:
    """Naive ISO timestamp, read as local time by the parsers."""
    return f"{day}T{hour:02d}:{minute:02d}:{second:02d}.000"


def local_ms(hour: int, minute: int = 0, second: int = 0, day: str = DAY) -> int:
    dt = datetime.strptime(f"{day} {hour}:{minute}:{second}", "%Y-%m-%d %H:%M:%S")
    return int(dt.timestamp() * 1000)


def write_jsonl(path: Path, entries: list) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(json.dumps(e) for e in entries) + "\n", encoding="utf-8")
    return path


def make_session(**overrides) -> Session:
    """A fully populated session; override any field by keyword."""
    fields = {
        "id": "session-1",
        "tool": ToolKind.CODEX,
        "project_path": "/tmp/project-alpha",
        "project_name": "project-alpha",
        "title": "Add worklog mode",
        "started_at": datetime(2026, 2, 17, 1, 0, tzinfo=timezone.utc),
        "ended_at": datetime(2026, 2, 17, 1, 20, tzinfo=timezone.utc),
        "duration_ms": 20 * 60 * 1000,
        "message_count": 8,
        "user_message_count": 3,
        "assistant_message_count": 5,
        "summary": None,
        "tokens": TokenUsage.from_buckets(input=10, output=5),
        "cost_usd": 0.25,
        "models": ("gpt-5.3-codex",),
        "files_touched": (
            "/tmp/project-alpha/src/index.ts",
            "/tmp/project-alpha/README.md",
        ),
        "conversation_digest": "\n\n".join(
            [
                "[User]: Please add worklog mode and write an obsidian note.",
                "[Assistant]: I will implement that now.",
                "[User]: also include session IDs in frontmatter.",
            ]
        ),
        "tool_call_summaries": ("apply_patch src/index.ts", "bash: npm test"),
    }
    fields.update(overrides)
    return Session(**fields)


@pytest.fixture
def sample_session():
    return make_session()


@pytest.fixture
def sample_git_activity():
    commit = GitCommit(
        hash="abcdef1234567890",
        short_hash="abcdef1",
        message="feat: add worklog mode",
        author="Dev",
        timestamp=datetime(2026, 2, 17, 1, 22, tzinfo=timezone.utc),
        files_changed=1,
        insertions=10,
        deletions=1,
        files=("src/index.ts",),
    )
    return GitActivity(
        project_path="/tmp/project-alpha",
        project_name="project-alpha",
        commits=(commit,),
    )


@pytest.fixture
def sample_recap(sample_session, sample_git_activity):
    return build_day_recap(DAY, [sample_session], [sample_git_activity])
