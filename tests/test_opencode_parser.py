"""Tests for the OpenCode storage parser."""

import json

from conftest import DAY, local_ms

from devday.backends.opencode import OpenCodeParser


def write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


def build_storage(root, title="Fix login redirect", day_ms=None):
    created = day_ms if day_ms is not None else local_ms(15)
    write_json(
        root / "session" / "proj1" / "ses_1.json",
        {"id": "ses_1", "directory": "/tmp/oc-project", "title": title},
    )
    write_json(
        root / "message" / "ses_1" / "msg_001.json",
        {"id": "msg_001", "role": "user", "time": {"created": created}},
    )
    write_json(
        root / "part" / "msg_001" / "prt_001.json",
        {"type": "text", "text": "The login page redirects forever"},
    )
    write_json(
        root / "part" / "msg_001" / "prt_002.json",
        {"type": "text", "text": "injected context", "synthetic": True},
    )
    write_json(
        root / "message" / "ses_1" / "msg_002.json",
        {
            "id": "msg_002",
            "role": "assistant",
            "modelID": "claude-sonnet-4-20250514",
            "time": {"created": created + 60_000, "completed": created + 90_000},
            "tokens": {"input": 200, "output": 80, "reasoning": 5, "cache": {"read": 40, "write": 10}},
            "path": {"cwd": "/tmp/elsewhere"},
        },
    )
    write_json(
        root / "part" / "msg_002" / "prt_001.json",
        {"type": "text", "text": "Found the loop in auth.ts."},
    )
    write_json(
        root / "part" / "msg_002" / "prt_002.json",
        {
            "type": "tool",
            "tool": "edit",
            "state": {
                "input": {"filePath": "/tmp/oc-project/src/auth.ts"},
                "metadata": {"filepath": "/tmp/oc-project/src/session.ts"},
            },
        },
    )


class TestOpenCodeParser:
    """Tests for OpenCodeParser.get_sessions."""

    def test_parses_session(self, tmp_path):
        build_storage(tmp_path)

        sessions = OpenCodeParser(tmp_path).get_sessions(DAY)

        assert len(sessions) == 1
        session = sessions[0]
        assert session.id == "ses_1"
        assert session.project_path == "/tmp/oc-project"
        assert session.title == "Fix login redirect"
        assert session.message_count == 2
        assert session.tokens.input == 200
        assert session.tokens.output == 80
        assert session.tokens.reasoning == 5
        assert session.tokens.cache_read == 40
        assert session.tokens.cache_write == 10
        assert session.tokens.total == 335
        assert list(session.models) == ["claude-sonnet-4-20250514"]
        assert "edit /tmp/oc-project/src/auth.ts" in session.tool_call_summaries
        assert "/tmp/oc-project/src/session.ts" in session.files_touched
        assert "injected context" not in session.conversation_digest
        assert session.duration_ms == 60_000

    def test_title_falls_back_to_prompt(self, tmp_path):
        build_storage(tmp_path, title="")

        session = OpenCodeParser(tmp_path).get_sessions(DAY)[0]

        assert session.title == "The login page redirects forever"

    def test_other_day_is_ignored(self, tmp_path):
        build_storage(tmp_path, day_ms=local_ms(15, day="2026-02-10"))

        assert OpenCodeParser(tmp_path).get_sessions(DAY) == []

    def test_malformed_session_file_skipped(self, tmp_path):
        build_storage(tmp_path)
        bad = tmp_path / "session" / "proj1" / "ses_bad.json"
        bad.write_text("{nope", encoding="utf-8")

        assert [s.id for s in OpenCodeParser(tmp_path).get_sessions(DAY)] == ["ses_1"]

    def test_missing_storage(self, tmp_path):
        assert OpenCodeParser(tmp_path / "missing").get_sessions(DAY) == []
