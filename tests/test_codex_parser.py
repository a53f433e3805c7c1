"""Tests for the Codex rollout parser."""

import json

import pytest

from conftest import DAY, local_iso, write_jsonl

from devday.backends.codex import CodexParser
from devday.protocol import ToolKind


def rollout_entries(day: str = DAY) -> list:
    return [
        {
            "timestamp": local_iso(9, 0, 0, day),
            "type": "session_meta",
            "payload": {"id": "test-session-id", "cwd": "/tmp/my-project"},
        },
        {
            "timestamp": local_iso(9, 0, 1, day),
            "type": "turn_context",
            "payload": {"model": "gpt-5.2-codex"},
        },
        {
            "timestamp": local_iso(9, 0, 2, day),
            "type": "response_item",
            "payload": {
                "type": "message",
                "role": "user",
                "content": [{"type": "input_text", "text": "Inspect the index file"}],
            },
        },
        {
            "timestamp": local_iso(9, 0, 3, day),
            "type": "response_item",
            "payload": {
                "type": "function_call",
                "name": "view",
                "arguments": json.dumps({"path": "/tmp/my-project/src/index.ts"}),
            },
        },
        {
            "timestamp": local_iso(9, 0, 4, day),
            "type": "event_msg",
            "payload": {
                "type": "token_count",
                "info": {
                    "last_token_usage": {
                        "input_tokens": 100,
                        "output_tokens": 50,
                        "reasoning_output_tokens": 10,
                        "cached_input_tokens": 20,
                    }
                },
            },
        },
        {
            "timestamp": local_iso(9, 0, 5, day),
            "type": "response_item",
            "payload": {
                "type": "message",
                "role": "assistant",
                "content": [{"type": "output_text", "text": "The file exports main()."}],
            },
        },
    ]


class TestCodexParser:
    """Tests for CodexParser.get_sessions."""

    def test_parses_rollout(self, tmp_path):
        root = tmp_path / "sessions"
        write_jsonl(root / "2026" / "02" / "17" / "rollout-1.jsonl", rollout_entries())

        sessions = CodexParser(root).get_sessions(DAY)

        assert len(sessions) == 1
        session = sessions[0]
        assert session.id == "test-session-id"
        assert session.tool == ToolKind.CODEX
        assert session.project_name == "my-project"
        assert session.tokens.input == 100
        assert session.tokens.output == 50
        assert session.tokens.reasoning == 10
        assert session.tokens.cache_read == 20
        assert session.tokens.total == 180
        assert session.message_count == 2
        assert list(session.models) == ["gpt-5.2-codex"]
        assert "view /tmp/my-project/src/index.ts" in session.tool_call_summaries
        assert "/tmp/my-project/src/index.ts" in session.files_touched
        assert session.title == "Inspect the index file"
        assert session.conversation_digest.startswith("[User]: Inspect the index file")
        assert "[Assistant]: The file exports main()." in session.conversation_digest
        assert session.user_message_count == 1
        assert session.assistant_message_count == 1

    def test_other_day_is_ignored(self, tmp_path):
        root = tmp_path / "sessions"
        write_jsonl(root / "rollout-1.jsonl", rollout_entries(day="2026-02-16"))

        assert CodexParser(root).get_sessions(DAY) == []

    def test_event_messages_deduplicated_after_structured(self, tmp_path):
        entries = rollout_entries() + [
            {
                "timestamp": local_iso(9, 1),
                "type": "event_msg",
                "payload": {"type": "user_message", "message": "Inspect the index file"},
            },
            {
                "timestamp": local_iso(9, 1, 1),
                "type": "event_msg",
                "payload": {"type": "agent_message", "message": "The file exports main()."},
            },
        ]
        root = tmp_path / "sessions"
        write_jsonl(root / "rollout-1.jsonl", entries)

        session = CodexParser(root).get_sessions(DAY)[0]
        assert session.user_message_count == 1
        assert session.assistant_message_count == 1

    def test_event_only_rollout(self, tmp_path):
        root = tmp_path / "sessions"
        write_jsonl(
            root / "rollout-abc.jsonl",
            [
                {"timestamp": local_iso(10), "type": "event_msg", "payload": {"type": "user_message", "message": "hi"}},
                {
                    "timestamp": local_iso(10, 2),
                    "type": "event_msg",
                    "payload": {"type": "agent_message", "message": "hello"},
                },
            ],
        )

        session = CodexParser(root).get_sessions(DAY)[0]
        assert session.id == "rollout-abc"
        assert session.project_path is None
        assert session.message_count == 2
        assert session.duration_ms == 2 * 60 * 1000

    def test_malformed_lines_skipped(self, tmp_path):
        root = tmp_path / "sessions"
        path = write_jsonl(root / "rollout-1.jsonl", rollout_entries())
        with open(path, "a", encoding="utf-8") as f:
            f.write("{not json\n")

        assert len(CodexParser(root).get_sessions(DAY)) == 1

    def test_missing_root(self, tmp_path):
        parser = CodexParser(tmp_path / "missing")
        assert not parser.is_available()
        assert parser.get_sessions(DAY) == []

    def test_deeply_nested_line_skipped(self, tmp_path):
        root = tmp_path / "sessions"
        write_jsonl(root / "rollout-1.jsonl", rollout_entries())
        (root / "rollout-2.jsonl").write_text("[" * 200_000 + "\n", encoding="utf-8")

        sessions = CodexParser(root).get_sessions(DAY)

        assert [s.id for s in sessions] == ["test-session-id"]


class TestUnitBoundary:
    """A unit that fails to read is skipped; its siblings still come back."""

    def test_unreadable_unit_skipped(self, tmp_path, monkeypatch):
        root = tmp_path / "sessions"
        write_jsonl(root / "rollout-1.jsonl", rollout_entries())
        write_jsonl(root / "rollout-2.jsonl", rollout_entries())

        original = CodexParser._parse_unit

        def flaky_parse_unit(self, path, window):
            if path.name == "rollout-2.jsonl":
                raise PermissionError(f"cannot read {path}")
            return original(self, path, window)

        monkeypatch.setattr(CodexParser, "_parse_unit", flaky_parse_unit)

        sessions = CodexParser(root).get_sessions(DAY)

        assert [s.id for s in sessions] == ["test-session-id"]

    def test_unexpected_errors_propagate(self, tmp_path, monkeypatch):
        root = tmp_path / "sessions"
        write_jsonl(root / "rollout-1.jsonl", rollout_entries())

        def broken_parse_unit(self, path, window):
            raise KeyError("bug")

        monkeypatch.setattr(CodexParser, "_parse_unit", broken_parse_unit)

        with pytest.raises(KeyError):
            CodexParser(root).get_sessions(DAY)
