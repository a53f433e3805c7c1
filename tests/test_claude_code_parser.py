"""Tests for the Claude Code transcript parser and its discovery helpers."""

from pathlib import Path

from conftest import DAY, local_iso, write_jsonl

from devday.backends.claude_code import ClaudeCodeParser
from devday.backends.claude_code.discovery import (
    _decode_path_greedy,
    decode_project_path,
    find_session_files,
    is_subagent_session,
)
from devday.backends.claude_code.parser import split_content


def session_entries() -> list:
    base = {"sessionId": "claude-session", "cwd": "/tmp/claude-project"}
    return [
        {
            **base,
            "type": "user",
            "timestamp": local_iso(13),
            "message": {"role": "user", "content": "Refactor the config loader"},
        },
        {
            **base,
            "type": "assistant",
            "timestamp": local_iso(13, 0, 10),
            "requestId": "req_1",
            "message": {
                "id": "msg_1",
                "model": "claude-sonnet-4-20250514",
                "content": [
                    {"type": "text", "text": "Editing the loader."},
                    {"type": "tool_use", "name": "Edit", "input": {"file_path": "/tmp/claude-project/a.py"}},
                ],
                "usage": {"input_tokens": 10, "output_tokens": 5},
            },
        },
        {
            **base,
            "type": "assistant",
            "timestamp": local_iso(13, 0, 11),
            "requestId": "req_1",
            "message": {
                "id": "msg_1",
                "model": "claude-sonnet-4-20250514",
                "content": [],
                "usage": {"input_tokens": 10, "output_tokens": 20},
            },
        },
        {
            **base,
            "type": "user",
            "timestamp": local_iso(13, 0, 30),
            "toolUseResult": {"filePath": "/tmp/claude-project/b.py"},
            "message": {"role": "user", "content": [{"type": "tool_result", "content": "ok"}]},
        },
        {
            **base,
            "type": "user",
            "isMeta": True,
            "timestamp": local_iso(13, 0, 40),
            "message": {"role": "user", "content": "Caveat: The messages below were generated"},
        },
        {"type": "summary", "summary": "Config loader refactor"},
    ]


class TestClaudeCodeParser:
    """Tests for ClaudeCodeParser.get_sessions."""

    def test_parses_session(self, tmp_path):
        project_dir = tmp_path / "projects" / "-tmp-claude-project"
        write_jsonl(project_dir / "sess-1.jsonl", session_entries())
        write_jsonl(
            project_dir / "sess-1" / "subagents" / "agent-abc.jsonl",
            [{"type": "user", "timestamp": local_iso(13, 5), "message": {"content": "sub task"}}],
        )

        sessions = ClaudeCodeParser(tmp_path).get_sessions(DAY)

        assert len(sessions) == 1
        session = sessions[0]
        assert session.id == "claude-session"
        assert session.project_path == "/tmp/claude-project"
        assert session.title == "Refactor the config loader"
        assert session.summary == "Config loader refactor"
        assert session.user_message_count == 1
        assert session.assistant_message_count == 1
        assert list(session.models) == ["claude-sonnet-4-20250514"]
        assert "Edit /tmp/claude-project/a.py" in session.tool_call_summaries
        assert "/tmp/claude-project/a.py" in session.files_touched
        assert "/tmp/claude-project/b.py" in session.files_touched

    def test_out_of_range_timestamp_skipped(self, tmp_path):
        bad = {
            "sessionId": "claude-session",
            "type": "user",
            "timestamp": "0001-01-01T00:00:00",
            "message": {"role": "user", "content": "from the distant past"},
        }
        write_jsonl(tmp_path / "projects" / "-tmp-x" / "sess-1.jsonl", [bad] + session_entries())

        sessions = ClaudeCodeParser(tmp_path).get_sessions(DAY)

        assert [s.id for s in sessions] == ["claude-session"]

    def test_streamed_usage_deduplicated(self, tmp_path):
        write_jsonl(tmp_path / "projects" / "-tmp-x" / "sess-1.jsonl", session_entries())

        session = ClaudeCodeParser(tmp_path).get_sessions(DAY)[0]

        assert session.tokens.input == 10
        assert session.tokens.output == 20
        assert session.tokens.total == 30

    def test_tool_results_count_as_activity(self, tmp_path):
        write_jsonl(tmp_path / "projects" / "-tmp-x" / "sess-1.jsonl", session_entries())

        session = ClaudeCodeParser(tmp_path).get_sessions(DAY)[0]

        # 13:00:00 -> 13:00:30 via the tool result entry
        assert session.duration_ms == 30_000

    def test_project_path_decoded_from_folder(self, tmp_path):
        project = tmp_path / "work" / "my-app"
        project.mkdir(parents=True)
        encoded = "-" + str(project).lstrip("/").replace("/", "-")
        write_jsonl(
            tmp_path / "claude" / "projects" / encoded / "s.jsonl",
            [{"type": "user", "timestamp": local_iso(9), "message": {"content": "hi"}}],
        )

        session = ClaudeCodeParser(tmp_path / "claude").get_sessions(DAY)[0]

        assert session.project_path == str(project)
        assert session.project_name == "my-app"

    def test_available_requires_projects_dir(self, tmp_path):
        assert not ClaudeCodeParser(tmp_path).is_available()
        (tmp_path / "projects").mkdir()
        assert ClaudeCodeParser(tmp_path).is_available()


class TestSplitContent:
    def test_string_content(self):
        assert split_content("  hello ") == ("hello", [], [])

    def test_block_content(self):
        text, uses, results = split_content(
            [
                {"type": "text", "text": "a"},
                {"type": "tool_use", "name": "Bash"},
                {"type": "text", "text": "b"},
                {"type": "tool_result", "content": "x"},
            ]
        )
        assert text == "a\nb"
        assert len(uses) == 1
        assert len(results) == 1


class TestSessionFiles:
    def test_excludes_subagents_and_empty_files(self, tmp_path):
        project = tmp_path / "-p"
        write_jsonl(project / "a.jsonl", [{"type": "user"}])
        write_jsonl(project / "a" / "subagents" / "agent-1.jsonl", [{"type": "user"}])
        (project / "empty.jsonl").touch()

        assert find_session_files(tmp_path) == [project / "a.jsonl"]
        assert len(find_session_files(tmp_path, include_subagents=True)) == 2

    def test_is_subagent_session(self):
        assert is_subagent_session(Path("/x/agent-abc.jsonl"))
        assert not is_subagent_session(Path("/x/abc.jsonl"))


class TestDecodePathGreedy:
    """Tests for _decode_path_greedy."""

    def test_decodes_simple_path(self, tmp_path):
        target = tmp_path / "alpha" / "beta"
        target.mkdir(parents=True)
        assert _decode_path_greedy(str(target).lstrip("/").replace("/", "-")) == str(target)

    def test_decodes_path_with_dashes_in_dirname(self, tmp_path):
        target = tmp_path / "my-cool-project" / "src"
        target.mkdir(parents=True)
        assert _decode_path_greedy(str(target).lstrip("/").replace("/", "-")) == str(target)

    def test_handles_underscore_directories(self, tmp_path):
        target = tmp_path / "my_project"
        target.mkdir()
        encoded = str(tmp_path).lstrip("/").replace("/", "-") + "-my-project"
        assert _decode_path_greedy(encoded) == str(target)

    def test_returns_none_for_nonexistent_path(self):
        assert _decode_path_greedy("nonexistent-path-that-does-not-exist") is None


class TestDecodeProjectPath:
    def test_dotfile_directory(self, tmp_path):
        target = tmp_path / ".mycel"
        target.mkdir()
        projects_dir = tmp_path / "projects"
        folder = "-" + str(tmp_path).lstrip("/").replace("/", "-") + "--mycel"
        session = projects_dir / folder / "s.jsonl"

        assert decode_project_path(session, projects_dir) == str(target)

    def test_literal_double_dash(self, tmp_path):
        target = tmp_path / "foo--bar"
        target.mkdir()
        projects_dir = tmp_path / "projects"
        folder = "-" + str(tmp_path).lstrip("/").replace("/", "-") + "-foo--bar"

        assert decode_project_path(projects_dir / folder / "s.jsonl", projects_dir) == str(target)

    def test_subagent_uses_parent_folder(self, tmp_path):
        target = tmp_path / "app"
        target.mkdir()
        projects_dir = tmp_path / "projects"
        folder = "-" + str(target).lstrip("/").replace("/", "-")
        session = projects_dir / folder / "sess" / "subagents" / "agent-1.jsonl"

        assert decode_project_path(session, projects_dir) == str(target)

    def test_file_directly_in_projects_dir(self, tmp_path):
        assert decode_project_path(tmp_path / "s.jsonl", tmp_path) is None
