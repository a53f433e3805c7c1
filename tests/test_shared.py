"""Tests for the helpers shared by all source parsers."""

from datetime import datetime, timezone

from conftest import DAY, local_ms

from devday.backends.shared import (
    DEFAULT_USAGE_SCHEMA,
    SessionAccumulator,
    collect_file_paths,
    compute_active_duration_ms,
    day_window,
    extract_usage,
    looks_like_path,
    looks_like_system_envelope,
    number_or_none,
    parse_maybe_json,
    parse_timestamp_ms,
    shorten_home_path,
    summarize_tool_call,
    truncate_prompt,
)
from devday.protocol import ToolKind


class TestDayWindow:
    def test_bounds_cover_local_day(self):
        window = day_window(DAY)
        assert window.start_ms == local_ms(0)
        assert window.end_ms == local_ms(23, 59, 59) + 999

    def test_contains_and_clip(self):
        window = day_window(DAY)
        assert window.contains(local_ms(12))
        assert not window.contains(None)
        assert not window.contains(window.end_ms + 1)
        assert window.clip(window.start_ms - 5000) == window.start_ms
        assert window.clip(window.end_ms + 5000) == window.end_ms


class TestParseTimestamp:
    def test_iso_with_zone(self):
        expected = int(datetime(2026, 2, 17, 1, 0, tzinfo=timezone.utc).timestamp() * 1000)
        assert parse_timestamp_ms("2026-02-17T01:00:00.000Z") == expected

    def test_naive_iso_is_local(self):
        assert parse_timestamp_ms("2026-02-17T09:30:00") == local_ms(9, 30)

    def test_long_fraction(self):
        expected = int(datetime(2026, 2, 17, 1, 0, 0, 123456, tzinfo=timezone.utc).timestamp() * 1000)
        assert parse_timestamp_ms("2026-02-17T01:00:00.1234567Z") == round(expected)

    def test_epoch_seconds_and_millis(self):
        assert parse_timestamp_ms(1_771_290_000) == 1_771_290_000_000
        assert parse_timestamp_ms(1_771_290_000_000) == 1_771_290_000_000
        assert parse_timestamp_ms("1771290000") == 1_771_290_000_000

    def test_garbage(self):
        assert parse_timestamp_ms("not a date") is None
        assert parse_timestamp_ms("") is None
        assert parse_timestamp_ms(None) is None
        assert parse_timestamp_ms(True) is None

    def test_out_of_range_years(self):
        assert parse_timestamp_ms("0001-01-01T00:00:00") is None


class TestRecords:
    def test_number_or_none(self):
        assert number_or_none(3) == 3
        assert number_or_none("4.5") == 4.5
        assert number_or_none(True) is None
        assert number_or_none(float("nan")) is None
        assert number_or_none("abc") is None

    def test_parse_maybe_json(self):
        assert parse_maybe_json('{"a": 1}') == {"a": 1}
        assert parse_maybe_json("[1, 2]") == [1, 2]
        assert parse_maybe_json("{broken") == "{broken"
        assert parse_maybe_json("plain") == "plain"


class TestUsage:
    def test_top_level_aliases(self):
        usage = extract_usage({"prompt_tokens": 30, "completion_tokens": 20})
        assert usage == {"input": 30, "output": 20, "reasoning": 0, "cache_read": 0, "cache_write": 0}

    def test_nested_container(self):
        record = {"info": {"last_token_usage": {"input_tokens": 100, "output_tokens": 50}}}
        usage = extract_usage(record)
        assert usage["input"] == 100
        assert usage["output"] == 50

    def test_no_match(self):
        assert extract_usage({"foo": 1}) is None
        assert extract_usage("nope") is None

    def test_negative_clamped(self):
        assert extract_usage({"input_tokens": -4})["input"] == 0

    def test_schema_extension(self):
        schema = DEFAULT_USAGE_SCHEMA.extend(aliases={"input": ("in",)}, nested_keys=("stats",))
        assert extract_usage({"stats": {"in": 7}}, schema)["input"] == 7
        assert extract_usage({"stats": {"in": 7}}) is None


class TestTools:
    def test_looks_like_path(self):
        assert looks_like_path("/tmp/a.txt")
        assert looks_like_path("./a.txt")
        assert looks_like_path("~/notes")
        assert not looks_like_path("https://example.com/a")
        assert not looks_like_path("just words")
        assert not looks_like_path("a/b\nc")

    def test_collect_file_paths_recurses(self):
        out: dict[str, None] = {}
        collect_file_paths(
            {"edits": [{"file_path": "/repo/a.py"}], "args": '{"path": "/repo/b.py"}', "name": "/ignored"},
            out,
        )
        assert list(out) == ["/repo/a.py", "/repo/b.py"]

    def test_summary_prefers_file_path(self):
        files: dict[str, None] = {}
        summary = summarize_tool_call("view", {"path": "/home/dev/repo/x.ts"}, files, home="/home/dev")
        assert summary == "view ~/repo/x.ts"
        assert "/home/dev/repo/x.ts" in files

    def test_summary_command(self):
        assert summarize_tool_call("shell", {"command": ["npm", "test"]}, {}) == "bash: npm test"
        assert summarize_tool_call("Bash", '{"command": "ls -la"}', {}) == "bash: ls -la"

    def test_summary_pattern_and_fallbacks(self):
        assert summarize_tool_call("grep", {"pattern": "TODO"}, {}) == "grep: TODO"
        assert summarize_tool_call("think", "ponder", {}) == "think: ponder"
        assert summarize_tool_call(None, None, {}) == "tool"

    def test_shorten_home_path(self):
        assert shorten_home_path("/home/dev/x", "/home/dev") == "~/x"
        assert shorten_home_path("/opt/x", "/home/dev") == "/opt/x"


class TestDuration:
    def test_gaps_are_capped(self):
        t0 = local_ms(9)
        assert compute_active_duration_ms([t0, t0 + 1000, t0 + 401_000]) == 301_000

    def test_unsorted_and_duplicates(self):
        assert compute_active_duration_ms([3000, 1000, 1000, 2000]) == 2000

    def test_single_timestamp(self):
        assert compute_active_duration_ms([5]) == 0


class TestAccumulator:
    def test_title_skips_system_envelope(self):
        acc = SessionAccumulator(ToolKind.CODEX, day_window(DAY), "s")
        ts = local_ms(10)
        acc.observe(ts)
        acc.add_user_message(ts, "<environment_context>cwd</environment_context>")
        acc.add_user_message(ts, "Fix   the\nflaky test")
        session = acc.finalize()
        assert session.title == "Fix the flaky test"
        assert session.user_message_count == 2

    def test_no_activity_yields_none(self):
        acc = SessionAccumulator(ToolKind.CODEX, day_window(DAY), "s")
        acc.observe(local_ms(10))
        assert acc.finalize() is None

    def test_envelope_detection(self):
        assert looks_like_system_envelope("# AGENTS.md instructions")
        assert not looks_like_system_envelope("please fix AGENTS.md")

    def test_truncate_prompt(self):
        assert truncate_prompt("x" * 100) == "x" * 57 + "..."
