"""Tests for configuration loading."""

from pathlib import Path

from devday.config import (
    DEFAULT_CONFIG,
    DevDayConfig,
    _deep_merge,
    config_from_dict,
    get_config_paths,
    load_config,
)
from devday.digest import DigestOptions
from devday.protocol import ToolKind


class TestGetConfigPaths:
    def test_global_then_local(self):
        paths = get_config_paths()
        assert paths[0] == Path.home() / ".config" / "devday" / "config.toml"
        assert paths[1] == Path(".devday.toml")


class TestDeepMerge:
    def test_nested_override(self):
        base = {"a": {"x": 1, "y": 2}, "b": 1}
        merged = _deep_merge(base, {"a": {"y": 3}, "c": 4})
        assert merged == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}
        assert base["a"]["y"] == 2


class TestLoadConfig:
    def test_defaults_without_files(self, tmp_path):
        config = load_config([tmp_path / "missing.toml"], environ={})

        assert isinstance(config, DevDayConfig)
        assert config.enabled_tools == list(ToolKind)
        assert config.preferred_summarizer == "none"
        assert config.digest == DigestOptions()
        assert config.summary.chunk_chars == 7500

    def test_later_files_override_earlier(self, tmp_path):
        global_config = tmp_path / "global.toml"
        global_config.write_text(
            'enabled_tools = ["codex", "cursor"]\n[git]\nauthor = "Global"\n[worklog]\ntimezone = "UTC"\n'
        )
        local_config = tmp_path / "local.toml"
        local_config.write_text('[git]\nauthor = "Local"\n[paths]\ncodex_sessions = "~/codex-here"\n')

        config = load_config([global_config, local_config], environ={})

        assert config.enabled_tools == [ToolKind.CODEX, ToolKind.CURSOR]
        assert config.git_author_filter == "Local"
        assert config.note_timezone == "UTC"
        assert config.paths.codex_sessions == Path.home() / "codex-here"

    def test_invalid_toml_is_skipped(self, tmp_path, caplog):
        bad = tmp_path / "bad.toml"
        bad.write_text("enabled_tools = [\n")

        config = load_config([bad], environ={})

        assert config.enabled_tools == list(ToolKind)
        assert "Failed to parse config file" in caplog.text

    def test_unknown_tool_ignored(self, tmp_path):
        path = tmp_path / "c.toml"
        path.write_text('enabled_tools = ["codex", "emacs"]\n')

        assert load_config([path], environ={}).enabled_tools == [ToolKind.CODEX]

    def test_non_numeric_values_keep_defaults(self, tmp_path, caplog):
        path = tmp_path / "c.toml"
        path.write_text(
            '[digest]\nmax_chars = "lots"\nmessage_max_chars = 300\n'
            '[summarizer]\ntimeout = "soon"\nmax_tokens = true\n'
        )

        config = load_config([path], environ={})

        assert config.digest == DigestOptions(max_chars=DigestOptions().max_chars, message_max_chars=300)
        assert config.summary_timeout == 25.0
        assert config.summary_max_tokens == 280
        assert "Ignoring non-numeric config value max_chars = 'lots'" in caplog.text


class TestEnvironmentOverrides:
    def test_api_key_selects_provider(self):
        config = config_from_dict(DEFAULT_CONFIG, {"ANTHROPIC_API_KEY": "ak"})
        assert config.preferred_summarizer == "anthropic"
        assert config.summarization_enabled

    def test_auto_prefers_openai(self):
        config = config_from_dict(DEFAULT_CONFIG, {"OPENAI_API_KEY": "sk", "ANTHROPIC_API_KEY": "ak"})
        assert config.preferred_summarizer == "openai"

    def test_explicit_provider_without_key_disables(self):
        config = config_from_dict(DEFAULT_CONFIG, {"DEVDAY_SUMMARIZER": "anthropic", "OPENAI_API_KEY": "sk"})
        assert config.preferred_summarizer == "none"

    def test_provider_none(self):
        config = config_from_dict(DEFAULT_CONFIG, {"DEVDAY_SUMMARIZER": "none", "OPENAI_API_KEY": "sk"})
        assert not config.summarization_enabled

    def test_key_from_file(self):
        data = _deep_merge(DEFAULT_CONFIG, {"summarizer": {"openai_api_key": "from-file", "model": "gpt-4.1"}})
        config = config_from_dict(data, {})
        assert config.openai_api_key == "from-file"
        assert config.summarizer_model == "gpt-4.1"

    def test_digest_env_beats_file(self):
        data = _deep_merge(DEFAULT_CONFIG, {"digest": {"max_chars": 1000, "message_max_chars": 50}})
        config = config_from_dict(data, {"DEVDAY_DIGEST_MAX_CHARS": "2000"})
        assert config.digest == DigestOptions(max_chars=2000, message_max_chars=50)

    def test_invalid_env_keeps_file_value(self):
        data = _deep_merge(DEFAULT_CONFIG, {"summary": {"chunk_chars": 3000}})
        config = config_from_dict(data, {"DEVDAY_SESSION_SUMMARY_CHUNK_CHARS": "-1"})
        assert config.summary.chunk_chars == 3000
