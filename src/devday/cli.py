"""Command line entry point."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from datetime import date as date_type
from datetime import datetime, timedelta
from pathlib import Path

import click

from . import __version__
from .backends import build_parsers
from .config import DevDayConfig, load_config
from .digest import DigestOptions
from .git import GitActivity, get_git_activity
from .protocol import Parser, Session, ToolKind
from .recap import build_day_recap
from .render import render_recap
from .summarizer import (
    SummaryOptions,
    build_client,
    build_session_summaries,
    load_session_summary_instructions,
    summarize_recap,
)
from .worklog import (
    build_worklog_markdown,
    resolve_timezone,
    resolve_vault_path,
    write_obsidian_inbox_entries,
)

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def resolve_date(value: str | None, today: date_type | None = None) -> str:
    """Map "today"/"yesterday"/None to YYYY-MM-DD; other values pass through."""
    today = today or datetime.now().date()
    if not value or value.lower() == "today":
        return today.isoformat()
    if value.lower() == "yesterday":
        return (today - timedelta(days=1)).isoformat()
    return value


def is_valid_date_string(value: str) -> bool:
    if not _DATE_RE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def resolve_digest_options(
    base: DigestOptions,
    wants_worklog: bool,
    full_session_log: bool = False,
    digest_max_chars: int | None = None,
    message_max_chars: int | None = None,
) -> DigestOptions:
    """Apply the worklog digest flags; they have no effect outside worklog mode."""
    if not wants_worklog:
        return base
    if full_session_log:
        return DigestOptions.unlimited()
    return DigestOptions(
        max_chars=base.max_chars if digest_max_chars is None else digest_max_chars,
        message_max_chars=base.message_max_chars if message_max_chars is None else message_max_chars,
    )


def collect_sessions(parsers: list[Parser], date: str) -> list[Session]:
    sessions: list[Session] = []
    for parser in parsers:
        if not parser.is_available():
            logger.debug(f"{parser.name} not available, skipping")
            continue
        found = parser.get_sessions(date)
        logger.debug(f"found {len(found)} session(s) from {parser.name}")
        sessions.extend(found)
    return sessions


def collect_git_activity(sessions: list[Session], date: str, author: str | None) -> list[GitActivity]:
    activities = []
    project_paths = dict.fromkeys(s.project_path for s in sessions if s.project_path)
    for project_path in project_paths:
        activity = get_git_activity(project_path, date, author)
        if activity and activity.commits:
            activities.append(activity)
    return activities


def print_banner(config: DevDayConfig, parsers: list[Parser], date: str) -> None:
    click.echo("")
    click.echo(click.style("  devday", bold=True, fg="cyan") + click.style(f" v{__version__}", dim=True))
    click.echo("")
    available = [p.name for p in parsers if p.is_available()]
    tools = ", ".join(click.style(name, fg="green") for name in available)
    click.echo(click.style("  Tools: ", dim=True) + (tools or click.style("none detected", fg="yellow")))
    if config.summarization_enabled:
        summaries = click.style(config.preferred_summarizer, fg="green")
    else:
        summaries = click.style("not configured", fg="yellow")
    click.echo(click.style("  Summaries: ", dim=True) + summaries)
    click.echo(click.style(f"  Date: {date}", dim=True))
    click.echo("")


def print_no_tools_message(config: DevDayConfig) -> None:
    click.echo("")
    click.echo(click.style("  No AI coding tools enabled.", fg="yellow"))
    click.echo("")
    click.echo("  devday scans local conversations from these tools:")
    click.echo("")
    for tool in config.enabled_tools or list(ToolKind):
        path = config.paths.for_tool(tool)
        click.echo(f"    {click.style(tool.value, fg='cyan')}  {click.style(str(path), dim=True)}")
    click.echo("")


def print_api_key_hint() -> None:
    click.echo("")
    click.echo("  To generate AI-powered summaries and standup messages:")
    click.echo(click.style("    export OPENAI_API_KEY=sk-...", fg="cyan"))
    click.echo("")


@click.command(
    epilog="""\b
Examples:
  devday                    today's recap
  devday -d yesterday       yesterday's recap
  devday -d 2026-02-10      specific date
  devday --standup          short standup format
  devday --json             machine-readable output
  devday --worklog          detailed work log markdown
  devday --worklog --write-obsidian-inbox
  devday --worklog --worklog-full-session-log
"""
)
@click.version_option(__version__, prog_name="devday")
@click.option("--date", "-d", "date_value", help='Date: YYYY-MM-DD, "today", or "yesterday" (default: today)')
@click.option("--standup", "-s", is_flag=True, help="Output a short standup-ready summary")
@click.option("--json", "-j", "as_json", is_flag=True, help="Output raw JSON")
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
@click.option("--worklog", is_flag=True, help="Output detailed markdown worklog (no cost/token tables)")
@click.option("--write-obsidian-inbox", is_flag=True, help="Write worklog notes into an Obsidian inbox")
@click.option("--obsidian-vault", help="Obsidian vault path (default: ~/obsidian-notebook)")
@click.option("--worklog-title", help="Custom title for generated worklog notes")
@click.option(
    "--session-summary-instructions",
    help="Markdown prompt file for session summaries (used in --worklog)",
)
@click.option(
    "--worklog-digest-max-chars",
    type=click.IntRange(min=0),
    help="Max digest chars retained for worklog summaries (0 = no limit)",
)
@click.option(
    "--worklog-message-max-chars",
    type=click.IntRange(min=0),
    help="Max chars retained per message in worklog digest (0 = no limit)",
)
@click.option(
    "--worklog-summary-chunk-chars",
    type=click.IntRange(min=0),
    help="Chunk size for summarizing long session digests (0 = no chunking)",
)
@click.option(
    "--worklog-full-session-log",
    is_flag=True,
    help="Disable digest truncation for worklog summarization",
)
@click.option("--git/--no-git", default=True, help="Include git log integration")
@click.option("--summarize/--no-summarize", default=True, help="Use an LLM for summaries")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="TOML config file (replaces the default lookup)",
)
def main(
    date_value: str | None,
    standup: bool,
    as_json: bool,
    verbose: bool,
    worklog: bool,
    write_obsidian_inbox: bool,
    obsidian_vault: str | None,
    worklog_title: str | None,
    session_summary_instructions: str | None,
    worklog_digest_max_chars: int | None,
    worklog_message_max_chars: int | None,
    worklog_summary_chunk_chars: int | None,
    worklog_full_session_log: bool,
    git: bool,
    summarize: bool,
    config_path: Path | None,
) -> None:
    """End-of-day recap for AI-assisted coding sessions.

    Reads local history from opencode, Claude Code, Cursor, Codex and
    Copilot, groups the day's sessions by project and optionally
    summarizes them with OpenAI or Anthropic.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    date = resolve_date(date_value)
    if not is_valid_date_string(date):
        click.echo(
            click.style(
                f'Invalid date format: "{date_value}". Use YYYY-MM-DD, "today", or "yesterday".',
                fg="red",
            ),
            err=True,
        )
        raise SystemExit(1)

    config = load_config([config_path] if config_path else None)
    wants_worklog = worklog or write_obsidian_inbox
    digest_options = resolve_digest_options(
        config.digest,
        wants_worklog,
        worklog_full_session_log,
        worklog_digest_max_chars,
        worklog_message_max_chars,
    )

    parsers = build_parsers(config, digest_options)
    if not parsers:
        print_no_tools_message(config)
        return
    if not as_json:
        print_banner(config, parsers, date)

    sessions = collect_sessions(parsers, date)
    if not sessions:
        if as_json:
            click.echo(json.dumps({"date": date, "projects": [], "total_sessions": 0}, indent=2))
        else:
            click.echo(click.style(f"  No sessions found for {date}.", dim=True))
            if date == resolve_date(None):
                click.echo(click.style("  Try: devday -d yesterday", dim=True))
            click.echo("")
        return

    git_activities = collect_git_activity(sessions, date, config.git_author_filter) if git else []
    recap = build_day_recap(date, sessions, git_activities)
    client = build_client(config) if summarize else None

    if wants_worklog:
        instructions = load_session_summary_instructions(
            session_summary_instructions or config.summary_instructions
        )
        logger.debug(f"session summary instructions: {instructions.path or 'built-in fallback'}")
        summary_options = config.summary
        if worklog_summary_chunk_chars is not None:
            summary_options = SummaryOptions(
                chunk_chars=worklog_summary_chunk_chars, max_chunks=config.summary.max_chunks
            )
        summaries = asyncio.run(build_session_summaries(recap, client, instructions.text, summary_options))
        tz = resolve_timezone(config.note_timezone)

        if write_obsidian_inbox:
            vault_path = resolve_vault_path(obsidian_vault or config.obsidian_vault)
            try:
                output_paths = write_obsidian_inbox_entries(
                    recap,
                    vault_path,
                    cwd=os.getcwd(),
                    title=worklog_title,
                    session_summaries=summaries,
                    tz=tz,
                )
            except OSError as e:
                click.echo(click.style(f"Failed to write Obsidian notes: {e}", fg="red"), err=True)
                raise SystemExit(1)

            if as_json:
                click.echo(
                    json.dumps(
                        {"date": date, "mode": "worklog", "output_paths": [str(p) for p in output_paths]},
                        indent=2,
                    )
                )
            else:
                click.echo(click.style(f"  Wrote {len(output_paths)} Obsidian session worklog note(s):", fg="green"))
                for path in output_paths:
                    click.echo(click.style(f"    - {path}", dim=True))
                click.echo("")
            return

        markdown = build_worklog_markdown(recap, summaries, tz)
        if as_json:
            click.echo(json.dumps({"date": date, "mode": "worklog", "markdown": markdown}, indent=2))
        else:
            click.echo(markdown)
        return

    if client is not None:
        logger.debug(f"using {client.name} for summarization")
        recap = asyncio.run(summarize_recap(recap, client))
    else:
        logger.debug("summarization disabled, skipping")

    if standup and client is None:
        click.echo(click.style("  Standup requires an API key to generate summaries.", fg="yellow"))
        print_api_key_hint()
        return

    render_recap(recap, standup=standup, as_json=as_json)

    if client is None and not as_json:
        print_api_key_hint()


if __name__ == "__main__":
    main()
