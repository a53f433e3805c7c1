"""Terminal and JSON rendering of a day recap."""

from __future__ import annotations

import json

import click

from .recap import DayRecap, ProjectSummary
from .worklog import format_duration, format_local_clock

MAX_SESSIONS_SHOWN = 8
MAX_COMMITS_SHOWN = 5


def format_tokens(count: int) -> str:
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}k"
    return str(count)


def format_cost(cost: float) -> str:
    return f"${cost:.2f}"


def recap_to_json(recap: DayRecap) -> str:
    return json.dumps(recap.to_dict(), indent=2)


def _dim(text: str) -> str:
    return click.style(text, dim=True)


def _project_lines(project: ProjectSummary) -> list[str]:
    header = click.style(project.project_name, bold=True, fg="cyan")
    stats = _dim(
        f"{project.total_sessions} session(s) · {format_duration(project.total_duration_ms)}"
        f" · {format_tokens(project.total_tokens)} tokens · {format_cost(project.total_cost_usd)}"
    )
    lines = [f"  {header}  {stats}"]

    if project.ai_summary:
        for line in project.ai_summary.splitlines():
            lines.append(f"    {line}")

    sessions = project.sorted_sessions()
    for session in sessions[:MAX_SESSIONS_SHOWN]:
        title = session.title or "Untitled session"
        when = f"{format_local_clock(session.started_at)}-{format_local_clock(session.ended_at)}"
        lines.append(f"    - {title} {_dim(f'({session.tool.value}, {when}, {session.message_count} msgs)')}")
    if len(sessions) > MAX_SESSIONS_SHOWN:
        lines.append(_dim(f"    ... and {len(sessions) - MAX_SESSIONS_SHOWN} more"))

    if project.git and project.git.commits:
        git = project.git
        lines.append(
            "    "
            + click.style(f"{len(git.commits)} commit(s)", fg="green")
            + _dim(f" +{git.total_insertions} -{git.total_deletions} in {git.total_files_changed} file(s)")
        )
        for commit in git.commits[:MAX_COMMITS_SHOWN]:
            lines.append(f"      {click.style(commit.short_hash, fg='yellow')} {commit.message}")
    return lines


def format_recap(recap: DayRecap, standup: bool = False) -> str:
    """Human-readable recap for the terminal."""
    if standup:
        if recap.standup_message:
            return recap.standup_message + "\n"
        lines = []
        for project in recap.projects:
            titles = [s.title for s in project.sorted_sessions() if s.title]
            detail = "; ".join(titles[:3]) or f"{project.total_sessions} session(s)"
            lines.append(f"- {project.project_name}: {detail}")
        return "\n".join(lines) + "\n"

    lines = [
        click.style(f"  Recap for {recap.date}", bold=True),
        _dim(
            f"  {recap.total_sessions} session(s) · {recap.total_messages} messages"
            f" · {format_duration(recap.total_duration_ms)} active"
            f" · {format_tokens(recap.total_tokens)} tokens · {format_cost(recap.total_cost_usd)}"
        ),
        _dim(f"  Tools: {', '.join(recap.tools_used) or 'none'}"),
        "",
    ]
    for project in recap.projects:
        lines.extend(_project_lines(project))
        lines.append("")

    if recap.standup_message:
        lines.append(click.style("  Standup", bold=True))
        for line in recap.standup_message.splitlines():
            lines.append(f"    {line}")
        lines.append("")
    return "\n".join(lines)


def render_recap(recap: DayRecap, standup: bool = False, as_json: bool = False) -> None:
    """Print the recap as JSON or styled terminal text."""
    if as_json:
        click.echo(recap_to_json(recap))
        return
    click.echo(format_recap(recap, standup=standup))
