"""Group a day's sessions by project and attach git activity."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .git import GitActivity
from .protocol import Session

UNKNOWN_PROJECT_NAME = "unknown"


@dataclass
class ProjectSummary:
    """All sessions (and commits) for one project on one day."""

    project_path: str | None
    project_name: str
    sessions: list[Session] = field(default_factory=list)
    git: GitActivity | None = None
    ai_summary: str | None = None

    @property
    def total_sessions(self) -> int:
        return len(self.sessions)

    @property
    def total_messages(self) -> int:
        return sum(s.message_count for s in self.sessions)

    @property
    def total_tokens(self) -> int:
        return sum(s.tokens.total for s in self.sessions)

    @property
    def total_cost_usd(self) -> float:
        return sum(s.cost_usd for s in self.sessions)

    @property
    def total_duration_ms(self) -> int:
        return sum(s.duration_ms for s in self.sessions)

    @property
    def tools_used(self) -> list[str]:
        return list(dict.fromkeys(s.tool.value for s in self.sessions))

    @property
    def models_used(self) -> list[str]:
        return list(dict.fromkeys(m for s in self.sessions for m in s.models))

    @property
    def files_touched(self) -> list[str]:
        return list(dict.fromkeys(f for s in self.sessions for f in s.files_touched))

    def sorted_sessions(self) -> list[Session]:
        return sorted(self.sessions, key=lambda s: s.started_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_path": self.project_path,
            "project_name": self.project_name,
            "sessions": [s.to_dict() for s in self.sorted_sessions()],
            "git": self.git.to_dict() if self.git else None,
            "total_sessions": self.total_sessions,
            "total_messages": self.total_messages,
            "total_tokens": self.total_tokens,
            "total_cost_usd": self.total_cost_usd,
            "total_duration_ms": self.total_duration_ms,
            "tools_used": self.tools_used,
            "models_used": self.models_used,
            "files_touched": self.files_touched,
            "ai_summary": self.ai_summary,
        }


@dataclass
class DayRecap:
    date: str
    projects: list[ProjectSummary] = field(default_factory=list)
    standup_message: str | None = None

    @property
    def sessions(self) -> list[Session]:
        return [s for p in self.projects for s in p.sessions]

    @property
    def total_sessions(self) -> int:
        return sum(p.total_sessions for p in self.projects)

    @property
    def total_messages(self) -> int:
        return sum(p.total_messages for p in self.projects)

    @property
    def total_tokens(self) -> int:
        return sum(p.total_tokens for p in self.projects)

    @property
    def total_cost_usd(self) -> float:
        return sum(p.total_cost_usd for p in self.projects)

    @property
    def total_duration_ms(self) -> int:
        return sum(p.total_duration_ms for p in self.projects)

    @property
    def tools_used(self) -> list[str]:
        return list(dict.fromkeys(t for p in self.projects for t in p.tools_used))

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "projects": [p.to_dict() for p in self.projects],
            "total_sessions": self.total_sessions,
            "total_messages": self.total_messages,
            "total_tokens": self.total_tokens,
            "total_cost_usd": self.total_cost_usd,
            "total_duration_ms": self.total_duration_ms,
            "tools_used": self.tools_used,
            "standup_message": self.standup_message,
        }


def build_day_recap(
    date: str,
    sessions: list[Session],
    git_activities: list[GitActivity] | None = None,
) -> DayRecap:
    """Group sessions by project path and attach matching git activity.

    Sessions without a project path share one "unknown" project. Projects
    are ordered by total active duration, longest first.
    """
    projects: dict[str | None, ProjectSummary] = {}
    for session in sessions:
        key = session.project_path
        project = projects.get(key)
        if project is None:
            name = session.project_name or (Path(key).name if key else None) or UNKNOWN_PROJECT_NAME
            project = ProjectSummary(project_path=key, project_name=name)
            projects[key] = project
        project.sessions.append(session)

    git_by_path = {activity.project_path: activity for activity in git_activities or []}
    for path, project in projects.items():
        if path is not None:
            project.git = git_by_path.get(path)

    ordered = sorted(
        projects.values(),
        key=lambda p: (-p.total_duration_ms, p.project_name.lower()),
    )
    return DayRecap(date=date, projects=ordered)
