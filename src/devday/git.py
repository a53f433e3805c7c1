"""Git commit collection for a project on a given day."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 10

# Record and field separators that cannot appear in commit subjects
_RECORD_SEP = "\x1e"
_FIELD_SEP = "\x1f"
_LOG_FORMAT = f"{_RECORD_SEP}%H{_FIELD_SEP}%h{_FIELD_SEP}%an{_FIELD_SEP}%aI{_FIELD_SEP}%s"


@dataclass(frozen=True)
class GitCommit:
    hash: str
    short_hash: str
    message: str
    author: str
    timestamp: datetime
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0
    files: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "short_hash": self.short_hash,
            "message": self.message,
            "author": self.author,
            "timestamp": self.timestamp.isoformat(),
            "files_changed": self.files_changed,
            "insertions": self.insertions,
            "deletions": self.deletions,
            "files": list(self.files),
        }


@dataclass(frozen=True)
class GitActivity:
    """Commits made in one repository on one day."""

    project_path: str
    project_name: str
    commits: tuple[GitCommit, ...] = field(default_factory=tuple)

    @property
    def total_files_changed(self) -> int:
        return len({f for commit in self.commits for f in commit.files})

    @property
    def total_insertions(self) -> int:
        return sum(commit.insertions for commit in self.commits)

    @property
    def total_deletions(self) -> int:
        return sum(commit.deletions for commit in self.commits)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_path": self.project_path,
            "project_name": self.project_name,
            "commits": [commit.to_dict() for commit in self.commits],
            "total_files_changed": self.total_files_changed,
            "total_insertions": self.total_insertions,
            "total_deletions": self.total_deletions,
        }


def _run_git(project_path: str, args: list[str]) -> str | None:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=project_path,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=GIT_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"git {args[0]} failed in {project_path}: {e}")
        return None
    if result.returncode != 0:
        logger.debug(f"git {args[0]} exited {result.returncode} in {project_path}: {result.stderr.strip()}")
        return None
    return result.stdout


def parse_git_log(output: str) -> list[GitCommit]:
    """Parse ``git log --numstat`` output written with the devday record format."""
    commits = []
    for record in output.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record:
            continue
        header, _, numstat = record.partition("\n")
        fields = header.split(_FIELD_SEP)
        if len(fields) != 5:
            continue
        full_hash, short_hash, author, iso_date, subject = fields
        try:
            timestamp = datetime.fromisoformat(iso_date)
        except ValueError:
            continue

        insertions = deletions = 0
        files = []
        for line in numstat.splitlines():
            parts = line.split("\t")
            if len(parts) != 3:
                continue
            added, removed, path = parts
            # Binary files report "-" for both counts
            insertions += int(added) if added.isdigit() else 0
            deletions += int(removed) if removed.isdigit() else 0
            files.append(path)

        commits.append(
            GitCommit(
                hash=full_hash,
                short_hash=short_hash,
                message=subject,
                author=author,
                timestamp=timestamp,
                files_changed=len(files),
                insertions=insertions,
                deletions=deletions,
                files=tuple(files),
            )
        )
    return commits


def get_git_activity(project_path: str, date: str, author: str | None = None) -> GitActivity | None:
    """Collect the commits made in ``project_path`` on ``date`` (local time).

    Args:
        project_path: Directory inside a git work tree.
        date: Day in YYYY-MM-DD format.
        author: Optional ``git log --author`` filter.

    Returns:
        GitActivity (possibly with no commits), or None if the path is not a
        repository or git fails.
    """
    if not project_path or not Path(project_path).is_dir():
        return None
    inside = _run_git(project_path, ["rev-parse", "--is-inside-work-tree"])
    if inside is None or inside.strip() != "true":
        return None

    args = [
        "log",
        f"--since={date} 00:00:00",
        f"--until={date} 23:59:59",
        "--no-merges",
        "--numstat",
        f"--pretty=format:{_LOG_FORMAT}",
    ]
    if author:
        args.append(f"--author={author}")

    output = _run_git(project_path, args)
    if output is None:
        return None

    commits = parse_git_log(output)
    logger.debug(f"{len(commits)} commit(s) in {project_path} on {date}")
    return GitActivity(
        project_path=project_path,
        project_name=Path(project_path).name or project_path,
        commits=tuple(commits),
    )
