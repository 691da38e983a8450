"""Commit feed for changelog and release notes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from mrel.core.result import Err, Ok, Result
from mrel.git.repository import GitError, LogEntry
from mrel.release.commits import CommitRecord
from mrel.release.errors import ReleaseError


class CommitSource(Protocol):
    def latest_tag(self) -> str | None: ...

    def log_range(self, *, since: str | None, until: str = "HEAD") -> Result[list[LogEntry], GitError]: ...


@dataclass(frozen=True, slots=True)
class CommitRange:
    since: str | None
    until: str
    commits: tuple[CommitRecord, ...]

    @property
    def empty(self) -> bool:
        return not self.commits


def collect_commits(
    source: CommitSource,
    *,
    since: str | None = None,
    until: str = "HEAD",
) -> Result[CommitRange, ReleaseError]:
    """Classified commits of ``since..until``, newest first.

    ``since`` defaults to the latest reachable tag; without any tag the full
    history up to ``until`` is used.
    """
    start = since if since else source.latest_tag()

    match source.log_range(since=start, until=until):
        case Err(e):
            return Err(
                ReleaseError(
                    kind="vcs_failed",
                    message=f"cannot read commits {start or '(root)'}..{until}: {e.message}",
                )
            )
        case Ok(entries):
            pass

    records = tuple(
        CommitRecord.from_feed(hash=e.hash, subject=e.subject, author=e.author, date=e.date)
        for e in entries
    )
    return Ok(CommitRange(since=start, until=until, commits=records))
