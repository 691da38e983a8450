"""Git access for the release pipeline.

Two concerns only: reading a commit-range feed for the changelog, and the
commit / annotated tag / push hand-off after manifests were synchronized.
All operations return Result types.

Usage:
    repo = Repository(Path("/path/to/app"))

    match repo.log_range(since=repo.latest_tag(), until="HEAD"):
        case Ok(entries):
            for entry in entries:
                print(entry.hash[:7], entry.subject)
        case Err(e):
            print(f"git log failed: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from mrel.core.result import Err, Ok, Result
from mrel.platform.process import ProcessError
from mrel.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

# Unit separator: cannot appear in a subject line.
_FIELD_SEP = "\x1f"

__all__ = [
    "GitError",
    "LogEntry",
    "Repository",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message (stderr, or a summary)
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One line of the commit feed: ``(hash, subject, author, date)``."""

    hash: str
    subject: str
    author: str
    date: str


class Repository:
    """A git working tree.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def latest_tag(self) -> str | None:
        """Most recent tag reachable from HEAD, or None when there is none."""
        result = self._run(["describe", "--tags", "--abbrev=0"])
        match result:
            case Ok(stdout):
                tag = stdout.strip()
                return tag or None
            case Err(_):
                return None

    def tag_exists(self, tag: str) -> bool:
        result = self._run(["rev-parse", "-q", "--verify", f"refs/tags/{tag}"])
        return isinstance(result, Ok)

    def commit_count(self, rev: str = "HEAD") -> Result[int, GitError]:
        """Number of commits reachable from ``rev``."""
        result = self._run(["rev-list", "--count", rev])
        match result:
            case Err(e):
                return Err(self._error("rev-list", e, "git rev-list failed"))
            case Ok(stdout):
                text = stdout.strip()
                if not text.isdigit():
                    return Err(GitError(command="rev-list", message=f"unexpected count: {text!r}"))
                return Ok(int(text))

    def log_range(self, *, since: str | None, until: str = "HEAD") -> Result[list[LogEntry], GitError]:
        """Commits in ``since..until``, newest first, merges excluded.

        ``since=None`` means the full history up to ``until``.
        """
        rev = f"{since}..{until}" if since else until
        fmt = _FIELD_SEP.join(["%H", "%s", "%an", "%ad"])
        result = self._run(["log", rev, "--no-merges", f"--pretty=format:{fmt}", "--date=short"])
        match result:
            case Err(e):
                return Err(self._error("log", e, "git log failed"))
            case Ok(stdout):
                return Ok(self._parse_log(stdout))

    def add(self, paths: list[Path]) -> Result[None, GitError]:
        if not paths:
            return Ok(None)
        rels = [str(self._relative(p)) for p in paths]
        result = self._run(["add", "--", *rels])
        match result:
            case Err(e):
                return Err(self._error("add", e, "git add failed"))
            case Ok(_):
                return Ok(None)

    def commit(self, message: str) -> Result[None, GitError]:
        result = self._run(["commit", "-m", message])
        match result:
            case Err(e):
                return Err(self._error("commit", e, "git commit failed"))
            case Ok(_):
                return Ok(None)

    def create_annotated_tag(self, tag: str, message: str) -> Result[None, GitError]:
        result = self._run(["tag", "-a", tag, "-m", message])
        match result:
            case Err(e):
                return Err(self._error("tag", e, f"git tag {tag} failed"))
            case Ok(_):
                return Ok(None)

    def push_tag(self, tag: str, remote: str = "origin") -> Result[None, GitError]:
        result = self._run(["push", remote, tag])
        match result:
            case Err(e):
                return Err(self._error("push", e, f"git push {remote} {tag} failed"))
            case Ok(_):
                return Ok(None)

    def _relative(self, path: Path) -> Path:
        try:
            return path.resolve().relative_to(self.path.resolve())
        except ValueError:
            return path

    def _error(self, command: str, e: ProcessError, fallback: str) -> GitError:
        return GitError(
            command=command,
            message=e.stderr.strip() or e.stdout.strip() or fallback,
            returncode=e.returncode,
        )

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS
            if command in {"fetch", "pull", "push"}
            else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)

    def _parse_log(self, output: str) -> list[LogEntry]:
        entries: list[LogEntry] = []
        for line in output.splitlines():
            if not line.strip():
                continue
            parts = line.split(_FIELD_SEP)
            if len(parts) != 4:
                continue
            sha, subject, author, date = parts
            entries.append(LogEntry(hash=sha, subject=subject, author=author, date=date))
        return entries
