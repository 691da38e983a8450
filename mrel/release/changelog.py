from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Literal

from mrel.core.result import Err, Ok, Result
from mrel.platform.files import atomic_write_text
from mrel.release.commits import CommitRecord
from mrel.release.errors import ReleaseError


SectionKind = Literal["breaking", "feat", "fix", "docs", "maintenance", "other"]

SECTION_ORDER: tuple[SectionKind, ...] = ("breaking", "feat", "fix", "docs", "maintenance", "other")

SECTION_TITLES: dict[SectionKind, str] = {
    "breaking": "Breaking Changes",
    "feat": "Features",
    "fix": "Bug Fixes",
    "docs": "Documentation",
    "maintenance": "Maintenance",
    "other": "Other Changes",
}

_KIND_BY_TYPE: dict[str, SectionKind] = {
    "feat": "feat",
    "feature": "feat",
    "fix": "fix",
    "bugfix": "fix",
    "docs": "docs",
    "doc": "docs",
    "chore": "maintenance",
    "build": "maintenance",
    "ci": "maintenance",
}

CHANGELOG_PREAMBLE = (
    "# Changelog\n"
    "\n"
    "All notable changes to this project will be documented in this file.\n"
    "\n"
    "The format is based on [Keep a Changelog](https://keepachangelog.com/en/1.0.0/),\n"
    "and this project adheres to [Semantic Versioning](https://semver.org/spec/v2.0.0.html).\n"
)


@dataclass(frozen=True, slots=True)
class ChangelogOptions:
    """Which sections are rendered.

    "other" has no switch: it is rendered whenever it has entries.
    """

    breaking: bool = True
    feat: bool = True
    fix: bool = True
    docs: bool = False
    maintenance: bool = False
    repo_url: str | None = None

    def is_enabled(self, kind: SectionKind) -> bool:
        if kind == "other":
            return True
        return bool(getattr(self, kind))


@dataclass(frozen=True, slots=True)
class ChangelogSection:
    kind: SectionKind
    entries: tuple[str, ...]

    @property
    def rank(self) -> int:
        return SECTION_ORDER.index(self.kind)

    @property
    def title(self) -> str:
        return SECTION_TITLES[self.kind]


def section_for_type(commit_type: str) -> SectionKind:
    return _KIND_BY_TYPE.get(commit_type, "other")


def commit_link(commit: CommitRecord, *, repo_url: str | None) -> str:
    if repo_url:
        return f"{repo_url.rstrip('/')}/commit/{commit.hash}"
    return f"../../commit/{commit.hash}"


def render_entry(commit: CommitRecord, *, repo_url: str | None = None) -> str:
    scope = f"**{commit.scope}:** " if commit.scope else ""
    link = commit_link(commit, repo_url=repo_url)
    return f"{scope}{commit.description} ([{commit.short_hash}]({link}))"


def aggregate(
    commits: list[CommitRecord],
    options: ChangelogOptions | None = None,
) -> tuple[ChangelogSection, ...]:
    """Group commits into enabled, non-empty sections in priority order.

    Input order (newest first) is kept inside each section. A breaking commit
    is listed under "breaking" and under its own type's section.
    """
    opts = options or ChangelogOptions()
    buckets: dict[SectionKind, list[str]] = {kind: [] for kind in SECTION_ORDER}

    for commit in commits:
        entry = render_entry(commit, repo_url=opts.repo_url)
        if commit.breaking:
            buckets["breaking"].append(entry)
        buckets[section_for_type(commit.type)].append(entry)

    return tuple(
        ChangelogSection(kind=kind, entries=tuple(buckets[kind]))
        for kind in SECTION_ORDER
        if buckets[kind] and opts.is_enabled(kind)
    )


def render_markdown(
    *,
    version: str,
    on: date,
    sections: tuple[ChangelogSection, ...],
) -> str:
    lines: list[str] = [f"## [{version}] - {on.isoformat()}", ""]
    for section in sections:
        lines.append(f"### {section.title}")
        lines.append("")
        lines.extend(f"- {entry}" for entry in section.entries)
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def render_release_notes(
    commits: list[CommitRecord],
    *,
    since: str | None,
    until: str,
    repo_url: str | None = None,
) -> str:
    lines: list[str] = ["### What's Changed", ""]
    lines.extend(f"- {c.subject} by @{c.author}" for c in commits)

    if since:
        base = repo_url.rstrip("/") if repo_url else "../.."
        lines.append("")
        lines.append(f"**Full Changelog**: {base}/compare/{since}...{until}")
    return "\n".join(lines).rstrip() + "\n"


def insert_fragment(existing: str | None, fragment: str) -> str:
    """Place a new version section above older ones.

    Without an existing document the Keep a Changelog preamble is written first.
    """
    block = fragment.rstrip() + "\n"
    if existing is None or not existing.strip():
        return f"{CHANGELOG_PREAMBLE}\n{block}"

    idx = existing.find("## [")
    if idx < 0:
        return existing.rstrip() + "\n\n" + block
    return existing[:idx] + block + "\n" + existing[idx:]


def update_changelog_file(path: Path, fragment: str) -> Result[Path, ReleaseError]:
    try:
        existing = path.read_text(encoding="utf-8") if path.exists() else None
    except (OSError, UnicodeDecodeError) as e:
        return Err(
            ReleaseError(
                kind="changelog_failed",
                message=f"failed to read {path.name}: {e}",
                hint=str(path),
            )
        )

    try:
        atomic_write_text(path, insert_fragment(existing, fragment))
    except OSError as e:
        return Err(
            ReleaseError(
                kind="changelog_failed",
                message=f"failed to write {path.name}: {e}",
                hint=str(path),
            )
        )
    return Ok(path)
