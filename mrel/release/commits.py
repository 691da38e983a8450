"""Conventional-commit subject parsing.

Only the subject line is considered. A ``BREAKING CHANGE:`` footer in the
body is not detected; breaking changes must be marked with ``!`` before the
colon (``feat(api)!: drop v1 routes``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

MISC_TYPE = "misc"

_SUBJECT_RE = re.compile(r"^(?P<type>[a-z]+)(?:\((?P<scope>[^)]*)\))?(?P<bang>!)?: (?P<desc>.+)$")


@dataclass(frozen=True, slots=True)
class ParsedSubject:
    type: str
    scope: str | None
    description: str
    breaking: bool


@dataclass(frozen=True, slots=True)
class CommitRecord:
    """One commit of a revision range, classified."""

    hash: str
    subject: str
    author: str
    date: str
    type: str
    scope: str | None
    description: str
    breaking: bool

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    @classmethod
    def from_feed(cls, *, hash: str, subject: str, author: str, date: str) -> CommitRecord:
        parsed = parse_subject(subject)
        return cls(
            hash=hash,
            subject=subject,
            author=author,
            date=date,
            type=parsed.type,
            scope=parsed.scope,
            description=parsed.description,
            breaking=parsed.breaking,
        )


def parse_subject(subject: str) -> ParsedSubject:
    first_line = subject.splitlines()[0] if subject else ""
    m = _SUBJECT_RE.match(first_line)
    if m is None:
        return ParsedSubject(type=MISC_TYPE, scope=None, description=first_line, breaking=False)

    return ParsedSubject(
        type=m.group("type"),
        scope=m.group("scope") or None,
        description=m.group("desc"),
        breaking=m.group("bang") is not None,
    )
