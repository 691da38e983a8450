"""Monotonic build numbers.

Build numbers land in ``CFBundleVersion``, ``versionCode`` and the ``+N``
suffix of ``pubspec.yaml``; all three stores require them to grow between
uploads. Time-derived numbers use minute resolution (``YYYYMMDDHHmm``). When a
previous build number is known and the clock value would not exceed it (two
releases inside one minute, or a clock behind a date-build value), the result
is ``previous + 1`` instead, so a derivation never repeats a number.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from mrel.core.result import Err, Ok, Result
from mrel.release.errors import ReleaseError
from mrel.release.model import BuildStrategy


@dataclass(frozen=True, slots=True, order=True)
class BuildNumber:
    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError(f"build number must be non-negative: {self.value}")

    @classmethod
    def parse(cls, text: str) -> Result[BuildNumber, ReleaseError]:
        s = text.strip()
        if not s.isascii() or not s.isdigit():
            return Err(
                ReleaseError(
                    kind="invalid_build_number",
                    message=f"invalid build number: {text!r}",
                    hint="Expected a non-negative integer, e.g. 42",
                )
            )
        return Ok(cls(int(s)))

    @classmethod
    def from_current_time(
        cls,
        *,
        now: datetime | None = None,
        previous: BuildNumber | None = None,
    ) -> BuildNumber:
        moment = (now or datetime.now(UTC)).astimezone(UTC)
        value = int(moment.strftime("%Y%m%d%H%M"))
        return cls._after(value, previous)

    @classmethod
    def from_date_build(
        cls,
        index: int = 1,
        *,
        now: datetime | None = None,
        previous: BuildNumber | None = None,
    ) -> BuildNumber:
        moment = (now or datetime.now(UTC)).astimezone(UTC)
        value = int(moment.strftime("%Y%m%d")) * 100 + index
        return cls._after(value, previous)

    @classmethod
    def from_commit_count(cls, count: int, *, previous: BuildNumber | None = None) -> BuildNumber:
        return cls._after(count, previous)

    @classmethod
    def _after(cls, value: int, previous: BuildNumber | None) -> BuildNumber:
        if previous is not None and value <= previous.value:
            return previous.increment()
        return cls(value)

    def increment(self) -> BuildNumber:
        return BuildNumber(self.value + 1)

    def __str__(self) -> str:
        return str(self.value)


def next_build_number(
    *,
    strategy: BuildStrategy,
    previous: BuildNumber | None,
    now: datetime | None = None,
    commit_count: int | None = None,
) -> BuildNumber:
    """Derive the next build number for a strategy.

    ``increment`` starts from 1 when no previous build number is recorded.
    ``git-count`` uses the number of commits reachable from HEAD; without a
    count (no repository, or git failed) it falls back to ``increment``.
    """
    match strategy:
        case "increment":
            return previous.increment() if previous is not None else BuildNumber(1)
        case "datetime":
            return BuildNumber.from_current_time(now=now, previous=previous)
        case "date-build":
            return BuildNumber.from_date_build(now=now, previous=previous)
        case "git-count":
            if commit_count is None:
                return previous.increment() if previous is not None else BuildNumber(1)
            return BuildNumber.from_commit_count(commit_count, previous=previous)
        case _:
            raise AssertionError(f"unexpected build strategy: {strategy}")
