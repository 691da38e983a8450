from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from mrel.release.build_number import BuildNumber
    from mrel.release.errors import ReleaseError
    from mrel.release.semver import SemanticVersion


BumpKind = Literal["major", "minor", "patch"]
BuildStrategy = Literal["increment", "datetime", "date-build", "git-count"]
OutcomeStatus = Literal["updated", "unchanged", "absent", "failed"]

BUMP_KINDS: tuple[BumpKind, ...] = ("major", "minor", "patch")
BUILD_STRATEGIES: tuple[BuildStrategy, ...] = (
    "increment",
    "datetime",
    "date-build",
    "git-count",
)


class ManifestKind(StrEnum):
    """Closed set of manifest formats the synchronizer understands."""

    PACKAGE_JSON = "package-json"
    PUBSPEC = "pubspec"
    INFO_PLIST = "info-plist"
    GRADLE = "gradle"


@dataclass(frozen=True, slots=True)
class ManifestTarget:
    """One platform metadata file.

    ``path`` is relative to the project root unless absolute.
    """

    id: str
    path: Path
    kind: ManifestKind
    required: bool = False
    enabled: bool = True

    def resolve(self, root: Path) -> Path:
        return self.path if self.path.is_absolute() else root / self.path


@dataclass(frozen=True, slots=True)
class TargetOutcome:
    target: ManifestTarget
    status: OutcomeStatus
    path: Path
    error: ReleaseError | None = None


@dataclass(frozen=True, slots=True)
class BumpDirective:
    """Either a bump kind or an explicit version string (never both)."""

    kind: BumpKind | None = None
    explicit: str | None = None

    def __post_init__(self) -> None:
        if (self.kind is None) == (self.explicit is None):
            raise ValueError("BumpDirective needs exactly one of kind or explicit")


@dataclass(frozen=True, slots=True)
class ReleasePlan:
    current: SemanticVersion
    version: SemanticVersion
    build: BuildNumber
    outcomes: tuple[TargetOutcome, ...]
    tag: str | None = None
    committed: bool = False
    pushed: bool = False
