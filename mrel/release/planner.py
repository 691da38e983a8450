"""Release orchestration.

One synchronous pass, no retries, no rollback:

1. resolve the current version from the configured manifests,
2. compute the new version (bump or validated override) and build number,
3. synchronize every enabled manifest target,
4. optionally prepend the changelog section,
5. optionally commit, create an annotated tag and push it.

Steps 1-2 touch nothing on disk, so a malformed ``--version`` or ``--build``
fails before any manifest is written. Faults after step 3 leave the already
written manifests (and commits) in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Protocol

from mrel.core.result import Err, Ok, Result
from mrel.git.repository import GitError
from mrel.release.build_number import BuildNumber, next_build_number
from mrel.release.changelog import aggregate, render_markdown, update_changelog_file
from mrel.release.commits import CommitRecord
from mrel.release.config import ReleaseConfig
from mrel.release.errors import ReleaseError
from mrel.release.model import BumpDirective, ReleasePlan, TargetOutcome
from mrel.release.semver import SemanticVersion
from mrel.release.sync import read_fields, sync_manifests


class VersionControl(Protocol):
    def commit_count(self, rev: str = "HEAD") -> Result[int, GitError]: ...

    def add(self, paths: list[Path]) -> Result[None, GitError]: ...

    def commit(self, message: str) -> Result[None, GitError]: ...

    def tag_exists(self, tag: str) -> bool: ...

    def create_annotated_tag(self, tag: str, message: str) -> Result[None, GitError]: ...

    def push_tag(self, tag: str, remote: str = "origin") -> Result[None, GitError]: ...


@dataclass(frozen=True, slots=True)
class ReleaseRequest:
    directive: BumpDirective
    build: str | None = None
    prerelease: str | None = None
    commit: bool = True
    tag: bool = False
    push: bool = False
    dry_run: bool = False


@dataclass(frozen=True, slots=True)
class CurrentVersion:
    version: SemanticVersion
    build: BuildNumber | None
    # Target id the version was read from; None when the initial version was used.
    source: str | None


@dataclass(frozen=True, slots=True)
class PreparedRelease:
    current: CurrentVersion
    version: SemanticVersion
    build: BuildNumber
    tag: str


@dataclass(frozen=True, slots=True)
class ReleaseFailure:
    """Fatal pipeline fault plus whatever target outcomes were produced first."""

    error: ReleaseError
    outcomes: tuple[TargetOutcome, ...] = ()


def resolve_current_version(config: ReleaseConfig) -> Result[CurrentVersion, ReleaseError]:
    """First existing manifest (in read order) with a parseable version wins.

    The previous build number comes from the first manifest in read order
    that records one.
    """
    version: SemanticVersion | None = None
    source: str | None = None
    build: BuildNumber | None = None

    for target in config.read_targets():
        fields = read_fields(target, root=config.root)
        if isinstance(fields, Err):
            continue

        if build is None:
            build = fields.value.build_number()

        if version is None and fields.value.version is not None:
            parsed = SemanticVersion.parse(fields.value.version)
            if isinstance(parsed, Ok):
                version = parsed.value
                source = target.id

        if version is not None and build is not None:
            break

    if version is None:
        initial = SemanticVersion.parse(config.project.initial_version)
        if isinstance(initial, Err):
            return initial
        version = initial.value

    return Ok(CurrentVersion(version=version, build=build, source=source))


def compute_next_version(
    current: SemanticVersion,
    directive: BumpDirective,
    *,
    prerelease: str | None = None,
) -> Result[SemanticVersion, ReleaseError]:
    if directive.explicit is not None:
        nxt = SemanticVersion.parse(directive.explicit)
        if isinstance(nxt, Err):
            return nxt
        version = nxt.value
    else:
        assert directive.kind is not None
        version = current.bump(directive.kind)

    if prerelease:
        return version.with_prerelease(prerelease)
    return Ok(version)


def resolve_build_number(
    config: ReleaseConfig,
    *,
    explicit: str | None,
    previous: BuildNumber | None,
    now: datetime | None = None,
    commit_count: int | None = None,
) -> Result[BuildNumber, ReleaseError]:
    if explicit is not None:
        return BuildNumber.parse(explicit)
    return Ok(
        next_build_number(
            strategy=config.build.strategy,
            previous=previous,
            now=now,
            commit_count=commit_count,
        )
    )


def count_commits(config: ReleaseConfig, vcs: VersionControl | None) -> int | None:
    """Commit count for the ``git-count`` strategy; None for other strategies or on git failure."""
    if config.build.strategy != "git-count" or vcs is None:
        return None
    match vcs.commit_count():
        case Ok(count):
            return count
        case Err(_):
            return None


def prepare_release(
    config: ReleaseConfig,
    request: ReleaseRequest,
    *,
    now: datetime | None = None,
    commit_count: int | None = None,
) -> Result[PreparedRelease, ReleaseError]:
    """Compute version, build number and tag without touching any file."""
    match resolve_current_version(config):
        case Err() as err:
            return err
        case Ok(current):
            pass

    match compute_next_version(current.version, request.directive, prerelease=request.prerelease):
        case Err() as err:
            return err
        case Ok(version):
            pass

    match resolve_build_number(
        config,
        explicit=request.build,
        previous=current.build,
        now=now,
        commit_count=commit_count,
    ):
        case Err() as err:
            return err
        case Ok(build):
            pass

    return Ok(
        PreparedRelease(
            current=current,
            version=version,
            build=build,
            tag=version.to_tag(config.git.tag_prefix),
        )
    )


def execute_release(
    config: ReleaseConfig,
    request: ReleaseRequest,
    *,
    vcs: VersionControl | None,
    changelog_commits: list[CommitRecord] | None = None,
    now: datetime | None = None,
) -> Result[ReleasePlan, ReleaseFailure]:
    """Run the whole pipeline.

    ``vcs`` may be None only when no commit, tag or push is requested.
    ``changelog_commits`` (newest first) adds a section for the new version to
    the changelog file; None skips the changelog.
    """
    match prepare_release(config, request, now=now, commit_count=count_commits(config, vcs)):
        case Err(error):
            return Err(ReleaseFailure(error=error))
        case Ok(prepared):
            pass

    report = sync_manifests(
        config.targets,
        root=config.root,
        version=prepared.version,
        build=prepared.build,
        dry_run=request.dry_run,
    )
    if report.fatal is not None:
        return Err(ReleaseFailure(error=report.fatal, outcomes=report.outcomes))

    touched = [o.path for o in report.updated]

    if changelog_commits is not None and not request.dry_run:
        sections = aggregate(changelog_commits, config.changelog.options)
        fragment = render_markdown(
            version=str(prepared.version),
            on=(now.date() if now is not None else date.today()),
            sections=sections,
        )
        changelog_path = config.changelog.path
        if not changelog_path.is_absolute():
            changelog_path = config.root / changelog_path
        match update_changelog_file(changelog_path, fragment):
            case Err(error):
                return Err(ReleaseFailure(error=error, outcomes=report.outcomes))
            case Ok(path):
                touched.append(path)

    plan = ReleasePlan(
        current=prepared.current.version,
        version=prepared.version,
        build=prepared.build,
        outcomes=report.outcomes,
    )

    if request.dry_run:
        return Ok(plan)

    wants_vcs = request.commit or request.tag or request.push
    if not wants_vcs:
        return Ok(plan)
    if vcs is None:
        return Err(
            ReleaseFailure(
                error=ReleaseError(
                    kind="vcs_failed",
                    message="version control requested but no repository is available",
                    hint="Run inside a git checkout or pass --no-commit",
                ),
                outcomes=report.outcomes,
            )
        )

    tag = prepared.tag if request.tag or request.push else None
    # An existing tag fails the run before anything is staged or committed.
    if tag is not None and vcs.tag_exists(tag):
        return Err(
            ReleaseFailure(
                error=ReleaseError(
                    kind="tag_exists",
                    message=f"tag already exists: {tag}",
                    hint="Bump to a new version or delete the tag first.",
                ),
                outcomes=report.outcomes,
            )
        )

    committed = False
    if request.commit and touched:
        message = config.git.commit_message.format(version=prepared.version)
        staged = vcs.add(touched).flat_map(lambda _: vcs.commit(message))
        if isinstance(staged, Err):
            return Err(ReleaseFailure(error=_vcs_error(staged.error), outcomes=report.outcomes))
        committed = True

    pushed = False
    if tag is not None:
        created = vcs.create_annotated_tag(tag, f"Release {tag}")
        if isinstance(created, Err):
            return Err(ReleaseFailure(error=_vcs_error(created.error), outcomes=report.outcomes))

        if request.push:
            pushed_result = vcs.push_tag(tag)
            if isinstance(pushed_result, Err):
                return Err(
                    ReleaseFailure(error=_vcs_error(pushed_result.error), outcomes=report.outcomes)
                )
            pushed = True

    return Ok(
        ReleasePlan(
            current=plan.current,
            version=plan.version,
            build=plan.build,
            outcomes=plan.outcomes,
            tag=tag,
            committed=committed,
            pushed=pushed,
        )
    )


def _vcs_error(error: GitError) -> ReleaseError:
    return ReleaseError(
        kind="vcs_failed",
        message=f"git {error.command} failed: {error.message}",
    )
