"""Apply one resolved (version, build number) to every manifest target.

Targets are processed in order, each in isolation:

- missing file: ``absent`` (a fault only when the target is required),
- read / parse / pattern fault: ``failed`` with the error recorded,
- text unchanged after transform: ``unchanged`` (nothing written),
- otherwise atomic write: ``updated``.

An optional target's fault never stops the loop. A required target's fault
stops it: later targets are not attempted and the report carries the
escalated error. Writes that already happened are kept.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from mrel.core.result import Err, Ok, Result
from mrel.platform.files import atomic_write_text, read_text_exact
from mrel.release.build_number import BuildNumber
from mrel.release.errors import ReleaseError
from mrel.release.manifests import ManifestFields, codec_for
from mrel.release.model import ManifestTarget, TargetOutcome
from mrel.release.semver import SemanticVersion


@dataclass(frozen=True, slots=True)
class SyncReport:
    outcomes: tuple[TargetOutcome, ...]
    fatal: ReleaseError | None = None

    @property
    def updated(self) -> tuple[TargetOutcome, ...]:
        return tuple(o for o in self.outcomes if o.status == "updated")


def read_fields(target: ManifestTarget, *, root: Path) -> Result[ManifestFields, ReleaseError]:
    path = target.resolve(root)
    if not path.is_file():
        return Err(
            ReleaseError(
                kind="manifest_absent",
                message=f"{target.id}: manifest not found",
                hint=str(path),
            )
        )

    try:
        text = read_text_exact(path)
    except (OSError, UnicodeDecodeError) as e:
        return Err(
            ReleaseError(
                kind="manifest_unreadable",
                message=f"{target.id}: failed to read {path.name}: {e}",
                hint=str(path),
            )
        )

    return codec_for(target.kind).read(text).map_err(lambda e: _with_target(e, target, path))


def sync_target(
    target: ManifestTarget,
    *,
    root: Path,
    version: SemanticVersion,
    build: BuildNumber | None,
    dry_run: bool = False,
) -> TargetOutcome:
    path = target.resolve(root)
    if not path.is_file():
        return TargetOutcome(target=target, status="absent", path=path)

    try:
        text = read_text_exact(path)
    except (OSError, UnicodeDecodeError) as e:
        return _failed(
            target,
            path,
            ReleaseError(
                kind="manifest_unreadable",
                message=f"{target.id}: failed to read {path.name}: {e}",
                hint=str(path),
            ),
        )

    match codec_for(target.kind).apply(text, version=version, build=build):
        case Err(error):
            return _failed(target, path, _with_target(error, target, path))
        case Ok(new_text):
            pass

    if new_text == text:
        return TargetOutcome(target=target, status="unchanged", path=path)

    if not dry_run:
        try:
            atomic_write_text(path, new_text)
        except OSError as e:
            return _failed(
                target,
                path,
                ReleaseError(
                    kind="manifest_write_failed",
                    message=f"{target.id}: failed to write {path.name}: {e}",
                    hint=str(path),
                ),
            )

    return TargetOutcome(target=target, status="updated", path=path)


def sync_manifests(
    targets: tuple[ManifestTarget, ...] | list[ManifestTarget],
    *,
    root: Path,
    version: SemanticVersion,
    build: BuildNumber | None,
    dry_run: bool = False,
) -> SyncReport:
    outcomes: list[TargetOutcome] = []

    for target in targets:
        if not target.enabled:
            continue

        outcome = sync_target(target, root=root, version=version, build=build, dry_run=dry_run)
        outcomes.append(outcome)

        if not target.required:
            continue

        cause = _required_fault(outcome)
        if cause is not None:
            return SyncReport(
                outcomes=tuple(outcomes),
                fatal=ReleaseError(
                    kind="required_target_failed",
                    message=f"required manifest {target.id} could not be updated: {cause.message}",
                    hint=cause.hint,
                ),
            )

    return SyncReport(outcomes=tuple(outcomes))


def _required_fault(outcome: TargetOutcome) -> ReleaseError | None:
    if outcome.status == "failed":
        return outcome.error
    if outcome.status == "absent":
        return ReleaseError(
            kind="manifest_absent",
            message="manifest not found",
            hint=str(outcome.path),
        )
    return None


def _failed(target: ManifestTarget, path: Path, error: ReleaseError) -> TargetOutcome:
    return TargetOutcome(target=target, status="failed", path=path, error=error)


def _with_target(error: ReleaseError, target: ManifestTarget, path: Path) -> ReleaseError:
    if error.message.startswith(f"{target.id}:"):
        return error
    return ReleaseError(
        kind=error.kind,
        message=f"{target.id}: {error.message}",
        hint=error.hint or str(path),
    )
