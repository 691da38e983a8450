"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from mrel.core.errors import ErrorCode
from mrel.output.console import Style
from mrel.release.errors import ReleaseError

if TYPE_CHECKING:
    from mrel.output.console import ConsoleProtocol
    from mrel.release.model import TargetOutcome

__all__ = ["print_release_error", "print_outcomes", "release_error_exit_code"]


def print_release_error(error: ReleaseError, console: ConsoleProtocol) -> None:
    """Print ``error: [stage] message`` plus the hint, if any."""
    console.error(f"[{error.stage}] {error.message}")
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def release_error_exit_code(error: ReleaseError) -> int:
    match error.stage:
        case "parse":
            return int(ErrorCode.USER_ERROR)
        case "config":
            return int(ErrorCode.CONFIG_ERROR)
        case "manifest":
            return int(ErrorCode.MANIFEST_ERROR)
        case "vcs":
            return int(ErrorCode.VCS_ERROR)
        case "changelog":
            return int(ErrorCode.IO_ERROR)


def print_outcomes(outcomes: tuple[TargetOutcome, ...], console: ConsoleProtocol) -> None:
    for outcome in outcomes:
        label = f"{outcome.target.id} ({outcome.path})"
        match outcome.status:
            case "updated":
                console.success(f"{label}: updated")
            case "unchanged":
                console.print(f"{label}: unchanged", Style.DIM)
            case "absent":
                console.print(f"{label}: not found, skipped", Style.DIM)
            case "failed":
                detail = outcome.error.message if outcome.error is not None else "failed"
                console.warning(f"{label}: {detail}")
