"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn, TypeVar

import typer

from mrel.core.result import Err, Ok, Result
from mrel.output.errors import print_release_error, release_error_exit_code
from mrel.release.errors import ReleaseError

T = TypeVar("T")

if TYPE_CHECKING:
    from mrel.cli.context import CLIContext


def unwrap_or_exit(result: Result[T, ReleaseError], ctx: CLIContext) -> T:
    """Return the Ok value, or print the error and exit with its stage's code.

    Replaces the common pattern:
        match result:
            case Err(e):
                print_release_error(e, ctx.console)
                raise typer.Exit(code=release_error_exit_code(e))
            case Ok(value):
                ...
    """
    match result:
        case Ok(value):
            return value
        case Err(error):
            exit_with_error(error, ctx)


def exit_with_error(error: ReleaseError, ctx: CLIContext) -> NoReturn:
    print_release_error(error, ctx.console)
    raise typer.Exit(code=release_error_exit_code(error))
