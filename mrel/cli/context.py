from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from mrel.core.errors import ErrorCode
from mrel.core.result import Err, Ok
from mrel.output.console import ConsoleProtocol, RichConsole
from mrel.output.errors import print_release_error
from mrel.release.config import ReleaseConfig, load_config_or_default


@dataclass(frozen=True, slots=True)
class GlobalOptions:
    """Values of the top-level ``--root`` / ``--config`` options."""

    root: Path
    config_path: Path | None = None


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: ReleaseConfig
    console: ConsoleProtocol


def build_context(ctx: typer.Context) -> CLIContext:
    console = RichConsole()

    options = ctx.obj if isinstance(ctx.obj, GlobalOptions) else GlobalOptions(root=Path.cwd())

    match load_config_or_default(options.root, options.config_path):
        case Err(error):
            print_release_error(error, console)
            raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))
        case Ok(config):
            pass

    return CLIContext(config=config, console=console)
