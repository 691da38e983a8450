"""Show command - print the version recorded in each manifest."""

from __future__ import annotations

import typer

from mrel.cli.commands._helpers import unwrap_or_exit
from mrel.cli.context import build_context
from mrel.core.result import Err, Ok
from mrel.output.console import Style
from mrel.release.planner import resolve_current_version
from mrel.release.sync import read_fields


def show(ctx: typer.Context) -> None:
    """Show the current version and every manifest's version/build."""
    cli = build_context(ctx)
    config = cli.config

    current = unwrap_or_exit(resolve_current_version(config), cli)
    source = current.source or f"initial_version {config.project.initial_version}"
    build = f" (build {current.build})" if current.build is not None else ""
    cli.console.header(f"{current.version}{build}")
    cli.console.print(f"source: {source}", Style.DIM)
    cli.console.print(f"root: {config.root}", Style.DIM)
    cli.console.newline()

    for target in config.targets:
        label = target.id if target.enabled else f"{target.id} (disabled)"
        path = target.resolve(config.root)
        if not path.is_file():
            cli.console.print(f"{label}: not found ({target.path})", Style.DIM)
            continue

        match read_fields(target, root=config.root):
            case Err(error):
                cli.console.warning(f"{label}: {error.message}")
            case Ok(fields):
                version = fields.version or "-"
                build_str = fields.build or "-"
                cli.console.print(f"{label}: {version} (build {build_str}) [{target.path}]")
