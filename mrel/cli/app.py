from __future__ import annotations

from pathlib import Path

import typer

from mrel import __version__
from mrel.cli.commands.bump_cmd import bump
from mrel.cli.commands.changelog_cmd import changelog
from mrel.cli.commands.show_cmd import show
from mrel.cli.context import GlobalOptions
from mrel.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(bump)
app.command()(changelog)
app.command()(show)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_print_version,
        is_eager=True,
        help="Show version and exit.",
    ),
    root: Path | None = typer.Option(
        None,
        "--root",
        help="Project root (default: current directory)",
        show_default=False,
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Config file (default: <root>/mrel.toml when present)",
        show_default=False,
    ),
) -> None:
    try:
        resolved = (root or Path.cwd()).expanduser().resolve()
    except OSError as e:
        typer.echo(f"error: invalid --root: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    if not resolved.is_dir():
        typer.echo(f"error: --root '{resolved}' is not a directory", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    ctx.obj = GlobalOptions(
        root=resolved,
        config_path=config.expanduser() if config is not None else None,
    )


def main() -> None:
    app()
