"""Changelog command - render a commit range as a changelog section or release notes."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from enum import StrEnum
from pathlib import Path

import typer

from mrel.cli.commands._helpers import exit_with_error, unwrap_or_exit
from mrel.cli.context import build_context
from mrel.git.repository import Repository
from mrel.platform.files import atomic_write_text
from mrel.release.changelog import (
    aggregate,
    render_markdown,
    render_release_notes,
    update_changelog_file,
)
from mrel.release.errors import ReleaseError
from mrel.release.history import collect_commits
from mrel.release.semver import SemanticVersion

UNRELEASED = "Unreleased"


class OutputFormat(StrEnum):
    markdown = "markdown"
    release_notes = "release-notes"


def changelog(
    ctx: typer.Context,
    since: str | None = typer.Option(
        None, "--since", help="Start ref (default: latest tag)", show_default=False
    ),
    until: str = typer.Option("HEAD", "--until", help="End ref"),
    fmt: OutputFormat = typer.Option(OutputFormat.markdown, "--format", help="Output format"),
    output: str = typer.Option(
        "-", "--output", "-o", help="Changelog file to update, or - for stdout"
    ),
    version: str | None = typer.Option(
        None, "--version", help="Version heading (default: Unreleased)", show_default=False
    ),
    include_all: bool = typer.Option(
        False, "--include-all", help="Render every section, including docs and maintenance"
    ),
) -> None:
    """Generate a changelog from conventional commits."""
    cli = build_context(ctx)

    heading = UNRELEASED
    if version is not None:
        heading = str(unwrap_or_exit(SemanticVersion.parse(version), cli))

    commit_range = unwrap_or_exit(
        collect_commits(Repository(cli.config.root), since=since, until=until), cli
    )
    if commit_range.empty:
        cli.console.warning(f"no commits in {commit_range.since or '(root)'}..{until}")

    options = cli.config.changelog.options
    if include_all:
        options = replace(options, docs=True, maintenance=True)

    commits = list(commit_range.commits)
    if fmt == OutputFormat.release_notes:
        text = render_release_notes(
            commits,
            since=commit_range.since,
            until=until,
            repo_url=options.repo_url,
        )
    else:
        text = render_markdown(
            version=heading,
            on=date.today(),
            sections=aggregate(commits, options),
        )

    if output == "-":
        typer.echo(text, nl=False)
        return

    path = Path(output)
    if not path.is_absolute():
        path = cli.config.root / path

    if fmt == OutputFormat.markdown:
        unwrap_or_exit(update_changelog_file(path, text), cli)
    else:
        try:
            atomic_write_text(path, text)
        except OSError as e:
            exit_with_error(
                ReleaseError(kind="changelog_failed", message=f"failed to write {path.name}: {e}"),
                cli,
            )

    cli.console.success(f"{len(commits)} commits written to {path}")
