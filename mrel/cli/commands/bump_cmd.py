"""Bump command - compute the next version and write it to every manifest."""

from __future__ import annotations

from dataclasses import replace
from typing import cast

import typer

from mrel.cli.commands._helpers import exit_with_error, unwrap_or_exit
from mrel.cli.context import CLIContext, build_context
from mrel.core.errors import ErrorCode
from mrel.core.result import Err, Ok
from mrel.git.repository import Repository
from mrel.output.console import Style
from mrel.output.errors import print_outcomes
from mrel.release.config import BuildConfig, ReleaseConfig
from mrel.release.history import collect_commits
from mrel.release.model import (
    BUILD_STRATEGIES,
    BuildStrategy,
    BumpDirective,
    BumpKind,
    ReleasePlan,
)
from mrel.release.planner import ReleaseRequest, execute_release, prepare_release


def bump(
    ctx: typer.Context,
    major: bool = typer.Option(False, "--major", help="Bump the major version"),
    minor: bool = typer.Option(False, "--minor", help="Bump the minor version"),
    patch: bool = typer.Option(False, "--patch", help="Bump the patch version"),
    version: str | None = typer.Option(
        None, "--version", help="Set an explicit version (e.g. 2.0.0-rc.1)", show_default=False
    ),
    pre: str | None = typer.Option(
        None, "--pre", help="Prerelease identifier (e.g. beta.1)", show_default=False
    ),
    build: str | None = typer.Option(
        None, "--build", help="Explicit build number", show_default=False
    ),
    build_strategy: str | None = typer.Option(
        None,
        "--build-strategy",
        help=f"Build number strategy ({', '.join(BUILD_STRATEGIES)})",
        show_default=False,
    ),
    commit: bool | None = typer.Option(
        None, "--commit/--no-commit", help="Commit touched files", show_default=False
    ),
    tag: bool | None = typer.Option(
        None, "--tag/--no-tag", help="Create an annotated tag", show_default=False
    ),
    push: bool | None = typer.Option(
        None, "--push/--no-push", help="Push the tag (implies --tag)", show_default=False
    ),
    changelog: bool = typer.Option(False, "--changelog", help="Prepend a changelog section"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without modifying"),
) -> None:
    """Bump the version and synchronize manifests."""
    cli = build_context(ctx)

    directive = _directive(cli, major=major, minor=minor, patch=patch, version=version)
    config = _with_strategy(cli, cli.config, build_strategy)

    do_push = config.git.push if push is None else push
    request = ReleaseRequest(
        directive=directive,
        build=build,
        prerelease=pre,
        commit=config.git.commit if commit is None else commit,
        tag=do_push or (config.git.tag if tag is None else tag),
        push=do_push,
        dry_run=dry_run,
    )

    repo = Repository(config.root)

    changelog_commits = None
    if changelog and not dry_run:
        # Surface version / build input faults before reading git history.
        unwrap_or_exit(prepare_release(config, request), cli)
        commit_range = unwrap_or_exit(collect_commits(repo), cli)
        if commit_range.empty:
            cli.console.warning("no commits since the last tag, changelog section will be empty")
        changelog_commits = list(commit_range.commits)

    if dry_run:
        cli.console.print("dry run: no files are written, nothing is committed", Style.DIM)

    match execute_release(config, request, vcs=repo, changelog_commits=changelog_commits):
        case Err(failure):
            print_outcomes(failure.outcomes, cli.console)
            exit_with_error(failure.error, cli)
        case Ok(plan):
            _report(cli, plan, dry_run=dry_run)


def _directive(
    cli: CLIContext,
    *,
    major: bool,
    minor: bool,
    patch: bool,
    version: str | None,
) -> BumpDirective:
    kinds: list[BumpKind] = []
    if major:
        kinds.append("major")
    if minor:
        kinds.append("minor")
    if patch:
        kinds.append("patch")

    chosen = len(kinds) + (1 if version is not None else 0)
    if chosen != 1:
        cli.console.error("choose exactly one of --major, --minor, --patch or --version")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    if version is not None:
        return BumpDirective(explicit=version)
    return BumpDirective(kind=kinds[0])


def _with_strategy(cli: CLIContext, config: ReleaseConfig, strategy: str | None) -> ReleaseConfig:
    if strategy is None:
        return config
    if strategy not in BUILD_STRATEGIES:
        cli.console.error(
            f"unknown build strategy: {strategy} (expected one of {', '.join(BUILD_STRATEGIES)})"
        )
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    return replace(config, build=BuildConfig(strategy=cast(BuildStrategy, strategy)))


def _report(cli: CLIContext, plan: ReleasePlan, *, dry_run: bool) -> None:
    cli.console.header(f"{plan.current} -> {plan.version} (build {plan.build})")
    print_outcomes(plan.outcomes, cli.console)

    if dry_run:
        return

    if plan.committed:
        cli.console.success(f"committed: {cli.config.git.commit_message.format(version=plan.version)}")
    if plan.tag is not None:
        cli.console.success(f"tagged: {plan.tag}")
    if plan.pushed:
        cli.console.success(f"pushed: {plan.tag}")
    cli.console.success(f"version {plan.version}")
