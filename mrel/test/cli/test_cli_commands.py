from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

import pytest
from typer.testing import CliRunner

from mrel import __version__
from mrel.cli.app import app
from mrel.core.errors import ErrorCode
from mrel.core.result import Err, Ok, Result
from mrel.git.repository import GitError, LogEntry

runner = CliRunner()

PUBSPEC = "name: app\nversion: 1.2.3+41\n"
PACKAGE_JSON = '{\n  "name": "app",\n  "version": "1.2.3"\n}\n'


@dataclass
class FakeRepository:
    entries: list[LogEntry] = field(default_factory=list)
    tags: set[str] = field(default_factory=set)
    calls: list[str] = field(default_factory=list)

    def latest_tag(self) -> str | None:
        return "v1.2.3"

    def log_range(self, *, since: str | None, until: str = "HEAD") -> Result[list[LogEntry], GitError]:
        self.calls.append(f"log {since}..{until}")
        return Ok(self.entries)

    def tag_exists(self, tag: str) -> bool:
        return tag in self.tags

    def commit_count(self, rev: str = "HEAD") -> Result[int, GitError]:
        self.calls.append(f"rev-list --count {rev}")
        return Ok(57)

    def add(self, paths: list[Path]) -> Result[None, GitError]:
        self.calls.append("add " + " ".join(p.name for p in paths))
        return Ok(None)

    def commit(self, message: str) -> Result[None, GitError]:
        self.calls.append(f"commit {message}")
        return Ok(None)

    def create_annotated_tag(self, tag: str, message: str) -> Result[None, GitError]:
        self.calls.append(f"tag {tag}")
        return Ok(None)

    def push_tag(self, tag: str, remote: str = "origin") -> Result[None, GitError]:
        self.calls.append(f"push {remote} {tag}")
        return Err(GitError(command="push", message="remote rejected"))


def _use_repo(monkeypatch: pytest.MonkeyPatch, repo: FakeRepository) -> None:
    import mrel.cli.commands.bump_cmd as bump_cmd
    import mrel.cli.commands.changelog_cmd as changelog_cmd

    monkeypatch.setattr(bump_cmd, "Repository", lambda _root: repo)
    monkeypatch.setattr(changelog_cmd, "Repository", lambda _root: repo)


def _project(tmp_path: Path) -> Path:
    (tmp_path / "pubspec.yaml").write_text(PUBSPEC, encoding="utf-8")
    (tmp_path / "package.json").write_text(PACKAGE_JSON, encoding="utf-8")
    return tmp_path


def _entries() -> list[LogEntry]:
    return [
        LogEntry("a" * 40, "fix!: drop legacy", "dana", "2024-03-15"),
        LogEntry("b" * 40, "feat(auth): add login", "lee", "2024-03-14"),
        LogEntry("c" * 40, "chore: deps", "dana", "2024-03-13"),
    ]


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_root_must_be_directory(tmp_path: Path) -> None:
    result = runner.invoke(app, ["--root", str(tmp_path / "missing"), "show"])
    assert result.exit_code == int(ErrorCode.USER_ERROR)


class TestBump:
    def test_minor_without_commit(self, tmp_path: Path) -> None:
        root = _project(tmp_path)

        result = runner.invoke(app, ["--root", str(root), "bump", "--minor", "--no-commit"])

        assert result.exit_code == 0, result.output
        assert "version: 1.3.0+42" in (root / "pubspec.yaml").read_text(encoding="utf-8")
        assert '"version": "1.3.0"' in (root / "package.json").read_text(encoding="utf-8")

    def test_explicit_version_and_build(self, tmp_path: Path) -> None:
        root = _project(tmp_path)

        result = runner.invoke(
            app,
            ["--root", str(root), "bump", "--version", "2.0.0-rc.1", "--build", "100", "--no-commit"],
        )

        assert result.exit_code == 0, result.output
        assert "version: 2.0.0-rc.1+100" in (root / "pubspec.yaml").read_text(encoding="utf-8")

    def test_invalid_version_touches_nothing(self, tmp_path: Path) -> None:
        root = _project(tmp_path)

        result = runner.invoke(app, ["--root", str(root), "bump", "--version", "1.x", "--no-commit"])

        assert result.exit_code == int(ErrorCode.USER_ERROR)
        assert "[parse]" in result.output
        assert (root / "pubspec.yaml").read_text(encoding="utf-8") == PUBSPEC

    def test_needs_exactly_one_directive(self, tmp_path: Path) -> None:
        root = _project(tmp_path)
        assert runner.invoke(app, ["--root", str(root), "bump"]).exit_code == int(
            ErrorCode.USER_ERROR
        )
        assert runner.invoke(app, ["--root", str(root), "bump", "--major", "--minor"]).exit_code == int(
            ErrorCode.USER_ERROR
        )

    def test_git_count_build_strategy(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        root = _project(tmp_path)
        repo = FakeRepository()
        _use_repo(monkeypatch, repo)

        result = runner.invoke(
            app,
            ["--root", str(root), "bump", "--patch", "--build-strategy", "git-count", "--no-commit"],
        )

        assert result.exit_code == 0, result.output
        assert "version: 1.2.4+57" in (root / "pubspec.yaml").read_text(encoding="utf-8")
        assert repo.calls == ["rev-list --count HEAD"]

    def test_unknown_build_strategy(self, tmp_path: Path) -> None:
        root = _project(tmp_path)
        result = runner.invoke(
            app, ["--root", str(root), "bump", "--patch", "--build-strategy", "random"]
        )
        assert result.exit_code == int(ErrorCode.USER_ERROR)

    def test_dry_run(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        root = _project(tmp_path)
        repo = FakeRepository()
        _use_repo(monkeypatch, repo)

        result = runner.invoke(app, ["--root", str(root), "bump", "--patch", "--tag", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert (root / "pubspec.yaml").read_text(encoding="utf-8") == PUBSPEC
        assert repo.calls == []

    def test_commit_and_tag(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        root = _project(tmp_path)
        repo = FakeRepository()
        _use_repo(monkeypatch, repo)

        result = runner.invoke(app, ["--root", str(root), "bump", "--patch", "--tag"])

        assert result.exit_code == 0, result.output
        assert repo.calls == [
            "add package.json pubspec.yaml",
            "commit chore(release): bump version to 1.2.4",
            "tag v1.2.4",
        ]

    def test_existing_tag(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        root = _project(tmp_path)
        repo = FakeRepository(tags={"v1.2.4"})
        _use_repo(monkeypatch, repo)

        result = runner.invoke(app, ["--root", str(root), "bump", "--patch", "--tag"])

        assert result.exit_code == int(ErrorCode.VCS_ERROR)
        assert "[vcs]" in result.output
        assert repo.calls == []

    def test_push_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        root = _project(tmp_path)
        repo = FakeRepository()
        _use_repo(monkeypatch, repo)

        result = runner.invoke(app, ["--root", str(root), "bump", "--patch", "--push"])

        assert result.exit_code == int(ErrorCode.VCS_ERROR)
        assert "tag v1.2.4" in repo.calls
        assert "push origin v1.2.4" in repo.calls

    def test_changelog_flag(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        root = _project(tmp_path)
        repo = FakeRepository(entries=_entries())
        _use_repo(monkeypatch, repo)

        result = runner.invoke(app, ["--root", str(root), "bump", "--minor", "--changelog"])

        assert result.exit_code == 0, result.output
        text = (root / "CHANGELOG.md").read_text(encoding="utf-8")
        assert text.startswith("# Changelog")
        assert f"## [1.3.0] - {date.today().isoformat()}" in text
        assert "add package.json pubspec.yaml CHANGELOG.md" in repo.calls

    def test_required_target_missing(self, tmp_path: Path) -> None:
        root = _project(tmp_path)
        (root / "mrel.toml").write_text(
            '[[targets]]\nid = "ios"\nkind = "info-plist"\npath = "ios/App/Info.plist"\nrequired = true\n',
            encoding="utf-8",
        )

        result = runner.invoke(app, ["--root", str(root), "bump", "--patch", "--no-commit"])

        assert result.exit_code == int(ErrorCode.MANIFEST_ERROR)
        assert "[manifest]" in result.output

    def test_invalid_config(self, tmp_path: Path) -> None:
        root = _project(tmp_path)
        (root / "mrel.toml").write_text("[build\n", encoding="utf-8")

        result = runner.invoke(app, ["--root", str(root), "bump", "--patch", "--no-commit"])

        assert result.exit_code == int(ErrorCode.CONFIG_ERROR)

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        root = _project(tmp_path)
        config = tmp_path / "release.toml"
        config.write_text('[build]\nstrategy = "date-build"\n', encoding="utf-8")

        result = runner.invoke(
            app, ["--root", str(root), "--config", str(config), "bump", "--patch", "--no-commit"]
        )

        assert result.exit_code == 0, result.output
        pubspec = (root / "pubspec.yaml").read_text(encoding="utf-8")
        assert re.search(r"^version: 1\.2\.4\+\d{8}01$", pubspec, re.MULTILINE)


class TestChangelog:
    def test_markdown_to_stdout(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        repo = FakeRepository(entries=_entries())
        _use_repo(monkeypatch, repo)

        result = runner.invoke(app, ["--root", str(tmp_path), "changelog"])

        assert result.exit_code == 0, result.output
        assert "## [Unreleased]" in result.stdout
        assert "### Breaking Changes" in result.stdout
        assert "### Features" in result.stdout
        assert "### Maintenance" not in result.stdout
        assert repo.calls == ["log v1.2.3..HEAD"]

    def test_include_all(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _use_repo(monkeypatch, FakeRepository(entries=_entries()))

        result = runner.invoke(app, ["--root", str(tmp_path), "changelog", "--include-all"])

        assert result.exit_code == 0, result.output
        assert "### Maintenance" in result.stdout

    def test_release_notes(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        repo = FakeRepository(entries=_entries())
        _use_repo(monkeypatch, repo)

        result = runner.invoke(
            app,
            ["--root", str(tmp_path), "changelog", "--format", "release-notes", "--since", "v1.0.0"],
        )

        assert result.exit_code == 0, result.output
        assert "### What's Changed" in result.stdout
        assert "- feat(auth): add login by @lee" in result.stdout
        assert "compare/v1.0.0...HEAD" in result.stdout
        assert repo.calls == ["log v1.0.0..HEAD"]

    def test_version_heading_and_file_output(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _use_repo(monkeypatch, FakeRepository(entries=_entries()))

        result = runner.invoke(
            app,
            ["--root", str(tmp_path), "changelog", "--version", "1.3.0", "--output", "CHANGELOG.md"],
        )

        assert result.exit_code == 0, result.output
        text = (tmp_path / "CHANGELOG.md").read_text(encoding="utf-8")
        assert "## [1.3.0] - " in text

    def test_invalid_version_heading(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _use_repo(monkeypatch, FakeRepository(entries=_entries()))
        result = runner.invoke(app, ["--root", str(tmp_path), "changelog", "--version", "next"])
        assert result.exit_code == int(ErrorCode.USER_ERROR)

    def test_empty_range_renders_header_only(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _use_repo(monkeypatch, FakeRepository())

        result = runner.invoke(app, ["--root", str(tmp_path), "changelog"])

        assert result.exit_code == 0, result.output
        assert "no commits" in result.output
        assert f"## [Unreleased] - {date.today().isoformat()}" in result.stdout
        assert "###" not in result.stdout

    def test_empty_range_still_writes_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _use_repo(monkeypatch, FakeRepository())

        result = runner.invoke(
            app,
            ["--root", str(tmp_path), "changelog", "--version", "1.3.0", "--output", "CHANGELOG.md"],
        )

        assert result.exit_code == 0, result.output
        text = (tmp_path / "CHANGELOG.md").read_text(encoding="utf-8")
        assert "## [1.3.0] - " in text
        assert "###" not in text


def test_show(tmp_path: Path) -> None:
    root = _project(tmp_path)

    result = runner.invoke(app, ["--root", str(root), "show"])

    assert result.exit_code == 0, result.output
    assert "1.2.3" in result.output
    assert "pubspec" in result.output
