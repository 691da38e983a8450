"""Tests for git/repository.py."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from mrel.core.result import Err, Ok
from mrel.git.repository import LogEntry, Repository

SEP = "\x1f"


def make_completed_process(
    stdout: str = "",
    stderr: str = "",
    returncode: int = 0,
) -> subprocess.CompletedProcess[str]:
    """Create a mock CompletedProcess."""
    return subprocess.CompletedProcess(
        args=["git"],
        returncode=returncode,
        stdout=stdout,
        stderr=stderr,
    )


def _git_args(mock_run: MagicMock) -> list[str]:
    cmd = mock_run.call_args.args[0]
    # ["git", "-C", <path>, ...]
    return list(cmd[3:])


class TestRepository:
    @patch("subprocess.run")
    def test_commit_count(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="57\n")
        assert Repository(tmp_path).commit_count() == Ok(57)
        assert _git_args(mock_run) == ["rev-list", "--count", "HEAD"]

    @patch("subprocess.run")
    def test_commit_count_failure(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(
            stderr="fatal: bad revision 'HEAD'", returncode=128
        )
        result = Repository(tmp_path).commit_count()
        assert isinstance(result, Err)
        assert result.error.command == "rev-list"
        assert "bad revision" in result.error.message

    @patch("subprocess.run")
    def test_latest_tag(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="v1.2.0\n")
        assert Repository(tmp_path).latest_tag() == "v1.2.0"
        assert _git_args(mock_run) == ["describe", "--tags", "--abbrev=0"]

    @patch("subprocess.run")
    def test_latest_tag_none(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(
            stderr="fatal: No names found", returncode=128
        )
        assert Repository(tmp_path).latest_tag() is None

    @patch("subprocess.run")
    def test_tag_exists(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="abc\n")
        assert Repository(tmp_path).tag_exists("v1.0.0") is True

        mock_run.return_value = make_completed_process(returncode=1)
        assert Repository(tmp_path).tag_exists("v9.9.9") is False

    @patch("subprocess.run")
    def test_log_range_parses_feed(self, mock_run: MagicMock, tmp_path: Path) -> None:
        stdout = (
            f"{'a' * 40}{SEP}feat(auth): add login{SEP}Dana{SEP}2024-03-15\n"
            f"{'b' * 40}{SEP}fix: crash{SEP}Lee{SEP}2024-03-14\n"
        )
        mock_run.return_value = make_completed_process(stdout=stdout)

        result = Repository(tmp_path).log_range(since="v1.2.0")

        assert result == Ok(
            [
                LogEntry(hash="a" * 40, subject="feat(auth): add login", author="Dana", date="2024-03-15"),
                LogEntry(hash="b" * 40, subject="fix: crash", author="Lee", date="2024-03-14"),
            ]
        )
        args = _git_args(mock_run)
        assert args[:3] == ["log", "v1.2.0..HEAD", "--no-merges"]
        assert "--date=short" in args

    @patch("subprocess.run")
    def test_log_range_without_start(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="")
        result = Repository(tmp_path).log_range(since=None, until="v2.0.0")
        assert result == Ok([])
        assert _git_args(mock_run)[1] == "v2.0.0"

    @patch("subprocess.run")
    def test_log_range_skips_malformed_lines(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout=f"garbage\n\n{'c' * 40}{SEP}x{SEP}y{SEP}z\n")
        result = Repository(tmp_path).log_range(since=None)
        assert isinstance(result, Ok)
        assert [e.subject for e in result.value] == ["x"]

    @patch("subprocess.run")
    def test_log_range_error(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(
            stderr="fatal: bad revision 'nope..HEAD'\n", returncode=128
        )
        result = Repository(tmp_path).log_range(since="nope")
        assert isinstance(result, Err)
        assert result.error.command == "log"
        assert result.error.returncode == 128
        assert "bad revision" in result.error.message

    @patch("subprocess.run")
    def test_add_uses_relative_paths(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()
        result = Repository(tmp_path).add([tmp_path / "pubspec.yaml", tmp_path / "ios" / "Info.plist"])
        assert result == Ok(None)
        assert _git_args(mock_run) == ["add", "--", "pubspec.yaml", str(Path("ios") / "Info.plist")]

    @patch("subprocess.run")
    def test_add_nothing_is_noop(self, mock_run: MagicMock, tmp_path: Path) -> None:
        assert Repository(tmp_path).add([]) == Ok(None)
        mock_run.assert_not_called()

    @patch("subprocess.run")
    def test_tag_and_push(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()
        repo = Repository(tmp_path)

        assert repo.create_annotated_tag("v1.3.0", "Release v1.3.0") == Ok(None)
        assert _git_args(mock_run) == ["tag", "-a", "v1.3.0", "-m", "Release v1.3.0"]

        assert repo.push_tag("v1.3.0") == Ok(None)
        assert _git_args(mock_run) == ["push", "origin", "v1.3.0"]

    @patch("subprocess.run")
    def test_commit_failure(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(
            stdout="nothing to commit, working tree clean\n", returncode=1
        )
        result = Repository(tmp_path).commit("chore(release): bump version to 1.3.0")
        assert isinstance(result, Err)
        assert result.error.command == "commit"
        assert "nothing to commit" in result.error.message


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_real_repository_round_trip(tmp_path: Path) -> None:
    def git(*args: str) -> None:
        subprocess.run(["git", "-C", str(tmp_path), *args], check=True, capture_output=True)

    git("init", "-q")
    git("config", "user.email", "ci@example.com")
    git("config", "user.name", "CI")
    git("config", "commit.gpgsign", "false")
    git("config", "tag.gpgsign", "false")

    (tmp_path / "a.txt").write_text("a\n", encoding="utf-8")
    repo = Repository(tmp_path)
    assert repo.add([tmp_path / "a.txt"]) == Ok(None)
    assert repo.commit("feat: first") == Ok(None)
    assert repo.create_annotated_tag("v0.1.0", "Release v0.1.0") == Ok(None)

    (tmp_path / "b.txt").write_text("b\n", encoding="utf-8")
    repo.add([tmp_path / "b.txt"])
    repo.commit("fix(core): second")

    assert repo.latest_tag() == "v0.1.0"
    assert repo.tag_exists("v0.1.0") is True
    assert repo.commit_count() == Ok(2)
    result = repo.log_range(since="v0.1.0")
    assert isinstance(result, Ok)
    assert [e.subject for e in result.value] == ["fix(core): second"]
    assert result.value[0].author == "CI"
