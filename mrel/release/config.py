"""Typed release configuration.

The whole pipeline is driven by one immutable :class:`ReleaseConfig`. It is
loaded from ``mrel.toml`` at the project root (or ``--config``); command-line
flags are layered on top with :func:`dataclasses.replace`. Nothing is read
from environment variables.

Example ``mrel.toml``::

    [project]
    initial_version = "0.1.0"
    read_order = ["package-json", "pubspec"]

    [[targets]]
    id = "package-json"
    kind = "package-json"
    path = "package.json"
    required = true

    [[targets]]
    id = "ios"
    kind = "info-plist"
    path = "ios/Runner/Info.plist"

    [build]
    strategy = "datetime"

    [git]
    tag_prefix = "v"

    [changelog]
    repo_url = "https://github.com/acme/app"
    docs = true
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

from mrel.core.result import Err, Ok, Result
from mrel.core.structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_str,
    get_str_list,
    get_table,
    get_table_list,
)
from mrel.release.changelog import ChangelogOptions
from mrel.release.errors import ReleaseError
from mrel.release.model import (
    BUILD_STRATEGIES,
    BuildStrategy,
    ManifestKind,
    ManifestTarget,
)
from mrel.release.semver import SemanticVersion

__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_TARGETS",
    "BuildConfig",
    "ChangelogConfig",
    "GitConfig",
    "ProjectConfig",
    "ReleaseConfig",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "mrel.toml"
DEFAULT_COMMIT_MESSAGE = "chore(release): bump version to {version}"

DEFAULT_TARGETS: tuple[ManifestTarget, ...] = (
    ManifestTarget(id="package-json", path=Path("package.json"), kind=ManifestKind.PACKAGE_JSON),
    ManifestTarget(id="pubspec", path=Path("pubspec.yaml"), kind=ManifestKind.PUBSPEC),
    ManifestTarget(id="ios", path=Path("ios/App/Info.plist"), kind=ManifestKind.INFO_PLIST),
    ManifestTarget(id="android", path=Path("android/app/build.gradle"), kind=ManifestKind.GRADLE),
    ManifestTarget(
        id="android-kts", path=Path("android/app/build.gradle.kts"), kind=ManifestKind.GRADLE
    ),
)


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    root: Path = Path(".")
    initial_version: str = "0.0.0"
    # Target ids, first existing + parseable manifest provides the current version.
    read_order: tuple[str, ...] = tuple(t.id for t in DEFAULT_TARGETS)


@dataclass(frozen=True, slots=True)
class BuildConfig:
    strategy: BuildStrategy = "increment"


@dataclass(frozen=True, slots=True)
class GitConfig:
    commit: bool = True
    tag: bool = False
    push: bool = False
    tag_prefix: str = "v"
    commit_message: str = DEFAULT_COMMIT_MESSAGE


@dataclass(frozen=True, slots=True)
class ChangelogConfig:
    path: Path = Path("CHANGELOG.md")
    options: ChangelogOptions = field(default_factory=ChangelogOptions)


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    project: ProjectConfig = field(default_factory=ProjectConfig)
    targets: tuple[ManifestTarget, ...] = DEFAULT_TARGETS
    build: BuildConfig = field(default_factory=BuildConfig)
    git: GitConfig = field(default_factory=GitConfig)
    changelog: ChangelogConfig = field(default_factory=ChangelogConfig)

    @property
    def root(self) -> Path:
        return self.project.root

    def target(self, target_id: str) -> ManifestTarget | None:
        for t in self.targets:
            if t.id == target_id:
                return t
        return None

    def read_targets(self) -> tuple[ManifestTarget, ...]:
        out: list[ManifestTarget] = []
        for target_id in self.project.read_order:
            t = self.target(target_id)
            if t is not None:
                out.append(t)
        return tuple(out)

    @classmethod
    def from_dict(cls, data: StrDict, *, base_dir: Path) -> Result[ReleaseConfig, ReleaseError]:
        """Build a config from a parsed TOML document.

        Relative ``project.root`` is resolved against ``base_dir`` (the
        directory holding the config file).
        """
        project_t: StrDict = get_table(data, "project") or {}
        build_t: StrDict = get_table(data, "build") or {}
        git_t: StrDict = get_table(data, "git") or {}
        changelog_t: StrDict = get_table(data, "changelog") or {}

        targets: tuple[ManifestTarget, ...] = DEFAULT_TARGETS
        if "targets" in data:
            raw_targets = get_table_list(data, "targets")
            if raw_targets is None:
                return _invalid("targets must be an array of tables ([[targets]])")
            parsed: list[ManifestTarget] = []
            for idx, raw in enumerate(raw_targets):
                match _parse_target(raw, idx):
                    case Err() as err:
                        return err
                    case Ok(target):
                        parsed.append(target)
            ids = [t.id for t in parsed]
            dupes = sorted({i for i in ids if ids.count(i) > 1})
            if dupes:
                return _invalid(f"duplicate target ids: {', '.join(dupes)}")
            targets = tuple(parsed)

        read_order = tuple(t.id for t in targets)
        if "read_order" in project_t:
            order = get_str_list(project_t, "read_order")
            if order is None:
                return _invalid("project.read_order must be a list of target ids")
            known = {t.id for t in targets}
            unknown = [i for i in order if i not in known]
            if unknown:
                return _invalid(f"project.read_order references unknown targets: {', '.join(unknown)}")
            read_order = tuple(order)

        initial_version = get_str(project_t, "initial_version") or "0.0.0"
        if isinstance(SemanticVersion.parse(initial_version), Err):
            return _invalid(f"project.initial_version is not a semantic version: {initial_version}")

        root_str = get_str(project_t, "root")
        root = base_dir / root_str if root_str else base_dir

        strategy = get_str(build_t, "strategy") or "increment"
        if strategy not in BUILD_STRATEGIES:
            return _invalid(
                f"build.strategy must be one of {', '.join(BUILD_STRATEGIES)} (got {strategy})"
            )

        defaults = ChangelogOptions()
        options = ChangelogOptions(
            breaking=_flag(changelog_t, "breaking", defaults.breaking),
            feat=_flag(changelog_t, "feat", defaults.feat),
            fix=_flag(changelog_t, "fix", defaults.fix),
            docs=_flag(changelog_t, "docs", defaults.docs),
            maintenance=_flag(changelog_t, "maintenance", defaults.maintenance),
            repo_url=get_str(changelog_t, "repo_url"),
        )

        return Ok(
            cls(
                project=ProjectConfig(
                    root=root,
                    initial_version=initial_version,
                    read_order=read_order,
                ),
                targets=targets,
                build=BuildConfig(strategy=cast(BuildStrategy, strategy)),
                git=GitConfig(
                    commit=_flag(git_t, "commit", True),
                    tag=_flag(git_t, "tag", False),
                    push=_flag(git_t, "push", False),
                    tag_prefix=_tag_prefix(git_t),
                    commit_message=get_str(git_t, "commit_message") or DEFAULT_COMMIT_MESSAGE,
                ),
                changelog=ChangelogConfig(
                    path=Path(get_str(changelog_t, "path") or "CHANGELOG.md"),
                    options=options,
                ),
            )
        )


def _flag(table: StrDict, key: str, default: bool) -> bool:
    value = get_bool(table, key)
    return default if value is None else value


def _tag_prefix(table: StrDict) -> str:
    # An empty prefix is allowed (tags like "1.2.3"), so get_str is not used.
    value = table.get("tag_prefix")
    return value.strip() if isinstance(value, str) else "v"


def _invalid(message: str, path: Path | None = None) -> Err[ReleaseError]:
    return Err(
        ReleaseError(
            kind="config_invalid",
            message=message,
            hint=str(path) if path is not None else None,
        )
    )


def _parse_target(raw: StrDict, idx: int) -> Result[ManifestTarget, ReleaseError]:
    target_id = get_str(raw, "id")
    kind_str = get_str(raw, "kind")
    path_str = get_str(raw, "path")
    if target_id is None or kind_str is None or path_str is None:
        return _invalid(f"targets[{idx}] needs id, kind and path")

    try:
        kind = ManifestKind(kind_str)
    except ValueError:
        known = ", ".join(k.value for k in ManifestKind)
        return _invalid(f"targets[{idx}] has unknown kind {kind_str!r} (expected one of {known})")

    return Ok(
        ManifestTarget(
            id=target_id,
            path=Path(path_str),
            kind=kind,
            required=_flag(raw, "required", False),
            enabled=_flag(raw, "enabled", True),
        )
    )


def _parse_toml(path: Path) -> Result[StrDict, ReleaseError]:
    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return _invalid(f"config file not found: {path}", path)
    except PermissionError:
        return _invalid(f"permission denied reading: {path}", path)
    except tomllib.TOMLDecodeError as e:
        return _invalid(f"invalid TOML syntax: {e}", path)
    except (OSError, UnicodeDecodeError) as e:
        return _invalid(f"error reading config: {e}", path)

    data = as_str_dict(data_obj)
    if data is None:
        return _invalid("config root must be a TOML table", path)
    return Ok(data)


def load_config(path: Path) -> Result[ReleaseConfig, ReleaseError]:
    """Load ``mrel.toml``.

    Returns:
        Ok(ReleaseConfig) on success, Err(ReleaseError) with kind
        ``config_invalid`` on any read, syntax or structure problem.
    """
    match _parse_toml(path):
        case Err() as err:
            return err
        case Ok(data):
            return ReleaseConfig.from_dict(data, base_dir=path.parent)


def load_config_or_default(root: Path, path: Path | None = None) -> Result[ReleaseConfig, ReleaseError]:
    """Load an explicit config, ``<root>/mrel.toml`` if present, else defaults.

    An explicit ``path`` that does not exist is an error; a missing default
    file is not.
    """
    if path is not None:
        return load_config(path)

    candidate = root / CONFIG_FILENAME
    if candidate.is_file():
        return load_config(candidate)
    return Ok(ReleaseConfig(project=ProjectConfig(root=root)))
