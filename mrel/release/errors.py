"""Error payload shared by every release stage."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "invalid_version",
    "invalid_build_number",
    "invalid_input",
    "config_invalid",
    "manifest_absent",
    "manifest_unreadable",
    "manifest_malformed",
    "manifest_pattern_missing",
    "manifest_write_failed",
    "required_target_failed",
    "vcs_failed",
    "tag_exists",
    "changelog_failed",
]

ReleaseStage = Literal["parse", "config", "manifest", "vcs", "changelog"]

_STAGE_BY_KIND: dict[str, ReleaseStage] = {
    "invalid_version": "parse",
    "invalid_build_number": "parse",
    "invalid_input": "parse",
    "config_invalid": "config",
    "manifest_absent": "manifest",
    "manifest_unreadable": "manifest",
    "manifest_malformed": "manifest",
    "manifest_pattern_missing": "manifest",
    "manifest_write_failed": "manifest",
    "required_target_failed": "manifest",
    "vcs_failed": "vcs",
    "tag_exists": "vcs",
    "changelog_failed": "changelog",
}


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error.

    ``kind`` identifies the fault, ``stage`` (derived) names the pipeline step
    it belongs to, so the CLI can print ``[manifest] ...`` and pick an exit
    code without knowing every kind.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    @property
    def stage(self) -> ReleaseStage:
        return _STAGE_BY_KIND[self.kind]

    def pretty(self) -> str:
        text = f"[{self.stage}] {self.message}"
        if self.hint:
            return f"{text} (hint: {self.hint})"
        return text
