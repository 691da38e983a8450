from __future__ import annotations

import re
from dataclasses import dataclass, replace

from mrel.core.result import Err, Ok, Result
from mrel.release.errors import ReleaseError
from mrel.release.model import BumpKind


_NUM = r"0|[1-9][0-9]*"
_IDENT = r"[0-9A-Za-z-]+"
_SEMVER_RE = re.compile(
    rf"^(?P<major>{_NUM})\.(?P<minor>{_NUM})\.(?P<patch>{_NUM})"
    rf"(?:-(?P<pre>{_IDENT}(?:\.{_IDENT})*))?"
    r"(?:\+(?P<build>.+))?$"
)
_IDENT_RE = re.compile(rf"^{_IDENT}$")


def _compare_identifiers(a: str, b: str) -> int:
    a_num = a.isdigit()
    b_num = b.isdigit()
    if a_num and b_num:
        ai, bi = int(a), int(b)
        return (ai > bi) - (ai < bi)
    if a_num:
        return -1
    if b_num:
        return 1
    return (a > b) - (a < b)


def _compare_prerelease(a: tuple[str, ...], b: tuple[str, ...]) -> int:
    # A release (no identifiers) outranks any prerelease of the same core.
    if not a and not b:
        return 0
    if not a:
        return 1
    if not b:
        return -1

    for x, y in zip(a, b):
        c = _compare_identifiers(x, y)
        if c:
            return c
    return (len(a) > len(b)) - (len(a) < len(b))


@dataclass(frozen=True, slots=True, eq=True)
class SemanticVersion:
    """Immutable ``MAJOR.MINOR.PATCH[-prerelease][+build]`` value.

    Ordering follows semver precedence and ignores ``build_metadata``;
    ``==`` is structural, use :meth:`precedence_equal` to compare precedence.
    """

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build_metadata: str | None = None

    @classmethod
    def parse(cls, text: str) -> Result[SemanticVersion, ReleaseError]:
        m = _SEMVER_RE.match(text.strip())
        if m is None:
            return Err(
                ReleaseError(
                    kind="invalid_version",
                    message=f"invalid version: {text!r}",
                    hint="Expected MAJOR.MINOR.PATCH[-prerelease][+build], e.g. 1.4.0-rc.1",
                )
            )

        pre = m.group("pre")
        return Ok(
            cls(
                major=int(m.group("major")),
                minor=int(m.group("minor")),
                patch=int(m.group("patch")),
                prerelease=tuple(pre.split(".")) if pre else (),
                build_metadata=m.group("build"),
            )
        )

    @classmethod
    def from_tag(cls, tag: str, *, prefix: str = "v") -> Result[SemanticVersion, ReleaseError]:
        text = tag[len(prefix) :] if prefix and tag.startswith(prefix) else tag
        return cls.parse(text)

    @property
    def core(self) -> str:
        """``MAJOR.MINOR.PATCH`` without suffixes (store marketing version)."""
        return f"{self.major}.{self.minor}.{self.patch}"

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    def compare(self, other: SemanticVersion) -> int:
        """Return -1, 0 or 1 by semver precedence."""
        left = (self.major, self.minor, self.patch)
        right = (other.major, other.minor, other.patch)
        if left != right:
            return -1 if left < right else 1
        return _compare_prerelease(self.prerelease, other.prerelease)

    def precedence_equal(self, other: SemanticVersion) -> bool:
        return self.compare(other) == 0

    def __lt__(self, other: SemanticVersion) -> bool:
        return self.compare(other) < 0

    def __le__(self, other: SemanticVersion) -> bool:
        return self.compare(other) <= 0

    def __gt__(self, other: SemanticVersion) -> bool:
        return self.compare(other) > 0

    def __ge__(self, other: SemanticVersion) -> bool:
        return self.compare(other) >= 0

    def bump_major(self) -> SemanticVersion:
        return SemanticVersion(self.major + 1, 0, 0)

    def bump_minor(self) -> SemanticVersion:
        return SemanticVersion(self.major, self.minor + 1, 0)

    def bump_patch(self) -> SemanticVersion:
        return SemanticVersion(self.major, self.minor, self.patch + 1)

    def bump(self, kind: BumpKind) -> SemanticVersion:
        match kind:
            case "major":
                return self.bump_major()
            case "minor":
                return self.bump_minor()
            case "patch":
                return self.bump_patch()
            case _:
                raise AssertionError(f"unexpected bump kind: {kind}")

    def with_prerelease(self, prerelease: str | None) -> Result[SemanticVersion, ReleaseError]:
        """Replace the prerelease segment (``None`` clears it)."""
        if prerelease is None or not prerelease.strip():
            return Ok(replace(self, prerelease=()))

        idents = tuple(prerelease.strip().split("."))
        if not all(_IDENT_RE.match(i) for i in idents):
            return Err(
                ReleaseError(
                    kind="invalid_version",
                    message=f"invalid prerelease identifier: {prerelease!r}",
                    hint="Use dot-separated [0-9A-Za-z-] identifiers, e.g. beta.1",
                )
            )
        return Ok(replace(self, prerelease=idents))

    def with_build(self, build_metadata: str | None) -> SemanticVersion:
        return replace(self, build_metadata=build_metadata or None)

    def to_tag(self, prefix: str = "v") -> str:
        return f"{prefix}{self}"

    def __str__(self) -> str:
        text = self.core
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build_metadata:
            text += "+" + self.build_metadata
        return text
