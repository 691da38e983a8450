"""Per-format manifest codecs.

Each codec is a pure text transform: ``read`` extracts the version (and build
number where the format has one), ``apply`` returns the manifest text with
those fields replaced. File access lives in :mod:`mrel.release.sync`.

Every ``apply`` writes exactly the syntax its own pattern matches, so running
it twice with the same inputs returns the same text.
"""

from __future__ import annotations

import json
import plistlib
import re
from dataclasses import dataclass
from typing import Protocol
from xml.parsers.expat import ExpatError

from mrel.core.result import Err, Ok, Result
from mrel.core.structured import StrDict, as_str_dict
from mrel.release.build_number import BuildNumber
from mrel.release.errors import ReleaseError
from mrel.release.model import ManifestKind
from mrel.release.semver import SemanticVersion


@dataclass(frozen=True, slots=True)
class ManifestFields:
    version: str | None
    build: str | None = None

    def build_number(self) -> BuildNumber | None:
        if self.build is None:
            return None
        result = BuildNumber.parse(self.build)
        if isinstance(result, Err):
            return None
        return result.value


class ManifestCodec(Protocol):
    kind: ManifestKind

    def read(self, text: str) -> Result[ManifestFields, ReleaseError]: ...

    def apply(
        self,
        text: str,
        *,
        version: SemanticVersion,
        build: BuildNumber | None,
    ) -> Result[str, ReleaseError]: ...


def _missing(kind: ManifestKind, field: str) -> Err[ReleaseError]:
    return Err(
        ReleaseError(
            kind="manifest_pattern_missing",
            message=f"{kind}: no {field} field found",
        )
    )


def _malformed(kind: ManifestKind, detail: str) -> Err[ReleaseError]:
    return Err(
        ReleaseError(
            kind="manifest_malformed",
            message=f"{kind}: malformed manifest ({detail})",
        )
    )


class PackageJsonCodec:
    """``"version": "1.2.3"`` at the top level of package.json (React Native).

    Nested ``"version"`` keys, such as the npm ``scripts.version`` lifecycle
    hook, are never read or rewritten.
    """

    kind = ManifestKind.PACKAGE_JSON

    _VERSION_RE = re.compile(r'("version"\s*:\s*)"([^"\\]*)"')

    def _load(self, text: str) -> Result[StrDict, ReleaseError]:
        try:
            data = as_str_dict(json.loads(text))
        except json.JSONDecodeError as e:
            return _malformed(self.kind, f"invalid JSON: {e}")
        if data is None:
            return _malformed(self.kind, "top level is not an object")
        return Ok(data)

    def _find(self, text: str) -> re.Match[str] | None:
        keys = _root_key_offsets(text)
        for m in self._VERSION_RE.finditer(text):
            if m.start() in keys:
                return m
        return None

    def read(self, text: str) -> Result[ManifestFields, ReleaseError]:
        match self._load(text):
            case Err() as err:
                return err
            case Ok(data):
                pass
        version = data.get("version")
        if not isinstance(version, str):
            return _missing(self.kind, '"version"')
        return Ok(ManifestFields(version=version))

    def apply(
        self,
        text: str,
        *,
        version: SemanticVersion,
        build: BuildNumber | None,
    ) -> Result[str, ReleaseError]:
        match self._load(text):
            case Err() as err:
                return err
            case Ok(_):
                pass
        m = self._find(text)
        if m is None:
            return _missing(self.kind, '"version"')
        return Ok(f'{text[: m.start()]}{m.group(1)}"{version}"{text[m.end() :]}')


def _root_key_offsets(text: str) -> set[int]:
    """Offsets of the opening quote of every string directly inside the root object."""
    offsets: set[int] = set()
    depth = 0
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
            if depth == 1:
                offsets.add(i)
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
    return offsets


class PubspecCodec:
    """``version: 1.2.3+45`` in pubspec.yaml (Flutter).

    The ``+N`` suffix is the build number. Without a new build number the
    existing suffix is kept.
    """

    kind = ManifestKind.PUBSPEC

    _VERSION_RE = re.compile(r"(?m)^(version:[ \t]*)([^\s#]+)")

    def read(self, text: str) -> Result[ManifestFields, ReleaseError]:
        m = self._VERSION_RE.search(text)
        if m is None:
            return _missing(self.kind, "version:")
        name, _, build = m.group(2).partition("+")
        return Ok(ManifestFields(version=name, build=build or None))

    def apply(
        self,
        text: str,
        *,
        version: SemanticVersion,
        build: BuildNumber | None,
    ) -> Result[str, ReleaseError]:
        m = self._VERSION_RE.search(text)
        if m is None:
            return _missing(self.kind, "version:")

        _, _, old_build = m.group(2).partition("+")
        suffix = str(build) if build is not None else old_build
        # pubspec uses "+" for the build number, so semver build metadata is dropped.
        value = str(version.with_build(None))
        if suffix:
            value = f"{value}+{suffix}"
        return Ok(text[: m.start(2)] + value + text[m.end(2) :])


class InfoPlistCodec:
    """``CFBundleShortVersionString`` / ``CFBundleVersion`` in Info.plist (iOS).

    The store only accepts ``MAJOR.MINOR.PATCH`` as the marketing version, so
    prerelease and build suffixes are not written there.
    """

    kind = ManifestKind.INFO_PLIST

    _VERSION_RE = re.compile(r"(<key>CFBundleShortVersionString</key>\s*<string>)([^<]*)(</string>)")
    _BUILD_RE = re.compile(r"(<key>CFBundleVersion</key>\s*<string>)([^<]*)(</string>)")

    def _check(self, text: str) -> Err[ReleaseError] | None:
        try:
            plistlib.loads(text.encode("utf-8"))
        except (ExpatError, ValueError) as e:
            return _malformed(self.kind, f"invalid property list: {e}")
        return None

    def read(self, text: str) -> Result[ManifestFields, ReleaseError]:
        bad = self._check(text)
        if bad is not None:
            return bad
        m = self._VERSION_RE.search(text)
        if m is None:
            return _missing(self.kind, "CFBundleShortVersionString")
        b = self._BUILD_RE.search(text)
        return Ok(
            ManifestFields(
                version=m.group(2).strip(),
                build=b.group(2).strip() if b is not None else None,
            )
        )

    def apply(
        self,
        text: str,
        *,
        version: SemanticVersion,
        build: BuildNumber | None,
    ) -> Result[str, ReleaseError]:
        bad = self._check(text)
        if bad is not None:
            return bad
        out, count = self._VERSION_RE.subn(
            lambda m: f"{m.group(1)}{version.core}{m.group(3)}",
            text,
            count=1,
        )
        if count == 0:
            return _missing(self.kind, "CFBundleShortVersionString")

        if build is not None:
            out = self._BUILD_RE.sub(
                lambda m: f"{m.group(1)}{build}{m.group(3)}",
                out,
                count=1,
            )
        return Ok(out)


class GradleCodec:
    """``versionName`` / ``versionCode`` in build.gradle or build.gradle.kts (Android).

    Both the Groovy form (``versionName "1.2.3"``, ``versionCode 45``) and the
    typed assignment form (``versionName = "1.2.3"``, ``versionCode = 45``) are
    matched; the spacing and quote style already in the file are kept. Every
    occurrence is rewritten (flavors included).
    """

    kind = ManifestKind.GRADLE

    _NAME_RE = re.compile(r"""(\bversionName\b[ \t]*(?:=[ \t]*)?)(["'])([^"'\n]*)\2""")
    _CODE_RE = re.compile(r"(\bversionCode\b[ \t]*(?:=[ \t]*)?)([0-9]+)")

    def read(self, text: str) -> Result[ManifestFields, ReleaseError]:
        m = self._NAME_RE.search(text)
        if m is None:
            return _missing(self.kind, "versionName")
        c = self._CODE_RE.search(text)
        return Ok(ManifestFields(version=m.group(3), build=c.group(2) if c is not None else None))

    def apply(
        self,
        text: str,
        *,
        version: SemanticVersion,
        build: BuildNumber | None,
    ) -> Result[str, ReleaseError]:
        out, count = self._NAME_RE.subn(
            lambda m: f"{m.group(1)}{m.group(2)}{version}{m.group(2)}",
            text,
        )
        if count == 0:
            return _missing(self.kind, "versionName")

        if build is not None:
            out = self._CODE_RE.sub(lambda m: f"{m.group(1)}{build.value}", out)
        return Ok(out)


_CODECS: dict[ManifestKind, ManifestCodec] = {
    ManifestKind.PACKAGE_JSON: PackageJsonCodec(),
    ManifestKind.PUBSPEC: PubspecCodec(),
    ManifestKind.INFO_PLIST: InfoPlistCodec(),
    ManifestKind.GRADLE: GradleCodec(),
}


def codec_for(kind: ManifestKind) -> ManifestCodec:
    return _CODECS[kind]
