"""Structured semantic version record and increment rules."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from pipewarden.core.errors import VersionParseError
from pipewarden.core.models import ReleaseType

# v1.2.3, 1.2.3, v1.2.3-beta.1, 1.2.3+build.5
_VERSION_PATTERN = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)


@dataclass(frozen=True)
class SemanticVersion:
    """A semantic version. Always renders with a leading ``v``."""

    major: int = 0
    minor: int = 0
    patch: int = 0
    prerelease: Optional[str] = None

    def __str__(self) -> str:
        return self.format_tag()

    def format_tag(self) -> str:
        base = f"v{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            return f"{base}-{self.prerelease}"
        return base

    @property
    def core(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __lt__(self, other: "SemanticVersion") -> bool:
        if self.core != other.core:
            return self.core < other.core
        # A pre-release sorts before its release
        if self.prerelease and not other.prerelease:
            return True
        if not self.prerelease and other.prerelease:
            return False
        return (self.prerelease or "") < (other.prerelease or "")


ZERO_VERSION = SemanticVersion(0, 0, 0)


def parse_version(text: str) -> SemanticVersion:
    """Parse ``v1.2.3`` / ``1.2.3-rc.1`` into a SemanticVersion.

    Raises:
        VersionParseError: If the text is not a semantic version.
    """
    if text is None:
        raise VersionParseError("Version string is empty")
    match = _VERSION_PATTERN.match(text.strip())
    if not match:
        raise VersionParseError(f"Not a semantic version: {text!r}")
    return SemanticVersion(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        prerelease=match.group("prerelease"),
    )


def try_parse_version(text: Optional[str]) -> Optional[SemanticVersion]:
    """Parse a version, returning None instead of raising."""
    if not text:
        return None
    try:
        return parse_version(text)
    except VersionParseError:
        return None


def bump(version: SemanticVersion, release_type: ReleaseType) -> SemanticVersion:
    """Increment the component matching ``release_type``.

    Lower components are reset to zero and any prerelease suffix is
    dropped. ``ReleaseType.NONE`` returns the version unchanged.
    """
    if release_type == ReleaseType.MAJOR:
        return SemanticVersion(version.major + 1, 0, 0)
    if release_type == ReleaseType.MINOR:
        return SemanticVersion(version.major, version.minor + 1, 0)
    if release_type == ReleaseType.PATCH:
        return SemanticVersion(version.major, version.minor, version.patch + 1)
    return version

