from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from packaging.version import InvalidVersion, Version

_STRICT_VERSION = re.compile(r"^\d+\.\d+\.\d+$")


@dataclass(frozen=True, order=True)
class AppVersion:
    """
    A strict major.minor.patch release tag. Anything else (a "v" prefix,
    extra components, pre-release suffixes) is rejected; pre-release status
    comes from the release itself.
    """
    major: int
    minor: int
    patch: int
    prerelease: bool = False

    @classmethod
    def parse(cls, tag: Optional[str], prerelease: bool = False) -> Optional["AppVersion"]:
        if not tag or not _STRICT_VERSION.match(tag):
            return None
        try:
            parsed = Version(tag)
        except InvalidVersion:
            return None
        major, minor, patch = parsed.release
        return cls(major=major, minor=minor, patch=patch, prerelease=prerelease)

    @property
    def version_string(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def __str__(self) -> str:
        return self.version_string
