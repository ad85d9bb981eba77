from __future__ import annotations

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional, Pattern, Tuple

from configuration import Configuration
from fairhub.errors import (
    InvalidLicenseError,
    InvalidPolicyPatternError,
    InvalidValueError,
    ValueDeniedError,
    ValueNotAllowedError,
)


def _compile(patterns: Iterable[str]) -> Tuple[Pattern, ...]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern, re.IGNORECASE))
        except re.error as e:
            raise InvalidPolicyPatternError(pattern, str(e)) from e
    return tuple(compiled)


@dataclass(frozen=True)
class ProjectConfiguration:
    """
    Allow/deny rules for app names and contributor e-mail addresses plus the
    set of approved licenses. Patterns are case-insensitive and match anywhere
    in the value. Empty lists impose no constraint.
    """
    allow_name: Tuple[Pattern, ...] = ()
    deny_name: Tuple[Pattern, ...] = ()
    allow_from: Tuple[Pattern, ...] = ()
    deny_from: Tuple[Pattern, ...] = ()
    allow_license: FrozenSet[str] = frozenset()

    @classmethod
    def from_patterns(
        cls,
        allow_name: Iterable[str] = (),
        deny_name: Iterable[str] = (),
        allow_from: Iterable[str] = (),
        deny_from: Iterable[str] = (),
        allow_license: Iterable[str] = (),
    ) -> "ProjectConfiguration":
        return cls(
            allow_name=_compile(allow_name),
            deny_name=_compile(deny_name),
            allow_from=_compile(allow_from),
            deny_from=_compile(deny_from),
            allow_license=frozenset(allow_license),
        )

    @classmethod
    def from_configuration(cls, config: Configuration) -> "ProjectConfiguration":
        return cls.from_patterns(
            allow_name=config.allow_name,
            deny_name=config.deny_name,
            allow_from=config.allow_from,
            deny_from=config.deny_from,
            allow_license=config.allow_license,
        )

    def validate_app_name(self, name: Optional[str]) -> None:
        self._permitted(name, self.allow_name, self.deny_name)

    def validate_email(self, email: Optional[str]) -> None:
        self._permitted(email, self.allow_from, self.deny_from)

    def is_license_approved(self, spdx_id: Optional[str]) -> bool:
        if not self.allow_license:
            return True
        return (spdx_id or "none") in self.allow_license

    def validate_license(self, spdx_id: Optional[str]) -> None:
        if not self.is_license_approved(spdx_id):
            raise InvalidLicenseError(spdx_id)

    @staticmethod
    def _permitted(value: Optional[str], allow: Tuple[Pattern, ...], deny: Tuple[Pattern, ...]) -> None:
        if value is None:
            raise InvalidValueError(value)

        # with an allow list, at least one pattern must match
        if allow and not any(pattern.search(value) for pattern in allow):
            raise ValueNotAllowedError(value)

        # with a deny list, no pattern may match
        if deny and any(pattern.search(value) for pattern in deny):
            raise ValueDeniedError(value)
