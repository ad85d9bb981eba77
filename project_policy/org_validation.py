from __future__ import annotations

import enum
from typing import List

from fairhub.errors import PolicyError
from fairhub.queries.repository_query import OrganizationNode
from project_policy.project_configuration import ProjectConfiguration


class AppNameFormError(PolicyError):
    pass


# hyphen-separated words of letters only
NAME_WORD_LENGTHS = [(3, 12), (3, 12), (3, 12), (3, 12)]


def validate_app_name_form(name: str) -> None:
    """
    Organization names double as app names: up to four hyphen-separated words,
    each 3 to 12 letters long.
    """
    words = name.split("-")
    if len(words) > len(NAME_WORD_LENGTHS):
        raise AppNameFormError(
            f"Invalid number of words in name (at most {len(NAME_WORD_LENGTHS)} separated by a hyphen): \"{name}\"")
    for word, (low, high) in zip(words, NAME_WORD_LENGTHS):
        if not low <= len(word) <= high:
            raise AppNameFormError(f"Bad word length in name: \"{name}\"")
        if not all(c.isalpha() for c in word):
            raise AppNameFormError(f"Invalid or unsafe character in name: \"{name}\"")


class AppOrgValidationFailure(enum.Flag):
    IS_PRIVATE = enum.auto()
    IS_ARCHIVED = enum.auto()
    NO_ISSUES = enum.auto()
    NO_DISCUSSIONS = enum.auto()
    INVALID_LICENSE = enum.auto()
    IS_DISABLED = enum.auto()
    NOT_VERIFIED = enum.auto()
    INVALID_EMAIL = enum.auto()
    INVALID_NAME = enum.auto()
    OWNER_NOT_ORGANIZATION = enum.auto()
    MISMATCHED_EMAIL = enum.auto()

    @property
    def descriptions(self) -> List[str]:
        return [desc for flag, desc in _DESCRIPTIONS if flag in self]

    @property
    def description(self) -> str:
        return ", ".join(self.descriptions)


NO_FAILURES = AppOrgValidationFailure(0)

_DESCRIPTIONS = [
    (AppOrgValidationFailure.IS_PRIVATE, "Repository must be public"),
    (AppOrgValidationFailure.IS_ARCHIVED, "Repository must not be archived"),
    (AppOrgValidationFailure.NO_ISSUES, "Repository must have issues enabled"),
    (AppOrgValidationFailure.NO_DISCUSSIONS, "Repository must have discussions enabled"),
    (AppOrgValidationFailure.INVALID_LICENSE, "Repository must use an approved license"),
    (AppOrgValidationFailure.IS_DISABLED, "Repository must not be disabled"),
    (AppOrgValidationFailure.NOT_VERIFIED, "Organization must be verified"),
    (AppOrgValidationFailure.INVALID_EMAIL,
     "The e-mail for the organization must be public and match the approved list"),
    (AppOrgValidationFailure.INVALID_NAME, "The name of the organization is not valid"),
    (AppOrgValidationFailure.OWNER_NOT_ORGANIZATION,
     "The owner of the repository must be an organization and not an individual user"),
    (AppOrgValidationFailure.MISMATCHED_EMAIL,
     "The e-mail for the commit must match the public e-mail of the organization"),
]


def validate_org(org: OrganizationNode, configuration: ProjectConfiguration,
                 origin_org: str) -> AppOrgValidationFailure:
    """
    Check an app organization and its repository against the project policy.
    The origin organization is exempt from the name, e-mail, issues and
    discussions rules.
    """
    repo = org.repository
    is_origin = org.login == origin_org
    invalid = NO_FAILURES

    if not is_origin:
        try:
            validate_app_name_form(org.login)
            configuration.validate_app_name(org.login)
        except PolicyError:
            invalid |= AppOrgValidationFailure.INVALID_NAME

        try:
            configuration.validate_email(org.email)
        except PolicyError:
            invalid |= AppOrgValidationFailure.INVALID_EMAIL

    if repo is None:
        return invalid | AppOrgValidationFailure.IS_PRIVATE

    if not repo.is_in_organization:
        invalid |= AppOrgValidationFailure.OWNER_NOT_ORGANIZATION
    if repo.is_archived:
        invalid |= AppOrgValidationFailure.IS_ARCHIVED
    if repo.is_disabled:
        invalid |= AppOrgValidationFailure.IS_DISABLED
    if repo.is_private or (repo.visibility and repo.visibility != "PUBLIC"):
        invalid |= AppOrgValidationFailure.IS_PRIVATE

    if not is_origin:
        if not repo.has_issues_enabled:
            invalid |= AppOrgValidationFailure.NO_ISSUES
        if repo.discussion_categories.total_count <= 0:
            invalid |= AppOrgValidationFailure.NO_DISCUSSIONS

    spdx_id = repo.license_info.spdx_id if repo.license_info else None
    if not configuration.is_license_approved(spdx_id):
        invalid |= AppOrgValidationFailure.INVALID_LICENSE

    return invalid
