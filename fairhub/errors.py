from __future__ import annotations

from typing import Iterable, List, Optional


class FairError(Exception):
    """Root of every error raised by the catalog tooling."""


# ----------------------------
# Hub configuration
# ----------------------------

class HubConfigurationError(FairError):
    pass


class BadHostOrgError(HubConfigurationError):
    def __init__(self, host_org: str) -> None:
        super().__init__(f"Invalid fairground host/org: {host_org}")
        self.host_org = host_org


class EmptyOrganizationError(HubConfigurationError):
    def __init__(self, url: str) -> None:
        super().__init__(f"Missing organization name in URL: \"{url}\"")
        self.url = url


class NotTopLevelURLError(HubConfigurationError):
    def __init__(self, url: str) -> None:
        super().__init__(f"Not a top-level URL: {url}")
        self.url = url


class BadURLSchemeError(HubConfigurationError):
    def __init__(self, url: str) -> None:
        super().__init__(f"Bad URL scheme: {url}")
        self.url = url


class EmptyAuthTokenError(HubConfigurationError):
    def __init__(self) -> None:
        super().__init__("No authorization token specified")


class InvalidPolicyPatternError(HubConfigurationError):
    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid policy pattern \"{pattern}\": {reason}")
        self.pattern = pattern


class InvalidFairsealKeyError(HubConfigurationError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid base64 fairseal key: {reason}")


# ----------------------------
# Policy
# ----------------------------

class PolicyError(FairError):
    pass


class InvalidValueError(PolicyError):
    def __init__(self, value: Optional[str]) -> None:
        super().__init__(f"The value \"{value}\" is invalid")
        self.value = value


class ValueNotAllowedError(PolicyError):
    def __init__(self, value: Optional[str]) -> None:
        super().__init__(f"The value \"{value}\" is not allowed")
        self.value = value


class ValueDeniedError(PolicyError):
    def __init__(self, value: Optional[str]) -> None:
        super().__init__(f"The value \"{value}\" is not permitted")
        self.value = value


class InvalidLicenseError(PolicyError):
    def __init__(self, license_id: Optional[str]) -> None:
        super().__init__(f"The license \"{license_id or 'none'}\" is not approved")
        self.license_id = license_id


class RepoInvalidError(PolicyError):
    def __init__(self, name_with_owner: str, reasons: str) -> None:
        super().__init__(f"The repository \"{name_with_owner}\" is invalid because: {reasons}")
        self.name_with_owner = name_with_owner
        self.reasons = reasons


# ----------------------------
# Endpoint
# ----------------------------

class EndpointError(FairError):
    pass


class HTTPStatusError(EndpointError):
    def __init__(self, status: int, url: str, body: str = "") -> None:
        super().__init__(f"HTTP {status} from {url}: {body[:300]}")
        self.status = status
        self.url = url


class RetryExhaustedError(EndpointError):
    def __init__(self, url: str, codes: Iterable[int]) -> None:
        self.codes: List[int] = list(codes)
        super().__init__(f"Gave up on {url} after {len(self.codes)} attempts with status codes: "
                         f"{', '.join(str(c) for c in self.codes)}")
        self.url = url


class ResponseDecodeError(EndpointError):
    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Unable to decode response from {url}: {reason}")
        self.url = url


class GraphQLRequestFailure(EndpointError):
    def __init__(self, messages: List[str], error_types: Optional[List[str]] = None) -> None:
        self.messages = messages
        self.error_types = error_types or []
        super().__init__(f"GraphQL request failed: {'; '.join(messages) or 'unknown error'}")

    @property
    def first_failure_reason(self) -> Optional[str]:
        return self.messages[0] if self.messages else None

    @property
    def is_rate_limit_error(self) -> bool:
        return "RATE_LIMITED" in self.error_types or any(
            "rate limit" in m.lower() for m in self.messages)


# ----------------------------
# Integrity
# ----------------------------

class IntegrityError(FairError):
    pass


class ArchiveMismatchError(IntegrityError):
    pass


class InvalidRootPathError(IntegrityError):
    def __init__(self, roots: Iterable[str]) -> None:
        self.roots = sorted(roots)
        super().__init__(f"Invalid root path in archive: {', '.join(self.roots)}")


class ContentMismatchError(IntegrityError):
    def __init__(self, path: str, insertions: int, removals: int, permitted: Optional[int]) -> None:
        self.path = path
        self.insertions = insertions
        self.removals = removals
        self.permitted = permitted
        super().__init__(
            f"Trusted and untrusted artifact content mismatch at {path}: {insertions} insertions and "
            f"{removals} removals and totalChanges {insertions + removals} beyond permitted threshold: "
            f"{permitted or 0}")


class MissingPropertyListError(IntegrityError):
    def __init__(self) -> None:
        super().__init__("Missing property list")


class SameArtifactError(IntegrityError):
    def __init__(self) -> None:
        super().__init__("Trusted and untrusted artifacts may not be the same")


class SandboxRequiredError(IntegrityError):
    def __init__(self) -> None:
        super().__init__("The app sandbox entitlement is required")


class MissingUsageDescriptionError(IntegrityError):
    def __init__(self, entitlement: str) -> None:
        self.entitlement = entitlement
        super().__init__(f"Entitlement {entitlement} requires a usage description in the FairUsage dictionary")


# ----------------------------
# Signing
# ----------------------------

class SignableError(FairError):
    pass


class NoEmbeddedSignatureError(SignableError):
    pass


class SignatureMismatchError(SignableError):
    pass
