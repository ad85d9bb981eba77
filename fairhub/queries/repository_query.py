from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from fairhub.graphql_request import CursoredResponse, GraphQLRequest
from models.codable import JSONModel
from models.hub_nodes import TotalCount

REPOSITORY_QUERY = """
query Repository($owner: String!, $name: String!) {
  organization(login: $owner) {
    id
    name
    login
    email
    isVerified
    websiteUrl
    url
    createdAt
    repository(name: $name) {
      nameWithOwner
      visibility
      createdAt
      updatedAt
      homepageUrl
      isFork
      isEmpty
      isLocked
      isMirror
      isPrivate
      isArchived
      isDisabled
      forkCount
      stargazerCount
      isInOrganization
      hasIssuesEnabled
      watchers { totalCount }
      discussionCategories { totalCount }
      issues { totalCount }
      licenseInfo { spdxId }
    }
  }
}
"""


@dataclass
class LicenseInfoNode(JSONModel):
    spdx_id: Optional[str] = None


@dataclass
class OrganizationRepositoryNode(JSONModel):
    name_with_owner: str = ""
    visibility: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    homepage_url: Optional[str] = None
    is_fork: bool = False
    is_empty: bool = False
    is_locked: bool = False
    is_mirror: bool = False
    is_private: bool = False
    is_archived: bool = False
    is_disabled: bool = False
    fork_count: int = 0
    stargazer_count: int = 0
    is_in_organization: bool = False
    has_issues_enabled: bool = False
    watchers: TotalCount = field(default_factory=TotalCount)
    discussion_categories: TotalCount = field(default_factory=TotalCount)
    issues: TotalCount = field(default_factory=TotalCount)
    license_info: Optional[LicenseInfoNode] = None


@dataclass
class OrganizationNode(JSONModel):
    login: str
    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    is_verified: bool = False
    website_url: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[datetime] = None
    repository: Optional[OrganizationRepositoryNode] = None


@dataclass
class RepositoryResponse(JSONModel, CursoredResponse):
    organization: Optional[OrganizationNode] = None


@dataclass
class RepositoryQuery(GraphQLRequest):
    """An organization and one of its repositories, for policy validation."""
    query = REPOSITORY_QUERY
    response_type = RepositoryResponse

    owner: str = ""
    name: str = ""

    def variables(self) -> Dict[str, Any]:
        return {"owner": self.owner, "name": self.name}
