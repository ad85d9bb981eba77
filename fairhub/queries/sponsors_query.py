from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from fairhub.graphql_request import CursoredResponse, GraphQLRequest
from models.codable import JSONModel
from models.hub_nodes import PageInfo

SPONSOR_OWNER_FIELDS = """
      owner {
        login
        url
        ... on Organization {
          name
          websiteUrl
          sponsorsListing {
            name
            isPublic
            activeGoal { title kind percentComplete targetValue description }
          }
        }
      }
"""

GET_SPONSORS_QUERY = """
query GetSponsors($owner: String!, $name: String!, $count: Int!, $endCursor: String) {
  repository(owner: $owner, name: $name) {""" + SPONSOR_OWNER_FIELDS + """
    forks(after: $endCursor, first: $count, isLocked: false, privacy: PUBLIC,
          orderBy: {field: PUSHED_AT, direction: DESC}) {
      totalCount
      pageInfo { hasNextPage endCursor }
      nodes {
        nameWithOwner""" + SPONSOR_OWNER_FIELDS + """      }
    }
  }
}
"""


@dataclass
class SponsorsGoalNode(JSONModel):
    title: Optional[str] = None
    kind: Optional[str] = None
    percent_complete: Optional[int] = None
    target_value: Optional[int] = None
    description: Optional[str] = None


@dataclass
class SponsorsListingNode(JSONModel):
    name: Optional[str] = None
    is_public: bool = False
    active_goal: Optional[SponsorsGoalNode] = None


@dataclass
class SponsorOwnerNode(JSONModel):
    login: str = ""
    url: Optional[str] = None
    name: Optional[str] = None
    website_url: Optional[str] = None
    sponsors_listing: Optional[SponsorsListingNode] = None


@dataclass
class SponsorForkNode(JSONModel):
    name_with_owner: str = ""
    owner: SponsorOwnerNode = field(default_factory=SponsorOwnerNode)


@dataclass
class SponsorForkConnection(JSONModel):
    total_count: int = 0
    page_info: PageInfo = field(default_factory=PageInfo)
    nodes: List[SponsorForkNode] = field(default_factory=list)


@dataclass
class SponsorsRepositoryNode(JSONModel):
    owner: SponsorOwnerNode = field(default_factory=SponsorOwnerNode)
    forks: SponsorForkConnection = field(default_factory=SponsorForkConnection)


@dataclass
class GetSponsorsResponse(JSONModel, CursoredResponse):
    repository: Optional[SponsorsRepositoryNode] = None

    def _page(self) -> Tuple[Optional[PageInfo], int]:
        if self.repository is None:
            return None, 0
        return self.repository.forks.page_info, len(self.repository.forks.nodes)


@dataclass
class GetSponsorsQuery(GraphQLRequest):
    """Sponsor listings of the base repository's owner and of every fork owner."""
    query = GET_SPONSORS_QUERY
    response_type = GetSponsorsResponse

    owner: str = ""
    name: str = ""
    count: int = 100
    end_cursor: Optional[str] = None

    def variables(self) -> Dict[str, Any]:
        return {"owner": self.owner, "name": self.name, "count": self.count, "endCursor": self.end_cursor}
