from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from fairhub.graphql_request import CursoredResponse, GraphQLRequest
from models.codable import JSONModel
from models.hub_nodes import FundingLinkNode, PageInfo, ReleaseConnection, RepositoryOwnerNode

RELEASE_FIELDS = """
  name
  createdAt
  updatedAt
  isPrerelease
  isDraft
  description
  tag { name }
  releaseAssets(first: $assetCount) {
    nodes { id name size contentType downloadUrl downloadCount createdAt updatedAt }
  }
"""

CASK_REPOSITORY_FIELDS = """
  totalCount
  pageInfo { hasNextPage endCursor }
  nodes {
    id
    name
    nameWithOwner
    owner {
      __typename
      login
      url
      ... on Organization { isVerified email websiteUrl createdAt }
      ... on User { email websiteUrl createdAt }
    }
    description
    visibility
    isArchived
    url
    homepageUrl
    fundingLinks { platform url }
    releases(first: $releaseCount, orderBy: {field: CREATED_AT, direction: DESC}) {
      pageInfo { hasNextPage endCursor }
      nodes {""" + RELEASE_FIELDS + """      }
    }
  }
"""

TOPIC_APP_CASKS_QUERY = """
query TopicAppCasks($topicName: String!, $count: Int!, $releaseCount: Int!, $assetCount: Int!, $endCursor: String) {
  topic(name: $topicName) {
    name
    repositories(after: $endCursor, first: $count, isLocked: false, privacy: PUBLIC,
                 orderBy: {field: CREATED_AT, direction: DESC}) {""" + CASK_REPOSITORY_FIELDS + """    }
  }
}
"""

STARRED_APP_CASKS_QUERY = """
query StarredAppCasks($starrerName: String!, $count: Int!, $releaseCount: Int!, $assetCount: Int!, $endCursor: String) {
  user(login: $starrerName) {
    starredRepositories(after: $endCursor, first: $count, orderBy: {field: STARRED_AT, direction: DESC}) {""" \
    + CASK_REPOSITORY_FIELDS + """    }
  }
}
"""

FORKED_APP_CASKS_QUERY = """
query ForkedAppCasks($owner: String!, $name: String!, $count: Int!, $releaseCount: Int!, $assetCount: Int!,
                     $endCursor: String) {
  repository(owner: $owner, name: $name) {
    forks(after: $endCursor, first: $count, isLocked: false, privacy: PUBLIC,
          orderBy: {field: CREATED_AT, direction: DESC}) {""" + CASK_REPOSITORY_FIELDS + """    }
  }
}
"""

APP_CASK_RELEASES_QUERY = """
query AppCaskReleases($repositoryNodeID: ID!, $releaseCount: Int!, $assetCount: Int!, $endCursor: String) {
  node(id: $repositoryNodeID) {
    ... on Repository {
      releases(after: $endCursor, first: $releaseCount, orderBy: {field: CREATED_AT, direction: DESC}) {
        pageInfo { hasNextPage endCursor }
        nodes {""" + RELEASE_FIELDS + """        }
      }
    }
  }
}
"""


# ----------------------------
# Response types
# ----------------------------

@dataclass
class CaskRepositoryNode(JSONModel):
    name: str
    name_with_owner: str
    owner: RepositoryOwnerNode
    id: Optional[str] = None
    description: Optional[str] = None
    visibility: Optional[str] = None
    is_archived: bool = False
    url: str = ""
    homepage_url: Optional[str] = None
    funding_links: List[FundingLinkNode] = field(default_factory=list)
    releases: ReleaseConnection = field(default_factory=ReleaseConnection)

    @property
    def is_public(self) -> bool:
        return self.visibility == "PUBLIC"


@dataclass
class CaskRepositoryConnection(JSONModel):
    total_count: int = 0
    page_info: PageInfo = field(default_factory=PageInfo)
    nodes: List[CaskRepositoryNode] = field(default_factory=list)


class AppCasksResponse(CursoredResponse):
    """Common shape of the three repository sources of casks."""

    def connection(self) -> Optional[CaskRepositoryConnection]:
        raise NotImplementedError

    @property
    def repositories(self) -> List[CaskRepositoryNode]:
        conn = self.connection()
        return conn.nodes if conn else []

    def _page(self) -> Tuple[Optional[PageInfo], int]:
        conn = self.connection()
        return (conn.page_info, len(conn.nodes)) if conn else (None, 0)


@dataclass
class TopicNode(JSONModel):
    name: str = ""
    repositories: CaskRepositoryConnection = field(default_factory=CaskRepositoryConnection)


@dataclass
class TopicAppCasksResponse(JSONModel, AppCasksResponse):
    topic: Optional[TopicNode] = None

    def connection(self) -> Optional[CaskRepositoryConnection]:
        return self.topic.repositories if self.topic else None


@dataclass
class StarringUserNode(JSONModel):
    starred_repositories: CaskRepositoryConnection = field(default_factory=CaskRepositoryConnection)


@dataclass
class StarredAppCasksResponse(JSONModel, AppCasksResponse):
    user: Optional[StarringUserNode] = None

    def connection(self) -> Optional[CaskRepositoryConnection]:
        return self.user.starred_repositories if self.user else None


@dataclass
class ForkedRepositoryNode(JSONModel):
    forks: CaskRepositoryConnection = field(default_factory=CaskRepositoryConnection)


@dataclass
class ForkedAppCasksResponse(JSONModel, AppCasksResponse):
    repository: Optional[ForkedRepositoryNode] = None

    def connection(self) -> Optional[CaskRepositoryConnection]:
        return self.repository.forks if self.repository else None


@dataclass
class ReleasesHolderNode(JSONModel):
    releases: ReleaseConnection = field(default_factory=ReleaseConnection)


@dataclass
class AppCaskReleasesResponse(JSONModel, CursoredResponse):
    node: Optional[ReleasesHolderNode] = None

    @property
    def releases(self) -> ReleaseConnection:
        return self.node.releases if self.node else ReleaseConnection()

    def _page(self) -> Tuple[Optional[PageInfo], int]:
        if self.node is None:
            return None, 0
        return self.node.releases.page_info, len(self.node.releases.nodes)


# ----------------------------
# Requests
# ----------------------------

@dataclass
class TopicAppCasksQuery(GraphQLRequest):
    query = TOPIC_APP_CASKS_QUERY
    response_type = TopicAppCasksResponse

    topic_name: str = ""
    count: int = 10
    release_count: int = 10
    asset_count: int = 25
    end_cursor: Optional[str] = None

    def variables(self) -> Dict[str, Any]:
        return {
            "topicName": self.topic_name,
            "count": self.count,
            "releaseCount": self.release_count,
            "assetCount": self.asset_count,
            "endCursor": self.end_cursor,
        }


@dataclass
class StarredAppCasksQuery(GraphQLRequest):
    query = STARRED_APP_CASKS_QUERY
    response_type = StarredAppCasksResponse

    starrer_name: str = ""
    count: int = 10
    release_count: int = 10
    asset_count: int = 25
    end_cursor: Optional[str] = None

    def variables(self) -> Dict[str, Any]:
        return {
            "starrerName": self.starrer_name,
            "count": self.count,
            "releaseCount": self.release_count,
            "assetCount": self.asset_count,
            "endCursor": self.end_cursor,
        }


@dataclass
class ForkedAppCasksQuery(GraphQLRequest):
    query = FORKED_APP_CASKS_QUERY
    response_type = ForkedAppCasksResponse

    owner: str = ""
    name: str = ""
    count: int = 10
    release_count: int = 10
    asset_count: int = 25
    end_cursor: Optional[str] = None

    def variables(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "name": self.name,
            "count": self.count,
            "releaseCount": self.release_count,
            "assetCount": self.asset_count,
            "endCursor": self.end_cursor,
        }


@dataclass
class AppCaskReleasesQuery(GraphQLRequest):
    """Follows the release cursor of one repository past its first page."""
    query = APP_CASK_RELEASES_QUERY
    response_type = AppCaskReleasesResponse

    repository_node_id: str = ""
    release_count: int = 10
    asset_count: int = 25
    end_cursor: Optional[str] = None

    def variables(self) -> Dict[str, Any]:
        return {
            "repositoryNodeID": self.repository_node_id,
            "releaseCount": self.release_count,
            "assetCount": self.asset_count,
            "endCursor": self.end_cursor,
        }
