from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from fairhub.graphql_request import CursoredResponse, GraphQLRequest
from models.codable import JSONModel
from models.hub_nodes import (
    FundingLinkNode,
    GitActorNode,
    PageInfo,
    ReleaseNode,
    RepositoryOwnerNode,
    RepositoryTopicConnection,
    TotalCount,
)

CATALOG_FORKS_QUERY = """
query CatalogForks($owner: String!, $name: String!, $count: Int!, $releaseCount: Int!, $assetCount: Int!,
                   $prCount: Int!, $commentCount: Int!, $endCursor: String) {
  repository(owner: $owner, name: $name) {
    forks(after: $endCursor, first: $count, isLocked: false, privacy: PUBLIC,
          orderBy: {field: PUSHED_AT, direction: DESC}) {
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
          ... on Organization { email isVerified websiteUrl createdAt }
        }
        description
        visibility
        forkCount
        stargazerCount
        hasIssuesEnabled
        isInOrganization
        homepageUrl
        discussionCategories { totalCount }
        issues { totalCount }
        stargazers { totalCount }
        watchers { totalCount }
        fundingLinks { platform url }
        repositoryTopics(first: 5) { nodes { topic { name } } }
        releases(first: $releaseCount, orderBy: {field: CREATED_AT, direction: DESC}) {
          pageInfo { hasNextPage endCursor }
          nodes {
            name
            createdAt
            updatedAt
            isPrerelease
            isDraft
            description
            tag { name }
            tagCommit {
              authoredByCommitter
              author { name email date }
              signature { isValid signer { name email } }
            }
            releaseAssets(first: $assetCount) {
              nodes { id name size contentType downloadUrl downloadCount createdAt updatedAt }
            }
          }
        }
        defaultBranchRef {
          associatedPullRequests(states: [CLOSED], last: $prCount) {
            nodes {
              author { login ... on User { name email } }
              baseRef { name repository { nameWithOwner } }
              comments(first: $commentCount) {
                totalCount
                nodes { author { login } bodyText }
              }
            }
          }
        }
      }
    }
  }
}
"""


@dataclass
class CommentAuthorNode(JSONModel):
    login: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass
class CommentNode(JSONModel):
    author: Optional[CommentAuthorNode] = None
    body_text: str = ""


@dataclass
class CommentConnection(JSONModel):
    total_count: int = 0
    nodes: List[CommentNode] = field(default_factory=list)


@dataclass
class BaseRepositoryNode(JSONModel):
    name_with_owner: str = ""


@dataclass
class BaseRefNode(JSONModel):
    name: Optional[str] = None
    repository: Optional[BaseRepositoryNode] = None


@dataclass
class AssociatedPullRequestNode(JSONModel):
    author: Optional[CommentAuthorNode] = None
    base_ref: Optional[BaseRefNode] = None
    comments: CommentConnection = field(default_factory=CommentConnection)


@dataclass
class AssociatedPullRequestConnection(JSONModel):
    nodes: List[AssociatedPullRequestNode] = field(default_factory=list)


@dataclass
class DefaultBranchRefNode(JSONModel):
    associated_pull_requests: AssociatedPullRequestConnection = field(
        default_factory=AssociatedPullRequestConnection)


@dataclass
class ForkReleaseConnection(JSONModel):
    page_info: PageInfo = field(default_factory=PageInfo)
    nodes: List[ReleaseNode] = field(default_factory=list)


@dataclass
class ForkNode(JSONModel):
    name: str
    name_with_owner: str
    owner: RepositoryOwnerNode
    id: Optional[str] = None
    description: Optional[str] = None
    visibility: Optional[str] = None
    fork_count: int = 0
    stargazer_count: int = 0
    has_issues_enabled: bool = False
    is_in_organization: bool = False
    homepage_url: Optional[str] = None
    discussion_categories: TotalCount = field(default_factory=TotalCount)
    issues: TotalCount = field(default_factory=TotalCount)
    stargazers: TotalCount = field(default_factory=TotalCount)
    watchers: TotalCount = field(default_factory=TotalCount)
    funding_links: List[FundingLinkNode] = field(default_factory=list)
    repository_topics: RepositoryTopicConnection = field(default_factory=RepositoryTopicConnection)
    releases: ForkReleaseConnection = field(default_factory=ForkReleaseConnection)
    default_branch_ref: Optional[DefaultBranchRefNode] = None

    @property
    def pull_requests(self) -> List[AssociatedPullRequestNode]:
        if self.default_branch_ref is None:
            return []
        return self.default_branch_ref.associated_pull_requests.nodes


@dataclass
class ForkConnection(JSONModel):
    total_count: int = 0
    page_info: PageInfo = field(default_factory=PageInfo)
    nodes: List[ForkNode] = field(default_factory=list)


@dataclass
class CatalogForksRepository(JSONModel):
    forks: ForkConnection = field(default_factory=ForkConnection)


@dataclass
class CatalogForksResponse(JSONModel, CursoredResponse):
    repository: Optional[CatalogForksRepository] = None

    @property
    def forks(self) -> List[ForkNode]:
        return self.repository.forks.nodes if self.repository else []

    def _page(self) -> Tuple[Optional[PageInfo], int]:
        if self.repository is None:
            return None, 0
        return self.repository.forks.page_info, len(self.repository.forks.nodes)


@dataclass
class CatalogForksQuery(GraphQLRequest):
    """
    Forks of the base repository, most recently pushed first, with their
    releases and the closed pull requests whose comments may carry fairseals.
    """
    query = CATALOG_FORKS_QUERY
    response_type = CatalogForksResponse

    owner: str = ""
    name: str = ""
    count: int = 10
    release_count: int = 10
    asset_count: int = 40
    pr_count: int = 10
    comment_count: int = 10
    end_cursor: Optional[str] = None

    def variables(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "name": self.name,
            "count": self.count,
            "releaseCount": self.release_count,
            "assetCount": self.asset_count,
            "prCount": self.pr_count,
            "commentCount": self.comment_count,
            "endCursor": self.end_cursor,
        }


def commit_author(release: ReleaseNode) -> Optional[GitActorNode]:
    return release.tag_commit.author if release.tag_commit else None
