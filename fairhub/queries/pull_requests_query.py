from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from fairhub.graphql_request import CursoredResponse, GraphQLRequest
from models.codable import JSONModel
from models.hub_nodes import PageInfo

FIND_PULL_REQUESTS_QUERY = """
query FindPullRequests($owner: String!, $name: String!, $state: PullRequestState!, $count: Int!,
                       $endCursor: String) {
  repository(owner: $owner, name: $name) {
    pullRequests(states: [$state], orderBy: {field: UPDATED_AT, direction: DESC}, first: $count,
                 after: $endCursor) {
      totalCount
      pageInfo { hasNextPage endCursor }
      nodes {
        id
        number
        url
        state
        mergeable
        headRefName
        headRepository { nameWithOwner visibility }
      }
    }
  }
}
"""

ADD_COMMENT_MUTATION = """
mutation AddComment($subjectId: ID!, $body: String!) {
  addComment(input: {subjectId: $subjectId, body: $body}) {
    commentEdge {
      node { body url }
    }
  }
}
"""


# ----------------------------
# FindPullRequests
# ----------------------------

@dataclass
class HeadRepositoryNode(JSONModel):
    name_with_owner: str = ""
    visibility: Optional[str] = None


@dataclass
class PullRequestNode(JSONModel):
    id: str
    number: int = 0
    url: Optional[str] = None
    state: Optional[str] = None
    mergeable: Optional[str] = None
    head_ref_name: Optional[str] = None
    head_repository: Optional[HeadRepositoryNode] = None


@dataclass
class PullRequestConnection(JSONModel):
    total_count: int = 0
    page_info: PageInfo = field(default_factory=PageInfo)
    nodes: List[PullRequestNode] = field(default_factory=list)


@dataclass
class PullRequestsRepository(JSONModel):
    pull_requests: PullRequestConnection = field(default_factory=PullRequestConnection)


@dataclass
class FindPullRequestsResponse(JSONModel, CursoredResponse):
    repository: Optional[PullRequestsRepository] = None

    @property
    def pull_requests(self) -> List[PullRequestNode]:
        return self.repository.pull_requests.nodes if self.repository else []

    def _page(self) -> Tuple[Optional[PageInfo], int]:
        if self.repository is None:
            return None, 0
        conn = self.repository.pull_requests
        return conn.page_info, len(conn.nodes)


@dataclass
class FindPullRequestsQuery(GraphQLRequest):
    query = FIND_PULL_REQUESTS_QUERY
    response_type = FindPullRequestsResponse

    owner: str = ""
    name: str = ""
    state: str = "OPEN"
    count: int = 100
    end_cursor: Optional[str] = None

    def variables(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "name": self.name,
            "state": self.state,
            "count": self.count,
            "endCursor": self.end_cursor,
        }


# ----------------------------
# AddComment
# ----------------------------

@dataclass
class CommentBodyNode(JSONModel):
    body: str = ""
    url: Optional[str] = None


@dataclass
class CommentEdge(JSONModel):
    node: Optional[CommentBodyNode] = None


@dataclass
class AddCommentPayload(JSONModel):
    comment_edge: Optional[CommentEdge] = None


@dataclass
class AddCommentResponse(JSONModel, CursoredResponse):
    add_comment: Optional[AddCommentPayload] = None

    @property
    def comment_url(self) -> Optional[str]:
        edge = self.add_comment.comment_edge if self.add_comment else None
        return edge.node.url if edge and edge.node else None


@dataclass
class AddCommentQuery(GraphQLRequest):
    query = ADD_COMMENT_MUTATION
    response_type = AddCommentResponse

    subject_id: str = ""
    body: str = ""

    def variables(self) -> Dict[str, Any]:
        return {"subjectId": self.subject_id, "body": self.body}
