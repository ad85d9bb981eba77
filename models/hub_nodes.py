from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from models.codable import JSONModel, json_key

# ----------------------------
# Typed projections of GraphQL nodes shared by several queries
# ----------------------------


@dataclass
class PageInfo(JSONModel):
    has_next_page: bool = False
    end_cursor: Optional[str] = None


@dataclass
class TotalCount(JSONModel):
    total_count: int = 0


@dataclass
class FundingLinkNode(JSONModel):
    platform: str = ""
    url: str = ""


@dataclass
class RepositoryOwnerNode(JSONModel):
    login: str = ""
    typename: Optional[str] = json_key("__typename")
    email: Optional[str] = None
    is_verified: Optional[bool] = None
    website_url: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_organization(self) -> bool:
        return self.typename == "Organization"


@dataclass
class ReleaseAssetNode(JSONModel):
    name: str = ""
    id: Optional[str] = None
    size: int = 0
    content_type: Optional[str] = None
    download_url: str = ""
    download_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class ReleaseAssetConnection(JSONModel):
    nodes: List[ReleaseAssetNode] = field(default_factory=list)


@dataclass
class TagNode(JSONModel):
    name: str = ""


@dataclass
class GitActorNode(JSONModel):
    name: Optional[str] = None
    email: Optional[str] = None
    date: Optional[datetime] = None


@dataclass
class CommitSignatureNode(JSONModel):
    is_valid: bool = False
    signer: Optional[GitActorNode] = None


@dataclass
class TagCommitNode(JSONModel):
    authored_by_committer: Optional[bool] = None
    author: Optional[GitActorNode] = None
    signature: Optional[CommitSignatureNode] = None


@dataclass
class ReleaseNode(JSONModel):
    name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_prerelease: bool = False
    is_draft: bool = False
    description: Optional[str] = None
    release_assets: ReleaseAssetConnection = field(default_factory=ReleaseAssetConnection)
    tag: Optional[TagNode] = None
    tag_commit: Optional[TagCommitNode] = None

    @property
    def assets(self) -> List[ReleaseAssetNode]:
        return self.release_assets.nodes

    @property
    def tag_name(self) -> Optional[str]:
        return self.tag.name if self.tag else None


@dataclass
class ReleaseConnection(JSONModel):
    page_info: PageInfo = field(default_factory=PageInfo)
    nodes: List[ReleaseNode] = field(default_factory=list)


@dataclass
class TopicNameNode(JSONModel):
    name: str = ""


@dataclass
class RepositoryTopicNode(JSONModel):
    topic: TopicNameNode = field(default_factory=TopicNameNode)


@dataclass
class RepositoryTopicConnection(JSONModel):
    nodes: List[RepositoryTopicNode] = field(default_factory=list)

    @property
    def names(self) -> List[str]:
        return [node.topic.name for node in self.nodes]
