# ----------------------------
# Hub service: the fairground's GraphQL API
# ----------------------------
from __future__ import annotations

from typing import AsyncIterator, List, Optional, Tuple
from urllib.parse import urlparse

from configuration import Configuration
from fairhub.endpoint_service import EndpointService
from fairhub.errors import (
    BadHostOrgError,
    BadURLSchemeError,
    EmptyAuthTokenError,
    EmptyOrganizationError,
    NotTopLevelURLError,
    RepoInvalidError,
)
from fairhub.queries.app_casks_query import (
    AppCaskReleasesQuery,
    ForkedAppCasksQuery,
    StarredAppCasksQuery,
    TopicAppCasksQuery,
)
from fairhub.queries.catalog_forks_query import CatalogForksQuery
from fairhub.queries.pull_requests_query import AddCommentQuery, FindPullRequestsQuery, PullRequestNode
from fairhub.queries.repository_query import OrganizationNode, RepositoryQuery
from fairhub.queries.sponsors_query import GetSponsorsQuery, SponsorOwnerNode
from fairhub.token_pool import TokenPool
from models.catalog import AppFundingGoal, AppFundingSource
from models.seal import FairSeal, pretty_json
from project_policy.org_validation import validate_org
from project_policy.project_configuration import ProjectConfiguration
from loggers.hub_logger import hub_logger as logger


def parse_host_org(host_org: str) -> Tuple[str, str]:
    """
    Split a fairground such as "github.com/appfair" into the API base URL
    ("https://api.github.com/") and the organization name ("appfair").
    """
    if not host_org or any(c.isspace() for c in host_org):
        raise BadHostOrgError(host_org)

    url = "https://api." + host_org.rstrip("/")
    parsed = urlparse(url)
    if parsed.scheme != "https":
        raise BadURLSchemeError(url)
    if not parsed.netloc or parsed.query or parsed.fragment:
        raise BadHostOrgError(host_org)

    parts = [part for part in parsed.path.split("/") if part]
    if not parts:
        raise EmptyOrganizationError(url)
    if len(parts) > 1:
        raise NotTopLevelURLError(url)

    return f"https://{parsed.netloc}/", parts[0]


class FairHub:
    def __init__(self, configuration: Configuration, service: Optional[EndpointService] = None) -> None:
        self.configuration = configuration
        self.base_url, self.org = parse_host_org(configuration.fair_hub)
        self.graphql_url = self.base_url + "graphql"

        if not configuration.hub_tokens:
            raise EmptyAuthTokenError()

        self.service = service or EndpointService(
            TokenPool(configuration.hub_tokens),
            graphql_url=self.graphql_url,
            max_attempts=configuration.max_attempts,
            interleave_delay=configuration.interleave_delay,
            timeout=configuration.request_timeout,
        )

    # ----------------------------
    # Streams
    # ----------------------------

    def fork_stream(self, base_repository: Optional[str] = None) -> AsyncIterator:
        c = self.configuration
        return self.service.cursored_stream(CatalogForksQuery(
            owner=self.org,
            name=base_repository or c.base_repository,
            count=c.fork_count,
            release_count=c.release_count,
            asset_count=c.asset_count,
            pr_count=c.pr_count,
            comment_count=c.comment_count,
        ))

    def starred_cask_stream(self, starrer_name: str) -> AsyncIterator:
        c = self.configuration
        return self.service.cursored_stream(StarredAppCasksQuery(
            starrer_name=starrer_name, count=c.fork_count, release_count=c.release_count))

    def forked_cask_stream(self, owner: str, name: str) -> AsyncIterator:
        c = self.configuration
        return self.service.cursored_stream(ForkedAppCasksQuery(
            owner=owner, name=name, count=c.fork_count, release_count=c.release_count))

    def topic_cask_stream(self, topic_name: str) -> AsyncIterator:
        c = self.configuration
        return self.service.cursored_stream(TopicAppCasksQuery(
            topic_name=topic_name, count=c.fork_count, release_count=c.release_count))

    def cask_release_stream(self, repository_node_id: str, end_cursor: Optional[str]) -> AsyncIterator:
        return self.service.cursored_stream(AppCaskReleasesQuery(
            repository_node_id=repository_node_id,
            release_count=self.configuration.release_count,
            end_cursor=end_cursor,
        ))

    # ----------------------------
    # Funding
    # ----------------------------

    async def build_funding_sources(self, base_repository: Optional[str] = None) -> List[AppFundingSource]:
        """
        Sponsor listings of the base repository's owner (always first) and of each fork's owner.
        """
        sources: List[AppFundingSource] = []
        request = GetSponsorsQuery(owner=self.org, name=base_repository or self.configuration.base_repository)
        async for batch in self.service.cursored_stream(request):
            repository = batch.infer().repository
            if repository is None:
                break
            if not sources:
                root = _funding_source(repository.owner)
                if root is not None:
                    sources.append(root)
            for fork in repository.forks.nodes:
                source = _funding_source(fork.owner)
                if source is not None:
                    sources.append(source)
        return sources

    # ----------------------------
    # Organizations
    # ----------------------------

    async def fetch_organization(self, owner: str, name: str) -> Optional[OrganizationNode]:
        response = await self.service.request(RepositoryQuery(owner=owner, name=name))
        return response.infer().organization

    async def validate_repository(self, owner: str, name: str,
                                  project: ProjectConfiguration) -> OrganizationNode:
        """
        Look up an app organization's repository and check it against the
        policy, raising RepoInvalidError with every failed rule.
        """
        name_with_owner = f"{owner}/{name}"
        org = await self.fetch_organization(owner, name)
        if org is None:
            raise RepoInvalidError(name_with_owner, "The owner of the repository must be an organization "
                                                    "and not an individual user")
        failures = validate_org(org, project, self.org)
        if failures:
            logger.error(f"{name_with_owner} failed validation: {failures.description}")
            raise RepoInvalidError(name_with_owner, failures.description)
        logger.info(f"{name_with_owner} passed validation")
        return org

    # ----------------------------
    # Fairseals
    # ----------------------------

    async def find_pull_request(self, head_name_with_owner: str, base_repository: str,
                                state: str = "OPEN") -> Optional[PullRequestNode]:
        def match(index, resp, batch) -> Optional[PullRequestNode]:
            for pr in batch.infer().pull_requests:
                head = pr.head_repository
                if pr.state == state and head is not None and head.name_with_owner == head_name_with_owner:
                    return pr
            return None

        request = FindPullRequestsQuery(owner=self.org, name=base_repository, state=state)
        return await self.service.request_batches(request, match)

    async def post_fairseal(self, seal: FairSeal, base_repository: Optional[str] = None) -> Optional[str]:
        """
        Post the seal as a fenced JSON comment on the open pull request from the
        app organization's fork, signing it first when a key is configured.
        Returns the comment URL, or None when there is nowhere to post it.
        """
        base_repository = base_repository or self.configuration.base_repository
        app_org = seal.app_org
        if app_org is None:
            logger.warning("No app organization for fairseal without assets")
            return None

        name_with_owner = f"{app_org}/{base_repository}"
        pr = await self.find_pull_request(name_with_owner, base_repository)
        if pr is None:
            logger.warning(f"No open pull request found for {name_with_owner}")
            return None

        if self.configuration.fairseal_key:
            seal.embed_signature(self.configuration.fairseal_key)

        comment = "```\n" + pretty_json(seal.to_json()) + "\n```"
        response = await self.service.request(AddCommentQuery(subject_id=pr.id, body=comment))
        url = response.infer().comment_url
        logger.info(f"Posted fairseal for {seal.assets[0].url} to {url}")
        return url


def _funding_source(owner: SponsorOwnerNode) -> Optional[AppFundingSource]:
    listing = owner.sponsors_listing
    if listing is None or not owner.url:
        return None
    goals = []
    goal = listing.active_goal
    if goal is not None and goal.kind:
        goals.append(AppFundingGoal(kind=goal.kind, title=goal.title, description=goal.description,
                                    percent_complete=goal.percent_complete, target_value=goal.target_value))
    return AppFundingSource(platform="GITHUB", url=owner.url, goals=goals)
