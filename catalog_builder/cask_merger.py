# ----------------------------
# App casks: Homebrew cask metadata merged with fork-published releases
# ----------------------------
from __future__ import annotations

import asyncio
import json
from typing import Awaitable, Callable, Dict, List, Optional, Set

from catalog_builder.homebrew_client import HomebrewClient
from fairhub.fair_hub import FairHub
from fairhub.queries.app_casks_query import CaskRepositoryNode
from models.cask import CaskItem, CaskStats
from models.catalog import AppCatalog, AppCatalogItem, AppFundingLink, AppStats, category_for
from models.hub_nodes import ReleaseAssetNode, ReleaseNode
from loggers.casks_logger import casks_logger as logger

CASK_TAG_PREFIX = "cask-"
DEFAULT_BOOST = 10_000


def _prefixed_asset_tags(release: Optional[ReleaseNode], prefix: str) -> List[str]:
    if release is None:
        return []
    return [asset.name[len(prefix):] for asset in release.assets if asset.name.startswith(prefix)]


def _release_asset(release: Optional[ReleaseNode], name: str) -> Optional[ReleaseAssetNode]:
    if release is None:
        return None
    return next((asset for asset in release.assets if asset.name == name), None)


def ingest_release_description(description: Optional[str], name: str, bundle_identifier: str,
                               download_url: str) -> Optional[AppCatalogItem]:
    """
    A release description that is a fenced JSON block (optionally "```json")
    describes the catalog item; name, bundle id and download URL are forced.
    """
    if not description:
        return None
    text = description.strip()
    if len(text) < 6 or not text.startswith("```") or not text.endswith("```"):
        return None
    text = text[3:-3]
    if text.startswith("json"):
        text = text[4:]
    try:
        obj = json.loads(text.strip())
        if not isinstance(obj, dict):
            return None
        obj["name"] = name
        obj["bundleIdentifier"] = bundle_identifier
        obj["downloadURL"] = download_url
        return AppCatalogItem.from_json(obj)
    except ValueError as e:
        logger.debug(f"error parsing release description into JSON: {e}")
        return None


def create_app(token: str, release: Optional[ReleaseNode], repo: Optional[CaskRepositoryNode],
               cask: Optional[CaskItem], stats: Optional[CaskStats],
               catalog_root: str = "https://appfair.net") -> AppCatalogItem:
    cask_name = (cask.name[0] if cask and cask.name else None) \
        or (release.name if release else None) \
        or (release.tag_name if release else None) \
        or token
    homepage = (cask.homepage if cask else None) or (repo.homepage_url if repo else None)
    download_url = (cask.url if cask else None) or (cask.homepage if cask else None) or catalog_root

    categories = [c for c in (category_for(tag) for tag in _prefixed_asset_tags(release, "category-")) if c]
    tint = next((tag for tag in _prefixed_asset_tags(release, "tint-") if len(tag) == 6), None)

    icon = _release_asset(release, "AppIcon.png")
    readme = _release_asset(release, "README.md")
    release_notes = _release_asset(release, "RELEASE_NOTES.md")
    installs = _release_asset(release, "cask-install")
    download_count = installs.download_count if installs else 0
    if stats is not None:
        download_count += stats.download_count(token)

    screenshots = [
        asset.download_url for asset in (release.assets if release else [])
        if (asset.name.endswith(".png") or asset.name.endswith(".jpg"))
        and asset.name.startswith("screenshot") and "-mac-" in asset.name
    ]

    description = release.description if release else None
    app = ingest_release_description(description, cask_name, token, download_url)
    if app is None:
        app = AppCatalogItem(name=cask_name, bundle_identifier=token, download_url=download_url)

    app.name = cask_name
    app.bundle_identifier = token
    app.subtitle = cask.desc if cask else None
    app.download_url = download_url
    app.sha256 = cask.checksum if cask else None
    app.size = None
    app.homepage = homepage
    app.localized_description = app.localized_description or description or (cask.desc if cask else None)
    app.version_description = app.version_description or description
    app.version = cask.version if cask else None
    app.version_date = None
    app.icon_url = icon.download_url if icon else None
    app.readme_url = readme.download_url if readme else app.readme_url
    app.release_notes_url = release_notes.download_url if release_notes else app.release_notes_url
    app.tint_color = app.tint_color or tint
    app.beta = app.beta if app.beta is not None else bool(release and release.is_prerelease)
    app.categories = app.categories or categories or None
    # screenshots always come from release assets
    app.screenshot_urls = screenshots or None
    app.stats = AppStats(download_count=download_count,
                         impression_count=icon.download_count if icon else None,
                         view_count=readme.download_count if readme else None)
    app.permissions = None
    app.metadata_url = None
    return app


def has_supplemental_info(app: AppCatalogItem) -> bool:
    return bool(
        (app.download_count or 0) > 0
        or app.readme_url
        or app.release_notes_url
        or app.icon_url
        or app.tint_color
        or app.categories
        or app.screenshot_urls
    )


class CaskMerger:
    """
    Collects app casks from starred repositories, forks of the casks repository
    and topic repositories, then fills in the Homebrew casks no fork published.
    """

    def __init__(
        self,
        hub: FairHub,
        casks: Optional[Dict[str, CaskItem]] = None,
        stats: Optional[CaskStats] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        config = hub.configuration
        self.hub = hub
        self.casks = casks
        self.stats = stats
        self.sleep = sleep
        self.boost = config.boost_factor or DEFAULT_BOOST
        self.boost_map = config.boost_map
        self.max_apps = config.max_apps
        self.exclude_empty_casks = config.exclude_empty_casks
        self.phase_delay = config.phase_delay
        self.catalog_root = config.catalog_root_url
        self.privileged_repository = config.privileged_casks_repository

        self.apps: List[AppCatalogItem] = []
        self.app_ids: Set[str] = set()
        self.starred_repos: Dict[str, CaskRepositoryNode] = {}

    @classmethod
    async def load(cls, hub: FairHub, homebrew: Optional[HomebrewClient] = None,
                   stats_window: Optional[int] = None, **kwargs) -> "CaskMerger":
        casks = None
        stats = None
        if homebrew is not None:
            casks = {c.token: c for c in await asyncio.to_thread(homebrew.fetch_casks)}
            if stats_window:
                stats = await asyncio.to_thread(homebrew.fetch_stats, stats_window)
        return cls(hub, casks=casks, stats=stats, **kwargs)

    @property
    def at_capacity(self) -> bool:
        return self.max_apps is not None and len(self.apps) >= self.max_apps

    # ----------------------------
    # Phases
    # ----------------------------

    async def index_starred(self, starrer_name: str) -> None:
        # starred repositories are not cask sources; they only lend funding links
        async for batch in self.hub.starred_cask_stream(starrer_name):
            for repo in batch.infer().repositories:
                logger.debug(f"starred by {starrer_name}: {repo.name_with_owner}")
                if repo.is_archived or not repo.is_public or not repo.url:
                    continue
                self.starred_repos[repo.url.lower()] = repo
        await self.sleep(self.phase_delay)

    async def add_forks(self, owner: str, name: str) -> None:
        async for batch in self.hub.forked_cask_stream(owner, name):
            if not await self.add_app_casks(batch.infer().repositories):
                break
        await self.sleep(self.phase_delay)

    async def add_topic(self, topic_name: str) -> None:
        async for batch in self.hub.topic_cask_stream(topic_name):
            if not await self.add_app_casks(batch.infer().repositories):
                break
        await self.sleep(self.phase_delay)

    async def add_app_casks(self, repos: List[CaskRepositoryNode]) -> bool:
        logger.info(f"fetched appcasks repos: {len(repos)}")
        for repo in repos:
            if repo.is_archived:
                logger.debug(f"skipping archived repository: {repo.name_with_owner}")
                continue
            if not repo.is_public:
                logger.debug(f"skipping non-public repository: {repo.name_with_owner}")
                continue
            await self.add_repository_releases(repo)

        if self.at_capacity:
            logger.info(f"stopping due to max apps: {self.max_apps}")
            return False
        return True

    async def add_repository_releases(self, repo: CaskRepositoryNode) -> None:
        if self.at_capacity:
            return
        if repo.owner.is_verified is not True:
            logger.debug(f"skipping un-verified owner: {repo.name_with_owner}")
            return

        if not self.add_releases(repo, repo.releases.nodes):
            return

        page = repo.releases.page_info
        if page.has_next_page and page.end_cursor and repo.id:
            logger.debug(f"traversing release cursor for {repo.name_with_owner}: {page.end_cursor}")
            async for batch in self.hub.cask_release_stream(repo.id, page.end_cursor):
                if not self.add_releases(repo, batch.infer().releases.nodes):
                    return

    def add_releases(self, repo: CaskRepositoryNode, releases: List[ReleaseNode]) -> bool:
        for release in releases:
            tag = release.tag_name
            if tag is None:
                continue
            if not tag.startswith(CASK_TAG_PREFIX):
                logger.debug(f"tag name \"{tag}\" does not begin with expected prefix \"{CASK_TAG_PREFIX}\"")
                continue

            token = tag[len(CASK_TAG_PREFIX):]
            cask = self.casks.get(token) if self.casks is not None else None
            if self.casks is not None and cask is None:
                logger.debug(f"filtering app missing from casks: {token}")
                continue

            website = repo.owner.website_url
            if not website:
                logger.debug(f"skipping un-set website for owner: {repo.name_with_owner}")
                continue
            homepage = cask.homepage if cask else None
            if not homepage:
                logger.debug(f"skipping un-set homepage for cask: {token}")
                continue
            if not homepage.startswith(website) and repo.name_with_owner != self.privileged_repository:
                logger.debug(f"skipping un-matched cask homepage {homepage} and verified url {website}")
                continue

            app = create_app(token, release, repo, cask, self.stats, self.catalog_root)
            if self.exclude_empty_casks and not has_supplemental_info(app):
                continue

            # forks are walked newest first, so the first definition of an id wins
            if app.bundle_identifier in self.app_ids:
                logger.debug(f"skipping duplicate app id: {app.bundle_identifier}")
                continue
            self.app_ids.add(app.bundle_identifier)

            starred = self.starred_repos.get(homepage.lower())
            if starred is not None and starred.funding_links:
                app.funding_links = [AppFundingLink(platform=link.platform, url=link.url)
                                     for link in starred.funding_links]
                logger.debug(f"added app funding links for {homepage}")

            self.apps.append(app)
            if self.at_capacity:
                logger.info(f"stopping due to max apps: {self.max_apps}")
                return False
        return True

    def add_unforked_casks(self) -> None:
        for token in sorted(self.casks or {}):
            if token in self.app_ids:
                continue
            if self.at_capacity:
                break
            app = create_app(token, None, None, self.casks[token], self.stats, self.catalog_root)
            self.app_ids.add(token)
            self.apps.append(app)

    # ----------------------------
    # Ranking
    # ----------------------------

    def rank(self, item: AppCatalogItem) -> int:
        ranking = item.download_count or 0
        # each bit of metadata boosts the cask's position
        if item.readme_url:
            ranking += self.boost
        if item.icon_url:
            ranking += self.boost
        if item.categories:
            ranking += self.boost
        if item.screenshot_urls:
            ranking += self.boost
        if item.bundle_identifier in self.boost_map:
            ranking += self.boost_map[item.bundle_identifier] * self.boost
        return ranking

    async def build(
        self,
        catalog_name: str,
        catalog_identifier: str,
        owner: Optional[str] = None,
        base_repository: Optional[str] = None,
        topic_name: Optional[str] = None,
        starrer_name: Optional[str] = None,
    ) -> AppCatalog:
        logger.info(f"building appcasks with max apps: {self.max_apps} boost: {self.boost}")

        if starrer_name:
            await self.index_starred(starrer_name)
        if base_repository:
            await self.add_forks(owner or self.hub.org, base_repository)
        if topic_name:
            await self.add_topic(topic_name)

        self.add_unforked_casks()
        apps = sorted(self.apps, key=self.rank, reverse=True)

        return AppCatalog(
            name=catalog_name,
            identifier=catalog_identifier,
            source_url=self.catalog_root.rstrip("/") + "/appcasks.json",
            apps=apps,
        )


async def build_app_casks(hub: FairHub, homebrew: Optional[HomebrewClient] = None) -> AppCatalog:
    config = hub.configuration
    merger = await CaskMerger.load(hub, homebrew, stats_window=config.stats_window if homebrew else None)
    return await merger.build(
        catalog_name=config.catalog_name + " Casks",
        catalog_identifier=config.catalog_identifier + ".casks",
        base_repository=config.casks_repository,
        topic_name=config.topic_name,
        starrer_name=config.starrer_name,
    )
