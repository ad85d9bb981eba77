# ----------------------------
# Catalog assembly from the forks of the base repository
# ----------------------------
from __future__ import annotations

import copy
from typing import List, Optional, Tuple

from catalog_builder.attestation_matcher import AttestationBinding, hashed_url, match_attestations
from fairhub.errors import PolicyError
from fairhub.fair_hub import FairHub
from fairhub.queries.catalog_forks_query import ForkNode, commit_author
from models.app_version import AppVersion
from models.catalog import (
    AppCatalog,
    AppCatalogItem,
    AppFundingLink,
    AppLocalization,
    AppStats,
    ArtifactTarget,
    category_for,
)
from models.hub_nodes import ReleaseAssetNode, ReleaseNode
from models.seal import FairSeal
from project_policy.project_configuration import ProjectConfiguration
from loggers.catalog_logger import catalog_logger as logger


def _nonzero(count: int) -> Optional[int]:
    return count if count else None


def fork_categories(fork: ForkNode) -> List[str]:
    categories = []
    for name in fork.repository_topics.names:
        category = category_for(name)
        if category is not None:
            categories.append(category)
    return categories


def fork_funding_links(fork: ForkNode) -> List[AppFundingLink]:
    return [AppFundingLink(platform=link.platform, url=link.url) for link in fork.funding_links]


def unverified_item(fork: ForkNode) -> AppCatalogItem:
    """
    A bare listing of the fork itself, used when no fairseal issuer is configured.
    """
    categories = fork_categories(fork)
    funding_links = fork_funding_links(fork)
    return AppCatalogItem(
        name=fork.name,
        download_url=f"https://github.com/{fork.name_with_owner}",
        subtitle=fork.description,
        categories=categories or None,
        funding_links=funding_links or None,
        stats=AppStats(
            star_count=_nonzero(fork.stargazer_count),
            watcher_count=_nonzero(fork.watchers.total_count),
            issue_count=_nonzero(fork.issues.total_count),
            fork_count=_nonzero(fork.fork_count),
        ),
    )


def _asset_named(release: ReleaseNode, name: str) -> Optional[ReleaseAssetNode]:
    return next((asset for asset in release.assets if asset.name == name), None)


def screenshot_urls(release: ReleaseNode, target: ArtifactTarget, binding: AttestationBinding) -> List[str]:
    urls = []
    for asset in release.assets:
        if not (asset.name.endswith(".png") or asset.name.endswith(".jpg")):
            continue
        if not asset.name.startswith("screenshot"):
            continue
        if any(f"-{device}-" in asset.name for device in target.devices):
            urls.append(hashed_url(asset.download_url, binding.checksum_for(asset.download_url)))
    return urls


def _sealed_urls(binding: AttestationBinding, *assets: ReleaseAssetNode) -> Optional[List[str]]:
    urls = []
    for asset in assets:
        checksum = binding.checksum_for(asset.download_url)
        if checksum is None:
            logger.debug(f"missing checksum for {asset.name} url: {asset.download_url}")
            return None
        urls.append(hashed_url(asset.download_url, checksum))
    return urls


def release_notes_url(release: ReleaseNode, binding: AttestationBinding) -> Optional[str]:
    notes = _asset_named(release, "RELEASE_NOTES.md")
    if notes is None:
        return None
    return hashed_url(notes.download_url, binding.checksum_for(notes.download_url))


def apply_seal_metadata(app: AppCatalogItem, seal: Optional[FairSeal]) -> None:
    metadata = None
    if seal is not None:
        try:
            metadata = seal.parse_app_metadata()
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(f"ignoring unreadable fairseal metadata for {app.bundle_identifier}: {e}")
    if metadata is None:
        app.localizations = None
        return

    if metadata.subtitle:
        app.subtitle = metadata.subtitle
    if metadata.description:
        app.localized_description = metadata.description

    localizations = {}
    for lang, local in (metadata.localizations or {}).items():
        localizations[lang] = AppLocalization(
            name=local.name or app.name,
            subtitle=local.subtitle,
            localized_description=local.description,
            version_description=local.release_notes,
            homepage=local.marketing_url,
        )
    app.localizations = localizations or None


def fork_items(
    fork: ForkNode,
    issuer: Optional[str],
    project: ProjectConfiguration,
    target: Optional[ArtifactTarget],
    signing_key: Optional[bytes] = None,
) -> List[AppCatalogItem]:
    """
    Catalog entries for one fork: at most the most recent sealed beta and the
    most recent sealed stable release. Forks whose owner name fails the policy
    yield nothing.
    """
    login = fork.owner.login
    logger.debug(f"checking app fork: {login} {fork.name}")

    try:
        project.validate_app_name(login)
    except PolicyError as e:
        logger.info(f"{fork.name_with_owner} invalid app name: {e}")
        return []

    if issuer is None:
        return [unverified_item(fork)]

    app_title = login.replace("-", " ")
    bundle_identifier = "app." + login
    categories = fork_categories(fork)
    binding = match_attestations(fork, issuer, signing_key)

    apps: List[AppCatalogItem] = []
    sealed_beta_found = False
    sealed_found = False

    for release in fork.releases.nodes:
        version = AppVersion.parse(release.tag_name, release.is_prerelease)
        if version is None:
            logger.debug(f"{fork.name_with_owner} invalid release tag: {release.tag_name}")
            continue

        author = commit_author(release)
        email = author.email if author else None
        if not email:
            logger.debug(f"{fork.name_with_owner} no email for commit")
            continue
        developer = f"{author.name} <{email}>" if author.name else email

        try:
            project.validate_email(email)
        except PolicyError as e:
            logger.info(f"{fork.name_with_owner} invalid committer email: {e}")
            continue

        if target is None:
            continue

        artifact = next((a for a in release.assets if a.name.endswith(target.artifact_type)), None)
        if artifact is None:
            logger.debug(f"{fork.name_with_owner} {version}: missing app artifact from release")
            continue

        icon = _asset_named(release, login + ".png")
        if icon is None:
            logger.debug(f"{fork.name_with_owner} {version}: missing app icon from release")
            continue

        metadata = _asset_named(release, "Info.plist")
        if metadata is None:
            logger.debug(f"{fork.name_with_owner} {version}: missing app metadata from release")
            continue

        readme = _asset_named(release, "README.md")
        if readme is None:
            logger.debug(f"{fork.name_with_owner} {version}: missing README from release")
            continue

        checksum = binding.checksum_for(artifact.download_url)
        if checksum is None:
            logger.debug(f"missing checksum for artifact url: {artifact.download_url}")
            continue

        sealed = _sealed_urls(binding, icon, metadata, readme)
        if sealed is None:
            continue
        icon_url, metadata_url, readme_url = sealed

        seal = binding.seal_for(artifact.download_url)
        screenshots = screenshot_urls(release, target, binding)

        # the sealed Info.plist is the base; provenance fields are overwritten
        if seal is not None and seal.app_source is not None:
            app = copy.deepcopy(seal.app_source)
        else:
            app = AppCatalogItem(name=app_title, bundle_identifier=bundle_identifier,
                                 download_url=artifact.download_url)

        app.name = app_title
        app.bundle_identifier = bundle_identifier
        app.developer_name = developer
        app.size = artifact.size
        app.version = version.version_string
        app.version_date = release.created_at
        app.download_url = artifact.download_url
        app.icon_url = icon_url
        app.screenshot_urls = screenshots or None
        app.version_description = release.description
        app.tint_color = seal.tint if seal else None
        app.beta = release.is_prerelease
        app.categories = categories or None
        app.sha256 = checksum
        app.homepage = fork.homepage_url or f"https://{login}.github.io/App"
        app.permissions = seal.permissions if seal else None
        app.metadata_url = metadata_url
        app.readme_url = readme_url
        app.release_notes_url = release_notes_url(release, binding)
        app.subtitle = fork.description
        app.localized_description = fork.description
        app.stats = AppStats(
            download_count=artifact.download_count,
            impression_count=icon.download_count,
            view_count=readme.download_count,
            star_count=fork.stargazer_count,
            watcher_count=fork.watchers.total_count,
            issue_count=fork.issues.total_count,
            fork_count=fork.fork_count,
            core_size=seal.core_size if seal else None,
        )
        apply_seal_metadata(app, seal)

        if release.is_prerelease:
            if not sealed_beta_found:
                apps.append(app)
            sealed_beta_found = True
        else:
            if not sealed_found:
                apps.append(app)
            sealed_found = True
            # only the most recent sealed release; older betas are ignored
            break

    if not sealed_found:
        logger.warning(f"no fairseal found for: {fork.name_with_owner}")

    return apps


def _catalog_order(app: AppCatalogItem) -> Tuple[bool, int, str, bool]:
    # counted apps first, most downloaded first; the rest by identity
    count = app.download_count
    return (count is None, -(count or 0), app.identity, bool(app.beta))


def sort_catalog_items(apps: List[AppCatalogItem]) -> List[AppCatalogItem]:
    return sorted(apps, key=_catalog_order)


def catalog_platform(target: Optional[ArtifactTarget]) -> Optional[str]:
    if target is None:
        return None
    return "macos" if "mac" in target.devices else "ios"


async def build_app_catalog(
    hub: FairHub,
    project: ProjectConfiguration,
    *,
    base_repository: Optional[str] = None,
    source_url: Optional[str] = None,
    include_funding: bool = False,
) -> AppCatalog:
    """
    Walk every fork of the base repository and assemble the verified catalog.
    """
    config = hub.configuration
    target = ArtifactTarget.for_extension(config.artifact_extension)
    issuer = config.fairseal_issuer

    apps: List[AppCatalogItem] = []
    async for batch in hub.fork_stream(base_repository):
        for fork in batch.infer().forks:
            apps.extend(fork_items(fork, issuer, project, target, config.fairseal_key))

    funding_sources = None
    if include_funding:
        funding_sources = await hub.build_funding_sources(base_repository) or None

    logger.info(f"assembled {len(apps)} apps for {config.catalog_name}")
    return AppCatalog(
        name=config.catalog_name,
        identifier=config.catalog_identifier,
        platform=catalog_platform(target),
        source_url=source_url,
        apps=sort_catalog_items(apps),
        funding_sources=funding_sources,
    )
