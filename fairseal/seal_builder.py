from __future__ import annotations

import plistlib
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
from urllib.parse import urlparse, urlunparse

import requests

import utils
from configuration import Configuration
from fairhub.errors import (
    HTTPStatusError,
    MissingUsageDescriptionError,
    SameArtifactError,
    SandboxRequiredError,
)
from fairseal.build_comparator import SignatureStripper, compare_archives
from models.catalog import AppCatalogItem, AppPermission
from models.seal import FairSeal, FairSealAsset
from loggers.fairseal_logger import fairseal_logger as logger

SANDBOX_ENTITLEMENT = "com.apple.security.app-sandbox"
ENTITLEMENT_PREFIX = "com.apple.security."

# entitlements that never need an explanation
UNDESCRIBED_ENTITLEMENTS = frozenset([
    SANDBOX_ENTITLEMENT,
    "com.apple.security.cs.allow-jit",
])


def download_artifact(url: str, dest_dir: Union[str, Path], session: Optional[requests.Session] = None,
                      timeout: int = 60) -> Path:
    session = session or requests.Session()
    dest = Path(dest_dir, Path(urlparse(url).path).name or "artifact")
    dest.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"downloading untrusted artifact: {url}")
    with session.get(url, stream=True, timeout=timeout) as resp:
        if resp.status_code >= 400:
            raise HTTPStatusError(resp.status_code, url, resp.text[:300])
        with dest.open("wb") as f:
            for chunk in resp.iter_content(chunk_size=1024 * 1024):
                f.write(chunk)
    return dest


def sibling_url(artifact_url: str, name: str) -> str:
    """
    The URL of a file published next to the artifact.
    """
    parsed = urlparse(artifact_url)
    directory = parsed.path.rsplit("/", 1)[0]
    return urlunparse(parsed._replace(path=f"{directory}/{name}", query="", fragment=""))


def seal_assets(artifact_url: str, untrusted: Path, staging_dirs: Iterable[Union[str, Path]]) -> List[FairSealAsset]:
    """
    Hash every staged release asset. The asset named like the artifact is
    hashed from the untrusted download, since that is what users receive.
    """
    artifact_name = Path(urlparse(artifact_url).path).name
    assets = []
    for staging in staging_dirs:
        staged = sorted((p for p in Path(staging).iterdir() if p.is_file()), key=lambda p: p.name)
        logger.info(f"scanning assets: {[p.name for p in staged]}")
        for local in staged:
            url = sibling_url(artifact_url, local.name)
            if local.name == artifact_name:
                checksum = utils.hash_file(untrusted)
                logger.info(f"hash for artifact: {local.name} {checksum}")
            else:
                checksum = utils.hash_file(local)
            assets.append(FairSealAsset(url=url, size=local.stat().st_size, sha256=checksum))
    return assets


def entitlement_permissions(entitlements: Dict[str, Any], info_plist: Dict[str, Any],
                            require_sandbox: bool = True) -> List[AppPermission]:
    """
    Match each enabled entitlement with its usage description from the
    Info.plist "FairUsage" dictionary, keyed by the full or the short
    entitlement name.
    """
    if require_sandbox and entitlements.get(SANDBOX_ENTITLEMENT) is not True:
        raise SandboxRequiredError()

    usage = info_plist.get("FairUsage") or {}
    permissions = []
    for key in sorted(entitlements):
        value = entitlements[key]
        if value is False or key in UNDESCRIBED_ENTITLEMENTS:
            continue
        short = key[len(ENTITLEMENT_PREFIX):] if key.startswith(ENTITLEMENT_PREFIX) else key
        description = usage.get(key) or usage.get(short)
        if not isinstance(description, str) or not description.strip():
            raise MissingUsageDescriptionError(key)
        logger.info(f"entitlement: {short} usage: {description}")
        permissions.append(AppPermission(type="entitlement", identifier=short, usage_description=description))
    return permissions


def app_source_item(info_plist: Dict[str, Any], artifact_url: str) -> Optional[AppCatalogItem]:
    name = info_plist.get("CFBundleName")
    if not name:
        logger.warning("error extracting app source from Info.plist: no CFBundleName")
        return None
    category = info_plist.get("LSApplicationCategoryType")
    return AppCatalogItem(
        name=name,
        bundle_identifier=info_plist.get("CFBundleIdentifier"),
        download_url=artifact_url,
        version=info_plist.get("CFBundleShortVersionString"),
        categories=[category] if category else None,
    )


def build_fairseal(
    config: Configuration,
    trusted: Union[str, Path],
    untrusted: Union[str, Path],
    artifact_url: str,
    *,
    staging_dirs: Iterable[Union[str, Path]] = (),
    entitlements: Optional[Union[str, Path]] = None,
    metadata: Optional[Union[str, Path]] = None,
    strip_signature: Optional[SignatureStripper] = None,
) -> FairSeal:
    """
    Compare a trusted build with the published artifact and produce the
    fairseal attesting to it, signed when a fairseal key is configured.
    """
    trusted = Path(trusted).resolve()
    untrusted = Path(untrusted).resolve()
    if trusted == untrusted:
        raise SameArtifactError()

    comparison = compare_archives(trusted, untrusted, config.permitted_diffs, strip_signature)
    info_plist = comparison.info_plist or {}

    permissions = None
    if entitlements is not None:
        with open(entitlements, "rb") as f:
            permissions = entitlement_permissions(plistlib.load(f), info_plist) or None

    seal_metadata = None
    if metadata is not None:
        seal_metadata = utils.read_yaml_file(metadata)

    seal = FairSeal(
        assets=seal_assets(artifact_url, untrusted, staging_dirs),
        app_source=app_source_item(info_plist, artifact_url),
        core_size=comparison.core_size,
        metadata=seal_metadata,
        permissions=permissions,
        tint=config.tint,
    )

    if config.fairseal_key:
        seal.embed_signature(config.fairseal_key)

    logger.info(f"generated fairseal with {len(seal.assets)} assets, core size {seal.core_size}")
    return seal
