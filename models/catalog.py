from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional
from urllib.parse import urlparse

from models.codable import JSONModel, json_key


@dataclass
class AppPermission(JSONModel):
    type: str
    identifier: Optional[str] = None
    usage_description: str = ""


@dataclass
class AppStats(JSONModel):
    download_count: Optional[int] = None
    view_count: Optional[int] = None
    impression_count: Optional[int] = None
    star_count: Optional[int] = None
    watcher_count: Optional[int] = None
    fork_count: Optional[int] = None
    issue_count: Optional[int] = None
    core_size: Optional[int] = None


@dataclass
class AppFundingLink(JSONModel):
    platform: str
    url: str
    localized_title: Optional[str] = None
    localized_description: Optional[str] = None


@dataclass
class AppFundingGoal(JSONModel):
    kind: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    percent_complete: Optional[int] = None
    target_value: Optional[int] = None


@dataclass
class AppFundingSource(JSONModel):
    platform: str
    url: str
    goals: List[AppFundingGoal] = field(default_factory=list)


@dataclass
class AppLocalization(JSONModel):
    name: Optional[str] = None
    subtitle: Optional[str] = None
    localized_description: Optional[str] = None
    version_description: Optional[str] = None
    homepage: Optional[str] = None


@dataclass
class AppCatalogItem(JSONModel):
    name: str
    bundle_identifier: Optional[str] = None
    download_url: str = json_key("downloadURL", "")
    subtitle: Optional[str] = None
    developer_name: Optional[str] = None
    localized_description: Optional[str] = None
    size: Optional[int] = None
    version: Optional[str] = None
    version_date: Optional[datetime] = None
    icon_url: Optional[str] = json_key("iconURL")
    screenshot_urls: Optional[List[str]] = json_key("screenshotURLs")
    version_description: Optional[str] = None
    tint_color: Optional[str] = None
    beta: Optional[bool] = None
    categories: Optional[List[str]] = None
    sha256: Optional[str] = None
    permissions: Optional[List[AppPermission]] = None
    metadata_url: Optional[str] = json_key("metadataURL")
    readme_url: Optional[str] = json_key("readmeURL")
    release_notes_url: Optional[str] = json_key("releaseNotesURL")
    homepage: Optional[str] = None
    funding_links: Optional[List[AppFundingLink]] = None
    stats: Optional[AppStats] = None
    localizations: Optional[Dict[str, AppLocalization]] = None

    @property
    def identity(self) -> str:
        return self.bundle_identifier or self.name

    @property
    def download_count(self) -> Optional[int]:
        return self.stats.download_count if self.stats else None

    @property
    def impression_count(self) -> Optional[int]:
        return self.stats.impression_count if self.stats else None


@dataclass
class AppNewsPost(JSONModel):
    identifier: str
    date: datetime
    title: str
    caption: str
    notify: Optional[bool] = None
    tint_color: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = json_key("imageURL")
    app_id: Optional[str] = json_key("appID")


@dataclass
class AppCatalog(JSONModel):
    name: str
    identifier: str
    platform: Optional[str] = None
    source_url: Optional[str] = json_key("sourceURL")
    localized_description: Optional[str] = None
    homepage: Optional[str] = None
    icon_url: Optional[str] = json_key("iconURL")
    tint_color: Optional[str] = None
    apps: List[AppCatalogItem] = field(default_factory=list)
    news: Optional[List[AppNewsPost]] = None
    funding_sources: Optional[List[AppFundingSource]] = None

    def is_platform(self, platform: str) -> bool:
        """
        True when the catalog declares the platform, or when it declares none
        and every download URL carries an extension used for that platform.
        """
        if self.platform:
            return self.platform == platform
        extensions = {_path_extension(app.download_url) for app in self.apps}
        if platform == "ios":
            return extensions <= IOS_EXTENSIONS
        if platform == "macos":
            return extensions <= MACOS_EXTENSIONS
        return False


IOS_EXTENSIONS = {"ipa", ""}
MACOS_EXTENSIONS = {"zip", "dmg", "pkg", "gz", "tgz", "bz2", "tbz", "jar", "tar", ""}


def _path_extension(url: str) -> str:
    name = urlparse(url or "").path.rsplit("/", 1)[-1]
    return name.rsplit(".", 1)[-1].lower() if "." in name else ""


@dataclass(frozen=True)
class ArtifactTarget:
    artifact_type: str
    devices: tuple

    @classmethod
    def for_extension(cls, extension: str) -> "ArtifactTarget":
        if extension == "ipa":
            return cls(artifact_type="ipa", devices=("iphone", "ipad"))
        return cls(artifact_type=extension, devices=("mac",))


CATEGORY_PREFIX = "public.app-category."

APP_CATEGORIES = frozenset(CATEGORY_PREFIX + name for name in [
    "business", "developer-tools", "education", "entertainment", "finance", "games",
    "graphics-design", "healthcare-fitness", "lifestyle", "medical", "music", "news",
    "photography", "productivity", "reference", "social-networking", "sports", "travel",
    "utilities", "video", "weather",
    "action-games", "adventure-games", "arcade-games", "board-games", "card-games",
    "casino-games", "dice-games", "educational-games", "family-games", "kids-games",
    "music-games", "puzzle-games", "racing-games", "role-playing-games", "simulation-games",
    "sports-games", "strategy-games", "trivia-games", "word-games",
])


def category_for(base: str, validate: bool = True) -> Optional[str]:
    """
    Map a bare category such as "utilities" to "public.app-category.utilities",
    or None when validating and the category is unknown.
    """
    value = CATEGORY_PREFIX + base
    if validate and value not in APP_CATEGORIES:
        return None
    return value
