from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from models.catalog import AppCatalog, AppCatalogItem, AppNewsPost
from loggers.catalog_logger import catalog_logger as logger


@dataclass(frozen=True)
class CatalogDiff:
    new: AppCatalogItem
    old: Optional[AppCatalogItem] = None

    @property
    def is_update(self) -> bool:
        return self.old is not None


Comparator = Callable[[AppCatalogItem, Optional[AppCatalogItem]], bool]


def version_changed(new: AppCatalogItem, old: Optional[AppCatalogItem]) -> bool:
    return new.version != (old.version if old is not None else None)


def new_releases(old_catalog: AppCatalog, new_catalog: AppCatalog,
                 comparator: Comparator = version_changed) -> List[CatalogDiff]:
    """
    Releases that are newsworthy between two catalogs: betas are ignored,
    removed apps are not reported and apps never seen before count as new.
    """
    old_apps = [app for app in old_catalog.apps if app.beta is not True]
    new_apps = [app for app in new_catalog.apps if app.beta is not True]

    old_map = {app.identity: app for app in old_apps}
    new_map = {app.identity: app for app in new_apps}

    diffs: List[CatalogDiff] = []
    for app_id in dict.fromkeys([app.identity for app in old_apps] + [app.identity for app in new_apps]):
        new_app = new_map.get(app_id)
        if new_app is None:
            # removed; not newsworthy
            continue
        old_app = old_map.get(app_id)
        if comparator(new_app, old_app):
            diffs.append(CatalogDiff(new=new_app, old=old_app))
    return diffs


def import_version_dates(catalog: AppCatalog, source: AppCatalog) -> None:
    source_map = {app.identity: app for app in source.apps}
    for app in catalog.apps:
        old = source_map.get(app.identity)
        if old is not None:
            app.version_date = old.version_date


def update_version_dates(catalog: AppCatalog, diffs: List[CatalogDiff], date: datetime) -> None:
    diff_map = {diff.new.identity: diff for diff in diffs}
    for app in catalog.apps:
        diff = diff_map.get(app.identity)
        if diff is not None and version_changed(diff.new, diff.old):
            logger.debug(f"updating version date for diff of: {app.identity}")
            app.version_date = date


# ----------------------------
# News
# ----------------------------

@dataclass
class NewsFormat:
    """
    Templates for release news. Variables are written as #(name): appname,
    appname_hyphenated, appbundleid, apptoken, appversion, oldappversion.
    """
    post_title: Optional[str] = None
    post_title_update: Optional[str] = None
    post_caption: Optional[str] = None
    post_caption_update: Optional[str] = None


def replace_variables(template: Optional[str], variables: Dict[str, Optional[str]]) -> Optional[str]:
    if template is None:
        return None
    text = template
    for key in sorted(variables):
        value = variables[key]
        if value is not None:
            text = text.replace(f"#({key})", value)
    return text


def post_updates(catalog: AppCatalog, diffs: List[CatalogDiff], news_format: Optional[NewsFormat] = None,
                 news_limit: Optional[int] = None, now: Optional[datetime] = None) -> List[AppNewsPost]:
    """
    Append one news post per diff, replacing older posts about the same app,
    then trim the news to the most recent news_limit posts.
    """
    news_format = news_format or NewsFormat()
    now = now or datetime.now(timezone.utc)
    news: List[AppNewsPost] = list(catalog.news or [])
    posted: List[AppNewsPost] = []

    for diff in diffs:
        app = diff.new
        bundle_id = app.identity
        variables = {
            "appname": app.name,
            "appname_hyphenated": app.name.replace(" ", "-"),
            "appbundleid": bundle_id,
            "apptoken": bundle_id,
            "appversion": app.version,
            "oldappversion": diff.old.version if diff.old is not None else None,
        }

        if diff.is_update:
            title = replace_variables(news_format.post_title_update, variables)
            caption = replace_variables(news_format.post_caption_update, variables)
        else:
            title = replace_variables(news_format.post_title, variables)
            caption = replace_variables(news_format.post_caption, variables)

        post = AppNewsPost(
            identifier=f"release-{bundle_id}-{app.version or 'new'}",
            date=now,
            title=(title or f"New Release: {app.name} {app.version or ''}").strip(),
            caption=caption or "",
            app_id=bundle_id,
        )
        news = [existing for existing in news if existing.app_id != bundle_id]
        news.append(post)
        posted.append(post)

    if news_limit is not None:
        news = news[-news_limit:] if news_limit > 0 else []
    catalog.news = news or None
    logger.info(f"posted {len(posted)} changes; catalog now has {len(news)} news items")
    return posted
