from datetime import datetime, timezone

from catalog_builder.catalog_differ import (
    CatalogDiff,
    NewsFormat,
    import_version_dates,
    new_releases,
    post_updates,
    replace_variables,
    update_version_dates,
)
from models.catalog import AppCatalog, AppCatalogItem, AppNewsPost

NOW = datetime(2023, 5, 6, 7, 8, 9, tzinfo=timezone.utc)


def _app(name: str, version: str, beta: bool = False, **kwargs) -> AppCatalogItem:
    return AppCatalogItem(name=name, bundle_identifier="app." + name.replace(" ", "-"), version=version,
                          beta=beta or None, **kwargs)


def _catalog(*apps: AppCatalogItem) -> AppCatalog:
    return AppCatalog(name="App Fair", identifier="net.appfair.catalog", apps=list(apps))


def test_new_releases_reports_changed_and_new_apps() -> None:
    old = _catalog(_app("Cloud Cuckoo", "1.0.0"), _app("Tidal", "2.0.0"), _app("Gone", "1.0.0"))
    new = _catalog(_app("Cloud Cuckoo", "1.1.0"), _app("Tidal", "2.0.0"), _app("Fresh", "0.1.0"))

    diffs = new_releases(old, new)

    assert [(d.new.name, d.old.version if d.old else None) for d in diffs] == [
        ("Cloud Cuckoo", "1.0.0"),
        ("Fresh", None),
    ]


def test_new_releases_ignores_betas() -> None:
    old = _catalog(_app("Tidal", "2.0.0"))
    new = _catalog(_app("Tidal", "2.0.0"), _app("Tidal", "2.1.0", beta=True), _app("Beta Only", "0.1.0", beta=True))
    assert new_releases(old, new) == []


def test_new_releases_with_custom_comparator() -> None:
    old = _catalog(_app("Tidal", "2.0.0", sha256="a"))
    new = _catalog(_app("Tidal", "2.0.0", sha256="b"))
    diffs = new_releases(old, new, comparator=lambda n, o: o is None or n.sha256 != o.sha256)
    assert [d.new.sha256 for d in diffs] == ["b"]


def test_replace_variables() -> None:
    variables = {"appname": "Cloud Cuckoo", "appversion": "1.0.0", "oldappversion": None}
    assert replace_variables("#(appname) #(appversion) was #(oldappversion)", variables) == \
        "Cloud Cuckoo 1.0.0 was #(oldappversion)"
    assert replace_variables(None, variables) is None


def test_post_updates_uses_templates_and_defaults() -> None:
    catalog = _catalog(_app("Cloud Cuckoo", "1.1.0"), _app("Fresh", "0.1.0"))
    diffs = [
        CatalogDiff(new=catalog.apps[0], old=_app("Cloud Cuckoo", "1.0.0")),
        CatalogDiff(new=catalog.apps[1]),
    ]
    news_format = NewsFormat(
        post_title_update="Updated: #(appname) #(oldappversion) to #(appversion)",
        post_caption_update="See https://appfair.app/#(appname_hyphenated)",
    )
    posts = post_updates(catalog, diffs, news_format, now=NOW)

    assert [p.identifier for p in posts] == ["release-app.Cloud-Cuckoo-1.1.0", "release-app.Fresh-0.1.0"]
    assert posts[0].title == "Updated: Cloud Cuckoo 1.0.0 to 1.1.0"
    assert posts[0].caption == "See https://appfair.app/Cloud-Cuckoo"
    assert posts[1].title == "New Release: Fresh 0.1.0"
    assert posts[1].caption == ""
    assert posts[1].app_id == "app.Fresh"
    assert posts[1].date == NOW
    assert catalog.news == posts


def test_post_updates_replaces_older_posts_and_trims() -> None:
    catalog = _catalog(_app("Tidal", "2.1.0"))
    catalog.news = [
        AppNewsPost(identifier="release-app.Tidal-2.0.0", date=NOW, title="old", caption="", app_id="app.Tidal"),
        AppNewsPost(identifier="release-app.Other-1.0.0", date=NOW, title="other", caption="", app_id="app.Other"),
        AppNewsPost(identifier="announcement", date=NOW, title="hello", caption=""),
    ]
    post_updates(catalog, [CatalogDiff(new=catalog.apps[0], old=_app("Tidal", "2.0.0"))], news_limit=2, now=NOW)

    assert [p.identifier for p in catalog.news] == ["announcement", "release-app.Tidal-2.1.0"]


def test_post_updates_without_news_leaves_none() -> None:
    catalog = _catalog(_app("Tidal", "2.1.0"))
    post_updates(catalog, [], now=NOW)
    assert catalog.news is None


def test_version_dates() -> None:
    earlier = datetime(2022, 1, 1, tzinfo=timezone.utc)
    source = _catalog(_app("Tidal", "2.0.0", version_date=earlier), _app("Calm", "1.0.0", version_date=earlier))
    catalog = _catalog(_app("Tidal", "2.1.0"), _app("Calm", "1.0.0"))

    import_version_dates(catalog, source)
    assert [a.version_date for a in catalog.apps] == [earlier, earlier]

    update_version_dates(catalog, new_releases(source, catalog), NOW)
    assert [a.version_date for a in catalog.apps] == [NOW, earlier]
