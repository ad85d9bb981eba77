from __future__ import annotations

import pytest

from catalog_builder.catalog_assembler import build_app_catalog, fork_items, sort_catalog_items
from fairhub.fair_hub import FairHub
from fairhub.queries.catalog_forks_query import ForkNode
from models.catalog import AppCatalogItem, AppStats, ArtifactTarget
from project_policy.project_configuration import ProjectConfiguration
from tests.hub_fakes import (
    FakeResponse,
    FakeSession,
    asset_json,
    fork_json,
    forks_page,
    release_json,
    seal_comment,
)

ORG = "Cloud-Cuckoo"
BASE = f"https://github.com/{ORG}/App/releases/download"
MAC = ArtifactTarget.for_extension("zip")


def _assets(version: str, downloads: int = 10, org: str = ORG):
    base = f"https://github.com/{org}/App/releases/download/{version}"
    return [
        asset_json(f"{org}-macOS.zip", f"{base}/{org}-macOS.zip", size=1234, download_count=downloads),
        asset_json(f"{org}.png", f"{base}/{org}.png", download_count=3),
        asset_json("Info.plist", f"{base}/Info.plist"),
        asset_json("README.md", f"{base}/README.md", download_count=4),
        asset_json("screenshot-01-mac-dark-1.png", f"{base}/screenshot-01-mac-dark-1.png"),
        asset_json("screenshot-01-iphone-1.png", f"{base}/screenshot-01-iphone-1.png"),
    ]


def _checksums(version: str, checksum: str, org: str = ORG):
    base = f"https://github.com/{org}/App/releases/download/{version}"
    return {
        f"{base}/{org}-macOS.zip": checksum,
        f"{base}/{org}.png": "1" * 64,
        f"{base}/Info.plist": "2" * 64,
        f"{base}/README.md": "3" * 64,
        f"{base}/screenshot-01-mac-dark-1.png": "5" * 64,
    }


def _sealed(version: str, checksum: str, **kwargs):
    kwargs.setdefault("core_size", 999)
    kwargs.setdefault("tint", "FF0000")
    return seal_comment("fairbot", _checksums(version, checksum), **kwargs)


def _fork(releases, comments, login: str = ORG) -> ForkNode:
    return ForkNode.from_json(fork_json(login, releases, comments=comments, topics=["utilities", "bogus"]))


def test_sealed_release_becomes_catalog_item() -> None:
    fork = _fork([release_json("1.0.0", _assets("1.0.0"))], [_sealed("1.0.0", "a" * 64)])
    [app] = fork_items(fork, "fairbot", ProjectConfiguration(), MAC)

    assert app.name == "Cloud Cuckoo"
    assert app.bundle_identifier == "app.Cloud-Cuckoo"
    assert app.version == "1.0.0"
    assert app.sha256 == "a" * 64
    assert app.size == 1234
    assert app.developer_name == "Dev <dev@example.org>"
    assert app.icon_url == f"{BASE}/1.0.0/{ORG}.png#" + "1" * 64
    assert app.metadata_url == f"{BASE}/1.0.0/Info.plist#" + "2" * 64
    assert app.readme_url == f"{BASE}/1.0.0/README.md#" + "3" * 64
    assert app.release_notes_url is None
    assert app.screenshot_urls == [f"{BASE}/1.0.0/screenshot-01-mac-dark-1.png#" + "5" * 64]
    assert app.categories == ["public.app-category.utilities"]
    assert app.tint_color == "FF0000"
    assert app.stats.core_size == 999
    assert app.stats.download_count == 10
    assert app.stats.impression_count == 3
    assert app.stats.view_count == 4
    assert app.homepage == f"https://{ORG}.github.io/App"
    assert not app.beta


def test_release_notes_asset_is_linked() -> None:
    assets = _assets("1.0.0") + [asset_json("RELEASE_NOTES.md", f"{BASE}/1.0.0/RELEASE_NOTES.md")]
    checksums = _checksums("1.0.0", "a" * 64)
    checksums[f"{BASE}/1.0.0/RELEASE_NOTES.md"] = "6" * 64
    fork = _fork([release_json("1.0.0", assets)], [seal_comment("fairbot", checksums)])

    [app] = fork_items(fork, "fairbot", ProjectConfiguration(), MAC)
    assert app.release_notes_url == f"{BASE}/1.0.0/RELEASE_NOTES.md#" + "6" * 64


def test_unsealed_release_is_skipped() -> None:
    fork = _fork([release_json("1.0.0", _assets("1.0.0"))], [])
    assert fork_items(fork, "fairbot", ProjectConfiguration(), MAC) == []


@pytest.mark.parametrize("unsealed", [f"{ORG}.png", "Info.plist", "README.md"])
def test_release_needs_every_companion_asset_sealed(unsealed: str) -> None:
    checksums = _checksums("1.0.0", "a" * 64)
    del checksums[f"{BASE}/1.0.0/{unsealed}"]
    fork = _fork([release_json("1.0.0", _assets("1.0.0"))], [seal_comment("fairbot", checksums)])
    assert fork_items(fork, "fairbot", ProjectConfiguration(), MAC) == []


@pytest.mark.parametrize("missing", ["Info.plist", "README.md"])
def test_release_needs_metadata_and_readme_assets(missing: str) -> None:
    assets = [a for a in _assets("1.0.0") if a["name"] != missing]
    fork = _fork([release_json("1.0.0", assets)], [_sealed("1.0.0", "a" * 64)])
    assert fork_items(fork, "fairbot", ProjectConfiguration(), MAC) == []


@pytest.mark.parametrize("app_metadata", ["oops", ["a", "list"], {"localizations": "nope"}])
def test_unreadable_seal_metadata_is_ignored(app_metadata) -> None:
    fork = _fork([release_json("1.0.0", _assets("1.0.0"))],
                 [_sealed("1.0.0", "a" * 64, metadata={"app": app_metadata})])
    [app] = fork_items(fork, "fairbot", ProjectConfiguration(), MAC)
    assert app.sha256 == "a" * 64
    assert app.subtitle == "An app"
    assert app.localizations is None


def test_seal_metadata_sets_description_and_localizations() -> None:
    metadata = {"app": {"subtitle": "Cuckoo clocks", "localizations": {"fr": {"subtitle": "Coucou"}}}}
    fork = _fork([release_json("1.0.0", _assets("1.0.0"))], [_sealed("1.0.0", "a" * 64, metadata=metadata)])
    [app] = fork_items(fork, "fairbot", ProjectConfiguration(), MAC)
    assert app.subtitle == "Cuckoo clocks"
    assert app.localizations["fr"].subtitle == "Coucou"
    assert app.localizations["fr"].name == "Cloud Cuckoo"


def test_null_connections_decode_as_empty() -> None:
    data = fork_json(ORG, [release_json("1.0.0", _assets("1.0.0"))], comments=[_sealed("1.0.0", "a" * 64)])
    data["repositoryTopics"] = {"nodes": None}
    data["defaultBranchRef"]["associatedPullRequests"]["nodes"].append(None)
    fork = ForkNode.from_json(data)

    [app] = fork_items(fork, "fairbot", ProjectConfiguration(), MAC)
    assert app.categories is None
    assert app.sha256 == "a" * 64


def test_latest_beta_and_latest_stable_only() -> None:
    releases = [
        release_json("1.2.0", _assets("1.2.0"), prerelease=True),
        release_json("1.1.0", _assets("1.1.0"), prerelease=True),
        release_json("1.0.0", _assets("1.0.0")),
        release_json("0.9.0", _assets("0.9.0")),
    ]
    comments = [_sealed(v, c * 64) for v, c in [("1.2.0", "a"), ("1.1.0", "b"), ("1.0.0", "c"), ("0.9.0", "d")]]
    apps = fork_items(_fork(releases, comments), "fairbot", ProjectConfiguration(), MAC)

    assert [(a.version, a.beta) for a in apps] == [("1.2.0", True), ("1.0.0", False)]


def test_invalid_tags_and_missing_emails_are_skipped() -> None:
    releases = [
        release_json("v2.0.0", _assets("v2.0.0")),
        release_json("1.5.0", _assets("1.5.0"), email=None),
        release_json("1.0.0", _assets("1.0.0")),
    ]
    comments = [_sealed("v2.0.0", "a" * 64), _sealed("1.5.0", "b" * 64), _sealed("1.0.0", "c" * 64)]
    apps = fork_items(_fork(releases, comments), "fairbot", ProjectConfiguration(), MAC)
    assert [a.version for a in apps] == ["1.0.0"]


def test_email_policy_filters_releases() -> None:
    project = ProjectConfiguration.from_patterns(allow_from=["@trusted\\.org$"])
    fork = _fork([release_json("1.0.0", _assets("1.0.0"))], [_sealed("1.0.0", "a" * 64)])
    assert fork_items(fork, "fairbot", project, MAC) == []


def test_denied_owner_yields_nothing() -> None:
    project = ProjectConfiguration.from_patterns(deny_name=["Cuckoo"])
    fork = _fork([release_json("1.0.0", _assets("1.0.0"))], [_sealed("1.0.0", "a" * 64)])
    assert fork_items(fork, "fairbot", project, MAC) == []


def test_without_issuer_lists_unverified_fork() -> None:
    fork = _fork([release_json("1.0.0", _assets("1.0.0"))], [])
    [app] = fork_items(fork, None, ProjectConfiguration(), MAC)
    assert app.name == "App"
    assert app.download_url == f"https://github.com/{ORG}/App"
    assert app.bundle_identifier is None
    assert app.stats.star_count == 5


def test_catalog_sorted_by_downloads_then_identity() -> None:
    apps = [
        AppCatalogItem(name="B", bundle_identifier="app.B", stats=AppStats(download_count=5)),
        AppCatalogItem(name="A", bundle_identifier="app.A", stats=AppStats(download_count=50)),
        AppCatalogItem(name="D", bundle_identifier="app.D"),
        AppCatalogItem(name="C", bundle_identifier="app.C"),
    ]
    assert [a.name for a in sort_catalog_items(apps)] == ["A", "B", "C", "D"]


def test_catalog_order_does_not_depend_on_input_order() -> None:
    apps = [
        AppCatalogItem(name="C", bundle_identifier="app.C", stats=AppStats(download_count=1)),
        AppCatalogItem(name="A", bundle_identifier="app.A"),
        AppCatalogItem(name="B", bundle_identifier="app.B", stats=AppStats(download_count=100)),
        AppCatalogItem(name="B", bundle_identifier="app.B", stats=AppStats(download_count=100), beta=True),
        AppCatalogItem(name="E", bundle_identifier="app.E", stats=AppStats(download_count=100)),
    ]
    expected = [("B", None), ("B", True), ("E", None), ("C", None), ("A", None)]
    for ordering in [apps, list(reversed(apps)), apps[2:] + apps[:2]]:
        assert [(a.name, a.beta) for a in sort_catalog_items(ordering)] == expected


@pytest.mark.anyio
async def test_build_app_catalog_walks_every_fork_page(hub: FairHub, session: FakeSession) -> None:
    session.queue(
        FakeResponse(payload=forks_page(
            [fork_json(ORG, [release_json("1.0.0", _assets("1.0.0", downloads=1))],
                       comments=[_sealed("1.0.0", "a" * 64)])],
            end_cursor="next")),
        FakeResponse(payload=forks_page(
            [fork_json("Tidal", [release_json("2.0.0", _assets("2.0.0", downloads=7, org="Tidal"))],
                       comments=[seal_comment("fairbot", _checksums("2.0.0", "f" * 64, org="Tidal"))])])),
    )
    catalog = await build_app_catalog(hub, ProjectConfiguration(), source_url="https://appfair.net/fairapps.json")

    assert [a.bundle_identifier for a in catalog.apps] == ["app.Tidal", "app.Cloud-Cuckoo"]
    assert catalog.platform == "macos"
    assert catalog.source_url == "https://appfair.net/fairapps.json"
    assert session.calls[1]["json"]["variables"]["endCursor"] == "next"
