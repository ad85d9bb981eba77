from __future__ import annotations

import csv
import json
from pathlib import Path

import pytest

from artifact_generators.cask_recipe_gen import cask_name, cask_recipe, write_cask_recipes, write_catalog_cask_recipes
from artifact_generators.catalog_csv_gen import CSV_FIELDS, write_catalog_to_csv
from artifact_generators.catalog_gen import read_catalog, read_catalog_if_exists, write_catalog
from models.catalog import AppCatalog, AppCatalogItem, AppStats

URL = "https://github.com/Cloud-Cuckoo/App/releases/download/1.0.0/Cloud-Cuckoo-macOS.zip"


def _app(**kwargs) -> AppCatalogItem:
    values = dict(name="Cloud Cuckoo", bundle_identifier="app.Cloud-Cuckoo", download_url=URL,
                  version="1.0.0", sha256="a" * 64, subtitle='A "fun" app')
    values.update(kwargs)
    return AppCatalogItem(**values)


def test_cask_recipe() -> None:
    recipe = cask_recipe(_app())

    assert recipe.startswith('cask "cloud-cuckoo" do\n')
    assert 'version "1.0.0"' in recipe
    assert f'sha256 "{"a" * 64}"' in recipe
    assert 'url "https://github.com/Cloud-Cuckoo/App/releases/download/#{version}/Cloud-Cuckoo-macOS.zip"' in recipe
    assert 'desc "A \'fun\' app"' in recipe
    assert 'depends_on cask: "app-fair"' in recipe
    assert 'target: "App Fair/Cloud Cuckoo.app"' in recipe
    assert 'uninstall quit: "app.Cloud-Cuckoo"' in recipe
    assert '"#{appdir}/App Fair/Cloud Cuckoo.app/Contents/MacOS/Cloud Cuckoo", target: "cloud-cuckoo"' in recipe


def test_catalog_app_recipe_has_no_dependency() -> None:
    recipe = cask_recipe(_app(name="App Fair", download_url="https://github.com/App-Fair/App/x.zip"))
    assert "depends_on cask" not in recipe
    assert 'target: "App Fair.app"' in recipe


def test_recipes_need_version_and_checksum() -> None:
    assert cask_recipe(_app(version=None)) is None
    assert cask_recipe(_app(sha256=None)) is None


def test_beta_recipes_need_a_suffix() -> None:
    beta = _app(beta=True)
    assert cask_name(beta) is None
    assert cask_recipe(beta) is None
    assert cask_name(beta, "-prerelease") == "cloud-cuckoo-prerelease"


def test_write_cask_recipes(tmp_path: Path) -> None:
    apps = [_app(), _app(name="Tidal", version=None), _app(name="Tidal", beta=True)]
    written = write_cask_recipes(apps, tmp_path / "casks", prerelease_suffix="-prerelease")
    assert [p.name for p in written] == ["cloud-cuckoo.rb", "tidal-prerelease.rb"]
    assert written[0].read_text(encoding="utf-8") == cask_recipe(apps[0])


@pytest.mark.parametrize("platform, urls, expected", [
    ("macos", ["https://example.org/app.ipa"], True),
    ("ios", [URL], False),
    (None, [URL, "https://example.org/Tool.dmg"], True),
    (None, [URL, "https://example.org/App.ipa"], False),
])
def test_catalog_platform(platform, urls, expected) -> None:
    catalog = AppCatalog(name="App Fair", identifier="net.appfair.catalog", platform=platform,
                         apps=[_app(download_url=url) for url in urls])
    assert catalog.is_platform("macos") is expected


def test_catalog_recipes_only_for_macos_catalogs(tmp_path: Path) -> None:
    mac = AppCatalog(name="App Fair", identifier="net.appfair.catalog", apps=[_app()])
    assert [p.name for p in write_catalog_cask_recipes(mac, tmp_path / "mac")] == ["cloud-cuckoo.rb"]

    ios = AppCatalog(name="App Fair", identifier="net.appfair.ios", platform="ios", apps=[_app()])
    assert write_catalog_cask_recipes(ios, tmp_path / "ios") == []
    assert not (tmp_path / "ios").exists()


def test_catalog_round_trip(tmp_path: Path) -> None:
    catalog = AppCatalog(name="App Fair", identifier="net.appfair.catalog", apps=[_app()])
    path = write_catalog(catalog, tmp_path / "out" / "fairapps.json")

    text = path.read_text(encoding="utf-8")
    assert text.endswith("}\n")
    assert "\\/" not in text
    assert json.loads(text)["apps"][0]["downloadURL"] == URL
    assert read_catalog(path) == catalog

    with pytest.raises(FileExistsError):
        write_catalog(catalog, path, overwrite=False)

    assert read_catalog_if_exists(tmp_path / "missing.json") is None
    assert read_catalog_if_exists(None) is None


def test_catalog_csv(tmp_path: Path) -> None:
    catalog = AppCatalog(name="App Fair", identifier="net.appfair.catalog", apps=[
        _app(categories=["public.app-category.utilities", "public.app-category.weather"],
             stats=AppStats(download_count=12, star_count=3)),
        _app(name="Tidal", beta=True),
    ])
    path = write_catalog_to_csv(catalog, tmp_path / "fairapps.csv")

    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        assert reader.fieldnames == CSV_FIELDS
        rows = list(reader)

    assert rows[0]["download_count"] == "12"
    assert rows[0]["star_count"] == "3"
    assert rows[0]["categories"] == "public.app-category.utilities public.app-category.weather"
    assert rows[0]["beta"] == "False"
    assert rows[1]["beta"] == "True"
    assert rows[1]["download_count"] == ""
