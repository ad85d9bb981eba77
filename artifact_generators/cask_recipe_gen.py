from pathlib import Path
from typing import Iterable, List, Optional, Union

from models.catalog import AppCatalog, AppCatalogItem
from loggers.casks_logger import casks_logger as logger

CATALOG_APP_ORG = "App-Fair"


def cask_name(app: AppCatalogItem, prerelease_suffix: Optional[str] = None) -> Optional[str]:
    name = app.name.replace(" ", "-").lower()
    if app.beta:
        if prerelease_suffix is None:
            return None
        name += prerelease_suffix
    return name


def cask_recipe(app: AppCatalogItem, prerelease_suffix: Optional[str] = None) -> Optional[str]:
    """
    Render the Homebrew cask recipe for a catalog app, or None when the app
    has no version or checksum (or is a beta and no prerelease suffix is given).
    """
    hyphen_name = app.name.replace(" ", "-")
    if not app.version:
        logger.info(f"no version for app: {hyphen_name}")
        return None
    if not app.sha256:
        logger.info(f"no hash for app: {hyphen_name}")
        return None

    name = cask_name(app, prerelease_suffix)
    if name is None:
        return None

    bundle = "app." + hyphen_name
    is_catalog_app = hyphen_name == CATALOG_APP_ORG

    # apps other than the catalog browser install under "/Applications/App Fair/"
    install_prefix = "" if is_catalog_app else CATALOG_APP_ORG.replace("-", " ") + "/"
    dependency = "" if is_catalog_app else f'depends_on cask: "{CATALOG_APP_ORG.lower()}"'
    description = (app.subtitle or app.name).replace('"', "'")
    download_url = app.download_url.replace(f"/{app.version}/", "/#{version}/")
    repo_base = f"github.com/{hyphen_name}/"

    return f'''cask "{name}" do
  version "{app.version}"
  sha256 "{app.sha256}"

  url "{download_url}",
      verified: "{repo_base}"
  name "{app.name}"
  desc "{description}"
  homepage "https://{repo_base}App/"

  depends_on macos: ">= :monterey"
  {dependency}

  app "{app.name}.app", target: "{install_prefix}{app.name}.app"
  binary "#{{appdir}}/{install_prefix}{app.name}.app/Contents/MacOS/{app.name}", target: "{name}"

  postflight do
    system "xattr", "-r", "-d", "com.apple.quarantine", "#{{appdir}}/{install_prefix}{app.name}.app"
  end

  uninstall quit: "{bundle}"
  zap trash: [
    "~/Library/Caches/{bundle}",
    "~/Library/Containers/{bundle}",
    "~/Library/Preferences/{bundle}.plist",
    "~/Library/Application Scripts/{bundle}",
    "~/Library/Saved Application State/{bundle}.savedState",
  ]
end
'''


def write_cask_recipes(
    apps: Iterable[AppCatalogItem],
    casks_dir: Union[str, Path],
    prerelease_suffix: Optional[str] = None,
) -> List[Path]:
    out_dir = Path(casks_dir).expanduser().resolve()
    out_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for app in apps:
        recipe = cask_recipe(app, prerelease_suffix)
        if recipe is None:
            continue
        path = Path(out_dir, cask_name(app, prerelease_suffix) + ".rb")
        path.write_text(recipe, encoding="utf-8")
        written.append(path)

    logger.info(f"wrote {len(written)} cask recipes to {out_dir}")
    return written


def write_catalog_cask_recipes(
    catalog: AppCatalog,
    casks_dir: Union[str, Path],
    prerelease_suffix: Optional[str] = None,
) -> List[Path]:
    """
    Cask recipes install macOS apps only; other catalogs write nothing.
    """
    if not catalog.is_platform("macos"):
        logger.warning(f"skipping cask recipes for non-macOS catalog: {catalog.identifier}")
        return []
    return write_cask_recipes(catalog.apps, casks_dir, prerelease_suffix)
