from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, List, Union

from models.catalog import AppCatalog, AppCatalogItem


CSV_FIELDS: List[str] = [
    "name",
    "bundle_identifier",
    "version",
    "version_date",
    "beta",
    "developer_name",
    "download_url",
    "sha256",
    "size",
    "download_count",
    "impression_count",
    "star_count",
    "fork_count",
    "categories",
]


def _app_to_row(app: AppCatalogItem) -> dict:
    """
    Flatten an AppCatalogItem into a CSV row; stats and categories are
    folded into plain columns.
    """
    stats = app.stats
    return {
        "name": app.name,
        "bundle_identifier": app.bundle_identifier,
        "version": app.version,
        "version_date": app.version_date.isoformat() if app.version_date else None,
        "beta": bool(app.beta),
        "developer_name": app.developer_name,
        "download_url": app.download_url,
        "sha256": app.sha256,
        "size": app.size,
        "download_count": app.download_count,
        "impression_count": app.impression_count,
        "star_count": stats.star_count if stats else None,
        "fork_count": stats.fork_count if stats else None,
        "categories": " ".join(app.categories or []),
    }


def write_catalog_items_to_csv(
    apps: Iterable[AppCatalogItem],
    csv_path: Union[str, Path],
    *,
    overwrite: bool = True,
    encoding: str = "utf-8",
) -> Path:
    """
    Write catalog apps to a CSV file.

    Args:
        apps: Iterable of AppCatalogItem
        csv_path: output CSV path
        overwrite: overwrite existing file if True, else raise FileExistsError
    """
    out_path = Path(csv_path).expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)

    if out_path.exists() and not overwrite:
        raise FileExistsError(f"CSV already exists: {out_path}")

    with out_path.open("w", newline="", encoding=encoding) as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for app in apps:
            writer.writerow(_app_to_row(app))

    return out_path


def write_catalog_to_csv(
    catalog: AppCatalog,
    csv_path: Union[str, Path],
    *,
    overwrite: bool = True,
    encoding: str = "utf-8",
) -> Path:
    """
    Convenience wrapper for AppCatalog.
    """
    return write_catalog_items_to_csv(
        apps=catalog.apps,
        csv_path=csv_path,
        overwrite=overwrite,
        encoding=encoding,
    )
