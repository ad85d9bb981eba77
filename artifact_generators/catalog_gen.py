from pathlib import Path
from typing import Optional, Union

import utils
from models.catalog import AppCatalog
from models.seal import FairSeal, pretty_json


def read_catalog(catalog_path: Union[str, Path]) -> AppCatalog:
    return AppCatalog.from_json(utils.read_json_file(catalog_path))


def write_json_artifact(
    json_text: str,
    output_path: Union[str, Path],
    *,
    overwrite: bool = True,
    encoding: str = "utf-8",
) -> Path:
    """
    Write a JSON document, creating parent folders as needed.

    Args:
        json_text: the serialized document
        output_path: output file path
        overwrite: overwrite existing file if True, else raise FileExistsError
    """
    out_path = Path(output_path).expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)

    if out_path.exists() and not overwrite:
        raise FileExistsError(f"Output already exists: {out_path}")

    with out_path.open("w", encoding=encoding) as f:
        f.write(json_text)
        f.write("\n")

    return out_path


def write_catalog(catalog: AppCatalog, output_path: Union[str, Path], *, overwrite: bool = True) -> Path:
    """
    Pretty, key-sorted JSON with slashes left unescaped.
    """
    return write_json_artifact(pretty_json(catalog.to_json()), output_path, overwrite=overwrite)


def write_fairseal(seal: FairSeal, output_path: Union[str, Path], *, overwrite: bool = True) -> Path:
    return write_json_artifact(pretty_json(seal.to_json()), output_path, overwrite=overwrite)


def read_catalog_if_exists(catalog_path: Optional[Union[str, Path]]) -> Optional[AppCatalog]:
    if catalog_path is None or not Path(catalog_path).is_file():
        return None
    return read_catalog(catalog_path)
