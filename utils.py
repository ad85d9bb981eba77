import hashlib
import json
import math
import os
from pathlib import Path
from typing import Union, Any, List

import yaml

p = Path(__file__).resolve()


def load_env_file(filepath: Union[str, Path] = Path(".env").resolve()) -> bool:
    """
    Load KEY=VALUE lines from an env file into os.environ without overriding
    variables that are already set. Returns False when the file is missing.
    """
    path = Path(filepath)
    if not path.is_file():
        return False

    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#') or '=' not in line:
                continue
            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                value = value[1:-1]
            # literal "\n" sequences allow list values on one line
            os.environ.setdefault(key, value.replace("\\n", "\n"))
    return True


def read_newline_list(name: str) -> List[str]:
    """
    Read an environment variable holding one value per line.
    """
    raw = os.getenv(name, "")
    return [line.strip() for line in raw.splitlines() if line.strip()]


def read_json_file(json_path: Union[str, Path], encoding: str = "utf-8") -> Any:
    """
    Read and parse a JSON file.

    Returns:
        The parsed JSON content (usually a dict or list).

    Raises:
        FileNotFoundError: if the file doesn't exist
        ValueError: if the JSON is invalid
        OSError: for other file I/O errors
    """
    path = Path(json_path)

    try:
        with path.open("r", encoding=encoding) as f:
            return json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"JSON file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path} (line {e.lineno}, col {e.colno}): {e.msg}") from e


def read_yaml_file(yaml_path: Union[str, Path], encoding: str = "utf-8") -> Any:
    """
    Read and parse a YAML file. JSON files parse too.
    """
    path = Path(yaml_path)

    try:
        with path.open("r", encoding=encoding) as f:
            return yaml.safe_load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"YAML file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e


def hash_file(path: Union[str, Path]) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def _coerce_float(v: Any, default: float = 0.0) -> float:
    try:
        f = float(v)
        if math.isfinite(f):
            return f
        return default
    except (TypeError, ValueError):
        return default


def _coerce_int(v: Any, default: int = 0) -> int:
    if isinstance(v, str):
        # US formatted counts such as "34,530"
        v = v.replace(",", "").strip()
    try:
        return int(v)
    except (TypeError, ValueError):
        return default
