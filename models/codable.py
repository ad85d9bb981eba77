from __future__ import annotations

import dataclasses
import re
import typing
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Any, ClassVar, Dict, Optional, Type, TypeVar

T = TypeVar("T", bound="JSONModel")

# ----------------------------
# Dates
# ----------------------------

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date(raw: Any) -> Optional[datetime]:
    """
    Lenient ISO-8601 parsing: accepts a trailing "Z", fractional seconds and
    date-only values. Naive values are taken as UTC.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=timezone.utc)
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day, tzinfo=timezone.utc)
    s = str(raw).strip()
    if _DATE_ONLY.match(s):
        return datetime.strptime(s, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def format_date(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


# ----------------------------
# Field keys
# ----------------------------

def json_key(key: str, default: Any = None, default_factory: Any = None) -> Any:
    """
    A dataclass field whose JSON key is not the camelCase of its attribute name.
    """
    if default_factory is not None:
        return dataclasses.field(default_factory=default_factory, metadata={"json_key": key})
    return dataclasses.field(default=default, metadata={"json_key": key})


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


# ----------------------------
# Model base
# ----------------------------

class JSONModel:
    """
    Mixin for dataclasses that map to JSON objects.

    Attribute names are snake_case and map to camelCase keys unless the field
    declares its own key with json_key() or the class turns camel_keys off.
    None values are omitted on encode; unknown keys are ignored on decode.
    """

    camel_keys: ClassVar[bool] = True

    @classmethod
    def _key_for(cls, f: dataclasses.Field) -> str:
        if "json_key" in f.metadata:
            return f.metadata["json_key"]
        return camel_case(f.name) if cls.camel_keys else f.name

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            out[self._key_for(f)] = _encode(value)
        return out

    @classmethod
    def from_json(cls: Type[T], data: Any) -> T:
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object for {cls.__name__}, got {type(data).__name__}")
        hints = _type_hints(cls)
        kwargs: Dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            key = cls._key_for(f)
            if key not in data:
                if _is_required(f):
                    raise ValueError(f"Missing key \"{key}\" for {cls.__name__}")
                continue
            value = data[key]
            if value is None and not _is_required(f):
                # null connections and lists fall back to their defaults
                continue
            kwargs[f.name] = _decode(hints[f.name], value)
        return cls(**kwargs)


def _is_required(f: dataclasses.Field) -> bool:
    return f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING


@lru_cache(maxsize=None)
def _type_hints(cls: type) -> Dict[str, Any]:
    return typing.get_type_hints(cls)


def _encode(value: Any) -> Any:
    if isinstance(value, JSONModel):
        return value.to_json()
    if isinstance(value, datetime):
        return format_date(value)
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items() if v is not None}
    return value


def _decode(hint: Any, value: Any) -> Any:
    if value is None:
        return None

    origin = typing.get_origin(hint)
    args = typing.get_args(hint)

    if origin is typing.Union:
        inner = [a for a in args if a is not type(None)]
        return _decode(inner[0], value) if len(inner) == 1 else value
    if origin in (list, typing.List):
        if not isinstance(value, list):
            raise ValueError(f"Expected a JSON array, got {type(value).__name__}")
        return [_decode(args[0], v) for v in value if v is not None] if args else list(value)
    if origin in (dict, typing.Dict):
        if not isinstance(value, dict):
            raise ValueError(f"Expected a JSON object, got {type(value).__name__}")
        return {k: _decode(args[1], v) for k, v in value.items() if v is not None} if args else dict(value)
    if hint is datetime:
        return parse_date(value)
    if isinstance(hint, type) and issubclass(hint, JSONModel):
        return hint.from_json(value)
    if hint is float and isinstance(value, int):
        return float(value)
    return value
