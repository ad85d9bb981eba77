from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import utils
from models.codable import JSONModel


@dataclass
class CaskItem(JSONModel):
    """
    A single record of the Homebrew cask index (cask.json).
    """
    camel_keys = False

    token: str
    version: Optional[str] = None
    name: List[str] = field(default_factory=list)
    desc: Optional[str] = None
    homepage: Optional[str] = None
    url: Optional[str] = None
    full_token: Optional[str] = None
    tap: Optional[str] = None
    appcast: Optional[str] = None
    sha256: Optional[str] = None
    caveats: Optional[str] = None
    auto_updates: Optional[bool] = None
    artifacts: Optional[List[Any]] = None

    @property
    def checksum(self) -> Optional[str]:
        # "no_check" and other placeholders are not real digests
        if self.sha256 and len(self.sha256) == 64 and self.sha256 != "no_check":
            return self.sha256
        return None


@dataclass
class CaskStat:
    cask: Optional[str]
    count: int


@dataclass
class CaskStats:
    """
    Install analytics for a window, e.g. analytics/cask-install/homebrew-cask/30d.json.
    """
    category: Optional[str] = None
    total_items: int = 0
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    total_count: int = 0
    formulae: Dict[str, List[CaskStat]] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "CaskStats":
        formulae: Dict[str, List[CaskStat]] = {}
        raw = data.get("formulae") or data.get("items") or {}
        if isinstance(raw, dict):
            for token, stats in raw.items():
                formulae[token] = [
                    CaskStat(cask=s.get("cask"), count=utils._coerce_int(s.get("count"), 0))
                    for s in stats or [] if isinstance(s, dict)
                ]
        elif isinstance(raw, list):
            # "items" form: a flat list of {cask, count}
            for s in raw:
                if isinstance(s, dict) and s.get("cask"):
                    formulae.setdefault(s["cask"], []).append(
                        CaskStat(cask=s["cask"], count=utils._coerce_int(s.get("count"), 0)))

        return cls(
            category=data.get("category"),
            total_items=utils._coerce_int(data.get("total_items"), 0),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            total_count=utils._coerce_int(data.get("total_count"), 0),
            formulae=formulae,
        )

    def download_count(self, token: str) -> int:
        stats = self.formulae.get(token) or []
        return stats[0].count if stats else 0
