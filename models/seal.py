from __future__ import annotations

import base64
import hashlib
import hmac
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from fairhub.errors import NoEmbeddedSignatureError, SignatureMismatchError
from models.catalog import AppCatalogItem, AppPermission
from models.codable import JSONModel

FAIRSEAL_GENERATOR_VERSION = "0.1.0"


@dataclass
class FairSealAsset(JSONModel):
    url: str
    size: int
    sha256: str


@dataclass
class AppMetadata(JSONModel):
    """
    Store-style metadata carried under the seal's "app" metadata key.
    Keys are snake_case on the wire.
    """
    camel_keys = False

    name: Optional[str] = None
    subtitle: Optional[str] = None
    description: Optional[str] = None
    keywords: Optional[str] = None
    release_notes: Optional[str] = None
    marketing_url: Optional[str] = None
    support_url: Optional[str] = None
    privacy_url: Optional[str] = None
    copyright: Optional[str] = None
    localizations: Optional[Dict[str, AppMetadata]] = None


@dataclass
class FairSeal(JSONModel):
    """
    An attestation that the listed assets were reproduced from trusted source.

    The signature is a base64 HMAC-SHA256 over the canonical JSON of the seal
    with the signature itself removed.
    """
    assets: List[FairSealAsset] = field(default_factory=list)
    generator_version: Optional[str] = FAIRSEAL_GENERATOR_VERSION
    app_source: Optional[AppCatalogItem] = None
    core_size: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
    permissions: Optional[List[AppPermission]] = None
    signature: Optional[str] = None
    tint: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "FairSeal":
        return cls.from_json(json.loads(text))

    @property
    def app_org(self) -> Optional[str]:
        """
        The organization that published the artifacts: the first path
        component of the first asset URL.
        """
        if not self.assets:
            return None
        parts = [part for part in urlparse(self.assets[0].url).path.split("/") if part]
        return parts[0] if parts else None

    def parse_app_metadata(self) -> Optional[AppMetadata]:
        app = (self.metadata or {}).get("app")
        if app is None:
            return None
        return AppMetadata.from_json(app)

    def checksums(self) -> Dict[str, str]:
        return {asset.url: asset.sha256 for asset in self.assets}

    # ----------------------------
    # Signing
    # ----------------------------

    def canonical_bytes(self) -> bytes:
        body = self.to_json()
        body.pop("signature", None)
        return canonical_json(body).encode("utf-8")

    def sign(self, key: bytes) -> str:
        digest = hmac.new(key, self.canonical_bytes(), hashlib.sha256).digest()
        return base64.b64encode(digest).decode("ascii")

    def embed_signature(self, key: bytes) -> None:
        self.signature = None
        self.signature = self.sign(key)

    def authenticate_signature(self, key: bytes) -> None:
        if not self.signature:
            raise NoEmbeddedSignatureError("No embedded signature in fairseal")
        expected = self.sign(key)
        if not hmac.compare_digest(expected, self.signature):
            raise SignatureMismatchError("Fairseal signature does not match its contents")


def canonical_json(value: Any) -> str:
    """
    Sorted keys, compact separators and escaped slashes, matching the
    encoding seals are signed with.
    """
    text = json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return text.replace("/", "\\/")


def pretty_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, indent=2, ensure_ascii=False)
