from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from fairhub.errors import SignableError
from fairhub.queries.catalog_forks_query import CommentNode, ForkNode
from models.seal import FairSeal
from loggers.catalog_logger import catalog_logger as logger

FENCE_CHARACTERS = "` \t\r\n"


@dataclass
class AttestationBinding:
    """
    Checksums attested for each artifact URL, in the order the attestations
    were posted. The first checksum seen for a URL is the canonical one; later
    conflicting values are kept but never replace it.
    """
    checksums: Dict[str, List[str]] = field(default_factory=dict)
    seals: List[FairSeal] = field(default_factory=list)

    @property
    def seal(self) -> Optional[FairSeal]:
        return self.seals[-1] if self.seals else None

    def add(self, seal: FairSeal) -> None:
        for asset in seal.assets:
            known = self.checksums.setdefault(asset.url, [])
            if asset.sha256 not in known:
                known.append(asset.sha256)
        self.seals.append(seal)

    def checksum_for(self, url: str) -> Optional[str]:
        known = self.checksums.get(url)
        return known[0] if known else None

    def seal_for(self, url: str) -> Optional[FairSeal]:
        """
        The seal that attested the canonical checksum for the URL.
        """
        checksum = self.checksum_for(url)
        if checksum is None:
            return None
        for seal in self.seals:
            if seal.checksums().get(url) == checksum:
                return seal
        return None


def strip_comment_fence(body: str) -> str:
    text = body.strip(FENCE_CHARACTERS)
    # a "```json" fence leaves its info string behind
    if text.startswith("json") and text[4:5].isspace():
        text = text[4:].strip(FENCE_CHARACTERS)
    return text


def parse_seal_comment(body: str) -> Optional[FairSeal]:
    """
    Parse a fairseal out of a pull-request comment, or None when the comment
    is not one. Comments can hold anything, so failures are only logged.
    """
    try:
        return FairSeal.parse(strip_comment_fence(body))
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        logger.debug(f"error parsing seal: {e}")
        return None


def issuer_comments(fork: ForkNode, issuer: str) -> Iterable[CommentNode]:
    for pr in fork.pull_requests:
        for comment in pr.comments.nodes:
            if comment.author is not None and comment.author.login == issuer:
                yield comment


def match_attestations(fork: ForkNode, issuer: str, signing_key: Optional[bytes] = None) -> AttestationBinding:
    """
    Collect the fairseals the issuer posted on a fork's closed pull requests.
    With a signing key, seals whose signature does not authenticate are dropped.
    """
    binding = AttestationBinding()
    for comment in issuer_comments(fork, issuer):
        seal = parse_seal_comment(comment.body_text)
        if seal is None:
            continue
        if signing_key is not None:
            try:
                seal.authenticate_signature(signing_key)
            except SignableError as e:
                logger.warning(f"{fork.name_with_owner}: ignoring fairseal: {e}")
                continue
        binding.add(seal)
    return binding


def hashed_url(url: str, checksum: Optional[str]) -> str:
    return f"{url}#{checksum}" if checksum else url
