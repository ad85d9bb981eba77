from catalog_builder.attestation_matcher import (
    hashed_url,
    match_attestations,
    parse_seal_comment,
    strip_comment_fence,
)
from fairhub.queries.catalog_forks_query import ForkNode
from models.seal import FairSeal, FairSealAsset, pretty_json
from tests.hub_fakes import comment_json, fork_json, seal_comment

URL = "https://github.com/Cloud-Cuckoo/App/releases/download/1.0.0/Cloud-Cuckoo-macOS.zip"
KEY = b"0123456789abcdef"


def _fork(comments) -> ForkNode:
    return ForkNode.from_json(fork_json("Cloud-Cuckoo", [], comments=comments))


def test_strip_comment_fence() -> None:
    assert strip_comment_fence("```\n{\"a\": 1}\n```\n") == "{\"a\": 1}"
    assert strip_comment_fence("```json\n{}\n```") == "{}"
    assert strip_comment_fence("  {}  ") == "{}"


def test_non_seal_comments_are_ignored() -> None:
    assert parse_seal_comment("Looks good to me!") is None
    assert parse_seal_comment("```\n[1, 2]\n```") is None


def test_only_issuer_comments_are_considered() -> None:
    fork = _fork([
        seal_comment("mallory", {URL: "b" * 64}),
        seal_comment("fairbot", {URL: "a" * 64}),
    ])
    binding = match_attestations(fork, "fairbot")
    assert binding.checksum_for(URL) == "a" * 64
    assert len(binding.seals) == 1


def test_first_attested_checksum_wins() -> None:
    fork = _fork([
        seal_comment("fairbot", {URL: "a" * 64}, core_size=1),
        comment_json("fairbot", "not a seal"),
        seal_comment("fairbot", {URL: "b" * 64}, core_size=2),
    ])
    binding = match_attestations(fork, "fairbot")

    assert binding.checksums[URL] == ["a" * 64, "b" * 64]
    assert binding.checksum_for(URL) == "a" * 64
    assert binding.seal_for(URL).core_size == 1
    assert binding.seal.core_size == 2


def test_unknown_url_has_no_checksum_or_seal() -> None:
    binding = match_attestations(_fork([seal_comment("fairbot", {URL: "a" * 64})]), "fairbot")
    assert binding.checksum_for(URL + ".sig") is None
    assert binding.seal_for(URL + ".sig") is None


def test_signing_key_drops_unauthenticated_seals() -> None:
    signed = FairSeal(assets=[FairSealAsset(url=URL, size=1, sha256="c" * 64)])
    signed.embed_signature(KEY)
    forged = FairSeal(assets=[FairSealAsset(url=URL, size=1, sha256="d" * 64)], signature=signed.signature)

    fork = _fork([
        comment_json("fairbot", pretty_json(forged.to_json())),
        seal_comment("fairbot", {URL: "e" * 64}),
        comment_json("fairbot", "```\n" + pretty_json(signed.to_json()) + "\n```"),
    ])
    binding = match_attestations(fork, "fairbot", signing_key=KEY)

    assert binding.checksum_for(URL) == "c" * 64
    assert len(binding.seals) == 1


def test_hashed_url() -> None:
    assert hashed_url(URL, "abc") == URL + "#abc"
    assert hashed_url(URL, None) == URL
