from __future__ import annotations

from pathlib import Path

import pytest

from fairhub.errors import (
    ArchiveMismatchError,
    ContentMismatchError,
    InvalidRootPathError,
    MissingPropertyListError,
)
from fairseal.binary_diff import byte_difference, is_executable
from fairseal.build_comparator import compare_archives, is_tolerated_resource
from tests.archive_fakes import APP, BINARY, INFO, mac_entries, write_zip


def test_identical_builds_match(tmp_path: Path) -> None:
    trusted = write_zip(tmp_path / "trusted.zip", mac_entries())
    untrusted = write_zip(tmp_path / "untrusted.zip", mac_entries(**{
        f"{APP}/Contents/_CodeSignature/CodeResources": b"another signature",
        f"{APP}/Contents/Resources/Assets.car": b"recompiled assets",
        f"{APP}/Contents/Resources/en.lproj/Main.storyboardc/Info.plist": b"recompiled storyboard",
    }))

    result = compare_archives(trusted, untrusted)

    assert result.core_size == len(BINARY)
    assert result.info_plist["CFBundleIdentifier"] == "app.Cloud-Cuckoo"
    assert result.entry_count == 5
    assert len(result.tolerated) == 2


def test_entry_counts_must_match(tmp_path: Path) -> None:
    trusted = write_zip(tmp_path / "trusted.zip", mac_entries())
    untrusted = write_zip(tmp_path / "untrusted.zip", mac_entries(**{f"{APP}/Contents/Resources/extra": b"x"}))
    with pytest.raises(ArchiveMismatchError):
        compare_archives(trusted, untrusted)


def test_entry_paths_must_match(tmp_path: Path) -> None:
    trusted = write_zip(tmp_path / "trusted.zip", mac_entries())
    renamed = mac_entries(**{f"{APP}/Contents/Resources/readme.txt": None,
                             f"{APP}/Contents/Resources/notes.txt": b"hello"})
    untrusted = write_zip(tmp_path / "untrusted.zip", renamed)
    with pytest.raises(ArchiveMismatchError):
        compare_archives(trusted, untrusted)


def test_archive_needs_a_single_app_root(tmp_path: Path) -> None:
    entries = mac_entries(**{"Other.app/Contents/Info.plist": INFO})
    trusted = write_zip(tmp_path / "trusted.zip", entries)
    untrusted = write_zip(tmp_path / "untrusted.zip", entries)
    with pytest.raises(InvalidRootPathError) as exc_info:
        compare_archives(trusted, untrusted)
    assert exc_info.value.roots == [APP, "Other.app"]


def test_archive_root_must_be_an_app(tmp_path: Path) -> None:
    entries = {"Cloud Cuckoo/Info.plist": INFO}
    trusted = write_zip(tmp_path / "trusted.zip", entries)
    untrusted = write_zip(tmp_path / "untrusted.zip", entries)
    with pytest.raises(InvalidRootPathError):
        compare_archives(trusted, untrusted)


def test_binary_differences_within_threshold_are_tolerated(tmp_path: Path) -> None:
    changed = BINARY[:50] + b"\x99\x98" + BINARY[52:]
    trusted = write_zip(tmp_path / "trusted.zip", mac_entries())
    untrusted = write_zip(tmp_path / "untrusted.zip", mac_entries(binary=changed))

    result = compare_archives(trusted, untrusted, permitted_diffs=10)
    assert result.tolerated == [f"{APP}/Contents/MacOS/Cloud Cuckoo"]

    with pytest.raises(ContentMismatchError) as exc_info:
        compare_archives(trusted, untrusted)
    assert exc_info.value.path == f"{APP}/Contents/MacOS/Cloud Cuckoo"
    assert exc_info.value.insertions == 2
    assert exc_info.value.removals == 2

    with pytest.raises(ContentMismatchError):
        compare_archives(trusted, untrusted, permitted_diffs=4)


def test_resource_differences_are_never_tolerated(tmp_path: Path) -> None:
    trusted = write_zip(tmp_path / "trusted.zip", mac_entries())
    untrusted = write_zip(tmp_path / "untrusted.zip", mac_entries(**{f"{APP}/Contents/Resources/readme.txt": b"hellp"}))
    with pytest.raises(ContentMismatchError):
        compare_archives(trusted, untrusted, permitted_diffs=1000)


def test_signature_stripper_is_applied_to_differing_binaries(tmp_path: Path) -> None:
    trusted = write_zip(tmp_path / "trusted.zip", mac_entries(binary=BINARY + b"SIG-trusted"))
    untrusted = write_zip(tmp_path / "untrusted.zip", mac_entries(binary=BINARY + b"SIG-untrusted-longer"))
    stripped = []

    def strip(payload: bytes) -> bytes:
        stripped.append(payload)
        return payload[:payload.index(b"SIG-")]

    result = compare_archives(trusted, untrusted, strip_signature=strip)
    assert len(stripped) == 2
    assert result.core_size == len(BINARY) + len(b"SIG-trusted")


def test_missing_info_plist(tmp_path: Path) -> None:
    entries = mac_entries(**{f"{APP}/Contents/Info.plist": None})
    trusted = write_zip(tmp_path / "trusted.zip", entries)
    untrusted = write_zip(tmp_path / "untrusted.zip", entries)
    with pytest.raises(MissingPropertyListError):
        compare_archives(trusted, untrusted)


def test_ipa_layout(tmp_path: Path) -> None:
    entries = {
        "Payload/": b"",
        f"Payload/{APP}/Info.plist": INFO,
        f"Payload/{APP}/Cloud Cuckoo": BINARY,
    }
    trusted = write_zip(tmp_path / "trusted.ipa", entries)
    untrusted = write_zip(tmp_path / "untrusted.ipa", entries)

    result = compare_archives(trusted, untrusted)
    assert result.core_size == len(BINARY)
    assert result.info_plist["CFBundleName"] == "Cloud Cuckoo"


def test_tolerated_resources() -> None:
    assert is_tolerated_resource(f"{APP}/Contents/Resources/Assets.car")
    assert is_tolerated_resource(f"{APP}/Contents/Resources/Base.lproj/MainMenu.nib")
    assert is_tolerated_resource(f"{APP}/Contents/Resources/Main.storyboardc/Info.plist")
    assert not is_tolerated_resource(f"{APP}/Contents/Resources/readme.txt")


def test_byte_difference_counts() -> None:
    assert byte_difference(b"abcdef", b"abcdef").total == 0
    diff = byte_difference(b"abcdef", b"abXdef")
    assert (diff.insertions, diff.removals) == (1, 1)
    diff = byte_difference(b"abcdefgh", b"abcdef")
    assert (diff.insertions, diff.removals) == (2, 0)


def test_executable_magic() -> None:
    assert is_executable(bytes.fromhex("cafebabe") + b"rest")
    assert is_executable(bytes.fromhex("cffaedfe0c000001"))
    assert not is_executable(b"#!/bin/sh")
