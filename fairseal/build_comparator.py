from __future__ import annotations

import hashlib
import plistlib
import shutil
import subprocess
import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from fairhub.errors import (
    ArchiveMismatchError,
    ContentMismatchError,
    InvalidRootPathError,
    MissingPropertyListError,
)
from fairseal.binary_diff import byte_difference, is_executable
from loggers.fairseal_logger import fairseal_logger as logger

APP_SUFFIX = ".app"

# these can be in either _CodeSignature or Contents
SIGNATURE_SUFFIXES = (
    "/CodeSignature",
    "/CodeResources",
    "/CodeDirectory",
    "/CodeRequirements-1",
)

SignatureStripper = Callable[[bytes], bytes]


@dataclass
class ArchiveComparison:
    core_size: int = 0
    info_plist: Optional[Dict[str, Any]] = None
    entry_count: int = 0
    tolerated: List[str] = field(default_factory=list)


def comparable_entries(archive: zipfile.ZipFile) -> List[zipfile.ZipInfo]:
    return [
        entry for entry in archive.infolist()
        if not entry.filename.rstrip("/").endswith(SIGNATURE_SUFFIXES)
    ]


def archive_root(entries: List[zipfile.ZipInfo]) -> str:
    """
    The single top-level .app folder; .ipa archives nest it under Payload/.
    """
    roots = set()
    for entry in entries:
        parts = [part for part in entry.filename.split("/") if part]
        while parts and parts[0] == "Payload":
            parts = parts[1:]
        if parts:
            roots.add(parts[0])

    if len(roots) != 1:
        raise InvalidRootPathError(roots)
    root = next(iter(roots))
    if not root.endswith(APP_SUFFIX):
        raise InvalidRootPathError(roots)
    return root


def is_tolerated_resource(path: str) -> bool:
    """
    Compiled resources that are not deterministically built.
    """
    parts = [part for part in path.split("/") if part]
    if parts and parts[-1] == "Assets.car":
        return True
    if path.endswith(".nib"):
        return True
    if len(parts) > 1 and parts[-2].endswith(".storyboardc"):
        return True
    return False


def compare_archives(
    trusted: Union[str, Path],
    untrusted: Union[str, Path],
    permitted_diffs: Optional[int] = None,
    strip_signature: Optional[SignatureStripper] = None,
) -> ArchiveComparison:
    """
    Verify that the untrusted archive holds the same content as the trusted
    build, entry by entry.

    Entries whose CRCs match pass directly. Mismatched compiled resources are
    tolerated. Executables that differ are optionally stripped of their code
    signatures, and any residual byte differences in an app binary are
    tolerated only while they stay under permitted_diffs.

    Returns the core size (the main executable's uncompressed size) and the
    parsed Info.plist of the trusted archive.
    """
    result = ArchiveComparison()

    with zipfile.ZipFile(trusted) as trusted_archive, zipfile.ZipFile(untrusted) as untrusted_archive:
        trusted_entries = comparable_entries(trusted_archive)
        untrusted_entries = comparable_entries(untrusted_archive)

        if len(trusted_entries) != len(untrusted_entries):
            raise ArchiveMismatchError(
                f"Trusted and untrusted artifact content counts do not match "
                f"({len(trusted_entries)} vs. {len(untrusted_entries)})")

        root = archive_root(trusted_entries)
        app_name = root[:-len(APP_SUFFIX)]

        # TODO: read the executable name from CFBundleExecutable
        executable_paths = (
            f"{app_name}.app/Contents/MacOS/{app_name}",
            f"Payload/{app_name}.app/{app_name}",
        )
        info_paths = (
            f"{app_name}.app/Contents/Info.plist",
            f"Payload/{app_name}.app/Info.plist",
        )

        for trusted_entry, untrusted_entry in zip(trusted_entries, untrusted_entries):
            path = trusted_entry.filename
            if path != untrusted_entry.filename:
                raise ArchiveMismatchError(
                    f"Trusted and untrusted artifact content paths do not match: "
                    f"{path} vs. {untrusted_entry.filename}")
            result.entry_count += 1

            is_main_binary = path in executable_paths
            if is_main_binary:
                result.core_size = trusted_entry.file_size

            if path in info_paths:
                try:
                    result.info_plist = plistlib.loads(trusted_archive.read(trusted_entry))
                except (plistlib.InvalidFileException, ValueError) as e:
                    raise ArchiveMismatchError(f"Error parsing plist entry {path}: {e}") from e

            if trusted_entry.CRC == untrusted_entry.CRC:
                continue

            logger.info(f"checking mismatched entry: {path}")

            if is_tolerated_resource(path):
                result.tolerated.append(path)
                continue

            trusted_payload = trusted_archive.read(trusted_entry)
            untrusted_payload = untrusted_archive.read(untrusted_entry)

            is_app_binary = is_main_binary or is_executable(trusted_payload)

            if is_app_binary and strip_signature is not None and trusted_payload != untrusted_payload:
                logger.info(f"stripping code signatures: {path}")
                trusted_payload = strip_signature(trusted_payload)
                untrusted_payload = strip_signature(untrusted_payload)

            if trusted_payload == untrusted_payload:
                continue

            logger.info(f"scanning payload differences: {path} "
                        f"trusted: {hashlib.sha256(trusted_payload).hexdigest()} "
                        f"untrusted: {hashlib.sha256(untrusted_payload).hexdigest()}")
            diff = byte_difference(trusted_payload, untrusted_payload)
            if diff.total == 0:
                continue

            error = ContentMismatchError(path, diff.insertions, diff.removals, permitted_diffs)
            if is_app_binary and permitted_diffs is not None and diff.total < permitted_diffs:
                logger.info(f"tolerating {diff.total} differences for: {error}")
                result.tolerated.append(path)
                continue
            raise error

    if result.info_plist is None:
        raise MissingPropertyListError()

    return result


def codesign_stripper() -> Optional[SignatureStripper]:
    """
    A signature stripper backed by `codesign --remove-signature`, or None
    where codesign is unavailable.
    """
    codesign = shutil.which("codesign")
    if codesign is None:
        return None

    def strip(payload: bytes) -> bytes:
        with tempfile.TemporaryDirectory(prefix="fairbinary_") as tmp:
            binary = Path(tmp, "binary")
            binary.write_bytes(payload)
            cp = subprocess.run([codesign, "--remove-signature", str(binary)], text=True, capture_output=True)
            if cp.returncode != 0:
                raise RuntimeError(
                    "Command failed.\n"
                    f"Exit code: {cp.returncode}\n"
                    f"--- stderr ---\n{cp.stderr}\n"
                )
            return binary.read_bytes()

    return strip
