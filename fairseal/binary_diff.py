import difflib
from typing import NamedTuple

MACHO_MAGICS = (
    bytes.fromhex("feedface"),  # 32-bit
    bytes.fromhex("feedfacf"),  # 64-bit
    bytes.fromhex("cafebabe"),  # universal
    bytes.fromhex("cffaedfe0c000001"),  # dylib
)


class ByteDifference(NamedTuple):
    insertions: int
    removals: int

    @property
    def total(self) -> int:
        return self.insertions + self.removals


def is_executable(payload: bytes) -> bool:
    return any(payload.startswith(magic) for magic in MACHO_MAGICS)


def byte_difference(trusted: bytes, untrusted: bytes) -> ByteDifference:
    """
    Count the byte insertions and removals that turn the untrusted payload
    into the trusted one.
    """
    if trusted == untrusted:
        return ByteDifference(0, 0)

    matcher = difflib.SequenceMatcher(None, untrusted, trusted, autojunk=False)
    insertions = 0
    removals = 0
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in ("replace", "delete"):
            removals += i2 - i1
        if tag in ("replace", "insert"):
            insertions += j2 - j1
    return ByteDifference(insertions, removals)
