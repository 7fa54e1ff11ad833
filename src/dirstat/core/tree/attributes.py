"""Compact encoding of filesystem attributes into a single byte.

Bitmask of the packed value::

    7 6 5 4 3 2 1 0
    | | | | | | | |__ read-only        (0x01)
    | | | | | | |____ hidden           (0x02)
    | | | | | |______ system           (0x04)
    | | | | |________ archive          (0x08)
    | | | |__________ reparse point    (0x10)
    | | |____________ compressed       (0x20)
    | |______________ encrypted        (0x40)
    |________________ invalid          (0x80)

Raw values use the Windows ``FILE_ATTRIBUTE_*`` bits so that
``os.stat_result.st_file_attributes`` can be packed directly.
"""

from __future__ import annotations

import stat as statmod
from enum import IntFlag
from typing import Final


class FileAttribute(IntFlag):
    """Raw Windows file attribute bits."""

    READONLY = 0x0001
    HIDDEN = 0x0002
    SYSTEM = 0x0004
    DIRECTORY = 0x0010
    ARCHIVE = 0x0020
    NORMAL = 0x0080
    REPARSE_POINT = 0x0400
    COMPRESSED = 0x0800
    ENCRYPTED = 0x4000


INVALID_FILE_ATTRIBUTES: Final[int] = 0xFFFFFFFF
INVALID_PACKED: Final[int] = 0x80

PACKED_READONLY: Final[int] = 0x01
PACKED_HIDDEN: Final[int] = 0x02
PACKED_SYSTEM: Final[int] = 0x04
PACKED_ARCHIVE: Final[int] = 0x08
PACKED_REPARSE_POINT: Final[int] = 0x10
PACKED_COMPRESSED: Final[int] = 0x20
PACKED_ENCRYPTED: Final[int] = 0x40

_LOW_BITS: Final[int] = int(FileAttribute.READONLY | FileAttribute.HIDDEN | FileAttribute.SYSTEM)


def pack_attributes(raw: int) -> int:
    """Encode raw attribute bits into one byte.

    Args:
        raw: Windows ``FILE_ATTRIBUTE_*`` bits, or ``INVALID_FILE_ATTRIBUTES``

    Returns:
        Packed attribute byte

    Examples:
        >>> pack_attributes(FileAttribute.HIDDEN | FileAttribute.ARCHIVE)
        10
        >>> pack_attributes(INVALID_FILE_ATTRIBUTES)
        128
    """
    if raw == INVALID_FILE_ATTRIBUTES:
        return INVALID_PACKED

    packed = raw & _LOW_BITS
    # archive 0x20 -> 0x08
    packed |= (raw & FileAttribute.ARCHIVE) >> 2
    # reparse point 0x400 -> 0x10, compressed 0x800 -> 0x20
    packed |= (raw & (FileAttribute.REPARSE_POINT | FileAttribute.COMPRESSED)) >> 6
    # encrypted 0x4000 -> 0x40
    packed |= (raw & FileAttribute.ENCRYPTED) >> 8
    return int(packed) & 0xFF


def unpack_attributes(packed: int) -> int:
    """Decode a byte produced by ``pack_attributes``."""
    if packed & INVALID_PACKED:
        return INVALID_FILE_ATTRIBUTES

    raw = packed & _LOW_BITS
    raw |= (packed & PACKED_ARCHIVE) << 2
    raw |= (packed & (PACKED_REPARSE_POINT | PACKED_COMPRESSED)) << 6
    raw |= (packed & PACKED_ENCRYPTED) << 8
    return int(raw)


def sort_attributes(packed: int) -> int:
    """Rank packed attributes in R, H, S, A, C, E priority order."""
    if packed & INVALID_PACKED:
        return 0

    rank = 0
    rank += 1_000_000 if packed & PACKED_READONLY else 0
    rank += 100_000 if packed & PACKED_HIDDEN else 0
    rank += 10_000 if packed & PACKED_SYSTEM else 0
    rank += 1_000 if packed & PACKED_ARCHIVE else 0
    rank += 100 if packed & PACKED_COMPRESSED else 0
    rank += 10 if packed & PACKED_ENCRYPTED else 0
    return rank


def format_attributes(packed: int) -> str:
    """Render packed attributes as the classic ``RHSACE`` letters."""
    if packed & INVALID_PACKED:
        return "?????"

    letters = [
        ("R", PACKED_READONLY),
        ("H", PACKED_HIDDEN),
        ("S", PACKED_SYSTEM),
        ("A", PACKED_ARCHIVE),
        ("C", PACKED_COMPRESSED),
        ("E", PACKED_ENCRYPTED),
    ]
    return "".join(letter for letter, bit in letters if packed & bit)


def attributes_from_stat(name: str, st_mode: int, file_attributes: int | None = None) -> int:
    """Build raw attribute bits for an entry.

    Uses ``st_file_attributes`` where the platform provides it. Elsewhere the
    bits are synthesised: dot-names are hidden, a cleared owner write bit is
    read-only and symbolic links count as reparse points.

    Args:
        name: Entry name
        st_mode: ``st_mode`` from an ``lstat`` call
        file_attributes: ``st_file_attributes`` when available

    Returns:
        Raw ``FILE_ATTRIBUTE_*`` bits
    """
    if file_attributes is not None:
        return file_attributes

    raw = 0
    if name.startswith(".") and name not in {".", ".."}:
        raw |= FileAttribute.HIDDEN
    if not st_mode & statmod.S_IWUSR:
        raw |= FileAttribute.READONLY
    if statmod.S_ISLNK(st_mode):
        raw |= FileAttribute.REPARSE_POINT
    if statmod.S_ISDIR(st_mode):
        raw |= FileAttribute.DIRECTORY
    return int(raw)


def is_hidden(raw: int) -> bool:
    return raw != INVALID_FILE_ATTRIBUTES and bool(raw & FileAttribute.HIDDEN)
