"""Filesystem operations module for directory enumeration and volume queries."""

from __future__ import annotations

from .enumerator import DirectoryEnumerator, entry_size
from .volumes import LocalFilesystem, find_mount_point, get_disk_space, is_mount_point, volume_label

__all__ = [
    "DirectoryEnumerator",
    "LocalFilesystem",
    "entry_size",
    "find_mount_point",
    "get_disk_space",
    "is_mount_point",
    "volume_label",
]
