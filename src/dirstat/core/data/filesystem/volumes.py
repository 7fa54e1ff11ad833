"""Volume queries and the local implementation of ``FilesystemServices``.

Capacity and partition information come from psutil, which covers Linux,
macOS and Windows with one API.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator

import psutil

from dirstat.core.config import SizeMode
from dirstat.core.data.filesystem.enumerator import DirectoryEnumerator
from dirstat.core.tree.attributes import INVALID_FILE_ATTRIBUTES, FileAttribute
from dirstat.types.models import DirEntryRecord, DiskSpace

__all__ = [
    "LocalFilesystem",
    "find_mount_point",
    "get_disk_space",
    "is_mount_point",
    "volume_label",
]

logger = logging.getLogger(__name__)


def get_disk_space(path: str) -> DiskSpace | None:
    """Return total and free bytes of the volume holding ``path``.

    Returns:
        Volume capacity, or None when the volume cannot be queried
    """
    try:
        usage = psutil.disk_usage(path)
    except OSError as e:
        logger.warning("Cannot query disk space for %s: %s", path, e, extra={"path": path})
        return None
    return DiskSpace(total=int(usage.total), free=int(usage.free))


def is_mount_point(path: str) -> bool:
    try:
        return os.path.ismount(path)
    except OSError:
        return False


def find_mount_point(path: str) -> str:
    """Return the mount point of the volume holding ``path``."""
    current = os.path.abspath(path)
    while not is_mount_point(current):
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return current


def volume_label(path: str) -> str:
    """Display name of the volume mounted at (or holding) ``path``.

    Uses the partition table when the mount point is listed there, the bare
    path otherwise.

    Examples:
        >>> volume_label("/")  # doctest: +SKIP
        '/dev/sda1 (/)'
    """
    mount_point = find_mount_point(path)
    try:
        partitions = psutil.disk_partitions(all=True)
    except OSError as e:
        logger.debug("Cannot list partitions: %s", e)
        return mount_point

    for partition in partitions:
        if os.path.normcase(partition.mountpoint) == os.path.normcase(mount_point):
            if partition.device and partition.device != partition.mountpoint:
                return f"{partition.device} ({partition.mountpoint})"
            return partition.mountpoint
    return mount_point


class LocalFilesystem:
    """``FilesystemServices`` backed by the local operating system."""

    def __init__(self, mode: SizeMode = SizeMode.DISK_USAGE) -> None:
        self.enumerator: DirectoryEnumerator = DirectoryEnumerator(mode)

    def enumerate_directory(self, path: str) -> Iterator[DirEntryRecord]:
        return self.enumerator.enumerate(path)

    def stat_entry(self, path: str) -> DirEntryRecord | None:
        return self.enumerator.stat(path)

    def get_disk_free_space(self, path: str) -> DiskSpace | None:
        return get_disk_space(path)

    def path_exists(self, path: str) -> bool:
        return os.path.lexists(path)

    def is_volume_mount_point(self, path: str) -> bool:
        return is_mount_point(path)

    def is_junction(self, attributes: int) -> bool:
        """Directories carrying a reparse point (junctions, directory symlinks)."""
        if attributes == INVALID_FILE_ATTRIBUTES:
            return False
        return bool(attributes & FileAttribute.REPARSE_POINT)
