"""Single-level directory enumeration for the scan scheduler."""

from __future__ import annotations

import logging
import os
import stat as statmod
from collections.abc import Iterator
from pathlib import Path

from dirstat.core.config import SizeMode
from dirstat.core.errors import EnumerationError
from dirstat.core.tree.attributes import FileAttribute, attributes_from_stat
from dirstat.types.models import DirEntryRecord

__all__ = ["DirectoryEnumerator", "entry_size"]

logger = logging.getLogger(__name__)

# st_blocks is always counted in 512-byte units
_BLOCK_SIZE = 512


def entry_size(st: os.stat_result, mode: SizeMode) -> int:
    """Size of an entry in the requested mode.

    Disk usage falls back to the apparent size on platforms without
    ``st_blocks``.
    """
    if mode == SizeMode.DISK_USAGE:
        blocks: int | None = getattr(st, "st_blocks", None)
        if blocks is not None:
            return blocks * _BLOCK_SIZE
    return st.st_size


class DirectoryEnumerator:
    """Lists one directory at a time without following symbolic links.

    A symbolic link to a directory is reported as a directory carrying the
    reparse point attribute, which is how junctions look on Windows; the
    scan policy decides whether it is descended into.
    """

    def __init__(self, mode: SizeMode = SizeMode.DISK_USAGE) -> None:
        """Initialize the enumerator.

        Args:
            mode: Size calculation mode (apparent size vs disk usage)
        """
        self.mode: SizeMode = mode

    def enumerate(self, path: str | Path) -> Iterator[DirEntryRecord]:
        """Yield a record for every entry of ``path``.

        Entries that vanish or cannot be statted between listing and stat are
        skipped.

        Args:
            path: Directory to list

        Yields:
            One record per entry, ``.`` and ``..`` excluded

        Raises:
            EnumerationError: If the directory itself cannot be opened or read
        """
        directory = Path(path)
        try:
            for item in directory.iterdir():
                record = self._record_for(item)
                if record is not None:
                    yield record
        except OSError as e:
            msg = f"Cannot enumerate {path}: {e.strerror or e}"
            raise EnumerationError(msg, path=str(path), context={"errno": e.errno}) from e

    def stat(self, path: str | Path) -> DirEntryRecord | None:
        """Build a record for a single path, or None if it does not exist."""
        target = Path(path)
        try:
            st = target.lstat()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.debug("Cannot stat %s: %s", path, e, extra={"path": str(path)})
            return None

        is_directory = statmod.S_ISDIR(st.st_mode)
        if statmod.S_ISLNK(st.st_mode):
            is_directory = target.is_dir()
        return self._build(target.name or str(path), str(path), st, is_directory)

    def _record_for(self, item: Path) -> DirEntryRecord | None:
        try:
            st = item.lstat()
        except OSError as e:
            logger.debug("Skipping %s: %s", item, e, extra={"path": str(item)})
            return None

        is_directory = statmod.S_ISDIR(st.st_mode)
        if statmod.S_ISLNK(st.st_mode):
            # Links to directories are listed as directories; the policy decides
            is_directory = item.is_dir()
        return self._build(item.name, str(item), st, is_directory)

    def _build(self, name: str, path: str, st: os.stat_result, is_directory: bool) -> DirEntryRecord:
        raw = attributes_from_stat(name, st.st_mode, getattr(st, "st_file_attributes", None))
        if is_directory:
            raw |= FileAttribute.DIRECTORY
        return DirEntryRecord(
            name=name,
            attributes=int(raw),
            size=0 if is_directory else entry_size(st, self.mode),
            last_write_time=st.st_mtime,
            is_directory=is_directory,
            path=path,
        )
