"""Test suite for single-level directory enumeration."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

from dirstat.core.config import SizeMode
from dirstat.core.data.filesystem.enumerator import DirectoryEnumerator, entry_size
from dirstat.core.errors import EnumerationError
from dirstat.core.tree.attributes import FileAttribute, is_hidden


class TestEntrySize:
    """Test size selection per size mode."""

    def test_apparent_size(self) -> None:
        st = SimpleNamespace(st_size=13, st_blocks=8)

        assert entry_size(st, SizeMode.APPARENT) == 13  # pyright: ignore[reportArgumentType]

    def test_disk_usage_uses_blocks(self) -> None:
        st = SimpleNamespace(st_size=13, st_blocks=8)

        assert entry_size(st, SizeMode.DISK_USAGE) == 4096  # pyright: ignore[reportArgumentType]

    def test_disk_usage_without_blocks(self) -> None:
        """Platforms without st_blocks report the apparent size."""
        st = SimpleNamespace(st_size=13)

        assert entry_size(st, SizeMode.DISK_USAGE) == 13  # pyright: ignore[reportArgumentType]


class TestDirectoryEnumerator:
    """Test the DirectoryEnumerator class."""

    def test_lists_one_level(self, tmp_path: Path) -> None:
        """Only direct children are reported."""
        _ = (tmp_path / "file1.txt").write_text("Hello")
        (tmp_path / "sub").mkdir()
        _ = (tmp_path / "sub" / "deep.txt").write_text("ignored")

        records = {record.name: record for record in DirectoryEnumerator(SizeMode.APPARENT).enumerate(str(tmp_path))}

        assert set(records) == {"file1.txt", "sub"}
        assert records["file1.txt"].size == 5
        assert records["file1.txt"].is_directory is False
        assert records["sub"].is_directory is True
        assert records["sub"].size == 0
        assert records["sub"].attributes & FileAttribute.DIRECTORY
        assert records["sub"].path == str(tmp_path / "sub")

    def test_last_write_time(self, tmp_path: Path) -> None:
        target = tmp_path / "stamp.txt"
        _ = target.write_text("x")
        os.utime(target, (1_000_000.0, 1_234_567.0))

        (record,) = list(DirectoryEnumerator().enumerate(str(tmp_path)))

        assert record.last_write_time == 1_234_567.0

    @pytest.mark.skipif(sys.platform == "win32", reason="dot-names are not hidden on Windows")
    def test_dot_files_are_hidden(self, tmp_path: Path) -> None:
        _ = (tmp_path / ".hidden").write_text("x")

        (record,) = list(DirectoryEnumerator().enumerate(str(tmp_path)))

        assert is_hidden(record.attributes) is True

    @pytest.mark.skipif(sys.platform == "win32", reason="requires POSIX symlinks")
    def test_directory_symlink_is_reparse_point(self, tmp_path: Path) -> None:
        """Links to directories look like junctions."""
        target = tmp_path / "target"
        target.mkdir()
        (tmp_path / "link").symlink_to(target, target_is_directory=True)

        records = {record.name: record for record in DirectoryEnumerator().enumerate(str(tmp_path))}

        link = records["link"]
        assert link.is_directory is True
        assert link.attributes & FileAttribute.REPARSE_POINT
        assert not records["target"].attributes & FileAttribute.REPARSE_POINT

    def test_accepts_path_objects(self, tmp_path: Path) -> None:
        _ = (tmp_path / "data.bin").write_bytes(b"x" * 3)
        enumerator = DirectoryEnumerator(SizeMode.APPARENT)

        (record,) = list(enumerator.enumerate(tmp_path))
        stat_record = enumerator.stat(tmp_path / "data.bin")

        assert record.path == str(tmp_path / "data.bin")
        assert record.size == 3
        assert stat_record is not None
        assert stat_record.name == "data.bin"
        assert stat_record.path == str(tmp_path / "data.bin")

    def test_missing_directory_raises(self, tmp_path: Path) -> None:
        missing = tmp_path / "missing"

        with pytest.raises(EnumerationError) as exc_info:
            _ = list(DirectoryEnumerator().enumerate(str(missing)))

        assert exc_info.value.path == str(missing)
        assert "errno" in exc_info.value.context

    def test_file_is_not_a_directory(self, tmp_path: Path) -> None:
        target = tmp_path / "plain.txt"
        _ = target.write_text("x")

        with pytest.raises(EnumerationError):
            _ = list(DirectoryEnumerator().enumerate(str(target)))


class TestStat:
    """Test single-path records."""

    def test_stat_file(self, tmp_path: Path) -> None:
        target = tmp_path / "a.bin"
        _ = target.write_bytes(b"\0" * 42)

        record = DirectoryEnumerator(SizeMode.APPARENT).stat(str(target))

        assert record is not None
        assert record.name == "a.bin"
        assert record.size == 42
        assert record.is_directory is False

    def test_stat_directory_with_trailing_separator(self, tmp_path: Path) -> None:
        record = DirectoryEnumerator().stat(str(tmp_path) + os.sep)

        assert record is not None
        assert record.name == tmp_path.name
        assert record.is_directory is True

    def test_stat_missing(self, tmp_path: Path) -> None:
        assert DirectoryEnumerator().stat(str(tmp_path / "nope")) is None
