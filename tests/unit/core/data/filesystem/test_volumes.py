"""Test suite for volume queries and the local filesystem services."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from dirstat.core.config import SizeMode
from dirstat.core.data.filesystem.volumes import (
    LocalFilesystem,
    find_mount_point,
    get_disk_space,
    is_mount_point,
    volume_label,
)
from dirstat.core.tree.attributes import INVALID_FILE_ATTRIBUTES, FileAttribute
from dirstat.types.protocols import FilesystemServices


class TestDiskSpace:
    """Test capacity queries through psutil."""

    def test_real_volume(self, tmp_path: Path) -> None:
        space = get_disk_space(str(tmp_path))

        assert space is not None
        assert space.total > 0
        assert 0 <= space.free <= space.total

    def test_query_failure_returns_none(self, caplog: pytest.LogCaptureFixture) -> None:
        with (
            caplog.at_level(logging.WARNING),
            patch("dirstat.core.data.filesystem.volumes.psutil.disk_usage", side_effect=OSError("boom")),
        ):
            space = get_disk_space("/whatever")

        assert space is None
        assert "Cannot query disk space" in caplog.text

    def test_values_are_ints(self) -> None:
        usage = SimpleNamespace(total=1000, free=250, used=750, percent=75.0)
        with patch("dirstat.core.data.filesystem.volumes.psutil.disk_usage", return_value=usage):
            space = get_disk_space("/x")

        assert space is not None
        assert (space.total, space.free) == (1000, 250)


class TestMountPoints:
    """Test mount point detection."""

    def test_filesystem_root_is_mount_point(self) -> None:
        assert is_mount_point(os.path.abspath(os.sep)) is True

    def test_plain_directory_is_not(self, tmp_path: Path) -> None:
        (tmp_path / "plain").mkdir()

        assert is_mount_point(str(tmp_path / "plain")) is False

    def test_find_mount_point_walks_up(self, tmp_path: Path) -> None:
        mount_point = find_mount_point(str(tmp_path))

        assert is_mount_point(mount_point) is True
        assert str(tmp_path).startswith(mount_point)


class TestVolumeLabel:
    """Test volume display names."""

    def test_partition_device_shown(self) -> None:
        partitions = [SimpleNamespace(device="/dev/sdb1", mountpoint="/data")]
        with (
            patch("dirstat.core.data.filesystem.volumes.find_mount_point", return_value="/data"),
            patch("dirstat.core.data.filesystem.volumes.psutil.disk_partitions", return_value=partitions),
        ):
            assert volume_label("/data/photos") == "/dev/sdb1 (/data)"

    def test_unlisted_mount_point(self) -> None:
        with (
            patch("dirstat.core.data.filesystem.volumes.find_mount_point", return_value="/data"),
            patch("dirstat.core.data.filesystem.volumes.psutil.disk_partitions", return_value=[]),
        ):
            assert volume_label("/data") == "/data"


class TestLocalFilesystem:
    """Test the operating system backed services."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(LocalFilesystem(), FilesystemServices)

    def test_path_exists(self, tmp_path: Path) -> None:
        services = LocalFilesystem()

        assert services.path_exists(str(tmp_path)) is True
        assert services.path_exists(str(tmp_path / "missing")) is False

    def test_enumerate_and_stat(self, tmp_path: Path) -> None:
        _ = (tmp_path / "a.txt").write_text("abc")
        services = LocalFilesystem(SizeMode.APPARENT)

        (record,) = list(services.enumerate_directory(str(tmp_path)))
        stat_record = services.stat_entry(str(tmp_path / "a.txt"))

        assert record.size == 3
        assert stat_record is not None
        assert stat_record.size == 3

    @pytest.mark.parametrize(
        ("attributes", "expected"),
        [
            (FileAttribute.DIRECTORY, False),
            (FileAttribute.DIRECTORY | FileAttribute.REPARSE_POINT, True),
            (INVALID_FILE_ATTRIBUTES, False),
        ],
    )
    def test_is_junction(self, attributes: int, expected: bool) -> None:
        assert LocalFilesystem().is_junction(attributes) is expected
