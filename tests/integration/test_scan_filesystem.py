"""Integration tests scanning real temporary directories.

These tests drive ScanSession over the local filesystem with apparent file
sizes so that totals can be compared with the bytes written.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from dirstat.core.config import MainConfig, ScanPolicy, SchedulerConfig, SizeMode
from dirstat.core.scan.session import ScanSession
from dirstat.core.tree.lookup import find_node_by_path
from dirstat.core.tree.node import NodeKind
from dirstat.core.work_limiter import StepBudget
from dirstat.types.models import RefreshOutcome


def _config(**policy: bool) -> MainConfig:
    return MainConfig(
        policy=ScanPolicy(**policy),
        scheduler=SchedulerConfig(size_mode=SizeMode.APPARENT),
    )


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    """D/a (100 bytes), D/b (50 bytes) and D/E/c (25 bytes)."""
    root = tmp_path / "D"
    (root / "E").mkdir(parents=True)
    _ = (root / "a").write_bytes(b"a" * 100)
    _ = (root / "b").write_bytes(b"b" * 50)
    _ = (root / "E" / "c").write_bytes(b"c" * 25)
    return root


@pytest.mark.integration
class TestScanAndRefresh:
    """Scan, change the disk and refresh."""

    def test_full_scan(self, tree: Path) -> None:
        session = ScanSession.open([str(tree)], config=_config())

        root = session.run_to_completion()

        assert root is not None
        assert root.kind is NodeKind.DIRECTORY
        assert (root.size, root.files_count, root.subdirs_count) == (175, 3, 1)
        assert root.done is True
        assert root.last_change > 0

    def test_refresh_after_delete(self, tree: Path) -> None:
        session = ScanSession.open([str(tree)], config=_config())
        root = session.run_to_completion()
        assert root is not None
        (tree / "E" / "c").unlink()

        result = session.refresh_path(str(tree / "E"))

        assert result is not None
        assert result.outcome is RefreshOutcome.REFRESHED
        assert (root.size, root.files_count, root.subdirs_count) == (150, 2, 1)
        assert root.done is True

    def test_refresh_of_removed_directory(self, tree: Path) -> None:
        session = ScanSession.open([str(tree)], config=_config())
        root = session.run_to_completion()
        assert root is not None
        (tree / "E" / "c").unlink()
        (tree / "E").rmdir()

        result = session.refresh_path(str(tree / "E"))

        assert result is not None
        assert result.deleted is True
        assert (root.size, root.files_count, root.subdirs_count) == (150, 2, 0)
        assert find_node_by_path(root, str(tree / "E")) is root

    def test_refresh_of_grown_file(self, tree: Path) -> None:
        session = ScanSession.open([str(tree)], config=_config())
        root = session.run_to_completion()
        assert root is not None
        _ = (tree / "a").write_bytes(b"a" * 1000)

        _ = session.refresh_path(str(tree / "a"))

        assert root.size == 1075
        assert root.files_count == 3

    def test_removed_root(self, tree: Path) -> None:
        session = ScanSession.open([str(tree)], config=_config())
        root = session.run_to_completion()
        assert root is not None
        for path in (tree / "E" / "c", tree / "a", tree / "b"):
            path.unlink()
        (tree / "E").rmdir()
        tree.rmdir()

        result = session.refresh(root)

        assert result.deleted is True
        assert session.root is None


@pytest.mark.integration
class TestSlicing:
    """Scan in small deterministic slices."""

    def test_sliced_scan_matches_full_scan(self, tree: Path) -> None:
        for depth in range(4):
            (tree / "E" / f"F{depth}").mkdir()
            _ = (tree / "E" / f"F{depth}" / "x.bin").write_bytes(b"x" * depth)
        session = ScanSession.open([str(tree)], config=_config())

        slices = 0
        while not session.step(StepBudget(12)):
            slices += 1
            assert slices < 1_000

        root = session.root
        assert root is not None
        assert (root.size, root.files_count, root.subdirs_count) == (181, 7, 5)
        assert slices > 0

    @pytest.mark.asyncio
    async def test_async_run(self, tree: Path) -> None:
        session = ScanSession.open([str(tree)], config=_config())

        root = await session.run(slice_ms=1)

        assert root is not None
        assert root.size == 175


@pytest.mark.integration
class TestPolicies:
    """Policy flags on a real tree."""

    def test_skip_hidden(self, tree: Path) -> None:
        _ = (tree / ".cache").write_bytes(b"h" * 500)

        hidden = ScanSession.open([str(tree)], config=_config(skip_hidden=True)).run_to_completion()
        shown = ScanSession.open([str(tree)], config=_config()).run_to_completion()

        assert hidden is not None and shown is not None
        if sys.platform != "win32":
            assert hidden.size == 175
        assert shown.size == 675

    @pytest.mark.skipif(sys.platform == "win32", reason="requires POSIX symlinks")
    def test_directory_symlink_followed_only_on_request(self, tree: Path, tmp_path: Path) -> None:
        outside = tmp_path / "outside"
        outside.mkdir()
        _ = (outside / "big").write_bytes(b"o" * 4000)
        (tree / "link").symlink_to(outside, target_is_directory=True)

        plain = ScanSession.open([str(tree)], config=_config()).run_to_completion()
        followed = ScanSession.open([str(tree)], config=_config(follow_junctions=True)).run_to_completion()

        assert plain is not None and followed is not None
        assert plain.size == 175
        assert plain.subdirs_count == 2
        assert followed.size == 4175

    def test_several_roots(self, tree: Path, tmp_path: Path) -> None:
        other = tmp_path / "other"
        other.mkdir()
        _ = (other / "z").write_bytes(b"z" * 10)

        session = ScanSession.open([str(tree), str(other)], config=_config())
        root = session.run_to_completion()

        assert root is not None
        assert root.kind is NodeKind.MY_COMPUTER
        assert root.size == 185
        assert root.files_count == 4
