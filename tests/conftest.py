"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from dirstat.core.config import ScanPolicy
from dirstat.core.context import ScanContext
from dirstat.core.scan.refresh import RefreshController
from dirstat.core.scan.scheduler import ScanScheduler
from dirstat.core.tree.aggregation import AggregationEngine
from dirstat.core.tree.node import Node, NodeKind
from dirstat.core.work_limiter import TimeBudget
from tests.fixtures.fake_filesystem import FakeFilesystem, RecordingObserver


@pytest.fixture
def fake_fs() -> FakeFilesystem:
    """Filesystem holding the D/a, D/b, D/E/c example tree."""
    fs = FakeFilesystem(total=1000, free=200)
    fs.add_file("/D/a", 100, mtime=1_000.0)
    fs.add_file("/D/b", 50, mtime=2_000.0)
    fs.add_file("/D/E/c", 25, mtime=3_000.0)
    return fs


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def context(fake_fs: FakeFilesystem, observer: RecordingObserver) -> ScanContext:
    return ScanContext(services=fake_fs, policy=ScanPolicy(), observer=observer)


@pytest.fixture
def engine(context: ScanContext) -> AggregationEngine:
    return AggregationEngine(context)


@pytest.fixture
def scheduler(context: ScanContext, engine: AggregationEngine) -> ScanScheduler:
    return ScanScheduler(context, engine)


@pytest.fixture
def refresher(context: ScanContext, engine: AggregationEngine, scheduler: ScanScheduler) -> RefreshController:
    return RefreshController(context, engine, scheduler)


@pytest.fixture
def scan_dir(scheduler: ScanScheduler) -> Callable[[str], Node]:
    """Scan a directory of ``fake_fs`` to completion and return its root."""

    def _scan(path: str) -> Node:
        root = Node(NodeKind.DIRECTORY, path, root_path=path)
        scheduler.do_some_work(root, TimeBudget.unbounded())
        return root

    return _scan
