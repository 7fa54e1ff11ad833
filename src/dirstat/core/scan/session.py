"""One scanned tree and the driver that advances it.

A ``ScanSession`` owns the root node and the collaborators working on it.
Hosts either call ``step`` from their own idle handler or await ``run``,
which slices the work and yields to the event loop between slices.
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from collections.abc import Iterator, Sequence

from dirstat.core.config import MainConfig, ScanPolicy
from dirstat.core.context import ScanContext
from dirstat.core.data.filesystem.volumes import LocalFilesystem
from dirstat.core.errors import ScanRootError
from dirstat.core.scan.refresh import RefreshController
from dirstat.core.scan.scheduler import ScanScheduler
from dirstat.core.tree.aggregation import AggregationEngine, collect_extension_data
from dirstat.core.tree.lookup import find_node_by_path
from dirstat.core.tree.node import Node, NodeKind
from dirstat.core.work_limiter import TimeBudget
from dirstat.types.aliases import ExtensionData, YieldHook
from dirstat.types.models import RefreshResult, ScanProgress
from dirstat.types.protocols import FilesystemServices, NullObserver, TreeObserver, WorkLimiter
from dirstat.utils.logging import get_logger, log_with_context, set_scan_id

__all__ = ["MY_COMPUTER_NAME", "ScanSession"]

logger = get_logger(__name__)

MY_COMPUTER_NAME = "My Computer"


class ScanSession:
    """Scan of one or more roots, resumable across slices."""

    def __init__(self, context: ScanContext, config: MainConfig | None = None) -> None:
        """Create a session without a root; use ``ScanSession.open``.

        Args:
            context: Collaborators and policy shared by every component
            config: Scheduler and application settings
        """
        self.context: ScanContext = context
        self.config: MainConfig = config or MainConfig()
        self.engine: AggregationEngine = AggregationEngine(context)
        self.scheduler: ScanScheduler = ScanScheduler(context, self.engine)
        self.refresher: RefreshController = RefreshController(context, self.engine, self.scheduler)
        self.scan_id: str = uuid.uuid4().hex[:8]
        self._root: Node | None = None
        self._started: float = context.clock()
        self._finished: float | None = None

    @classmethod
    def open(
        cls,
        paths: Sequence[str],
        *,
        config: MainConfig | None = None,
        services: FilesystemServices | None = None,
        observer: TreeObserver | None = None,
        yield_hook: YieldHook | None = None,
    ) -> ScanSession:
        """Build the root of a new scan.

        One path gives a drive root when it is a mount point and a directory
        root otherwise. Several paths are gathered under a "my computer" root.

        Args:
            paths: Locations to scan
            config: Settings; defaults apply when omitted
            services: Filesystem primitives; the local filesystem by default
            observer: View notified about tree mutations
            yield_hook: Called once per listed entry during enumeration

        Returns:
            A session ready to be stepped

        Raises:
            ScanRootError: If no path is given or a path does not exist
        """
        if not paths:
            msg = "At least one path is required"
            raise ScanRootError(msg)

        config = config or MainConfig()
        if services is None:
            services = LocalFilesystem(config.scheduler.size_mode)
        context = ScanContext(
            services=services,
            policy=config.policy,
            observer=observer if observer is not None else NullObserver(),
            yield_hook=yield_hook,
        )

        session = cls(context, config)
        set_scan_id(session.scan_id)
        session._root = session._build_root([os.path.abspath(path) for path in paths])
        log_with_context(
            logger,
            logging.INFO,
            f"Opened scan of {', '.join(paths)}",
            extra={"roots": len(paths), "root_kind": session._root.kind.name},
        )
        return session

    def _build_root(self, paths: list[str]) -> Node:
        for path in paths:
            if not self.context.services.path_exists(path):
                msg = f"Path does not exist: {path}"
                raise ScanRootError(msg, {"path": path})

        if len(paths) == 1:
            return self._make_root_item(paths[0], None)

        my_computer = Node(NodeKind.MY_COMPUTER, MY_COMPUTER_NAME)
        for path in paths:
            _ = self._make_root_item(path, my_computer)
        return my_computer

    def _make_root_item(self, path: str, parent: Node | None) -> Node:
        services = self.context.services
        kind = NodeKind.DRIVE if services.is_volume_mount_point(path) else NodeKind.DIRECTORY
        node = Node(kind, path, root_path=path)

        record = services.stat_entry(path)
        if record is not None:
            node.set_last_change(record.last_write_time)
            node.set_attributes(record.attributes)

        if parent is not None:
            self.engine.add_child(parent, node)

        if kind is NodeKind.DRIVE:
            if self.context.policy.show_free_space:
                _ = self.engine.create_free_space_item(node)
            if self.context.policy.show_unknown:
                _ = self.engine.create_unknown_item(node)
        return node

    # -- state ------------------------------------------------------------

    @property
    def root(self) -> Node | None:
        """Root of the tree, None once the scanned root vanished."""
        return self._root

    @property
    def policy(self) -> ScanPolicy:
        return self.context.policy

    @property
    def done(self) -> bool:
        return self._root is None or self._root.done

    @property
    def elapsed(self) -> float:
        """Seconds from opening until completion (or until now)."""
        end = self._finished if self._finished is not None else self.context.clock()
        return end - self._started

    def drives(self) -> Iterator[Node]:
        """Yield every drive node of the tree."""
        root = self._root
        if root is None:
            return
        if root.kind is NodeKind.DRIVE:
            yield root
        elif root.kind is NodeKind.MY_COMPUTER:
            for child in root.iter_children():
                if child.kind is NodeKind.DRIVE:
                    yield child

    # -- driving ----------------------------------------------------------

    def step(self, budget: WorkLimiter | None = None) -> bool:
        """Do one slice of work.

        Args:
            budget: Limit for this slice; ``scheduler.slice_ms`` by default

        Returns:
            True once the whole tree is done
        """
        root = self._root
        if root is None:
            return True
        if root.done:
            return True

        if budget is None:
            budget = TimeBudget.from_milliseconds(self.config.scheduler.slice_ms, clock=self.context.clock)

        set_scan_id(self.scan_id)
        self.scheduler.do_some_work(root, budget)

        if root.done and self._finished is None:
            self._finished = self.context.clock()
            log_with_context(
                logger,
                logging.INFO,
                f"Scan finished: {root.size} bytes, {root.files_count} files, {root.subdirs_count} directories",
                extra={"root": root.path, "elapsed_s": round(self.elapsed, 3)},
            )
        return root.done

    def run_to_completion(self) -> Node | None:
        """Scan synchronously until the tree is done."""
        _ = self.step(TimeBudget.unbounded())
        return self._root

    async def run(self, slice_ms: int | None = None, idle_interval: float | None = None) -> Node | None:
        """Scan in time slices, yielding to the event loop in between.

        Args:
            slice_ms: Slice length; ``scheduler.slice_ms`` by default
            idle_interval: Seconds to sleep between slices;
                ``scheduler.idle_interval`` by default

        Returns:
            The finished root, or None if it vanished
        """
        scheduler_config = self.config.scheduler
        if slice_ms is None:
            slice_ms = scheduler_config.slice_ms
        if idle_interval is None:
            idle_interval = scheduler_config.idle_interval

        set_scan_id(self.scan_id)
        slices = 0
        while not self.step(TimeBudget.from_milliseconds(slice_ms, clock=self.context.clock)):
            slices += 1
            await asyncio.sleep(idle_interval)

        logger.debug("Scan took %d slices", slices + 1, extra={"slice_ms": slice_ms})
        return self._root

    # -- refresh ----------------------------------------------------------

    def refresh(self, node: Node) -> RefreshResult:
        """Rescan ``node`` now.

        A vanished root is dropped from the session.
        """
        set_scan_id(self.scan_id)
        is_root = node is self._root
        result = self.refresher.start_refresh(node)
        if result.deleted and is_root:
            log_with_context(logger, logging.INFO, f"Scan root vanished: {node.path}", extra={"path": node.path})
            self._root = None
        if self._root is not None and self._root.done:
            self._finished = self.context.clock()
        return result

    def refresh_path(self, path: str) -> RefreshResult | None:
        """Refresh the deepest node covering ``path``; None if outside the tree."""
        if self._root is None:
            return None
        node = find_node_by_path(self._root, os.path.abspath(path))
        if node is None:
            return None
        return self.refresh(node)

    # -- policy -----------------------------------------------------------

    def set_policy(self, policy: ScanPolicy) -> None:
        """Swap the policy; it applies to every decision that follows."""
        show_free_space = policy.show_free_space
        show_unknown = policy.show_unknown
        self.context.policy = policy.model_copy(
            update={
                "show_free_space": self.context.policy.show_free_space,
                "show_unknown": self.context.policy.show_unknown,
            }
        )
        self.set_show_free_space(show_free_space)
        self.set_show_unknown(show_unknown)

    def set_show_free_space(self, show: bool) -> None:
        """Add or remove the ``<Free Space>`` item on every drive."""
        if self.context.policy.show_free_space == show:
            return
        self.context.policy = self.context.policy.model_copy(update={"show_free_space": show})
        for drive in list(self.drives()):
            if show:
                _ = self.engine.create_free_space_item(drive)
            elif self.engine.find_free_space_item(drive) is not None:
                self.engine.remove_free_space_item(drive)
            self.engine.settle(drive)

    def set_show_unknown(self, show: bool) -> None:
        """Add or remove the ``<Unknown>`` item on every drive."""
        if self.context.policy.show_unknown == show:
            return
        self.context.policy = self.context.policy.model_copy(update={"show_unknown": show})
        for drive in list(self.drives()):
            if show:
                _ = self.engine.create_unknown_item(drive)
            elif self.engine.find_unknown_item(drive) is not None:
                self.engine.remove_unknown_item(drive)
            self.engine.settle(drive)

    # -- reporting --------------------------------------------------------

    def progress(self) -> ScanProgress:
        """Progress of the scan.

        Drives measure bytes against used capacity; plain directories only
        know how many items they have found so far (range 0).
        """
        if self._root is None:
            return ScanProgress(range=0, position=0)
        return self._progress_of(self._root)

    def _progress_of(self, node: Node) -> ScanProgress:
        if node.kind is NodeKind.MY_COMPUTER:
            total_range = 0
            total_position = 0
            for child in node.iter_children():
                progress = self._progress_of(child)
                total_range += progress.range
                total_position += progress.position
            return ScanProgress(range=total_range, position=total_position)

        if node.kind is NodeKind.DRIVE:
            space = self.context.services.get_disk_free_space(node.path)
            if space is not None:
                free_item = self.engine.find_free_space_item(node)
                position = node.size - (free_item.size if free_item is not None else 0)
                return ScanProgress(range=space.total - space.free, position=position)

        return ScanProgress(range=0, position=node.items_count)

    def extension_statistics(self) -> ExtensionData:
        """Bytes and file count per extension over the whole tree."""
        if self._root is None:
            return {}
        return collect_extension_data(self._root)
