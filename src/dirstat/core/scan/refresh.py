"""Rescanning a subtree that changed on disk.

A refresh withdraws the whole contribution of a node from its ancestors,
drops its children, checks that the entry still exists and then scans it
again with an unbounded budget. Ancestors are left consistent at every
step; those that have nothing else pending are completed again at the end.
"""

from __future__ import annotations

import logging

from dirstat.core.context import ScanContext
from dirstat.core.errors import InvariantViolation
from dirstat.core.scan.scheduler import ScanScheduler
from dirstat.core.tree.aggregation import AggregationEngine
from dirstat.core.tree.node import Node, NodeKind
from dirstat.core.work_limiter import TimeBudget
from dirstat.types.models import RefreshOutcome, RefreshResult, ViewState
from dirstat.utils.logging import get_logger, log_with_context

__all__ = ["RefreshController"]

logger = get_logger(__name__)


class RefreshController:
    """Re-reads subtrees on request."""

    def __init__(self, context: ScanContext, engine: AggregationEngine, scheduler: ScanScheduler) -> None:
        self.context: ScanContext = context
        self.engine: AggregationEngine = engine
        self.scheduler: ScanScheduler = scheduler

    def start_refresh(self, node: Node) -> RefreshResult:
        """Rescan ``node`` synchronously.

        Args:
            node: Drive, directory, file or "my computer" node

        Returns:
            Outcome of the refresh and the view state captured beforehand.
            With ``DELETED`` the node has been detached and destroyed (or, for
            the root, reported through ``on_root_unlinked``).

        Raises:
            InvariantViolation: For synthetic items, or when the withdrawn
                totals do not add up
        """
        if node.kind.is_synthetic:
            msg = f"{node.kind.name} items cannot be refreshed"
            raise InvariantViolation(msg, {"path": node.report_path})

        node.reset_ticks_worked()

        if node.kind is NodeKind.MY_COMPUTER:
            return self._refresh_my_computer(node)

        view_state = self.context.observer.capture_view_state(node)
        self._withdraw(node)

        path = node.path
        if not self.context.services.path_exists(path):
            self._drop(node)
            log_with_context(logger, logging.INFO, f"Refresh target vanished: {path}", extra={"path": path})
            return RefreshResult(RefreshOutcome.DELETED, view_state)

        if node.kind is NodeKind.FILE:
            self._restat_file(node)
            return RefreshResult(RefreshOutcome.REFRESHED, view_state)

        if self._is_not_followed(node):
            self.engine.set_done(node)
            self._settle_parent(node)
            log_with_context(logger, logging.INFO, f"Refresh left {path} empty; not following it", extra={"path": path})
            return RefreshResult(RefreshOutcome.NOT_FOLLOWED, view_state)

        node.set_read_job_done(False)
        if node.kind is NodeKind.DRIVE:
            policy = self.context.policy
            if policy.show_free_space:
                self.engine.create_free_space_item(node)
            if policy.show_unknown:
                self.engine.create_unknown_item(node)

        self.scheduler.do_some_work(node, TimeBudget.unbounded())
        self._settle_parent(node)
        self.context.observer.restore_view_state(node, view_state)

        log_with_context(
            logger,
            logging.INFO,
            f"Refreshed {path}: {node.size} bytes, {node.files_count} files, {node.subdirs_count} directories",
            extra={"path": path},
        )
        return RefreshResult(RefreshOutcome.REFRESHED, view_state)

    def _refresh_my_computer(self, node: Node) -> RefreshResult:
        node.set_last_change(0.0)
        for child in node.children:
            _ = self.start_refresh(child)
        node.upward_recalc_last_change()
        self.engine.settle(node)
        return RefreshResult(RefreshOutcome.REFRESHED, ViewState())

    def _withdraw(self, node: Node) -> None:
        """Take everything ``node`` holds out of the tree, leaving it empty."""
        self.engine.update_last_change(node)
        self.engine.upward_set_undone(node)
        self.engine.remove_all_children(node)

        node.forget_read_jobs()
        node.upward_subtract_files(node.files_count)
        node.upward_subtract_subdirs(node.subdirs_count)
        node.upward_subtract_size(node.size)
        node.upward_recalc_last_change()

        residue = {
            "read_jobs": node.read_jobs,
            "files": node.files_count,
            "subdirs": node.subdirs_count,
            "size": node.size,
        }
        leftover = {name: value for name, value in residue.items() if value != 0}
        if leftover:
            msg = f"Refresh of {node.path!r} left totals behind"
            raise InvariantViolation(msg, {"path": node.path, **leftover})

    def _drop(self, node: Node) -> None:
        parent = node.parent
        if parent is None:
            self.context.observer.on_root_unlinked(node)
            return
        self.engine.remove_child(parent, parent.find_child_index(node))
        self.engine.settle(parent)

    def _restat_file(self, node: Node) -> None:
        record = self.context.services.stat_entry(node.path)
        if record is not None and not record.is_directory:
            node.set_attributes(record.attributes)
            node.upward_add_size(record.size)
            node.set_last_change(record.last_write_time)
            if node.parent is not None:
                node.parent.upward_update_last_change(record.last_write_time)
        node.upward_add_files(1)
        self.engine.set_done(node)
        self._settle_parent(node)

    def _is_not_followed(self, node: Node) -> bool:
        if node.kind is not NodeKind.DIRECTORY or node.is_root_item:
            return False
        policy = self.context.policy
        services = self.context.services
        if not policy.follow_mount_points and services.is_volume_mount_point(node.path):
            return True
        return not policy.follow_junctions and services.is_junction(node.raw_attributes)

    def _settle_parent(self, node: Node) -> None:
        if node.parent is not None:
            self.engine.settle(node.parent)
