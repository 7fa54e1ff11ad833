"""Time-sliced, resumable scan of an aggregation tree.

``ScanScheduler.do_some_work`` advances a subtree until its budget runs out.
All progress lives in the tree: ``read_job_done`` marks a listed container,
``done`` a finished subtree and ``ticks_worked`` the time spent so far.
Calling it again with a fresh budget resumes where the last slice stopped.
"""

from __future__ import annotations

import logging

from dirstat.core.context import ScanContext
from dirstat.core.errors import EnumerationError
from dirstat.core.tree.aggregation import AggregationEngine
from dirstat.core.tree.node import Node, NodeKind
from dirstat.types.models import DirEntryRecord
from dirstat.types.protocols import WorkLimiter

__all__ = ["ScanScheduler"]

logger = logging.getLogger(__name__)


class ScanScheduler:
    """Drives enumeration and completion of nodes within a work budget."""

    def __init__(self, context: ScanContext, engine: AggregationEngine) -> None:
        self.context: ScanContext = context
        self.engine: AggregationEngine = engine

    def do_some_work(self, node: Node, budget: WorkLimiter) -> None:
        """Advance ``node`` until it is done or ``budget`` is exhausted.

        A pending directory listing is always read in full, even past the
        budget. Child subtrees are visited least-worked first so that
        siblings make progress evenly across slices.

        The descent keeps its own stack of open containers, so tree depth
        is not limited by the interpreter's recursion limit.

        Args:
            node: Subtree to work on
            budget: Checked between units of work
        """
        clock = self.context.clock
        # Containers whose children are being worked on, with their start time
        stack: list[tuple[Node, float]] = []
        current: Node | None = node

        while True:
            if current is not None:
                children_start = self._start_node(current, budget)
                if children_start is not None:
                    stack.append((current, children_start))
            if not stack:
                return
            parent, children_start = stack[-1]
            current = self._next_child(parent, budget)
            if current is None:
                _ = stack.pop()
                parent.add_ticks_worked(clock() - children_start)

    def _start_node(self, node: Node, budget: WorkLimiter) -> float | None:
        """Enumerate or finish ``node``.

        Returns:
            The time its children started being worked on, or None when
            there is nothing to descend into during this slice
        """
        if node.done:
            return None

        clock = self.context.clock
        start = clock()

        if node.kind.is_enumerable:
            if not node.read_job_done:
                self._enumerate(node)
                node.add_ticks_worked(clock() - start)
            if node.kind is NodeKind.DRIVE:
                self.engine.update_free_space_item(node)
            if budget.is_exhausted():
                return None

        if node.is_leaf or node.child_count == 0:
            self.engine.set_done(node)
            return None

        return clock()

    def _next_child(self, node: Node, budget: WorkLimiter) -> Node | None:
        """Pick the next child of ``node`` to descend into.

        Marks ``node`` done once every child is done. Returns None when the
        budget runs out or nothing is left.
        """
        while not budget.is_exhausted():
            candidate = self._least_worked_child(node)
            if candidate is None:
                self.engine.set_done(node)
                return None
            if not budget.is_exhausted():
                return candidate
        return None

    def _least_worked_child(self, node: Node) -> Node | None:
        best: Node | None = None
        for child in node.iter_children():
            if child.done:
                continue
            if best is None or child.ticks_worked < best.ticks_worked:
                best = child
        return best

    def _enumerate(self, node: Node) -> None:
        """List ``node`` once and attach everything it contains.

        Directories are attached as they are met, files after the listing
        ends. A listing that fails keeps the entries read before the failure.
        """
        path = node.path
        files: list[DirEntryRecord] = []
        dir_count = 0
        skipped = 0

        try:
            for record in self.context.services.enumerate_directory(path):
                self.context.pump()
                if self.engine.is_skipped(record):
                    skipped += 1
                    continue
                if record.is_directory:
                    dir_count += 1
                    self.engine.add_directory(node, record)
                else:
                    files.append(record)
        except EnumerationError as e:
            logger.warning(
                "Cannot list %s: %s",
                path,
                e,
                extra={"path": path, "entries_read": dir_count + len(files)},
            )

        for record in files:
            self.engine.add_file(node, record)

        node.set_read_job_done()
        logger.debug(
            "Listed %s: %d files, %d directories, %d skipped",
            path,
            len(files),
            dir_count,
            skipped,
            extra={"path": path},
        )
