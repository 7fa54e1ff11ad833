"""Structural mutation of the aggregation tree.

Every operation that attaches, detaches or completes a node goes through
``AggregationEngine`` so that totals reach the ancestors before the observer
hears about the change. A view reading percentages between two calls never
sees a child whose size is missing from its parent.
"""

from __future__ import annotations

import logging
import os
from typing import Final

from dirstat.core.context import ScanContext
from dirstat.core.errors import InvariantViolation
from dirstat.core.tree.attributes import is_hidden
from dirstat.core.tree.node import Node, NodeKind
from dirstat.types.models import DirEntryRecord, ExtensionRecord

__all__ = [
    "FREE_SPACE_NAME",
    "UNKNOWN_NAME",
    "AggregationEngine",
    "collect_extension_data",
    "count_contribution",
]

logger = logging.getLogger(__name__)

FREE_SPACE_NAME: Final[str] = "<Free Space>"
UNKNOWN_NAME: Final[str] = "<Unknown>"


def count_contribution(node: Node) -> tuple[int, int]:
    """Return the ``(files, subdirs)`` a node adds to its parent's counters.

    Examples:
        >>> count_contribution(Node(NodeKind.FILE, "a.txt"))
        (1, 0)
        >>> count_contribution(Node(NodeKind.DIRECTORY, "src"))
        (0, 1)
    """
    subdirs = node.subdirs_count
    if node.kind is NodeKind.DIRECTORY:
        subdirs += 1
    return node.files_count, subdirs


def collect_extension_data(node: Node) -> dict[str, ExtensionRecord]:
    """Sum bytes and file counts per extension over every file below ``node``."""
    data: dict[str, ExtensionRecord] = {}
    for item in node.iter_subtree():
        if item.kind is not NodeKind.FILE:
            continue
        record = data.get(item.extension)
        if record is None:
            record = data[item.extension] = ExtensionRecord()
        record.bytes += item.size
        record.files += 1
    return data


class AggregationEngine:
    """Adds, removes and completes nodes while keeping ancestors consistent."""

    def __init__(self, context: ScanContext) -> None:
        self.context: ScanContext = context

    # -- attach / detach --------------------------------------------------

    def add_child(self, parent: Node, child: Node) -> None:
        """Attach ``child`` to ``parent`` and propagate its totals.

        Raises:
            InvariantViolation: If ``parent`` is already done
        """
        if parent.done:
            msg = f"Cannot add {child.name!r} to completed {parent.kind.name} {parent.name!r}"
            raise InvariantViolation(msg, {"parent": parent.path, "child": child.name})

        files, subdirs = count_contribution(child)
        parent.upward_add_size(child.size)
        parent.upward_add_files(files)
        parent.upward_add_subdirs(subdirs)
        parent.upward_add_read_jobs(child.read_jobs)
        parent.upward_update_last_change(child.last_change)

        parent.append_child(child)
        self.context.observer.on_child_added(parent, child)

    def remove_child(self, parent: Node, index: int) -> None:
        """Detach and destroy the child at ``index``.

        Raises:
            InvariantViolation: If ``index`` does not name a child
        """
        if not 0 <= index < parent.child_count:
            msg = f"{parent.name!r} has no child at index {index}"
            raise InvariantViolation(msg, {"parent": parent.path, "index": index})

        child = parent.child(index)
        self.context.observer.on_child_removed(parent, child)
        parent.pop_child(index)
        self._subtract_contribution(parent, child)
        parent.upward_recalc_last_change()
        child.dispose()

    def remove_all_children(self, parent: Node) -> None:
        """Detach and destroy every child of ``parent`` with one notification."""
        if parent.child_count == 0:
            return

        self.context.observer.on_removing_all_children(parent)
        for child in parent.take_children():
            self._subtract_contribution(parent, child)
            child.dispose()
        parent.upward_recalc_last_change()

    def _subtract_contribution(self, parent: Node, child: Node) -> None:
        files, subdirs = count_contribution(child)
        parent.upward_subtract_size(child.size)
        parent.upward_subtract_files(files)
        parent.upward_subtract_subdirs(subdirs)
        parent.upward_subtract_read_jobs(child.read_jobs)

    # -- materialising enumeration records --------------------------------

    def add_file(self, parent: Node, record: DirEntryRecord) -> Node:
        """Create a finished file node from an enumeration record."""
        node = Node(NodeKind.FILE, record.name)
        node.set_own_size(record.size)
        node.set_last_change(record.last_write_time)
        node.set_attributes(record.attributes)
        self.set_done(node)
        self.add_child(parent, node)
        return node

    def add_directory(self, parent: Node, record: DirEntryRecord, path: str | None = None) -> Node:
        """Create a directory node, honouring the mount point and junction policy.

        Args:
            parent: Node the directory belongs to
            record: Enumeration record of the directory
            path: Full path of the directory; derived from ``parent`` when omitted

        Returns:
            The attached directory node
        """
        if path is None:
            path = record.path or os.path.join(parent.path, record.name)

        node = Node(NodeKind.DIRECTORY, record.name, dont_follow=self._dont_follow(path, record.attributes))
        node.set_last_change(record.last_write_time)
        node.set_attributes(record.attributes)
        self.add_child(parent, node)
        return node

    def _dont_follow(self, path: str, attributes: int) -> bool:
        policy = self.context.policy
        services = self.context.services
        if not policy.follow_mount_points and services.is_volume_mount_point(path):
            logger.debug("Not following mount point %s", path)
            return True
        if not policy.follow_junctions and services.is_junction(attributes):
            logger.debug("Not following junction %s", path)
            return True
        return False

    def is_skipped(self, record: DirEntryRecord) -> bool:
        """True when the policy hides this entry from the tree."""
        return self.context.policy.skip_hidden and is_hidden(record.attributes)

    # -- last change ------------------------------------------------------

    def update_last_change(self, node: Node) -> None:
        """Re-read the own timestamp of a directory or file from disk.

        Other kinds, and entries that cannot be statted, fall back to 0.
        """
        timestamp = 0.0
        if node.kind in (NodeKind.DIRECTORY, NodeKind.FILE):
            record = self.context.services.stat_entry(node.path)
            if record is not None:
                timestamp = record.last_write_time
        node.set_last_change(timestamp)

    def upward_recalc_last_change(self, node: Node) -> None:
        """Re-read ``node`` from disk, then recompute up to the root."""
        self.update_last_change(node)
        node.upward_recalc_last_change()

    # -- completion -------------------------------------------------------

    def set_done(self, node: Node) -> None:
        """Finalise a node whose whole subtree is complete.

        Drives refresh their free space item and size their unknown item
        first. Children are then sorted biggest first. Calling this on a done
        node does nothing.
        """
        if node.done:
            return

        if node.kind is NodeKind.DRIVE:
            self.update_free_space_item(node)
            self._size_unknown_item(node)

        node.sort_children_by_size()
        node.mark_done()

    def upward_set_undone(self, node: Node) -> None:
        """Clear ``done`` from ``node`` up to the root.

        A done drive showing unknown space gives the unknown bytes back first;
        they are recomputed when the drive completes again.
        """
        item: Node | None = node
        while item is not None:
            if item.done and item.kind is NodeKind.DRIVE and self.context.policy.show_unknown:
                unknown = self.find_unknown_item(item)
                if unknown is not None and unknown.size > 0:
                    unknown.upward_subtract_size(unknown.size)
            item.mark_undone()
            item = item.parent

    def settle(self, node: Node) -> None:
        """Complete ``node`` and its ancestors where nothing is left to do.

        Stops at the first node that still has pending enumeration or an
        unfinished child.
        """
        item: Node | None = node
        while item is not None and not item.done:
            if not item.read_job_done:
                return
            if any(not child.done for child in item.iter_children()):
                return
            self.set_done(item)
            item = item.parent

    # -- synthetic items --------------------------------------------------

    def find_free_space_item(self, drive: Node) -> Node | None:
        return self._find_synthetic(drive, NodeKind.FREE_SPACE)

    def find_unknown_item(self, drive: Node) -> Node | None:
        return self._find_synthetic(drive, NodeKind.UNKNOWN)

    def create_free_space_item(self, drive: Node) -> Node:
        """Add the ``<Free Space>`` item to a drive, sized from the live value."""
        self._require_drive(drive)
        existing = self.find_free_space_item(drive)
        if existing is not None:
            return existing

        self.upward_set_undone(drive)
        item = Node(NodeKind.FREE_SPACE, FREE_SPACE_NAME)
        space = self.context.services.get_disk_free_space(drive.path)
        if space is None:
            logger.warning("Free space unavailable for %s", drive.path, extra={"drive": drive.path})
        else:
            item.set_own_size(space.free)
        self.set_done(item)
        self.add_child(drive, item)
        logger.debug("Created free space item for %s (%d bytes)", drive.path, item.size)
        return item

    def update_free_space_item(self, drive: Node) -> None:
        """Bring the free space item in line with the live free byte count.

        Keeps the stale value when the operating system query fails.
        """
        if not self.context.policy.show_free_space:
            return
        item = self.find_free_space_item(drive)
        if item is None:
            return

        space = self.context.services.get_disk_free_space(drive.path)
        if space is None:
            logger.warning("Free space unavailable for %s; keeping stale value", drive.path, extra={"drive": drive.path})
            return

        delta = space.free - item.size
        if delta > 0:
            item.upward_add_size(delta)
        elif delta < 0:
            item.upward_subtract_size(-delta)

    def remove_free_space_item(self, drive: Node) -> None:
        self._remove_synthetic(drive, NodeKind.FREE_SPACE)

    def create_unknown_item(self, drive: Node) -> Node:
        """Add an empty ``<Unknown>`` item; it is sized when the drive completes."""
        self._require_drive(drive)
        existing = self.find_unknown_item(drive)
        if existing is not None:
            return existing

        self.upward_set_undone(drive)
        item = Node(NodeKind.UNKNOWN, UNKNOWN_NAME)
        self.set_done(item)
        self.add_child(drive, item)
        logger.debug("Created unknown item for %s", drive.path)
        return item

    def remove_unknown_item(self, drive: Node) -> None:
        self._remove_synthetic(drive, NodeKind.UNKNOWN)

    def _size_unknown_item(self, drive: Node) -> None:
        if not self.context.policy.show_unknown:
            return
        item = self.find_unknown_item(drive)
        if item is None:
            return

        space = self.context.services.get_disk_free_space(drive.path)
        if space is None:
            logger.warning("Capacity unavailable for %s; unknown space not updated", drive.path, extra={"drive": drive.path})
            return

        accounted = drive.size - item.size
        unknown = space.total - accounted
        if not self.context.policy.show_free_space:
            unknown -= space.free
        unknown = max(0, unknown)

        delta = unknown - item.size
        if delta > 0:
            item.upward_add_size(delta)
        elif delta < 0:
            item.upward_subtract_size(-delta)

    def _find_synthetic(self, drive: Node, kind: NodeKind) -> Node | None:
        for child in drive.iter_children():
            if child.kind is kind:
                return child
        return None

    def _remove_synthetic(self, drive: Node, kind: NodeKind) -> None:
        self._require_drive(drive)
        item = self._find_synthetic(drive, kind)
        if item is None:
            msg = f"{drive.name!r} has no {kind.name} item"
            raise InvariantViolation(msg, {"drive": drive.path})

        self.upward_set_undone(drive)
        self.remove_child(drive, drive.find_child_index(item))
        logger.debug("Removed %s item from %s", kind.name, drive.path)

    def _require_drive(self, node: Node) -> None:
        if node.kind is not NodeKind.DRIVE:
            msg = f"Synthetic items belong to drives, not {node.kind.name}"
            raise InvariantViolation(msg, {"path": node.path})
