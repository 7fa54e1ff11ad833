"""Node of the aggregation tree.

A ``Node`` owns its children and keeps aggregate statistics for its whole
subtree. Totals are never recomputed wholesale: every change is pushed from
the changed node to the root through the ``upward_*`` methods, so at any
point between mutations::

    node.size == own_size + sum(child.size for child in node.children)

and likewise for the file, directory and pending read job counters.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from enum import Enum
from typing import Final

from dirstat.core.errors import InvariantViolation
from dirstat.core.tree.attributes import INVALID_PACKED, pack_attributes, unpack_attributes

__all__ = ["Node", "NodeKind"]

NO_EXTENSION: Final[str] = "."


class NodeKind(Enum):
    """Kinds of tree nodes."""

    MY_COMPUTER = "my_computer"
    DRIVE = "drive"
    DIRECTORY = "directory"
    FILE = "file"
    FREE_SPACE = "free_space"
    UNKNOWN = "unknown"

    @property
    def is_leaf(self) -> bool:
        return self in _LEAF_KINDS

    @property
    def is_synthetic(self) -> bool:
        return self in _SYNTHETIC_KINDS

    @property
    def is_enumerable(self) -> bool:
        """Kinds backed by a directory listing."""
        return self in (NodeKind.DRIVE, NodeKind.DIRECTORY)


_LEAF_KINDS: Final = frozenset({NodeKind.FILE, NodeKind.FREE_SPACE, NodeKind.UNKNOWN})
_SYNTHETIC_KINDS: Final = frozenset({NodeKind.FREE_SPACE, NodeKind.UNKNOWN})


class Node:
    """One drive, directory, file or synthetic item of a scanned tree.

    The parent link is a plain back reference; ownership only runs from
    parent to children, and ``dispose`` breaks both directions when a
    subtree is dropped.
    """

    __slots__ = (
        "_attributes",
        "_children",
        "_done",
        "_extension",
        "_files",
        "_kind",
        "_last_change",
        "_name",
        "_own_last_change",
        "_parent",
        "_read_job_done",
        "_read_jobs",
        "_root_path",
        "_size",
        "_subdirs",
        "_ticks_worked",
    )

    def __init__(
        self,
        kind: NodeKind,
        name: str,
        *,
        dont_follow: bool = False,
        root_path: str | None = None,
    ) -> None:
        """Create a detached node.

        Args:
            kind: Node kind
            name: Display name (volume label for drives, leaf name otherwise)
            dont_follow: Treat a drive or directory as already enumerated
                (mount points and junctions the policy does not follow)
            root_path: Absolute location for scan roots and drives; other
                nodes derive their path from their parent
        """
        self._kind: NodeKind = kind
        self._name: str = name
        self._root_path: str | None = root_path
        self._parent: Node | None = None
        self._children: list[Node] = []
        self._size: int = 0
        self._files: int = 0
        self._subdirs: int = 0
        self._last_change: float = 0.0
        self._own_last_change: float = 0.0
        self._attributes: int = 0
        self._ticks_worked: float = 0.0
        self._done: bool = False

        if kind.is_enumerable and not dont_follow:
            # One pending enumeration for this container
            self._read_job_done = False
            self._read_jobs = 1
        else:
            self._read_job_done = True
            self._read_jobs = 0

        if kind is NodeKind.FILE:
            # A file counts itself; containers are counted by their parent
            self._files = 1
            _, ext = os.path.splitext(name)
            self._extension: str = ext.lower() if ext else NO_EXTENSION
        else:
            self._extension = name

    def __repr__(self) -> str:
        return (
            f"Node({self._kind.name}, {self._name!r}, size={self._size}, "
            f"files={self._files}, subdirs={self._subdirs}, done={self._done})"
        )

    # -- read accessors ---------------------------------------------------

    @property
    def kind(self) -> NodeKind:
        return self._kind

    @property
    def name(self) -> str:
        return self._name

    @property
    def parent(self) -> Node | None:
        return self._parent

    @property
    def children(self) -> tuple[Node, ...]:
        return tuple(self._children)

    @property
    def child_count(self) -> int:
        return len(self._children)

    def child(self, index: int) -> Node:
        return self._children[index]

    def iter_children(self) -> Iterator[Node]:
        return iter(self._children)

    @property
    def size(self) -> int:
        return self._size

    @property
    def files_count(self) -> int:
        return self._files

    @property
    def subdirs_count(self) -> int:
        return self._subdirs

    @property
    def items_count(self) -> int:
        return self._files + self._subdirs

    @property
    def read_jobs(self) -> int:
        return self._read_jobs

    @property
    def last_change(self) -> float:
        return self._last_change

    @property
    def attributes(self) -> int:
        """Packed attribute byte."""
        return self._attributes

    @property
    def raw_attributes(self) -> int:
        return unpack_attributes(self._attributes)

    @property
    def has_valid_attributes(self) -> bool:
        return not self._attributes & INVALID_PACKED

    @property
    def done(self) -> bool:
        return self._done

    @property
    def read_job_done(self) -> bool:
        return self._read_job_done

    @property
    def ticks_worked(self) -> float:
        return self._ticks_worked

    @property
    def extension(self) -> str:
        return self._extension

    @property
    def is_leaf(self) -> bool:
        return self._kind.is_leaf

    @property
    def is_root_item(self) -> bool:
        """True for scan roots and drives, which carry their own location."""
        return self._root_path is not None

    @property
    def fraction(self) -> float:
        """Share of the parent's size, 1.0 for the root or an empty parent."""
        if self._parent is None or self._parent._size == 0:
            return 1.0
        return self._size / self._parent._size

    @property
    def path(self) -> str:
        """Filesystem path of the node.

        Synthetic items report the path of the drive they belong to, and
        the "my computer" root has an empty path.
        """
        names: list[str] = []
        base = ""
        node: Node | None = self
        while node is not None:
            if node._root_path is not None:
                base = node._root_path
                break
            if node._kind is NodeKind.MY_COMPUTER:
                break
            if not node._kind.is_synthetic:
                names.append(node._name)
            node = node._parent
        if not names:
            return base
        names.reverse()
        if not base:
            return os.path.join(*names)
        return os.path.join(base, *names)

    @property
    def report_path(self) -> str:
        if self._kind.is_synthetic:
            return os.path.join(self.path, self._name)
        return self.path

    @property
    def root(self) -> Node:
        node = self
        while node._parent is not None:
            node = node._parent
        return node

    def iter_ancestors(self) -> Iterator[Node]:
        """Yield the parent chain from the direct parent to the root."""
        node = self._parent
        while node is not None:
            yield node
            node = node._parent

    def is_ancestor_of(self, other: Node) -> bool:
        """True if ``other`` is this node or lies below it."""
        node: Node | None = other
        while node is not None:
            if node is self:
                return True
            node = node._parent
        return False

    def find_child_index(self, child: Node) -> int:
        """Return the index of ``child``.

        Raises:
            InvariantViolation: If ``child`` is not a child of this node
        """
        for index, candidate in enumerate(self._children):
            if candidate is child:
                return index
        msg = f"{child.name!r} is not a child of {self._name!r}"
        raise InvariantViolation(msg, {"parent": self.path, "child": child.name})

    # -- own values -------------------------------------------------------

    def set_own_size(self, size: int) -> None:
        """Set the size of a leaf without touching its ancestors."""
        if not self._kind.is_leaf:
            msg = f"Own size can only be set on leaves, not {self._kind.name}"
            raise InvariantViolation(msg, {"path": self.path})
        if size < 0:
            msg = "size must be non-negative"
            raise ValueError(msg)
        self._size = size

    @property
    def own_last_change(self) -> float:
        """Timestamp of the entry itself, ignoring descendants."""
        return self._own_last_change

    def set_last_change(self, timestamp: float) -> None:
        """Set the entry's own timestamp and reset the aggregate to it."""
        self._own_last_change = timestamp
        self._last_change = timestamp

    def set_attributes(self, raw: int) -> None:
        """Store raw ``FILE_ATTRIBUTE_*`` bits in packed form."""
        self._attributes = pack_attributes(raw)

    def add_ticks_worked(self, seconds: float) -> None:
        self._ticks_worked += seconds

    def reset_ticks_worked(self) -> None:
        self._ticks_worked = 0.0

    def forget_read_jobs(self) -> None:
        """Withdraw every pending read job of this subtree from the ancestors.

        Leaves this node's own enumeration flagged as done so that a later
        ``set_read_job_done(False)`` accounts for it exactly once.
        """
        self.upward_subtract_read_jobs(self._read_jobs)
        self._read_job_done = True

    def set_read_job_done(self, done: bool = True) -> None:
        """Mark this node's own enumeration as finished or pending again.

        Each container holds exactly one read job while pending; the change
        is propagated to every ancestor.
        """
        if done and not self._read_job_done:
            self.upward_subtract_read_jobs(1)
        elif not done and self._read_job_done:
            self.upward_add_read_jobs(1)
        self._read_job_done = done

    def mark_done(self) -> None:
        self._done = True

    def mark_undone(self) -> None:
        self._done = False

    def sort_children_by_size(self) -> None:
        """Order children biggest first; stable for equal sizes."""
        self._children.sort(key=lambda node: node._size, reverse=True)

    # -- structure --------------------------------------------------------

    def append_child(self, child: Node) -> None:
        """Attach ``child`` without touching any totals."""
        if child._parent is not None:
            msg = f"{child.name!r} already has a parent"
            raise InvariantViolation(msg, {"child": child.name})
        self._children.append(child)
        child._parent = self

    def pop_child(self, index: int) -> Node:
        """Detach and return the child at ``index`` without touching totals."""
        child = self._children.pop(index)
        child._parent = None
        return child

    def take_children(self) -> list[Node]:
        """Detach and return all children without touching totals."""
        children = self._children
        self._children = []
        for child in children:
            child._parent = None
        return children

    def dispose(self) -> None:
        """Tear down a detached subtree, breaking parent links."""
        stack = list(self._children)
        self._children = []
        while stack:
            node = stack.pop()
            stack.extend(node._children)
            node._children = []
            node._parent = None

    def iter_subtree(self) -> Iterator[Node]:
        """Yield this node and all descendants, depth first, parents first."""
        stack: list[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node._children))

    # -- upward propagation -----------------------------------------------

    def upward_add_size(self, delta: int) -> None:
        node: Node | None = self
        while node is not None:
            node._size += delta
            node = node._parent

    def upward_subtract_size(self, delta: int) -> None:
        self._upward_subtract("_size", delta)

    def upward_add_files(self, delta: int) -> None:
        node: Node | None = self
        while node is not None:
            node._files += delta
            node = node._parent

    def upward_subtract_files(self, delta: int) -> None:
        self._upward_subtract("_files", delta)

    def upward_add_subdirs(self, delta: int) -> None:
        node: Node | None = self
        while node is not None:
            node._subdirs += delta
            node = node._parent

    def upward_subtract_subdirs(self, delta: int) -> None:
        self._upward_subtract("_subdirs", delta)

    def upward_add_read_jobs(self, delta: int) -> None:
        node: Node | None = self
        while node is not None:
            node._read_jobs += delta
            node = node._parent

    def upward_subtract_read_jobs(self, delta: int) -> None:
        self._upward_subtract("_read_jobs", delta)

    def upward_update_last_change(self, timestamp: float) -> None:
        """Raise ``last_change`` up the chain; stops at the first newer ancestor."""
        node: Node | None = self
        while node is not None and node._last_change < timestamp:
            node._last_change = timestamp
            node = node._parent

    def recalc_last_change(self) -> None:
        """Set ``last_change`` to the newest of the own and children's values."""
        latest = self._own_last_change
        for child in self._children:
            if child._last_change > latest:
                latest = child._last_change
        self._last_change = latest

    def upward_recalc_last_change(self) -> None:
        """Recompute ``last_change`` from this node up to the root.

        Needed after a removal, when the newest timestamp may have left the
        subtree and ancestors can only move backwards.
        """
        node: Node | None = self
        while node is not None:
            node.recalc_last_change()
            node = node._parent

    def _upward_subtract(self, attribute: str, delta: int) -> None:
        if delta == 0:
            return
        node: Node | None = self
        while node is not None:
            value: int = getattr(node, attribute)
            if value < delta:
                msg = f"Subtracting {delta} from {attribute.lstrip('_')}={value} would go negative"
                raise InvariantViolation(msg, {"path": node.path, "kind": node.kind.name})
            setattr(node, attribute, value - delta)
            node = node._parent
