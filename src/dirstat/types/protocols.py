"""Protocol definitions for the collaborators of the scan core.

The core never talks to a concrete UI, operating system API or clock; it
only depends on the structural interfaces below.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from dirstat.types.models import DirEntryRecord, DiskSpace, ViewState

if TYPE_CHECKING:
    from dirstat.core.tree.node import Node


@runtime_checkable
class WorkLimiter(Protocol):
    """Budget for one slice of scheduler work."""

    def is_exhausted(self) -> bool:
        """Return True once the slice has used up its budget."""
        ...


@runtime_checkable
class TreeObserver(Protocol):
    """Receives tree mutation notifications for a view layer.

    Additions are reported after the parent totals include the child;
    removals are reported while the child is still attached.
    """

    def on_child_added(self, parent: Node, child: Node) -> None: ...

    def on_child_removed(self, parent: Node, child: Node) -> None: ...

    def on_removing_all_children(self, parent: Node) -> None: ...

    def on_root_unlinked(self, root: Node) -> None: ...

    def capture_view_state(self, node: Node) -> ViewState: ...

    def restore_view_state(self, node: Node, state: ViewState) -> None: ...


@runtime_checkable
class FilesystemServices(Protocol):
    """Operating system primitives consumed by the scheduler and refresh."""

    def enumerate_directory(self, path: str) -> Iterator[DirEntryRecord]:
        """Yield the entries of ``path``.

        Raises:
            EnumerationError: If the directory cannot be listed
        """
        ...

    def stat_entry(self, path: str) -> DirEntryRecord | None:
        """Return a record for a single path, or None if it does not exist."""
        ...

    def get_disk_free_space(self, path: str) -> DiskSpace | None:
        """Return total and free bytes of the volume, or None on failure."""
        ...

    def path_exists(self, path: str) -> bool: ...

    def is_volume_mount_point(self, path: str) -> bool: ...

    def is_junction(self, attributes: int) -> bool: ...


class NullObserver:
    """Observer used when no view is attached."""

    def on_child_added(self, parent: Node, child: Node) -> None:
        pass

    def on_child_removed(self, parent: Node, child: Node) -> None:
        pass

    def on_removing_all_children(self, parent: Node) -> None:
        pass

    def on_root_unlinked(self, root: Node) -> None:
        pass

    def capture_view_state(self, node: Node) -> ViewState:
        return ViewState()

    def restore_view_state(self, node: Node, state: ViewState) -> None:
        pass
