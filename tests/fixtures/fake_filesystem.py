"""In-memory collaborators for deterministic scan tests.

``FakeFilesystem`` implements ``FilesystemServices`` over a dictionary of
paths, with a configurable volume capacity. ``RecordingObserver`` records
every tree notification together with the parent totals seen at that moment.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass, field

from dirstat.core.errors import EnumerationError
from dirstat.core.tree.attributes import FileAttribute
from dirstat.core.tree.node import Node
from dirstat.types.models import DirEntryRecord, DiskSpace, ViewState


@dataclass(slots=True)
class _Entry:
    is_directory: bool
    size: int = 0
    mtime: float = 0.0
    attributes: int = 0


def _norm(path: str) -> str:
    return os.path.normpath(path)


class FakeFilesystem:
    """Dictionary-backed filesystem with one volume."""

    def __init__(self, *, total: int = 0, free: int = 0) -> None:
        self.entries: dict[str, _Entry] = {}
        self.disk: DiskSpace | None = DiskSpace(total=total, free=free)
        self.mount_points: set[str] = set()
        self.unreadable: set[str] = set()
        self.listed: list[str] = []

    # -- building ---------------------------------------------------------

    def add_dir(self, path: str, *, mtime: float = 0.0, attributes: int = 0) -> None:
        path = _norm(path)
        current, parent = path, os.path.dirname(path)
        while parent != current and parent not in self.entries:
            self.entries[parent] = _Entry(True, 0, 0.0, int(FileAttribute.DIRECTORY))
            current, parent = parent, os.path.dirname(parent)
        self.entries[path] = _Entry(True, 0, mtime, int(attributes | FileAttribute.DIRECTORY))

    def add_file(self, path: str, size: int, *, mtime: float = 0.0, attributes: int = 0) -> None:
        path = _norm(path)
        parent = os.path.dirname(path)
        if parent not in self.entries:
            self.add_dir(parent)
        self.entries[path] = _Entry(False, size, mtime, attributes)

    def remove(self, path: str) -> None:
        """Delete ``path`` and everything below it."""
        path = _norm(path)
        prefix = path.rstrip(os.sep) + os.sep
        for key in [key for key in self.entries if key == path or key.startswith(prefix)]:
            del self.entries[key]

    # -- FilesystemServices -----------------------------------------------

    def enumerate_directory(self, path: str) -> Iterator[DirEntryRecord]:
        path = _norm(path)
        self.listed.append(path)
        entry = self.entries.get(path)
        if entry is None or not entry.is_directory or path in self.unreadable:
            msg = f"Cannot enumerate {path}"
            raise EnumerationError(msg, path=path)

        for child_path in sorted(self.entries):
            if child_path != path and os.path.dirname(child_path) == path:
                yield self._record(child_path)

    def stat_entry(self, path: str) -> DirEntryRecord | None:
        path = _norm(path)
        if path not in self.entries:
            return None
        return self._record(path)

    def get_disk_free_space(self, path: str) -> DiskSpace | None:
        return self.disk

    def path_exists(self, path: str) -> bool:
        return _norm(path) in self.entries

    def is_volume_mount_point(self, path: str) -> bool:
        return _norm(path) in self.mount_points

    def is_junction(self, attributes: int) -> bool:
        return bool(attributes & FileAttribute.REPARSE_POINT)

    def _record(self, path: str) -> DirEntryRecord:
        entry = self.entries[path]
        return DirEntryRecord(
            name=os.path.basename(path),
            attributes=entry.attributes,
            size=entry.size,
            last_write_time=entry.mtime,
            is_directory=entry.is_directory,
            path=path,
        )


@dataclass
class RecordingObserver:
    """Observer that keeps a log of notifications."""

    events: list[tuple[str, str, str]] = field(default_factory=list)
    parent_sizes_on_add: list[tuple[int, int]] = field(default_factory=list)
    restored: list[tuple[str, ViewState]] = field(default_factory=list)
    unlinked: list[Node] = field(default_factory=list)
    view_state: ViewState = field(default_factory=lambda: ViewState(was_visible=True, was_expanded=True, scroll_position=7))

    def on_child_added(self, parent: Node, child: Node) -> None:
        self.events.append(("added", parent.name, child.name))
        self.parent_sizes_on_add.append((parent.size, child.size))

    def on_child_removed(self, parent: Node, child: Node) -> None:
        assert child.parent is parent
        self.events.append(("removed", parent.name, child.name))

    def on_removing_all_children(self, parent: Node) -> None:
        self.events.append(("removing_all", parent.name, ""))

    def on_root_unlinked(self, root: Node) -> None:
        self.unlinked.append(root)
        self.events.append(("root_unlinked", root.name, ""))

    def capture_view_state(self, node: Node) -> ViewState:
        return self.view_state

    def restore_view_state(self, node: Node, state: ViewState) -> None:
        self.restored.append((node.name, state))

    def kinds(self) -> list[str]:
        return [kind for kind, _, _ in self.events]
