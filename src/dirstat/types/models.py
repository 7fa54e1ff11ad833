"""Data models for dirstat.

This module defines small dataclasses used to move data between the
filesystem collaborators, the aggregation tree and the view layer.
"""

from dataclasses import dataclass
from enum import Enum


@dataclass(slots=True, frozen=True)
class DirEntryRecord:
    """One entry produced by a directory enumeration.

    Mirrors what a single ``readdir``/``FindNextFile`` step reports; the
    attributes are raw Windows ``FILE_ATTRIBUTE_*`` bits (synthesised on
    POSIX platforms).
    """

    name: str
    attributes: int
    size: int
    last_write_time: float
    is_directory: bool
    path: str = ""


@dataclass(slots=True, frozen=True)
class DiskSpace:
    """Capacity of the volume holding a path, in bytes."""

    total: int
    free: int


@dataclass(slots=True, frozen=True)
class ViewState:
    """UI-adjacent state captured before a refresh and restored after it."""

    was_visible: bool = False
    was_expanded: bool = False
    scroll_position: int = 0


class RefreshOutcome(Enum):
    """Result kinds of a refresh."""

    REFRESHED = "refreshed"
    DELETED = "deleted"
    NOT_FOLLOWED = "not_followed"


@dataclass(slots=True, frozen=True)
class RefreshResult:
    """Outcome of ``RefreshController.start_refresh``."""

    outcome: RefreshOutcome
    view_state: ViewState

    @property
    def deleted(self) -> bool:
        return self.outcome is RefreshOutcome.DELETED


@dataclass(slots=True)
class ExtensionRecord:
    """Accumulated bytes and file count for one file extension."""

    bytes: int = 0
    files: int = 0


@dataclass(slots=True, frozen=True)
class ScanProgress:
    """Progress of a scan expressed as a range and a position.

    ``range`` is 0 when the total amount of work is not known up front
    (plain directory scans); ``position`` is then an item count.
    """

    range: int
    position: int

    @property
    def percent(self) -> float | None:
        if self.range <= 0:
            return None
        return min(100.0, 100.0 * self.position / self.range)
