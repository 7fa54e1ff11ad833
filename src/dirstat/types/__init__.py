"""Type definitions and protocols for dirstat.

This package provides:
- Data models (small dataclasses)
- Protocol definitions (structural subtyping interfaces)
- Type aliases (PEP 695 modern syntax)
"""

from dirstat.types.aliases import Clock, ExtensionData, YieldHook
from dirstat.types.models import (
    DirEntryRecord,
    DiskSpace,
    ExtensionRecord,
    RefreshOutcome,
    RefreshResult,
    ScanProgress,
    ViewState,
)
from dirstat.types.protocols import (
    FilesystemServices,
    NullObserver,
    TreeObserver,
    WorkLimiter,
)

__all__ = [
    # Type aliases
    "Clock",
    "ExtensionData",
    "YieldHook",
    # Data models
    "DirEntryRecord",
    "DiskSpace",
    "ExtensionRecord",
    "RefreshOutcome",
    "RefreshResult",
    "ScanProgress",
    "ViewState",
    # Protocols
    "FilesystemServices",
    "NullObserver",
    "TreeObserver",
    "WorkLimiter",
]
