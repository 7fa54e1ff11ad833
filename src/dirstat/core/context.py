"""Explicit context handed to the aggregation engine and the scheduler.

Everything the scan core needs from the outside world travels in a
``ScanContext``: policy flags, operating system primitives, the view
observer and an optional hook that lets the host pump its events during
long synchronous work. There is no module-level state.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from dirstat.core.config import ScanPolicy
from dirstat.types.aliases import Clock, YieldHook
from dirstat.types.protocols import FilesystemServices, NullObserver, TreeObserver

__all__ = ["ScanContext"]


@dataclass(slots=True)
class ScanContext:
    """Collaborators and policy for one scanned tree."""

    services: FilesystemServices
    policy: ScanPolicy = field(default_factory=ScanPolicy)
    observer: TreeObserver = field(default_factory=NullObserver)
    yield_hook: YieldHook | None = None
    clock: Clock = time.monotonic

    def pump(self) -> None:
        """Give the host a chance to service its own events."""
        if self.yield_hook is not None:
            self.yield_hook()
