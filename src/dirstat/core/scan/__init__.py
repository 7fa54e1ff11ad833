"""Scan scheduling, refresh and the session driver."""

from __future__ import annotations

from .refresh import RefreshController
from .scheduler import ScanScheduler
from .session import ScanSession

__all__ = [
    "RefreshController",
    "ScanScheduler",
    "ScanSession",
]
