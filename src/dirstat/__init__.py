"""dirstat - incremental directory statistics.

This package scans filesystem trees into an aggregation tree of drives,
directories and files whose sizes, counts and timestamps are summed from
the leaves to the root, in small resumable time slices.
"""

from dirstat.__main__ import main

__all__ = ["main"]
