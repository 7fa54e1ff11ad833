"""Shared utility modules.

This package provides pure, stateless formatting helpers for the scan
report and the logging setup used by the command line tool.
"""

from dirstat.utils.formatting import (
    format_count,
    format_duration,
    format_percent,
    format_size,
    format_timestamp,
)

__all__ = [
    "format_count",
    "format_duration",
    "format_percent",
    "format_size",
    "format_timestamp",
]
