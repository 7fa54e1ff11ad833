"""Pure formatting helpers for the scan report.

All functions are stateless and never touch the tree; they only turn numbers
into display strings.
"""

from datetime import datetime

# Binary unit steps (1024-based), smallest first
_UNITS = ("KB", "MB", "GB", "TB", "PB")
_STEP = 1024

# Time unit constants
_MINUTE = 60
_HOUR = _MINUTE * 60


def format_size(bytes: int, *, precision: int = 1) -> str:
    """Convert bytes to a human-readable size.

    Args:
        bytes: Number of bytes to format (must be non-negative)
        precision: Decimal places for KB and larger units

    Returns:
        "N Bytes" below one KB, otherwise the largest unit that keeps the
        value at or above 1

    Examples:
        >>> format_size(512)
        '512 Bytes'
        >>> format_size(1536)
        '1.5 KB'
        >>> format_size(5242880)
        '5.0 MB'
        >>> format_size(2748779069440)
        '2.5 TB'
    """
    if bytes < 0:
        msg = "bytes must be non-negative"
        raise ValueError(msg)

    if bytes < _STEP:
        return f"{bytes} Bytes"

    value = float(bytes)
    unit = _UNITS[0]
    for unit in _UNITS:
        value /= _STEP
        if value < _STEP:
            break
    return f"{value:.{precision}f} {unit}"


def format_count(count: int) -> str:
    """Group thousands with commas.

    Examples:
        >>> format_count(1234567)
        '1,234,567'
    """
    return f"{count:,}"


def format_percent(fraction: float, *, precision: int = 1) -> str:
    """Render a 0..1 fraction as a percentage.

    Examples:
        >>> format_percent(0.4213)
        '42.1%'
        >>> format_percent(1.0)
        '100.0%'
    """
    return f"{fraction * 100:.{precision}f}%"


def format_duration(seconds: float) -> str:
    """Convert elapsed seconds to a short display string.

    Below one minute the value keeps one decimal, since scans of small trees
    finish in well under a second.

    Examples:
        >>> format_duration(12.34)
        '12.3s'
        >>> format_duration(90)
        '1m 30s'
        >>> format_duration(3665)
        '1h 1m'
    """
    if seconds < 0:
        msg = "seconds must be non-negative"
        raise ValueError(msg)

    if seconds < _MINUTE:
        return f"{seconds:.1f}s"

    total_seconds = int(seconds)
    if total_seconds >= _HOUR:
        hours, remaining = divmod(total_seconds, _HOUR)
        minutes = remaining // _MINUTE
        if minutes > 0:
            return f"{hours}h {minutes}m"
        return f"{hours}h"

    minutes, remaining = divmod(total_seconds, _MINUTE)
    if remaining > 0:
        return f"{minutes}m {remaining}s"
    return f"{minutes}m"


def format_timestamp(timestamp: float) -> str:
    """Render a POSIX timestamp in local time, empty for 0 (never set)."""
    if timestamp <= 0:
        return ""
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M")
