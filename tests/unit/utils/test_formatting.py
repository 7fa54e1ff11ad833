"""Unit tests for formatting utilities.

Tests cover:
- All unit boundaries (Bytes, KB, MB, GB, TB, PB)
- Edge cases (zero, negative, very large values)
- Durations across the seconds, minutes and hours ranges
- Property-based testing with Hypothesis
"""

from datetime import datetime

import pytest
from hypothesis import given
from hypothesis import strategies as st

from dirstat.utils.formatting import (
    format_count,
    format_duration,
    format_percent,
    format_size,
    format_timestamp,
)


class TestFormatSize:
    """Test suite for format_size function."""

    @pytest.mark.parametrize(
        ("bytes_value", "expected"),
        [
            # Bytes range (< 1024)
            (0, "0 Bytes"),
            (1, "1 Bytes"),
            (1023, "1023 Bytes"),
            # KB range
            (1024, "1.0 KB"),
            (1536, "1.5 KB"),
            # MB range
            (1024**2, "1.0 MB"),
            (1024**2 * 5, "5.0 MB"),
            # GB range
            (1024**3 * 10, "10.0 GB"),
            # TB range
            (2748779069440, "2.5 TB"),
            # PB is the largest unit
            (1024**5, "1.0 PB"),
            (1024**6, "1024.0 PB"),
        ],
    )
    def test_format_size_boundaries(self, bytes_value: int, expected: str) -> None:
        """Test format_size at all unit boundaries."""
        assert format_size(bytes_value) == expected

    def test_format_size_precision(self) -> None:
        assert format_size(1536, precision=2) == "1.50 KB"

    def test_format_size_negative_raises_error(self) -> None:
        """Test that negative bytes raise ValueError."""
        with pytest.raises(ValueError, match="bytes must be non-negative"):
            _ = format_size(-1)

    @given(st.integers(min_value=0, max_value=1023))
    def test_small_values_are_exact(self, bytes_value: int) -> None:
        """Property: values below one KB are shown verbatim."""
        assert format_size(bytes_value) == f"{bytes_value} Bytes"

    @given(st.integers(min_value=1024, max_value=1024**5 - 1))
    def test_scaled_value_below_next_unit(self, bytes_value: int) -> None:
        """Property: a scaled value never reaches 1024 below PB."""
        number, unit = format_size(bytes_value).split()

        assert unit in {"KB", "MB", "GB", "TB"}
        assert 1.0 <= float(number) <= 1024.0


class TestFormatCount:
    """Test suite for format_count function."""

    @pytest.mark.parametrize(
        ("count", "expected"),
        [(0, "0"), (999, "999"), (1000, "1,000"), (1234567, "1,234,567")],
    )
    def test_grouping(self, count: int, expected: str) -> None:
        assert format_count(count) == expected


class TestFormatPercent:
    """Test suite for format_percent function."""

    def test_fraction(self) -> None:
        assert format_percent(0.4213) == "42.1%"

    def test_whole(self) -> None:
        assert format_percent(1.0) == "100.0%"

    def test_precision(self) -> None:
        assert format_percent(0.5, precision=0) == "50%"


class TestFormatDuration:
    """Test suite for format_duration function."""

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (0, "0.0s"),
            (12.34, "12.3s"),
            (59.9, "59.9s"),
            (60, "1m"),
            (90, "1m 30s"),
            (3600, "1h"),
            (3665, "1h 1m"),
            (7325, "2h 2m"),
        ],
    )
    def test_format_duration(self, seconds: float, expected: str) -> None:
        assert format_duration(seconds) == expected

    def test_negative_raises_error(self) -> None:
        with pytest.raises(ValueError, match="seconds must be non-negative"):
            _ = format_duration(-1)


class TestFormatTimestamp:
    """Test suite for format_timestamp function."""

    def test_unset_timestamp_is_empty(self) -> None:
        assert format_timestamp(0) == ""

    def test_local_time(self) -> None:
        stamp = datetime(2024, 5, 17, 14, 3).timestamp()

        assert format_timestamp(stamp) == "2024-05-17 14:03"
