"""Work budgets bounding one slice of scheduler work.

A budget is checked by the scheduler between units of work (one directory
enumeration, one child recursion). Once exhausted the scheduler returns and
the tree itself holds all state needed to resume.
"""

from __future__ import annotations

import time
from typing import Final

from dirstat.types.aliases import Clock

__all__ = ["StepBudget", "TimeBudget"]

_UNBOUNDED: Final[None] = None


class TimeBudget:
    """Wall-clock budget for one scheduling slice.

    ``seconds=None`` never runs out, ``seconds=0`` is exhausted immediately,
    which lets the scheduler do at most one unit of work.
    """

    def __init__(self, seconds: float | None, *, clock: Clock = time.monotonic) -> None:
        """Start the budget.

        Args:
            seconds: Length of the slice, or None for an unbounded budget
            clock: Monotonic clock returning seconds

        Raises:
            ValueError: If seconds is negative
        """
        if seconds is not None and seconds < 0:
            msg = "seconds must be non-negative"
            raise ValueError(msg)

        self._clock: Clock = clock
        self._deadline: float | None = None if seconds is None else clock() + seconds

    @classmethod
    def unbounded(cls) -> TimeBudget:
        """Budget used for synchronous runs such as a subtree refresh."""
        return cls(_UNBOUNDED)

    @classmethod
    def from_milliseconds(cls, ms: int, *, clock: Clock = time.monotonic) -> TimeBudget:
        return cls(ms / 1000.0, clock=clock)

    @property
    def remaining(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def is_exhausted(self) -> bool:
        if self._deadline is None:
            return False
        return self._clock() >= self._deadline


class StepBudget:
    """Budget that runs out after a fixed number of checks.

    Deterministic counterpart to ``TimeBudget`` for reproducible slicing.
    """

    def __init__(self, max_checks: int) -> None:
        if max_checks < 0:
            msg = "max_checks must be non-negative"
            raise ValueError(msg)
        self.max_checks: int = max_checks
        self.checks: int = 0

    def is_exhausted(self) -> bool:
        self.checks += 1
        return self.checks > self.max_checks
