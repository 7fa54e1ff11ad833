"""Error types raised by the scan core."""

from __future__ import annotations


class DirstatError(Exception):
    """Base exception for all dirstat errors."""

    def __init__(self, message: str, context: dict[str, object] | None = None) -> None:
        """Initialize DirstatError.

        Args:
            message: Error message
            context: Additional context information for debugging
        """
        super().__init__(message)
        self.context: dict[str, object] = context or {}


class EnumerationError(DirstatError):
    """A directory could not be listed (missing, permission denied, ...).

    The scheduler recovers from this locally by treating the directory as
    empty; it never aborts a scan.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        context: dict[str, object] | None = None,
    ) -> None:
        """Initialize EnumerationError.

        Args:
            message: Error message
            path: Directory that failed to enumerate
            context: Additional context information
        """
        full_context = context or {}
        if path is not None:
            full_context["path"] = path

        super().__init__(message, full_context)
        self.path: str | None = path


class InvariantViolation(DirstatError):
    """The tree was asked to do something that breaks its invariants.

    Raised for programming errors such as adding a child to a finished
    node, refreshing a synthetic item or removing a child that is not
    present. Callers are not expected to recover.
    """


class ScanRootError(DirstatError):
    """A scan was opened without paths or on a path that does not exist."""
