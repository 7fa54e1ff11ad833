"""Logging setup with scan ID tracking.

Every record carries the ID of the scan that produced it, taken from a
ContextVar, so interleaved output of a scan and a refresh (or of two
sessions driven by the same event loop) can be told apart.
"""

import contextvars
import logging
import logging.handlers
import sys
from collections.abc import Mapping
from typing import Final, override

# Scan ID of the current execution context, inherited by asyncio tasks
scan_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "scan_id",
    default=None,
)

DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - [%(scan_id)s] - %(message)s"

SYSLOG_LOG_FORMAT: Final[str] = "dirstat[%(process)d]: %(levelname)s - [%(scan_id)s] - %(name)s - %(message)s"

DEFAULT_SYSLOG_ADDRESS: Final[str] = "/dev/log"


class ScanIdFilter(logging.Filter):
    """Logging filter that stamps the current scan ID onto records."""

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        """Add the scan ID from the ContextVar, "-" when none is set.

        Args:
            record: Log record to enhance

        Returns:
            True to allow the record to be logged
        """
        scan_id = scan_id_var.get()
        record.scan_id = scan_id if scan_id is not None else "-"
        return True


def configure_logging(
    *,
    log_level: str = "INFO",
    enable_syslog: bool = False,
    syslog_address: str = DEFAULT_SYSLOG_ADDRESS,
    enable_console: bool = True,
) -> None:
    """Configure root logging for the command line tool.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_syslog: Also send records to the local syslog socket
        syslog_address: Syslog socket address
        enable_console: Write records to stderr

    Example:
        >>> configure_logging(log_level="DEBUG")
        >>> set_scan_id("a1b2c3")
        >>> logging.getLogger("dirstat").info("Scan started", extra={"roots": 1})
    """
    root_logger = logging.getLogger()

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    scan_filter = ScanIdFilter()

    if enable_syslog:
        try:
            syslog_handler = logging.handlers.SysLogHandler(
                address=syslog_address,
                facility=logging.handlers.SysLogHandler.LOG_USER,
            )
            syslog_handler.setFormatter(logging.Formatter(SYSLOG_LOG_FORMAT))
            syslog_handler.addFilter(scan_filter)
            root_logger.addHandler(syslog_handler)
        except OSError as exc:
            # No syslog daemon (containers, macOS sandboxes); console only
            print(
                f"Warning: Could not connect to syslog at {syslog_address}: {exc}",
                file=sys.stderr,
            )

    if enable_console:
        # stdout carries the scan report
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        console_handler.addFilter(scan_filter)
        root_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the specified module.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def set_scan_id(scan_id: str) -> None:
    """Set the scan ID for the current context.

    Args:
        scan_id: Identifier of the running scan (e.g., a short UUID)
    """
    _ = scan_id_var.set(scan_id)


def get_scan_id() -> str | None:
    return scan_id_var.get()


def clear_scan_id() -> None:
    _ = scan_id_var.set(None)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    *,
    extra: Mapping[str, object] | None = None,
) -> None:
    """Log a message with additional context fields and the current scan ID.

    Args:
        logger: Logger instance to use
        level: Logging level (e.g., logging.INFO)
        message: Log message
        extra: Additional context fields to include in log

    Example:
        >>> log_with_context(
        ...     get_logger(__name__),
        ...     logging.INFO,
        ...     "Scan finished",
        ...     extra={"root": "/srv", "files": 1204, "elapsed_s": 0.8},
        ... )
    """
    context = dict(extra) if extra else {}

    scan_id = get_scan_id()
    if scan_id:
        context["scan_id"] = scan_id

    logger.log(level, message, extra=context)
