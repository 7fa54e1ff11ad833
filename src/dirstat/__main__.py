"""Application entry point and CLI for dirstat.

This module implements the command line tool: argument parsing,
configuration loading, logging setup, the sliced asyncio scan and the
final report on stdout.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import NoReturn

from dirstat.core.config import (
    ConfigurationError,
    EnvironmentVariableError,
    MainConfig,
    load_main_config,
)
from dirstat.core.data.filesystem.volumes import volume_label
from dirstat.core.errors import DirstatError, ScanRootError
from dirstat.core.scan.session import ScanSession
from dirstat.core.tree.attributes import format_attributes
from dirstat.core.tree.node import Node, NodeKind
from dirstat.utils.formatting import (
    format_count,
    format_duration,
    format_percent,
    format_size,
    format_timestamp,
)
from dirstat.utils.logging import clear_scan_id, configure_logging, get_logger

__all__ = ["format_report", "main"]

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_RUNTIME_ERROR = 1
EXIT_ROOT_MISSING = 2

DEFAULT_TOP = 10


def parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Arguments to parse; ``sys.argv[1:]`` when None

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="dirstat",
        description="Scan directories and report where the space went",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dirstat ~/projects
  dirstat --show-free-space --show-unknown /
  dirstat --config dirstat.yaml --top 20 /srv /var
        """,
    )

    _ = parser.add_argument(
        "paths",
        nargs="+",
        help="Directories or mount points to scan",
        metavar="PATH",
    )

    _ = parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to a YAML configuration file (defaults apply when omitted)",
        metavar="PATH",
    )

    _ = parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override log level from configuration",
        metavar="LEVEL",
    )

    _ = parser.add_argument(
        "--no-syslog",
        action="store_true",
        help="Disable syslog integration even when the configuration enables it",
    )

    _ = parser.add_argument(
        "--slice-ms",
        type=int,
        help="Length of one scan slice in milliseconds (overrides config)",
        metavar="MS",
    )

    for flag, help_text in (
        ("--follow-mount-points", "Descend into volumes mounted below the scanned tree"),
        ("--follow-junctions", "Descend into junctions and directory symlinks"),
        ("--skip-hidden", "Ignore hidden files and directories"),
        ("--show-free-space", "Report free space of each drive as an item"),
        ("--show-unknown", "Report capacity not covered by the scan as an item"),
    ):
        _ = parser.add_argument(flag, action="store_true", help=help_text)

    _ = parser.add_argument(
        "--top",
        type=int,
        default=DEFAULT_TOP,
        help=f"Number of biggest children and extensions to list (default: {DEFAULT_TOP})",
        metavar="N",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> MainConfig:
    """Load the configuration file and apply command line overrides.

    Raises:
        ConfigurationError: If the file is missing or invalid
        EnvironmentVariableError: If a referenced variable is not set
    """
    config_path: Path | None = args.config  # pyright: ignore[reportAny]  # argparse boundary
    config = load_main_config(config_path) if config_path is not None else MainConfig()

    policy_overrides: dict[str, bool] = {}
    for name in ("follow_mount_points", "follow_junctions", "skip_hidden", "show_free_space", "show_unknown"):
        if getattr(args, name):  # pyright: ignore[reportAny]  # argparse boundary
            policy_overrides[name] = True
    if policy_overrides:
        config.policy = config.policy.model_copy(update=policy_overrides)

    slice_ms: int | None = args.slice_ms  # pyright: ignore[reportAny]  # argparse boundary
    if slice_ms is not None:
        if slice_ms <= 0:
            msg = f"--slice-ms must be positive, got {slice_ms}"
            raise ConfigurationError(msg)
        config.scheduler.slice_ms = slice_ms

    log_level: str | None = args.log_level  # pyright: ignore[reportAny]  # argparse boundary
    if log_level is not None:
        config.application.log_level = log_level

    return config


def _child_label(node: Node) -> str:
    if node.kind is NodeKind.DIRECTORY:
        return f"{node.name}/"
    return node.name


def format_report(session: ScanSession, *, top: int = DEFAULT_TOP) -> str:
    """Render the summary printed after a scan.

    Args:
        session: Finished (or interrupted) scan
        top: Number of children and extensions to list

    Returns:
        Multi-line report
    """
    root = session.root
    if root is None:
        return "Scan root no longer exists.\n"

    lines = [
        root.path or root.name,
        f"  Size:        {format_size(root.size)} ({format_count(root.size)} bytes)",
        f"  Files:       {format_count(root.files_count)}",
        f"  Directories: {format_count(root.subdirs_count)}",
    ]
    last_change = format_timestamp(root.last_change)
    if last_change:
        lines.append(f"  Last change: {last_change}")
    if root.has_valid_attributes and format_attributes(root.attributes):
        lines.append(f"  Attributes:  {format_attributes(root.attributes)}")
    lines.append(f"  Elapsed:     {format_duration(session.elapsed)}")
    for drive in session.drives():
        lines.append(f"  Volume:      {volume_label(drive.path)}")
    if not root.done:
        percent = session.progress().percent
        status = "incomplete" if percent is None else f"incomplete, {percent:.0f}%"
        lines.append(f"  Status:      {status}")

    if top > 0 and root.child_count:
        lines.append("")
        lines.append("Biggest items:")
        children = sorted(root.iter_children(), key=lambda node: node.size, reverse=True)
        for child in children[:top]:
            lines.append(f"  {format_percent(child.fraction):>6}  {format_size(child.size):>10}  {_child_label(child)}")

    extensions = session.extension_statistics()
    if top > 0 and extensions:
        lines.append("")
        lines.append("Extensions:")
        ranked = sorted(extensions.items(), key=lambda item: item[1].bytes, reverse=True)
        for extension, record in ranked[:top]:
            lines.append(f"  {extension:<10}  {format_size(record.bytes):>10}  {format_count(record.files)} files")

    return "\n".join(lines) + "\n"


async def async_main(
    *,
    paths: Sequence[str],
    config: MainConfig,
    enable_syslog: bool = True,
    top: int = DEFAULT_TOP,
) -> int:
    """Scan ``paths`` in slices and print the report.

    Args:
        paths: Locations to scan
        config: Validated configuration with CLI overrides applied
        enable_syslog: Allow syslog when the configuration enables it
        top: Number of children and extensions to list

    Returns:
        EXIT_SUCCESS once the report is printed

    Raises:
        ScanRootError: If a path does not exist; the only source of
            EXIT_ROOT_MISSING
    """
    configure_logging(
        log_level=config.application.log_level,
        enable_syslog=enable_syslog and config.application.syslog_enabled,
        enable_console=True,
    )
    logger = get_logger(__name__)

    session = ScanSession.open(paths, config=config)
    scan = asyncio.create_task(session.run())

    loop = asyncio.get_running_loop()
    handled_signals: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scan.cancel)
        except NotImplementedError:
            # Event loops on Windows have no signal handler support
            continue
        handled_signals.append(sig)

    try:
        _ = await scan
    except asyncio.CancelledError:
        logger.info("Scan interrupted; reporting partial results")
    finally:
        for sig in handled_signals:
            _ = loop.remove_signal_handler(sig)

    print(format_report(session, top=top), end="")
    clear_scan_id()
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None) -> NoReturn:
    """Main entry point for the dirstat command.

    Exit Codes:
        0: Scan completed (or was interrupted) and the report was printed
        1: Configuration error or runtime error
        2: A scan root does not exist when the scan opens
    """
    args = parse_arguments(argv)

    try:
        config = build_config(args)

        paths: list[str] = args.paths  # pyright: ignore[reportAny]  # argparse boundary
        no_syslog_arg: bool = args.no_syslog  # pyright: ignore[reportAny]  # argparse boundary
        top_arg: int = args.top  # pyright: ignore[reportAny]  # argparse boundary

        exit_code = asyncio.run(
            async_main(
                paths=paths,
                config=config,
                enable_syslog=not no_syslog_arg,
                top=top_arg,
            )
        )

    except ConfigurationError as exc:
        print(f"Configuration error:\n{exc}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    except EnvironmentVariableError as exc:
        print(f"Environment variable error:\n{exc}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    except ScanRootError as exc:
        print(f"Scan error: {exc}", file=sys.stderr)
        sys.exit(EXIT_ROOT_MISSING)

    except DirstatError as exc:
        print(f"Runtime error: {exc}", file=sys.stderr)
        sys.exit(EXIT_RUNTIME_ERROR)

    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(EXIT_SUCCESS)

    except Exception as exc:
        print(f"Unexpected error: {exc}", file=sys.stderr)
        logging.exception("Unexpected error during scan")
        sys.exit(EXIT_RUNTIME_ERROR)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
