#!/usr/bin/env python3
"""View isolation validation script.

Enforces the architectural rule that core/, types/, and utils/ directories
stay independent of any presentation layer. The scan core talks to views only
through the TreeObserver protocol, so none of these modules may import a UI
toolkit or the command line module.

This script scans for:
- Imports of GUI/TUI toolkits (tkinter, Qt bindings, wx, kivy, textual, curses)
- Imports of dirstat.__main__ (the CLI report lives there)
- print() calls, which belong to the CLI

Exit codes:
    0: No violations found (clean)
    1: Violations detected (architectural rule broken)
"""

from __future__ import annotations

import re
import sys
from pathlib import Path
from typing import Final

# ANSI color codes for terminal output
RED: Final[str] = "\033[91m"
GREEN: Final[str] = "\033[92m"
YELLOW: Final[str] = "\033[93m"
RESET: Final[str] = "\033[0m"

# Directories that must remain view-agnostic
PROTECTED_DIRS: Final[tuple[str, ...]] = ("core", "types", "utils")

UI_MODULES: Final[tuple[str, ...]] = (
    "tkinter",
    "PyQt5",
    "PyQt6",
    "PySide2",
    "PySide6",
    "wx",
    "kivy",
    "textual",
    "curses",
)

UI_IMPORT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^\s*(?:from|import)\s+(?:" + "|".join(re.escape(name) for name in UI_MODULES) + r")\b"
)

CLI_IMPORT_PATTERN: Final[re.Pattern[str]] = re.compile(r"^\s*(?:from|import)\s+dirstat\.__main__\b")

PRINT_PATTERN: Final[re.Pattern[str]] = re.compile(r"^\s*print\(")

# utils/logging.py reports a missing syslog socket before logging is up
PRINT_ALLOWED: Final[frozenset[str]] = frozenset({"logging.py"})


def check_file(file_path: Path) -> list[tuple[int, str]]:
    """Check a single Python file for view isolation violations.

    Args:
        file_path: Path to the Python file to check.

    Returns:
        List of (line_number, violation_description) tuples.
        Empty list if no violations found.
    """
    violations: list[tuple[int, str]] = []

    try:
        lines = file_path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        print(f"{YELLOW}Warning: Could not read {file_path}: {e}{RESET}", file=sys.stderr)
        return violations

    for line_num, line in enumerate(lines, start=1):
        if UI_IMPORT_PATTERN.search(line):
            violations.append((line_num, f"UI toolkit import: {line.strip()}"))

        if CLI_IMPORT_PATTERN.search(line):
            violations.append((line_num, f"Import of the CLI module: {line.strip()}"))

        if PRINT_PATTERN.search(line) and file_path.name not in PRINT_ALLOWED:
            violations.append((line_num, f"print() outside the CLI: {line.strip()}"))

    return violations


def scan_directory(base_path: Path, protected_dir: str) -> dict[Path, list[tuple[int, str]]]:
    """Scan a protected directory for violations.

    Args:
        base_path: Root path of the dirstat package.
        protected_dir: Name of protected directory (core, types, or utils).

    Returns:
        Dictionary mapping file paths to their violations.
    """
    dir_path = base_path / protected_dir
    if not dir_path.exists():
        print(
            f"{YELLOW}Warning: Protected directory {dir_path} does not exist{RESET}",
            file=sys.stderr,
        )
        return {}

    violations_by_file: dict[Path, list[tuple[int, str]]] = {}
    for py_file in dir_path.rglob("*.py"):
        if "__pycache__" in py_file.parts:
            continue
        file_violations = check_file(py_file)
        if file_violations:
            violations_by_file[py_file] = file_violations

    return violations_by_file


def main() -> int:
    """Main entry point for the view isolation check.

    Returns:
        Exit code: 0 if no violations, 1 if violations found.
    """
    project_root = Path(__file__).parent.parent
    src_path = project_root / "src" / "dirstat"

    if not src_path.exists():
        print(f"{RED}Error: Could not find src/dirstat directory{RESET}", file=sys.stderr)
        return 1

    print("Checking view isolation in core, types, and utils modules...")
    print(f"Scanning: {src_path}\n")

    all_violations: dict[Path, list[tuple[int, str]]] = {}
    for protected_dir in PROTECTED_DIRS:
        all_violations.update(scan_directory(src_path, protected_dir))

    if not all_violations:
        print(f"{GREEN}✓ No view isolation violations found!{RESET}")
        return 0

    total_violations = sum(len(v) for v in all_violations.values())
    print(f"{RED}✗ Found {total_violations} view isolation violations:{RESET}\n")

    for file_path, violations in sorted(all_violations.items()):
        try:
            rel_path = file_path.relative_to(project_root)
        except ValueError:
            rel_path = file_path

        print(f"{RED}{rel_path}{RESET}")
        for line_num, description in violations:
            print(f"  {line_num}: {description}")
        print()

    print(f"{RED}View isolation check failed!{RESET}")
    print("\nCore, types, and utils must reach views only through TreeObserver.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
