#!/usr/bin/env python3
"""
Shared utilities for EVCompare maintenance scripts.

This module provides common functionality used across multiple scripts:
- Logging configuration
- Backend import path setup
- Snapshot path validation
- Backfill report printing and the shared snapshot backfill entry point
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Optional

# Project root path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
BACKEND_DIR = PROJECT_ROOT / "backend"
DEFAULT_SNAPSHOT = PROJECT_ROOT / "data" / "vehicles-data.json"

if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

# Configure module logger
logger = logging.getLogger(__name__)

# Names printed per list in reports
REPORT_SAMPLE_SIZE = 10


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for scripts.

    Args:
        verbose: If True, set DEBUG level, otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def validate_path_within_project(path: Path) -> bool:
    """
    Validate that a path is within the project root.

    Args:
        path: Path to validate.

    Returns:
        True if path is within project root, False otherwise.
    """
    try:
        return path.resolve().is_relative_to(PROJECT_ROOT)
    except OSError:
        return False


def resolve_snapshot_path(value: Optional[str]) -> Path:
    """Snapshot path from ``--file`` (default ``data/vehicles-data.json``)."""
    path = Path(value) if value else DEFAULT_SNAPSHOT
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    if not validate_path_within_project(path):
        raise SystemExit(f"Refusing to use a snapshot outside the project: {path}")
    if not path.exists():
        raise SystemExit(f"File not found: {path}")
    return path


def add_snapshot_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--file",
        type=str,
        default=None,
        help=f"Vehicle snapshot (default: {DEFAULT_SNAPSHOT.relative_to(PROJECT_ROOT)})",
    )
    parser.add_argument("--dry-run", action="store_true", help="Report changes without writing")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")


def print_report(report: Any, title: str) -> None:
    """Print a BackfillReport summary with sampled change and missing lists."""
    print("\n" + "=" * 60)
    print(title.upper())
    print("=" * 60)
    print(f"Vehicles:  {report.total}")
    print(f"Updated:   {report.updated}")

    if report.changes:
        print("\nChanges:")
        for line in report.changes[:REPORT_SAMPLE_SIZE]:
            print(f"  - {line}")
        if len(report.changes) > REPORT_SAMPLE_SIZE:
            print(f"  ... and {len(report.changes) - REPORT_SAMPLE_SIZE} more")

    for field_name, labels in report.missing.items():
        print(f"\nStill missing {field_name}: {len(labels)}")
        for i, label in enumerate(labels[:REPORT_SAMPLE_SIZE], start=1):
            print(f"  {i}. {label}")
    print("=" * 60)


def run_snapshot_backfill(operation: str, description: str) -> None:
    """Shared ``main`` of the snapshot backfill scripts."""
    parser = argparse.ArgumentParser(description=description)
    add_snapshot_arguments(parser)
    args = parser.parse_args()

    setup_logging(args.verbose)

    from app.services.backfill_service import run_backfill

    path = resolve_snapshot_path(args.file)
    report = run_backfill(operation, path, dry_run=args.dry_run)
    print_report(report, description)
    if args.dry_run:
        print("Dry run: no files were written.")
