#!/usr/bin/env python3
"""
Command-line maintenance utility: archive migration, integrity checks and schema upgrades.
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from hallpass.core.archive import MigrationReport, migrate
from hallpass.core.errors import HallPassError
from hallpass.core.maintenance import MaintenanceReport, check_database_integrity, upgrade_schema


def format_report(report: MaintenanceReport) -> str:
    """Format a maintenance report for display."""
    lines = [f"Operation: {report.operation}"]
    if report.completed_at and report.started_at:
        duration = report.completed_at - report.started_at
        lines.append(f"Duration: {duration.total_seconds():.2f} seconds")

    if report.errors:
        lines.append(f"Status: FAILED ({len(report.errors)} errors)")
    elif report.issues_found > report.issues_resolved:
        lines.append(f"Status: ISSUES FOUND ({report.issues_found} issues)")
    else:
        lines.append("Status: SUCCESS")

    if report.metadata:
        lines.append("Details:")
        for key, value in report.metadata.items():
            lines.append(f"  {key}: {value}")

    for title, items in (("Errors", report.errors), ("Actions Taken", report.actions_taken),
                         ("Recommendations", report.recommendations)):
        if items:
            lines.append(f"{title}:")
            lines.extend(f"  - {item}" for item in items)

    return "\n".join(lines)


def format_migration(report: MigrationReport) -> str:
    """Format a migration report for display."""
    if report.is_noop:
        return "Operation: archive_migration\nStatus: SUCCESS (nothing to move)"

    lines = [
        "Operation: archive_migration",
        "Status: SUCCESS",
        f"Moved: {report.moved}",
    ]
    for partition, count in report.per_partition.items():
        lines.append(f"  {partition}: {count}")
    if report.skipped_blank:
        lines.append(f"Blank rows dropped: {report.skipped_blank}")
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(
        description="Hall pass log maintenance utilities",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --migrate                 # Move both working partitions into the archive
  %(prog)s --check-integrity         # Check database integrity and table layout
  %(prog)s --upgrade-schema          # Add missing columns to existing tables
  %(prog)s --migrate --json          # Output results as JSON

Environment variables:
- DB_PATH=./data/hallpass.db (database location)
        """
    )

    parser.add_argument("--migrate", "-m", action="store_true",
                        help="Drain AM and PM partitions into the archive")
    parser.add_argument("--check-integrity", "-i", action="store_true",
                        help="Check SQLite integrity, tables and columns")
    parser.add_argument("--upgrade-schema", "-u", action="store_true",
                        help="Create missing partitions and add missing columns")
    parser.add_argument("--db-path", default=None,
                        help="Database file (defaults to DB_PATH)")
    parser.add_argument("--json", "-j", action="store_true",
                        help="Output results as JSON instead of human-readable text")

    args = parser.parse_args()

    if not (args.migrate or args.check_integrity or args.upgrade_schema):
        parser.error("Must specify at least one maintenance operation")

    results = []
    exit_code = 0

    try:
        # Upgrade before migrating so legacy tables can be read
        if args.upgrade_schema:
            report = upgrade_schema(args.db_path)
            results.append((report.to_dict(), format_report(report)))

        if args.migrate:
            report = migrate(args.db_path)
            results.append((report.to_dict(), format_migration(report)))

        if args.check_integrity:
            report = check_database_integrity(args.db_path)
            if report.errors:
                exit_code = 1
            results.append((report.to_dict(), format_report(report)))

    except HallPassError as e:
        print(f"Error: {e.user_message}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps([data for data, _ in results], indent=2))
    else:
        print("\n\n".join(text for _, text in results))

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
