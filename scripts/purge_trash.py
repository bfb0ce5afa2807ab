#!/usr/bin/env python3
"""
Trash purge script.

Runs one janitor sweep against the configured sandbox, outside the server.
Entries past the retention window are permanently deleted together with
their metadata. Interrupted soft-deletes are reconciled first.

Usage:
    python scripts/purge_trash.py [--dry-run] [--root PATH] [--retention-days N]

Options:
    --dry-run           Show what would be reclaimed without deleting
    --root PATH         Sandbox root (default: FILEKEEP_ROOT)
    --retention-days N  Override the retention window
    --scan              Also report corrupt and orphaned trash records
"""

import sys
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root))

from filekeep.Config import load_config
from filekeep.TrashGate import TrashService, TrashSettings


def build_settings(args) -> TrashSettings:
    config = load_config(env_file=project_root / ".env")
    if args.root:
        config.set("FILEKEEP_ROOT", args.root)
    if args.retention_days is not None:
        config.set("FILEKEEP_TRASH_RETENTION_DAYS", args.retention_days)
    return TrashSettings.from_config(config)


def print_scan(service: TrashService) -> None:
    result = service.scan()
    print(f"  Entries:          {len(result.entries)}")
    print(f"  Corrupt metadata: {len(result.corrupt)}")
    for name in result.corrupt:
        print(f"    - {name}")
    print(f"  Content orphans:  {len(result.orphan_content)}")
    for name in result.orphan_content:
        print(f"    - {name}")
    print(f"  Metadata orphans: {len(result.orphan_metadata)}")
    for name in result.orphan_metadata:
        print(f"    - {name}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Permanently delete expired trash entries")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be reclaimed without deleting")
    parser.add_argument("--root", default=None, help="Sandbox root (default: FILEKEEP_ROOT)")
    parser.add_argument("--retention-days", type=float, default=None, help="Override retention window in days")
    parser.add_argument("--scan", action="store_true", help="Report corrupt and orphaned trash records")
    args = parser.parse_args(argv)

    try:
        settings = build_settings(args)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    service = TrashService(settings)
    service.initialize()

    print("=" * 60)
    print("Trash Purge")
    print("=" * 60)
    print(f"Trash:     {service.staging_dir}")
    print(f"Retention: {settings.retention_days:g} day(s)")
    if args.dry_run:
        print("DRY RUN - nothing will be deleted")
    print()

    if args.scan:
        print("Scan:")
        print_scan(service)
        print()

    report = service.sweep_once(dry_run=args.dry_run)

    label = "Would reclaim" if args.dry_run else "Reclaimed"
    print(f"{label}: {len(report.reclaimed)}")
    for name in report.reclaimed:
        print(f"  - {name}")
    if report.fallback_clock:
        print(f"Aged by modification time: {len(report.fallback_clock)}")
    if report.orphan_sidecars_removed:
        print(f"Orphan metadata removed: {len(report.orphan_sidecars_removed)}")
    print(f"Retained: {report.retained}")

    if report.errors:
        print(f"Errors: {len(report.errors)}", file=sys.stderr)
        for err in report.errors:
            print(f"  - {err.name}: {err.error}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
