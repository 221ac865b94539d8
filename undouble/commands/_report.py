"""Summary blocks printed by the CLI commands."""
from __future__ import annotations

from ..engine import FieldUpdateStats, ReferenceStats, UndoubleStats
from ..removal import RemovalStats
from ..status import ScopeStatus, StatusReport
from ..util import format_size

WIDTH = 70


def banner(title: str, dry_run: bool = False) -> None:
    print("\n" + "=" * WIDTH)
    print(title + (" (DRY RUN)" if dry_run else ""))
    print("=" * WIDTH)


def _verb(dry_run: bool, live: str, dry: str) -> str:
    return dry if dry_run else live


def print_field_stats(stats: FieldUpdateStats) -> None:
    banner(f"{stats.kind.upper()} FIELDS", stats.dry_run)
    print(f"Migratable files:      {stats.migratable:>10,}")
    print(f"Records with links:    {stats.rows_found:>10,}")
    print(f"{_verb(stats.dry_run, 'Records updated:', 'Records to update:'):<23}{stats.rows_updated:>10,}")
    print(f"{_verb(stats.dry_run, 'Links updated:', 'Links to update:'):<23}{stats.references_updated:>10,}")
    for key, count in stats.per_field.items():
        print(f"  - {key}: {count:,}")


def print_reference_stats(stats: ReferenceStats) -> None:
    banner("FILE REFERENCES", stats.dry_run)
    print(f"Migratable files:      {stats.migratable:>10,}")
    print(f"Files with references: {stats.files_touched:>10,}")
    print(f"{_verb(stats.dry_run, 'References updated:', 'References to update:'):<23}{stats.references_updated:>10,}")
    print(f"{_verb(stats.dry_run, 'Index rows updated:', 'Index rows to update:'):<23}{stats.refindex_updated:>10,}")


def print_undouble_stats(stats: UndoubleStats) -> None:
    banner(f"UNDOUBLE SUMMARY (mode={stats.mode})", stats.dry_run)
    print(f"Files to undouble:     {stats.files_to_undouble:>10,}")
    print(f"Unmatched files:       {stats.unmatched:>10,}")
    print(f"Query errors:          {stats.query_errors:>10,}")
    if stats.typolink:
        print_field_stats(stats.typolink)
    if stats.typolink_tag:
        print_field_stats(stats.typolink_tag)
    if stats.references:
        print_reference_stats(stats.references)


def print_removal_stats(stats: RemovalStats) -> None:
    banner("REMOVE DUPLICATE FILES", stats.dry_run)
    print(f"Candidates:            {stats.candidates:>10,}")
    print(f"Still referenced:      {stats.skipped_referenced:>10,}")
    print(f"{_verb(stats.dry_run, 'Files removed:', 'Files to remove:'):<23}{stats.removed:>10,}")
    print(f"Already missing:       {stats.missing:>10,}")
    print(f"{_verb(stats.dry_run, 'Space freed:', 'Space to free:'):<23}{format_size(stats.freed_bytes):>10}")
    if stats.errors:
        print("\nErrors encountered (showing up to 5):")
        for err in stats.errors[:5]:
            print(f"  - {err}")
        if len(stats.errors) > 5:
            print(f"  - ... {len(stats.errors) - 5} more issues")
    if stats.aborted:
        print("\nRemoval aborted: storage refused access.")


def _print_scope(label: str, scope: ScopeStatus) -> None:
    print(label)
    print(f"Total : {scope.total:,}")
    print(f"Unique: {scope.unique:,}")
    print("-" * 22)
    print(f"Remove: {scope.removable:,} ({format_size(scope.space_saved)})")


def print_status(report: StatusReport, staging_prefix: str) -> None:
    banner("STATUS")
    _print_scope("All files", report.all_files)
    print()
    _print_scope(f"Files in {staging_prefix}", report.staging)
    print()
    print(f"Top {len(report.most_duplicated)} files with most duplicates")
    for count, identifier in report.most_duplicated:
        print(f"{count:>6,} {identifier}")
