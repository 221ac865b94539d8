# undouble/engine.py
"""
Undoubling workflows.

Files in the staging folder are consolidated in two passes:
1. internal: duplicates among staged files are pointed at the lowest uid
   inside the staging folder;
2. external: staged files that duplicate a file elsewhere are pointed at the
   lowest uid outside the staging folder.

Each pass rewrites typolink fields, typolink_tag fields and then structured
references. Every step can run on its own, reuses a duplicate map built by an
earlier step of the same run, and can be repeated safely: content that no
longer changes is never written.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .canonical import INTERNAL, ConsolidationRun, check_mode, ensure_run, prepare_run
from .config import TYPOLINK, TYPOLINK_TAG, UndoubleConfig
from .db import Store
from .fields import select_fields
from .references import migrate_references_to_file
from .softref import SYNTAXES, fetch_reference_rows, rewrite_row
from .util import LogCallback, ProgressCallback, emit_log, emit_progress, progress_label


@dataclass
class FieldUpdateStats:
    kind: str
    dry_run: bool = False
    migratable: int = 0
    rows_found: int = 0
    rows_updated: int = 0
    references_updated: int = 0
    per_field: Dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "dry_run": self.dry_run,
            "migratable": self.migratable,
            "rows_found": self.rows_found,
            "rows_updated": self.rows_updated,
            "references_updated": self.references_updated,
            "per_field": dict(self.per_field),
        }


@dataclass
class ReferenceStats:
    dry_run: bool = False
    migratable: int = 0
    files_touched: int = 0
    references_updated: int = 0
    refindex_updated: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "migratable": self.migratable,
            "files_touched": self.files_touched,
            "references_updated": self.references_updated,
            "refindex_updated": self.refindex_updated,
        }


@dataclass
class UndoubleStats:
    mode: str
    dry_run: bool = False
    files_to_undouble: int = 0
    unmatched: int = 0
    typolink: Optional[FieldUpdateStats] = None
    typolink_tag: Optional[FieldUpdateStats] = None
    references: Optional[ReferenceStats] = None
    query_errors: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "dry_run": self.dry_run,
            "files_to_undouble": self.files_to_undouble,
            "unmatched": self.unmatched,
            "typolink": self.typolink.as_dict() if self.typolink else None,
            "typolink_tag": self.typolink_tag.as_dict() if self.typolink_tag else None,
            "references": self.references.as_dict() if self.references else None,
            "query_errors": self.query_errors,
        }


def update_link_fields(
    store: Store,
    cfg: UndoubleConfig,
    kind: str,
    mode: str = INTERNAL,
    table: str = "",
    field_name: str = "",
    dry_run: bool = False,
    run: Optional[ConsolidationRun] = None,
    progress_cb: Optional[ProgressCallback] = None,
    log_cb: Optional[LogCallback] = None,
) -> FieldUpdateStats:
    """Rewrite file links of one syntax in every configured text field.

    ``table`` and ``field_name`` restrict the work to a single field.
    """
    syntax = SYNTAXES[kind]
    tag = f"[{kind.upper()}]"
    stats = FieldUpdateStats(kind=kind, dry_run=dry_run)
    run = ensure_run(store, cfg, mode, run=run, log_cb=log_cb)
    stats.migratable = run.total
    emit_log(log_cb, f"{tag} Found {run.total:,} migratable records")
    if not run.total:
        return stats

    field_map = select_fields(cfg, kind, table, field_name, store=store)
    for table_name, fields in field_map.items():
        for column in fields:
            key = f"{table_name}.{column}"
            emit_log(log_cb, f"{tag} Updating fields {table_name} -> {column}")
            rows = fetch_reference_rows(store, syntax, table_name, column)
            stats.rows_found += len(rows)
            emit_log(
                log_cb,
                f"{tag} Found {len(rows):,} {table_name} records that have a {syntax.label} in the field {column}",
            )
            field_count = 0
            for index, row in enumerate(rows):
                emit_progress(progress_cb, kind, index, len(rows), f"{table_name}:{row.uid}")
                updated = rewrite_row(store, cfg, syntax, row, run.uid_map, dry_run=dry_run, log_cb=log_cb)
                if updated:
                    stats.rows_updated += 1
                    field_count += updated
            stats.per_field[key] = field_count
            stats.references_updated += field_count
            if field_count:
                verb = "Would update" if dry_run else "Updated"
                emit_log(log_cb, f"{tag} {verb} {field_count:,} references")
            elif rows:
                emit_log(log_cb, f"{tag} Did not find any updatable references")

    verb = "Would update" if dry_run else "Updated"
    emit_log(log_cb, f"{tag} {verb} {stats.references_updated:,} references in total")
    return stats


def update_typolink_fields(store: Store, cfg: UndoubleConfig, **kwargs: Any) -> FieldUpdateStats:
    return update_link_fields(store, cfg, TYPOLINK, **kwargs)


def update_typolink_tag_fields(store: Store, cfg: UndoubleConfig, **kwargs: Any) -> FieldUpdateStats:
    return update_link_fields(store, cfg, TYPOLINK_TAG, **kwargs)


def migrate_file_references(
    store: Store,
    cfg: UndoubleConfig,
    mode: str = INTERNAL,
    dry_run: bool = False,
    run: Optional[ConsolidationRun] = None,
    progress_cb: Optional[ProgressCallback] = None,
    log_cb: Optional[LogCallback] = None,
) -> ReferenceStats:
    """Point structured references of every duplicate at its canonical file."""
    stats = ReferenceStats(dry_run=dry_run)
    run = ensure_run(store, cfg, mode, run=run, log_cb=log_cb)
    total = run.total
    stats.migratable = total
    emit_log(log_cb, f"[REFS] Found {total:,} records in {cfg.staging_prefix} with a canonical counterpart")
    verb = "Would update" if dry_run else "Updated"

    for counter, (old_uid, new_uid) in enumerate(run.uid_map.items()):
        progress = progress_label(counter, total)
        emit_progress(progress_cb, "references", counter, total, str(old_uid))
        result = migrate_references_to_file(store, cfg, old_uid, new_uid, dry_run=dry_run)
        if not result.total:
            continue
        stats.files_touched += 1
        stats.references_updated += result.references
        stats.refindex_updated += result.refindex
        emit_log(
            log_cb,
            f"[REFS] {progress} {verb} {result.references:,} references"
            f" ({result.refindex:,} index rows) for {old_uid} -> {new_uid}",
        )

    emit_progress(progress_cb, "done", total, total, "References migrated")
    emit_log(log_cb, f"[REFS] {verb} {stats.references_updated:,} references to files from {cfg.staging_prefix}")
    return stats


def undouble(
    store: Store,
    cfg: UndoubleConfig,
    mode: str = INTERNAL,
    dry_run: bool = False,
    progress_cb: Optional[ProgressCallback] = None,
    log_cb: Optional[LogCallback] = None,
) -> UndoubleStats:
    """Full pass for one mode: typolink fields, typolink_tag fields, references."""
    check_mode(mode)
    errors_before = len(store.errors)
    run = prepare_run(store, cfg, mode, log_cb=log_cb)
    stats = UndoubleStats(
        mode=mode,
        dry_run=dry_run,
        files_to_undouble=run.total,
        unmatched=len(run.unmatched),
    )
    emit_log(log_cb, f"[RUN] Found {run.total:,} files to undouble (mode={mode}, dry_run={dry_run})")

    emit_log(log_cb, "[RUN] Updating typolink fields")
    stats.typolink = update_link_fields(
        store, cfg, TYPOLINK, mode=mode, dry_run=dry_run, run=run, progress_cb=progress_cb, log_cb=log_cb
    )
    emit_log(log_cb, "[RUN] Updating typolink_tag fields")
    stats.typolink_tag = update_link_fields(
        store, cfg, TYPOLINK_TAG, mode=mode, dry_run=dry_run, run=run, progress_cb=progress_cb, log_cb=log_cb
    )
    emit_log(log_cb, "[RUN] Migrating file references")
    stats.references = migrate_file_references(
        store, cfg, mode=mode, dry_run=dry_run, run=run, progress_cb=progress_cb, log_cb=log_cb
    )
    stats.query_errors = len(store.errors) - errors_before
    return stats
