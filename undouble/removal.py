# undouble/removal.py
"""
Removal of duplicate files that nothing references any more.

A duplicate is only removed when a live count, taken right before the
decision, finds no structured reference to it. References added after the
duplicate map was built therefore still protect the file.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .canonical import EXTERNAL, ConsolidationRun, ensure_run
from .config import UndoubleConfig
from .db import Store
from .errors import ConfigurationError, StorageError, StoragePermissionError
from .references import count_references_to_file
from .storage import LocalStorage
from .util import LogCallback, ProgressCallback, emit_log, emit_progress, format_size, progress_label

ACKNOWLEDGE_HINT = "\n".join(
    [
        "This will remove files from the staging folder.",
        "Are you sure no text field still links to these files? Only structured",
        "references (sys_file_reference, sys_refindex) are checked before removal.",
        "",
        "Update references to these files first by running:",
        "- undouble migrate-references",
        "- undouble update-typolink-fields",
        "- undouble update-typolink-tag-fields",
        "",
        "Then rerun with --i-know-what-im-doing",
    ]
)

PERMISSION_HINT = "Make sure the user running undouble may delete files in the staging folder."


@dataclass
class RemovalStats:
    dry_run: bool = False
    candidates: int = 0
    removed: int = 0
    missing: int = 0
    skipped_referenced: int = 0
    freed_bytes: int = 0
    aborted: bool = False
    errors: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "candidates": self.candidates,
            "removed": self.removed,
            "missing": self.missing,
            "skipped_referenced": self.skipped_referenced,
            "freed_bytes": self.freed_bytes,
            "aborted": self.aborted,
            "errors": list(self.errors),
        }


def remove_migrated_files(
    store: Store,
    storage: LocalStorage,
    cfg: UndoubleConfig,
    mode: str = EXTERNAL,
    dry_run: bool = False,
    acknowledged: bool = False,
    run: Optional[ConsolidationRun] = None,
    progress_cb: Optional[ProgressCallback] = None,
    log_cb: Optional[LogCallback] = None,
) -> RemovalStats:
    if not acknowledged:
        raise ConfigurationError(ACKNOWLEDGE_HINT)

    stats = RemovalStats(dry_run=dry_run)
    run = ensure_run(store, cfg, mode, run=run, log_cb=log_cb)
    candidates = run.duplicates()
    total = len(candidates)
    stats.candidates = total
    emit_log(log_cb, f"[REMOVE] Found {total:,} files in {cfg.staging_prefix} that have a canonical counterpart")
    emit_progress(progress_cb, "remove", 0, total, f"Checking {total:,} files")

    verb = "Would remove" if dry_run else "Removing"
    for counter, record in enumerate(candidates):
        progress = progress_label(counter, total)
        emit_progress(progress_cb, "remove", counter, total, record.identifier)

        live_references = count_references_to_file(store, cfg, record.uid)
        if live_references:
            stats.skipped_referenced += 1
            emit_log(
                log_cb,
                f"[REMOVE] {progress} Skipping {record.identifier}: still referenced {live_references:,} times",
            )
            continue

        emit_log(log_cb, f"[REMOVE] {progress} {verb} {record.identifier}")
        if dry_run:
            stats.removed += 1
            stats.freed_bytes += record.size
            continue

        try:
            deleted = storage.delete(record.identifier)
        except StoragePermissionError as exc:
            stats.errors.append(str(exc))
            stats.aborted = True
            emit_log(log_cb, f"[REMOVE][ERROR] {exc}")
            emit_log(log_cb, f"[REMOVE][ERROR] {PERMISSION_HINT}")
            break
        except StorageError as exc:
            stats.errors.append(str(exc))
            emit_log(log_cb, f"[REMOVE][ERROR] {exc}")
            continue

        store.update("DELETE FROM sys_file WHERE uid = ?", (record.uid,))
        if deleted:
            stats.removed += 1
            stats.freed_bytes += record.size
        else:
            stats.missing += 1
            emit_log(log_cb, f"[REMOVE] File already missing on disk: {record.identifier}; record pruned")

    emit_progress(progress_cb, "done", total, total, "Removal complete")
    done = "Would remove" if dry_run else "Removed"
    emit_log(log_cb, f"[REMOVE] {done} {stats.removed:,} files from {cfg.staging_prefix}")
    emit_log(log_cb, f"[REMOVE] {'Would free' if dry_run else 'Freed'} {format_size(stats.freed_bytes)}")
    return stats
