# undouble/scan.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional

from .config import UndoubleConfig
from .db import Store
from .storage import LocalStorage
from .util import LogCallback, ProgressCallback, emit_log, emit_progress, sha1_file


@dataclass
class ScanStats:
    seen: int = 0
    registered: int = 0
    known: int = 0
    errors: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "seen": self.seen,
            "registered": self.registered,
            "known": self.known,
            "errors": self.errors,
        }


def register_files(
    store: Store,
    storage: LocalStorage,
    cfg: UndoubleConfig,
    progress_cb: Optional[ProgressCallback] = None,
    log_cb: Optional[LogCallback] = None,
) -> ScanStats:
    """Add a sys_file row (size, sha1) for every file below the storage root not yet known."""
    stats = ScanStats()
    emit_progress(progress_cb, "start", 0, 0, "Preparing scan...")
    emit_log(log_cb, f"[SCAN] Starting scan: root={storage.root}")
    known = {row["identifier"] for row in store.select("SELECT identifier FROM sys_file")}

    for path in storage.iter_files():
        stats.seen += 1
        identifier = storage.identifier_for(path)
        if identifier in known:
            stats.known += 1
            continue
        try:
            size = path.stat().st_size
            digest = sha1_file(path, cfg.storage.sha_chunk_bytes)
        except OSError as exc:
            stats.errors += 1
            emit_log(log_cb, f"[SCAN][ERROR] {identifier}: {exc}")
            continue
        if store.update(
            "INSERT INTO sys_file (identifier, name, size, sha1) VALUES (?, ?, ?, ?)",
            (identifier, path.name, size, digest),
        ):
            stats.registered += 1
            known.add(identifier)
        else:
            stats.errors += 1
        if stats.seen % 1000 == 0:
            emit_progress(progress_cb, "scan", stats.seen, 0, f"{stats.seen:,} files seen")

    emit_progress(progress_cb, "done", stats.seen, stats.seen, "Scan complete")
    emit_log(
        log_cb,
        f"[SCAN] Done: seen={stats.seen:,} registered={stats.registered:,} known={stats.known:,} errors={stats.errors:,}",
    )
    return stats
