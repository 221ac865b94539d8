# undouble/canonical.py
"""
Canonical file selection.

A content hash is mapped to the lowest uid sharing it within a scope (the
canonical index). Staging files whose hash maps to another uid are duplicates;
the resulting ``duplicate uid -> canonical uid`` map drives every later phase.

Two scopes exist:
- internal: the index is built from the staging folder itself, finding
  duplicates among staged files;
- external: the index is built from everything outside the staging folder,
  finding staged files that duplicate files elsewhere.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .config import UndoubleConfig
from .db import Store, staging_filter_sql
from .errors import ConfigurationError
from .util import LogCallback, emit_log

INTERNAL = "internal"
EXTERNAL = "external"
MODES = (INTERNAL, EXTERNAL)


@dataclass(frozen=True)
class AssetRecord:
    uid: int
    sha1: Optional[str]
    size: int
    identifier: str
    in_staging: bool = True


@dataclass
class ConsolidationRun:
    """State of one undoubling run, built once and read-only afterwards."""

    mode: str
    canonical_index: Dict[str, int] = field(default_factory=dict)
    uid_map: Dict[int, int] = field(default_factory=dict)
    unmatched: List[AssetRecord] = field(default_factory=list)
    records: Dict[int, AssetRecord] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.uid_map)

    def duplicates(self) -> List[AssetRecord]:
        return [self.records[uid] for uid in self.uid_map if uid in self.records]


def build_canonical_index(pairs: Iterable[Tuple[int, Optional[str]]]) -> Dict[str, int]:
    """Map each hash to the lowest uid seen for it.

    Input is normally ordered by uid, but a later, smaller uid still wins.
    Pairs without a hash are ignored.
    """
    index: Dict[str, int] = {}
    for uid, sha1 in pairs:
        if not sha1:
            continue
        uid = int(uid)
        current = index.get(sha1)
        if current is None or current > uid:
            index[sha1] = uid
    return index


def build_duplicate_map(
    records: Iterable[AssetRecord],
    canonical_index: Dict[str, int],
) -> Tuple[Dict[int, int], List[AssetRecord]]:
    """Return ``(uid_map, unmatched)`` for the given staging records.

    Records whose hash has no entry in the index have no consolidation target;
    they are returned in ``unmatched`` rather than mapped.
    """
    uid_map: Dict[int, int] = {}
    unmatched: List[AssetRecord] = []
    for record in records:
        canonical = canonical_index.get(record.sha1) if record.sha1 else None
        if canonical is None:
            unmatched.append(record)
            continue
        if canonical != record.uid:
            uid_map[record.uid] = canonical
    return uid_map, unmatched


def load_hash_list(store: Store, cfg: UndoubleConfig, scope: str) -> List[Tuple[int, Optional[str]]]:
    """``(uid, sha1)`` pairs inside (internal) or outside (external) the staging folder."""
    clause, params = staging_filter_sql(cfg.staging_prefix, inside=(scope == INTERNAL))
    rows = store.select(
        f"SELECT uid, sha1 FROM sys_file WHERE {clause} ORDER BY uid",
        params,
    )
    return [(int(row["uid"]), row["sha1"]) for row in rows]


def load_staging_records(store: Store, cfg: UndoubleConfig) -> List[AssetRecord]:
    clause, params = staging_filter_sql(cfg.staging_prefix)
    rows = store.select(
        f"SELECT uid, sha1, size, identifier FROM sys_file WHERE {clause} ORDER BY uid",
        params,
    )
    return [
        AssetRecord(
            uid=int(row["uid"]),
            sha1=row["sha1"],
            size=int(row["size"] or 0),
            identifier=row["identifier"],
            in_staging=True,
        )
        for row in rows
    ]


def check_mode(mode: str) -> str:
    if mode not in MODES:
        raise ConfigurationError(f"Unknown mode {mode!r}; expected one of: {', '.join(MODES)}")
    return mode


def prepare_run(
    store: Store,
    cfg: UndoubleConfig,
    mode: str,
    log_cb: Optional[LogCallback] = None,
) -> ConsolidationRun:
    check_mode(mode)
    canonical_index = build_canonical_index(load_hash_list(store, cfg, mode))
    records = load_staging_records(store, cfg)
    uid_map, unmatched = build_duplicate_map(records, canonical_index)

    scope_label = "inside" if mode == INTERNAL else "outside"
    emit_log(
        log_cb,
        f"[MAP] Canonical index: {len(canonical_index):,} unique hashes {scope_label} {cfg.staging_prefix}",
    )
    emit_log(log_cb, f"[MAP] Found {len(uid_map):,} files to undouble")
    if mode == EXTERNAL and unmatched:
        emit_log(log_cb, f"[MAP] {len(unmatched):,} staged files have no counterpart outside {cfg.staging_prefix}")
    elif unmatched:
        emit_log(log_cb, f"[MAP] {len(unmatched):,} staged files have no content hash")

    return ConsolidationRun(
        mode=mode,
        canonical_index=canonical_index,
        uid_map=uid_map,
        unmatched=unmatched,
        records={record.uid: record for record in records},
    )


def ensure_run(
    store: Store,
    cfg: UndoubleConfig,
    mode: str,
    run: Optional[ConsolidationRun] = None,
    log_cb: Optional[LogCallback] = None,
) -> ConsolidationRun:
    """Reuse ``run`` when it already holds a non-empty map, otherwise build one."""
    if run is not None and run.uid_map:
        return run
    return prepare_run(store, cfg, mode, log_cb=log_cb)
