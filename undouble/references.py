"""Structured (foreign key) references to files.

``sys_file_reference.uid_local`` points at a file directly. ``sys_refindex``
keeps a denormalized copy of every reference; only rows with
``ref_table = 'sys_file'`` are file pointers, and rows owned by the configured
bookkeeping tables are left alone.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .config import UndoubleConfig
from .db import Store


@dataclass
class ReferenceMigration:
    references: int = 0
    refindex: int = 0

    @property
    def total(self) -> int:
        return self.references + self.refindex


def refindex_filter_sql(cfg: UndoubleConfig) -> Tuple[str, List[str]]:
    clause = "ref_table = 'sys_file'"
    excluded = list(cfg.refindex.excluded_tablenames)
    if excluded:
        placeholders = ",".join("?" for _ in excluded)
        clause += f" AND tablename NOT IN ({placeholders})"
    return clause, excluded


def _owner_sql(tablename: Optional[str], recuid: Optional[int]) -> Tuple[str, list]:
    if tablename is None:
        return "", []
    return " AND tablename = ? AND recuid = ?", [tablename, int(recuid or 0)]


def count_file_references(store: Store, uid: int) -> int:
    return store.count(
        "SELECT COUNT(*) FROM sys_file_reference WHERE uid_local = ?",
        (int(uid),),
    )


def count_refindex_references(
    store: Store,
    cfg: UndoubleConfig,
    uid: int,
    tablename: Optional[str] = None,
    recuid: Optional[int] = None,
) -> int:
    clause, params = refindex_filter_sql(cfg)
    owner, owner_params = _owner_sql(tablename, recuid)
    return store.count(
        f"SELECT COUNT(*) FROM sys_refindex WHERE ref_uid = ? AND {clause}{owner}",
        (int(uid), *params, *owner_params),
    )


def count_references_to_file(store: Store, cfg: UndoubleConfig, uid: int) -> int:
    """Live count of every structured reference still pointing at ``uid``."""
    return count_file_references(store, uid) + count_refindex_references(store, cfg, uid)


def retarget_refindex(
    store: Store,
    cfg: UndoubleConfig,
    old_uid: int,
    new_uid: int,
    tablename: Optional[str] = None,
    recuid: Optional[int] = None,
) -> int:
    """Point file-kind refindex rows at ``new_uid``, optionally only those of one record."""
    clause, params = refindex_filter_sql(cfg)
    owner, owner_params = _owner_sql(tablename, recuid)
    return store.update(
        f"UPDATE sys_refindex SET ref_uid = ? WHERE ref_uid = ? AND {clause}{owner}",
        (int(new_uid), int(old_uid), *params, *owner_params),
    )


def migrate_references_to_file(
    store: Store,
    cfg: UndoubleConfig,
    old_uid: int,
    new_uid: int,
    dry_run: bool = False,
) -> ReferenceMigration:
    """Move structured references from ``old_uid`` to ``new_uid``.

    In dry-run mode only counts are taken. No update is issued for a table
    with nothing to change.
    """
    references = count_file_references(store, old_uid)
    refindex = count_refindex_references(store, cfg, old_uid)
    if dry_run:
        return ReferenceMigration(references=references, refindex=refindex)

    result = ReferenceMigration()
    if references:
        result.references = store.update(
            "UPDATE sys_file_reference SET uid_local = ? WHERE uid_local = ?",
            (int(new_uid), int(old_uid)),
        )
    if refindex:
        result.refindex = retarget_refindex(store, cfg, old_uid, new_uid)
    return result
