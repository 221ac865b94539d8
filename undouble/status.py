"""Duplicate statistics for the whole file table and for the staging folder."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

from .config import UndoubleConfig
from .db import Store, staging_filter_sql


@dataclass
class ScopeStatus:
    total: int = 0
    unique: int = 0
    space_saved: int = 0

    @property
    def removable(self) -> int:
        return self.total - self.unique


@dataclass
class StatusReport:
    all_files: ScopeStatus = field(default_factory=ScopeStatus)
    staging: ScopeStatus = field(default_factory=ScopeStatus)
    most_duplicated: List[Tuple[int, str]] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        def scope(s: ScopeStatus) -> Dict[str, int]:
            return {"total": s.total, "unique": s.unique, "removable": s.removable, "space_saved": s.space_saved}

        return {
            "all_files": scope(self.all_files),
            "staging": scope(self.staging),
            "most_duplicated": [{"count": c, "identifier": i} for c, i in self.most_duplicated],
        }


def wasted_bytes(groups: Iterable[Tuple[int, int]]) -> int:
    """Bytes held by extra copies: ``size * (count - 1)`` summed over ``(size, count)`` groups."""
    return sum(int(size or 0) * (int(count) - 1) for size, count in groups if int(count) > 1)


def _scope_status(store: Store, where: str, params: List[str]) -> ScopeStatus:
    total = store.count(f"SELECT COUNT(*) FROM sys_file WHERE {where}", params)
    hashed_groups = store.select(
        f"SELECT MIN(size) AS size, COUNT(uid) AS total FROM sys_file"
        f" WHERE {where} AND sha1 IS NOT NULL AND sha1 != '' GROUP BY sha1",
        params,
    )
    unhashed = store.count(
        f"SELECT COUNT(*) FROM sys_file WHERE {where} AND (sha1 IS NULL OR sha1 = '')",
        params,
    )
    return ScopeStatus(
        total=total,
        unique=len(hashed_groups) + unhashed,
        space_saved=wasted_bytes((row["size"], row["total"]) for row in hashed_groups),
    )


def collect_status(store: Store, cfg: UndoubleConfig) -> StatusReport:
    """Counts and possible savings.

    The whole-table figures group every file by hash regardless of folder; the
    staging figures only group files inside the staging folder with each other.
    """
    staging_clause, staging_params = staging_filter_sql(cfg.staging_prefix)
    report = StatusReport(
        all_files=_scope_status(store, "1 = 1", []),
        staging=_scope_status(store, staging_clause, staging_params),
    )
    # bare identifier column resolves to the row holding MIN(uid)
    rows = store.select(
        """
        SELECT identifier, MIN(uid) AS uid, COUNT(uid) AS total
        FROM sys_file
        WHERE sha1 IS NOT NULL AND sha1 != ''
        GROUP BY sha1
        HAVING COUNT(uid) > 1
        ORDER BY total DESC, uid ASC
        LIMIT ?
        """,
        (cfg.report.top_duplicates,),
    )
    report.most_duplicated = [(int(row["total"]), row["identifier"]) for row in rows]
    return report
