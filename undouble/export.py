from __future__ import annotations
from pathlib import Path
from typing import Dict, List, Tuple

import duckdb

from .canonical import ConsolidationRun
from .db import Store

CHUNK = 500


def _identifiers(store: Store, uids: List[int]) -> Dict[int, str]:
    found: Dict[int, str] = {}
    for idx in range(0, len(uids), CHUNK):
        chunk = uids[idx : idx + CHUNK]
        placeholders = ",".join("?" for _ in chunk)
        for row in store.select(f"SELECT uid, identifier FROM sys_file WHERE uid IN ({placeholders})", chunk):
            found[int(row["uid"])] = row["identifier"]
    return found


def _copy_to_parquet(con: "duckdb.DuckDBPyConnection", table: str, target: Path) -> None:
    if target.exists():
        target.unlink()
    # DuckDB doesn't take parameters for COPY targets; quote by doubling single quotes.
    target_quoted = str(target).replace("'", "''")
    con.execute(f"COPY {table} TO '{target_quoted}' (FORMAT PARQUET);")


def export_plan(store: Store, run: ConsolidationRun, out_dir: Path) -> Tuple[Path, Path]:
    """Write the duplicate -> canonical plan and the unmatched files to Parquet.

    Returns the paths of ``plan_<mode>.parquet`` and ``unmatched_<mode>.parquet``.
    """
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    canonical_names = _identifiers(store, sorted(set(run.uid_map.values())))

    plan_rows = []
    for old_uid, new_uid in run.uid_map.items():
        record = run.records.get(old_uid)
        plan_rows.append(
            (
                old_uid,
                record.identifier if record else None,
                record.size if record else None,
                record.sha1 if record else None,
                new_uid,
                canonical_names.get(new_uid),
            )
        )
    unmatched_rows = [(r.uid, r.identifier, r.size, r.sha1) for r in run.unmatched]

    con = duckdb.connect(database=":memory:")
    try:
        con.execute(
            "CREATE TABLE plan (duplicate_uid BIGINT, duplicate_identifier VARCHAR, size BIGINT,"
            " sha1 VARCHAR, canonical_uid BIGINT, canonical_identifier VARCHAR)"
        )
        con.execute("CREATE TABLE unmatched (uid BIGINT, identifier VARCHAR, size BIGINT, sha1 VARCHAR)")
        if plan_rows:
            con.executemany("INSERT INTO plan VALUES (?, ?, ?, ?, ?, ?)", plan_rows)
        if unmatched_rows:
            con.executemany("INSERT INTO unmatched VALUES (?, ?, ?, ?)", unmatched_rows)
        plan_path = out / f"plan_{run.mode}.parquet"
        unmatched_path = out / f"unmatched_{run.mode}.parquet"
        _copy_to_parquet(con, "plan", plan_path)
        _copy_to_parquet(con, "unmatched", unmatched_path)
    finally:
        con.close()
    return plan_path, unmatched_path
