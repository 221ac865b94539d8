from __future__ import annotations
import sqlite3
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .config import UndoubleConfig
from .errors import QueryError
from .util import LogCallback, emit_log

DDL = r"""
CREATE TABLE IF NOT EXISTS sys_file (
  uid INTEGER PRIMARY KEY,
  storage INTEGER NOT NULL DEFAULT 1,
  identifier TEXT NOT NULL,
  name TEXT,
  size INTEGER NOT NULL DEFAULT 0,
  sha1 TEXT
);
CREATE TABLE IF NOT EXISTS sys_file_reference (
  uid INTEGER PRIMARY KEY,
  uid_local INTEGER NOT NULL,
  uid_foreign INTEGER NOT NULL DEFAULT 0,
  tablenames TEXT NOT NULL DEFAULT '',
  fieldname TEXT NOT NULL DEFAULT ''
);
CREATE TABLE IF NOT EXISTS sys_refindex (
  hash TEXT PRIMARY KEY,
  tablename TEXT NOT NULL,
  recuid INTEGER NOT NULL,
  field TEXT NOT NULL DEFAULT '',
  softref_key TEXT NOT NULL DEFAULT '',
  ref_table TEXT NOT NULL,
  ref_uid INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_sys_file_sha1 ON sys_file(sha1);
CREATE INDEX IF NOT EXISTS idx_sys_file_identifier ON sys_file(identifier);
CREATE INDEX IF NOT EXISTS idx_sys_file_reference_local ON sys_file_reference(uid_local);
CREATE INDEX IF NOT EXISTS idx_sys_refindex_ref ON sys_refindex(ref_table, ref_uid);
CREATE INDEX IF NOT EXISTS idx_sys_refindex_rec ON sys_refindex(tablename, recuid);
"""


def connect(db_path: Path, journal_mode: str = "WAL", synchronous: str = "NORMAL") -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    con = sqlite3.connect(str(db_path))
    con.execute("PRAGMA foreign_keys=ON;")
    con.execute(f"PRAGMA journal_mode={journal_mode};")
    con.execute(f"PRAGMA synchronous={synchronous};")
    con.execute("PRAGMA busy_timeout=5000;")
    return con


def migrate(con: sqlite3.Connection) -> None:
    con.executescript(DDL)
    con.commit()


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def like_prefix(prefix: str) -> str:
    """LIKE pattern matching ``prefix`` literally (``_`` and ``%`` escaped with ``\\``)."""
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return escaped + "%"


def staging_filter_sql(prefix: str, alias: str = "", inside: bool = True) -> Tuple[str, List[str]]:
    """WHERE fragment selecting identifiers inside (or outside) the staging folder."""
    column = f"{alias}.identifier" if alias else "identifier"
    op = "LIKE" if inside else "NOT LIKE"
    return f"{column} {op} ? ESCAPE '\\'", [like_prefix(prefix)]


class Store:
    """Thin relational store over a SQLite connection.

    Every statement runs on its own and is committed immediately; there is no
    transaction spanning several records. Query failures are logged, recorded
    in ``errors`` and degrade to an empty result (or a zero count).
    """

    def __init__(self, con: sqlite3.Connection, log_cb: Optional[LogCallback] = None) -> None:
        con.row_factory = sqlite3.Row
        self.con = con
        self.log_cb = log_cb
        self.errors: List[str] = []

    @classmethod
    def open(cls, db_path: Path, log_cb: Optional[LogCallback] = None, **pragmas: str) -> "Store":
        con = connect(db_path, **pragmas)
        migrate(con)
        return cls(con, log_cb=log_cb)

    def close(self) -> None:
        self.con.close()

    def _execute(self, sql: str, params: Iterable = ()) -> sqlite3.Cursor:
        try:
            return self.con.execute(sql, tuple(params))
        except sqlite3.Error as exc:
            raise QueryError(str(exc)) from exc

    def _fetchall(self, sql: str, params: Iterable = ()) -> List[sqlite3.Row]:
        cur = self._execute(sql, params)
        try:
            return cur.fetchall()
        except sqlite3.Error as exc:
            raise QueryError(str(exc)) from exc

    def _commit(self) -> None:
        try:
            self.con.commit()
        except sqlite3.Error as exc:
            raise QueryError(str(exc)) from exc

    def _failed(self, exc: QueryError) -> None:
        self.errors.append(str(exc))
        emit_log(self.log_cb, f"[ERROR] Database query failed. Error was: {exc}")

    def select(self, sql: str, params: Iterable = ()) -> List[sqlite3.Row]:
        try:
            return self._fetchall(sql, params)
        except QueryError as exc:
            self._failed(exc)
            return []

    def count(self, sql: str, params: Iterable = ()) -> int:
        rows = self.select(sql, params)
        if not rows or rows[0][0] is None:
            return 0
        return int(rows[0][0])

    def update(self, sql: str, params: Iterable = ()) -> int:
        """Run a mutating statement and return the number of affected rows."""
        try:
            cur = self._execute(sql, params)
            self._commit()
        except QueryError as exc:
            self._failed(exc)
            return 0
        return cur.rowcount


def open_store(cfg: UndoubleConfig, log_cb: Optional[LogCallback] = None) -> Store:
    return Store.open(
        Path(cfg.db.path),
        log_cb=log_cb,
        journal_mode=cfg.db.journal_mode,
        synchronous=cfg.db.synchronous,
    )
