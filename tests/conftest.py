from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import pytest

from undouble.config import UndoubleConfig
from undouble.db import Store
from undouble.errors import StorageError


class CountingStore(Store):
    """Store that remembers every mutating statement."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.updates: List[str] = []

    def update(self, sql, params=()):
        self.updates.append(" ".join(sql.split()))
        return super().update(sql, params)


class FakeStorage:
    """In-memory storage; ``failures`` maps identifiers to the error to raise."""

    def __init__(self, identifiers=(), failures: Optional[Dict[str, StorageError]] = None) -> None:
        self.files = set(identifiers)
        self.failures = dict(failures or {})
        self.deleted: List[str] = []
        self.calls: List[str] = []

    def delete(self, identifier: str) -> bool:
        self.calls.append(identifier)
        if identifier in self.failures:
            raise self.failures[identifier]
        if identifier not in self.files:
            return False
        self.files.remove(identifier)
        self.deleted.append(identifier)
        return True


class Fal:
    """Helpers to populate the file tables."""

    def __init__(self, store: CountingStore) -> None:
        self.store = store
        self.con = store.con

    def file(self, uid: int, identifier: str, sha1: Optional[str], size: int = 100) -> None:
        self.con.execute(
            "INSERT INTO sys_file (uid, identifier, name, size, sha1) VALUES (?, ?, ?, ?, ?)",
            (uid, identifier, identifier.rsplit("/", 1)[-1], size, sha1),
        )
        self.con.commit()

    def reference(self, uid: int, uid_local: int, tablenames: str = "tt_content", uid_foreign: int = 1) -> None:
        self.con.execute(
            "INSERT INTO sys_file_reference (uid, uid_local, uid_foreign, tablenames, fieldname)"
            " VALUES (?, ?, ?, ?, 'image')",
            (uid, uid_local, uid_foreign, tablenames),
        )
        self.con.commit()

    def refindex(
        self,
        hash_: str,
        tablename: str,
        recuid: int,
        ref_uid: int,
        field: str = "",
        softref_key: str = "",
        ref_table: str = "sys_file",
    ) -> None:
        self.con.execute(
            "INSERT INTO sys_refindex (hash, tablename, recuid, field, softref_key, ref_table, ref_uid)"
            " VALUES (?, ?, ?, ?, ?, ?, ?)",
            (hash_, tablename, recuid, field, softref_key, ref_table, ref_uid),
        )
        self.con.commit()

    def content(self, uid: int, header_link: str = "", bodytext: str = "") -> None:
        self.con.execute(
            "INSERT INTO tt_content (uid, header_link, bodytext) VALUES (?, ?, ?)",
            (uid, header_link, bodytext),
        )
        self.con.commit()

    def content_row(self, uid: int):
        return self.con.execute("SELECT header_link, bodytext FROM tt_content WHERE uid = ?", (uid,)).fetchone()

    def uid_local(self, uid: int) -> int:
        return self.con.execute("SELECT uid_local FROM sys_file_reference WHERE uid = ?", (uid,)).fetchone()[0]

    def ref_uid(self, hash_: str) -> int:
        return self.con.execute("SELECT ref_uid FROM sys_refindex WHERE hash = ?", (hash_,)).fetchone()[0]

    def file_uids(self) -> List[int]:
        return [row[0] for row in self.con.execute("SELECT uid FROM sys_file ORDER BY uid")]


@pytest.fixture
def cfg(tmp_path: Path) -> UndoubleConfig:
    return UndoubleConfig(
        db={"path": str(tmp_path / "fal.db")},
        storage={"root": str(tmp_path / "fileadmin")},
        softref_fields={
            "typolink": {"tt_content": ["header_link"]},
            "typolink_tag": {"tt_content": ["bodytext"]},
        },
    )


@pytest.fixture
def store(cfg: UndoubleConfig):
    s = CountingStore.open(Path(cfg.db.path))
    s.con.execute("CREATE TABLE tt_content (uid INTEGER PRIMARY KEY, header_link TEXT, bodytext TEXT)")
    s.con.commit()
    yield s
    s.close()


@pytest.fixture
def fal(store: CountingStore) -> Fal:
    return Fal(store)


@pytest.fixture
def fake_storage():
    return FakeStorage


@pytest.fixture
def populated(fal: Fal) -> Fal:
    """Files, links and references shared by the workflow tests.

    Hash A: 1 (outside), 2 and 3 (staged). Hash B: 4 and 5 (staged).
    Hash C: 6 (staged, unique).
    """
    fal.file(1, "/images/a.jpg", "a" * 40)
    fal.file(2, "/_migrated/a.jpg", "a" * 40)
    fal.file(3, "/_migrated/a_01.jpg", "a" * 40)
    fal.file(4, "/_migrated/b.jpg", "b" * 40, size=50)
    fal.file(5, "/_migrated/b_01.jpg", "b" * 40, size=50)
    fal.file(6, "/_migrated/c.jpg", "c" * 40, size=10)

    fal.content(1, header_link="file:3 _blank", bodytext='<p><link file:5 - "x">Click</link></p>')
    fal.content(2, header_link="file:6", bodytext="&lt;link file:3&gt;Esc&lt;/link&gt;")

    fal.reference(1, uid_local=3)
    fal.reference(2, uid_local=5)
    fal.reference(3, uid_local=6)

    fal.refindex("h1", "tt_content", 1, 3, field="header_link", softref_key="typolink")
    fal.refindex("h2", "tt_content", 1, 5, field="bodytext", softref_key="typolink_tag")
    fal.refindex("h3", "sys_file_reference", 1, 3, field="uid_local")
    fal.refindex("h4", "sys_file_metadata", 9, 3, field="file")
    fal.store.updates.clear()
    return fal
