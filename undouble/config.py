from __future__ import annotations
from pathlib import Path
from typing import Dict, List
from pydantic import BaseModel, Field
import yaml

TYPOLINK = "typolink"
TYPOLINK_TAG = "typolink_tag"


class DBConfig(BaseModel):
    path: str = "data/fal.db"
    journal_mode: str = "WAL"
    synchronous: str = "NORMAL"


class StorageConfig(BaseModel):
    root: str = "fileadmin"
    sha_chunk_bytes: int = 1024 * 1024


class RefIndexConfig(BaseModel):
    # Bookkeeping rows of the reference mechanism itself are never retargeted
    excluded_tablenames: List[str] = Field(
        default_factory=lambda: ["sys_file_metadata", "sys_file_reference"]
    )
    discover_softref_fields: bool = False


class ReportConfig(BaseModel):
    top_duplicates: int = 20
    parquet_dir: str = "data/parquet"


class UndoubleConfig(BaseModel):
    staging_prefix: str = "/_migrated/"
    softref_fields: Dict[str, Dict[str, List[str]]] = Field(
        default_factory=lambda: {TYPOLINK: {}, TYPOLINK_TAG: {}}
    )
    db: DBConfig = DBConfig()
    storage: StorageConfig = StorageConfig()
    refindex: RefIndexConfig = RefIndexConfig()
    report: ReportConfig = ReportConfig()


def load_config(path: Path) -> UndoubleConfig:
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    return UndoubleConfig(**data)
