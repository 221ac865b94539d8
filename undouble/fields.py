"""Discovery of text fields that can hold file links."""
from __future__ import annotations
from typing import Dict, List, Optional

from .config import TYPOLINK, TYPOLINK_TAG, UndoubleConfig
from .db import Store
from .util import sanitize_identifier

FieldMap = Dict[str, List[str]]


def _add(target: FieldMap, table: str, field: str) -> None:
    table = sanitize_identifier(table)
    field = sanitize_identifier(field)
    if not table or not field:
        return
    fields = target.setdefault(table, [])
    if field not in fields:
        fields.append(field)


def reference_bearing_fields(cfg: UndoubleConfig, store: Optional[Store] = None) -> Dict[str, FieldMap]:
    """Tables and fields per link syntax.

    Fields come from ``softref_fields`` in the configuration. With
    ``refindex.discover_softref_fields`` enabled, every table/field that the
    reference index records a typolink soft reference for is added as well.
    """
    result: Dict[str, FieldMap] = {TYPOLINK: {}, TYPOLINK_TAG: {}}
    for kind in (TYPOLINK, TYPOLINK_TAG):
        for table, fields in (cfg.softref_fields.get(kind) or {}).items():
            for field in fields:
                _add(result[kind], table, field)

    if store is not None and cfg.refindex.discover_softref_fields:
        rows = store.select(
            "SELECT DISTINCT tablename, field, softref_key FROM sys_refindex"
            " WHERE softref_key IN (?, ?) ORDER BY tablename, field",
            (TYPOLINK, TYPOLINK_TAG),
        )
        for row in rows:
            _add(result[row["softref_key"]], row["tablename"], row["field"])
    return result


def select_fields(
    cfg: UndoubleConfig,
    kind: str,
    table: str = "",
    field: str = "",
    store: Optional[Store] = None,
) -> FieldMap:
    """Fields to process for one syntax, or just ``table.field`` when both are given."""
    table = sanitize_identifier(table)
    field = sanitize_identifier(field)
    if table and field:
        return {table: [field]}
    return reference_bearing_fields(cfg, store)[kind]
