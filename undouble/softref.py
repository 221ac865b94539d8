# undouble/softref.py
"""
File links embedded in text fields ("soft references").

Two syntaxes are recognised:
- typolink:     ``file:123 _blank - "title"``
- typolink_tag: ``<link file:123 _blank>Click here</link>``

For the tag syntax ``&lt;`` and ``&gt;`` are accepted wherever ``<`` and
``>`` are. A rewrite only touches the digits of a link; everything else in
the matched text is kept as is.
"""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Pattern, Sequence, Tuple

from .config import TYPOLINK, TYPOLINK_TAG, UndoubleConfig
from .db import Store, quote_identifier
from .references import retarget_refindex
from .util import LogCallback, emit_log

_LT = r"(?:<|&lt;)"
_GT = r"(?:>|&gt;)"


@dataclass(frozen=True)
class LinkMatch:
    matched_text: str
    uid: int
    remainder: str
    link_text: Optional[str] = None
    # offsets of the uid digits inside matched_text
    uid_span: Tuple[int, int] = (0, 0)

    def retarget(self, new_uid: int) -> str:
        start, end = self.uid_span
        return self.matched_text[:start] + str(new_uid) + self.matched_text[end:]


@dataclass
class RewriteResult:
    content: str
    count: int = 0
    remapped: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class ReferenceRow:
    table: str
    uid: int
    field: str
    content: str


class LinkSyntax:
    """Tokenizer for one link syntax."""

    def __init__(self, key: str, label: str, pattern: Pattern[str], like_patterns: Sequence[str]) -> None:
        self.key = key
        self.label = label
        self.pattern = pattern
        self.like_patterns = tuple(like_patterns)

    def __repr__(self) -> str:
        return f"LinkSyntax({self.key!r})"

    def find(self, content: str) -> Iterator[LinkMatch]:
        for m in self.pattern.finditer(content or ""):
            base = m.start()
            groups = m.groupdict()
            yield LinkMatch(
                matched_text=m.group(0),
                uid=int(m.group("uid")),
                remainder=groups.get("remainder") or "",
                link_text=groups.get("text"),
                uid_span=(m.start("uid") - base, m.end("uid") - base),
            )

    def rewrite(self, content: str, uid_map: Mapping[int, int]) -> RewriteResult:
        """Point every link to a mapped uid at its canonical uid.

        Replacements are keyed by the matched text, so identical links are all
        rewritten. Links to unmapped uids are left alone and not counted.
        """
        replacements: Dict[str, str] = {}
        remapped: List[int] = []
        count = 0
        for match in self.find(content):
            if match.uid <= 0:
                continue
            new_uid = uid_map.get(match.uid)
            if new_uid is None:
                continue
            replacements[match.matched_text] = match.retarget(new_uid)
            if match.uid not in remapped:
                remapped.append(match.uid)
            count += 1

        if not replacements:
            return RewriteResult(content=content)
        final = self.pattern.sub(lambda m: replacements.get(m.group(0), m.group(0)), content)
        return RewriteResult(content=final, count=count, remapped=remapped)


BARE = LinkSyntax(
    TYPOLINK,
    '"file:" reference',
    re.compile(r"file:(?P<uid>[0-9]+)(?P<remainder>(?:(?!file:[0-9]).)*)", re.DOTALL),
    ["%file:%"],
)

TAGGED = LinkSyntax(
    TYPOLINK_TAG,
    '"<link>" tag',
    re.compile(
        _LT + r"link file:(?P<uid>[0-9]+)(?P<remainder>(?:(?!&gt;)[^>])*)" + _GT
        + r"(?P<text>.*?)" + _LT + r"/link" + _GT,
        re.DOTALL,
    ),
    ["%<link file:%", "%&lt;link file:%"],
)

SYNTAXES: Dict[str, LinkSyntax] = {BARE.key: BARE, TAGGED.key: TAGGED}


def rewrite_content(content: str, uid_map: Mapping[int, int], syntax: LinkSyntax) -> RewriteResult:
    return syntax.rewrite(content, uid_map)


def fetch_reference_rows(store: Store, syntax: LinkSyntax, table: str, field_name: str) -> List[ReferenceRow]:
    """Rows of ``table`` whose ``field_name`` may hold a link of this syntax."""
    column = quote_identifier(field_name)
    where = " OR ".join(f"{column} LIKE ?" for _ in syntax.like_patterns)
    rows = store.select(
        f"SELECT uid, {column} AS content FROM {quote_identifier(table)} WHERE ({where}) ORDER BY uid",
        syntax.like_patterns,
    )
    return [
        ReferenceRow(table=table, uid=int(row["uid"]), field=field_name, content=row["content"] or "")
        for row in rows
    ]


def rewrite_row(
    store: Store,
    cfg: UndoubleConfig,
    syntax: LinkSyntax,
    row: ReferenceRow,
    uid_map: Mapping[int, int],
    dry_run: bool = False,
    log_cb: Optional[LogCallback] = None,
) -> int:
    """Rewrite one text field and persist it when it changed.

    Returns the number of links pointed at a canonical file. After a
    successful write the refindex rows owned by this record are retargeted.
    """
    result = syntax.rewrite(row.content, uid_map)
    if result.content == row.content:
        return 0

    if dry_run:
        emit_log(log_cb, f"[{syntax.key.upper()}] Would update {row.table}:{row.uid} with: {result.content}")
        return result.count

    updated = store.update(
        f"UPDATE {quote_identifier(row.table)} SET {quote_identifier(row.field)} = ? WHERE uid = ?",
        (result.content, row.uid),
    )
    if not updated:
        emit_log(log_cb, f"[{syntax.key.upper()}][ERROR] Could not update {row.table}:{row.uid}")
        return 0
    for old_uid in result.remapped:
        retarget_refindex(store, cfg, old_uid, uid_map[old_uid], tablename=row.table, recuid=row.uid)
    emit_log(log_cb, f"[{syntax.key.upper()}] Updated {row.table}:{row.uid} with: {result.content}")
    return result.count
