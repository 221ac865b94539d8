"""CLI command rewriting ``file:<uid>`` links in typolink fields."""
from __future__ import annotations

import argparse
from argparse import _SubParsersAction
from pathlib import Path
from typing import Optional, Sequence

from ..canonical import INTERNAL, MODES
from ..config import TYPOLINK, load_config
from ..db import open_store
from ..engine import update_link_fields
from ._report import print_field_stats


def _configure_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default="config/undouble.yaml", help="Path to config file")
    parser.add_argument("--table", default="", help="Only process this table (requires --field)")
    parser.add_argument("--field", default="", help="Only process this field (requires --table)")
    parser.add_argument("--mode", choices=MODES, default=INTERNAL, help="Find duplicates inside (internal) or outside (external) the staging folder")
    parser.add_argument("--dry-run", action="store_true", help="Report what would change without modifying anything")


def run_link_fields(args: argparse.Namespace, kind: str) -> int:
    cfg = load_config(Path(args.config))
    store = open_store(cfg)
    try:
        stats = update_link_fields(
            store,
            cfg,
            kind,
            mode=args.mode,
            table=args.table,
            field_name=args.field,
            dry_run=args.dry_run,
        )
    finally:
        store.close()
    print_field_stats(stats)
    return 0


def add_parser(subparsers: _SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "update-typolink-fields",
        help="Rewrite file: links in typolink fields",
        description="Point file:<uid> links to duplicates at their canonical file.",
    )
    _configure_parser(parser)
    parser.set_defaults(handler=run_from_args)
    return parser


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog or "undouble update-typolink-fields", description="Rewrite file: links in typolink fields")
    _configure_parser(parser)
    return parser


def run_from_args(args: argparse.Namespace) -> int:
    return run_link_fields(args, TYPOLINK)


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return run_from_args(args)


__all__ = ["add_parser", "build_parser", "run_cli", "run_from_args", "run_link_fields"]
