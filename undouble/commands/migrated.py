"""CLI command undoubling staged files against files outside the staging folder."""
from __future__ import annotations

import argparse
from argparse import _SubParsersAction
from pathlib import Path
from typing import Optional, Sequence

from ..canonical import EXTERNAL
from ..config import load_config
from ..db import open_store
from ..engine import undouble
from ._report import print_undouble_stats


def _configure_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default="config/undouble.yaml", help="Path to config file")
    parser.add_argument("--dry-run", action="store_true", help="Report what would change without modifying anything")


def run_undouble(args: argparse.Namespace, mode: str) -> int:
    cfg = load_config(Path(args.config))
    store = open_store(cfg)
    try:
        stats = undouble(store, cfg, mode=mode, dry_run=args.dry_run)
    finally:
        store.close()
    print_undouble_stats(stats)
    return 0


def add_parser(subparsers: _SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "migrated",
        help="Undouble staged files that have duplicates outside the staging folder",
        description="Point links and references to staged files at identical files outside the staging folder.",
    )
    _configure_parser(parser)
    parser.set_defaults(handler=run_from_args)
    return parser


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog or "undouble migrated",
        description="Undouble staged files that have duplicates outside the staging folder",
    )
    _configure_parser(parser)
    return parser


def run_from_args(args: argparse.Namespace) -> int:
    return run_undouble(args, EXTERNAL)


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return run_from_args(args)


__all__ = ["add_parser", "build_parser", "run_cli", "run_from_args", "run_undouble"]
