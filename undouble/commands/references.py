"""CLI command moving structured file references to canonical files."""
from __future__ import annotations

import argparse
from argparse import _SubParsersAction
from pathlib import Path
from typing import Optional, Sequence

from ..canonical import INTERNAL, MODES
from ..config import load_config
from ..db import open_store
from ..engine import migrate_file_references
from ._report import print_reference_stats


def _configure_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default="config/undouble.yaml", help="Path to config file")
    parser.add_argument("--mode", choices=MODES, default=INTERNAL, help="Find duplicates inside (internal) or outside (external) the staging folder")
    parser.add_argument("--dry-run", action="store_true", help="Count references without modifying anything")


def add_parser(subparsers: _SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "migrate-references",
        help="Move file references from duplicates to canonical files",
        description="Update sys_file_reference and sys_refindex rows pointing at duplicate files.",
    )
    _configure_parser(parser)
    parser.set_defaults(handler=run_from_args)
    return parser


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog or "undouble migrate-references", description="Move file references to canonical files")
    _configure_parser(parser)
    return parser


def run_from_args(args: argparse.Namespace) -> int:
    cfg = load_config(Path(args.config))
    store = open_store(cfg)
    try:
        stats = migrate_file_references(store, cfg, mode=args.mode, dry_run=args.dry_run)
    finally:
        store.close()
    print_reference_stats(stats)
    return 0


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return run_from_args(args)


__all__ = ["add_parser", "build_parser", "run_cli", "run_from_args"]
