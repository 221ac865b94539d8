"""CLI command removing duplicate files nothing references any more."""
from __future__ import annotations

import argparse
from argparse import _SubParsersAction
from pathlib import Path
from typing import Optional, Sequence

from ..canonical import EXTERNAL, MODES
from ..config import load_config
from ..db import open_store
from ..errors import ConfigurationError
from ..removal import remove_migrated_files
from ..storage import LocalStorage
from ._report import print_removal_stats


def _configure_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default="config/undouble.yaml", help="Path to config file")
    parser.add_argument("--mode", choices=MODES, default=EXTERNAL, help="Remove duplicates found inside (internal) or outside (external) the staging folder")
    parser.add_argument("--dry-run", action="store_true", help="Preview removals without touching storage or database")
    parser.add_argument("--i-know-what-im-doing", dest="acknowledged", action="store_true", help="Confirm that references were migrated before removing files")


def add_parser(subparsers: _SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "remove-migrated-files",
        help="Remove unreferenced duplicate files from the staging folder",
        description="Delete staged duplicates that have a canonical counterpart and no remaining references.",
    )
    _configure_parser(parser)
    parser.set_defaults(handler=run_from_args)
    return parser


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog or "undouble remove-migrated-files", description="Remove unreferenced duplicate files")
    _configure_parser(parser)
    return parser


def run_from_args(args: argparse.Namespace) -> int:
    cfg = load_config(Path(args.config))
    store = open_store(cfg)
    try:
        stats = remove_migrated_files(
            store,
            LocalStorage(Path(cfg.storage.root)),
            cfg,
            mode=args.mode,
            dry_run=args.dry_run,
            acknowledged=args.acknowledged,
        )
    except ConfigurationError as exc:
        print(str(exc))
        return 2
    finally:
        store.close()
    print_removal_stats(stats)
    return 1 if stats.aborted else 0


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return run_from_args(args)


__all__ = ["add_parser", "build_parser", "run_cli", "run_from_args"]
