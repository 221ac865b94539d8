"""CLI command registering storage files in the database."""
from __future__ import annotations

import argparse
from argparse import _SubParsersAction
from pathlib import Path
from typing import Optional, Sequence

from ..config import load_config
from ..db import open_store
from ..scan import register_files
from ..storage import LocalStorage


def _configure_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default="config/undouble.yaml", help="Path to config file")
    parser.add_argument("--root", help="Override the storage root folder")


def add_parser(subparsers: _SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "scan",
        help="Register storage files in the database",
        description="Walk the storage root and add a sys_file row with size and SHA1 for every new file.",
    )
    _configure_parser(parser)
    parser.set_defaults(handler=run_from_args)
    return parser


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog or "undouble scan", description="Register storage files in the database")
    _configure_parser(parser)
    return parser


def run_from_args(args: argparse.Namespace) -> int:
    cfg = load_config(Path(args.config))
    if args.root:
        cfg.storage.root = args.root
    root = Path(cfg.storage.root)
    if not root.is_dir():
        raise SystemExit(f"Storage root not found: {root}")

    store = open_store(cfg)
    try:
        stats = register_files(store, LocalStorage(root), cfg)
    finally:
        store.close()

    print("\n" + "=" * 70)
    print("SCAN SUMMARY")
    print("=" * 70)
    print(f"Files seen:            {stats.seen:>10,}")
    print(f"Registered:            {stats.registered:>10,}")
    print(f"Already known:         {stats.known:>10,}")
    print(f"Errors:                {stats.errors:>10,}")
    return 0


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return run_from_args(args)


__all__ = ["add_parser", "build_parser", "run_cli", "run_from_args"]
