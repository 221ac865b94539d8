"""CLI command exporting the undoubling plan to Parquet."""
from __future__ import annotations

import argparse
from argparse import _SubParsersAction
from pathlib import Path
from typing import Optional, Sequence

from ..canonical import INTERNAL, MODES, prepare_run
from ..config import load_config
from ..db import open_store
from ..export import export_plan


def _configure_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default="config/undouble.yaml", help="Path to config file")
    parser.add_argument("--mode", choices=MODES, default=INTERNAL, help="Find duplicates inside (internal) or outside (external) the staging folder")
    parser.add_argument("--out", help="Destination folder for Parquet files (default: report.parquet_dir)")


def add_parser(subparsers: _SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "export-plan",
        help="Export the duplicate -> canonical plan to Parquet",
        description="Write the files that would be undoubled, and the staged files without counterpart, to Parquet.",
    )
    _configure_parser(parser)
    parser.set_defaults(handler=run_from_args)
    return parser


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog or "undouble export-plan", description="Export the undoubling plan to Parquet")
    _configure_parser(parser)
    return parser


def run_from_args(args: argparse.Namespace) -> int:
    cfg = load_config(Path(args.config))
    out = Path(args.out or cfg.report.parquet_dir)
    store = open_store(cfg)
    try:
        run = prepare_run(store, cfg, args.mode)
        plan_path, unmatched_path = export_plan(store, run, out)
    finally:
        store.close()
    print(f"[OK] {run.total:,} planned rows written to {plan_path}")
    print(f"[OK] {len(run.unmatched):,} unmatched rows written to {unmatched_path}")
    return 0


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return run_from_args(args)


__all__ = ["add_parser", "build_parser", "run_cli", "run_from_args"]
