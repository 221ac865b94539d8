"""CLI command undoubling staged files that duplicate each other."""
from __future__ import annotations

import argparse
from argparse import _SubParsersAction
from typing import Optional, Sequence

from ..canonical import INTERNAL
from .migrated import _configure_parser, run_undouble


def add_parser(subparsers: _SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "migrated-internal",
        help="Undouble staged files that have duplicates inside the staging folder",
        description="Point links and references to staged duplicates at the lowest uid with the same content. "
        "Run this before 'migrated'.",
    )
    _configure_parser(parser)
    parser.set_defaults(handler=run_from_args)
    return parser


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog or "undouble migrated-internal",
        description="Undouble staged files that have duplicates inside the staging folder",
    )
    _configure_parser(parser)
    return parser


def run_from_args(args: argparse.Namespace) -> int:
    return run_undouble(args, INTERNAL)


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return run_from_args(args)


__all__ = ["add_parser", "build_parser", "run_cli", "run_from_args"]
