"""CLI command rewriting ``<link file:<uid>>`` tags in rich text fields."""
from __future__ import annotations

import argparse
from argparse import _SubParsersAction
from typing import Optional, Sequence

from ..config import TYPOLINK_TAG
from .typolink import _configure_parser, run_link_fields


def add_parser(subparsers: _SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "update-typolink-tag-fields",
        help="Rewrite <link file:> tags in rich text fields",
        description="Point <link file:<uid>> tags to duplicates at their canonical file, keeping the link text.",
    )
    _configure_parser(parser)
    parser.set_defaults(handler=run_from_args)
    return parser


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog or "undouble update-typolink-tag-fields",
        description="Rewrite <link file:> tags in rich text fields",
    )
    _configure_parser(parser)
    return parser


def run_from_args(args: argparse.Namespace) -> int:
    return run_link_fields(args, TYPOLINK_TAG)


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return run_from_args(args)


__all__ = ["add_parser", "build_parser", "run_cli", "run_from_args"]
