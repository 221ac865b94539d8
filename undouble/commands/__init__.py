"""Command registration for the undouble CLI."""
from __future__ import annotations

from typing import Iterable

from . import export_plan, migrated, migrated_internal, references, remove, scan, status, typolink, typolink_tag

COMMAND_MODULES: Iterable = (
    status,
    scan,
    migrated_internal,
    migrated,
    typolink,
    typolink_tag,
    references,
    remove,
    export_plan,
)

__all__ = ["COMMAND_MODULES"]
