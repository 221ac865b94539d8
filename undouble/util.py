from __future__ import annotations
from pathlib import Path
import hashlib
import re
from typing import Callable, Optional

ProgressCallback = Callable[[str, int, int, str], None]
LogCallback = Callable[[str], None]

_IDENTIFIER_JUNK = re.compile(r"[^a-zA-Z0-9_-]")


def _emit(cb: Optional[Callable[..., None]], *args, **kwargs) -> None:
    if not cb:
        return
    try:
        cb(*args, **kwargs)
    except Exception:
        pass


def emit_log(log_cb: Optional[LogCallback], message: str) -> None:
    print(message)
    _emit(log_cb, message)


def emit_progress(progress_cb: Optional[ProgressCallback], stage: str, current: int, total: int, message: str) -> None:
    _emit(progress_cb, stage, current, total, message)


def progress_label(counter: int, total: int) -> str:
    """Running percentage label, e.g. ``'42.0% of 50'``."""
    if total <= 0:
        return "100.0% of 0"
    return f"{100 * counter / total:.1f}% of {total}"


def sanitize_identifier(name: str) -> str:
    """Strip everything but ``[a-zA-Z0-9_-]`` from a table or field name."""
    return _IDENTIFIER_JUNK.sub("", name or "")


def format_size(num_bytes: float) -> str:
    for unit in ("B", "KiB", "MiB", "GiB"):
        if abs(num_bytes) < 1024.0:
            return f"{num_bytes:.2f} {unit}" if unit != "B" else f"{int(num_bytes)} B"
        num_bytes /= 1024.0
    return f"{num_bytes:.2f} TiB"


def sha1_file(path: Path, chunk_size: int = 1024 * 1024) -> str:
    h = hashlib.sha1()
    with open(path, "rb") as f:
        while True:
            b = f.read(chunk_size)
            if not b:
                break
            h.update(b)
    return h.hexdigest()
