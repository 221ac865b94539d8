from __future__ import annotations
import os
from pathlib import Path
from typing import BinaryIO, Iterator

from .errors import StorageError, StoragePermissionError


class LocalStorage:
    """Files addressed by identifier (``/folder/name.ext``) below a root folder."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, identifier: str) -> Path:
        root = self.root.resolve()
        path = (root / identifier.lstrip("/")).resolve()
        if path != root and root not in path.parents:
            raise StorageError(identifier, "identifier points outside the storage root")
        return path

    def identifier_for(self, path: Path) -> str:
        return "/" + Path(path).resolve().relative_to(self.root.resolve()).as_posix()

    def exists(self, identifier: str) -> bool:
        return self.path_for(identifier).is_file()

    def open(self, identifier: str) -> BinaryIO:
        path = self.path_for(identifier)
        try:
            return open(path, "rb")
        except PermissionError as exc:
            raise StoragePermissionError(identifier, str(exc)) from exc
        except OSError as exc:
            raise StorageError(identifier, str(exc)) from exc

    def delete(self, identifier: str) -> bool:
        """Remove the file; ``False`` when it was already gone."""
        path = self.path_for(identifier)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except PermissionError as exc:
            raise StoragePermissionError(identifier, str(exc)) from exc
        except OSError as exc:
            raise StorageError(identifier, str(exc)) from exc
        return True

    def iter_files(self) -> Iterator[Path]:
        for dirpath, _dirnames, filenames in os.walk(self.root):
            for name in sorted(filenames):
                yield Path(dirpath) / name
