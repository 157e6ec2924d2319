from __future__ import annotations

import errno
from pathlib import Path

from loguru import logger

from objkv.exceptions import ErrorKind, ObjectStoreError
from objkv.storage import DIRECTORY, OBJECT, DirEntry, clean_path, is_object_name


class LocalObjectStore:
    REQUIRED_FIELDS = ("endpoint", "path")

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_settings(cls, settings) -> "LocalObjectStore":
        # The endpoint of a local store is its root directory.
        return cls(Path(settings.endpoint).expanduser())

    def _resolve(self, path: str) -> Path:
        cleaned = clean_path(path)
        return self.root / cleaned if cleaned else self.root

    def _object_path(self, directory: str, name: str, kind: ErrorKind) -> Path:
        if not is_object_name(name):
            raise self._error(f"Invalid object name: {name!r}", kind, self._resolve(directory))
        return self._resolve(directory) / name

    def _error(self, message: str, kind: ErrorKind, path: Path) -> ObjectStoreError:
        return ObjectStoreError(message, kind, {"path": str(path)})

    def put_directory(self, path: str) -> None:
        target = self._resolve(path)
        if target.is_dir():
            return
        if not target.parent.is_dir():
            raise self._error(f"Parent directory does not exist: {path}", ErrorKind.DIRECTORY_MISSING, target)
        try:
            target.mkdir(exist_ok=True)
        except FileExistsError as exc:
            raise self._error(f"An object already exists at {path}", ErrorKind.OTHER, target) from exc
        except OSError as exc:
            raise self._error(str(exc), ErrorKind.OTHER, target) from exc
        logger.debug("Created directory {}", target)

    def put_object(self, directory: str, name: str, data: bytes) -> None:
        target = self._object_path(directory, name, ErrorKind.OTHER)
        parent = target.parent
        if not parent.is_dir():
            raise self._error(f"Directory does not exist: {directory}", ErrorKind.DIRECTORY_MISSING, parent)
        if target.is_dir():
            raise self._error(f"A directory already exists at {directory}/{name}", ErrorKind.OTHER, target)
        try:
            target.write_bytes(data)
        except OSError as exc:
            raise self._error(str(exc), ErrorKind.OTHER, target) from exc

    def get_object(self, directory: str, name: str) -> bytes | None:
        target = self._object_path(directory, name, ErrorKind.NOT_FOUND)
        try:
            return target.read_bytes()
        except FileNotFoundError as exc:
            raise self._error(f"Object not found: {directory}/{name}", ErrorKind.NOT_FOUND, target) from exc
        except (NotADirectoryError, IsADirectoryError) as exc:
            raise self._error(f"Object not found: {directory}/{name}", ErrorKind.NOT_FOUND, target) from exc
        except OSError as exc:
            raise self._error(str(exc), ErrorKind.OTHER, target) from exc

    def delete_object(self, directory: str, name: str) -> None:
        target = self._object_path(directory, name, ErrorKind.NOT_FOUND)
        if target.is_dir():
            self._remove_dir(target)
            return
        try:
            target.unlink()
        except (FileNotFoundError, NotADirectoryError) as exc:
            raise self._error(f"Object not found: {directory}/{name}", ErrorKind.NOT_FOUND, target) from exc
        except OSError as exc:
            raise self._error(str(exc), ErrorKind.OTHER, target) from exc

    def delete_directory(self, path: str) -> None:
        target = self._resolve(path)
        if not target.is_dir():
            raise self._error(f"Directory not found: {path}", ErrorKind.NOT_FOUND, target)
        self._remove_dir(target)

    def _remove_dir(self, target: Path) -> None:
        if target == self.root:
            raise self._error("Refusing to remove the store root", ErrorKind.OTHER, target)
        try:
            target.rmdir()
        except FileNotFoundError as exc:
            raise self._error(f"Directory not found: {target}", ErrorKind.NOT_FOUND, target) from exc
        except OSError as exc:
            if exc.errno in (errno.ENOTEMPTY, errno.EEXIST):
                raise self._error(f"Directory not empty: {target}", ErrorKind.DIRECTORY_NOT_EMPTY, target) from exc
            raise self._error(str(exc), ErrorKind.OTHER, target) from exc
        logger.debug("Removed directory {}", target)

    def list_directory(self, path: str) -> list[DirEntry]:
        target = self._resolve(path)
        if not target.is_dir():
            raise self._error(f"Directory not found: {path}", ErrorKind.NOT_FOUND, target)
        entries = [
            DirEntry(child.name, DIRECTORY if child.is_dir() else OBJECT)
            for child in target.iterdir()
        ]
        return sorted(entries, key=lambda entry: entry.name)


__all__ = ["LocalObjectStore"]
