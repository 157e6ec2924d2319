"""Object store abstraction (directories and objects, S3 or local filesystem)."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Protocol

DIRECTORY = "directory"
OBJECT = "object"


@dataclass(frozen=True)
class DirEntry:
    name: str
    type: str = OBJECT

    @property
    def is_directory(self) -> bool:
        return self.type == DIRECTORY


class ObjectStore(Protocol):
    """Primitives the key/value adapter composes against.

    Failures are raised as ``ObjectStoreError`` with an ``ErrorKind``.
    """

    def put_directory(self, path: str) -> None:
        ...

    def put_object(self, directory: str, name: str, data: bytes) -> None:
        ...

    def get_object(self, directory: str, name: str) -> bytes | None:
        ...

    def delete_object(self, directory: str, name: str) -> None:
        ...

    def delete_directory(self, path: str) -> None:
        ...

    def list_directory(self, path: str) -> list[DirEntry]:
        ...


def is_object_name(name: str) -> bool:
    return bool(name) and name not in (".", "..") and "/" not in name


def clean_path(path: str) -> str:
    """Normalise a store path: no leading/trailing slash, no ``..`` escapes.

    The store root is the empty string.
    """
    cleaned = posixpath.normpath("/" + (path or "")).lstrip("/")
    return "" if cleaned == "." else cleaned


__all__ = ["DIRECTORY", "OBJECT", "DirEntry", "ObjectStore", "clean_path", "is_object_name"]
