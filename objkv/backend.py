"""Key/value backend over a directory/object store."""

from __future__ import annotations

import posixpath
import time
from dataclasses import dataclass

from loguru import logger

from objkv.exceptions import ErrorKind, InvalidKeyError, ObjectStoreError, StorageError
from objkv.metrics import BackendMetrics
from objkv.storage import ObjectStore, clean_path, is_object_name


@dataclass
class Entry:
    key: str
    value: bytes


class KeyValueAdapter:
    """Stores entries as objects rooted at ``base_directory``.

    A key ``a/b/c`` lives in directory ``<base>/a/b`` as object ``c``.
    Missing directories are created on ``put`` and entries are never cached.
    """

    def __init__(self, store: ObjectStore, base_directory: str, metrics: BackendMetrics | None = None) -> None:
        self.store = store
        self.base_directory = clean_path(base_directory)
        self.metrics = metrics or BackendMetrics()

    def rooted(self, path: str) -> str:
        """Join ``path`` onto the base directory, which it may not leave.

        A leading ``/`` is relative to the base directory, not the store root.
        """
        joined = clean_path(f"{self.base_directory}/{path}")
        base = self.base_directory
        if base and joined != base and not joined.startswith(f"{base}/"):
            raise InvalidKeyError(f"Path escapes base directory: {path}", {"path": path})
        return joined

    def split_key(self, key: str) -> tuple[str, str]:
        """Return ``(directory, object_name)`` for ``key``.

        Raises:
            InvalidKeyError: If the key has no object name or leaves the base directory.
        """
        directory, name = posixpath.split(key)
        if not is_object_name(name):
            raise InvalidKeyError(f"Key does not name an object: {key}", {"key": key})
        return self.rooted(directory), name

    def put(self, entry: Entry) -> None:
        """Insert or overwrite ``entry``.

        Raises:
            StorageError: If a directory or the object cannot be written.
        """
        start = time.perf_counter()
        try:
            directory, name = self.split_key(entry.key)
            self.make_dirs(directory)
            self.store.put_object(directory, name, entry.value)
        except StorageError as exc:
            self.metrics.measure_since("put", start, failed=True)
            logger.error("Failed to put {}: {}", entry.key, exc)
            raise
        self.metrics.measure_since("put", start)

    def get(self, key: str) -> Entry | None:
        """Fetch the entry at ``key``; ``None`` when it does not exist.

        Keys outside the base directory or without an object name are absent.

        Raises:
            StorageError: On any failure other than not-found, or when the
                store returns no payload without reporting absence.
        """
        start = time.perf_counter()
        try:
            directory, name = self.split_key(key)
        except InvalidKeyError:
            self.metrics.measure_since("get", start)
            return None
        try:
            value = self.store.get_object(directory, name)
        except ObjectStoreError as exc:
            if exc.is_not_found:
                self.metrics.measure_since("get", start)
                return None
            self.metrics.measure_since("get", start, failed=True)
            logger.error("Failed to get {}: {}", key, exc)
            raise
        if value is None:
            self.metrics.measure_since("get", start, failed=True)
            raise StorageError("Object store returned no data and no error", {"key": key})
        self.metrics.measure_since("get", start)
        return Entry(key=key, value=value)

    def delete(self, key: str) -> None:
        """Permanently delete ``key``; deleting a missing key succeeds.

        When the key names a non-empty directory, its whole subtree is removed.
        Keys outside the base directory are treated as absent.
        """
        start = time.perf_counter()
        try:
            directory, name = self.split_key(key)
        except InvalidKeyError:
            self.metrics.measure_since("delete", start)
            return
        try:
            self._delete_object(directory, name)
        except StorageError as exc:
            self.metrics.measure_since("delete", start, failed=True)
            logger.error("Failed to delete {}: {}", key, exc)
            raise
        self.metrics.measure_since("delete", start)

    def list(self, prefix: str) -> list[str]:
        """List the names directly below ``prefix``.

        Listing failures are reported as an empty result.
        """
        start = time.perf_counter()
        try:
            path = self.rooted(prefix)
        except InvalidKeyError:
            self.metrics.measure_since("list", start)
            return []
        try:
            entries = self.store.list_directory(path)
        except ObjectStoreError as exc:
            if not exc.is_not_found:
                logger.warning("Listing {} failed, returning no keys: {}", path, exc)
            self.metrics.measure_since("list", start, failed=not exc.is_not_found)
            return []
        self.metrics.measure_since("list", start)
        return [entry.name for entry in entries]

    def _delete_object(self, directory: str, name: str) -> None:
        try:
            self.store.delete_object(directory, name)
        except ObjectStoreError as exc:
            if exc.kind is ErrorKind.DIRECTORY_NOT_EMPTY:
                self.delete_tree(clean_path(posixpath.join(directory, name)))
            elif exc.kind is not ErrorKind.NOT_FOUND:
                raise

    def make_dirs(self, directory: str) -> None:
        """Create ``directory`` and any missing parents, parents first."""
        try:
            self.store.put_directory(directory)
            return
        except ObjectStoreError as exc:
            if exc.kind is not ErrorKind.DIRECTORY_MISSING:
                raise
        parent = posixpath.dirname(directory)
        if parent and parent != directory:
            logger.debug("Creating parent directory {}", parent)
            self.make_dirs(parent)
        self.store.put_directory(directory)

    def delete_tree(self, path: str) -> None:
        """Depth-first removal of ``path`` and everything below it."""
        try:
            children = self.store.list_directory(path)
        except ObjectStoreError as exc:
            if exc.is_not_found:
                return
            raise
        for child in children:
            if child.is_directory:
                self.delete_tree(posixpath.join(path, child.name))
                continue
            try:
                self.store.delete_object(path, child.name)
            except ObjectStoreError as exc:
                if not exc.is_not_found:
                    raise
        logger.debug("Deleting directory {}", path)
        try:
            self.store.delete_directory(path)
        except ObjectStoreError as exc:
            if not exc.is_not_found:
                raise


__all__ = ["Entry", "KeyValueAdapter"]
