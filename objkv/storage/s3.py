from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from objkv.exceptions import ConfigurationError, ErrorKind, ObjectStoreError
from objkv.storage import DIRECTORY, OBJECT, DirEntry, clean_path, is_object_name

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound", "NoSuchBucket"}


class S3ObjectStore:
    """Directories and objects on an S3-compatible service.

    A directory ``a/b`` exists when the zero-byte marker object ``a/b/`` does.
    The bucket itself is the store root and always exists.
    """

    REQUIRED_FIELDS = ("endpoint", "user", "key_id", "path")

    def __init__(self, bucket: str, client: Any = None, region: Optional[str] = None) -> None:
        self.bucket = bucket
        if client is None:
            session = boto3.session.Session(region_name=region) if region else boto3.session.Session()
            client = session.client("s3")
        self.client = client

    @classmethod
    def from_settings(cls, settings) -> "S3ObjectStore":
        """Build a store for ``settings.user``'s bucket at ``settings.endpoint``.

        The secret access key is read from ``settings.key_path``.
        """
        key_path = Path(settings.key_path).expanduser()
        try:
            secret = key_path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            logger.error("Unable to read key file {}: {}", key_path, exc)
            raise ConfigurationError(f"Unable to read key file: {key_path}", {"keypath": str(key_path)}) from exc
        session = boto3.session.Session(
            aws_access_key_id=settings.key_id,
            aws_secret_access_key=secret,
        )
        client = session.client("s3", endpoint_url=settings.endpoint)
        return cls(bucket=settings.user, client=client)

    @staticmethod
    def _marker(path: str) -> str:
        return f"{path}/"

    def _object_key(self, directory: str, name: str, kind: ErrorKind) -> str:
        directory = clean_path(directory)
        if not is_object_name(name):
            raise ObjectStoreError(f"Invalid object name: {name!r}", kind, {"bucket": self.bucket, "key": directory})
        return f"{directory}/{name}" if directory else name

    def _wrap(self, exc: Exception, key: str) -> ObjectStoreError:
        kind = ErrorKind.OTHER
        if isinstance(exc, ClientError):
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                kind = ErrorKind.NOT_FOUND
        return ObjectStoreError(str(exc), kind, {"bucket": self.bucket, "key": key})

    def _exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            err = self._wrap(exc, key)
            if err.is_not_found:
                return False
            raise err from exc
        except BotoCoreError as exc:
            raise self._wrap(exc, key) from exc
        return True

    def _dir_exists(self, path: str) -> bool:
        return path == "" or self._exists(self._marker(path))

    def _iter_children(self, path: str) -> Iterator[DirEntry]:
        prefix = self._marker(path) if path else ""
        paginator = self.client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix, Delimiter="/"):
                for common in page.get("CommonPrefixes", []):
                    yield DirEntry(common["Prefix"][len(prefix):].rstrip("/"), DIRECTORY)
                for item in page.get("Contents", []):
                    if item["Key"] == prefix:
                        continue
                    yield DirEntry(item["Key"][len(prefix):], OBJECT)
        except (ClientError, BotoCoreError) as exc:
            raise self._wrap(exc, prefix) from exc

    def _has_children(self, path: str) -> bool:
        return next(iter(self._iter_children(path)), None) is not None

    def put_directory(self, path: str) -> None:
        path = clean_path(path)
        if self._dir_exists(path):
            return
        if self._exists(path):
            raise ObjectStoreError(
                f"An object already exists at {path}",
                ErrorKind.OTHER,
                {"bucket": self.bucket, "key": path},
            )
        parent = clean_path(path.rpartition("/")[0])
        if not self._dir_exists(parent):
            raise ObjectStoreError(
                f"Parent directory does not exist: {path}",
                ErrorKind.DIRECTORY_MISSING,
                {"bucket": self.bucket, "key": self._marker(path)},
            )
        try:
            self.client.put_object(Bucket=self.bucket, Key=self._marker(path), Body=b"")
        except (ClientError, BotoCoreError) as exc:
            raise self._wrap(exc, self._marker(path)) from exc
        logger.debug("Created directory marker s3://{}/{}", self.bucket, self._marker(path))

    def put_object(self, directory: str, name: str, data: bytes) -> None:
        directory = clean_path(directory)
        key = self._object_key(directory, name, ErrorKind.OTHER)
        if not self._dir_exists(directory):
            raise ObjectStoreError(
                f"Directory does not exist: {directory}",
                ErrorKind.DIRECTORY_MISSING,
                {"bucket": self.bucket, "key": key},
            )
        if self._exists(self._marker(key)):
            raise ObjectStoreError(
                f"A directory already exists at {key}",
                ErrorKind.OTHER,
                {"bucket": self.bucket, "key": key},
            )
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data)
        except (ClientError, BotoCoreError) as exc:
            raise self._wrap(exc, key) from exc

    def get_object(self, directory: str, name: str) -> bytes | None:
        key = self._object_key(directory, name, ErrorKind.NOT_FOUND)
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except (ClientError, BotoCoreError) as exc:
            raise self._wrap(exc, key) from exc

    def delete_object(self, directory: str, name: str) -> None:
        key = self._object_key(directory, name, ErrorKind.NOT_FOUND)
        if self._exists(key):
            try:
                self.client.delete_object(Bucket=self.bucket, Key=key)
            except (ClientError, BotoCoreError) as exc:
                raise self._wrap(exc, key) from exc
            return
        # Deleting a directory through the object API removes it when empty.
        self.delete_directory(key)

    def delete_directory(self, path: str) -> None:
        path = clean_path(path)
        marker = self._marker(path)
        if not path or not self._exists(marker):
            raise ObjectStoreError(
                f"Directory not found: {path}",
                ErrorKind.NOT_FOUND,
                {"bucket": self.bucket, "key": marker},
            )
        if self._has_children(path):
            raise ObjectStoreError(
                f"Directory not empty: {path}",
                ErrorKind.DIRECTORY_NOT_EMPTY,
                {"bucket": self.bucket, "key": marker},
            )
        try:
            self.client.delete_object(Bucket=self.bucket, Key=marker)
        except (ClientError, BotoCoreError) as exc:
            raise self._wrap(exc, marker) from exc
        logger.debug("Removed directory marker s3://{}/{}", self.bucket, marker)

    def list_directory(self, path: str) -> list[DirEntry]:
        path = clean_path(path)
        if not self._dir_exists(path):
            raise ObjectStoreError(
                f"Directory not found: {path}",
                ErrorKind.NOT_FOUND,
                {"bucket": self.bucket, "key": self._marker(path)},
            )
        return sorted(self._iter_children(path), key=lambda entry: entry.name)


__all__ = ["S3ObjectStore"]
