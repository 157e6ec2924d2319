"""Custom exception hierarchy for objkv."""

from __future__ import annotations

from enum import Enum


class ObjKVError(Exception):
    """Base exception for all objkv-specific errors."""
    
    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ObjKVError):
    """Raised when backend configuration is invalid or missing."""
    pass


class StorageError(ObjKVError):
    """Raised when an object store operation fails."""
    pass


class InvalidKeyError(StorageError):
    """Raised when a key does not name an object under the base directory."""
    pass


class ErrorKind(str, Enum):
    """Failure classes an object store driver reports."""

    NOT_FOUND = "not_found"
    DIRECTORY_MISSING = "directory_missing"
    DIRECTORY_NOT_EMPTY = "directory_not_empty"
    OTHER = "other"


class ObjectStoreError(StorageError):
    """Raised by object store drivers; ``kind`` classifies the failure."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.OTHER,
        details: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.kind = kind

    @property
    def is_not_found(self) -> bool:
        return self.kind is ErrorKind.NOT_FOUND


__all__ = [
    "ObjKVError",
    "ConfigurationError",
    "StorageError",
    "InvalidKeyError",
    "ErrorKind",
    "ObjectStoreError",
]
