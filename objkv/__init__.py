"""Key/value backend that persists entries on a directory/object store."""

from objkv.backend import Entry, KeyValueAdapter
from objkv.exceptions import ConfigurationError, ErrorKind, ObjectStoreError, ObjKVError, StorageError
from objkv.registry import new_backend, open_backend

__version__ = "0.1.0"

__all__ = [
    "Entry",
    "KeyValueAdapter",
    "new_backend",
    "open_backend",
    "ObjKVError",
    "ConfigurationError",
    "StorageError",
    "ObjectStoreError",
    "ErrorKind",
    "__version__",
]
