"""Named backend factory."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from loguru import logger

from objkv.backend import KeyValueAdapter
from objkv.exceptions import ConfigurationError
from objkv.settings import BackendSettings, Settings, get_settings
from objkv.storage.local import LocalObjectStore
from objkv.storage.s3 import S3ObjectStore

STORES: dict[str, Any] = {
    "local": LocalObjectStore,
    "s3": S3ObjectStore,
}


def register_store(name: str, factory: Any) -> None:
    """Register a store driver.

    ``factory`` needs a ``from_settings(BackendSettings)`` classmethod and a
    ``REQUIRED_FIELDS`` tuple of ``BackendSettings`` field names.
    """
    STORES[name] = factory


def new_backend(
    name: str,
    conf: Mapping[str, str],
    *,
    store_factory: Callable[[BackendSettings], Any] | None = None,
) -> KeyValueAdapter:
    """Construct the key/value backend ``name`` from a configuration map.

    Raises:
        ConfigurationError: If ``name`` is unknown or the map is incomplete.
    """
    driver = STORES.get(name)
    if driver is None:
        raise ConfigurationError(f"Unknown backend: {name}", {"backend": name})
    settings = BackendSettings.resolve(conf, required=driver.REQUIRED_FIELDS)
    store = (store_factory or driver.from_settings)(settings)
    logger.info("Initialised {} backend rooted at {}", name, settings.path)
    return KeyValueAdapter(store, settings.path)


def open_backend(settings: Settings | None = None) -> KeyValueAdapter:
    settings = settings or get_settings()
    return new_backend(settings.backend, settings.config)


__all__ = ["STORES", "new_backend", "open_backend", "register_store"]
