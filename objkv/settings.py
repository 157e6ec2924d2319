from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, validator

from objkv.exceptions import ConfigurationError

# Load .env file from project root
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

# Environment variables that override configuration map keys.
ENV_OVERRIDES = {
    "endpoint": "OBJKV_URL",
    "user": "OBJKV_USER",
    "keyid": "OBJKV_KEY_ID",
}

# Map keys to BackendSettings field names.
CONFIG_KEYS = {
    "endpoint": "endpoint",
    "user": "user",
    "keyid": "key_id",
    "path": "path",
    "keypath": "key_path",
}


def default_key_path() -> str:
    home = os.getenv("HOME") or str(Path.home())
    return os.path.join(home, ".objkv", "secret_key")


class BackendSettings(BaseModel):
    endpoint: str | None = None
    user: str | None = None
    key_id: str | None = None
    path: str | None = None
    key_path: str = Field(default_factory=default_key_path)

    class Config:
        frozen = True

    @classmethod
    def resolve(
        cls,
        conf: Mapping[str, str],
        required: tuple[str, ...] = ("endpoint", "user", "key_id", "path"),
    ) -> "BackendSettings":
        """Resolve a backend configuration map once, at construction.

        ``OBJKV_URL``, ``OBJKV_USER`` and ``OBJKV_KEY_ID`` take precedence over
        the map's ``endpoint``, ``user`` and ``keyid``. ``path`` only comes from
        the map and ``keypath`` falls back to ``$HOME/.objkv/secret_key``.

        Raises:
            ConfigurationError: If a field listed in ``required`` is unset.
        """
        values: dict[str, Any] = {}
        for key, field_name in CONFIG_KEYS.items():
            value = os.getenv(ENV_OVERRIDES[key], "") if key in ENV_OVERRIDES else ""
            if not value:
                value = conf.get(key) or ""
            if value:
                values[field_name] = value

        reverse = {field_name: key for key, field_name in CONFIG_KEYS.items()}
        for field_name in required:
            if field_name not in values:
                key = reverse.get(field_name, field_name)
                raise ConfigurationError(f"'{key}' must be set", {"field": key})
        return cls(**values)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = False
    log_file: str | None = None

    @validator("level", pre=True)
    def _normalize_level(cls, value: Any) -> str:  # noqa: D401
        if value is None:
            return "INFO"
        return str(value).upper()


class Settings(BaseModel):
    backend: str = "local"
    config: dict[str, str] = Field(default_factory=dict)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @validator("config", pre=True)
    def _stringify_config(cls, value: Any) -> dict[str, str]:  # noqa: D401
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise ValueError("config must be a mapping")
        return {str(key): str(item) for key, item in value.items() if item is not None}

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from YAML configuration file.
        
        Args:
            path: Optional path to configuration file. If not provided, uses
                OBJKV_CONFIG environment variable or defaults to config/default.yaml.
        
        Returns:
            Settings instance with loaded configuration.
        
        Raises:
            FileNotFoundError: If configuration file does not exist.
            ValueError: If configuration is invalid.
        """
        config_path = path or Path(os.getenv("OBJKV_CONFIG", "config/default.yaml"))
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        with config_path.open("r", encoding="utf-8") as fp:
            payload = yaml.safe_load(fp) or {}
        try:
            return cls(**payload)
        except Exception as exc:
            raise ValueError(f"Invalid configuration: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> Settings:
    return Settings.load(Path(path) if path else None)


__all__ = [
    "BackendSettings",
    "LoggingSettings",
    "Settings",
    "default_key_path",
    "get_settings",
]
