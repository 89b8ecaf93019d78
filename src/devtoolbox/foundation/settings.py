"""Configuration using pydantic-settings.

Values come from (highest priority first) constructor kwargs, environment
variables with the DEVTOOLBOX_ prefix, the TOML config file, then defaults.

Example:
    >>> from devtoolbox.foundation.settings import get_settings
    >>> settings = get_settings()
    >>> settings.github_api_base_url
    'https://api.github.com'

    # Or with environment variables:
    # DEVTOOLBOX_CACHE_DB_PATH=/tmp/cache.db
    # DEVTOOLBOX_LOGGING__LEVEL=DEBUG
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

import orjson
from pydantic import Field, PositiveFloat, PositiveInt, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

APP_DIR_NAME = "dev-toolbox"


def config_dir() -> Path:
    """Per-user config directory ($XDG_CONFIG_HOME/dev-toolbox)."""
    base = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(base) / APP_DIR_NAME


def data_dir() -> Path:
    """Per-user data directory ($XDG_DATA_HOME/dev-toolbox)."""
    base = os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share"
    return Path(base) / APP_DIR_NAME


def config_file() -> Path:
    return config_dir() / "config.toml"


class LoggingSettings(BaseSettings):
    """Logging configuration. The log goes to a file since the UI owns the terminal."""

    model_config = SettingsConfigDict(env_prefix="DEVTOOLBOX_LOG_", extra="ignore")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"
    file: Path = Field(default_factory=lambda: data_dir() / "dev-toolbox.log")

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class HttpSettings(BaseSettings):
    """GitHub client configuration."""

    model_config = SettingsConfigDict(env_prefix="DEVTOOLBOX_HTTP_", extra="ignore")

    timeout: PositiveFloat = Field(default=30.0, description="Request timeout in seconds")
    user_agent: str = "Dev-Toolbox/1.0"
    release_fetch_limit: PositiveInt = Field(default=5, description="Repos whose releases are fetched")


class UiSettings(BaseSettings):
    """Event loop configuration."""

    model_config = SettingsConfigDict(env_prefix="DEVTOOLBOX_UI_", extra="ignore")

    tick_interval: PositiveFloat = Field(default=0.25, description="Idle re-render interval in seconds")


class ToolboxSettings(BaseSettings):
    """Root settings for the toolbox.

    Example environment variables:
        DEVTOOLBOX_UNICODE_DATA_PATH=/usr/share/unicode/UnicodeData.txt
        DEVTOOLBOX_BLOCKS_PATH=/usr/share/unicode/Blocks.txt
        DEVTOOLBOX_HTTP__TIMEOUT=10
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVTOOLBOX_",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    unicode_data_path: Path = Path("UnicodeData.txt")
    blocks_path: Path = Path("Blocks.txt")
    cache_db_path: Path = Field(default_factory=lambda: data_dir() / "cache.db")
    github_api_base_url: str = "https://api.github.com"
    export_dir: Path = Path(".")

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    ui: UiSettings = Field(default_factory=UiSettings)

    @field_validator("github_api_base_url")
    @classmethod
    def _require_https(cls, v: str) -> str:
        if not v.startswith("https://"):
            raise ValueError("github_api_base_url must use https://")
        return v.rstrip("/")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, env_settings, TomlConfigSettingsSource(settings_cls, toml_file=config_file()))


def write_default_config(path: Path, settings: ToolboxSettings | None = None) -> Path:
    """Write settings (defaults when None) as TOML. Parent directories are created."""
    data = (settings or ToolboxSettings()).model_dump(mode="json")
    scalars = [f"{k} = {_toml_value(v)}" for k, v in data.items() if not isinstance(v, dict)]
    tables = [
        "\n".join([f"[{name}]", *(f"{k} = {_toml_value(v)}" for k, v in table.items())])
        for name, table in data.items() if isinstance(table, dict)
    ]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n\n".join(["\n".join(scalars), *tables]) + "\n", encoding="utf-8")
    return path


def _toml_value(v: object) -> str:
    match v:
        case bool(): return str(v).lower()
        case int() | float(): return str(v)
        # JSON string escapes are valid TOML basic-string escapes
        case _: return orjson.dumps(str(v)).decode()


def load_settings() -> ToolboxSettings:
    """Load settings, writing a default config file first if none exists."""
    path = config_file()
    if not path.exists():
        write_default_config(path)
    return ToolboxSettings()


@lru_cache(maxsize=1)
def get_settings() -> ToolboxSettings:
    """Get the global settings instance (cached)."""
    return load_settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
