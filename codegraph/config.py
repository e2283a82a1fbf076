# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Configuration for codegraph.

Settings come from three layers, lowest precedence first:

1. Built-in defaults (the models below)
2. An optional YAML file (``Settings.from_file`` / ``load_settings(path)``)
3. Environment variables prefixed with ``CODEGRAPH_``; nested sections use
   ``__`` as delimiter, e.g. ``CODEGRAPH_SERVER__PORT=9000``.

Example YAML:

    server:
      host: 0.0.0.0
      port: 8080
    database:
      path: codegraph.db
    logging:
      level: debug
      format: json
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from codegraph.errors import ConfigError

logger = logging.getLogger(__name__)

LOG_LEVELS = ("trace", "debug", "info", "warning", "warn", "error")
LOG_FORMATS = ("pretty", "json", "compact")


class ServerConfig(BaseModel):
    """HTTP server settings."""

    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)
    cors_enabled: bool = True
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class DatabaseConfig(BaseModel):
    """Graph store settings."""

    path: str = "codegraph.db"


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = "info"
    format: str = "pretty"

    @field_validator("level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        value = value.lower()
        if value not in LOG_LEVELS:
            raise ValueError(f"Invalid log level '{value}'. Must be one of: {', '.join(LOG_LEVELS)}")
        return value

    @field_validator("format")
    @classmethod
    def _check_format(cls, value: str) -> str:
        value = value.lower()
        if value not in LOG_FORMATS:
            raise ValueError(
                f"Invalid log format '{value}'. Must be one of: {', '.join(LOG_FORMATS)}"
            )
        return value


class IndexingConfig(BaseModel):
    """Parse batch settings.

    Attributes:
        workers: Extraction worker processes (0 = auto, 1 = sequential)
        parallel_threshold: Minimum batch size before a process pool is used
        exclude_dirs: Directory names skipped during the walk
    """

    workers: int = Field(default=1, ge=0)
    parallel_threshold: int = Field(default=50, ge=1)
    exclude_dirs: List[str] = Field(default_factory=list)


class Settings(BaseSettings):
    """Top-level codegraph settings."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)

    model_config = SettingsConfigDict(
        env_prefix="CODEGRAPH_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ):
        # Environment overrides values loaded from a config file.
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Settings":
        """Load settings from a YAML file.

        Args:
            path: Path to the YAML config file

        Returns:
            Settings with file values applied (environment still wins)

        Raises:
            ConfigError: If the file is unreadable, not YAML, or invalid
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Failed to read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        try:
            settings = cls(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {path}: {e}") from e

        logger.debug(f"Loaded configuration from {path}")
        return settings

    def to_file(self, path: Union[str, Path]) -> None:
        """Write settings to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """Load settings from an optional YAML file plus the environment.

    Raises:
        ConfigError: If the file or environment values are invalid
    """
    if path is not None:
        return Settings.from_file(path)
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
