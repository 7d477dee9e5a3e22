"""Service settings: environment, .env and an optional JSON config file."""
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import Field
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

logger = logging.getLogger(__name__)


def flatten_json_config(config: dict[str, Any]) -> dict[str, Any]:
    """Merge nested config sections into one flat mapping.

    {"redis": {"redis_host": "localhost"}, "_comment": "..."} -> {"redis_host": "localhost"}
    Keys starting with "_" are comments.
    """
    flat: dict[str, Any] = {}
    for key, value in config.items():
        if key.startswith("_"):
            continue
        if isinstance(value, dict):
            flat.update(flatten_json_config(value))
        else:
            flat[key] = value
    return flat


def load_json_config(config_file: Optional[str] = None) -> dict[str, Any]:
    """Read and flatten the JSON config file (default: $CONFIG_FILE).

    A missing or unreadable file yields an empty mapping.
    """
    file_path = config_file or os.getenv("CONFIG_FILE")
    if not file_path:
        return {}

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            config = json.load(f)
    except FileNotFoundError:
        logger.warning(f"Config file not found: {file_path}")
        return {}
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not load config file {file_path}: {e}")
        return {}

    logger.info(f"Loaded configuration from: {file_path}")
    return flatten_json_config(config)


class JsonConfigFileSource(PydanticBaseSettingsSource):
    """Settings source backed by the flattened CONFIG_FILE contents."""

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        # Values are produced in bulk by __call__
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        known = self.settings_cls.model_fields
        config = load_json_config()
        unknown = sorted(set(config) - set(known))
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")
        return {key: value for key, value in config.items() if key in known}


class Settings(BaseSettings):
    """Service configuration.

    Precedence: init kwargs, environment, .env, CONFIG_FILE JSON, defaults.
    """

    redis_host: str = "redis"
    redis_port: int = 6379
    redis_password: str = ""
    redis_db: int = 0

    prediction_refresh_minutes: int = 30
    prediction_batch_size: int = 400
    # Upper bound for a single batch write to storage
    storage_timeout_seconds: float = 10.0

    # Max Euclidean distance (degrees) from a venue to a reference city
    geo_match_max_degrees: float = 5.0

    live_window_minutes: int = 15
    staleness_window_minutes: int = 60
    report_trust_minutes: int = 30
    check_in_active_hours: float = 2
    report_lookback_hours: float = 24

    server_port: int = 8080
    log_level: str = "INFO"

    # If False, only schedule the refresh job; skip the initial run
    refresh_on_startup: bool = True

    project_root: str = Field(default_factory=os.getcwd)
    resources_path_prefix: str = "resources"
    geo_cities_resource: str = "geo_cities.json"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigFileSource(settings_cls),
            file_secret_settings,
        )

    def get_resource_path(self, resource_file: str) -> Path:
        return Path(self.project_root) / self.resources_path_prefix / resource_file

    @property
    def redis_address(self) -> str:
        return f"{self.redis_host}:{self.redis_port}"
