"""Document settings, read from an optional YAML file and the environment."""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError

from apiv2_compose.errors import ConfigError

ENV_OVERRIDES = {
    "APIV2_TITLE": "title",
    "APIV2_VERSION": "version",
    "APIV2_HOST": "host",
    "APIV2_BASE_PATH": "base_path",
}


class DocumentSettings(BaseModel):
    """Top-level fields of the generated document."""

    title: str = "API"
    version: str = "0.1.0"
    description: str | None = None
    host: str | None = None
    base_path: str = "/"
    schemes: list[str] = ["http"]
    consumes: list[str] = ["application/json"]
    produces: list[str] = ["application/json"]


def load_settings(file_path: Path | None = None) -> DocumentSettings:
    """Load settings from ``file_path`` (YAML), then apply env overrides."""
    data: dict = {}
    if file_path is not None:
        try:
            loaded = yaml.safe_load(file_path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read settings from {file_path}: {e}") from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(f"Settings file {file_path} must contain a mapping")
        data.update(loaded or {})

    for env_name, field in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            data[field] = value

    try:
        return DocumentSettings(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e
