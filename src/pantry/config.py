"""
Configuration management for pantry
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationException


class Settings(BaseSettings):
    """Pantry settings loaded from environment variables.

    Pantry's own options use the ``PANTRY_`` prefix. Cloud credentials keep
    the names their providers document (``AWS_*`` and ``DO_*``).
    """

    default_box: str = "local"
    storage_path: str = "storage/app/web"
    boxes_config_path: str | None = None
    debug: bool = False

    # Amazon S3 (or any S3-compatible endpoint)
    aws_access_key_id: str | None = Field(default=None, validation_alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str | None = Field(
        default=None, validation_alias="AWS_SECRET_ACCESS_KEY"
    )
    aws_default_region: str | None = Field(default=None, validation_alias="AWS_DEFAULT_REGION")
    aws_bucket: str | None = Field(default=None, validation_alias="AWS_BUCKET")
    aws_url: str | None = Field(default=None, validation_alias="AWS_URL")
    aws_default_visibility: bool = Field(default=False, validation_alias="AWS_DEFAULT_VISIBILITY")

    # DigitalOcean Spaces
    do_access_key_id: str | None = Field(default=None, validation_alias="DO_ACCESS_KEY_ID")
    do_secret_access_key: str | None = Field(default=None, validation_alias="DO_SECRET_ACCESS_KEY")
    do_default_region: str | None = Field(default=None, validation_alias="DO_DEFAULT_REGION")
    do_bucket: str | None = Field(default=None, validation_alias="DO_BUCKET")
    do_url: str | None = Field(default=None, validation_alias="DO_URL")
    do_default_visibility: bool = Field(default=False, validation_alias="DO_DEFAULT_VISIBILITY")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PANTRY_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )


# Global settings instance
settings = Settings()

_ENV_REFERENCE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass
class BoxDefinition:
    """A box declared in the boxes YAML file."""

    type: str
    config: dict[str, Any] = field(default_factory=dict)


@dataclass
class BoxesFile:
    default_box: str | None
    boxes: dict[str, BoxDefinition]


def expand_env(value: Any) -> Any:
    """Replace ``${VAR}`` references in string values with environment values.

    Raises:
        ConfigurationException: If a referenced variable is not set
    """
    if isinstance(value, str):
        return _ENV_REFERENCE.sub(_lookup_env, value)
    if isinstance(value, dict):
        return {k: expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env(v) for v in value]
    return value


def _lookup_env(match: re.Match[str]) -> str:
    name = match[1]
    if name not in os.environ:
        raise ConfigurationException(f"Environment variable '{name}' is not set")
    return os.environ[name]


def load_boxes_file(config_path: Path) -> BoxesFile:
    """Load box definitions from a YAML file.

    The file looks like::

        pantry:
          default_box: uploads
          boxes:
            uploads:
              type: s3
              config:
                access_key: ${AWS_ACCESS_KEY_ID}
                secret_key: ${AWS_SECRET_ACCESS_KEY}
                region: us-west-2
                bucket: my-uploads

    ``${VAR}`` references are left as written; they are expanded with
    :func:`expand_env` when the box is first built.

    Raises:
        ConfigurationException: If the file cannot be read or is malformed
    """
    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationException(f"Failed to load boxes config from {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationException(f"Boxes config {config_path} must be a mapping")

    section = data.get("pantry") or {}
    if not isinstance(section, dict):
        raise ConfigurationException(f"'pantry' section in {config_path} must be a mapping")

    nodes = section.get("boxes") or {}
    if not isinstance(nodes, dict):
        raise ConfigurationException(f"'boxes' in {config_path} must be a mapping")

    boxes: dict[str, BoxDefinition] = {}
    for name, node in nodes.items():
        if not isinstance(node, dict) or "type" not in node:
            raise ConfigurationException(f"Box '{name}' in {config_path} needs a 'type'")
        boxes[name] = BoxDefinition(type=node["type"], config=node.get("config") or {})

    return BoxesFile(default_box=section.get("default_box"), boxes=boxes)


def create_example_config() -> str:
    """Create an example boxes configuration YAML."""

    config = {
        "pantry": {
            "default_box": "local",
            "boxes": {
                "local": {
                    "type": "local",
                    "config": {"base_path": "storage/app/web"},
                },
                "avatars": {
                    "type": "s3",
                    "config": {
                        "access_key": "${AWS_ACCESS_KEY_ID}",
                        "secret_key": "${AWS_SECRET_ACCESS_KEY}",
                        "region": "us-west-2",
                        "bucket": "app-avatars",
                        "publicly_visible": True,
                    },
                },
                "media": {
                    "type": "spaces",
                    "config": {
                        "access_key": "${DO_ACCESS_KEY_ID}",
                        "secret_key": "${DO_SECRET_ACCESS_KEY}",
                        "region": "nyc3",
                        "bucket": "app-media",
                    },
                },
                "minio": {
                    "type": "s3",
                    "config": {
                        "access_key": "minioadmin",
                        "secret_key": "minioadmin",
                        "url": "localhost:9000/dev-bucket",
                        "use_ssl": False,
                    },
                },
            },
        }
    }

    return yaml.dump(config, default_flow_style=False, indent=2, sort_keys=False)
