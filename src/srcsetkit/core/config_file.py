"""
Load project settings from a YAML file (e.g. srcset.yaml).

The file is optional. When present it is validated with a pydantic schema and
layered between the built-in defaults and the environment:

    defaults < YAML file < SRCSETKIT_* environment < explicit arguments

Example::

    widths: [320, 640, 1280]
    format: avif
    quality: 70
    converter: /usr/local/bin/magick
"""

import os
from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import BaseModel, Field, PositiveInt, ValidationError

from srcsetkit.core.config import Config, normalize_extensions
from srcsetkit.logging_config import get_logger
from srcsetkit.utils.exceptions import ConfigurationError

logger = get_logger(__name__)

CONFIG_ENV_VAR = "SRCSETKIT_CONFIG"


class ConfigFileSchema(BaseModel):
    """Schema for the YAML settings file. Unknown keys are rejected."""

    model_config = {"extra": "forbid"}

    widths: Annotated[list[PositiveInt], Field(min_length=1)] | None = None
    format: Annotated[str, Field(pattern=r"^[A-Za-z0-9]+$")] | None = None
    quality: Annotated[int, Field(ge=1, le=100)] | None = None
    converter: Annotated[str, Field(min_length=1)] | None = None
    timeout: PositiveInt | None = None
    workers: PositiveInt | None = None
    extensions: Annotated[list[str], Field(min_length=1)] | None = None
    verify_sources: bool | None = None


def read_config_file(path: str | Path) -> dict[str, Any]:
    """
    Read and validate a YAML settings file.

    Args:
        path: Path to the YAML file

    Returns:
        Dictionary of the keys present in the file (absent keys omitted)

    Raises:
        ConfigurationError: If the file is missing, malformed, or fails validation
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {path}") from e
    except OSError as e:
        raise ConfigurationError(f"Could not read config file {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse {path}: {e}. Check YAML syntax and formatting."
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping of settings.")

    try:
        parsed = ConfigFileSchema(**data)
    except ValidationError as e:
        errors = "\n".join(
            f"  - {'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid settings in {path}:\n{errors}") from e

    values = parsed.model_dump(exclude_none=True)
    if "widths" in values:
        values["widths"] = tuple(values["widths"])
    if "extensions" in values:
        values["extensions"] = normalize_extensions(values["extensions"])
    logger.debug("Loaded settings from %s: %s", path, sorted(values))
    return values


def load_config(path: str | Path | None = None) -> Config:
    """
    Build a Config from defaults, an optional YAML file and the environment.

    Args:
        path: YAML settings file; defaults to $SRCSETKIT_CONFIG when unset

    Returns:
        Config (not yet validated)
    """
    if path is None:
        path = os.getenv(CONFIG_ENV_VAR) or None
    base = Config(**read_config_file(path)) if path is not None else Config()
    return Config.from_env(base=base)


__all__ = ["CONFIG_ENV_VAR", "ConfigFileSchema", "load_config", "read_config_file"]
