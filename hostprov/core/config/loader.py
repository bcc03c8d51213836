"""
Configuration loader — reads settings and request files into models.

Settings come from a YAML file whose keys mirror ``Settings``; every
key is optional and falls back to the Fulcrum defaults. Request files
carry the raw provisioning fields, either flat or under ``request:``,
and go through the validator like interactive input does.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from hostprov.core.errors import ConfigError
from hostprov.core.models.settings import Settings

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "HOSTPROV_CONFIG"
SYSTEM_CONFIG_FILE = Path("/etc/hostprov/hostprov.yml")


def find_settings_file(explicit: Path | None = None) -> Path | None:
    """Locate the settings file.

    Order: explicit path, ``HOSTPROV_CONFIG``, the system-wide file.
    An explicit path is returned even if it does not exist so the
    caller reports it.
    """
    if explicit is not None:
        return explicit
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    if SYSTEM_CONFIG_FILE.is_file():
        return SYSTEM_CONFIG_FILE
    return None


def _read_mapping(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def load_settings(path: Path | None = None) -> Settings:
    """Load engine settings.

    Args:
        path: Explicit settings file. If None, the lookup order of
            ``find_settings_file`` applies; no file means defaults.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    path = find_settings_file(path)
    if path is None:
        logger.debug("No settings file — using defaults")
        return Settings()

    data = _read_mapping(path)
    try:
        settings = Settings.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    logger.info("Loaded settings from %s", path)
    return settings


def load_request_file(path: Path) -> dict[str, Any]:
    """Read raw request fields from a YAML file (not yet validated)."""
    data = _read_mapping(path)
    fields = data.get("request", data) if "request" in data else data
    if not isinstance(fields, dict):
        raise ConfigError(f"'request' in {path} must be a mapping")
    return fields
