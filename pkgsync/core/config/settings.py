"""
Tool settings — optional ``pkgsync.yml`` next to the project.

Everything has a default, so the file is only needed to point at a
different ``sf`` binary, change the install wait bound, or tune the
retry loop. Example::

    sf_bin: /opt/sf/bin/sf
    install_wait_minutes: 20
    retry_rounds: 3
    retry_delay_seconds: 5
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from pkgsync.core.config.loader import CONFIG_FILE, find_config_file
from pkgsync.core.errors import ConfigError

logger = logging.getLogger(__name__)

SETTINGS_FILE = "pkgsync.yml"


class Settings(BaseModel):
    """Runtime knobs for the tool binding and the installer."""

    sf_bin: str = "sf"
    install_wait_minutes: int = Field(default=10, ge=1)
    retry_rounds: int = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=5.0, ge=0)
    metadata_dir: str = "force-app/main/default/installedPackages"
    config_file: str = CONFIG_FILE


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from YAML, falling back to defaults.

    Args:
        path: Explicit settings file. If None, searches upward for
            ``pkgsync.yml``; no file means defaults.

    Raises:
        ConfigError: If the file exists but is invalid.
    """
    if path is None:
        path = find_config_file(relative=SETTINGS_FILE)

    data: dict = {}
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Settings file not found: {path}")
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Invalid settings file {path}: {e}") from e
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(
                f"Expected a YAML mapping in {path}, got {type(loaded).__name__}"
            )
        data = loaded
        logger.debug("Loaded settings from %s", path)

    env_bin = os.environ.get("PKGSYNC_SF_BIN")
    if env_bin:
        data = {**data, "sf_bin": env_bin}

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e
