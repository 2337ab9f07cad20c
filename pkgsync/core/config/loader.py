"""
Configuration loader — reads the package config JSON into records.

This is the primary entry point for loading the declared package
list. It reads JSON, validates against Pydantic schemas, checks the
dependency graph, and returns PackageRecords in dependency order.

The raw document helpers (``load_config_document`` /
``save_config_document``) are used by the synchronizer, which edits
the file in place and must keep keys it does not understand.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from pkgsync.core.domain.dag import resolve_load_order
from pkgsync.core.errors import ConfigError, ConfigurationNotFound
from pkgsync.core.models.package import PackageConfig, PackageRecord

logger = logging.getLogger(__name__)

# Default config location, relative to the project root
CONFIG_FILE = "config/packages.json"


def find_config_file(start_dir: Path | None = None, relative: str = CONFIG_FILE) -> Path | None:
    """Search for the config file starting from the given directory, walking up.

    This allows running commands from subdirectories of an SFDX
    project and still finding its config.

    Args:
        start_dir: Directory to start searching from (default: cwd).
        relative: Config path relative to a project root.

    Returns:
        Path to the config file, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / relative
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def resolve_config_path(path: Path | None = None, relative: str = CONFIG_FILE) -> Path:
    """Explicit path, or the auto-detected one.

    Raises:
        ConfigurationNotFound: If nothing is given and nothing is found.
    """
    if path is not None:
        return path
    found = find_config_file(relative=relative)
    if found is None:
        raise ConfigurationNotFound(relative)
    return found


def load_config_document(path: Path, missing_ok: bool = False) -> dict[str, Any]:
    """Read the raw config JSON object.

    Args:
        path: Config file path.
        missing_ok: Return an empty package list instead of raising
            when the file does not exist.

    Raises:
        ConfigurationNotFound: If the file is missing and not ``missing_ok``.
        ConfigError: If the file is unreadable or not a valid document.
    """
    if not path.is_file():
        if missing_ok:
            logger.info("No config file at %s — starting with an empty package list", path)
            return {"packages": []}
        raise ConfigurationNotFound(path)

    logger.debug("Loading package config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a JSON object in {path}, got {type(data).__name__}")

    packages = data.setdefault("packages", [])
    if not isinstance(packages, list):
        raise ConfigError(f"'packages' in {path} must be an array")

    return data


def project_root(config_path: Path, relative: str = CONFIG_FILE) -> Path:
    """Get the project root directory from a config file path.

    ``config/packages.json`` sits two levels below the root; a config
    stored anywhere else is taken to live in the root itself.
    """
    config_path = config_path.resolve()
    depth = len(Path(relative).parts)
    if config_path.parts[-depth:] == Path(relative).parts:
        return config_path.parents[depth - 1]
    return config_path.parent


def validate_config_document(document: dict[str, Any], path: Path) -> PackageConfig:
    """Validate a raw config document against the schema.

    Raises:
        ConfigError: If an entry is malformed (e.g. a missing or
            non-string namespace).
    """
    try:
        return PackageConfig.model_validate(document)
    except ValidationError as e:
        raise ConfigError(f"Invalid package configuration in {path}: {e}") from e


def load_config(path: Path) -> list[PackageRecord]:
    """Load and validate the declared packages.

    Args:
        path: Config file path.

    Returns:
        Declared records, dependencies before dependents.

    Raises:
        ConfigurationNotFound: If the file is missing.
        ConfigError: If the document is invalid; this includes
            InvalidVersionFormat, UndefinedDependency and
            CircularDependency.
    """
    config = validate_config_document(load_config_document(path), path)
    records = [PackageRecord.from_config(entry) for entry in config.packages]
    ordered = resolve_load_order(records)

    logger.info("Loaded %d package(s) from %s", len(ordered), path)
    return ordered


def save_config_document(document: dict[str, Any], path: Path) -> None:
    """Write the config JSON (atomic write).

    Uses write-to-temp-then-rename so a crash never leaves a
    half-written config behind. No locking: concurrent writers
    must be serialized by the caller.
    """
    content = json.dumps(document, indent=2, ensure_ascii=False) + "\n"

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        _fd, tmp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=".packages_",
            suffix=".tmp",
        )
        tmp = Path(tmp_path)
        try:
            with open(_fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            tmp.replace(path)
            logger.debug("Config saved to %s", path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)
        raise ConfigError(f"Cannot write {path}: {e}") from e
