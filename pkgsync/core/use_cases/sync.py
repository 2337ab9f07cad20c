"""
Sync use case — pull installed package versions from an org into config.

The org is the source of truth for ``version`` and ``packageId``.
Everything else in an existing entry (installation key, security
type, dependencies, unknown keys) is left exactly as it was.
Packages installed in the org but missing from config are appended.

The config file is read, edited and written back without locking.
Do not run two syncs against the same file at once.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pkgsync.adapters.base import PackageTool
from pkgsync.core.config.loader import (
    CONFIG_FILE,
    find_config_file,
    load_config_document,
    save_config_document,
    validate_config_document,
)
from pkgsync.core.errors import PackageSyncError
from pkgsync.core.models.package import PackageRecord
from pkgsync.core.services.installed_metadata import read_install_settings
from pkgsync.core.services.org_packages import fetch_org_packages

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Result of syncing configuration from an org."""

    org: str = ""
    config_path: Path | None = None
    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    not_installed: list[str] = field(default_factory=list)
    written: bool = False
    dry_run: bool = False
    cancelled: bool = False
    error: str | None = None

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated)

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "org": self.org,
            "config_path": str(self.config_path),
            "added": self.added,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "not_installed": self.not_installed,
            "written": self.written,
            "dry_run": self.dry_run,
            "cancelled": self.cancelled,
        }


def _new_entry(record: PackageRecord, metadata_dir: Path | None) -> dict[str, Any]:
    install_key, security_type = read_install_settings(metadata_dir, record.namespace)
    return {
        "namespace": record.namespace,
        "packageId": record.package_version_id,
        "version": record.version,
        "password": install_key,
        "securityType": security_type.value,
        "dependsOnPackages": [],
    }


def update_config_from_org(
    source_org: str,
    tool: PackageTool,
    config_path: Path | None = None,
    namespaces: list[str] | None = None,
    metadata_dir: Path | None = None,
    dry_run: bool = False,
    confirm: Callable[[SyncResult], bool] | None = None,
) -> SyncResult:
    """Update config versions from what ``source_org`` has installed.

    Args:
        source_org: Org username or alias to read from.
        tool: Package tool binding.
        config_path: Config file (default: auto-detect, or
            ``config/packages.json`` under the cwd if none exists yet).
        namespaces: Only sync these namespaces; other entries are
            left untouched.
        metadata_dir: Directory of InstalledPackage metadata files,
            consulted for the key and security type of new entries.
        dry_run: Compute the changes without writing.
        confirm: Called with the computed changes before writing;
            returning False cancels the write.

    Returns:
        SyncResult; ``error`` is set on configuration or tool failure.
    """
    result = SyncResult(org=source_org, dry_run=dry_run)

    if config_path is None:
        config_path = find_config_file() or Path.cwd() / CONFIG_FILE
    result.config_path = config_path

    try:
        document = load_config_document(config_path, missing_ok=True)
        validate_config_document(document, config_path)
        observed = fetch_org_packages(tool, source_org, namespaces)
    except (PackageSyncError, ValueError) as e:
        result.error = str(e)
        return result

    if namespaces:
        found = {record.namespace for record in observed}
        result.not_installed = [ns for ns in dict.fromkeys(namespaces) if ns not in found]
        for ns in result.not_installed:
            logger.warning("'%s' is not installed in %s — left unchanged", ns, source_org)

    entries: list[Any] = document["packages"]
    by_namespace = {
        entry.get("namespace"): entry for entry in entries if isinstance(entry, dict)
    }

    for record in observed:
        entry = by_namespace.get(record.namespace)
        if entry is None:
            entry = _new_entry(record, metadata_dir)
            entries.append(entry)
            by_namespace[record.namespace] = entry
            result.added.append(record.namespace)
            logger.info("Adding %s %s", record.namespace, record.version)
            continue

        if (
            entry.get("version") == record.version
            and entry.get("packageId") == record.package_version_id
        ):
            result.unchanged.append(record.namespace)
            continue

        logger.info(
            "Updating %s %s → %s",
            record.namespace,
            entry.get("version", "?"),
            record.version,
        )
        entry["version"] = record.version
        entry["packageId"] = record.package_version_id
        result.updated.append(record.namespace)

    if dry_run:
        return result

    if confirm is not None and result.changed and not confirm(result):
        result.cancelled = True
        return result

    if result.changed or not config_path.is_file():
        try:
            save_config_document(document, config_path)
        except PackageSyncError as e:
            result.error = str(e)
            return result
        result.written = True

    return result
