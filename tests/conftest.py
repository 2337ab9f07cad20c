"""
Shared test fixtures and configuration.
"""

import json
import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from pkgsync.adapters.mock import MockPackageTool, snapshot_item
from pkgsync.core.models.package import PackageRecord, SecurityType


@pytest.fixture
def make_record() -> Callable[..., PackageRecord]:
    """Factory for declared records with sensible ids."""

    def _make(
        namespace: str,
        version: str = "1.0.0.0",
        depends: tuple[str, ...] = (),
        install_key: str = "",
        security_type: SecurityType = SecurityType.ADMINS_ONLY,
    ) -> PackageRecord:
        return PackageRecord(
            namespace=namespace,
            version=version,
            package_id=f"04t{namespace}{version}",
            install_key=install_key,
            security_type=security_type,
            depends_on_packages=tuple(depends),
        )

    return _make


@pytest.fixture
def make_observed() -> Callable[..., PackageRecord]:
    """Factory for records as they come back from an org."""

    def _make(namespace: str, version: str = "1.0.0.0") -> PackageRecord:
        return PackageRecord.from_org_snapshot(snapshot_item(namespace, version))

    return _make


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    """Write a package config JSON and return its path."""

    def _write(packages: list[dict], path: Path | None = None) -> Path:
        target = path or tmp_path / "config" / "packages.json"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps({"packages": packages}, indent=2))
        return target

    return _write


@pytest.fixture
def entry() -> Callable[..., dict]:
    """Factory for one config entry dict."""

    def _entry(
        namespace: str,
        version: str = "1.0.0.0",
        depends: list[str] | None = None,
        password: str = "",
        security_type: str = "AdminsOnly",
    ) -> dict:
        data = {
            "namespace": namespace,
            "packageId": f"04t{namespace}{version}",
            "version": version,
            "password": password,
            "securityType": security_type,
        }
        if depends is not None:
            data["dependsOnPackages"] = depends
        return data

    return _entry


@pytest.fixture
def mock_tool() -> MockPackageTool:
    """Empty mock package tool."""
    return MockPackageTool()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """CLI tests call setup_logging; put the root logger back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
