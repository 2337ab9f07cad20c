"""
Diff use case — compare the declared packages against an org.

Read-only: loads config, queries the org, and reports which
declared packages are missing or older there.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from pkgsync.adapters.base import PackageTool
from pkgsync.core.config.loader import load_config, resolve_config_path
from pkgsync.core.config.settings import Settings
from pkgsync.core.domain.diff import compare_packages_with_config
from pkgsync.core.domain.planner import select_packages
from pkgsync.core.errors import PackageSyncError
from pkgsync.core.models.package import Mismatch
from pkgsync.core.services.org_packages import fetch_org_packages

logger = logging.getLogger(__name__)


@dataclass
class DiffResult:
    """Result of comparing configuration with an org."""

    org: str = ""
    config_path: Path | None = None
    declared_count: int = 0
    mismatches: list[Mismatch] = field(default_factory=list)
    error: str | None = None

    @property
    def in_sync(self) -> bool:
        return self.error is None and not self.mismatches

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "org": self.org,
            "config_path": str(self.config_path),
            "declared": self.declared_count,
            "in_sync": self.in_sync,
            "mismatches": [m.to_dict() for m in self.mismatches],
        }


def diff_org(
    org: str,
    tool: PackageTool,
    config_path: Path | None = None,
    namespaces: list[str] | None = None,
    settings: Settings | None = None,
) -> DiffResult:
    """Compare configuration with what ``org`` has installed.

    Args:
        org: Target org username or alias.
        tool: Package tool binding.
        config_path: Explicit config path (default: auto-detect).
        namespaces: Optional subset of declared namespaces to compare.
        settings: Where to look for the config by default.

    Returns:
        DiffResult; ``error`` is set on configuration or tool failure.
    """
    settings = settings or Settings()
    result = DiffResult(org=org)

    try:
        result.config_path = resolve_config_path(config_path, settings.config_file)
        declared = load_config(result.config_path)
        if namespaces:
            declared = select_packages(declared, namespaces)
        result.declared_count = len(declared)

        observed = fetch_org_packages(tool, org)
        result.mismatches = compare_packages_with_config(org, declared, observed)
    except (PackageSyncError, ValueError) as e:
        result.error = str(e)

    return result
