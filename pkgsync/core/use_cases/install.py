"""
Install use case — bring an org up to the declared package versions.

This is the top-level orchestrator: it loads config, queries the
org, diffs, plans a dependency-respecting install order, installs
with bounded retry, and reports what is still missing.

With an explicit namespace list the diff and the planner are
bypassed: exactly those packages are installed, in the given order,
and the first failure stops the run.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from pkgsync.adapters.base import PackageTool
from pkgsync.core.config.loader import load_config, resolve_config_path
from pkgsync.core.config.settings import Settings
from pkgsync.core.domain.dag import build_dependency_graph
from pkgsync.core.domain.diff import compare_packages_with_config
from pkgsync.core.domain.planner import plan_installation, select_packages
from pkgsync.core.engine.installer import InstallReport, install_in_order, install_with_retry
from pkgsync.core.errors import PackageSyncError
from pkgsync.core.models.package import Mismatch, PackageRecord
from pkgsync.core.services.org_packages import fetch_org_packages

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    """Result of an install run."""

    org: str = ""
    config_path: Path | None = None
    namespaces: list[str] | None = None
    mismatches: list[Mismatch] = field(default_factory=list)
    plan: list[PackageRecord] = field(default_factory=list)
    report: InstallReport | None = None
    up_to_date: bool = False
    dry_run: bool = False
    cancelled: bool = False
    error: str | None = None

    @property
    def failed(self) -> list[str]:
        return self.report.failed if self.report else []

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            if self.report:
                result["report"] = self.report.to_dict()
            return result

        result["org"] = self.org
        result["config_path"] = str(self.config_path)
        result["up_to_date"] = self.up_to_date
        result["dry_run"] = self.dry_run
        result["cancelled"] = self.cancelled
        result["mismatches"] = [m.to_dict() for m in self.mismatches]
        result["plan"] = [
            {"namespace": r.namespace, "version": r.version, "package_id": r.package_id}
            for r in self.plan
        ]
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def install_packages_from_config(
    org: str,
    tool: PackageTool,
    config_path: Path | None = None,
    namespaces: list[str] | None = None,
    dry_run: bool = False,
    settings: Settings | None = None,
    confirm: Callable[[InstallResult], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> InstallResult:
    """Install or update the configured packages in ``org``.

    Args:
        org: Target org username or alias.
        tool: Package tool binding.
        config_path: Explicit config path (default: auto-detect).
        namespaces: Install exactly these packages, in this order,
            without diffing or dependency ordering.
        dry_run: Plan and report, but install nothing.
        settings: Retry bound and delay (defaults when None).
        confirm: Called with the planned result before installing;
            returning False cancels the run.
        sleep: Delay function between retry rounds.

    Returns:
        InstallResult. Fatal problems (bad config, tool unreachable,
        a failure on the explicit-namespace path) set ``error``.
        Packages still failing after all retry rounds are listed in
        ``report.pending`` without setting ``error``.
    """
    settings = settings or Settings()
    result = InstallResult(org=org, namespaces=namespaces, dry_run=dry_run)

    if not org:
        result.error = "Target org must not be empty"
        return result

    # ── Load declared packages ───────────────────────────────────
    try:
        result.config_path = resolve_config_path(config_path, settings.config_file)
        declared = load_config(result.config_path)
    except PackageSyncError as e:
        result.error = str(e)
        return result

    # ── Explicit subset: install as given ────────────────────────
    if namespaces:
        try:
            result.plan = select_packages(declared, namespaces)
        except PackageSyncError as e:
            result.error = str(e)
            return result

        if confirm is not None and not confirm(result):
            result.cancelled = True
            return result

        result.report = InstallReport(org=org)
        try:
            install_in_order(tool, org, result.plan, dry_run=dry_run, report=result.report)
        except PackageSyncError as e:
            result.error = str(e)
        return result

    # ── Full reconciliation ──────────────────────────────────────
    try:
        observed = fetch_org_packages(tool, org)
        result.mismatches = compare_packages_with_config(org, declared, observed)
        if not result.mismatches:
            logger.info("All packages up to date in %s", org)
            result.up_to_date = True
            return result

        graph = build_dependency_graph(declared)
        result.plan = plan_installation(declared, result.mismatches, graph)
    except PackageSyncError as e:
        result.error = str(e)
        return result

    logger.info(
        "Install plan for %s: %s",
        org,
        ", ".join(f"{r.namespace}@{r.version}" for r in result.plan),
    )

    if confirm is not None and not confirm(result):
        result.cancelled = True
        return result

    result.report = install_with_retry(
        tool,
        org,
        result.plan,
        graph=graph,
        max_rounds=settings.retry_rounds,
        retry_delay=settings.retry_delay_seconds,
        dry_run=dry_run,
        sleep=sleep,
    )
    return result
