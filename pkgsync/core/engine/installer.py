"""
Installer — the package install loop.

Two paths:

    install_in_order    one attempt per package, first failure propagates
    install_with_retry  rounds of attempts over the pending list, bounded,
                        failures summarized instead of raised

Both only ever talk to the package tool through ``install_package``.

Flow (retry path):
    plan → round 1 → drop successes → wait → round 2 → ... → report
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from pkgsync.adapters.base import PackageTool
from pkgsync.core.domain.dag import DependencyGraph, transitive_dependencies
from pkgsync.core.errors import ExternalToolError, ExternalToolStatusError, InstallationFailed
from pkgsync.core.models.package import PackageRecord, SecurityType, normalize_security_type
from pkgsync.core.models.receipt import Receipt, now_iso
from pkgsync.core.observability.logging_config import register_secret

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 3
DEFAULT_RETRY_DELAY = 5.0


@dataclass
class InstallReport:
    """Result of installing a plan."""

    org: str = ""
    rounds: int = 0
    receipts: list[Receipt] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)

    @property
    def installed(self) -> list[str]:
        return [r.namespace for r in self.receipts if r.ok]

    @property
    def failed(self) -> list[str]:
        """Namespaces still not installed when the loop gave up."""
        return list(self.pending)

    @property
    def total(self) -> int:
        return len(self.installed) + len(self.pending)

    @property
    def all_ok(self) -> bool:
        return not self.pending

    @property
    def status(self) -> str:
        if not self.pending:
            return "ok"
        if self.installed:
            return "partial"
        return "failed"

    def last_error(self, namespace: str) -> str:
        """Most recent failure reason recorded for ``namespace``."""
        for receipt in reversed(self.receipts):
            if receipt.namespace == namespace and not receipt.ok:
                return receipt.error or receipt.output
        return ""

    def to_dict(self) -> dict:
        return {
            "org": self.org,
            "status": self.status,
            "rounds": self.rounds,
            "installed": self.installed,
            "failed": [
                {"namespace": ns, "error": self.last_error(ns)} for ns in self.pending
            ],
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


def install_package(
    tool: PackageTool,
    org: str,
    package_id: str,
    install_key: str = "",
    security_type: SecurityType | str = SecurityType.ADMINS_ONLY,
) -> dict:
    """Install one package version.

    An invalid security type is replaced by AdminsOnly with a warning.

    Returns:
        The tool's response.

    Raises:
        InstallationFailed: On any tool failure, with the tool's
            message when it gave one.
    """
    coerced = normalize_security_type(security_type, package_id)
    register_secret(install_key)
    logger.info("Installing %s in %s (%s)", package_id, org, coerced.value)

    try:
        return tool.install(org, package_id, install_key, coerced.value)
    except ExternalToolStatusError as e:
        raise InstallationFailed(package_id, e.message) from e
    except ExternalToolError as e:
        raise InstallationFailed(package_id, str(e)) from e


def _dry_run_receipt(record: PackageRecord) -> Receipt:
    return Receipt.skip(
        record.namespace,
        "dry run",
        package_id=record.package_id,
        version=record.version,
        round=0,
    )


def _attempt(tool: PackageTool, org: str, record: PackageRecord, round_no: int) -> Receipt:
    """Install ``record`` and turn the outcome into a receipt."""
    start = time.monotonic()
    common = {
        "started_at": now_iso(),
        "package_id": record.package_id,
        "version": record.version,
        "round": round_no,
    }
    try:
        install_package(tool, org, record.package_id, record.install_key, record.security_type)
    except InstallationFailed as e:
        elapsed_ms = int((time.monotonic() - start) * 1000)
        return Receipt.failure(record.namespace, e.reason, duration_ms=elapsed_ms, **common)

    elapsed_ms = int((time.monotonic() - start) * 1000)
    return Receipt.success(
        record.namespace,
        output=f"{record.namespace} {record.version} installed",
        duration_ms=elapsed_ms,
        **common,
    )


def install_in_order(
    tool: PackageTool,
    org: str,
    records: Iterable[PackageRecord],
    dry_run: bool = False,
    report: InstallReport | None = None,
) -> InstallReport:
    """Install each record once, in the given order.

    Args:
        report: Report to fill in as installs complete, so progress
            survives an exception.

    Raises:
        InstallationFailed: On the first failing package.
    """
    if report is None:
        report = InstallReport(org=org)
    report.rounds = 0 if dry_run else 1

    for record in records:
        if dry_run:
            report.receipts.append(_dry_run_receipt(record))
            continue

        receipt = _attempt(tool, org, record, round_no=1)
        report.receipts.append(receipt)
        if receipt.failed:
            report.pending.append(record.namespace)
            raise InstallationFailed(record.package_id, receipt.error or "")

    return report


def install_with_retry(
    tool: PackageTool,
    org: str,
    records: Iterable[PackageRecord],
    graph: DependencyGraph | None = None,
    max_rounds: int = DEFAULT_MAX_ROUNDS,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    dry_run: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> InstallReport:
    """Install a plan, retrying failures in bounded rounds.

    Each round attempts every pending record once, in plan order.
    Successes leave the pending list. A record whose dependency failed
    earlier in the same round is not attempted that round and stays
    pending. Between rounds the thread sleeps ``retry_delay`` seconds.

    Never raises for install failures: whatever is still pending after
    ``max_rounds`` ends up in ``report.pending``.

    Args:
        graph: Dependency graph of the full declared collection, used
            to hold back dependents of a failed package.
        sleep: Delay function (injectable for tests).
    """
    report = InstallReport(org=org)
    pending = list(records)

    if dry_run:
        for record in pending:
            report.receipts.append(_dry_run_receipt(record))
        return report

    while pending and report.rounds < max_rounds:
        report.rounds += 1
        if report.rounds > 1:
            logger.warning(
                "Retrying %d package(s) in %.0fs (round %d/%d)",
                len(pending),
                retry_delay,
                report.rounds,
                max_rounds,
            )
            sleep(retry_delay)

        failed_now: set[str] = set()
        still_pending: list[PackageRecord] = []

        for record in pending:
            deps = transitive_dependencies(graph, record.namespace) if graph else set()
            blockers = sorted(deps & failed_now)
            if blockers:
                receipt = Receipt.skip(
                    record.namespace,
                    f"blocked by failed dependency: {', '.join(blockers)}",
                    package_id=record.package_id,
                    version=record.version,
                    round=report.rounds,
                )
            else:
                receipt = _attempt(tool, org, record, report.rounds)

            report.receipts.append(receipt)
            if receipt.ok:
                logger.info("%s installed (round %d)", record.namespace, report.rounds)
                continue

            logger.warning(
                "%s not installed (round %d): %s",
                record.namespace,
                report.rounds,
                receipt.error or receipt.output,
            )
            failed_now.add(record.namespace)
            still_pending.append(record)

        pending = still_pending

    report.pending = [r.namespace for r in pending]
    if report.pending:
        logger.error(
            "Failed to install after %d round(s): %s",
            report.rounds,
            ", ".join(report.pending),
        )
    return report
