"""
Org package snapshot — what is actually installed in an org.

Queries the package tool and turns each entry into a PackageRecord.
Malformed entries (null, missing fields, bad version) are skipped
with a warning; the rest of the snapshot is still usable. Tool
failures propagate.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pkgsync.adapters.base import PackageTool
from pkgsync.core.errors import ExternalToolProtocolError, InvalidVersionFormat
from pkgsync.core.models.package import PackageRecord

logger = logging.getLogger(__name__)


def fetch_org_packages(
    tool: PackageTool,
    org: str,
    namespaces: Iterable[str] | None = None,
) -> list[PackageRecord]:
    """Query ``org`` and return its installed managed packages.

    Args:
        tool: Package tool binding.
        org: Org username or alias.
        namespaces: Optional filter; only these namespaces are kept.

    Returns:
        Observed records in the order the tool reported them.

    Raises:
        ValueError: If ``org`` is empty.
        ExternalToolError: If the query itself fails.
    """
    if not org:
        raise ValueError("Org must not be empty")

    wanted = set(namespaces) if namespaces else None
    items = tool.list_installed(org)

    records: list[PackageRecord] = []
    seen: set[str] = set()

    for position, item in enumerate(items):
        if item is None:
            logger.warning("Skipping null installed package entry #%d from %s", position, org)
            continue
        try:
            record = PackageRecord.from_org_snapshot(item)
        except (ExternalToolProtocolError, InvalidVersionFormat) as e:
            logger.warning("Skipping installed package entry #%d from %s: %s", position, org, e)
            continue

        if wanted is not None and record.namespace not in wanted:
            continue
        if record.namespace in seen:
            logger.warning("Duplicate namespace '%s' in %s — keeping the first", record.namespace, org)
            continue

        seen.add(record.namespace)
        records.append(record)

    logger.info("Found %d managed package(s) in %s", len(records), org)
    return records
