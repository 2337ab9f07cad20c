"""
L1 Domain — Declared vs. installed package diff (pure).

The declared list drives the comparison: packages installed in the
org but absent from configuration are never reported.
No I/O, no subprocess.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pkgsync.core.models.package import Mismatch, PackageRecord

logger = logging.getLogger(__name__)


def compare_packages_with_config(
    org: str,
    declared: Iterable[PackageRecord],
    observed: Iterable[PackageRecord],
) -> list[Mismatch]:
    """List declared packages that are missing from, or older in, ``org``.

    Args:
        org: Target org username or alias (used for logging only).
        declared: Records loaded from configuration.
        observed: Records queried from the org.

    Returns:
        Mismatches in declared order. Empty means fully synchronized.

    Raises:
        ValueError: If ``org`` is empty.
    """
    if not org:
        raise ValueError("Target org must not be empty")

    installed = {record.namespace: record for record in observed}
    mismatches: list[Mismatch] = []

    for record in declared:
        current = installed.get(record.namespace)
        if current is None:
            logger.debug("%s: not installed in %s", record.namespace, org)
            mismatches.append(Mismatch(record.namespace, declared=record))
        elif record.parsed_version > current.parsed_version:
            logger.debug(
                "%s: %s installed in %s, %s declared",
                record.namespace,
                current.version,
                org,
                record.version,
            )
            mismatches.append(Mismatch(record.namespace, declared=record, observed=current))

    logger.info("%d declared package(s) out of date in %s", len(mismatches), org)
    return mismatches
