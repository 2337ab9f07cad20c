"""
Installed-package metadata — recover install settings from source.

SFDX projects may keep one ``InstalledPackage`` metadata file per
namespace, e.g. ``installedPackages/acme.installedPackage-meta.xml``.
When sync adds a package seen in an org, these files are the only
place its installation key and security type can come from.
Any problem reading them degrades to "no key, AdminsOnly".
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from pkgsync.core.models.package import SecurityType, normalize_security_type

logger = logging.getLogger(__name__)

_SUFFIXES = (".installedPackage-meta.xml", ".installedPackage")


def metadata_path(metadata_dir: Path, namespace: str) -> Path | None:
    """The metadata file for ``namespace``, if one exists."""
    for suffix in _SUFFIXES:
        candidate = metadata_dir / f"{namespace}{suffix}"
        if candidate.is_file():
            return candidate
    return None


def _local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on tags."""
    return tag.rsplit("}", 1)[-1]


def read_install_settings(
    metadata_dir: Path | None,
    namespace: str,
) -> tuple[str, SecurityType]:
    """Installation key and security type recorded for ``namespace``.

    Returns:
        ``(install_key, security_type)``; ``("", AdminsOnly)`` when the
        file is absent or unreadable.
    """
    default = ("", SecurityType.ADMINS_ONLY)
    if metadata_dir is None:
        return default
    if not metadata_dir.is_dir():
        logger.warning(
            "Installed-package metadata directory %s not found — no key for '%s'",
            metadata_dir,
            namespace,
        )
        return default

    path = metadata_path(metadata_dir, namespace)
    if path is None:
        logger.warning("No installed-package metadata for '%s' in %s", namespace, metadata_dir)
        return default

    try:
        root = ET.parse(path).getroot()
    except (ET.ParseError, OSError) as e:
        logger.warning("Cannot parse %s: %s", path, e)
        return default

    fields = {
        _local_name(el.tag): (el.text or "").strip()
        for el in root
    }
    install_key = fields.get("password", "")
    security_type = normalize_security_type(fields.get("securityType"), namespace)
    logger.debug("Recovered install settings for '%s' from %s", namespace, path.name)
    return install_key, security_type
