"""
Package models — one value type for declared and observed packages.

A PackageRecord is built either from a configuration entry
(``from_config``) or from one element of the ``sf package installed
list`` response (``from_org_snapshot``). Both constructors validate
the version string, so every record in memory is comparable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pkgsync.core.domain.version import PackageVersion, parse_version
from pkgsync.core.errors import ExternalToolProtocolError

logger = logging.getLogger(__name__)


class SecurityType(str, Enum):
    """Access policy applied when a package is installed."""

    ADMINS_ONLY = "AdminsOnly"
    ALL_USERS = "AllUsers"


def normalize_security_type(value: Any, namespace: str = "") -> SecurityType:
    """Coerce a raw security type to the enum, defaulting to AdminsOnly.

    Empty values default silently; anything else unrecognised logs a
    warning. Never raises.
    """
    if isinstance(value, SecurityType):
        return value
    if value:
        for member in SecurityType:
            if value == member.value:
                return member
        logger.warning(
            "Invalid security type %r for %s — using %s",
            value,
            namespace or "package",
            SecurityType.ADMINS_ONLY.value,
        )
    return SecurityType.ADMINS_ONLY


class PackageEntry(BaseModel):
    """One element of the ``packages`` array in the config file."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    namespace: str = Field(min_length=1)
    package_id: str = Field(default="", alias="packageId")
    version: str
    password: str | None = ""
    security_type: str | None = Field(default="", alias="securityType")
    depends_on_packages: list[str] | None = Field(
        default_factory=list, alias="dependsOnPackages"
    )


class PackageConfig(BaseModel):
    """Root of the package configuration file."""

    model_config = ConfigDict(extra="allow")

    packages: list[PackageEntry] = Field(default_factory=list)


# Field names in the ``sf package installed list --json`` result
ORG_NAMESPACE = "SubscriberPackageNamespace"
ORG_VERSION_ID = "SubscriberPackageVersionId"
ORG_VERSION_NUMBER = "SubscriberPackageVersionNumber"
ORG_PACKAGE_NAME = "SubscriberPackageName"
ORG_REQUIRED_FIELDS = (ORG_NAMESPACE, ORG_VERSION_ID, ORG_VERSION_NUMBER)


class PackageRecord(BaseModel):
    """Identity, version and install settings of one managed package.

    Immutable. ``package_id`` is the installable package-version id as
    stored in configuration; ``package_version_id`` is only populated
    for records observed in an org.
    """

    model_config = ConfigDict(frozen=True)

    namespace: str
    version: str
    package_id: str = ""
    package_version_id: str = ""
    name: str = ""
    install_key: str = ""
    security_type: SecurityType = SecurityType.ADMINS_ONLY
    depends_on_packages: tuple[str, ...] = ()

    @property
    def parsed_version(self) -> PackageVersion:
        return parse_version(self.version)

    @classmethod
    def from_config(cls, entry: PackageEntry) -> PackageRecord:
        """Build a declared record from a config entry.

        Raises:
            InvalidVersionFormat: If ``entry.version`` is malformed.
        """
        version = parse_version(entry.version)
        return cls(
            namespace=entry.namespace,
            version=str(version),
            package_id=entry.package_id,
            install_key=entry.password or "",
            security_type=normalize_security_type(entry.security_type, entry.namespace),
            depends_on_packages=tuple(entry.depends_on_packages or ()),
        )

    @classmethod
    def from_org_snapshot(
        cls,
        item: dict[str, Any],
        install_key: str = "",
        security_type: SecurityType | str = SecurityType.ADMINS_ONLY,
    ) -> PackageRecord:
        """Build an observed record from one installed-package result.

        Raises:
            ExternalToolProtocolError: If ``item`` is not a mapping or a
                required field is missing or empty.
            InvalidVersionFormat: If the reported version is malformed.
        """
        if not isinstance(item, dict):
            raise ExternalToolProtocolError(
                f"Installed package entry is not an object: {item!r}"
            )

        missing = [key for key in ORG_REQUIRED_FIELDS if not item.get(key)]
        if missing:
            raise ExternalToolProtocolError(
                f"Installed package entry missing field(s): {', '.join(missing)}"
            )

        namespace = str(item[ORG_NAMESPACE])
        version = parse_version(str(item[ORG_VERSION_NUMBER]))
        version_id = str(item[ORG_VERSION_ID])
        return cls(
            namespace=namespace,
            version=str(version),
            package_id=version_id,
            package_version_id=version_id,
            name=str(item.get(ORG_PACKAGE_NAME) or ""),
            install_key=install_key,
            security_type=normalize_security_type(security_type, namespace),
        )


@dataclass(frozen=True)
class Mismatch:
    """A declared package that is missing from, or newer than, the org."""

    namespace: str
    declared: PackageRecord | None = None
    observed: PackageRecord | None = None

    @property
    def needs_update(self) -> bool:
        if self.declared is None:
            return False
        if self.observed is None:
            return True
        return self.declared.parsed_version > self.observed.parsed_version

    @property
    def resolved_version_id(self) -> str:
        """Version id the org should end up on."""
        if not self.needs_update and self.observed is not None:
            return self.observed.package_version_id
        return self.declared.package_id if self.declared else ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "namespace": self.namespace,
            "declared_version": self.declared.version if self.declared else None,
            "installed_version": self.observed.version if self.observed else None,
            "needs_update": self.needs_update,
            "package_id": self.resolved_version_id,
        }
