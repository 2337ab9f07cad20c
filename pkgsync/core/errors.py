"""
Error kinds — every failure the sync/install flow can raise.

Configuration errors are fatal: they describe an invalid declared
state that retrying cannot fix. Tool errors come from the ``sf``
subprocess and are captured by the retry loop on the reconciliation
path, propagated everywhere else.
"""

from __future__ import annotations


class PackageSyncError(Exception):
    """Base class for all pkgsync errors."""


# ── Configuration ───────────────────────────────────────────────


class ConfigError(PackageSyncError):
    """Raised when package configuration is invalid or missing."""


class ConfigurationNotFound(ConfigError):
    """The package configuration file does not exist."""

    def __init__(self, path: object) -> None:
        self.path = path
        super().__init__(f"Config file not found: {path}")


class InvalidVersionFormat(ConfigError, ValueError):
    """A version string is not four dot-separated integers."""

    def __init__(self, version: str, reason: str = "") -> None:
        self.version = version
        detail = f" ({reason})" if reason else ""
        super().__init__(
            f"Invalid version format '{version}': expected major.minor.patch.build{detail}"
        )


class UndefinedDependency(ConfigError):
    """A package depends on a namespace absent from the collection."""

    def __init__(self, namespace: str, missing: str) -> None:
        self.namespace = namespace
        self.missing = missing
        super().__init__(
            f"Package '{namespace}' depends on '{missing}', "
            "which is not defined in the configuration"
        )


class CircularDependency(ConfigError):
    """The dependency graph contains a cycle through ``namespace``."""

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace
        super().__init__(f"Circular dependency detected at package '{namespace}'")


class PackageNotFound(ConfigError):
    """A requested namespace is not present in the configuration."""

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace
        super().__init__(f"Package '{namespace}' not found in configuration")


# ── External tool ───────────────────────────────────────────────


class ExternalToolError(PackageSyncError):
    """The external package tool could not be invoked."""


class ExternalToolProtocolError(ExternalToolError):
    """The tool's response was not parseable or missed expected fields."""


class ExternalToolStatusError(ExternalToolError):
    """The tool reported a non-zero status."""

    def __init__(self, status: int, message: str = "") -> None:
        self.status = status
        self.message = message
        super().__init__(message or f"Command returned status {status}")


# ── Installation ────────────────────────────────────────────────


class InstallationFailed(PackageSyncError):
    """Installing one package version failed."""

    def __init__(self, package_id: str, reason: str = "") -> None:
        self.package_id = package_id
        self.reason = reason or "Unknown installation error"
        super().__init__(f"Installation of {package_id} failed: {self.reason}")
