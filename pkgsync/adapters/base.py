"""
Adapter base — the contract between the sync core and the package tool.

The core never shells out directly. Everything it needs from the
outside world (list what an org has installed, install a package
version) goes through this interface, so tests can swap in
:class:`~pkgsync.adapters.mock.MockPackageTool`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class PackageTool(ABC):
    """Abstract base class for package-management tool bindings.

    Unlike fire-and-forget adapters, tool methods raise
    :class:`~pkgsync.core.errors.ExternalToolError` subclasses on
    failure. Callers decide whether to retry, skip, or abort.

    To create a new binding:
        1. Subclass PackageTool
        2. Implement name, is_available, list_installed, install
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The binding identifier (e.g., 'sf', 'mock')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the underlying tool can be invoked.

        Should be fast and never raise.
        """

    @abstractmethod
    def list_installed(self, org: str) -> list[Any]:
        """Return the raw installed-package entries for ``org``.

        Each entry is expected to be a mapping carrying the
        ``SubscriberPackage*`` fields. Entries are returned unvalidated.
        """

    @abstractmethod
    def install(
        self,
        org: str,
        package_id: str,
        install_key: str = "",
        security_type: str = "AdminsOnly",
    ) -> dict[str, Any]:
        """Install one package version into ``org``.

        Returns the tool's parsed response on success.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
