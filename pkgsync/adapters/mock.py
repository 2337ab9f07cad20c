"""
Mock package tool — in-memory stand-in for the ``sf`` CLI.

Keeps a per-org table of installed packages and a catalog of
installable package versions. Installs update the table, so a
diff after an install sees the new version. Failures can be
scripted per package id, optionally for a limited number of calls.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pkgsync.adapters.base import PackageTool
from pkgsync.core.errors import ExternalToolError, ExternalToolStatusError
from pkgsync.core.models.package import PackageRecord


def snapshot_item(
    namespace: str,
    version: str,
    version_id: str = "",
    name: str = "",
) -> dict[str, Any]:
    """One installed-package entry shaped like the ``sf`` response."""
    return {
        "Id": f"0A3{namespace}",
        "SubscriberPackageId": f"033{namespace}",
        "SubscriberPackageName": name or namespace,
        "SubscriberPackageNamespace": namespace,
        "SubscriberPackageVersionId": version_id or f"04t{namespace}{version}",
        "SubscriberPackageVersionName": version,
        "SubscriberPackageVersionNumber": version,
    }


class MockPackageTool(PackageTool):
    """Universal mock package tool for tests.

    Args:
        installed: ``{org: [raw entries]}`` initial org contents.
        catalog: Records installable by ``package_id``.
        available: What ``is_available`` reports.
    """

    def __init__(
        self,
        installed: dict[str, list[Any]] | None = None,
        catalog: Iterable[PackageRecord] = (),
        available: bool = True,
    ):
        self._installed: dict[str, list[Any]] = {
            org: list(items) for org, items in (installed or {}).items()
        }
        self._catalog = {record.package_id: record for record in catalog}
        self._available = available
        self._failures: dict[str, tuple[str, int | None]] = {}
        self._list_error: ExternalToolError | None = None
        self._call_log: list[tuple[str, dict[str, Any]]] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def call_log(self) -> list[tuple[str, dict[str, Any]]]:
        """All ``(operation, arguments)`` pairs this mock has received."""
        return self._call_log

    @property
    def installs(self) -> list[str]:
        """Package ids passed to ``install``, in call order."""
        return [args["package_id"] for op, args in self._call_log if op == "install"]

    def is_available(self) -> bool:
        return self._available

    def add_to_catalog(self, record: PackageRecord) -> None:
        self._catalog[record.package_id] = record

    def set_failure(
        self,
        package_id: str,
        error: str = "Mock failure",
        times: int | None = None,
    ) -> None:
        """Make installs of ``package_id`` fail.

        Args:
            times: Number of failing calls before installs succeed.
                None fails forever.
        """
        self._failures[package_id] = (error, times)

    def set_list_error(self, error: ExternalToolError | None) -> None:
        """Make ``list_installed`` raise ``error`` (None to clear)."""
        self._list_error = error

    def list_installed(self, org: str) -> list[Any]:
        self._call_log.append(("list_installed", {"org": org}))
        if self._list_error is not None:
            raise self._list_error
        return list(self._installed.get(org, []))

    def install(
        self,
        org: str,
        package_id: str,
        install_key: str = "",
        security_type: str = "AdminsOnly",
    ) -> dict[str, Any]:
        self._call_log.append((
            "install",
            {
                "org": org,
                "package_id": package_id,
                "install_key": install_key,
                "security_type": security_type,
            },
        ))

        if package_id in self._failures:
            error, remaining = self._failures[package_id]
            if remaining is None:
                raise ExternalToolStatusError(1, error)
            if remaining > 0:
                self._failures[package_id] = (error, remaining - 1)
                raise ExternalToolStatusError(1, error)

        record = self._catalog.get(package_id)
        if record is not None:
            items = [
                item for item in self._installed.get(org, [])
                if not (isinstance(item, dict)
                        and item.get("SubscriberPackageNamespace") == record.namespace)
            ]
            items.append(snapshot_item(record.namespace, record.version, package_id))
            self._installed[org] = items

        return {"status": 0, "result": {"Status": "SUCCESS", "SubscriberPackageVersionKey": package_id}}

    def reset(self) -> None:
        """Clear call log and scripted failures."""
        self._call_log.clear()
        self._failures.clear()
        self._list_error = None
