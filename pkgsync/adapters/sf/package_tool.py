"""
Salesforce CLI binding — list and install packages through ``sf``.

Commands used:
    sf package installed list --target-org ORG --json
    sf package install --package 04t... --target-org ORG --json ...
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from typing import Any

from pkgsync.adapters.base import PackageTool
from pkgsync.adapters.shell.command import run_json_command
from pkgsync.core.errors import ExternalToolProtocolError, ExternalToolStatusError

logger = logging.getLogger(__name__)

DEFAULT_WAIT_MINUTES = 10


class SfPackageTool(PackageTool):
    """Drive the ``sf`` CLI in JSON mode.

    Args:
        sf_bin: Executable name or path.
        wait_minutes: ``--wait`` bound passed to installs.
        runner: Callable executing an argument list and returning the
            parsed JSON response. Defaults to :func:`run_json_command`.
    """

    def __init__(
        self,
        sf_bin: str = "sf",
        wait_minutes: int = DEFAULT_WAIT_MINUTES,
        runner: Callable[[list[str]], dict[str, Any]] = run_json_command,
    ):
        self._sf_bin = sf_bin
        self._wait_minutes = wait_minutes
        self._runner = runner

    @property
    def name(self) -> str:
        return "sf"

    def is_available(self) -> bool:
        return shutil.which(self._sf_bin) is not None

    def list_installed_command(self, org: str) -> list[str]:
        return [self._sf_bin, "package", "installed", "list", "--target-org", org, "--json"]

    def install_command(
        self,
        org: str,
        package_id: str,
        install_key: str = "",
        security_type: str = "AdminsOnly",
    ) -> list[str]:
        """Argument list for one install.

        ``--installation-key`` is only added when a key is present: an
        empty value would be read as a key by the CLI.
        """
        cmd = [
            self._sf_bin, "package", "install",
            "--package", package_id,
            "--target-org", org,
            "--security-type", security_type,
            "--wait", str(self._wait_minutes),
            "--no-prompt",
            "--json",
        ]
        if install_key:
            cmd += ["--installation-key", install_key]
        return cmd

    def list_installed(self, org: str) -> list[Any]:
        data = self._runner(self.list_installed_command(org))
        result = data.get("result")
        if not isinstance(result, list):
            raise ExternalToolProtocolError(
                "Installed package list response has no 'result' array"
            )
        logger.debug("%d package(s) installed in %s", len(result), org)
        return result

    def install(
        self,
        org: str,
        package_id: str,
        install_key: str = "",
        security_type: str = "AdminsOnly",
    ) -> dict[str, Any]:
        data = self._runner(
            self.install_command(org, package_id, install_key, security_type)
        )

        # A zero status with an ERROR request status still means failure
        result = data.get("result")
        if isinstance(result, dict) and str(result.get("Status", "")).upper() == "ERROR":
            errors = result.get("Errors") or {}
            message = ""
            if isinstance(errors, dict):
                message = "; ".join(str(e) for e in errors.get("errors", []) if e)
            raise ExternalToolStatusError(1, message or "Package install request ended in ERROR")

        return data
