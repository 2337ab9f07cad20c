"""
Shell command runner — execute a tool that answers in JSON.

The SINGLE PLACE where ``subprocess.run`` is called. Commands are
always argument lists, never shell strings, so values such as
installation keys are passed through verbatim.
"""

from __future__ import annotations

import json
import logging
import subprocess
import time
from typing import Any

from pkgsync.core.errors import (
    ExternalToolError,
    ExternalToolProtocolError,
    ExternalToolStatusError,
)

logger = logging.getLogger(__name__)

# Flags whose following argument must never reach a log line
SECRET_FLAGS = frozenset({"--installation-key", "-k"})


def redact(cmd: list[str]) -> list[str]:
    """Copy of ``cmd`` with secret flag values masked."""
    masked: list[str] = []
    hide_next = False
    for arg in cmd:
        masked.append("****" if hide_next else arg)
        hide_next = arg in SECRET_FLAGS
    return masked


def run_json_command(
    cmd: list[str],
    *,
    timeout: float | None = None,
    env: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Run ``cmd`` and return its JSON response.

    The tool is expected to print a JSON object with an integer
    ``status`` on stdout, whatever its exit code.

    Args:
        cmd: Command list for ``subprocess.run()``.
        timeout: Seconds before giving up (None = tool's own bound).
        env: Full environment for the child (None = inherit).

    Returns:
        The parsed response object (``status`` is 0).

    Raises:
        ExternalToolError: The command could not be started or timed out.
        ExternalToolProtocolError: Output is not a JSON object with a status.
        ExternalToolStatusError: The response carries a non-zero status.
    """
    logger.debug("Executing: %s", " ".join(redact(cmd)))
    start = time.monotonic()

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
        )
    except FileNotFoundError as e:
        raise ExternalToolError(f"Command not found: {cmd[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise ExternalToolError(f"Command timed out after {timeout}s") from e
    except OSError as e:
        raise ExternalToolError(f"Command execution error: {e}") from e

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = result.stdout.strip() if result.stdout else ""
    stderr = result.stderr.strip() if result.stderr else ""
    logger.debug("Exit %d after %dms", result.returncode, elapsed_ms)

    try:
        data = json.loads(stdout)
    except json.JSONDecodeError as e:
        detail = stderr[-500:] or stdout[-500:] or "no output"
        raise ExternalToolProtocolError(
            f"Non-JSON response (exit {result.returncode}): {detail}"
        ) from e

    if not isinstance(data, dict):
        raise ExternalToolProtocolError(
            f"Expected a JSON object, got {type(data).__name__}"
        )

    status = data.get("status")
    if not isinstance(status, int) or isinstance(status, bool):
        raise ExternalToolProtocolError("Response is missing an integer 'status' field")

    if status != 0:
        message = data.get("message") or data.get("name") or stderr[-500:]
        raise ExternalToolStatusError(status, str(message or ""))

    return data
