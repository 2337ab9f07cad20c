"""
Install receipts — the outcome of one install attempt.

The installer turns every attempt into a Receipt. On the retry path
failures live here instead of escaping as exceptions, so a round can
carry on with the next package.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Receipt(BaseModel):
    """Result of installing one package version in one round."""

    namespace: str
    package_id: str = ""
    version: str = ""
    status: Literal["ok", "skipped", "failed"] = "ok"
    round: int = 1

    started_at: str = Field(default_factory=now_iso)
    ended_at: str = Field(default_factory=now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the install succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the install failed."""
        return self.status == "failed"

    @classmethod
    def success(cls, namespace: str, output: str = "", **kwargs: Any) -> Receipt:
        """Create a success receipt."""
        return cls(namespace=namespace, status="ok", output=output, **kwargs)

    @classmethod
    def failure(cls, namespace: str, error: str, **kwargs: Any) -> Receipt:
        """Create a failure receipt."""
        return cls(namespace=namespace, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, namespace: str, reason: str = "", **kwargs: Any) -> Receipt:
        """Create a skip receipt (dry run, blocked by a dependency)."""
        return cls(namespace=namespace, status="skipped", output=reason, **kwargs)
