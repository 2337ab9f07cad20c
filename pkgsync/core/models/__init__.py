"""
Domain models — Pydantic types for package sync.

All models are re-exported here for convenient access:

    from pkgsync.core.models import PackageRecord, Mismatch, Receipt
"""

from pkgsync.core.models.package import (
    Mismatch,
    PackageConfig,
    PackageEntry,
    PackageRecord,
    SecurityType,
    normalize_security_type,
)
from pkgsync.core.models.receipt import Receipt

__all__ = [
    # package.py
    "Mismatch",
    "PackageConfig",
    "PackageEntry",
    "PackageRecord",
    # receipt.py
    "Receipt",
    "SecurityType",
    "normalize_security_type",
]
