"""Adapters — tool bindings for external integrations.

Public re-exports for convenient access.
"""

from pkgsync.adapters.base import PackageTool
from pkgsync.adapters.mock import MockPackageTool
from pkgsync.adapters.sf.package_tool import SfPackageTool

__all__ = [
    "MockPackageTool",
    "PackageTool",
    "SfPackageTool",
]
