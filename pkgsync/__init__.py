"""pkgsync — Salesforce managed package install and version sync."""

__version__ = "0.1.0"
