"""
pkgsync — CLI entrypoint.

Usage:
    python -m pkgsync.main --help
    pkgsync packages diff my-org
    pkgsync packages install my-org --preview
    pkgsync packages sync my-source-org
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from pkgsync import __version__
from pkgsync.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="pkgsync")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to the package config JSON (default: config/packages.json, auto-detect).",
)
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to pkgsync.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    settings_path: str | None,
) -> None:
    """pkgsync — install and sync Salesforce managed packages from config."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["settings_path"] = Path(settings_path) if settings_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("PKGSYNC_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("PKGSYNC_LOG_FILE"),
        log_file_level=os.environ.get("PKGSYNC_LOG_FILE_LEVEL"),
    )


# ── Register sub-command groups from pkgsync/ui/cli/ ──────────────

from pkgsync.ui.cli.packages import packages

cli.add_command(packages)


if __name__ == "__main__":
    cli()
