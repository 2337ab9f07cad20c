"""
CLI commands for managed package sync.

Thin wrappers over ``pkgsync.core.use_cases``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from pkgsync.adapters.base import PackageTool
from pkgsync.core.config.settings import Settings


def _resolve_settings(ctx: click.Context) -> Settings:
    """Load settings once per invocation; exit on an invalid file."""
    if "settings" not in ctx.obj:
        from pkgsync.core.config.settings import load_settings
        from pkgsync.core.errors import ConfigError

        try:
            ctx.obj["settings"] = load_settings(ctx.obj.get("settings_path"))
        except ConfigError as e:
            click.secho(f"❌ {e}", fg="red")
            sys.exit(1)
    return ctx.obj["settings"]


def _resolve_tool(ctx: click.Context, settings: Settings) -> PackageTool:
    """Tool binding from context (tests inject one) or the sf CLI."""
    tool = ctx.obj.get("tool")
    if tool is None:
        from pkgsync.adapters.sf.package_tool import SfPackageTool

        tool = SfPackageTool(
            sf_bin=settings.sf_bin,
            wait_minutes=settings.install_wait_minutes,
        )
    return tool


def _namespaces(values: tuple[str, ...]) -> list[str] | None:
    """Flatten repeated and comma-separated ``--namespace`` values."""
    names = [n.strip() for value in values for n in value.split(",") if n.strip()]
    return names or None


@click.group()
def packages() -> None:
    """Packages — diff, install, sync."""


namespace_option = click.option(
    "--namespace",
    "-n",
    "namespaces",
    multiple=True,
    help="Restrict to this namespace (repeatable or comma-separated).",
)


# ── Observe ─────────────────────────────────────────────────────


@packages.command()
@click.argument("target_org")
@namespace_option
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def diff(ctx: click.Context, target_org: str, namespaces: tuple[str, ...], as_json: bool) -> None:
    """Show configured packages missing or outdated in TARGET_ORG."""
    from pkgsync.core.use_cases.diff import diff_org

    settings = _resolve_settings(ctx)
    result = diff_org(
        target_org,
        _resolve_tool(ctx, settings),
        config_path=ctx.obj.get("config_path"),
        namespaces=_namespaces(namespaces),
        settings=settings,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if result.in_sync:
        click.secho(f"✅ All {result.declared_count} package(s) up to date in {target_org}", fg="green")
        return

    click.secho(f"📦 Out of date in {target_org} ({len(result.mismatches)}):", fg="yellow", bold=True)
    for m in result.mismatches:
        installed = m.observed.version if m.observed else "not installed"
        declared = m.declared.version if m.declared else "?"
        click.echo(f"   {m.namespace:<30} {installed:<16} → {declared}")
    click.echo()


# ── Act ─────────────────────────────────────────────────────────


@packages.command()
@click.argument("target_org")
@namespace_option
@click.option("--dry-run", is_flag=True, help="Show the install plan without installing.")
@click.option("--preview", is_flag=True, help="List the changes and ask before installing.")
@click.option("--yes", "-y", is_flag=True, help="Do not prompt in preview mode.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    target_org: str,
    namespaces: tuple[str, ...],
    dry_run: bool,
    preview: bool,
    yes: bool,
    as_json: bool,
) -> None:
    """Install or update configured packages in TARGET_ORG.

    Without --namespace, only missing or outdated packages are
    installed, dependencies first, with retries. With --namespace,
    exactly the named packages are installed in the order given.

    Examples:

        pkgsync packages install my-org

        pkgsync packages install my-org -n acme -n acme_ext

        pkgsync packages install my-org --preview
    """
    from pkgsync.core.use_cases.install import InstallResult, install_packages_from_config

    settings = _resolve_settings(ctx)

    def confirm(planned: InstallResult) -> bool:
        _print_plan(planned)
        if yes:
            return True
        return click.confirm("Install these packages?", default=False, err=True)

    result = install_packages_from_config(
        target_org,
        _resolve_tool(ctx, settings),
        config_path=ctx.obj.get("config_path"),
        namespaces=_namespaces(namespaces),
        dry_run=dry_run,
        settings=settings,
        confirm=confirm if preview and not dry_run else None,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error or result.failed:
            sys.exit(1)
        return

    if result.error:
        if result.report and result.report.installed:
            click.echo(f"   Installed before the failure: {', '.join(result.report.installed)}")
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if result.up_to_date:
        click.secho(f"✅ All packages up to date in {target_org}", fg="green")
        return

    if result.cancelled:
        click.secho("⊘ Cancelled — nothing installed", fg="yellow")
        return

    if dry_run:
        click.secho("[dry-run] ", fg="yellow", nl=False)
        _print_plan(result)
        return

    report = result.report
    assert report is not None

    click.secho(f"\n⚡ Install — {target_org}", fg="cyan", bold=True)
    for namespace in report.installed:
        click.secho(f"   ✓ {namespace}", fg="green")
    for namespace in report.failed:
        click.secho(f"   ✗ {namespace}", fg="red", nl=False)
        click.echo(f"  {report.last_error(namespace)}")

    click.echo()
    status_color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(
        report.status, "white"
    )
    click.secho(
        f"   Result: {len(report.installed)}/{report.total} installed in {report.rounds} round(s)",
        fg=status_color,
        bold=True,
    )

    if report.failed:
        click.secho(
            f"   Failed after {report.rounds} round(s): {', '.join(report.failed)}",
            fg="red",
        )
        click.echo()
        sys.exit(1)

    click.echo()


def _print_plan(result) -> None:
    """Print the packages an install run is about to act on."""
    click.secho(f"📦 Install plan for {result.org} ({len(result.plan)}):", fg="cyan", bold=True)
    current = {m.namespace: m.observed for m in result.mismatches}
    for record in result.plan:
        observed = current.get(record.namespace)
        if result.namespaces:
            was = "requested"
        else:
            was = observed.version if observed else "not installed"
        click.echo(f"   {record.namespace:<30} {was:<16} → {record.version}")


@packages.command()
@click.argument("source_org")
@namespace_option
@click.option(
    "--metadata-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="InstalledPackage metadata directory (default: from settings).",
)
@click.option("--dry-run", is_flag=True, help="Show the changes without writing the config.")
@click.option("--preview", is_flag=True, help="List the changes and ask before writing.")
@click.option("--yes", "-y", is_flag=True, help="Do not prompt in preview mode.")
@click.pass_context
def sync(
    ctx: click.Context,
    source_org: str,
    namespaces: tuple[str, ...],
    metadata_dir: str | None,
    dry_run: bool,
    preview: bool,
    yes: bool,
) -> None:
    """Update the config from packages installed in SOURCE_ORG."""
    from pkgsync.core.config.loader import find_config_file, project_root
    from pkgsync.core.use_cases.sync import SyncResult, update_config_from_org

    settings = _resolve_settings(ctx)
    config_path: Path | None = ctx.obj.get("config_path")
    if config_path is None:
        config_path = (
            find_config_file(relative=settings.config_file)
            or Path.cwd() / settings.config_file
        )
    if metadata_dir:
        metadata_path = Path(metadata_dir)
    else:
        metadata_path = project_root(config_path, settings.config_file) / settings.metadata_dir

    def confirm(planned: SyncResult) -> bool:
        _print_sync(planned)
        if yes:
            return True
        return click.confirm("Write these changes?", default=False, err=True)

    result = update_config_from_org(
        source_org,
        _resolve_tool(ctx, settings),
        config_path=config_path,
        namespaces=_namespaces(namespaces),
        metadata_dir=metadata_path,
        dry_run=dry_run,
        confirm=confirm if preview else None,
    )

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if result.cancelled:
        click.secho("⊘ Cancelled — config not written", fg="yellow")
        return

    if dry_run:
        click.secho("[dry-run] ", fg="yellow", nl=False)
    if not preview or dry_run or not result.changed:
        _print_sync(result)

    if result.written:
        click.secho(f"   💾 Config saved to {result.config_path}", fg="cyan")
    click.echo()


def _print_sync(result) -> None:
    """Print the config changes a sync computed."""
    if not result.changed:
        click.secho(f"✅ Config already matches {result.org}", fg="green")
        return
    click.secho(f"🔄 Sync from {result.org}:", fg="cyan", bold=True)
    for namespace in result.added:
        click.secho(f"   + {namespace}", fg="green")
    for namespace in result.updated:
        click.secho(f"   ~ {namespace}", fg="yellow")
    if result.unchanged:
        click.echo(f"   {len(result.unchanged)} unchanged")
