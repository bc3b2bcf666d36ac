"""CLI commands for auditarr."""

import sys
import logging
from pathlib import Path
from typing import Optional

import click

from auditarr.config import ConfigError, get_config
from auditarr.core.scanner import AuditRunner
from auditarr.reporting.formatting import write_report
from auditarr.reporting.json_report import render_json
from auditarr.reporting.markdown import render_markdown
from auditarr.reporting.notification import DiscordNotifier, NotificationError
from auditarr.cli.formatters import (
    print_audit_results,
    print_error,
    print_success,
    print_warning,
    create_progress,
    console,
    err_console,
)

logger = logging.getLogger(__name__)

EXIT_FINDINGS = 2


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@click.group()
@click.option(
    '--config',
    type=click.Path(exists=True, path_type=Path),
    help='Path to configuration file'
)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path], verbose: bool) -> None:
    """
    auditarr: read-only health audit for an *arr media library.

    Compares what is on disk with what Sonarr, Radarr and qBittorrent know
    about, reports files at risk of loss, orphans, suspicious files and
    permission problems. Nothing is ever changed.
    """
    ctx.ensure_object(dict)
    setup_logging(verbose)

    try:
        ctx.obj['config'] = get_config(config)
    except ConfigError as e:
        print_error(f"Failed to load configuration: {e}")
        sys.exit(1)


@cli.command()
@click.option(
    '--detail',
    type=click.Choice(['summary', 'normal', 'full']),
    default='normal',
    help='Level of detail in console output'
)
@click.option(
    '--format',
    'report_format',
    type=click.Choice(['markdown', 'json', 'both']),
    default='markdown',
    help='Report file format'
)
@click.option(
    '--json',
    'output_json',
    is_flag=True,
    help='Print the JSON report to stdout instead of tables'
)
@click.option('--skip-permissions', is_flag=True, help='Skip permission auditing')
@click.option('--no-notify', is_flag=True, help='Do not send the webhook notification')
@click.pass_context
def scan(
    ctx: click.Context,
    detail: str,
    report_format: str,
    output_json: bool,
    skip_permissions: bool,
    no_notify: bool,
) -> None:
    """
    Run a one-time audit.

    Exits with status 2 when orphaned or at-risk media is found.
    """
    config = ctx.obj['config']
    status = err_console if output_json else console

    try:
        with create_progress(status) as progress:
            task = progress.add_task("[cyan]Auditing media library...", total=None)
            result = AuditRunner(config).run(skip_permissions=skip_permissions)
            progress.update(task, completed=True)
    except KeyboardInterrupt:
        print_warning("Interrupted, no report written", status)
        sys.exit(130)
    except Exception as e:
        print_error(f"Audit failed: {e}", status)
        logger.exception("Audit failed")
        sys.exit(1)

    report_dir = config.report_dir()
    report_path = None
    try:
        if report_format in ('markdown', 'both'):
            report_path = write_report(render_markdown(result, config), report_dir, "md")
            print_success(f"Report written to: {report_path}", status)
        if report_format in ('json', 'both'):
            json_path = write_report(render_json(result), report_dir, "json")
            report_path = report_path or json_path
            print_success(f"JSON report written to: {json_path}", status)
    except OSError as e:
        print_warning(f"Failed to write report: {e}", status)

    if not no_notify:
        notifier = DiscordNotifier(config.notifications.discord_webhook)
        try:
            notifier.send(result, str(report_path) if report_path else None)
        except NotificationError as e:
            print_warning(f"Failed to send notification: {e}", status)

    if output_json:
        click.echo(render_json(result))
    else:
        print_audit_results(result, detail_level=detail)
        summary = result.summary
        console.print(
            f"Results: {summary.healthy_count} healthy, {summary.at_risk_count} at risk, "
            f"{summary.orphan_count} orphaned, {summary.suspicious_count} suspicious"
        )

    if result.has_findings:
        sys.exit(EXIT_FINDINGS)


@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Test connectivity to every configured service."""
    config = ctx.obj['config']
    runner = AuditRunner(config)

    services = [
        ("Sonarr", config.sonarr.enabled, runner.sonarr_client),
        ("Radarr", config.radarr.enabled, runner.radarr_client),
        ("qBittorrent", config.qbittorrent.enabled, runner.qbit_client),
    ]

    failed = False
    for name, enabled, client in services:
        if not enabled:
            console.print(f"[dim]{name}: not configured[/dim]")
            continue
        try:
            client.test_connection()
            print_success(f"{name}: connected")
        except Exception as e:
            print_error(f"{name}: {e}")
            failed = True

    runner.qbit_client.disconnect()

    if failed:
        sys.exit(1)


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Display configuration information."""
    config = ctx.obj['config']

    from rich.table import Table
    from rich import box

    def masked(value: str) -> str:
        return "***" if value else "[red]Not set[/red]"

    table = Table(title="Configuration", box=box.ROUNDED)
    table.add_column("Section", style="cyan")
    table.add_column("Setting", style="yellow")
    table.add_column("Value", style="green")

    table.add_row("Paths", "Media Root", str(config.paths.media_root))
    table.add_row("", "Torrent Root", str(config.paths.torrent_root or "-"))
    table.add_row("", "Report Dir", str(config.report_dir()))

    table.add_row("Sonarr", "URL", config.sonarr.url or "-")
    table.add_row("", "API Key", masked(config.sonarr.api_key))
    table.add_row("", "Grace Hours", str(config.sonarr.grace_hours))

    table.add_row("Radarr", "URL", config.radarr.url or "-")
    table.add_row("", "API Key", masked(config.radarr.api_key))
    table.add_row("", "Grace Hours", str(config.radarr.grace_hours))

    table.add_row("qBittorrent", "URL", config.qbittorrent.url or "-")
    table.add_row("", "Username", config.qbittorrent.username)
    table.add_row("", "Grace Hours", str(config.qbittorrent.grace_hours))

    table.add_row("Suspicious", "Flag Archives", str(config.suspicious.flag_archives))
    table.add_row("Permissions", "Enabled", str(config.permissions.enabled))
    table.add_row("", "Group GID", str(config.permissions.group_gid))
    table.add_row("", "Allowed UIDs", ", ".join(map(str, config.permissions.allowed_uids)) or "-")

    table.add_row("Notifications", "Discord Webhook", masked(config.notifications.discord_webhook))

    for api_path, fs_path in sorted(config.path_mappings.items()):
        table.add_row("Path Mapping", api_path, fs_path)

    console.print(table)


def main() -> None:
    """Main entry point for CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
