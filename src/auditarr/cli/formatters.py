"""Output formatters for CLI using Rich."""

from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich import box

from auditarr.core.models import (
    AnalysisResult,
    Classification,
    ClassifiedMedia,
    PermissionIssue,
    ServiceStatus,
    SummaryStats,
)
from auditarr.reporting.formatting import format_age, format_size

console = Console()
# Status output when stdout carries machine-readable data
err_console = Console(stderr=True)


def print_statistics(stats: SummaryStats) -> None:
    """Print audit statistics in a formatted panel."""
    table = Table(show_header=False, box=box.SIMPLE)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Files Scanned", str(stats.total_files))
    table.add_row("Healthy", f"[green]{stats.healthy_count}[/green]")
    table.add_row("At Risk", f"[yellow]{stats.at_risk_count}[/yellow]")
    table.add_row("Orphaned", f"[red]{stats.orphan_count}[/red]")
    table.add_row("Orphaned Downloads", f"[red]{stats.orphaned_download_count}[/red]")
    table.add_row("Unlinked Torrents", str(stats.unlinked_torrent_count))
    table.add_row("Suspicious Files", f"[red]{stats.suspicious_count}[/red]")
    table.add_row("Permission Errors", str(stats.permission_errors))
    table.add_row("Permission Warnings", str(stats.permission_warnings))
    if stats.arr_path_conflicts:
        table.add_row("Sonarr/Radarr Conflicts", str(stats.arr_path_conflicts))
    table.add_row("Duration", f"{stats.duration:.2f}s")

    console.print(Panel(table, title="[bold]Audit Summary[/bold]", border_style="blue"))


def print_connections(statuses: List[ServiceStatus]) -> None:
    """Print the connection outcome of each service."""
    if not statuses:
        return

    table = Table(title="Service Connections", box=box.ROUNDED)
    table.add_column("Service", style="cyan")
    table.add_column("Status")
    table.add_column("Details", style="dim")

    for status in sorted(statuses, key=lambda s: s.name):
        if status.ok:
            table.add_row(status.name, "[green]Connected[/green]", "OK")
        else:
            table.add_row(status.name, "[red]Failed[/red]", status.error)

    console.print(table)


def print_classified(entries: List[ClassifiedMedia], title: str, style: str) -> None:
    """Print files with one classification in a table."""
    if not entries:
        return

    table = Table(title=f"{title} ({len(entries)})", box=box.ROUNDED)
    table.add_column("Path", style="yellow", overflow="fold")
    table.add_column("Size", style="green", justify="right")
    table.add_column("Links", style="cyan", justify="center")
    table.add_column("Source", style="magenta")
    table.add_column("Age", style=style)

    for entry in entries:
        table.add_row(
            entry.file.path,
            format_size(entry.file.size),
            str(entry.file.hardlink_count),
            entry.arr_source or "-",
            format_age(entry.file.modified),
        )

    console.print(table)


def print_permission_issues(issues: List[PermissionIssue], limit: int = 50) -> None:
    """Print permission issues in a table."""
    if not issues:
        return

    table = Table(
        title=f"Permission Issues (showing {min(limit, len(issues))} of {len(issues)})",
        box=box.ROUNDED,
    )
    table.add_column("Path", style="yellow", overflow="fold")
    table.add_column("Issue", style="cyan")
    table.add_column("Severity")
    table.add_column("Fix", style="dim", overflow="fold")

    colors = {"error": "red", "warning": "yellow", "info": "blue"}
    for issue in issues[:limit]:
        color = colors[issue.severity.value]
        table.add_row(issue.path, issue.issue, f"[{color}]{issue.severity.value}[/{color}]", issue.fix_hint)

    console.print(table)

    if len(issues) > limit:
        console.print(f"\n[dim]... and {len(issues) - limit} more issues[/dim]")


def print_audit_results(result: AnalysisResult, detail_level: str = "summary") -> None:
    """
    Print complete audit results.

    Args:
        result: Analysis result to print
        detail_level: 'summary', 'normal', or 'full'
    """
    console.print()
    console.print(
        Panel.fit("[bold green]auditarr Media Audit[/bold green]", border_style="green")
    )
    console.print()

    # Always show statistics
    print_statistics(result.summary)
    print_connections(result.connection_status)
    console.print()

    if detail_level == "summary":
        return

    print_classified(result.by_classification(Classification.AT_RISK), "At Risk Media", "yellow")
    print_classified(result.by_classification(Classification.ORPHAN), "Orphaned Media", "red")

    if detail_level == "normal":
        return

    print_classified(
        result.by_classification(Classification.ORPHANED_DOWNLOAD), "Orphaned Downloads", "red"
    )

    if result.suspicious_files:
        table = Table(title=f"Suspicious Files ({len(result.suspicious_files)})", box=box.ROUNDED)
        table.add_column("Path", style="yellow", overflow="fold")
        table.add_column("Reason", style="red")
        for sf in result.suspicious_files:
            table.add_row(sf.path, sf.reason)
        console.print(table)

    if result.unlinked_torrents:
        table = Table(title=f"Unlinked Torrents ({len(result.unlinked_torrents)})", box=box.ROUNDED)
        table.add_column("Name", style="yellow", overflow="fold")
        table.add_column("Size", style="green", justify="right")
        table.add_column("Completed", style="magenta")
        for torrent in result.unlinked_torrents:
            table.add_row(torrent.name, format_size(torrent.size), format_age(torrent.completed_on))
        console.print(table)

    print_permission_issues(result.permission_issues)


def print_error(message: str, target: Optional[Console] = None) -> None:
    """Print an error message."""
    (target or console).print(f"[bold red]Error:[/bold red] {message}")


def print_warning(message: str, target: Optional[Console] = None) -> None:
    """Print a warning message."""
    (target or console).print(f"[bold yellow]Warning:[/bold yellow] {message}")


def print_success(message: str, target: Optional[Console] = None) -> None:
    """Print a success message."""
    (target or console).print(f"[bold green]✓[/bold green] {message}")


def create_progress(target: Optional[Console] = None) -> Progress:
    """Create a progress spinner for long-running operations."""
    return Progress(
        SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=target or console
    )
