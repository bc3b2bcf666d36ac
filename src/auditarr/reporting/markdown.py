"""Markdown audit report."""

from datetime import datetime
import re
from typing import List, Optional

from auditarr.config import Config
from auditarr.core.grace import utcnow
from auditarr.core.models import AnalysisResult, Classification, Severity
from auditarr.reporting.formatting import format_age, format_size


def escape_markdown(text: str) -> str:
    return text.replace("|", "\\|").replace("`", "\\`")


def code_span(text: str) -> str:
    """
    Wrap text in an inline code span safe for a table cell.

    Backslash escapes do not work inside code spans, so the fence is made
    longer than any run of backticks in ``text`` instead. Pipes are still
    escaped because table cells are split before spans are parsed.
    """
    longest = max((len(run) for run in re.findall(r"`+", text)), default=0)
    fence = "`" * (longest + 1)
    body = text.replace("|", "\\|")
    if longest:
        body = f" {body} "
    return f"{fence}{body}{fence}"


def _table(lines: List[str], headers: List[str]) -> None:
    lines.append("| " + " | ".join(headers) + " |")
    lines.append("|" + "|".join("-" * (len(h) + 2) for h in headers) + "|")


def render_markdown(result: AnalysisResult, config: Config, now: Optional[datetime] = None) -> str:
    """Render the full report as Markdown."""
    now = now or utcnow()
    summary = result.summary
    lines: List[str] = [
        "# Media Audit Report",
        "",
        f"**Generated**: {now.strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        f"**Duration**: {summary.duration:.1f} seconds",
        "",
        "## Summary",
        "",
    ]

    _table(lines, ["Category", "Count", "Status", "Description"])
    lines += [
        f"| Healthy Media | {summary.healthy_count} | ✅ | Tracked by Arr and hardlinked to torrent |",
        f"| At Risk | {summary.at_risk_count} | ⚠️ | Tracked by Arr but NOT hardlinked |",
        f"| Orphaned | {summary.orphan_count} | ❌ | Not tracked by Arr (outside grace window) |",
        f"| Orphaned Downloads | {summary.orphaned_download_count} | 🗑️ | In downloads, not seeded or linked |",
        f"| Unlinked Torrents | {summary.unlinked_torrent_count} | 🔗 | Completed torrents with no library copy |",
        f"| Suspicious Files | {summary.suspicious_count} | 🚨 | Suspicious extensions detected |",
        f"| Permission Errors | {summary.permission_errors} | ⛔ | Ownership breaks the shared-group model |",
        f"| Permission Warnings | {summary.permission_warnings} | ⚠️ | Mode bits that will cause trouble |",
        "",
    ]

    if result.connection_status:
        lines += ["## Service Connections", ""]
        _table(lines, ["Service", "Status", "Details"])
        for svc in sorted(result.connection_status, key=lambda s: s.name):
            status = "✅ Connected" if svc.ok else "❌ Failed"
            details = "OK" if svc.ok else escape_markdown(svc.error)
            lines.append(f"| {svc.name} | {status} | {details} |")
        lines.append("")

    at_risk = result.by_classification(Classification.AT_RISK)
    if at_risk:
        lines += [
            "## At Risk Media",
            "",
            "Known to Sonarr/Radarr but with a single link. Removing the torrent "
            "data will not free space, and losing this copy loses the file.",
            "",
        ]
        _table(lines, ["Path", "Source", "Age"])
        for cm in at_risk:
            lines.append(
                f"| {code_span(cm.file.path)} | {cm.arr_source} | {format_age(cm.file.modified, now)} |"
            )
        lines.append("")

    orphans = result.by_classification(Classification.ORPHAN)
    if orphans:
        lines += [
            "## Orphaned Media",
            "",
            "Files on disk that no Arr service tracks. Files newer than the grace "
            "window are left out while imports finish.",
            "",
        ]
        _table(lines, ["Path", "Size", "Age"])
        for cm in orphans:
            lines.append(
                f"| {code_span(cm.file.path)} | {format_size(cm.file.size)} | "
                f"{format_age(cm.file.modified, now)} |"
            )
        lines.append("")

    orphaned_downloads = result.by_classification(Classification.ORPHANED_DOWNLOAD)
    if orphaned_downloads:
        lines += ["## Orphaned Downloads", ""]
        _table(lines, ["Path", "Size", "Age"])
        for cm in orphaned_downloads:
            lines.append(
                f"| {code_span(cm.file.path)} | {format_size(cm.file.size)} | "
                f"{format_age(cm.file.modified, now)} |"
            )
        lines.append("")

    if result.suspicious_files:
        lines += [
            "## Suspicious Files",
            "",
            "Executables, scripts, archives or disguised double extensions. Review manually.",
            "",
        ]
        _table(lines, ["Path", "Reason"])
        for sf in sorted(result.suspicious_files, key=lambda s: s.path):
            lines.append(f"| {code_span(sf.path)} | {sf.reason} |")
        lines.append("")

    if result.unlinked_torrents:
        lines += [
            "## Unlinked Torrents",
            "",
            "Completed torrents whose files are neither hardlinked nor known to an Arr service.",
            "",
        ]
        _table(lines, ["Full Path", "Size", "Completed"])
        for torrent in sorted(result.unlinked_torrents, key=lambda t: t.content_path):
            completed = "unknown"
            if torrent.completed_on is not None:
                completed = format_age(torrent.completed_on, now) + " ago"
            lines.append(
                f"| {code_span(torrent.content_path)} | {format_size(torrent.size)} | {completed} |"
            )
        lines.append("")

    if result.permission_issues:
        lines += ["## Permission Issues", ""]
        _table(lines, ["Path", "Issue", "Severity", "Fix"])
        order = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}
        for issue in sorted(result.permission_issues, key=lambda i: (order[i.severity], i.path)):
            lines.append(
                f"| {code_span(issue.path)} | {issue.issue} | {issue.severity.value} | "
                f"{escape_markdown(issue.fix_hint)} |"
            )
        lines.append("")

    lines += [
        "## Configuration",
        "",
        f"- Sonarr Grace: {config.sonarr.grace_hours} hours",
        f"- Radarr Grace: {config.radarr.grace_hours} hours",
        f"- qBittorrent Grace: {config.qbittorrent.grace_hours} hours",
        f"- Media Root: {code_span(str(config.paths.media_root))}",
    ]

    if config.path_mappings:
        lines += ["", "### Path Mappings", ""]
        _table(lines, ["API Path", "Filesystem Path"])
        for api_path, fs_path in sorted(config.path_mappings.items()):
            lines.append(f"| {code_span(api_path)} | {code_span(fs_path)} |")

    lines.append("")
    return "\n".join(lines)
