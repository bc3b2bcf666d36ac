"""Shared formatting helpers for reports."""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from auditarr.core.grace import as_utc, utcnow


def format_size(size: float) -> str:
    """Format file size in human-readable format."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} PB"


def format_duration(delta: timedelta) -> str:
    """Coarse age: minutes, hours, days or months."""
    seconds = max(delta.total_seconds(), 0)
    hours = seconds / 3600
    if hours < 1:
        return f"{int(seconds // 60)} minutes"
    if hours < 24:
        return f"{int(hours)} hours"
    if hours < 24 * 30:
        return f"{int(hours // 24)} days"
    return f"{int(hours // (24 * 30))} months"


def format_age(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
    if moment is None:
        return "unknown"
    return format_duration(as_utc(now or utcnow()) - as_utc(moment))


def report_filename(report_dir: Path, suffix: str, now: Optional[datetime] = None) -> Path:
    timestamp = (now or datetime.now()).strftime("%Y-%m-%d-%H-%M-%S")
    return report_dir / f"audit-report-{timestamp}.{suffix}"


def write_report(content: str, report_dir: Path, suffix: str) -> Path:
    """Write a report into ``report_dir``, creating it if needed."""
    report_dir.mkdir(parents=True, exist_ok=True)
    path = report_filename(report_dir, suffix)
    path.write_text(content, encoding="utf-8")
    return path
