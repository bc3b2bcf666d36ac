"""Script-friendly JSON audit report."""

from datetime import datetime
import json
from typing import Any, Dict, List, Optional

from auditarr.core.grace import utcnow
from auditarr.core.models import AnalysisResult, Classification, ClassifiedMedia
from auditarr.reporting.formatting import format_age, format_size


def _file_entry(cm: ClassifiedMedia, now: datetime) -> Dict[str, Any]:
    entry = {
        "path": cm.file.path,
        "size_bytes": cm.file.size,
        "size_human": format_size(cm.file.size),
        "modified_at": cm.file.modified.isoformat(),
        "age": format_age(cm.file.modified, now),
        "hardlinks": cm.file.hardlink_count,
        "classification": cm.classification.value,
        "reason": cm.reason,
    }
    if cm.arr_source:
        entry["arr_source"] = cm.arr_source
    return entry


def build_json_report(result: AnalysisResult, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Build the report document; every list is sorted by path."""
    now = now or utcnow()
    summary = result.summary

    orphans = result.by_classification(Classification.ORPHAN)
    orphan_size = sum(cm.file.size for cm in orphans)

    torrents: List[Dict[str, Any]] = []
    for torrent in sorted(result.unlinked_torrents, key=lambda t: t.content_path):
        torrents.append({
            "path": torrent.content_path,
            "name": torrent.name,
            "hash": torrent.hash,
            "size_bytes": torrent.size,
            "size_human": format_size(torrent.size),
            "completed": (
                format_age(torrent.completed_on, now) + " ago"
                if torrent.completed_on is not None else "unknown"
            ),
        })

    return {
        "generated_at": now.isoformat(),
        "duration_seconds": summary.duration,
        "summary": {
            "total_files": summary.total_files,
            "healthy_count": summary.healthy_count,
            "at_risk_count": summary.at_risk_count,
            "orphan_count": summary.orphan_count,
            "orphaned_download_count": summary.orphaned_download_count,
            "suspicious_count": summary.suspicious_count,
            "unlinked_torrent_count": summary.unlinked_torrent_count,
            "permission_errors": summary.permission_errors,
            "permission_warnings": summary.permission_warnings,
            "arr_path_conflicts": summary.arr_path_conflicts,
            "total_orphan_size_bytes": orphan_size,
            "total_orphan_size_human": format_size(orphan_size),
        },
        "connection_status": [s.model_dump() for s in result.connection_status],
        "orphaned_media": [_file_entry(cm, now) for cm in orphans],
        "orphaned_downloads": [
            _file_entry(cm, now) for cm in result.by_classification(Classification.ORPHANED_DOWNLOAD)
        ],
        "at_risk": [_file_entry(cm, now) for cm in result.by_classification(Classification.AT_RISK)],
        "suspicious_files": [
            {"path": sf.path, "reason": sf.reason}
            for sf in sorted(result.suspicious_files, key=lambda s: s.path)
        ],
        "unlinked_torrents": torrents,
        "permission_issues": [
            {
                "path": issue.path,
                "issue": issue.issue,
                "severity": issue.severity.value,
                "mode": oct(issue.current_mode),
                "fix_hint": issue.fix_hint,
            }
            for issue in result.permission_issues
        ],
    }


def render_json(result: AnalysisResult, now: Optional[datetime] = None) -> str:
    return json.dumps(build_json_report(result, now), indent=2, default=str)
