"""Per-file classification rules."""

from datetime import datetime
from fnmatch import fnmatchcase
import posixpath
from typing import Optional, Tuple

from auditarr.core.grace import Hours, within_grace
from auditarr.core.models import ArrFile, Classification, MediaFile

# Sidecar artwork and metadata written by media servers and the *arr apps
METADATA_PATTERNS = (
    "*-thumb.jpg", "*-thumb.png",
    "poster.jpg", "poster.png",
    "backdrop.jpg", "backdrop.png",
    "fanart.jpg", "fanart.png",
    "folder.jpg", "folder.png",
    "logo.png", "logo.svg",
    "season*-poster.jpg", "season*-poster.png",
    "banner.jpg", "landscape.jpg", "clearlogo.png",
    "*.nfo",
    "*.torrent",
)

REASONS = {
    Classification.HEALTHY: "Tracked by Arr and hardlinked to torrent",
    Classification.AT_RISK: "Tracked by Arr but NOT hardlinked (no torrent protection)",
    Classification.ORPHAN: "Not tracked by Arr (outside grace window)",
    Classification.ORPHANED_DOWNLOAD: "In download directory, not seeded and not hardlinked",
}


def is_metadata_file(path: str) -> bool:
    """Check whether a path is artwork or metadata rather than media."""
    filename = posixpath.basename(path.replace("\\", "/")).lower()
    return any(fnmatchcase(filename, pattern) for pattern in METADATA_PATTERNS)


def classify_media(
    media: MediaFile,
    arr_file: Optional[ArrFile],
    grace_hours: Hours,
    now: datetime,
) -> Tuple[Optional[Classification], bool]:
    """
    Classify one library file.

    Returns:
        ``(classification, include)``. Files still inside their grace
        window come back as ``(None, False)`` and must be left out of the
        report entirely.
    """
    if within_grace(media.modified, now, grace_hours):
        return None, False

    if arr_file is None:
        return Classification.ORPHAN, True

    if media.is_hardlinked:
        return Classification.HEALTHY, True

    return Classification.AT_RISK, True


def reason_for(classification: Classification) -> str:
    return REASONS.get(classification, "Unknown classification")
