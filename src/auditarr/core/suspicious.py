"""Detection of files that do not look like media."""

import posixpath
from typing import Iterable, Optional, Tuple

from auditarr.core.paths import MEDIA_EXTENSIONS

DEFAULT_SUSPICIOUS_EXTENSIONS = (
    ".exe", ".msi", ".bat", ".cmd", ".com", ".scr",
    ".ps1", ".vbs", ".js", ".jar", ".dll", ".sys",
    ".reg", ".lnk", ".pif", ".apk", ".dmg", ".pkg",
    ".iso", ".zip", ".rar", ".7z", ".tar", ".gz",
)

ARCHIVE_EXTENSIONS = {".zip", ".rar", ".7z", ".tar", ".gz", ".iso"}

REASON_EXTENSION = "suspicious_extension"
REASON_DOUBLE_EXTENSION = "double_extension"


def _normalize_extensions(extensions: Optional[Iterable[str]]) -> set:
    chosen = list(extensions or ()) or list(DEFAULT_SUSPICIOUS_EXTENSIONS)
    normalized = set()
    for ext in chosen:
        ext = ext.strip().lower()
        if ext and not ext.startswith("."):
            ext = "." + ext
        if ext:
            normalized.add(ext)
    return normalized


def detect_suspicious(
    path: str,
    extensions: Optional[Iterable[str]] = None,
    flag_archives: bool = False,
) -> Tuple[bool, str]:
    """
    Flag a file whose name suggests an executable, script or archive.

    Args:
        path: File path; only the basename is inspected.
        extensions: Suspicious extensions, with or without the leading dot.
            Empty or ``None`` uses :data:`DEFAULT_SUSPICIOUS_EXTENSIONS`.
        flag_archives: Report archive types. A disguised media name like
            ``show.mkv.rar`` is reported either way.

    Returns:
        ``(is_suspicious, reason)``; reason is empty when not suspicious.
    """
    suspicious = _normalize_extensions(extensions)

    filename = posixpath.basename(path.replace("\\", "/"))
    parts = filename.split(".")
    if len(parts) < 2 or not parts[-1]:
        return False, ""

    ext = "." + parts[-1].lower()
    if ext not in suspicious:
        return False, ""

    if len(parts) > 2 and "." + parts[-2].lower() in MEDIA_EXTENSIONS:
        return True, REASON_DOUBLE_EXTENSION

    if ext in ARCHIVE_EXTENSIONS and not flag_archives:
        return False, ""

    return True, REASON_EXTENSION
