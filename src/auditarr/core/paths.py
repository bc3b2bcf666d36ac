"""Path canonicalization and remapping between service and local mounts.

Sonarr, Radarr and qBittorrent usually run in containers and report paths
under their own mount points (``/data/media/...``) while the auditor sees
the same files somewhere else (``/mnt/user/media/...``). Everything that is
compared across sources goes through :func:`remap` first and then
:func:`normalize`.

Normalized keys are case-folded. This assumes the library lives on a
filesystem where two paths differing only in case never name different
files, which holds for the deployments this tool targets but is not true
of every POSIX filesystem.
"""

import posixpath
import re
from typing import Iterable, Mapping, Optional

SUBTITLE_EXTENSIONS = {".srt", ".ass", ".ssa", ".vtt", ".sub", ".idx", ".pgs", ".sup"}

MEDIA_EXTENSIONS = {
    ".mkv", ".mp4", ".avi", ".mov", ".wmv", ".flv",
    ".webm", ".m4v", ".mpg", ".mpeg", ".ts",
}


def clean(path: str) -> str:
    """Collapse separators and ``.``/``..`` segments without touching case."""
    if not path:
        return ""
    # normpath keeps a leading "//", so runs of slashes are folded first
    return posixpath.normpath(re.sub(r"/+", "/", path.replace("\\", "/")))


def normalize(path: str) -> str:
    """Return the lookup key for ``path``."""
    return clean(path).lower()


def _under(path: str, prefix: str) -> bool:
    if prefix == "/":
        return path.startswith("/")
    return path == prefix or path.startswith(prefix + "/")


def _swap_prefix(path: str, mappings: Optional[Mapping[str, str]], reverse: bool) -> str:
    cleaned = clean(path)
    if not mappings:
        return cleaned

    best_from = None
    best_to = None
    for remote, local in mappings.items():
        source, target = (local, remote) if reverse else (remote, local)
        source = clean(source)
        if not source or not _under(cleaned, source):
            continue
        if best_from is None or len(source) > len(best_from):
            best_from, best_to = source, clean(target)

    if best_from is None:
        return cleaned

    relative = cleaned[len(best_from):].lstrip("/")
    return posixpath.join(best_to, relative) if relative else best_to


def remap(path: str, mappings: Optional[Mapping[str, str]]) -> str:
    """
    Rewrite a service-visible path into the locally mounted path.

    ``mappings`` maps service prefixes to local prefixes. The longest
    matching prefix wins; unmatched paths come back cleaned but otherwise
    unchanged.

    Example: ``/data/media/tv/x.mkv`` with ``{"/data/media": "/mnt/media"}``
    becomes ``/mnt/media/tv/x.mkv``.
    """
    return _swap_prefix(path, mappings, reverse=False)


def remap_reverse(path: str, mappings: Optional[Mapping[str, str]]) -> str:
    """Inverse of :func:`remap`: local path to service-visible path."""
    return _swap_prefix(path, mappings, reverse=True)


def has_prefix(path: str, prefixes: Iterable[str]) -> bool:
    """True when ``path`` sits under any of ``prefixes``."""
    cleaned = clean(path)
    for prefix in prefixes:
        prefix = clean(prefix)
        if prefix and _under(cleaned, prefix):
            return True
    return False


def extension(path: str) -> str:
    return posixpath.splitext(clean(path))[1].lower()


def is_subtitle_file(path: str) -> bool:
    return extension(path) in SUBTITLE_EXTENSIONS

