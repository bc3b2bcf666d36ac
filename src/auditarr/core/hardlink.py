"""Hardlink detection and filesystem scanning utilities."""

import os
from pathlib import Path
from typing import Iterable, List, Optional, Protocol
from datetime import datetime, timezone
import logging

from auditarr.core.classifier import is_metadata_file
from auditarr.core.models import MediaFile, MediaSource, PermissionRecord
from auditarr.core.paths import has_prefix

logger = logging.getLogger(__name__)


class LinkCounter(Protocol):
    """Anything that can report how many names a file has."""

    def get_link_count(self, path: str) -> int:
        ...


class PosixLinkCounter:
    """Reads ``st_nlink``; missing or unreadable files report 0."""

    def get_link_count(self, path: str) -> int:
        try:
            return os.stat(path).st_nlink
        except OSError as e:
            logger.debug(f"Cannot stat {path}: {e}")
            return 0


class NullLinkCounter:
    """For platforms without inode link counts: every file has one name."""

    def get_link_count(self, path: str) -> int:
        return 1


def default_link_counter() -> LinkCounter:
    if os.name == "posix":
        return PosixLinkCounter()
    return NullLinkCounter()


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


class HardlinkDetector:
    """Walks directory trees and records size, age and link count per file."""

    def __init__(self, link_counter: Optional[LinkCounter] = None):
        """Initialize hardlink detector."""
        self.link_counter = link_counter or default_link_counter()

    def scan_directory(self, directory: Path, source: MediaSource = MediaSource.LIBRARY) -> List[MediaFile]:
        """Scan a directory tree, skipping hidden entries and metadata sidecars."""
        if not directory.exists():
            logger.warning(f"Directory does not exist: {directory}")
            return []

        files: List[MediaFile] = []

        def on_error(error: OSError) -> None:
            logger.warning(f"Cannot read directory {error.filename}: {error}")

        for root, dirs, names in os.walk(directory, onerror=on_error):
            dirs[:] = [d for d in dirs if not _is_hidden(d)]

            for name in names:
                if _is_hidden(name):
                    continue

                path = os.path.join(root, name)
                if is_metadata_file(path):
                    continue

                try:
                    files.append(self._get_file_info(path, source))
                except OSError as e:
                    logger.warning(f"Cannot access file {path}: {e}")

        logger.info(f"Scanned {len(files)} files in {directory}")
        return files

    def _get_file_info(self, path: str, source: MediaSource) -> MediaFile:
        """Get detailed information about a file."""
        stat = os.stat(path)

        return MediaFile(
            path=path,
            size=stat.st_size,
            modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            hardlink_count=max(self.link_counter.get_link_count(path), 1),
            source=source,
        )


def scan_paths(
    media_root: Optional[Path],
    torrent_root: Optional[Path] = None,
    link_counter: Optional[LinkCounter] = None,
) -> List[MediaFile]:
    """
    Scan the library and download trees.

    Args:
        media_root: Library tree, tagged ``library``
        torrent_root: Download-client tree, tagged ``downloads``

    Returns:
        All files from both trees
    """
    detector = HardlinkDetector(link_counter)
    all_files = []

    if media_root:
        all_files.extend(detector.scan_directory(media_root, MediaSource.LIBRARY))
    if torrent_root:
        all_files.extend(detector.scan_directory(torrent_root, MediaSource.DOWNLOADS))

    return all_files


def collect_permissions(root: Path, skip_paths: Iterable[str] = ()) -> List[PermissionRecord]:
    """Stat every entry under ``root``, pruning skipped prefixes."""
    skip_paths = list(skip_paths)
    records: List[PermissionRecord] = []

    if not root.exists():
        logger.warning(f"Directory does not exist: {root}")
        return records

    def on_error(error: OSError) -> None:
        logger.warning(f"Permission denied: {error.filename}")

    def record_for(path: str, is_directory: bool) -> None:
        try:
            stat = os.stat(path)
        except OSError as e:
            logger.warning(f"Failed to stat {path}: {e}")
            return
        records.append(PermissionRecord(
            path=path,
            mode=stat.st_mode,
            owner_uid=stat.st_uid,
            group_gid=stat.st_gid,
            is_directory=is_directory,
        ))

    for current, dirs, names in os.walk(root, onerror=on_error):
        if has_prefix(current, skip_paths):
            dirs[:] = []
            continue

        record_for(current, True)
        dirs[:] = [d for d in dirs if not has_prefix(os.path.join(current, d), skip_paths)]

        for name in names:
            path = os.path.join(current, name)
            if not has_prefix(path, skip_paths):
                record_for(path, False)

    logger.info(f"Collected permissions for {len(records)} entries under {root}")
    return records
