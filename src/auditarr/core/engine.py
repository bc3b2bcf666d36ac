"""Signal-combination engine: turns collected records into an audit result."""

import logging
import posixpath
from datetime import datetime
from typing import Dict, Iterable, Optional, Sequence, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field

from auditarr.core.classifier import classify_media, reason_for
from auditarr.core.grace import Hours, utcnow, within_grace
from auditarr.core.hardlink import LinkCounter, default_link_counter
from auditarr.core.models import (
    AnalysisResult,
    ArrFile,
    Classification,
    ClassifiedMedia,
    MediaFile,
    MediaSource,
    PermissionRecord,
    Severity,
    SummaryStats,
    SuspiciousFile,
    Torrent,
    TorrentState,
)
from auditarr.core.paths import has_prefix, is_subtitle_file, normalize, remap
from auditarr.core.permissions import PermissionAuditor, PermissionPolicy
from auditarr.core.suspicious import detect_suspicious

ArrLookup = Dict[str, ArrFile]


class EngineConfig(BaseModel):
    """Settings fixed for the lifetime of an :class:`AnalysisEngine`."""

    model_config = ConfigDict(frozen=True)

    sonarr_grace_hours: Hours = 48
    radarr_grace_hours: Hours = 48
    qbittorrent_grace_hours: Hours = 24
    suspicious_extensions: Tuple[str, ...] = ()
    flag_archives: bool = False
    permissions_enabled: bool = False
    permission_policy: PermissionPolicy = Field(default_factory=PermissionPolicy)
    skip_paths: Tuple[str, ...] = ()
    path_mappings: Dict[str, str] = Field(default_factory=dict)


class AnalysisEngine:
    """
    Reconciles disk, manager and download-client views of the library.

    The engine holds no state between calls to :meth:`analyze`. The only
    outside access it makes is through ``link_counter``, used for torrent
    files that were not part of the filesystem scan. Diagnostics go to
    ``logger``.
    """

    def __init__(
        self,
        config: EngineConfig,
        link_counter: Optional[LinkCounter] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.link_counter = link_counter or default_link_counter()
        self.logger = logger or logging.getLogger(__name__)
        self.auditor = PermissionAuditor(config.permission_policy)

    def analyze(
        self,
        media_files: Iterable[MediaFile],
        sonarr_files: Iterable[ArrFile] = (),
        radarr_files: Iterable[ArrFile] = (),
        torrents: Sequence[Torrent] = (),
        permissions: Iterable[PermissionRecord] = (),
        now: Optional[datetime] = None,
    ) -> AnalysisResult:
        """
        Run one reconciliation pass.

        Args:
            media_files: Files from the library and download trees
            sonarr_files: Records imported by Sonarr
            radarr_files: Records imported by Radarr
            torrents: qBittorrent jobs with their file lists
            permissions: Raw permission records, audited when enabled
            now: Reference time for grace windows, defaults to the current time

        Returns:
            The populated result; ``summary.duration`` is left for the caller.
        """
        now = now or utcnow()
        result = AnalysisResult()
        summary = result.summary

        arr_lookup = self._build_arr_lookup(sonarr_files, radarr_files, summary)

        scanned: Dict[str, MediaFile] = {}
        downloads = []

        for media in media_files:
            if has_prefix(media.path, self.config.skip_paths):
                continue

            summary.total_files += 1
            scanned[normalize(media.path)] = media

            if media.source == MediaSource.DOWNLOADS:
                downloads.append(media)
            else:
                self._classify_library_file(media, arr_lookup, now, result)

            is_suspicious, reason = detect_suspicious(
                media.path, self.config.suspicious_extensions, self.config.flag_archives
            )
            if is_suspicious:
                result.suspicious_files.append(SuspiciousFile(path=media.path, reason=reason))
                summary.suspicious_count += 1

        if downloads:
            self._classify_downloads(downloads, torrents, now, result)

        for torrent in torrents:
            if torrent.state != TorrentState.COMPLETED:
                continue
            if within_grace(torrent.completed_on, now, self.config.qbittorrent_grace_hours):
                continue
            if not self._has_linked_file(torrent, arr_lookup, scanned):
                result.unlinked_torrents.append(torrent)
                summary.unlinked_torrent_count += 1

        if self.config.permissions_enabled:
            self._audit_permissions(permissions, result)

        self.logger.debug(
            f"Analysis: {summary.total_files} files, {summary.healthy_count} healthy, "
            f"{summary.at_risk_count} at risk, {summary.orphan_count} orphaned, "
            f"{summary.unlinked_torrent_count} unlinked torrents"
        )
        return result

    def _lookup_key(self, path: str) -> str:
        return normalize(remap(path, self.config.path_mappings))

    def _build_arr_lookup(
        self,
        sonarr_files: Iterable[ArrFile],
        radarr_files: Iterable[ArrFile],
        summary: SummaryStats,
    ) -> ArrLookup:
        """Merge both managers' records; a later record replaces an earlier one."""
        lookup: ArrLookup = {}

        for arr_file in list(sonarr_files) + list(radarr_files):
            if not arr_file.is_known:
                continue

            key = self._lookup_key(arr_file.path)
            previous = lookup.get(key)
            if previous is not None and previous.service != arr_file.service:
                summary.arr_path_conflicts += 1
                self.logger.debug(
                    f"{key} claimed by both {previous.service} and {arr_file.service}, "
                    f"keeping {arr_file.service}"
                )
            lookup[key] = arr_file

        if summary.arr_path_conflicts:
            self.logger.warning(
                f"{summary.arr_path_conflicts} path(s) claimed by both Sonarr and Radarr; "
                f"Radarr records were used"
            )
        self.logger.debug(f"Built Arr lookup with {len(lookup)} paths")
        return lookup

    def _grace_hours_for(self, arr_file: Optional[ArrFile]) -> Hours:
        if arr_file is None:
            return 0
        if arr_file.series_id:
            return self.config.sonarr_grace_hours
        if arr_file.movie_id:
            return self.config.radarr_grace_hours
        return 0

    def _classify_library_file(
        self,
        media: MediaFile,
        arr_lookup: ArrLookup,
        now: datetime,
        result: AnalysisResult,
    ) -> None:
        arr_file = arr_lookup.get(normalize(media.path))
        classification, include = classify_media(
            media, arr_file, self._grace_hours_for(arr_file), now
        )
        if not include:
            self.logger.debug(f"Within grace window, skipping {media.path}")
            return

        if classification == Classification.ORPHAN and is_subtitle_file(media.path):
            return

        result.classified_media.append(ClassifiedMedia(
            file=media,
            known_to_arr=arr_file is not None and arr_file.is_known,
            arr_source=arr_file.service if arr_file else "",
            classification=classification,
            reason=reason_for(classification),
        ))

        if classification == Classification.HEALTHY:
            result.summary.healthy_count += 1
        elif classification == Classification.AT_RISK:
            result.summary.at_risk_count += 1
        else:
            result.summary.orphan_count += 1

    def _classify_downloads(
        self,
        downloads: Sequence[MediaFile],
        torrents: Sequence[Torrent],
        now: datetime,
        result: AnalysisResult,
    ) -> None:
        """Flag download-tree files that no torrent seeds and nothing links to."""
        seeded: Set[str] = set()
        for torrent in torrents:
            for name in torrent.files:
                seeded.add(self._lookup_key(posixpath.join(torrent.save_path, name)))

        for media in downloads:
            if within_grace(media.modified, now, self.config.qbittorrent_grace_hours):
                continue
            if media.is_hardlinked or normalize(media.path) in seeded:
                continue

            result.classified_media.append(ClassifiedMedia(
                file=media,
                classification=Classification.ORPHANED_DOWNLOAD,
                reason=reason_for(Classification.ORPHANED_DOWNLOAD),
            ))
            result.summary.orphaned_download_count += 1

    def _has_linked_file(
        self,
        torrent: Torrent,
        arr_lookup: ArrLookup,
        scanned: Dict[str, MediaFile],
    ) -> bool:
        for name in torrent.files:
            local_path = remap(posixpath.join(torrent.save_path, name), self.config.path_mappings)
            key = normalize(local_path)

            if key in arr_lookup:
                return True

            media = scanned.get(key)
            if media is not None:
                link_count = media.hardlink_count
            else:
                link_count = self.link_counter.get_link_count(local_path)

            self.logger.debug(f"torrent={torrent.name} file={local_path} nlink={link_count}")
            if link_count > 1:
                return True

        return False

    def _audit_permissions(
        self,
        permissions: Iterable[PermissionRecord],
        result: AnalysisResult,
    ) -> None:
        for record in permissions:
            if has_prefix(record.path, self.config.skip_paths):
                continue

            issues = self.auditor.audit(record)
            result.permission_issues.extend(issues)
            for issue in issues:
                if issue.severity == Severity.ERROR:
                    result.summary.permission_errors += 1
                elif issue.severity == Severity.WARNING:
                    result.summary.permission_warnings += 1
