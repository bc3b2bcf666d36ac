"""Audit runner that collects from every source and runs the engine."""

from typing import Callable, List, Optional, TypeVar
import time
import logging

from auditarr.config import Config
from auditarr.api.qbit_client import QBittorrentClient
from auditarr.api.radarr_client import RadarrClient
from auditarr.api.sonarr_client import SonarrClient
from auditarr.core.engine import AnalysisEngine
from auditarr.core.hardlink import LinkCounter, collect_permissions, scan_paths
from auditarr.core.models import AnalysisResult, PermissionRecord, ServiceStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AuditRunner:
    """Coordinates data collection and analysis for one audit."""

    def __init__(
        self,
        config: Config,
        sonarr_client: Optional[SonarrClient] = None,
        radarr_client: Optional[RadarrClient] = None,
        qbit_client: Optional[QBittorrentClient] = None,
        link_counter: Optional[LinkCounter] = None,
    ):
        """Initialize the audit runner."""
        self.config = config
        self.sonarr_client = sonarr_client or SonarrClient(config.sonarr)
        self.radarr_client = radarr_client or RadarrClient(config.radarr)
        self.qbit_client = qbit_client or QBittorrentClient(config.qbittorrent)
        self.link_counter = link_counter

    def run(self, skip_permissions: bool = False) -> AnalysisResult:
        """
        Collect from every configured source and analyze.

        A failing service never aborts the run: its records are replaced by
        an empty list and the failure shows up in ``connection_status``.

        Returns:
            Analysis result with connection status and total duration
        """
        logger.info("Starting media audit")
        start_time = time.monotonic()
        statuses: List[ServiceStatus] = []

        logger.info("Scanning filesystem...")
        media_files = scan_paths(
            self.config.paths.media_root,
            self.config.paths.torrent_root,
            self.link_counter,
        )
        logger.info(f"Found {len(media_files)} files")

        permissions: List[PermissionRecord] = []
        if self.config.permissions.enabled and not skip_permissions:
            logger.info("Collecting permission data...")
            permissions = collect_permissions(
                self.config.paths.media_root, self.config.permissions.skip_paths
            )

        sonarr_files = []
        if self.config.sonarr.enabled:
            logger.info("Fetching data from Sonarr...")
            sonarr_files = self._collect("Sonarr", self.sonarr_client.get_episode_files, statuses)

        radarr_files = []
        if self.config.radarr.enabled:
            logger.info("Fetching data from Radarr...")
            radarr_files = self._collect("Radarr", self.radarr_client.get_movie_files, statuses)

        torrents = []
        if self.config.qbittorrent.enabled:
            logger.info("Fetching data from qBittorrent...")
            torrents = self._collect("qBittorrent", self.qbit_client.get_torrents, statuses)
            self.qbit_client.disconnect()

        logger.info("Analyzing data...")
        engine = AnalysisEngine(
            self.config.engine_config(skip_permissions=skip_permissions),
            link_counter=self.link_counter,
        )
        result = engine.analyze(media_files, sonarr_files, radarr_files, torrents, permissions)

        result.connection_status = statuses
        result.summary.duration = time.monotonic() - start_time

        logger.info(f"Audit completed in {result.summary.duration:.2f}s")
        return result

    @staticmethod
    def _collect(name: str, fetch: Callable[[], List[T]], statuses: List[ServiceStatus]) -> List[T]:
        """Run one collector, turning any failure into an empty list."""
        try:
            records = fetch()
        except Exception as e:
            logger.warning(f"Failed to collect {name} data, continuing without it: {e}")
            statuses.append(ServiceStatus(name=name, ok=False, error=str(e)))
            return []

        statuses.append(ServiceStatus(name=name, ok=True))
        logger.info(f"Found {len(records)} {name} records")
        return records
