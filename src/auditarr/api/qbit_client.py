"""qBittorrent API client wrapper."""

from typing import List, Optional
from datetime import datetime, timezone
import logging

from qbittorrentapi import Client as QBitClient
from qbittorrentapi.exceptions import APIConnectionError

from auditarr.core.models import Torrent, TorrentState
from auditarr.config import QBittorrentConfig

logger = logging.getLogger(__name__)

# qBittorrent's own state names mapped onto the states the audit cares about.
# Anything unlisted (error, missingFiles, unknown) counts as completed.
STATE_MAP = {
    "downloading": TorrentState.DOWNLOADING,
    "metaDL": TorrentState.DOWNLOADING,
    "forcedMetaDL": TorrentState.DOWNLOADING,
    "forcedDL": TorrentState.DOWNLOADING,
    "queuedDL": TorrentState.DOWNLOADING,
    "allocating": TorrentState.DOWNLOADING,
    "checkingUP": TorrentState.CHECKING,
    "checkingDL": TorrentState.CHECKING,
    "checkingResumeData": TorrentState.CHECKING,
    "moving": TorrentState.CHECKING,
    "uploading": TorrentState.COMPLETED,
    "forcedUP": TorrentState.COMPLETED,
    "queuedUP": TorrentState.COMPLETED,
    "pausedUP": TorrentState.COMPLETED,
    "stoppedUP": TorrentState.COMPLETED,
    "pausedDL": TorrentState.PAUSED,
    "stoppedDL": TorrentState.PAUSED,
    "stalledUP": TorrentState.STALLED,
    "stalledDL": TorrentState.STALLED,
}


def map_state(state: str) -> TorrentState:
    return STATE_MAP.get(state, TorrentState.COMPLETED)


def completion_time(completion_on: Optional[int]) -> Optional[datetime]:
    """qBittorrent reports -1 or 0 for torrents that never finished."""
    if not completion_on or completion_on <= 0:
        return None
    return datetime.fromtimestamp(completion_on, tz=timezone.utc)


class QBittorrentClient:
    """Client for interacting with qBittorrent API."""

    def __init__(self, config: QBittorrentConfig):
        """Initialize qBittorrent client."""
        self.config = config
        self._client: Optional[QBitClient] = None

    def connect(self) -> None:
        """Establish connection to qBittorrent."""
        try:
            self._client = QBitClient(
                host=self.config.url,
                username=self.config.username,
                password=self.config.password,
            )
            self._client.auth_log_in()
            logger.info(f"Connected to qBittorrent at {self.config.url}")
        except APIConnectionError as e:
            logger.error(f"Failed to connect to qBittorrent: {e}")
            self._client = None
            raise

    def disconnect(self) -> None:
        """Disconnect from qBittorrent."""
        if self._client:
            try:
                self._client.auth_log_out()
                logger.info("Disconnected from qBittorrent")
            except APIConnectionError as e:
                logger.warning(f"Failed to log out of qBittorrent: {e}")
            self._client = None

    def test_connection(self) -> None:
        """Raise if qBittorrent is unreachable or rejects the login."""
        self.connect()

    def get_torrents(self) -> List[Torrent]:
        """Get all torrents with their file lists."""
        if not self._client:
            self.connect()

        try:
            torrents = self._client.torrents_info()
        except Exception as e:
            logger.error(f"Failed to get torrents: {e}")
            raise

        torrent_list = []

        for torrent in torrents:
            try:
                files = [f.name for f in self._client.torrents_files(torrent_hash=torrent.hash)]
            except Exception as e:
                logger.warning(f"Failed to fetch files for torrent {torrent.hash}: {e}")
                files = []

            torrent_list.append(Torrent(
                hash=torrent.hash,
                name=torrent.name,
                save_path=torrent.save_path,
                state=map_state(torrent.state),
                completed_on=completion_time(torrent.get("completion_on")),
                size=torrent.get("size", 0) or 0,
                files=files,
            ))

        logger.info(f"Retrieved {len(torrent_list)} torrents from qBittorrent")
        return torrent_list
