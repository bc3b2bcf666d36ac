"""Sonarr API client wrapper."""

from typing import List, Optional
import logging

from pyarr import SonarrAPI
from pyarr.exceptions import PyarrConnectionError

from auditarr.core.grace import parse_timestamp
from auditarr.core.models import ArrFile
from auditarr.config import SonarrConfig

logger = logging.getLogger(__name__)


class SonarrClient:
    """Client for interacting with Sonarr API."""

    def __init__(self, config: SonarrConfig):
        """Initialize Sonarr client."""
        self.config = config
        self._client: Optional[SonarrAPI] = None

    def connect(self) -> None:
        """Establish connection to Sonarr."""
        try:
            self._client = SonarrAPI(
                host_url=self.config.url,
                api_key=self.config.api_key
            )
            # Test connection
            self._client.get_system_status()
            logger.info(f"Connected to Sonarr at {self.config.url}")
        except PyarrConnectionError as e:
            logger.error(f"Failed to connect to Sonarr: {e}")
            self._client = None
            raise
        except Exception as e:
            logger.error(f"Failed to connect to Sonarr: {e}")
            self._client = None
            raise

    def test_connection(self) -> None:
        """Raise if Sonarr is unreachable or rejects the API key."""
        self.connect()

    def get_episode_files(self) -> List[ArrFile]:
        """Get every imported episode file, one record per file."""
        if not self._client:
            self.connect()

        try:
            series_list = self._client.get_series()
        except Exception as e:
            logger.error(f"Failed to get series from Sonarr: {e}")
            raise

        arr_files: List[ArrFile] = []

        for series in series_list:
            if series.get('statistics', {}).get('episodeFileCount', 1) == 0:
                continue

            try:
                episode_files = self._client.get_episode_file(series['id'], series=True)
            except Exception as e:
                logger.warning(f"Could not get episode files for series {series.get('title')}: {e}")
                continue

            # Handle both list and dict responses
            if not isinstance(episode_files, list):
                episode_files = [episode_files] if episode_files else []

            for episode_file in episode_files:
                if not isinstance(episode_file, dict) or not episode_file.get('path'):
                    continue
                arr_files.append(ArrFile(
                    path=episode_file['path'],
                    series_id=series['id'],
                    episode_id=episode_file.get('id'),
                    monitored=series.get('monitored', True),
                    import_date=parse_timestamp(episode_file.get('dateAdded')),
                ))

        logger.info(f"Retrieved {len(arr_files)} episode files from {len(series_list)} series in Sonarr")
        return arr_files
