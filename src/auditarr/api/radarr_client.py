"""Radarr API client wrapper."""

from typing import List, Optional
import logging

from pyarr import RadarrAPI
from pyarr.exceptions import PyarrConnectionError

from auditarr.core.grace import parse_timestamp
from auditarr.core.models import ArrFile
from auditarr.config import RadarrConfig

logger = logging.getLogger(__name__)


class RadarrClient:
    """Client for interacting with Radarr API."""

    def __init__(self, config: RadarrConfig):
        """Initialize Radarr client."""
        self.config = config
        self._client: Optional[RadarrAPI] = None

    def connect(self) -> None:
        """Establish connection to Radarr."""
        try:
            self._client = RadarrAPI(host_url=self.config.url, api_key=self.config.api_key)
            # Test connection
            self._client.get_system_status()
            logger.info(f"Connected to Radarr at {self.config.url}")
        except PyarrConnectionError as e:
            logger.error(f"Failed to connect to Radarr: {e}")
            self._client = None
            raise
        except Exception as e:
            logger.error(f"Failed to connect to Radarr: {e}")
            self._client = None
            raise

    def test_connection(self) -> None:
        """Raise if Radarr is unreachable or rejects the API key."""
        self.connect()

    def get_movie_files(self) -> List[ArrFile]:
        """Get the imported file of every movie that has one."""
        if not self._client:
            self.connect()

        try:
            movies = self._client.get_movie()
        except Exception as e:
            logger.error(f"Failed to get movies from Radarr: {e}")
            raise

        arr_files: List[ArrFile] = []

        for movie in movies:
            movie_file = movie.get("movieFile")
            if not movie.get("hasFile") or not movie_file or not movie_file.get("path"):
                continue

            arr_files.append(ArrFile(
                path=movie_file["path"],
                movie_id=movie["id"],
                monitored=movie.get("monitored", True),
                import_date=parse_timestamp(movie_file.get("dateAdded")),
            ))

        logger.info(f"Retrieved {len(arr_files)} movie files from Radarr")
        return arr_files
