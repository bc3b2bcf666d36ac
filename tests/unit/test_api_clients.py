"""Unit tests for the service client wrappers."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from auditarr.api.qbit_client import QBittorrentClient, completion_time, map_state
from auditarr.api.radarr_client import RadarrClient
from auditarr.api.sonarr_client import SonarrClient
from auditarr.config import QBittorrentConfig, RadarrConfig, SonarrConfig
from auditarr.core.models import TorrentState


class FakeTorrent(dict):
    """qBittorrent torrent entries allow both key and attribute access."""

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError as e:
            raise AttributeError(name) from e


@pytest.fixture
def sonarr_api():
    with patch("auditarr.api.sonarr_client.SonarrAPI") as api_class:
        yield api_class.return_value


@pytest.fixture
def radarr_api():
    with patch("auditarr.api.radarr_client.RadarrAPI") as api_class:
        yield api_class.return_value


@pytest.fixture
def qbit_api():
    with patch("auditarr.api.qbit_client.QBitClient") as client_class:
        yield client_class.return_value


class TestSonarrClient:
    """Tests for SonarrClient."""

    def test_episode_files(self, sonarr_api) -> None:
        sonarr_api.get_series.return_value = [
            {"id": 1, "title": "Show", "monitored": False, "statistics": {"episodeFileCount": 2}},
            {"id": 2, "title": "Empty", "statistics": {"episodeFileCount": 0}},
        ]
        sonarr_api.get_episode_file.return_value = [
            {"id": 11, "path": "/data/media/tv/Show/e1.mkv", "dateAdded": "2024-05-01T10:00:00Z"},
            {"id": 12, "path": ""},
        ]

        files = SonarrClient(SonarrConfig(url="http://sonarr:8989", api_key="k")).get_episode_files()

        sonarr_api.get_episode_file.assert_called_once_with(1, series=True)
        assert len(files) == 1
        assert files[0].path == "/data/media/tv/Show/e1.mkv"
        assert files[0].series_id == 1
        assert files[0].episode_id == 11
        assert files[0].monitored is False
        assert files[0].import_date == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
        assert files[0].is_known

    def test_series_failure_skipped(self, sonarr_api) -> None:
        sonarr_api.get_series.return_value = [{"id": 1, "title": "Broken"}, {"id": 2, "title": "Good"}]
        sonarr_api.get_episode_file.side_effect = [
            RuntimeError("boom"),
            [{"id": 21, "path": "/tv/Good/e1.mkv"}],
        ]

        files = SonarrClient(SonarrConfig(url="http://sonarr:8989")).get_episode_files()

        assert [f.path for f in files] == ["/tv/Good/e1.mkv"]

    def test_connection_failure_raises(self, sonarr_api) -> None:
        sonarr_api.get_system_status.side_effect = ConnectionError("refused")
        client = SonarrClient(SonarrConfig(url="http://sonarr:8989"))

        with pytest.raises(ConnectionError):
            client.test_connection()
        assert client._client is None


class TestRadarrClient:
    """Tests for RadarrClient."""

    def test_movie_files(self, radarr_api) -> None:
        radarr_api.get_movie.return_value = [
            {"id": 7, "hasFile": True, "movieFile": {"path": "/movies/Film/film.mkv"}},
            {"id": 8, "hasFile": False, "movieFile": None},
            {"id": 9, "hasFile": True},
        ]

        files = RadarrClient(RadarrConfig(url="http://radarr:7878")).get_movie_files()

        assert len(files) == 1
        assert files[0].movie_id == 7
        assert files[0].service == "radarr"
        assert files[0].import_date is None


class TestQBittorrentHelpers:
    """Tests for state and timestamp conversion."""

    @pytest.mark.parametrize("raw,expected", [
        ("downloading", TorrentState.DOWNLOADING),
        ("checkingUP", TorrentState.CHECKING),
        ("uploading", TorrentState.COMPLETED),
        ("pausedDL", TorrentState.PAUSED),
        ("stalledUP", TorrentState.STALLED),
        ("missingFiles", TorrentState.COMPLETED),
    ])
    def test_map_state(self, raw, expected) -> None:
        assert map_state(raw) == expected

    def test_completion_time(self) -> None:
        assert completion_time(-1) is None
        assert completion_time(0) is None
        assert completion_time(None) is None
        assert completion_time(86400) == datetime(1970, 1, 2, tzinfo=timezone.utc)


class TestQBittorrentClient:
    """Tests for QBittorrentClient."""

    def test_get_torrents(self, qbit_api) -> None:
        qbit_api.torrents_info.return_value = [
            FakeTorrent(hash="aaa", name="Show.S01", save_path="/data/torrents/tv",
                        state="stalledUP", completion_on=86400, size=100),
            FakeTorrent(hash="bbb", name="New", save_path="/data/torrents/tv",
                        state="downloading", completion_on=-1),
        ]

        def files_for(torrent_hash):
            if torrent_hash == "bbb":
                raise RuntimeError("gone")
            return [SimpleNamespace(name="Show.S01/e1.mkv")]

        qbit_api.torrents_files.side_effect = files_for

        torrents = QBittorrentClient(QBittorrentConfig(url="http://qbit:8080")).get_torrents()

        qbit_api.auth_log_in.assert_called_once()
        first, second = torrents
        assert first.files == ["Show.S01/e1.mkv"]
        assert first.state == TorrentState.STALLED
        assert first.size == 100
        assert first.content_path == "/data/torrents/tv/Show.S01"
        assert second.files == []
        assert second.completed_on is None
        assert second.state == TorrentState.DOWNLOADING

    def test_disconnect(self, qbit_api) -> None:
        client = QBittorrentClient(QBittorrentConfig(url="http://qbit:8080"))
        client.connect()
        client.disconnect()

        qbit_api.auth_log_out.assert_called_once()
        assert client._client is None
