"""Shared test fixtures for auditarr."""

from datetime import datetime, timedelta, timezone
from typing import Dict

import pytest

from auditarr.core.engine import AnalysisEngine, EngineConfig
from auditarr.core.models import ArrFile, MediaFile, MediaSource, Torrent, TorrentState


class FakeLinkCounter:
    """Link counter backed by a dict; unknown paths have one link."""

    def __init__(self, counts: Dict[str, int] = None):
        self.counts = counts or {}
        self.calls = []

    def get_link_count(self, path: str) -> int:
        self.calls.append(path)
        return self.counts.get(path, 1)


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_media(now):
    """Build a MediaFile aged ``age_hours`` relative to ``now``."""

    def _make(
        path: str,
        age_hours: float = 240,
        links: int = 1,
        size: int = 1_000_000,
        source: MediaSource = MediaSource.LIBRARY,
    ) -> MediaFile:
        return MediaFile(
            path=path,
            size=size,
            modified=now - timedelta(hours=age_hours),
            hardlink_count=links,
            source=source,
        )

    return _make


@pytest.fixture
def make_torrent(now):
    def _make(
        name: str,
        files,
        save_path: str = "/data/torrents/tv",
        state: TorrentState = TorrentState.COMPLETED,
        completed_hours_ago=72,
    ) -> Torrent:
        completed_on = None
        if completed_hours_ago is not None:
            completed_on = now - timedelta(hours=completed_hours_ago)
        return Torrent(
            hash=name.lower().replace(" ", "")[:40],
            name=name,
            save_path=save_path,
            state=state,
            completed_on=completed_on,
            files=list(files),
        )

    return _make


@pytest.fixture
def sonarr_file():
    def _make(path: str, series_id: int = 1) -> ArrFile:
        return ArrFile(path=path, series_id=series_id, episode_id=10)

    return _make


@pytest.fixture
def radarr_file():
    def _make(path: str, movie_id: int = 7) -> ArrFile:
        return ArrFile(path=path, movie_id=movie_id)

    return _make


@pytest.fixture
def link_counter() -> FakeLinkCounter:
    return FakeLinkCounter()


@pytest.fixture
def engine(link_counter) -> AnalysisEngine:
    return AnalysisEngine(EngineConfig(), link_counter=link_counter)
