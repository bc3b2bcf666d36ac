"""Unit tests for the signal-combination engine."""

import logging

import pytest

from auditarr.core.engine import AnalysisEngine, EngineConfig
from auditarr.core.models import (
    ArrFile,
    Classification,
    MediaSource,
    PermissionRecord,
    TorrentState,
)
from auditarr.core.permissions import PermissionPolicy

EPISODE = "/media/tv/Show/S01E01.mkv"


# =============================================================================
# Media classification
# =============================================================================


class TestMediaClassification:
    """End-to-end classification through AnalysisEngine.analyze()."""

    def test_healthy(self, engine, make_media, sonarr_file, now) -> None:
        result = engine.analyze([make_media(EPISODE, links=2)], [sonarr_file(EPISODE)], now=now)

        assert [c.classification for c in result.classified_media] == [Classification.HEALTHY]
        assert result.classified_media[0].arr_source == "sonarr"
        assert result.classified_media[0].known_to_arr is True
        assert result.summary.healthy_count == 1

    def test_at_risk(self, engine, make_media, sonarr_file, now) -> None:
        result = engine.analyze([make_media(EPISODE, links=1)], [sonarr_file(EPISODE)], now=now)

        assert [c.classification for c in result.classified_media] == [Classification.AT_RISK]
        assert result.summary.at_risk_count == 1

    def test_recent_known_file_excluded(self, engine, make_media, sonarr_file, now) -> None:
        result = engine.analyze(
            [make_media(EPISODE, age_hours=2, links=1)], [sonarr_file(EPISODE)], now=now
        )

        assert result.classified_media == []
        assert result.summary.at_risk_count == 0
        assert result.summary.total_files == 1

    def test_unknown_file_gets_no_grace(self, engine, make_media, now) -> None:
        result = engine.analyze([make_media("/media/tv/new.mkv", age_hours=1)], now=now)

        assert [c.classification for c in result.classified_media] == [Classification.ORPHAN]
        assert result.classified_media[0].known_to_arr is False
        assert result.summary.orphan_count == 1

    def test_grace_follows_claiming_manager(self, make_media, sonarr_file, radarr_file, now) -> None:
        engine = AnalysisEngine(EngineConfig(sonarr_grace_hours=1, radarr_grace_hours=100))
        tv = make_media("/media/tv/a.mkv", age_hours=10)
        movie = make_media("/media/movies/b.mkv", age_hours=10)

        result = engine.analyze(
            [tv, movie],
            [sonarr_file("/media/tv/a.mkv")],
            [radarr_file("/media/movies/b.mkv")],
            now=now,
        )

        assert [c.file.path for c in result.classified_media] == ["/media/tv/a.mkv"]

    def test_orphan_subtitle_dropped(self, engine, make_media, now) -> None:
        result = engine.analyze([make_media("/media/tv/Show/S01E01.en.srt")], now=now)

        assert result.classified_media == []
        assert result.summary.orphan_count == 0

    def test_known_subtitle_kept(self, engine, make_media, sonarr_file, now) -> None:
        path = "/media/tv/Show/S01E01.en.srt"
        result = engine.analyze([make_media(path)], [sonarr_file(path)], now=now)

        assert result.summary.at_risk_count == 1

    def test_lookup_is_case_insensitive_and_remapped(self, make_media, radarr_file, now) -> None:
        engine = AnalysisEngine(EngineConfig(path_mappings={"/movies": "/mnt/media/movies"}))
        media = make_media("/mnt/media/Movies/Film (2020)/Film.mkv", links=2)

        result = engine.analyze([media], radarr_files=[radarr_file("/movies/film (2020)//Film.mkv")], now=now)

        assert result.classified_media[0].classification == Classification.HEALTHY
        assert result.classified_media[0].arr_source == "radarr"

    def test_doubled_leading_slash_matches(self, engine, make_media, sonarr_file, now) -> None:
        media = make_media("/data/media/tv/a.mkv", links=2)

        result = engine.analyze([media], [sonarr_file("//data/media/tv/a.mkv")], now=now)

        assert [c.classification for c in result.classified_media] == [Classification.HEALTHY]
        assert result.summary.healthy_count == 1

    def test_unknown_records_ignored(self, engine, make_media, now) -> None:
        record = ArrFile(path=EPISODE)
        result = engine.analyze([make_media(EPISODE, links=2)], [record], now=now)

        assert result.classified_media[0].classification == Classification.ORPHAN

    def test_skip_paths(self, make_media, now) -> None:
        engine = AnalysisEngine(EngineConfig(skip_paths=("/media/tv/.Trash",)))
        result = engine.analyze([make_media("/media/tv/.Trash/x.exe")], now=now)

        assert result.summary.total_files == 0
        assert result.classified_media == []
        assert result.suspicious_files == []

    def test_missing_manager_data_degrades_to_orphans(self, engine, make_media, now) -> None:
        files = [make_media(EPISODE, links=2), make_media("/media/movies/m.mkv", links=2)]
        result = engine.analyze(files, [], [], [], [], now=now)

        assert result.summary.orphan_count == 2
        assert result.summary.healthy_count == 0


class TestConflicts:
    """Same path claimed by both managers."""

    def test_last_writer_wins_and_is_counted(self, engine, make_media, sonarr_file, radarr_file, now) -> None:
        result = engine.analyze(
            [make_media(EPISODE, links=2)],
            [sonarr_file(EPISODE)],
            [radarr_file(EPISODE)],
            now=now,
        )

        assert result.classified_media[0].arr_source == "radarr"
        assert result.summary.arr_path_conflicts == 1

    def test_duplicate_within_one_manager_not_a_conflict(self, engine, make_media, sonarr_file, now) -> None:
        result = engine.analyze(
            [make_media(EPISODE, links=2)],
            [sonarr_file(EPISODE), sonarr_file(EPISODE, series_id=2)],
            now=now,
        )

        assert result.summary.arr_path_conflicts == 0


# =============================================================================
# Suspicious files
# =============================================================================


class TestSuspicious:
    """Suspicious detection inside the engine."""

    def test_flagged_independently_of_grace(self, engine, make_media, sonarr_file, now) -> None:
        path = "/media/tv/Show/S01E01.mkv.exe"
        result = engine.analyze([make_media(path, age_hours=1)], [sonarr_file(path)], now=now)

        assert result.classified_media == []
        assert [(s.path, s.reason) for s in result.suspicious_files] == [(path, "double_extension")]
        assert result.summary.suspicious_count == 1

    def test_archives_respect_flag(self, make_media, now) -> None:
        files = [make_media("/media/tv/pack.zip")]

        quiet = AnalysisEngine(EngineConfig()).analyze(files, now=now)
        loud = AnalysisEngine(EngineConfig(flag_archives=True)).analyze(files, now=now)

        assert quiet.suspicious_files == []
        assert len(loud.suspicious_files) == 1


# =============================================================================
# Torrents
# =============================================================================


class TestUnlinkedTorrents:
    """Completed torrents with no protected or managed copy."""

    def test_unlinked_when_nothing_matches(self, engine, make_torrent, now) -> None:
        torrent = make_torrent("Show.S01", ["Show.S01/e1.mkv", "Show.S01/e2.mkv"])

        result = engine.analyze([], torrents=[torrent], now=now)

        assert result.unlinked_torrents == [torrent]
        assert result.summary.unlinked_torrent_count == 1

    def test_linked_when_any_file_hardlinked(self, make_torrent, link_counter, now) -> None:
        link_counter.counts["/data/torrents/tv/Show.S01/e2.mkv"] = 2
        engine = AnalysisEngine(EngineConfig(), link_counter=link_counter)
        torrent = make_torrent("Show.S01", ["Show.S01/e1.mkv", "Show.S01/e2.mkv"])

        result = engine.analyze([], torrents=[torrent], now=now)

        assert result.unlinked_torrents == []

    def test_scanned_file_used_before_stat(self, engine, make_media, make_torrent, link_counter, now) -> None:
        scanned = make_media("/data/torrents/tv/Show.S01/e1.mkv", links=2, source=MediaSource.DOWNLOADS)
        torrent = make_torrent("Show.S01", ["Show.S01/e1.mkv"])

        result = engine.analyze([scanned], torrents=[torrent], now=now)

        assert result.unlinked_torrents == []
        assert link_counter.calls == []

    def test_linked_when_known_to_manager(self, engine, make_torrent, radarr_file, now) -> None:
        torrent = make_torrent("Film", ["Film/Film.mkv"], save_path="/data/torrents/movies")

        result = engine.analyze(
            [], radarr_files=[radarr_file("/data/torrents/movies/Film/Film.mkv")], torrents=[torrent], now=now
        )

        assert result.unlinked_torrents == []

    def test_save_path_remapped(self, make_torrent, link_counter, now) -> None:
        link_counter.counts["/mnt/torrents/tv/e1.mkv"] = 3
        engine = AnalysisEngine(
            EngineConfig(path_mappings={"/data/torrents": "/mnt/torrents"}), link_counter=link_counter
        )

        result = engine.analyze([], torrents=[make_torrent("e1", ["e1.mkv"])], now=now)

        assert result.unlinked_torrents == []
        assert link_counter.calls == ["/mnt/torrents/tv/e1.mkv"]

    @pytest.mark.parametrize("state", [
        TorrentState.DOWNLOADING, TorrentState.CHECKING, TorrentState.PAUSED, TorrentState.STALLED,
    ])
    def test_only_completed_considered(self, engine, make_torrent, state, now) -> None:
        result = engine.analyze([], torrents=[make_torrent("x", ["x.mkv"], state=state)], now=now)

        assert result.unlinked_torrents == []

    def test_recently_completed_skipped(self, engine, make_torrent, now) -> None:
        torrent = make_torrent("x", ["x.mkv"], completed_hours_ago=3)

        result = engine.analyze([], torrents=[torrent], now=now)

        assert result.unlinked_torrents == []

    def test_missing_completion_time_skipped(self, engine, make_torrent, now) -> None:
        torrent = make_torrent("x", ["x.mkv"], completed_hours_ago=None)

        result = engine.analyze([], torrents=[torrent], now=now)

        assert result.unlinked_torrents == []


class TestOrphanedDownloads:
    """Download-tree files that no torrent seeds."""

    def test_unseeded_single_link_file(self, engine, make_media, now) -> None:
        stray = make_media("/data/torrents/tv/leftover.mkv", source=MediaSource.DOWNLOADS)

        result = engine.analyze([stray], now=now)

        assert [c.classification for c in result.classified_media] == [Classification.ORPHANED_DOWNLOAD]
        assert result.summary.orphaned_download_count == 1
        assert result.summary.orphan_count == 0

    def test_seeded_file_not_flagged(self, engine, make_media, make_torrent, now) -> None:
        seeded = make_media("/data/torrents/tv/Show/e1.mkv", source=MediaSource.DOWNLOADS)
        torrent = make_torrent("Show", ["Show/e1.mkv"], state=TorrentState.STALLED)

        result = engine.analyze([seeded], torrents=[torrent], now=now)

        assert result.classified_media == []

    def test_hardlinked_or_recent_not_flagged(self, engine, make_media, now) -> None:
        files = [
            make_media("/data/torrents/a.mkv", links=2, source=MediaSource.DOWNLOADS),
            make_media("/data/torrents/b.mkv", age_hours=1, source=MediaSource.DOWNLOADS),
        ]

        result = engine.analyze(files, now=now)

        assert result.classified_media == []


# =============================================================================
# Permissions
# =============================================================================


class TestPermissionAuditing:
    """Permission records routed through the engine."""

    @pytest.fixture
    def records(self):
        return [
            PermissionRecord(path="/media/tv", mode=0o40775, owner_uid=0, group_gid=100, is_directory=True),
            PermissionRecord(path="/media/tv/e1.mkv", mode=0o100644, owner_uid=1001, group_gid=0),
            PermissionRecord(path="/media/skip/e2.mkv", mode=0o100600, owner_uid=0, group_gid=0),
        ]

    def test_disabled_by_default(self, engine, records, now) -> None:
        result = engine.analyze([], permissions=records, now=now)

        assert result.permission_issues == []

    def test_counts_by_severity(self, records, now) -> None:
        engine = AnalysisEngine(EngineConfig(
            permissions_enabled=True,
            permission_policy=PermissionPolicy(
                expected_gid=100, allowed_uids=(1001, 1002), sgid_paths=("/media",)
            ),
            skip_paths=("/media/skip",),
        ))

        result = engine.analyze([], permissions=records, now=now)

        kinds = sorted((i.path, i.issue) for i in result.permission_issues)
        assert kinds == [
            ("/media/tv", "missing_sgid"),
            ("/media/tv", "wrong_owner"),
            ("/media/tv/e1.mkv", "not_group_writable"),
            ("/media/tv/e1.mkv", "wrong_group"),
        ]
        assert result.summary.permission_errors == 1
        assert result.summary.permission_warnings == 3


# =============================================================================
# Engine properties
# =============================================================================


class TestEngineProperties:
    """Idempotence and injected collaborators."""

    def test_idempotent(self, engine, make_media, make_torrent, sonarr_file, now) -> None:
        media = [
            make_media(EPISODE, links=2),
            make_media("/media/tv/Show/S01E02.mkv"),
            make_media("/media/tv/Show/bonus.mkv.exe"),
        ]
        sonarr = [sonarr_file(EPISODE), sonarr_file("/media/tv/Show/S01E02.mkv")]
        torrents = [make_torrent("t", ["t.mkv"])]

        first = engine.analyze(media, sonarr, [], torrents, [], now=now)
        second = engine.analyze(media, sonarr, [], torrents, [], now=now)

        assert first == second
        assert first.summary.total_files == 3

    def test_config_is_frozen(self) -> None:
        config = EngineConfig()
        with pytest.raises(Exception):
            config.sonarr_grace_hours = 1

    def test_diagnostics_go_to_injected_logger(self, make_media, sonarr_file, radarr_file, now, caplog) -> None:
        sink = logging.getLogger("auditarr.test.sink")
        engine = AnalysisEngine(EngineConfig(), logger=sink)

        with caplog.at_level(logging.DEBUG, logger="auditarr.test.sink"):
            engine.analyze(
                [make_media(EPISODE)], [sonarr_file(EPISODE)], [radarr_file(EPISODE)], now=now
            )

        assert any(r.name == "auditarr.test.sink" for r in caplog.records)
        assert any("claimed by both" in r.getMessage() for r in caplog.records)
