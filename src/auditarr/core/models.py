"""Data models for auditarr."""

from enum import Enum
from pathlib import Path
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, computed_field


class MediaSource(str, Enum):
    """Which scanned tree a file came from."""

    LIBRARY = "library"
    DOWNLOADS = "downloads"


class Classification(str, Enum):
    """Health verdict for a scanned file."""

    HEALTHY = "healthy"
    AT_RISK = "at_risk"
    ORPHAN = "orphan"
    ORPHANED_DOWNLOAD = "orphaned_download"


class TorrentState(str, Enum):
    """Lifecycle state of a download-client job."""

    DOWNLOADING = "downloading"
    CHECKING = "checking"
    COMPLETED = "completed"
    PAUSED = "paused"
    STALLED = "stalled"


class Severity(str, Enum):
    """Severity of a permission issue."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class MediaFile(BaseModel):
    """Represents a media file on the filesystem."""

    model_config = ConfigDict(frozen=True)

    path: str
    size: int = 0
    modified: datetime
    hardlink_count: int = 1
    source: MediaSource = MediaSource.LIBRARY

    @computed_field
    @property
    def is_hardlinked(self) -> bool:
        return self.hardlink_count > 1


class ArrFile(BaseModel):
    """A file that Sonarr or Radarr claims to have imported."""

    model_config = ConfigDict(frozen=True)

    path: str
    series_id: Optional[int] = None
    episode_id: Optional[int] = None
    movie_id: Optional[int] = None
    monitored: bool = True
    import_date: Optional[datetime] = None

    @property
    def is_known(self) -> bool:
        """Known means the manager gave a path and an owning series or movie."""
        return bool(self.path) and (bool(self.series_id) or bool(self.movie_id))

    @property
    def service(self) -> str:
        if self.series_id:
            return "sonarr"
        if self.movie_id:
            return "radarr"
        return ""


class Torrent(BaseModel):
    """Information about a torrent from qBittorrent."""

    model_config = ConfigDict(frozen=True)

    hash: str
    name: str
    save_path: str
    state: TorrentState
    completed_on: Optional[datetime] = None  # None until the download finishes
    size: int = 0
    files: List[str] = Field(default_factory=list)

    @property
    def content_path(self) -> str:
        return str(Path(self.save_path) / self.name)


class PermissionRecord(BaseModel):
    """Raw ownership and mode bits of a filesystem entry."""

    model_config = ConfigDict(frozen=True)

    path: str
    mode: int
    owner_uid: int
    group_gid: int
    is_directory: bool = False

    @property
    def has_sgid(self) -> bool:
        return bool(self.mode & 0o2000)

    @property
    def group_writable(self) -> bool:
        return bool(self.mode & 0o020)

    @property
    def mode_string(self) -> str:
        """Render the mode the way ``ls -l`` does, e.g. ``drwxrwsr-x``."""
        chars = ["d" if self.is_directory else "-"]
        for shift in (6, 3, 0):
            bits = (self.mode >> shift) & 0o7
            chars.append("r" if bits & 0o4 else "-")
            chars.append("w" if bits & 0o2 else "-")
            chars.append("x" if bits & 0o1 else "-")
        if self.has_sgid:
            chars[6] = "s" if chars[6] == "x" else "S"
        return "".join(chars)


class PermissionIssue(BaseModel):
    """One deviation from the expected ownership policy."""

    path: str
    issue: str
    severity: Severity
    fix_hint: str
    current_mode: int = 0
    owner: int = -1
    group: int = -1


class ClassifiedMedia(BaseModel):
    """A scanned file together with its verdict."""

    file: MediaFile
    known_to_arr: bool = False
    arr_source: str = ""
    classification: Classification
    reason: str


class SuspiciousFile(BaseModel):
    """File whose name suggests non-media content."""

    path: str
    reason: str


class ServiceStatus(BaseModel):
    """Connection outcome for one external service."""

    name: str
    enabled: bool = True
    ok: bool = False
    error: str = ""


class SummaryStats(BaseModel):
    """Counters from one analysis pass."""

    total_files: int = 0
    healthy_count: int = 0
    at_risk_count: int = 0
    orphan_count: int = 0
    orphaned_download_count: int = 0
    suspicious_count: int = 0
    unlinked_torrent_count: int = 0
    permission_errors: int = 0
    permission_warnings: int = 0
    arr_path_conflicts: int = 0
    duration: float = 0.0


class AnalysisResult(BaseModel):
    """Complete output of one audit run."""

    classified_media: List[ClassifiedMedia] = Field(default_factory=list)
    suspicious_files: List[SuspiciousFile] = Field(default_factory=list)
    unlinked_torrents: List[Torrent] = Field(default_factory=list)
    permission_issues: List[PermissionIssue] = Field(default_factory=list)
    connection_status: List[ServiceStatus] = Field(default_factory=list)
    summary: SummaryStats = Field(default_factory=SummaryStats)

    def by_classification(self, classification: Classification) -> List[ClassifiedMedia]:
        """Entries with the given verdict, sorted by path."""
        entries = [c for c in self.classified_media if c.classification == classification]
        return sorted(entries, key=lambda c: c.file.path)

    @property
    def has_findings(self) -> bool:
        return self.summary.orphan_count > 0 or self.summary.at_risk_count > 0
