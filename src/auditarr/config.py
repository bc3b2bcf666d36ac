"""Configuration management for auditarr."""

import os
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlparse

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from auditarr.core.engine import EngineConfig
from auditarr.core.models import Severity
from auditarr.core.permissions import PermissionPolicy
from auditarr.core.suspicious import DEFAULT_SUSPICIOUS_EXTENSIONS

DEFAULT_REPORT_DIR = "/var/lib/auditarr/reports"


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or is invalid."""


def _check_url(value: str) -> str:
    if not value:
        return value
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https"):
        raise ValueError("must use http or https scheme")
    if not parsed.netloc:
        raise ValueError("must have a host")
    return value.rstrip("/")


class ArrServiceConfig(BaseSettings):
    """Shared settings for Sonarr and Radarr."""

    url: str = Field(default="", description="Base URL; empty disables the service")
    api_key: str = Field(default="", description="API key")
    grace_hours: int = Field(default=48, description="Hours before a new import is judged")

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        return _check_url(value)


class SonarrConfig(ArrServiceConfig):
    """Sonarr connection settings."""

    model_config = SettingsConfigDict(env_prefix="SONARR_")


class RadarrConfig(ArrServiceConfig):
    """Radarr connection settings."""

    model_config = SettingsConfigDict(env_prefix="RADARR_")


class QBittorrentConfig(BaseSettings):
    """qBittorrent connection settings."""

    url: str = Field(default="", description="WebUI URL; empty disables the service")
    username: str = Field(default="admin", description="qBittorrent username")
    password: str = Field(default="", description="qBittorrent password")
    grace_hours: int = Field(default=24, description="Hours after completion before a torrent is judged")

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        return _check_url(value)

    model_config = SettingsConfigDict(env_prefix="QBIT_")


class PathsConfig(BaseSettings):
    """File system path settings."""

    media_root: Optional[Path] = Field(default=None, description="Library root to audit")
    torrent_root: Optional[Path] = Field(default=None, description="Download-client root")

    model_config = SettingsConfigDict(env_prefix="PATH_")


class SuspiciousConfig(BaseSettings):
    """Suspicious file detection settings."""

    extensions: List[str] = Field(default_factory=list)
    flag_archives: bool = False

    model_config = SettingsConfigDict(env_prefix="SUSPICIOUS_")


class PermissionsConfig(BaseSettings):
    """Expected ownership of the media tree."""

    enabled: bool = False
    group_gid: int = 0
    allowed_uids: List[int] = Field(default_factory=list)
    sgid_paths: List[str] = Field(default_factory=list)
    skip_paths: List[str] = Field(default_factory=list)
    nonstandard_severity: Severity = Severity.WARNING

    model_config = SettingsConfigDict(env_prefix="PERMISSIONS_")


class NotificationsConfig(BaseSettings):
    """Notification settings."""

    discord_webhook: str = ""

    model_config = SettingsConfigDict(env_prefix="NOTIFY_")


class OutputsConfig(BaseSettings):
    """Report output settings."""

    report_dir: str = DEFAULT_REPORT_DIR

    model_config = SettingsConfigDict(env_prefix="OUTPUT_")


class Config(BaseSettings):
    """Main configuration class."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    sonarr: SonarrConfig = Field(default_factory=SonarrConfig)
    radarr: RadarrConfig = Field(default_factory=RadarrConfig)
    qbittorrent: QBittorrentConfig = Field(default_factory=QBittorrentConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)
    suspicious: SuspiciousConfig = Field(default_factory=SuspiciousConfig)
    permissions: PermissionsConfig = Field(default_factory=PermissionsConfig)

    # Service-visible prefix -> local prefix
    path_mappings: Dict[str, str] = Field(default_factory=dict)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False
    )

    def apply_defaults(self) -> "Config":
        """Fill in values that depend on other settings."""
        if not self.suspicious.extensions:
            self.suspicious.extensions = list(DEFAULT_SUSPICIOUS_EXTENSIONS)

        if not self.path_mappings:
            if self.paths.media_root:
                self.path_mappings["/data/media"] = str(self.paths.media_root)
            if self.paths.torrent_root:
                self.path_mappings["/data/torrents"] = str(self.paths.torrent_root)

        return self

    def validate_required(self) -> None:
        if not self.paths.media_root:
            raise ConfigError("paths.media_root is required")

    def report_dir(self) -> Path:
        """Report directory with ``~`` and ``$HOME`` expanded."""
        return Path(os.path.expandvars(os.path.expanduser(self.outputs.report_dir)))

    def engine_config(self, skip_permissions: bool = False) -> EngineConfig:
        """Build the immutable settings the analysis engine runs with."""
        return EngineConfig(
            sonarr_grace_hours=self.sonarr.grace_hours,
            radarr_grace_hours=self.radarr.grace_hours,
            qbittorrent_grace_hours=self.qbittorrent.grace_hours,
            suspicious_extensions=tuple(self.suspicious.extensions),
            flag_archives=self.suspicious.flag_archives,
            permissions_enabled=self.permissions.enabled and not skip_permissions,
            permission_policy=PermissionPolicy(
                expected_gid=self.permissions.group_gid,
                allowed_uids=tuple(self.permissions.allowed_uids),
                sgid_paths=tuple(self.permissions.sgid_paths),
                nonstandard_severity=self.permissions.nonstandard_severity,
            ),
            skip_paths=tuple(self.permissions.skip_paths),
            path_mappings=dict(self.path_mappings),
        )

    @classmethod
    def load_from_yaml(cls, yaml_path: Path) -> "Config":
        """Load configuration from YAML file."""
        try:
            with open(yaml_path, 'r') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read config file {yaml_path}: {e}") from e

        if data is not None and not isinstance(data, dict):
            raise ConfigError(f"Config file {yaml_path} must contain a mapping")

        try:
            return cls(**data if data else {})
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {yaml_path}: {e}") from e

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from file or environment."""
        if config_path is not None:
            if not config_path.exists():
                raise ConfigError(f"Config file not found: {config_path}")
            return cls.load_from_yaml(config_path)

        # Try default locations
        default_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path.home() / ".auditarr" / "config.yaml",
            Path("/etc/auditarr/config.yaml"),
        ]

        for path in default_paths:
            if path.exists():
                return cls.load_from_yaml(path)

        # Fall back to environment variables
        try:
            return cls()
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e


def get_config(config_path: Optional[Path] = None) -> Config:
    """Load, complete and validate the configuration."""
    config = Config.load(config_path).apply_defaults()
    config.validate_required()
    return config
