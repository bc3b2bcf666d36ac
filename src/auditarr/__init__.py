"""auditarr: read-only health audit for Sonarr/Radarr/qBittorrent media libraries."""

__version__ = "0.1.0"
