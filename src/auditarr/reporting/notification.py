"""Discord webhook notification with the audit summary."""

from typing import Any, Dict, Optional
import logging

import requests

from auditarr.core.models import AnalysisResult

logger = logging.getLogger(__name__)

COLOR_OK = 3447003
COLOR_WARNING = 16776960
COLOR_ERROR = 15158332


class NotificationError(Exception):
    """Raised when the webhook rejects or never receives the message."""


class DiscordNotifier:
    """Posts a summary embed to a Discord webhook."""

    def __init__(self, webhook_url: str, timeout: float = 30.0):
        self.webhook_url = webhook_url
        self.timeout = timeout

    @staticmethod
    def color_for(result: AnalysisResult) -> int:
        summary = result.summary
        if summary.orphan_count > 0 or summary.permission_errors > 0:
            return COLOR_ERROR
        if summary.at_risk_count > 0 or summary.permission_warnings > 0:
            return COLOR_WARNING
        return COLOR_OK

    def build_payload(self, result: AnalysisResult, report_path: Optional[str]) -> Dict[str, Any]:
        """Only the summary counters go into the message, never file lists."""
        summary = result.summary
        lines = [
            f"✅ {summary.healthy_count} healthy (tracked + hardlinked)",
            f"⚠️ {summary.at_risk_count} at risk (tracked, NOT hardlinked)",
            f"❌ {summary.orphan_count} orphaned (not tracked)",
            f"🚨 {summary.suspicious_count} suspicious file(s)",
        ]
        if summary.unlinked_torrent_count:
            lines.append(f"🔗 {summary.unlinked_torrent_count} unlinked torrent(s)")
        permission_total = summary.permission_errors + summary.permission_warnings
        if permission_total:
            lines.append(f"⚠️ {permission_total} permission issue(s)")

        return {
            "content": None,
            "embeds": [
                {
                    "title": "Media Audit Complete",
                    "color": self.color_for(result),
                    "fields": [
                        {"name": "Summary", "value": "\n".join(lines), "inline": False},
                        {"name": "Report Location", "value": report_path or "not written", "inline": False},
                    ],
                    "footer": {"text": f"Duration: {summary.duration:.1f}s"},
                }
            ],
        }

    def send(self, result: AnalysisResult, report_path: Optional[str] = None) -> bool:
        """
        Post the summary; does nothing when no webhook is configured.

        Returns:
            True if a message was delivered
        """
        if not self.webhook_url:
            return False

        try:
            response = requests.post(
                self.webhook_url,
                json=self.build_payload(result, report_path),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NotificationError(f"Failed to send webhook: {e}") from e

        if response.status_code not in (200, 204):
            raise NotificationError(f"Webhook returned status {response.status_code}")

        logger.info("Sent Discord notification")
        return True
