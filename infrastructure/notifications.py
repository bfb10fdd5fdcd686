"""Notification service that writes notifications to the log.

Platform push notifications are outside this package; this implementation
keeps the titles and levels used by the mobile app.
"""

import logging
from typing import List, Tuple

from adapters.interfaces.notifications import NotificationServiceInterface
from modules.vitaband_mqtt.records import Alert


logger = logging.getLogger(__name__)

_ALERT_TITLES = {
    "critical": "Critical Health Alert",
    "warning": "Health Warning",
}

_RECOMMENDATION_TITLES = {
    "critical": "Critical Alert",
    "warning": "Warning",
    "caution": "Caution",
}


class LoggingNotificationService(NotificationServiceInterface):
    """Logs each notification and keeps the last ones for inspection."""

    def __init__(self, keep_last: int = 50):
        self.keep_last = keep_last
        self.sent: List[Tuple[str, str]] = []

    def _remember(self, title: str, message: str) -> None:
        self.sent.append((title, message))
        del self.sent[:-self.keep_last]

    async def show_alert(self, alert: Alert) -> None:
        title = _ALERT_TITLES.get(alert.level.value, "Health Alert")
        logger.warning(f"[{title}] {alert.message} (labels: {', '.join(alert.labels) or '-'})")
        self._remember(title, alert.message)

    async def show_recommendation(self, message: str, priority: str) -> None:
        title = _RECOMMENDATION_TITLES.get(priority, "Health Recommendation")
        level = logging.WARNING if priority in ("warning", "critical") else logging.INFO
        logger.log(level, f"[{title}] {message}")
        self._remember(title, message)
