"""Notification service interface definitions."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from modules.vitaband_mqtt.records import Alert


class NotificationServiceInterface(ABC):
    """Interface for user-facing notifications.

    Calls are fire-and-forget from the router's point of view: failures are
    logged by the caller and never propagated.
    """

    @abstractmethod
    async def show_alert(self, alert: "Alert") -> None:
        """Show a health alert."""
        pass

    @abstractmethod
    async def show_recommendation(self, message: str, priority: str) -> None:
        """Show a recommendation notification."""
        pass
