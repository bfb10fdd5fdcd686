"""Broker discovery interface definitions."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from modules.vitaband_mqtt.config import ConnectionTarget


class DiscoveryServiceInterface(ABC):
    """Produces broker candidates through callbacks."""

    @abstractmethod
    def start_scan(
        self,
        on_found: Callable[["ConnectionTarget"], None],
        on_timeout: Callable[[], None],
    ) -> None:
        """Start scanning; ``on_found`` is called once per new candidate."""
        pass

    @abstractmethod
    def stop_scan(self) -> None:
        """Stop scanning. Safe to call when no scan is running."""
        pass
