"""Transport interface definitions.

The session owns exactly one transport per connection attempt and drives it
from the event loop; implementations must deliver listener callbacks on that
loop.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from modules.vitaband_mqtt.config import ConnectionTarget, SessionConfig
    from modules.vitaband_mqtt.topics import DeliveryGuarantee


class TransportListener(ABC):
    """Receives inbound events from a transport."""

    @abstractmethod
    def on_message(self, topic: str, payload: bytes) -> None:
        """Called for every message received on a subscribed topic."""
        pass

    @abstractmethod
    def on_connection_lost(self, reason: str) -> None:
        """Called once when an established connection drops."""
        pass


class BrokerTransport(ABC):
    """Interface for a single broker connection."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection and complete the protocol handshake.

        Raises:
            Exception: Any failure; the session wraps it in ConnectionFailed.
        """
        pass

    @abstractmethod
    async def subscribe(self, topic: str, guarantee: "DeliveryGuarantee") -> "DeliveryGuarantee":
        """Subscribe to a topic and return the guarantee granted by the broker."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Must tolerate a connection that already dropped."""
        pass


TransportFactory = Callable[["ConnectionTarget", "SessionConfig", TransportListener], BrokerTransport]
