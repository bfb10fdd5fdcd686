"""Interfaces package for adapters.

Define interfaces para los colaboradores externos de la sesión."""

from .transport import BrokerTransport, TransportListener, TransportFactory
from .storage import KeyValueStoreInterface
from .notifications import NotificationServiceInterface
from .discovery import DiscoveryServiceInterface

__all__ = [
    "BrokerTransport",
    "TransportListener",
    "TransportFactory",
    "KeyValueStoreInterface",
    "NotificationServiceInterface",
    "DiscoveryServiceInterface",
]
