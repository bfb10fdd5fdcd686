"""Composition root for the health session.

Builds one session and its collaborators. The application creates the
container once and passes it (or the session) to whatever needs it; there is
no module-level instance.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from adapters.interfaces.notifications import NotificationServiceInterface
from adapters.interfaces.storage import KeyValueStoreInterface
from adapters.interfaces.transport import TransportFactory
from infrastructure.key_value_store import InMemoryKeyValueStore
from infrastructure.notifications import LoggingNotificationService
from modules.vitaband_mqtt import HealthSession, SessionConfig
from modules.vitaband_storage import RecommendationHistory, SettingsStore


logger = logging.getLogger(__name__)


@dataclass
class SessionContainer:
    """Container for the session and its collaborators."""
    session: HealthSession
    store: KeyValueStoreInterface
    settings: SettingsStore
    history: RecommendationHistory
    notifier: NotificationServiceInterface


def create_session(
    config: Optional[SessionConfig] = None,
    store: Optional[KeyValueStoreInterface] = None,
    notifier: Optional[NotificationServiceInterface] = None,
    transport_factory: Optional[TransportFactory] = None,
    session_logger: Optional[logging.Logger] = None,
) -> SessionContainer:
    """Create and wire up a session.

    Args:
        config: Session configuration (defaults to ``SessionConfig.from_env()``)
        store: Key-value store (defaults to an in-memory store)
        notifier: Notification service (defaults to logging notifications)
        transport_factory: Transport factory (defaults to the CRT MQTT transport)
        session_logger: Logger injected into the session components
    """
    config = config or SessionConfig.from_env()
    store = store or InMemoryKeyValueStore()
    notifier = notifier or LoggingNotificationService()

    if transport_factory is None:
        from infrastructure.crt_mqtt_transport import crt_transport_factory
        transport_factory = crt_transport_factory

    settings = SettingsStore(store)
    history = RecommendationHistory(store, capacity=config.history_capacity)

    session = HealthSession(
        transport_factory,
        config=config,
        settings=settings,
        history=history,
        notifier=notifier,
        logger=session_logger,
    )

    logger.info("Health session created")
    return SessionContainer(
        session=session,
        store=store,
        settings=settings,
        history=history,
        notifier=notifier,
    )
