"""Tabla estática de tópicos.

Cada tópico tiene una categoría de mensaje y su propio nivel de garantía de
entrega. La tabla es configuración fija; no se modifica en tiempo de
ejecución.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Iterator, Optional, Tuple


class DeliveryGuarantee(IntEnum):
    """Nivel de garantía de entrega (QoS MQTT)."""
    AT_MOST_ONCE = 0
    AT_LEAST_ONCE = 1
    EXACTLY_ONCE = 2


class MessageCategory(Enum):
    """Categorías de mensaje entregadas a los consumidores."""
    RECOMMENDATION = "recommendation"
    SENSOR = "sensor"
    STATUS = "status"
    ALERT = "alert"


@dataclass(frozen=True)
class TopicSubscription:
    """Una fila de la tabla de tópicos."""
    topic: str
    category: MessageCategory
    guarantee: DeliveryGuarantee


RECOMMENDATION_TOPIC = "health/recommendation"
SENSORS_TOPIC = "health/sensors"
STATUS_TOPIC = "health/status"
ALERTS_TOPIC = "health/alerts"

HEALTH_TOPICS: Tuple[TopicSubscription, ...] = (
    TopicSubscription(RECOMMENDATION_TOPIC, MessageCategory.RECOMMENDATION, DeliveryGuarantee.AT_LEAST_ONCE),
    TopicSubscription(SENSORS_TOPIC, MessageCategory.SENSOR, DeliveryGuarantee.AT_MOST_ONCE),
    TopicSubscription(STATUS_TOPIC, MessageCategory.STATUS, DeliveryGuarantee.AT_LEAST_ONCE),
    TopicSubscription(ALERTS_TOPIC, MessageCategory.ALERT, DeliveryGuarantee.EXACTLY_ONCE),
)


class TopicTable:
    """Índice tópico -> suscripción sobre una tabla fija."""

    def __init__(self, subscriptions: Tuple[TopicSubscription, ...] = HEALTH_TOPICS):
        topics = [s.topic for s in subscriptions]
        if len(set(topics)) != len(topics):
            raise ValueError("La tabla de tópicos contiene tópicos duplicados")

        self._subscriptions = tuple(subscriptions)
        self._by_topic: Dict[str, TopicSubscription] = {s.topic: s for s in subscriptions}

    def lookup(self, topic: str) -> Optional[TopicSubscription]:
        """Devuelve la suscripción del tópico, o None si es desconocido."""
        return self._by_topic.get(topic)

    def __iter__(self) -> Iterator[TopicSubscription]:
        return iter(self._subscriptions)

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __contains__(self, topic: object) -> bool:
        return topic in self._by_topic
