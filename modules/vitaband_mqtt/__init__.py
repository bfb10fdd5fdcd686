"""VitaBand MQTT Session

Módulo cliente para el broker de la pulsera VitaBand: conexión, suscripción
a los tópicos de salud con su QoS, reconexión automática y distribución de
mensajes tipados.
"""

from modules.vitaband_mqtt.codec import EnvelopeCodec
from modules.vitaband_mqtt.config import ConnectionTarget, SessionConfig
from modules.vitaband_mqtt.errors import (
    AlreadyConnecting,
    ConnectionFailed,
    MalformedMessage,
    SessionError,
    SubscriptionFailed,
    TransportLost,
)
from modules.vitaband_mqtt.fanout import ConsumerList, EventFanout
from modules.vitaband_mqtt.reconnect import ReconnectAttemptState, ReconnectPolicy
from modules.vitaband_mqtt.records import (
    Alert,
    AlertLevel,
    HistoryItem,
    Priority,
    Recommendation,
    SensorReading,
    SensorValues,
    StatusUpdate,
)
from modules.vitaband_mqtt.router import TopicRouter
from modules.vitaband_mqtt.session import HealthSession, SessionState
from modules.vitaband_mqtt.subscriptions import SubscriptionManager, SubscriptionReport
from modules.vitaband_mqtt.topics import (
    HEALTH_TOPICS,
    DeliveryGuarantee,
    MessageCategory,
    TopicSubscription,
    TopicTable,
)

__version__ = "1.0.0"
__all__ = [
    "HealthSession",
    "SessionState",
    "ConnectionTarget",
    "SessionConfig",
    "ReconnectPolicy",
    "ReconnectAttemptState",
    "SubscriptionManager",
    "SubscriptionReport",
    "TopicRouter",
    "EnvelopeCodec",
    "EventFanout",
    "ConsumerList",
    "TopicTable",
    "TopicSubscription",
    "HEALTH_TOPICS",
    "DeliveryGuarantee",
    "MessageCategory",
    "Recommendation",
    "SensorReading",
    "SensorValues",
    "StatusUpdate",
    "Alert",
    "AlertLevel",
    "Priority",
    "HistoryItem",
    "SessionError",
    "ConnectionFailed",
    "AlreadyConnecting",
    "MalformedMessage",
    "SubscriptionFailed",
    "TransportLost",
]
