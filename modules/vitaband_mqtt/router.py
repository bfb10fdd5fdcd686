"""Enrutado de mensajes entrantes.

Tópico -> categoría -> registro tipado -> consumidor, con los efectos
laterales de cada categoría:

- Recomendación: se guarda en el historial y como última recomendación antes
  de entregarla; ``warning`` y ``critical`` además notifican.
- Alerta: siempre notifica, sin mirar las preferencias del usuario.
- Sensores y estado: sólo se entregan.

Ningún error del flujo de mensajes sale del router.
"""

import logging
from typing import TYPE_CHECKING, Callable, Optional, Union

from modules.vitaband_mqtt.codec import EnvelopeCodec
from modules.vitaband_mqtt.errors import MalformedMessage, SessionError
from modules.vitaband_mqtt.fanout import EventFanout
from modules.vitaband_mqtt.records import Alert, Recommendation
from modules.vitaband_mqtt.topics import MessageCategory, TopicTable

if TYPE_CHECKING:
    from adapters.interfaces.notifications import NotificationServiceInterface
    from modules.vitaband_storage.history import RecommendationHistory


ErrorReporter = Callable[[SessionError], None]


class TopicRouter:
    """Decodifica y distribuye mensajes según la tabla de tópicos."""

    def __init__(
        self,
        fanout: EventFanout,
        topics: Optional[TopicTable] = None,
        codec: Optional[EnvelopeCodec] = None,
        history: Optional["RecommendationHistory"] = None,
        notifier: Optional["NotificationServiceInterface"] = None,
        report_error: Optional[ErrorReporter] = None,
        is_active: Optional[Callable[[], bool]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Inicializa el router.

        Args:
            fanout: Distribuidor de registros a consumidores
            topics: Tabla de tópicos (por defecto los cuatro de salud)
            codec: Códec de sobres
            history: Historial de recomendaciones (opcional)
            notifier: Servicio de notificaciones (opcional)
            report_error: Callback para errores descartados
            is_active: Si devuelve False, los registros se descartan antes de entregarse
            logger: Logger a usar
        """
        self.fanout = fanout
        self.topics = topics or TopicTable()
        self.codec = codec or EnvelopeCodec()
        self.history = history
        self.notifier = notifier
        self._report_error = report_error
        self._is_active = is_active
        self.logger = logger or logging.getLogger(__name__)

    async def route(self, topic: str, payload: Union[bytes, str]) -> bool:
        """Procesa un mensaje entrante.

        Args:
            topic: Tópico MQTT
            payload: Payload JSON

        Returns:
            True si el mensaje se decodificó y se entregó a la distribución
        """
        subscription = self.topics.lookup(topic)
        if subscription is None:
            self.logger.warning(f"Tópico desconocido, mensaje descartado: {topic}")
            return False

        try:
            record = self.codec.decode(topic, subscription.category, payload)
        except MalformedMessage as e:
            self.logger.warning(f"{e}")
            self._report(e)
            return False

        self.logger.debug(f"Mensaje recibido en {topic}")

        if subscription.category is MessageCategory.RECOMMENDATION:
            await self._on_recommendation(record)
        elif subscription.category is MessageCategory.ALERT:
            await self._on_alert(record)

        if self._is_active is not None and not self._is_active():
            self.logger.debug(f"Sesión inactiva, mensaje de {topic} descartado")
            return False

        self.fanout.deliver(subscription.category, record)
        return True

    async def _on_recommendation(self, recommendation: Recommendation) -> None:
        if self.history is not None:
            try:
                await self.history.add(recommendation)
                await self.history.save_last(recommendation)
            except Exception as e:
                self.logger.error(f"Error guardando recomendación: {e}")

        if self.notifier is None or not recommendation.priority.requires_notification:
            return
        try:
            await self.notifier.show_recommendation(recommendation.message, recommendation.priority.value)
        except Exception as e:
            self.logger.error(f"Error mostrando notificación de recomendación: {e}")

    async def _on_alert(self, alert: Alert) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.show_alert(alert)
        except Exception as e:
            self.logger.error(f"Error mostrando notificación de alerta: {e}")

    def _report(self, error: SessionError) -> None:
        if self._report_error is None:
            return
        try:
            self._report_error(error)
        except Exception as e:
            self.logger.error(f"Error en observador de errores: {e}")
