"""Gestor de suscripciones.

Tras cada conexión establecida se suscribe a todos los tópicos de la tabla,
cada uno con su propio nivel de garantía. Las suscripciones son
independientes: un fallo se registra y no bloquea a las demás ni hace fallar
la conexión. No se reintenta una suscripción fallida dentro de la misma
sesión conectada.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from modules.vitaband_mqtt.errors import SessionError, SubscriptionFailed
from modules.vitaband_mqtt.topics import DeliveryGuarantee, TopicTable

if TYPE_CHECKING:
    from adapters.interfaces.transport import BrokerTransport


@dataclass
class SubscriptionReport:
    """Resultado de una pasada de suscripción."""
    granted: Dict[str, DeliveryGuarantee] = field(default_factory=dict)
    failed: Dict[str, SubscriptionFailed] = field(default_factory=dict)

    @property
    def subscribed_topics(self) -> List[str]:
        return list(self.granted)

    @property
    def failed_topics(self) -> List[str]:
        return list(self.failed)

    @property
    def complete(self) -> bool:
        return not self.failed


class SubscriptionManager:
    """Establece el conjunto fijo de suscripciones sobre un transporte."""

    def __init__(
        self,
        topics: Optional[TopicTable] = None,
        report_error: Optional[Callable[[SessionError], None]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.topics = topics or TopicTable()
        self._report_error = report_error
        self.logger = logger or logging.getLogger(__name__)

    async def subscribe_all(
        self,
        transport: "BrokerTransport",
        is_cancelled: Optional[Callable[[], bool]] = None,
    ) -> SubscriptionReport:
        """Emite una suscripción por tópico con su garantía configurada.

        Args:
            transport: Transporte recién conectado
            is_cancelled: Si devuelve True tras una suscripción, no se emiten las
                siguientes (la conexión ya no es la activa)

        Returns:
            Informe con los tópicos suscritos y los fallidos
        """
        report = SubscriptionReport()

        for subscription in self.topics:
            if is_cancelled is not None and is_cancelled():
                self.logger.info("Suscripciones interrumpidas: la conexión ya no está activa")
                break

            try:
                granted = await transport.subscribe(subscription.topic, subscription.guarantee)
            except Exception as e:
                if is_cancelled is not None and is_cancelled():
                    break
                error = e if isinstance(e, SubscriptionFailed) else SubscriptionFailed(subscription.topic, str(e), e)
                report.failed[subscription.topic] = error
                self.logger.error(f"{error}")
                self._report(error)
                continue

            granted = DeliveryGuarantee(granted) if granted is not None else subscription.guarantee
            report.granted[subscription.topic] = granted

            if granted < subscription.guarantee:
                self.logger.warning(
                    f"Broker concedió {granted.name} en {subscription.topic} "
                    f"(solicitado {subscription.guarantee.name})"
                )
            else:
                self.logger.info(f"Suscrito a {subscription.topic} ({granted.name})")

        return report

    def _report(self, error: SessionError) -> None:
        if self._report_error is None:
            return
        try:
            self._report_error(error)
        except Exception as e:
            self.logger.error(f"Error en observador de errores: {e}")
