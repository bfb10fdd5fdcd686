"""Distribución de eventos a consumidores y observadores.

Cada categoría de mensaje tiene como mucho un consumidor registrado: registrar
uno nuevo reemplaza al anterior (no hay cola de consumidores). Quien necesite
varios consumidores registra explícitamente un ``ConsumerList``.

Los observadores de estado de conexión son una lista ordenada y se invocan
en orden de registro.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from modules.vitaband_mqtt.topics import MessageCategory


Consumer = Callable[[Any], None]
StateObserver = Callable[[Any], None]


class ConsumerList:
    """Consumidor compuesto que reenvía cada registro a varios consumidores.

    Se registra como el único consumidor de una categoría. Un consumidor que
    falla no impide la entrega a los siguientes.
    """

    def __init__(self, *consumers: Consumer):
        self._consumers: List[Consumer] = list(consumers)
        self.logger = logging.getLogger(__name__)

    def add(self, consumer: Consumer) -> None:
        self._consumers.append(consumer)

    def remove(self, consumer: Consumer) -> None:
        self._consumers.remove(consumer)

    def __len__(self) -> int:
        return len(self._consumers)

    def __call__(self, record: Any) -> None:
        for consumer in list(self._consumers):
            try:
                consumer(record)
            except Exception as e:
                self.logger.error(f"Error en consumidor {consumer!r}: {e}")


class EventFanout:
    """Entrega síncrona de registros y cambios de estado."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._consumers: Dict[MessageCategory, Optional[Consumer]] = {
            category: None for category in MessageCategory
        }
        self._state_observers: List[StateObserver] = []

    def set_consumer(self, category: MessageCategory, consumer: Optional[Consumer]) -> None:
        """Registra el consumidor de una categoría (el último gana).

        Args:
            category: Categoría de mensaje
            consumer: Callable que recibe el registro, o None para quitarlo
        """
        if self._consumers[category] is not None and consumer is not None:
            self.logger.debug(f"Reemplazando consumidor de {category.value}")
        self._consumers[category] = consumer

    def consumer_for(self, category: MessageCategory) -> Optional[Consumer]:
        return self._consumers[category]

    def add_state_observer(self, observer: StateObserver) -> None:
        self._state_observers.append(observer)

    def remove_state_observer(self, observer: StateObserver) -> None:
        if observer in self._state_observers:
            self._state_observers.remove(observer)

    @property
    def state_observer_count(self) -> int:
        return len(self._state_observers)

    def deliver(self, category: MessageCategory, record: Any) -> bool:
        """Entrega un registro al consumidor de su categoría.

        Returns:
            True si había consumidor y no lanzó excepción
        """
        consumer = self._consumers[category]
        if consumer is None:
            self.logger.debug(f"Sin consumidor para {category.value}, registro descartado")
            return False

        try:
            consumer(record)
            return True
        except Exception as e:
            self.logger.error(f"Error en consumidor de {category.value}: {e}")
            return False

    def publish_state(self, state: Any) -> None:
        """Notifica un cambio de estado a todos los observadores, en orden."""
        for observer in list(self._state_observers):
            try:
                observer(state)
            except Exception as e:
                self.logger.error(f"Error en observador de estado {observer!r}: {e}")
