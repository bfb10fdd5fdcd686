"""Política de reconexión.

Decide si se reintenta tras perder la conexión y cuánto esperar. La
preferencia ``auto_reconnect`` se lee en cada evaluación, nunca se cachea:
un cambio surte efecto en la siguiente pérdida.

Por defecto el retardo es fijo y no hay límite de intentos. Con
``exponential_backoff=True`` el retardo crece por ``backoff_multiplier`` en
cada intento, acotado por ``max_delay``.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from tenacity import RetryCallState, stop_after_attempt, wait_exponential, wait_fixed

from modules.vitaband_mqtt.config import ConnectionTarget, SessionConfig

if TYPE_CHECKING:
    import asyncio


AutoReconnectSetting = Callable[[], Awaitable[bool]]


@dataclass
class ReconnectAttemptState:
    """Estado de reconexión de una sesión. Como mucho un temporizador pendiente."""
    pending_timer: Optional["asyncio.TimerHandle"] = None
    target: Optional[ConnectionTarget] = None
    attempts: int = 0

    @property
    def timer_pending(self) -> bool:
        return self.pending_timer is not None

    def cancel_timer(self) -> bool:
        """Cancela el temporizador pendiente. Devuelve True si había uno."""
        if self.pending_timer is None:
            return False
        self.pending_timer.cancel()
        self.pending_timer = None
        return True

    def reset(self) -> None:
        self.cancel_timer()
        self.attempts = 0


def _call_state(attempt_number: int) -> RetryCallState:
    state = RetryCallState(retry_object=None, fn=None, args=(), kwargs={})
    state.attempt_number = attempt_number
    return state


class ReconnectPolicy:
    """Evalúa si reconectar y con qué retardo."""

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        auto_reconnect: Optional[AutoReconnectSetting] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Inicializa la política.

        Args:
            config: Configuración de la sesión
            auto_reconnect: Corrutina que devuelve la preferencia actual;
                sin ella la reconexión está siempre habilitada
            logger: Logger a usar
        """
        self.config = config or SessionConfig()
        self._auto_reconnect = auto_reconnect
        self.logger = logger or logging.getLogger(__name__)

        if self.config.exponential_backoff:
            self._wait = wait_exponential(
                multiplier=self.config.reconnect_delay,
                exp_base=self.config.backoff_multiplier,
                max=self.config.max_delay,
            )
        else:
            self._wait = wait_fixed(self.config.reconnect_delay)

        self._stop = stop_after_attempt(self.config.max_attempts) if self.config.max_attempts else None

    async def enabled(self) -> bool:
        """Lee la preferencia de reconexión automática."""
        if self._auto_reconnect is None:
            return True
        try:
            return bool(await self._auto_reconnect())
        except Exception as e:
            self.logger.error(f"Error leyendo preferencia de reconexión, se asume habilitada: {e}")
            return True

    def next_delay(self, attempts_so_far: int) -> Optional[float]:
        """Retardo antes del siguiente intento.

        Args:
            attempts_so_far: Intentos de reconexión ya realizados

        Returns:
            Segundos de espera, o None si se alcanzó el límite de intentos
        """
        if self._stop is not None and attempts_so_far > 0 and self._stop(_call_state(attempts_so_far)):
            return None
        return float(self._wait(_call_state(attempts_so_far + 1)))

    async def evaluate(self, attempts_so_far: int) -> Optional[float]:
        """Decide si programar otro intento.

        Returns:
            Retardo en segundos, o None si no se debe reconectar
        """
        if not await self.enabled():
            self.logger.info("Reconexión automática deshabilitada")
            return None

        delay = self.next_delay(attempts_so_far)
        if delay is None:
            self.logger.warning(f"Máximo de intentos de reconexión alcanzado: {self.config.max_attempts}")
        return delay
