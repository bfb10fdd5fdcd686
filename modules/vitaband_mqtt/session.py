"""Sesión MQTT con el broker de salud.

Máquina de estados que posee la conexión con el broker:

- ``connect()`` pasa a CONNECTING y, tras el handshake, a CONNECTED y lanza
  las suscripciones; si el transporte falla pasa a ERROR.
- Una pérdida de conexión desde CONNECTED pasa a DISCONNECTED y consulta la
  política de reconexión, que puede pasar a RECONNECTING con un único
  temporizador pendiente.
- ``disconnect()`` vuelve a DISCONNECTED desde cualquier estado, cancela el
  temporizador y cierra el transporte.

Cada transición se notifica a los observadores antes de devolver el control.
"""

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Set, Union

from adapters.interfaces.transport import BrokerTransport, TransportFactory, TransportListener
from modules.vitaband_mqtt.config import ConnectionTarget, SessionConfig
from modules.vitaband_mqtt.errors import (
    AlreadyConnecting,
    ConnectionFailed,
    SessionError,
    TransportLost,
)
from modules.vitaband_mqtt.fanout import Consumer, EventFanout
from modules.vitaband_mqtt.reconnect import ReconnectAttemptState, ReconnectPolicy
from modules.vitaband_mqtt.router import TopicRouter
from modules.vitaband_mqtt.subscriptions import SubscriptionManager, SubscriptionReport
from modules.vitaband_mqtt.topics import MessageCategory, TopicTable

if TYPE_CHECKING:
    from adapters.interfaces.notifications import NotificationServiceInterface
    from modules.vitaband_storage.history import RecommendationHistory
    from modules.vitaband_storage.settings import SettingsStore


class SessionState(Enum):
    """Estados de la sesión."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    ERROR = "error"


class _BoundListener(TransportListener):
    """Listener ligado a un transporte concreto.

    Los eventos de transportes que ya no son el activo se descartan.
    """

    def __init__(self, session: "HealthSession", generation: int):
        self._session = session
        self._generation = generation

    def on_message(self, topic: str, payload: bytes) -> None:
        self._session._on_transport_message(self._generation, topic, payload)

    def on_connection_lost(self, reason: str) -> None:
        self._session._on_transport_lost(self._generation, reason)


class HealthSession:
    """Gestor de la conexión con el broker de la pulsera.

    Características:
    - Un único intento de conexión a la vez (CONNECTING actúa de mutex)
    - Suscripción a los cuatro tópicos de salud con su QoS
    - Reconexión con retardo fijo y un único temporizador pendiente
    - Un consumidor por categoría de mensaje y N observadores de estado
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        config: Optional[SessionConfig] = None,
        settings: Optional["SettingsStore"] = None,
        history: Optional["RecommendationHistory"] = None,
        notifier: Optional["NotificationServiceInterface"] = None,
        topics: Optional[TopicTable] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Inicializa la sesión.

        Args:
            transport_factory: Crea un transporte por intento de conexión
            config: Parámetros de conexión y reconexión
            settings: Preferencias (reconexión automática, último broker)
            history: Historial de recomendaciones
            notifier: Servicio de notificaciones
            topics: Tabla de tópicos
            logger: Logger a usar en todos los componentes de la sesión
        """
        self.config = config or SessionConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.topics = topics or TopicTable()

        self._transport_factory = transport_factory
        self._settings = settings

        # Estado de conexión
        self._state = SessionState.DISCONNECTED
        self._transport: Optional[BrokerTransport] = None
        self._reconnect = ReconnectAttemptState()
        self._epoch = 0
        self._generation = 0
        self._active_generation: Optional[int] = None
        self._last_error: Optional[SessionError] = None
        self._subscription_report: Optional[SubscriptionReport] = None

        # Tareas asíncronas
        self._reconnect_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

        # Cola de eventos del transporte activo
        self._inbox: Optional[asyncio.Queue] = None
        self._dispatcher: Optional[asyncio.Task] = None

        # Observadores
        self._error_observers: List[Callable[[SessionError], None]] = []

        self.fanout = EventFanout(logger=self.logger)
        self.policy = ReconnectPolicy(
            self.config,
            auto_reconnect=settings.auto_reconnect_enabled if settings is not None else None,
            logger=self.logger,
        )
        self.subscriptions = SubscriptionManager(self.topics, report_error=self._report_error, logger=self.logger)
        self.router = TopicRouter(
            self.fanout,
            topics=self.topics,
            history=history,
            notifier=notifier,
            report_error=self._report_error,
            is_active=lambda: self._state is SessionState.CONNECTED,
            logger=self.logger,
        )

    # ------------------------------------------------------------------
    # Estado
    # ------------------------------------------------------------------

    def current_state(self) -> SessionState:
        return self._state

    @property
    def state(self) -> SessionState:
        """Estado actual de la sesión."""
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is SessionState.CONNECTED

    @property
    def target(self) -> Optional[ConnectionTarget]:
        """Último broker solicitado, o None tras ``disconnect()``."""
        return self._reconnect.target

    @property
    def reconnect_state(self) -> ReconnectAttemptState:
        return self._reconnect

    @property
    def subscription_report(self) -> Optional[SubscriptionReport]:
        """Resultado de la última pasada de suscripción."""
        return self._subscription_report

    @property
    def last_error(self) -> Optional[SessionError]:
        return self._last_error

    def status(self) -> Dict[str, Any]:
        """Obtiene el estado actual de la sesión.

        Returns:
            Diccionario con el estado de conexión
        """
        return {
            "state": self._state.value,
            "connected": self._state is SessionState.CONNECTED,
            "connecting": self._state in (SessionState.CONNECTING, SessionState.RECONNECTING),
            "error": str(self._last_error) if self._state is SessionState.ERROR and self._last_error else None,
            "target": str(self._reconnect.target) if self._reconnect.target else None,
            "reconnect_attempts": self._reconnect.attempts,
            "reconnect_pending": self._reconnect.timer_pending,
            "failed_subscriptions": (
                self._subscription_report.failed_topics if self._subscription_report else []
            ),
        }

    def _transition(self, new_state: SessionState) -> None:
        old_state = self._state
        self._state = new_state
        self.logger.info(f"Estado de sesión: {old_state.value} -> {new_state.value}")
        self.fanout.publish_state(new_state)

    # ------------------------------------------------------------------
    # Registro de consumidores y observadores
    # ------------------------------------------------------------------

    def on_state_change(self, observer: Callable[[SessionState], None]) -> None:
        """Registra un observador de cambios de estado."""
        self.fanout.add_state_observer(observer)

    def on_recommendation(self, consumer: Optional[Consumer]) -> None:
        self.fanout.set_consumer(MessageCategory.RECOMMENDATION, consumer)

    def on_sensor_data(self, consumer: Optional[Consumer]) -> None:
        self.fanout.set_consumer(MessageCategory.SENSOR, consumer)

    def on_status(self, consumer: Optional[Consumer]) -> None:
        self.fanout.set_consumer(MessageCategory.STATUS, consumer)

    def on_alert(self, consumer: Optional[Consumer]) -> None:
        self.fanout.set_consumer(MessageCategory.ALERT, consumer)

    def on_error(self, observer: Callable[[SessionError], None]) -> None:
        """Registra un observador de los errores que la sesión absorbe."""
        self._error_observers.append(observer)

    def _report_error(self, error: SessionError) -> None:
        self._last_error = error
        for observer in list(self._error_observers):
            try:
                observer(error)
            except Exception as e:
                self.logger.error(f"Error en observador de errores: {e}")

    # ------------------------------------------------------------------
    # Conexión
    # ------------------------------------------------------------------

    async def connect(self, target: ConnectionTarget) -> None:
        """Conecta con el broker.

        Args:
            target: Broker destino

        Raises:
            AlreadyConnecting: Si hay otro ``connect()`` en curso
            ConnectionFailed: Si el transporte rechaza la conexión
        """
        if self._state is SessionState.CONNECTING:
            raise AlreadyConnecting()

        self._epoch += 1
        epoch = self._epoch

        self._cancel_reconnect()
        self._reconnect.reset()
        self._reconnect.target = target

        previous, self._transport = self._transport, None
        self._active_generation = None

        self.logger.info(f"Conectando al broker MQTT en {target}...")
        self._transition(SessionState.CONNECTING)

        if previous is not None:
            await self._close_quietly(previous)
            if epoch != self._epoch:
                raise ConnectionFailed("intento cancelado")

        generation = self._next_generation()
        transport: Optional[BrokerTransport] = None
        try:
            transport = self._transport_factory(target, self.config, _BoundListener(self, generation))
            await asyncio.wait_for(transport.connect(), timeout=self.config.connect_timeout)
        except Exception as e:
            if transport is not None:
                await self._close_quietly(transport)
            error = ConnectionFailed(self._failure_reason(e), e)
            if epoch == self._epoch:
                self._last_error = error
                self.logger.error(f"{error}")
                self._transition(SessionState.ERROR)
            raise error from e

        if epoch != self._epoch:
            await self._close_quietly(transport)
            raise ConnectionFailed("intento cancelado")

        if not await self._on_connected(transport, generation, target, epoch):
            raise ConnectionFailed("intento cancelado")
        self.logger.info(f"Conectado al broker MQTT en {target}")

    async def disconnect(self) -> None:
        """Desconecta y libera todos los recursos de la sesión.

        Idempotente y seguro desde cualquier estado; nunca lanza.
        """
        self._epoch += 1
        self._cancel_reconnect()
        self._reconnect.reset()
        self._reconnect.target = None
        self._stop_dispatcher()

        transport, self._transport = self._transport, None
        self._active_generation = None
        self._subscription_report = None

        if self._state is not SessionState.DISCONNECTED:
            self._transition(SessionState.DISCONNECTED)

        if transport is not None:
            await self._close_quietly(transport)
            self.logger.info("Desconectado del broker MQTT")

    async def _on_connected(
        self, transport: BrokerTransport, generation: int, target: ConnectionTarget, epoch: int
    ) -> bool:
        """Activa el transporte recién conectado y lanza las suscripciones.

        Returns:
            False si ``disconnect()`` u otro ``connect()`` invalidó el intento
            mientras se suscribía
        """
        self._transport = transport
        self._active_generation = generation
        self._reconnect.attempts = 0
        self._last_error = None
        self._transition(SessionState.CONNECTED)

        report = await self.subscriptions.subscribe_all(transport, is_cancelled=lambda: epoch != self._epoch)
        if epoch != self._epoch:
            self.logger.info(f"Intento de conexión a {target} cancelado durante las suscripciones")
            return False

        self._subscription_report = report
        await self._record_connection(target)
        return True

    async def _record_connection(self, target: ConnectionTarget) -> None:
        if self._settings is None:
            return
        try:
            await self._settings.record_connection(target.host, target.port)
        except Exception as e:
            self.logger.error(f"Error guardando datos de conexión: {e}")

    # ------------------------------------------------------------------
    # Eventos del transporte
    # ------------------------------------------------------------------

    def _on_transport_message(self, generation: int, topic: str, payload: bytes) -> None:
        if generation != self._active_generation:
            self.logger.debug(f"Mensaje de un transporte inactivo descartado: {topic}")
            return
        self._enqueue(generation, self.handle_message, topic, payload)

    def _on_transport_lost(self, generation: int, reason: str) -> None:
        if generation != self._active_generation:
            return
        self._enqueue(generation, self.handle_connection_lost, reason)

    def _enqueue(self, generation: int, handler: Callable[..., Awaitable[Any]], *args: Any) -> None:
        # Mensajes y pérdidas de conexión se procesan de uno en uno, en orden de llegada
        if self._dispatcher is None or self._dispatcher.done():
            self._inbox = asyncio.Queue()
            self._dispatcher = asyncio.get_running_loop().create_task(self._dispatch(self._inbox))
        self._inbox.put_nowait((generation, handler, args))

    async def _dispatch(self, inbox: asyncio.Queue) -> None:
        while True:
            generation, handler, args = await inbox.get()
            try:
                if generation == self._active_generation:
                    await handler(*args)
                else:
                    self.logger.debug("Evento de un transporte inactivo descartado")
            except Exception as e:
                self.logger.error(f"Error procesando evento del transporte: {e}")
            finally:
                inbox.task_done()

    def _stop_dispatcher(self) -> None:
        task, self._dispatcher = self._dispatcher, None
        inbox, self._inbox = self._inbox, None
        if task is not None and not task.done():
            task.cancel()
        if inbox is not None:
            while not inbox.empty():
                inbox.get_nowait()
                inbox.task_done()

    async def handle_message(self, topic: str, payload: Union[bytes, str]) -> bool:
        """Procesa un mensaje del transporte activo.

        Los mensajes que llegan cuando la sesión no está CONNECTED se descartan.

        Returns:
            True si el mensaje se entregó
        """
        if self._state is not SessionState.CONNECTED:
            self.logger.debug(f"Sesión en {self._state.value}, mensaje de {topic} descartado")
            return False
        return await self.router.route(topic, payload)

    async def handle_connection_lost(self, reason: str) -> None:
        """Procesa la pérdida de la conexión establecida."""
        if self._state is not SessionState.CONNECTED:
            self.logger.debug(f"Pérdida de conexión ignorada en estado {self._state.value}")
            return

        transport, self._transport = self._transport, None
        self._active_generation = None

        error = TransportLost(reason)
        self.logger.warning(f"{error}")
        self._report_error(error)
        self._transition(SessionState.DISCONNECTED)

        if transport is not None:
            self._spawn(self._close_quietly(transport))

        await self._schedule_reconnect(self._epoch)

    # ------------------------------------------------------------------
    # Reconexión
    # ------------------------------------------------------------------

    async def _schedule_reconnect(self, epoch: int) -> None:
        delay = await self.policy.evaluate(self._reconnect.attempts)

        if epoch != self._epoch or self._state not in (SessionState.DISCONNECTED, SessionState.RECONNECTING):
            return

        if delay is None:
            if self._state is SessionState.RECONNECTING:
                self._transition(SessionState.DISCONNECTED)
            return

        if self._reconnect.timer_pending or self._reconnect.target is None:
            return

        self._transition(SessionState.RECONNECTING)
        loop = asyncio.get_running_loop()
        self._reconnect.pending_timer = loop.call_later(delay, self._on_reconnect_timer, epoch)
        self.logger.info(
            f"Reintentando conexión en {delay:.1f}s (intento {self._reconnect.attempts + 1})"
        )

    def _on_reconnect_timer(self, epoch: int) -> None:
        self._reconnect.pending_timer = None
        if epoch != self._epoch or self._state is not SessionState.RECONNECTING:
            return
        self._reconnect_task = self._spawn(self._attempt_reconnect(epoch))

    async def _attempt_reconnect(self, epoch: int) -> None:
        target = self._reconnect.target
        if target is None:
            return

        self.logger.info(f"Intento de reconexión {self._reconnect.attempts + 1} a {target}")

        generation = self._next_generation()
        transport: Optional[BrokerTransport] = None
        try:
            transport = self._transport_factory(target, self.config, _BoundListener(self, generation))
            await asyncio.wait_for(transport.connect(), timeout=self.config.connect_timeout)
        except asyncio.CancelledError:
            if transport is not None:
                await self._close_quietly(transport)
            raise
        except Exception as e:
            if transport is not None:
                await self._close_quietly(transport)
            if epoch != self._epoch or self._state is not SessionState.RECONNECTING:
                return
            self._reconnect.attempts += 1
            self.logger.error(f"Error en reconexión: {self._failure_reason(e)}")
            self._report_error(ConnectionFailed(self._failure_reason(e), e))
            await self._schedule_reconnect(epoch)
            return

        if epoch != self._epoch or self._state is not SessionState.RECONNECTING:
            await self._close_quietly(transport)
            return

        if await self._on_connected(transport, generation, target, epoch):
            self.logger.info("Reconexión exitosa")

    def _cancel_reconnect(self) -> None:
        if self._reconnect.cancel_timer():
            self.logger.debug("Temporizador de reconexión cancelado")

        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    # ------------------------------------------------------------------
    # Utilidades
    # ------------------------------------------------------------------

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    @staticmethod
    def _failure_reason(error: Exception) -> str:
        if isinstance(error, asyncio.TimeoutError):
            return "timeout de conexión"
        return str(error) or type(error).__name__

    async def _close_quietly(self, transport: BrokerTransport) -> None:
        try:
            await transport.close()
        except Exception as e:
            self.logger.warning(f"Error cerrando transporte: {e}")

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"Error en tarea de sesión: {error}")

    async def drain(self) -> None:
        """Espera a que se procesen los mensajes encolados y terminen las tareas internas."""
        while True:
            if self._inbox is not None and self._dispatcher is not None and not self._dispatcher.done():
                await self._inbox.join()
            if not self._tasks:
                return
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def __repr__(self) -> str:
        return f"HealthSession(target={self._reconnect.target}, state={self._state.value})"
