"""Fixtures compartidos: transporte falso y almacenes en memoria."""

import asyncio
from typing import Dict, List, Optional, Tuple

import pytest

from adapters.interfaces.transport import BrokerTransport, TransportListener
from infrastructure.key_value_store import InMemoryKeyValueStore
from modules.vitaband_mqtt import ConnectionTarget, DeliveryGuarantee, SessionConfig
from modules.vitaband_storage import RecommendationHistory, SettingsStore


class FakeTransport(BrokerTransport):
    """Transporte en memoria que registra las llamadas de la sesión."""

    def __init__(
        self,
        target: ConnectionTarget,
        config: SessionConfig,
        listener: TransportListener,
        connect_error: Optional[Exception] = None,
        connect_gate: Optional[asyncio.Event] = None,
        subscribe_errors: Optional[Dict[str, Exception]] = None,
        subscribe_gate: Optional[asyncio.Event] = None,
    ):
        self.target = target
        self.config = config
        self.listener = listener
        self.connect_error = connect_error
        self.connect_gate = connect_gate
        self.subscribe_errors = subscribe_errors or {}
        self.subscribe_gate = subscribe_gate
        self.subscribe_calls: List[Tuple[str, DeliveryGuarantee]] = []
        self.connected = False
        self.close_calls = 0

    async def connect(self) -> None:
        if self.connect_gate is not None:
            await self.connect_gate.wait()
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def subscribe(self, topic: str, guarantee: DeliveryGuarantee) -> DeliveryGuarantee:
        self.subscribe_calls.append((topic, guarantee))
        if self.subscribe_gate is not None:
            await self.subscribe_gate.wait()
        if topic in self.subscribe_errors:
            raise self.subscribe_errors[topic]
        return guarantee

    async def close(self) -> None:
        self.close_calls += 1
        self.connected = False

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def deliver(self, topic: str, payload: bytes) -> None:
        """Simula un mensaje entrante del broker."""
        self.listener.on_message(topic, payload)

    def drop(self, reason: str = "socket closed") -> None:
        """Simula la pérdida de conexión."""
        self.listener.on_connection_lost(reason)


class FakeTransportFactory:
    """TransportFactory que crea ``FakeTransport`` y los guarda.

    ``connect_errors`` es una cola: cada intento toma el siguiente elemento
    (None = éxito). Vacía, todos los intentos tienen éxito.
    """

    def __init__(self):
        self.created: List[FakeTransport] = []
        self.connect_errors: List[Optional[Exception]] = []
        self.connect_gate: Optional[asyncio.Event] = None
        self.subscribe_errors: Dict[str, Exception] = {}
        self.subscribe_gate: Optional[asyncio.Event] = None

    def __call__(self, target, config, listener) -> FakeTransport:
        error = self.connect_errors.pop(0) if self.connect_errors else None
        transport = FakeTransport(
            target,
            config,
            listener,
            connect_error=error,
            connect_gate=self.connect_gate,
            subscribe_errors=self.subscribe_errors,
            subscribe_gate=self.subscribe_gate,
        )
        self.created.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.created[-1]


@pytest.fixture
def transport_factory():
    return FakeTransportFactory()


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def settings(store):
    return SettingsStore(store)


@pytest.fixture
def history(store):
    return RecommendationHistory(store, capacity=5)


@pytest.fixture
def target():
    return ConnectionTarget("192.168.1.50", 1883)
