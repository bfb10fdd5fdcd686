"""MQTT transport over the AWS Common Runtime client.

Plain TCP connection (no TLS) to a local broker. The CRT reconnects on its
own after an interruption; the session owns reconnection, so an interrupted
connection is reported as lost and closed by the session.

CRT callbacks run on CRT threads and are marshalled onto the event loop.
"""

import asyncio
import logging
from typing import Optional

from awscrt import io, mqtt

from adapters.interfaces.transport import BrokerTransport, TransportListener
from modules.vitaband_mqtt.config import ConnectionTarget, SessionConfig
from modules.vitaband_mqtt.errors import SubscriptionFailed
from modules.vitaband_mqtt.topics import DeliveryGuarantee


logger = logging.getLogger(__name__)


class CrtMqttTransport(BrokerTransport):
    """Single broker connection backed by ``awscrt.mqtt.Connection``."""

    def __init__(
        self,
        target: ConnectionTarget,
        config: SessionConfig,
        listener: TransportListener,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.target = target
        self.config = config
        self.client_id = config.new_client_id()
        self._listener = listener
        self._loop = loop or asyncio.get_running_loop()
        self._closed = False

        socket_options = io.SocketOptions()
        socket_options.connect_timeout_ms = config.connect_timeout_ms

        self._connection = mqtt.Connection(
            client=mqtt.Client(None, None),
            host_name=target.host,
            port=target.port,
            client_id=self.client_id,
            clean_session=config.clean_session,
            keep_alive_secs=config.keepalive_secs,
            socket_options=socket_options,
            on_connection_interrupted=self._on_connection_interrupted,
        )
        self._connection.on_message(self._on_message)

        logger.debug(f"MQTT connection created for {target} ({self.client_id})")

    async def connect(self) -> None:
        await asyncio.wrap_future(self._connection.connect())
        logger.info(f"MQTT handshake completed with {self.target}")

    async def subscribe(self, topic: str, guarantee: DeliveryGuarantee) -> DeliveryGuarantee:
        subscribe_future, _packet_id = self._connection.subscribe(topic=topic, qos=mqtt.QoS(int(guarantee)))
        result = await asyncio.wrap_future(subscribe_future)

        granted = result.get("qos")
        if granted is None:
            raise SubscriptionFailed(topic, "rejected by broker")
        return DeliveryGuarantee(int(granted))

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await asyncio.wrap_future(self._connection.disconnect())
        logger.debug(f"MQTT connection to {self.target} closed")

    def _on_message(self, topic, payload, dup, qos, retain, **kwargs):
        self._loop.call_soon_threadsafe(self._listener.on_message, topic, bytes(payload))

    def _on_connection_interrupted(self, connection, error, **kwargs):
        logger.warning(f"MQTT connection interrupted: {error}")
        self._loop.call_soon_threadsafe(self._listener.on_connection_lost, str(error))


def crt_transport_factory(
    target: ConnectionTarget, config: SessionConfig, listener: TransportListener
) -> CrtMqttTransport:
    """TransportFactory building a CRT transport on the running loop."""
    return CrtMqttTransport(target, config, listener)
