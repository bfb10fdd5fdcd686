"""Tests for the CRT MQTT transport with a mocked awscrt client."""

import asyncio
from concurrent.futures import Future

import pytest
from unittest.mock import Mock, patch

from infrastructure.crt_mqtt_transport import CrtMqttTransport, crt_transport_factory
from modules.vitaband_mqtt import ConnectionTarget, DeliveryGuarantee, SessionConfig, SubscriptionFailed


def done_future(result=None):
    future = Future()
    future.set_result(result)
    return future


def failed_future(error):
    future = Future()
    future.set_exception(error)
    return future


@pytest.fixture
def mock_mqtt():
    with patch("infrastructure.crt_mqtt_transport.mqtt") as mqtt, \
         patch("infrastructure.crt_mqtt_transport.io"):
        connection = Mock()
        connection.connect.return_value = done_future({"session_present": False})
        connection.disconnect.return_value = done_future({})
        mqtt.Connection.return_value = connection
        yield mqtt


@pytest.fixture
def listener():
    return Mock()


def make_transport(listener, **config_kwargs):
    config = SessionConfig(keepalive_secs=30, connect_timeout_ms=5000, **config_kwargs)
    return CrtMqttTransport(ConnectionTarget("192.168.1.50", 1883), config, listener)


class TestCrtMqttTransport:
    """Tests for CrtMqttTransport."""

    @pytest.mark.asyncio
    async def test_connection_parameters(self, mock_mqtt, listener):
        transport = make_transport(listener, clean_session=True)

        kwargs = mock_mqtt.Connection.call_args.kwargs
        assert kwargs["host_name"] == "192.168.1.50"
        assert kwargs["port"] == 1883
        assert kwargs["keep_alive_secs"] == 30
        assert kwargs["clean_session"] is True
        assert kwargs["client_id"] == transport.client_id
        assert transport.client_id.startswith("health_monitor_")
        assert kwargs["socket_options"].connect_timeout_ms == 5000

    @pytest.mark.asyncio
    async def test_new_client_id_per_transport(self, mock_mqtt, listener):
        first = make_transport(listener)
        second = make_transport(listener)

        assert first.client_id != second.client_id

    @pytest.mark.asyncio
    async def test_connect(self, mock_mqtt, listener):
        transport = make_transport(listener)

        await transport.connect()

        mock_mqtt.Connection.return_value.connect.assert_called_once()

    @pytest.mark.asyncio
    async def test_connect_failure_propagates(self, mock_mqtt, listener):
        mock_mqtt.Connection.return_value.connect.return_value = failed_future(OSError("refused"))
        transport = make_transport(listener)

        with pytest.raises(OSError, match="refused"):
            await transport.connect()

    @pytest.mark.asyncio
    async def test_subscribe_returns_granted_level(self, mock_mqtt, listener):
        connection = mock_mqtt.Connection.return_value
        connection.subscribe.return_value = (done_future({"topic": "health/alerts", "qos": 1}), 7)
        transport = make_transport(listener)

        granted = await transport.subscribe("health/alerts", DeliveryGuarantee.EXACTLY_ONCE)

        assert granted is DeliveryGuarantee.AT_LEAST_ONCE
        mock_mqtt.QoS.assert_called_once_with(2)
        assert connection.subscribe.call_args.kwargs["topic"] == "health/alerts"

    @pytest.mark.asyncio
    async def test_subscribe_rejected(self, mock_mqtt, listener):
        connection = mock_mqtt.Connection.return_value
        connection.subscribe.return_value = (done_future({"topic": "health/alerts", "qos": None}), 7)
        transport = make_transport(listener)

        with pytest.raises(SubscriptionFailed) as exc_info:
            await transport.subscribe("health/alerts", DeliveryGuarantee.EXACTLY_ONCE)

        assert exc_info.value.topic == "health/alerts"

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, mock_mqtt, listener):
        transport = make_transport(listener)

        await transport.close()
        await transport.close()

        mock_mqtt.Connection.return_value.disconnect.assert_called_once()

    @pytest.mark.asyncio
    async def test_message_marshalled_to_loop(self, mock_mqtt, listener):
        transport = make_transport(listener)
        on_message = mock_mqtt.Connection.return_value.on_message.call_args.args[0]

        on_message(topic="health/status", payload=bytearray(b"{}"), dup=False, qos=1, retain=False)
        listener.on_message.assert_not_called()
        await asyncio.sleep(0)

        listener.on_message.assert_called_once_with("health/status", b"{}")

    @pytest.mark.asyncio
    async def test_interruption_reported_as_lost(self, mock_mqtt, listener):
        make_transport(listener)
        on_interrupted = mock_mqtt.Connection.call_args.kwargs["on_connection_interrupted"]

        on_interrupted(connection=Mock(), error=OSError("socket closed"))
        await asyncio.sleep(0)

        listener.on_connection_lost.assert_called_once_with("socket closed")

    @pytest.mark.asyncio
    async def test_factory(self, mock_mqtt, listener):
        transport = crt_transport_factory(ConnectionTarget("broker.local"), SessionConfig(), listener)

        assert isinstance(transport, CrtMqttTransport)
        assert transport.target == ConnectionTarget("broker.local")
