"""Tests para la política de reconexión.

Retardo fijo por defecto, back-off exponencial opcional, límite de intentos y
lectura de la preferencia ``auto_reconnect``.
"""

import asyncio
import logging

import pytest
from unittest.mock import AsyncMock, Mock

from modules.vitaband_mqtt import ConnectionTarget, ReconnectAttemptState, ReconnectPolicy, SessionConfig


class TestReconnectDelay:
    """Tests para el cálculo de retardos."""

    def test_fixed_delay_by_default(self):
        """Test sin back-off el retardo es siempre reconnect_delay."""
        policy = ReconnectPolicy(SessionConfig(reconnect_delay=5.0))

        assert [policy.next_delay(n) for n in range(5)] == [5.0] * 5

    def test_multiplier_ignored_without_exponential(self):
        policy = ReconnectPolicy(SessionConfig(reconnect_delay=2.0, backoff_multiplier=3.0))

        assert policy.next_delay(3) == 2.0

    def test_exponential_backoff(self):
        """Test back-off: delay * multiplier^n."""
        config = SessionConfig(
            reconnect_delay=1.0,
            backoff_multiplier=2.0,
            exponential_backoff=True,
            max_delay=10.0,
        )
        policy = ReconnectPolicy(config)

        assert policy.next_delay(0) == 1.0
        assert policy.next_delay(1) == 2.0
        assert policy.next_delay(2) == 4.0
        assert policy.next_delay(3) == 8.0
        # Acotado por max_delay
        assert policy.next_delay(4) == 10.0
        assert policy.next_delay(20) == 10.0

    def test_exponential_default_multiplier(self):
        config = SessionConfig(reconnect_delay=2.0, exponential_backoff=True)
        policy = ReconnectPolicy(config)

        assert policy.next_delay(1) == pytest.approx(3.0)
        assert policy.next_delay(2) == pytest.approx(4.5)

    def test_no_cap_by_default(self):
        policy = ReconnectPolicy(SessionConfig())

        assert policy.next_delay(1000) == 5.0

    def test_attempt_cap(self):
        """Test con max_attempts se deja de reintentar al alcanzarlo."""
        policy = ReconnectPolicy(SessionConfig(reconnect_delay=1.0, max_attempts=3))

        assert policy.next_delay(0) == 1.0
        assert policy.next_delay(2) == 1.0
        assert policy.next_delay(3) is None
        assert policy.next_delay(4) is None


class TestReconnectEvaluate:
    """Tests para ReconnectPolicy.evaluate()."""

    @pytest.mark.asyncio
    async def test_enabled_without_setting(self):
        policy = ReconnectPolicy(SessionConfig(reconnect_delay=5.0))

        assert await policy.enabled() is True
        assert await policy.evaluate(0) == 5.0

    @pytest.mark.asyncio
    async def test_disabled_setting(self):
        setting = AsyncMock(return_value=False)
        policy = ReconnectPolicy(SessionConfig(), auto_reconnect=setting)

        assert await policy.evaluate(0) is None
        setting.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_setting_read_on_every_evaluation(self):
        """Test la preferencia no se cachea entre evaluaciones."""
        setting = AsyncMock(side_effect=[True, False, True])
        policy = ReconnectPolicy(SessionConfig(reconnect_delay=1.0), auto_reconnect=setting)

        assert await policy.evaluate(0) == 1.0
        assert await policy.evaluate(0) is None
        assert await policy.evaluate(0) == 1.0
        assert setting.await_count == 3

    @pytest.mark.asyncio
    async def test_setting_error_assumes_enabled(self, caplog):
        setting = AsyncMock(side_effect=OSError("storage unavailable"))
        policy = ReconnectPolicy(SessionConfig(reconnect_delay=1.0), auto_reconnect=setting)

        with caplog.at_level(logging.ERROR):
            assert await policy.evaluate(0) == 1.0

        assert "storage unavailable" in caplog.text

    @pytest.mark.asyncio
    async def test_cap_reached_logs_warning(self, caplog):
        policy = ReconnectPolicy(SessionConfig(max_attempts=1))

        with caplog.at_level(logging.WARNING):
            assert await policy.evaluate(1) is None

        assert "Máximo de intentos" in caplog.text

    @pytest.mark.asyncio
    async def test_reads_settings_store(self, settings):
        policy = ReconnectPolicy(SessionConfig(), auto_reconnect=settings.auto_reconnect_enabled)
        assert await policy.evaluate(0) == 5.0

        await settings.update_settings(auto_reconnect=False)
        assert await policy.evaluate(0) is None


class TestReconnectAttemptState:
    """Tests para el estado de reconexión."""

    def test_initial_state(self):
        state = ReconnectAttemptState()

        assert state.timer_pending is False
        assert state.target is None
        assert state.attempts == 0

    def test_cancel_timer(self):
        timer = Mock()
        state = ReconnectAttemptState(pending_timer=timer)

        assert state.cancel_timer() is True
        timer.cancel.assert_called_once()
        assert state.timer_pending is False
        assert state.cancel_timer() is False

    def test_reset(self):
        timer = Mock()
        state = ReconnectAttemptState(
            pending_timer=timer,
            target=ConnectionTarget("192.168.1.50"),
            attempts=4,
        )

        state.reset()

        timer.cancel.assert_called_once()
        assert state.attempts == 0
        assert state.target == ConnectionTarget("192.168.1.50")

    @pytest.mark.asyncio
    async def test_cancelled_timer_never_fires(self):
        loop = asyncio.get_running_loop()
        fired = []
        state = ReconnectAttemptState(pending_timer=loop.call_later(0.01, fired.append, True))

        state.cancel_timer()
        await asyncio.sleep(0.03)

        assert fired == []
