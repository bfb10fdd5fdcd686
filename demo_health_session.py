#!/usr/bin/env python3
"""Demo de la sesión MQTT de salud

Ejemplo de uso del módulo vitaband_mqtt: descubre el broker de la pulsera,
se conecta, muestra los mensajes recibidos y reconecta automáticamente si se
pierde la conexión.
"""

import argparse
import asyncio
import logging
from typing import Any, Dict, Optional

from infrastructure.container import SessionContainer, create_session
from infrastructure.discovery import StaticDiscoveryService
from infrastructure.key_value_store import JsonFileKeyValueStore
from modules.vitaband_mqtt import (
    Alert,
    ConnectionFailed,
    ConnectionTarget,
    Recommendation,
    SensorReading,
    SessionConfig,
    SessionState,
    StatusUpdate,
)

# Configurar logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class HealthSessionDemo:
    """Demo de la sesión de salud."""

    def __init__(self, store_path: str):
        """Inicializa el demo.

        Args:
            store_path: Fichero JSON para preferencias e historial
        """
        self.store_path = store_path
        self.container: Optional[SessionContainer] = None

    def create_container(self) -> SessionContainer:
        container = create_session(
            config=SessionConfig.from_env(),
            store=JsonFileKeyValueStore(self.store_path),
        )

        session = container.session
        session.on_state_change(lambda state: logger.info(f"Estado: {state.value}"))
        session.on_recommendation(self.show_recommendation)
        session.on_sensor_data(self.show_sensors)
        session.on_status(self.show_status)
        session.on_alert(self.show_alert)
        session.on_error(lambda error: logger.debug(f"Error absorbido: {error}"))
        return container

    def show_recommendation(self, recommendation: Recommendation):
        logger.info(f"Recomendación [{recommendation.priority.value}]: {recommendation.summary}")

    def show_sensors(self, reading: SensorReading):
        sensors = reading.sensors
        logger.info(
            f"Sensores: temp={sensors.body_temp:.1f}°C "
            f"pulso={sensors.heart_rate_bpm:.0f}bpm SpO2={sensors.spo2_pct:.0f}%"
        )

    def show_status(self, status: StatusUpdate):
        logger.info(f"Estado de salud: {status.priority.value}")

    def show_alert(self, alert: Alert):
        logger.warning(f"ALERTA [{alert.level.value}]: {alert.message}")

    async def discover(self, candidates, timeout: float) -> Optional[ConnectionTarget]:
        """Devuelve el primer broker encontrado, o None."""
        found: asyncio.Future = asyncio.get_running_loop().create_future()
        discovery = StaticDiscoveryService(candidates, scan_timeout=timeout)

        def on_found(target: ConnectionTarget):
            if not found.done():
                found.set_result(target)

        def on_timeout():
            if not found.done():
                found.set_result(None)

        discovery.start_scan(on_found, on_timeout)
        try:
            return await found
        finally:
            discovery.stop_scan()

    def show_detailed_status(self, status: Dict[str, Any]):
        logger.info("=== Estado Detallado de la Sesión ===")
        logger.info(f"Estado: {status['state']}")
        logger.info(f"Broker: {status['target']}")
        logger.info(f"Intentos reconexión: {status['reconnect_attempts']}")
        logger.info(f"Suscripciones fallidas: {status['failed_subscriptions'] or 'ninguna'}")
        logger.info("=====================================")

    async def run_demo(self, candidates, duration: int = 300):
        """Ejecuta el demo completo.

        Args:
            candidates: Brokers candidatos
            duration: Duración del demo en segundos
        """
        self.container = self.create_container()
        session = self.container.session

        last_ip = await self.container.settings.last_connected_ip()
        if last_ip:
            candidates = [ConnectionTarget(last_ip, candidates[0].port if candidates else 1883)] + list(candidates)

        target = await self.discover(candidates, timeout=5.0)
        if target is None:
            logger.error("No se encontró ningún broker")
            return

        try:
            await session.connect(target)
        except ConnectionFailed as e:
            logger.error(f"No se pudo conectar: {e}")
            return

        try:
            elapsed = 0
            while elapsed < duration:
                await asyncio.sleep(30)
                elapsed += 30
                self.show_detailed_status(session.status())
                if session.state is SessionState.DISCONNECTED:
                    logger.info("Sesión desconectada sin reconexión automática")
                    break
        finally:
            await session.disconnect()
            history = await self.container.history.items()
            logger.info(f"Demo completado, {len(history)} recomendaciones en historial")


async def main():
    """Función principal del demo."""
    parser = argparse.ArgumentParser(description="Demo de la sesión MQTT de salud")
    parser.add_argument("--host", default="raspberrypi.local", help="Host del broker")
    parser.add_argument("--port", type=int, default=1883, help="Puerto del broker")
    parser.add_argument("--duration", type=int, default=300, help="Duración en segundos")
    parser.add_argument("--store", default="health_monitor.json", help="Fichero de almacenamiento")
    args = parser.parse_args()

    demo = HealthSessionDemo(args.store)
    try:
        await demo.run_demo([ConnectionTarget(args.host, args.port)], duration=args.duration)
    except KeyboardInterrupt:
        logger.info("Demo interrumpido por el usuario")


if __name__ == "__main__":
    asyncio.run(main())
