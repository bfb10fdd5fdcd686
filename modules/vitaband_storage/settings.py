"""Preferencias de usuario persistidas.

Las preferencias se guardan como JSON en el almacén clave-valor. Un valor
ilegible o ausente se sustituye por los valores por defecto.
"""

import logging
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from adapters.interfaces.storage import KeyValueStoreInterface
from modules.vitaband_storage.keys import LAST_CONNECTED_IP_KEY, SETTINGS_KEY


class AppSettings(BaseModel):
    """Preferencias de la aplicación."""

    broker_address: str = Field(default="", description="Último broker configurado")
    broker_port: int = Field(default=1883, ge=1, le=65535, description="Puerto del broker")
    notifications_enabled: bool = True
    sound_enabled: bool = True
    vibration_enabled: bool = True
    connection_timeout: int = Field(default=30000, gt=0, description="Timeout de conexión en ms")
    auto_reconnect: bool = Field(default=True, description="Reconectar tras perder la conexión")
    last_connected_ip: Optional[str] = None
    chart_refresh_rate: int = Field(default=5000, gt=0)
    history_retention_days: int = Field(default=30, gt=0)
    dark_mode_enabled: bool = False
    language: str = "en"


class SettingsStore:
    """Lectura y escritura de ``AppSettings`` sobre el almacén."""

    def __init__(self, store: KeyValueStoreInterface):
        self._store = store
        self.logger = logging.getLogger(__name__)

    async def get_settings(self) -> AppSettings:
        """Lee las preferencias; devuelve los valores por defecto si no hay o son inválidas."""
        try:
            raw = await self._store.get(SETTINGS_KEY)
        except Exception as e:
            self.logger.error(f"Error leyendo preferencias: {e}")
            return AppSettings()

        if raw is None:
            return AppSettings()

        try:
            return AppSettings.model_validate_json(raw)
        except ValidationError as e:
            self.logger.warning(f"Preferencias inválidas, usando valores por defecto: {e}")
            return AppSettings()

    async def save_settings(self, settings: AppSettings) -> None:
        await self._store.set(SETTINGS_KEY, settings.model_dump_json())

    async def update_settings(self, **changes: Any) -> AppSettings:
        """Aplica cambios parciales y guarda el resultado.

        Raises:
            ValidationError: Si algún cambio no es válido
        """
        current = await self.get_settings()
        updated = AppSettings.model_validate({**current.model_dump(), **changes})
        await self.save_settings(updated)
        return updated

    async def auto_reconnect_enabled(self) -> bool:
        """Lee la preferencia de reconexión automática en este momento."""
        return (await self.get_settings()).auto_reconnect

    async def record_connection(self, host: str, port: int) -> None:
        """Guarda el último broker al que se conectó la sesión."""
        await self._store.set(LAST_CONNECTED_IP_KEY, host)
        await self.update_settings(broker_address=host, broker_port=port, last_connected_ip=host)

    async def last_connected_ip(self) -> Optional[str]:
        return await self._store.get(LAST_CONNECTED_IP_KEY)
