"""Configuración de la sesión MQTT."""

import os
import random
import string
import time
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ConnectionTarget:
    """Broker al que se conecta la sesión."""
    host: str
    port: int = 1883

    def __post_init__(self):
        if not isinstance(self.host, str) or not self.host.strip():
            raise ValueError("El host del broker no puede estar vacío")
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ValueError(f"Puerto inválido: {self.port!r}")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"Puerto fuera de rango (1-65535): {self.port}")

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class SessionConfig:
    """Parámetros de conexión y reconexión.

    ``backoff_multiplier`` sólo se usa con ``exponential_backoff=True``; por
    defecto la reconexión espera siempre ``reconnect_delay`` segundos.
    """
    keepalive_secs: int = 60
    connect_timeout_ms: int = 30000
    clean_session: bool = True
    reconnect_delay: float = 5.0
    backoff_multiplier: float = 1.5
    exponential_backoff: bool = False
    max_delay: float = 60.0
    max_attempts: Optional[int] = None
    history_capacity: int = 100
    client_id_prefix: str = "health_monitor_"

    def __post_init__(self):
        if self.keepalive_secs <= 0:
            raise ValueError("keepalive_secs debe ser mayor a 0")
        if self.connect_timeout_ms <= 0:
            raise ValueError("connect_timeout_ms debe ser mayor a 0")
        if self.reconnect_delay < 0:
            raise ValueError("reconnect_delay no puede ser negativo")
        if self.max_attempts is not None and self.max_attempts <= 0:
            raise ValueError("max_attempts debe ser mayor a 0")
        if self.history_capacity <= 0:
            raise ValueError("history_capacity debe ser mayor a 0")

    @property
    def connect_timeout(self) -> float:
        """Timeout de conexión en segundos."""
        return self.connect_timeout_ms / 1000

    def new_client_id(self) -> str:
        """Genera un client_id único para un intento de conexión."""
        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
        return f"{self.client_id_prefix}{int(time.time() * 1000)}_{suffix}"

    @classmethod
    def from_env(cls) -> "SessionConfig":
        """Crea la configuración desde variables de entorno.

        Variables reconocidas (todas opcionales):
        - VITABAND_KEEPALIVE
        - VITABAND_CONNECT_TIMEOUT_MS
        - VITABAND_CLEAN_SESSION
        - VITABAND_RECONNECT_DELAY
        - VITABAND_MAX_RECONNECT_ATTEMPTS
        - VITABAND_HISTORY_CAPACITY

        Raises:
            ValueError: Si alguna variable tiene un valor inválido
        """
        config = cls()

        keepalive = os.getenv("VITABAND_KEEPALIVE")
        if keepalive:
            config.keepalive_secs = int(keepalive)

        timeout = os.getenv("VITABAND_CONNECT_TIMEOUT_MS")
        if timeout:
            config.connect_timeout_ms = int(timeout)

        clean = os.getenv("VITABAND_CLEAN_SESSION")
        if clean:
            config.clean_session = clean.strip().lower() in ("1", "true", "yes", "on")

        delay = os.getenv("VITABAND_RECONNECT_DELAY")
        if delay:
            config.reconnect_delay = float(delay)

        attempts = os.getenv("VITABAND_MAX_RECONNECT_ATTEMPTS")
        if attempts:
            config.max_attempts = int(attempts)

        capacity = os.getenv("VITABAND_HISTORY_CAPACITY")
        if capacity:
            config.history_capacity = int(capacity)

        # Revalidar con los valores del entorno
        config.__post_init__()
        return config
