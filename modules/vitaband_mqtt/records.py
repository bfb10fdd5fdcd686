"""Registros tipados de los tópicos de salud.

Modelos Pydantic para los cuatro tipos de mensaje que publica la pulsera
VitaBand. La validación del esquema se hace aquí; el códec sólo traduce
errores de validación a ``MalformedMessage``.
"""

from enum import Enum
from typing import Annotated, Any, List

from pydantic import BaseModel, BeforeValidator, Field


class Priority(str, Enum):
    """Prioridad de una recomendación o estado."""
    CRITICAL = "critical"
    WARNING = "warning"
    CAUTION = "caution"
    NORMAL = "normal"

    @property
    def requires_notification(self) -> bool:
        """True si la prioridad dispara una notificación al usuario."""
        return self in (Priority.CRITICAL, Priority.WARNING)


class AlertLevel(str, Enum):
    """Nivel de una alerta de salud."""
    CRITICAL = "critical"
    WARNING = "warning"


def _strict_number(value: Any) -> Any:
    # bool es subclase de int y las cadenas numéricas pasarían en modo lax
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("se esperaba un valor numérico")
    return value


Numeric = Annotated[float, BeforeValidator(_strict_number)]


class Recommendation(BaseModel):
    """Recomendación de salud (``health/recommendation``)."""
    timestamp: str
    message: str
    summary: str
    advice: str
    priority: Priority
    active_labels: List[str] = Field(default_factory=list)


class SensorValues(BaseModel):
    """Lecturas instantáneas de todos los sensores."""
    body_temp: Numeric
    ambient_temp: Numeric
    pressure_hpa: Numeric
    humidity_pct: Numeric
    accel_x: Numeric
    accel_y: Numeric
    accel_z: Numeric
    gyro_x: Numeric
    gyro_y: Numeric
    gyro_z: Numeric
    heart_rate_bpm: Numeric
    spo2_pct: Numeric


class SensorReading(BaseModel):
    """Muestra de sensores (``health/sensors``)."""
    timestamp: str
    sensors: SensorValues


class StatusUpdate(BaseModel):
    """Estado rápido (``health/status``)."""
    timestamp: str
    priority: Priority


class Alert(BaseModel):
    """Alerta crítica (``health/alerts``)."""
    timestamp: str
    level: AlertLevel
    message: str
    labels: List[str]


class HistoryItem(Recommendation):
    """Recomendación guardada en el historial con su identificador."""
    id: str
