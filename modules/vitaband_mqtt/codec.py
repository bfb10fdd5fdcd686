"""Códec de sobres de mensaje.

Convierte payloads JSON en registros tipados según la categoría del tópico.
"""

import json
from typing import Dict, Type, Union

from pydantic import BaseModel, ValidationError

from modules.vitaband_mqtt.errors import MalformedMessage
from modules.vitaband_mqtt.records import Alert, Recommendation, SensorReading, StatusUpdate
from modules.vitaband_mqtt.topics import MessageCategory


HealthRecord = Union[Recommendation, SensorReading, StatusUpdate, Alert]

RECORD_TYPES: Dict[MessageCategory, Type[BaseModel]] = {
    MessageCategory.RECOMMENDATION: Recommendation,
    MessageCategory.SENSOR: SensorReading,
    MessageCategory.STATUS: StatusUpdate,
    MessageCategory.ALERT: Alert,
}


class EnvelopeCodec:
    """Deserializa los payloads de los tópicos de salud."""

    def decode(self, topic: str, category: MessageCategory, payload: Union[bytes, str]) -> HealthRecord:
        """Decodifica un payload al registro de su categoría.

        Args:
            topic: Tópico de origen (sólo para el mensaje de error)
            category: Categoría asignada al tópico
            payload: JSON en bytes UTF-8 o texto

        Returns:
            Registro tipado

        Raises:
            MalformedMessage: Si el payload no es JSON válido o no cumple el esquema
        """
        try:
            text = payload.decode("utf-8") if isinstance(payload, (bytes, bytearray)) else payload
            data = json.loads(text)
        except (UnicodeDecodeError, ValueError) as e:
            raise MalformedMessage(topic, "JSON inválido", e) from e

        if not isinstance(data, dict):
            raise MalformedMessage(topic, f"se esperaba un objeto JSON, no {type(data).__name__}")

        try:
            return RECORD_TYPES[category].model_validate(data)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise MalformedMessage(topic, f"campos inválidos: {fields}", e) from e
