"""Excepciones del gestor de sesión MQTT.

Sólo ``ConnectionFailed`` y ``AlreadyConnecting`` llegan al código que llama a
``connect()``. El resto se registran en el log y se entregan a los
observadores de errores de la sesión, nunca se lanzan desde el flujo de
mensajes.
"""

from typing import Optional


class SessionError(Exception):
    """Excepción base del gestor de sesión."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        """Inicializa la excepción base.

        Args:
            message: Mensaje de error
            original_error: Excepción original que causó este error
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message} (Causa: {self.original_error})"
        return self.message


class ConnectionFailed(SessionError):
    """El transporte rechazó el handshake con el broker."""

    def __init__(self, reason: str, original_error: Optional[Exception] = None):
        super().__init__(f"Conexión fallida: {reason}", original_error)
        self.reason = reason


class AlreadyConnecting(SessionError):
    """Se pidió ``connect()`` mientras otro intento está en curso."""

    def __init__(self):
        super().__init__("Ya hay un intento de conexión en curso")


class MalformedMessage(SessionError):
    """El payload no cumple el esquema de su tópico."""

    def __init__(self, topic: str, reason: str, original_error: Optional[Exception] = None):
        super().__init__(f"Mensaje inválido en {topic}: {reason}", original_error)
        self.topic = topic
        self.reason = reason


class SubscriptionFailed(SessionError):
    """El broker o el transporte rechazó la suscripción a un tópico."""

    def __init__(self, topic: str, reason: str, original_error: Optional[Exception] = None):
        super().__init__(f"Suscripción fallida a {topic}: {reason}", original_error)
        self.topic = topic
        self.reason = reason


class TransportLost(SessionError):
    """Pérdida de conexión detectada por el transporte.

    No se lanza nunca: es la entrada que dispara la política de reconexión
    y se reporta a los observadores de errores.
    """

    def __init__(self, reason: str):
        super().__init__(f"Conexión perdida: {reason}")
        self.reason = reason
