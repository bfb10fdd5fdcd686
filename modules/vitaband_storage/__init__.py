"""VitaBand Storage

Preferencias de usuario e historial de recomendaciones sobre un almacén
clave-valor externo.
"""

from modules.vitaband_storage.history import RecommendationHistory
from modules.vitaband_storage.settings import AppSettings, SettingsStore

__version__ = "1.0.0"
__all__ = [
    "AppSettings",
    "SettingsStore",
    "RecommendationHistory",
]
