"""Claves del almacén clave-valor."""

SETTINGS_KEY = "@health_monitor:settings"
HISTORY_KEY = "@health_monitor:history"
LAST_RECOMMENDATION_KEY = "@health_monitor:last_recommendation"
LAST_CONNECTED_IP_KEY = "@health_monitor:last_ip"
