"""Infrastructure layer for the VitaBand health client.

This package contains concrete implementations of the session's external
collaborators: the MQTT transport, key-value stores, notifications and
broker discovery, plus the composition root.
"""

__version__ = "1.0.0"
