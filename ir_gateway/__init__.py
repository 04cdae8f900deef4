"""IR Gateway - bridges an infrared controller to MQTT and HTTP actions."""

__version__ = "0.3.0"
