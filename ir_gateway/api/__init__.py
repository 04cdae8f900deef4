"""REST API for IR Gateway.

This package provides a Flask-based REST API for transmitting buttons and
querying device status without going through MQTT.

Modules:
    rest_api: Flask application factory and API endpoints
"""

from .rest_api import create_app, start_api

__all__ = ["create_app", "start_api"]
