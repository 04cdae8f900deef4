"""Core infrastructure modules for IR Gateway.

This package provides the foundations shared by every gateway component,
decoupling the routing logic from infrastructure concerns.

Modules:
    config: Runtime settings loading and validation
    errors: Error taxonomy
    model: Action table (remotes, buttons, actions, devices)
    state: Shared application state and its locks
    messaging: MQTT messaging abstraction layer
"""

from .config import Settings, load_settings, normalize_topic_prefix
from .errors import ConfigurationError, GatewayError
from .messaging import MessageBroker
from .model import GatewayConfig
from .state import AppState

__all__ = [
    "AppState",
    "ConfigurationError",
    "GatewayConfig",
    "GatewayError",
    "MessageBroker",
    "Settings",
    "load_settings",
    "normalize_topic_prefix",
]
