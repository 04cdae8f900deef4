"""Action execution.

Runs the side effect configured for a button: an HTTP call or an MQTT
publish. Failures are raised as ActionError subclasses for the caller to
log; nothing here is fatal.
"""

# Standard library imports
import logging

# Third-party imports
import requests

# Local imports
from .core.errors import CallFailed, MissingField, UnsupportedMethod
from .core.messaging import MessageBroker
from .core.model import Action, HttpAction, MqttAction

# Configure logger
logger = logging.getLogger(__name__)

DEFAULT_HTTP_METHOD = "POST"
SUPPORTED_HTTP_METHODS = frozenset(["GET", "POST"])


def normalize_method(method) -> str:
    """
    Normalize an HTTP method name.

    Args:
        method: Configured method or None

    Returns:
        "GET" or "POST" (POST when no method is configured)

    Raises:
        UnsupportedMethod: For any other method

    Examples:
        >>> normalize_method(None)
        'POST'
        >>> normalize_method("get")
        'GET'
    """
    if method is None:
        return DEFAULT_HTTP_METHOD
    normalized = method.strip().upper()
    if normalized not in SUPPORTED_HTTP_METHODS:
        raise UnsupportedMethod(method)
    return normalized


class ActionDispatcher:
    """Execute configured actions.

    Attributes:
        broker: Message broker used for MQTT actions.
        http_timeout: Timeout in seconds for HTTP actions.
    """

    def __init__(self, broker: MessageBroker, http_timeout: float = 10.0):
        self.broker = broker
        self.http_timeout = http_timeout

    def dispatch(self, action: Action) -> None:
        """Run one action.

        Raises:
            ActionError: If the action is incomplete or fails.
        """
        if isinstance(action, HttpAction):
            self._do_http_action(action)
        elif isinstance(action, MqttAction):
            self._do_mqtt_action(action)
        else:
            raise TypeError(f"unknown action: {action!r}")

    def _do_http_action(self, action: HttpAction) -> None:
        if not action.url:
            raise MissingField("http", "url")
        method = normalize_method(action.method)

        logger.debug(f"invoking action http {method} {action.url}")
        try:
            response = requests.request(method, action.url, timeout=self.http_timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise CallFailed(method, action.url, e) from e

        logger.info(f"HTTP action {method} {action.url} -> {response.status_code}")

    def _do_mqtt_action(self, action: MqttAction) -> None:
        if not action.topic:
            raise MissingField("mqtt", "topic")
        if action.payload is None:
            raise MissingField("mqtt", "payload")

        logger.debug(f"invoking action mqtt {action.topic}")
        self.broker.publish(action.topic, action.payload)
