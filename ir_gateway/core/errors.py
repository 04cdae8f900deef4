"""Error taxonomy for IR Gateway.

Every runtime failure raised inside the gateway derives from GatewayError so
that the event boundaries (button presses, inbound MQTT messages, status
publication, REST handlers) can log and contain them uniformly.

Hierarchy:
    GatewayError
        ConfigurationError      - bad settings or action table (fatal at startup)
        ActionError             - a configured action could not run
            MissingField
            UnsupportedMethod
            CallFailed
            PublishFailed
        DeviceError             - the controller reported a failure
            InvalidButton
            DeviceTimeout
        MessageError            - an inbound MQTT message could not be routed
            RoutingError
            InvalidPayload
            UnknownTopic
        LockError               - shared state lock could not be acquired (fatal)
"""


class GatewayError(Exception):
    """Base class for all IR Gateway errors."""


class ConfigurationError(GatewayError):
    """Settings or action table are malformed or incomplete."""


# ----------------------------
# Action errors
# ----------------------------


class ActionError(GatewayError):
    """A configured action failed to execute."""


class MissingField(ActionError):
    def __init__(self, action_type: str, field: str):
        self.action_type = action_type
        self.field = field
        super().__init__(f"'{action_type}' actions require a {field}")


class UnsupportedMethod(ActionError):
    def __init__(self, method: str):
        self.method = method
        super().__init__(f"unexpected http method: {method}")


class CallFailed(ActionError):
    def __init__(self, method: str, url: str, cause: object):
        self.method = method
        self.url = url
        self.cause = cause
        super().__init__(f"failed to call: {method} {url}: {cause}")


class PublishFailed(ActionError):
    def __init__(self, cause: object):
        self.cause = cause
        super().__init__(f"mqtt publish failed: {cause}")


# ----------------------------
# Device errors
# ----------------------------


class DeviceError(GatewayError):
    """The controller failed to carry out a request."""


class InvalidButton(DeviceError):
    def __init__(self, remote_name: str, button_name: str):
        self.remote_name = remote_name
        self.button_name = button_name
        super().__init__(f"button not found {remote_name}:{button_name}")


class DeviceTimeout(DeviceError):
    """The controller did not answer in time."""


# ----------------------------
# Inbound message errors
# ----------------------------


class MessageError(GatewayError):
    """An inbound MQTT message could not be handled."""


class RoutingError(MessageError):
    def __init__(self, topic: str, prefix: str):
        self.topic = topic
        self.prefix = prefix
        super().__init__(f"topic '{topic}' must start with: {prefix}")


class InvalidPayload(MessageError):
    """Payload is not the JSON document the topic expects."""


class UnknownTopic(MessageError):
    def __init__(self, topic: str):
        self.topic = topic
        super().__init__(f"unhandled topic for incoming message: {topic}")


class LockError(GatewayError):
    """A shared state lock could not be acquired."""
