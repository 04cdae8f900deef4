"""MQTT gateway: connection lifecycle, inbound commands and status reports.

Connection management:
    The gateway drives paho-mqtt's ``connect()``/``loop()`` primitives from a
    single supervisor loop instead of relying on paho's own reconnect logic:

        DISCONNECTED -> CONNECTING -> CONNECTED
                ^            |             |
                |            v             v
                +------ RECONNECTING <-----+   (fixed delay, unbounded retries)

    Every successful connection subscribes to ``{prefix}#``. The session is
    clean, so the subscription is issued again after each reconnect. The
    subscribe runs on the inbound worker, never on the network thread.

Inbound topics (relative to the prefix):
    tx              - {"remote_name": ..., "button_name": ...}, transmit a button
    request-status  - publish a status report now (payload ignored)

Outbound topics:
    status          - {"devices": {"<name>": {"milliamps": n, "is_on": bool}}}

Inbound messages are handled on a single worker thread, in arrival order,
so the network thread stays free to process acknowledgements.
"""

# Standard library imports
import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Dict, Tuple

# Third-party imports
import paho.mqtt.client as mqtt

# Local imports
from .controller import ControllerError, ControllerTimeoutError, InvalidButtonError
from .core.config import Settings
from .core.errors import (
    DeviceError,
    DeviceTimeout,
    GatewayError,
    InvalidButton,
    InvalidPayload,
    MessageError,
    RoutingError,
    UnknownTopic,
)
from .core.messaging import MessageBroker
from .core.state import AppState

logger = logging.getLogger(__name__)

TOPIC_TRANSMIT = "tx"
TOPIC_REQUEST_STATUS = "request-status"
TOPIC_STATUS = "status"


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


# ----------------------------
# Controller operations
# ----------------------------


def transmit_button(state: AppState, remote_name: str, button_name: str) -> None:
    """Ask the controller to transmit a button.

    Raises:
        InvalidButton: The controller does not know the button.
        DeviceTimeout: The controller timed out.
        DeviceError: Any other controller failure.
    """
    with state.controller() as controller:
        try:
            controller.transmit(remote_name, button_name)
        except InvalidButtonError as e:
            raise InvalidButton(e.remote_name, e.button_name) from e
        except ControllerTimeoutError as e:
            raise DeviceTimeout(f"timeout {e}") from e
        except ControllerError as e:
            raise DeviceError(f"transmit error {e}") from e


def read_status(state: AppState) -> Dict[str, Any]:
    """Read every current sensing channel and build the status record.

    Channels without a configured device are left out.

    Raises:
        DeviceTimeout: A channel read timed out.
        DeviceError: A channel read failed.
    """
    readings = []
    with state.controller() as controller:
        for channel in controller.current_channels:
            try:
                reading = controller.get_current(channel)
            except ControllerTimeoutError as e:
                raise DeviceTimeout(f"timeout: {e}") from e
            except ControllerError as e:
                raise DeviceError(f"current read error on channel {channel}: {e}") from e
            readings.append((channel, reading.milliamps))

    devices: Dict[str, Dict[str, Any]] = {}
    for channel, milliamps in readings:
        device = state.config.device_for_channel(channel)
        if device is None:
            continue
        devices[device.name] = {
            "milliamps": milliamps,
            "is_on": milliamps > device.on_threshold_milliamps,
        }
    return {"devices": devices}


def parse_transmit_request(payload: str) -> Tuple[str, str]:
    """Parse a tx payload into (remote_name, button_name).

    Raises:
        InvalidPayload: If the payload is not the expected JSON object.
    """
    try:
        message = json.loads(payload)
    except ValueError as e:
        raise InvalidPayload(f"invalid transmit message: {e}") from e

    if not isinstance(message, dict):
        raise InvalidPayload("invalid transmit message: expected a JSON object")

    remote_name = message.get("remote_name")
    button_name = message.get("button_name")
    if not isinstance(remote_name, str) or not isinstance(button_name, str):
        raise InvalidPayload(
            "invalid transmit message: 'remote_name' and 'button_name' must be strings"
        )
    return remote_name, button_name


def create_mqtt_client(settings: Settings) -> mqtt.Client:
    """Build the paho client from settings (not connected yet)."""
    client = mqtt.Client(
        mqtt.CallbackAPIVersion.VERSION2,
        client_id=settings.mqtt_client_id,
        clean_session=True,
        protocol=mqtt.MQTTv311,
    )
    if settings.mqtt_username:
        client.username_pw_set(settings.mqtt_username, settings.mqtt_password)
    return client


class MessagingGateway:
    """Owns the MQTT connection and routes messages in and out.

    Attributes:
        state: Shared application state.
        broker: Message broker used for subscriptions and status reports.
        client: paho-mqtt client (also attached to ``state`` as the bus).
        connection_state: Current ConnectionState.
        connection_count: Number of successful connections so far.

    Example:
        >>> gateway = MessagingGateway(state, broker, client, "localhost", 1883)
        >>> stop_event = threading.Event()
        >>> threading.Thread(target=gateway.run, args=(stop_event,), daemon=True).start()
    """

    def __init__(
        self,
        state: AppState,
        broker: MessageBroker,
        client: mqtt.Client,
        host: str,
        port: int = 1883,
        keepalive: int = 120,
        reconnect_delay: float = 2.5,
    ):
        self.state = state
        self.broker = broker
        self.client = client
        self.host = host
        self.port = port
        self.keepalive = keepalive
        self.reconnect_delay = reconnect_delay

        self.connection_state = ConnectionState.DISCONNECTED
        self.connection_count = 0
        self.connected = threading.Event()
        self._state_lock = threading.Lock()
        self._inbox = ThreadPoolExecutor(max_workers=1, thread_name_prefix="MQTT-Inbox")

        client.on_connect = self.on_connect
        client.on_disconnect = self.on_disconnect
        client.on_message = self.on_message

    @property
    def subscription_topic(self) -> str:
        return f"{self.state.topic_prefix}#"

    @property
    def status_topic(self) -> str:
        return f"{self.state.topic_prefix}{TOPIC_STATUS}"

    def _set_state(self, new_state: ConnectionState) -> None:
        with self._state_lock:
            if new_state is not self.connection_state:
                logger.debug(f"mqtt {self.connection_state.value} -> {new_state.value}")
            self.connection_state = new_state
            if new_state is ConnectionState.CONNECTED:
                self.connection_count += 1
                self.connected.set()
            else:
                self.connected.clear()

    def is_connected(self) -> bool:
        return self.connected.is_set()

    # ----------------------------
    # Connection supervision
    # ----------------------------

    def run(self, stop_event: threading.Event) -> None:
        """Connect and keep the connection alive until stop_event is set."""
        logger.info(f"Starting MQTT gateway for {self.host}:{self.port}")
        try:
            while not stop_event.is_set():
                self._set_state(ConnectionState.CONNECTING)
                if self._connect():
                    self._pump(stop_event)
                if stop_event.is_set():
                    break
                self._set_state(ConnectionState.RECONNECTING)
                logger.info(f"Reconnecting in {self.reconnect_delay} seconds...")
                stop_event.wait(self.reconnect_delay)
        finally:
            self._set_state(ConnectionState.DISCONNECTED)
            self._inbox.shutdown(wait=False)
            logger.info("MQTT gateway stopped")

    def _connect(self) -> bool:
        try:
            logger.info(f"Attempting to connect to MQTT broker at {self.host}:{self.port}...")
            self.client.connect(self.host, self.port, keepalive=self.keepalive)
            return True
        except (OSError, ValueError) as e:
            logger.error(f"mqtt connection failure: {e}")
            return False

    def _pump(self, stop_event: threading.Event) -> None:
        """Run the network loop until the connection drops or we are stopped."""
        while not stop_event.is_set():
            rc = self.client.loop(timeout=1.0)
            if rc != mqtt.MQTT_ERR_SUCCESS:
                logger.warning(f"mqtt connection lost: {mqtt.error_string(rc)}")
                return

    def stop(self) -> None:
        """Disconnect cleanly; the supervisor loop exits once its stop_event is set."""
        try:
            self.client.disconnect()
        except Exception as e:
            logger.error(f"Error disconnecting from MQTT broker: {e}")

    # ----------------------------
    # paho callbacks
    # ----------------------------

    def on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if reason_code.is_failure:
            logger.error(f"mqtt connection failure {reason_code}")
            return

        logger.info("mqtt connected")
        self._set_state(ConnectionState.CONNECTED)
        # never wait for the bus lock on the network thread
        self._inbox.submit(self.broker.subscribe, self.subscription_topic)

    def on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if self.connection_state is ConnectionState.CONNECTED:
            logger.warning(f"mqtt disconnected (rc: {reason_code})")
        self.connected.clear()

    def on_message(self, client, userdata, message) -> None:
        payload = message.payload.decode("utf-8", errors="replace")
        self._inbox.submit(self.handle_message, message.topic, payload)

    # ----------------------------
    # Inbound routing
    # ----------------------------

    def handle_message(self, topic: str, payload: str) -> None:
        """Route one inbound message, logging any failure."""
        try:
            self.route_message(topic, payload)
        except UnknownTopic as e:
            if topic == self.status_topic:
                # our own status report echoed back by the wildcard subscription
                logger.debug(str(e))
            else:
                logger.warning(str(e))
        except MessageError as e:
            logger.warning(str(e))
            logger.debug(f"payload: {payload}")
        except GatewayError as e:
            logger.error(f"{topic}: {e}")
        except Exception as e:
            logger.error(f"Error handling MQTT message on {topic}: {e}", exc_info=True)

    def route_message(self, topic: str, payload: str) -> None:
        """Dispatch an inbound message by topic suffix.

        Raises:
            RoutingError: Topic outside the prefix.
            UnknownTopic: Unhandled suffix.
            InvalidPayload: Malformed tx payload.
            DeviceError: Controller failure.
            ActionError: Status publication failure.
        """
        prefix = self.state.topic_prefix
        if not topic.startswith(prefix):
            raise RoutingError(topic, prefix)

        suffix = topic[len(prefix):]
        if suffix == TOPIC_TRANSMIT:
            self.handle_transmit(payload)
        elif suffix == TOPIC_REQUEST_STATUS:
            logger.debug("handling request-status request")
            self.publish_status()
        else:
            raise UnknownTopic(topic)

    def handle_transmit(self, payload: str) -> None:
        remote_name, button_name = parse_transmit_request(payload)
        logger.debug(f"handling transmit request {remote_name}:{button_name}")
        transmit_button(self.state, remote_name, button_name)
        logger.info(f"Transmitted {remote_name}:{button_name}")

    # ----------------------------
    # Outbound status
    # ----------------------------

    def publish_status(self) -> Dict[str, Any]:
        """Read the current sensors and publish the status report.

        Returns:
            The published status record.

        Raises:
            DeviceTimeout / DeviceError: Sensor read failed.
            PublishFailed: The report could not be published.
        """
        status = read_status(self.state)
        logger.debug("sending status")
        self.broker.publish_json(self.status_topic, status)
        return status
