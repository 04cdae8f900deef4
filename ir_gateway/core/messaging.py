"""MQTT messaging abstraction layer for IR Gateway.

This module provides a thin wrapper over the paho-mqtt client owned by
AppState. Every publish and subscribe goes through the shared bus lock and
reports failures as PublishFailed instead of return codes.
"""

import json
import logging
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .errors import PublishFailed
from .state import AppState


logger = logging.getLogger(__name__)


class MessageBroker:
    """Publish and subscribe through the shared MQTT client.

    Attributes:
        state: Shared application state holding the client.
        qos: Default Quality of Service for outgoing messages.
        publish_timeout: Seconds to wait for an acknowledgement when qos > 0.

    Example:
        >>> broker = MessageBroker(state, qos=1)
        >>> broker.publish("home/tv/mute", "toggle")
        >>> broker.publish_json("ir/status", {"devices": {}})
    """

    def __init__(self, state: AppState, qos: int = 0, publish_timeout: float = 10.0):
        """Initialize the message broker.

        Args:
            state: Shared application state; its bus handle must be attached
                before anything is published.
            qos: Default Quality of Service level (0, 1, or 2).
            publish_timeout: Acknowledgement timeout in seconds.
        """
        self.state = state
        self.qos = qos
        self.publish_timeout = publish_timeout
        logger.debug(f"MessageBroker initialized with qos={qos}")

    def publish(self, topic: str, payload: str, qos: Optional[int] = None) -> None:
        """Publish a payload verbatim.

        Blocks until the broker acknowledges the message when qos > 0.

        Args:
            topic: Destination topic.
            payload: Message body.
            qos: Quality of Service level, defaults to the broker's.

        Raises:
            PublishFailed: If the message could not be sent or acknowledged.
        """
        qos = self.qos if qos is None else qos
        with self.state.bus() as client:
            info = client.publish(topic, payload=payload, qos=qos, retain=False)
            if info.rc != mqtt.MQTT_ERR_SUCCESS:
                raise PublishFailed(mqtt.error_string(info.rc))

            if qos > 0:
                try:
                    info.wait_for_publish(timeout=self.publish_timeout)
                except (RuntimeError, ValueError) as e:
                    raise PublishFailed(e) from e
                if not info.is_published():
                    raise PublishFailed(
                        f"no acknowledgement after {self.publish_timeout}s"
                    )

        logger.debug(f"Published to {topic}")

    def publish_json(self, topic: str, data: Dict[str, Any], qos: Optional[int] = None) -> None:
        """Serialize a dictionary to JSON and publish it.

        Raises:
            PublishFailed: If serialization or the publish fails.
        """
        try:
            payload = json.dumps(data)
        except (TypeError, ValueError) as e:
            raise PublishFailed(f"could not convert to json: {e}") from e
        self.publish(topic, payload, qos=qos)

    def subscribe(self, topic: str, qos: int = 0) -> bool:
        """Subscribe to an MQTT topic.

        Returns:
            True if the subscribe request was sent.
        """
        with self.state.bus() as client:
            result, _mid = client.subscribe(topic, qos=qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            logger.error(f"Failed to subscribe to {topic}: {mqtt.error_string(result)}")
            return False
        logger.info(f"Subscribed to topic: {topic}")
        return True
