"""Unit tests for MQTT messaging abstraction layer.

This module tests the MessageBroker class. Tests verify that publish and
subscribe operations reach the client held by AppState with the proper
topics, payloads and QoS, and that failures surface as PublishFailed.

Key Testing Patterns:
    - Mock MQTT client to avoid requiring actual broker
    - Verify method calls with assert_called_once_with()
    - Simulate missing acknowledgements through the message info mock

Example Run:
    pytest tests/unit/ir_gateway/core/test_messaging.py -v
"""

import json
from unittest.mock import MagicMock

import paho.mqtt.client as mqtt
import pytest

from ir_gateway.core.errors import PublishFailed
from ir_gateway.core.messaging import MessageBroker


class TestMessageBroker:
    """Test suite for MessageBroker class."""

    def test_initialization(self, app_state):
        broker = MessageBroker(app_state, qos=1, publish_timeout=5)

        assert broker.state is app_state
        assert broker.qos == 1
        assert broker.publish_timeout == 5

    def test_publish_verbatim(self, broker, mock_mqtt_client):
        broker.publish("home/tv/mute", "toggle")

        mock_mqtt_client.publish.assert_called_once_with(
            "home/tv/mute", payload="toggle", qos=0, retain=False
        )

    def test_publish_qos0_does_not_wait(self, broker, mock_mqtt_client):
        info = MagicMock(rc=0)
        mock_mqtt_client.publish.return_value = info

        broker.publish("t", "p")

        info.wait_for_publish.assert_not_called()

    def test_publish_qos1_waits_for_ack(self, app_state, mock_mqtt_client):
        info = MagicMock(rc=0)
        info.is_published.return_value = True
        mock_mqtt_client.publish.return_value = info
        broker = MessageBroker(app_state, qos=1, publish_timeout=2.0)

        broker.publish("t", "p")

        info.wait_for_publish.assert_called_once_with(timeout=2.0)

    def test_publish_qos_override(self, broker, mock_mqtt_client):
        info = MagicMock(rc=0)
        info.is_published.return_value = True
        mock_mqtt_client.publish.return_value = info

        broker.publish("t", "p", qos=2)

        assert mock_mqtt_client.publish.call_args[1]["qos"] == 2
        info.wait_for_publish.assert_called_once()

    def test_publish_ack_timeout(self, app_state, mock_mqtt_client):
        info = MagicMock(rc=0)
        info.is_published.return_value = False
        mock_mqtt_client.publish.return_value = info
        broker = MessageBroker(app_state, qos=1, publish_timeout=0.1)

        with pytest.raises(PublishFailed, match="acknowledgement"):
            broker.publish("t", "p")

    def test_publish_wait_error(self, app_state, mock_mqtt_client):
        info = MagicMock(rc=0)
        info.wait_for_publish.side_effect = RuntimeError("Message publish failed")
        mock_mqtt_client.publish.return_value = info
        broker = MessageBroker(app_state, qos=1)

        with pytest.raises(PublishFailed):
            broker.publish("t", "p")

    def test_publish_error_code(self, broker, mock_mqtt_client):
        mock_mqtt_client.publish.return_value = MagicMock(rc=mqtt.MQTT_ERR_NO_CONN)

        with pytest.raises(PublishFailed):
            broker.publish("t", "p")

    def test_publish_json(self, broker, mock_mqtt_client):
        data = {"devices": {"lamp": {"milliamps": 120, "is_on": True}}}

        broker.publish_json("ir/status", data)

        call_args = mock_mqtt_client.publish.call_args
        assert call_args[0][0] == "ir/status"
        assert json.loads(call_args[1]["payload"]) == data

    def test_publish_json_unserializable(self, broker, mock_mqtt_client):
        with pytest.raises(PublishFailed, match="json"):
            broker.publish_json("ir/status", {"bad": object()})
        mock_mqtt_client.publish.assert_not_called()

    def test_subscribe_basic(self, broker, mock_mqtt_client):
        assert broker.subscribe("ir/#") is True
        mock_mqtt_client.subscribe.assert_called_once_with("ir/#", qos=0)

    def test_subscribe_failure(self, broker, mock_mqtt_client):
        mock_mqtt_client.subscribe.return_value = (mqtt.MQTT_ERR_NO_CONN, None)
        assert broker.subscribe("ir/#") is False
