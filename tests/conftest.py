"""Pytest configuration and global fixtures.

This module provides fixtures and configuration that are available to all tests.
Fixtures defined here are automatically discovered by pytest and can be used
by any test function by including them as parameters.

Common Fixtures:
    - mock_mqtt_client: Mocked paho-mqtt client for testing without broker
    - sample_config: Action table with two remotes and two devices
    - fake_controller: In-memory controller
    - app_state: AppState wired to the fake controller and mock client
    - broker: MessageBroker on top of app_state
"""

from unittest.mock import MagicMock

import pytest

from ir_gateway.core.messaging import MessageBroker
from ir_gateway.core.model import GatewayConfig
from ir_gateway.core.state import AppState
from tests.fakes import FakeController

SAMPLE_ACTIONS_YAML = """
remotes:
  tv:
    buttons:
      power:
        action:
          type: http
          url: http://hub.local/tv/power
      input:
        action:
          type: http
          url: http://hub.local/tv/input
          method: get
      mute:
        action:
          type: mqtt
          topic: home/tv/mute
          payload: toggle
      volume_up: {}
  receiver:
    buttons:
      power:
devices:
  - name: lamp
    on_threshold_milliamps: 100
  - name: fan
    on_threshold_milliamps: 50
"""


@pytest.fixture
def mock_mqtt_client():
    """Provide a mocked MQTT client for testing.

    This fixture creates a fully mocked paho-mqtt client that can be used
    in tests without requiring an actual MQTT broker connection.

    Returns:
        MagicMock: Mocked MQTT client with common methods stubbed
    """
    client = MagicMock()
    # Configure return values for common methods
    client.connect.return_value = 0
    client.publish.return_value = MagicMock(rc=0)
    client.subscribe.return_value = (0, 1)
    client.loop.return_value = 0
    client.disconnect.return_value = 0
    return client


@pytest.fixture
def sample_config():
    """Action table used by most tests."""
    return GatewayConfig.from_yaml(SAMPLE_ACTIONS_YAML)


@pytest.fixture
def fake_controller():
    controller = FakeController()
    controller.currents = {0: 120, 1: 40}
    return controller


@pytest.fixture
def fatal_handler():
    """Replaces process exit on lock failure."""
    return MagicMock()


@pytest.fixture
def app_state(sample_config, fake_controller, mock_mqtt_client, fatal_handler):
    state = AppState(sample_config, "ir", lock_timeout=0.5, on_fatal=fatal_handler)
    state.attach_controller(fake_controller)
    state.attach_bus(mock_mqtt_client)
    return state


@pytest.fixture
def broker(app_state):
    return MessageBroker(app_state, qos=0, publish_timeout=0.1)


# Pytest hooks for custom behavior


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add automatic markers.

    Args:
        config: pytest config object
        items: list of collected test items
    """
    for item in items:
        # Auto-mark all tests in tests/unit as unit tests
        if "unit" in str(item.path):
            item.add_marker(pytest.mark.unit)

        # Auto-mark integration tests
        if "integration" in str(item.path):
            item.add_marker(pytest.mark.integration)
