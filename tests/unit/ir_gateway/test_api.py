"""Unit tests for REST API server module.

Key Testing Patterns:
    - Use Flask test client for endpoint testing
    - Drive controller outcomes through FakeController
    - Verify correct HTTP status codes and JSON responses

Example Run:
    pytest tests/unit/ir_gateway/test_api.py -v
"""

import json
from unittest.mock import patch

import pytest

from ir_gateway import __version__
from ir_gateway.api import create_app
from ir_gateway.controller import (
    ControllerError,
    ControllerTimeoutError,
    InvalidButtonError,
)


@pytest.fixture
def client(app_state):
    """Create Flask test client bound to the shared test state."""
    app = create_app(app_state)
    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client


class TestConfigEndpoint:
    def test_returns_action_table(self, client, sample_config):
        response = client.get("/api/v1/config")

        assert response.status_code == 200
        assert json.loads(response.data) == sample_config.to_dict()


class TestTransmitEndpoint:
    def test_success(self, client, fake_controller):
        response = client.post("/api/v1/transmit/tv/power")

        assert response.status_code == 200
        assert json.loads(response.data) == {}
        assert fake_controller.transmitted == [("tv", "power")]

    def test_get_not_allowed(self, client, fake_controller):
        response = client.get("/api/v1/transmit/tv/power")

        assert response.status_code == 405
        assert fake_controller.transmitted == []

    def test_unknown_button(self, client, fake_controller):
        fake_controller.transmit_error = InvalidButtonError("tv", "eject")

        response = client.post("/api/v1/transmit/tv/eject")

        assert response.status_code == 404
        assert "tv:eject" in json.loads(response.data)["message"]

    def test_timeout(self, client, fake_controller):
        fake_controller.transmit_error = ControllerTimeoutError("no ack")

        response = client.post("/api/v1/transmit/tv/power")

        assert response.status_code == 408

    def test_controller_error(self, client, fake_controller):
        fake_controller.transmit_error = ControllerError("checksum")

        response = client.post("/api/v1/transmit/tv/power")

        assert response.status_code == 500
        assert json.loads(response.data)["error"] == "Device error"

    def test_unexpected_error(self, client):
        with patch("ir_gateway.api.rest_api.transmit_button", side_effect=KeyError("x")):
            response = client.post("/api/v1/transmit/tv/power")

        assert response.status_code == 500
        assert json.loads(response.data)["error"] == "Internal server error"


class TestStatusEndpoint:
    def test_status(self, client):
        response = client.get("/api/v1/status")

        assert response.status_code == 200
        assert json.loads(response.data) == {
            "devices": {
                "lamp": {"milliamps": 120, "is_on": True},
                "fan": {"milliamps": 40, "is_on": False},
            }
        }

    def test_status_timeout(self, client, fake_controller):
        fake_controller.current_errors[0] = ControllerTimeoutError("channel 0")

        response = client.get("/api/v1/status")

        assert response.status_code == 408

    def test_status_does_not_publish(self, client, mock_mqtt_client):
        client.get("/api/v1/status")
        mock_mqtt_client.publish.assert_not_called()


class TestSecurityHeaders:
    def test_headers_present(self, client):
        response = client.get("/api/v1/config")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_unknown_route(self, client):
        response = client.get("/api/v1/nothing")
        assert response.status_code == 404


class TestOpenApiDocument:
    def test_swagger_json(self, client):
        response = client.get("/swagger.json")

        assert response.status_code == 200
        document = json.loads(response.data)
        assert document["openapi"] == "3.0.0"
        assert document["info"]["version"] == __version__

    def test_documents_every_api_route(self, client, app_state):
        app = create_app(app_state)
        routes = {
            rule.rule.replace("<", "{").replace(">", "}")
            for rule in app.url_map.iter_rules()
            if rule.rule.startswith("/api/")
        }

        document = json.loads(client.get("/swagger.json").data)

        assert set(document["paths"]) == routes
