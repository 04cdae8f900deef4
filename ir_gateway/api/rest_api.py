"""
REST API server module.

This module provides a Flask-based REST API for IR Gateway, allowing
ad-hoc transmission and status queries alongside the MQTT interface.

Endpoints:
    GET  /api/v1/config                             - Returns the action table
    POST /api/v1/transmit/<remote_name>/<button_name> - Transmits a button
    GET  /api/v1/status                             - Returns current device status
    GET  /swagger.json                              - OpenAPI document for these endpoints

Responses are JSON. The API has no authentication; bind it to a trusted
network only.
"""

# Standard library imports
import logging
import threading

# Third-party imports
from flask import Flask, jsonify

# Local imports
from .. import __version__
from ..core.errors import DeviceError, DeviceTimeout, InvalidButton
from ..core.state import AppState
from ..gateway import read_status, transmit_button

# Configure logger
logger = logging.getLogger(__name__)

_ERROR_RESPONSE = {
    "content": {
        "application/json": {
            "schema": {
                "type": "object",
                "properties": {
                    "error": {"type": "string"},
                    "message": {"type": "string"},
                },
            }
        }
    }
}

OPENAPI_DOCUMENT = {
    "openapi": "3.0.0",
    "info": {"title": "IR Gateway", "version": __version__},
    "paths": {
        "/api/v1/config": {
            "get": {
                "summary": "Get the loaded remotes, buttons, actions and devices",
                "responses": {"200": {"description": "Action table"}},
            }
        },
        "/api/v1/transmit/{remote_name}/{button_name}": {
            "post": {
                "summary": "Transmit a learned button",
                "parameters": [
                    {"name": "remote_name", "in": "path", "required": True, "schema": {"type": "string"}},
                    {"name": "button_name", "in": "path", "required": True, "schema": {"type": "string"}},
                ],
                "responses": {
                    "200": {"description": "Transmitted"},
                    "404": dict(_ERROR_RESPONSE, description="Unknown button"),
                    "408": dict(_ERROR_RESPONSE, description="Controller timed out"),
                    "500": dict(_ERROR_RESPONSE, description="Controller error"),
                },
            }
        },
        "/api/v1/status": {
            "get": {
                "summary": "Read current draw and on/off state of each device",
                "responses": {
                    "200": {"description": "Status record"},
                    "408": dict(_ERROR_RESPONSE, description="Controller timed out"),
                    "500": dict(_ERROR_RESPONSE, description="Controller error"),
                },
            }
        },
    },
}


def _device_error_response(error: DeviceError):
    """Map a controller failure to an HTTP response."""
    if isinstance(error, InvalidButton):
        return jsonify({"error": "Not found", "message": str(error)}), 404
    if isinstance(error, DeviceTimeout):
        return jsonify({"error": "Timeout", "message": str(error)}), 408
    return jsonify({"error": "Device error", "message": str(error)}), 500


def create_app(state: AppState) -> Flask:
    """
    Build the Flask application bound to the shared state.

    Args:
        state: Shared application state (controller and action table)

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    @app.route("/api/v1/config")
    def get_config():
        """
        GET /api/v1/config
        Returns the remotes, buttons, actions and devices currently loaded.
        """
        return jsonify(state.config.to_dict())

    @app.route("/api/v1/transmit/<remote_name>/<button_name>", methods=["POST"])
    def transmit(remote_name, button_name):
        """
        POST /api/v1/transmit/<remote_name>/<button_name>
        Transmits a learned button through the controller.

        Returns:
            200 {} on success, 404 for an unknown button, 408 when the
            controller times out, 500 for any other controller error.

        Example:
            >>> curl -X POST http://localhost:8080/api/v1/transmit/tv/power
            {}
        """
        try:
            transmit_button(state, remote_name, button_name)
        except DeviceError as e:
            logger.warning(f"API transmit {remote_name}:{button_name} failed: {e}")
            return _device_error_response(e)
        except Exception as e:
            logger.error(f"Error transmitting {remote_name}:{button_name}: {e}", exc_info=True)
            return jsonify({"error": "Internal server error"}), 500

        logger.info(f"API transmitted {remote_name}:{button_name}")
        return jsonify({}), 200

    @app.route("/api/v1/status")
    def status():
        """
        GET /api/v1/status
        Reads the current sensors and returns the status record.

        Example:
            >>> curl http://localhost:8080/api/v1/status
            {"devices": {"tv": {"milliamps": 120, "is_on": true}}}
        """
        try:
            return jsonify(read_status(state))
        except DeviceError as e:
            logger.warning(f"API status read failed: {e}")
            return _device_error_response(e)
        except Exception as e:
            logger.error(f"Error getting status: {e}", exc_info=True)
            return jsonify({"error": "Internal server error"}), 500

    @app.route("/swagger.json")
    def swagger_json():
        """
        GET /swagger.json
        Returns the OpenAPI document describing this API.
        """
        return jsonify(OPENAPI_DOCUMENT)

    return app


def start_api(app: Flask, host: str, port: int) -> threading.Thread:
    """
    Start the Flask API server on a daemon thread.

    Args:
        app: Application from create_app()
        host: Bind address
        port: Port number to listen on

    Returns:
        The started server thread

    Note:
        Uses Flask's built-in threaded server. The thread dies with the process.
    """
    logger.info(f"Starting API server on {host}:{port}")

    # Suppress Flask's default logging
    logging.getLogger("werkzeug").setLevel(logging.ERROR)

    def serve():
        try:
            app.run(host=host, port=port, debug=False, threaded=True, use_reloader=False)
        except Exception as e:
            logger.error(f"API server error: {e}", exc_info=True)
        finally:
            logger.info("API server stopped")

    thread = threading.Thread(target=serve, name="API-Server", daemon=True)
    thread.start()
    return thread
