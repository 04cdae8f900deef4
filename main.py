#!/usr/bin/env python3
"""IR Gateway - infrared controller to MQTT bridge.

IR Gateway connects an infrared transmit/receive controller with current
sensing channels to an MQTT broker:

- Button presses seen by the controller trigger configured actions
  (HTTP calls or MQTT messages)
- MQTT messages ask the controller to transmit buttons
- Appliance status (current draw, on/off) is published periodically and
  on request
- An optional REST API exposes the same operations over HTTP

Architecture:
    1. **Core Layer** (ir_gateway/core/):
       - config: Settings loading and validation
       - model: Action table (remotes, buttons, actions, devices)
       - state: Shared state and locks
       - messaging: MQTT messaging abstraction

    2. **Routing Layer** (ir_gateway/):
       - controller: Controller interface and loader
       - actions: Action execution
       - bridge: Button-press callback
       - gateway: MQTT connection lifecycle and inbound routing

    3. **Background Loops** (ir_gateway/monitors/):
       - heartbeat: Periodic status publication

    4. **Feature Layer** (ir_gateway/api/):
       - rest_api: REST API server

MQTT Topics Structure:
    {prefix}tx                  - Transmit a button (JSON, inbound)
    {prefix}request-status      - Request a status report (inbound)
    {prefix}status              - Status report (JSON, outbound)

Thread Safety:
    - Controller events, MQTT callbacks, the heartbeat and API requests
      share state only through AppState locks
    - Graceful shutdown via a threading.Event set on SIGINT/SIGTERM

Usage:
    python main.py                          # uses data/config.ini
    python main.py --config /etc/irgw.ini   # explicit config
    python main.py --debug                  # debug logging

Exit Codes:
    0: Clean shutdown
    1: Configuration error or controller failure
"""

# Standard library imports
import argparse
import logging
import signal
import sys
import threading
from logging.handlers import RotatingFileHandler
from typing import Optional

# Local imports
from ir_gateway import __version__
from ir_gateway.actions import ActionDispatcher
from ir_gateway.api import create_app, start_api
from ir_gateway.bridge import ButtonPressBridge
from ir_gateway.controller import ControllerError, load_controller
from ir_gateway.core.config import CONFIG_PATH, Settings, load_settings
from ir_gateway.core.errors import ConfigurationError
from ir_gateway.core.messaging import MessageBroker
from ir_gateway.core.model import GatewayConfig
from ir_gateway.core.state import AppState
from ir_gateway.gateway import MessagingGateway, create_mqtt_client
from ir_gateway.monitors import StatusHeartbeat

logger = logging.getLogger()

exit_flag = threading.Event()


# ----------------------------
# Logging Configuration
# ----------------------------


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Attach console (and optional rotating file) handlers to the root logger.

    Safe to call again once settings are loaded: existing handlers are kept.
    """
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(module)s: %(message)s",
        datefmt="%m/%d/%Y %H:%M:%S",
    )

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5MB per file
            backupCount=3,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


# ----------------------------
# Signal Handlers
# ----------------------------


def signal_handler(sig, frame):
    """Handle shutdown signals gracefully."""
    logger.info("Shutdown signal received, stopping all threads...")
    exit_flag.set()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="IR controller to MQTT gateway")
    parser.add_argument(
        "-c", "--config", default=str(CONFIG_PATH), help="Path to config.ini"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=__version__)
    return parser.parse_args(argv)


def start_thread(target, stop_event: threading.Event, name: str) -> threading.Thread:
    thread = threading.Thread(target=target, args=(stop_event,), name=name, daemon=True)
    thread.start()
    return thread


# ----------------------------
# Main
# ----------------------------


def build(settings: Settings):
    """
    Wire the gateway components together.

    Returns:
        (state, gateway)

    Raises:
        ConfigurationError: If the action table cannot be loaded.
        ControllerError: If the controller cannot be loaded or opened.
    """
    config = GatewayConfig.load(settings.actions_path)
    state = AppState(config, settings.topic_prefix, lock_timeout=settings.lock_timeout)

    broker = MessageBroker(state, qos=settings.mqtt_qos, publish_timeout=settings.publish_timeout)
    dispatcher = ActionDispatcher(broker, http_timeout=settings.http_timeout)
    bridge = ButtonPressBridge(state, dispatcher)

    controller = load_controller(
        settings.controller_class, bridge, settings.controller_options
    )
    controller.open()
    state.attach_controller(controller)
    logger.info("Controller opened")

    client = create_mqtt_client(settings)
    state.attach_bus(client)
    gateway = MessagingGateway(
        state,
        broker,
        client,
        settings.mqtt_broker,
        settings.mqtt_port,
        keepalive=settings.mqtt_keepalive,
        reconnect_delay=settings.reconnect_delay,
    )
    return state, gateway


def main(argv=None) -> int:
    """
    Main entry point for IR Gateway.

    Loads settings and the action table, opens the controller, then starts
    the MQTT gateway, the status heartbeat and (optionally) the REST API.
    Runs until SIGINT/SIGTERM.
    """
    args = parse_args(argv)
    configure_logging("DEBUG" if args.debug else "INFO")

    try:
        settings = load_settings(args.config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    configure_logging("DEBUG" if args.debug else settings.log_level, settings.log_file)

    logger.info(f"Starting IR Gateway {__version__}...")

    try:
        state, gateway = build(settings)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except ControllerError as e:
        logger.error(f"failed to open controller: {e}")
        return 1

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    start_thread(gateway.run, exit_flag, "MQTT-Gateway")
    heartbeat = StatusHeartbeat(gateway, interval=settings.status_interval)
    start_thread(heartbeat.start, exit_flag, "StatusHeartbeat")

    if settings.api_enabled:
        start_api(create_app(state), settings.api_host, settings.api_port)

    logger.info("=" * 50)
    logger.info("IR Gateway running. Press Ctrl+C to exit...")
    logger.info(f"MQTT Broker: {settings.mqtt_broker}:{settings.mqtt_port}")
    logger.info(f"Topic Prefix: {state.topic_prefix}")
    logger.info("=" * 50)

    while not exit_flag.wait(1):
        pass

    gateway.stop()
    logger.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
