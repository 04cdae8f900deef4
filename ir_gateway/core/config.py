"""Settings management for IR Gateway.

This module loads the gateway's runtime settings from an INI file, applies
environment variable overrides and validates the result. The action table
(remotes, buttons and monitored devices) lives in a separate YAML file and
is handled by ``ir_gateway.core.model``.

The configuration system follows these principles:
- Sensible defaults so a missing config.ini still yields a runnable setup
- Environment variables win over the file (container deployments)
- Fail-fast on invalid values with a ConfigurationError

Configuration Structure:
    [mqtt]
        broker: MQTT broker hostname or IP address (default: localhost)
        port: MQTT broker port (default: 1883)
        username: MQTT authentication username (optional)
        password: MQTT authentication password (optional)
        client_id: MQTT client identifier (default: ir-gateway)
        topic_prefix: Prefix for every topic used by the gateway (default: ir/)
        qos: Quality of Service for outgoing messages (default: 0)
        keepalive: Keepalive interval in seconds (default: 120)
        publish_timeout: Seconds to wait for a publish acknowledgement (default: 10)

    [gateway]
        actions: Path to the YAML action table (default: data/actions.yaml)
        status_interval: Seconds between status publications (default: 60)
        reconnect_delay: Seconds to wait before reconnecting (default: 2.5)
        lock_timeout: Seconds before a stuck shared-state lock is fatal (default: 30)

    [http]
        timeout: Timeout in seconds for HTTP actions (default: 10)

    [controller]
        class: Import path of the controller, "package.module:ClassName" (required)
        (any other key is passed to the controller as an option)

    [api]
        enabled: Enable the REST API (default: false)
        host: Bind address (default: 0.0.0.0)
        port: Listen port (default: 8080)

    [logging]
        level: Root log level (default: INFO)
        file: Optional rotating log file path

Environment Variables:
    IRGW_MQTT_BROKER, IRGW_MQTT_PORT, IRGW_MQTT_USER, IRGW_MQTT_PASS,
    IRGW_MQTT_CLIENT_ID, IRGW_TOPIC_PREFIX, IRGW_ACTIONS, IRGW_STATUS_INTERVAL

Example:
    >>> settings = load_settings("data/config.ini")
    >>> settings.topic_prefix
    'ir/'
"""

# Standard library imports
import configparser
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

# Local imports
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


# ----------------------------
# Paths and defaults
# ----------------------------

BASE_DIR = Path(__file__).resolve().parent.parent.parent
CONFIG_PATH = BASE_DIR / "data" / "config.ini"

DEFAULT_TOPIC_PREFIX = "ir/"
DEFAULT_STATUS_INTERVAL = 60.0
DEFAULT_RECONNECT_DELAY = 2.5

# Environment variable -> (section, option)
ENV_OVERRIDES = {
    "IRGW_MQTT_BROKER": ("mqtt", "broker"),
    "IRGW_MQTT_PORT": ("mqtt", "port"),
    "IRGW_MQTT_USER": ("mqtt", "username"),
    "IRGW_MQTT_PASS": ("mqtt", "password"),
    "IRGW_MQTT_CLIENT_ID": ("mqtt", "client_id"),
    "IRGW_TOPIC_PREFIX": ("mqtt", "topic_prefix"),
    "IRGW_ACTIONS": ("gateway", "actions"),
    "IRGW_STATUS_INTERVAL": ("gateway", "status_interval"),
}


@dataclass
class Settings:
    """Validated runtime settings."""

    mqtt_broker: str = "localhost"
    mqtt_port: int = 1883
    mqtt_username: str = ""
    mqtt_password: str = ""
    mqtt_client_id: str = "ir-gateway"
    topic_prefix: str = DEFAULT_TOPIC_PREFIX
    mqtt_qos: int = 0
    mqtt_keepalive: int = 120
    publish_timeout: float = 10.0

    actions_path: Path = BASE_DIR / "data" / "actions.yaml"
    status_interval: float = DEFAULT_STATUS_INTERVAL
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    lock_timeout: float = 30.0

    http_timeout: float = 10.0

    controller_class: str = ""
    controller_options: Dict[str, str] = field(default_factory=dict)

    api_enabled: bool = False
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    log_level: str = "INFO"
    log_file: Optional[str] = None


# ----------------------------
# Helper Functions
# ----------------------------


def normalize_topic_prefix(prefix: str) -> str:
    """Make sure the topic prefix ends with a slash.

    Example:
        >>> normalize_topic_prefix("ir")
        'ir/'
        >>> normalize_topic_prefix("home/ir/")
        'home/ir/'
    """
    if not prefix.endswith("/"):
        prefix = prefix + "/"
    return prefix


def apply_env_overrides(
    config: configparser.ConfigParser, environ: Mapping[str, str]
) -> None:
    """Copy IRGW_* environment variables into the parsed config."""
    for env_name, (section, option) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is None or value == "":
            continue
        if not config.has_section(section):
            config.add_section(section)
        config.set(section, option, value)
        logger.debug(f"Setting [{section}] {option} overridden by {env_name}")


# ----------------------------
# Validation Functions
# ----------------------------


def validate_required_mqtt(broker: str, port: str) -> tuple[bool, str]:
    """
    Validate required MQTT settings.

    Returns (is_valid, error_message).
    """
    if not broker or not broker.strip():
        return False, "MQTT broker cannot be empty"

    try:
        port_int = int(port)
        if not (1 <= port_int <= 65535):
            return False, f"MQTT port must be between 1-65535, got {port}"
    except ValueError:
        return False, f"MQTT port must be a number, got '{port}'"

    return True, ""


def validate_settings(settings: Settings) -> tuple[bool, str]:
    """
    Validate cross-field constraints on loaded settings.

    Returns (is_valid, error_message).
    """
    if settings.mqtt_qos not in (0, 1, 2):
        return False, f"MQTT qos must be 0, 1 or 2, got {settings.mqtt_qos}"

    if settings.topic_prefix in ("", "/"):
        return False, "MQTT topic_prefix cannot be empty"

    if "#" in settings.topic_prefix or "+" in settings.topic_prefix:
        return False, "MQTT topic_prefix cannot contain wildcards"

    for name in ("status_interval", "reconnect_delay", "lock_timeout",
                 "http_timeout", "publish_timeout"):
        if getattr(settings, name) <= 0:
            return False, f"{name} must be greater than zero"

    # A publish waiting for its acknowledgement holds the bus lock
    if settings.lock_timeout <= settings.publish_timeout:
        return False, "lock_timeout must be greater than publish_timeout"

    if settings.mqtt_keepalive <= 0:
        return False, "MQTT keepalive must be greater than zero"

    if not (1 <= settings.api_port <= 65535):
        return False, f"API port must be between 1-65535, got {settings.api_port}"

    if not settings.controller_class or ":" not in settings.controller_class:
        return False, "[controller] class must be set as 'package.module:ClassName'"

    return True, ""


# ----------------------------
# Load configuration
# ----------------------------


def read_config(config_path: Path) -> configparser.ConfigParser:
    """Parse the INI file. A missing file yields an empty config."""
    config = configparser.ConfigParser(interpolation=None)

    if not config_path.exists():
        logger.warning(f"Config file not found at {config_path}, using defaults")
        return config

    try:
        if not config.read(config_path, encoding="utf-8"):
            raise ConfigurationError(f"Config file exists but couldn't be read: {config_path}")
    except configparser.Error as e:
        raise ConfigurationError(f"Configuration file is corrupt: {e}") from e

    return config


def load_settings(
    config_path: Union[str, Path, None] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Load settings from config.ini plus environment overrides.

    Args:
        config_path: Path to config.ini (default: data/config.ini)
        environ: Environment mapping (default: os.environ)

    Returns:
        Validated Settings

    Raises:
        ConfigurationError: If a value is missing, malformed or out of range.
    """
    config_path = Path(config_path) if config_path is not None else CONFIG_PATH
    environ = os.environ if environ is None else environ

    config = read_config(config_path)
    apply_env_overrides(config, environ)

    broker = config.get("mqtt", "broker", fallback="localhost")
    port = config.get("mqtt", "port", fallback="1883")
    valid, error = validate_required_mqtt(broker, port)
    if not valid:
        raise ConfigurationError(error)

    try:
        actions = config.get("gateway", "actions", fallback=None)
        actions_path = Path(actions) if actions else Settings.actions_path
        if not actions_path.is_absolute() and actions:
            actions_path = config_path.parent / actions_path

        controller_options: Dict[str, str] = {}
        if config.has_section("controller"):
            controller_options = {
                key: value
                for key, value in config.items("controller")
                if key != "class"
            }

        settings = Settings(
            mqtt_broker=broker.strip(),
            mqtt_port=int(port),
            mqtt_username=config.get("mqtt", "username", fallback=""),
            mqtt_password=config.get("mqtt", "password", fallback=""),
            mqtt_client_id=config.get("mqtt", "client_id", fallback="ir-gateway"),
            topic_prefix=normalize_topic_prefix(
                config.get("mqtt", "topic_prefix", fallback=DEFAULT_TOPIC_PREFIX)
            ),
            mqtt_qos=config.getint("mqtt", "qos", fallback=0),
            mqtt_keepalive=config.getint("mqtt", "keepalive", fallback=120),
            publish_timeout=config.getfloat("mqtt", "publish_timeout", fallback=10.0),
            actions_path=actions_path,
            status_interval=config.getfloat(
                "gateway", "status_interval", fallback=DEFAULT_STATUS_INTERVAL
            ),
            reconnect_delay=config.getfloat(
                "gateway", "reconnect_delay", fallback=DEFAULT_RECONNECT_DELAY
            ),
            lock_timeout=config.getfloat("gateway", "lock_timeout", fallback=30.0),
            http_timeout=config.getfloat("http", "timeout", fallback=10.0),
            controller_class=config.get("controller", "class", fallback=""),
            controller_options=controller_options,
            api_enabled=config.getboolean("api", "enabled", fallback=False),
            api_host=config.get("api", "host", fallback="0.0.0.0"),
            api_port=config.getint("api", "port", fallback=8080),
            log_level=config.get("logging", "level", fallback="INFO").upper(),
            log_file=config.get("logging", "file", fallback=None) or None,
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration value: {e}") from e

    valid, error = validate_settings(settings)
    if not valid:
        raise ConfigurationError(error)

    if not settings.mqtt_username:
        logger.warning("MQTT username is empty - ensure your broker allows anonymous access")

    return settings
