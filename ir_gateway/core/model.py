"""Action table model for IR Gateway.

The action table maps remote buttons to side effects and lists the
appliances whose current draw is monitored. It is loaded once at startup
from YAML and shared read-only by every thread afterwards.

Example document:

    remotes:
      tv:
        buttons:
          power:
            action:
              type: http
              url: http://hub.local/api/tv/power
              method: post
          mute:
            action:
              type: mqtt
              topic: home/tv/mute
              payload: toggle
    devices:
      - name: tv
        on_threshold_milliamps: 100
      - name: amp
        on_threshold_milliamps: 50

The position of a device in ``devices`` selects the current sensing
channel it is wired to (first device is channel 0, and so on).
"""

# Standard library imports
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

# Third-party imports
import yaml

# Local imports
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ACTION_TYPE_HTTP = "http"
ACTION_TYPE_MQTT = "mqtt"


class ActionTableLoader(yaml.SafeLoader):
    """SafeLoader with YAML 1.2 booleans and integers.

    Plain scalars such as on, off, yes, no, 010 or 1:30 stay strings, so
    button names and MQTT payloads are kept exactly as written.
    """


ActionTableLoader.yaml_implicit_resolvers = {
    first: [
        (tag, regexp)
        for tag, regexp in resolvers
        if tag not in ("tag:yaml.org,2002:bool", "tag:yaml.org,2002:int")
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
ActionTableLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)
ActionTableLoader.add_implicit_resolver(
    "tag:yaml.org,2002:int",
    re.compile(r"^(?:[-+]?(?:0|[1-9][0-9]*)|0x[0-9a-fA-F]+)$"),
    list("-+0123456789"),
)


@dataclass(frozen=True)
class HttpAction:
    """Call a URL when the button is pressed.

    ``url`` and ``method`` stay optional here; they are checked when the
    action is dispatched.
    """

    url: Optional[str] = None
    method: Optional[str] = None

    @property
    def action_type(self) -> str:
        return ACTION_TYPE_HTTP


@dataclass(frozen=True)
class MqttAction:
    """Publish a message when the button is pressed."""

    topic: Optional[str] = None
    payload: Optional[str] = None

    @property
    def action_type(self) -> str:
        return ACTION_TYPE_MQTT


Action = Union[HttpAction, MqttAction]


@dataclass(frozen=True)
class Button:
    action: Optional[Action] = None


@dataclass(frozen=True)
class Remote:
    buttons: Mapping[str, Button] = field(default_factory=dict)


@dataclass(frozen=True)
class Device:
    name: str
    on_threshold_milliamps: int


def _optional_str(value: Any, where: str, key: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{where}: '{key}' must be a string")
    return value


def _payload_text(value: Any, where: str) -> Optional[str]:
    """Return an MQTT payload as text.

    Structured payloads written directly in YAML are sent as JSON.
    """
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float, dict, list)):
        return json.dumps(value)
    raise ConfigurationError(f"{where}: unsupported payload type {type(value).__name__}")


def parse_action(data: Any, where: str) -> Action:
    """Build the action variant for one button.

    Raises:
        ConfigurationError: If the action is not a mapping or has an unknown type.
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"{where}: action must be a mapping")

    action_type = data.get("type")
    if not isinstance(action_type, str):
        raise ConfigurationError(f"{where}: action requires a string 'type'")

    action_type = action_type.lower()
    if action_type == ACTION_TYPE_HTTP:
        return HttpAction(
            url=_optional_str(data.get("url"), where, "url"),
            method=_optional_str(data.get("method"), where, "method"),
        )
    if action_type == ACTION_TYPE_MQTT:
        return MqttAction(
            topic=_optional_str(data.get("topic"), where, "topic"),
            payload=_payload_text(data.get("payload"), where),
        )
    raise ConfigurationError(f"{where}: invalid action type: {action_type}")


def _parse_remote(name: str, data: Any) -> Remote:
    if data is None:
        return Remote()
    if not isinstance(data, dict):
        raise ConfigurationError(f"remote '{name}' must be a mapping")

    raw_buttons = data.get("buttons") or {}
    if not isinstance(raw_buttons, dict):
        raise ConfigurationError(f"remote '{name}': buttons must be a mapping")

    buttons: Dict[str, Button] = {}
    for button_name, button_data in raw_buttons.items():
        where = f"button {name}:{button_name}"
        if button_data is None:
            buttons[str(button_name)] = Button()
            continue
        if not isinstance(button_data, dict):
            raise ConfigurationError(f"{where} must be a mapping")
        raw_action = button_data.get("action")
        action = parse_action(raw_action, where) if raw_action is not None else None
        buttons[str(button_name)] = Button(action=action)

    return Remote(buttons=buttons)


def _parse_device(index: int, data: Any) -> Device:
    where = f"device #{index}"
    if not isinstance(data, dict):
        raise ConfigurationError(f"{where} must be a mapping")

    name = data.get("name")
    if not isinstance(name, str) or not name:
        raise ConfigurationError(f"{where} requires a 'name'")

    threshold = data.get("on_threshold_milliamps")
    if isinstance(threshold, bool) or not isinstance(threshold, int):
        raise ConfigurationError(
            f"{where} ('{name}') requires an integer 'on_threshold_milliamps'"
        )
    if threshold < 0:
        raise ConfigurationError(
            f"{where} ('{name}'): on_threshold_milliamps cannot be negative"
        )

    return Device(name=name, on_threshold_milliamps=threshold)


@dataclass(frozen=True)
class GatewayConfig:
    """Remotes, buttons, actions and monitored devices.

    Attributes:
        remotes: Remote name to Remote.
        devices: Monitored devices, ordered by current sensing channel.
    """

    remotes: Mapping[str, Remote] = field(default_factory=dict)
    devices: Tuple[Device, ...] = ()

    def lookup(self, remote_name: str, button_name: str) -> Optional[Action]:
        """Return the action bound to a button, or None.

        Unknown remotes, unknown buttons and buttons without an action all
        return None.
        """
        remote = self.remotes.get(remote_name)
        if remote is None:
            return None
        button = remote.buttons.get(button_name)
        if button is None:
            return None
        return button.action

    def device_for_channel(self, index: int) -> Optional[Device]:
        """Return the device wired to a current sensing channel, or None."""
        if index < 0 or index >= len(self.devices):
            return None
        return self.devices[index]

    def to_dict(self) -> Dict[str, Any]:
        """Render the table in the same shape it was loaded from."""
        remotes: Dict[str, Any] = {}
        for remote_name, remote in self.remotes.items():
            buttons: Dict[str, Any] = {}
            for button_name, button in remote.buttons.items():
                entry: Dict[str, Any] = {}
                if button.action is not None:
                    action = {"type": button.action.action_type}
                    for key, value in vars(button.action).items():
                        if value is not None:
                            action[key] = value
                    entry["action"] = action
                buttons[button_name] = entry
            remotes[remote_name] = {"buttons": buttons}

        devices: List[Dict[str, Any]] = [
            {"name": d.name, "on_threshold_milliamps": d.on_threshold_milliamps}
            for d in self.devices
        ]
        return {"remotes": remotes, "devices": devices}

    @classmethod
    def from_dict(cls, data: Any) -> "GatewayConfig":
        """Build the model from parsed YAML/JSON data.

        Raises:
            ConfigurationError: If the structure does not match the schema.
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError("action table must be a mapping")

        raw_remotes = data.get("remotes") or {}
        if not isinstance(raw_remotes, dict):
            raise ConfigurationError("'remotes' must be a mapping")

        raw_devices = data.get("devices") or []
        if not isinstance(raw_devices, list):
            raise ConfigurationError("'devices' must be a list")

        remotes = {
            str(name): _parse_remote(str(name), remote)
            for name, remote in raw_remotes.items()
        }
        devices = tuple(_parse_device(i, d) for i, d in enumerate(raw_devices))
        return cls(remotes=remotes, devices=devices)

    @classmethod
    def from_yaml(cls, text: str) -> "GatewayConfig":
        try:
            data = yaml.load(text, Loader=ActionTableLoader)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"could not read config: contained invalid yaml values: {e}"
            ) from e
        return cls.from_dict(data)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "GatewayConfig":
        """Read and parse the action table file.

        Raises:
            ConfigurationError: If the file cannot be read or parsed.
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"failed to read action table {path}: {e}") from e

        config = cls.from_yaml(text)
        logger.info(
            f"Loaded action table from {path} "
            f"({len(config.remotes)} remotes, {len(config.devices)} devices)"
        )
        return config
