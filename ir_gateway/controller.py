"""Controller interface consumed by the gateway.

The controller is the infrared transmit/receive board with its current
sensing channels. Signal capture, matching and the serial protocol are
implemented elsewhere; the gateway only talks to the narrow surface
defined here. Concrete controllers subclass ``Controller`` and are loaded
by import path from the ``[controller]`` section of config.ini.

Events are delivered through the callback given at construction, one at
a time and in arrival order, on the controller's own thread.
"""

# Standard library imports
import importlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)


# ----------------------------
# Controller errors
# ----------------------------


class ControllerError(Exception):
    """Generic controller failure."""


class ControllerTimeoutError(ControllerError):
    """The controller did not respond in time."""


class InvalidButtonError(ControllerError):
    def __init__(self, remote_name: str, button_name: str):
        self.remote_name = remote_name
        self.button_name = button_name
        super().__init__(f"invalid button {remote_name}:{button_name}")


# ----------------------------
# Controller events
# ----------------------------


@dataclass(frozen=True)
class ButtonPress:
    remote_name: str
    button_name: str


@dataclass(frozen=True)
class ControllerFault:
    message: str


@dataclass(frozen=True)
class CurrentReading:
    milliamps: int


ControllerEvent = Union[ButtonPress, ControllerFault]
EventCallback = Callable[[ControllerEvent], None]


class Controller(ABC):
    """Capability surface of the IR controller.

    Attributes:
        current_channels: Current sensing channels the board exposes. The
            device at position i of the action table reads channel i.
    """

    current_channels: Sequence[int] = (0, 1)

    def __init__(
        self,
        on_event: EventCallback,
        options: Optional[Mapping[str, str]] = None,
    ):
        self.on_event = on_event
        self.options = dict(options or {})

    @abstractmethod
    def open(self) -> None:
        """Open the underlying transport. Raises ControllerError."""

    @abstractmethod
    def transmit(self, remote_name: str, button_name: str) -> None:
        """Send the signal learned for a button.

        Raises:
            InvalidButtonError: The button is not known to the controller.
            ControllerTimeoutError: The controller did not acknowledge.
            ControllerError: Any other failure.
        """

    @abstractmethod
    def get_current(self, channel: int) -> CurrentReading:
        """Read a current sensing channel.

        Raises:
            ControllerTimeoutError: The controller did not answer.
            ControllerError: Any other failure.
        """


def load_controller(
    path: str,
    on_event: EventCallback,
    options: Optional[Mapping[str, str]] = None,
) -> Controller:
    """Import and construct a controller from "package.module:ClassName".

    Raises:
        ControllerError: If the class cannot be imported or is not a Controller.
    """
    module_name, _, class_name = path.partition(":")
    if not module_name or not class_name:
        raise ControllerError(f"controller path must be 'module:ClassName', got '{path}'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ControllerError(f"cannot import controller module {module_name}: {e}") from e

    controller_cls = getattr(module, class_name, None)
    if not isinstance(controller_cls, type) or not issubclass(controller_cls, Controller):
        raise ControllerError(f"{path} is not a Controller subclass")

    logger.info(f"Loading controller {path}")
    return controller_cls(on_event, options)
