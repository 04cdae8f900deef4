"""Shared application state.

AppState is the single owner of the controller handle, the MQTT client
handle, the topic prefix and the action table. Controller events, MQTT
callbacks, the heartbeat thread and REST requests all reach the handles
through its context managers, each guarded by its own lock.

Lock rules:
    - The controller lock and the bus lock are never held at the same time.
      Copy what you need out of one before taking the other.
    - Failing to acquire either lock within ``lock_timeout`` means the
      shared state is wedged. That is fatal for the whole process.

Example:
    >>> state = AppState(config, "ir")
    >>> state.attach_controller(controller)
    >>> with state.controller() as hat:
    ...     hat.transmit("tv", "power")
"""

# Standard library imports
import logging
import os
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

# Local imports
from ..controller import Controller
from .config import normalize_topic_prefix
from .errors import LockError
from .model import GatewayConfig

logger = logging.getLogger(__name__)


def exit_process(error: LockError) -> None:
    """Terminate the process immediately after a lock failure."""
    logger.critical(f"Unrecoverable shared state failure: {error}")
    for handler in logging.getLogger().handlers:
        handler.flush()
    os._exit(1)


class AppState:
    """Owner of the handles shared across threads.

    Attributes:
        config: Read-only action table.
        topic_prefix: Normalized topic prefix, always ending with "/".
        lock_timeout: Seconds to wait for a lock before giving up.
    """

    def __init__(
        self,
        config: GatewayConfig,
        topic_prefix: str,
        lock_timeout: float = 30.0,
        on_fatal: Optional[Callable[[LockError], None]] = None,
    ):
        self.config = config
        self.topic_prefix = normalize_topic_prefix(topic_prefix)
        self.lock_timeout = lock_timeout
        self._on_fatal = on_fatal or exit_process

        self._controller: Optional[Controller] = None
        self._bus: Any = None
        self._controller_lock = threading.Lock()
        self._bus_lock = threading.Lock()

    @contextmanager
    def _hold(self, lock: threading.Lock, name: str) -> Iterator[None]:
        if not lock.acquire(timeout=self.lock_timeout):
            error = LockError(f"failed to lock {name} within {self.lock_timeout}s")
            self._on_fatal(error)
            raise error
        try:
            yield
        finally:
            lock.release()

    def attach_controller(self, controller: Controller) -> None:
        with self._hold(self._controller_lock, "controller"):
            self._controller = controller

    def attach_bus(self, bus: Any) -> None:
        with self._hold(self._bus_lock, "bus"):
            self._bus = bus

    @contextmanager
    def controller(self) -> Iterator[Controller]:
        """Hold the controller lock and yield the controller."""
        with self._hold(self._controller_lock, "controller"):
            if self._controller is None:
                raise RuntimeError("controller not set")
            yield self._controller

    @contextmanager
    def bus(self) -> Iterator[Any]:
        """Hold the bus lock and yield the MQTT client."""
        with self._hold(self._bus_lock, "bus"):
            if self._bus is None:
                raise RuntimeError("mqtt client not set")
            yield self._bus
