"""Periodic status publication.

This module provides the StatusHeartbeat class which publishes the status
report on a fixed interval, independent of request-status messages. A
failed publication is logged and the loop carries on.
"""

# Standard library imports
import logging
import threading

# Local imports
from ..core.errors import GatewayError
from ..gateway import MessagingGateway

logger = logging.getLogger(__name__)


class StatusHeartbeat:
    """Publishes status reports on a timer.

    Attributes:
        gateway: Gateway that reads the sensors and publishes the report.
        interval: Seconds between reports.

    Example:
        >>> heartbeat = StatusHeartbeat(gateway, interval=60)
        >>> stop_event = threading.Event()
        >>> threading.Thread(target=heartbeat.start, args=(stop_event,), daemon=True).start()
    """

    def __init__(self, gateway: MessagingGateway, interval: float = 60.0):
        self.gateway = gateway
        self.interval = interval
        logger.debug(f"StatusHeartbeat initialized with interval={interval}s")

    def start(self, stop_event: threading.Event) -> None:
        """Wait one interval, publish, repeat until stop_event is set."""
        logger.info("Status heartbeat started")
        while not stop_event.wait(self.interval):
            self.beat()
        logger.info("Status heartbeat stopped")

    def beat(self) -> bool:
        """Publish one status report.

        Returns:
            True if the report was published.
        """
        try:
            self.gateway.publish_status()
            return True
        except GatewayError as e:
            logger.error(f"failed to send status: {e}")
        except Exception as e:
            logger.error(f"Error publishing status: {e}", exc_info=True)
        return False
