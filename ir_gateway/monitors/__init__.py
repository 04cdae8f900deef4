"""Background loops for IR Gateway.

Modules:
    heartbeat: Periodic status publication
"""

from .heartbeat import StatusHeartbeat

__all__ = ["StatusHeartbeat"]
