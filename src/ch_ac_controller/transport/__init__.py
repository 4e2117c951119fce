"""UDP transport layer: socket ownership, retry timing, polling and engine types.

The engine itself lives in ``ch_ac_controller.transport.connection_manager``
and is imported from there directly.
"""

from ch_ac_controller.transport.exceptions import NotConnectedError, TransportError
from ch_ac_controller.transport.poll_scheduler import PollScheduler
from ch_ac_controller.transport.retry_policy import RetryPolicy
from ch_ac_controller.transport.types import (
    BoundSession,
    ConnectionState,
    DeviceEndpoint,
    DeviceIdentity,
    DeviceOptions,
    DeviceSnapshot,
    default_local_port,
)
from ch_ac_controller.transport.udp_transport import UdpTransport

__all__ = [
    "BoundSession",
    "ConnectionState",
    "DeviceEndpoint",
    "DeviceIdentity",
    "DeviceOptions",
    "DeviceSnapshot",
    "NotConnectedError",
    "PollScheduler",
    "RetryPolicy",
    "TransportError",
    "UdpTransport",
    "default_local_port",
]
