"""Exception types for the UDP transport and engine connection state.

Extends the protocol exception hierarchy so callers can catch
``AcProtocolError`` for everything the engine raises.
"""

from __future__ import annotations

from ch_ac_controller.protocol.exceptions import AcProtocolError


class TransportError(AcProtocolError):
    """Socket-level failure.

    Raised when:
    - The local port cannot be bound (in use, permission denied)
    - The OS rejects an outgoing datagram
    - Sending on a transport that is not bound

    Attributes:
        reason: Specific failure reason
        local_port: Local UDP port involved (0 if unknown)
    """

    def __init__(self, reason: str, local_port: int = 0):
        self.reason = reason
        self.local_port = local_port
        super().__init__(f"Transport error: {reason} (local port: {local_port})")


class NotConnectedError(AcProtocolError):
    """Operation requires a bound session but the engine is not bound.

    Raised synchronously from command paths; no datagram is sent.

    Attributes:
        operation: Operation that was attempted
        state: Engine state when the operation was attempted
    """

    def __init__(self, operation: str, state: str = "unknown"):
        self.operation = operation
        self.state = state
        super().__init__(f"Not connected: cannot {operation} (state: {state})")
