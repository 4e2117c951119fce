"""Core dataclasses for the device communication engine.

Identity, endpoint and session are separate immutable records so that "a
session key exists" and "the engine is bound" cannot drift apart: the engine
holds a :class:`BoundSession` exactly while it is in ``BOUND``.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from ch_ac_controller.const import (
    CHAC_BIND_RETRY_DELAY,
    CHAC_DEVICE_PORT,
    CHAC_LOCAL_PORT_BASE,
    CHAC_UPDATE_INTERVAL,
)


class ConnectionState(Enum):
    """Engine state enumeration."""

    IDLE = "idle"
    AWAITING_IDENTITY = "awaiting_identity"
    IDENTIFIED = "identified"
    AWAITING_BIND_ACK = "awaiting_bind_ack"
    BOUND = "bound"


@dataclass(frozen=True)
class DeviceIdentity:
    """Identity reported by the ``dev`` discovery reply.

    Attributes:
        device_id: Outer envelope ``cid`` (falls back to inner ``mac``)
        name: Friendly name reported by the unit
    """

    device_id: str
    name: str = ""


@dataclass(frozen=True)
class DeviceEndpoint:
    """Address the ``dev`` reply came from; all later traffic goes here."""

    address: str
    port: int


@dataclass(frozen=True)
class BoundSession:
    identity: DeviceIdentity
    endpoint: DeviceEndpoint
    key: str = field(repr=False)


@dataclass(frozen=True)
class DeviceSnapshot:
    """Read-only view of a device handed to callbacks.

    Attributes:
        host: Configured host
        device_id: Device ID once identified (empty before)
        name: Device name once identified (empty before)
        address: Endpoint address once identified (empty before)
        port: Endpoint port once identified (0 before)
        state: Engine state at snapshot time
        bound: True iff a session is active
        props: Copy of the property cache
    """

    host: str
    device_id: str
    name: str
    address: str
    port: int
    state: ConnectionState
    bound: bool
    props: Mapping[str, int | float] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "props", MappingProxyType(dict(self.props)))


ConnectedCallback = Callable[[DeviceSnapshot, bool], None]
SnapshotCallback = Callable[[DeviceSnapshot], None]
ErrorCallback = Callable[[DeviceSnapshot, Exception], None]


def _noop(*_args: object) -> None:
    return None


def default_local_port(host: str, base: int = CHAC_LOCAL_PORT_BASE) -> int:
    """Derive the local UDP port from the device address.

    ``base + last octet`` for a dotted IPv4 host, otherwise the device port.
    Distinct devices on one subnet therefore get distinct local ports.
    """
    try:
        address = ipaddress.IPv4Address(host)
    except ValueError:
        return CHAC_DEVICE_PORT
    return base + address.packed[-1]


@dataclass
class DeviceOptions:
    """Per-device engine configuration.

    Attributes:
        host: Device IP address or hostname
        local_port: Local UDP port (None derives it from the host)
        device_port: Device UDP port (default 7000)
        update_interval: Seconds between status polls
        bind_retry_delay: Seconds before restarting after a transport failure
        allow_broadcast: Target is a broadcast address
        on_connected: Called with (snapshot, success) after every ``bindok``
        on_status: Called after a ``dat`` reply updated the cache
        on_update: Called after a ``res`` reply updated the cache
        on_error: Called with (snapshot, error) for undecodable or unexpected packets
        on_disconnected: Called when a transport failure drops the session
    """

    host: str
    local_port: int | None = None
    device_port: int = CHAC_DEVICE_PORT
    update_interval: float = CHAC_UPDATE_INTERVAL
    bind_retry_delay: float = CHAC_BIND_RETRY_DELAY
    allow_broadcast: bool = False
    on_connected: ConnectedCallback = _noop
    on_status: SnapshotCallback = _noop
    on_update: SnapshotCallback = _noop
    on_error: ErrorCallback = _noop
    on_disconnected: SnapshotCallback = _noop

    def __post_init__(self) -> None:
        if not self.host:
            msg = "host is required"
            raise ValueError(msg)
        if self.update_interval <= 0:
            msg = f"update_interval must be positive, got {self.update_interval}"
            raise ValueError(msg)
        if self.bind_retry_delay <= 0:
            msg = f"bind_retry_delay must be positive, got {self.bind_retry_delay}"
            raise ValueError(msg)
        if self.local_port is None:
            self.local_port = default_local_port(self.host)
