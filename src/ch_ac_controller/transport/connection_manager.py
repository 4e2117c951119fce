"""Device communication engine: discovery, bind handshake, polling and commands.

This module implements the ConnectionManager class which owns one UDP
transport per device and drives the state machine

    IDLE → AWAITING_IDENTITY → IDENTIFIED → AWAITING_BIND_ACK → BOUND

Every inbound datagram and every outbound command runs in its own correlation
context. Transport failures are never fatal: the session is dropped and a
restart is scheduled through the retry policy.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable, Sequence
from typing import Any

from ch_ac_controller.const import CHAC_KEY_LENGTH
from ch_ac_controller.correlation import correlation_context
from ch_ac_controller.devices.device_commands import CommandDispatcher
from ch_ac_controller.devices.property_cache import PropertyCache, PropertyValue
from ch_ac_controller.logging_abstraction import get_logger
from ch_ac_controller.metrics import registry
from ch_ac_controller.protocol.ac_protocol import AcProtocol
from ch_ac_controller.protocol.exceptions import AcProtocolError, CodecError, ProtocolViolationError
from ch_ac_controller.protocol.packet_types import (
    PACK_TYPE_BIND,
    PACK_TYPE_BINDOK,
    PACK_TYPE_DAT,
    PACK_TYPE_DEV,
    PACK_TYPE_RES,
    PACK_TYPE_SCAN,
    AcPacket,
)
from ch_ac_controller.protocol.parameters import DEFAULT_PARAMETERS, Parameter, status_codes
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
)
from ch_ac_controller.transport.udp_transport import UdpTransport

logger = get_logger(__name__)


class ConnectionManager:
    """Protocol engine for a single device.

    **Concurrency**: all handlers run on the event loop that owns the UDP
    transport, one at a time, so state, session and cache need no locks.

    **Session invariant**: ``session`` is not None exactly while ``state`` is
    ``BOUND``; the property cache is only written while bound.
    """

    def __init__(
        self,
        options: DeviceOptions,
        transport: UdpTransport | None = None,
        protocol: AcProtocol | None = None,
        parameters: Sequence[Parameter] = DEFAULT_PARAMETERS,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            options: Device configuration and callbacks
            transport: UDP transport (one is created for ``options.host`` if None)
            protocol: Envelope encoder/decoder (default codec if None)
            parameters: Parameter table whose codes are polled
            retry_policy: Restart delay policy (fixed ``bind_retry_delay`` if None)

        """
        self.options: DeviceOptions = options
        self.host: str = options.host
        self.protocol: AcProtocol = protocol or AcProtocol()
        self.transport: UdpTransport = transport or UdpTransport(
            options.host,
            allow_broadcast=options.allow_broadcast,
        )
        self.transport.set_datagram_handler(self.handle_datagram)
        self.dispatcher: CommandDispatcher = CommandDispatcher(self.protocol, self.transport, self.host)
        self.cache: PropertyCache = PropertyCache()
        self.parameters: tuple[Parameter, ...] = tuple(parameters)
        self.retry_policy: RetryPolicy = retry_policy or RetryPolicy(base_delay_seconds=options.bind_retry_delay)

        self.state: ConnectionState = ConnectionState.IDLE
        self.identity: DeviceIdentity | None = None
        self.endpoint: DeviceEndpoint | None = None
        self.session: BoundSession | None = None

        self.poller: PollScheduler = PollScheduler(options.update_interval, self._poll, name=f"poll-{self.host}")
        self.retry_task: asyncio.Task[None] | None = None
        self._retry_attempt: int = 0
        self._discovery_pending: bool = False
        self._closed: bool = False
        self._status_codes: list[str] = status_codes(self.parameters)

        self._packet_handlers: dict[str, Callable[[AcPacket, tuple[str, int]], bool | None]] = {
            PACK_TYPE_DEV: self._handle_dev,
            PACK_TYPE_BINDOK: self._handle_bindok,
            PACK_TYPE_DAT: self._handle_report,
            PACK_TYPE_RES: self._handle_report,
        }

    @property
    def is_bound(self) -> bool:
        return self.state == ConnectionState.BOUND and self.session is not None

    @property
    def status_codes(self) -> list[str]:
        return list(self._status_codes)

    def snapshot(self) -> DeviceSnapshot:
        """Build a read-only snapshot for callbacks and callers."""
        identity = self.identity
        endpoint = self.endpoint
        return DeviceSnapshot(
            host=self.host,
            device_id=identity.device_id if identity else "",
            name=identity.name if identity else "",
            address=endpoint.address if endpoint else "",
            port=endpoint.port if endpoint else 0,
            state=self.state,
            bound=self.session is not None,
            props=self.cache.as_dict(),
        )

    def get_property(self, code: str) -> PropertyValue | None:
        return self.cache.get(code)

    # ------------------------------------------------------------------ lifecycle

    async def start(self) -> None:
        """Bind the socket if needed and send the discovery probe.

        Bind and send failures do not raise: ``on_disconnected`` fires and a
        restart is scheduled after the retry delay.
        """
        self._closed = False
        if self._discovery_pending:
            logger.debug("Discovery already outstanding for %s", self.host, extra={"host": self.host})
            return
        if self.state != ConnectionState.IDLE:
            logger.debug(
                "Engine for %s already started (state: %s)",
                self.host,
                self.state.value,
                extra={"host": self.host, "state": self.state.value},
            )
            return

        try:
            if not self.transport.is_bound:
                await self.transport.bind(self.options.local_port or 0)
                if self._closed:
                    # close() ran while the bind was in flight
                    self.transport.close()
                    return
            self.transport.send_to(self.protocol.encode_scan(), self.host, self.options.device_port)
        except TransportError as e:
            registry.record_packet_sent(self.host, PACK_TYPE_SCAN, "error")
            self._handle_transport_failure(e)
            return

        registry.record_packet_sent(self.host, PACK_TYPE_SCAN, "success")
        self._discovery_pending = True
        self._set_state(ConnectionState.AWAITING_IDENTITY)
        logger.info(
            "→ Discovery sent to %s:%d",
            self.host,
            self.options.device_port,
            extra={"host": self.host, "port": self.options.device_port},
        )

    async def close(self) -> None:
        """Tear down: cancel poll and retry tasks, release the socket.

        Task cleanup order: poller first, then retry, then the socket.
        """
        logger.info("Closing engine for %s", self.host, extra={"host": self.host})
        self._closed = True

        try:
            await self.poller.aclose()

            if self.retry_task and not self.retry_task.done():
                _ = self.retry_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self.retry_task
            self.retry_task = None
        finally:
            self.transport.close()
            self.session = None
            self.cache.clear()
            self._discovery_pending = False
            self._set_state(ConnectionState.IDLE)
            logger.info("Engine for %s closed", self.host, extra={"host": self.host})

    # ------------------------------------------------------------------ inbound

    def handle_datagram(self, data: bytes, addr: tuple[str, int]) -> None:
        """Decode and route one inbound datagram.

        Never raises: decode failures and protocol violations are reported
        through ``on_error`` and leave state untouched.
        """
        with correlation_context():
            session_key = self.session.key if self.session else None
            try:
                packet = self.protocol.decode_packet(data, session_key)
            except CodecError as e:
                registry.record_decode_error(self.host, e.reason)
                logger.warning(
                    "Dropping undecodable datagram from %s:%d: %s",
                    addr[0],
                    addr[1],
                    e.reason,
                    extra={"host": self.host, "bytes": len(data), "reason": e.reason},
                )
                self._report_error(e)
                return

            try:
                handler = self._packet_handlers.get(packet.pack_type)
                if handler is None:
                    reason = "unexpected_type"
                    raise ProtocolViolationError(reason, packet.pack_type, self.state.value)
                accepted = handler(packet, addr)
            except ProtocolViolationError as e:
                registry.record_packet_recv(self.host, packet.pack_type, "rejected")
                logger.warning(
                    "Rejected %s packet: %s",
                    packet.pack_type,
                    e.reason,
                    extra={"host": self.host, "reason": e.reason, "state": self.state.value},
                )
                self._report_error(e)
            else:
                outcome = "rejected" if accepted is False else "accepted"
                registry.record_packet_recv(self.host, packet.pack_type, outcome)

    def _handle_dev(self, packet: AcPacket, addr: tuple[str, int]) -> None:
        mac = packet.body.get("mac")
        device_id = packet.cid or (mac if isinstance(mac, str) else "")
        if not device_id:
            reason = "missing_device_id"
            raise ProtocolViolationError(reason, packet.pack_type, self.state.value)
        name = packet.body.get("name")

        if self.state in (ConnectionState.AWAITING_BIND_ACK, ConnectionState.BOUND):
            logger.info(
                "Device %s re-announced itself, rebinding",
                device_id,
                extra={"host": self.host, "device_id": device_id, "state": self.state.value},
            )
            self._invalidate_session()

        self.identity = DeviceIdentity(device_id=device_id, name=name if isinstance(name, str) else "")
        self.endpoint = DeviceEndpoint(address=addr[0], port=addr[1])
        self._discovery_pending = False
        self._set_state(ConnectionState.IDENTIFIED)
        logger.info(
            "Discovered device %s (%s) at %s:%d",
            self.identity.device_id,
            self.identity.name or "unnamed",
            addr[0],
            addr[1],
            extra={"host": self.host, "device_id": device_id},
        )
        self._send_bind()

    def _send_bind(self) -> None:
        if self.identity is None or self.endpoint is None:
            return
        data = self.protocol.encode_bind(self.identity.device_id)
        try:
            self.transport.send_to(data, self.endpoint.address, self.endpoint.port)
        except TransportError as e:
            registry.record_packet_sent(self.host, PACK_TYPE_BIND, "error")
            registry.record_bind(self.host, "send_failed")
            self._handle_transport_failure(e)
            return
        registry.record_packet_sent(self.host, PACK_TYPE_BIND, "success")
        self._set_state(ConnectionState.AWAITING_BIND_ACK)
        logger.debug("→ Bind request sent to %s", self.identity.device_id, extra={"host": self.host})

    def _handle_bindok(self, packet: AcPacket, addr: tuple[str, int]) -> bool | None:
        if self.identity is None or self.endpoint is None:
            registry.record_bind(self.host, "unknown_identity")
            logger.warning(
                "Ignoring bindok from %s:%d before discovery",
                addr[0],
                addr[1],
                extra={"host": self.host, "state": self.state.value},
            )
            self._fire("on_connected", self.options.on_connected, self.snapshot(), False)
            return False

        if self.state not in (ConnectionState.AWAITING_BIND_ACK, ConnectionState.BOUND):
            reason = "unexpected_bindok"
            raise ProtocolViolationError(reason, packet.pack_type, self.state.value)

        if packet.cid and packet.cid != self.identity.device_id:
            registry.record_bind(self.host, "identity_mismatch")
            reason = f"identity_mismatch:{packet.cid}!={self.identity.device_id}"
            raise ProtocolViolationError(reason, packet.pack_type, self.state.value)

        key = packet.body.get("key")
        if not isinstance(key, str) or len(key.encode("utf-8")) != CHAC_KEY_LENGTH:
            registry.record_bind(self.host, "invalid_key")
            reason = "invalid_session_key"
            raise ProtocolViolationError(reason, packet.pack_type, self.state.value)

        # A repeated bindok while bound re-keys the session
        self.poller.stop()
        self.session = BoundSession(identity=self.identity, endpoint=self.endpoint, key=key)
        self.cache.clear()
        self._set_state(ConnectionState.BOUND)
        self._retry_attempt = 0
        registry.record_bind(self.host, "success")
        logger.info(
            "✓ Bound to %s",
            self.identity.device_id,
            extra={"host": self.host, "device_id": self.identity.device_id},
        )
        self.poller.start()
        self._fire("on_connected", self.options.on_connected, self.snapshot(), True)

    def _handle_report(self, packet: AcPacket, addr: tuple[str, int]) -> None:
        """Apply a ``dat`` (status) or ``res`` (command result) reply to the cache."""
        if self.session is None or self.state != ConnectionState.BOUND:
            reason = "not_bound"
            raise ProtocolViolationError(reason, packet.pack_type, self.state.value)
        if not packet.session_encrypted:
            reason = "not_session_encrypted"
            raise ProtocolViolationError(reason, packet.pack_type, self.state.value)

        if packet.pack_type == PACK_TYPE_DAT:
            codes, values = packet.body.get("cols"), packet.body.get("dat")
            callback, callback_name = self.options.on_status, "on_status"
        else:
            codes, values = packet.body.get("opt"), packet.body.get("val")
            callback, callback_name = self.options.on_update, "on_update"

        if not isinstance(codes, list) or not isinstance(values, list):
            reason = "missing_arrays"
            raise ProtocolViolationError(reason, packet.pack_type, self.state.value)

        try:
            changed = self.cache.update(codes, values)
        except ProtocolViolationError as e:
            raise ProtocolViolationError(e.reason, packet.pack_type, self.state.value) from e

        logger.debug(
            "← %s from %s: %d values, %d changed",
            packet.pack_type,
            self.session.identity.device_id,
            len(codes),
            len(changed),
            extra={"host": self.host, "changed": changed} if changed else {"host": self.host},
        )
        self._fire(callback_name, callback, self.snapshot())

    # ------------------------------------------------------------------ outbound

    def set_parameters(self, codes: Sequence[str], values: Sequence[int | float]) -> None:
        """Send a parameter command to the bound device.

        Raises:
            NotConnectedError: If not bound (nothing is sent)
            ValueError: If ``codes`` is empty or lengths differ
            TransportError: If the send failed (the session is dropped and a restart scheduled)

        """
        with correlation_context():
            session = self.session
            if session is None or self.state != ConnectionState.BOUND:
                registry.record_command(self.host, "not_connected")
                raise NotConnectedError("set_parameters", self.state.value)

            codes = list(codes)
            values = list(values)
            if not codes:
                msg = "at least one parameter code is required"
                raise ValueError(msg)
            if len(codes) != len(values):
                msg = f"codes and values differ in length ({len(codes)} != {len(values)})"
                raise ValueError(msg)

            try:
                self.dispatcher.send_command(session, codes, values)
            except TransportError as e:
                registry.record_command(self.host, "error")
                self._handle_transport_failure(e)
                raise
            registry.record_command(self.host, "sent")

    def _poll(self) -> None:
        session = self.session
        if session is None:
            return
        with correlation_context():
            registry.record_poll(self.host)
            try:
                self.dispatcher.request_status(session, self._status_codes)
            except TransportError as e:
                self._handle_transport_failure(e)

    # ------------------------------------------------------------------ failure handling

    def _invalidate_session(self) -> None:
        self.poller.stop()
        self.session = None
        self.cache.clear()

    def _handle_transport_failure(self, error: TransportError) -> None:
        """Drop the session, notify ``on_disconnected`` and schedule a restart."""
        logger.warning(
            "Transport failure for %s: %s",
            self.host,
            error.reason,
            extra={"host": self.host, "reason": error.reason, "state": self.state.value},
        )
        self._invalidate_session()
        self._discovery_pending = False
        self._set_state(ConnectionState.IDLE)
        self._fire("on_disconnected", self.options.on_disconnected, self.snapshot())
        self._schedule_restart(error.reason.split(":", 1)[0])

    def _schedule_restart(self, reason: str) -> None:
        """Schedule ``start()`` after the retry delay, unless one is already pending."""
        if self._closed:
            return
        current = asyncio.current_task()
        if self.retry_task is not None and not self.retry_task.done() and self.retry_task is not current:
            logger.debug("Restart already scheduled", extra={"host": self.host, "reason": reason})
            return

        delay = self.retry_policy.get_delay(self._retry_attempt)
        self._retry_attempt += 1
        registry.record_socket_retry(self.host, reason)
        logger.info(
            "Restarting %s in %.1fs",
            self.host,
            delay,
            extra={"host": self.host, "reason": reason, "attempt": self._retry_attempt},
        )
        self.retry_task = asyncio.create_task(self._restart_after(delay), name=f"restart-{self.host}")

    async def _restart_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        # Stays set while start() runs so close() can cancel an in-flight bind
        try:
            if not self._closed:
                await self.start()
        finally:
            if self.retry_task is asyncio.current_task():
                self.retry_task = None

    # ------------------------------------------------------------------ helpers

    def _set_state(self, new_state: ConnectionState) -> None:
        if new_state != self.state:
            logger.debug(
                "State %s → %s",
                self.state.value,
                new_state.value,
                extra={"host": self.host},
            )
        self.state = new_state
        registry.record_connection_state(self.host, new_state.value)

    def _report_error(self, error: AcProtocolError) -> None:
        self._fire("on_error", self.options.on_error, self.snapshot(), error)

    def _fire(self, name: str, callback: Callable[..., Any], *args: Any) -> None:
        try:
            callback(*args)
        except Exception:
            logger.exception("%s callback raised", name, extra={"host": self.host})
