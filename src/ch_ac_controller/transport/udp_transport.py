"""Asyncio UDP endpoint bound to one local port and one device host."""

from __future__ import annotations

import asyncio
import socket
from collections.abc import Callable

from ch_ac_controller.logging_abstraction import get_logger
from ch_ac_controller.metrics import record_foreign_datagram
from ch_ac_controller.transport.exceptions import TransportError

logger = get_logger(__name__)

DatagramHandler = Callable[[bytes, tuple[str, int]], None]

_ANY_ADDRESS = "0.0.0.0"


class _AcDatagramProtocol(asyncio.DatagramProtocol):
    def __init__(self, owner: UdpTransport) -> None:
        self._owner = owner

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        self._owner._dispatch(data, addr)

    def error_received(self, exc: Exception) -> None:
        # ICMP errors (port unreachable etc.) surface here; UDP has no connection to lose
        logger.warning(
            "UDP error received for %s: %s",
            self._owner.target_host,
            exc,
            extra={"host": self._owner.target_host, "error": str(exc)},
        )


class UdpTransport:
    """One UDP socket per device.

    Inbound datagrams whose sender is not the configured host are dropped
    before they reach the handler. With ``allow_broadcast`` the target is a
    broadcast address and replies come from unicast peers, so every sender
    is accepted.
    """

    def __init__(
        self,
        target_host: str,
        on_datagram: DatagramHandler | None = None,
        allow_broadcast: bool = False,
    ):
        self.target_host = target_host
        self.allow_broadcast = allow_broadcast
        self._on_datagram = on_datagram
        self._transport: asyncio.DatagramTransport | None = None
        self._allowed_addresses: frozenset[str] = frozenset({target_host})
        self._local_port = 0

    @property
    def is_bound(self) -> bool:
        return self._transport is not None

    @property
    def local_port(self) -> int:
        """Local port actually bound (0 while unbound)."""
        return self._local_port

    def set_datagram_handler(self, handler: DatagramHandler | None) -> None:
        self._on_datagram = handler

    async def _resolve_target(self) -> frozenset[str]:
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(self.target_host, None, type=socket.SOCK_DGRAM)
        except OSError as e:
            logger.warning(
                "Could not resolve %s, accepting only the literal address",
                self.target_host,
                extra={"host": self.target_host, "error": str(e)},
            )
            return frozenset({self.target_host})
        return frozenset({self.target_host, *(str(info[4][0]) for info in infos)})

    async def bind(self, local_port: int) -> None:
        """Bind the local UDP port.

        Args:
            local_port: Port to listen on (0 lets the OS choose)

        Raises:
            TransportError: If the port cannot be bound
        """
        if self._transport is not None:
            return

        self._allowed_addresses = await self._resolve_target()
        loop = asyncio.get_running_loop()
        try:
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _AcDatagramProtocol(self),
                local_addr=(_ANY_ADDRESS, local_port),
                allow_broadcast=self.allow_broadcast,
            )
        except OSError as e:
            logger.exception(
                "Failed to bind UDP port %d for %s",
                local_port,
                self.target_host,
                extra={"host": self.target_host, "local_port": local_port, "error": str(e)},
            )
            reason = f"bind_failed:{e.strerror or e}"
            raise TransportError(reason, local_port) from e

        self._transport = transport
        sockname = transport.get_extra_info("sockname")
        self._local_port = int(sockname[1]) if sockname else local_port
        logger.info(
            "Listening on UDP port %d for %s",
            self._local_port,
            self.target_host,
            extra={"host": self.target_host, "local_port": self._local_port},
        )

    def send_to(self, data: bytes, address: str, port: int) -> None:
        """Send one datagram (fire-and-forget).

        Raises:
            TransportError: If unbound or the OS rejects the send
        """
        if self._transport is None:
            raise TransportError("not_bound", self._local_port)
        try:
            self._transport.sendto(data, (address, port))
        except OSError as e:
            logger.exception(
                "Send to %s:%d failed",
                address,
                port,
                extra={"host": self.target_host, "address": address, "port": port, "error": str(e)},
            )
            reason = f"send_failed:{e.strerror or e}"
            raise TransportError(reason, self._local_port) from e
        logger.debug(
            "Sent %d bytes to %s:%d",
            len(data),
            address,
            port,
            extra={"bytes": len(data), "address": address, "port": port},
        )

    def close(self) -> None:
        """Release the socket (idempotent)."""
        if self._transport is None:
            return
        self._transport.close()
        self._transport = None
        logger.info(
            "Closed UDP port %d for %s",
            self._local_port,
            self.target_host,
            extra={"host": self.target_host, "local_port": self._local_port},
        )
        self._local_port = 0

    def _dispatch(self, data: bytes, addr: tuple[str, int]) -> None:
        sender = addr[0]
        if not self.allow_broadcast and sender not in self._allowed_addresses:
            logger.debug(
                "Dropping %d bytes from foreign sender %s:%d",
                len(data),
                sender,
                addr[1],
                extra={"host": self.target_host, "sender": sender},
            )
            record_foreign_datagram(self.target_host)
            return
        if self._on_datagram is None:
            logger.debug("No datagram handler set, dropping %d bytes from %s", len(data), sender)
            return
        self._on_datagram(data, addr)
