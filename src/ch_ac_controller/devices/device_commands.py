"""Command and status-request dispatch for a bound session."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from ch_ac_controller.logging_abstraction import get_logger
from ch_ac_controller.metrics import record_packet_sent
from ch_ac_controller.protocol.packet_types import PACK_TYPE_CMD, PACK_TYPE_STATUS
from ch_ac_controller.transport.exceptions import TransportError

if TYPE_CHECKING:
    from ch_ac_controller.protocol.ac_protocol import AcProtocol
    from ch_ac_controller.transport.types import BoundSession
    from ch_ac_controller.transport.udp_transport import UdpTransport

logger = get_logger(__name__)


class CommandDispatcher:
    """Encrypt ``cmd``/``status`` requests with the session key and send them.

    Holds no state of its own; the session is passed in per call so a stale
    session can never be used after the engine drops it.
    """

    def __init__(self, protocol: AcProtocol, transport: UdpTransport, host: str = ""):
        self.protocol = protocol
        self.transport = transport
        self.host = host or transport.target_host

    def _send(self, session: BoundSession, data: bytes, packet_type: str) -> None:
        try:
            self.transport.send_to(data, session.endpoint.address, session.endpoint.port)
        except TransportError:
            record_packet_sent(self.host, packet_type, "error")
            raise
        record_packet_sent(self.host, packet_type, "success")

    def send_command(
        self,
        session: BoundSession,
        codes: Sequence[str],
        values: Sequence[int | float],
    ) -> None:
        """Send ``{opt: codes, p: values, t: "cmd"}``.

        Raises:
            TransportError: If the datagram could not be sent
        """
        data = self.protocol.encode_command(codes, values, session.key)
        logger.info(
            "→ Sending command to %s",
            session.identity.device_id,
            extra={"device_id": session.identity.device_id, "opt": list(codes), "p": list(values)},
        )
        self._send(session, data, PACK_TYPE_CMD)

    def request_status(self, session: BoundSession, codes: Sequence[str]) -> None:
        """Send ``{cols: codes, mac: device_id, t: "status"}``."""
        data = self.protocol.encode_status_request(session.identity.device_id, codes, session.key)
        logger.debug(
            "→ Requesting status from %s (%d cols)",
            session.identity.device_id,
            len(codes),
        )
        self._send(session, data, PACK_TYPE_STATUS)
