"""AC protocol encoder/decoder implementation.

Builds outbound datagrams (plaintext scan, encrypted bind/status/cmd envelopes)
and turns inbound datagrams into :class:`AcPacket` instances.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from ch_ac_controller.const import CHAC_APP_CID
from ch_ac_controller.protocol.codec import AesEcbCodec
from ch_ac_controller.protocol.exceptions import CodecError
from ch_ac_controller.protocol.packet_types import (
    PACK_TYPE_BIND,
    PACK_TYPE_CMD,
    PACK_TYPE_PACK,
    PACK_TYPE_SCAN,
    PACK_TYPE_STATUS,
    AcPacket,
)

logger = logging.getLogger(__name__)


def _dump(obj: Mapping[str, Any]) -> bytes:
    return json.dumps(dict(obj), separators=(",", ":")).encode("utf-8")


class AcProtocol:
    """AC protocol encoder/decoder.

    Holds the codec (and therefore the default key) it was built with; no
    per-device state is kept here. Session keys are passed in per call.
    """

    def __init__(self, codec: AesEcbCodec | None = None):
        self.codec: AesEcbCodec = codec or AesEcbCodec()

    def _envelope(self, payload: Mapping[str, Any], key: str | bytes | None, i: int = 0) -> bytes:
        return _dump(
            {
                "cid": CHAC_APP_CID,
                "i": i,
                "t": PACK_TYPE_PACK,
                "uid": 0,
                "pack": self.codec.encrypt(payload, key),
            }
        )

    def encode_scan(self) -> bytes:
        """Encode the plaintext discovery probe ``{"t":"scan"}``."""
        return _dump({"t": PACK_TYPE_SCAN})

    def encode_bind(self, mac: str) -> bytes:
        """Encode a bind request, encrypted with the default key and flagged ``i=1``."""
        return self._envelope({"mac": mac, "t": PACK_TYPE_BIND, "uid": 0}, None, i=1)

    def encode_status_request(self, mac: str, cols: Sequence[str], key: str | bytes) -> bytes:
        """Encode a status request for ``cols`` with the session key."""
        return self._envelope({"cols": list(cols), "mac": mac, "t": PACK_TYPE_STATUS}, key)

    def encode_command(self, opt: Sequence[str], p: Sequence[int | float], key: str | bytes) -> bytes:
        """Encode a parameter command (``opt`` codes with parallel ``p`` values)."""
        return self._envelope({"opt": list(opt), "p": list(p), "t": PACK_TYPE_CMD}, key)

    def decode_packet(self, data: bytes, session_key: str | bytes | None = None) -> AcPacket:
        """Decode an inbound datagram.

        Steps:
        1. Parse the outer JSON object
        2. If it carries ``pack``, decrypt with the session key (when given),
           falling back to the default key
        3. Otherwise the envelope itself is the body (plaintext)
        4. Read the inner ``t`` as the packet type

        Args:
            data: Raw datagram bytes
            session_key: Session key of the current binding, if any

        Returns:
            AcPacket with the decrypted body

        Raises:
            CodecError: If the envelope or its payload cannot be decoded

        """
        try:
            envelope = json.loads(data.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise CodecError("invalid_envelope_utf8", data) from e
        except json.JSONDecodeError as e:
            raise CodecError("invalid_envelope_json", data) from e

        if not isinstance(envelope, dict):
            raise CodecError("envelope_not_an_object", data)

        cid = envelope.get("cid")
        cid = cid if isinstance(cid, str) else ""

        session_encrypted = False
        if "pack" in envelope:
            body: dict[str, Any] | None = None
            if session_key is not None:
                try:
                    body = self.codec.decrypt(envelope, session_key)
                    session_encrypted = True
                except CodecError as e:
                    logger.debug("Session key did not decrypt payload (%s), trying default key", e.reason)
            if body is None:
                body = self.codec.decrypt(envelope)
        else:
            body = envelope

        pack_type = body.get("t")
        if not isinstance(pack_type, str) or not pack_type:
            raise CodecError("missing_type", data)

        logger.debug("Decoded %s packet (cid=%s, session=%s)", pack_type, cid or "-", session_encrypted)
        return AcPacket(cid=cid, pack_type=pack_type, body=body, session_encrypted=session_encrypted)
