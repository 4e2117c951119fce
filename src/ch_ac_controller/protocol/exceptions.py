"""Exception types for AC protocol errors.

Decoding and protocol-state failures raise instead of returning None, so a
caller always sees why a datagram was rejected.
"""

from __future__ import annotations


class AcProtocolError(Exception):
    """Base exception for all AC protocol errors.

    Transport and connection errors inherit from this class too, so a single
    ``except AcProtocolError`` covers everything the engine can report.
    """


class CodecError(AcProtocolError):
    """Envelope payload cannot be encrypted or decrypted.

    Raised for invalid base64, a ciphertext that is not a whole number of
    AES blocks, bad PKCS7 padding (usually the wrong key), plaintext that is
    not a JSON object, or a key of the wrong length.

    Attributes:
        reason: Specific failure reason (e.g., "invalid_base64", "bad_padding")
        data_preview: First 16 bytes of the offending data
    """

    def __init__(self, reason: str, data: bytes = b""):
        self.reason = reason
        # Only the first 16 bytes are kept so session payloads never end up in logs whole
        self.data_preview = data[:16] if data else b""
        super().__init__(f"Codec failed: {reason}")


class ProtocolViolationError(AcProtocolError):
    """A well-formed packet arrived that the engine cannot accept.

    Raised for packet types that are unexpected in the current state, a
    ``bindok`` naming a different device, a missing or malformed session key,
    or status arrays that do not line up.

    Attributes:
        reason: Specific failure reason (e.g., "unexpected_type", "identity_mismatch")
        packet_type: Inner ``t`` value of the offending packet
        state: Engine state when the packet arrived
    """

    def __init__(self, reason: str, packet_type: str = "", state: str = ""):
        self.reason = reason
        self.packet_type = packet_type
        self.state = state
        super().__init__(f"Protocol violation: {reason} (type: {packet_type or '?'}, state: {state or '?'})")
