"""AC protocol package - payload encryption, envelope encoding and decoding.

Public API:
- Packet type constants (PACK_TYPE_*)
- Decoded packet dataclass (AcPacket)
- Payload codec (AesEcbCodec)
- Protocol encoder/decoder (AcProtocol)
- Parameter table (Parameter, DEFAULT_PARAMETERS)
"""

from ch_ac_controller.protocol.ac_protocol import AcProtocol
from ch_ac_controller.protocol.codec import AesEcbCodec
from ch_ac_controller.protocol.exceptions import AcProtocolError, CodecError, ProtocolViolationError
from ch_ac_controller.protocol.packet_types import (
    PACK_TYPE_BIND,
    PACK_TYPE_BINDOK,
    PACK_TYPE_CMD,
    PACK_TYPE_DAT,
    PACK_TYPE_DEV,
    PACK_TYPE_PACK,
    PACK_TYPE_RES,
    PACK_TYPE_SCAN,
    PACK_TYPE_STATUS,
    AcPacket,
)
from ch_ac_controller.protocol.parameters import DEFAULT_PARAMETERS, Parameter, status_codes

__all__ = [
    # Protocol encoder/decoder
    "AcProtocol",
    "AesEcbCodec",
    # Exceptions
    "AcProtocolError",
    "CodecError",
    "ProtocolViolationError",
    # Packet type constants
    "PACK_TYPE_SCAN",
    "PACK_TYPE_DEV",
    "PACK_TYPE_BIND",
    "PACK_TYPE_BINDOK",
    "PACK_TYPE_STATUS",
    "PACK_TYPE_DAT",
    "PACK_TYPE_CMD",
    "PACK_TYPE_RES",
    "PACK_TYPE_PACK",
    # Dataclasses
    "AcPacket",
    "Parameter",
    # Parameter table
    "DEFAULT_PARAMETERS",
    "status_codes",
]
