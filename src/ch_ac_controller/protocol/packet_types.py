"""AC protocol packet type definitions and dataclass structures.

Every datagram is a JSON object. Discovery is plaintext; everything else is an
outer ``pack`` envelope whose ``pack`` field holds the encrypted inner object.
The inner ``t`` field names the packet type.

Packet Type Overview:
- scan/dev: Discovery (client → device plaintext, device → client default key)
- bind/bindok: Bind handshake (default key both ways)
- status/dat: Status polling (session key)
- cmd/res: Parameter commands (session key)
"""

from dataclasses import dataclass, field
from typing import Any

# Packet Type Constants
# Discovery Flow
PACK_TYPE_SCAN = "scan"  # Client → Device: plaintext discovery probe
PACK_TYPE_DEV = "dev"  # Device → Client: identity (cid/mac, name)

# Bind Flow
PACK_TYPE_BIND = "bind"  # Client → Device: bind request, default key, i=1
PACK_TYPE_BINDOK = "bindok"  # Device → Client: carries the session key

# Status Flow
PACK_TYPE_STATUS = "status"  # Client → Device: cols to report
PACK_TYPE_DAT = "dat"  # Device → Client: cols + dat parallel arrays

# Command Flow
PACK_TYPE_CMD = "cmd"  # Client → Device: opt + p parallel arrays
PACK_TYPE_RES = "res"  # Device → Client: opt + val parallel arrays

# Outer envelope type
PACK_TYPE_PACK = "pack"

INBOUND_PACK_TYPES = frozenset({PACK_TYPE_DEV, PACK_TYPE_BINDOK, PACK_TYPE_DAT, PACK_TYPE_RES})


@dataclass(frozen=True)
class AcPacket:
    """A decoded inbound datagram.

    Attributes:
        cid: Outer envelope ``cid`` (the device MAC on replies), empty if absent
        pack_type: Inner ``t`` value ("dev", "bindok", "dat", "res", ...)
        body: Decrypted inner JSON object (the envelope itself for plaintext)
        session_encrypted: True when the session key decrypted the payload

    """

    cid: str
    pack_type: str
    body: dict[str, Any] = field(default_factory=dict)
    session_encrypted: bool = False
