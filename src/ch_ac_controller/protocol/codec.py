"""AES-128-ECB payload codec.

Inner JSON payloads travel as base64 text of an AES-128-ECB ciphertext with
PKCS7 padding. Before binding, the well-known default key is used; afterwards
the 16-character key issued by the device in ``bindok``.
"""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Mapping
from typing import Any

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ch_ac_controller.const import CHAC_DEFAULT_KEY, CHAC_KEY_LENGTH
from ch_ac_controller.protocol.exceptions import CodecError

AES_BLOCK_BITS = 128
AES_BLOCK_BYTES = AES_BLOCK_BITS // 8


def _normalize_key(key: str | bytes) -> bytes:
    key_bytes = key.encode("utf-8") if isinstance(key, str) else bytes(key)
    if len(key_bytes) != CHAC_KEY_LENGTH:
        raise CodecError(f"invalid_key_length:{len(key_bytes)}")
    return key_bytes


class AesEcbCodec:
    """Encrypt and decrypt inner payloads.

    ECB mode is what the appliances speak; it is not a choice this class makes.
    """

    def __init__(self, default_key: str | bytes = CHAC_DEFAULT_KEY):
        self.default_key: bytes = _normalize_key(default_key)

    def _resolve_key(self, key: str | bytes | None) -> bytes:
        if key is None:
            return self.default_key
        return _normalize_key(key)

    def encrypt(self, payload: Mapping[str, Any], key: str | bytes | None = None) -> str:
        """Serialize ``payload`` as compact JSON, encrypt it and return base64 text.

        Args:
            payload: Inner JSON object
            key: Session key, or None for the default key

        Raises:
            CodecError: If the key is not 16 bytes or the payload is not serializable
        """
        key_bytes = self._resolve_key(key)
        try:
            plaintext = json.dumps(dict(payload), separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise CodecError(f"unserializable_payload:{e}") from e

        padder = padding.PKCS7(AES_BLOCK_BITS).padder()
        padded = padder.update(plaintext) + padder.finalize()

        encryptor = Cipher(algorithms.AES(key_bytes), modes.ECB()).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return base64.b64encode(ciphertext).decode("ascii")

    def decrypt(self, envelope: str | bytes | Mapping[str, Any], key: str | bytes | None = None) -> dict[str, Any]:
        """Decrypt base64 text (or the ``pack`` field of an outer envelope).

        Args:
            envelope: Base64 ciphertext, or an outer envelope carrying ``pack``
            key: Session key, or None for the default key

        Returns:
            The decrypted inner JSON object

        Raises:
            CodecError: On any malformed input or wrong key
        """
        key_bytes = self._resolve_key(key)

        if isinstance(envelope, Mapping):
            pack = envelope.get("pack")
            if not isinstance(pack, str):
                raise CodecError("missing_pack")
            encoded = pack.encode("ascii", errors="replace")
        elif isinstance(envelope, str):
            encoded = envelope.encode("ascii", errors="replace")
        else:
            encoded = bytes(envelope)

        try:
            ciphertext = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise CodecError("invalid_base64", encoded) from e

        if not ciphertext or len(ciphertext) % AES_BLOCK_BYTES:
            raise CodecError("invalid_block_length", ciphertext)

        decryptor = Cipher(algorithms.AES(key_bytes), modes.ECB()).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        unpadder = padding.PKCS7(AES_BLOCK_BITS).unpadder()
        try:
            plaintext = unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise CodecError("bad_padding", ciphertext) from e

        try:
            payload = json.loads(plaintext.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise CodecError("invalid_utf8", plaintext) from e
        except json.JSONDecodeError as e:
            raise CodecError("invalid_json", plaintext) from e

        if not isinstance(payload, dict):
            raise CodecError("not_an_object", plaintext)
        return payload
