"""Unit tests for AcProtocol envelope encoding and decoding."""

from __future__ import annotations

import json

import pytest

from ch_ac_controller.protocol.ac_protocol import AcProtocol
from ch_ac_controller.protocol.codec import AesEcbCodec
from ch_ac_controller.protocol.exceptions import CodecError
from ch_ac_controller.protocol.packet_types import (
    PACK_TYPE_BINDOK,
    PACK_TYPE_DAT,
    PACK_TYPE_DEV,
    PACK_TYPE_SCAN,
)
from tests.helpers.expectations import assert_reason, expect_exception
from tests.helpers.fake_device import DEVICE_MAC, SESSION_KEY, FakeDevice, decode_sent


class TestEncoding:
    """Tests for outbound datagrams."""

    def test_scan_is_plaintext(self):
        """Discovery is a bare plaintext object."""
        assert json.loads(AcProtocol().encode_scan()) == {"t": "scan"}

    def test_bind_envelope(self):
        """Bind uses the default key and i=1."""
        envelope, inner = decode_sent(AcProtocol().encode_bind(DEVICE_MAC))
        assert envelope["cid"] == "app"
        assert envelope["i"] == 1
        assert envelope["t"] == "pack"
        assert envelope["uid"] == 0
        assert inner == {"mac": DEVICE_MAC, "t": "bind", "uid": 0}

    def test_status_request_envelope(self):
        """Status requests use the session key and i=0."""
        data = AcProtocol().encode_status_request(DEVICE_MAC, ["Pow", "Mod"], SESSION_KEY)
        envelope, inner = decode_sent(data, SESSION_KEY)
        assert envelope["i"] == 0
        assert inner == {"cols": ["Pow", "Mod"], "mac": DEVICE_MAC, "t": "status"}

    def test_command_envelope(self):
        data = AcProtocol().encode_command(["TemUn", "SetTem"], [0, 24], SESSION_KEY)
        _, inner = decode_sent(data, SESSION_KEY)
        assert inner == {"opt": ["TemUn", "SetTem"], "p": [0, 24], "t": "cmd"}

    def test_session_payload_not_readable_with_default_key(self):
        data = AcProtocol().encode_command(["Pow"], [1], SESSION_KEY)
        expect_exception(decode_sent, CodecError, data)


class TestDecoding:
    """Tests for AcProtocol.decode_packet()."""

    def test_decode_dev(self):
        """dev replies are decrypted with the default key."""
        packet = AcProtocol().decode_packet(FakeDevice().dev())
        assert packet.pack_type == PACK_TYPE_DEV
        assert packet.cid == DEVICE_MAC
        assert packet.body["name"] == "Living Room"
        assert packet.session_encrypted is False

    def test_decode_bindok(self):
        packet = AcProtocol().decode_packet(FakeDevice().bindok())
        assert packet.pack_type == PACK_TYPE_BINDOK
        assert packet.body["key"] == SESSION_KEY

    def test_decode_session_packet(self):
        """Session traffic is flagged as session-encrypted."""
        packet = AcProtocol().decode_packet(FakeDevice().dat(["Pow"], [1]), SESSION_KEY)
        assert packet.pack_type == PACK_TYPE_DAT
        assert packet.session_encrypted is True
        assert packet.body["dat"] == [1]

    def test_default_key_fallback_when_bound(self):
        """A default-key dev still decodes while a session key is held."""
        packet = AcProtocol().decode_packet(FakeDevice().dev(), SESSION_KEY)
        assert packet.pack_type == PACK_TYPE_DEV
        assert packet.session_encrypted is False

    def test_session_packet_without_key_fails(self):
        expect_exception(AcProtocol().decode_packet, CodecError, FakeDevice().dat(["Pow"], [1]))

    def test_plaintext_envelope(self):
        """Envelopes without pack are their own body."""
        packet = AcProtocol().decode_packet(b'{"t":"scan"}')
        assert packet.pack_type == PACK_TYPE_SCAN
        assert packet.cid == ""

    def test_custom_codec_is_used(self):
        codec = AesEcbCodec(default_key="0123456789abcdef")
        protocol = AcProtocol(codec)
        device = FakeDevice(codec=codec)
        assert protocol.decode_packet(device.dev()).pack_type == PACK_TYPE_DEV
        expect_exception(AcProtocol().decode_packet, CodecError, device.dev())

    @pytest.mark.parametrize(
        ("data", "reason"),
        [
            (b"\xff\xfe\x00", "invalid_envelope_utf8"),
            (b"{not json", "invalid_envelope_json"),
            (b"[1,2]", "envelope_not_an_object"),
            (b'{"cid":"x"}', "missing_type"),
            (b'{"cid":"x","t":"pack","pack":"@@@@"}', "invalid_base64"),
        ],
    )
    def test_garbage_raises_codec_error(self, data, reason):
        """Malformed datagrams raise CodecError with a specific reason."""
        err = expect_exception(AcProtocol().decode_packet, CodecError, data)
        assert_reason(err, reason)
