"""Unit tests for engine dataclasses."""

from __future__ import annotations

import dataclasses

import pytest

from ch_ac_controller.transport.types import (
    BoundSession,
    ConnectionState,
    DeviceEndpoint,
    DeviceIdentity,
    DeviceOptions,
    DeviceSnapshot,
    default_local_port,
)
from tests.helpers.expectations import expect_exception


class TestConnectionState:
    def test_values(self):
        assert [state.value for state in ConnectionState] == [
            "idle",
            "awaiting_identity",
            "identified",
            "awaiting_bind_ack",
            "bound",
        ]


class TestDefaultLocalPort:
    @pytest.mark.parametrize(
        ("host", "port"),
        [("192.168.1.50", 8050), ("10.0.0.1", 8001), ("10.0.0.255", 8255), ("ac.local", 7000)],
    )
    def test_derived_from_last_octet(self, host, port):
        assert default_local_port(host) == port


class TestDeviceOptions:
    def test_local_port_derived(self):
        assert DeviceOptions(host="192.168.1.77").local_port == 8077

    def test_explicit_local_port_kept(self):
        assert DeviceOptions(host="192.168.1.77", local_port=9999).local_port == 9999

    def test_default_callbacks_are_noops(self):
        options = DeviceOptions(host="192.168.1.77")
        snapshot = DeviceSnapshot("h", "", "", "", 0, ConnectionState.IDLE, False)
        options.on_connected(snapshot, True)
        options.on_error(snapshot, RuntimeError("x"))
        options.on_disconnected(snapshot)

    @pytest.mark.parametrize(
        "kwargs",
        [{"host": ""}, {"host": "h", "update_interval": 0}, {"host": "h", "bind_retry_delay": -1}],
    )
    def test_invalid_options_rejected(self, kwargs):
        expect_exception(DeviceOptions, ValueError, **kwargs)


class TestRecords:
    def test_session_key_hidden_from_repr(self):
        session = BoundSession(DeviceIdentity("mac"), DeviceEndpoint("1.2.3.4", 7000), "Bx7kQ2mN9pL4sT6w")
        assert "Bx7kQ2mN9pL4sT6w" not in repr(session)

    def test_snapshot_is_read_only(self):
        props = {"Pow": 1}
        snapshot = DeviceSnapshot("h", "mac", "AC", "1.2.3.4", 7000, ConnectionState.BOUND, True, props)
        props["Pow"] = 0
        assert snapshot.props["Pow"] == 1
        with pytest.raises(TypeError):
            snapshot.props["Pow"] = 0  # type: ignore[index]
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.bound = False  # type: ignore[misc]
