"""Unit tests for transport layer exceptions."""

from __future__ import annotations

from ch_ac_controller.protocol.exceptions import AcProtocolError
from ch_ac_controller.transport.exceptions import NotConnectedError, TransportError

# Test constants
LOCAL_PORT = 8050


class TestExceptionHierarchy:
    """Tests for exception inheritance."""

    def test_transport_exceptions_inherit_from_ac_protocol_error(self):
        assert issubclass(TransportError, AcProtocolError)
        assert issubclass(NotConnectedError, AcProtocolError)


class TestTransportError:
    """Tests for TransportError."""

    def test_with_reason_only(self):
        error = TransportError("not_bound")
        assert error.reason == "not_bound"
        assert error.local_port == 0
        assert "not_bound" in str(error)

    def test_with_local_port(self):
        error = TransportError("bind_failed:Address already in use", LOCAL_PORT)
        assert error.local_port == LOCAL_PORT
        assert str(error) == "Transport error: bind_failed:Address already in use (local port: 8050)"


class TestNotConnectedError:
    """Tests for NotConnectedError."""

    def test_default_state(self):
        error = NotConnectedError("set_parameters")
        assert error.operation == "set_parameters"
        assert error.state == "unknown"

    def test_message_includes_state(self):
        error = NotConnectedError("set_parameters", "awaiting_bind_ack")
        assert str(error) == "Not connected: cannot set_parameters (state: awaiting_bind_ack)"
