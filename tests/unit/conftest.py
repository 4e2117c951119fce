"""
Shared fixtures for unit tests.

Engines are built around a mocked UdpTransport so tests can feed datagrams
straight into ``handle_datagram`` and decode what ``send_to`` was given.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from ch_ac_controller.transport.connection_manager import ConnectionManager
from ch_ac_controller.transport.retry_policy import RetryPolicy
from ch_ac_controller.transport.types import DeviceOptions
from ch_ac_controller.transport.udp_transport import UdpTransport
from tests.helpers.fake_device import DEVICE_HOST, FakeDevice

# Long enough that only the immediate first poll fires during a test
TEST_UPDATE_INTERVAL = 60.0
TEST_RETRY_DELAY = 0.01


@pytest.fixture
def mock_transport():
    """
    Mock UdpTransport.

    Starts unbound; ``bind`` succeeds and flips ``is_bound`` like the real one.
    """
    transport = MagicMock(spec=UdpTransport)
    transport.target_host = DEVICE_HOST
    transport.is_bound = False

    async def _bind(local_port: int) -> None:
        transport.is_bound = True

    transport.bind = AsyncMock(side_effect=_bind)
    transport.send_to = MagicMock()
    transport.close = MagicMock()
    return transport


@pytest.fixture
def callbacks():
    """One MagicMock per engine callback."""
    return {
        "on_connected": MagicMock(),
        "on_status": MagicMock(),
        "on_update": MagicMock(),
        "on_error": MagicMock(),
        "on_disconnected": MagicMock(),
    }


@pytest.fixture
def device_options(callbacks):
    return DeviceOptions(
        host=DEVICE_HOST,
        update_interval=TEST_UPDATE_INTERVAL,
        bind_retry_delay=TEST_RETRY_DELAY,
        **callbacks,
    )


@pytest.fixture
def engine(device_options, mock_transport):
    return ConnectionManager(
        device_options,
        transport=mock_transport,
        retry_policy=RetryPolicy(base_delay_seconds=TEST_RETRY_DELAY),
    )


@pytest.fixture
def fake_device():
    return FakeDevice()
