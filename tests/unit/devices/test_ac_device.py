"""Unit tests for the AcDevice facade."""

from __future__ import annotations

import pytest

from ch_ac_controller.devices.ac_device import AcDevice
from ch_ac_controller.transport.exceptions import NotConnectedError
from ch_ac_controller.transport.retry_policy import RetryPolicy
from ch_ac_controller.transport.types import ConnectionState
from tests.helpers.expectations import expect_exception
from tests.helpers.fake_device import DEVICE_ADDR, DEVICE_HOST, SESSION_KEY, sent_payloads

# Test constants
ALL_REPORTED_CODES = ["Pow", "Mod", "TemUn", "SetTem", "WdSpd", "SwUpDn", "TemSen"]
ALL_REPORTED_VALUES = [1, 1, 0, 24, 3, 4, 0]


@pytest.fixture
def device(device_options, mock_transport):
    return AcDevice(device_options, transport=mock_transport, retry_policy=RetryPolicy(base_delay_seconds=0.01))


async def bind(device: AcDevice, fake_device) -> None:
    await device.start()
    device.engine.handle_datagram(fake_device.dev(), DEVICE_ADDR)
    device.engine.handle_datagram(fake_device.bindok(), DEVICE_ADDR)


def last_command(mock_transport) -> dict:
    return sent_payloads(mock_transport.send_to, SESSION_KEY)[-1]


class TestAcDeviceLifecycle:
    """Tests for start/close and the async context manager."""

    @pytest.mark.asyncio
    async def test_context_manager(self, device_options, mock_transport):
        async with AcDevice(device_options, transport=mock_transport) as device:
            assert device.host == DEVICE_HOST
            assert device.state == ConnectionState.AWAITING_IDENTITY
        mock_transport.close.assert_called_once()
        assert device.state == ConnectionState.IDLE

    @pytest.mark.asyncio
    async def test_bound_snapshot(self, device, fake_device):
        await bind(device, fake_device)
        try:
            assert device.is_bound
            assert device.snapshot().bound is True
        finally:
            await device.close()


class TestAcDeviceGetters:
    """Tests for cache-backed getters."""

    def test_unknown_before_report(self, device):
        assert device.get_power() is None
        assert device.get_room_temperature() is None
        assert device.is_swing_fixed() is None

    @pytest.mark.asyncio
    async def test_values_after_status(self, device, fake_device):
        await bind(device, fake_device)
        try:
            device.engine.handle_datagram(fake_device.dat(ALL_REPORTED_CODES, ALL_REPORTED_VALUES), DEVICE_ADDR)

            assert device.get_power() == 1
            assert device.get_mode() == 1
            assert device.get_temperature_unit() == 0
            assert device.get_target_temperature() == 24
            assert device.get_fan_speed() == 3
            assert device.get_swing_vertical() == 4
            assert device.get_room_temperature() == 0
            assert device.is_swing_fixed() is True
        finally:
            await device.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("position", "fixed"), [(0, True), (1, False), (6, True), (7, False), (11, False)])
    async def test_is_swing_fixed(self, device, fake_device, position, fixed):
        await bind(device, fake_device)
        try:
            device.engine.handle_datagram(fake_device.dat(["SwUpDn"], [position]), DEVICE_ADDR)
            assert device.is_swing_fixed() is fixed
        finally:
            await device.close()


class TestAcDeviceSetters:
    """Tests for validated setters."""

    def test_setter_while_unbound_raises(self, device, mock_transport):
        expect_exception(device.set_power, NotConnectedError, True)
        mock_transport.send_to.assert_not_called()

    @pytest.mark.asyncio
    async def test_set_power(self, device, fake_device, mock_transport):
        await bind(device, fake_device)
        try:
            device.set_power(False)
            assert last_command(mock_transport) == {"opt": ["Pow"], "p": [0], "t": "cmd"}
            device.set_power(True)
            assert last_command(mock_transport) == {"opt": ["Pow"], "p": [1], "t": "cmd"}
        finally:
            await device.close()

    @pytest.mark.asyncio
    async def test_set_target_temperature_sends_unit(self, device, fake_device, mock_transport):
        await bind(device, fake_device)
        try:
            device.set_target_temperature(22)
            assert last_command(mock_transport) == {"opt": ["TemUn", "SetTem"], "p": [0, 22], "t": "cmd"}
            device.set_target_temperature(75, unit=1)
            assert last_command(mock_transport) == {"opt": ["TemUn", "SetTem"], "p": [1, 75], "t": "cmd"}
        finally:
            await device.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("value", "unit"), [(15, 0), (31, 0), (60, 1), (87, 1), (22, 2), (22.5, 0), (True, 0)])
    async def test_set_target_temperature_rejects(self, device, fake_device, mock_transport, value, unit):
        await bind(device, fake_device)
        try:
            sent = mock_transport.send_to.call_count
            expect_exception(device.set_target_temperature, ValueError, value, unit)
            assert mock_transport.send_to.call_count == sent
        finally:
            await device.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("setter", "value", "code", "wire"),
        [
            ("set_mode", "heat", "Mod", 4),
            ("set_mode", 1, "Mod", 1),
            ("set_fan_speed", "mediumHigh", "WdSpd", 4),
            ("set_swing_vertical", "fixedMid", "SwUpDn", 4),
            ("set_swing_vertical", 11, "SwUpDn", 11),
        ],
    )
    async def test_named_setters(self, device, fake_device, mock_transport, setter, value, code, wire):
        await bind(device, fake_device)
        try:
            getattr(device, setter)(value)
            assert last_command(mock_transport) == {"opt": [code], "p": [wire], "t": "cmd"}
        finally:
            await device.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("setter", "value"),
        [("set_mode", "turbo"), ("set_mode", 5), ("set_mode", True), ("set_fan_speed", 6), ("set_swing_vertical", 12)],
    )
    async def test_named_setters_reject(self, device, fake_device, setter, value):
        await bind(device, fake_device)
        try:
            expect_exception(getattr(device, setter), ValueError, value)
        finally:
            await device.close()

    @pytest.mark.asyncio
    async def test_raw_set_parameters(self, device, fake_device, mock_transport):
        await bind(device, fake_device)
        try:
            device.set_parameters(["Lig", "Tur"], [0, 1])
            assert last_command(mock_transport) == {"opt": ["Lig", "Tur"], "p": [0, 1], "t": "cmd"}
        finally:
            await device.close()
