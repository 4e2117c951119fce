"""AcDevice: typed getters and setters on top of the protocol engine."""

from __future__ import annotations

from collections.abc import Sequence
from types import TracebackType
from typing import Self

from ch_ac_controller.devices.property_cache import PropertyValue
from ch_ac_controller.logging_abstraction import get_logger
from ch_ac_controller.protocol.ac_protocol import AcProtocol
from ch_ac_controller.protocol.parameters import (
    DEFAULT_PARAMETERS,
    FAN_SPEED,
    MODE,
    POWER,
    ROOM_TEMPERATURE,
    SWING_VERTICAL,
    TEMPERATURE,
    TEMPERATURE_UNIT,
    Parameter,
    temperature_range,
)
from ch_ac_controller.transport.connection_manager import ConnectionManager
from ch_ac_controller.transport.retry_policy import RetryPolicy
from ch_ac_controller.transport.types import ConnectionState, DeviceOptions, DeviceSnapshot
from ch_ac_controller.transport.udp_transport import UdpTransport

logger = get_logger(__name__)


class AcDevice:
    """One air conditioner on the LAN.

    Getters read the property cache and return None until the device has
    reported the parameter. Setters validate against the parameter table and
    raise NotConnectedError while the engine is not bound.
    """

    def __init__(
        self,
        options: DeviceOptions,
        transport: UdpTransport | None = None,
        protocol: AcProtocol | None = None,
        parameters: Sequence[Parameter] = DEFAULT_PARAMETERS,
        retry_policy: RetryPolicy | None = None,
    ):
        self.engine = ConnectionManager(
            options,
            transport=transport,
            protocol=protocol,
            parameters=parameters,
            retry_policy=retry_policy,
        )
        self.lp = f"AcDevice:{options.host}:"

    @property
    def host(self) -> str:
        return self.engine.host

    @property
    def state(self) -> ConnectionState:
        return self.engine.state

    @property
    def is_bound(self) -> bool:
        return self.engine.is_bound

    def snapshot(self) -> DeviceSnapshot:
        return self.engine.snapshot()

    async def start(self) -> None:
        await self.engine.start()

    async def close(self) -> None:
        await self.engine.close()

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # Getters

    def get_power(self) -> PropertyValue | None:
        return self.engine.get_property(POWER.code)

    def get_target_temperature(self) -> PropertyValue | None:
        return self.engine.get_property(TEMPERATURE.code)

    def get_temperature_unit(self) -> PropertyValue | None:
        return self.engine.get_property(TEMPERATURE_UNIT.code)

    def get_mode(self) -> PropertyValue | None:
        return self.engine.get_property(MODE.code)

    def get_fan_speed(self) -> PropertyValue | None:
        return self.engine.get_property(FAN_SPEED.code)

    def get_swing_vertical(self) -> PropertyValue | None:
        return self.engine.get_property(SWING_VERTICAL.code)

    def get_room_temperature(self) -> PropertyValue | None:
        """Raw ``TemSen`` reading, or None if the unit has not reported it."""
        return self.engine.get_property(ROOM_TEMPERATURE.code)

    def is_swing_fixed(self) -> bool | None:
        """True when vertical swing is parked at a fixed position; None if unknown."""
        value = self.get_swing_vertical()
        if value is None:
            return None
        return value in SWING_VERTICAL.fixed_values

    # Setters

    def set_parameters(self, codes: Sequence[str], values: Sequence[int | float]) -> None:
        self.engine.set_parameters(codes, values)

    def _set_named(self, parameter: Parameter, value: int | str) -> None:
        lp = f"{self.lp}set_{parameter.name}:"
        wire_value = parameter.value_of(value) if isinstance(value, str) else value
        if isinstance(wire_value, bool) or not parameter.is_valid(wire_value):
            logger.error("%s Invalid value %r", lp, value)
            msg = f"{parameter.name}: invalid value {value!r}"
            raise ValueError(msg)
        self.engine.set_parameters([parameter.code], [wire_value])

    def set_power(self, on: bool) -> None:
        self.engine.set_parameters([POWER.code], [POWER.value_of("on" if on else "off")])

    def set_target_temperature(self, value: int, unit: int = TEMPERATURE_UNIT.values["celsius"]) -> None:
        """Set the target temperature; the unit is sent alongside in the same command.

        Raises:
            ValueError: Unknown unit or value outside the unit's range
        """
        lp = f"{self.lp}set_target_temperature:"
        low, high = temperature_range(unit)
        if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
            logger.error("%s %r outside %d-%d", lp, value, low, high)
            msg = f"target temperature {value!r} outside {low}-{high}"
            raise ValueError(msg)
        self.engine.set_parameters([TEMPERATURE_UNIT.code, TEMPERATURE.code], [unit, value])

    def set_mode(self, mode: int | str) -> None:
        """Set operating mode by wire value (0-4) or name ("auto", "cool", "dry", "fan", "heat")."""
        self._set_named(MODE, mode)

    def set_fan_speed(self, speed: int | str) -> None:
        self._set_named(FAN_SPEED, speed)

    def set_swing_vertical(self, position: int | str) -> None:
        self._set_named(SWING_VERTICAL, position)
