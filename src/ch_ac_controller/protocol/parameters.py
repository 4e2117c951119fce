"""Default parameter table: logical names, wire codes and named values.

The table is plain data. Engines accept any sequence of :class:`Parameter`
for polling, so a unit with a different code set can be driven by passing a
different table.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

__all__ = [
    "AIR",
    "BLOW",
    "DEFAULT_PARAMETERS",
    "FAN_SPEED",
    "HEALTH",
    "HEAT_COOL_TYPE",
    "HEATING_8C",
    "LIGHTS",
    "MODE",
    "POWER",
    "POWER_SAVE",
    "QUIET",
    "ROOM_TEMPERATURE",
    "SLEEP",
    "SWING_HORIZONTAL",
    "SWING_VERTICAL",
    "TEMPERATURE",
    "TEMPERATURE_RECORD",
    "TEMPERATURE_UNIT",
    "TURBO",
    "Parameter",
    "by_name",
    "status_codes",
    "temperature_range",
]


@dataclass(frozen=True)
class Parameter:
    """One controllable or reportable device parameter.

    Attributes:
        name: Logical name used by the device facade
        code: Wire code sent in ``opt``/``cols``
        values: Named values (empty for free-valued parameters)
        fixed_values: Subset of values that are fixed positions (vertical swing)

    """

    name: str
    code: str
    values: Mapping[str, int] = field(default_factory=dict, hash=False)
    fixed_values: frozenset[int] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def value_of(self, label: str) -> int:
        """Return the wire value for a named value, raising ValueError if unknown."""
        try:
            return self.values[label]
        except KeyError:
            msg = f"{self.name}: unknown value {label!r} (expected one of {sorted(self.values)})"
            raise ValueError(msg) from None

    def is_valid(self, value: int) -> bool:
        if not self.values:
            return True
        return value in self.values.values()


POWER = Parameter("power", "Pow", {"off": 0, "on": 1})
MODE = Parameter("mode", "Mod", {"auto": 0, "cool": 1, "dry": 2, "fan": 3, "heat": 4})
TEMPERATURE_UNIT = Parameter("temperatureUnit", "TemUn", {"celsius": 0, "fahrenheit": 1})
TEMPERATURE = Parameter("temperature", "SetTem")
FAN_SPEED = Parameter(
    "fanSpeed",
    "WdSpd",
    {"auto": 0, "low": 1, "mediumLow": 2, "medium": 3, "mediumHigh": 4, "high": 5},
)
AIR = Parameter("air", "Air", {"off": 0, "on": 1})
BLOW = Parameter("blow", "Blo", {"off": 0, "on": 1})
HEALTH = Parameter("health", "Health", {"off": 0, "on": 1})
SLEEP = Parameter("sleep", "SwhSlp", {"off": 0, "on": 1})
LIGHTS = Parameter("lights", "Lig", {"off": 0, "on": 1})
SWING_HORIZONTAL = Parameter("swingHor", "SwingLfRig", {"default": 0, "full": 1})
SWING_VERTICAL = Parameter(
    "swingVert",
    "SwUpDn",
    {
        "default": 0,
        "full": 1,
        "fixedTop": 2,
        "fixedMidTop": 3,
        "fixedMid": 4,
        "fixedMidBottom": 5,
        "fixedBottom": 6,
        "swingBottom": 7,
        "swingMidBottom": 8,
        "swingMid": 9,
        "swingMidTop": 10,
        "swingTop": 11,
    },
    fixed_values=frozenset({0, 2, 3, 4, 5, 6}),
)
QUIET = Parameter("quiet", "Quiet", {"off": 0, "on": 1})
TURBO = Parameter("turbo", "Tur", {"off": 0, "on": 1})
POWER_SAVE = Parameter("powerSave", "SvSt", {"off": 0, "on": 1})
# Raw sensor reading, reported as-is
ROOM_TEMPERATURE = Parameter("roomTemperature", "TemSen")
TEMPERATURE_RECORD = Parameter("temperatureRecord", "TemRec")
HEAT_COOL_TYPE = Parameter("heatCoolType", "HeatCoolType")
HEATING_8C = Parameter("heating8C", "StHt", {"off": 0, "on": 1})

DEFAULT_PARAMETERS: tuple[Parameter, ...] = (
    POWER,
    MODE,
    TEMPERATURE_UNIT,
    TEMPERATURE,
    FAN_SPEED,
    AIR,
    BLOW,
    HEALTH,
    SLEEP,
    LIGHTS,
    SWING_HORIZONTAL,
    SWING_VERTICAL,
    QUIET,
    TURBO,
    POWER_SAVE,
    ROOM_TEMPERATURE,
    TEMPERATURE_RECORD,
    HEAT_COOL_TYPE,
    HEATING_8C,
)

_TEMPERATURE_RANGES = {
    TEMPERATURE_UNIT.values["celsius"]: (16, 30),
    TEMPERATURE_UNIT.values["fahrenheit"]: (61, 86),
}


def temperature_range(unit: int) -> tuple[int, int]:
    """Return the inclusive (min, max) target temperature for a unit value."""
    try:
        return _TEMPERATURE_RANGES[unit]
    except KeyError:
        msg = f"unknown temperature unit {unit!r}"
        raise ValueError(msg) from None


def status_codes(table: Iterable[Parameter] = DEFAULT_PARAMETERS) -> list[str]:
    """Return the wire codes to request in a status poll, in table order."""
    codes: list[str] = []
    for parameter in table:
        if parameter.code not in codes:
            codes.append(parameter.code)
    return codes


def by_name(table: Sequence[Parameter] = DEFAULT_PARAMETERS) -> dict[str, Parameter]:
    return {parameter.name: parameter for parameter in table}
