"""Unit tests for the default parameter table."""

from __future__ import annotations

import pytest

from ch_ac_controller.protocol.parameters import (
    DEFAULT_PARAMETERS,
    MODE,
    SWING_VERTICAL,
    TEMPERATURE,
    Parameter,
    by_name,
    status_codes,
    temperature_range,
)
from tests.helpers.expectations import expect_exception

# Test constants
EXPECTED_PARAMETER_COUNT = 19


class TestParameterTable:
    """Tests for the shipped table."""

    def test_status_codes_cover_table(self):
        codes = status_codes()
        assert len(codes) == EXPECTED_PARAMETER_COUNT
        assert codes[:4] == ["Pow", "Mod", "TemUn", "SetTem"]
        assert {"SwUpDn", "TemSen", "HeatCoolType", "StHt"} <= set(codes)

    def test_status_codes_deduplicate(self):
        dup = Parameter("power2", "Pow")
        assert status_codes([*DEFAULT_PARAMETERS, dup]).count("Pow") == 1

    def test_swing_fixed_values(self):
        assert SWING_VERTICAL.fixed_values == frozenset({0, 2, 3, 4, 5, 6})
        assert SWING_VERTICAL.value_of("swingTop") == 11

    def test_by_name(self):
        table = by_name()
        assert table["mode"] is MODE
        assert table["temperature"].code == "SetTem"


class TestParameter:
    """Tests for Parameter helpers."""

    def test_value_of_unknown_label(self):
        err = expect_exception(MODE.value_of, ValueError, "turbo")
        assert "mode" in str(err)

    @pytest.mark.parametrize(("value", "valid"), [(0, True), (4, True), (5, False), (-1, False)])
    def test_is_valid(self, value, valid):
        assert MODE.is_valid(value) is valid

    def test_free_valued_parameter_accepts_anything(self):
        assert TEMPERATURE.is_valid(99)

    def test_values_are_read_only(self):
        with pytest.raises(TypeError):
            MODE.values["extra"] = 9  # type: ignore[index]

    def test_temperature_ranges(self):
        assert temperature_range(0) == (16, 30)
        assert temperature_range(1) == (61, 86)
        expect_exception(temperature_range, ValueError, 2)
