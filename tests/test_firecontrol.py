#!/usr/bin/env python3
"""
Tests for single-emitter firing solutions.

Tests:
- Standard solutions (exact, linear) from grids
- Tactical methods, options and fallbacks
- Range rounding to table ranges
- Fire command text
"""

import pytest

from fdc.config import EngineConfig
from fdc.errors import OutOfRangeError
from fdc.firecontrol import (
    FireMissionOptions,
    calculate_firing_solution,
    format_fire_command,
    format_mils,
)
from fdc.interpolation import InterpolationMethod
from fdc.tables import Ammunition, AmmunitionCategory, BallisticPoint, WeaponSystem
from fdc.tactics import INTERPOLATED_FALLBACK_REASON, TacticalMethod

FIRING_GRID = "1000010000"


def row(charge, range_m, elevation, tof, dispersion):
    return BallisticPoint(1, 1, charge, float(range_m), float(elevation), float(tof), float(dispersion))


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def system():
    return WeaponSystem(id=1, name="Demo 81mm Mortar", caliber_mm=81)


@pytest.fixture
def ammunition():
    return Ammunition(id=1, name="Demo HE 81", category=AmmunitionCategory.HE, caliber_mm=81)


@pytest.fixture
def two_row_table():
    """100 m -> 1500 mils, 300 m -> 1400 mils."""
    return [row(0, 100, 1500, 10.0, 10), row(0, 300, 1400, 12.0, 14)]


@pytest.fixture
def two_charge_table():
    """Charge 0 covers 100-300 m, charge 1 covers 200-600 m."""
    return [
        row(0, 100, 1500, 10.0, 10),
        row(0, 300, 1400, 12.0, 14),
        row(1, 200, 1480, 20.0, 15),
        row(1, 600, 1300, 19.0, 20),
    ]


# =============================================================================
# STANDARD SOLUTIONS
# =============================================================================

class TestStandardSolution:
    """Tests for the standard (precise) path."""

    def test_linear_solution_due_north(self, two_row_table, system, ammunition):
        """200 m due north interpolates to 1450 mils at azimuth 0."""
        solution = calculate_firing_solution(
            FIRING_GRID, "1000010200", two_row_table, system, ammunition
        )
        assert solution.azimuth_mils == 0
        assert solution.back_azimuth_mils == 3200
        assert solution.target_range_m == pytest.approx(200.0)
        assert solution.elevation_mils == 1450
        assert solution.charge_level == 0
        assert solution.charge_label == "Charge 0"
        assert solution.interpolated
        assert solution.source is InterpolationMethod.LINEAR
        assert solution.tactical_method is TacticalMethod.STANDARD
        assert "lowest charge covering 200m" in solution.justification

    def test_exact_solution(self, two_row_table, system, ammunition):
        """A target at a table range uses the row verbatim."""
        solution = calculate_firing_solution(
            FIRING_GRID, "1000010100", two_row_table, system, ammunition
        )
        assert not solution.interpolated
        assert solution.source is InterpolationMethod.EXACT
        assert solution.elevation_mils == 1500
        assert "Exact table entry" in solution.justification

    def test_range_rounded_to_meter_for_lookup(self, two_row_table, system, ammunition):
        """The table is read at the true range rounded to the meter."""
        # 100 m east, 173 m north: 199.82 m
        solution = calculate_firing_solution(
            FIRING_GRID, "1010010173", two_row_table, system, ammunition
        )
        assert solution.table_range_m == 200
        assert solution.target_range_m == pytest.approx(199.82, abs=0.01)
        assert solution.range_error_m == pytest.approx(0.18, abs=0.01)
        assert solution.elevation_mils == 1450

    def test_exact_beats_interpolation_in_lower_charge(self, two_charge_table, system, ammunition):
        """An exact row in any charge is preferred over interpolating."""
        solution = calculate_firing_solution(
            FIRING_GRID, "1000010200", two_charge_table, system, ammunition
        )
        assert solution.charge_level == 1
        assert solution.elevation_mils == 1480

    def test_lowest_viable_charge_by_default(self, two_charge_table, system, ammunition):
        """Without a preference the lowest viable charge interpolates."""
        solution = calculate_firing_solution(
            FIRING_GRID, "1000010250", two_charge_table, system, ammunition
        )
        assert solution.charge_level == 0
        assert solution.elevation_mils == 1425

    def test_preferred_charge(self, two_charge_table, system, ammunition):
        """A viable preferred charge is used."""
        solution = calculate_firing_solution(
            FIRING_GRID,
            "1000010250",
            two_charge_table,
            system,
            ammunition,
            options=FireMissionOptions(preferred_charge=1),
        )
        assert solution.charge_level == 1
        assert solution.elevation_mils == 1458   # 1457.5 rounded half up

    def test_out_of_range(self, two_row_table, system, ammunition):
        """Targets beyond every charge raise OutOfRangeError."""
        with pytest.raises(OutOfRangeError):
            calculate_firing_solution(FIRING_GRID, "1000015000", two_row_table, system, ammunition)


# =============================================================================
# TACTICAL METHODS
# =============================================================================

class TestTacticalSolution:
    """Tests for non-standard tactical methods."""

    def test_speed_direct_match(self, two_charge_table, system, ammunition):
        """A row inside the tolerance window is used directly."""
        solution = calculate_firing_solution(
            FIRING_GRID, "1000010220", two_charge_table, system, ammunition,
            method=TacticalMethod.SPEED,
        )
        assert solution.charge_level == 1
        assert solution.table_range_m == 200
        assert solution.elevation_mils == 1480
        assert solution.source is InterpolationMethod.EXACT
        assert solution.justification.startswith("Speed mode")

    def test_empty_window_interpolates(self, two_charge_table, system, ammunition):
        """Without rows in the window the interpolation path is used."""
        solution = calculate_firing_solution(
            FIRING_GRID, "1000010450", two_charge_table, system, ammunition,
            method=TacticalMethod.HIGH_ANGLE,
        )
        assert solution.interpolated
        assert solution.charge_level == 1
        assert solution.justification == INTERPOLATED_FALLBACK_REASON

    def test_config_tolerance_window(self, two_charge_table, system, ammunition):
        """The engine config sets the tolerance window."""
        solution = calculate_firing_solution(
            FIRING_GRID, "1000010220", two_charge_table, system, ammunition,
            method=TacticalMethod.SPEED,
            config=EngineConfig(tolerance_window_m=10),
        )
        assert solution.justification == INTERPOLATED_FALLBACK_REASON

    def test_area_target_ceiling_option(self, two_charge_table, system, ammunition):
        """The dispersion ceiling comes from the options when given."""
        solution = calculate_firing_solution(
            FIRING_GRID, "1000010250", two_charge_table, system, ammunition,
            method=TacticalMethod.AREA_TARGET,
            options=FireMissionOptions(max_dispersion_m=12),
        )
        assert "No suitable high-dispersion options within 12m" in solution.justification


# =============================================================================
# OUTPUT
# =============================================================================

class TestOutput:
    """Tests for serialization and fire command text."""

    def test_to_dict(self, two_row_table, system, ammunition):
        """to_dict flattens the solution."""
        data = calculate_firing_solution(
            FIRING_GRID, "1000010200", two_row_table, system, ammunition
        ).to_dict()
        assert data["target_grid"] == "1000010200"
        assert data["source"] == "linear"
        assert data["tactical_method"] == "standard"
        assert data["system_id"] == 1
        assert data["charge_label"] == "Charge 0"

    def test_fire_command(self, two_row_table, system, ammunition):
        """The fire command follows voice procedure."""
        solution = calculate_firing_solution(
            FIRING_GRID, "1000010200", two_row_table, system, ammunition
        )
        assert format_fire_command(solution) == (
            "Gunline, fire mission, Grid 1000010200, 3 rounds HE, Charge 0, "
            "Deflection 0, Elevation 1450, Fire when ready, Over"
        )

    def test_fire_command_rounds_and_type(self, two_row_table, system, ammunition):
        """Rounds and round type are configurable."""
        solution = calculate_firing_solution(
            FIRING_GRID, "1000010200", two_row_table, system, ammunition
        )
        assert "6 rounds Smoke" in format_fire_command(solution, rounds=6, round_type="Smoke")

    @pytest.mark.parametrize("value, expected", [(1450, "1450"), (1449.5, "1450"), (1449.4, "1449")])
    def test_format_mils(self, value, expected):
        """Mils are spoken as whole numbers."""
        assert format_mils(value) == expected
