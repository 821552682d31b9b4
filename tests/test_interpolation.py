"""
Tests for ballistic table interpolation.

Tests cover:
- Exact row matches
- Linear interpolation between bracketing rows
- Derivative-based extrapolation
- Charge group viability and preference
- Out-of-range handling
"""

import logging
import pytest

from fdc.errors import OutOfRangeError
from fdc.interpolation import (
    InterpolationMethod,
    InterpolationResult,
    charge_bounds,
    find_exact,
    group_by_charge,
    interpolate,
    interpolate_between,
    viable_charges,
)
from fdc.tables import BallisticPoint


def row(charge, range_m, elevation, tof, dispersion, d_elev=None, d_tof=None):
    return BallisticPoint(
        system_id=1,
        round_id=1,
        charge_level=charge,
        range_m=float(range_m),
        elevation_mils=float(elevation),
        time_of_flight_s=float(tof),
        dispersion_m=float(dispersion),
        d_elev_per_100m_mils=d_elev,
        d_tof_per_100m_s=d_tof,
    )


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def two_row_table():
    """Two rows: 100 m -> 1500 mils, 300 m -> 1400 mils."""
    return [
        row(0, 100, 1500, 10.0, 10),
        row(0, 300, 1400, 12.0, 14),
    ]


@pytest.fixture
def mortar_table():
    """Two overlapping charge groups, one row carrying derivatives."""
    return [
        row(0, 100, 1500, 13.0, 10),
        row(0, 200, 1450, 12.8, 11),
        row(0, 300, 1400, 12.6, 12),
        row(0, 400, 1345, 12.3, 13),
        row(0, 500, 1290, 12.0, 14),
        row(1, 400, 1420, 19.5, 18),
        row(1, 600, 1360, 19.2, 20, d_elev=-30.0, d_tof=-0.15),
        row(1, 800, 1300, 18.9, 22),
    ]


# =============================================================================
# TESTS
# =============================================================================

class TestExactMatch:
    """Tests for exact table rows."""

    def test_exact_row_returned_verbatim(self, two_row_table):
        """A range present in the table returns that row unchanged."""
        result = interpolate(two_row_table, 100)
        assert result.method is InterpolationMethod.EXACT
        assert not result.interpolated
        assert result.elevation_mils == 1500
        assert result.time_of_flight_s == 10.0
        assert result.dispersion_m == 10

    def test_exact_match_prefers_lowest_charge(self, mortar_table):
        """When several charges list the range, the lowest charge wins."""
        result = interpolate(mortar_table, 400)
        assert result.method is InterpolationMethod.EXACT
        assert result.charge_level == 0
        assert result.elevation_mils == 1345

    def test_find_exact_none(self, mortar_table):
        """find_exact returns None when no row matches."""
        assert find_exact(mortar_table, 450) is None

    def test_from_point(self, mortar_table):
        """from_point wraps a row as exact data."""
        result = InterpolationResult.from_point(mortar_table[0])
        assert result.range_m == 100
        assert result.method is InterpolationMethod.EXACT


class TestLinear:
    """Tests for linear interpolation."""

    def test_midpoint(self, two_row_table):
        """100 -> 1500 and 300 -> 1400 gives 1450 at 200."""
        result = interpolate(two_row_table, 200)
        assert result.method is InterpolationMethod.LINEAR
        assert result.interpolated
        assert result.elevation_mils == 1450
        assert result.time_of_flight_s == pytest.approx(11.0)
        assert result.dispersion_m == pytest.approx(12.0)
        assert result.range_m == 200

    def test_elevation_rounds_to_whole_mils(self, mortar_table):
        """Interpolated elevation is rounded half up to whole mils."""
        result = interpolate(mortar_table, 450)
        assert result.charge_level == 0
        assert result.elevation_mils == 1318   # 1317.5 rounded up
        assert result.dispersion_m == pytest.approx(13.5)

    def test_interpolate_between_quarter(self):
        """Values scale with the fraction of the bracket covered."""
        result = interpolate_between(row(1, 400, 1420, 19.5, 18), row(1, 600, 1360, 19.2, 20), 450)
        assert result.elevation_mils == 1405
        assert result.time_of_flight_s == pytest.approx(19.4)
        assert result.dispersion_m == pytest.approx(18.5)


class TestDerivative:
    """Tests for derivative-based extrapolation."""

    def test_derivatives_override_linear(self, mortar_table):
        """The lower row's per-100 m derivatives drive elevation and time of flight."""
        result = interpolate(mortar_table, 650)
        assert result.method is InterpolationMethod.DERIVATIVE
        assert result.elevation_uses_derivative
        assert result.tof_uses_derivative
        assert result.elevation_mils == 1345         # 1360 - 30 * 0.5
        assert result.time_of_flight_s == pytest.approx(19.1)
        # Dispersion is always linear
        assert result.dispersion_m == pytest.approx(20.5)

    def test_elevation_derivative_only(self):
        """Elevation and time of flight pick their method independently."""
        lower = row(1, 600, 1360, 19.0, 20, d_elev=-30.0)
        upper = row(1, 800, 1300, 18.0, 22)
        result = interpolate_between(lower, upper, 700)
        assert result.method is InterpolationMethod.DERIVATIVE
        assert result.elevation_uses_derivative
        assert not result.tof_uses_derivative
        assert result.elevation_mils == 1330
        assert result.time_of_flight_s == pytest.approx(18.5)


class TestChargeGroups:
    """Tests for charge grouping and selection."""

    def test_group_by_charge(self, mortar_table):
        """Groups are keyed by ascending charge with range-sorted rows."""
        groups = group_by_charge(list(reversed(mortar_table)))
        assert list(groups) == [0, 1]
        assert [p.range_m for p in groups[1]] == [400, 600, 800]

    def test_charge_bounds(self, mortar_table):
        """Bounds are the min and max range per charge."""
        assert charge_bounds(mortar_table) == {0: (100, 500), 1: (400, 800)}

    def test_viable_charges(self, mortar_table):
        """Only charges whose bounds include the range are viable."""
        assert viable_charges(mortar_table, 450) == [0, 1]
        assert viable_charges(mortar_table, 700) == [1]
        assert viable_charges(mortar_table, 900) == []

    def test_preferred_charge_used_when_viable(self, mortar_table):
        """A viable preferred charge overrides the lowest charge."""
        result = interpolate(mortar_table, 450, preferred_charge=1)
        assert result.charge_level == 1
        assert result.elevation_mils == 1405

    def test_unviable_preferred_charge_falls_back(self, mortar_table, caplog):
        """A preferred charge that cannot reach falls back to the lowest viable one."""
        with caplog.at_level(logging.INFO, logger="fdc"):
            result = interpolate(mortar_table, 700, preferred_charge=0)
        assert result.charge_level == 1
        assert "cannot reach" in caplog.text


class TestOutOfRange:
    """Tests for unreachable ranges."""

    def test_beyond_all_charges(self, mortar_table):
        """A range past every charge raises OutOfRangeError with the table bounds."""
        with pytest.raises(OutOfRangeError) as excinfo:
            interpolate(mortar_table, 5000)
        error = excinfo.value
        assert error.range_m == 5000
        assert (error.min_range, error.max_range) == (100, 800)
        assert "outside available ballistic data" in str(error)

    def test_gap_between_charges(self):
        """A range in a gap between charge groups is unreachable."""
        points = [row(0, 100, 1500, 13, 10), row(0, 500, 1290, 12, 14),
                  row(1, 800, 1300, 19, 22), row(1, 1200, 1165, 18, 26)]
        with pytest.raises(OutOfRangeError):
            interpolate(points, 600)

    def test_no_data(self):
        """An empty subset cannot serve any range."""
        with pytest.raises(OutOfRangeError) as excinfo:
            interpolate([], 1000)
        assert excinfo.value.min_range is None
        assert "no ballistic data" in str(excinfo.value)

    def test_out_of_range_is_value_error(self, two_row_table):
        """OutOfRangeError can be caught as ValueError."""
        with pytest.raises(ValueError):
            interpolate(two_row_table, 50)
