"""
Tests for ballistic reference data.

Tests cover:
- Loading the example table JSON
- Weapon system and ammunition lookup
- Per-pairing point subsets and range capability
- Ammunition category mapping
"""

import logging
import pytest
from pathlib import Path

from fdc.errors import UnknownReferenceError
from fdc.tables import (
    Ammunition,
    AmmunitionCategory,
    BallisticPoint,
    BallisticTable,
    WeaponSystem,
    load_ballistic_table,
)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def table():
    """Load the example ballistic table."""
    data_path = Path(__file__).parent.parent / "data" / "example_tables.json"
    return load_ballistic_table(data_path)


# =============================================================================
# TESTS
# =============================================================================

class TestLoading:
    """Tests for building tables."""

    def test_load_example_table(self, table):
        """The example file loads systems, rounds and points."""
        assert len(table.systems) == 2
        assert len(table.rounds) == 4
        assert len(table) == len(table.points) > 0

    def test_missing_file_raises(self, tmp_path):
        """Loading a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_ballistic_table(tmp_path / "missing.json")

    def test_from_dict_optional_derivatives(self):
        """Rows without derivative columns have none."""
        point = BallisticPoint.from_dict({
            "system_id": 1, "round_id": 1, "charge_level": 0, "range_m": 100,
            "elevation_mils": 1500, "time_of_flight_s": 13.0, "dispersion_m": 10,
        })
        assert point.d_elev_per_100m_mils is None
        assert not point.has_derivatives

    def test_duplicate_rows_warn(self, caplog):
        """Two rows for the same charge and range log a warning."""
        row = BallisticPoint(1, 1, 0, 100.0, 1500.0, 13.0, 10.0)
        with caplog.at_level(logging.WARNING, logger="fdc"):
            BallisticTable([WeaponSystem(1, "Tube", 81)], [], [row, row])
        assert "Duplicate ballistic row" in caplog.text

    def test_repr(self, table):
        """repr summarizes the counts."""
        assert repr(table).startswith("BallisticTable(systems=2, rounds=4")


class TestLookup:
    """Tests for reference lookups."""

    def test_system_lookup(self, table):
        """Systems are found by id."""
        assert table.system(1).name == "Demo 81mm Mortar"
        assert table.system(2).caliber_mm == 120

    def test_unknown_system_raises(self, table):
        """Unknown ids raise UnknownReferenceError, a LookupError."""
        with pytest.raises(UnknownReferenceError) as excinfo:
            table.system(99)
        assert isinstance(excinfo.value, LookupError)
        assert "99" in str(excinfo.value)

    def test_unknown_round_raises(self, table):
        """Unknown ammunition ids raise UnknownReferenceError."""
        with pytest.raises(UnknownReferenceError):
            table.ammunition(42)

    def test_points_for_sorted_by_range(self, table):
        """Pairing subsets are sorted by range, then charge."""
        points = table.points_for(1, 1)
        keys = [(p.range_m, p.charge_level) for p in points]
        assert keys == sorted(keys)
        assert all(p.system_id == 1 and p.round_id == 1 for p in points)

    def test_points_for_unknown_ids_raise(self, table):
        """Subsets validate both ids."""
        with pytest.raises(UnknownReferenceError):
            table.points_for(1, 42)

    def test_points_for_known_pair_without_data(self, table):
        """A known pairing with no rows gives an empty subset."""
        assert table.points_for(1, 3) == ()

    def test_range_capability(self, table):
        """Capability spans the smallest and largest range over all charges."""
        assert table.range_capability(1, 1) == (100.0, 3000.0)
        assert table.range_capability(1, 3) is None

    def test_range_capability_unknown_ids(self, table):
        """Capability for unknown ids raises rather than returning None."""
        with pytest.raises(UnknownReferenceError):
            table.range_capability(7, 1)

    @pytest.mark.parametrize("range_m, supported", [
        (100, True), (1750, True), (3000, True), (50, False), (3500, False),
    ])
    def test_is_range_supported(self, table, range_m, supported):
        """Support is checked against the pairing's overall coverage."""
        assert table.is_range_supported(1, 1, range_m) is supported

    def test_compatible_rounds_match_caliber(self, table):
        """Compatible rounds share the system's caliber."""
        assert {r.id for r in table.compatible_rounds(1)} == {1, 2}
        assert {r.id for r in table.compatible_rounds(2)} == {3, 4}

    def test_rounds_for_caliber(self, table):
        """Without a caliber all rounds are returned."""
        assert len(table.rounds_for_caliber()) == 4
        assert [r.id for r in table.rounds_for_caliber(120)] == [3, 4]


class TestAmmunitionCategory:
    """Tests for category mapping."""

    @pytest.mark.parametrize("label, expected", [
        ("HE", AmmunitionCategory.HE),
        ("he", AmmunitionCategory.HE),
        ("High Explosive", AmmunitionCategory.HE),
        ("WP Smoke", AmmunitionCategory.SMOKE),
        ("wp", AmmunitionCategory.SMOKE),
        ("Illum", AmmunitionCategory.ILLUMINATION),
        ("Illumination", AmmunitionCategory.ILLUMINATION),
        ("Training Practice", AmmunitionCategory.PRACTICE),
        ("inert", AmmunitionCategory.PRACTICE),
        ("Flechette", AmmunitionCategory.OTHER),
        ("", AmmunitionCategory.OTHER),
    ])
    def test_from_label(self, label, expected):
        """Free-text labels map to categories."""
        assert AmmunitionCategory.from_label(label) is expected

    def test_ammunition_from_dict_round_type(self):
        """The legacy round_type key is accepted."""
        ammo = Ammunition.from_dict({"id": 5, "name": "Old HE", "round_type": "HE", "caliber_mm": 60})
        assert ammo.category is AmmunitionCategory.HE

    def test_example_categories(self, table):
        """Example rounds carry the expected categories."""
        assert table.ammunition(2).category is AmmunitionCategory.SMOKE
        assert table.ammunition(4).category is AmmunitionCategory.ILLUMINATION
