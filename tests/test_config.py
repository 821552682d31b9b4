"""
Tests for engine configuration loading and validation.
"""

import json
import pytest

from fdc.config import EngineConfig
from fdc.errors import ConfigError


class TestDefaults:
    """Tests for default values."""

    def test_defaults(self):
        config = EngineConfig()
        assert config.tolerance_window_m == 50
        assert config.default_max_dispersion_m == 35
        assert (config.min_spacing_m, config.max_spacing_m) == (10, 1000)
        assert config.phase_interval_s == 10
        assert config.elevation_mils_per_meter == pytest.approx(0.1)

    def test_frozen(self):
        """Configs are immutable once built."""
        config = EngineConfig()
        with pytest.raises(AttributeError):
            config.tolerance_window_m = 10

    def test_to_dict_round_trip(self):
        config = EngineConfig(tolerance_window_m=25)
        assert EngineConfig.from_dict(config.to_dict()) == config


class TestValidation:
    """Tests for rejected values."""

    @pytest.mark.parametrize("overrides", [
        {"tolerance_window_m": -1},
        {"default_max_dispersion_m": 0},
        {"min_spacing_m": -5},
        {"min_spacing_m": 100, "max_spacing_m": 50},
        {"phase_interval_s": -1},
        {"max_arc_mils": 7000},
    ])
    def test_invalid_values(self, overrides):
        """Out-of-range tunables raise ConfigError."""
        with pytest.raises(ConfigError):
            EngineConfig(**overrides)

    def test_unknown_keys(self):
        """Unknown keys are listed in the error."""
        with pytest.raises(ConfigError) as excinfo:
            EngineConfig.from_dict({"tolerance_window_m": 20, "zeroing": 1, "wind": 3})
        assert "wind, zeroing" in str(excinfo.value)

    def test_non_numeric_value(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_dict({"min_spacing_m": "wide"})

    def test_numeric_strings_accepted(self):
        """Values are coerced to float."""
        assert EngineConfig.from_dict({"min_spacing_m": "20"}).min_spacing_m == 20.0


class TestFromJson:
    """Tests for loading from a file."""

    def test_from_json(self, tmp_path):
        path = tmp_path / "engine.json"
        path.write_text(json.dumps({"tolerance_window_m": 30, "phase_interval_s": 5}))
        config = EngineConfig.from_json(str(path))
        assert config.tolerance_window_m == 30
        assert config.phase_interval_s == 5
        assert config.min_spacing_m == 10

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            EngineConfig.from_json(str(tmp_path / "missing.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(json.JSONDecodeError):
            EngineConfig.from_json(str(path))
