"""
Engine configuration for the fire-direction calculator.

All tunable constants of the calculation live in one dataclass so that a
deployment can override them from a JSON file without touching code:
- Tactical selection tolerance window and default dispersion ceiling
- Formation safety floor and control-span ceiling
- Multi-emitter approximation factors and firing-phase interval
"""

import json
from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Any, Dict

from .errors import ConfigError


@dataclass(frozen=True)
class EngineConfig:
    """
    Tunables for the fire-direction engine.

    Attributes:
        tolerance_window_m: Half-width of the direct-match window used by
            tactical selection (table rows within +/- this range qualify).
        default_max_dispersion_m: Dispersion ceiling for area-target mode
            when the caller does not supply one.
        min_spacing_m: Minimum safe spacing between emitters.
        max_spacing_m: Maximum spacing for effective fire control.
        phase_interval_s: Seconds between firing phases.
        elevation_mils_per_meter: Linear elevation correction per meter of
            range difference between an emitter and the master emitter.
        spread_width_factor: Impact-spread width per meter of range spread.
        spread_depth_factor: Impact-spread depth per meter of range spread.
        max_arc_mils: Widest arc an arc formation may span.
        arc_step_mils: Arc width added per additional emitter.
    """
    tolerance_window_m: float = 50.0
    default_max_dispersion_m: float = 35.0
    min_spacing_m: float = 10.0
    max_spacing_m: float = 1000.0
    phase_interval_s: float = 10.0
    elevation_mils_per_meter: float = 0.1
    spread_width_factor: float = 0.1
    spread_depth_factor: float = 0.05
    max_arc_mils: float = 800.0
    arc_step_mils: float = 200.0

    def __post_init__(self):
        if self.tolerance_window_m < 0:
            raise ConfigError("tolerance_window_m must not be negative")
        if self.default_max_dispersion_m <= 0:
            raise ConfigError("default_max_dispersion_m must be positive")
        if self.min_spacing_m < 0:
            raise ConfigError("min_spacing_m must not be negative")
        if self.max_spacing_m < self.min_spacing_m:
            raise ConfigError("max_spacing_m must be at least min_spacing_m")
        if self.phase_interval_s < 0:
            raise ConfigError("phase_interval_s must not be negative")
        if not 0 <= self.max_arc_mils <= 6400:
            raise ConfigError("max_arc_mils must be within 0-6400")

    @classmethod
    def from_json(cls, path: str) -> 'EngineConfig':
        """Load configuration from JSON file."""
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Engine config not found: {path}")

        with open(config_path) as f:
            data = json.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EngineConfig':
        """Create configuration from dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown engine config keys: {', '.join(unknown)}")

        values = {}
        for key, value in data.items():
            try:
                values[key] = float(value)
            except (TypeError, ValueError):
                raise ConfigError(f"Config value for {key} must be numeric, got {value!r}")
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)
