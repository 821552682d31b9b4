#!/usr/bin/env python3
"""
Firing solutions for the fire-direction engine.

This module implements:
- FiringSolution and AdjustedFiringSolution records
- Single-emitter solution calculation from grids and table rows
- Voice-procedure fire command text for a solution
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from .config import EngineConfig
from .geodesy import GridCoordinate, GridLike, fire_mission, normalize, round_half_up
from .interpolation import InterpolationMethod, interpolate
from .tables import Ammunition, BallisticPoint, WeaponSystem
from .tactics import TacticalMethod, select


# =============================================================================
# OPTIONS AND RESULTS
# =============================================================================

@dataclass(frozen=True)
class FireMissionOptions:
    """
    Caller options for a fire mission.

    Attributes:
        preferred_charge: Charge to use when it can reach the target.
        max_dispersion_m: Dispersion ceiling for area-target mode.
        independent_lookup: For multi-emitter missions, look up each
            emitter's elevation and time of flight in the table instead of
            applying the linear correction from the master emitter.
    """
    preferred_charge: Optional[int] = None
    max_dispersion_m: Optional[float] = None
    independent_lookup: bool = False


@dataclass
class FiringSolution:
    """
    Complete firing solution from a firing position to a target.

    Attributes:
        firing_grid: Position the solution is computed from.
        target_grid: Target position.
        target_range_m: True planar distance to the target.
        azimuth_mils: Firing azimuth in whole mils.
        back_azimuth_mils: Reciprocal of the azimuth.
        elevation_mils: Tube elevation in mils.
        charge_level: Propellant charge.
        time_of_flight_s: Time of flight in seconds.
        dispersion_m: Expected mean dispersion in meters.
        interpolated: False if the data was read from a table row.
        source: Exact, derivative or linear.
        table_range_m: Range of the table row (or interpolation query) used.
        system: Weapon system.
        ammunition: Ammunition.
        tactical_method: Method that selected the data.
        justification: Why this data was chosen.
    """
    firing_grid: GridCoordinate
    target_grid: GridCoordinate
    target_range_m: float
    azimuth_mils: int
    back_azimuth_mils: int
    elevation_mils: float
    charge_level: int
    time_of_flight_s: float
    dispersion_m: float
    interpolated: bool
    source: InterpolationMethod
    table_range_m: float
    system: WeaponSystem
    ammunition: Ammunition
    tactical_method: TacticalMethod
    justification: str

    @property
    def charge_label(self) -> str:
        """Charge as spoken in a fire command, e.g. ``"Charge 2"``."""
        return f"Charge {self.charge_level}"

    @property
    def range_error_m(self) -> float:
        """Difference between the table range used and the true target range."""
        return self.table_range_m - self.target_range_m

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary for transport or persistence layers."""
        return {
            "firing_grid": self.firing_grid.grid,
            "target_grid": self.target_grid.grid,
            "target_range_m": self.target_range_m,
            "azimuth_mils": self.azimuth_mils,
            "back_azimuth_mils": self.back_azimuth_mils,
            "elevation_mils": self.elevation_mils,
            "charge_level": self.charge_level,
            "charge_label": self.charge_label,
            "time_of_flight_s": self.time_of_flight_s,
            "dispersion_m": self.dispersion_m,
            "interpolated": self.interpolated,
            "source": self.source.value,
            "table_range_m": self.table_range_m,
            "system_id": self.system.id,
            "round_id": self.ammunition.id,
            "tactical_method": self.tactical_method.tag,
            "justification": self.justification,
        }


@dataclass
class AdjustedFiringSolution:
    """
    Firing solution recomputed after an observer correction.

    Attributes:
        solution: New solution to the adjusted target.
        original_target_grid: Target before the correction.
        adjusted_target_grid: Target after the correction.
        range_correction_m: Range correction applied.
        direction_correction_mils: Direction correction applied.
        observer_azimuth_to_original_target: Observer's azimuth (whole mils)
            to the original target.
    """
    solution: FiringSolution
    original_target_grid: GridCoordinate
    adjusted_target_grid: GridCoordinate
    range_correction_m: float
    direction_correction_mils: float
    observer_azimuth_to_original_target: int


# =============================================================================
# CALCULATION
# =============================================================================

def _standard_justification(charge_level: int, source: InterpolationMethod, range_m: float) -> str:
    if source is InterpolationMethod.EXACT:
        return f"Standard mode: Exact table entry for Charge {charge_level} at {range_m:g}m"
    return (
        f"Standard mode: Charge {charge_level} is the lowest charge covering {range_m:g}m, "
        f"{source.value} interpolation"
    )


def calculate_firing_solution(
    firing_grid: GridLike,
    target_grid: GridLike,
    points: Sequence[BallisticPoint],
    system: WeaponSystem,
    ammunition: Ammunition,
    method: TacticalMethod = TacticalMethod.STANDARD,
    options: Optional[FireMissionOptions] = None,
    config: Optional[EngineConfig] = None,
) -> FiringSolution:
    """
    Calculate a firing solution from a firing position to a target.

    The standard method reads the table at the true range: an exact row if
    one exists, otherwise derivative or linear interpolation within the
    lowest charge that covers the range. The other tactical methods pick a
    table row inside the tolerance window and only interpolate when the
    window is empty.

    Args:
        firing_grid: Position the tube fires from.
        target_grid: Target position.
        points: Table rows for the (system, ammunition) pairing.
        system: Weapon system record.
        ammunition: Ammunition record.
        method: Tactical method.
        options: Charge preference and dispersion ceiling.
        config: Engine tunables.

    Returns:
        FiringSolution with justification.

    Raises:
        OutOfRangeError: If no charge can reach the target.
        FormatError: If a grid is malformed.
    """
    options = options or FireMissionOptions()
    config = config or EngineConfig()

    start = normalize(firing_grid)
    target = normalize(target_grid)
    mission = fire_mission(start, target)
    table_range = float(round_half_up(mission.distance_m))

    if method is TacticalMethod.STANDARD:
        result = interpolate(points, table_range, options.preferred_charge)
        justification = _standard_justification(result.charge_level, result.method, table_range)
    else:
        selection = select(
            points,
            table_range,
            method,
            tolerance_m=config.tolerance_window_m,
            max_dispersion_m=(
                config.default_max_dispersion_m
                if options.max_dispersion_m is None
                else options.max_dispersion_m
            ),
            preferred_charge=options.preferred_charge,
        )
        result = selection.result
        justification = selection.justification

    return FiringSolution(
        firing_grid=start,
        target_grid=target,
        target_range_m=mission.distance_m,
        azimuth_mils=mission.azimuth_mils,
        back_azimuth_mils=mission.back_azimuth_mils,
        elevation_mils=result.elevation_mils,
        charge_level=result.charge_level,
        time_of_flight_s=result.time_of_flight_s,
        dispersion_m=result.dispersion_m,
        interpolated=result.interpolated,
        source=result.method,
        table_range_m=result.range_m,
        system=system,
        ammunition=ammunition,
        tactical_method=method,
        justification=justification,
    )


# =============================================================================
# FIRE COMMANDS
# =============================================================================

def format_mils(value: float) -> str:
    """Mils as spoken: whole numbers without a decimal part."""
    return str(round_half_up(value))


def format_fire_command(
    solution: FiringSolution,
    rounds: int = 3,
    round_type: str = "HE",
) -> str:
    """
    Fire command text for a single firing solution.

    Returns:
        Command such as ``"Gunline, fire mission, Grid 1000020000, 3 rounds HE,
        Charge 1, Deflection 0, Elevation 1450, Fire when ready, Over"``.
    """
    return (
        f"Gunline, fire mission, Grid {solution.target_grid.grid}, "
        f"{rounds} rounds {round_type}, {solution.charge_label}, "
        f"Deflection {solution.azimuth_mils}, Elevation {format_mils(solution.elevation_mils)}, "
        f"Fire when ready, Over"
    )
