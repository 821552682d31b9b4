"""
Ballistic table interpolation.

Given the table rows for one (weapon system, ammunition) pairing and a
target range, produce elevation, time of flight and dispersion using, in
order of preference:
1. An exact table row at that range
2. Derivative-based extrapolation from the nearest lower row
3. Straight linear interpolation between the bracketing rows

Elevation is rounded to whole mils; time of flight and dispersion to one
decimal place. Dispersion never uses derivatives.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .errors import OutOfRangeError
from .geodesy import round_half_up
from .logger import get_logger
from .tables import BallisticPoint

logger = get_logger(__name__)

# Derivative columns are expressed per this many meters of range
DERIVATIVE_RANGE_STEP_M = 100.0


class InterpolationMethod(Enum):
    """How a set of firing data was obtained."""
    EXACT = "exact"            # Read verbatim from a table row
    DERIVATIVE = "derivative"  # Extrapolated from the lower row's derivatives
    LINEAR = "linear"          # Linear between bracketing rows


@dataclass(frozen=True)
class InterpolationResult:
    """
    Firing data at one range.

    Attributes:
        range_m: Range the data applies to.
        charge_level: Charge group the data came from.
        elevation_mils: Tube elevation in mils.
        time_of_flight_s: Time of flight in seconds.
        dispersion_m: Mean dispersion in meters.
        method: Exact, derivative or linear.
        elevation_uses_derivative: Elevation came from a derivative column.
        tof_uses_derivative: Time of flight came from a derivative column.
    """
    range_m: float
    charge_level: int
    elevation_mils: float
    time_of_flight_s: float
    dispersion_m: float
    method: InterpolationMethod
    elevation_uses_derivative: bool = False
    tof_uses_derivative: bool = False

    @property
    def interpolated(self) -> bool:
        """True unless the data was read from an exact table row."""
        return self.method is not InterpolationMethod.EXACT

    @classmethod
    def from_point(cls, point: BallisticPoint) -> 'InterpolationResult':
        """Wrap a table row verbatim."""
        return cls(
            range_m=point.range_m,
            charge_level=point.charge_level,
            elevation_mils=point.elevation_mils,
            time_of_flight_s=point.time_of_flight_s,
            dispersion_m=point.dispersion_m,
            method=InterpolationMethod.EXACT,
        )


# =============================================================================
# CHARGE GROUPS
# =============================================================================

def group_by_charge(points: Sequence[BallisticPoint]) -> Dict[int, List[BallisticPoint]]:
    """
    Group rows by charge level.

    Returns:
        Charge level -> rows sorted by range, keys in ascending charge order.
    """
    groups: Dict[int, List[BallisticPoint]] = {}
    for point in sorted(points, key=lambda p: (p.charge_level, p.range_m)):
        groups.setdefault(point.charge_level, []).append(point)
    return groups


def charge_bounds(points: Sequence[BallisticPoint]) -> Dict[int, Tuple[float, float]]:
    """Charge level -> (min range, max range)."""
    return {
        charge: (group[0].range_m, group[-1].range_m)
        for charge, group in group_by_charge(points).items()
    }


def viable_charges(points: Sequence[BallisticPoint], range_m: float) -> List[int]:
    """Charge levels whose range coverage includes range_m, lowest first."""
    return [
        charge
        for charge, (low, high) in charge_bounds(points).items()
        if low <= range_m <= high
    ]


def find_exact(points: Sequence[BallisticPoint], range_m: float) -> Optional[BallisticPoint]:
    """Row at exactly range_m, lowest charge first, or None."""
    matches = [p for p in points if p.range_m == range_m]
    if not matches:
        return None
    return min(matches, key=lambda p: p.charge_level)


def _bracket(group: List[BallisticPoint], range_m: float) -> Tuple[BallisticPoint, BallisticPoint]:
    """Nearest rows strictly below and strictly above range_m."""
    ranges = np.array([p.range_m for p in group], dtype=float)
    upper_index = int(np.searchsorted(ranges, range_m, side="right"))
    lower_index = int(np.searchsorted(ranges, range_m, side="left")) - 1
    return group[lower_index], group[upper_index]


# =============================================================================
# INTERPOLATION
# =============================================================================

def interpolate(
    points: Sequence[BallisticPoint],
    range_m: float,
    preferred_charge: Optional[int] = None,
) -> InterpolationResult:
    """
    Firing data for range_m from one pairing's table rows.

    Args:
        points: Rows for a single (system, round) pairing.
        range_m: Target range in meters.
        preferred_charge: Charge to use if it can reach range_m; otherwise
            the lowest viable charge is used.

    Returns:
        InterpolationResult tagged exact, derivative or linear.

    Raises:
        OutOfRangeError: If no charge group covers range_m.
    """
    if not points:
        raise OutOfRangeError(range_m, None, None)

    exact = find_exact(points, range_m)
    if exact is not None:
        return InterpolationResult.from_point(exact)

    viable = viable_charges(points, range_m)
    if not viable:
        raise OutOfRangeError(
            range_m,
            min(p.range_m for p in points),
            max(p.range_m for p in points),
        )

    if preferred_charge is not None and preferred_charge in viable:
        charge = preferred_charge
    else:
        if preferred_charge is not None:
            logger.info(
                f"Preferred charge {preferred_charge} cannot reach {range_m:g}m; "
                f"using charge {viable[0]}"
            )
        charge = viable[0]

    group = group_by_charge(points)[charge]
    lower, upper = _bracket(group, range_m)
    return interpolate_between(lower, upper, range_m)


def interpolate_between(
    lower: BallisticPoint,
    upper: BallisticPoint,
    range_m: float,
) -> InterpolationResult:
    """
    Firing data between two rows of the same charge.

    Derivative columns on the lower row take precedence over linear
    interpolation, independently for elevation and time of flight.
    """
    increments = (range_m - lower.range_m) / DERIVATIVE_RANGE_STEP_M
    bounds = [lower.range_m, upper.range_m]

    if lower.d_elev_per_100m_mils is not None:
        elevation = lower.elevation_mils + lower.d_elev_per_100m_mils * increments
        elevation_uses_derivative = True
    else:
        elevation = float(np.interp(range_m, bounds, [lower.elevation_mils, upper.elevation_mils]))
        elevation_uses_derivative = False

    if lower.d_tof_per_100m_s is not None:
        time_of_flight = lower.time_of_flight_s + lower.d_tof_per_100m_s * increments
        tof_uses_derivative = True
    else:
        time_of_flight = float(
            np.interp(range_m, bounds, [lower.time_of_flight_s, upper.time_of_flight_s])
        )
        tof_uses_derivative = False

    dispersion = float(np.interp(range_m, bounds, [lower.dispersion_m, upper.dispersion_m]))

    if elevation_uses_derivative or tof_uses_derivative:
        method = InterpolationMethod.DERIVATIVE
    else:
        method = InterpolationMethod.LINEAR

    return InterpolationResult(
        range_m=range_m,
        charge_level=lower.charge_level,
        elevation_mils=round_half_up(elevation),
        time_of_flight_s=round(time_of_flight, 1),
        dispersion_m=round(dispersion, 1),
        method=method,
        elevation_uses_derivative=elevation_uses_derivative,
        tof_uses_derivative=tof_uses_derivative,
    )
