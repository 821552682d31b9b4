"""
Observer adjustment of a target location.

An observer calls corrections relative to their own line of sight to the
target: a range correction (positive = add, negative = drop) and a
direction correction in mils (positive = right, negative = left). The
adjusted target is found by rotating and stretching the observer-to-target
vector, then projecting it from the observer.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import InvalidAdjustmentError
from .geodesy import GridCoordinate, GridLike, bearing, distance, normalize, normalize_mils, project


@dataclass(frozen=True)
class AdjustedTarget:
    """
    Result of applying an observer correction.

    Attributes:
        original_target: Target before the correction.
        adjusted_target: Target after the correction.
        range_correction_m: Range correction applied (meters, + add / - drop).
        direction_correction_mils: Direction correction applied (mils, + right / - left).
        observer_bearing_to_target: Observer's bearing to the original target.
        adjusted_bearing: Observer's bearing to the adjusted target.
        adjusted_distance_m: Observer's distance to the adjusted target.
    """
    original_target: GridCoordinate
    adjusted_target: GridCoordinate
    range_correction_m: float
    direction_correction_mils: float
    observer_bearing_to_target: float
    adjusted_bearing: float
    adjusted_distance_m: float


def apply_observer_adjustment(
    observer: GridLike,
    target: GridLike,
    range_correction_m: float,
    direction_correction_mils: float,
) -> AdjustedTarget:
    """
    Move a target by an observer-relative correction.

    Args:
        observer: Observer position.
        target: Target being adjusted.
        range_correction_m: Signed range correction along the line of sight.
        direction_correction_mils: Signed direction correction, right positive.

    Returns:
        AdjustedTarget with the new target and the audit trail.

    Raises:
        InvalidAdjustmentError: If the range correction would make the
            observer-to-target distance negative.
        GridSquareError: If the adjusted target falls outside the grid square.
    """
    observer_coord = normalize(observer)
    target_coord = normalize(target)

    observer_bearing = bearing(observer_coord, target_coord)
    adjusted_bearing = normalize_mils(observer_bearing + direction_correction_mils)

    current_distance = distance(observer_coord, target_coord)
    new_distance = current_distance + range_correction_m
    if new_distance < 0:
        raise InvalidAdjustmentError(
            f"Range correction {range_correction_m:+g}m would result in negative distance "
            f"(observer is {current_distance:.0f}m from target)"
        )

    return AdjustedTarget(
        original_target=target_coord,
        adjusted_target=project(observer_coord, adjusted_bearing, new_distance),
        range_correction_m=range_correction_m,
        direction_correction_mils=direction_correction_mils,
        observer_bearing_to_target=observer_bearing,
        adjusted_bearing=adjusted_bearing,
        adjusted_distance_m=new_distance,
    )
