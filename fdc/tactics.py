"""
Charge and tactical selection.

Each tactical method picks one table row out of the rows whose range lies
within a tolerance window of the target range:
- standard: closest range
- efficiency: lowest charge (least propellant, best accuracy)
- speed: shortest time of flight
- high_angle: steepest trajectory, for clearing intervening obstacles
- area_target: widest dispersion not exceeding a ceiling

When no row falls in the window the full interpolation path is used
instead. Every selection carries a justification string for the operator.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import UnknownMethodError
from .interpolation import InterpolationResult, interpolate
from .logger import get_logger
from .tables import BallisticPoint

logger = get_logger(__name__)

DEFAULT_TOLERANCE_WINDOW_M = 50.0
DEFAULT_MAX_DISPERSION_M = 35.0

INTERPOLATED_FALLBACK_REASON = "Interpolated solution - no direct range matches available"


@dataclass(frozen=True)
class SelectionContext:
    """Inputs a selection rule may consult besides the candidate rows."""
    range_m: float
    max_dispersion_m: float = DEFAULT_MAX_DISPERSION_M


Selector = Callable[[Sequence[BallisticPoint], SelectionContext], Tuple[BallisticPoint, str]]


# =============================================================================
# SELECTION RULES
# =============================================================================

def _closest_range(window: Sequence[BallisticPoint], ctx: SelectionContext) -> Tuple[BallisticPoint, str]:
    point = min(window, key=lambda p: abs(p.range_m - ctx.range_m))
    return point, f"Standard mode: Selected Charge {point.charge_level} for closest range match"


def _lowest_charge(window: Sequence[BallisticPoint], ctx: SelectionContext) -> BallisticPoint:
    return min(window, key=lambda p: (p.charge_level, abs(p.range_m - ctx.range_m)))


def _efficiency(window: Sequence[BallisticPoint], ctx: SelectionContext) -> Tuple[BallisticPoint, str]:
    point = _lowest_charge(window, ctx)
    return point, (
        f"Efficiency mode: Selected Charge {point.charge_level} for minimum propellant use "
        f"and best accuracy ({point.dispersion_m:g}m dispersion)"
    )


def _speed(window: Sequence[BallisticPoint], ctx: SelectionContext) -> Tuple[BallisticPoint, str]:
    point = min(window, key=lambda p: p.time_of_flight_s)
    return point, (
        f"Speed mode: Selected Charge {point.charge_level} for fastest delivery "
        f"({point.time_of_flight_s:g}s flight time)"
    )


def _high_angle(window: Sequence[BallisticPoint], ctx: SelectionContext) -> Tuple[BallisticPoint, str]:
    point = max(window, key=lambda p: p.elevation_mils)
    return point, (
        f"High angle mode: Selected Charge {point.charge_level} for maximum trajectory height "
        f"({point.elevation_mils:g} mils elevation)"
    )


def _area_target(window: Sequence[BallisticPoint], ctx: SelectionContext) -> Tuple[BallisticPoint, str]:
    candidates = [p for p in window if p.dispersion_m <= ctx.max_dispersion_m]
    if candidates:
        point = max(candidates, key=lambda p: p.dispersion_m)
        return point, (
            f"Area target mode: Selected Charge {point.charge_level} for wider dispersion "
            f"pattern ({point.dispersion_m:g}m spread)"
        )

    point = _lowest_charge(window, ctx)
    return point, (
        f"Area target mode: No suitable high-dispersion options within "
        f"{ctx.max_dispersion_m:g}m, using efficient Charge {point.charge_level}"
    )


class TacticalMethod(Enum):
    """Tactical selection methods, each carrying its own selection rule."""
    STANDARD = ("standard", _closest_range)
    EFFICIENCY = ("efficiency", _efficiency)
    SPEED = ("speed", _speed)
    HIGH_ANGLE = ("high_angle", _high_angle)
    AREA_TARGET = ("area_target", _area_target)

    def __init__(self, tag: str, selector: Selector):
        self.tag = tag
        self.selector = selector

    @classmethod
    def from_tag(cls, tag: str) -> 'TacticalMethod':
        """Look a method up by its tag, e.g. ``"high_angle"``."""
        for method in cls:
            if method.tag == tag:
                return method
        raise UnknownMethodError("tactical method", tag, [m.tag for m in cls])


@dataclass(frozen=True)
class TacticalSelection:
    """
    Outcome of a tactical selection.

    Attributes:
        result: Firing data chosen (a verbatim row or an interpolation).
        method: Tactical method that was requested.
        justification: Which rule fired and why.
        direct_match: True if a row inside the tolerance window was chosen.
    """
    result: InterpolationResult
    method: TacticalMethod
    justification: str
    direct_match: bool


def within_window(
    points: Sequence[BallisticPoint],
    range_m: float,
    tolerance_m: float = DEFAULT_TOLERANCE_WINDOW_M,
) -> List[BallisticPoint]:
    """Rows whose range is within +/- tolerance_m of range_m."""
    return [p for p in points if abs(p.range_m - range_m) <= tolerance_m]


def select(
    points: Sequence[BallisticPoint],
    range_m: float,
    method: TacticalMethod = TacticalMethod.STANDARD,
    tolerance_m: float = DEFAULT_TOLERANCE_WINDOW_M,
    max_dispersion_m: Optional[float] = None,
    preferred_charge: Optional[int] = None,
) -> TacticalSelection:
    """
    Choose firing data for range_m according to a tactical method.

    Args:
        points: Rows for a single (system, round) pairing.
        range_m: Target range in meters.
        method: Tactical method to apply.
        tolerance_m: Half-width of the direct-match window.
        max_dispersion_m: Dispersion ceiling for area-target mode.
        preferred_charge: Charge preference for the interpolation fallback.

    Returns:
        TacticalSelection with the chosen data and justification.

    Raises:
        OutOfRangeError: If the window is empty and interpolation fails too.
    """
    window = within_window(points, range_m, tolerance_m)

    if not window:
        logger.info(
            f"{method.tag}: no table rows within {tolerance_m:g}m of {range_m:g}m, interpolating"
        )
        return TacticalSelection(
            result=interpolate(points, range_m, preferred_charge),
            method=method,
            justification=INTERPOLATED_FALLBACK_REASON,
            direct_match=False,
        )

    ctx = SelectionContext(
        range_m=range_m,
        max_dispersion_m=DEFAULT_MAX_DISPERSION_M if max_dispersion_m is None else max_dispersion_m,
    )
    point, justification = method.selector(window, ctx)
    return TacticalSelection(
        result=InterpolationResult.from_point(point),
        method=method,
        justification=justification,
        direct_match=True,
    )
