"""
Grid coordinate geodesy for the fire-direction engine.

This module implements:
- Parsing and normalization of alphanumeric grid designators
- Planar distance and bearing (in mils) between two grid coordinates
- Back azimuth, polar projection and angle unit conversions

All spatial math is planar Euclidean on the grid's easting/northing pair.
There is no ellipsoid and no true UTM projection: coordinates in different
grid zones are compared on their raw numbers with a warning.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Optional, Union

from .errors import FormatError, GridSquareError
from .logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

MILS_PER_CIRCLE = 6400
HALF_CIRCLE_MILS = 3200
QUARTER_CIRCLE_MILS = 1600
DEGREES_PER_CIRCLE = 360.0

# Band letters dropped from the alphabet because they read like 1 and 0
RESERVED_BAND_LETTERS = frozenset("IO")

SUPPORTED_PRECISIONS = (6, 8, 10)
DIGITS_PER_AXIS = 5
GRID_SQUARE_LIMIT_M = 10 ** DIGITS_PER_AXIS  # one 100 km square, in meters

MIN_ZONE = 1
MAX_ZONE = 60

_ALLOWED_CHARACTERS = re.compile(r"^[0-9A-Z]+$")
_COORDINATE_ONLY = re.compile(r"^\d+$")
_FULL_DESIGNATOR = re.compile(r"^(\d{1,2})([A-Z])([A-Z]{2})(\d+)$")


# =============================================================================
# DATACLASSES
# =============================================================================

@dataclass(frozen=True)
class GridCoordinate:
    """
    A normalized grid coordinate.

    Attributes:
        easting: Easting within the grid square in meters (0-99999).
        northing: Northing within the grid square in meters (0-99999).
        zone: Grid zone number, None for a bare numeric coordinate.
        band: Latitude band letter, None for a bare numeric coordinate.
        square: Two-letter 100 km square designator, None for a bare coordinate.
    """
    easting: int
    northing: int
    zone: Optional[int] = None
    band: Optional[str] = None
    square: Optional[str] = None

    @property
    def is_coordinate_only(self) -> bool:
        """True if the coordinate carries no zone/band/square prefix."""
        return self.zone is None

    @property
    def prefix(self) -> str:
        """Zone, band and square as text (empty for a bare coordinate)."""
        if self.is_coordinate_only:
            return ""
        return f"{self.zone}{self.band}{self.square}"

    @property
    def grid(self) -> str:
        """Normalized 10-digit grid string, e.g. ``12ABC1230045600``."""
        return f"{self.prefix}{self.easting:05d}{self.northing:05d}"

    def __str__(self) -> str:
        return self.grid


@dataclass(frozen=True)
class FireMissionData:
    """
    Direction and distance from one grid to another.

    Attributes:
        azimuth_mils: Azimuth rounded to whole mils (0-6399).
        back_azimuth_mils: Reciprocal of the rounded azimuth.
        distance_m: Planar distance in meters.
    """
    azimuth_mils: int
    back_azimuth_mils: int
    distance_m: float


GridLike = Union[str, GridCoordinate]


# =============================================================================
# PARSING
# =============================================================================

def _split_digits(digits: str) -> tuple[int, int]:
    """Split a digit run into left-aligned 5-digit easting and northing."""
    if len(digits) % 2 != 0:
        raise FormatError(f"Invalid coordinate length: {digits} has an odd digit count")
    if len(digits) not in SUPPORTED_PRECISIONS:
        raise FormatError(
            f"Unsupported coordinate precision: {len(digits)} digits "
            f"(expected 6, 8 or 10)"
        )

    half = len(digits) // 2
    # 123 -> 12300: lower precision is a coarser position, not a scaled one
    easting = int(digits[:half].ljust(DIGITS_PER_AXIS, "0"))
    northing = int(digits[half:].ljust(DIGITS_PER_AXIS, "0"))
    return easting, northing


def normalize(raw: GridLike) -> GridCoordinate:
    """
    Parse and normalize a grid designator.

    Accepts a bare numeric pair (6, 8 or 10 digits) or a full designator of
    zone + band letter + two-letter square + digits. Whitespace is removed
    and letters are upper-cased before parsing.

    Args:
        raw: Grid text, or an already-normalized GridCoordinate.

    Returns:
        The normalized GridCoordinate.

    Raises:
        FormatError: If the text cannot be read as a grid coordinate.
    """
    if isinstance(raw, GridCoordinate):
        return raw
    if not isinstance(raw, str):
        raise FormatError(f"Grid must be a string, got {type(raw).__name__}")

    clean = re.sub(r"\s+", "", raw).upper()
    if not clean:
        raise FormatError("Grid is empty")
    if not _ALLOWED_CHARACTERS.match(clean):
        raise FormatError(f"Grid contains characters other than digits and letters: {raw!r}")

    if _COORDINATE_ONLY.match(clean):
        easting, northing = _split_digits(clean)
        return GridCoordinate(easting=easting, northing=northing)

    match = _FULL_DESIGNATOR.match(clean)
    if not match:
        raise FormatError(f"Invalid grid format: {raw!r}")

    zone_text, band, square, digits = match.groups()
    zone = int(zone_text)
    if not MIN_ZONE <= zone <= MAX_ZONE:
        raise FormatError(f"Grid zone {zone} is outside {MIN_ZONE}-{MAX_ZONE}")
    if band in RESERVED_BAND_LETTERS:
        raise FormatError(f"Band letter {band!r} is reserved and never used in a grid")

    easting, northing = _split_digits(digits)
    return GridCoordinate(
        easting=easting,
        northing=northing,
        zone=zone,
        band=band,
        square=square,
    )


def format_grid(raw: GridLike) -> str:
    """Normalized grid string for any grid input."""
    return normalize(raw).grid


def is_valid_grid(raw: GridLike) -> bool:
    """Check whether a grid designator parses."""
    try:
        normalize(raw)
    except FormatError:
        return False
    return True


# =============================================================================
# ANGLES
# =============================================================================

def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (1.5 -> 2, -1.5 -> -1)."""
    return int(math.floor(value + 0.5))


def normalize_mils(angle_mils: float) -> float:
    """Wrap an angle into [0, 6400)."""
    wrapped = angle_mils % MILS_PER_CIRCLE
    # -1e-13 % 6400 lands on 6400.0 in floating point
    return 0.0 if wrapped >= MILS_PER_CIRCLE else wrapped


def reciprocal(bearing_mils: float) -> float:
    """Back azimuth: the bearing 3200 mils opposite."""
    return normalize_mils(bearing_mils + HALF_CIRCLE_MILS)


def degrees_to_mils(degrees: float) -> float:
    """Convert degrees to mils (360 degrees = 6400 mils)."""
    return degrees * MILS_PER_CIRCLE / DEGREES_PER_CIRCLE


def mils_to_degrees(mils: float) -> float:
    """Convert mils to degrees (6400 mils = 360 degrees)."""
    return mils * DEGREES_PER_CIRCLE / MILS_PER_CIRCLE


def mils_to_radians(mils: float) -> float:
    """Convert mils to radians."""
    return mils * 2 * math.pi / MILS_PER_CIRCLE


def radians_to_mils(radians: float) -> float:
    """Convert radians to mils."""
    return radians * MILS_PER_CIRCLE / (2 * math.pi)


# =============================================================================
# DISTANCE, BEARING, PROJECTION
# =============================================================================

def _deltas(a: GridLike, b: GridLike) -> tuple[int, int]:
    start = normalize(a)
    end = normalize(b)
    if (
        start.zone is not None
        and end.zone is not None
        and start.zone != end.zone
    ):
        logger.warning(
            f"Coordinates {start.grid} and {end.grid} are in different grid zones; "
            f"planar result may be less accurate"
        )
    return end.easting - start.easting, end.northing - start.northing


def distance(a: GridLike, b: GridLike) -> float:
    """
    Planar distance between two grid coordinates.

    Args:
        a: From coordinate.
        b: To coordinate.

    Returns:
        Distance in meters.
    """
    delta_e, delta_n = _deltas(a, b)
    return math.hypot(delta_e, delta_n)


def bearing(a: GridLike, b: GridLike) -> float:
    """
    Bearing from one coordinate to another, clockwise from grid north.

    The bearing of a coordinate to itself is 0.

    Returns:
        Bearing in mils within [0, 6400).
    """
    delta_e, delta_n = _deltas(a, b)
    return normalize_mils(radians_to_mils(math.atan2(delta_e, delta_n)))


def azimuth_mils(a: GridLike, b: GridLike) -> int:
    """Bearing rounded to whole mils, wrapped into 0-6399."""
    return round_half_up(bearing(a, b)) % MILS_PER_CIRCLE


def project(origin: GridLike, bearing_mils: float, distance_m: float) -> GridCoordinate:
    """
    Offset a coordinate by a polar vector.

    The result is rounded to the nearest meter and keeps the origin's
    zone, band and square.

    Args:
        origin: Starting coordinate.
        bearing_mils: Direction of travel, clockwise from grid north.
        distance_m: Length of the offset in meters.

    Returns:
        The projected GridCoordinate.

    Raises:
        GridSquareError: If the projected point leaves the origin's grid square.
    """
    start = normalize(origin)
    angle = mils_to_radians(bearing_mils)
    easting = round_half_up(start.easting + distance_m * math.sin(angle))
    northing = round_half_up(start.northing + distance_m * math.cos(angle))

    if not (0 <= easting < GRID_SQUARE_LIMIT_M and 0 <= northing < GRID_SQUARE_LIMIT_M):
        raise GridSquareError(
            f"Projection of {distance_m:.0f}m at {bearing_mils:.0f} mils from {start.grid} "
            f"leaves the grid square"
        )

    return GridCoordinate(
        easting=easting,
        northing=northing,
        zone=start.zone,
        band=start.band,
        square=start.square,
    )


def fire_mission(from_grid: GridLike, to_grid: GridLike) -> FireMissionData:
    """Azimuth, back azimuth and distance from one grid to another."""
    azimuth = azimuth_mils(from_grid, to_grid)
    return FireMissionData(
        azimuth_mils=azimuth,
        back_azimuth_mils=(azimuth + HALF_CIRCLE_MILS) % MILS_PER_CIRCLE,
        distance_m=distance(from_grid, to_grid),
    )
