"""
Ballistic reference data for the fire-direction engine.

This module holds the immutable inputs of every calculation:
- Weapon systems and ammunition reference records
- Measured ballistic data points keyed by (system, round, charge, range)
- BallisticTable, a read-only snapshot indexed for per-pairing lookups

Tables are built once from already-parsed records and never edited in
place. A refresh builds a new BallisticTable and swaps the reference.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import UnknownReferenceError
from .logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# REFERENCE DATA
# =============================================================================

class AmmunitionCategory(Enum):
    """Broad ammunition categories."""
    HE = "HE"                      # High explosive
    SMOKE = "Smoke"
    ILLUMINATION = "Illum"
    PRACTICE = "Practice"          # Inert / training practice
    OTHER = "Other"

    @classmethod
    def from_label(cls, label: str) -> 'AmmunitionCategory':
        """Map a free-text round type such as ``"he"`` or ``"WP Smoke"`` to a category."""
        text = (label or "").strip().lower()
        for member in cls:
            if text == member.value.lower():
                return member
        if "smoke" in text or text == "wp":
            return cls.SMOKE
        if "illum" in text:
            return cls.ILLUMINATION
        if "explosive" in text or "he" in text.split():
            return cls.HE
        if "practice" in text or "inert" in text or "training" in text or text == "tp":
            return cls.PRACTICE
        return cls.OTHER


@dataclass(frozen=True)
class WeaponSystem:
    """
    A weapon system (tube type).

    Attributes:
        id: Reference id used by ballistic data points.
        name: Display name.
        caliber_mm: Bore diameter in millimetres.
        nationality: Optional country of origin.
    """
    id: int
    name: str
    caliber_mm: float
    nationality: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WeaponSystem':
        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            caliber_mm=float(data["caliber_mm"]),
            nationality=data.get("nationality"),
        )


@dataclass(frozen=True)
class Ammunition:
    """
    An ammunition type.

    Attributes:
        id: Reference id used by ballistic data points.
        name: Display name.
        category: Broad category (HE, smoke, illumination, ...).
        caliber_mm: Caliber the round fits.
        nationality: Optional country of origin.
    """
    id: int
    name: str
    category: AmmunitionCategory
    caliber_mm: float
    nationality: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Ammunition':
        category = data.get("category", data.get("round_type", "Other"))
        if not isinstance(category, AmmunitionCategory):
            category = AmmunitionCategory.from_label(str(category))
        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            category=category,
            caliber_mm=float(data["caliber_mm"]),
            nationality=data.get("nationality"),
        )


@dataclass(frozen=True)
class BallisticPoint:
    """
    One measured row of a firing table.

    Attributes:
        system_id: Weapon system the row belongs to.
        round_id: Ammunition the row belongs to.
        charge_level: Propellant charge setting.
        range_m: Horizontal range in meters.
        elevation_mils: Tube elevation in mils.
        time_of_flight_s: Flight time in seconds.
        dispersion_m: Mean radial dispersion at that range in meters.
        d_elev_per_100m_mils: Optional elevation change per 100 m of range.
        d_tof_per_100m_s: Optional time-of-flight change per 100 m of range.
    """
    system_id: int
    round_id: int
    charge_level: int
    range_m: float
    elevation_mils: float
    time_of_flight_s: float
    dispersion_m: float
    d_elev_per_100m_mils: Optional[float] = None
    d_tof_per_100m_s: Optional[float] = None

    @property
    def has_derivatives(self) -> bool:
        """True if either per-100 m derivative is present."""
        return self.d_elev_per_100m_mils is not None or self.d_tof_per_100m_s is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BallisticPoint':
        d_elev = data.get("d_elev_per_100m_mils")
        d_tof = data.get("d_tof_per_100m_s")
        return cls(
            system_id=int(data["system_id"]),
            round_id=int(data["round_id"]),
            charge_level=int(data["charge_level"]),
            range_m=float(data["range_m"]),
            elevation_mils=float(data["elevation_mils"]),
            time_of_flight_s=float(data["time_of_flight_s"]),
            dispersion_m=float(data["dispersion_m"]),
            d_elev_per_100m_mils=None if d_elev is None else float(d_elev),
            d_tof_per_100m_s=None if d_tof is None else float(d_tof),
        )


# =============================================================================
# BALLISTIC TABLE
# =============================================================================

class BallisticTable:
    """
    Immutable snapshot of reference data and ballistic points.

    Points are grouped per (system id, round id) pairing and sorted by range,
    then charge, once at construction. Lookups never copy or mutate.
    """

    def __init__(
        self,
        systems: Iterable[WeaponSystem],
        rounds: Iterable[Ammunition],
        points: Iterable[BallisticPoint],
    ):
        self._systems: Tuple[WeaponSystem, ...] = tuple(systems)
        self._rounds: Tuple[Ammunition, ...] = tuple(rounds)
        self._points: Tuple[BallisticPoint, ...] = tuple(points)

        self._systems_by_id = {s.id: s for s in self._systems}
        self._rounds_by_id = {r.id: r for r in self._rounds}

        grouped: Dict[Tuple[int, int], List[BallisticPoint]] = {}
        for point in self._points:
            grouped.setdefault((point.system_id, point.round_id), []).append(point)

        self._points_by_pair: Dict[Tuple[int, int], Tuple[BallisticPoint, ...]] = {}
        for pair, pair_points in grouped.items():
            pair_points.sort(key=lambda p: (p.range_m, p.charge_level))
            self._points_by_pair[pair] = tuple(pair_points)
            self._warn_duplicate_ranges(pair, pair_points)

        logger.debug(
            f"Ballistic table built: {len(self._systems)} systems, "
            f"{len(self._rounds)} rounds, {len(self._points)} points"
        )

    @staticmethod
    def _warn_duplicate_ranges(pair: Tuple[int, int], points: List[BallisticPoint]) -> None:
        seen = set()
        for point in points:
            key = (point.charge_level, point.range_m)
            if key in seen:
                logger.warning(
                    f"Duplicate ballistic row for system {pair[0]}, round {pair[1]}, "
                    f"charge {point.charge_level} at {point.range_m:g}m"
                )
            seen.add(key)

    def __len__(self) -> int:
        return len(self._points)

    def __repr__(self) -> str:
        return (
            f"BallisticTable(systems={len(self._systems)}, rounds={len(self._rounds)}, "
            f"points={len(self._points)})"
        )

    @property
    def systems(self) -> Tuple[WeaponSystem, ...]:
        return self._systems

    @property
    def rounds(self) -> Tuple[Ammunition, ...]:
        return self._rounds

    @property
    def points(self) -> Tuple[BallisticPoint, ...]:
        return self._points

    def system(self, system_id: int) -> WeaponSystem:
        """Weapon system by id, or UnknownReferenceError."""
        try:
            return self._systems_by_id[system_id]
        except KeyError:
            raise UnknownReferenceError("weapon system", system_id) from None

    def ammunition(self, round_id: int) -> Ammunition:
        """Ammunition by id, or UnknownReferenceError."""
        try:
            return self._rounds_by_id[round_id]
        except KeyError:
            raise UnknownReferenceError("ammunition", round_id) from None

    def rounds_for_caliber(self, caliber_mm: Optional[float] = None) -> List[Ammunition]:
        """All rounds, or only those of the given caliber."""
        if caliber_mm is None:
            return list(self._rounds)
        return [r for r in self._rounds if r.caliber_mm == caliber_mm]

    def compatible_rounds(self, system_id: int) -> List[Ammunition]:
        """Rounds whose caliber matches the weapon system's caliber."""
        return self.rounds_for_caliber(self.system(system_id).caliber_mm)

    def points_for(self, system_id: int, round_id: int) -> Tuple[BallisticPoint, ...]:
        """
        Ballistic points for one pairing, sorted by range then charge.

        Raises:
            UnknownReferenceError: If either id is not in the table.
        """
        self.system(system_id)
        self.ammunition(round_id)
        return self._points_by_pair.get((system_id, round_id), ())

    def range_capability(self, system_id: int, round_id: int) -> Optional[Tuple[float, float]]:
        """
        Minimum and maximum range covered for a pairing.

        Returns:
            (min, max) in meters, or None when the pairing has no data.
        """
        points = self.points_for(system_id, round_id)
        if not points:
            return None
        # Points are range-sorted
        return points[0].range_m, points[-1].range_m

    def is_range_supported(self, system_id: int, round_id: int, range_m: float) -> bool:
        """True if the range lies within the pairing's overall table coverage."""
        capability = self.range_capability(system_id, round_id)
        if capability is None:
            return False
        return capability[0] <= range_m <= capability[1]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BallisticTable':
        """
        Build a table from structured records.

        Args:
            data: Mapping with ``systems``, ``rounds`` and ``points`` lists of
                already-parsed records.
        """
        return cls(
            systems=[WeaponSystem.from_dict(s) for s in data.get("systems", [])],
            rounds=[Ammunition.from_dict(r) for r in data.get("rounds", [])],
            points=[BallisticPoint.from_dict(p) for p in data.get("points", [])],
        )


def load_ballistic_table(filepath: str | Path) -> BallisticTable:
    """
    Load a ballistic table from a JSON file of structured records.

    Args:
        filepath: Path to a JSON document with ``systems``, ``rounds`` and
            ``points`` lists.

    Returns:
        The loaded BallisticTable.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    with open(filepath, "r") as f:
        return BallisticTable.from_dict(json.load(f))
