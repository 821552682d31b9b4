"""
Final protective fire (FPF) sector planning.

This module implements:
- Default sector layout (8 sectors of 800 mils, Alpha..Hotel)
- Assignment of FPF targets to sectors by true grid bearing
- Coverage analysis on the mil circle: total, gaps and overlaps
- Tube and round distribution per target by priority
- Tactical recommendations for the plan

Sectors run clockwise from azimuth_start to azimuth_end and may wrap
through north. Coverage is evaluated per whole mil.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import InvalidAllocationError, UnknownMethodError
from .firecontrol import FiringSolution
from .geodesy import GridCoordinate, GridLike, MILS_PER_CIRCLE, bearing, normalize, round_half_up
from .logger import get_logger

logger = get_logger(__name__)

SECTOR_WIDTH_MILS = 800
SECTOR_NAMES = ("Alpha", "Bravo", "Charlie", "Delta", "Echo", "Foxtrot", "Golf", "Hotel")

# Overlap between adjacent sectors considered normal
OPTIMAL_OVERLAP_MILS = 50
LARGE_GAP_MILS = 200


class FPFPriority(Enum):
    """FPF target and sector priority, highest first."""
    PRIMARY = "primary"
    ALTERNATE = "alternate"
    SUPPLEMENTAL = "supplemental"

    @classmethod
    def from_tag(cls, tag: Union[FPFPriority, str]) -> FPFPriority:
        """Priority by tag, e.g. ``"alternate"``; members pass through."""
        try:
            return cls(tag)
        except ValueError:
            raise UnknownMethodError("FPF priority", tag, [p.value for p in cls]) from None

    @property
    def rank(self) -> int:
        return _PRIORITY_ORDER.index(self)


_PRIORITY_ORDER = (FPFPriority.PRIMARY, FPFPriority.ALTERNATE, FPFPriority.SUPPLEMENTAL)

# Priority -> (share of tubes, minimum tubes, rounds per tube)
FIRE_ALLOCATION = {
    FPFPriority.PRIMARY: (0.4, 2, 12),
    FPFPriority.ALTERNATE: (0.3, 1, 8),
    FPFPriority.SUPPLEMENTAL: (0.2, 1, 4),
}

PRIORITY_JUSTIFICATION = {
    FPFPriority.PRIMARY: "Critical defensive position requiring maximum firepower.",
    FPFPriority.ALTERNATE: "Secondary defensive position with substantial fire support.",
    FPFPriority.SUPPLEMENTAL: "Additional coverage for defensive flexibility.",
}


# =============================================================================
# DATACLASSES
# =============================================================================

@dataclass
class FPFSector:
    """
    Angular sector of responsibility.

    Attributes:
        id: Sector identifier, e.g. ``sector-1``.
        name: Phonetic name, e.g. ``Alpha``.
        azimuth_start: Clockwise start in mils.
        azimuth_end: Clockwise end in mils (exclusive).
        priority: Sector priority.
        description: Free text.
        assigned_targets: Ids of FPF targets inside the sector.
    """
    id: str
    name: str
    azimuth_start: int
    azimuth_end: int
    priority: FPFPriority
    description: str = ""
    assigned_targets: List[str] = field(default_factory=list)

    @property
    def width_mils(self) -> int:
        """Clockwise width; a sector whose start equals its end is empty."""
        return (self.azimuth_end - self.azimuth_start) % MILS_PER_CIRCLE

    def contains(self, azimuth_mils: float) -> bool:
        """True if the azimuth lies in [start, end) going clockwise."""
        offset = (azimuth_mils - self.azimuth_start) % MILS_PER_CIRCLE
        return offset < self.width_mils

    def mask(self) -> np.ndarray:
        """Boolean coverage mask over the 6400 whole mils."""
        covered = np.zeros(MILS_PER_CIRCLE, dtype=bool)
        covered[(self.azimuth_start + np.arange(self.width_mils)) % MILS_PER_CIRCLE] = True
        return covered


@dataclass(frozen=True)
class FPFTarget:
    """
    Pre-planned FPF target.

    Attributes:
        id: Target identifier.
        name: Display name, e.g. ``FPF Alpha``.
        target_grid: Target position.
        priority: Target priority.
        notes: Free text.
        preplanned: Firing solution computed ahead of time, if any.
    """
    id: str
    name: str
    target_grid: GridCoordinate
    priority: FPFPriority = FPFPriority.PRIMARY
    notes: str = ""
    preplanned: Optional[FiringSolution] = None

    @classmethod
    def create(
        cls,
        id: str,
        name: str,
        target_grid: GridLike,
        priority: FPFPriority = FPFPriority.PRIMARY,
        notes: str = "",
    ) -> 'FPFTarget':
        """Build a target, normalizing its grid."""
        return cls(
            id=id,
            name=name,
            target_grid=normalize(target_grid),
            priority=FPFPriority.from_tag(priority),
            notes=notes,
        )

    def with_solution(self, solution: FiringSolution) -> 'FPFTarget':
        return replace(self, preplanned=solution)


@dataclass(frozen=True)
class CoverageGap:
    """Uncovered arc: start and end in mils, size in mils."""
    start_azimuth: int
    end_azimuth: int
    size_mils: int


@dataclass(frozen=True)
class SectorOverlap:
    """Arc covered by two sectors."""
    sector1_id: str
    sector2_id: str
    start_azimuth: int
    end_azimuth: int
    size_mils: int


@dataclass
class CoverageAnalysis:
    """
    Coverage of a sector plan.

    Attributes:
        total_coverage_mils: Sum of sector widths (overlaps counted twice).
        covered_mils: Mils covered by at least one sector.
        gaps: Uncovered arcs.
        overlaps: Arcs shared by a pair of sectors.
        recommendations: Plan review notes.
    """
    total_coverage_mils: int
    covered_mils: int
    gaps: List[CoverageGap] = field(default_factory=list)
    overlaps: List[SectorOverlap] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class FPFFireDistribution:
    """Tubes and rounds recommended for one FPF target."""
    target_id: str
    recommended_tubes: int
    recommended_rounds: int
    firing_order: int
    justification: str


# =============================================================================
# SECTORS
# =============================================================================

def create_default_sectors(base_azimuth: float = 0) -> List[FPFSector]:
    """
    Eight 800-mil sectors clockwise from base_azimuth.

    The first three are primary, the next three alternate and the last two
    supplemental.
    """
    base = round_half_up(base_azimuth) % MILS_PER_CIRCLE
    sectors = []
    for index, name in enumerate(SECTOR_NAMES):
        if index < 3:
            priority = FPFPriority.PRIMARY
        elif index < 6:
            priority = FPFPriority.ALTERNATE
        else:
            priority = FPFPriority.SUPPLEMENTAL
        sectors.append(FPFSector(
            id=f"sector-{index + 1}",
            name=name,
            azimuth_start=(base + index * SECTOR_WIDTH_MILS) % MILS_PER_CIRCLE,
            azimuth_end=(base + (index + 1) * SECTOR_WIDTH_MILS) % MILS_PER_CIRCLE,
            priority=priority,
            description=f"Sector {name} - {SECTOR_WIDTH_MILS} mils coverage",
        ))
    return sectors


def find_sector(azimuth_mils: float, sectors: Sequence[FPFSector]) -> Optional[FPFSector]:
    """First sector containing the azimuth, or None."""
    for sector in sectors:
        if sector.contains(azimuth_mils):
            return sector
    return None


def sector_for_target(target_id: str, sectors: Sequence[FPFSector]) -> Optional[FPFSector]:
    for sector in sectors:
        if target_id in sector.assigned_targets:
            return sector
    return None


def assign_targets_to_sectors(
    firing_grid: GridLike,
    targets: Sequence[FPFTarget],
    sectors: Sequence[FPFSector],
) -> List[FPFSector]:
    """
    Assign each target to the sector containing its bearing from the firing position.

    Args:
        firing_grid: Firing (mortar/gun) position.
        targets: FPF targets.
        sectors: Sector plan; left unchanged.

    Returns:
        Copies of the sectors with assigned_targets extended. Targets outside
        every sector stay unassigned and are logged.
    """
    origin = normalize(firing_grid)
    updated = [replace(s, assigned_targets=list(s.assigned_targets)) for s in sectors]

    for target in targets:
        azimuth = bearing(origin, target.target_grid)
        sector = find_sector(azimuth, updated)
        if sector is None:
            logger.warning(f"FPF target {target.id} at {azimuth:.0f} mils is outside every sector")
            continue
        sector.assigned_targets.append(target.id)

    return updated


# =============================================================================
# COVERAGE ANALYSIS
# =============================================================================

def _circular_runs(mask: np.ndarray) -> List[Tuple[int, int]]:
    """(start, length) of each run of True values on the mil circle."""
    if mask.all():
        return [(0, MILS_PER_CIRCLE)]
    if not mask.any():
        return []

    # Rotate so the circle starts on an uncovered mil, then scan linearly
    offset = int(np.argmin(mask))
    rolled = np.roll(mask, -offset).astype(np.int8)
    edges = np.diff(np.concatenate(([0], rolled, [0])))
    starts = np.flatnonzero(edges == 1)
    ends = np.flatnonzero(edges == -1)
    return [(int((s + offset) % MILS_PER_CIRCLE), int(e - s)) for s, e in zip(starts, ends)]


def find_coverage_gaps(sectors: Sequence[FPFSector]) -> List[CoverageGap]:
    covered = np.zeros(MILS_PER_CIRCLE, dtype=bool)
    for sector in sectors:
        covered |= sector.mask()
    return [
        CoverageGap(start, (start + size) % MILS_PER_CIRCLE, size)
        for start, size in _circular_runs(~covered)
    ]


def find_sector_overlaps(sectors: Sequence[FPFSector]) -> List[SectorOverlap]:
    overlaps = []
    masks = [sector.mask() for sector in sectors]
    for i in range(len(sectors)):
        for j in range(i + 1, len(sectors)):
            for start, size in _circular_runs(masks[i] & masks[j]):
                overlaps.append(SectorOverlap(
                    sector1_id=sectors[i].id,
                    sector2_id=sectors[j].id,
                    start_azimuth=start,
                    end_azimuth=(start + size) % MILS_PER_CIRCLE,
                    size_mils=size,
                ))
    return overlaps


def analyze_coverage(sectors: Sequence[FPFSector]) -> CoverageAnalysis:
    """Total coverage, gaps and overlaps of a sector plan, with review notes."""
    covered = np.zeros(MILS_PER_CIRCLE, dtype=bool)
    for sector in sectors:
        covered |= sector.mask()

    gaps = find_coverage_gaps(sectors)
    overlaps = find_sector_overlaps(sectors)

    recommendations = []
    if gaps:
        recommendations.append(
            f"{len(gaps)} coverage gaps identified. Consider repositioning sectors or adding FPF targets."
        )
    if len(overlaps) > 3:
        recommendations.append(
            f"{len(overlaps)} overlapping areas detected. Review sector boundaries for efficiency."
        )
    unassigned = [s for s in sectors if not s.assigned_targets]
    if unassigned:
        recommendations.append(
            f"{len(unassigned)} sectors have no assigned targets. Consider consolidating or reassigning."
        )

    return CoverageAnalysis(
        total_coverage_mils=sum(s.width_mils for s in sectors),
        covered_mils=int(covered.sum()),
        gaps=gaps,
        overlaps=overlaps,
        recommendations=recommendations,
    )


# =============================================================================
# FIRE DISTRIBUTION
# =============================================================================

def tubes_for_priority(priority: FPFPriority, emitter_count: int) -> int:
    """Share of the available tubes for a priority, at least the minimum, never more than available."""
    share, minimum, _ = FIRE_ALLOCATION[priority]
    return min(emitter_count, max(minimum, int(emitter_count * share)))


def rounds_for_priority(priority: FPFPriority) -> int:
    return FIRE_ALLOCATION[priority][2]


def calculate_fire_distribution(
    targets: Sequence[FPFTarget],
    sectors: Sequence[FPFSector],
    emitter_count: int,
) -> List[FPFFireDistribution]:
    """
    Tubes and rounds for each FPF target, highest priority first.

    Args:
        targets: FPF targets.
        sectors: Sector plan with assignments.
        emitter_count: Tubes available.

    Returns:
        Distribution entries in firing order.

    Raises:
        InvalidAllocationError: If emitter_count is below 1.
    """
    if emitter_count < 1:
        raise InvalidAllocationError("At least one emitter is required for FPF distribution")

    distribution = []
    ordered = sorted(targets, key=lambda t: t.priority.rank)
    for order, target in enumerate(ordered, start=1):
        sector = sector_for_target(target.id, sectors)
        tubes = tubes_for_priority(target.priority, emitter_count)
        rounds = rounds_for_priority(target.priority)
        sector_name = sector.name if sector else "Unassigned"
        distribution.append(FPFFireDistribution(
            target_id=target.id,
            recommended_tubes=tubes,
            recommended_rounds=rounds,
            firing_order=order,
            justification=(
                f"{target.priority.value.upper()} target in Sector {sector_name}: "
                f"{tubes} tubes, {rounds} rds/tube. {PRIORITY_JUSTIFICATION[target.priority]}"
            ),
        ))
    return distribution


def generate_tactical_recommendations(
    targets: Sequence[FPFTarget],
    sectors: Sequence[FPFSector],
    analysis: CoverageAnalysis,
    emitter_count: int,
) -> List[str]:
    """Review notes on gaps, overlaps, tube shortage and unassigned primary targets."""
    recommendations = []

    if analysis.gaps:
        largest = max(analysis.gaps, key=lambda g: g.size_mils)
        if largest.size_mils > LARGE_GAP_MILS:
            recommendations.append(
                f"CRITICAL: Large coverage gap of {largest.size_mils} mils from "
                f"{largest.start_azimuth} to {largest.end_azimuth} mils. Consider additional FPF targets."
            )

    excessive = [o for o in analysis.overlaps if o.size_mils > OPTIMAL_OVERLAP_MILS * 2]
    if excessive:
        recommendations.append(
            f"Consider reducing overlap between sectors - {len(excessive)} areas have excessive "
            f"overlap > {OPTIMAL_OVERLAP_MILS * 2} mils."
        )

    if targets and emitter_count < len(targets):
        recommendations.append(
            f"WARNING: {len(targets)} FPF targets for {emitter_count} guns. "
            f"Consider prioritizing targets or requesting additional tubes."
        )

    unassigned_primary = [
        t for t in targets
        if t.priority is FPFPriority.PRIMARY and sector_for_target(t.id, sectors) is None
    ]
    if unassigned_primary:
        recommendations.append(
            f"{len(unassigned_primary)} primary FPF targets not assigned to sectors. Review sector boundaries."
        )

    return recommendations
