"""
Multi-emitter (multi-gun) fire coordination.

This module implements:
- Formation generation (line, arc, dispersed) around a base position
- Synchronized firing solutions with per-emitter corrections and delays
- Allocation of a round budget across emitters and the phased firing sequence
- Formation validation and per-emitter fire command text

Emitter 1 ("gun-1") always sits on the base position and acts as the master
emitter. Per-emitter elevation is a linear correction from the master's
elevation by range difference unless a table lookup is supplied.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np

from .config import EngineConfig
from .errors import InvalidAllocationError, InvalidFormationError, UnknownMethodError
from .firecontrol import FiringSolution, format_mils
from .geodesy import (
    GridCoordinate,
    GridLike,
    HALF_CIRCLE_MILS,
    MILS_PER_CIRCLE,
    QUARTER_CIRCLE_MILS,
    fire_mission,
    normalize,
    project,
    round_half_up,
)
from .interpolation import InterpolationResult
from .logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# ENUMS
# =============================================================================

class FormationKind(Enum):
    """Geometric arrangement of emitters around the base position."""
    LINE = "line"              # Straight line perpendicular to orientation
    ARC = "arc"                # Arc centred on orientation
    DISPERSED = "dispersed"    # Loose diamond/box around the base
    CUSTOM = "custom"          # Manual placement (not implemented, uses line)

    @classmethod
    def from_tag(cls, tag: Union[FormationKind, str]) -> FormationKind:
        """Kind by tag, e.g. ``"arc"``; members pass through."""
        try:
            return cls(tag)
        except ValueError:
            raise UnknownMethodError("formation kind", tag, [k.value for k in cls]) from None


class EmitterStatus(Enum):
    """Operational status of an emitter."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class DistributionMethod(Enum):
    """How a round budget is split across emitters."""
    EQUAL = "equal"
    WEIGHTED = "weighted"
    PRIORITY = "priority"
    CUSTOM = "custom"          # Manual assignment (not implemented, uses equal)

    @classmethod
    def from_tag(cls, tag: Union[DistributionMethod, str]) -> DistributionMethod:
        try:
            return cls(tag)
        except ValueError:
            raise UnknownMethodError("distribution method", tag, [m.value for m in cls]) from None


# Cardinal offsets from orientation used by the dispersed formation
DISPERSED_BEARINGS_MILS = (0, QUARTER_CIRCLE_MILS, HALF_CIRCLE_MILS, 3 * QUARTER_CIRCLE_MILS)

CUSTOM_FORMATION_NOTICE = "Custom formation is not implemented; using line formation"
CUSTOM_DISTRIBUTION_NOTICE = "Custom distribution is not implemented; using equal distribution"


# =============================================================================
# DATACLASSES
# =============================================================================

@dataclass(frozen=True)
class EmitterPosition:
    """
    One emitter of a formation.

    Attributes:
        id: Stable identifier, ``gun-1`` for the master emitter.
        name: Display name, e.g. ``Gun 2``.
        grid: Emitter position.
        azimuth_offset_mils: Azimuth offset from the master emitter.
        elevation_offset_mils: Elevation offset from the master emitter.
        status: Operational status.
    """
    id: str
    name: str
    grid: GridCoordinate
    azimuth_offset_mils: float = 0.0
    elevation_offset_mils: float = 0.0
    status: EmitterStatus = EmitterStatus.ACTIVE


@dataclass
class EmitterFormation:
    """
    A formation of emitters.

    Attributes:
        kind: Formation kind.
        spacing_m: Distance between emitters.
        orientation_mils: Direction the formation faces.
        emitters: Emitters in order, master first.
        total_spread_m: Largest distance between any two emitters.
        fallback_notice: Set when the requested kind was substituted.
    """
    kind: FormationKind
    spacing_m: float
    orientation_mils: float
    emitters: List[EmitterPosition] = field(default_factory=list)
    total_spread_m: float = 0.0
    fallback_notice: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.emitters)

    @property
    def master(self) -> Optional[EmitterPosition]:
        """The master emitter, or None for an empty formation."""
        return self.emitters[0] if self.emitters else None


@dataclass
class EmitterSolution:
    """
    Firing data for one emitter of a synchronized mission.

    Attributes:
        emitter: The emitter, with offsets from the master filled in.
        azimuth_mils: Emitter's own azimuth to the target.
        elevation_mils: Emitter elevation.
        charge_level: Emitter charge.
        time_of_flight_s: Emitter time of flight.
        range_m: Emitter's distance to the target.
        azimuth_correction_mils: Azimuth difference from the master, in
            [-3200, 3200).
        elevation_correction_mils: Elevation difference from the master.
        time_delay_s: Wait after the first emitter fires, for simultaneous impact.
    """
    emitter: EmitterPosition
    azimuth_mils: int
    elevation_mils: float
    charge_level: int
    time_of_flight_s: float
    range_m: float
    azimuth_correction_mils: int
    elevation_correction_mils: float
    time_delay_s: float = 0.0

    @property
    def emitter_id(self) -> str:
        return self.emitter.id

    @property
    def emitter_name(self) -> str:
        return self.emitter.name

    @property
    def grid(self) -> GridCoordinate:
        return self.emitter.grid


@dataclass(frozen=True)
class SpreadPattern:
    """Coarse impact pattern estimate: width and depth in meters around a center."""
    width_m: float
    depth_m: float
    center: GridCoordinate


@dataclass
class SynchronizedSolution:
    """
    Synchronized fire of a whole formation on one target.

    Attributes:
        target_grid: Target position.
        master: Master emitter's firing solution.
        emitter_solutions: One entry per emitter, master first.
        simultaneous_impact: Whether delays were computed for simultaneous impact.
        total_time_of_flight_s: Longest time of flight in the formation.
        spread: Impact spread estimate.
        approximated: True if elevations are linear corrections from the
            master rather than table lookups.
    """
    target_grid: GridCoordinate
    master: FiringSolution
    emitter_solutions: List[EmitterSolution]
    simultaneous_impact: bool
    total_time_of_flight_s: float
    spread: SpreadPattern
    approximated: bool = True


@dataclass(frozen=True)
class EmitterAssignment:
    """Rounds assigned to one emitter."""
    emitter_id: str
    emitter_name: str
    rounds: int
    round_type: str
    firing_order: int
    justification: str


@dataclass(frozen=True)
class FiringPhase:
    """One phase of the firing sequence: emitters that fire together."""
    phase: int
    emitter_ids: Tuple[str, ...]
    rounds_per_emitter: int
    interval_s: float


@dataclass
class RoundAllocation:
    """
    Distribution of a round budget across emitters.

    Attributes:
        total_rounds: Round budget requested.
        method: Distribution method that was requested.
        assignments: Per-emitter assignments in firing order.
        firing_sequence: Phases, one round per emitter per phase.
        fallback_notice: Set when the requested method was substituted.
    """
    total_rounds: int
    method: DistributionMethod
    assignments: List[EmitterAssignment]
    firing_sequence: List[FiringPhase]
    fallback_notice: Optional[str] = None

    @property
    def assigned_rounds(self) -> int:
        """Sum of rounds over all assignments."""
        return sum(a.rounds for a in self.assignments)

    def rounds_for(self, emitter_id: str) -> int:
        for assignment in self.assignments:
            if assignment.emitter_id == emitter_id:
                return assignment.rounds
        return 0


@dataclass(frozen=True)
class FireCommand:
    """Fire command text for one emitter."""
    emitter_id: str
    emitter_name: str
    command: str


# =============================================================================
# FORMATIONS
# =============================================================================

def emitter_id(index: int) -> str:
    """Identifier of the emitter at a zero-based index."""
    return f"gun-{index + 1}"


def emitter_name(index: int) -> str:
    """Display name of the emitter at a zero-based index."""
    return f"Gun {index + 1}"


def calculate_total_spread(grids: List[GridCoordinate]) -> float:
    """Largest pairwise distance between positions, rounded to meters."""
    if len(grids) <= 1:
        return 0.0
    coords = np.array([[g.easting, g.northing] for g in grids], dtype=float)
    deltas = coords[:, np.newaxis, :] - coords[np.newaxis, :, :]
    distances = np.sqrt((deltas ** 2).sum(axis=-1))
    return float(round_half_up(float(distances.max())))


def _line_positions(base: GridCoordinate, count: int, spacing_m: float, orientation_mils: float) -> List[GridCoordinate]:
    line_bearing = orientation_mils + QUARTER_CIRCLE_MILS
    return [project(base, line_bearing, spacing_m * i) for i in range(1, count)]


def _arc_positions(
    base: GridCoordinate,
    count: int,
    spacing_m: float,
    orientation_mils: float,
    config: EngineConfig,
) -> List[GridCoordinate]:
    arc_mils = min(config.max_arc_mils, (count - 1) * config.arc_step_mils)
    step = arc_mils / (count - 1)
    return [
        project(base, orientation_mils - arc_mils / 2 + step * i, spacing_m)
        for i in range(1, count)
    ]


def _dispersed_positions(base: GridCoordinate, count: int, spacing_m: float, orientation_mils: float) -> List[GridCoordinate]:
    positions = []
    for i in range(1, count):
        offset = DISPERSED_BEARINGS_MILS[(i - 1) % len(DISPERSED_BEARINGS_MILS)]
        ring = math.ceil(i / len(DISPERSED_BEARINGS_MILS))
        positions.append(project(base, orientation_mils + offset, spacing_m * ring))
    return positions


def build_formation(
    base: GridLike,
    count: int,
    kind: Union[FormationKind, str] = FormationKind.LINE,
    spacing_m: float = 50.0,
    orientation_mils: float = 0.0,
    config: Optional[EngineConfig] = None,
) -> EmitterFormation:
    """
    Place emitters around a base position.

    Emitter 1 is at the base. Line formations extend along
    orientation + 1600 mils at multiples of the spacing; arc formations
    spread over up to 800 mils centred on the orientation at a radius of
    one spacing; dispersed formations cycle through the four cardinal
    directions relative to the orientation at growing multiples of the
    spacing. Custom formations use the line algorithm and say so in
    ``fallback_notice``.

    Args:
        base: Base (master) position.
        count: Number of emitters.
        kind: Formation kind or its tag.
        spacing_m: Distance between emitters.
        orientation_mils: Direction the formation faces.
        config: Engine tunables.

    Returns:
        EmitterFormation with positions and total spread.

    Raises:
        InvalidFormationError: If count is below 1.
        UnknownMethodError: If kind is not a formation tag.
        GridSquareError: If a position falls outside the grid square.
    """
    config = config or EngineConfig()
    kind = FormationKind.from_tag(kind)
    if count < 1:
        raise InvalidFormationError(["At least one emitter position is required"])

    base_coord = normalize(base)
    grids = [base_coord]
    notice = None

    if kind is FormationKind.CUSTOM:
        notice = CUSTOM_FORMATION_NOTICE
        logger.warning(notice)

    if count > 1:
        if kind in (FormationKind.LINE, FormationKind.CUSTOM):
            grids += _line_positions(base_coord, count, spacing_m, orientation_mils)
        elif kind is FormationKind.ARC:
            grids += _arc_positions(base_coord, count, spacing_m, orientation_mils, config)
        elif kind is FormationKind.DISPERSED:
            grids += _dispersed_positions(base_coord, count, spacing_m, orientation_mils)

    emitters = [
        EmitterPosition(id=emitter_id(i), name=emitter_name(i), grid=grid)
        for i, grid in enumerate(grids)
    ]

    return EmitterFormation(
        kind=kind,
        spacing_m=spacing_m,
        orientation_mils=orientation_mils,
        emitters=emitters,
        total_spread_m=calculate_total_spread(grids),
        fallback_notice=notice,
    )


def validate_formation(
    formation: EmitterFormation,
    config: Optional[EngineConfig] = None,
) -> Tuple[bool, List[str]]:
    """
    Check a formation against the safety and control rules.

    Returns:
        Tuple of (valid, violations); every violated rule is listed.
    """
    config = config or EngineConfig()
    violations: List[str] = []

    if not formation.emitters:
        violations.append("At least one emitter position is required")

    if formation.spacing_m < config.min_spacing_m:
        violations.append(
            f"Emitter spacing should be at least {config.min_spacing_m:g} meters for safety"
        )

    if formation.spacing_m > config.max_spacing_m:
        violations.append(
            f"Emitter spacing should not exceed {config.max_spacing_m:g} meters for effective control"
        )

    counts = Counter(emitter.grid for emitter in formation.emitters)
    duplicates = [grid.grid for grid, n in counts.items() if n > 1]
    if duplicates:
        violations.append(f"Duplicate emitter positions detected: {', '.join(duplicates)}")

    return not violations, violations


def ensure_valid_formation(formation: EmitterFormation, config: Optional[EngineConfig] = None) -> None:
    """Raise InvalidFormationError listing every violated rule."""
    valid, violations = validate_formation(formation, config)
    if not valid:
        raise InvalidFormationError(violations)


# =============================================================================
# SYNCHRONIZED FIRE
# =============================================================================

def _wrap_correction(delta_mils: int) -> int:
    """Shortest signed angular difference in [-3200, 3200)."""
    return (delta_mils + HALF_CIRCLE_MILS) % MILS_PER_CIRCLE - HALF_CIRCLE_MILS


def calculate_spread_pattern(
    ranges_m: List[float],
    center: GridCoordinate,
    config: Optional[EngineConfig] = None,
) -> SpreadPattern:
    """Coarse impact spread from the spread of emitter ranges."""
    config = config or EngineConfig()
    ranges = np.asarray(ranges_m, dtype=float)
    range_spread = float(ranges.max() - ranges.min()) if ranges.size else 0.0
    return SpreadPattern(
        width_m=float(round_half_up(range_spread * config.spread_width_factor)),
        depth_m=float(round_half_up(range_spread * config.spread_depth_factor)),
        center=center,
    )


def synchronize(
    formation: EmitterFormation,
    target: GridLike,
    master: FiringSolution,
    simultaneous: bool = True,
    lookup: Optional[Callable[[float], InterpolationResult]] = None,
    config: Optional[EngineConfig] = None,
) -> SynchronizedSolution:
    """
    Derive every emitter's firing data from the master solution.

    Each emitter's azimuth and range are computed from its own position.
    Without a lookup the elevation is the master's plus a linear correction
    of ``elevation_mils_per_meter`` per meter of range difference, and the
    time of flight is the master's. With a lookup, elevation, charge and
    time of flight come from the table at the emitter's range.

    Args:
        formation: Formation to synchronize; emitter 1 is the master.
        target: Target position.
        master: Master emitter's firing solution.
        simultaneous: Compute delays so that all rounds impact together.
        lookup: Optional table lookup by range for per-emitter data.
        config: Engine tunables.

    Returns:
        SynchronizedSolution.

    Raises:
        InvalidFormationError: If the formation fails validation.
    """
    config = config or EngineConfig()
    ensure_valid_formation(formation, config)
    target_coord = normalize(target)

    solutions: List[EmitterSolution] = []
    for emitter in formation.emitters:
        mission = fire_mission(emitter.grid, target_coord)
        azimuth_correction = _wrap_correction(mission.azimuth_mils - master.azimuth_mils)

        if lookup is not None:
            result = lookup(mission.distance_m)
            elevation = result.elevation_mils
            charge = result.charge_level
            time_of_flight = result.time_of_flight_s
            elevation_correction = elevation - master.elevation_mils
        else:
            range_difference = mission.distance_m - master.target_range_m
            elevation_correction = round_half_up(range_difference * config.elevation_mils_per_meter)
            elevation = master.elevation_mils + elevation_correction
            charge = master.charge_level
            time_of_flight = master.time_of_flight_s

        solutions.append(EmitterSolution(
            emitter=replace(
                emitter,
                azimuth_offset_mils=azimuth_correction,
                elevation_offset_mils=elevation_correction,
            ),
            azimuth_mils=mission.azimuth_mils,
            elevation_mils=elevation,
            charge_level=charge,
            time_of_flight_s=time_of_flight,
            range_m=mission.distance_m,
            azimuth_correction_mils=azimuth_correction,
            elevation_correction_mils=elevation_correction,
        ))

    max_time_of_flight = max([master.time_of_flight_s] + [s.time_of_flight_s for s in solutions])
    if simultaneous:
        for solution in solutions:
            solution.time_delay_s = round(max_time_of_flight - solution.time_of_flight_s, 1)

    return SynchronizedSolution(
        target_grid=target_coord,
        master=master,
        emitter_solutions=solutions,
        simultaneous_impact=simultaneous,
        total_time_of_flight_s=max_time_of_flight,
        spread=calculate_spread_pattern([s.range_m for s in solutions], target_coord, config),
        approximated=lookup is None,
    )


# =============================================================================
# ROUND ALLOCATION
# =============================================================================

def _equal_shares(emitter_count: int, total_rounds: int) -> List[int]:
    per_emitter, remainder = divmod(total_rounds, emitter_count)
    return [per_emitter + (1 if i < remainder else 0) for i in range(emitter_count)]


def _weighted_shares(weights: List[float], total_rounds: int) -> List[int]:
    total_weight = sum(weights)
    if total_weight <= 0:
        weights = [1.0] * len(weights)
        total_weight = float(len(weights))

    exact = [total_rounds * w / total_weight for w in weights]
    shares = [int(math.floor(x)) for x in exact]
    leftover = total_rounds - sum(shares)
    by_remainder = sorted(range(len(exact)), key=lambda i: (-(exact[i] - shares[i]), i))
    for i in by_remainder[:leftover]:
        shares[i] += 1

    # Every emitter fires at least once; take the round from the largest holder
    for i, share in enumerate(shares):
        if share > 0:
            continue
        donor = max(range(len(shares)), key=lambda j: (shares[j], -j))
        if shares[donor] > 1:
            shares[donor] -= 1
        shares[i] = 1
    return shares


def _firing_sequence(assignments: List[EmitterAssignment], interval_s: float) -> List[FiringPhase]:
    phases_needed = max((a.rounds for a in assignments), default=0)
    sequence = []
    for phase in range(1, phases_needed + 1):
        emitters_in_phase = tuple(a.emitter_id for a in assignments if a.rounds >= phase)
        if emitters_in_phase:
            sequence.append(FiringPhase(
                phase=phase,
                emitter_ids=emitters_in_phase,
                rounds_per_emitter=1,
                interval_s=interval_s,
            ))
    return sequence


def allocate_rounds(
    emitter_count: int,
    total_rounds: int,
    method: Union[DistributionMethod, str] = DistributionMethod.EQUAL,
    priorities: Optional[Mapping[str, float]] = None,
    round_type: str = "HE",
    config: Optional[EngineConfig] = None,
) -> RoundAllocation:
    """
    Distribute a round budget across emitters.

    - equal: floor division, remainder to the first emitters
    - weighted: proportional to priority weight (default 1), at least 1 round each
    - priority: highest priority first, ``ceil(total / n)`` rounds each until exhausted
    - custom: not implemented, equal distribution with ``fallback_notice`` set

    Args:
        emitter_count: Number of emitters (ids ``gun-1`` .. ``gun-N``).
        total_rounds: Round budget.
        method: Distribution method or its tag.
        priorities: Emitter id -> priority weight for weighted/priority methods.
        round_type: Round type label carried in each assignment.
        config: Engine tunables.

    Returns:
        RoundAllocation with assignments and phased firing sequence.

    Raises:
        InvalidAllocationError: If emitter_count < 1, total_rounds < 0, or a
            priority weight is negative.
        UnknownMethodError: If method is not a distribution tag.
    """
    config = config or EngineConfig()
    method = DistributionMethod.from_tag(method)
    priorities = dict(priorities or {})

    if emitter_count < 1:
        raise InvalidAllocationError("At least one emitter is required to allocate rounds")
    if total_rounds < 0:
        raise InvalidAllocationError(f"Total rounds must not be negative, got {total_rounds}")
    if any(p < 0 for p in priorities.values()):
        raise InvalidAllocationError("Priority weights must not be negative")

    ids = [emitter_id(i) for i in range(emitter_count)]
    names = [emitter_name(i) for i in range(emitter_count)]
    assignments: List[EmitterAssignment] = []
    notice = None

    if method is DistributionMethod.WEIGHTED:
        weights = [float(priorities.get(i, 1.0)) for i in ids]
        shares = _weighted_shares(weights, total_rounds)
        for i, (share, weight) in enumerate(zip(shares, weights)):
            assignments.append(EmitterAssignment(
                emitter_id=ids[i],
                emitter_name=names[i],
                rounds=share,
                round_type=round_type,
                firing_order=i + 1,
                justification=f"Weighted distribution based on emitter priority ({weight:g}): {share} rounds",
            ))

    elif method is DistributionMethod.PRIORITY:
        ranking = sorted(range(emitter_count), key=lambda i: (-priorities.get(ids[i], 0.0), i))
        chunk = math.ceil(total_rounds / emitter_count)
        remaining = total_rounds
        for rank, i in enumerate(ranking):
            share = min(remaining, chunk)
            remaining -= share
            assignments.append(EmitterAssignment(
                emitter_id=ids[i],
                emitter_name=names[i],
                rounds=share,
                round_type=round_type,
                firing_order=rank + 1,
                justification=f"Priority assignment: rank {rank + 1} emitter receives {share} rounds",
            ))

    else:
        if method is DistributionMethod.CUSTOM:
            notice = CUSTOM_DISTRIBUTION_NOTICE
            logger.warning(notice)
        label = "Custom distribution (equal fallback)" if notice else "Equal distribution"
        for i, share in enumerate(_equal_shares(emitter_count, total_rounds)):
            assignments.append(EmitterAssignment(
                emitter_id=ids[i],
                emitter_name=names[i],
                rounds=share,
                round_type=round_type,
                firing_order=i + 1,
                justification=f"{label}: {share} rounds assigned",
            ))

    assigned = sum(a.rounds for a in assignments)
    if assigned != total_rounds:
        logger.info(
            f"{method.value} allocation assigns {assigned} rounds for a budget of {total_rounds} "
            f"(minimum one round per emitter)"
        )

    return RoundAllocation(
        total_rounds=total_rounds,
        method=method,
        assignments=assignments,
        firing_sequence=_firing_sequence(assignments, config.phase_interval_s),
        fallback_notice=notice,
    )


# =============================================================================
# FIRE COMMANDS
# =============================================================================

def generate_fire_commands(
    synchronized: SynchronizedSolution,
    allocation: RoundAllocation,
    round_type: Optional[str] = None,
) -> List[FireCommand]:
    """
    Fire command text for every emitter of a synchronized mission.

    Emitters missing from the allocation fire one round. The round type
    defaults to the one recorded in the allocation.
    """
    by_id: Dict[str, EmitterAssignment] = {a.emitter_id: a for a in allocation.assignments}
    commands = []

    for solution in synchronized.emitter_solutions:
        assignment = by_id.get(solution.emitter_id)
        rounds = assignment.rounds if assignment else 1
        label = round_type or (assignment.round_type if assignment else "HE")
        delay = f", Delay {solution.time_delay_s:g}s" if solution.time_delay_s > 0 else ""

        command = (
            f"{solution.emitter_name}, {rounds} rounds {label}, "
            f"Charge {solution.charge_level}, "
            f"Deflection {solution.azimuth_mils}, "
            f"Elevation {format_mils(solution.elevation_mils)}{delay}, "
            f"Fire when ready, Over"
        )
        commands.append(FireCommand(
            emitter_id=solution.emitter_id,
            emitter_name=solution.emitter_name,
            command=command,
        ))

    return commands
