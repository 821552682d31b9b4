"""
Fire-direction engine.

FireDirectionEngine is the caller-owned entry point: it holds one immutable
BallisticTable and an EngineConfig and exposes single-emitter solutions,
observer adjustment, multi-emitter synchronization, round allocation and
FPF pre-planning on top of them.

Usage:
    engine = FireDirectionEngine(load_ballistic_table("data/example_tables.json"))
    solution = engine.solve("1000010000", "1000020000", system_id=1, round_id=1)
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .adjustment import apply_observer_adjustment
from .config import EngineConfig
from .firecontrol import (
    AdjustedFiringSolution,
    FireMissionOptions,
    FiringSolution,
    calculate_firing_solution,
)
from .fpf import FPFTarget
from .geodesy import GridLike, azimuth_mils, normalize, round_half_up
from .interpolation import InterpolationResult, interpolate
from .logger import get_logger, log_calculation
from .multigun import (
    DistributionMethod,
    EmitterFormation,
    FireCommand,
    FormationKind,
    RoundAllocation,
    SynchronizedSolution,
    allocate_rounds,
    build_formation,
    ensure_valid_formation,
    generate_fire_commands,
    synchronize,
    validate_formation,
)
from .tables import Ammunition, BallisticPoint, BallisticTable, WeaponSystem
from .tactics import TacticalMethod

logger = get_logger(__name__)

MethodLike = Union[TacticalMethod, str]


def _as_method(method: MethodLike) -> TacticalMethod:
    if isinstance(method, TacticalMethod):
        return method
    return TacticalMethod.from_tag(method)


def _table_lookup(
    points: Sequence[BallisticPoint],
    charge_level: int,
) -> Callable[[float], InterpolationResult]:
    """Per-emitter table lookup at a whole-meter range, preferring one charge."""
    def lookup(range_m: float) -> InterpolationResult:
        return interpolate(points, float(round_half_up(range_m)), charge_level)
    return lookup


class FireDirectionEngine:
    """
    Fire-direction calculations over one ballistic table.

    All calculations are synchronous and side-effect free apart from
    logging. The table can be swapped for a refreshed snapshot with
    replace_table; calls already in progress keep the table they started with.
    """

    def __init__(self, table: BallisticTable, config: Optional[EngineConfig] = None):
        self._table = table
        self.config = config or EngineConfig()

    @classmethod
    def from_records(
        cls,
        systems: Iterable[WeaponSystem],
        rounds: Iterable[Ammunition],
        points: Iterable[BallisticPoint],
        config: Optional[EngineConfig] = None,
    ) -> 'FireDirectionEngine':
        """Build an engine from already-parsed reference records."""
        return cls(BallisticTable(systems, rounds, points), config)

    @property
    def table(self) -> BallisticTable:
        return self._table

    def replace_table(self, table: BallisticTable) -> None:
        """Swap in a refreshed table snapshot."""
        self._table = table
        logger.info(f"Ballistic table replaced: {table!r}")

    # -------------------------------------------------------------------------
    # Single emitter
    # -------------------------------------------------------------------------

    def solve(
        self,
        observer_grid: GridLike,
        target_grid: GridLike,
        system_id: int,
        round_id: int,
        method: MethodLike = TacticalMethod.STANDARD,
        options: Optional[FireMissionOptions] = None,
    ) -> FiringSolution:
        """
        Firing solution from a firing position to a target.

        Args:
            observer_grid: Firing position (the tube's location).
            target_grid: Target position.
            system_id: Weapon system id.
            round_id: Ammunition id.
            method: Tactical method or its tag.
            options: Charge preference and dispersion ceiling.

        Returns:
            FiringSolution with justification.

        Raises:
            FormatError: If a grid is malformed.
            UnknownReferenceError: If an id is not in the table.
            UnknownMethodError: If method is not a tactical method tag.
            OutOfRangeError: If no charge reaches the target.
        """
        table = self._table
        method = _as_method(method)
        system = table.system(system_id)
        ammunition = table.ammunition(round_id)

        solution = calculate_firing_solution(
            observer_grid,
            target_grid,
            table.points_for(system_id, round_id),
            system,
            ammunition,
            method=method,
            options=options,
            config=self.config,
        )

        log_calculation(
            logger,
            "firing_solution",
            inputs={
                "firing_grid": solution.firing_grid.grid,
                "target_grid": solution.target_grid.grid,
                "system_id": system_id,
                "round_id": round_id,
                "method": method.tag,
            },
            results={
                "azimuth_mils": solution.azimuth_mils,
                "elevation_mils": solution.elevation_mils,
                "charge_level": solution.charge_level,
                "source": solution.source.value,
            },
        )
        return solution

    def solve_with_adjustment(
        self,
        observer_grid: GridLike,
        firing_position_grid: GridLike,
        target_grid: GridLike,
        system_id: int,
        round_id: int,
        range_correction_m: float,
        direction_correction_mils: float,
        method: MethodLike = TacticalMethod.STANDARD,
        options: Optional[FireMissionOptions] = None,
    ) -> AdjustedFiringSolution:
        """
        Apply an observer correction and recompute from the firing position.

        The correction is relative to the observer's line of sight; the new
        solution is computed from the unchanged firing position to the
        adjusted target.

        Raises:
            InvalidAdjustmentError: If the correction gives a negative distance.
        """
        adjusted = apply_observer_adjustment(
            observer_grid, target_grid, range_correction_m, direction_correction_mils
        )
        solution = self.solve(
            firing_position_grid,
            adjusted.adjusted_target,
            system_id,
            round_id,
            method=method,
            options=options,
        )
        return AdjustedFiringSolution(
            solution=solution,
            original_target_grid=adjusted.original_target,
            adjusted_target_grid=adjusted.adjusted_target,
            range_correction_m=range_correction_m,
            direction_correction_mils=direction_correction_mils,
            observer_azimuth_to_original_target=azimuth_mils(observer_grid, adjusted.original_target),
        )

    def interpolate(self, system_id: int, round_id: int, range_m: float) -> InterpolationResult:
        """Firing data for a pairing at an arbitrary range."""
        return interpolate(self._table.points_for(system_id, round_id), range_m)

    def range_capability(self, system_id: int, round_id: int) -> Optional[Tuple[float, float]]:
        return self._table.range_capability(system_id, round_id)

    def is_range_supported(self, system_id: int, round_id: int, range_m: float) -> bool:
        return self._table.is_range_supported(system_id, round_id, range_m)

    # -------------------------------------------------------------------------
    # Multiple emitters
    # -------------------------------------------------------------------------

    def build_formation(
        self,
        base_grid: GridLike,
        count: int,
        kind: Union[FormationKind, str] = FormationKind.LINE,
        spacing_m: float = 50.0,
        orientation_mils: float = 0.0,
    ) -> EmitterFormation:
        return build_formation(base_grid, count, kind, spacing_m, orientation_mils, self.config)

    def validate_formation(self, formation: EmitterFormation) -> Tuple[bool, List[str]]:
        return validate_formation(formation, self.config)

    def synchronize(
        self,
        formation: EmitterFormation,
        target_grid: GridLike,
        master: FiringSolution,
        simultaneous: bool = True,
        independent_lookup: bool = False,
    ) -> SynchronizedSolution:
        """
        Synchronize a formation on a target from a master solution.

        With independent_lookup, each emitter's elevation and time of flight
        are read from the table at its own range, preferring the master's charge.
        """
        lookup = None
        if independent_lookup:
            lookup = _table_lookup(
                self._table.points_for(master.system.id, master.ammunition.id),
                master.charge_level,
            )

        return synchronize(
            formation,
            target_grid,
            master,
            simultaneous=simultaneous,
            lookup=lookup,
            config=self.config,
        )

    def solve_multi_emitter(
        self,
        formation: EmitterFormation,
        target_grid: GridLike,
        system_id: int,
        round_id: int,
        method: MethodLike = TacticalMethod.STANDARD,
        options: Optional[FireMissionOptions] = None,
        simultaneous: bool = True,
    ) -> SynchronizedSolution:
        """
        Master solution from emitter 1 plus synchronized data for every emitter.

        Raises:
            InvalidFormationError: If the formation fails validation.
            OutOfRangeError: If the master cannot reach the target.
        """
        options = options or FireMissionOptions()
        ensure_valid_formation(formation, self.config)

        master = self.solve(
            formation.master.grid, target_grid, system_id, round_id, method=method, options=options
        )
        sync = self.synchronize(
            formation,
            target_grid,
            master,
            simultaneous=simultaneous,
            independent_lookup=options.independent_lookup,
        )

        log_calculation(
            logger,
            "multi_emitter_solution",
            inputs={
                "formation": formation.kind.value,
                "emitters": formation.count,
                "target_grid": sync.target_grid.grid,
            },
            results={
                "total_time_of_flight_s": sync.total_time_of_flight_s,
                "spread_width_m": sync.spread.width_m,
                "spread_depth_m": sync.spread.depth_m,
            },
        )
        return sync

    def allocate_rounds(
        self,
        emitter_count: int,
        total_rounds: int,
        method: Union[DistributionMethod, str] = DistributionMethod.EQUAL,
        priorities: Optional[Mapping[str, float]] = None,
        round_type: str = "HE",
    ) -> RoundAllocation:
        return allocate_rounds(emitter_count, total_rounds, method, priorities, round_type, self.config)

    def fire_commands(
        self,
        synchronized: SynchronizedSolution,
        allocation: RoundAllocation,
        round_type: Optional[str] = None,
    ) -> List[FireCommand]:
        return generate_fire_commands(synchronized, allocation, round_type)

    # -------------------------------------------------------------------------
    # FPF
    # -------------------------------------------------------------------------

    def preplan_fpf(
        self,
        firing_grid: GridLike,
        targets: Sequence[FPFTarget],
        system_id: int,
        round_id: int,
        method: MethodLike = TacticalMethod.STANDARD,
        options: Optional[FireMissionOptions] = None,
    ) -> List[FPFTarget]:
        """
        Compute firing solutions for FPF targets ahead of time.

        Returns:
            Copies of the targets with ``preplanned`` filled in.

        Raises:
            OutOfRangeError: If any target cannot be reached.
        """
        origin = normalize(firing_grid)
        planned = [
            target.with_solution(
                self.solve(origin, target.target_grid, system_id, round_id, method, options)
            )
            for target in targets
        ]
        logger.info(f"Pre-planned {len(planned)} FPF targets from {origin.grid}")
        return planned

    def summary(self) -> Dict[str, Any]:
        """Counts of the reference data currently loaded."""
        return {
            "systems": len(self._table.systems),
            "rounds": len(self._table.rounds),
            "points": len(self._table),
            "config": self.config.to_dict(),
        }
