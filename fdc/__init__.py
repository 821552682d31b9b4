"""Fire-direction calculation engine package."""

from .adjustment import AdjustedTarget, apply_observer_adjustment

from .config import EngineConfig

from .engine import FireDirectionEngine

from .errors import (
    ConfigError,
    FireDirectionError,
    FormatError,
    GridSquareError,
    InvalidAdjustmentError,
    InvalidAllocationError,
    InvalidFormationError,
    OutOfRangeError,
    UnknownMethodError,
    UnknownReferenceError,
)

from .firecontrol import (
    AdjustedFiringSolution,
    FireMissionOptions,
    FiringSolution,
    calculate_firing_solution,
    format_fire_command,
)

from .fpf import (
    # Types
    FPFPriority,
    FPFSector,
    FPFTarget,
    CoverageAnalysis,
    CoverageGap,
    SectorOverlap,
    FPFFireDistribution,
    # Planning
    create_default_sectors,
    assign_targets_to_sectors,
    analyze_coverage,
    calculate_fire_distribution,
    generate_tactical_recommendations,
)

from .geodesy import (
    FireMissionData,
    GridCoordinate,
    bearing,
    distance,
    fire_mission,
    format_grid,
    is_valid_grid,
    normalize,
    normalize_mils,
    project,
    reciprocal,
)

from .interpolation import InterpolationMethod, InterpolationResult, interpolate

from .multigun import (
    # Enums
    DistributionMethod,
    EmitterStatus,
    FormationKind,
    # Formation and synchronization
    EmitterFormation,
    EmitterPosition,
    EmitterSolution,
    SpreadPattern,
    SynchronizedSolution,
    # Allocation
    EmitterAssignment,
    FiringPhase,
    RoundAllocation,
    FireCommand,
    # Operations
    allocate_rounds,
    build_formation,
    generate_fire_commands,
    synchronize,
    validate_formation,
)

from .tables import (
    Ammunition,
    AmmunitionCategory,
    BallisticPoint,
    BallisticTable,
    WeaponSystem,
    load_ballistic_table,
)

from .tactics import TacticalMethod, TacticalSelection, select

__all__ = [
    # Engine
    "FireDirectionEngine",
    "EngineConfig",
    # Errors
    "ConfigError",
    "FireDirectionError",
    "FormatError",
    "GridSquareError",
    "InvalidAdjustmentError",
    "InvalidAllocationError",
    "InvalidFormationError",
    "OutOfRangeError",
    "UnknownMethodError",
    "UnknownReferenceError",
    # Adjustment
    "AdjustedTarget",
    "apply_observer_adjustment",
    # Solutions
    "AdjustedFiringSolution",
    "FireMissionOptions",
    "FiringSolution",
    "calculate_firing_solution",
    "format_fire_command",
    # FPF
    "FPFPriority",
    "FPFSector",
    "FPFTarget",
    "CoverageAnalysis",
    "CoverageGap",
    "SectorOverlap",
    "FPFFireDistribution",
    "create_default_sectors",
    "assign_targets_to_sectors",
    "analyze_coverage",
    "calculate_fire_distribution",
    "generate_tactical_recommendations",
    # Geodesy
    "FireMissionData",
    "GridCoordinate",
    "bearing",
    "distance",
    "fire_mission",
    "format_grid",
    "is_valid_grid",
    "normalize",
    "normalize_mils",
    "project",
    "reciprocal",
    # Interpolation
    "InterpolationMethod",
    "InterpolationResult",
    "interpolate",
    # Multi-emitter
    "DistributionMethod",
    "EmitterStatus",
    "FormationKind",
    "EmitterFormation",
    "EmitterPosition",
    "EmitterSolution",
    "SpreadPattern",
    "SynchronizedSolution",
    "EmitterAssignment",
    "FiringPhase",
    "RoundAllocation",
    "FireCommand",
    "allocate_rounds",
    "build_formation",
    "generate_fire_commands",
    "synchronize",
    "validate_formation",
    # Tables
    "Ammunition",
    "AmmunitionCategory",
    "BallisticPoint",
    "BallisticTable",
    "WeaponSystem",
    "load_ballistic_table",
    # Tactics
    "TacticalMethod",
    "TacticalSelection",
    "select",
]
