#!/usr/bin/env python3
"""
Compute a fire mission from the command line.

Loads a ballistic table JSON file, solves the mission from the firing
position to the target and prints the firing data and fire command. With
--guns > 1 the mission is synchronized across a formation; with --fpf the
default FPF sector plan is analyzed for the target.
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from fdc.config import EngineConfig
from fdc.engine import FireDirectionEngine
from fdc.errors import FireDirectionError
from fdc.firecontrol import FireMissionOptions, format_fire_command
from fdc.fpf import (
    FPFTarget,
    analyze_coverage,
    assign_targets_to_sectors,
    calculate_fire_distribution,
    create_default_sectors,
    generate_tactical_recommendations,
)
from fdc.logger import configure_logging
from fdc.multigun import DistributionMethod, FormationKind
from fdc.tables import load_ballistic_table
from fdc.tactics import TacticalMethod

DEFAULT_TABLE = project_root / "data" / "example_tables.json"


def print_solution(solution) -> None:
    print(f"  Target:        {solution.target_grid.grid}")
    print(f"  Range:         {solution.target_range_m:.0f} m")
    print(f"  Azimuth:       {solution.azimuth_mils} mils (back {solution.back_azimuth_mils})")
    print(f"  Elevation:     {solution.elevation_mils:g} mils")
    print(f"  {solution.charge_label}")
    print(f"  Time of flight: {solution.time_of_flight_s:g} s")
    print(f"  Dispersion:    {solution.dispersion_m:g} m")
    print(f"  Source:        {solution.source.value}")
    print(f"  Justification: {solution.justification}")


def main():
    parser = argparse.ArgumentParser(
        description="Compute firing data for a fire mission",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/fire_mission.py --from 1000010000 --target 1000011000
    python scripts/fire_mission.py --from 1000010000 --target 1000011500 --method efficiency
    python scripts/fire_mission.py --from 1000010000 --target 1000011000 --observer 1050010000 --adjust-range 100 --adjust-direction -20
    python scripts/fire_mission.py --from 1000010000 --target 1000012000 --guns 4 --formation arc --rounds 12
    python scripts/fire_mission.py --from 1000010000 --target 1000012000 --fpf
        """,
    )

    # Reference data
    parser.add_argument(
        "--table",
        default=str(DEFAULT_TABLE),
        help="Ballistic table JSON file (default: data/example_tables.json)",
    )
    parser.add_argument(
        "--config",
        help="Engine configuration JSON file",
    )
    parser.add_argument("--system", type=int, default=1, help="Weapon system id (default: 1)")
    parser.add_argument("--round", type=int, default=1, help="Ammunition id (default: 1)")

    # Mission
    parser.add_argument("--from", dest="firing_grid", required=True, help="Firing position grid")
    parser.add_argument("--target", required=True, help="Target grid")
    parser.add_argument(
        "--method",
        choices=[m.tag for m in TacticalMethod],
        default=TacticalMethod.STANDARD.tag,
        help="Tactical method (default: standard)",
    )
    parser.add_argument("--charge", type=int, help="Preferred charge")
    parser.add_argument("--max-dispersion", type=float, help="Dispersion ceiling for area_target (m)")

    # Observer adjustment
    parser.add_argument("--observer", help="Observer grid for an adjustment")
    parser.add_argument("--adjust-range", type=float, default=0.0, help="Range correction (m, + add / - drop)")
    parser.add_argument("--adjust-direction", type=float, default=0.0, help="Direction correction (mils, + right / - left)")

    # Multiple emitters
    parser.add_argument("--guns", type=int, default=1, help="Number of guns (default: 1)")
    parser.add_argument(
        "--formation",
        choices=[k.value for k in FormationKind],
        default=FormationKind.LINE.value,
        help="Formation kind (default: line)",
    )
    parser.add_argument("--spacing", type=float, default=50.0, help="Gun spacing in meters (default: 50)")
    parser.add_argument("--orientation", type=float, default=0.0, help="Formation orientation in mils (default: 0)")
    parser.add_argument("--rounds", type=int, default=3, help="Total rounds for the mission (default: 3)")
    parser.add_argument(
        "--distribution",
        choices=[d.value for d in DistributionMethod],
        default=DistributionMethod.EQUAL.value,
        help="Round distribution (default: equal)",
    )
    parser.add_argument("--independent-lookup", action="store_true", help="Table lookup per gun instead of linear correction")

    # FPF
    parser.add_argument("--fpf", action="store_true", help="Analyze the default FPF sector plan for the target")

    # Output
    parser.add_argument("--json", action="store_true", help="Print the firing solution as JSON")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    parser.add_argument("--log-file", help="Also write logs to this file")

    args = parser.parse_args()

    configure_logging(args.log_level, log_file=args.log_file)

    try:
        config = EngineConfig.from_json(args.config) if args.config else EngineConfig()
        engine = FireDirectionEngine(load_ballistic_table(args.table), config)
        options = FireMissionOptions(
            preferred_charge=args.charge,
            max_dispersion_m=args.max_dispersion,
            independent_lookup=args.independent_lookup,
        )

        target = args.target
        if args.observer:
            adjusted = engine.solve_with_adjustment(
                args.observer,
                args.firing_grid,
                args.target,
                args.system,
                args.round,
                args.adjust_range,
                args.adjust_direction,
                method=args.method,
                options=options,
            )
            print(f"Adjusted target: {adjusted.original_target_grid.grid} -> {adjusted.adjusted_target_grid.grid}")
            target = adjusted.adjusted_target_grid

        if args.guns > 1:
            formation = engine.build_formation(
                args.firing_grid, args.guns, args.formation, args.spacing, args.orientation
            )
            if formation.fallback_notice:
                print(f"Note: {formation.fallback_notice}")
            sync = engine.solve_multi_emitter(
                formation, target, args.system, args.round, method=args.method, options=options
            )
            allocation = engine.allocate_rounds(args.guns, args.rounds, args.distribution)

            print("=== Master Solution ===")
            print_solution(sync.master)
            print(f"\n=== {formation.count} Guns, {formation.kind.value} formation ===")
            print(f"  Spread: {sync.spread.width_m:g} m wide, {sync.spread.depth_m:g} m deep")
            for command in engine.fire_commands(sync, allocation):
                print(f"  {command.command}")
            return 0

        solution = engine.solve(
            args.firing_grid, target, args.system, args.round, method=args.method, options=options
        )

        if args.json:
            print(json.dumps(solution.to_dict(), indent=2))
        else:
            print("=== Firing Solution ===")
            print_solution(solution)
            print(f"\n{format_fire_command(solution, rounds=args.rounds)}")

        if args.fpf:
            fpf_target = FPFTarget.create("fpf-1", "FPF Alpha", target)
            sectors = assign_targets_to_sectors(args.firing_grid, [fpf_target], create_default_sectors())
            analysis = analyze_coverage(sectors)
            print("\n=== FPF Plan ===")
            print(f"  Coverage: {analysis.covered_mils} of 6400 mils, {len(analysis.gaps)} gaps")
            for entry in calculate_fire_distribution([fpf_target], sectors, args.guns):
                print(f"  {entry.justification}")
            notes = analysis.recommendations + generate_tactical_recommendations(
                [fpf_target], sectors, analysis, args.guns
            )
            for note in notes:
                print(f"  - {note}")

        return 0

    except (FireDirectionError, FileNotFoundError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
