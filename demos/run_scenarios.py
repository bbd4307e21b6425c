#!/usr/bin/env python3
"""
RUN_SCENARIOS: Solve the Built-In Scenarios
===========================================

Builds one (or every) scenario from mini_fabrik.scenarios, solves it for
each of its targets, and prints how close each chain got.

Run with:
    python demos/run_scenarios.py --list
    python demos/run_scenarios.py --scenario 6 --plot
    python demos/run_scenarios.py --all -v
"""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from mini_fabrik.scenarios import SCENARIOS
from mini_fabrik.viz import plot_chains_2d, plot_chains_3d


def setup_logging(level=logging.INFO, component_levels=None):
    """
    Configure the root logger for the demo.

    :param level: Default logging level for the root logger.
    :param component_levels: Dict of logger names to levels, e.g. {'mini_fabrik.kernel': logging.DEBUG}
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )
    if component_levels:
        for component, comp_level in component_levels.items():
            logging.getLogger(component).setLevel(comp_level)


def print_header(text: str):
    """Print a formatted section header."""
    print("\n" + "=" * 60)
    print(f"  {text}")
    print("=" * 60)


def run_scenario(number: int, plot: bool = False, outdir: str = "artifacts") -> None:
    title, build = SCENARIOS[number]
    print_header(f"SCENARIO {number}: {title}")

    structure, targets = build()
    print(f"Chains: {structure.num_chains}, connections: {len(structure.connections)}")

    for target in targets:
        distances = structure.solve_for_target(target)
        print(f"\nTarget {np.round(target, 2)}")
        for i, (chain, distance) in enumerate(zip(structure.chains, distances)):
            aim = "embedded" if chain.embedded_target_mode else "shared"
            print(f"  chain {i} ({chain.name}, {aim} target): "
                  f"distance {distance:8.3f}, reach {chain.chain_length:7.2f}, "
                  f"effector {np.round(chain.effector_location, 2)}")

    if plot:
        outpath = str(Path(outdir) / f"scenario_{number:02d}.png")
        plot_fn = plot_chains_2d if structure.dim == 2 else plot_chains_3d
        plot_fn(structure.chains, targets[-1], outpath, title=title)
        print(f"\n✓ Saved {outpath}")


def main():
    parser = argparse.ArgumentParser(description="Solve the built-in FABRIK scenarios.")
    parser.add_argument("--scenario", "-s", type=int, default=1, help="Scenario number (see --list)")
    parser.add_argument("--all", action="store_true", help="Run every scenario")
    parser.add_argument("--list", action="store_true", help="List scenarios and exit")
    parser.add_argument("--plot", action="store_true", help="Save a plot of the final pose")
    parser.add_argument("--outdir", default="artifacts", help="Directory for plots")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log solver details")
    args = parser.parse_args()

    setup_logging(
        level=logging.INFO,
        component_levels={'mini_fabrik': logging.DEBUG if args.verbose else logging.WARNING},
    )

    if args.list:
        for number, (title, _) in SCENARIOS.items():
            print(f"{number:3d}  {title}")
        return

    if args.all:
        numbers = list(SCENARIOS)
    elif args.scenario in SCENARIOS:
        numbers = [args.scenario]
    else:
        parser.error(f"Unknown scenario {args.scenario}, choose from {sorted(SCENARIOS)}")

    for number in numbers:
        run_scenario(number, plot=args.plot, outdir=args.outdir)


if __name__ == "__main__":
    main()
