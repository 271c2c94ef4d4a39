#!/usr/bin/env python3
"""
Contagion Simulation

Agent-based epidemic spread across eight communities and a quarantine ward.

Usage:
    python -m contagion_sim.main [--config configs/default.yaml] [options]

Examples:
    python -m contagion_sim.main
    python -m contagion_sim.main --config configs/quarantine.yaml --gif --out-dir results/
    python -m contagion_sim.main --config configs/default.yaml --no-csv --no-snapshot --quiet
    python -m contagion_sim.main --quarantine --effectiveness 90 --seed 42
"""

import argparse
import sys
from pathlib import Path
from typing import List

from contagion_sim.config import SimulationConfig, load_config, validate_config
from contagion_sim.model.agent import StateInvariantError
from contagion_sim.model.engine import SimulationEngine
from contagion_sim.model.state import SimulationState
from contagion_sim.export.csv_writer import AGENT_FIELDS, CSVWriter
from contagion_sim.export.visualizer import Visualizer
from contagion_sim.export.reporter import Reporter

# Advance calls between progress lines and between GIF frames
PROGRESS_EVERY = 100
FRAME_EVERY = 5


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Agent-based contagion simulation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m contagion_sim.main
    python -m contagion_sim.main --config configs/quarantine.yaml --gif --out-dir results/
    python -m contagion_sim.main --config configs/default.yaml --no-csv --no-snapshot --quiet
    python -m contagion_sim.main --quarantine --effectiveness 90 --seed 42
        """
    )

    parser.add_argument('--config', type=Path, default=None,
                        help='Path to YAML configuration file (default: built-in defaults)')

    # Optional overrides
    parser.add_argument('--ticks', type=int, default=None,
                        help='Override max simulation ticks')
    parser.add_argument('--speed', type=int, default=None,
                        help='Ticks per advance call (1-10)')
    parser.add_argument('--out-dir', type=Path, default=Path('./output'),
                        help='Output directory for exports (default: ./output)')

    parser.add_argument('--quarantine', dest='quarantine', action='store_true', default=None,
                        help='Enable automatic quarantine')
    parser.add_argument('--no-quarantine', dest='quarantine', action='store_false',
                        help='Disable automatic quarantine')
    parser.add_argument('--effectiveness', type=float, default=None,
                        help='Quarantine detection effectiveness in percent (0-100)')

    # Export toggles
    parser.add_argument('--csv', dest='csv', action='store_true', default=None,
                        help='Enable history CSV export (default)')
    parser.add_argument('--no-csv', dest='csv', action='store_false',
                        help='Disable history CSV export')

    parser.add_argument('--agent-log', action='store_true', default=False,
                        help='Write per-agent positions and statuses to CSV')

    parser.add_argument('--snapshot', dest='snapshot', action='store_true', default=None,
                        help='Enable final snapshot (default)')
    parser.add_argument('--no-snapshot', dest='snapshot', action='store_false',
                        help='Disable final snapshot')

    parser.add_argument('--chart', dest='chart', action='store_true', default=None,
                        help='Enable compartment chart (default)')
    parser.add_argument('--no-chart', dest='chart', action='store_false',
                        help='Disable compartment chart')

    parser.add_argument('--gif', action='store_true', default=False,
                        help='Enable GIF animation export')

    parser.add_argument('--quiet', action='store_true', default=False,
                        help='Suppress stdout output')

    parser.add_argument('--validate', action='store_true', default=False,
                        help='Check agent invariants after every tick')

    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for reproducibility')

    return parser.parse_args(argv)


def apply_overrides(config: SimulationConfig, args: argparse.Namespace) -> None:
    """Apply CLI overrides on top of the loaded configuration."""
    if args.ticks is not None:
        config.max_ticks = args.ticks
    if args.speed is not None:
        config.speed = args.speed
    if args.quarantine is not None:
        config.quarantine.enabled = args.quarantine
    if args.effectiveness is not None:
        config.quarantine.effectiveness = args.effectiveness
    if args.csv is not None:
        config.csv_enabled = args.csv
    if args.agent_log:
        config.agent_log_enabled = True
    if args.snapshot is not None:
        config.snapshot_enabled = args.snapshot
    if args.chart is not None:
        config.chart_enabled = args.chart
    if args.gif:
        config.gif_enabled = True
    if args.validate:
        config.validate = True
    config.quiet = args.quiet
    if args.seed is not None:
        config.seed = args.seed
    config.out_dir = args.out_dir


def _announce(config: SimulationConfig) -> None:
    epidemic = config.epidemic
    print("Setting up contagion run")
    print(f"  Agents: {config.agent_count} ({epidemic.initial_infected} infected)")
    print(f"  Max ticks: {config.max_ticks} ({config.speed} per step)")
    print(f"  Infection: radius {epidemic.infection_radius}, "
          f"probability {epidemic.infection_probability}")
    if config.quarantine.enabled:
        print(f"  Quarantine: on ({config.quarantine.effectiveness}% detected)")
    else:
        print("  Quarantine: off")


def _open_writers(config: SimulationConfig) -> List[CSVWriter]:
    writers = []
    if config.csv_enabled:
        writers.append(CSVWriter(config.out_dir / 'history.csv'))
    if config.agent_log_enabled:
        writers.append(CSVWriter(config.out_dir / 'agents.csv', AGENT_FIELDS))
    for writer in writers:
        writer.open()
    return writers


def run(engine: SimulationEngine, config: SimulationConfig,
        writers: List[CSVWriter], visualizer: Visualizer,
        reporter: Reporter) -> SimulationState:
    """Advance until the run is finished or interrupted; return the last state."""
    last = engine.snapshot()
    step = 0
    try:
        while not engine.is_finished():
            last = engine.advance()
            step += 1

            for writer in writers:
                if writer.fieldnames == AGENT_FIELDS:
                    writer.append_agents(last)
                else:
                    writer.append(last)

            # Every FRAME_EVERY steps, plus the final one
            if config.gif_enabled and (step % FRAME_EVERY == 0 or engine.is_finished()):
                visualizer.buffer_frame(last)

            reporter.update(last)

            if not config.quiet and step % PROGRESS_EVERY == 0:
                c = last.counts
                print(f"  Tick {last.tick}: {c.infected} infected, {c.exposed} exposed, "
                      f"{c.dead} dead, Rt {last.rt:.2f}")
    except KeyboardInterrupt:
        if not config.quiet:
            print("\nInterrupted; writing what was simulated so far.")
    return last


def write_outputs(engine: SimulationEngine, config: SimulationConfig,
                  final_state: SimulationState, visualizer: Visualizer) -> None:
    """Render the image exports enabled in the configuration."""
    out = config.out_dir
    saved = []

    if config.snapshot_enabled:
        visualizer.save_snapshot(final_state, out / 'final_state.png')
        saved.append(out / 'final_state.png')

    if config.chart_enabled and engine.history:
        visualizer.save_history_chart(engine.history, out / 'history.png')
        saved.append(out / 'history.png')

    if config.gif_enabled:
        if not config.quiet:
            print(f"Encoding {len(visualizer.frames)} frames")
        visualizer.generate_gif(out / 'simulation.gif', fps=10)
        saved.append(out / 'simulation.gif')

    if not config.quiet:
        for path in saved:
            print(f"Wrote {path}")


def main(argv=None) -> int:
    """Run one simulation from the command line; returns the exit status."""
    args = parse_args(argv)

    try:
        config = load_config(args.config) if args.config else SimulationConfig()
        apply_overrides(config, args)
        validate_config(config)
    except FileNotFoundError:
        print(f"Error: config file not found: {args.config}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    if not config.quiet:
        _announce(config)

    engine = SimulationEngine(config)
    writers = _open_writers(config)
    visualizer = Visualizer(config.epidemic.infection_radius)
    reporter = Reporter(str(args.config) if args.config else None, config.seed)

    if not config.quiet:
        print("\nSimulating...")
    try:
        final_state = run(engine, config, writers, visualizer, reporter)
    except StateInvariantError as e:
        print(f"Error: simulation state is inconsistent: {e}", file=sys.stderr)
        return 1
    finally:
        for writer in writers:
            writer.close()

    if not config.quiet:
        for writer in writers:
            print(f"\nWrote {writer.output_path}")
    write_outputs(engine, config, final_state, visualizer)

    if not config.quiet:
        print(reporter.generate_summary(
            final_state,
            engine.get_summary(),
            config.out_dir,
            config.csv_enabled,
            config.snapshot_enabled,
            config.chart_enabled,
            config.gif_enabled,
            config.agent_log_enabled
        ))

    return 0


if __name__ == '__main__':
    sys.exit(main())
