#!/usr/bin/env python3
"""
Multi-species Physarum Transport Network Simulation

Agents of several populations move on a toroidal grid, deposit trail,
sense a weighted mix of every population's trail and steer toward it.

Usage:
    physarum [--config configs/default.yaml] [options]

Examples:
    physarum --config configs/default.yaml
    physarum --populations 3 --steps 1000 --out-dir results/
    physarum --width 512 --height 512 --particles 100000 --seed 42
    physarum --config configs/default.yaml --snapshot-every 50 --stats
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from .config import (ConfigError, GridConfig, SimulationConfig, load_config)
from .utils import setup_logging
from .model.engine import Model
from .export.csv_writer import StatsWriter
from .export.palette import random_palette
from .export.visualizer import Visualizer
from .export.snapshot_queue import SnapshotQueue, ExportError
from .export.reporter import Reporter

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Multi-species Physarum Transport Network Simulation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    physarum --config configs/default.yaml
    physarum --populations 3 --steps 1000 --out-dir results/
    physarum --width 512 --height 512 --particles 100000 --seed 42
    physarum --config configs/default.yaml --snapshot-every 50 --stats
        """
    )

    parser.add_argument('--config', type=Path, default=None,
                        help='Path to YAML configuration file')

    # Optional overrides
    parser.add_argument('--steps', type=int, default=None,
                        help='Override iteration count')
    parser.add_argument('--width', type=int, default=None,
                        help='Override grid width')
    parser.add_argument('--height', type=int, default=None,
                        help='Override grid height')
    parser.add_argument('--particles', type=int, default=None,
                        help='Override total particle count')
    parser.add_argument('--populations', type=int, default=None,
                        help='Override number of populations')
    parser.add_argument('--diffusivity', type=int, default=None,
                        help='Override diffusion kernel radius')
    parser.add_argument('--workers', type=int, default=None,
                        help='Worker threads (default: CPU count)')
    parser.add_argument('--out-dir', type=Path, default=None,
                        help='Output directory for images (default: ./output)')

    # Export toggles
    parser.add_argument('--snapshot-every', type=int, default=None,
                        help='Render every N iterations (0: final state only)')
    parser.add_argument('--stats', dest='stats', action='store_true', default=None,
                        help='Write per-iteration field statistics CSV')
    parser.add_argument('--no-stats', dest='stats', action='store_false',
                        help='Disable statistics CSV')

    parser.add_argument('--quiet', action='store_true', default=False,
                        help='Suppress progress output')
    parser.add_argument('--log-level', default=None,
                        help='Logging level (DEBUG, INFO, WARNING, ...)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for reproducibility')

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> SimulationConfig:
    """Load the config file, if any, and apply CLI overrides."""
    if args.config is not None:
        config = load_config(args.config)
    else:
        config = SimulationConfig(grid=GridConfig(width=1024, height=1024))

    if args.steps is not None:
        config.iterations = args.steps
    if args.width is not None:
        config.grid.width = args.width
    if args.height is not None:
        config.grid.height = args.height
    if args.particles is not None:
        config.particles = args.particles
    if args.populations is not None:
        config.populations = args.populations
    if args.diffusivity is not None:
        config.diffusivity = args.diffusivity
    if args.workers is not None:
        config.workers = args.workers
    if args.snapshot_every is not None:
        config.export.snapshot_interval = args.snapshot_every
    if args.stats is not None:
        config.export.stats_enabled = args.stats
    if args.seed is not None:
        config.seed = args.seed
    if args.log_level is not None:
        config.logging.level = args.log_level.upper()
    if args.out_dir is not None:
        config.out_dir = args.out_dir
    config.quiet = args.quiet

    config.validate()
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = build_config(args)
    except FileNotFoundError:
        print(f"Error: Configuration file not found: {args.config}", file=sys.stderr)
        return 1
    except ConfigError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging, quiet=config.quiet)

    if not config.quiet:
        print("Initializing simulation...")
        print(f"  Grid: {config.grid.width}x{config.grid.height}")
        print(f"  Populations: {config.populations}")
        print(f"  Particles: {config.particles}")
        print(f"  Iterations: {config.iterations}")

    palette_rng = np.random.default_rng(config.seed)
    colors = random_palette(config.populations, palette_rng)
    visualizer = Visualizer(colors, quantile=config.export.quantile)
    reporter = Reporter(str(args.config) if args.config else None, config.seed)
    interval = config.export.snapshot_interval

    stats_writer = None
    if config.export.stats_enabled:
        stats_writer = StatsWriter(config.out_dir / 'field_stats.csv')
        stats_writer.open()

    try:
        with Model(config) as model, \
                SnapshotQueue(visualizer, config.out_dir,
                              config.export.queue_size) as snapshots:
            if not config.quiet:
                print(f"  Spawned: {len(model.agents)} agents")
                print("\nRunning simulation...")

            def after_step(m: Model) -> None:
                if stats_writer:
                    stats = m.stats(config.export.quantile)
                    reporter.update(stats)
                    stats_writer.append(stats)
                if interval and m.iteration % interval == 0 \
                        and m.iteration < config.iterations:
                    snapshots.put(m.snapshot())
                if not config.quiet and m.iteration % 100 == 0:
                    print(f"  Iteration {m.iteration}/{config.iterations}")

            try:
                model.run(config.iterations, after_step)
            except KeyboardInterrupt:
                model.finalize()
                if not config.quiet:
                    print("\nSimulation interrupted by user.")

            if not stats_writer:
                reporter.update(model.stats(config.export.quantile))
            snapshots.put(model.snapshot())
            images = snapshots.close()

            if not config.quiet:
                print(reporter.generate_summary(
                    model,
                    config.out_dir,
                    images,
                    stats_writer.output_path if stats_writer else None,
                    visualizer.describe_colors()
                ))
    except ExportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if stats_writer:
            stats_writer.close()

    return 0


if __name__ == '__main__':
    sys.exit(main())
