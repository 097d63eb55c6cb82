"""
Command-line interface for dataset generation.

Usage:
    python -m diffusion_dataset.cli --out data/train --traj-count 100 --t-steps 8
    python -m diffusion_dataset.cli --config configs/default.yaml --split val --traj-start 1000

Precedence: command-line flags > YAML config > built-in defaults.
"""

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import DatasetConfig, apply_overrides, load_config, config_from_mapping
from .exceptions import InvalidConfigurationError
from .logger import Logger
from .runner import run_generation


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate (input, target) pairs for 2D explicit diffusion"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to YAML configuration file"
    )
    parser.add_argument("--out", "-o", type=str, default=None,
                        help="Output directory (created if absent)")
    parser.add_argument("--split", type=str, default=None,
                        help="Split label written into meta.jsonl (train|val|test|ood)")
    parser.add_argument("--n", type=int, default=None, help="Grid size N (NxN), >= 3")
    parser.add_argument("--traj-start", type=int, default=None,
                        help="First absolute trajectory index")
    parser.add_argument("--traj-count", type=int, default=None,
                        help="Number of trajectories to generate")
    parser.add_argument("--t-steps", type=int, default=None,
                        help="Samples per trajectory")
    parser.add_argument("--alpha-min", type=float, default=None,
                        help="Diffusivity lower bound (sampled per trajectory)")
    parser.add_argument("--alpha-max", type=float, default=None,
                        help="Diffusivity upper bound, exclusive")
    parser.add_argument("--mu-set", type=str, default=None,
                        help='Comma-separated mu set, e.g. "2,5,10,20"')
    parser.add_argument("--s-ref", type=float, default=None,
                        help="Reference stability margin used for targets")
    parser.add_argument("--seed", type=int, default=None,
                        help="Base RNG seed (64-bit unsigned)")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log per-trajectory progress to stderr"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress output except errors; file log keeps INFO and above"
    )
    return parser


def resolve_config(args: argparse.Namespace) -> DatasetConfig:
    """
    Merge YAML config (if any) with command-line overrides and validate.

    Raises:
        InvalidConfigurationError: If the merged config is invalid.
        FileNotFoundError: If --config does not exist.
    """
    if args.config is not None:
        config = load_config(args.config, validate=False)
    else:
        config = config_from_mapping(None)

    apply_overrides(config, {
        "out": args.out,
        "split": args.split,
        "n": args.n,
        "traj_start": args.traj_start,
        "traj_count": args.traj_count,
        "t_steps": args.t_steps,
        "alpha_min": args.alpha_min,
        "alpha_max": args.alpha_max,
        "mu_set": args.mu_set,
        "s_ref": args.s_ref,
        "seed": args.seed,
    })
    config.require_valid()
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    Logger.configure(verbose=args.verbose, quiet=args.quiet)

    try:
        config = resolve_config(args)
    except FileNotFoundError:
        print(f"Error: Config file not found: {args.config}", file=sys.stderr)
        return 1
    except InvalidConfigurationError as e:
        Logger.log(str(e), Logger.LogPriority.ERROR)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        print("Generating diffusion dataset...")
        print(f"  Grid: {config.grid.n}x{config.grid.n}")
        print(f"  Trajectories: {config.trajectories.traj_start}.."
              f"{config.trajectories.traj_start + config.trajectories.traj_count - 1}"
              f" ({config.trajectories.traj_count})")
        print(f"  alpha in [{config.physics.alpha_min}, {config.physics.alpha_max}), "
              f"mu in {config.mu_values}, s_ref={config.physics.s_ref}")

    result = run_generation(config)

    if not args.quiet:
        print()
        print(f"Wrote dataset to: {config.output.out_dir}")
        print(
            f"Samples: {result.n_samples} (traj_count={config.trajectories.traj_count}"
            f" * t_steps={config.trajectories.t_steps})"
        )
        for ic_type, count in result.ic_type_counts.items():
            print(f"  {ic_type}: {count}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
