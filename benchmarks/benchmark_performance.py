"""
Performance benchmarks for the diffusion solver.

Measures:
- Stencil substeps per second for several grid sizes
- Cost of one macro step with the run margin vs the reference margin

Usage:
    python benchmarks/benchmark_performance.py
"""

import sys
import time
from pathlib import Path

# Allow running from a source checkout without installing
_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(_src))

import numpy as np

from diffusion_dataset.solver import DiffusionSolver
from diffusion_dataset.initial_conditions import ICVariant, generate_ic


def create_seeded_solver(n: int, alpha: float = 0.2, mu: float = 10.0, seed: int = 0) -> DiffusionSolver:
    """Solver loaded with a Gaussian-blob initial condition."""
    rng = np.random.default_rng(seed)
    solver = DiffusionSolver(n)
    solver.set_alpha(alpha)
    solver.set_mu(mu)
    solver.load_field(generate_ic(rng, n, ICVariant.GAUSSIANS))
    solver.finalize_ic()
    return solver


def benchmark_macro_steps(
    n: int,
    margin: str = "ref",
    n_steps: int = 20,
    warmup_steps: int = 2
) -> dict:
    """
    Benchmark macro steps for one grid size.

    Args:
        n: Grid side length.
        margin: "run" or "ref".
        n_steps: Number of macro steps to time.
        warmup_steps: Warmup steps (not counted).

    Returns:
        Dict with timing results.
    """
    solver = create_seeded_solver(n)
    step = solver.step_tau_ref if margin == "ref" else solver.step_tau_run

    for _ in range(warmup_steps):
        step()

    substeps = 0
    start_time = time.perf_counter()
    for _ in range(n_steps):
        info = step()
        substeps += info.k
    elapsed = time.perf_counter() - start_time

    return {
        "n": n,
        "margin": margin,
        "n_steps": n_steps,
        "k_per_step": substeps // max(1, n_steps),
        "elapsed_sec": elapsed,
        "substeps_per_sec": substeps / elapsed,
        "ms_per_macro_step": (elapsed / n_steps) * 1e3,
    }


def run_benchmark_suite():
    """Run full benchmark suite and print results."""
    print("=" * 70)
    print("DIFFUSION SOLVER PERFORMANCE BENCHMARK")
    print("=" * 70)
    print()

    grid_sizes = [32, 64, 128, 256]
    results = {}

    for margin in ("run", "ref"):
        print(f"MARGIN: s_{margin}")
        print("-" * 70)
        print(f"{'N':>8} {'k/step':>10} {'substeps/sec':>16} {'ms/step':>12}")
        print("-" * 70)

        results[margin] = []
        for n in grid_sizes:
            result = benchmark_macro_steps(n, margin)
            results[margin].append(result)
            print(f"{n:>8} {result['k_per_step']:>10} {result['substeps_per_sec']:>16.1f} "
                  f"{result['ms_per_macro_step']:>12.2f}")
        print()

    print("=" * 70)
    return results


if __name__ == "__main__":
    run_benchmark_suite()
