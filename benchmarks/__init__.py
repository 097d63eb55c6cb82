"""
Benchmarks for the diffusion solver.

Run directly:
    python benchmarks/benchmark_performance.py
"""

__all__ = [
    "run_benchmark_suite",
    "benchmark_macro_steps",
    "create_seeded_solver",
]


def __getattr__(name):
    """Lazy import so importing the package does not pull numpy."""
    if name in __all__:
        from . import benchmark_performance
        return getattr(benchmark_performance, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
