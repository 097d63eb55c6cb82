"""
Trajectory sampling and dataset generation.

Orchestrates seed derivation, parameter/IC sampling, solver rollout and
serialization. Execution is single-threaded and strictly ordered, so a
fixed config reproduces identical output streams.
"""

import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional, Tuple

import numpy as np

from .config import DatasetConfig
from .exporters import DatasetWriter, RUN_INFO_FILE, export_run_info
from .initial_conditions import generate_ic, sample_ic_variant
from .logger import Logger
from .solver import DiffusionSolver
from .state import SampleRecord, TrajectoryState


# 64-bit golden-ratio constant, multiplied by the trajectory index
TRAJ_SEED_MIX = 0x9E3779B97F4A7C15
_U64_MASK = (1 << 64) - 1


def derive_traj_seed(base_seed: int, traj_idx: int) -> int:
    """
    Per-trajectory seed: base_seed XOR (traj_idx * TRAJ_SEED_MIX mod 2^64).

    Depends only on the absolute trajectory index, so any index range
    can be regenerated on its own.
    """
    return (int(base_seed) ^ ((int(traj_idx) * TRAJ_SEED_MIX) & _U64_MASK)) & _U64_MASK


@dataclass
class GenerationResult:
    """
    Summary of a generation run.

    Attributes:
        config: Configuration used.
        n_samples: Number of samples emitted.
        n_trajectories: Number of trajectories simulated.
        first_global_idx: Global index of the first sample.
        ic_type_counts: Trajectories per initial-condition variant.
        k_used_total: Sum of reference substeps over all samples.
        elapsed_s: Wall-clock duration.
        paths: Output file paths (empty for in-memory runs).
    """
    config: DatasetConfig
    n_samples: int
    n_trajectories: int
    first_global_idx: int
    ic_type_counts: Dict[str, int]
    k_used_total: int
    elapsed_s: float
    paths: Dict[str, str] = field(default_factory=dict)


class DatasetRunner:
    """
    Generates (input, target) samples for a trajectory range.
    """

    def __init__(
        self,
        config: DatasetConfig,
        progress_cb: Optional[Callable[[int, int], None]] = None
    ):
        """
        Validate configuration; no solver or file is created here.

        Args:
            config: Complete generation configuration.
            progress_cb: Called as progress_cb(done, total) after each trajectory.

        Raises:
            InvalidConfigurationError: If the configuration is invalid.
        """
        config.require_valid()
        self.config = config
        self.progress_cb = progress_cb
        self.mu_values = config.mu_values

        self.ic_type_counts: Counter = Counter()
        self.n_trajectories = 0

    def sample_trajectory(self, traj_idx: int) -> Tuple[TrajectoryState, np.random.Generator]:
        """
        Draw alpha and the initial condition for one trajectory.

        Returns the trajectory state and its random stream, positioned
        after the IC draws (the mu draws continue from there).
        """
        physics = self.config.physics
        traj_seed = derive_traj_seed(self.config.sampling.seed, traj_idx)
        rng = np.random.default_rng(traj_seed)

        alpha_hi = np.float32(physics.alpha_max)
        alpha = np.float32(rng.uniform(physics.alpha_min, physics.alpha_max))
        if alpha >= alpha_hi:
            # float32 rounding must not reach the open upper bound
            alpha = np.nextafter(alpha_hi, np.float32(physics.alpha_min))

        variant = sample_ic_variant(rng)
        ic_field = generate_ic(rng, self.config.grid.n, variant)

        state = TrajectoryState(
            traj_idx=traj_idx,
            traj_seed=traj_seed,
            alpha=float(alpha),
            ic_type=variant,
            ic_field=ic_field
        )
        return state, rng

    def build_solver(self, traj: TrajectoryState) -> DiffusionSolver:
        """Fresh solver seeded with the trajectory's IC, boundary finalized."""
        solver = DiffusionSolver(self.config.grid.n)
        solver.set_alpha(traj.alpha)
        solver.set_s_ref(self.config.physics.s_ref)
        solver.load_field(traj.ic_field)
        solver.finalize_ic()
        return solver

    def rollout(
        self,
        traj: TrajectoryState,
        rng: np.random.Generator,
        solver: DiffusionSolver,
        first_global_idx: int
    ) -> Iterator[Tuple[SampleRecord, np.ndarray, np.ndarray]]:
        """
        Roll one trajectory forward t_steps reference steps.

        Yields:
            (record, u_in, u_out) per step, global indices starting at
            first_global_idx.
        """
        n = self.config.grid.n
        dx = solver.get_dx()
        for step_idx in range(self.config.trajectories.t_steps):
            mu = self.mu_values[int(rng.integers(len(self.mu_values)))]
            solver.set_mu(mu)

            u_in = solver.clone_field()
            info = solver.step_tau_ref()
            u_out = solver.clone_field()

            record = SampleRecord(
                global_sample_idx=first_global_idx + step_idx,
                split=self.config.output.split,
                traj_idx=traj.traj_idx,
                step_idx=step_idx,
                base_seed=self.config.sampling.seed,
                traj_seed=traj.traj_seed,
                n=n,
                dx=dx,
                alpha=solver.get_alpha(),
                mu=solver.get_mu(),
                tau=info.tau,
                s_ref=solver.get_s_ref(),
                k_used_ref=info.k,
                ic_type=traj.ic_type.value
            )
            yield record, u_in, u_out

    def iter_samples(self) -> Iterator[Tuple[SampleRecord, np.ndarray, np.ndarray]]:
        """
        Generate every sample of the configured range in order, without I/O.

        Yields:
            (record, u_in, u_out) with contiguous global indices.
        """
        trajectories = self.config.trajectories
        global_idx = self.config.sampling.global_index_base

        self.ic_type_counts = Counter()
        self.n_trajectories = 0

        for local_traj in range(trajectories.traj_count):
            traj_idx = trajectories.traj_start + local_traj

            traj, rng = self.sample_trajectory(traj_idx)
            solver = self.build_solver(traj)
            self.ic_type_counts[traj.ic_type.value] += 1

            Logger.log(
                f"trajectory {traj_idx}: seed={traj.traj_seed} alpha={traj.alpha:.6g} "
                f"ic={traj.ic_type.value}"
            )

            for sample in self.rollout(traj, rng, solver, global_idx):
                yield sample
            global_idx += trajectories.t_steps

            self.n_trajectories += 1
            if self.progress_cb is not None:
                self.progress_cb(local_traj + 1, trajectories.traj_count)

    def run(self) -> GenerationResult:
        """
        Generate the dataset into config.output.out_dir.

        Returns:
            GenerationResult with counts and output paths.

        Raises:
            OSError: If the output directory or files cannot be written.
        """
        out_dir = Path(self.config.output.out_dir)
        t0 = time.perf_counter()

        Logger.log(
            f"start run: out={out_dir} traj=[{self.config.trajectories.traj_start}, "
            f"+{self.config.trajectories.traj_count}) t_steps={self.config.trajectories.t_steps}",
            Logger.LogPriority.INFO
        )

        n_samples = 0
        k_used_total = 0
        with DatasetWriter(out_dir) as writer:
            for record, u_in, u_out in self.iter_samples():
                writer.write_sample(record, u_in, u_out)
                n_samples += 1
                k_used_total += record.k_used_ref
            writer.flush()
            paths = writer.paths

        result = GenerationResult(
            config=self.config,
            n_samples=n_samples,
            n_trajectories=self.n_trajectories,
            first_global_idx=self.config.sampling.global_index_base,
            ic_type_counts=dict(sorted(self.ic_type_counts.items())),
            k_used_total=k_used_total,
            elapsed_s=time.perf_counter() - t0,
            paths=paths
        )

        if self.config.output.write_run_info:
            info_path = out_dir / RUN_INFO_FILE
            export_run_info(result, info_path)
            result.paths["run_info"] = str(info_path)

        Logger.log(
            f"end run: {n_samples} samples from {self.n_trajectories} trajectories "
            f"in {result.elapsed_s:.2f}s",
            Logger.LogPriority.INFO
        )
        return result


def run_generation(
    config: DatasetConfig,
    progress_cb: Optional[Callable[[int, int], None]] = None
) -> GenerationResult:
    """
    Convenience function to generate a dataset from config.

    Args:
        config: Generation configuration.
        progress_cb: Optional per-trajectory progress callback.

    Returns:
        Generation result.
    """
    runner = DatasetRunner(config, progress_cb=progress_cb)
    return runner.run()
