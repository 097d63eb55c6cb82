"""
Trajectory and sample records.

A trajectory owns one solver for its lifetime; a sample is one
(input, target) pair plus the parameters that produced it.
"""

import numpy as np
from dataclasses import dataclass, asdict

from .initial_conditions import ICVariant


@dataclass
class TrajectoryState:
    """
    Per-trajectory draws.

    Attributes:
        traj_idx: Absolute trajectory index (traj_start + local index).
        traj_seed: Seed of the trajectory's random stream.
        alpha: Sampled diffusivity (float32 value).
        ic_type: Initial-condition variant.
        ic_field: Normalized n * n initial field, before boundary enforcement.
    """
    traj_idx: int
    traj_seed: int
    alpha: float
    ic_type: ICVariant
    ic_field: np.ndarray


@dataclass(frozen=True)
class SampleRecord:
    """
    Provenance of one emitted sample.

    Field order is the metadata row key order.
    """
    global_sample_idx: int
    split: str
    traj_idx: int
    step_idx: int
    base_seed: int
    traj_seed: int
    n: int
    dx: float
    alpha: float
    mu: float
    tau: float
    s_ref: float
    k_used_ref: int
    ic_type: str

    def to_dict(self) -> dict:
        return asdict(self)
