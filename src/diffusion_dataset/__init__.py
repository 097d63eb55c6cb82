"""
Diffusion Dataset Generator

Synthetic supervised-learning pairs for 2D linear diffusion:
explicit 5-point stencil on an n x n unit-square grid, zero Dirichlet
boundary, randomized initial conditions, parameter-labeled samples.

Units:
    - Length: domain side = 1, dx = 1 / (n - 1)
    - Time: tau = mu * dx^2 / alpha
    - Field: dimensionless, clamped to [0, 1]
"""

__version__ = "0.1.0"

from .exceptions import InvalidConfigurationError, InvalidGridSizeError
from .solver import DiffusionSolver, StepInfo, expected_substeps
from .initial_conditions import (
    ICVariant,
    generate_ic,
    sample_ic_variant,
    normalize_01,
    box_blur
)
from .state import SampleRecord, TrajectoryState
from .runner import (
    DatasetRunner,
    GenerationResult,
    derive_traj_seed,
    run_generation,
    TRAJ_SEED_MIX
)
from .exporters import DatasetWriter, META_FIELDS, export_run_info
from .dataset import LoadedDataset, load_dataset

# Config exports
from .config import (
    DatasetConfig,
    GridConfig,
    TrajectoryConfig,
    PhysicsConfig,
    SamplingConfig,
    OutputConfig,
    load_config,
    parse_mu_set
)
