"""
Pytest configuration for diffusion_dataset tests.

Puts src/ on sys.path so the tests run from a plain checkout, and resets
the process-wide Logger between tests.
"""

import sys
import os

import pytest

# Add src/ to sys.path for imports
_src_root = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src")
if _src_root not in sys.path:
    sys.path.insert(0, _src_root)

from diffusion_dataset.config import DatasetConfig, GridConfig, TrajectoryConfig, OutputConfig
from diffusion_dataset.logger import Logger


@pytest.fixture(autouse=True)
def _reset_logger():
    Logger.reset()
    yield
    Logger.reset()


@pytest.fixture
def small_config(tmp_path):
    """8x8 grid, 3 trajectories x 4 steps, writing under tmp_path/out."""
    return DatasetConfig(
        grid=GridConfig(n=8),
        trajectories=TrajectoryConfig(traj_start=0, traj_count=3, t_steps=4),
        output=OutputConfig(out_dir=str(tmp_path / "out"), split="train")
    )
