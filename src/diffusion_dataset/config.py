"""
Configuration loading and validation for dataset generation.

Loads YAML config and validates every parameter before any solver is
constructed or any output file is touched.
"""

import math

import numpy as np
import yaml
from dataclasses import dataclass, field
from typing import Optional, Any
from pathlib import Path

from .exceptions import InvalidConfigurationError


SEED_LIMIT = 2 ** 64


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_mu_set(text: str) -> list[float]:
    """
    Parse a comma-separated set of jump factors.

    Empty parts are skipped; the result is sorted ascending with
    duplicates removed.

    Args:
        text: e.g. "2,5,10,20".

    Returns:
        Sorted, deduplicated list of non-negative floats.

    Raises:
        InvalidConfigurationError: On unparsable or negative values, or
            when nothing remains after parsing.
    """
    values = []
    for part in str(text).split(","):
        p = part.strip()
        if not p:
            continue
        try:
            v = float(p)
        except ValueError:
            raise InvalidConfigurationError(f"mu_set: cannot parse {p!r} as a number")
        if v != v:
            raise InvalidConfigurationError("mu_set cannot contain NaN")
        if v < 0.0:
            raise InvalidConfigurationError("mu_set cannot contain negative values")
        values.append(v)

    out = sorted(set(values))
    if not out:
        raise InvalidConfigurationError("mu_set parsed to empty set")
    return out


@dataclass
class GridConfig:
    """Square grid size."""
    n: int = 64

    def validate(self) -> tuple[bool, Optional[str]]:
        if not _is_int(self.n):
            return False, "n must be an integer"
        if self.n < 3:
            return False, "n must be >= 3"
        return True, None


@dataclass
class TrajectoryConfig:
    """Absolute trajectory index range and rollout length."""
    traj_start: int = 0
    traj_count: int = 100
    t_steps: int = 8

    def validate(self) -> tuple[bool, Optional[str]]:
        for name in ("traj_start", "traj_count", "t_steps"):
            if not _is_int(getattr(self, name)):
                return False, f"{name} must be an integer"
        if self.traj_start < 0:
            return False, "traj_start must be non-negative"
        if self.traj_count < 0:
            return False, "traj_count must be non-negative"
        if self.t_steps < 0:
            return False, "t_steps must be non-negative"
        return True, None


@dataclass
class PhysicsConfig:
    """Diffusivity range, jump set and reference stability margin."""
    alpha_min: float = 0.05
    alpha_max: float = 0.5
    mu_set: str = "2,5,10,20"
    s_ref: float = 0.4

    def validate(self) -> tuple[bool, Optional[str]]:
        for name in ("alpha_min", "alpha_max", "s_ref"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return False, f"{name} must be a number"
        if not (math.isfinite(self.alpha_min) and math.isfinite(self.alpha_max)):
            return False, "alpha range must be finite"
        # compared at the float32 precision alpha is sampled in
        if not np.float32(self.alpha_max) > np.float32(self.alpha_min):
            return False, "alpha_max must be > alpha_min (as float32)"
        try:
            parse_mu_set(self.mu_set)
        except InvalidConfigurationError as e:
            return False, str(e)
        return True, None

    @property
    def mu_values(self) -> list[float]:
        return parse_mu_set(self.mu_set)


@dataclass
class SamplingConfig:
    """Base seed and first global sample index."""
    seed: int = 123
    global_index_base: int = 0

    def validate(self) -> tuple[bool, Optional[str]]:
        if not _is_int(self.seed) or not _is_int(self.global_index_base):
            return False, "seed and global_index_base must be integers"
        if not 0 <= self.seed < SEED_LIMIT:
            return False, "seed must be a 64-bit unsigned integer"
        if self.global_index_base < 0:
            return False, "global_index_base must be non-negative"
        return True, None


@dataclass
class OutputConfig:
    """Output configuration."""
    out_dir: str = "output"
    split: str = "train"
    write_run_info: bool = True

    def validate(self) -> tuple[bool, Optional[str]]:
        if not str(self.out_dir):
            return False, "out_dir must not be empty"
        return True, None


@dataclass
class DatasetConfig:
    """Complete generation configuration."""
    grid: GridConfig = field(default_factory=GridConfig)
    trajectories: TrajectoryConfig = field(default_factory=TrajectoryConfig)
    physics: PhysicsConfig = field(default_factory=PhysicsConfig)
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def validate(self) -> tuple[bool, Optional[str]]:
        for section_name in ["grid", "trajectories", "physics", "sampling", "output"]:
            section = getattr(self, section_name)
            is_valid, error = section.validate()
            if not is_valid:
                return False, f"{section_name}: {error}"
        return True, None

    def require_valid(self) -> None:
        """Raise InvalidConfigurationError if validate() fails."""
        is_valid, error = self.validate()
        if not is_valid:
            raise InvalidConfigurationError(f"Invalid configuration: {error}")

    @property
    def mu_values(self) -> list[float]:
        return self.physics.mu_values

    @property
    def total_samples(self) -> int:
        return self.trajectories.traj_count * self.trajectories.t_steps


# Flat option name -> (section, attribute). Matches the CLI surface.
FLAT_OPTIONS = {
    "n": ("grid", "n"),
    "traj_start": ("trajectories", "traj_start"),
    "traj_count": ("trajectories", "traj_count"),
    "t_steps": ("trajectories", "t_steps"),
    "alpha_min": ("physics", "alpha_min"),
    "alpha_max": ("physics", "alpha_max"),
    "mu_set": ("physics", "mu_set"),
    "s_ref": ("physics", "s_ref"),
    "seed": ("sampling", "seed"),
    "global_index_base": ("sampling", "global_index_base"),
    "out": ("output", "out_dir"),
    "split": ("output", "split"),
}


def apply_overrides(config: DatasetConfig, overrides: dict[str, Any]) -> DatasetConfig:
    """
    Set flat options (CLI names) on a config in place.

    None values are skipped so unset CLI flags keep config values.
    """
    for key, value in overrides.items():
        if value is None:
            continue
        if key not in FLAT_OPTIONS:
            raise InvalidConfigurationError(f"Unknown option: {key}")
        section_name, attr = FLAT_OPTIONS[key]
        setattr(getattr(config, section_name), attr, value)
    return config


def config_from_mapping(raw: Optional[dict]) -> DatasetConfig:
    """
    Build a config from a parsed YAML mapping.

    Sections are optional; missing keys take dataclass defaults. Values
    are not validated here.
    """
    raw = raw or {}

    grid_raw = raw.get("grid", {}) or {}
    grid = GridConfig(n=grid_raw.get("n", 64))

    traj_raw = raw.get("trajectories", {}) or {}
    trajectories = TrajectoryConfig(
        traj_start=traj_raw.get("traj_start", 0),
        traj_count=traj_raw.get("traj_count", 100),
        t_steps=traj_raw.get("t_steps", 8)
    )

    phys_raw = raw.get("physics", {}) or {}
    mu_set = phys_raw.get("mu_set", "2,5,10,20")
    if isinstance(mu_set, (list, tuple)):
        mu_set = ",".join(str(v) for v in mu_set)
    physics = PhysicsConfig(
        alpha_min=phys_raw.get("alpha_min", 0.05),
        alpha_max=phys_raw.get("alpha_max", 0.5),
        mu_set=str(mu_set),
        s_ref=phys_raw.get("s_ref", 0.4)
    )

    samp_raw = raw.get("sampling", {}) or {}
    sampling = SamplingConfig(
        seed=samp_raw.get("seed", 123),
        global_index_base=samp_raw.get("global_index_base", 0)
    )

    out_raw = raw.get("output", {}) or {}
    output = OutputConfig(
        out_dir=out_raw.get("out_dir", "output"),
        split=out_raw.get("split", "train"),
        write_run_info=out_raw.get("write_run_info", True)
    )

    return DatasetConfig(
        grid=grid,
        trajectories=trajectories,
        physics=physics,
        sampling=sampling,
        output=output
    )


def load_config(path: Path, validate: bool = True) -> DatasetConfig:
    """
    Load and validate configuration from YAML file.

    Args:
        path: Path to YAML config file.
        validate: Skip validation when False (caller validates after overrides).

    Returns:
        Validated DatasetConfig.

    Raises:
        InvalidConfigurationError: If config is invalid.
        FileNotFoundError: If file doesn't exist.
    """
    with open(path, 'r') as f:
        raw = yaml.safe_load(f)

    if raw is not None and not isinstance(raw, dict):
        raise InvalidConfigurationError(f"{path}: top level must be a mapping")

    config = config_from_mapping(raw)
    if validate:
        config.require_valid()
    return config


def config_to_dict(config: DatasetConfig) -> dict:
    """Convert config to serializable dict."""
    return {
        "grid": {
            "n": config.grid.n
        },
        "trajectories": {
            "traj_start": config.trajectories.traj_start,
            "traj_count": config.trajectories.traj_count,
            "t_steps": config.trajectories.t_steps
        },
        "physics": {
            "alpha_min": config.physics.alpha_min,
            "alpha_max": config.physics.alpha_max,
            "mu_set": config.physics.mu_set,
            "mu_values": config.mu_values,
            "s_ref": config.physics.s_ref
        },
        "sampling": {
            "seed": config.sampling.seed,
            "global_index_base": config.sampling.global_index_base
        },
        "output": {
            "out_dir": str(config.output.out_dir),
            "split": config.output.split,
            "write_run_info": config.output.write_run_info
        }
    }
