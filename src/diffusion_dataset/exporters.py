"""
Dataset serialization.

Output directory layout:
    input.bin     n*n little-endian float32 per sample, no header
    target.bin    same layout, field after one reference step
    meta.jsonl    one JSON object per sample, keys in META_FIELDS order
    run_info.json config + summary (optional, not byte-reproducible)

Record k of each binary stream corresponds to line k of meta.jsonl.
"""

import json
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Optional, TYPE_CHECKING

import numpy as np

from .config import config_to_dict
from .state import SampleRecord

if TYPE_CHECKING:
    from .runner import GenerationResult


INPUT_FILE = "input.bin"
TARGET_FILE = "target.bin"
META_FILE = "meta.jsonl"
RUN_INFO_FILE = "run_info.json"

FIELD_DTYPE = np.dtype("<f4")

META_FIELDS = [
    "global_sample_idx",
    "split",
    "traj_idx",
    "step_idx",
    "base_seed",
    "traj_seed",
    "n",
    "dx",
    "alpha",
    "mu",
    "tau",
    "s_ref",
    "k_used_ref",
    "ic_type"
]

# Stored as float32 in the solver; written with float32 shortest repr
FLOAT32_FIELDS = ("dx", "alpha", "mu", "tau", "s_ref")


def _f32(value: float) -> float:
    return float(str(np.float32(value)))


def meta_row(record: SampleRecord) -> dict:
    """Metadata row for one sample, keys in META_FIELDS order."""
    row = record.to_dict()
    for key in FLOAT32_FIELDS:
        row[key] = _f32(row[key])
    return {key: row[key] for key in META_FIELDS}


def field_to_bytes(field: np.ndarray) -> bytes:
    return np.ascontiguousarray(field, dtype=FIELD_DTYPE).tobytes()


class DatasetWriter:
    """
    Append-only writer for the three sample streams.

    Existing files in out_dir are truncated. Each stream has exactly one
    writer; records are written in call order.
    """

    def __init__(self, out_dir: Path):
        """
        Create the output directory and open all three streams.

        Args:
            out_dir: Output directory (created if absent).

        Raises:
            OSError: If the directory or any file cannot be created.
        """
        self.out_dir = Path(out_dir)
        self.out_dir.mkdir(parents=True, exist_ok=True)

        self.input_path = self.out_dir / INPUT_FILE
        self.target_path = self.out_dir / TARGET_FILE
        self.meta_path = self.out_dir / META_FILE

        self._files = []
        try:
            self._input = self._open(self.input_path, 'wb')
            self._target = self._open(self.target_path, 'wb')
            self._meta = self._open(self.meta_path, 'w', encoding='utf-8', newline='\n')
        except OSError:
            self.close()
            raise

        self.samples_written = 0

    def _open(self, path: Path, mode: str, **kwargs):
        f = open(path, mode, **kwargs)
        self._files.append(f)
        return f

    def write_sample(self, record: SampleRecord, u_in: np.ndarray, u_out: np.ndarray) -> None:
        """
        Append one sample to all three streams.

        Raises:
            ValueError: If a field does not hold n * n values.
        """
        expected = record.n * record.n
        if np.size(u_in) != expected or np.size(u_out) != expected:
            raise ValueError(f"sample fields must hold {expected} values")

        self._input.write(field_to_bytes(u_in))
        self._target.write(field_to_bytes(u_out))
        self._meta.write(json.dumps(meta_row(record), separators=(",", ":")))
        self._meta.write("\n")
        self.samples_written += 1

    def flush(self) -> None:
        for f in self._files:
            f.flush()

    def close(self) -> None:
        files, self._files = self._files, []
        for f in files:
            f.close()

    @property
    def paths(self) -> dict:
        return {
            "input": str(self.input_path),
            "target": str(self.target_path),
            "meta": str(self.meta_path)
        }

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def get_git_commit() -> Optional[str]:
    """Get current git commit hash if available."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if result.returncode == 0:
        return result.stdout.strip()[:12]
    return None


def export_run_info(result: "GenerationResult", path: Path) -> None:
    """
    Export run summary JSON with config and counts.

    Args:
        result: Generation result.
        path: Output JSON path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    info = {
        "timestamp": datetime.now().isoformat(),
        "git_commit": get_git_commit(),
        "config": config_to_dict(result.config),
        "summary": {
            "n_samples": result.n_samples,
            "n_trajectories": result.n_trajectories,
            "first_global_idx": result.first_global_idx,
            "ic_type_counts": result.ic_type_counts,
            "k_used_ref_total": result.k_used_total,
            "elapsed_s": result.elapsed_s
        },
        "files": {
            "input": INPUT_FILE,
            "target": TARGET_FILE,
            "meta": META_FILE,
            "dtype": "float32",
            "byte_order": "little",
            "record_shape": [result.config.grid.n, result.config.grid.n]
        }
    }

    with open(path, 'w') as f:
        json.dump(info, f, indent=2)
