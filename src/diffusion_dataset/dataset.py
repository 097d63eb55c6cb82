"""
Reader for generated datasets.

Only samples that are complete in all three streams are returned. A run
interrupted mid-write can leave a truncated trailing binary record or
JSON line; those are dropped.
"""

import json
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd

from .exporters import FIELD_DTYPE, INPUT_FILE, META_FIELDS, META_FILE, TARGET_FILE


@dataclass
class LoadedDataset:
    """
    Attributes:
        inputs: (num, n, n) float32 input fields.
        targets: (num, n, n) float32 target fields.
        meta: One row per sample, columns META_FIELDS.
    """
    inputs: np.ndarray
    targets: np.ndarray
    meta: pd.DataFrame

    def __len__(self) -> int:
        return int(self.inputs.shape[0])

    @property
    def n(self) -> int:
        return int(self.inputs.shape[1]) if self.inputs.ndim == 3 else 0


def read_meta(path: Path) -> pd.DataFrame:
    """
    Parse meta.jsonl, dropping a trailing partial line.

    Raises:
        ValueError: If a line other than the last is not valid JSON.
    """
    with open(path, 'r', encoding='utf-8') as f:
        text = f.read()

    # every record ends with "\n"; text after the last newline is a cut-off record
    complete = text.split("\n")[:-1]

    rows = []
    for lineno, line in enumerate(complete, start=1):
        if not line.strip():
            continue
        try:
            rows.append(json.loads(line))
        except json.JSONDecodeError as e:
            raise ValueError(f"{path}:{lineno}: invalid metadata line: {e}")

    return pd.DataFrame(rows, columns=META_FIELDS)


def _read_records(path: Path, record_size: int, limit: int) -> np.ndarray:
    raw = np.fromfile(path, dtype=FIELD_DTYPE)
    usable = min(raw.size // record_size, limit)
    return raw[:usable * record_size].astype(np.float32)


def load_dataset(out_dir: Path) -> LoadedDataset:
    """
    Load a generated dataset.

    Args:
        out_dir: Directory holding input.bin, target.bin and meta.jsonl.

    Returns:
        LoadedDataset truncated to the samples present in all streams.

    Raises:
        FileNotFoundError: If a stream is missing.
        ValueError: If the metadata mixes grid sizes.
    """
    out_dir = Path(out_dir)
    meta = read_meta(out_dir / META_FILE)

    if meta.empty:
        empty = np.zeros((0, 0, 0), dtype=np.float32)
        for name in (INPUT_FILE, TARGET_FILE):
            if not (out_dir / name).exists():
                raise FileNotFoundError(out_dir / name)
        return LoadedDataset(inputs=empty, targets=empty.copy(), meta=meta)

    sizes = meta["n"].unique()
    if len(sizes) != 1:
        raise ValueError(f"dataset mixes grid sizes: {sorted(sizes.tolist())}")
    n = int(sizes[0])
    record_size = n * n

    inputs = _read_records(out_dir / INPUT_FILE, record_size, len(meta))
    targets = _read_records(out_dir / TARGET_FILE, record_size, len(meta))

    num = min(inputs.size, targets.size) // record_size
    inputs = inputs[:num * record_size].reshape(num, n, n)
    targets = targets[:num * record_size].reshape(num, n, n)
    meta = meta.iloc[:num].reset_index(drop=True)

    return LoadedDataset(inputs=inputs, targets=targets, meta=meta)


def check_contiguous(meta: pd.DataFrame) -> bool:
    """True if global_sample_idx increases by exactly 1 from row to row."""
    idx = meta["global_sample_idx"].to_numpy()
    if idx.size == 0:
        return True
    return bool(np.all(np.diff(idx) == 1))


def summarize_meta(meta: pd.DataFrame) -> pd.DataFrame:
    """
    Per-variant summary of a metadata table.

    Returns:
        One row per ic_type with trajectory/sample counts and alpha,
        mu and k_used_ref statistics, sorted by ic_type.
    """
    grouped = meta.groupby("ic_type", sort=True)
    summary = pd.DataFrame({
        "trajectories": grouped["traj_idx"].nunique(),
        "samples": grouped.size(),
        "alpha_mean": grouped["alpha"].mean(),
        "mu_mean": grouped["mu"].mean(),
        "k_used_ref_mean": grouped["k_used_ref"].mean(),
        "k_used_ref_max": grouped["k_used_ref"].max(),
    })
    summary.index.name = "ic_type"
    return summary
