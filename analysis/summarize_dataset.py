"""
Headless summary of a generated dataset.

Scope:
- Reads input.bin / target.bin / meta.jsonl through diffusion_dataset.load_dataset.
- Prints per-variant counts and parameter statistics.
- Optionally writes a preview grid of (input, target) pairs (Matplotlib only).

Usage:
    python analysis/summarize_dataset.py --data output/train --figures analysis/figures
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Sequence

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "src"))

from diffusion_dataset.dataset import LoadedDataset, check_contiguous, load_dataset, summarize_meta


def _ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def write_preview(data: LoadedDataset, path: str, max_rows: int = 4) -> None:
    """Input/target/difference images for the first max_rows samples."""
    try:
        import matplotlib

        matplotlib.use("Agg")  # must be set before importing pyplot
        import matplotlib.pyplot as plt
    except ImportError as e:
        raise RuntimeError("Matplotlib is required for previews. Install with: pip install matplotlib") from e

    rows = min(max_rows, len(data))
    if rows == 0:
        return

    fig, axes = plt.subplots(rows, 3, figsize=(7.5, 2.5 * rows), squeeze=False)
    for r in range(rows):
        meta = data.meta.iloc[r]
        u_in = data.inputs[r]
        u_out = data.targets[r]
        panels = [
            (u_in, f"input #{int(meta['global_sample_idx'])} ({meta['ic_type']})", "inferno", (0.0, 1.0)),
            (u_out, f"target mu={meta['mu']:g} k={int(meta['k_used_ref'])}", "inferno", (0.0, 1.0)),
            (u_out - u_in, "target - input", "coolwarm", None),
        ]
        for c, (img, title, cmap, lim) in enumerate(panels):
            ax = axes[r][c]
            if lim is None:
                bound = float(np.max(np.abs(img))) or 1.0
                lim = (-bound, bound)
            ax.imshow(img, cmap=cmap, vmin=lim[0], vmax=lim[1], origin="upper")
            ax.set_title(title, fontsize=8)
            ax.set_xticks([])
            ax.set_yticks([])

    fig.tight_layout()
    fig.savefig(path, dpi=120, bbox_inches="tight")
    plt.close(fig)


def main(argv: Sequence[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Summarize a generated diffusion dataset (no GUI).")
    ap.add_argument("--data", required=True, help="Dataset directory (input.bin, target.bin, meta.jsonl).")
    ap.add_argument("--figures", default=None, help="If set, write preview.png into this directory.")
    ap.add_argument("--rows", type=int, default=4, help="Samples in the preview grid.")
    args = ap.parse_args(argv)

    data = load_dataset(args.data)
    print(f"samples: {len(data)}  grid: {data.n}x{data.n}")
    if len(data) == 0:
        return 0

    print(f"contiguous global indices: {check_contiguous(data.meta)}")
    print(f"splits: {sorted(data.meta['split'].unique().tolist())}")
    print()
    print(summarize_meta(data.meta).to_string())

    if args.figures:
        _ensure_dir(args.figures)
        out_path = os.path.join(args.figures, "preview.png")
        write_preview(data, out_path, max_rows=args.rows)
        print(f"\nwrote {out_path}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
