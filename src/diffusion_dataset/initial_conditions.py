"""
Initial-condition synthesis.

Every generator is a pure function of (rng, n, variant): the same
Generator state always yields the same field. Draw order inside each
variant is fixed and must not be reordered, otherwise previously
generated datasets can no longer be reproduced.

Output: flat n * n float32 array, row-major, values in [0, 1], maximum
exactly 1.0 unless the field is identically zero. The boundary is left
to the solver (finalize_ic).
"""

from enum import Enum

import numpy as np


class ICVariant(Enum):
    GAUSSIANS = "gaussians"
    RECTANGLES = "rectangles"
    SMOOTH_NOISE = "smooth_noise"
    GRADIENT_MIX = "gradient_mix"


# Sampling order for sample_ic_variant
IC_VARIANTS = (
    ICVariant.GAUSSIANS,
    ICVariant.RECTANGLES,
    ICVariant.SMOOTH_NOISE,
    ICVariant.GRADIENT_MIX,
)

# Gaussians
GAUSS_COUNT = (1, 3)
GAUSS_CENTER_FRAC = (0.15, 0.85)
GAUSS_SIGMA = (1.5, 6.0)
GAUSS_AMP = (0.6, 1.0)

# Rectangles
RECT_COUNT = (1, 4)
RECT_MIN_ORIGIN = 1
RECT_MIN_SIZE = 2
RECT_VALUE = (0.5, 1.0)

# SmoothNoise
NOISE_BLUR_PASSES = 2

# GradientMix
GRADIENT_SCALE = 0.6
BUMP_CENTER_FRAC = (0.2, 0.8)
BUMP_SIGMA = (2.0, 7.0)
BUMP_AMP = (0.4, 0.9)


def sample_ic_variant(rng: np.random.Generator) -> ICVariant:
    """Pick one of the four variants with equal probability."""
    return IC_VARIANTS[int(rng.integers(0, len(IC_VARIANTS)))]


def _uniform(rng: np.random.Generator, bounds: tuple[float, float]) -> np.float32:
    return np.float32(rng.uniform(bounds[0], bounds[1]))


def _int_between(rng: np.random.Generator, lo: int, hi: int) -> int:
    """Integer in [lo, hi); collapses to lo when the range is empty."""
    if hi <= lo:
        hi = lo + 1
    return int(rng.integers(lo, hi))


def _gaussian_bump(n: int, cx: np.float32, cy: np.float32,
                   sigma: np.float32, amp: np.float32) -> np.ndarray:
    coords = np.arange(n, dtype=np.float32)
    dx = coords[None, :] - cx
    dy = coords[:, None] - cy
    r2 = dx * dx + dy * dy
    return amp * np.exp(np.float32(-0.5) * r2 / (sigma * sigma))


def _gaussians(rng: np.random.Generator, n: int) -> np.ndarray:
    f = np.zeros((n, n), dtype=np.float32)
    span = np.float32(n - 1)
    blobs = int(rng.integers(GAUSS_COUNT[0], GAUSS_COUNT[1] + 1))
    for _ in range(blobs):
        cx = _uniform(rng, GAUSS_CENTER_FRAC) * span
        cy = _uniform(rng, GAUSS_CENTER_FRAC) * span
        sigma = _uniform(rng, GAUSS_SIGMA)
        amp = _uniform(rng, GAUSS_AMP)
        f += _gaussian_bump(n, cx, cy, sigma, amp)
    return f


def _rectangles(rng: np.random.Generator, n: int) -> np.ndarray:
    f = np.zeros((n, n), dtype=np.float32)
    half = n // 2
    rects = int(rng.integers(RECT_COUNT[0], RECT_COUNT[1] + 1))
    for _ in range(rects):
        x0 = _int_between(rng, RECT_MIN_ORIGIN, half)
        y0 = _int_between(rng, RECT_MIN_ORIGIN, half)
        w = _int_between(rng, RECT_MIN_SIZE, half)
        h = _int_between(rng, RECT_MIN_SIZE, half)
        val = _uniform(rng, RECT_VALUE)

        # inclusive corners, kept off the border
        x1 = min(x0 + w, n - 2)
        y1 = min(y0 + h, n - 2)

        block = f[y0:y1 + 1, x0:x1 + 1]
        np.maximum(block, val, out=block)
    return f


def _smooth_noise(rng: np.random.Generator, n: int) -> np.ndarray:
    noise = rng.random(n * n, dtype=np.float32)
    return box_blur(noise, n, NOISE_BLUR_PASSES).reshape(n, n)


def _gradient_mix(rng: np.random.Generator, n: int) -> np.ndarray:
    direction = int(rng.integers(0, 4))
    ramp = np.arange(n, dtype=np.float32) / np.float32(n - 1)
    if direction == 0:
        t = np.broadcast_to(ramp[None, :], (n, n))
    elif direction == 1:
        t = np.broadcast_to(ramp[:, None], (n, n))
    elif direction == 2:
        t = np.broadcast_to(np.float32(1.0) - ramp[None, :], (n, n))
    else:
        t = np.broadcast_to(np.float32(1.0) - ramp[:, None], (n, n))
    f = np.float32(GRADIENT_SCALE) * t

    span = np.float32(n - 1)
    cx = _uniform(rng, BUMP_CENTER_FRAC) * span
    cy = _uniform(rng, BUMP_CENTER_FRAC) * span
    sigma = _uniform(rng, BUMP_SIGMA)
    amp = _uniform(rng, BUMP_AMP)
    return f + _gaussian_bump(n, cx, cy, sigma, amp)


_GENERATORS = {
    ICVariant.GAUSSIANS: _gaussians,
    ICVariant.RECTANGLES: _rectangles,
    ICVariant.SMOOTH_NOISE: _smooth_noise,
    ICVariant.GRADIENT_MIX: _gradient_mix,
}


def generate_ic(rng: np.random.Generator, n: int, variant: ICVariant) -> np.ndarray:
    """
    Build a normalized initial condition.

    Args:
        rng: Trajectory random stream (advanced in place).
        n: Grid side length.
        variant: Which family to draw from.

    Returns:
        Flat n * n float32 array in [0, 1].
    """
    field = _GENERATORS[ICVariant(variant)](rng, n)
    field = np.ascontiguousarray(field, dtype=np.float32).reshape(-1)
    return normalize_01(field)


def normalize_01(field: np.ndarray) -> np.ndarray:
    """
    Scale by the global maximum and clamp to [0, 1].

    A field whose maximum is <= 0 is returned as an unmodified copy
    (no scaling, no clamping), so the all-zero field is unchanged.
    """
    f = np.asarray(field, dtype=np.float32)
    mx = f.max(initial=np.float32(0.0))
    if mx > 0.0:
        return np.clip(f / mx, 0.0, 1.0).astype(np.float32, copy=False)
    return f.copy()


def box_blur(field: np.ndarray, n: int, passes: int) -> np.ndarray:
    """
    3x3 mean filter applied `passes` times.

    Border cells average only their in-bounds neighbours.
    """
    cur = np.asarray(field, dtype=np.float32).reshape(n, n).copy()
    counts = _window_sum(np.ones((n, n), dtype=np.float32))
    for _ in range(passes):
        cur = _window_sum(cur) / counts
    return cur.reshape(-1)


def _window_sum(a: np.ndarray) -> np.ndarray:
    n_rows, n_cols = a.shape
    padded = np.pad(a, 1)
    total = np.zeros_like(a)
    for dy in range(3):
        for dx in range(3):
            total += padded[dy:dy + n_rows, dx:dx + n_cols]
    return total
