"""
Explicit finite-difference solver for 2D linear isotropic diffusion.

Domain: unit square, n x n uniform grid, zero Dirichlet boundary.

    du/dt = alpha * (d2u/dx2 + d2u/dy2)

One call to step_tau_run / step_tau_ref advances the field by the macro
interval tau = mu * dx^2 / alpha, split into k equal substeps that stay
below s * dt_max, where dt_max = dx^2 / (4 * alpha) is the von Neumann
bound of the 5-point stencil.

All state is float32 so snapshots match the binary sample streams.
"""

import math
import time
from typing import NamedTuple

import numpy as np

from .exceptions import InvalidGridSizeError


ALPHA_FLOOR = np.float32(1e-8)
S_MIN = np.float32(0.05)
S_MAX = np.float32(0.99)

DEFAULT_ALPHA = 0.2
DEFAULT_MU = 10.0
DEFAULT_S_RUN = 0.8
DEFAULT_S_REF = 0.35


class StepInfo(NamedTuple):
    """
    Result of one macro step: unpacks as (k, tau), k being the number of
    stencil substeps executed.
    """
    k: int
    tau: float


def _floor(value, lo: np.float32) -> np.float32:
    v = np.float32(value)
    if not np.isfinite(v) or not v > lo:
        return lo
    return v


def _clamp(value, lo: np.float32, hi: np.float32) -> np.float32:
    v = np.float32(value)
    if not v > lo:
        return lo
    if v > hi:
        return hi
    return v


def expected_substeps(mu: float, s: float) -> int:
    """
    Closed-form substep count for a margin s.

    tau / (s * dt_max) = 4 * mu / s, independent of n and alpha.
    """
    return max(1, math.ceil(4.0 * mu / s))


class DiffusionSolver:
    """
    Owns one square field and advances it in place.

    Field layout is row-major: cell (x, y) lives at index y * n + x.
    """

    def __init__(self, n: int):
        """
        Initialize a zero field.

        Args:
            n: Grid side length, must be >= 3.

        Raises:
            InvalidGridSizeError: If the grid has no interior cells.
        """
        if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < 3:
            raise InvalidGridSizeError(f"n must be >= 3 (got {n!r})")

        self._n = int(n)
        self._dx = np.float32(1.0) / np.float32(self._n - 1)

        self._alpha = np.float32(DEFAULT_ALPHA)
        self._mu = np.float32(DEFAULT_MU)
        self._s_run = np.float32(DEFAULT_S_RUN)
        self._s_ref = np.float32(DEFAULT_S_REF)

        size = self._n * self._n
        self._field = np.zeros(size, dtype=np.float32)
        self._next = np.zeros(size, dtype=np.float32)

        # wall-clock cost of the most recent substep loop
        self.last_compute_ms = 0.0

    # ---- Parameters ----

    def set_alpha(self, alpha: float) -> None:
        self._alpha = _floor(alpha, ALPHA_FLOOR)

    def set_mu(self, mu: float) -> None:
        self._mu = _floor(mu, np.float32(0.0))

    def set_s_run(self, s: float) -> None:
        self._s_run = _clamp(s, S_MIN, S_MAX)

    def set_s_ref(self, s: float) -> None:
        self._s_ref = _clamp(s, S_MIN, S_MAX)

    def get_alpha(self) -> float:
        return float(self._alpha)

    def get_mu(self) -> float:
        return float(self._mu)

    def get_s_run(self) -> float:
        return float(self._s_run)

    def get_s_ref(self) -> float:
        return float(self._s_ref)

    def get_dx(self) -> float:
        return float(self._dx)

    def get_tau(self) -> float:
        return float(self._tau())

    @property
    def n(self) -> int:
        return self._n

    # ---- Field access ----

    @property
    def field(self) -> np.ndarray:
        """Read-only (n, n) view of the live field."""
        view = self._field.reshape(self._n, self._n).view()
        view.flags.writeable = False
        return view

    def clone_field(self) -> np.ndarray:
        """Independent flat copy of the field (n * n float32)."""
        return self._field.copy()

    def clear(self) -> None:
        self._field.fill(0.0)
        self._next.fill(0.0)

    def _in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self._n and 0 <= y < self._n

    def set_cell(self, x: int, y: int, value: float) -> None:
        """
        Store clamp(value, 0, 1) at (x, y).

        Out-of-bounds coordinates are ignored. The boundary is not
        re-applied; call finalize_ic() after bulk loading.
        """
        if not self._in_bounds(x, y):
            return
        self._field[y * self._n + x] = np.clip(np.float32(value), 0.0, 1.0)

    def load_field(self, values) -> None:
        """
        Bulk equivalent of set_cell over every cell.

        Args:
            values: n * n or (n, n) array of cell values.

        Raises:
            ValueError: If the size does not match the grid.
        """
        arr = np.asarray(values, dtype=np.float32)
        if arr.size != self._field.size:
            raise ValueError(
                f"field has {arr.size} cells, expected {self._field.size}"
            )
        np.clip(arr.reshape(-1), 0.0, 1.0, out=self._field)

    def add_hotspot(self, x: int, y: int, value: float) -> None:
        """Add value at (x, y), clamp to [0, 1] and re-apply the boundary."""
        if not self._in_bounds(x, y):
            return
        idx = y * self._n + x
        self._field[idx] = np.clip(self._field[idx] + np.float32(value), 0.0, 1.0)
        self._apply_dirichlet_bc()

    def finalize_ic(self) -> None:
        self._apply_dirichlet_bc()

    # ---- Stepping ----

    def _tau(self) -> np.float32:
        return (self._mu * self._dx * self._dx) / self._alpha

    def _step_tau_with_s(self, s: np.float32) -> StepInfo:
        dt_max = (self._dx * self._dx) / (np.float32(4.0) * self._alpha)
        dt = s * dt_max

        tau = self._tau()
        k = max(1, int(math.ceil(float(tau / dt))))

        dt_prime = tau / np.float32(k)

        t0 = time.perf_counter()
        for _ in range(k):
            self._explicit_step(dt_prime)
        t1 = time.perf_counter()

        self.last_compute_ms = (t1 - t0) * 1000.0
        return StepInfo(k=k, tau=float(tau))

    def step_tau_run(self) -> StepInfo:
        """Advance by tau with the fast margin s_run."""
        return self._step_tau_with_s(self._s_run)

    def step_tau_ref(self) -> StepInfo:
        """Advance by tau with the conservative margin s_ref (label generation)."""
        return self._step_tau_with_s(self._s_ref)

    # ---- Internal numeric routines ----

    def _explicit_step(self, dt: np.float32) -> None:
        n = self._n
        c = self._alpha * dt / (self._dx * self._dx)

        u = self._field.reshape(n, n)
        out = self._next.reshape(n, n)

        center = u[1:-1, 1:-1]
        lap = (u[:-2, 1:-1] + u[2:, 1:-1] + u[1:-1, :-2] + u[1:-1, 2:]) - np.float32(4.0) * center
        np.clip(center + c * lap, 0.0, 1.0, out=out[1:-1, 1:-1])

        self._swap_buffers()
        self._apply_dirichlet_bc()

    def _apply_dirichlet_bc(self) -> None:
        u = self._field.reshape(self._n, self._n)
        u[0, :] = 0.0
        u[-1, :] = 0.0
        u[:, 0] = 0.0
        u[:, -1] = 0.0

    def _swap_buffers(self) -> None:
        self._field, self._next = self._next, self._field
        self._next.fill(0.0)
