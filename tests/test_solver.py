"""
Tests for the explicit diffusion solver.
"""

import math

import numpy as np
import pytest

from diffusion_dataset.exceptions import InvalidConfigurationError, InvalidGridSizeError
from diffusion_dataset.solver import DiffusionSolver, StepInfo, expected_substeps


def border_values(field: np.ndarray, n: int) -> np.ndarray:
    u = np.asarray(field).reshape(n, n)
    return np.concatenate([u[0, :], u[-1, :], u[:, 0], u[:, -1]])


def seeded_solver(n: int = 16, seed: int = 0) -> DiffusionSolver:
    rng = np.random.default_rng(seed)
    solver = DiffusionSolver(n)
    solver.load_field(rng.random(n * n))
    solver.finalize_ic()
    return solver


class TestConstruction:
    """Tests for solver construction."""

    @pytest.mark.parametrize("n", [0, 1, 2, -5])
    def test_small_grid_rejected(self, n):
        with pytest.raises(InvalidGridSizeError):
            DiffusionSolver(n)

    def test_grid_error_is_configuration_error(self):
        with pytest.raises(InvalidConfigurationError):
            DiffusionSolver(2)

    def test_non_integer_rejected(self):
        with pytest.raises(InvalidGridSizeError):
            DiffusionSolver(4.0)

    def test_minimum_grid_accepted(self):
        solver = DiffusionSolver(3)
        assert solver.n == 3
        assert solver.get_dx() == pytest.approx(0.5)

    def test_initial_field_is_zero(self):
        solver = DiffusionSolver(5)
        field = solver.clone_field()
        assert field.shape == (25,)
        assert field.dtype == np.float32
        assert not field.any()

    def test_dx_from_n(self):
        solver = DiffusionSolver(65)
        assert solver.get_dx() == pytest.approx(1.0 / 64, rel=1e-6)

    def test_defaults(self):
        solver = DiffusionSolver(8)
        assert solver.get_alpha() == pytest.approx(0.2)
        assert solver.get_mu() == pytest.approx(10.0)
        assert solver.get_s_run() == pytest.approx(0.8)
        assert solver.get_s_ref() == pytest.approx(0.35)


class TestParameterClamps:
    """Setters sanitize silently instead of raising."""

    def test_alpha_floored(self):
        solver = DiffusionSolver(4)
        solver.set_alpha(0.0)
        assert solver.get_alpha() == pytest.approx(1e-8)
        solver.set_alpha(-3.0)
        assert solver.get_alpha() > 0

    def test_alpha_nan_floored(self):
        solver = DiffusionSolver(4)
        solver.set_alpha(float("nan"))
        assert solver.get_alpha() == pytest.approx(1e-8)

    def test_mu_floored_at_zero(self):
        solver = DiffusionSolver(4)
        solver.set_mu(-1.0)
        assert solver.get_mu() == 0.0
        assert solver.get_tau() == 0.0

    @pytest.mark.parametrize("value,expected", [(0.0, 0.05), (-1.0, 0.05), (1.5, 0.99), (0.5, 0.5)])
    def test_margins_clamped(self, value, expected):
        solver = DiffusionSolver(4)
        solver.set_s_run(value)
        solver.set_s_ref(value)
        assert solver.get_s_run() == pytest.approx(expected)
        assert solver.get_s_ref() == pytest.approx(expected)

    def test_tau_recomputed(self):
        solver = DiffusionSolver(11)
        solver.set_alpha(0.5)
        solver.set_mu(2.0)
        assert solver.get_tau() == pytest.approx(2.0 * 0.01 / 0.5, rel=1e-6)
        solver.set_mu(20.0)
        assert solver.get_tau() == pytest.approx(20.0 * 0.01 / 0.5, rel=1e-6)


class TestCellAccess:
    """Tests for set_cell / add_hotspot / finalize_ic."""

    def test_set_cell_clamps(self):
        solver = DiffusionSolver(4)
        solver.set_cell(1, 2, 5.0)
        solver.set_cell(2, 1, -1.0)
        field = solver.field
        assert field[2, 1] == 1.0
        assert field[1, 2] == 0.0

    def test_set_cell_row_major(self):
        solver = DiffusionSolver(4)
        solver.set_cell(2, 1, 0.5)
        assert solver.clone_field()[1 * 4 + 2] == 0.5

    @pytest.mark.parametrize("x,y", [(4, 0), (0, 4), (-1, 1), (1, -1), (100, 100)])
    def test_set_cell_out_of_bounds_ignored(self, x, y):
        solver = DiffusionSolver(4)
        solver.set_cell(x, y, 1.0)
        assert not solver.clone_field().any()

    def test_set_cell_does_not_enforce_boundary(self):
        solver = DiffusionSolver(4)
        solver.set_cell(0, 0, 0.7)
        assert solver.field[0, 0] == pytest.approx(0.7)
        solver.finalize_ic()
        assert solver.field[0, 0] == 0.0

    def test_add_hotspot_accumulates_and_clamps(self):
        solver = DiffusionSolver(5)
        solver.add_hotspot(2, 2, 0.4)
        solver.add_hotspot(2, 2, 0.4)
        assert solver.field[2, 2] == pytest.approx(0.8)
        solver.add_hotspot(2, 2, 0.4)
        assert solver.field[2, 2] == 1.0
        solver.add_hotspot(2, 2, -3.0)
        assert solver.field[2, 2] == 0.0

    def test_add_hotspot_on_border_is_zeroed(self):
        solver = DiffusionSolver(5)
        solver.add_hotspot(0, 2, 1.0)
        assert solver.field[2, 0] == 0.0

    def test_add_hotspot_reapplies_boundary(self):
        solver = DiffusionSolver(5)
        solver.set_cell(4, 4, 1.0)
        solver.add_hotspot(1, 1, 0.5)
        assert not border_values(solver.clone_field(), 5).any()

    def test_add_hotspot_out_of_bounds_ignored(self):
        solver = DiffusionSolver(5)
        solver.add_hotspot(5, 1, 1.0)
        assert not solver.clone_field().any()

    def test_finalize_zeroes_every_border_cell(self):
        n = 6
        solver = DiffusionSolver(n)
        solver.load_field(np.ones(n * n))
        solver.finalize_ic()
        field = solver.field
        assert not border_values(field, n).any()
        assert np.all(field[1:-1, 1:-1] == 1.0)

    def test_load_field_size_checked(self):
        solver = DiffusionSolver(4)
        with pytest.raises(ValueError):
            solver.load_field(np.zeros(15))

    def test_load_field_clamps(self):
        solver = DiffusionSolver(3)
        solver.load_field([[2.0, -1.0, 0.5]] * 3)
        assert solver.field[0].tolist() == [1.0, 0.0, 0.5]

    def test_clear(self):
        solver = seeded_solver(6)
        solver.clear()
        assert not solver.clone_field().any()


class TestSnapshots:
    """clone_field must never alias internal state."""

    def test_clone_is_independent(self):
        solver = seeded_solver(8)
        snap = solver.clone_field()
        snap[:] = 0.5
        assert not np.array_equal(solver.clone_field(), snap)

    def test_clone_survives_stepping(self):
        solver = seeded_solver(8)
        before = solver.clone_field()
        copy = before.copy()
        solver.step_tau_ref()
        assert np.array_equal(before, copy)
        assert not np.array_equal(before, solver.clone_field())

    def test_field_view_read_only(self):
        solver = DiffusionSolver(4)
        with pytest.raises(ValueError):
            solver.field[1, 1] = 1.0


class TestStepping:
    """Tests for step_tau_run / step_tau_ref."""

    def test_returns_step_info(self):
        solver = seeded_solver(8)
        info = solver.step_tau_ref()
        assert isinstance(info, StepInfo)
        assert len(info) == 2
        k, tau = info
        assert k == info.k
        assert tau == pytest.approx(solver.get_tau())

    def test_timing_kept_outside_result(self):
        solver = seeded_solver(8)
        assert solver.last_compute_ms == 0.0
        k, _ = solver.step_tau_run()
        assert k >= 1
        assert solver.last_compute_ms >= 0.0

    @pytest.mark.parametrize("mu", [0.5, 2.0, 5.0, 10.0, 20.0])
    @pytest.mark.parametrize("alpha", [0.05, 0.2, 0.5])
    def test_substeps_reconstruct_tau(self, mu, alpha):
        solver = seeded_solver(8)
        solver.set_alpha(alpha)
        solver.set_mu(mu)
        k, tau = solver.step_tau_ref()
        assert k >= 1
        assert k * (tau / k) == pytest.approx(tau, rel=1e-6)
        dt_prime = tau / k
        dt_limit = solver.get_s_ref() * solver.get_dx() ** 2 / (4 * solver.get_alpha())
        assert dt_prime <= dt_limit * (1 + 1e-5)

    @pytest.mark.parametrize("mu,s,expected", [(5.0, 0.35, 58), (2.0, 0.3, 27), (10.0, 0.35, 115)])
    def test_k_matches_closed_form(self, mu, s, expected):
        assert expected_substeps(mu, s) == expected
        for n, alpha in [(8, 0.05), (16, 0.2), (33, 0.5)]:
            solver = DiffusionSolver(n)
            solver.set_alpha(alpha)
            solver.set_mu(mu)
            solver.set_s_ref(s)
            assert solver.step_tau_ref().k == expected

    def test_zero_mu_single_noop_substep(self):
        solver = seeded_solver(8)
        solver.set_mu(0.0)
        before = solver.clone_field()
        k, tau = solver.step_tau_ref()
        assert k == 1
        assert tau == 0.0
        assert np.array_equal(before, solver.clone_field())

    def test_run_margin_uses_fewer_substeps(self):
        solver = seeded_solver(8)
        solver.set_mu(10.0)
        solver.set_s_run(0.8)
        solver.set_s_ref(0.35)
        k_run = solver.step_tau_run().k
        k_ref = solver.step_tau_ref().k
        assert k_run < k_ref

    def test_border_zero_after_every_step(self):
        n = 12
        solver = seeded_solver(n, seed=3)
        for mu in [2.0, 5.0, 10.0, 20.0]:
            solver.set_mu(mu)
            solver.step_tau_ref()
            assert not border_values(solver.clone_field(), n).any()
            solver.step_tau_run()
            assert not border_values(solver.clone_field(), n).any()

    def test_values_stay_in_unit_interval(self):
        solver = seeded_solver(16, seed=7)
        for _ in range(5):
            solver.step_tau_run()
            field = solver.clone_field()
            assert field.min() >= 0.0
            assert field.max() <= 1.0

    def test_diffusion_decays_mass(self):
        solver = seeded_solver(16, seed=1)
        mass_before = float(solver.clone_field().sum())
        solver.set_mu(20.0)
        solver.step_tau_ref()
        assert float(solver.clone_field().sum()) < mass_before

    def test_deterministic(self):
        a = seeded_solver(10, seed=5)
        b = seeded_solver(10, seed=5)
        for mu in [2.0, 10.0]:
            a.set_mu(mu)
            b.set_mu(mu)
            a.step_tau_ref()
            b.step_tau_ref()
        assert a.clone_field().tobytes() == b.clone_field().tobytes()

    def test_symmetric_initial_condition_stays_symmetric(self):
        n = 9
        solver = DiffusionSolver(n)
        solver.set_cell(4, 4, 1.0)
        solver.finalize_ic()
        solver.step_tau_ref()
        field = solver.clone_field().reshape(n, n).astype(np.float64)
        np.testing.assert_allclose(field, field.T, rtol=1e-4, atol=1e-7)
        np.testing.assert_allclose(field, field[::-1, ::-1], rtol=1e-4, atol=1e-7)


class TestExpectedSubsteps:
    """Closed-form substep estimate."""

    def test_at_least_one(self):
        assert expected_substeps(0.0, 0.5) == 1

    def test_formula(self):
        assert expected_substeps(10.0, 0.4) == math.ceil(40.0 / 0.4)
