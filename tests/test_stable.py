# tests/test_stable.py
"""
Test suite for stable.py module.

Tests cover:
- Dominant eigenpair selection and tie-breaking
- Growth rate and stable distribution
- Spectral radius / R0
- Convergence of projected trajectories to the stable state
"""

import pytest
import numpy as np

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from helpers import ShapeError, DomainError
from leslie import build_leslie, build_next_generation
from projections import project, trajectory_totals, age_distributions
from growth import per_step_growth_rates
from stable import (
    StableState,
    dominant_eigenpair,
    growth_rate_per_step,
    stable_distribution,
    spectral_radius,
    stable_state,
)


STAGE_MATRIX = np.array([
    [0.0, 5.0, 10.0],
    [0.3, 0.0, 0.0],
    [0.0, 0.5, 0.2],
])


@pytest.fixture
def leslie():
    """Primitive 4x4 Leslie matrix (positive top row and subdiagonal)."""
    s = np.array([1.0, 0.95, 0.9, 0.8, 0.6])
    f = np.array([0.0, 0.3, 0.8, 0.5, 0.1])
    return build_leslie(s, f, 0.4886)


# ============================================================================
# Test dominant_eigenpair
# ============================================================================

class TestDominantEigenpair:

    def test_stage_matrix_root_of_characteristic_polynomial(self):
        """det(lambda I - M) = lambda^3 - 0.2 lambda^2 - 1.5 lambda - 1.2."""
        lam, _ = dominant_eigenpair(STAGE_MATRIX)
        assert abs(lam ** 3 - 0.2 * lam ** 2 - 1.5 * lam - 1.2) < 1e-9
        assert 1.60 < lam < 1.61

    def test_eigen_equation(self, leslie):
        lam, vec = dominant_eigenpair(leslie)
        np.testing.assert_allclose(leslie @ vec, lam * vec, atol=1e-10)

    def test_returns_real_float(self, leslie):
        lam, _ = dominant_eigenpair(leslie)
        assert isinstance(lam, float)

    def test_largest_magnitude_wins(self):
        lam, _ = dominant_eigenpair(np.diag([0.5, -3.0, 2.0]))
        assert lam == -3.0

    def test_tie_broken_by_real_part(self):
        """+2 and -2 have equal magnitude; the positive one is chosen."""
        lam, _ = dominant_eigenpair(np.diag([-2.0, 2.0]))
        assert lam == 2.0

    def test_zero_eigenvalue(self):
        with pytest.raises(DomainError):
            dominant_eigenpair(np.zeros((3, 3)))

    def test_non_square(self):
        with pytest.raises(ShapeError):
            dominant_eigenpair(np.ones((2, 3)))


# ============================================================================
# Test growth_rate_per_step / stable_distribution / spectral_radius
# ============================================================================

class TestGrowthRatePerStep:

    def test_log(self):
        assert np.isclose(growth_rate_per_step(np.e), 1.0)
        assert growth_rate_per_step(1.0) == 0.0

    @pytest.mark.parametrize("lam", [0.0, -1.5, np.nan])
    def test_undefined(self, lam):
        with pytest.raises(DomainError):
            growth_rate_per_step(lam)


class TestStableDistribution:

    def test_normalizes(self):
        np.testing.assert_allclose(stable_distribution([1.0, 3.0]), [0.25, 0.75])

    def test_sign_invariant(self):
        np.testing.assert_allclose(stable_distribution([-1.0, -3.0]), [0.25, 0.75])

    def test_takes_real_part(self):
        np.testing.assert_allclose(stable_distribution([1 + 1j, 3 - 2j]), [0.25, 0.75])

    def test_zero_sum(self):
        with pytest.raises(DomainError):
            stable_distribution([1.0, -1.0])

    def test_sums_to_one_for_leslie(self, leslie):
        _, vec = dominant_eigenpair(leslie)
        dist = stable_distribution(vec)
        assert np.isclose(dist.sum(), 1.0)
        assert np.all(dist > 0)


class TestSpectralRadius:

    def test_magnitude_of_negative_eigenvalue(self):
        assert spectral_radius(np.diag([0.5, -3.0])) == 3.0

    def test_zero_matrix(self):
        assert spectral_radius(np.zeros((2, 2))) == 0.0

    def test_no_log_taken(self):
        assert np.isclose(spectral_radius(np.diag([2.5, 1.0])), 2.5)

    def test_r0_linear_in_infectious_period(self):
        C = np.array([[18.0, 9.0, 3.0], [9.0, 12.0, 4.0], [3.0, 4.0, 6.0]])
        u = np.array([0.03, 0.02, 0.02])
        r5 = spectral_radius(build_next_generation(C, u, 5.0))
        r10 = spectral_radius(build_next_generation(C, u, 10.0))
        r15 = spectral_radius(build_next_generation(C, u, 15.0))
        assert np.isclose(r10, 2 * r5, rtol=1e-12)
        assert np.isclose(r15, 3 * r5, rtol=1e-12)

    def test_matches_dominant_eigenvalue_for_primitive(self, leslie):
        lam, _ = dominant_eigenpair(leslie)
        assert np.isclose(spectral_radius(leslie), lam)


# ============================================================================
# Test stable_state
# ============================================================================

class TestStableState:

    def test_fields(self, leslie):
        st = stable_state(leslie, years_per_step=5)
        assert isinstance(st, StableState)
        assert np.isclose(st.growth_rate, np.log(st.eigenvalue))
        assert np.isclose(st.annual_growth_rate, st.growth_rate / 5)
        assert np.isclose(st.distribution.sum(), 1.0)

    def test_frozen(self, leslie):
        st = stable_state(leslie)
        with pytest.raises(Exception):
            st.eigenvalue = 2.0

    def test_scaling_whole_top_row_vs_single_entry(self, leslie):
        """
        Doubling every fertility entry and doubling a single one are different
        operations with different stable distributions.
        """
        whole = leslie.copy()
        whole[0, :] *= 2.0
        single = leslie.copy()
        single[0, 1] *= 2.0

        base = stable_state(leslie)
        st_whole = stable_state(whole)
        st_single = stable_state(single)

        assert st_whole.eigenvalue > base.eigenvalue
        assert st_single.eigenvalue > base.eigenvalue
        assert not np.allclose(st_whole.distribution, st_single.distribution, atol=1e-6)
        assert not np.allclose(st_whole.distribution, base.distribution, atol=1e-6)


# ============================================================================
# Asymptotic convergence
# ============================================================================

class TestAsymptoticConvergence:
    """Empirical growth and age structure approach the eigen-analysis."""

    @pytest.mark.parametrize("v0", [
        [1000.0, 800.0, 600.0, 400.0],
        [10.0, 10.0, 5000.0, 1.0],
    ])
    def test_leslie_growth_rate_converges(self, leslie, v0):
        traj = project(leslie, v0, 200)
        rates = per_step_growth_rates(trajectory_totals(traj))
        lam, _ = dominant_eigenpair(leslie)
        assert np.isclose(rates[-1], np.log(lam), rtol=1e-6, atol=1e-12)

    def test_leslie_distribution_independent_of_start(self, leslie):
        d1 = age_distributions(project(leslie, [1000.0, 800.0, 600.0, 400.0], 200))[-1]
        d2 = age_distributions(project(leslie, [10.0, 10.0, 5000.0, 1.0], 200))[-1]
        st = stable_state(leslie)
        np.testing.assert_allclose(d1, d2, atol=1e-8)
        np.testing.assert_allclose(d1, st.distribution, atol=1e-8)

    def test_stage_matrix_fifty_steps(self):
        lam, _ = dominant_eigenpair(STAGE_MATRIX)
        r1 = per_step_growth_rates(trajectory_totals(project(STAGE_MATRIX, [100, 250, 50], 50)))
        r2 = per_step_growth_rates(trajectory_totals(project(STAGE_MATRIX, [50, 75, 300], 50)))
        assert np.isclose(r1[-1], r2[-1], rtol=1e-6)
        assert np.isclose(r1[-1], np.log(lam), rtol=1e-6)
