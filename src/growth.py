# src/growth.py
"""
Empirical growth rates read off a projected trajectory.

For a primitive matrix the per-step rates converge to log of the dominant
eigenvalue (see stable.py), whatever the starting age structure.
"""
from __future__ import annotations

import numpy as np

from helpers import DomainError, _as_vector


def per_step_growth_rates(totals) -> np.ndarray:
    """
    r_i = log(P_{i+1} / P_i) for consecutive trajectory totals.

    Parameters
    ----------
    totals : array-like
        Total population at each step (typically `trajectory_totals(traj)`).

    Returns
    -------
    np.ndarray
        Length len(totals) - 1 (empty for fewer than two totals).

    Raises
    ------
    DomainError
        If any total is non-positive or non-finite.
    """
    p = _as_vector(totals, "totals")
    if not np.all(np.isfinite(p)) or np.any(p <= 0):
        bad = np.flatnonzero(~np.isfinite(p) | (p <= 0)).tolist()
        raise DomainError(f"[growth] totals must be strictly positive and finite; bad steps {bad}.")
    if p.size < 2:
        return np.empty(0)
    return np.log(p[1:] / p[:-1])


def annualize(per_step_rate, years_per_step: float):
    """Convert a per-step rate (scalar or array) to a per-year rate."""
    w = float(years_per_step)
    if not np.isfinite(w) or w <= 0:
        raise DomainError(f"[growth] years_per_step must be positive, got {years_per_step!r}.")
    if np.ndim(per_step_rate) == 0:
        return float(per_step_rate) / w
    return np.asarray(per_step_rate, dtype=float) / w


def steps_to_convergence(rates, tol: float = 1e-4) -> int | None:
    """
    First index i such that |r[k+1] - r[k]| < tol for every k >= i.

    Returns None when the last two rates still differ by `tol` or more, or when
    fewer than two rates are given.
    """
    r = _as_vector(rates, "rates")
    if r.size < 2:
        return None
    close = np.abs(np.diff(r)) < tol
    if not close[-1]:
        return None
    # index just past the last non-converged difference
    bad = np.flatnonzero(~close)
    return int(bad[-1] + 1) if bad.size else 0
