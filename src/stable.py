# src/stable.py
"""
Asymptotic analysis of projection and next-generation matrices.

For a primitive non-negative matrix the dominant eigenvalue is real and
positive (Perron root); its log is the long-run growth rate per step and its
eigenvector, normalized to sum to 1, is the stable age distribution.

Eigen-decomposition is delegated to numpy.linalg.eig, which keeps no state
between calls.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from helpers import ShapeError, DomainError, _as_square, _check_finite
from growth import annualize

logger = logging.getLogger(__name__)

_IMAG_TOL = 1e-9


@dataclass(frozen=True)
class StableState:
    """Derived stable-population summary of a transition matrix."""
    eigenvalue: float
    growth_rate: float
    annual_growth_rate: float
    distribution: np.ndarray


def _dominant_index(vals: np.ndarray) -> int:
    # largest |lambda|, then largest real part, then solver order (lexsort is stable)
    order = np.lexsort((-vals.real, -np.abs(vals)))
    return int(order[0])


def dominant_eigenpair(matrix) -> tuple[float, np.ndarray]:
    """
    Eigenvalue of largest magnitude and a corresponding eigenvector.

    Ties in magnitude (e.g. complex-conjugate pairs, or ±λ for imprimitive
    matrices) are broken by the larger real part, then by the order in which
    the solver reports the eigenvalues.

    Parameters
    ----------
    matrix : array-like (n, n)

    Returns
    -------
    eigenvalue : float
        Real part of the dominant eigenvalue (imaginary solver noise dropped).
    eigenvector : np.ndarray
        Corresponding eigenvector as returned by the solver (may be complex,
        arbitrary scale and sign).

    Raises
    ------
    ShapeError
        If `matrix` is not square.
    DomainError
        If the dominant eigenvalue resolves to exactly zero.
    """
    M = _as_square(matrix)
    _check_finite(M, "matrix")
    vals, vecs = np.linalg.eig(M)
    k = _dominant_index(vals)
    lam = complex(vals[k])
    if abs(lam.imag) > _IMAG_TOL * max(1.0, abs(lam)):
        logger.warning(
            "[stable] dominant eigenvalue %s has a non-negligible imaginary part; using its real part.",
            lam,
        )
    value = float(lam.real)
    if value == 0.0:
        raise DomainError("[stable] dominant eigenvalue is zero; growth rate is undefined.")
    return value, vecs[:, k]


def growth_rate_per_step(eigenvalue: float) -> float:
    """Intrinsic growth rate per projection step, log(λ)."""
    lam = float(eigenvalue)
    if not np.isfinite(lam) or lam <= 0:
        raise DomainError(f"[stable] log undefined for eigenvalue {eigenvalue!r}.")
    return float(np.log(lam))


def stable_distribution(eigenvector) -> np.ndarray:
    """
    Normalize the real part of an eigenvector so its components sum to 1.

    Works regardless of the arbitrary sign/scale chosen by the eigen-solver.
    """
    v = np.real(np.asarray(eigenvector))
    if v.ndim != 1:
        raise ShapeError(f"[stable] eigenvector must be one-dimensional, got shape {v.shape}.")
    total = float(np.sum(v))
    if total == 0.0 or not np.isfinite(total):
        raise DomainError("[stable] eigenvector components sum to zero; cannot normalize.")
    return v.astype(float) / total


def spectral_radius(matrix) -> float:
    """
    |dominant eigenvalue|, used directly as R0 for a next-generation matrix.
    """
    M = _as_square(matrix)
    _check_finite(M, "matrix")
    vals = np.linalg.eigvals(M)
    return float(np.abs(vals[_dominant_index(vals)]))


def stable_state(matrix, years_per_step: float = 1.0) -> StableState:
    """
    Bundle the asymptotic quantities of `matrix`.

    Parameters
    ----------
    matrix : array-like (n, n)
    years_per_step : float
        Real time represented by one projection step (e.g. 5 for five-year
        age groups); used only for `annual_growth_rate`.
    """
    lam, vec = dominant_eigenpair(matrix)
    r = growth_rate_per_step(lam)
    dist = stable_distribution(vec)
    if np.any(dist < -1e-12):
        logger.warning("[stable] stable distribution has negative components; matrix may not be primitive.")
    return StableState(
        eigenvalue=lam,
        growth_rate=r,
        annual_growth_rate=float(annualize(r, years_per_step)),
        distribution=dist,
    )
