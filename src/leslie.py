# src/leslie.py
"""
Structured transition matrices built from per-age-group rates.

- Leslie matrices from survivorship (nLx) and fertility (nFx) sequences.
- Next-generation matrices from a contact matrix, susceptibility and
  infectious period.
"""
from __future__ import annotations

import logging
import numpy as np

from helpers import (
    ShapeError,
    DomainError,
    _as_vector,
    _as_square,
    _check_finite,
    _check_nonnegative,
)
from stable import spectral_radius

logger = logging.getLogger(__name__)


def build_leslie(survivorship, fertility, fraction_female: float) -> np.ndarray:
    """
    Construct an n×n Leslie matrix from n+1 survivorship and fertility values.

    Row 0 holds the surviving female births contributed by one individual in
    group j, averaging fertility at the start and end of the interval:

        L[0, j] = ff * s[0] * (f[j] + f[j+1] * s[j+1] / s[j]) / 2

    The first subdiagonal holds survival ratios L[i, i-1] = s[i] / s[i-1].
    Every other entry is exactly 0.

    Parameters
    ----------
    survivorship : array-like, length n+1
        Person-years lived in each interval (nLx); strictly positive. The last
        value only serves as the interpolation partner of group n-1.
    fertility : array-like, length n+1
        Births per individual per interval (nFx); non-negative.
    fraction_female : float
        Fraction of births that are female, in [0, 1]. No default is provided:
        the worked examples disagree on its value (0.4886 vs 0.4486).

    Returns
    -------
    np.ndarray
        (n, n) float64 Leslie matrix.

    Raises
    ------
    ShapeError
        If the inputs are not 1-D, differ in length, or hold fewer than 2 values.
    DomainError
        If survivorship is not strictly positive, fertility is negative,
        or fraction_female lies outside [0, 1].
    """
    s = _as_vector(survivorship, "survivorship")
    f = _as_vector(fertility, "fertility")
    if s.shape != f.shape:
        raise ShapeError(
            f"[leslie] survivorship and fertility lengths differ: {s.size} vs {f.size}."
        )
    if s.size < 2:
        raise ShapeError(
            "[leslie] need n+1 >= 2 values (one trailing value past the last age group)."
        )
    _check_finite(s, "survivorship")
    if np.any(s <= 0):
        bad = np.flatnonzero(s <= 0).tolist()
        raise DomainError(f"[leslie] survivorship must be strictly positive; bad indices {bad}.")
    _check_nonnegative(f, "fertility")
    ff = float(fraction_female)
    if not np.isfinite(ff) or ff < 0.0 or ff > 1.0:
        raise DomainError(f"[leslie] fraction_female must lie in [0, 1], got {fraction_female!r}.")

    n = s.size - 1
    L = np.zeros((n, n))
    L[0, :] = ff * s[0] * (f[:-1] + f[1:] * s[1:] / s[:-1]) / 2.0
    for i in range(1, n):
        L[i, i - 1] = s[i] / s[i - 1]

    logger.debug("[leslie] built %dx%d Leslie matrix (ff=%.4f)", n, n, ff)
    return L


def is_leslie_structured(matrix) -> bool:
    """True if every entry outside row 0 and the first subdiagonal is exactly 0."""
    M = _as_square(matrix)
    mask = np.ones(M.shape, dtype=bool)
    mask[0, :] = False
    idx = np.arange(1, M.shape[0])
    mask[idx, idx - 1] = False
    return bool(np.all(M[mask] == 0.0))


def build_next_generation(contact, susceptibility, infectious_period) -> np.ndarray:
    """
    Next-generation matrix K = diag(u) · C · diag(dI).

    Entry (i, j) is the expected number of new infections in group i caused by
    one infectious individual in group j.

    Parameters
    ----------
    contact : array-like (n, n)
        Average contacts between age groups.
    susceptibility : array-like, length n
        Per-group susceptibility coefficients u.
    infectious_period : float | array-like
        Duration of infectiousness; a scalar applies to every group.

    Returns
    -------
    np.ndarray
        Dense (n, n) float64 matrix.
    """
    C = _as_square(contact, "contact")
    _check_nonnegative(C, "contact")
    n = C.shape[0]

    u = _as_vector(susceptibility, "susceptibility")
    if u.size != n:
        raise ShapeError(f"[leslie] susceptibility has {u.size} entries, contact matrix is {n}x{n}.")
    _check_nonnegative(u, "susceptibility")

    d = np.array(infectious_period, dtype=float)
    if d.ndim == 0:
        d = np.full(n, float(d))
    elif d.ndim != 1 or d.size != n:
        raise ShapeError(
            f"[leslie] infectious_period must be a scalar or have {n} entries, got shape {d.shape}."
        )
    _check_nonnegative(d, "infectious_period")

    return np.diag(u) @ C @ np.diag(d)


def transmission_scale_for_r0(contact, susceptibility, infectious_period, target_r0: float) -> float:
    """
    Factor by which `contact` must be multiplied so that the next-generation
    matrix has spectral radius `target_r0`.

    The spectral radius is linear in the contact matrix, so the factor is
    simply target_r0 / R0(current).
    """
    target = float(target_r0)
    if not np.isfinite(target) or target < 0:
        raise DomainError(f"[leslie] target_r0 must be a non-negative number, got {target_r0!r}.")
    r0 = spectral_radius(build_next_generation(contact, susceptibility, infectious_period))
    if r0 == 0.0:
        raise DomainError("[leslie] next-generation matrix has spectral radius 0; cannot rescale.")
    return target / r0
