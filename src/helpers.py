# src/helpers.py
"""
General-purpose helpers shared across the projection modules.

This module centralizes reusable utilities that are agnostic to domain specifics:
- Error types raised by every module (ShapeError, DomainError).
- Coercion of vectors and square matrices to float64 arrays with shape checks.
- Liberal column detection for tabular inputs.
- Age-label formatting for projected age structures.
- Filename suffix manipulation.

All functions are pure and side-effect free, facilitating reuse and unit testing.

IMPORTANT: This module does not import project-specific modules to avoid circular
dependencies. Callers must supply any configuration defaults they need.
"""
from __future__ import annotations

import os
import numpy as np
import pandas as pd

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ShapeError(ValueError):
    """Input dimensions are inconsistent with the documented lengths/sizes."""


class DomainError(ValueError):
    """A mathematically undefined operation was requested (log of 0, x/0, ...)."""


# ---------------------------------------------------------------------------
# Array coercion
# ---------------------------------------------------------------------------

def _as_vector(x, name: str = "vector") -> np.ndarray:
    """
    Coerce `x` to a 1-D float64 array (always a fresh copy).

    Parameters
    ----------
    x : array-like
        Sequence of numbers (list, tuple, ndarray, pd.Series).
    name : str
        Label used in error messages.

    Returns
    -------
    np.ndarray
        1-D float64 copy of `x`.

    Raises
    ------
    ShapeError
        If `x` is not one-dimensional.
    """
    arr = np.array(x, dtype=float)
    if arr.ndim != 1:
        raise ShapeError(f"'{name}' must be one-dimensional, got shape {arr.shape}.")
    return arr


def _as_square(m, name: str = "matrix") -> np.ndarray:
    """
    Coerce `m` to a square 2-D float64 array (always a fresh copy).

    Raises
    ------
    ShapeError
        If `m` is not 2-D and square, or is empty.
    """
    arr = np.array(m, dtype=float)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise ShapeError(f"'{name}' must be a square matrix, got shape {arr.shape}.")
    if arr.shape[0] == 0:
        raise ShapeError(f"'{name}' must have at least one row.")
    return arr


def _check_finite(arr: np.ndarray, name: str) -> None:
    if not np.all(np.isfinite(arr)):
        raise DomainError(f"'{name}' contains NaN or infinite values.")


def _check_nonnegative(arr: np.ndarray, name: str) -> None:
    _check_finite(arr, name)
    if np.any(arr < 0):
        raise DomainError(f"'{name}' must be non-negative.")


# ---------------------------------------------------------------------------
# Column detection
# ---------------------------------------------------------------------------

def _find_col(df: pd.DataFrame, must_include: list[str]) -> str | None:
    """
    Return the first column name in `df` whose lowercase name contains *all*
    substrings in `must_include`. Used for robust header detection.

    Parameters
    ----------
    df : pd.DataFrame
        DataFrame with candidate columns.
    must_include : list[str]
        Substrings that must all appear in the lowercase column name.

    Returns
    -------
    str | None
        Original column name or None if not found.
    """
    low = {str(c).lower(): c for c in df.columns}
    for lc, orig in low.items():
        if all(s in lc for s in must_include):
            return orig
    return None


def _find_any_col(df: pd.DataFrame, candidates: list[list[str]]) -> str | None:
    """Try each substring group of `candidates` in order with `_find_col`."""
    for must_include in candidates:
        col = _find_col(df, must_include)
        if col is not None:
            return col
    return None


# ---------------------------------------------------------------------------
# Age labels
# ---------------------------------------------------------------------------

def _format_age_labels(ages) -> list[str]:
    """
    Build interval labels from increasing lower age bounds.

    Conventions
    -----------
    - width 1 interval  → 'a'
    - wider interval    → 'a-b' with b = next lower bound - 1
    - last bound        → 'k+' (open interval)

    Parameters
    ----------
    ages : Iterable[int]
        Lower bounds, increasing.

    Returns
    -------
    list[str]
    """
    ages = np.asarray(ages, int)
    if ages.size == 0:
        return []
    labels = []
    for i, a in enumerate(ages[:-1]):
        nxt = ages[i + 1]
        labels.append(str(a) if nxt - a == 1 else f"{a}-{nxt - 1}")
    labels.append(f"{ages[-1]}+")
    return labels

# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------

def _with_suffix(fname: str, suffix: str) -> str:
    """
    Insert a suffix before the file extension.

    Example
    -------
    _with_suffix("foo.csv", "_bar") -> "foo_bar.csv"
    """
    if not suffix:
        return fname
    base, ext = os.path.splitext(fname)
    return f"{base}{suffix}{ext}"
