# src/projections.py
import os
import numbers
import numpy as np
import pandas as pd

from helpers import (
    ShapeError,
    DomainError,
    _as_vector,
    _as_square,
    _check_finite,
    _with_suffix,
)


def project(matrix, initial, steps: int) -> list[np.ndarray]:
    """
    Iterate n_{t+1} = M @ n_t for `steps` steps.

    No rescaling happens between steps: totals grow or shrink geometrically
    and may overflow float64 for very long runs on strongly growing matrices.

    Parameters
    ----------
    matrix : array-like (n, n)
        Transition (Leslie, stage or next-generation) matrix.
    initial : array-like, length n
        Population at step 0.
    steps : int
        Number of projection steps, >= 0.

    Returns
    -------
    list[np.ndarray]
        steps + 1 vectors; element 0 is a copy of `initial`.
    """
    if isinstance(steps, bool) or not isinstance(steps, numbers.Integral):
        raise TypeError(f"[project] steps must be an integer, got {type(steps).__name__}.")
    if steps < 0:
        raise DomainError(f"[project] steps must be non-negative, got {steps}.")

    M = _as_square(matrix)
    n0 = _as_vector(initial, "initial")
    if n0.shape[0] != M.shape[0]:
        raise ShapeError(
            f"[project] initial vector has length {n0.shape[0]}, matrix is {M.shape[0]}x{M.shape[1]}."
        )
    _check_finite(M, "matrix")
    _check_finite(n0, "initial")

    n_proj = [n0]
    for _ in range(int(steps)):
        n_proj.append(M @ n_proj[-1])
    return n_proj


def trajectory_totals(trajectory) -> np.ndarray:
    """Total population (sum over age groups) at each step."""
    return np.array([float(np.sum(v)) for v in trajectory], dtype=float)


def age_distributions(trajectory) -> np.ndarray:
    """
    Proportional age structure at each step, shape (steps + 1, n).

    Raises DomainError if some step has a zero total.
    """
    arr = np.vstack([np.asarray(v, dtype=float) for v in trajectory])
    totals = arr.sum(axis=1)
    if np.any(totals == 0):
        bad = np.flatnonzero(totals == 0).tolist()
        raise DomainError(f"[project] zero total population at steps {bad}; proportions undefined.")
    return arr / totals[:, None]


def trajectory_frame(trajectory, age_labels=None) -> pd.DataFrame:
    """
    Age structures as a DataFrame: one row per age group, columns 't+0'..'t+X'.

    Parameters
    ----------
    trajectory : list[np.ndarray]
        Output of `project`.
    age_labels : list[str] | None
        Row labels; defaults to '0', '1', ... (stage indices).
    """
    if len(trajectory) == 0:
        return pd.DataFrame()
    age_structure_matrix = np.column_stack(trajectory)
    n = age_structure_matrix.shape[0]
    if age_labels is None:
        age_labels = [str(i) for i in range(n)]
    elif len(age_labels) != n:
        raise ShapeError(f"[project] {len(age_labels)} age labels for {n} age groups.")
    columns = [f"t+{i}" for i in range(age_structure_matrix.shape[1])]
    df = pd.DataFrame(age_structure_matrix, index=list(age_labels), columns=columns)
    df.index.name = "EDAD"
    return df


def save_projections(
    frame: pd.DataFrame,
    name: str,
    suffix: str = "",
    *,
    results_dir: str,  # <- REQUIRED: pass PATHS["results_dir"]
) -> str:
    """
    Save a projected age-structure DataFrame to <results_dir>/projections/<name><suffix>.csv.

    Returns the path written.
    """
    out_path = os.path.join(results_dir, "projections")
    os.makedirs(out_path, exist_ok=True)
    fname = os.path.join(out_path, _with_suffix(f"{name}.csv", suffix))
    frame.reset_index().to_csv(fname, index=False)
    return fname
