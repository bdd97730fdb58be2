# src/vital_rates.py
"""
In-memory per-age-group vital rates for one or more population groups.

Input is a long table with one row per (group, age): lower age bound (or an
age label such as '15-19'), survivorship (nLx), fertility (nFx) and,
optionally, population counts. Headers are detected liberally so the usual
spellings ('nLx', 'Survivorship', 'ASFR', 'Pop', 'EDAD', 'country', ...)
all work.

The table for a group must carry one more row than the number of age groups
to be modelled: the trailing row supplies the survivorship/fertility values
the Leslie top-row formula interpolates towards.
"""
from __future__ import annotations

import re
from typing import NamedTuple

import numpy as np
import pandas as pd

from helpers import ShapeError, _find_any_col, _format_age_labels
from leslie import build_leslie

DEFAULT_GROUP = "all"

_AGE_COLS = [["age"], ["edad"]]
_SURV_COLS = [["nlx"], ["surviv"], ["lx"]]
_FERT_COLS = [["nfx"], ["fert"], ["asfr"]]
_POP_COLS = [["population"], ["pop"], ["conteo"]]
_GROUP_COLS = [["group"], ["country"], ["dpto"], ["region"]]


class AgeGroupVitalRates(NamedTuple):
    """Ordered vital rates for one group (n modelled age groups)."""
    ages: np.ndarray          # n+1 lower bounds
    survivorship: np.ndarray  # n+1
    fertility: np.ndarray     # n+1
    population: np.ndarray    # n (NaN-filled if the table has no population column)


def _lower_age(lbl) -> float:
    if isinstance(lbl, (int, float, np.integer, np.floating)) and np.isfinite(lbl):
        return float(lbl)
    m = re.search(r"\d+(\.\d+)?", str(lbl))
    if not m:
        raise ValueError(f"Cannot parse age label: {lbl!r}")
    return float(m.group(0))


class VitalRateTable:
    """
    Long-format vital-rate table, normalized to columns
    ['group', 'age', 'survivorship', 'fertility', 'population'].
    """

    def __init__(self, df: pd.DataFrame):
        self._df = df

    @classmethod
    def from_frame(cls, df: pd.DataFrame, group_col: str | None = None) -> "VitalRateTable":
        """
        Normalize a raw table.

        Parameters
        ----------
        df : pd.DataFrame
            One row per (group, age).
        group_col : str | None
            Column identifying the population group; detected if None. A table
            with no group column is treated as the single group 'all'.

        Raises
        ------
        ShapeError
            If age, survivorship or fertility columns cannot be found, or a group
            has fewer than two rows.
        """
        age_col = _find_any_col(df, _AGE_COLS)
        surv_col = _find_any_col(df, _SURV_COLS)
        fert_col = _find_any_col(df, _FERT_COLS)
        pop_col = _find_any_col(df, _POP_COLS)
        missing = [
            name for name, col in
            [("age", age_col), ("survivorship", surv_col), ("fertility", fert_col)]
            if col is None
        ]
        if missing:
            raise ShapeError(f"[vital_rates] could not find columns for {missing} in {list(df.columns)}.")

        if group_col is None:
            used = [c for c in (age_col, surv_col, fert_col, pop_col) if c is not None]
            group_col = _find_any_col(df.drop(columns=used), _GROUP_COLS)
        elif group_col not in df.columns:
            raise KeyError(f"[vital_rates] group column {group_col!r} not in table.")

        out = pd.DataFrame({
            "group": df[group_col].astype(str).str.strip() if group_col is not None else DEFAULT_GROUP,
            "age": [_lower_age(a) for a in df[age_col]],
            "survivorship": pd.to_numeric(df[surv_col], errors="coerce"),
            "fertility": pd.to_numeric(df[fert_col], errors="coerce").fillna(0.0),
            "population": pd.to_numeric(df[pop_col], errors="coerce") if pop_col is not None else np.nan,
        }, index=df.index)
        out = out.sort_values(["group", "age"], kind="mergesort").reset_index(drop=True)

        sizes = out.groupby("group", sort=False).size()
        short = sizes[sizes < 2].index.tolist()
        if short:
            raise ShapeError(f"[vital_rates] groups {short} need at least two age rows (n+1 >= 2).")
        return cls(out)

    @property
    def frame(self) -> pd.DataFrame:
        return self._df.copy()

    def groups(self) -> list[str]:
        return list(pd.unique(self._df["group"]))

    def _rows(self, group: str) -> pd.DataFrame:
        sub = self._df[self._df["group"] == str(group)]
        if sub.empty:
            raise KeyError(f"[vital_rates] unknown group {group!r}; available: {self.groups()}.")
        return sub

    def rates(self, group: str = DEFAULT_GROUP) -> AgeGroupVitalRates:
        sub = self._rows(group)
        return AgeGroupVitalRates(
            ages=sub["age"].to_numpy(dtype=float),
            survivorship=sub["survivorship"].to_numpy(dtype=float),
            fertility=sub["fertility"].to_numpy(dtype=float),
            population=sub["population"].to_numpy(dtype=float)[:-1],
        )

    def leslie(self, group: str, fraction_female: float) -> np.ndarray:
        """Leslie matrix for `group` (see leslie.build_leslie)."""
        r = self.rates(group)
        return build_leslie(r.survivorship, r.fertility, fraction_female)

    def initial_population(self, group: str = DEFAULT_GROUP) -> np.ndarray:
        """Population counts for the n modelled age groups."""
        pop = self.rates(group).population
        if np.any(np.isnan(pop)):
            raise KeyError(f"[vital_rates] no population counts for group {group!r}.")
        return pop

    def age_labels(self, group: str = DEFAULT_GROUP) -> list[str]:
        """Interval labels for the n modelled groups, e.g. '0-4', ..., '45-49'."""
        ages = self.rates(group).ages.astype(int)
        return _format_age_labels(ages)[:-1]
