# ------------------------------------------------------------------------------
# Stable-population and R0 pipeline.
# - Stage example: projects the configured stage matrix from every configured
#   initial vector and compares empirical growth with log(lambda).
# - Vital rates: builds one Leslie matrix per group from the long vital-rate
#   CSV (if present), projects it and derives the stable state.
# - Reproduction number: builds the next-generation matrix and reports R0
#   (plus the contact rescaling factor when a target R0 is configured).
# - Writes one CSV per output type into results_dir:
#     * stage_example_growth.csv
#     * vital_rates_summary.csv
#     * reproduction_number.csv
#     * projections/<name>.csv
# ------------------------------------------------------------------------------


from __future__ import annotations
from typing import Optional, Dict, List
import os
import sys
import logging
import numpy as np
import pandas as pd
from tqdm import tqdm

from leslie import build_next_generation, transmission_scale_for_r0
from projections import project, trajectory_totals, age_distributions, trajectory_frame, save_projections
from stable import stable_state, spectral_radius
from growth import per_step_growth_rates, annualize, steps_to_convergence
from vital_rates import VitalRateTable
from data_loaders import _get_base_dir, _load_config, load_vital_rates

logger = logging.getLogger(__name__)

ROOT_DIR = os.path.abspath(os.path.join(_get_base_dir(), ".."))
CONFIG_PATH = os.path.join(ROOT_DIR, "config.yaml")


# ------------------------------ Stage example ---------------------------------
def run_stage_example(cfg: Dict):
    """
    Project the configured stage matrix from each initial vector.

    Returns
    -------
    (summary, frames)
        summary : DataFrame with one row per (vector, step) holding the per-step
                  growth rate, the analytic log(lambda) and the convergence step.
        frames  : dict name -> trajectory DataFrame.
    """
    ex = cfg["stage_example"]
    M = np.asarray(ex["matrix"], dtype=float)
    steps = int(ex.get("steps", cfg["projections"]["steps"]))
    labels = ex.get("labels")
    tol = float(cfg["diagnostics"]["convergence_tol"])

    state = stable_state(M)
    logger.info("[stage] lambda=%.6f  log(lambda)=%.6f", state.eigenvalue, state.growth_rate)

    rows: List[Dict] = []
    frames: Dict[str, pd.DataFrame] = {}
    for k, v0 in enumerate(ex["initial_vectors"]):
        traj = project(M, v0, steps)
        rates = per_step_growth_rates(trajectory_totals(traj))
        conv = steps_to_convergence(rates, tol=tol)
        final_dist = age_distributions(traj)[-1]
        gap = float(np.max(np.abs(final_dist - state.distribution)))
        logger.info(
            "[stage] v%d: final rate=%.6f, converged from step %s, max |dist - stable|=%.2e",
            k, rates[-1] if rates.size else float("nan"), conv, gap,
        )
        for t, r in enumerate(rates):
            rows.append({
                "vector": k,
                "step": t + 1,
                "growth_rate": float(r),
                "analytic_rate": state.growth_rate,
                "converged_from": conv,
            })
        frames[f"stage_example_v{k}"] = trajectory_frame(traj, labels)
    return pd.DataFrame(rows), frames


# ------------------------------ Vital-rate groups ------------------------------
def run_vital_rates(cfg: Dict, PATHS: Dict):
    """
    Leslie projection and stable state for every group of the vital-rate CSV.

    Returns (summary, frames); both empty when the CSV does not exist.
    """
    csv_path = PATHS["vital_rates_csv"]
    if not os.path.exists(csv_path):
        logger.info("[vital_rates] no table at %s; skipping.", csv_path)
        return pd.DataFrame(), {}

    ffab = cfg["leslie"].get("fraction_female_at_birth")
    if ffab is None:
        raise KeyError(
            "[vital_rates] leslie.fraction_female_at_birth must be set in config.yaml "
            "(the worked examples use both 0.4886 and 0.4486)."
        )
    steps = int(cfg["projections"]["steps"])
    years_per_step = float(cfg["projections"]["years_per_step"])

    table = VitalRateTable.from_frame(load_vital_rates(csv_path), group_col=cfg["leslie"].get("group_col"))
    rows: List[Dict] = []
    frames: Dict[str, pd.DataFrame] = {}
    for group in tqdm(table.groups(), desc="Groups", unit="group"):
        L = table.leslie(group, float(ffab))
        state = stable_state(L, years_per_step=years_per_step)
        traj = project(L, table.initial_population(group), steps)
        rates = per_step_growth_rates(trajectory_totals(traj))
        empirical = float(rates[-1]) if rates.size else float("nan")
        rows.append({
            "group": group,
            "eigenvalue": state.eigenvalue,
            "growth_rate_step": state.growth_rate,
            "growth_rate_annual": state.annual_growth_rate,
            "empirical_rate_step": empirical,
            "empirical_rate_annual": float(annualize(empirical, years_per_step)),
        })
        frame = trajectory_frame(traj, table.age_labels(group))
        frame["stable_distribution"] = state.distribution
        frames[f"vital_rates_{group}"] = frame
    return pd.DataFrame(rows), frames


# ---------------------------- Reproduction number ------------------------------
def run_reproduction_number(cfg: Dict) -> pd.DataFrame:
    """R0 = spectral radius of diag(u) C diag(dI)."""
    rn = cfg["reproduction_number"]
    C = rn["contact_matrix"]
    u = rn["susceptibility"]
    dI = rn["infectious_period_days"]
    r0 = spectral_radius(build_next_generation(C, u, dI))
    row: Dict[str, Optional[float]] = {"R0": r0, "infectious_period_days": dI, "target_r0": None, "contact_scale": None}
    target = rn.get("target_r0")
    if target is not None:
        row["target_r0"] = float(target)
        row["contact_scale"] = transmission_scale_for_r0(C, u, dI, target)
    logger.info("[r0] R0=%.4f", r0)
    return pd.DataFrame([row])


# --------------------------------- Pipeline -----------------------------------
def run_pipeline(cfg: Dict, PATHS: Dict) -> Dict[str, pd.DataFrame]:
    results_dir = PATHS["results_dir"]
    os.makedirs(results_dir, exist_ok=True)

    stage_summary, stage_frames = run_stage_example(cfg)
    vr_summary, vr_frames = run_vital_rates(cfg, PATHS)
    r0_summary = run_reproduction_number(cfg)

    outputs = {
        "stage_example_growth": stage_summary,
        "vital_rates_summary": vr_summary,
        "reproduction_number": r0_summary,
    }
    for name, df in outputs.items():
        if not df.empty:
            df.to_csv(os.path.join(results_dir, f"{name}.csv"), index=False)
    for name, frame in {**stage_frames, **vr_frames}.items():
        save_projections(frame, name, results_dir=results_dir)
    print(f"[pipeline] Wrote results to {results_dir}")
    return outputs


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    config_path = argv[0] if argv else CONFIG_PATH
    CFG, PATHS = _load_config(ROOT_DIR, config_path)
    logging.basicConfig(
        level=str(CFG["logging"]["level"]).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_pipeline(CFG, PATHS)
    return 0


if __name__ == "__main__":
    sys.exit(main())
