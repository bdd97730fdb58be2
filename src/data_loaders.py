# src/data_loaders.py
import os
import yaml
import pandas as pd


def _get_base_dir():
    """
    Returns the directory of this script
    """
    return os.path.dirname(os.path.abspath(__file__))

def return_default_config():
    """
    Returns the default configuration dictionary.

    `leslie.fraction_female_at_birth` is deliberately None: the worked examples
    use both 0.4886 and 0.4486, so the value must come from config.yaml.
    """
    return {
        "paths": {
            "results_dir": "./results",
            "vital_rates_csv": "./data/vital_rates.csv",
        },
        "diagnostics": {
            "convergence_tol": 1e-4,
        },
        "logging": {
            "level": "INFO",
        },
        "projections": {
            "steps": 20,
            "years_per_step": 5,
        },
        "leslie": {
            "fraction_female_at_birth": None,
            "group_col": None,
        },
        "stage_example": {
            "matrix": [[0.0, 5.0, 10.0], [0.3, 0.0, 0.0], [0.0, 0.5, 0.2]],
            "initial_vectors": [[100.0, 250.0, 50.0], [50.0, 75.0, 300.0]],
            "steps": 20,
            "labels": ["juvenile", "subadult", "adult"],
        },
        "reproduction_number": {
            "contact_matrix": [[18.0, 9.0, 3.0], [9.0, 12.0, 4.0], [3.0, 4.0, 6.0]],
            "susceptibility": [0.03, 0.02, 0.02],
            "infectious_period_days": 5.0,
            "target_r0": None,
        },
    }

def _resolve(ROOT_DIR, p):
    """
    Resolve path p relative to ROOT_DIR if not absolute.
    """
    return os.path.abspath(os.path.join(ROOT_DIR, p))

def _deep_merge(dst, src):
    """
    Recursively merge src into dst
    """
    for k, v in src.items():
        if isinstance(v, dict) and isinstance(dst.get(k), dict):
            _deep_merge(dst[k], v)
        else:
            dst[k] = v

def _load_config(ROOT_DIR: str, path: str):
    """
    Load YAML config if present; otherwise use defaults for both config and paths.
    Returns (cfg, PATHS)
    """
    cfg = return_default_config()
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as fh:
            user = yaml.safe_load(fh) or {}
        _deep_merge(cfg, user)
    else:
        print(f"[config] No config file at {path}; using built-in defaults.")

    PATHS = {
        "results_dir": _resolve(ROOT_DIR, cfg["paths"]["results_dir"]),
        "vital_rates_csv": _resolve(ROOT_DIR, cfg["paths"]["vital_rates_csv"]),
    }
    return cfg, PATHS

def load_vital_rates(file_path: str) -> pd.DataFrame:
    """
    Read the long vital-rate CSV consumed by VitalRateTable.from_frame.
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")
    try:
        return pd.read_csv(file_path)
    except Exception as e:
        raise RuntimeError(f"Failed to read {file_path}: {e}")
