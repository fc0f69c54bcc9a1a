# src/lvgrowth/fit/batch.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .config import LVFitConfig
from .errors import LVFitError
from .pipeline import fit_lotka_volterra
from .types import PARAM_NAMES, FitResult

GroupKey = Tuple[Any, ...]


def _ensure_columns(df: pd.DataFrame, cols: List[str]) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")


def _as_key(key: Any) -> GroupKey:
    return key if isinstance(key, tuple) else (key,)


def _fit_one_group(key: GroupKey, t: np.ndarray, x: np.ndarray, cfg: LVFitConfig) -> Dict[str, Any]:
    try:
        fit = fit_lotka_volterra(t, x, cfg)
        return {"key": key, "success": True, "fit": fit}
    except LVFitError as e:
        params = e.params if e.params is not None else np.full(len(PARAM_NAMES), np.nan)
        return {
            "key": key,
            "success": False,
            "kind": type(e).__name__,
            "message": e.message,
            "params": params,
        }
    except Exception as e:
        # keep the rest of the batch alive; the failure is reported per group
        return {
            "key": key,
            "success": False,
            "kind": type(e).__name__,
            "message": str(e),
            "params": np.full(len(PARAM_NAMES), np.nan),
        }


def run_lv_batch(
    df: pd.DataFrame,
    group_cols: Sequence[str] = (),
    time_col: str = "Time",
    x_col: str = "X",
    cfg: Optional[LVFitConfig] = None,
    n_jobs: int = 1,
) -> Dict[str, Any]:
    """
    Fit every group of a long table independently.

    Returns:
      - fits: group keys, Time, X, X_pred
      - params: group keys, parameter, estimate, std_error
      - summary: one row per fitted group
      - failures: group keys, kind, message, mu, A (last attempted parameters)
      - results: {group key tuple: FitResult}
    """
    cfg = cfg or LVFitConfig()
    group_cols = list(group_cols)
    _ensure_columns(df, group_cols + [time_col, x_col])

    if group_cols:
        grouped = [(_as_key(k), g) for k, g in df.groupby(group_cols, dropna=False, sort=True)]
    else:
        grouped = [((), df)]

    logging.info(f"Fitting {len(grouped)} group(s) with n_jobs={n_jobs}")
    outcomes = Parallel(n_jobs=n_jobs)(
        delayed(_fit_one_group)(
            key,
            pd.to_numeric(g[time_col], errors="coerce").to_numpy(dtype=float),
            pd.to_numeric(g[x_col], errors="coerce").to_numpy(dtype=float),
            cfg,
        )
        for key, g in grouped
    )

    fit_rows = []
    param_rows = []
    summary_rows = []
    failure_rows = []
    results: Dict[GroupKey, FitResult] = {}

    for out in outcomes:
        key = out["key"]
        keys = dict(zip(group_cols, key))

        if not out["success"]:
            logging.warning(f"Fit failed for group {key}: {out['kind']}: {out['message']}")
            failure_rows.append(
                {
                    **keys,
                    "kind": out["kind"],
                    "message": out["message"],
                    "mu": float(out["params"][0]),
                    "A": float(out["params"][1]),
                }
            )
            continue

        fit: FitResult = out["fit"]
        results[key] = fit

        traj = fit.trajectory_frame()
        for i, (col, val) in enumerate(keys.items()):
            traj.insert(i, col, val)
        fit_rows.append(traj)

        for name in PARAM_NAMES:
            est, se = fit.standard_errors[name]
            param_rows.append({**keys, "parameter": name, "estimate": est, "std_error": se})

        summary_rows.append(
            {
                **keys,
                "mu": fit.mu,
                "A": fit.A,
                "sigma": fit.sigma,
                "loglike": fit.log_likelihood,
                "aic": fit.aic,
                "initial_loglike": fit.initial_log_likelihood,
                "converged": fit.converged,
                "status": fit.status,
                "nfev": fit.nfev,
                "flags": ";".join(fit.flags),
            }
        )

    fits_cols = group_cols + ["Time", "X", "X_pred"]
    fits = pd.concat(fit_rows, ignore_index=True) if fit_rows else pd.DataFrame(columns=fits_cols)
    params = pd.DataFrame(param_rows, columns=group_cols + ["parameter", "estimate", "std_error"])
    summary = pd.DataFrame(
        summary_rows,
        columns=group_cols
        + ["mu", "A", "sigma", "loglike", "aic", "initial_loglike", "converged", "status", "nfev", "flags"],
    )
    failures = pd.DataFrame(failure_rows, columns=group_cols + ["kind", "message", "mu", "A"])

    logging.info(f"Fitted {len(results)} group(s), {len(failure_rows)} failure(s)")
    return {
        "fits": fits[fits_cols],
        "params": params,
        "summary": summary,
        "failures": failures,
        "results": results,
    }
