# src/lvgrowth/fit/pipeline.py
from __future__ import annotations

import logging
import time as _time
from typing import Optional, Tuple

import numpy as np

from .config import LVFitConfig
from .errors import IntegrationFailure, InvalidSeries
from .evaluate import evaluate_fit
from .least_squares import fit_least_squares
from .lve import integrate_lve
from .residual import FitContext, make_residual_fn
from .start_values import start_values
from .types import FLAG_INITIAL_INTEGRATION_FAILED, FitResult


def prepare_series(time: np.ndarray, x: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Drop non-finite pairs, sort by time, and reject duplicate times or negative X."""
    t = np.asarray(time, float)
    x = np.asarray(x, float)
    if t.shape != x.shape or t.ndim != 1:
        raise InvalidSeries(f"time and X must be 1-D and the same length (got {t.shape} and {x.shape})")

    mask = np.isfinite(t) & np.isfinite(x)
    t = t[mask]
    x = x[mask]
    if t.size == 0:
        raise InvalidSeries("No finite (Time, X) observations")

    order = np.argsort(t, kind="stable")
    t = t[order]
    x = x[order]

    if np.any(np.diff(t) == 0):
        raise InvalidSeries("Duplicate Time values in series")
    if np.any(x < 0):
        raise InvalidSeries("Negative X values in series")
    return t, x


def fit_lotka_volterra(
    time: np.ndarray,
    x: np.ndarray,
    cfg: Optional[LVFitConfig] = None,
) -> FitResult:
    """
    Fit dX/dt = X (mu - A X) to one series.

    Steps: finite-difference starting values -> diagnostic integration at the
    starting values -> bounded least squares -> likelihood at the optimum.
    Raises an LVFitError subclass when the series cannot be fitted; with
    cfg.timeout set, FitTimeout once the whole fit runs past its budget.
    """
    cfg = cfg or LVFitConfig()
    deadline = None if cfg.timeout is None else _time.monotonic() + float(cfg.timeout)
    t, xs = prepare_series(time, x)
    context = FitContext.from_series(t, xs)

    mu0, A0 = start_values(t, xs)
    logging.debug(f"Starting values mu0={mu0:.6g} A0={A0:.6g} (n={t.size})")

    flags = []
    try:
        initial_fitted = integrate_lve(
            context.x0, mu0, A0, context.time, cfg, x_cap=context.x_cap(cfg), deadline=deadline
        )
    except IntegrationFailure as e:
        logging.debug(f"Initial integration failed: {e.message}")
        initial_fitted = None
        flags.append(FLAG_INITIAL_INTEGRATION_FAILED)

    residual_fn = make_residual_fn(context, cfg, deadline=deadline)
    lsq = fit_least_squares(residual_fn, [mu0, A0], cfg, deadline=deadline)
    logging.debug(
        f"Least squares: mu={lsq.params[0]:.6g} A={lsq.params[1]:.6g} sigma={lsq.sigma:.6g} "
        f"status={lsq.status} nfev={lsq.nfev}"
    )

    return evaluate_fit(context, lsq, start=(mu0, A0), initial_fitted=initial_fitted, cfg=cfg, extra_flags=flags)
