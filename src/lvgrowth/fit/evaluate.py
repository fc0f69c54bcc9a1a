# src/lvgrowth/fit/evaluate.py
from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy import stats

from .config import LVFitConfig
from .errors import IntegrationFailure
from .lve import integrate_lve
from .residual import FitContext
from .types import (
    FLAG_DEGENERATE_COVARIANCE,
    FLAG_DEGENERATE_SIGMA,
    FLAG_NOT_CONVERGED,
    N_PARAMS,
    FitResult,
    LeastSquaresFit,
)


def sigma_is_usable(sigma: float) -> bool:
    return bool(np.isfinite(sigma) and sigma > 0)


def log_likelihood(x: np.ndarray, mean: np.ndarray, sigma: float) -> float:
    """Sum of Gaussian log densities of x around mean with sd sigma; NaN if sigma is not > 0."""
    if not sigma_is_usable(sigma):
        return float("nan")
    return float(np.sum(stats.norm.logpdf(np.asarray(x, float), loc=np.asarray(mean, float), scale=sigma)))


def aic_from_loglike(loglike: float, k: int) -> float:
    # k counts sigma as an estimated parameter
    return float(-2.0 * loglike + 2.0 * k)


def evaluate_fit(
    context: FitContext,
    lsq: LeastSquaresFit,
    start: Tuple[float, float],
    initial_fitted: Optional[np.ndarray] = None,
    cfg: Optional[LVFitConfig] = None,
    extra_flags: Sequence[str] = (),
) -> FitResult:
    """
    Re-integrate at the converged parameters and score the fit with the
    fitter's sigma. The initial-guess trajectory, when given, is scored with
    the same sigma so both likelihoods are comparable.
    """
    cfg = cfg or LVFitConfig()
    mu, A = float(lsq.params[0]), float(lsq.params[1])

    try:
        fitted = integrate_lve(context.x0, mu, A, context.time, cfg, x_cap=context.x_cap(cfg))
    except IntegrationFailure as e:
        raise IntegrationFailure(f"Integration failed at final parameters: {e.message}", params=[mu, A]) from e

    flags = list(extra_flags)
    if not lsq.converged:
        flags.append(FLAG_NOT_CONVERGED)
    if lsq.degenerate_covariance:
        flags.append(FLAG_DEGENERATE_COVARIANCE)

    sigma = lsq.sigma
    if sigma_is_usable(sigma):
        loglike = log_likelihood(context.observed, fitted, sigma)
        aic = aic_from_loglike(loglike, N_PARAMS + 1)
    else:
        logging.warning(f"Residual scale sigma={sigma} is not positive; log-likelihood undefined")
        flags.append(FLAG_DEGENERATE_SIGMA)
        loglike = float("nan")
        aic = float("nan")

    if initial_fitted is None:
        initial_fitted = np.full(context.time.shape, np.nan)
    initial_loglike = (
        log_likelihood(context.observed, initial_fitted, sigma)
        if np.all(np.isfinite(initial_fitted))
        else float("nan")
    )

    return FitResult(
        time=np.array(context.time, dtype=float),
        observed=np.array(context.observed, dtype=float),
        fitted=fitted,
        initial_fitted=np.asarray(initial_fitted, dtype=float),
        mu=mu,
        A=A,
        sigma=float(sigma),
        start=(float(start[0]), float(start[1])),
        standard_errors=lsq.standard_errors,
        cov=np.array(lsq.cov, dtype=float),
        log_likelihood=loglike,
        aic=aic,
        initial_log_likelihood=initial_loglike,
        converged=lsq.converged,
        status=lsq.status,
        message=lsq.message,
        nfev=lsq.nfev,
        n_inadmissible=lsq.n_inadmissible,
        flags=tuple(flags),
    )
