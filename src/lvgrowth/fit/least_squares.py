# src/lvgrowth/fit/least_squares.py
from __future__ import annotations

import logging
import time
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
from scipy.optimize import least_squares

from .config import LVFitConfig
from .errors import FitTimeout, IntegrationFailure
from .residual import ResidualFn
from .types import LeastSquaresFit, N_PARAMS, PARAM_NAMES


def parameter_bounds(cfg: LVFitConfig) -> Tuple[np.ndarray, np.ndarray]:
    lower = np.array([-np.inf, cfg.lower_A], dtype=float)
    upper = np.array([np.inf, np.inf], dtype=float)
    return lower, upper


def covariance_from_jacobian(
    jac: np.ndarray,
    sigma: float,
    max_condition: float,
) -> Tuple[np.ndarray, bool]:
    """
    sigma^2 (J^T J)^-1 computed through the SVD of J (same route as
    scipy.optimize.curve_fit), on column-scaled J so the conditioning check
    does not depend on the units of mu and A.

    Returns (cov, degenerate). A rank-deficient or ill-conditioned J, or a
    sigma that is not > 0, gives a NaN matrix.
    """
    p = jac.shape[1]
    nan_cov = np.full((p, p), np.nan)
    if not (np.isfinite(sigma) and sigma > 0) or not np.all(np.isfinite(jac)):
        return nan_cov, True

    scale = np.linalg.norm(jac, axis=0)
    if np.any(scale == 0):
        return nan_cov, True
    jac_scaled = jac / scale

    try:
        _, s, VT = np.linalg.svd(jac_scaled, full_matrices=False)
    except np.linalg.LinAlgError:
        return nan_cov, True

    threshold = np.finfo(float).eps * max(jac.shape) * s[0]
    if s.size < p or np.any(s <= threshold):
        return nan_cov, True
    if (s[0] / s[-1]) ** 2 > max_condition:
        return nan_cov, True

    cov_scaled = (VT.T / s ** 2) @ VT
    cov = cov_scaled / np.outer(scale, scale)
    return cov * sigma ** 2, False


def fit_least_squares(
    residual_fn: ResidualFn,
    p0: Sequence[float],
    cfg: Optional[LVFitConfig] = None,
    deadline: Optional[float] = None,
) -> LeastSquaresFit:
    """
    Bounded trust-region least squares on [mu, A] with A >= cfg.lower_A.

    Trial points where the ODE cannot be integrated get a large constant
    residual so the step is rejected instead of ending the fit. The starting
    point itself must integrate; otherwise IntegrationFailure is raised.

    ``deadline`` (time.monotonic() value) defaults to now + cfg.timeout. Pass
    the same deadline to the residual function so a single slow solve is
    bounded too.
    """
    cfg = cfg or LVFitConfig()
    lower, upper = parameter_bounds(cfg)
    x0 = np.clip(np.asarray(p0, dtype=float), lower, upper)

    r0 = residual_fn(x0)
    n_obs = int(r0.size)
    penalty = np.full(n_obs, float(cfg.penalty_residual))

    if deadline is None and cfg.timeout is not None:
        deadline = time.monotonic() + float(cfg.timeout)
    n_inadmissible = 0

    def admissible_residual(params: np.ndarray) -> np.ndarray:
        nonlocal n_inadmissible
        if deadline is not None and time.monotonic() >= deadline:
            raise FitTimeout("Fit exceeded its time budget", params=params)
        try:
            return residual_fn(params)
        except IntegrationFailure as e:
            n_inadmissible += 1
            logging.debug(f"Inadmissible trial point mu={params[0]:.6g} A={params[1]:.6g}: {e.message}")
            return penalty

    res = least_squares(
        admissible_residual,
        x0,
        bounds=(lower, upper),
        method="trf",
        x_scale="jac",
        ftol=cfg.ftol,
        xtol=cfg.xtol,
        gtol=cfg.gtol,
        max_nfev=cfg.max_nfev,
        diff_step=cfg.diff_step,
    )

    params = np.clip(np.asarray(res.x, dtype=float), lower, upper)
    resid = np.asarray(res.fun, dtype=float)
    jac = np.atleast_2d(np.asarray(res.jac, dtype=float))

    dof = n_obs - N_PARAMS
    ssr = float(np.sum(resid ** 2))
    sigma = float(np.sqrt(ssr / dof)) if dof > 0 else float("nan")

    cov, degenerate = covariance_from_jacobian(jac, sigma, cfg.max_condition)
    se = np.sqrt(np.diag(cov)) if not degenerate else np.full(N_PARAMS, np.nan)
    standard_errors: Dict[str, Tuple[float, float]] = {
        name: (float(params[i]), float(se[i])) for i, name in enumerate(PARAM_NAMES)
    }

    converged = bool(res.status > 0)
    if not converged:
        logging.warning(
            f"Least squares stopped without convergence (status={res.status}, nfev={res.nfev}): {res.message}"
        )
    if degenerate:
        logging.warning(
            f"Covariance undefined at mu={params[0]:.6g} A={params[1]:.6g} (sigma={sigma:.6g}); standard errors are NaN"
        )

    return LeastSquaresFit(
        params=params,
        residuals=resid,
        jac=jac,
        sigma=sigma,
        cov=cov,
        standard_errors=standard_errors,
        converged=converged,
        status=int(res.status),
        message=str(res.message),
        nfev=int(res.nfev),
        n_inadmissible=n_inadmissible,
        degenerate_covariance=degenerate,
    )
