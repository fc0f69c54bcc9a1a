# src/lvgrowth/fit/lve.py
from __future__ import annotations

import time as _time
from typing import Optional

import numpy as np
from scipy.integrate import solve_ivp

from .config import LVFitConfig
from .errors import FitTimeout, IntegrationFailure


def lve_rhs(t, x, mu, A):
    # dX/dt = X * (mu - A * X)
    return x * (mu - A * x)


def state_cap(values, cfg: Optional[LVFitConfig] = None) -> float:
    """Largest X the integrator may reach before the trajectory counts as diverging."""
    cfg = cfg or LVFitConfig()
    v = np.abs(np.asarray(values, dtype=float))
    v = v[np.isfinite(v)]
    scale = float(v.max()) if v.size else 0.0
    return float(cfg.blowup_factor * max(scale, 1.0))


def integrate_lve(
    x0: float,
    mu: float,
    A: float,
    time: np.ndarray,
    cfg: Optional[LVFitConfig] = None,
    x_cap: Optional[float] = None,
    deadline: Optional[float] = None,
) -> np.ndarray:
    """
    Integrate the logistic Lotka-Volterra equation from X(time[0]) = x0 and
    return X at every requested time point, in order.

    The solve stops early when X crosses ``x_cap`` (finite-time blow-up for
    A < 0) and raises IntegrationFailure. ``deadline`` is a time.monotonic()
    value; once it passes, FitTimeout is raised from inside the solve.
    """
    cfg = cfg or LVFitConfig()
    t = np.asarray(time, float)
    if t.size == 0:
        return np.empty(0, dtype=float)
    if t.size == 1:
        return np.array([float(x0)], dtype=float)

    cap = state_cap([x0], cfg) if x_cap is None else float(x_cap)

    def rhs(t_, x, mu_, A_):
        if deadline is not None and _time.monotonic() >= deadline:
            raise FitTimeout("Fit exceeded its time budget during integration", params=[mu, A])
        return lve_rhs(t_, x, mu_, A_)

    def diverged(t_, x, mu_, A_):
        return x[0] - cap

    diverged.terminal = True
    diverged.direction = 1

    with np.errstate(over="ignore", invalid="ignore"):
        sol = solve_ivp(
            rhs,
            (float(t[0]), float(t[-1])),
            [float(x0)],
            method=cfg.ode_method,
            t_eval=t,
            events=diverged,
            args=(float(mu), float(A)),
            rtol=cfg.rtol,
            atol=cfg.atol,
        )

    if deadline is not None and _time.monotonic() >= deadline:
        raise FitTimeout("Fit exceeded its time budget during integration", params=[mu, A])
    if sol.status == 1:
        t_stop = float(sol.t_events[0][0]) if sol.t_events and len(sol.t_events[0]) else float("nan")
        raise IntegrationFailure(f"X exceeded {cap:.6g} at t={t_stop:.6g} (diverging solution)", params=[mu, A])
    if not sol.success:
        raise IntegrationFailure(f"ODE solver failed: {sol.message}", params=[mu, A])
    y = np.asarray(sol.y[0], dtype=float) if sol.y.size else np.empty(0, dtype=float)
    if y.shape != t.shape:
        raise IntegrationFailure(
            f"ODE solver returned {y.size} points for {t.size} requested times", params=[mu, A]
        )
    if not np.all(np.isfinite(y)):
        raise IntegrationFailure("ODE solution is not finite", params=[mu, A])
    return y
