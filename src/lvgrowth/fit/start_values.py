# src/lvgrowth/fit/start_values.py
from __future__ import annotations

from typing import Tuple

import numpy as np

from .errors import StartingValueUndefined


def per_capita_growth_rates(time: np.ndarray, x: np.ndarray) -> np.ndarray:
    """
    Forward finite-difference per-capita growth rate for every point but the last.
    Points with x == 0 have no defined rate and come back as NaN; the last
    point is always NaN (no forward neighbour).
    """
    t = np.asarray(time, float)
    x = np.asarray(x, float)
    rates = np.full(len(x), np.nan, dtype=float)
    if len(x) < 2:
        return rates

    x_i = x[:-1]
    ok = x_i != 0
    dx = np.diff(x)
    dt = np.diff(t)
    rates[:-1][ok] = (dx[ok] / x_i[ok]) / dt[ok]
    return rates


def start_values(time: np.ndarray, x: np.ndarray) -> Tuple[float, float]:
    """
    Starting guess (mu0, A0): mu0 is the mean of the defined per-capita growth
    rates, A0 = mu0 / max(x).
    """
    x = np.asarray(x, float)
    rates = per_capita_growth_rates(time, x)
    defined = rates[np.isfinite(rates)]
    if defined.size == 0:
        raise StartingValueUndefined(
            f"No per-capita growth rate could be computed from {len(x)} observation(s)"
        )

    x_max = float(np.max(x))
    if x_max == 0:
        raise StartingValueUndefined("max(X) is 0; cannot derive A from mu")

    mu0 = float(np.mean(defined))
    A0 = mu0 / x_max
    if not (np.isfinite(mu0) and np.isfinite(A0)):
        raise StartingValueUndefined(f"Non-finite starting values mu0={mu0}, A0={A0}", params=[mu0, A0])
    return mu0, A0
