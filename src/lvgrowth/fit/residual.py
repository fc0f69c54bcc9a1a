# src/lvgrowth/fit/residual.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from .config import LVFitConfig
from .lve import integrate_lve, state_cap

ResidualFn = Callable[[np.ndarray], np.ndarray]


@dataclass(frozen=True, eq=False)
class FitContext:
    """Fixed data for one fit: observation times, observed X and X(time[0])."""

    time: np.ndarray
    observed: np.ndarray
    x0: float

    @classmethod
    def from_series(cls, time: np.ndarray, observed: np.ndarray) -> "FitContext":
        t = np.array(time, dtype=float)
        x = np.array(observed, dtype=float)
        t.setflags(write=False)
        x.setflags(write=False)
        return cls(time=t, observed=x, x0=float(x[0]))

    def x_cap(self, cfg: Optional[LVFitConfig] = None) -> float:
        return state_cap(np.append(self.observed, self.x0), cfg)


def make_residual_fn(
    context: FitContext,
    cfg: Optional[LVFitConfig] = None,
    deadline: Optional[float] = None,
) -> ResidualFn:
    """
    Residual function for one series: params [mu, A] -> integrated X - observed X.
    IntegrationFailure and FitTimeout propagate to the caller.
    """
    cfg = cfg or LVFitConfig()
    cap = context.x_cap(cfg)

    def residual(params: np.ndarray) -> np.ndarray:
        mu, A = float(params[0]), float(params[1])
        x_hat = integrate_lve(context.x0, mu, A, context.time, cfg, x_cap=cap, deadline=deadline)
        return x_hat - context.observed

    return residual
