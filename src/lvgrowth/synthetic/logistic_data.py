# src/lvgrowth/synthetic/logistic_data.py
"""
Synthetic logistic growth series for demos and tests.

  logistic_solution   closed-form X(t) of dX/dt = X (mu - A X)
  simulate_logistic   one series, optional Gaussian noise (clipped at 0)
  make_synthetic_table  long table: replicate, Time, X
"""
from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd


def logistic_solution(time: np.ndarray, mu: float, A: float, x0: float) -> np.ndarray:
    t = np.asarray(time, float)
    tau = t - t[0]
    # (exp(mu tau) - 1) / mu, with the mu -> 0 limit
    growth = np.expm1(mu * tau) / mu if mu != 0 else tau
    return x0 * np.exp(mu * tau) / (1.0 + A * x0 * growth)


def simulate_logistic(
    time: np.ndarray,
    mu: float,
    A: float,
    x0: float,
    noise_sd: float = 0.0,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    x = logistic_solution(time, mu, A, x0)
    if noise_sd > 0:
        rng = rng or np.random.default_rng()
        x = x + rng.normal(0.0, noise_sd, size=x.shape)
        x = np.clip(x, 0.0, None)
    return x


def make_synthetic_table(
    mu: float,
    A: float,
    x0: float,
    max_time: float = 24.0,
    time_step: float = 1.0,
    noise_sd: float = 0.0,
    n_reps: int = 1,
    seed: Optional[int] = 123,
) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    time_points = np.arange(0.0, max_time + time_step / 2, time_step)

    frames = []
    for rep in range(1, n_reps + 1):
        x = simulate_logistic(time_points, mu, A, x0, noise_sd=noise_sd, rng=rng)
        frames.append(pd.DataFrame({"replicate": rep, "Time": time_points, "X": x}))
    return pd.concat(frames, ignore_index=True)
