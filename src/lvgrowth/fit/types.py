# src/lvgrowth/fit/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

import numpy as np
import pandas as pd
from scipy import stats

PARAM_NAMES: Tuple[str, str] = ("mu", "A")
N_PARAMS = len(PARAM_NAMES)

# flags a FitResult may carry
FLAG_NOT_CONVERGED = "not_converged"
FLAG_DEGENERATE_COVARIANCE = "degenerate_covariance"
FLAG_DEGENERATE_SIGMA = "degenerate_sigma"
FLAG_INITIAL_INTEGRATION_FAILED = "initial_integration_failed"


def _read_only(standard_errors: Mapping[str, Tuple[float, float]]) -> Mapping[str, Tuple[float, float]]:
    return MappingProxyType({name: (float(est), float(se)) for name, (est, se) in standard_errors.items()})


@dataclass(frozen=True, eq=False)
class LeastSquaresFit:
    params: np.ndarray
    residuals: np.ndarray
    jac: np.ndarray
    sigma: float
    cov: np.ndarray
    standard_errors: Mapping[str, Tuple[float, float]]
    converged: bool
    status: int
    message: str
    nfev: int
    n_inadmissible: int = 0
    degenerate_covariance: bool = False

    def __post_init__(self):
        object.__setattr__(self, "standard_errors", _read_only(self.standard_errors))

    @property
    def ssr(self) -> float:
        return float(np.sum(self.residuals ** 2))


@dataclass(frozen=True, eq=False)
class FitResult:
    # data and trajectories, aligned on time
    time: np.ndarray
    observed: np.ndarray
    fitted: np.ndarray
    initial_fitted: np.ndarray

    # estimates
    mu: float
    A: float
    sigma: float
    start: Tuple[float, float]
    standard_errors: Mapping[str, Tuple[float, float]]
    cov: np.ndarray

    # fit quality
    log_likelihood: float
    aic: float
    initial_log_likelihood: float

    # optimizer report
    converged: bool
    status: int
    message: str
    nfev: int
    n_inadmissible: int = 0
    flags: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "standard_errors", _read_only(self.standard_errors))

    @property
    def n(self) -> int:
        return int(len(self.time))

    @property
    def residuals(self) -> np.ndarray:
        return self.fitted - self.observed

    @property
    def carrying_capacity(self) -> float:
        if self.A == 0:
            return float("inf")
        return float(self.mu / self.A)

    def trajectory_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"Time": self.time, "X": self.observed, "X_pred": self.fitted})

    def coefficient_table(self) -> pd.DataFrame:
        """
        Estimate / std. error / t value / Pr(>|t|) per parameter, with
        n - p residual degrees of freedom.
        """
        dof = self.n - N_PARAMS
        rows = []
        for name in PARAM_NAMES:
            est, se = self.standard_errors[name]
            if np.isfinite(se) and se > 0:
                t_value = est / se
                p_value = float(2.0 * stats.t.sf(abs(t_value), dof)) if dof > 0 else np.nan
            else:
                t_value = np.nan
                p_value = np.nan
            rows.append(
                {
                    "parameter": name,
                    "estimate": est,
                    "std_error": se,
                    "t_value": t_value,
                    "p_value": p_value,
                }
            )
        return pd.DataFrame(rows, columns=["parameter", "estimate", "std_error", "t_value", "p_value"])

    def has_flag(self, flag: str) -> bool:
        return flag in self.flags
