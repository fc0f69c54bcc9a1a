# src/lvgrowth/fit/config.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional


@dataclass(frozen=True)
class LVFitConfig:
    # ODE integration
    ode_method: str = "LSODA"
    rtol: float = 1e-8
    atol: float = 1e-10

    # parameter bounds (mu is unbounded)
    lower_A: float = -1e-9

    # least-squares termination
    ftol: float = 1e-10
    xtol: float = 1e-10
    gtol: float = 1e-10
    max_nfev: int = 2000
    diff_step: Optional[float] = 1e-6

    # X above blowup_factor * max(|observed|, 1) ends the solve as a diverging trajectory
    blowup_factor: float = 1e6

    # residual returned for trial points the integrator cannot handle
    penalty_residual: float = 1e10

    # column-scaled J^T J above this condition number is treated as singular
    max_condition: float = 1e12

    # wall-clock budget per fit, seconds; also checked inside each ODE solve
    timeout: Optional[float] = None

    def to_dict(self) -> dict[str, object]:
        return asdict(self)
