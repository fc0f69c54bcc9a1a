# src/lvgrowth/fit/errors.py
from __future__ import annotations

from typing import Optional, Sequence

import numpy as np


class LVFitError(Exception):
    """Base class for per-series fit failures.

    ``params`` holds the last attempted ``[mu, A]`` when one exists, so batch
    reports can show where the fit stopped.
    """

    def __init__(self, message: str, params: Optional[Sequence[float]] = None):
        super().__init__(message)
        self.message = message
        self.params = None if params is None else np.asarray(params, dtype=float).copy()


class InvalidSeries(LVFitError):
    pass


class StartingValueUndefined(LVFitError):
    pass


class IntegrationFailure(LVFitError):
    pass


class FitTimeout(LVFitError):
    pass
