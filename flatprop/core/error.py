"""Running root-mean-square error calculation."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from .errors import DataShapeError
from .types import Array


class ErrorCalculation:
    """Accumulate squared differences and report their RMS.

    One instance scores a whole pass over a dataset; call :meth:`reset`
    before reusing it for an independent run.
    """

    def __init__(self) -> None:
        self.global_error = 0.0
        self.set_size = 0

    def update_error(self, actual: Sequence[float] | Array, ideal: Sequence[float] | Array) -> None:
        actual_arr = np.asarray(actual, dtype=np.float64)
        ideal_arr = np.asarray(ideal, dtype=np.float64)
        if actual_arr.shape != ideal_arr.shape:
            raise DataShapeError(
                f"Actual shape {actual_arr.shape} does not match ideal shape {ideal_arr.shape}"
            )
        diff = actual_arr - ideal_arr
        self.global_error += float(np.dot(diff.ravel(), diff.ravel()))
        self.set_size += int(diff.size)

    def calculate(self) -> float:
        if self.set_size == 0:
            return 0.0
        return math.sqrt(self.global_error / self.set_size)

    def reset(self) -> None:
        self.global_error = 0.0
        self.set_size = 0


__all__ = ["ErrorCalculation"]
