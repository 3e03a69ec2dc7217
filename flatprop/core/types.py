"""Core typing contracts for flatprop."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, Protocol

import numpy as np

Array = np.ndarray


class Pair(Protocol):
    """A single (input, ideal) example with preallocated buffers."""

    input: Array
    ideal: Array


class IndexableDataset(Protocol):
    """Random-access training set consumed by the training core."""

    @property
    def count(self) -> int:
        """Number of examples."""

    @property
    def input_size(self) -> int:
        """Width of every input vector."""

    @property
    def ideal_size(self) -> int:
        """Width of every ideal vector."""

    def get_record(self, index: int, pair: Pair) -> None:
        """Copy example ``index`` into ``pair``."""

    def __len__(self) -> int:
        ...

    def __iter__(self) -> Iterator[Pair]:
        ...


@dataclass
class GradientState:
    """Per-weight accumulator state owned by a trainer.

    ``update_values`` holds the adaptive step size for RPROP style strategies
    and the last applied delta for momentum backpropagation.
    """

    gradients: Array
    last_gradient: Array
    update_values: Array
    last_change: Array
    current_error: float = float("inf")
    last_error: float = float("inf")

    @classmethod
    def zeros(cls, weight_count: int, initial_update: float = 0.0) -> "GradientState":
        return cls(
            gradients=np.zeros(weight_count, dtype=np.float64),
            last_gradient=np.zeros(weight_count, dtype=np.float64),
            update_values=np.full(weight_count, initial_update, dtype=np.float64),
            last_change=np.zeros(weight_count, dtype=np.float64),
        )

    @property
    def weight_count(self) -> int:
        return int(self.gradients.size)

    def record_error(self, error: float) -> None:
        """Shift ``current_error`` into ``last_error`` and store ``error``."""

        self.last_error = self.current_error
        self.current_error = float(error)


@dataclass
class TrainingContinuation:
    """Snapshot of a trainer's history, enough to resume training later."""

    training_type: str
    contents: Dict[str, Array] = field(default_factory=dict)

    def get(self, key: str) -> Array:
        return self.contents[key]

    def set(self, key: str, value: Array) -> None:
        self.contents[key] = np.array(value, dtype=np.float64, copy=True)


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`flatprop.training.pipelines.run_pipeline`."""

    iterations: int
    final_error: float
    metrics_path: str
    manifest_path: str
    summary_path: str = ""
    checkpoint_path: str = ""


__all__ = [
    "Array",
    "GradientState",
    "IndexableDataset",
    "Pair",
    "RunResult",
    "TrainingContinuation",
]
