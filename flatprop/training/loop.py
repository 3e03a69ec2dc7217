"""Drive any trainer until an iteration cap or an error threshold."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Protocol, Sequence

logger = logging.getLogger(__name__)


class IterativeTrainer(Protocol):
    error: float

    def iteration(self) -> float:
        ...


@dataclass
class TrainingHistory:
    errors: List[float] = field(default_factory=list)
    stop_reason: str = ""
    elapsed: float = 0.0

    @property
    def iterations(self) -> int:
        return len(self.errors)

    @property
    def final_error(self) -> float:
        return self.errors[-1] if self.errors else float("inf")


def train(
    trainer: IterativeTrainer,
    *,
    max_iterations: int,
    target_error: float | None = None,
    callbacks: Sequence[object] = (),
) -> TrainingHistory:
    """Call ``trainer.iteration()`` until ``max_iterations`` or ``target_error``.

    Callbacks exposing ``on_iteration(iteration, metrics)`` receive the
    1-based iteration number and ``{"error", "seconds"}`` after every step.
    """

    if max_iterations <= 0:
        raise ValueError(f"max_iterations must be positive, got {max_iterations}")

    history = TrainingHistory(stop_reason="max_iterations")
    start = time.perf_counter()
    for iteration in range(1, max_iterations + 1):
        tick = time.perf_counter()
        error = float(trainer.iteration())
        history.errors.append(error)
        metrics = {"error": error, "seconds": time.perf_counter() - tick}
        for callback in callbacks:
            hook = getattr(callback, "on_iteration", None)
            if hook is not None:
                hook(iteration, metrics)
        if target_error is not None and error < target_error:
            history.stop_reason = "target_error"
            break
    history.elapsed = time.perf_counter() - start
    logger.info(
        "Stopped after %d iteration(s) (%s), error=%.6f",
        history.iterations,
        history.stop_reason,
        history.final_error,
    )
    return history


__all__ = ["IterativeTrainer", "TrainingHistory", "train"]
