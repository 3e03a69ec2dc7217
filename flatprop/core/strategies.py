"""Weight-update strategies for flat-network training.

A strategy turns the gradients accumulated over one iteration into the delta
applied to every weight. Strategies hold only hyper-parameters; all per-weight
history lives in the :class:`~flatprop.core.types.GradientState` owned by the
trainer, so one strategy instance can serve several trainers.

Each rule is index-local: ``update_weight(state, i)`` and the vectorised
``update_weights(state)`` produce identical numbers for every index.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import numpy as np

from .errors import TrainingError
from .types import Array, GradientState

DEFAULT_ZERO_TOLERANCE = 1e-17
DEFAULT_INITIAL_UPDATE = 0.1
DEFAULT_MAX_STEP = 50.0
POSITIVE_ETA = 1.2
NEGATIVE_ETA = 0.5
DELTA_MIN = 1e-6


class UpdateStrategy(Protocol):
    """Protocol implemented by weight-update strategies."""

    name: str

    def init(self, weight_count: int) -> GradientState:
        """Allocate the per-weight state this strategy needs."""

    def update_weight(self, state: GradientState, index: int) -> float:
        """Return the delta for weight ``index`` and update its history."""

    def update_weights(self, state: GradientState) -> Array:
        """Return the deltas for every weight and update all history."""


def sign(values: Array, tolerance: float = DEFAULT_ZERO_TOLERANCE) -> Array:
    """Elementwise sign with a zero band of width ``tolerance`` around 0."""

    out = np.sign(values)
    out[np.abs(values) < tolerance] = 0.0
    return out


class _IndexLocal:
    """Derive the scalar and vector entry points from one ``_delta`` rule."""

    def _delta(self, state: GradientState, sel: slice) -> Array:  # pragma: no cover - abstract
        raise NotImplementedError

    def update_weight(self, state: GradientState, index: int) -> float:
        if not 0 <= index < state.weight_count:
            raise IndexError(f"Weight index {index} out of range for {state.weight_count} weights")
        return float(self._delta(state, slice(index, index + 1))[0])

    def update_weights(self, state: GradientState) -> Array:
        return self._delta(state, slice(None))


@dataclass
class Backpropagation(_IndexLocal):
    """Gradient step scaled by a learning rate, plus momentum."""

    learning_rate: float = 0.7
    momentum: float = 0.3
    name: str = "backprop"

    def init(self, weight_count: int) -> GradientState:
        return GradientState.zeros(weight_count)

    def _delta(self, state: GradientState, sel: slice) -> Array:
        delta = state.gradients[sel] * self.learning_rate + state.update_values[sel] * self.momentum
        state.update_values[sel] = delta
        state.last_gradient[sel] = state.gradients[sel]
        state.last_change[sel] = delta
        return delta


@dataclass
class ManhattanPropagation(_IndexLocal):
    """Fixed-size step in the direction of the gradient's sign."""

    learning_rate: float = 0.001
    zero_tolerance: float = DEFAULT_ZERO_TOLERANCE
    name: str = "manhattan"

    def init(self, weight_count: int) -> GradientState:
        return GradientState.zeros(weight_count)

    def _delta(self, state: GradientState, sel: slice) -> Array:
        delta = sign(state.gradients[sel], self.zero_tolerance) * self.learning_rate
        state.last_gradient[sel] = state.gradients[sel]
        state.last_change[sel] = delta
        return delta


class RPROPType(Enum):
    """RPROP variants as (label, backtrack, improved) policy flags.

    ``backtrack``: on a sign reversal, revert the previous weight change
    instead of stepping. ``improved``: for backtracking variants only revert
    when the error went up; for the others forget the gradient history on a
    reversal so the next iteration starts neutral.
    """

    RPROP_PLUS = ("rprop+", True, False)
    RPROP_MINUS = ("rprop-", False, False)
    IRPROP_PLUS = ("irprop+", True, True)
    IRPROP_MINUS = ("irprop-", False, True)

    def __init__(self, label: str, backtrack: bool, improved: bool) -> None:
        self.label = label
        self.backtrack = backtrack
        self.improved = improved

    @classmethod
    def parse(cls, value: "RPROPType | str") -> "RPROPType":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if key in {member.label, member.name.lower()}:
                return member
        labels = ", ".join(member.label for member in cls)
        raise TrainingError(f"Unknown RPROP type: {value!r}. Available: {labels}")


@dataclass
class ResilientPropagation(_IndexLocal):
    """Sign-based adaptive step training (RPROP family)."""

    rprop_type: RPROPType | str = RPROPType.RPROP_PLUS
    initial_update: float = DEFAULT_INITIAL_UPDATE
    max_step: float = DEFAULT_MAX_STEP
    positive_eta: float = POSITIVE_ETA
    negative_eta: float = NEGATIVE_ETA
    delta_min: float = DELTA_MIN
    zero_tolerance: float = DEFAULT_ZERO_TOLERANCE
    name: str = "rprop"

    def __post_init__(self) -> None:
        self.rprop_type = RPROPType.parse(self.rprop_type)

    def init(self, weight_count: int) -> GradientState:
        return GradientState.zeros(weight_count, self.initial_update)

    def _delta(self, state: GradientState, sel: slice) -> Array:
        kind: RPROPType = self.rprop_type  # type: ignore[assignment]
        gradients = state.gradients[sel]
        step = state.update_values[sel].copy()

        change = sign(gradients * state.last_gradient[sel], self.zero_tolerance)
        grow = change > 0
        shrink = change < 0

        step[grow] = np.minimum(step[grow] * self.positive_eta, self.max_step)
        step[shrink] = np.maximum(step[shrink] * self.negative_eta, self.delta_min)

        delta = sign(gradients, self.zero_tolerance) * step
        history = gradients.copy()

        if kind.backtrack:
            undo = shrink
            if kind.improved and not state.current_error > state.last_error:
                undo = np.zeros_like(shrink)
            previous = state.last_change[sel]
            delta[shrink] = 0.0
            delta[undo] = -previous[undo]
            history[shrink] = 0.0
        elif kind.improved:
            history[shrink] = 0.0

        state.update_values[sel] = step
        state.last_gradient[sel] = history
        state.last_change[sel] = delta
        return delta


__all__ = [
    "Backpropagation",
    "DEFAULT_INITIAL_UPDATE",
    "DEFAULT_MAX_STEP",
    "DEFAULT_ZERO_TOLERANCE",
    "DELTA_MIN",
    "ManhattanPropagation",
    "NEGATIVE_ETA",
    "POSITIVE_ETA",
    "RPROPType",
    "ResilientPropagation",
    "UpdateStrategy",
    "sign",
]
