"""Activation functions shared by every layer of a flat network."""

from __future__ import annotations

from enum import IntEnum

import numpy as np

from .errors import NetworkConfigError
from .types import Array


class ActivationType(IntEnum):
    """Closed set of activation kinds a flat network can hold."""

    LINEAR = 0
    TANH = 1
    SIGMOID = 2

    @classmethod
    def parse(cls, value: "ActivationType | int | str") -> "ActivationType":
        """Resolve ``value`` to a member, failing loudly on anything unknown."""

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                names = ", ".join(m.name.lower() for m in cls)
                raise NetworkConfigError(
                    f"Unknown activation type: {value!r}. Available: {names}"
                ) from None
        try:
            return cls(int(value))
        except ValueError:
            raise NetworkConfigError(f"Unknown activation type: {value!r}") from None


def activate(kind: ActivationType | int, x: Array, out: Array | None = None) -> Array:
    """Apply activation ``kind`` to ``x``.

    When ``out`` is given the result is written there (``out`` may be ``x``
    itself) and nothing else is allocated.
    """

    kind = ActivationType.parse(kind)
    if out is None:
        out = np.array(x, dtype=np.float64, copy=True)
    elif out is not x:
        np.copyto(out, x)
    if kind is ActivationType.LINEAR:
        return out
    with np.errstate(over="ignore"):
        if kind is ActivationType.TANH:
            # -1 + 2 / (1 + exp(-2x)), which is tanh(x)
            np.multiply(out, -2.0, out=out)
            np.exp(out, out=out)
            np.add(out, 1.0, out=out)
            np.divide(2.0, out, out=out)
            np.subtract(out, 1.0, out=out)
            return out
        np.negative(out, out=out)
        np.exp(out, out=out)
        np.add(out, 1.0, out=out)
        np.reciprocal(out, out=out)
    return out


def derivative(kind: ActivationType | int, y: Array) -> Array:
    """Derivative expressed in terms of the activation output ``y``."""

    kind = ActivationType.parse(kind)
    if kind is ActivationType.LINEAR:
        return np.ones_like(y, dtype=np.float64)
    if kind is ActivationType.TANH:
        return 1.0 - y * y
    return y * (1.0 - y)


__all__ = [
    "ActivationType",
    "activate",
    "derivative",
]
