"""Exception hierarchy for flatprop."""

from __future__ import annotations


class FlatpropError(Exception):
    """Base class for every error raised by flatprop."""


class NetworkConfigError(FlatpropError, ValueError):
    """A topology or algorithm precondition is violated at construction."""


class DataShapeError(FlatpropError, ValueError):
    """A training example does not match the declared input/ideal widths."""


class TrainingError(FlatpropError, RuntimeError):
    """A trainer was misused (disposed, empty data, bad resume state)."""


__all__ = ["FlatpropError", "NetworkConfigError", "DataShapeError", "TrainingError"]
