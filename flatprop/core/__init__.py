"""Flat network layout, activations, error and update strategies."""

from . import activations, error, errors, flat, strategies, types

__all__ = ["activations", "error", "errors", "flat", "strategies", "types"]
