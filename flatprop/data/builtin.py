"""Pure in-memory datasets shipped with flatprop."""

from __future__ import annotations

import numpy as np

from .dataset import BasicDataset
from .registry import DatasetSpec, register_dataset

XOR_INPUT = [[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]]
XOR_IDEAL = [[0.0], [1.0], [1.0], [0.0]]


@register_dataset("xor")
def load_xor(**_: object) -> DatasetSpec:
    """The four-row XOR truth table."""

    return DatasetSpec(
        name="xor",
        dataset=BasicDataset(XOR_INPUT, XOR_IDEAL),
        provenance={"type": "xor", "rows": len(XOR_INPUT)},
    )


def make_sine(freq: float, n_points: int, seed: int, noise: float) -> tuple[np.ndarray, np.ndarray]:
    rng = np.random.default_rng(seed)
    x = np.linspace(-1.0, 1.0, n_points, dtype=np.float64).reshape(-1, 1)
    y = np.sin(freq * np.pi * x)
    if noise:
        y = y + noise * rng.standard_normal(size=y.shape)
    # squash into (0, 1) so sigmoid outputs can reach every target
    return x, 0.5 + 0.4 * y


@register_dataset("sine")
def load_sine(
    freq: float = 1.0,
    n_points: int = 64,
    seed: int = 0,
    noise: float = 0.02,
    **_: object,
) -> DatasetSpec:
    """Noisy one-dimensional sine regression scaled into ``(0, 1)``."""

    x, y = make_sine(freq=freq, n_points=int(n_points), seed=int(seed), noise=float(noise))
    provenance = {
        "type": "sine",
        "freq": freq,
        "n_points": int(n_points),
        "seed": int(seed),
        "noise": float(noise),
    }
    return DatasetSpec(name="sine", dataset=BasicDataset(x, y), provenance=provenance)


__all__ = ["XOR_IDEAL", "XOR_INPUT", "load_sine", "load_xor", "make_sine"]
