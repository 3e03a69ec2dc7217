"""Generic CSV loader producing input/ideal matrices."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import numpy as np
import pandas as pd

from ..core.errors import DataShapeError
from .dataset import BasicDataset
from .registry import DatasetSpec, register_dataset


def standardize(array: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Apply standard scaling returning the scaled array and parameters."""

    mean = array.mean(axis=0, keepdims=True)
    std = array.std(axis=0, keepdims=True)
    std = np.where(std == 0, 1.0, std)
    return (array - mean) / std, mean, std


def _columns(value: str | Sequence[str] | None) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(part) for part in value]


def load_frame(
    path: Path,
    ideal_cols: Sequence[str],
    input_cols: Sequence[str] | None = None,
) -> tuple[np.ndarray, np.ndarray, list[str]]:
    df = pd.read_csv(path)
    missing = [col for col in ideal_cols if col not in df.columns]
    if missing:
        raise KeyError(f"Ideal column(s) {missing} not found in {path.name}")
    if input_cols is None:
        input_cols = [col for col in df.columns if col not in ideal_cols]
    else:
        absent = [col for col in input_cols if col not in df.columns]
        if absent:
            raise KeyError(f"Input column(s) {absent} not found in {path.name}")
    if not input_cols:
        raise DataShapeError(f"{path.name} has no input columns left after removing ideals")
    try:
        X = df[list(input_cols)].to_numpy(dtype=np.float64)
        y = df[list(ideal_cols)].to_numpy(dtype=np.float64)
    except ValueError as exc:
        raise DataShapeError(f"Non-numeric values in {path.name}: {exc}") from exc
    return X, y, list(input_cols)


@register_dataset("csv")
def load_csv(
    *,
    csv_path: str | Path,
    ideal_cols: str | Sequence[str] = "target",
    input_cols: str | Sequence[str] | None = None,
    standardize_inputs: bool = False,
    **_: object,
) -> DatasetSpec:
    """Load a numeric CSV file; ``ideal_cols`` become the ideal vector."""

    path = Path(csv_path)
    ideals = _columns(ideal_cols) or []
    X, y, inputs = load_frame(path, ideals, _columns(input_cols))

    normalization: dict[str, dict[str, list[float]]] = {}
    if standardize_inputs:
        X, mean, std = standardize(X)
        normalization["inputs"] = {
            "mean": mean.flatten().tolist(),
            "std": std.flatten().tolist(),
        }

    provenance = {
        "type": "csv",
        "path": str(path),
        "input_cols": inputs,
        "ideal_cols": ideals,
        "standardize_inputs": bool(standardize_inputs),
        "normalization": normalization,
    }
    return DatasetSpec(name="csv", dataset=BasicDataset(X, y), provenance=provenance)


__all__ = ["load_csv", "load_frame", "standardize"]
