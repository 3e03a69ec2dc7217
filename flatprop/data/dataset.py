"""In-memory indexable training sets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence, Tuple

import numpy as np

from ..core.errors import DataShapeError
from ..core.types import Array


@dataclass
class DataPair:
    """Preallocated (input, ideal) buffers filled by ``get_record``."""

    input: Array
    ideal: Array

    @classmethod
    def create(cls, input_size: int, ideal_size: int) -> "DataPair":
        return cls(
            input=np.zeros(input_size, dtype=np.float64),
            ideal=np.zeros(ideal_size, dtype=np.float64),
        )


class BasicDataset:
    """Fixed-width (input, ideal) examples backed by two 2-D arrays."""

    def __init__(self, inputs: Sequence[Sequence[float]] | Array, ideals: Sequence[Sequence[float]] | Array) -> None:
        self.inputs = _as_matrix(inputs, "input")
        self.ideals = _as_matrix(ideals, "ideal")
        if self.inputs.shape[0] != self.ideals.shape[0]:
            raise DataShapeError(
                f"{self.inputs.shape[0]} input rows but {self.ideals.shape[0]} ideal rows"
            )

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[Sequence[float], Sequence[float]]]) -> "BasicDataset":
        """Build from ``(input, ideal)`` tuples, rejecting ragged widths."""

        inputs = []
        ideals = []
        for idx, (inp, ideal) in enumerate(pairs):
            inp = np.asarray(inp, dtype=np.float64).ravel()
            ideal = np.asarray(ideal, dtype=np.float64).ravel()
            if inputs and inp.size != inputs[0].size:
                raise DataShapeError(
                    f"Example {idx} has {inp.size} inputs, expected {inputs[0].size}"
                )
            if ideals and ideal.size != ideals[0].size:
                raise DataShapeError(
                    f"Example {idx} has {ideal.size} ideal values, expected {ideals[0].size}"
                )
            inputs.append(inp)
            ideals.append(ideal)
        if not inputs:
            raise DataShapeError("Cannot build a dataset from zero examples")
        return cls(np.vstack(inputs), np.vstack(ideals))

    @property
    def count(self) -> int:
        return int(self.inputs.shape[0])

    @property
    def input_size(self) -> int:
        return int(self.inputs.shape[1])

    @property
    def ideal_size(self) -> int:
        return int(self.ideals.shape[1])

    def get_record(self, index: int, pair: DataPair) -> None:
        if not 0 <= index < self.count:
            raise IndexError(f"Record {index} out of range for {self.count} examples")
        np.copyto(pair.input, self.inputs[index])
        np.copyto(pair.ideal, self.ideals[index])

    def subset(self, low: int, high: int) -> "BasicDataset":
        """Examples ``[low, high)`` as a new dataset sharing no buffers."""

        return BasicDataset(self.inputs[low:high].copy(), self.ideals[low:high].copy())

    def create_pair(self) -> DataPair:
        return DataPair.create(self.input_size, self.ideal_size)

    def __len__(self) -> int:
        return self.count

    def __iter__(self) -> Iterator[DataPair]:
        for index in range(self.count):
            pair = self.create_pair()
            self.get_record(index, pair)
            yield pair

    def __repr__(self) -> str:
        return f"BasicDataset(count={self.count}, input_size={self.input_size}, ideal_size={self.ideal_size})"


def _as_matrix(values: Sequence[Sequence[float]] | Array, label: str) -> Array:
    try:
        array = np.asarray(values, dtype=np.float64)
    except ValueError as exc:
        raise DataShapeError(f"Ragged {label} rows: {exc}") from exc
    if array.ndim == 1:
        array = array.reshape(-1, 1)
    if array.ndim != 2:
        raise DataShapeError(f"{label.capitalize()} data must be 2-D, got shape {array.shape}")
    return np.ascontiguousarray(array)


__all__ = ["BasicDataset", "DataPair"]
