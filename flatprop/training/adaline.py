"""Online Widrow-Hoff training for single-layer networks."""

from __future__ import annotations

import logging

import numpy as np

from ..core.error import ErrorCalculation
from ..core.errors import DataShapeError, NetworkConfigError
from ..core.flat import FlatNetwork
from ..core.types import IndexableDataset
from ..data.dataset import DataPair

logger = logging.getLogger(__name__)


class TrainAdaline:
    """Delta-rule updates applied after every example."""

    def __init__(self, network: FlatNetwork, training: IndexableDataset, learning_rate: float = 0.01) -> None:
        if network.layer_count > 2:
            raise NetworkConfigError(
                f"ADALINE needs an input and an output layer only, got {network.layer_count} layers"
            )
        if training.input_size != network.input_count or training.ideal_size != network.output_count:
            raise DataShapeError(
                f"Training set is {training.input_size} -> {training.ideal_size} "
                f"but the network is {network.input_count} -> {network.output_count}"
            )
        self.network = network
        self.training = training
        self.learning_rate = float(learning_rate)
        self.error = float("inf")
        self.iteration_number = 0
        self._pair = DataPair.create(training.input_size, training.ideal_size)
        self._actual = np.zeros(network.output_count, dtype=np.float64)

    def iteration(self) -> float:
        calc = ErrorCalculation()
        bias, matrix = self.network.layer_block(0)
        for index in range(self.training.count):
            self.training.get_record(index, self._pair)
            self.network.compute(self._pair.input, self._actual)
            calc.update_error(self._actual, self._pair.ideal)

            step = self.learning_rate * (self._pair.ideal - self._actual)
            matrix += np.outer(step, self._pair.input)
            bias += step

        self.error = calc.calculate()
        self.iteration_number += 1
        logger.debug("ADALINE iteration #%d error=%.6f", self.iteration_number, self.error)
        return self.error

    def close(self) -> None:
        """Nothing to release; present so loops can treat trainers alike."""

    def __enter__(self) -> "TrainAdaline":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["TrainAdaline"]
