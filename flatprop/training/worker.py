"""Gradient workers: each one owns a network clone and a shard of examples."""

from __future__ import annotations

import time
from typing import Callable, List, Protocol

import numpy as np

from ..core.activations import activate, derivative
from ..core.error import ErrorCalculation
from ..core.errors import DataShapeError
from ..core.flat import FlatNetwork
from ..core.types import Array, IndexableDataset
from ..data.dataset import DataPair


class GradientReporter(Protocol):
    def report(self, gradients: Array, error: float) -> None:
        ...


class GradientWorker(Protocol):
    """What the trainer needs from a worker, whatever device it runs on."""

    kind: str
    elapsed_time: float

    @property
    def weights(self) -> Array:
        ...

    def run(self) -> None:
        ...


WorkerFactory = Callable[[FlatNetwork, GradientReporter, IndexableDataset, int, int], GradientWorker]


def _check_shard(training: IndexableDataset, low: int, high: int) -> None:
    if not 0 <= low < high <= training.count:
        raise ValueError(f"Shard [{low}, {high}) is not inside [0, {training.count})")


def _check_widths(network: FlatNetwork, input_size: int, ideal_size: int, where: str) -> None:
    if input_size != network.input_count or ideal_size != network.output_count:
        raise DataShapeError(
            f"{where}: got input width {input_size} and ideal width {ideal_size}, "
            f"network expects {network.input_count} and {network.output_count}"
        )


class CPUGradientWorker:
    """Per-example backpropagation over the shard ``[low, high)``.

    Gradients point downhill: the output delta is ``(ideal - actual)``
    times the activation derivative, so strategies add their deltas to
    the weights.
    """

    kind = "cpu"

    def __init__(
        self,
        network: FlatNetwork,
        owner: GradientReporter,
        training: IndexableDataset,
        low: int,
        high: int,
    ) -> None:
        _check_shard(training, low, high)
        self.network = network
        self.owner = owner
        self.training = training
        self.low = int(low)
        self.high = int(high)
        self.gradients = np.zeros(network.weight_count, dtype=np.float64)
        self.layer_delta = np.zeros(network.neuron_count, dtype=np.float64)
        self.actual = np.zeros(network.output_count, dtype=np.float64)
        self.pair = DataPair.create(training.input_size, training.ideal_size)
        self.error_calc = ErrorCalculation()
        self.elapsed_time = 0.0

    @property
    def weights(self) -> Array:
        return self.network.weights

    def run(self) -> None:
        start = time.perf_counter()
        self.error_calc.reset()
        self.gradients.fill(0.0)
        for index in range(self.low, self.high):
            self.training.get_record(index, self.pair)
            self._process(index)
        self.owner.report(self.gradients, self.error_calc.calculate())
        self.elapsed_time = time.perf_counter() - start

    def _process(self, index: int) -> None:
        net = self.network
        _check_widths(net, self.pair.input.size, self.pair.ideal.size, f"Example {index}")
        net.compute(self.pair.input, self.actual)
        self.error_calc.update_error(self.actual, self.pair.ideal)

        output = self.layer_delta[net.layer_slice(0)]
        np.subtract(self.pair.ideal, self.actual, out=output)
        output *= derivative(net.activation_type[0], self.actual)

        for level in range(net.layer_count - 1):
            self._process_level(level)

    def _process_level(self, level: int) -> None:
        net = self.network
        source = level + 1
        to_delta = self.layer_delta[net.layer_slice(level)]
        from_output = net.layer_output[net.layer_slice(source)]

        bias_grad, matrix_grad = net.layer_block(level, self.gradients)
        bias_grad += to_delta
        matrix_grad += np.outer(to_delta, from_output)

        # the input layer has no incoming weights, nothing to propagate into
        if source == net.layer_count - 1:
            return
        _, matrix = net.layer_block(level)
        from_delta = self.layer_delta[net.layer_slice(source)]
        np.dot(matrix.T, to_delta, out=from_delta)
        from_delta *= derivative(net.activation_type[source], from_output)


class BatchGradientWorker:
    """Whole-shard matrix backpropagation.

    Stands in for an accelerator device: the shard is staged into dense
    buffers once, then every iteration runs as a handful of matrix products
    instead of a per-example loop. Produces the same gradients as
    :class:`CPUGradientWorker` up to floating point summation order.
    """

    kind = "accelerator"

    def __init__(
        self,
        network: FlatNetwork,
        owner: GradientReporter,
        training: IndexableDataset,
        low: int,
        high: int,
    ) -> None:
        _check_shard(training, low, high)
        _check_widths(network, training.input_size, training.ideal_size, f"Shard [{low}, {high})")
        self.network = network
        self.owner = owner
        self.low = int(low)
        self.high = int(high)
        self.gradients = np.zeros(network.weight_count, dtype=np.float64)
        self.elapsed_time = 0.0

        rows = self.high - self.low
        self.inputs = np.zeros((rows, training.input_size), dtype=np.float64)
        self.ideals = np.zeros((rows, training.ideal_size), dtype=np.float64)
        pair = DataPair.create(training.input_size, training.ideal_size)
        for row, index in enumerate(range(self.low, self.high)):
            training.get_record(index, pair)
            self.inputs[row] = pair.input
            self.ideals[row] = pair.ideal

    @property
    def weights(self) -> Array:
        return self.network.weights

    def _forward(self) -> List[Array]:
        """Layer outputs for the whole shard, output-first like the network."""

        net = self.network
        outputs: List[Array] = [self.inputs]
        for level in range(net.layer_count - 2, -1, -1):
            bias, matrix = net.layer_block(level)
            sums = outputs[0] @ matrix.T
            sums += bias
            outputs.insert(0, activate(net.activation_type[level], sums, out=sums))
        return outputs

    def run(self) -> None:
        start = time.perf_counter()
        net = self.network
        self.gradients.fill(0.0)

        outputs = self._forward()
        diff = self.ideals - outputs[0]
        error = float(np.sqrt(np.mean(diff * diff)))

        delta = diff * derivative(net.activation_type[0], outputs[0])
        for level in range(net.layer_count - 1):
            bias_grad, matrix_grad = net.layer_block(level, self.gradients)
            bias_grad += delta.sum(axis=0)
            matrix_grad += delta.T @ outputs[level + 1]
            if level + 1 < net.layer_count - 1:
                _, matrix = net.layer_block(level)
                delta = (delta @ matrix) * derivative(net.activation_type[level + 1], outputs[level + 1])

        self.owner.report(self.gradients, error)
        self.elapsed_time = time.perf_counter() - start


__all__ = [
    "BatchGradientWorker",
    "CPUGradientWorker",
    "GradientReporter",
    "GradientWorker",
    "WorkerFactory",
]
