"""Flat (vector based) feedforward network.

The whole network lives in a handful of contiguous arrays rather than an
object graph of layers:

* ``layer_counts`` holds the neuron count of each layer, **output layer
  first**; the input layer is the last entry.
* ``layer_output`` / ``layer_sums`` are scratch buffers holding the latest
  activation and pre-activation of every neuron. ``layer_index[i]`` is where
  layer ``i`` starts inside them, so the input layer sits at the end.
* ``weights`` holds, for every transition ``layer i -> layer i-1``, the bias
  values of layer ``i-1`` followed by the row-major matrix
  ``weight[dest][source]``. ``weight_index[i-1]`` is where that block starts.

A flat network must be feedforward only, use a single activation function for
every layer and carry bias values on every non-input layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .activations import ActivationType, activate
from .error import ErrorCalculation
from .errors import DataShapeError, NetworkConfigError
from .types import Array, IndexableDataset


@dataclass(frozen=True)
class LayerSpec:
    """One layer of a structured network description."""

    neurons: int
    activation: ActivationType | str | int = ActivationType.SIGMOID
    bias: bool = True


@dataclass(frozen=True)
class NetworkDescription:
    """Structured description a :class:`FlatNetwork` is built from.

    ``layers`` run input first. ``connections`` lists ``(source, target)``
    layer indices; ``None`` means the plain chain ``0 -> 1 -> ... -> n-1``.
    ``weights``, when given, must already be in flat order.
    """

    layers: Sequence[LayerSpec]
    connections: Optional[Sequence[Tuple[int, int]]] = None
    weights: Optional[Array] = field(default=None, repr=False, compare=False)

    @classmethod
    def feedforward(
        cls,
        dims: Sequence[int],
        activation: ActivationType | str | int = ActivationType.SIGMOID,
        *,
        input_bias: bool = True,
        weights: Optional[Array] = None,
    ) -> "NetworkDescription":
        """Describe a fully connected chain with ``dims`` neurons per layer."""

        layers = [LayerSpec(int(dims[0]), activation, bias=input_bias)]
        layers.extend(LayerSpec(int(d), activation, bias=True) for d in dims[1:])
        return cls(layers=layers, weights=weights)

    @property
    def dims(self) -> List[int]:
        return [layer.neurons for layer in self.layers]


def weight_count(dims: Sequence[int]) -> int:
    """Size of the flat weight vector for an input-first ``dims`` chain."""

    return int(sum(to + to * frm for frm, to in zip(dims[:-1], dims[1:])))


def validate_for_flat(description: NetworkDescription) -> List[ActivationType]:
    """Check that ``description`` can be flattened; return parsed activations."""

    layers = list(description.layers)
    if len(layers) < 2:
        raise NetworkConfigError("A flat network needs at least an input and an output layer")
    for idx, layer in enumerate(layers):
        if int(layer.neurons) <= 0:
            raise NetworkConfigError(f"Layer {idx} must have at least one neuron")
        if idx > 0 and not layer.bias:
            raise NetworkConfigError(
                f"Layer {idx} has no bias; flat networks need bias values on every non-input layer"
            )

    activations = [ActivationType.parse(layer.activation) for layer in layers]
    if len(set(activations)) != 1:
        names = ", ".join(a.name.lower() for a in activations)
        raise NetworkConfigError(
            f"Flat networks use one activation function for every layer, got: {names}"
        )

    if description.connections is not None:
        expected = {(idx, idx + 1) for idx in range(len(layers) - 1)}
        seen = set()
        for source, target in description.connections:
            if target <= source:
                raise NetworkConfigError(
                    f"Connection {source} -> {target} is recurrent; flat networks are feedforward only"
                )
            if (source, target) not in expected:
                raise NetworkConfigError(
                    f"Connection {source} -> {target} skips a layer; flat networks must be strictly layered"
                )
            seen.add((source, target))
        missing = sorted(expected - seen)
        if missing:
            raise NetworkConfigError(f"Layers are not fully chained, missing connections: {missing}")

    if description.weights is not None:
        expected_size = weight_count(description.dims)
        size = int(np.asarray(description.weights).size)
        if size != expected_size:
            raise NetworkConfigError(
                f"Weight vector has {size} entries but the topology needs {expected_size}"
            )
    return activations


class FlatNetwork:
    """Packed, layer-indexed feedforward network."""

    def __init__(self, description: NetworkDescription, *, seed: int | None = None) -> None:
        activations = validate_for_flat(description)
        layers = list(description.layers)

        self.input_count = int(layers[0].neurons)
        self.output_count = int(layers[-1].neurons)
        self.has_input_bias = bool(layers[0].bias)

        self.layer_counts: List[int] = [int(layer.neurons) for layer in reversed(layers)]
        self.activation_type: List[ActivationType] = list(reversed(activations))
        self.layer_index: List[int] = []
        self.weight_index: List[int] = []

        layer_offset = 0
        weight_offset = 0
        for idx, count in enumerate(self.layer_counts):
            if idx > 0:
                prev = self.layer_counts[idx - 1]
                layer_offset += prev
                weight_offset += prev + count * prev
            self.layer_index.append(layer_offset)
            self.weight_index.append(weight_offset)

        neuron_count = sum(self.layer_counts)
        self.layer_output = np.zeros(neuron_count, dtype=np.float64)
        self.layer_sums = np.zeros(neuron_count, dtype=np.float64)
        self.weights = np.zeros(weight_count(description.dims), dtype=np.float64)

        if description.weights is not None:
            np.copyto(self.weights, np.asarray(description.weights, dtype=np.float64).ravel())
        else:
            self.randomize(seed)

    # ------------------------------------------------------------------
    # Construction helpers

    @classmethod
    def from_dims(
        cls,
        dims: Sequence[int],
        activation: ActivationType | str | int = ActivationType.SIGMOID,
        *,
        seed: int | None = None,
        input_bias: bool = True,
    ) -> "FlatNetwork":
        """Build a fully connected network from input-first ``dims``."""

        description = NetworkDescription.feedforward(dims, activation, input_bias=input_bias)
        return cls(description, seed=seed)

    def randomize(self, seed: int | None = None, low: float = -1.0, high: float = 1.0) -> None:
        """Reset every weight and bias to a uniform value in ``[low, high)``."""

        rng = np.random.default_rng(seed)
        self.weights[:] = rng.uniform(low, high, size=self.weights.size)

    # ------------------------------------------------------------------
    # Layout accessors

    @property
    def layer_count(self) -> int:
        return len(self.layer_counts)

    @property
    def neuron_count(self) -> int:
        return int(sum(self.layer_counts))

    @property
    def weight_count(self) -> int:
        return int(self.weights.size)

    def layer_slice(self, layer: int) -> slice:
        """Where ``layer`` (output-first numbering) sits in the scratch buffers."""

        start = self.layer_index[layer]
        return slice(start, start + self.layer_counts[layer])

    def layer_block(self, layer: int, array: Array | None = None) -> Tuple[Array, Array]:
        """Views of the bias vector and weight matrix feeding ``layer``.

        ``array`` defaults to :attr:`weights`; any buffer with the same layout
        (a gradient vector, say) can be sliced instead.

        ``layer`` uses output-first numbering and must not be the input layer.
        The matrix has shape ``(layer_counts[layer], layer_counts[layer + 1])``.
        """

        if not 0 <= layer < self.layer_count - 1:
            raise IndexError(f"Layer {layer} has no incoming weights")
        to_count = self.layer_counts[layer]
        from_count = self.layer_counts[layer + 1]
        start = self.weight_index[layer]
        source = self.weights if array is None else array
        bias = source[start : start + to_count]
        matrix = source[start + to_count : start + to_count + to_count * from_count]
        return bias, matrix.reshape(to_count, from_count)

    def has_same_activation(self) -> ActivationType | None:
        """Return the single activation in use, or ``None`` if they differ."""

        kinds = set(self.activation_type)
        return self.activation_type[0] if len(kinds) == 1 else None

    # ------------------------------------------------------------------
    # Computation

    def compute(self, input: Sequence[float] | Array, output: Array | None = None) -> Array:
        """Run the network forward and return the output layer's activations.

        When ``output`` is supplied the result is copied into it and no new
        array is created.
        """

        values = np.asarray(input, dtype=np.float64)
        if values.shape != (self.input_count,):
            raise DataShapeError(
                f"Network expects {self.input_count} inputs, got shape {values.shape}"
            )

        source = self.layer_slice(self.layer_count - 1)
        np.copyto(self.layer_output[source], values)
        np.copyto(self.layer_sums[source], values)

        for layer in range(self.layer_count - 1, 0, -1):
            self._compute_layer(layer)

        result = self.layer_output[: self.output_count]
        if output is None:
            return result.copy()
        np.copyto(output, result)
        return output

    def _compute_layer(self, current: int) -> None:
        target = current - 1
        bias, matrix = self.layer_block(target)
        inputs = self.layer_output[self.layer_slice(current)]
        sums = self.layer_sums[self.layer_slice(target)]

        np.dot(matrix, inputs, out=sums)
        np.add(sums, bias, out=sums)
        activate(self.activation_type[target], sums, out=self.layer_output[self.layer_slice(target)])

    def calculate_error(self, dataset: IndexableDataset) -> float:
        """Root-mean-square error of this network over ``dataset``."""

        calc = ErrorCalculation()
        actual = np.zeros(self.output_count, dtype=np.float64)
        for pair in dataset:
            self.compute(pair.input, actual)
            calc.update_error(actual, pair.ideal)
        return calc.calculate()

    # ------------------------------------------------------------------
    # Weight vector codec and copies

    def network_to_array(self) -> Array:
        """Copy of the flat weight vector (output-layer-first, bias then matrix)."""

        return self.weights.copy()

    def array_to_network(self, array: Iterable[float] | Array) -> None:
        """Overwrite every weight from ``array`` (as produced by :meth:`network_to_array`)."""

        values = np.asarray(array, dtype=np.float64).ravel()
        if values.size != self.weights.size:
            raise NetworkConfigError(
                f"Weight vector has {values.size} entries but the network needs {self.weights.size}"
            )
        np.copyto(self.weights, values)

    def describe(self) -> NetworkDescription:
        """Structured description (input first) carrying a copy of the weights."""

        layers = []
        for position, layer in enumerate(reversed(range(self.layer_count))):
            bias = self.has_input_bias if position == 0 else True
            layers.append(
                LayerSpec(self.layer_counts[layer], self.activation_type[layer], bias=bias)
            )
        return NetworkDescription(layers=layers, weights=self.network_to_array())

    def clone(self) -> "FlatNetwork":
        """Independent copy of topology and weights with fresh scratch buffers."""

        return FlatNetwork(self.describe())

    def __repr__(self) -> str:
        dims = list(reversed(self.layer_counts))
        kind = self.activation_type[0].name.lower()
        return f"FlatNetwork(dims={dims}, activation={kind!r}, weights={self.weight_count})"


__all__ = [
    "FlatNetwork",
    "LayerSpec",
    "NetworkDescription",
    "validate_for_flat",
    "weight_count",
]
