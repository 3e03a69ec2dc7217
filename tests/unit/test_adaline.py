import numpy as np
import pytest

from flatprop.core.errors import DataShapeError, NetworkConfigError
from flatprop.core.flat import FlatNetwork
from flatprop.data.dataset import BasicDataset
from flatprop.training.adaline import TrainAdaline


def _linear_data():
    rng = np.random.default_rng(0)
    x = rng.uniform(-1, 1, size=(40, 2))
    y = 0.5 * x[:, :1] - 0.25 * x[:, 1:] + 0.1
    return BasicDataset(x, y)


def test_adaline_rejects_hidden_layers():
    with pytest.raises(NetworkConfigError):
        TrainAdaline(FlatNetwork.from_dims([2, 2, 1], "linear", seed=0), _linear_data())


def test_adaline_rejects_mismatched_dataset():
    with pytest.raises(DataShapeError):
        TrainAdaline(FlatNetwork.from_dims([3, 1], "linear", seed=0), _linear_data())


def test_adaline_updates_after_every_example():
    data = BasicDataset([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]], [[1.0], [0.0], [0.5]])
    network = FlatNetwork.from_dims([2, 1], "linear", seed=0)
    w = network.weights.copy()  # bias, then w1, w2
    lr = 0.1
    squared = 0.0
    for x, y in zip(data.inputs, data.ideals[:, 0]):
        actual = w[0] + w[1] * x[0] + w[2] * x[1]
        squared += (actual - y) ** 2
        step = lr * (y - actual)
        w[0] += step
        w[1:] += step * x
    trainer = TrainAdaline(network, data, learning_rate=lr)
    error = trainer.iteration()
    assert error == pytest.approx(np.sqrt(squared / 3))
    np.testing.assert_allclose(network.weights, w)
    assert trainer.iteration_number == 1


def test_adaline_learns_linear_target():
    data = _linear_data()
    network = FlatNetwork.from_dims([2, 1], "linear", seed=1)
    with TrainAdaline(network, data, learning_rate=0.05) as trainer:
        first = trainer.iteration()
        for _ in range(200):
            trainer.iteration()
    assert trainer.error < 0.01 < first
    bias, matrix = network.layer_block(0)
    np.testing.assert_allclose(matrix[0], [0.5, -0.25], atol=0.02)
    assert bias[0] == pytest.approx(0.1, abs=0.02)
