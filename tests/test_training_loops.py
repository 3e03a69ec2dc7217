from __future__ import annotations

import numpy as np
import pytest

from flatprop.core.errors import DataShapeError, TrainingError
from flatprop.core.flat import FlatNetwork
from flatprop.core.strategies import Backpropagation, ResilientPropagation, RPROPType
from flatprop.core.types import TrainingContinuation
from flatprop.data import BasicDataset, get_dataset
from flatprop.training.loop import train
from flatprop.training.trainer import MultiTrainer, TrainerState
from flatprop.training.worker import BatchGradientWorker


class _Capture:
    def __init__(self) -> None:
        self.history: list[tuple[int, float]] = []

    def on_iteration(self, iteration, metrics) -> None:
        self.history.append((iteration, metrics["error"]))


def _reference_step(network: FlatNetwork, dataset: BasicDataset, learning_rate: float) -> np.ndarray:
    """One full-batch gradient step computed with plain input-first matrices."""

    layers = [network.layer_block(level) for level in reversed(range(network.layer_count - 1))]
    total = [(np.zeros_like(b), np.zeros_like(m)) for b, m in layers]
    for x, ideal in zip(dataset.inputs, dataset.ideals):
        outputs = [x]
        for bias, matrix in layers:
            outputs.append(1.0 / (1.0 + np.exp(-(matrix @ outputs[-1] + bias))))
        delta = (ideal - outputs[-1]) * outputs[-1] * (1 - outputs[-1])
        for position in reversed(range(len(layers))):
            total[position][0][:] += delta
            total[position][1][:] += np.outer(delta, outputs[position])
            _, matrix = layers[position]
            delta = (matrix.T @ delta) * outputs[position] * (1 - outputs[position])
    expected = network.clone()
    for level, (bias_grad, matrix_grad) in zip(reversed(range(network.layer_count - 1)), total):
        bias, matrix = expected.layer_block(level)
        bias += learning_rate * bias_grad
        matrix += learning_rate * matrix_grad
    return expected.weights


def test_xor_rprop_converges():
    xor = get_dataset("xor").dataset
    for seed in range(10):
        network = FlatNetwork.from_dims([2, 2, 1], "sigmoid", seed=seed)
        with MultiTrainer(network, xor, ResilientPropagation(), num_threads=1) as trainer:
            history = train(trainer, max_iterations=500, target_error=0.05)
        if history.stop_reason == "target_error":
            break
    assert history.final_error < 0.05
    assert history.iterations <= 500
    assert network.compute([1.0, 0.0])[0] > 0.5
    assert network.compute([1.0, 1.0])[0] < 0.5


def test_single_thread_matches_reference_backprop():
    data = get_dataset("sine", n_points=24, seed=1).dataset
    network = FlatNetwork.from_dims([1, 4, 3, 1], "sigmoid", seed=7)
    before_error = network.calculate_error(data)
    expected = _reference_step(network, data, learning_rate=0.1)
    with MultiTrainer(network, data, Backpropagation(learning_rate=0.1, momentum=0.0), num_threads=1) as trainer:
        error = trainer.iteration()
    assert error == pytest.approx(before_error)
    np.testing.assert_allclose(network.weights, expected, rtol=1e-10, atol=1e-12)


@pytest.mark.parametrize("threads", [2, 3, 5])
def test_thread_count_does_not_change_weights(threads):
    data = get_dataset("sine", n_points=60, seed=2).dataset
    single = FlatNetwork.from_dims([1, 5, 1], "tanh", seed=3)
    multi = single.clone()
    with MultiTrainer(single, data, ResilientPropagation(), num_threads=1) as a, MultiTrainer(
        multi, data, ResilientPropagation(), num_threads=threads
    ) as b:
        for _ in range(5):
            a.iteration()
            b.iteration()
        assert len(b.workers) == threads
        for worker in b.workers:
            np.testing.assert_array_equal(worker.weights, multi.weights)
    np.testing.assert_allclose(multi.weights, single.weights, rtol=1e-9, atol=1e-12)


def test_accelerator_workers_and_rebalance():
    data = get_dataset("sine", n_points=90, seed=0).dataset
    reference = FlatNetwork.from_dims([1, 4, 1], seed=1)
    network = reference.clone()
    trainer = MultiTrainer(
        network,
        data,
        Backpropagation(),
        num_threads=2,
        accelerators=[BatchGradientWorker],
        accelerator_ratio=2.0,
    )
    with trainer, MultiTrainer(reference, data, Backpropagation(), num_threads=1) as plain:
        for _ in range(3):
            trainer.iteration()
            plain.iteration()
        sizes = [shard.size for shard in trainer.workload.shards]
        assert sizes == [45, 22, 23]
        assert [w.kind for w in trainer.workers] == ["accelerator", "cpu", "cpu"]
        assert trainer.cpu_time_per_iteration > 0
        assert trainer.accelerator_time_per_iteration > 0
        ratio = trainer.calculated_ratio
        assert ratio > 0
        assert trainer.rebalance() == pytest.approx(ratio)
        assert sum(shard.size for shard in trainer.workload.shards) == 90
        trainer.iteration()
        plain.iteration()
    np.testing.assert_allclose(network.weights, reference.weights, rtol=1e-9, atol=1e-12)


def test_pause_and_resume_continue_identically():
    data = get_dataset("xor").dataset
    strategy = ResilientPropagation(RPROPType.IRPROP_PLUS)
    network = FlatNetwork.from_dims([2, 3, 1], seed=4)
    with MultiTrainer(network, data, strategy, num_threads=1) as first:
        for _ in range(5):
            first.iteration()
        continuation = first.pause()
        resumed_network = network.clone()
        first.iteration()
    with MultiTrainer(resumed_network, data, ResilientPropagation(RPROPType.IRPROP_PLUS), num_threads=1) as second:
        second.resume(continuation)
        second.iteration()
    np.testing.assert_allclose(resumed_network.weights, network.weights)


def test_resume_validates_continuation():
    data = get_dataset("xor").dataset
    trainer = MultiTrainer(FlatNetwork.from_dims([2, 2, 1], seed=0), data, ResilientPropagation())
    with pytest.raises(TrainingError):
        trainer.resume(TrainingContinuation(training_type="backprop"))
    bad = trainer.pause()
    bad.set("update_values", np.zeros(3))
    with pytest.raises(TrainingError):
        trainer.resume(bad)
    trainer.close()


def test_closed_trainer_refuses_to_iterate():
    data = get_dataset("xor").dataset
    trainer = MultiTrainer(FlatNetwork.from_dims([2, 2, 1], seed=0), data, ResilientPropagation())
    assert trainer.state is TrainerState.UNINITIALIZED
    trainer.iteration()
    assert trainer.state is TrainerState.READY
    trainer.close()
    trainer.close()
    assert trainer.state is TrainerState.DISPOSED
    with pytest.raises(TrainingError):
        trainer.iteration()


def test_trainer_rejects_bad_training_sets():
    network = FlatNetwork.from_dims([2, 2, 1], seed=0)
    empty = BasicDataset(np.zeros((0, 2)), np.zeros((0, 1)))
    with pytest.raises(TrainingError):
        MultiTrainer(network, empty, ResilientPropagation()).iteration()
    wide = BasicDataset(np.zeros((4, 3)), np.zeros((4, 1)))
    with pytest.raises(DataShapeError):
        MultiTrainer(network, wide, ResilientPropagation()).iteration()


def test_train_loop_callbacks_and_stop_reason():
    data = get_dataset("xor").dataset
    capture = _Capture()
    with MultiTrainer(FlatNetwork.from_dims([2, 3, 1], seed=1), data, ResilientPropagation(), num_threads=1) as trainer:
        history = train(trainer, max_iterations=7, callbacks=[capture, object()])
    assert history.stop_reason == "max_iterations"
    assert [i for i, _ in capture.history] == list(range(1, 8))
    assert [e for _, e in capture.history] == history.errors
    assert trainer.iteration_number == 7
    with pytest.raises(ValueError):
        train(trainer, max_iterations=0)


class _FlakyDataset(BasicDataset):
    """Raises on one record until ``broken`` is cleared."""

    broken = True

    def get_record(self, index, pair):
        if self.broken and index == 3:
            raise RuntimeError("record 3 unreadable")
        super().get_record(index, pair)


def test_failed_iteration_discards_partial_gradients():
    rng = np.random.default_rng(5)
    inputs, ideals = rng.uniform(-1, 1, size=(6, 2)), rng.uniform(0, 1, size=(6, 1))
    flaky = _FlakyDataset(inputs, ideals)
    network = FlatNetwork.from_dims([2, 3, 1], seed=2)
    reference = network.clone()
    with MultiTrainer(network, flaky, ResilientPropagation(), num_threads=2) as trainer:
        with pytest.raises(RuntimeError, match="record 3"):
            trainer.iteration()
        assert trainer.state is TrainerState.READY
        assert trainer.iteration_number == 0
        assert not trainer.gradient_state.gradients.any()
        np.testing.assert_array_equal(network.weights, reference.weights)

        flaky.broken = False
        error = trainer.iteration()
    with MultiTrainer(reference, BasicDataset(inputs, ideals), ResilientPropagation(), num_threads=2) as clean:
        assert clean.iteration() == pytest.approx(error)
    np.testing.assert_array_equal(network.weights, reference.weights)
