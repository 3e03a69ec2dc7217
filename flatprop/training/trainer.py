"""Multithreaded gradient trainer for flat networks.

Each iteration fans the training set out to one worker per shard, waits for
all of them, folds their gradients into a single :class:`GradientState` and
lets the update strategy move the weights. Workers run on a joblib thread
pool that stays open between iterations until :meth:`MultiTrainer.close`.
"""

from __future__ import annotations

import logging
import threading
from contextlib import ExitStack
from enum import Enum
from typing import Dict, List, Sequence

import numpy as np
from joblib import Parallel, delayed

from ..core.errors import DataShapeError, TrainingError
from ..core.flat import FlatNetwork
from ..core.strategies import UpdateStrategy
from ..core.types import Array, GradientState, IndexableDataset, TrainingContinuation
from .workload import Workload, determine_workload
from .worker import CPUGradientWorker, GradientWorker, WorkerFactory

logger = logging.getLogger(__name__)

_HISTORY_KEYS = ("last_gradient", "update_values", "last_change")


class TrainerState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    DISPOSED = "disposed"


class MultiTrainer:
    """Train ``network`` on ``training`` with ``strategy`` across worker threads.

    ``num_threads=0`` sizes the CPU pool from the processor count. Each entry
    of ``accelerators`` builds one extra worker whose shard is
    ``accelerator_ratio`` times a CPU shard.
    """

    def __init__(
        self,
        network: FlatNetwork,
        training: IndexableDataset,
        strategy: UpdateStrategy,
        *,
        num_threads: int = 0,
        accelerators: Sequence[WorkerFactory] = (),
        accelerator_ratio: float = 1.0,
        worker_factory: WorkerFactory = CPUGradientWorker,
    ) -> None:
        if num_threads < 0:
            raise ValueError(f"num_threads must be >= 0, got {num_threads}")
        if accelerator_ratio <= 0:
            raise ValueError(f"accelerator_ratio must be positive, got {accelerator_ratio}")
        self.network = network
        self.training = training
        self.strategy = strategy
        self.num_threads = int(num_threads)
        self.accelerators = list(accelerators)
        self.accelerator_ratio = float(accelerator_ratio)
        self.worker_factory = worker_factory

        self.state = TrainerState.UNINITIALIZED
        self.gradient_state: GradientState | None = None
        self.workload: Workload | None = None
        self.workers: List[GradientWorker] = []
        self.iteration_number = 0
        self.error = float("inf")

        self.cpu_time_per_iteration = 0.0
        self.accelerator_time_per_iteration = 0.0
        self._cpu_time_per_record = 0.0
        self._accelerator_time_per_record = 0.0

        self._lock = threading.Lock()
        self._total_error = 0.0
        self._pool = ExitStack()
        self._parallel: Parallel | None = None

    # ------------------------------------------------------------------
    # Lifecycle

    def _ensure_state(self) -> GradientState:
        if self.gradient_state is None:
            self.gradient_state = self.strategy.init(self.network.weight_count)
        return self.gradient_state

    def _check_training(self) -> None:
        if self.training.count == 0:
            raise TrainingError("Training set is empty")
        if (
            self.training.input_size != self.network.input_count
            or self.training.ideal_size != self.network.output_count
        ):
            raise DataShapeError(
                f"Training set is {self.training.input_size} -> {self.training.ideal_size} "
                f"but the network is {self.network.input_count} -> {self.network.output_count}"
            )

    def _build_workers(self) -> None:
        workload = determine_workload(
            self.training.count,
            self.num_threads,
            accelerators=len(self.accelerators),
            accelerator_ratio=self.accelerator_ratio,
        )
        workers: List[GradientWorker] = []
        for factory, shard in zip(self.accelerators, workload.accelerator_shards):
            workers.append(factory(self.network.clone(), self, self.training, shard.low, shard.high))
        for shard in workload.cpu_shards:
            workers.append(self.worker_factory(self.network.clone(), self, self.training, shard.low, shard.high))
        self.workload = workload
        self.workers = workers

    def _init(self) -> None:
        self._check_training()
        self._ensure_state()
        self._build_workers()
        self._parallel = self._pool.enter_context(
            Parallel(n_jobs=len(self.workers), prefer="threads", require="sharedmem")
        )
        self.state = TrainerState.READY
        logger.info(
            "Trainer ready: %d record(s) over %d worker(s) (%d accelerator), strategy=%s",
            self.training.count,
            len(self.workers),
            len(self.workload.accelerator_shards),
            self.strategy.name,
        )

    def close(self) -> None:
        """Shut down the worker pool; further iterations raise."""

        if self.state is TrainerState.DISPOSED:
            return
        self._pool.close()
        self._parallel = None
        self.workers = []
        self.state = TrainerState.DISPOSED
        logger.debug("Trainer disposed after %d iteration(s)", self.iteration_number)

    def __enter__(self) -> "MultiTrainer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Training

    def report(self, gradients: Array, error: float) -> None:
        """Fold one worker's gradients and shard error into the totals."""

        with self._lock:
            self.gradient_state.gradients += gradients
            self._total_error += error

    def _discard_partial(self, state: GradientState) -> None:
        with self._lock:
            state.gradients.fill(0.0)
            self._total_error = 0.0

    def iteration(self) -> float:
        """Run one full-batch iteration and return its error.

        A worker failure propagates with the weights and the strategy history
        untouched, so the trainer can be iterated again.
        """

        if self.state is TrainerState.DISPOSED:
            raise TrainingError("Trainer has been closed")
        if self.state is TrainerState.UNINITIALIZED:
            self._init()

        state = self.gradient_state
        self._discard_partial(state)
        try:
            self._parallel(delayed(worker.run)() for worker in self.workers)
        except Exception:
            # Shards that finished before the failure must not leak into the next pass.
            self._discard_partial(state)
            logger.warning("Iteration #%d aborted by a worker failure", self.iteration_number + 1)
            raise

        self.error = self._total_error / len(self.workers)
        state.record_error(self.error)
        self.network.weights += self.strategy.update_weights(state)
        state.gradients.fill(0.0)

        for worker in self.workers:
            np.copyto(worker.weights, self.network.weights)

        self._update_timing()
        self.iteration_number += 1
        logger.debug("Iteration #%d error=%.6f", self.iteration_number, self.error)
        return self.error

    def _update_timing(self) -> None:
        times: Dict[str, List[float]] = {"cpu": [], "accelerator": []}
        records: Dict[str, int] = {"cpu": 0, "accelerator": 0}
        for worker, shard in zip(self.workers, self.workload.shards):
            kind = "cpu" if worker.kind == "cpu" else "accelerator"
            times[kind].append(worker.elapsed_time)
            records[kind] += shard.size
        if times["cpu"]:
            self.cpu_time_per_iteration = float(np.mean(times["cpu"]))
            self._cpu_time_per_record = sum(times["cpu"]) / records["cpu"]
        if times["accelerator"]:
            self.accelerator_time_per_iteration = float(np.mean(times["accelerator"]))
            self._accelerator_time_per_record = sum(times["accelerator"]) / records["accelerator"]

    @property
    def calculated_ratio(self) -> float:
        """How many CPU records an accelerator worker processes in the same time.

        ``0.0`` until both kinds of worker have completed an iteration.
        """

        if self._accelerator_time_per_record <= 0 or self._cpu_time_per_record <= 0:
            return 0.0
        return self._cpu_time_per_record / self._accelerator_time_per_record

    def rebalance(self) -> float:
        """Re-plan shards using the measured ratio; returns the ratio applied."""

        ratio = self.calculated_ratio
        if ratio <= 0:
            return self.accelerator_ratio
        self.accelerator_ratio = ratio
        if self.state is TrainerState.READY:
            self._build_workers()
            logger.info(
                "Rebalanced shards: accelerator ratio %.3f, sizes %s",
                ratio,
                [shard.size for shard in self.workload.shards],
            )
        return ratio

    # ------------------------------------------------------------------
    # Continuation

    def pause(self) -> TrainingContinuation:
        """Snapshot strategy history so a later trainer can pick up from here."""

        state = self._ensure_state()
        continuation = TrainingContinuation(training_type=self.strategy.name)
        for key in _HISTORY_KEYS:
            continuation.set(key, getattr(state, key))
        continuation.set("errors", np.array([state.current_error, state.last_error]))
        return continuation

    def resume(self, continuation: TrainingContinuation) -> None:
        """Restore history captured by :meth:`pause`."""

        if continuation.training_type != self.strategy.name:
            raise TrainingError(
                f"Continuation is for {continuation.training_type!r}, trainer uses {self.strategy.name!r}"
            )
        state = self._ensure_state()
        for key in _HISTORY_KEYS:
            if key not in continuation.contents:
                raise TrainingError(f"Continuation is missing {key!r}")
            values = continuation.get(key)
            if values.shape != (state.weight_count,):
                raise TrainingError(
                    f"Continuation {key!r} has {values.size} entries, network has {state.weight_count} weights"
                )
        for key in _HISTORY_KEYS:
            np.copyto(getattr(state, key), continuation.get(key))
        if "errors" in continuation.contents:
            current, last = continuation.get("errors")[:2]
            state.current_error = float(current)
            state.last_error = float(last)


__all__ = ["MultiTrainer", "TrainerState"]
