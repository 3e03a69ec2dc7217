"""Split a training set into contiguous shards, one per worker."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List

from ..core.errors import TrainingError

MIN_RECORDS_PER_WORKER = 100


@dataclass(frozen=True)
class Shard:
    """Half-open index range ``[low, high)`` handled by one worker."""

    low: int
    high: int
    kind: str = "cpu"

    @property
    def size(self) -> int:
        return self.high - self.low


@dataclass(frozen=True)
class Workload:
    """Shard plan for accelerator and CPU workers."""

    record_count: int
    accelerator_shards: List[Shard] = field(default_factory=list)
    cpu_shards: List[Shard] = field(default_factory=list)

    @property
    def shards(self) -> List[Shard]:
        return list(self.accelerator_shards) + list(self.cpu_shards)

    @property
    def worker_count(self) -> int:
        return len(self.accelerator_shards) + len(self.cpu_shards)


def default_thread_count(record_count: int, cpu_count: int | None = None) -> int:
    """Processor count plus one, unless that leaves workers too little to do."""

    processors = cpu_count if cpu_count is not None else (os.cpu_count() or 1)
    threads = processors + 1 if processors > 1 else 1
    if record_count // threads < MIN_RECORDS_PER_WORKER:
        threads = max(1, record_count // MIN_RECORDS_PER_WORKER)
    return threads


def determine_workload(
    record_count: int,
    threads: int = 0,
    *,
    accelerators: int = 0,
    accelerator_ratio: float = 1.0,
    cpu_count: int | None = None,
) -> Workload:
    """Plan shards covering ``[0, record_count)`` without gaps or overlap.

    ``threads == 0`` picks a default from the processor count. Each of the
    ``accelerators`` shards is ``accelerator_ratio`` times the size of a CPU
    shard.
    """

    if record_count <= 0:
        raise TrainingError("Cannot plan a workload for an empty training set")
    if threads < 0:
        raise ValueError(f"threads must be >= 0, got {threads}")
    if accelerator_ratio <= 0:
        raise ValueError(f"accelerator_ratio must be positive, got {accelerator_ratio}")

    accelerators = min(max(0, accelerators), record_count)
    if threads == 0:
        cpu_workers = 0 if accelerators else default_thread_count(record_count, cpu_count)
    else:
        cpu_workers = threads
    cpu_workers = min(cpu_workers, record_count - accelerators)

    kinds = ["accelerator"] * accelerators + ["cpu"] * cpu_workers
    weights = [float(accelerator_ratio)] * accelerators + [1.0] * cpu_workers
    total = sum(weights)
    count = len(weights)

    edges = [0]
    running = 0.0
    for position, weight in enumerate(weights[:-1]):
        running += weight
        edge = int(record_count * running / total)
        edge = max(edge, edges[-1] + 1)
        edge = min(edge, record_count - (count - 1 - position))
        edges.append(edge)
    edges.append(record_count)

    shards = [Shard(low, high, kind) for low, high, kind in zip(edges[:-1], edges[1:], kinds)]
    return Workload(
        record_count=record_count,
        accelerator_shards=[s for s in shards if s.kind == "accelerator"],
        cpu_shards=[s for s in shards if s.kind == "cpu"],
    )


__all__ = [
    "MIN_RECORDS_PER_WORKER",
    "Shard",
    "Workload",
    "default_thread_count",
    "determine_workload",
]
