import pytest

from flatprop.core.errors import TrainingError
from flatprop.training.workload import default_thread_count, determine_workload


def _assert_covers(workload, count):
    shards = workload.shards
    assert shards[0].low == 0
    assert shards[-1].high == count
    for left, right in zip(shards, shards[1:]):
        assert left.high == right.low
    assert all(shard.size > 0 for shard in shards)


@pytest.mark.parametrize("count", [1, 4, 7, 99, 100, 101, 1000, 12345])
@pytest.mark.parametrize("threads", [0, 1, 3, 8])
def test_shards_cover_every_record_once(count, threads):
    workload = determine_workload(count, threads, cpu_count=4)
    _assert_covers(workload, count)
    assert sum(shard.size for shard in workload.shards) == count


def test_explicit_threads_are_capped_by_record_count():
    workload = determine_workload(3, 8)
    assert workload.worker_count == 3


def test_default_thread_count_prefers_cpu_plus_one():
    assert default_thread_count(10_000, cpu_count=4) == 5
    assert default_thread_count(10_000, cpu_count=1) == 1


def test_default_thread_count_keeps_shards_worthwhile():
    assert default_thread_count(250, cpu_count=4) == 2
    assert default_thread_count(50, cpu_count=8) == 1


def test_accelerator_shards_scale_with_ratio():
    workload = determine_workload(300, 1, accelerators=1, accelerator_ratio=2.0)
    _assert_covers(workload, 300)
    (accel,) = workload.accelerator_shards
    (cpu,) = workload.cpu_shards
    assert (accel.low, accel.high, accel.kind) == (0, 200, "accelerator")
    assert (cpu.low, cpu.high, cpu.kind) == (200, 300, "cpu")


def test_accelerators_alone_when_threads_unspecified():
    workload = determine_workload(500, 0, accelerators=2)
    assert workload.cpu_shards == []
    _assert_covers(workload, 500)


def test_invalid_inputs():
    with pytest.raises(TrainingError):
        determine_workload(0)
    with pytest.raises(ValueError):
        determine_workload(10, -1)
    with pytest.raises(ValueError):
        determine_workload(10, 1, accelerators=1, accelerator_ratio=0.0)
