import threading
from datetime import datetime, timezone

import pytest

from app.core.id_utils import (
    SEQUENCE_MASK,
    FlakeIdGenerator,
    OrderType,
    decode_flake_id,
    get_order_id_generator,
)

EPOCH = datetime(2022, 8, 1, tzinfo=timezone.utc)


class _ScriptedClock:
    def __init__(self, *readings: float):
        self.readings = list(readings)

    def __call__(self) -> float:
        if len(self.readings) > 1:
            return self.readings.pop(0)
        return self.readings[0]


def test_ids_are_strictly_increasing():
    generator = FlakeIdGenerator(OrderType.CAMPAIGN, EPOCH)
    ids = [generator.next_int() for _ in range(5000)]
    assert all(later > earlier for earlier, later in zip(ids, ids[1:]))


def test_partition_and_elapsed_time_are_encoded():
    now = EPOCH.timestamp() + 3600
    generator = FlakeIdGenerator(OrderType.DUPLICATE, EPOCH, clock=lambda: now)
    elapsed_ms, partition, sequence = decode_flake_id(generator.generate())
    assert elapsed_ms == 3_600_000
    assert partition == OrderType.DUPLICATE
    assert sequence == 0


def test_clock_moving_backwards_never_lowers_ids():
    start = EPOCH.timestamp() + 100
    clock = _ScriptedClock(start, start - 5, start - 10, start + 1)
    generator = FlakeIdGenerator(OrderType.CATALOGUE, EPOCH, clock=clock)
    ids = [generator.next_int() for _ in range(4)]
    assert ids == sorted(set(ids))


def test_sequence_overflow_rolls_into_next_millisecond():
    fixed = EPOCH.timestamp() + 10
    generator = FlakeIdGenerator(OrderType.CAMPAIGN, EPOCH, clock=lambda: fixed)
    ids = [generator.next_int() for _ in range(SEQUENCE_MASK + 3)]
    assert len(set(ids)) == len(ids)
    assert decode_flake_id(ids[-1])[0] == decode_flake_id(ids[0])[0] + 1


def test_concurrent_generation_yields_unique_ids():
    generator = FlakeIdGenerator(OrderType.CAMPAIGN, EPOCH)
    results: list[list[int]] = [[] for _ in range(8)]

    def worker(bucket: list[int]) -> None:
        for _ in range(1000):
            bucket.append(generator.next_int())

    threads = [threading.Thread(target=worker, args=(bucket,)) for bucket in results]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    all_ids = [value for bucket in results for value in bucket]
    assert len(set(all_ids)) == len(all_ids) == 8000
    for bucket in results:
        assert bucket == sorted(bucket)


def test_generator_registry_is_per_order_type():
    first = get_order_id_generator(OrderType.BVG, EPOCH)
    assert get_order_id_generator(OrderType.BVG, EPOCH) is first
    assert get_order_id_generator(OrderType.GETEC, EPOCH) is not first


def test_invalid_partition_is_rejected():
    with pytest.raises(ValueError):
        FlakeIdGenerator(1024, EPOCH)
