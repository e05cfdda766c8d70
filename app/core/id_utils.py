import time
from datetime import datetime
from enum import IntEnum
from threading import Lock

import shortuuid

TIMESTAMP_SHIFT = 22
PARTITION_SHIFT = 12
PARTITION_MASK = 0x3FF
SEQUENCE_MASK = 0xFFF


class OrderType(IntEnum):
    CAMPAIGN = 0
    CATALOGUE = 1
    DUPLICATE = 2
    GETEC = 3
    BVG = 4


def generate_shortuuid() -> str:
    return shortuuid.uuid()


def generate_short_token(length: int = 12) -> str:
    return shortuuid.ShortUUID().random(length=length)


class FlakeIdGenerator:
    """
    Time-ordered 64-bit ids: milliseconds since ``epoch`` in the high bits,
    then a partition tag, then a per-millisecond sequence.

    Ids from one generator are strictly increasing. When the sequence is
    exhausted, or the wall clock moves backwards, the generator keeps counting
    on a logical clock instead of waiting, so ids never go down.
    """

    def __init__(self, partition: int, epoch: datetime, clock=time.time):
        if not 0 <= partition <= PARTITION_MASK:
            raise ValueError(f"Partition must be between 0 and {PARTITION_MASK}")
        self.partition = int(partition)
        self.epoch_ms = int(epoch.timestamp() * 1000)
        self._clock = clock
        self._last_timestamp = -1
        self._sequence = 0
        self._lock = Lock()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000) - self.epoch_ms

    def next_int(self) -> int:
        with self._lock:
            timestamp = max(self._now_ms(), self._last_timestamp)
            if timestamp == self._last_timestamp:
                self._sequence = (self._sequence + 1) & SEQUENCE_MASK
                if self._sequence == 0:
                    timestamp += 1
            else:
                self._sequence = 0
            self._last_timestamp = timestamp
            return (timestamp << TIMESTAMP_SHIFT) | (self.partition << PARTITION_SHIFT) | self._sequence

    def generate(self) -> str:
        return str(self.next_int())


def decode_flake_id(value: str | int) -> tuple[int, int, int]:
    """Returns (elapsed_ms, partition, sequence) for a generated id."""
    raw = int(value)
    return (
        raw >> TIMESTAMP_SHIFT,
        (raw >> PARTITION_SHIFT) & PARTITION_MASK,
        raw & SEQUENCE_MASK,
    )


_generators: dict[tuple[int, int], FlakeIdGenerator] = {}
_generators_lock = Lock()


def get_order_id_generator(order_type: OrderType, epoch: datetime) -> FlakeIdGenerator:
    key = (int(order_type), int(epoch.timestamp() * 1000))
    with _generators_lock:
        generator = _generators.get(key)
        if generator is None:
            generator = FlakeIdGenerator(int(order_type), epoch)
            _generators[key] = generator
        return generator
