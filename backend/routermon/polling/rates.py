"""
Rate Engine

Turns monotonically increasing interface byte counters into bits/second.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable, NamedTuple


class Rates(NamedTuple):
    rx_rate: int
    tx_rate: int


@dataclass
class RateSample:
    device_id: int
    interface: str
    last_rx_bytes: int
    last_tx_bytes: int
    last_sample_at: float


def counter_delta(current: int, last: int) -> int:
    """
    Bytes counted since the last sample.

    A counter lower than before means the device rebooted or the counter
    was reset, so the current value itself is the delta since the reset.
    """
    return current - last if current >= last else current


def _bits_per_second(delta: int, elapsed: float) -> int:
    # Half-up rounding
    return max(0, int(math.floor(delta * 8 / elapsed + 0.5)))


class RateEngine:
    """Tracks one RateSample per (device, interface)."""

    def __init__(
        self,
        min_sample_interval: float = 1.5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._min_sample_interval = min_sample_interval
        self._clock = clock
        self._samples: dict[tuple[int, str], RateSample] = {}

    def __len__(self) -> int:
        return len(self._samples)

    def get_sample(self, device_id: int, interface: str) -> RateSample | None:
        return self._samples.get((device_id, interface))

    def compute_rate(
        self, device_id: int, interface: str, rx_bytes: int, tx_bytes: int,
    ) -> Rates:
        """Return rx/tx rates in bits/second; the first sighting seeds state and returns zeros."""
        now = self._clock()
        key = (device_id, interface)
        sample = self._samples.get(key)

        if sample is None:
            self._samples[key] = RateSample(device_id, interface, rx_bytes, tx_bytes, now)
            return Rates(0, 0)

        elapsed = now - sample.last_sample_at
        rx_delta = counter_delta(rx_bytes, sample.last_rx_bytes)
        tx_delta = counter_delta(tx_bytes, sample.last_tx_bytes)

        if elapsed < self._min_sample_interval:
            # Too soon for a fresh sample: measure against the stored one
            # without advancing it.
            # TODO: confirm whether sub-interval polls should instead repeat
            # the last reported rate; this estimate sags as polls get faster.
            window = elapsed if elapsed > 0 else 1.0
            return Rates(
                _bits_per_second(rx_delta, window),
                _bits_per_second(tx_delta, window),
            )

        sample.last_rx_bytes = rx_bytes
        sample.last_tx_bytes = tx_bytes
        sample.last_sample_at = now
        return Rates(
            _bits_per_second(rx_delta, elapsed),
            _bits_per_second(tx_delta, elapsed),
        )
