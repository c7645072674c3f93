"""
Angle History
=============
Fixed-capacity circular buffer of recent observed angles.
"""

import numpy as np
from typing import List


class AngleHistory:
    """
    Ring buffer of angle samples.

    `write_index` points at the slot the next push will fill; `count` never
    exceeds `capacity`, and once full the oldest sample is overwritten.
    """

    def __init__(self, capacity: int = 8):
        if capacity < 1:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.samples = np.zeros(capacity, dtype=np.float64)
        self.write_index = 0
        self.count = 0

    def push(self, angle: float):
        """Store a new sample, overwriting the oldest once full."""
        self.samples[self.write_index] = float(angle)
        self.write_index = (self.write_index + 1) % self.capacity
        self.count = min(self.count + 1, self.capacity)

    def recent(self, k: int) -> List[float]:
        """Up to k most recent samples, newest first."""
        n = max(0, min(k, self.count))
        return [
            float(self.samples[(self.write_index - i - 1) % self.capacity])
            for i in range(n)
        ]

    def chronological(self, k: int) -> List[float]:
        """Up to k most recent samples, oldest first."""
        return self.recent(k)[::-1]

    @property
    def latest(self) -> float:
        if self.count == 0:
            raise IndexError("history is empty")
        return self.recent(1)[0]

    def clear(self):
        self.samples.fill(0.0)
        self.write_index = 0
        self.count = 0

    def __len__(self) -> int:
        return self.count
