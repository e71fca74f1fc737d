from __future__ import annotations

from collections import deque

SMOOTHING_BUFFER_SIZE = 5


class SmoothingBuffer:
    """Fixed-size moving average over the most recent samples."""

    def __init__(self, size: int = SMOOTHING_BUFFER_SIZE) -> None:
        if size < 1:
            raise ValueError(f"Buffer size must be positive, got {size}")
        self.size = size
        self._values: deque[float] = deque(maxlen=size)

    def push(self, value: float) -> float:
        self._values.append(float(value))
        return self.mean()

    def mean(self) -> float:
        if not self._values:
            return 0.0
        return sum(self._values) / len(self._values)

    def clear(self) -> None:
        self._values.clear()

    @property
    def is_full(self) -> bool:
        return len(self._values) >= self.size

    def __len__(self) -> int:
        return len(self._values)
