import random
from collections import deque
from threading import Lock
from typing import Callable, Deque


class LatencyEqualizer:
    """
    Remembers how long the real reset path took and hands out a matching
    delay for requests that skip the real work (unknown or inactive accounts).

    Until enough samples exist the delay is uniform in [min_ms, max_ms].
    """

    def __init__(
        self,
        min_ms: int = 50,
        max_ms: int = 150,
        sample_size: int = 50,
        min_samples: int = 5,
        rng: Callable[[], float] = random.random,
    ):
        self.min_ms = min_ms
        self.max_ms = max_ms
        self.min_samples = min_samples
        self._samples: Deque[float] = deque(maxlen=sample_size)
        self._lock = Lock()
        self._rng = rng

    def observe(self, seconds: float) -> None:
        with self._lock:
            self._samples.append(seconds)

    def sample(self) -> float:
        """Delay in seconds to apply on the skipped path"""
        with self._lock:
            samples = list(self._samples)
        if len(samples) < self.min_samples:
            span = max(self.max_ms - self.min_ms, 0)
            return (self.min_ms + span * self._rng()) / 1000
        return samples[int(self._rng() * len(samples)) % len(samples)]
