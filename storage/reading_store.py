"""Bounded in-memory buffer of recent telemetry readings."""

from __future__ import annotations

from collections import deque
from itertools import islice
from threading import RLock
from typing import Any, Deque, Dict, List, Optional

from models.records import Reading

DEFAULT_LATEST_COUNT = 200
MAX_LATEST_COUNT = 1000


def clamp_latest_count(n: Any) -> int:
    """Bound a requested count to ``1..MAX_LATEST_COUNT``; 200 when unusable."""
    if isinstance(n, bool):
        return DEFAULT_LATEST_COUNT
    try:
        requested = int(float(n))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_LATEST_COUNT
    if requested == 0:
        requested = DEFAULT_LATEST_COUNT
    return max(1, min(MAX_LATEST_COUNT, requested))


class ReadingStore:
    """Bounded, arrival-ordered buffer of the most recent readings."""

    def __init__(self, capacity: int = 5000, lock: Optional[RLock] = None) -> None:
        if capacity < 1:
            raise ValueError("Reading store capacity must be positive.")
        self._readings: Deque[Reading] = deque(maxlen=capacity)
        self._lock = lock if lock is not None else RLock()

    @property
    def capacity(self) -> int:
        return self._readings.maxlen or 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._readings)

    def append(self, reading: Reading) -> None:
        # A full deque drops exactly one reading from the head.
        with self._lock:
            self._readings.append(reading)

    def latest(self, n: Any = None) -> List[Reading]:
        count = clamp_latest_count(n)
        with self._lock:
            start = max(0, len(self._readings) - count)
            return list(islice(self._readings, start, None))

    def all(self) -> List[Reading]:
        with self._lock:
            return list(self._readings)

    def summary_by_sensor(self) -> Dict[str, Dict[str, Any]]:
        """Per-sensor reading count and most recent reading, in first-seen order."""
        summary: Dict[str, Dict[str, Any]] = {}
        for reading in self.all():
            entry = summary.setdefault(reading.sensor_id, {"count": 0, "last": None})
            entry["count"] += 1
            entry["last"] = reading
        return summary
