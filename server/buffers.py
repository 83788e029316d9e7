"""Rolling window and historical log for derived records."""

from collections import deque
from typing import List, Optional, Tuple

from models import DerivedRecord


class RollingWindow:
    """Fixed-capacity FIFO feeding the live chart.

    Appending to a full window evicts the oldest record.
    """

    def __init__(self, capacity: int = 20):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._records = deque(maxlen=capacity)

    def append(self, record: DerivedRecord) -> Optional[DerivedRecord]:
        """Append at the tail; return the evicted head, if any."""
        evicted = self._records[0] if len(self._records) == self.capacity else None
        self._records.append(record)
        return evicted

    def clear(self):
        self._records.clear()

    def snapshot(self) -> Tuple[DerivedRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(tuple(self._records))


class HistoricalLog:
    """Unbounded append-only log of the session, feeding table and print output."""

    def __init__(self):
        self._records: List[DerivedRecord] = []

    def append(self, record: DerivedRecord):
        self._records.append(record)

    def clear(self):
        self._records = []

    def snapshot(self) -> Tuple[DerivedRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(tuple(self._records))


class TelemetryBuffers:
    """Both containers, fed the same record objects."""

    def __init__(self, window_size: int = 20):
        self.window = RollingWindow(window_size)
        self.log = HistoricalLog()

    def append(self, record: DerivedRecord) -> Optional[DerivedRecord]:
        self.log.append(record)
        return self.window.append(record)

    def reset(self):
        self.window.clear()
        self.log.clear()

    def snapshot(self) -> Tuple[DerivedRecord, ...]:
        """Rolling window contents, oldest first."""
        return self.window.snapshot()

    def log_snapshot(self) -> Tuple[DerivedRecord, ...]:
        return self.log.snapshot()
