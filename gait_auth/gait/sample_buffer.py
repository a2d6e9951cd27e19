"""Thread-safe time-ordered buffer of motion samples."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional

from core.interfaces import SampleSource
from schemas import SYNC_TOLERANCE_SEC, MotionSample

logger = logging.getLogger(__name__)


class MotionSampleBuffer(SampleSource):
    """
    Bounded buffer of MotionSamples fed by the sensor layer and read by
    the authentication pipeline.

    Samples must arrive in timestamp order; a sample older than the
    newest one already buffered is dropped. Capacity is
    max_seconds * sampling_rate_hz * 1.5, oldest samples fall out first.
    """

    def __init__(self, max_seconds: float = 120.0, sampling_rate_hz: float = 50.0) -> None:
        if max_seconds <= 0.0 or sampling_rate_hz <= 0.0:
            raise ValueError(
                f"max_seconds and sampling_rate_hz must be > 0, got: {max_seconds}, {sampling_rate_hz}"
            )
        self.lock = threading.Lock()
        self.sampling_rate_hz = float(sampling_rate_hz)
        self.capacity = int(max_seconds * sampling_rate_hz * 1.5)
        self.ring: Deque[MotionSample] = deque(maxlen=self.capacity)
        self.dropped_out_of_order = 0

    def __len__(self) -> int:
        with self.lock:
            return len(self.ring)

    def push(self, s: MotionSample) -> bool:
        """Add a sample. Returns False if it was dropped as out of order."""
        with self.lock:
            return self._push_locked(s)

    def extend(self, samples: Iterable[MotionSample]) -> int:
        """Add several samples. Returns how many were accepted."""
        accepted = 0
        with self.lock:
            for s in samples:
                if self._push_locked(s):
                    accepted += 1
        return accepted

    def _push_locked(self, s: MotionSample) -> bool:
        if self.ring and s.timestamp < self.ring[-1].timestamp:
            self.dropped_out_of_order += 1
            logger.debug(
                "Dropping out-of-order sample ts=%.3f (last=%.3f)",
                s.timestamp,
                self.ring[-1].timestamp,
            )
            return False
        self.ring.append(s)
        return True

    def get_window(self, t0: float, t1: float) -> List[MotionSample]:
        """Return samples with t0 <= timestamp <= t1, oldest first."""
        with self.lock:
            if not self.ring:
                return []
            if t0 > self.ring[-1].timestamp:
                return []
            return [s for s in self.ring if t0 <= s.timestamp <= t1]

    def latest_window(self, duration_sec: float) -> List[MotionSample]:
        """Samples of the last `duration_sec` seconds before the newest sample."""
        with self.lock:
            if not self.ring:
                return []
            t1 = self.ring[-1].timestamp
            t0 = t1 - float(duration_sec)
            return [s for s in self.ring if t0 <= s.timestamp <= t1]

    def read_window(self, duration_sec: float) -> List[MotionSample]:
        return self.latest_window(duration_sec)

    def clear(self) -> None:
        with self.lock:
            self.ring.clear()

    def earliest_time(self) -> Optional[float]:
        with self.lock:
            return self.ring[0].timestamp if self.ring else None

    def latest_time(self) -> Optional[float]:
        with self.lock:
            return self.ring[-1].timestamp if self.ring else None

    def statistics(self, tolerance_sec: float = SYNC_TOLERANCE_SEC) -> Dict[str, float]:
        """
        Snapshot of the buffer contents:
          count, duration, first_timestamp, last_timestamp,
          sync_rate (fraction of synchronized samples), dropped_out_of_order
        """
        with self.lock:
            n = len(self.ring)
            if n == 0:
                return {
                    "count": 0,
                    "duration": 0.0,
                    "first_timestamp": 0.0,
                    "last_timestamp": 0.0,
                    "sync_rate": 0.0,
                    "dropped_out_of_order": self.dropped_out_of_order,
                }
            first = self.ring[0].timestamp
            last = self.ring[-1].timestamp
            synced = sum(1 for s in self.ring if s.is_synchronized(tolerance_sec))
            return {
                "count": n,
                "duration": last - first,
                "first_timestamp": first,
                "last_timestamp": last,
                "sync_rate": synced / n,
                "dropped_out_of_order": self.dropped_out_of_order,
            }
