from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Tuple

Vec3 = Tuple[float, float, float]

SYNC_TOLERANCE_SEC = 0.050


@dataclass(frozen=True)
class MotionSample:
    """
    One synchronized accelerometer + gyroscope reading.

    Attributes
    ----------
    accel : (x, y, z)
        Accelerometer reading in m/s² (gravity included, z is vertical).
    gyro  : (x, y, z)
        Gyroscope reading in rad/s.
    timestamp : float
        Accelerometer timestamp in seconds. This is the sample's time.
    gyro_timestamp : float or None
        Gyroscope timestamp in seconds. None means "same as timestamp".

    NOTE:
    - The two sub-readings come from independent sensor streams. They are
      only usable together when their timestamps are within 50 ms.
    """

    accel: Vec3
    gyro: Vec3
    timestamp: float
    gyro_timestamp: float | None = None

    @property
    def accel_magnitude(self) -> float:
        ax, ay, az = self.accel
        return math.sqrt(ax * ax + ay * ay + az * az)

    @property
    def gyro_magnitude(self) -> float:
        gx, gy, gz = self.gyro
        return math.sqrt(gx * gx + gy * gy + gz * gz)

    @property
    def sync_offset(self) -> float:
        """Absolute accel/gyro timestamp offset in seconds."""
        if self.gyro_timestamp is None:
            return 0.0
        return abs(float(self.timestamp) - float(self.gyro_timestamp))

    def is_synchronized(self, tolerance_sec: float = SYNC_TOLERANCE_SEC) -> bool:
        return self.sync_offset <= tolerance_sec

    def as_dict(self) -> Dict[str, Any]:
        return {
            "accel": list(self.accel),
            "gyro": list(self.gyro),
            "timestamp": float(self.timestamp),
            "gyro_timestamp": (
                float(self.gyro_timestamp) if self.gyro_timestamp is not None else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MotionSample":
        ax, ay, az = (float(v) for v in data["accel"])
        gx, gy, gz = (float(v) for v in data["gyro"])
        gyro_ts = data.get("gyro_timestamp")
        return cls(
            accel=(ax, ay, az),
            gyro=(gx, gy, gz),
            timestamp=float(data["timestamp"]),
            gyro_timestamp=float(gyro_ts) if gyro_ts is not None else None,
        )
