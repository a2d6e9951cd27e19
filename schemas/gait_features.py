from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

import numpy as np


class WalkingPattern(str, Enum):
    NORMAL = "NORMAL"
    IRREGULAR = "IRREGULAR"
    LIMPING = "LIMPING"

    @property
    def code(self) -> int:
        """Numeric encoding used in feature vectors (0 normal, 1 irregular, 2 limping)."""
        return _PATTERN_CODES[self]


_PATTERN_CODES = {
    WalkingPattern.NORMAL: 0,
    WalkingPattern.IRREGULAR: 1,
    WalkingPattern.LIMPING: 2,
}


FEATURE_NAMES = (
    "step_frequency",
    "step_regularity",
    "acceleration_variance",
    "gyroscope_variance",
    "step_intensity",
    "walking_pattern",
)


@dataclass(frozen=True)
class GaitFeatureVector:
    """
    Compact summary of one window of walking motion.

    Fields:
      - step_frequency        : detected steps per second (Hz)
      - step_regularity       : 0–1, consistency of inter-step timing
      - acceleration_variance : population variance of |accel| over the window
      - gyroscope_variance    : population variance of |gyro| over the window
      - step_intensity        : 0–1, normalised mean change of |accel|
      - walking_pattern       : NORMAL / IRREGULAR / LIMPING
      - window_duration       : length of the source window in seconds
      - extracted_at          : epoch seconds when the vector was built
      - insufficient          : True for the "not enough data" sentinel

    The sentinel has the same zero field values as a perfectly still
    window; `insufficient` is what tells them apart.
    """

    step_frequency: float
    step_regularity: float
    acceleration_variance: float
    gyroscope_variance: float
    step_intensity: float
    walking_pattern: WalkingPattern
    window_duration: float = 0.0
    extracted_at: float = field(default_factory=time.time)
    insufficient: bool = False

    @classmethod
    def insufficient_data(
        cls,
        window_duration: float = 0.0,
        extracted_at: float | None = None,
    ) -> "GaitFeatureVector":
        return cls(
            step_frequency=0.0,
            step_regularity=0.0,
            acceleration_variance=0.0,
            gyroscope_variance=0.0,
            step_intensity=0.0,
            walking_pattern=WalkingPattern.IRREGULAR,
            window_duration=float(window_duration),
            extracted_at=time.time() if extracted_at is None else float(extracted_at),
            insufficient=True,
        )

    @property
    def has_steps(self) -> bool:
        return not self.insufficient and self.step_frequency > 0.0

    def to_vector(self) -> np.ndarray:
        return np.array(
            [
                self.step_frequency,
                self.step_regularity,
                self.acceleration_variance,
                self.gyroscope_variance,
                self.step_intensity,
                float(self.walking_pattern.code),
            ],
            dtype=np.float64,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "step_frequency": float(self.step_frequency),
            "step_regularity": float(self.step_regularity),
            "acceleration_variance": float(self.acceleration_variance),
            "gyroscope_variance": float(self.gyroscope_variance),
            "step_intensity": float(self.step_intensity),
            "walking_pattern": self.walking_pattern.value,
            "window_duration": float(self.window_duration),
            "extracted_at": float(self.extracted_at),
            "insufficient": bool(self.insufficient),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GaitFeatureVector":
        """Rebuild from as_dict() output. Raises ValueError/KeyError on bad records."""
        return cls(
            step_frequency=float(data["step_frequency"]),
            step_regularity=float(data["step_regularity"]),
            acceleration_variance=float(data["acceleration_variance"]),
            gyroscope_variance=float(data["gyroscope_variance"]),
            step_intensity=float(data["step_intensity"]),
            walking_pattern=WalkingPattern(data["walking_pattern"]),
            window_duration=float(data.get("window_duration", 0.0)),
            extracted_at=float(data.get("extracted_at", 0.0)),
            insufficient=bool(data.get("insufficient", False)),
        )
