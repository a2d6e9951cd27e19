from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Optional, Sequence

import numpy as np

from gait_auth.gait.config import GaitConfig
from schemas import MotionSample

logger = logging.getLogger(__name__)


class CalibrationType(str, Enum):
    FAST = "FAST"          # 30 s
    STANDARD = "STANDARD"  # 2 min
    EXTENDED = "EXTENDED"  # 5 min

    @property
    def duration_sec(self) -> float:
        return _TYPE_DURATIONS[self]

    def expected_samples(self, sampling_rate_hz: float) -> int:
        return int(round(self.duration_sec * sampling_rate_hz))


_TYPE_DURATIONS = {
    CalibrationType.FAST: 30.0,
    CalibrationType.STANDARD: 120.0,
    CalibrationType.EXTENDED: 300.0,
}


class CalibrationQualityLevel(str, Enum):
    POOR = "POOR"
    FAIR = "FAIR"
    GOOD = "GOOD"
    EXCELLENT = "EXCELLENT"

    @classmethod
    def from_score(cls, score: float) -> "CalibrationQualityLevel":
        if score >= 0.9:
            return cls.EXCELLENT
        if score >= 0.7:
            return cls.GOOD
        if score >= 0.5:
            return cls.FAIR
        return cls.POOR


QUALITY_WEIGHTS: Dict[str, float] = {
    "quantity": 0.30,
    "synchronization": 0.25,
    "consistency": 0.20,
    "sampling_stability": 0.15,
    "movement_variation": 0.10,
}


def _clip01(x: float) -> float:
    return min(max(float(x), 0.0), 1.0)


class CalibrationQualityScorer:
    """
    Rates a set of enrollment samples in [0, 1].

    Five sub-scores, each clamped to [0, 1], are combined with
    QUALITY_WEIGHTS:

      quantity           : observed samples / samples expected for the type
      synchronization    : fraction of accel/gyro pairs within the sync tolerance
      consistency        : vertical axis mean near gravity, moderate spread
      sampling_stability : mean sample interval vs 1 / sampling rate
      movement_variation : lateral sway plus step-period self-similarity

    Each sub-score is 0 when there are too few samples to compute it.
    """

    def __init__(self, gait_cfg: Optional[GaitConfig] = None) -> None:
        gait_cfg = gait_cfg or GaitConfig()
        self.sampling_rate_hz = gait_cfg.extraction.sampling_rate_hz
        self.expected_gravity = gait_cfg.calibration.expected_gravity
        self.step_period_sec = gait_cfg.calibration.step_period_sec
        self.sync_tolerance_sec = gait_cfg.extraction.sync_tolerance_sec

    def score(
        self,
        samples: Sequence[MotionSample],
        calibration_type: CalibrationType = CalibrationType.STANDARD,
    ) -> float:
        if not samples:
            return 0.0
        parts = self.breakdown(samples, calibration_type)
        total = sum(parts[k] * w for k, w in QUALITY_WEIGHTS.items())
        return _clip01(total)

    def breakdown(
        self,
        samples: Sequence[MotionSample],
        calibration_type: CalibrationType = CalibrationType.STANDARD,
    ) -> Dict[str, float]:
        if not samples:
            return {k: 0.0 for k in QUALITY_WEIGHTS}

        expected = calibration_type.expected_samples(self.sampling_rate_hz)
        return {
            "quantity": _clip01(len(samples) / expected) if expected > 0 else 0.0,
            "synchronization": self._sync_rate(samples),
            "consistency": self._consistency(samples),
            "sampling_stability": self._sampling_stability(samples),
            "movement_variation": self._movement_variation(samples),
        }

    # ------------------------------------------------------------------

    def _sync_rate(self, samples: Sequence[MotionSample]) -> float:
        synced = sum(1 for s in samples if s.is_synchronized(self.sync_tolerance_sec))
        return synced / len(samples)

    def _consistency(self, samples: Sequence[MotionSample]) -> float:
        if len(samples) < 10:
            return 0.0
        z = np.array([s.accel[2] for s in samples], dtype=np.float64)
        z_score = _clip01(1.0 - abs(float(np.mean(z)) - self.expected_gravity) / 5.0)
        spread_score = _clip01(1.0 - float(np.std(z)) / 3.0)
        return (z_score + spread_score) / 2.0

    def _sampling_stability(self, samples: Sequence[MotionSample]) -> float:
        if len(samples) < 20:
            return 0.0
        ts = np.array([s.timestamp for s in samples], dtype=np.float64)
        mean_interval = float(np.mean(np.diff(ts)))
        target = 1.0 / self.sampling_rate_hz
        return _clip01(1.0 - abs(mean_interval - target) / target)

    def _movement_variation(self, samples: Sequence[MotionSample]) -> float:
        if len(samples) < 50:
            return 0.0
        x = np.array([s.accel[0] for s in samples], dtype=np.float64)
        y = np.array([s.accel[1] for s in samples], dtype=np.float64)

        variation = _clip01((float(np.std(x)) + float(np.std(y))) / 4.0)
        periodicity = _clip01(self._periodicity(np.concatenate([x, y])))
        return (variation + periodicity) / 2.0

    def _periodicity(self, values: np.ndarray) -> float:
        """Fraction of points that repeat (within 0.5) one step period later."""
        lag = int(round(self.sampling_rate_hz * self.step_period_sec))
        n = int(values.shape[0])
        if n < 100 or lag <= 0 or n <= lag:
            return 0.0
        matches = np.abs(values[:-lag] - values[lag:]) < 0.5
        return float(np.count_nonzero(matches)) / (n - lag)
