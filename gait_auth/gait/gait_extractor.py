"""
gait/gait_extractor.py

Motion samples → GaitFeatureVector.

Steps per window:
  1. Keep only synchronized samples with plausible magnitudes.
  2. Detect steps as peaks of vertical acceleration.
  3. Derive frequency, regularity, variances, intensity and the walking
     pattern class from the kept samples.

The extractor never raises on bad input. Anything it cannot work with
ends up as the "insufficient data" vector.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from gait_auth.gait.config import ExtractionConfig, GaitConfig
from schemas import GaitFeatureVector, MotionSample, WalkingPattern

logger = logging.getLogger(__name__)


def find_peaks(values: np.ndarray, threshold: float) -> List[int]:
    """
    Indices i (1 <= i <= n-2) where values[i] is a local maximum that
    stands more than `threshold` standard deviations above the mean.

    On a flat top (values[i] == values[i+1]) the first index wins.
    """
    n = int(values.shape[0])
    if n < 3:
        return []

    mean = float(np.mean(values))
    std = float(np.std(values))
    limit = threshold * std

    peaks: List[int] = []
    for i in range(1, n - 1):
        v = values[i]
        if v > values[i - 1] and v >= values[i + 1] and (v - mean) > limit:
            peaks.append(i)
    return peaks


class GaitFeatureExtractor:
    """
    Stateless feature extractor. One instance can be shared by all users
    and threads.
    """

    def __init__(self, gait_cfg: Optional[GaitConfig] = None) -> None:
        self.config: ExtractionConfig = (gait_cfg or GaitConfig()).extraction
        logger.info(
            "GaitFeatureExtractor initialised | rate=%.1fHz window=%.1fs peak_threshold=%.2f",
            self.config.sampling_rate_hz,
            self.config.window_duration_seconds,
            self.config.peak_threshold,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract(
        self,
        samples: Sequence[MotionSample],
        window_duration: Optional[float] = None,
    ) -> GaitFeatureVector:
        """
        Summarise one window of samples (ordered oldest first).

        Returns GaitFeatureVector.insufficient_data() when fewer than
        `min_samples` samples survive filtering.
        """
        if window_duration is None:
            window_duration = self.config.window_duration_seconds

        if not samples:
            return GaitFeatureVector.insufficient_data(window_duration)

        try:
            valid = self._filter_valid(samples)
            if len(valid) < self.config.min_samples:
                logger.debug(
                    "Insufficient samples after filtering: %d of %d",
                    len(valid),
                    len(samples),
                )
                return GaitFeatureVector.insufficient_data(window_duration)

            return self._compute(valid, float(window_duration))
        except Exception:
            logger.exception("Feature extraction failed, returning insufficient-data vector")
            return GaitFeatureVector.insufficient_data(window_duration)

    def extract_realtime(self, samples: Sequence[MotionSample]) -> GaitFeatureVector:
        """Shorter window used for live feedback while the user walks."""
        return self.extract(samples, window_duration=self.config.realtime_window_seconds)

    @staticmethod
    def feature_statistics(features: GaitFeatureVector) -> Dict[str, Any]:
        return {
            "extracted_at": features.extracted_at,
            "window_duration": features.window_duration,
            "feature_count": 6,
            "insufficient": features.insufficient,
            "features": {
                "step_frequency": features.step_frequency,
                "step_regularity": features.step_regularity,
                "acceleration_variance": features.acceleration_variance,
                "gyroscope_variance": features.gyroscope_variance,
                "step_intensity": features.step_intensity,
                "walking_pattern": features.walking_pattern.value,
            },
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _filter_valid(self, samples: Sequence[MotionSample]) -> List[MotionSample]:
        c = self.config
        valid: List[MotionSample] = []
        for s in samples:
            if not isinstance(s, MotionSample):
                continue
            try:
                if not s.is_synchronized(c.sync_tolerance_sec):
                    continue
                a = s.accel_magnitude
                g = s.gyro_magnitude
            except (TypeError, ValueError):
                continue
            if not (math.isfinite(a) and math.isfinite(g) and math.isfinite(s.timestamp)):
                continue
            if a < c.accel_min or a > c.accel_max:
                continue
            if g > c.gyro_max:
                continue
            valid.append(s)
        return valid

    def _compute(self, samples: List[MotionSample], window_duration: float) -> GaitFeatureVector:
        c = self.config

        ts = np.array([s.timestamp for s in samples], dtype=np.float64)
        ax = np.array([s.accel[0] for s in samples], dtype=np.float64)
        ay = np.array([s.accel[1] for s in samples], dtype=np.float64)
        az = np.array([s.accel[2] for s in samples], dtype=np.float64)
        accel_mag = np.array([s.accel_magnitude for s in samples], dtype=np.float64)
        gyro_mag = np.array([s.gyro_magnitude for s in samples], dtype=np.float64)

        peaks = find_peaks(az, c.peak_threshold)

        span = float(ts[-1] - ts[0])
        duration = span if span > 0.0 else len(samples) / c.sampling_rate_hz
        step_frequency = len(peaks) / duration if duration > 0.0 else 0.0

        regularity = self._regularity(ts, peaks)

        accel_var = float(np.var(accel_mag))
        gyro_var = float(np.var(gyro_mag))

        mean_change = float(np.mean(np.abs(np.diff(accel_mag)))) if len(samples) > 1 else 0.0
        intensity = min(max(mean_change / c.intensity_scale, 0.0), 1.0)

        pattern = self._classify(ax, ay, regularity)

        return GaitFeatureVector(
            step_frequency=float(step_frequency),
            step_regularity=float(regularity),
            acceleration_variance=accel_var,
            gyroscope_variance=gyro_var,
            step_intensity=float(intensity),
            walking_pattern=pattern,
            window_duration=window_duration,
            extracted_at=time.time(),
        )

    def _regularity(self, ts: np.ndarray, peaks: List[int]) -> float:
        if len(peaks) < self.config.min_peaks_for_regularity:
            return 0.0

        intervals = np.diff(ts[peaks])
        mean_interval = float(np.mean(intervals))
        if mean_interval <= 0.0:
            return 0.0

        cv = float(np.std(intervals)) / mean_interval
        return min(max(1.0 / (1.0 + cv), 0.0), 1.0)

    def _classify(self, ax: np.ndarray, ay: np.ndarray, regularity: float) -> WalkingPattern:
        c = self.config
        if ax.shape[0] < c.min_pattern_samples:
            return WalkingPattern.IRREGULAR

        ratio = float(np.var(ax)) / (float(np.var(ay)) + 0.001)
        if ratio > c.limp_ratio_high or ratio < c.limp_ratio_low:
            return WalkingPattern.LIMPING

        if regularity > c.normal_regularity:
            return WalkingPattern.NORMAL
        return WalkingPattern.IRREGULAR
