"""
core/dummies.py

Dummy implementations of the collaborator interfaces.

These let the authentication pipeline run end-to-end without a phone:
a synthetic walking signal instead of real sensors, and a store that
always fails so the system_error paths can be exercised.
"""

from __future__ import annotations

import math
import time
from typing import List, Optional

import numpy as np

from schemas import CalibrationBaseline, MotionSample
from .interfaces import BaselineStore, SampleSource, StoreError


class SyntheticWalkSource(SampleSource):
    """
    Sample source that simulates walking.

    Vertical acceleration oscillates around gravity once per step:
        z = 9.8 + A * sin(2π · step_hz · t)
    Lateral axes sway once per stride (two steps). A limp is modelled as
    a strong left/right sway asymmetry, which is what the extractor's
    x/y variance ratio picks up.

    Output is deterministic for a given seed. With noise_std=0 the seed
    does not matter at all.
    """

    def __init__(
        self,
        sampling_rate_hz: float = 50.0,
        step_hz: float = 2.0,
        amplitude: float = 2.0,
        sway: float = 0.5,
        limp: bool = False,
        noise_std: float = 0.0,
        gyro_lag_sec: float = 0.0,
        seed: int = 0,
        start_ts: Optional[float] = None,
    ) -> None:
        if sampling_rate_hz <= 0.0:
            raise ValueError(f"sampling_rate_hz must be > 0, got: {sampling_rate_hz}")
        self.sampling_rate_hz = float(sampling_rate_hz)
        self.step_hz = float(step_hz)
        self.amplitude = float(amplitude)
        self.sway = float(sway)
        self.limp = bool(limp)
        self.noise_std = float(noise_std)
        self.gyro_lag_sec = float(gyro_lag_sec)

        self._rng = np.random.default_rng(seed)
        self._t0 = time.time() if start_ts is None else float(start_ts)
        self._next_index = 0

    def generate(self, n_samples: int, start_index: int = 0) -> List[MotionSample]:
        """Build n_samples consecutive samples starting at sample index start_index."""
        n = max(0, int(n_samples))
        if n == 0:
            return []

        dt = 1.0 / self.sampling_rate_hz
        t = (np.arange(n, dtype=np.float64) + start_index) * dt
        stride_hz = self.step_hz / 2.0

        x_amp = self.sway * (3.0 if self.limp else 1.0)
        ax = x_amp * np.sin(2.0 * math.pi * stride_hz * t)
        ay = self.sway * np.cos(2.0 * math.pi * stride_hz * t)
        az = 9.8 + self.amplitude * np.sin(2.0 * math.pi * self.step_hz * t)

        gx = 0.3 * np.sin(2.0 * math.pi * stride_hz * t)
        gy = 0.2 * np.cos(2.0 * math.pi * self.step_hz * t)
        gz = 0.1 * np.sin(2.0 * math.pi * stride_hz * t + 0.5)

        if self.noise_std > 0.0:
            ax = ax + self._rng.normal(0.0, self.noise_std, n)
            ay = ay + self._rng.normal(0.0, self.noise_std, n)
            az = az + self._rng.normal(0.0, self.noise_std, n)

        samples: List[MotionSample] = []
        for i in range(n):
            ts = self._t0 + float(t[i])
            samples.append(
                MotionSample(
                    accel=(float(ax[i]), float(ay[i]), float(az[i])),
                    gyro=(float(gx[i]), float(gy[i]), float(gz[i])),
                    timestamp=ts,
                    gyro_timestamp=ts + self.gyro_lag_sec,
                )
            )
        return samples

    def read_window(self, duration_sec: float) -> List[MotionSample]:
        n = int(round(float(duration_sec) * self.sampling_rate_hz))
        samples = self.generate(n, start_index=self._next_index)
        self._next_index += n
        return samples


class FailingSampleSource(SampleSource):
    """Sample source whose sensor is permanently unavailable."""

    def __init__(self, message: str = "sensor unavailable") -> None:
        self.message = message

    def read_window(self, duration_sec: float) -> List[MotionSample]:
        raise RuntimeError(self.message)


class FailingBaselineStore(BaselineStore):
    """
    Baseline store whose backend is down.

    Every call raises StoreError.
    """

    def __init__(self, message: str = "baseline store unavailable") -> None:
        self.message = message

    def get(self, user_id: str) -> Optional[CalibrationBaseline]:
        raise StoreError(self.message)

    def put(self, user_id: str, baseline: CalibrationBaseline) -> None:
        raise StoreError(self.message)
