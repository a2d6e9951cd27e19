"""
gait/calibration.py

Enrollment: collect a few minutes of walking, rate the recording, and
turn it into the user's active CalibrationBaseline.

Lifecycle of a CalibrationSession:

    start() → IN_PROGRESS → add_samples() ... → complete() → COMPLETED
                                                           → REJECTED (quality gate / no steps)
                                                           → FAILED   (store error)
                          → cancel() → CANCELLED

Unlike authentication, calibration errors are raised (CalibrationError):
they happen while the user is actively enrolling and must be shown.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from core.interfaces import BaselineStore
from gait_auth.gait.calibration_quality import (
    CalibrationQualityLevel,
    CalibrationQualityScorer,
    CalibrationType,
)
from gait_auth.gait.config import GaitConfig
from gait_auth.gait.gait_extractor import GaitFeatureExtractor
from schemas import CalibrationBaseline, MotionSample

logger = logging.getLogger(__name__)


class CalibrationError(Exception):
    """Raised when a calibration cannot be started or finished."""


class CalibrationStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


@dataclass
class CalibrationSession:
    user_id: str
    calibration_type: CalibrationType
    expected_samples: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: CalibrationStatus = CalibrationStatus.IN_PROGRESS
    started_at: float = field(default_factory=time.time)
    ended_at: Optional[float] = None
    samples: List[MotionSample] = field(default_factory=list)
    quality_score: float = 0.0
    baseline_id: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def sample_count(self) -> int:
        return len(self.samples)

    @property
    def progress(self) -> float:
        if self.expected_samples <= 0:
            return 0.0
        return min(self.sample_count / self.expected_samples, 1.0)

    @property
    def is_active(self) -> bool:
        return self.status == CalibrationStatus.IN_PROGRESS

    @property
    def is_finished(self) -> bool:
        return not self.is_active

    @property
    def quality_level(self) -> CalibrationQualityLevel:
        return CalibrationQualityLevel.from_score(self.quality_score)

    def _finish(self, status: CalibrationStatus, now: float, error: Optional[str] = None) -> None:
        self.status = status
        self.ended_at = now
        self.error_message = error


class CalibrationService:
    def __init__(
        self,
        baseline_store: BaselineStore,
        config: Optional[GaitConfig] = None,
        extractor: Optional[GaitFeatureExtractor] = None,
        quality_scorer: Optional[CalibrationQualityScorer] = None,
    ) -> None:
        self.config = config or GaitConfig()
        self.store = baseline_store
        self.extractor = extractor or GaitFeatureExtractor(self.config)
        self.quality = quality_scorer or CalibrationQualityScorer(self.config)

        self.min_quality = self.config.calibration.min_baseline_quality
        self.cooldown_sec = self.config.calibration.recalibration_cooldown_hours * 3600.0

        self._sessions: Dict[str, CalibrationSession] = {}
        self._lock = threading.Lock()

        logger.info(
            "CalibrationService initialised | min_quality=%.2f cooldown=%.1fh",
            self.min_quality,
            self.cooldown_sec / 3600.0,
        )

    def start(
        self,
        user_id: str,
        calibration_type: CalibrationType = CalibrationType.STANDARD,
        now: Optional[float] = None,
    ) -> CalibrationSession:
        """
        Open a new session. Refused while the user's active baseline is
        younger than the recalibration cooldown, unless that baseline is
        below the quality gate.
        """
        now = time.time() if now is None else float(now)

        try:
            current = self.store.get(user_id)
        except Exception as e:
            raise CalibrationError(f"Failed to start calibration for {user_id}: {e}") from e

        if (
            current is not None
            and current.has_sufficient_quality(self.min_quality)
            and current.age(now) < self.cooldown_sec
        ):
            remaining_h = (self.cooldown_sec - current.age(now)) / 3600.0
            raise CalibrationError(
                f"Recalibration for {user_id} not allowed yet ({remaining_h:.1f}h remaining)"
            )

        session = CalibrationSession(
            user_id=user_id,
            calibration_type=calibration_type,
            expected_samples=calibration_type.expected_samples(
                self.config.extraction.sampling_rate_hz
            ),
            started_at=now,
        )
        with self._lock:
            self._sessions[session.id] = session

        logger.info(
            "Calibration started | user=%s type=%s expected_samples=%d",
            user_id,
            calibration_type.value,
            session.expected_samples,
        )
        return session

    def add_samples(self, session: CalibrationSession, samples: Iterable[MotionSample]) -> float:
        """Append samples to a running session. Returns progress in [0, 1]."""
        if not session.is_active:
            raise CalibrationError(
                f"Calibration session {session.id} is {session.status.value}, cannot add samples"
            )
        session.samples.extend(samples)
        return session.progress

    def complete(self, session: CalibrationSession, now: Optional[float] = None) -> CalibrationSession:
        """
        Rate the recording and, if it passes, store it as the new active
        baseline. A recording that fails the gate ends REJECTED (no error).
        """
        if not session.is_active:
            raise CalibrationError(
                f"Calibration session {session.id} is {session.status.value}, cannot complete"
            )
        now = time.time() if now is None else float(now)

        quality = self.quality.score(session.samples, session.calibration_type)
        session.quality_score = quality

        if quality < self.min_quality:
            session._finish(
                CalibrationStatus.REJECTED,
                now,
                f"quality {quality:.2f} below minimum {self.min_quality:.2f}",
            )
            logger.warning(
                "Calibration rejected | user=%s quality=%.3f min=%.3f samples=%d",
                session.user_id,
                quality,
                self.min_quality,
                session.sample_count,
            )
            return session

        span = session.samples[-1].timestamp - session.samples[0].timestamp
        features = self.extractor.extract(session.samples, window_duration=span)
        if not features.has_steps:
            session._finish(CalibrationStatus.REJECTED, now, "no steps detected in recording")
            logger.warning("Calibration rejected | user=%s no steps detected", session.user_id)
            return session

        baseline = CalibrationBaseline(
            user_id=session.user_id,
            features=features,
            quality_score=quality,
            created_at=now,
        )
        try:
            self.store.put(session.user_id, baseline)
        except Exception as e:
            session._finish(CalibrationStatus.FAILED, now, str(e))
            raise CalibrationError(
                f"Failed to store baseline for {session.user_id}: {e}"
            ) from e

        session.baseline_id = baseline.id
        session._finish(CalibrationStatus.COMPLETED, now)
        logger.info(
            "Calibration completed | user=%s baseline=%s quality=%.3f (%s) freq=%.2fHz",
            session.user_id,
            baseline.id,
            quality,
            session.quality_level.value,
            features.step_frequency,
        )
        return session

    def cancel(self, session: CalibrationSession, now: Optional[float] = None) -> CalibrationSession:
        if session.is_active:
            now = time.time() if now is None else float(now)
            session._finish(CalibrationStatus.CANCELLED, now)
            logger.info("Calibration cancelled | user=%s", session.user_id)
        return session

    def sessions(self, user_id: str) -> List[CalibrationSession]:
        """Sessions of a user started through this service, oldest first."""
        with self._lock:
            found = [s for s in self._sessions.values() if s.user_id == user_id]
        return sorted(found, key=lambda s: s.started_at)
