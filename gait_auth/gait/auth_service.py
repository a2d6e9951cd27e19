"""
GaitAuthService: the entry point a host application calls.

    samples ─► GaitFeatureExtractor ─► GaitAuthEngine.decide ─► AuthenticationDecision
                                         ▲          ▲
                          BaselineStore.get    ThresholdStore.load/save

Everything that can go wrong in a collaborator (sensor, baseline store,
threshold store) is reported as a SYSTEM_ERROR decision with the
exception attached. authenticate() itself does not raise.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Any, Deque, Dict, Optional, Sequence

from core.interfaces import BaselineStore, SampleSource, ThresholdStore
from core.metrics import AuthMetrics
from gait_auth.gait.config import GaitConfig
from gait_auth.gait.gait_engine import GaitAuthEngine
from gait_auth.gait.gait_extractor import GaitFeatureExtractor
from gait_auth.gait.recognizers import build_scorer
from gait_auth.gait.state import ThresholdStateRegistry
from gait_auth.gait.threshold import ConfidenceThresholdManager
from schemas import AuthenticationDecision, DecisionKind, MotionSample

logger = logging.getLogger(__name__)

_HISTORY_SIZE = 50


class GaitAuthService:
    def __init__(
        self,
        baseline_store: BaselineStore,
        threshold_store: Optional[ThresholdStore] = None,
        config: Optional[GaitConfig] = None,
        engine: Optional[GaitAuthEngine] = None,
        extractor: Optional[GaitFeatureExtractor] = None,
        metrics: Optional[AuthMetrics] = None,
    ) -> None:
        self.config = config or GaitConfig()
        self.baselines = baseline_store
        self.threshold_store = threshold_store or ThresholdStateRegistry(
            path=self.config.storage.threshold_state_path,
            persist=self.config.storage.persist_state,
        )
        self.thresholds = ConfidenceThresholdManager(self.config)
        self.engine = engine or GaitAuthEngine(
            self.config,
            scorer=build_scorer(self.config.scorer.name, self.config),
            thresholds=self.thresholds,
        )
        self.extractor = extractor or GaitFeatureExtractor(self.config)
        self.metrics = metrics

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._history: Dict[str, Deque[AuthenticationDecision]] = {}

        logger.info(
            "GaitAuthService initialised | level=%s scorer=%s",
            self.thresholds.security_level.value,
            self.engine.scorer.name,
        )

    def _user_lock(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[user_id] = lock
            return lock

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def authenticate(
        self,
        user_id: str,
        samples: Sequence[MotionSample],
        now: Optional[float] = None,
    ) -> AuthenticationDecision:
        now = time.time() if now is None else float(now)
        features = self.extractor.extract(samples)

        try:
            baseline = self.baselines.get(user_id)
        except Exception as e:
            logger.exception("Baseline lookup failed for user %s", user_id)
            return self._finish(
                user_id,
                AuthenticationDecision.failure(
                    user_id=user_id,
                    kind=DecisionKind.SYSTEM_ERROR,
                    reason=f"baseline_store_error:{type(e).__name__}",
                    timestamp=now,
                    cause=e,
                ),
            )

        with self._user_lock(user_id):
            try:
                state = self.threshold_store.load(user_id)
            except Exception as e:
                logger.exception("Threshold state load failed for user %s", user_id)
                return self._finish(
                    user_id,
                    AuthenticationDecision.failure(
                        user_id=user_id,
                        kind=DecisionKind.SYSTEM_ERROR,
                        reason=f"threshold_store_error:{type(e).__name__}",
                        baseline_used=baseline.id if baseline is not None else None,
                        timestamp=now,
                        cause=e,
                    ),
                )
            if state is None:
                state = self.thresholds.new_state(user_id)

            decision = self.engine.decide(user_id, features, baseline, state, now=now)

            if self.thresholds.record(state, decision):
                self.thresholds.adjust_for_performance(state)
                try:
                    self.threshold_store.save(user_id, state)
                except Exception as e:
                    logger.exception("Threshold state save failed for user %s", user_id)
                    decision = AuthenticationDecision.failure(
                        user_id=user_id,
                        kind=DecisionKind.SYSTEM_ERROR,
                        reason=f"threshold_store_error:{type(e).__name__}",
                        confidence=decision.confidence,
                        threshold=decision.threshold,
                        baseline_used=decision.baseline_used,
                        similarity=decision.similarity,
                        comparison=decision.comparison,
                        timestamp=now,
                        cause=e,
                    )

        return self._finish(user_id, decision)

    def authenticate_from_source(
        self,
        user_id: str,
        source: SampleSource,
        duration_sec: Optional[float] = None,
        now: Optional[float] = None,
    ) -> AuthenticationDecision:
        """Read one window from the sensor layer and authenticate it."""
        if duration_sec is None:
            duration_sec = self.config.extraction.window_duration_seconds
        try:
            samples = source.read_window(duration_sec)
        except Exception as e:
            logger.exception("Sample source failed for user %s", user_id)
            return self._finish(
                user_id,
                AuthenticationDecision.failure(
                    user_id=user_id,
                    kind=DecisionKind.SYSTEM_ERROR,
                    reason=f"sample_source_error:{type(e).__name__}",
                    timestamp=time.time() if now is None else float(now),
                    cause=e,
                ),
            )
        return self.authenticate(user_id, samples, now=now)

    def _finish(self, user_id: str, decision: AuthenticationDecision) -> AuthenticationDecision:
        with self._locks_guard:
            hist = self._history.setdefault(user_id, deque(maxlen=_HISTORY_SIZE))
            hist.append(decision)
        if self.metrics is not None:
            self.metrics.update(decision)
            self.metrics.maybe_log(decision.timestamp)
        return decision

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def statistics(self, user_id: str) -> Dict[str, Any]:
        """
        Summary of this process's recent decisions for a user, plus the
        adaptive threshold and whether an active baseline exists.
        """
        with self._locks_guard:
            decisions = list(self._history.get(user_id, ()))

        total = len(decisions)
        successes = sum(1 for d in decisions if d.is_authenticated)
        scored = [d.confidence for d in decisions if d.is_scored]

        try:
            baseline_available = self.baselines.get(user_id) is not None
        except Exception:
            logger.exception("Baseline lookup failed for user %s", user_id)
            baseline_available = False

        state = None
        try:
            state = self.threshold_store.load(user_id)
        except Exception:
            logger.exception("Threshold state load failed for user %s", user_id)

        return {
            "total_decisions": total,
            "successful_decisions": successes,
            "success_rate": successes / total if total else 0.0,
            "average_confidence": sum(scored) / len(scored) if scored else 0.0,
            "last_decision": decisions[-1].as_dict() if decisions else None,
            "baseline_available": baseline_available,
            "current_threshold": (
                state.current_threshold
                if state is not None
                else self.thresholds.base_threshold(self.thresholds.security_level)
            ),
            "recommendations": (
                self.thresholds.recommendations(state) if state is not None else None
            ),
        }
