"""
Gait Engine: turns a candidate GaitFeatureVector, the user's baseline and
the user's threshold state into an AuthenticationDecision.

Decision order:
1. No active baseline         → BASELINE_NOT_FOUND
2. Baseline older than level  → CALIBRATION_TOO_OLD
3. Sentinel / no steps        → INSUFFICIENT_DATA
4. Score vs effective threshold:
   confidence >= threshold    → SUCCESS
   pattern classes clash      → PATTERN_NOT_MATCHED
   otherwise                  → CONFIDENCE_TOO_LOW

decide() never raises. A scorer fault becomes SYSTEM_ERROR with the
exception attached. The engine does not touch threshold history; the
caller records the outcome.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from core.interfaces import GaitScorer
from gait_auth.gait.config import GaitConfig
from gait_auth.gait.recognizers import BaselineSimilarityScorer
from gait_auth.gait.similarity import SimilarityScorer
from gait_auth.gait.state import ThresholdState
from gait_auth.gait.threshold import ConfidenceThresholdManager
from schemas import (
    AuthenticationDecision,
    CalibrationBaseline,
    DecisionKind,
    GaitFeatureVector,
    WalkingPattern,
)

logger = logging.getLogger(__name__)


def patterns_conflict(baseline: WalkingPattern, candidate: WalkingPattern) -> bool:
    """
    True when the two walking pattern classes disagree materially:
    they differ and one of them is LIMPING. NORMAL vs IRREGULAR is a
    matter of degree and is left to the confidence score.
    """
    if baseline == candidate:
        return False
    return WalkingPattern.LIMPING in (baseline, candidate)


class GaitAuthEngine:
    """
    Stateless decision engine. All per-user memory lives in the
    ThresholdState passed to decide().
    """

    def __init__(
        self,
        config: Optional[GaitConfig] = None,
        scorer: Optional[GaitScorer] = None,
        thresholds: Optional[ConfidenceThresholdManager] = None,
    ) -> None:
        self.config = config or GaitConfig()
        self.similarity = SimilarityScorer(self.config)
        self.scorer = scorer or BaselineSimilarityScorer(self.config, self.similarity)
        self.thresholds = thresholds or ConfidenceThresholdManager(self.config)
        logger.info("GaitAuthEngine initialised | scorer=%s", self.scorer.name)

    def decide(
        self,
        user_id: str,
        features: GaitFeatureVector,
        baseline: Optional[CalibrationBaseline],
        threshold_state: ThresholdState,
        now: Optional[float] = None,
    ) -> AuthenticationDecision:
        now = time.time() if now is None else float(now)
        base_thr = threshold_state.current_threshold

        if baseline is None or not baseline.is_active:
            decision = AuthenticationDecision.failure(
                user_id=user_id,
                kind=DecisionKind.BASELINE_NOT_FOUND,
                reason="no_active_baseline",
                threshold=base_thr,
                timestamp=now,
            )
            self._log(decision)
            return decision

        try:
            comparison = self._compare(features, baseline)
        except Exception as e:
            return self._system_error(user_id, baseline, base_thr, now, e)

        max_age = self.thresholds.max_age_sec(threshold_state.security_level)
        if baseline.is_too_old(max_age, now):
            decision = AuthenticationDecision.failure(
                user_id=user_id,
                kind=DecisionKind.CALIBRATION_TOO_OLD,
                reason=(
                    f"baseline_age:{baseline.age(now) / 86400.0:.1f}d>"
                    f"{max_age / 86400.0:.0f}d"
                ),
                threshold=base_thr,
                baseline_used=baseline.id,
                comparison=comparison,
                timestamp=now,
            )
            self._log(decision)
            return decision

        if features.insufficient or features.step_frequency == 0.0:
            decision = AuthenticationDecision.failure(
                user_id=user_id,
                kind=DecisionKind.INSUFFICIENT_DATA,
                reason="no_steps_detected",
                threshold=base_thr,
                baseline_used=baseline.id,
                comparison=comparison,
                timestamp=now,
            )
            self._log(decision)
            return decision

        try:
            result = self.scorer.score(features, baseline.features)
            threshold = self.thresholds.effective_threshold(
                threshold_state, baseline.quality_score, features
            )
        except Exception as e:
            return self._system_error(user_id, baseline, base_thr, now, e, comparison)

        confidence = min(max(float(result.confidence), 0.0), 1.0)

        if confidence >= threshold:
            decision = AuthenticationDecision.success(
                user_id=user_id,
                confidence=confidence,
                threshold=threshold,
                baseline_used=baseline.id,
                similarity=result.similarity,
                comparison=comparison,
                timestamp=now,
            )
        elif patterns_conflict(baseline.features.walking_pattern, result.walking_pattern):
            decision = AuthenticationDecision.failure(
                user_id=user_id,
                kind=DecisionKind.PATTERN_NOT_MATCHED,
                reason=(
                    f"pattern:{result.walking_pattern.value}!="
                    f"{baseline.features.walking_pattern.value}"
                ),
                confidence=confidence,
                threshold=threshold,
                baseline_used=baseline.id,
                similarity=result.similarity,
                comparison=comparison,
                timestamp=now,
            )
        else:
            decision = AuthenticationDecision.failure(
                user_id=user_id,
                kind=DecisionKind.CONFIDENCE_TOO_LOW,
                reason=f"confidence:{confidence:.2f}<{threshold:.2f}",
                confidence=confidence,
                threshold=threshold,
                baseline_used=baseline.id,
                similarity=result.similarity,
                comparison=comparison,
                timestamp=now,
            )

        self._log(decision)
        return decision

    def _compare(self, features: GaitFeatureVector, baseline: CalibrationBaseline) -> Dict[str, Any]:
        return self.similarity.compare(features, baseline.features)

    def _system_error(
        self,
        user_id: str,
        baseline: Optional[CalibrationBaseline],
        threshold: float,
        now: float,
        exc: Exception,
        comparison: Optional[Dict[str, Any]] = None,
    ) -> AuthenticationDecision:
        logger.exception("Gait scoring failed for user %s", user_id)
        return AuthenticationDecision.failure(
            user_id=user_id,
            kind=DecisionKind.SYSTEM_ERROR,
            reason=f"scorer_error:{type(exc).__name__}",
            threshold=threshold,
            baseline_used=baseline.id if baseline is not None else None,
            comparison=comparison,
            timestamp=now,
            cause=exc,
        )

    @staticmethod
    def _log(decision: AuthenticationDecision) -> None:
        logger.info(
            "Gait decision | user=%s kind=%s conf=%.3f thr=%.3f baseline=%s reason=%s",
            decision.user_id,
            decision.kind.value,
            decision.confidence,
            decision.threshold,
            decision.baseline_used,
            decision.reason,
        )
