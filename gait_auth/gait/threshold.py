"""
gait/threshold.py

Adaptive acceptance threshold per user.

Two independent adjustments exist:

  - performance: after every scored attempt the persisted threshold moves
    one step (0.05) up when the user almost always succeeds, or down when
    they mostly fail. A raise never lowers and a lower never raises the
    threshold, even where the clamp bounds would.
  - quality: per attempt only (never persisted), the threshold follows
    the quality gap between the current window and the enrolled baseline.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Dict, Optional

from gait_auth.gait.config import GaitConfig, ThresholdConfig
from gait_auth.gait.state import SECONDS_PER_DAY, SecurityLevel, ThresholdState
from schemas import AuthenticationDecision, GaitFeatureVector, WalkingPattern

logger = logging.getLogger(__name__)


def _clip(x: float, lo: float, hi: float) -> float:
    return min(max(float(x), lo), hi)


class ConfidenceThresholdManager:
    def __init__(self, gait_cfg: Optional[GaitConfig] = None) -> None:
        self.config: ThresholdConfig = (gait_cfg or GaitConfig()).thresholds
        self.security_level = SecurityLevel.parse(self.config.security_level)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def new_state(
        self,
        user_id: str,
        security_level: Optional[SecurityLevel | str] = None,
    ) -> ThresholdState:
        level = SecurityLevel.parse(security_level or self.security_level)
        base = self.base_threshold(level)
        return ThresholdState(
            user_id=user_id,
            security_level=level,
            base_threshold=base,
            current_threshold=base,
            recent_decisions=deque(maxlen=self.config.history_size),
        )

    def _policy(self, level: SecurityLevel) -> Dict[str, float]:
        return self.config.levels.get(level.value) or {}

    def base_threshold(self, level: SecurityLevel | str) -> float:
        """Configured base threshold of a security level."""
        level = SecurityLevel.parse(level)
        return float(self._policy(level).get("threshold", level.base_threshold))

    def max_age_sec(self, level: SecurityLevel | str) -> float:
        """Configured maximum baseline age of a security level, in seconds."""
        level = SecurityLevel.parse(level)
        days = self._policy(level).get("max_age_days")
        if days is None:
            return level.max_age_sec
        return float(days) * SECONDS_PER_DAY

    @staticmethod
    def current_threshold(state: ThresholdState) -> float:
        return state.current_threshold

    def record(self, state: ThresholdState, decision: AuthenticationDecision) -> bool:
        """
        Add a decision to the user's history.

        Only attempts where a candidate was actually scored count; missing
        baselines, stale baselines, empty windows and system errors say
        nothing about the threshold. Returns True if recorded.
        """
        if not decision.is_scored:
            return False
        state.record_outcome(decision.is_authenticated)
        return True

    # ------------------------------------------------------------------
    # Adjustments
    # ------------------------------------------------------------------

    def adjust_for_performance(self, state: ThresholdState) -> float:
        """Move state.current_threshold by one step based on recent success."""
        c = self.config
        cur = state.current_threshold
        if len(state.recent_decisions) < c.min_history_for_adjustment:
            return cur

        rate = state.success_rate()
        if rate > c.high_success_rate:
            new = max(cur, _clip(cur + c.step, *c.raise_bounds))
        elif rate < c.low_success_rate:
            new = min(cur, _clip(cur - c.step, *c.lower_bounds))
        else:
            new = cur

        if new != cur:
            logger.info(
                "Threshold adjusted for %s: %.2f -> %.2f (success_rate=%.2f over %d)",
                state.user_id,
                cur,
                new,
                rate,
                len(state.recent_decisions),
            )
            state.set_threshold(new)
        return state.current_threshold

    def adjust_for_quality(
        self,
        threshold: float,
        baseline_quality: float,
        current_quality: float,
    ) -> float:
        c = self.config
        diff = current_quality - baseline_quality
        if diff > c.quality_gap:
            return max(threshold, _clip(threshold + c.quality_raise, *c.raise_bounds))
        if diff < -c.quality_gap:
            return min(threshold, _clip(threshold - c.quality_lower, *c.lower_bounds))
        return threshold

    @staticmethod
    def estimate_quality(features: GaitFeatureVector) -> float:
        """Signal quality of a candidate window in [0, 1]."""
        total_var = _clip(features.acceleration_variance + features.gyroscope_variance, 0.0, 5.0)
        variance_score = 1.0 - total_var / 5.0
        pattern_score = 1.0 if features.walking_pattern == WalkingPattern.NORMAL else 0.5
        return 0.4 * features.step_regularity + 0.3 * variance_score + 0.3 * pattern_score

    def effective_threshold(
        self,
        state: ThresholdState,
        baseline_quality: Optional[float],
        features: GaitFeatureVector,
    ) -> float:
        """Threshold to apply for this attempt. Does not modify state."""
        thr = state.current_threshold
        if baseline_quality is None:
            return thr
        return self.adjust_for_quality(thr, baseline_quality, self.estimate_quality(features))

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def recommendations(self, state: ThresholdState) -> Dict[str, Any]:
        if len(state.recent_decisions) < self.config.min_history_for_adjustment:
            return {"message": "Not enough data for recommendations"}

        rate = state.success_rate()
        cur = state.current_threshold

        if rate > 0.85:
            recommended = _clip(cur - 0.05, 0.4, 0.9)
            action = "consider_decreasing"
        elif rate < 0.6:
            recommended = _clip(cur + 0.05, 0.5, 0.9)
            action = "consider_increasing"
        else:
            recommended = cur
            action = "maintain"

        return {
            "success_rate": {
                "current": round(rate, 2),
                "target": 0.75,
                "status": "Good" if rate >= 0.75 else "Needs Improvement",
            },
            "threshold_adjustment": {
                "current": round(cur, 2),
                "recommended": round(recommended, 2),
                "action": action,
            },
        }
