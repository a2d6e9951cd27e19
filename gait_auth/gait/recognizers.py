"""
gait/recognizers.py

GaitScorer implementations. The decision engine receives one of these at
construction time and only ever calls score().

- BaselineSimilarityScorer: compares the candidate with the user's own
  baseline (default).
- HeuristicGaitScorer: rates how plausible the candidate is as healthy
  human walking, independent of the baseline. Useful before enough
  baseline data exists, and as a sanity reference.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from core.interfaces import GaitScore, GaitScorer
from gait_auth.gait.config import GaitConfig, ScorerConfig
from gait_auth.gait.similarity import SimilarityScorer
from schemas import GaitFeatureVector, WalkingPattern

logger = logging.getLogger(__name__)


class BaselineSimilarityScorer(GaitScorer):
    """
    confidence = 0.6 * similarity + 0.4 * feature_score

    feature_score focuses on the features that identify a person best:
        0.3 * frequency band + 0.4 * regularity similarity + 0.3 * variance similarity
    where the frequency band is 1.0 within tolerance, 0.7 within twice the
    tolerance and 0.3 beyond.
    """

    name = "similarity"

    def __init__(
        self,
        gait_cfg: Optional[GaitConfig] = None,
        similarity: Optional[SimilarityScorer] = None,
    ) -> None:
        gait_cfg = gait_cfg or GaitConfig()
        self.config: ScorerConfig = gait_cfg.scorer
        self.similarity = similarity or SimilarityScorer(gait_cfg)
        self.frequency_tolerance = gait_cfg.similarity.tolerances.get("step_frequency", 0.3)

    def _frequency_band(self, candidate: float, baseline: float) -> float:
        diff = abs(candidate - baseline)
        if diff <= self.frequency_tolerance:
            return self.config.frequency_band_full
        if diff <= 2.0 * self.frequency_tolerance:
            return self.config.frequency_band_near
        return self.config.frequency_band_far

    def score(self, candidate: GaitFeatureVector, baseline: GaitFeatureVector) -> GaitScore:
        c = self.config
        sims = self.similarity.per_feature(candidate, baseline)
        similarity = self.similarity.score(candidate, baseline)

        freq_band = self._frequency_band(candidate.step_frequency, baseline.step_frequency)
        variance_sim = (sims["acceleration_variance"] + sims["gyroscope_variance"]) / 2.0
        feature_score = (
            c.frequency_weight * freq_band
            + c.regularity_weight * sims["step_regularity"]
            + c.variance_weight * variance_sim
        )

        confidence = c.similarity_weight * similarity + c.feature_weight * feature_score
        confidence = min(max(confidence, 0.0), 1.0)

        return GaitScore(
            confidence=confidence,
            walking_pattern=candidate.walking_pattern,
            similarity=similarity,
            components={
                "frequency_band": freq_band,
                "regularity": sims["step_regularity"],
                "variance": variance_sim,
                "feature_score": feature_score,
            },
        )


_PATTERN_SCORES: Dict[WalkingPattern, float] = {
    WalkingPattern.NORMAL: 1.0,
    WalkingPattern.IRREGULAR: 0.6,
    WalkingPattern.LIMPING: 0.3,
}

# Irregular and limping gaits must look more convincing to pass.
_PATTERN_THRESHOLDS: Dict[WalkingPattern, float] = {
    WalkingPattern.NORMAL: 0.6,
    WalkingPattern.IRREGULAR: 0.7,
    WalkingPattern.LIMPING: 0.8,
}


class HeuristicGaitScorer(GaitScorer):
    """
    Rule-based plausibility score:

        0.25 * frequency band (1.8–2.2 Hz is ideal)
      + 0.20 * step regularity
      + 0.15 * intensity band (0.4–0.7 is ideal)
      + 0.20 * pattern score
      + 0.20 * variance band (lower total variance is better)

    divided by the threshold of the candidate's pattern and clamped to
    [0, 1]. The baseline only contributes the audit similarity.
    """

    name = "heuristic"

    def __init__(
        self,
        gait_cfg: Optional[GaitConfig] = None,
        similarity: Optional[SimilarityScorer] = None,
    ) -> None:
        self.similarity = similarity or SimilarityScorer(gait_cfg)

    @staticmethod
    def frequency_score(frequency: float) -> float:
        if 1.8 <= frequency <= 2.2:
            return 1.0
        if 1.5 <= frequency <= 2.5:
            return 0.8
        if 1.0 <= frequency <= 3.0:
            return 0.6
        if 0.5 <= frequency <= 4.0:
            return 0.4
        return 0.2

    @staticmethod
    def intensity_score(intensity: float) -> float:
        if 0.4 <= intensity <= 0.7:
            return 1.0
        if 0.3 <= intensity <= 0.8:
            return 0.8
        if 0.2 <= intensity <= 0.9:
            return 0.6
        return 0.3

    @staticmethod
    def variance_score(accel_variance: float, gyro_variance: float) -> float:
        total = accel_variance + gyro_variance
        if total < 0.5:
            return 1.0
        if total < 1.0:
            return 0.8
        if total < 2.0:
            return 0.6
        if total < 5.0:
            return 0.4
        return 0.2

    def raw_score(self, features: GaitFeatureVector) -> float:
        score = (
            0.25 * self.frequency_score(features.step_frequency)
            + 0.20 * features.step_regularity
            + 0.15 * self.intensity_score(features.step_intensity)
            + 0.20 * _PATTERN_SCORES[features.walking_pattern]
            + 0.20 * self.variance_score(
                features.acceleration_variance, features.gyroscope_variance
            )
        )
        return min(max(score, 0.0), 1.0)

    def score(self, candidate: GaitFeatureVector, baseline: GaitFeatureVector) -> GaitScore:
        raw = self.raw_score(candidate)
        pattern_threshold = _PATTERN_THRESHOLDS[candidate.walking_pattern]
        confidence = min(max(raw / pattern_threshold, 0.0), 1.0)

        return GaitScore(
            confidence=confidence,
            walking_pattern=candidate.walking_pattern,
            similarity=self.similarity.score(candidate, baseline),
            components={
                "match_score": raw,
                "pattern_threshold": pattern_threshold,
            },
        )


def build_scorer(name: str, gait_cfg: Optional[GaitConfig] = None) -> GaitScorer:
    """Resolve the configured scorer name ("similarity" / "heuristic")."""
    key = str(name).lower()
    if key == BaselineSimilarityScorer.name:
        scorer: GaitScorer = BaselineSimilarityScorer(gait_cfg)
    elif key == HeuristicGaitScorer.name:
        scorer = HeuristicGaitScorer(gait_cfg)
    else:
        raise ValueError(f"Unknown gait scorer: {name!r}")
    logger.info("Gait scorer selected: %s", scorer.name)
    return scorer
