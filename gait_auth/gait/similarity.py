"""
gait/similarity.py

Feature-by-feature similarity between a candidate GaitFeatureVector and
an enrolled baseline.

Per numeric feature, a difference up to the feature's tolerance is free;
beyond it, the excess is taken relative to the larger magnitude:

    sim(a, b) = clip(1 - max(0, |a - b| - tol) / max(|a|, |b|, eps), 0, 1)

Two zeros are identical (1.0). Non-finite values score 0. The walking
pattern scores 1 on an exact match and 0 otherwise.

The weighted total is normalised by the weight sum, so sim(v, v) == 1.0
and sim(a, b) == sim(b, a).
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional

from gait_auth.gait.config import GaitConfig, SimilarityConfig
from schemas import FEATURE_NAMES, GaitFeatureVector

logger = logging.getLogger(__name__)

NUMERIC_FEATURES = FEATURE_NAMES[:-1]


class SimilarityScorer:
    def __init__(self, gait_cfg: Optional[GaitConfig] = None) -> None:
        self.config: SimilarityConfig = (gait_cfg or GaitConfig()).similarity

    def feature_similarity(self, a: float, b: float, tolerance: float) -> float:
        try:
            a = float(a)
            b = float(b)
        except (TypeError, ValueError):
            return 0.0
        if not (math.isfinite(a) and math.isfinite(b)):
            return 0.0
        if a == 0.0 and b == 0.0:
            return 1.0

        excess = max(0.0, abs(a - b) - tolerance)
        scale = max(abs(a), abs(b), self.config.epsilon)
        return min(max(1.0 - excess / scale, 0.0), 1.0)

    def per_feature(self, candidate: GaitFeatureVector, baseline: GaitFeatureVector) -> Dict[str, float]:
        tol = self.config.tolerances
        sims = {
            name: self.feature_similarity(
                getattr(candidate, name), getattr(baseline, name), tol.get(name, 0.0)
            )
            for name in NUMERIC_FEATURES
        }
        sims["walking_pattern"] = (
            1.0 if candidate.walking_pattern == baseline.walking_pattern else 0.0
        )
        return sims

    def score(self, candidate: GaitFeatureVector, baseline: GaitFeatureVector) -> float:
        """Weighted similarity in [0, 1]."""
        sims = self.per_feature(candidate, baseline)
        weights = self.config.weights

        total = 0.0
        wsum = 0.0
        for name in FEATURE_NAMES:
            w = float(weights.get(name, 0.0))
            total += w * sims[name]
            wsum += w
        if wsum <= 0.0:
            return 0.0
        return min(max(total / wsum, 0.0), 1.0)

    def compare(self, candidate: GaitFeatureVector, baseline: GaitFeatureVector) -> Dict[str, Dict[str, Any]]:
        """
        Audit detail per feature:
            {name: {baseline, current, difference, similarity}}
        """
        sims = self.per_feature(candidate, baseline)
        detail: Dict[str, Dict[str, Any]] = {}
        for name in NUMERIC_FEATURES:
            b = float(getattr(baseline, name))
            c = float(getattr(candidate, name))
            detail[name] = {
                "baseline": b,
                "current": c,
                "difference": abs(c - b) if math.isfinite(c) and math.isfinite(b) else math.inf,
                "similarity": sims[name],
            }
        detail["walking_pattern"] = {
            "baseline": baseline.walking_pattern.value,
            "current": candidate.walking_pattern.value,
            "difference": 0.0 if sims["walking_pattern"] == 1.0 else 1.0,
            "similarity": sims["walking_pattern"],
        }
        return detail
