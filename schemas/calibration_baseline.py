from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from .gait_features import GaitFeatureVector


@dataclass(frozen=True)
class CalibrationBaseline:
    """
    Enrolled reference gait for one user.

    Mandatory:
      - user_id       : owner of the baseline
      - features      : reference GaitFeatureVector
      - quality_score : 0–1 calibration quality at enrollment time

    Bookkeeping:
      - id            : stable baseline id (uuid hex)
      - created_at    : epoch seconds of calibration completion
      - is_active     : only one active baseline per user is used for matching;
                        superseded ones stay in the store for audit

    Baselines are never edited after creation. The only allowed change is
    the is_active flag, which goes through deactivated().
    """

    user_id: str
    features: GaitFeatureVector
    quality_score: float = 0.0
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: float = field(default_factory=time.time)
    is_active: bool = True

    def age(self, now: Optional[float] = None) -> float:
        now = time.time() if now is None else float(now)
        return now - float(self.created_at)

    def is_too_old(self, max_age_sec: float, now: Optional[float] = None) -> bool:
        return self.age(now) > float(max_age_sec)

    def has_sufficient_quality(self, min_score: float) -> bool:
        return self.quality_score >= min_score

    def deactivated(self) -> "CalibrationBaseline":
        return replace(self, is_active=False)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "features": self.features.as_dict(),
            "quality_score": float(self.quality_score),
            "created_at": float(self.created_at),
            "is_active": bool(self.is_active),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalibrationBaseline":
        """
        Rebuild a baseline from a persisted record.

        Raises ValueError if the record is malformed (missing keys, bad
        types, quality outside [0, 1]).
        """
        try:
            features = GaitFeatureVector.from_dict(data["features"])
            quality = float(data.get("quality_score", 0.0))
            baseline = cls(
                user_id=str(data["user_id"]),
                features=features,
                quality_score=quality,
                id=str(data["id"]),
                created_at=float(data["created_at"]),
                is_active=bool(data.get("is_active", True)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed calibration baseline record: {e}") from e

        if not 0.0 <= baseline.quality_score <= 1.0:
            raise ValueError(
                f"Malformed calibration baseline record: quality_score={quality}"
            )
        return baseline
