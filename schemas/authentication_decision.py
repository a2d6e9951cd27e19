from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class DecisionKind(str, Enum):
    SUCCESS = "success"
    CONFIDENCE_TOO_LOW = "confidence_too_low"
    PATTERN_NOT_MATCHED = "pattern_not_matched"
    INSUFFICIENT_DATA = "insufficient_data"
    BASELINE_NOT_FOUND = "baseline_not_found"
    CALIBRATION_TOO_OLD = "calibration_too_old"
    SYSTEM_ERROR = "system_error"


# Outcomes where a candidate was actually scored against a baseline.
SCORED_KINDS = frozenset(
    {
        DecisionKind.SUCCESS,
        DecisionKind.CONFIDENCE_TOO_LOW,
        DecisionKind.PATTERN_NOT_MATCHED,
    }
)


_CATEGORY_LABELS = {
    DecisionKind.CONFIDENCE_TOO_LOW: "Confidence Too Low",
    DecisionKind.PATTERN_NOT_MATCHED: "Pattern Not Matched",
    DecisionKind.INSUFFICIENT_DATA: "Insufficient Data",
    DecisionKind.BASELINE_NOT_FOUND: "Baseline Not Found",
    DecisionKind.CALIBRATION_TOO_OLD: "Calibration Too Old",
    DecisionKind.SYSTEM_ERROR: "System Error",
}


@dataclass(frozen=True)
class AuthenticationDecision:
    """
    Outcome of one gait authentication attempt.

    Mandatory:
      - user_id          : who tried to authenticate
      - is_authenticated : True only for kind == SUCCESS
      - confidence       : 0–1 decision score compared against `threshold`
      - kind             : DecisionKind explaining the outcome

    Audit:
      - baseline_used : id of the baseline compared against (None if none)
      - timestamp     : epoch seconds of the decision
      - threshold     : effective threshold at decision time
      - similarity    : weighted baseline similarity (0 when not computed)
      - comparison    : per-feature {baseline, current, difference, similarity}
      - reason        : short explanation for logs
      - cause         : underlying collaborator exception for SYSTEM_ERROR
    """

    user_id: str
    is_authenticated: bool
    confidence: float
    kind: DecisionKind
    baseline_used: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    threshold: float = 0.0
    similarity: float = 0.0
    comparison: Dict[str, Any] = field(default_factory=dict)
    reason: str = ""
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    @classmethod
    def success(
        cls,
        user_id: str,
        confidence: float,
        threshold: float,
        baseline_used: Optional[str],
        similarity: float = 0.0,
        comparison: Optional[Dict[str, Any]] = None,
        timestamp: Optional[float] = None,
    ) -> "AuthenticationDecision":
        if confidence < threshold:
            raise ValueError(
                f"success requires confidence >= threshold ({confidence:.3f} < {threshold:.3f})"
            )
        return cls(
            user_id=user_id,
            is_authenticated=True,
            confidence=float(confidence),
            kind=DecisionKind.SUCCESS,
            baseline_used=baseline_used,
            timestamp=time.time() if timestamp is None else float(timestamp),
            threshold=float(threshold),
            similarity=float(similarity),
            comparison=dict(comparison or {}),
            reason=f"gait_match:{confidence:.2f}>={threshold:.2f}",
        )

    @classmethod
    def failure(
        cls,
        user_id: str,
        kind: DecisionKind,
        reason: str,
        confidence: float = 0.0,
        threshold: float = 0.0,
        baseline_used: Optional[str] = None,
        similarity: float = 0.0,
        comparison: Optional[Dict[str, Any]] = None,
        timestamp: Optional[float] = None,
        cause: Optional[BaseException] = None,
    ) -> "AuthenticationDecision":
        if kind == DecisionKind.SUCCESS:
            raise ValueError("failure() cannot build a SUCCESS decision")
        return cls(
            user_id=user_id,
            is_authenticated=False,
            confidence=float(confidence),
            kind=kind,
            baseline_used=baseline_used,
            timestamp=time.time() if timestamp is None else float(timestamp),
            threshold=float(threshold),
            similarity=float(similarity),
            comparison=dict(comparison or {}),
            reason=reason,
            cause=cause,
        )

    @property
    def is_scored(self) -> bool:
        return self.kind in SCORED_KINDS

    @property
    def category(self) -> str:
        if self.is_authenticated:
            if self.confidence >= 0.8:
                return "High Confidence"
            if self.confidence >= 0.6:
                return "Medium Confidence"
            return "Low Confidence"
        return _CATEGORY_LABELS.get(self.kind, "Unknown Error")

    def as_dict(self) -> Dict[str, Any]:
        """
        Serialisable view for the host's decision history.

        The exception object itself is not included; its repr is.
        """
        return {
            "user_id": self.user_id,
            "is_authenticated": bool(self.is_authenticated),
            "confidence": float(self.confidence),
            "kind": self.kind.value,
            "category": self.category,
            "baseline_used": self.baseline_used,
            "timestamp": float(self.timestamp),
            "threshold": float(self.threshold),
            "similarity": float(self.similarity),
            "comparison": self.comparison,
            "reason": self.reason,
            "cause": repr(self.cause) if self.cause is not None else None,
        }
