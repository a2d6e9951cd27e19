"""
core/interfaces.py

Defines abstract interfaces (contracts) between the authentication core
and the collaborators it does not own.

We don't put any heavy logic here, only method signatures and docstrings.
Real implementations live in gait_auth.gait (gallery, state registry,
scorers) or in the host application (sensor access, databases).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

from schemas import CalibrationBaseline, GaitFeatureVector, MotionSample, WalkingPattern

if TYPE_CHECKING:
    from gait_auth.gait.state import ThresholdState


class StoreError(RuntimeError):
    """I/O failure inside a baseline or threshold store."""


class SampleSource(ABC):
    """
    Sensor / service layer.

    Responsibility:
      - Deliver a window of MotionSamples, accel and gyro synchronized
        to within 50 ms. May block while the window fills up.
    """

    @abstractmethod
    def read_window(self, duration_sec: float) -> List[MotionSample]:
        """
        Return the samples of a window of roughly `duration_sec` seconds,
        oldest first.
        """
        raise NotImplementedError


class BaselineStore(ABC):
    """
    Baseline persistence.

    Responsibility:
      - Return the single active CalibrationBaseline of a user.
      - Store a new baseline (which becomes the active one).
    """

    @abstractmethod
    def get(self, user_id: str) -> Optional[CalibrationBaseline]:
        """
        Active baseline for user_id, or None.

        Raises StoreError on I/O failure and ValueError on a malformed record.
        """
        raise NotImplementedError

    @abstractmethod
    def put(self, user_id: str, baseline: CalibrationBaseline) -> None:
        """
        Store baseline as the active one for user_id.

        Raises StoreError on I/O failure.
        """
        raise NotImplementedError


class ThresholdStore(ABC):
    """
    Per-user threshold state persistence (simple key-value contract).
    """

    @abstractmethod
    def load(self, user_id: str) -> Optional["ThresholdState"]:
        raise NotImplementedError

    @abstractmethod
    def save(self, user_id: str, state: "ThresholdState") -> None:
        raise NotImplementedError


@dataclass
class GaitScore:
    """
    Output of a GaitScorer for one candidate vs one baseline.

      - confidence      : 0–1, compared against the threshold
      - walking_pattern : pattern class the scorer attributes to the candidate
      - similarity      : 0–1 weighted feature similarity
      - components      : named partial scores for audit / logging
    """
    confidence: float
    walking_pattern: WalkingPattern
    similarity: float = 0.0
    components: Dict[str, float] = field(default_factory=dict)


class GaitScorer(ABC):
    """
    Recognizer contract.

    The decision engine only sees this interface, so a heuristic scorer
    and a future trained classifier are interchangeable.
    """

    name: str = "abstract"

    @abstractmethod
    def score(
        self,
        candidate: GaitFeatureVector,
        baseline: GaitFeatureVector,
    ) -> GaitScore:
        raise NotImplementedError
