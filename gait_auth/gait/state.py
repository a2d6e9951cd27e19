from __future__ import annotations

import logging
import pickle
import threading
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Deque, Dict, Optional

from core.interfaces import StoreError, ThresholdStore

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0


class SecurityLevel(str, Enum):
    LOW = "low"        # 0.50, recalibrate after 30 days
    MEDIUM = "medium"  # 0.70, 180 days
    HIGH = "high"      # 0.85, 7 days
    MAX = "max"        # 0.90, 1 day

    @property
    def base_threshold(self) -> float:
        return _LEVEL_POLICY[self][0]

    @property
    def max_age_sec(self) -> float:
        return _LEVEL_POLICY[self][1] * SECONDS_PER_DAY

    @classmethod
    def parse(cls, value: "SecurityLevel | str") -> "SecurityLevel":
        if isinstance(value, cls):
            return value
        return cls(str(value).lower())


_LEVEL_POLICY = {
    SecurityLevel.LOW: (0.50, 30.0),
    SecurityLevel.MEDIUM: (0.70, 180.0),
    SecurityLevel.HIGH: (0.85, 7.0),
    SecurityLevel.MAX: (0.90, 1.0),
}


@dataclass
class ThresholdState:
    """
    Per-user adaptive threshold memory.

    recent_decisions keeps the last N scored outcomes (True = success).
    version is bumped on every change so a store can detect stale writes.
    """
    user_id: str
    security_level: SecurityLevel = SecurityLevel.MEDIUM
    base_threshold: float = 0.70
    current_threshold: float = 0.70
    recent_decisions: Deque[bool] = field(default_factory=lambda: deque(maxlen=20))
    version: int = 0

    def success_rate(self) -> float:
        if not self.recent_decisions:
            return 0.0
        return sum(1 for ok in self.recent_decisions if ok) / len(self.recent_decisions)

    def record_outcome(self, success: bool) -> None:
        self.recent_decisions.append(bool(success))
        self.version += 1

    def set_threshold(self, value: float) -> None:
        if value != self.current_threshold:
            self.current_threshold = float(value)
            self.version += 1


class ThresholdStateRegistry(ThresholdStore):
    """
    In-memory ThresholdStore with optional pickle persistence.

    load() returns a copy so callers can mutate it freely and hand it back
    through save().
    """

    def __init__(self, path: Optional[Path] = None, persist: bool = False) -> None:
        self._states: Dict[str, ThresholdState] = {}
        self._lock = threading.Lock()
        self.path = Path(path) if path is not None else None
        self.persist = bool(persist) and self.path is not None

        if self.persist and self.path.exists():
            self.load_states()

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)

    def load(self, user_id: str) -> Optional[ThresholdState]:
        with self._lock:
            st = self._states.get(user_id)
            return _copy_state(st) if st is not None else None

    def save(self, user_id: str, state: ThresholdState) -> None:
        """Store a copy of state. Nothing changes if persisting fails."""
        with self._lock:
            states = dict(self._states)
            states[user_id] = _copy_state(state)
            if self.persist:
                self._write(states)
            self._states = states

    def delete(self, user_id: str) -> bool:
        with self._lock:
            if user_id not in self._states:
                return False
            states = dict(self._states)
            del states[user_id]
            if self.persist:
                self._write(states)
            self._states = states
            return True

    def save_states(self) -> None:
        """Persist all states to disk using Pickle."""
        with self._lock:
            self._write(self._states)

    def _write(self, states: Dict[str, ThresholdState]) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "wb") as f:
                pickle.dump({"states": states}, f)
            logger.debug("Threshold states saved (%d users).", len(states))
        except OSError as e:
            raise StoreError(f"Error saving threshold states to {self.path}: {e}") from e

    def load_states(self) -> None:
        """Load persisted states. A missing or corrupted file starts fresh."""
        if self.path is None:
            return
        try:
            with open(self.path, "rb") as f:
                state = pickle.load(f)
            with self._lock:
                self._states = dict(state["states"])
            logger.info("Threshold states loaded: %d users.", len(self._states))
        except (OSError, pickle.UnpicklingError, EOFError, KeyError, TypeError) as e:
            logger.warning(
                "No existing threshold states found or file corrupted (%s). Starting fresh.", e
            )


def _copy_state(st: ThresholdState) -> ThresholdState:
    return ThresholdState(
        user_id=st.user_id,
        security_level=st.security_level,
        base_threshold=st.base_threshold,
        current_threshold=st.current_threshold,
        recent_decisions=deque(st.recent_decisions, maxlen=st.recent_decisions.maxlen),
        version=st.version,
    )
