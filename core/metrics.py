from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from schemas import AuthenticationDecision, DecisionKind

logger = logging.getLogger(__name__)


class AuthMetrics:
    """
    Rolling metrics for the gait authentication pipeline.

    Sliding window = last N seconds (default 300s).
    Window size and log period come from config.runtime
    (metrics_window_sec / metrics_log_every_sec).

    Per decision we keep (ts, kind, confidence, threshold). From the window
    we derive:
      - counts per DecisionKind
      - success rate over all attempts
      - mean confidence and mean threshold over scored attempts only
        (insufficient data / missing baseline / system errors carry a
        confidence of 0 that would drag the average down)
    """

    __slots__ = (
        "_window_sec",
        "_last_log_ts",
        "_log_every_sec",
        "_records",  # list of (ts, kind, confidence, threshold)
    )

    def __init__(
        self,
        window_sec: float = 300.0,
        log_every_sec: float = 60.0,
    ) -> None:
        self._window_sec = float(window_sec)
        self._log_every_sec = float(log_every_sec)

        self._records: List[Tuple[float, DecisionKind, float, float]] = []

        self._last_log_ts: Optional[float] = None

        logger.info(
            "AuthMetrics initialised | window=%.1fs log_every=%.1fs",
            self._window_sec,
            self._log_every_sec,
        )

    def __len__(self) -> int:
        return len(self._records)

    def update(self, decision: AuthenticationDecision, ts_now: Optional[float] = None) -> None:
        """
        Collect one decision.

        ts_now defaults to the decision's own timestamp, so replaying
        historic decisions keeps the window consistent.
        """
        ts = float(decision.timestamp) if ts_now is None else float(ts_now)
        self._records.append(
            (ts, decision.kind, float(decision.confidence), float(decision.threshold))
        )
        self._prune(ts)

    record = update

    def maybe_log(self, ts_now: Optional[float] = None) -> bool:
        """
        Emit a rolling summary every log_every_sec seconds.

        Returns True if a line was emitted.
        """
        ts_now = time.time() if ts_now is None else float(ts_now)

        if self._last_log_ts is None:
            self._last_log_ts = ts_now
            return False
        if (ts_now - self._last_log_ts) < self._log_every_sec:
            return False

        self._last_log_ts = ts_now
        self._prune(ts_now)

        if not self._records:
            logger.info("AuthMetrics: no data yet")
            return True

        s = self.summary()
        logger.info(
            "AuthMetrics | attempts=%d success_rate=%.3f | conf=%.3f thr=%.3f "
            "| too_low=%d pattern=%d insufficient=%d no_baseline=%d too_old=%d errors=%d",
            s["attempts"],
            s["success_rate"],
            s["mean_confidence"],
            s["mean_threshold"],
            s["counts"][DecisionKind.CONFIDENCE_TOO_LOW.value],
            s["counts"][DecisionKind.PATTERN_NOT_MATCHED.value],
            s["counts"][DecisionKind.INSUFFICIENT_DATA.value],
            s["counts"][DecisionKind.BASELINE_NOT_FOUND.value],
            s["counts"][DecisionKind.CALIBRATION_TOO_OLD.value],
            s["counts"][DecisionKind.SYSTEM_ERROR.value],
        )
        return True

    def summary(self) -> Dict[str, Any]:
        """
        Current sliding-window aggregates.

        Keys:
          - attempts
          - counts          : {kind value -> count}, every kind present
          - success_rate
          - mean_confidence : over scored attempts
          - mean_threshold  : over scored attempts
        """
        counts = {k.value: 0 for k in DecisionKind}
        scored_conf: List[float] = []
        scored_thr: List[float] = []

        for (_, kind, conf, thr) in self._records:
            counts[kind.value] += 1
            if kind in (
                DecisionKind.SUCCESS,
                DecisionKind.CONFIDENCE_TOO_LOW,
                DecisionKind.PATTERN_NOT_MATCHED,
            ):
                scored_conf.append(conf)
                scored_thr.append(thr)

        total = len(self._records)
        return {
            "attempts": total,
            "counts": counts,
            "success_rate": counts[DecisionKind.SUCCESS.value] / total if total else 0.0,
            "mean_confidence": sum(scored_conf) / len(scored_conf) if scored_conf else 0.0,
            "mean_threshold": sum(scored_thr) / len(scored_thr) if scored_thr else 0.0,
        }

    def _prune(self, ts_now: float) -> None:
        """
        Remove records older than _window_sec.
        """
        cutoff = ts_now - self._window_sec

        while self._records and self._records[0][0] < cutoff:
            self._records.pop(0)
