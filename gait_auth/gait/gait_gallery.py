"""
gait/gait_gallery.py - BASELINE STORE

Keeps every user's calibration baselines. Exactly one baseline per user
is active; superseded ones are kept (inactive) for audit until they are
rotated out by max_history.

Records are held in their persisted dict form and rebuilt on read, so a
corrupted record surfaces as ValueError from get() instead of a wrong
baseline.
"""
from __future__ import annotations

import logging
import pickle
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.interfaces import BaselineStore, StoreError
from gait_auth.gait.config import GaitConfig
from schemas import CalibrationBaseline

logger = logging.getLogger(__name__)


@dataclass
class UserSummary:
    """DTO for listing enrolled users."""
    user_id: str
    active_baseline_id: Optional[str]
    num_baselines: int
    active_quality: float


class BaselineGallery(BaselineStore):
    """
    In-memory baseline store with optional pickle persistence.

    Writes for one user are serialised by a per-user lock; different
    users never wait on each other beyond the short map lookup.
    """

    def __init__(self, config: Optional[GaitConfig] = None, persist: Optional[bool] = None) -> None:
        self.config = config or GaitConfig()
        self.path: Path = Path(self.config.storage.gallery_path)
        self.persist = self.config.storage.persist_state if persist is None else bool(persist)
        self.max_history = max(1, int(self.config.storage.max_history))

        self._records: Dict[str, List[Dict[str, Any]]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._io_lock = threading.Lock()

        if self.persist and self.path.exists():
            self.load_gallery()

    def _user_lock(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[user_id] = lock
            return lock

    # ------------------------------------------------------------------
    # BaselineStore
    # ------------------------------------------------------------------

    def get(self, user_id: str) -> Optional[CalibrationBaseline]:
        with self._user_lock(user_id):
            for rec in reversed(self._records.get(user_id, [])):
                if rec.get("is_active"):
                    return CalibrationBaseline.from_dict(rec)
        return None

    def put(self, user_id: str, baseline: CalibrationBaseline) -> None:
        """
        Store baseline as the user's active one.

        The previous active baseline is deactivated, the oldest records
        beyond max_history are dropped. Nothing changes if persisting the
        new records fails.
        """
        if baseline.user_id != user_id:
            raise ValueError(
                f"Baseline belongs to {baseline.user_id!r}, cannot store it for {user_id!r}"
            )

        with self._user_lock(user_id):
            records = [dict(r, is_active=False) for r in self._records.get(user_id, [])]

            new_rec = baseline.as_dict()
            new_rec["is_active"] = True
            records.append(new_rec)

            dropped = len(records) - self.max_history
            if dropped > 0:
                del records[:dropped]

            self._commit(user_id, records)
            logger.info(
                "Stored baseline %s for %s (quality=%.3f, kept=%d)",
                baseline.id,
                user_id,
                baseline.quality_score,
                len(records),
            )

    # ------------------------------------------------------------------
    # Management
    # ------------------------------------------------------------------

    def history(self, user_id: str) -> List[CalibrationBaseline]:
        """All kept baselines of a user, oldest first."""
        with self._user_lock(user_id):
            return [CalibrationBaseline.from_dict(r) for r in self._records.get(user_id, [])]

    def delete(self, user_id: str, baseline_id: str) -> bool:
        """
        Remove one baseline. Deleting the active one leaves the user
        without an active baseline until the next calibration.
        """
        with self._user_lock(user_id):
            records = self._records.get(user_id, [])
            kept = [r for r in records if r.get("id") != baseline_id]
            if len(kept) == len(records):
                return False
            self._commit(user_id, kept)
            logger.info("Deleted baseline %s of %s", baseline_id, user_id)
        return True

    def delete_user(self, user_id: str) -> bool:
        with self._user_lock(user_id):
            if user_id not in self._records:
                return False
            self._commit(user_id, None)
        logger.info("Deleted all baselines of %s", user_id)
        return True

    def list_users(self) -> List[UserSummary]:
        with self._locks_guard:
            items = list(self._records.items())

        out: List[UserSummary] = []
        for uid, records in items:
            active = next((r for r in reversed(records) if r.get("is_active")), None)
            out.append(
                UserSummary(
                    user_id=uid,
                    active_baseline_id=active.get("id") if active else None,
                    num_baselines=len(records),
                    active_quality=float(active.get("quality_score", 0.0)) if active else 0.0,
                )
            )
        return out

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _commit(self, user_id: str, records: Optional[List[Dict[str, Any]]]) -> None:
        """
        Replace one user's records (None removes the user).

        With persistence on, the file is written first and the in-memory
        map is only swapped once the write succeeded.
        """
        with self._io_lock:
            if self.persist:
                with self._locks_guard:
                    snapshot = {uid: [dict(r) for r in recs] for uid, recs in self._records.items()}
                if records is None:
                    snapshot.pop(user_id, None)
                else:
                    snapshot[user_id] = [dict(r) for r in records]
                self._write(snapshot)

            with self._locks_guard:
                if records is None:
                    self._records.pop(user_id, None)
                else:
                    self._records[user_id] = records

    def _write(self, snapshot: Dict[str, List[Dict[str, Any]]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "wb") as f:
                pickle.dump({"records": snapshot}, f)
            logger.debug("Gallery saved successfully.")
        except OSError as e:
            raise StoreError(f"Error saving gallery to {self.path}: {e}") from e

    def save_gallery(self) -> None:
        """Persists the gallery state to disk using Pickle."""
        with self._io_lock:
            with self._locks_guard:
                snapshot = {uid: [dict(r) for r in recs] for uid, recs in self._records.items()}
            self._write(snapshot)

    def load_gallery(self) -> None:
        """Loads the gallery state. A missing or corrupted file starts fresh."""
        try:
            with open(self.path, "rb") as f:
                state = pickle.load(f)
            records = state["records"]
            with self._locks_guard:
                self._records = {uid: list(recs) for uid, recs in records.items()}
            logger.info("Gallery loaded: %d users.", len(self._records))
        except (OSError, pickle.UnpicklingError, EOFError, KeyError, TypeError, AttributeError) as e:
            logger.warning("No existing gallery found or file corrupted (%s). Starting fresh.", e)
