# tests/test_auth_service.py
"""Authentication service: full pipeline, collaborator faults, concurrency."""

import threading

import pytest

from conftest import T0, make_baseline
from core.dummies import FailingBaselineStore, FailingSampleSource, SyntheticWalkSource
from core.interfaces import BaselineStore, StoreError, ThresholdStore
from gait_auth.gait.auth_service import GaitAuthService
from gait_auth.gait.calibration import CalibrationService
from gait_auth.gait.calibration_quality import CalibrationType
from gait_auth.gait.state import ThresholdStateRegistry
from schemas import DecisionKind


class BrokenThresholdStore(ThresholdStore):
    def __init__(self, fail_on="save"):
        self.fail_on = fail_on
        self.inner = ThresholdStateRegistry()

    def load(self, user_id):
        if self.fail_on == "load":
            raise StoreError("threshold db locked")
        return self.inner.load(user_id)

    def save(self, user_id, state):
        if self.fail_on == "save":
            raise StoreError("threshold db locked")
        self.inner.save(user_id, state)


class CorruptBaselineStore(BaselineStore):
    def get(self, user_id):
        raise ValueError("Malformed calibration baseline record: 'features'")

    def put(self, user_id, baseline):
        pass


def enroll(gallery, gait_config, walker, user_id="alice", now=T0):
    service = CalibrationService(gallery, gait_config)
    session = service.start(user_id, CalibrationType.FAST, now=now)
    service.add_samples(session, walker.generate(1500))
    return service.complete(session, now=now)


class TestAuthenticationFlow:
    """Calibrate with one walk, authenticate with another window"""

    def test_genuine_user_succeeds(self, gait_config, gallery, walker, metrics_collector, logger):
        enroll(gallery, gait_config, walker)
        service = GaitAuthService(gallery, config=gait_config, metrics=metrics_collector)

        decision = service.authenticate("alice", walker.generate(250, start_index=1500), now=T0 + 60)
        assert decision.kind == DecisionKind.SUCCESS
        assert decision.confidence > 0.9
        assert len(metrics_collector) == 1
        logger.info("✅ genuine user: %s", decision.reason)

    def test_different_walker_rejected_under_high_security(
        self, gait_config, gallery, walker, other_walker
    ):
        gait_config.thresholds.security_level = "high"
        enroll(gallery, gait_config, walker)
        service = GaitAuthService(gallery, config=gait_config)

        decision = service.authenticate("alice", other_walker.generate(250), now=T0 + 60)
        assert decision.kind == DecisionKind.CONFIDENCE_TOO_LOW
        assert decision.confidence < decision.threshold

    def test_authenticate_from_source(self, gait_config, gallery, walker):
        enroll(gallery, gait_config, walker)
        service = GaitAuthService(gallery, config=gait_config)
        source = SyntheticWalkSource(start_ts=T0 + 100)
        decision = service.authenticate_from_source("alice", source, now=T0 + 120)
        assert decision.kind == DecisionKind.SUCCESS

    def test_unknown_user(self, gait_config, gallery, walking_samples):
        service = GaitAuthService(gallery, config=gait_config)
        decision = service.authenticate("nobody", walking_samples, now=T0)
        assert decision.kind == DecisionKind.BASELINE_NOT_FOUND

    def test_standing_still_is_insufficient(self, gait_config, gallery):
        gallery.put("alice", make_baseline())
        still = SyntheticWalkSource(amplitude=0.0, sway=0.0, start_ts=T0)
        service = GaitAuthService(gallery, config=gait_config)
        decision = service.authenticate("alice", still.generate(250), now=T0)
        assert decision.kind == DecisionKind.INSUFFICIENT_DATA

    def test_heuristic_scorer_from_config(self, gait_config, gallery, walker):
        gait_config.scorer.name = "heuristic"
        enroll(gallery, gait_config, walker)
        service = GaitAuthService(gallery, config=gait_config)
        assert service.engine.scorer.name == "heuristic"
        decision = service.authenticate("alice", walker.generate(250), now=T0 + 60)
        assert decision.kind == DecisionKind.SUCCESS


class TestThresholdMemory:
    """Scored outcomes feed the per-user adaptive threshold"""

    def test_repeated_success_raises_threshold(self, gait_config, gallery, walker):
        enroll(gallery, gait_config, walker)
        registry = ThresholdStateRegistry()
        service = GaitAuthService(gallery, threshold_store=registry, config=gait_config)

        for i in range(5):
            service.authenticate("alice", walker.generate(250), now=T0 + 60 + i)

        state = registry.load("alice")
        assert list(state.recent_decisions) == [True] * 5
        assert state.current_threshold == pytest.approx(0.75)

    def test_unscored_outcomes_not_saved(self, gait_config, gallery, walking_samples):
        registry = ThresholdStateRegistry()
        service = GaitAuthService(gallery, threshold_store=registry, config=gait_config)
        service.authenticate("alice", walking_samples, now=T0)
        assert registry.load("alice") is None

    def test_statistics(self, gait_config, gallery, walker):
        enroll(gallery, gait_config, walker)
        service = GaitAuthService(gallery, config=gait_config)
        service.authenticate("alice", walker.generate(250), now=T0 + 60)
        service.authenticate("alice", [], now=T0 + 61)

        stats = service.statistics("alice")
        assert stats["total_decisions"] == 2
        assert stats["successful_decisions"] == 1
        assert stats["success_rate"] == 0.5
        assert stats["baseline_available"]
        assert stats["last_decision"]["kind"] == "insufficient_data"
        assert stats["current_threshold"] == 0.70


class TestCollaboratorFaults:
    """Every collaborator failure is a system_error decision"""

    def test_baseline_store_down(self, gait_config, walking_samples):
        service = GaitAuthService(FailingBaselineStore(), config=gait_config)
        decision = service.authenticate("alice", walking_samples, now=T0)
        assert decision.kind == DecisionKind.SYSTEM_ERROR
        assert isinstance(decision.cause, StoreError)
        assert not decision.is_authenticated

    def test_malformed_baseline(self, gait_config, walking_samples):
        service = GaitAuthService(CorruptBaselineStore(), config=gait_config)
        decision = service.authenticate("alice", walking_samples, now=T0)
        assert decision.kind == DecisionKind.SYSTEM_ERROR
        assert isinstance(decision.cause, ValueError)

    @pytest.mark.parametrize("fail_on", ["load", "save"])
    def test_threshold_store_failure(self, gait_config, gallery, walker, fail_on):
        enroll(gallery, gait_config, walker)
        service = GaitAuthService(
            gallery, threshold_store=BrokenThresholdStore(fail_on), config=gait_config
        )
        decision = service.authenticate("alice", walker.generate(250), now=T0 + 60)
        assert decision.kind == DecisionKind.SYSTEM_ERROR
        assert isinstance(decision.cause, StoreError)

    def test_sensor_failure(self, gait_config, gallery):
        service = GaitAuthService(gallery, config=gait_config)
        decision = service.authenticate_from_source("alice", FailingSampleSource(), now=T0)
        assert decision.kind == DecisionKind.SYSTEM_ERROR
        assert isinstance(decision.cause, RuntimeError)

    def test_failed_threshold_write_keeps_stored_state(self, gait_config, gallery, walker, tmp_path):
        enroll(gallery, gait_config, walker)
        blocker = tmp_path / "file"
        blocker.write_text("x")
        registry = ThresholdStateRegistry(path=blocker / "thr.pkl", persist=True)
        service = GaitAuthService(gallery, threshold_store=registry, config=gait_config)

        decision = service.authenticate("alice", walker.generate(250), now=T0 + 60)
        assert decision.kind == DecisionKind.SYSTEM_ERROR
        assert registry.load("alice") is None


class TestConcurrency:
    def test_parallel_attempts_keep_every_outcome(self, gait_config, gallery, walker):
        enroll(gallery, gait_config, walker)
        registry = ThresholdStateRegistry()
        service = GaitAuthService(gallery, threshold_store=registry, config=gait_config)
        window = walker.generate(250)

        def attempt():
            for _ in range(3):
                service.authenticate("alice", window, now=T0 + 60)

        threads = [threading.Thread(target=attempt) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        state = registry.load("alice")
        assert len(state.recent_decisions) == 12
        assert state.version >= 12
