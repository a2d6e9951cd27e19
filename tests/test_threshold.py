# tests/test_threshold.py
"""Security levels, performance and quality adjustment, state registry."""

import itertools

import pytest

from conftest import T0, make_baseline, make_features, make_state
from core.interfaces import StoreError
from gait_auth.gait.gait_engine import GaitAuthEngine
from gait_auth.gait.state import SecurityLevel, ThresholdStateRegistry
from gait_auth.gait.threshold import ConfidenceThresholdManager
from schemas import AuthenticationDecision, DecisionKind, WalkingPattern


@pytest.fixture
def manager(gait_config):
    return ConfidenceThresholdManager(gait_config)


class TestSecurityLevels:
    @pytest.mark.parametrize(
        "level, thr, days",
        [
            (SecurityLevel.LOW, 0.50, 30),
            (SecurityLevel.MEDIUM, 0.70, 180),
            (SecurityLevel.HIGH, 0.85, 7),
            (SecurityLevel.MAX, 0.90, 1),
        ],
    )
    def test_policy(self, level, thr, days):
        assert level.base_threshold == thr
        assert level.max_age_sec == days * 86400.0

    def test_new_state_uses_configured_level(self, manager):
        st = manager.new_state("alice")
        assert st.security_level == SecurityLevel.MEDIUM
        assert manager.current_threshold(st) == 0.70
        assert st.recent_decisions.maxlen == 20

    def test_new_state_level_override(self, manager):
        st = manager.new_state("alice", "high")
        assert st.current_threshold == 0.85


class TestPerformanceAdjustment:
    """One monotone step based on recent success rate"""

    def test_needs_five_outcomes(self, manager):
        st = make_state(outcomes=[True] * 4)
        assert manager.adjust_for_performance(st) == 0.70

    def test_raise_on_high_success(self, manager):
        st = make_state(outcomes=[True] * 10)
        assert manager.adjust_for_performance(st) == pytest.approx(0.75)

    def test_lower_on_low_success(self, manager):
        st = make_state(outcomes=[False] * 8 + [True] * 2)
        assert manager.adjust_for_performance(st) == pytest.approx(0.65)

    def test_unchanged_in_between(self, manager):
        st = make_state(outcomes=[True, False] * 5)
        assert manager.adjust_for_performance(st) == 0.70

    def test_raise_is_capped(self, manager):
        st = make_state(level=SecurityLevel.MAX, threshold=0.93, outcomes=[True] * 10)
        assert manager.adjust_for_performance(st) == pytest.approx(0.95)

    def test_version_bumps_on_change(self, manager):
        st = make_state(outcomes=[True] * 10)
        v0 = st.version
        manager.adjust_for_performance(st)
        assert st.version == v0 + 1

    @pytest.mark.parametrize(
        "threshold, successes",
        list(itertools.product([0.1, 0.3, 0.45, 0.5, 0.7, 0.8, 0.9, 0.95, 0.99], range(0, 11))),
    )
    def test_monotone(self, manager, threshold, successes):
        outcomes = [True] * successes + [False] * (10 - successes)
        st = make_state(threshold=threshold, outcomes=outcomes)
        rate = successes / 10
        new = manager.adjust_for_performance(st)
        if rate > 0.9:
            assert new >= threshold
        elif rate < 0.5:
            assert new <= threshold
        else:
            assert new == threshold


class TestQualityAdjustment:
    def test_better_current_quality_raises(self, manager):
        assert manager.adjust_for_quality(0.7, 0.4, 0.8) == pytest.approx(0.85)

    def test_worse_current_quality_lowers(self, manager):
        assert manager.adjust_for_quality(0.7, 0.9, 0.5) == pytest.approx(0.6)

    def test_small_gap_keeps_threshold(self, manager):
        assert manager.adjust_for_quality(0.7, 0.8, 0.6) == 0.7

    def test_estimate_quality(self, manager):
        v = make_features()
        # 0.4·0.8 + 0.3·(1 - 2.0/5) + 0.3·1
        assert manager.estimate_quality(v) == pytest.approx(0.8)
        irregular = make_features(walking_pattern=WalkingPattern.IRREGULAR)
        assert manager.estimate_quality(irregular) == pytest.approx(0.65)

    def test_effective_threshold_does_not_touch_state(self, manager):
        st = make_state()
        poor = make_features(step_regularity=0.1, acceleration_variance=6.0)
        thr = manager.effective_threshold(st, baseline_quality=0.9, features=poor)
        assert thr == pytest.approx(0.6)
        assert st.current_threshold == 0.70


class TestRecording:
    """Only scored outcomes enter the history"""

    def test_scored_outcomes_recorded(self, manager):
        st = make_state()
        ok = AuthenticationDecision.success("alice", 0.9, 0.7, "b")
        low = AuthenticationDecision.failure("alice", DecisionKind.CONFIDENCE_TOO_LOW, "low", 0.5, 0.7)
        assert manager.record(st, ok)
        assert manager.record(st, low)
        assert list(st.recent_decisions) == [True, False]

    @pytest.mark.parametrize(
        "kind",
        [
            DecisionKind.INSUFFICIENT_DATA,
            DecisionKind.BASELINE_NOT_FOUND,
            DecisionKind.CALIBRATION_TOO_OLD,
            DecisionKind.SYSTEM_ERROR,
        ],
    )
    def test_unscored_outcomes_skipped(self, manager, kind):
        st = make_state()
        d = AuthenticationDecision.failure("alice", kind, "x")
        assert not manager.record(st, d)
        assert len(st.recent_decisions) == 0

    def test_history_bounded(self, manager):
        st = manager.new_state("alice")
        ok = AuthenticationDecision.success("alice", 0.9, 0.7, "b")
        for _ in range(30):
            manager.record(st, ok)
        assert len(st.recent_decisions) == 20

    def test_recommendations(self, manager):
        assert "message" in manager.recommendations(make_state(outcomes=[True]))
        rec = manager.recommendations(make_state(outcomes=[True] * 10))
        assert rec["threshold_adjustment"]["action"] == "consider_decreasing"
        rec = manager.recommendations(make_state(outcomes=[False] * 10))
        assert rec["threshold_adjustment"]["action"] == "consider_increasing"
        assert rec["success_rate"]["status"] == "Needs Improvement"


class TestThresholdStateRegistry:
    def test_load_returns_copy(self):
        reg = ThresholdStateRegistry()
        st = make_state()
        reg.save("alice", st)
        loaded = reg.load("alice")
        loaded.record_outcome(True)
        assert len(reg.load("alice").recent_decisions) == 0

    def test_unknown_user(self):
        assert ThresholdStateRegistry().load("nobody") is None

    def test_pickle_persistence(self, tmp_path):
        path = tmp_path / "thr.pkl"
        reg = ThresholdStateRegistry(path=path, persist=True)
        reg.save("alice", make_state(threshold=0.75, outcomes=[True, False]))

        again = ThresholdStateRegistry(path=path, persist=True)
        st = again.load("alice")
        assert st.current_threshold == 0.75
        assert list(st.recent_decisions) == [True, False]

    def test_corrupted_file_starts_fresh(self, tmp_path):
        path = tmp_path / "thr.pkl"
        path.write_bytes(b"not a pickle")
        reg = ThresholdStateRegistry(path=path, persist=True)
        assert len(reg) == 0

    def test_unwritable_path_raises_store_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        reg = ThresholdStateRegistry(path=blocker / "thr.pkl", persist=True)
        with pytest.raises(StoreError):
            reg.save("alice", make_state())

    def test_failed_save_keeps_previous_state(self, tmp_path):
        path = tmp_path / "thr.pkl"
        reg = ThresholdStateRegistry(path=path, persist=True)
        reg.save("alice", make_state())

        blocker = tmp_path / "file"
        blocker.write_text("x")
        reg.path = blocker / "thr.pkl"
        with pytest.raises(StoreError):
            reg.save("alice", make_state(threshold=0.75, outcomes=[True]))
        with pytest.raises(StoreError):
            reg.delete("alice")

        st = reg.load("alice")
        assert st.current_threshold == 0.70
        assert len(st.recent_decisions) == 0

    def test_failed_first_save_stores_nothing(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        reg = ThresholdStateRegistry(path=blocker / "thr.pkl", persist=True)
        with pytest.raises(StoreError):
            reg.save("alice", make_state(outcomes=[True]))
        assert reg.load("alice") is None
        assert len(reg) == 0


class TestConfiguredLevelPolicy:
    """Per-level thresholds and max ages come from the config"""

    def test_defaults_match_levels(self, manager):
        for level in SecurityLevel:
            assert manager.base_threshold(level) == level.base_threshold
            assert manager.max_age_sec(level) == level.max_age_sec

    def test_overridden_level(self, gait_config):
        gait_config.thresholds.levels["high"] = {"threshold": 0.6, "max_age_days": 3.0}
        manager = ConfidenceThresholdManager(gait_config)

        st = manager.new_state("alice", "high")
        assert st.base_threshold == 0.6
        assert st.current_threshold == 0.6
        assert manager.max_age_sec("high") == 3 * 86400.0

    def test_engine_uses_configured_max_age(self, gait_config):
        gait_config.thresholds.levels["medium"]["max_age_days"] = 2.0
        engine = GaitAuthEngine(gait_config)
        baseline = make_baseline(created_at=T0)
        state = make_state()

        ok = engine.decide("alice", make_features(), baseline, state, now=T0 + 86400.0)
        old = engine.decide("alice", make_features(), baseline, state, now=T0 + 3 * 86400.0)
        assert ok.kind == DecisionKind.SUCCESS
        assert old.kind == DecisionKind.CALIBRATION_TOO_OLD
