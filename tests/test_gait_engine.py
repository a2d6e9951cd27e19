# tests/test_gait_engine.py
"""Decision engine: ordering of failure kinds and end-to-end scenarios."""

import pytest

from conftest import DAY, T0, make_baseline, make_features, make_state
from core.interfaces import GaitScore, GaitScorer
from gait_auth.gait.gait_engine import GaitAuthEngine, patterns_conflict
from gait_auth.gait.recognizers import HeuristicGaitScorer
from gait_auth.gait.state import SecurityLevel
from schemas import DecisionKind, GaitFeatureVector, WalkingPattern


class ExplodingScorer(GaitScorer):
    name = "exploding"

    def score(self, candidate, baseline):
        raise ArithmeticError("model blew up")


class FixedScorer(GaitScorer):
    name = "fixed"

    def __init__(self, confidence, pattern=WalkingPattern.NORMAL):
        self.confidence = confidence
        self.pattern = pattern

    def score(self, candidate, baseline):
        return GaitScore(confidence=self.confidence, walking_pattern=self.pattern)


@pytest.fixture
def engine(gait_config):
    return GaitAuthEngine(gait_config)


class TestEndToEndScenarios:
    """The four reference scenarios"""

    def test_identical_candidate_succeeds(self, engine, logger):
        baseline = make_baseline()
        candidate = make_features()
        decision = engine.decide("alice", candidate, baseline, make_state(), now=T0 + DAY)

        assert engine.similarity.score(candidate, baseline.features) == 1.0
        assert decision.kind == DecisionKind.SUCCESS
        assert decision.is_authenticated
        assert decision.confidence >= decision.threshold
        assert decision.baseline_used == baseline.id
        assert decision.similarity == 1.0
        logger.info("✅ %s", decision.reason)

    def test_no_steps_is_insufficient_data(self, engine):
        candidate = make_features(step_frequency=0.0)
        decision = engine.decide("alice", candidate, make_baseline(), make_state(), now=T0)
        assert decision.kind == DecisionKind.INSUFFICIENT_DATA
        assert decision.confidence == 0.0
        assert not decision.is_authenticated

    def test_old_baseline_under_high_security(self, engine):
        baseline = make_baseline(created_at=T0)
        state = make_state(level=SecurityLevel.HIGH)
        decision = engine.decide("alice", make_features(), baseline, state, now=T0 + 100 * DAY)
        assert decision.kind == DecisionKind.CALIBRATION_TOO_OLD
        assert decision.baseline_used == baseline.id
        assert "step_frequency" in decision.comparison

    def test_limping_candidate_is_pattern_not_matched(self, engine):
        candidate = make_features(
            step_frequency=1.0,
            step_regularity=0.3,
            acceleration_variance=4.0,
            gyroscope_variance=3.0,
            step_intensity=0.1,
            walking_pattern=WalkingPattern.LIMPING,
        )
        decision = engine.decide("alice", candidate, make_baseline(), make_state(), now=T0)
        assert decision.kind == DecisionKind.PATTERN_NOT_MATCHED
        assert decision.confidence < decision.threshold


class TestDecisionOrdering:
    def test_missing_baseline(self, engine):
        decision = engine.decide("alice", make_features(), None, make_state(), now=T0)
        assert decision.kind == DecisionKind.BASELINE_NOT_FOUND
        assert decision.confidence == 0.0
        assert decision.baseline_used is None

    def test_inactive_baseline_counts_as_missing(self, engine):
        baseline = make_baseline().deactivated()
        decision = engine.decide("alice", make_features(), baseline, make_state(), now=T0)
        assert decision.kind == DecisionKind.BASELINE_NOT_FOUND

    def test_age_checked_before_data(self, engine):
        baseline = make_baseline(created_at=T0)
        sentinel = GaitFeatureVector.insufficient_data()
        state = make_state(level=SecurityLevel.MAX)
        decision = engine.decide("alice", sentinel, baseline, state, now=T0 + 2 * DAY)
        assert decision.kind == DecisionKind.CALIBRATION_TOO_OLD

    def test_sentinel_is_insufficient(self, engine):
        decision = engine.decide(
            "alice", GaitFeatureVector.insufficient_data(), make_baseline(), make_state(), now=T0
        )
        assert decision.kind == DecisionKind.INSUFFICIENT_DATA

    def test_max_age_boundary_is_inclusive(self, engine):
        baseline = make_baseline(created_at=T0)
        state = make_state(level=SecurityLevel.HIGH)
        on_edge = engine.decide("alice", make_features(), baseline, state, now=T0 + 7 * DAY)
        assert on_edge.kind == DecisionKind.SUCCESS

    def test_normal_vs_irregular_is_confidence_too_low(self, gait_config):
        engine = GaitAuthEngine(gait_config, scorer=FixedScorer(0.3, WalkingPattern.IRREGULAR))
        decision = engine.decide("alice", make_features(), make_baseline(), make_state(), now=T0)
        assert decision.kind == DecisionKind.CONFIDENCE_TOO_LOW

    def test_high_confidence_wins_over_pattern(self, gait_config):
        engine = GaitAuthEngine(gait_config, scorer=FixedScorer(0.95, WalkingPattern.LIMPING))
        decision = engine.decide("alice", make_features(), make_baseline(), make_state(), now=T0)
        assert decision.kind == DecisionKind.SUCCESS

    def test_scorer_fault_is_system_error(self, gait_config):
        engine = GaitAuthEngine(gait_config, scorer=ExplodingScorer())
        decision = engine.decide("alice", make_features(), make_baseline(), make_state(), now=T0)
        assert decision.kind == DecisionKind.SYSTEM_ERROR
        assert isinstance(decision.cause, ArithmeticError)
        assert not decision.is_authenticated

    def test_heuristic_scorer_plugs_in(self, gait_config):
        engine = GaitAuthEngine(gait_config, scorer=HeuristicGaitScorer(gait_config))
        decision = engine.decide("alice", make_features(), make_baseline(), make_state(), now=T0)
        assert decision.kind == DecisionKind.SUCCESS

    def test_engine_does_not_record_history(self, engine):
        state = make_state()
        engine.decide("alice", make_features(), make_baseline(), state, now=T0)
        assert len(state.recent_decisions) == 0


class TestPatternConflict:
    @pytest.mark.parametrize(
        "a, b, expected",
        [
            (WalkingPattern.NORMAL, WalkingPattern.NORMAL, False),
            (WalkingPattern.NORMAL, WalkingPattern.IRREGULAR, False),
            (WalkingPattern.NORMAL, WalkingPattern.LIMPING, True),
            (WalkingPattern.LIMPING, WalkingPattern.IRREGULAR, True),
            (WalkingPattern.LIMPING, WalkingPattern.LIMPING, False),
        ],
    )
    def test_conflict(self, a, b, expected):
        assert patterns_conflict(a, b) is expected
