# tests/conftest.py
"""Shared fixtures for the gait authentication test suite."""

import logging
from collections import deque

import pytest

from core.config import config_from_dict
from core.dummies import SyntheticWalkSource
from core.metrics import AuthMetrics
from gait_auth.gait.config import default_gait_config
from gait_auth.gait.gait_gallery import BaselineGallery
from gait_auth.gait.state import SecurityLevel, ThresholdState
from schemas import CalibrationBaseline, GaitFeatureVector, WalkingPattern

T0 = 1_700_000_000.0
DAY = 86400.0


@pytest.fixture
def logger():
    return logging.getLogger("gaitguard_auth.tests")


@pytest.fixture
def test_config():
    """Config with library defaults (medium security, similarity scorer)."""
    return config_from_dict({})


@pytest.fixture
def gait_config(test_config):
    return default_gait_config(test_config)


@pytest.fixture
def metrics_collector():
    return AuthMetrics(window_sec=300.0, log_every_sec=60.0)


@pytest.fixture
def walker():
    """Regular walker: 2 steps/s, moderate bounce."""
    return SyntheticWalkSource(start_ts=T0)


@pytest.fixture
def other_walker():
    """Slow, heavy-footed walker: 1 step/s, twice the bounce."""
    return SyntheticWalkSource(step_hz=1.0, amplitude=4.0, start_ts=T0)


@pytest.fixture
def walking_samples(walker):
    """Five seconds of regular walking."""
    return walker.generate(250)


@pytest.fixture
def gallery(gait_config):
    return BaselineGallery(gait_config, persist=False)


def make_features(
    step_frequency=2.0,
    step_regularity=0.8,
    acceleration_variance=1.2,
    gyroscope_variance=0.8,
    step_intensity=0.6,
    walking_pattern=WalkingPattern.NORMAL,
):
    return GaitFeatureVector(
        step_frequency=step_frequency,
        step_regularity=step_regularity,
        acceleration_variance=acceleration_variance,
        gyroscope_variance=gyroscope_variance,
        step_intensity=step_intensity,
        walking_pattern=walking_pattern,
        window_duration=5.0,
        extracted_at=T0,
    )


def make_baseline(user_id="alice", features=None, quality=0.85, created_at=T0, **kw):
    return CalibrationBaseline(
        user_id=user_id,
        features=features or make_features(),
        quality_score=quality,
        created_at=created_at,
        **kw,
    )


def make_state(user_id="alice", level=SecurityLevel.MEDIUM, threshold=None, outcomes=()):
    thr = level.base_threshold if threshold is None else threshold
    return ThresholdState(
        user_id=user_id,
        security_level=level,
        base_threshold=level.base_threshold,
        current_threshold=thr,
        recent_decisions=deque(outcomes, maxlen=20),
    )
