"""
schemas/__init__.py
Central exports for lightweight data structures used across GaitGuard-Auth.

We keep each schema in its own module (motion_sample, gait_features, ...)
and re-export them here for convenience:

    from schemas import MotionSample, GaitFeatureVector, AuthenticationDecision, ...

This file should remain VERY lightweight (no heavy imports or scoring code).
"""

from .motion_sample import MotionSample, SYNC_TOLERANCE_SEC
from .gait_features import GaitFeatureVector, WalkingPattern, FEATURE_NAMES
from .calibration_baseline import CalibrationBaseline
from .authentication_decision import AuthenticationDecision, DecisionKind, SCORED_KINDS

__all__ = [
    "MotionSample",
    "SYNC_TOLERANCE_SEC",
    "GaitFeatureVector",
    "WalkingPattern",
    "FEATURE_NAMES",
    "CalibrationBaseline",
    "AuthenticationDecision",
    "DecisionKind",
    "SCORED_KINDS",
]
