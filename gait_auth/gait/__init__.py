"""
Gait authentication module.

Components:
- GaitFeatureExtractor: MotionSamples → GaitFeatureVector
- GaitAuthEngine: Candidate + baseline + threshold state → decision
- BaselineGallery: Baseline store
- CalibrationService: Enrollment sessions
- GaitAuthService: Orchestrates extraction, stores and decisions
"""

from gait_auth.gait.config import GaitConfig, default_gait_config
from gait_auth.gait.gait_extractor import GaitFeatureExtractor
from gait_auth.gait.gait_engine import GaitAuthEngine
from gait_auth.gait.gait_gallery import BaselineGallery
from gait_auth.gait.calibration import CalibrationError, CalibrationService
from gait_auth.gait.auth_service import GaitAuthService

__all__ = [
    "GaitConfig",
    "default_gait_config",
    "GaitFeatureExtractor",
    "GaitAuthEngine",
    "BaselineGallery",
    "CalibrationError",
    "CalibrationService",
    "GaitAuthService",
]
