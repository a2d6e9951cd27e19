"""
GaitGuard-Auth Gait Package

This package contains the gait authentication pipeline:
- gait/config.py: Algorithm constants (GaitConfig)
- gait/sample_buffer.py: Thread-safe window of synchronized motion samples
- gait/gait_extractor.py: Motion samples → GaitFeatureVector
- gait/similarity.py + gait/recognizers.py: Candidate vs baseline scoring
- gait/threshold.py + gait/state.py: Adaptive per-user thresholds
- gait/gait_engine.py: Decision engine
- gait/gait_gallery.py: Baseline store
- gait/calibration.py: Enrollment sessions
- gait/auth_service.py: Main orchestrator

The pipeline is a library: the host application owns the sensors, the
database and the UI, and calls GaitAuthService.
"""

__version__ = "1.0.0"
