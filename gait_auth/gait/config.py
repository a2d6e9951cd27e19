"""
Central configuration for the gait authentication pipeline.

core/config.py holds what a host application may tune from YAML
(security level, sampling rate, window length, ...). This module holds
the algorithm constants around it and derives one GaitConfig object
from the loaded Config, so every component is built from the same place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from core.config import Config

logger = logging.getLogger(__name__)


@dataclass
class ExtractionConfig:
    """
    Feature extraction parameters.

    - accel_min / accel_max: plausible |accel| range in m/s² (gravity included)
    - gyro_max: plausible |gyro| upper bound in rad/s
    - min_samples: below this many valid samples the window is "insufficient"
    - min_pattern_samples: below this the walking pattern is IRREGULAR
    """
    sampling_rate_hz: float = 50.0
    window_duration_seconds: float = 5.0
    realtime_window_seconds: float = 3.0
    peak_threshold: float = 0.5
    sync_tolerance_sec: float = 0.050

    accel_min: float = 5.0
    accel_max: float = 20.0
    gyro_max: float = 10.0

    min_samples: int = 10
    min_peaks_for_regularity: int = 3
    intensity_scale: float = 2.0

    min_pattern_samples: int = 20
    limp_ratio_low: float = 0.5
    limp_ratio_high: float = 2.0
    normal_regularity: float = 0.7


@dataclass
class SimilarityConfig:
    """
    Per-feature tolerances and weights for baseline similarity.
    Weights are normalised by their sum when scoring.
    """
    tolerances: Dict[str, float] = field(
        default_factory=lambda: {
            "step_frequency": 0.3,
            "step_regularity": 0.2,
            "acceleration_variance": 0.5,
            "gyroscope_variance": 0.5,
            "step_intensity": 0.2,
        }
    )
    weights: Dict[str, float] = field(
        default_factory=lambda: {
            "step_frequency": 0.25,
            "step_regularity": 0.20,
            "acceleration_variance": 0.20,
            "gyroscope_variance": 0.15,
            "step_intensity": 0.10,
            "walking_pattern": 0.10,
        }
    )
    epsilon: float = 1e-6


@dataclass
class ScorerConfig:
    """
    Confidence composition for the baseline similarity scorer.

    confidence = similarity_weight * similarity + feature_weight * feature_score
    """
    name: str = "similarity"
    similarity_weight: float = 0.6
    feature_weight: float = 0.4

    frequency_weight: float = 0.3
    regularity_weight: float = 0.4
    variance_weight: float = 0.3

    frequency_band_full: float = 1.0
    frequency_band_near: float = 0.7
    frequency_band_far: float = 0.3


@dataclass
class ThresholdConfig:
    """
    Adaptive threshold policy.

    Security levels map to (base threshold, max baseline age in days).
    """
    levels: Dict[str, Dict[str, float]] = field(
        default_factory=lambda: {
            "low": {"threshold": 0.50, "max_age_days": 30.0},
            "medium": {"threshold": 0.70, "max_age_days": 180.0},
            "high": {"threshold": 0.85, "max_age_days": 7.0},
            "max": {"threshold": 0.90, "max_age_days": 1.0},
        }
    )
    security_level: str = "medium"

    history_size: int = 20
    min_history_for_adjustment: int = 5
    step: float = 0.05
    high_success_rate: float = 0.9
    low_success_rate: float = 0.5
    raise_bounds: tuple = (0.5, 0.95)
    lower_bounds: tuple = (0.3, 0.8)

    quality_gap: float = 0.3
    quality_raise: float = 0.15
    quality_lower: float = 0.10


@dataclass
class CalibrationConfig:
    """
    Enrollment parameters.
    """
    min_baseline_quality: float = 0.6
    recalibration_cooldown_hours: float = 24.0
    expected_gravity: float = 9.8
    step_period_sec: float = 0.5


@dataclass
class StorageConfig:
    gallery_path: Path = Path("data/gait_baselines.pkl")
    threshold_state_path: Path = Path("data/gait_thresholds.pkl")
    persist_state: bool = False
    max_history: int = 5


@dataclass
class GaitConfig:
    """Aggregate configuration object."""
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    similarity: SimilarityConfig = field(default_factory=SimilarityConfig)
    scorer: ScorerConfig = field(default_factory=ScorerConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


def default_gait_config(cfg: Optional[Config] = None) -> GaitConfig:
    """
    Build GaitConfig with the library defaults, overlaid with the values
    the host set in the YAML config (if given).
    """
    gait_cfg = GaitConfig()
    if cfg is None:
        return gait_cfg

    auth = cfg.auth
    gait_cfg.extraction.sampling_rate_hz = float(auth.sampling_rate_hz)
    gait_cfg.extraction.window_duration_seconds = float(auth.window_duration_seconds)
    gait_cfg.extraction.peak_threshold = float(auth.peak_threshold)
    gait_cfg.scorer.name = auth.scorer
    gait_cfg.thresholds.security_level = auth.security_level
    gait_cfg.calibration.min_baseline_quality = float(auth.min_baseline_quality)
    gait_cfg.calibration.recalibration_cooldown_hours = float(auth.recalibration_cooldown_hours)

    data_dir = Path(cfg.paths.data_dir)
    gait_cfg.storage.gallery_path = data_dir / "gait_baselines.pkl"
    gait_cfg.storage.threshold_state_path = data_dir / "gait_thresholds.pkl"
    gait_cfg.storage.persist_state = bool(cfg.runtime.persist_state)

    logger.info(
        "GaitConfig ready | level=%s scorer=%s rate=%.1fHz window=%.1fs persist=%s",
        gait_cfg.thresholds.security_level,
        gait_cfg.scorer.name,
        gait_cfg.extraction.sampling_rate_hz,
        gait_cfg.extraction.window_duration_seconds,
        gait_cfg.storage.persist_state,
    )
    return gait_cfg
