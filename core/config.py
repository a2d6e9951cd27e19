from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)


SECURITY_LEVEL_NAMES = ("low", "medium", "high", "max")
SCORER_NAMES = ("similarity", "heuristic")


@dataclass
class AuthConfig:
    """
    Options the host application may set for the authentication core.

    security_level decides both the base threshold and how old a baseline
    may be before it has to be recalibrated.
    """
    security_level: str = "medium"  # "low" | "medium" | "high" | "max"
    sampling_rate_hz: float = 50.0
    window_duration_seconds: float = 5.0
    peak_threshold: float = 0.5

    scorer: str = "similarity"  # "similarity" or "heuristic"

    min_baseline_quality: float = 0.6
    recalibration_cooldown_hours: float = 24.0


@dataclass
class PathsConfig:
    logs_dir: str = "logs"
    data_dir: str = "data"


@dataclass
class RuntimeConfig:
    log_level: str = "INFO"
    persist_state: bool = False
    metrics_window_sec: float = 300.0
    metrics_log_every_sec: float = 60.0


@dataclass
class Config:
    auth: AuthConfig = field(default_factory=AuthConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)


def _update_dataclass_from_dict(obj: Any, data: Dict[str, Any]) -> Any:
    """
    Assign only known fields from dict into dataclass instance.
    Unknown keys in YAML are ignored (backwards-compatible).
    """
    for k, v in data.items():
        if hasattr(obj, k):
            setattr(obj, k, v)
    return obj


def _validate(cfg: Config) -> None:
    auth = cfg.auth
    auth.security_level = str(auth.security_level).lower()
    auth.scorer = str(auth.scorer).lower()

    if auth.security_level not in SECURITY_LEVEL_NAMES:
        raise ValueError(
            f"auth.security_level must be one of {SECURITY_LEVEL_NAMES}, got: {auth.security_level!r}"
        )
    if auth.scorer not in SCORER_NAMES:
        raise ValueError(f"auth.scorer must be one of {SCORER_NAMES}, got: {auth.scorer!r}")

    auth.sampling_rate_hz = float(auth.sampling_rate_hz)
    auth.window_duration_seconds = float(auth.window_duration_seconds)
    auth.peak_threshold = float(auth.peak_threshold)
    auth.min_baseline_quality = float(auth.min_baseline_quality)
    auth.recalibration_cooldown_hours = float(auth.recalibration_cooldown_hours)

    if auth.sampling_rate_hz <= 0.0:
        raise ValueError(f"auth.sampling_rate_hz must be > 0, got: {auth.sampling_rate_hz}")
    if auth.window_duration_seconds <= 0.0:
        raise ValueError(
            f"auth.window_duration_seconds must be > 0, got: {auth.window_duration_seconds}"
        )
    if not 0.0 <= auth.min_baseline_quality <= 1.0:
        raise ValueError(
            f"auth.min_baseline_quality must be within [0, 1], got: {auth.min_baseline_quality}"
        )


def config_from_dict(raw: Dict[str, Any]) -> Config:
    """
    Map an already-parsed dict (same shape as the YAML file) to Config.
    """
    if not isinstance(raw, dict):
        raise ValueError(f"Config root must be a dict, got: {type(raw)}")

    auth_data = raw.get("auth", {}) or {}
    paths_data = raw.get("paths", {}) or {}
    runtime_data = raw.get("runtime", {}) or {}

    cfg = Config(
        auth=_update_dataclass_from_dict(AuthConfig(), auth_data),
        paths=_update_dataclass_from_dict(PathsConfig(), paths_data),
        runtime=_update_dataclass_from_dict(RuntimeConfig(), runtime_data),
    )
    _validate(cfg)
    return cfg


def load_config(path: str | Path = "config/default.yaml") -> Config:
    """
    Load YAML config and map it to our dataclasses.

    This function is the single source of truth for all configuration sections:
      - cfg.auth
      - cfg.paths
      - cfg.runtime
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    cfg = config_from_dict(raw)

    logger.info(
        "Config loaded from %s | security_level=%s, sampling_rate_hz=%.1f, "
        "window_duration_seconds=%.1f, peak_threshold=%.2f, scorer=%s",
        path,
        cfg.auth.security_level,
        cfg.auth.sampling_rate_hz,
        cfg.auth.window_duration_seconds,
        cfg.auth.peak_threshold,
        cfg.auth.scorer,
    )

    return cfg
