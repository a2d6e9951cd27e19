"""
Offline walk-through of the gait authentication core with synthetic IMU data.

  1. calibrate a user from a simulated walk
  2. authenticate the same walker, a different walker and a limping walker
  3. print the decisions and the per-user statistics

Usage:
    python scripts/demo_auth.py
    python scripts/demo_auth.py --config config/default.yaml --user alice --attempts 5
"""

from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Optional

from core.config import load_config
from core.dummies import SyntheticWalkSource
from core.logging_setup import setup_logging
from core.metrics import AuthMetrics
from gait_auth.gait import (
    BaselineGallery,
    CalibrationService,
    GaitAuthService,
    default_gait_config,
)
from gait_auth.gait.calibration_quality import CalibrationType
from gait_auth.gait.sample_buffer import MotionSampleBuffer
from schemas import AuthenticationDecision


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Calibrate and authenticate a simulated walker."
    )
    p.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML config (default: config/default.yaml next to this repo).",
    )
    p.add_argument("--user", type=str, default="alice", help="User id to enroll.")
    p.add_argument(
        "--calibration",
        default="FAST",
        type=str.upper,
        choices=[c.value for c in CalibrationType],
        help="Calibration recording length.",
    )
    p.add_argument("--attempts", type=int, default=3, help="Attempts per walker.")
    return p


def _print_decision(label: str, d: AuthenticationDecision) -> None:
    print(
        f"  {label:<10} {d.kind.value:<20} conf={d.confidence:.3f} "
        f"thr={d.threshold:.3f} sim={d.similarity:.3f}"
    )


def main(argv: Optional[list[str]] = None) -> None:
    args = build_arg_parser().parse_args(argv)

    base_dir = Path(__file__).resolve().parents[1]
    config_path = Path(args.config) if args.config else base_dir / "config" / "default.yaml"

    cfg = load_config(config_path)
    setup_logging(base_dir / cfg.paths.logs_dir, level=cfg.runtime.log_level)
    log = logging.getLogger("scripts.demo_auth")

    gait_cfg = default_gait_config(cfg)
    gallery = BaselineGallery(gait_cfg)
    metrics = AuthMetrics(
        window_sec=cfg.runtime.metrics_window_sec,
        log_every_sec=cfg.runtime.metrics_log_every_sec,
    )
    calibration = CalibrationService(gallery, gait_cfg)
    auth = GaitAuthService(gallery, config=gait_cfg, metrics=metrics)

    now = time.time()
    rate = gait_cfg.extraction.sampling_rate_hz
    walker = SyntheticWalkSource(sampling_rate_hz=rate, noise_std=0.05, seed=1, start_ts=now)

    cal_type = CalibrationType(args.calibration)
    session = calibration.start(args.user, cal_type, now=now)
    calibration.add_samples(session, walker.read_window(cal_type.duration_sec))
    session = calibration.complete(session, now=now + cal_type.duration_sec)
    print(
        f"Calibration for '{args.user}': {session.status.value} "
        f"(quality={session.quality_score:.3f}, level={session.quality_level.value})"
    )
    if session.baseline_id is None:
        log.warning("No baseline stored: %s", session.error_message)
        return

    walkers = {
        "same": walker,
        "other": SyntheticWalkSource(
            sampling_rate_hz=rate, step_hz=1.0, amplitude=4.0, noise_std=0.05, seed=2, start_ts=now
        ),
        "limping": SyntheticWalkSource(
            sampling_rate_hz=rate, limp=True, noise_std=0.05, seed=3, start_ts=now
        ),
    }

    print("Authentication attempts:")
    for label, source in walkers.items():
        buf = MotionSampleBuffer(sampling_rate_hz=rate)
        for _ in range(args.attempts):
            buf.extend(source.read_window(gait_cfg.extraction.window_duration_seconds))
            decision = auth.authenticate_from_source(args.user, buf, now=buf.latest_time())
            _print_decision(label, decision)

    stats = auth.statistics(args.user)
    print(
        f"Statistics: {stats['successful_decisions']}/{stats['total_decisions']} accepted, "
        f"avg_conf={stats['average_confidence']:.3f}, thr={stats['current_threshold']:.3f}"
    )
    log.info("Metrics summary: %s", metrics.summary())


if __name__ == "__main__":
    main()
