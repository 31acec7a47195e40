from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .calibration import BoardCalibrator
from .cv import ImpactDetector
from .game import GameSession
from .ingest import AutoScorer, FramePipeline


@dataclass
class Settings:
    calib_path: str | None = None
    noise_threshold: int = 30
    detection_stride: int = 2
    auto_detect: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            calib_path=os.getenv("DARTSCORE_CALIB_PATH") or None,
            noise_threshold=int(os.getenv("DARTSCORE_NOISE_THRESHOLD", "30")),
            detection_stride=int(os.getenv("DARTSCORE_DETECTION_STRIDE", "2")),
            auto_detect=os.getenv("DARTSCORE_AUTO_DETECT", "false").lower() == "true",
            log_level=os.getenv("DARTSCORE_LOG_LEVEL", "INFO").upper(),
        )


PACKAGE_LOGGER = __name__.rpartition(".")[0]


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger(PACKAGE_LOGGER).setLevel(getattr(logging, level.upper(), logging.INFO))


def build_scorer(settings: Settings | None = None, player_count: int = 2) -> AutoScorer:
    """Wire calibrator, detector, pipeline and session the way a host app uses them."""
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    calibrator = BoardCalibrator(state_path=settings.calib_path)
    detector = ImpactDetector(noise_threshold=settings.noise_threshold, stride=settings.detection_stride)
    pipeline = FramePipeline(calibrator=calibrator, detector=detector)
    session = GameSession(player_count=player_count)
    return AutoScorer(pipeline, session, auto_detect=settings.auto_detect)
