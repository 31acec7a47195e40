from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Callable, Iterable

import numpy as np

from .autocalib import auto_calibrate
from .calibration import BoardCalibrator
from .cv import ImpactDetector
from .game import GameSession
from .geometry import score_point
from .models import AutoCalibrationResult, CalibrationModel, Detection, ImagePoint, ScoreResult

logger = logging.getLogger(__name__)

DetectionCallback = Callable[[int, int], None]

DART_LIKE_LABELS = frozenset({"sports ball", "frisbee", "knife"})
MIN_DETECTION_SCORE = 0.3


@dataclass
class PipelineState:
    frames_processed: int = 0
    impacts_detected: int = 0
    throws_emitted: int = 0
    last_error: str | None = None


class FramePipeline:
    """Turns frames pushed by the host into (score, multiplier) events."""

    def __init__(self, calibrator: BoardCalibrator, detector: ImpactDetector | None = None) -> None:
        self.calibrator = calibrator
        self.detector = detector or ImpactDetector()
        self._lock = threading.Lock()
        self._state = PipelineState()
        self._callback: DetectionCallback | None = None
        self._detections: list[Detection] = []
        self._last_impact: ImagePoint | None = None

    def set_detection_callback(self, callback: DetectionCallback | None) -> None:
        with self._lock:
            self._callback = callback

    def status(self) -> dict[str, object]:
        with self._lock:
            payload = asdict(self._state)
        payload["calibrated"] = self.calibrator.is_calibrated()
        return payload

    def calibrate(self, model: CalibrationModel) -> None:
        self.calibrator.set_model(model)
        self.detector.reset_frame_comparison()

    def auto_calibrate(self, frame: np.ndarray) -> AutoCalibrationResult:
        result = auto_calibrate(frame)
        self.calibrate(result.model)
        return result

    def reset_frame_comparison(self) -> None:
        self.detector.reset_frame_comparison()

    def process_frame(self, frame: np.ndarray, emit: bool = True) -> ScoreResult | None:
        model = self.calibrator.snapshot()
        if model is None:
            logger.debug("skipping frame: board not calibrated")
            return None

        point = self.detector.feed(frame, model)
        with self._lock:
            self._state.frames_processed += 1
            if point is None:
                return None
            self._state.impacts_detected += 1
            self._last_impact = point
            callback = self._callback

        result = score_point(point, model)
        if not emit or callback is None or result.value == 0:
            return result

        logger.info("detected %s at (%.0f, %.0f)", result.label, point.x, point.y)
        try:
            callback(result.value, result.multiplier)
        except Exception as exc:  # noqa: BLE001
            logger.warning("detection callback failed: %s", exc)
            with self._lock:
                self._state.last_error = str(exc)
        else:
            with self._lock:
                self._state.throws_emitted += 1
        return result

    def update_detections(self, raw: Iterable[Detection]) -> list[Detection]:
        """Keep the externally detected boxes worth drawing."""
        kept = [d for d in raw if d.label in DART_LIKE_LABELS or d.score > MIN_DETECTION_SCORE]
        with self._lock:
            self._detections = kept
        return list(kept)

    @property
    def last_impact(self) -> ImagePoint | None:
        """Image position of the most recent detected impact."""
        with self._lock:
            return self._last_impact

    @property
    def detections(self) -> list[Detection]:
        with self._lock:
            return list(self._detections)


class AutoScorer:
    """Forwards detected throws into a game session while auto-detection is on."""

    def __init__(self, pipeline: FramePipeline, session: GameSession, auto_detect: bool = False) -> None:
        self.pipeline = pipeline
        self.session = session
        self.auto_detect = auto_detect
        pipeline.set_detection_callback(self._on_detection)
        session.add_start_hook(pipeline.reset_frame_comparison)

    def _on_detection(self, score: int, multiplier: int) -> None:
        if self.auto_detect and self.session.is_active:
            self.session.register_throw(score, multiplier, position=self.pipeline.last_impact)

    def process_frame(self, frame: np.ndarray) -> ScoreResult | None:
        return self.pipeline.process_frame(frame, emit=self.auto_detect and self.session.is_active)
