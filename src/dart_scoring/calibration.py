from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

from pydantic import ValidationError

from .errors import NotCalibratedError
from .geometry import score_point, transform
from .models import CalibrationModel, CanonicalPoint, ImagePoint, ScoreResult

logger = logging.getLogger(__name__)


class BoardCalibrator:
    """Holds the current board ellipse and optionally persists it as JSON."""

    def __init__(self, state_path: str | None = None) -> None:
        self.state_path = Path(state_path) if state_path else None
        self._lock = threading.Lock()
        self._model: CalibrationModel | None = None
        self._load()

    def _load(self) -> None:
        if self.state_path is None or not self.state_path.exists():
            return
        try:
            payload = json.loads(self.state_path.read_text(encoding="utf-8"))
            model = payload.get("model")
            if isinstance(model, dict):
                self._model = CalibrationModel.model_validate(model)
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("ignoring unreadable calibration file %s: %s", self.state_path, exc)
            self._model = None

    def _save(self) -> None:
        if self.state_path is None:
            return
        payload = {"model": self._model.model_dump() if self._model is not None else None}
        self.state_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def set_model(self, model: CalibrationModel) -> None:
        with self._lock:
            self._model = model
            self._save()
        logger.info(
            "calibrated board at (%.1f, %.1f) rx=%.1f ry=%.1f rotation=%.3f",
            model.center_x,
            model.center_y,
            model.radius_x,
            model.radius_y,
            model.rotation,
        )

    def set_circle(self, center_x: float, center_y: float, radius: float) -> CalibrationModel:
        """Manual calibration from a clicked centre and a circular radius.

        Rotation is 0, so segment 20 sits on the left (negative x) edge of the
        image and the top of the board scores 6. Hosts whose camera shows 20 at
        the top should call ``set_model`` with ``rotation=math.pi / 2``.
        """
        model = CalibrationModel(
            center_x=center_x,
            center_y=center_y,
            radius_x=radius,
            radius_y=radius,
            rotation=0.0,
        )
        self.set_model(model)
        return model

    def clear(self) -> None:
        with self._lock:
            self._model = None
            self._save()

    def is_calibrated(self) -> bool:
        with self._lock:
            return self._model is not None

    @property
    def model(self) -> CalibrationModel:
        with self._lock:
            model = self._model
        if model is None:
            raise NotCalibratedError()
        return model

    def snapshot(self) -> CalibrationModel | None:
        with self._lock:
            return self._model

    def status(self) -> dict[str, object]:
        with self._lock:
            return {
                "calibrated": self._model is not None,
                "model": self._model.model_dump() if self._model is not None else None,
            }

    def transform_point(self, x_px: float, y_px: float) -> CanonicalPoint:
        return transform(ImagePoint(x=x_px, y=y_px), self.snapshot())

    def score_point(self, x_px: float, y_px: float) -> ScoreResult:
        return score_point(ImagePoint(x=x_px, y=y_px), self.snapshot())
