from __future__ import annotations

import cv2
import numpy as np

from .errors import NotCalibratedError
from .models import CalibrationModel, ImagePoint

REGION_MARGIN = 1.2


def search_region(model: CalibrationModel, width: int, height: int) -> tuple[int, int, int, int]:
    """Square around the board ellipse, clipped to the frame: (x0, y0, x1, y1), end-exclusive."""
    half = max(model.radius_x, model.radius_y) * REGION_MARGIN
    x0 = max(0, int(np.floor(model.center_x - half)))
    y0 = max(0, int(np.floor(model.center_y - half)))
    x1 = min(width, int(np.ceil(model.center_x + half)) + 1)
    y1 = min(height, int(np.ceil(model.center_y + half)) + 1)
    return x0, y0, x1, y1


class ImpactDetector:
    """Frame-difference hit detector.

    Returns the single sampled pixel with the largest summed RGB change inside
    the board region. Two simultaneous changes in the region are not told
    apart; the larger one wins.
    """

    def __init__(self, noise_threshold: int = 30, stride: int = 2) -> None:
        if stride < 1:
            raise ValueError("stride must be at least 1")
        self.noise_threshold = noise_threshold
        self.stride = stride
        self._prev_frame: np.ndarray | None = None

    @property
    def has_previous_frame(self) -> bool:
        return self._prev_frame is not None

    def reset_frame_comparison(self) -> None:
        self._prev_frame = None

    def detect(self, prev: np.ndarray, curr: np.ndarray, model: CalibrationModel | None) -> ImagePoint | None:
        if model is None:
            raise NotCalibratedError()
        if prev.shape != curr.shape:
            raise ValueError(f"frame shapes differ: {prev.shape} != {curr.shape}")
        if curr.ndim != 3 or curr.shape[2] < 3:
            raise ValueError("expected an HxWx3 (RGB) or HxWx4 (RGBA) frame")

        h, w = curr.shape[:2]
        x0, y0, x1, y1 = search_region(model, w, h)
        if x0 >= x1 or y0 >= y1:
            return None

        s = self.stride
        before = np.ascontiguousarray(prev[y0:y1:s, x0:x1:s, :3])
        after = np.ascontiguousarray(curr[y0:y1:s, x0:x1:s, :3])
        delta = cv2.absdiff(before, after).astype(np.int32).sum(axis=2)

        row, col = np.unravel_index(int(np.argmax(delta)), delta.shape)
        if delta[row, col] <= self.noise_threshold:
            return None

        return ImagePoint(x=float(x0 + col * s), y=float(y0 + row * s))

    def feed(self, frame: np.ndarray, model: CalibrationModel | None) -> ImagePoint | None:
        """Compare ``frame`` with the previously fed frame, then keep it."""
        prev = self._prev_frame
        self._prev_frame = frame.copy()
        if prev is None or prev.shape != frame.shape:
            return None
        return self.detect(prev, frame, model)
