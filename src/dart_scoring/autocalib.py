"""Automatic board calibration by a coarse search over ellipse parameters.

The search runs in two stages against a binary "board colour" mask: first a
grid of candidate centres scored with a fixed circle, then aspect ratio,
rotation and radius around the winning centre. Each stage is a finite,
ordered candidate list reduced with ``first_best`` so results are
deterministic.

The score saturates once a sampled ellipse lies wholly on board colour, so
the candidate order decides between equally good fits. Centres are tried
nearest the frame centre first; ellipses are tried largest radius first,
then the unsquashed aspect 1.0 first, then rotation 0 first. Ties therefore
resolve to the largest, roundest ellipse.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterable, TypeVar

import cv2
import numpy as np

from .models import AutoCalibrationResult, CalibrationModel

logger = logging.getLogger(__name__)

T = TypeVar("T")

# RGB bounds (inclusive) of the colours a dartboard is made of.
BOARD_COLOR_RANGES = (
    ((0, 0, 0), (79, 79, 79)),  # dark
    ((201, 201, 201), (255, 255, 255)),  # light
    ((151, 0, 0), (255, 99, 99)),  # red
    ((0, 121, 0), (99, 255, 99)),  # green
)

CENTER_SEARCH_REGION = 0.6
CENTER_GRID_DIVISIONS = 20
TEST_RADIUS_FRACTION = 0.3
PERIMETER_SAMPLES = 36
INNER_RING_RATIO = 0.6
INNER_RING_WEIGHT = 0.5

ASPECT_RATIOS = (1.0, 0.9, 0.8, 0.7, 0.6)
ROTATIONS = tuple(i * math.pi / 12 for i in range(12))
RADIUS_FRACTIONS = (0.45, 0.4, 0.35, 0.3, 0.25, 0.2)

CONFIDENCE_FLOOR = 0.25
FALLBACK_RADIUS_FRACTION = 1 / 3


@dataclass(frozen=True)
class EllipseCandidate:
    center_x: float
    center_y: float
    radius_x: float
    radius_y: float
    rotation: float = 0.0

    def to_model(self) -> CalibrationModel:
        return CalibrationModel(
            center_x=self.center_x,
            center_y=self.center_y,
            radius_x=self.radius_x,
            radius_y=self.radius_y,
            rotation=self.rotation,
        )


def board_color_mask(frame: np.ndarray) -> np.ndarray:
    """Return a uint8 mask with 1 where a pixel has a board colour."""
    if frame.ndim != 3 or frame.shape[2] < 3:
        raise ValueError("expected an HxWx3 (RGB) or HxWx4 (RGBA) frame")

    rgb = np.ascontiguousarray(frame[:, :, :3], dtype=np.uint8)
    mask = np.zeros(rgb.shape[:2], dtype=np.uint8)
    for lower, upper in BOARD_COLOR_RANGES:
        mask = cv2.bitwise_or(mask, cv2.inRange(rgb, np.array(lower, np.uint8), np.array(upper, np.uint8)))
    return (mask > 0).astype(np.uint8)


def center_candidates(width: int, height: int) -> list[tuple[float, float]]:
    margin = (1.0 - CENTER_SEARCH_REGION) / 2
    step = max(1, min(width, height) // CENTER_GRID_DIVISIONS)
    xs = range(int(width * margin), int(math.ceil(width * (1.0 - margin))) + 1, step)
    ys = range(int(height * margin), int(math.ceil(height * (1.0 - margin))) + 1, step)
    grid = [(float(x), float(y)) for y in ys for x in xs]
    cx, cy = width / 2, height / 2
    return sorted(grid, key=lambda c: ((c[0] - cx) ** 2 + (c[1] - cy) ** 2, c[1], c[0]))


def ellipse_candidates(center_x: float, center_y: float, width: int, height: int) -> list[EllipseCandidate]:
    size = min(width, height)
    candidates = []
    for fraction in RADIUS_FRACTIONS:
        radius_x = size * fraction
        for aspect in ASPECT_RATIOS:
            for rotation in ROTATIONS:
                candidates.append(
                    EllipseCandidate(center_x, center_y, radius_x, radius_x * aspect, rotation)
                )
    return candidates


def _sample_ellipse(mask: np.ndarray, candidate: EllipseCandidate, scale: float) -> float:
    t = np.linspace(0.0, 2 * math.pi, PERIMETER_SAMPLES, endpoint=False)
    ex = candidate.radius_x * scale * np.cos(t)
    ey = candidate.radius_y * scale * np.sin(t)
    cos_r = math.cos(candidate.rotation)
    sin_r = math.sin(candidate.rotation)

    xs = np.rint(candidate.center_x + ex * cos_r - ey * sin_r).astype(int)
    ys = np.rint(candidate.center_y + ex * sin_r + ey * cos_r).astype(int)

    h, w = mask.shape
    inside = (xs >= 0) & (xs < w) & (ys >= 0) & (ys < h)
    return float(mask[ys[inside], xs[inside]].sum())


def score_ellipse(mask: np.ndarray, candidate: EllipseCandidate) -> float:
    """Perimeter samples plus the half-weighted inner ring."""
    return _sample_ellipse(mask, candidate, 1.0) + INNER_RING_WEIGHT * _sample_ellipse(
        mask, candidate, INNER_RING_RATIO
    )


def max_ellipse_score() -> float:
    return PERIMETER_SAMPLES * (1.0 + INNER_RING_WEIGHT)


def first_best(candidates: Iterable[T], scorer: Callable[[T], float]) -> tuple[T | None, float]:
    """Argmax keeping the first candidate that reaches the maximum."""
    best = None
    best_score = -math.inf
    for candidate in candidates:
        value = scorer(candidate)
        if value > best_score:
            best = candidate
            best_score = value
    return best, best_score


def fallback_model(width: int, height: int) -> CalibrationModel:
    radius = max(min(width, height) * FALLBACK_RADIUS_FRACTION, 1.0)
    return CalibrationModel(
        center_x=width / 2,
        center_y=height / 2,
        radius_x=radius,
        radius_y=radius,
        rotation=0.0,
    )


def auto_calibrate(frame: np.ndarray) -> AutoCalibrationResult:
    mask = board_color_mask(frame)
    height, width = mask.shape
    if width < 2 or height < 2:
        logger.warning("frame of %dx%d is too small to search; using default ellipse", width, height)
        return AutoCalibrationResult(
            model=fallback_model(width, height), score=0.0, confidence=0.0, is_fallback=True
        )

    test_radius = min(width, height) * TEST_RADIUS_FRACTION
    center, _ = first_best(
        center_candidates(width, height),
        lambda c: score_ellipse(mask, EllipseCandidate(c[0], c[1], test_radius, test_radius)),
    )
    best, best_score = first_best(
        ellipse_candidates(center[0], center[1], width, height),
        lambda c: score_ellipse(mask, c),
    )

    background = float(mask.mean())
    confidence = best_score / max_ellipse_score() - background

    if confidence < CONFIDENCE_FLOOR:
        logger.warning(
            "weak calibration fit (confidence %.2f < %.2f); using default ellipse",
            confidence,
            CONFIDENCE_FLOOR,
        )
        return AutoCalibrationResult(
            model=fallback_model(width, height),
            score=best_score,
            confidence=confidence,
            is_fallback=True,
        )

    logger.info("auto-calibration confidence %.2f", confidence)
    return AutoCalibrationResult(
        model=best.to_model(),
        score=best_score,
        confidence=confidence,
        is_fallback=False,
    )
