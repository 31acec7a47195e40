"""Image-to-board coordinate transform and ring/segment classification.

The board is described by a rotated ellipse (see ``CalibrationModel``).
``transform`` undoes the rotation and the perspective squash so the board
becomes a circle of radius ``radius_x``; ``classify`` then reads the ring
from the normalized distance and the segment from the angle.
"""
from __future__ import annotations

import math

from .errors import NotCalibratedError
from .models import CalibrationModel, CanonicalPoint, ImagePoint, ScoreResult


# Sector order starting at sector index 0 and increasing with atan2 angle.
SEGMENT_VALUES = (20, 1, 18, 4, 13, 6, 10, 15, 2, 17, 3, 19, 7, 16, 8, 11, 14, 9, 12, 5)
SECTOR_COUNT = len(SEGMENT_VALUES)
SECTOR_WIDTH = 2 * math.pi / SECTOR_COUNT

# Ring bounds as a fraction of the outer double radius.
INNER_BULL = 0.04
OUTER_BULL = 0.07
TRIPLE_BAND = (0.58, 0.65)
DOUBLE_BAND = (0.95, 1.0)

MISS = ScoreResult(value=0, multiplier=1)


def transform(point: ImagePoint, model: CalibrationModel | None) -> CanonicalPoint:
    if model is None:
        raise NotCalibratedError()

    dx = point.x - model.center_x
    dy = point.y - model.center_y

    cos_r = math.cos(model.rotation)
    sin_r = math.sin(model.rotation)
    x = dx * cos_r + dy * sin_r
    y = -dx * sin_r + dy * cos_r

    return CanonicalPoint(x=x, y=y * (model.radius_x / model.radius_y))


def sector_index(angle: float) -> int:
    shifted = (angle + math.pi + math.pi / SECTOR_COUNT) % (2 * math.pi)
    return int(shifted // SECTOR_WIDTH) % SECTOR_COUNT


def ring_multiplier(normalized: float) -> int:
    if TRIPLE_BAND[0] <= normalized <= TRIPLE_BAND[1]:
        return 3
    if DOUBLE_BAND[0] <= normalized <= DOUBLE_BAND[1]:
        return 2
    return 1


def classify(point: CanonicalPoint, radius_x: float) -> ScoreResult:
    if radius_x <= 0:
        raise ValueError("radius_x must be positive")

    normalized = math.hypot(point.x, point.y) / radius_x

    if normalized <= INNER_BULL:
        return ScoreResult(value=50, multiplier=1)
    if normalized <= OUTER_BULL:
        return ScoreResult(value=25, multiplier=1)
    if normalized > DOUBLE_BAND[1]:
        return MISS

    value = SEGMENT_VALUES[sector_index(math.atan2(point.y, point.x))]
    return ScoreResult(value=value, multiplier=ring_multiplier(normalized))


def score_point(point: ImagePoint, model: CalibrationModel | None) -> ScoreResult:
    """Score an image-space point against ``model``.

    Raises ``NotCalibratedError`` when no model is set; a point outside the
    board is a regular miss.
    """
    canonical = transform(point, model)
    return classify(canonical, model.radius_x)
