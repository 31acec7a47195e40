import numpy as np
import pytest

from src.dart_scoring.cv import ImpactDetector, search_region
from src.dart_scoring.errors import NotCalibratedError
from src.dart_scoring.models import CalibrationModel

BOARD = CalibrationModel(center_x=100, center_y=100, radius_x=60, radius_y=50)


def _frame(h=200, w=200, channels=3):
    return np.zeros((h, w, channels), dtype=np.uint8)


def test_identical_frames_have_no_impact():
    frame = _frame()
    frame[40:60, 40:60] = 90
    assert ImpactDetector().detect(frame, frame.copy(), BOARD) is None


def test_changed_block_inside_board_is_found():
    prev = _frame()
    curr = prev.copy()
    curr[90:110, 120:140] = 50

    point = ImpactDetector().detect(prev, curr, BOARD)
    assert point is not None
    assert 120 <= point.x < 140
    assert 90 <= point.y < 110


def test_change_at_noise_threshold_is_ignored():
    prev = _frame()
    curr = prev.copy()
    curr[90:110, 120:140] = 10  # 30 summed over three channels
    assert ImpactDetector().detect(prev, curr, BOARD) is None


def test_change_outside_search_region_is_ignored():
    prev = _frame()
    curr = prev.copy()
    curr[0:10, 0:10] = 255
    assert ImpactDetector().detect(prev, curr, BOARD) is None


def test_alpha_channel_changes_are_ignored():
    prev = _frame(channels=4)
    curr = prev.copy()
    curr[90:110, 120:140, 3] = 255
    assert ImpactDetector().detect(prev, curr, BOARD) is None


def test_search_region_is_clipped_to_frame():
    edge = CalibrationModel(center_x=10, center_y=190, radius_x=50, radius_y=50)
    assert search_region(edge, 200, 200) == (0, 130, 71, 200)


def test_feed_keeps_previous_frame_until_reset():
    detector = ImpactDetector(stride=1)
    base = _frame()
    hit = base.copy()
    hit[100, 100] = 200

    assert detector.feed(base, BOARD) is None
    assert detector.has_previous_frame
    point = detector.feed(hit, BOARD)
    assert (point.x, point.y) == (100.0, 100.0)

    detector.reset_frame_comparison()
    assert detector.has_previous_frame is False
    assert detector.feed(base, BOARD) is None


def test_mismatched_frames_and_missing_calibration():
    detector = ImpactDetector()
    with pytest.raises(ValueError):
        detector.detect(_frame(), _frame(100, 100), BOARD)
    with pytest.raises(NotCalibratedError):
        detector.detect(_frame(), _frame(), None)
    with pytest.raises(ValueError):
        ImpactDetector(stride=0)
