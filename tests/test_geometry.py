import math

import pytest

from src.dart_scoring.errors import NotCalibratedError
from src.dart_scoring.geometry import SEGMENT_VALUES, classify, score_point, transform
from src.dart_scoring.models import CalibrationModel, CanonicalPoint, ImagePoint


def _board(**overrides) -> CalibrationModel:
    params = {"center_x": 100.0, "center_y": 100.0, "radius_x": 100.0, "radius_y": 100.0, "rotation": 0.0}
    params.update(overrides)
    return CalibrationModel(**params)


def test_transform_edge_of_circle_maps_to_radius():
    c = transform(ImagePoint(x=200.0, y=100.0), _board())
    assert c.x == pytest.approx(100.0)
    assert c.y == pytest.approx(0.0)


def test_transform_stretches_minor_axis_to_circle():
    c = transform(ImagePoint(x=100.0, y=150.0), _board(radius_y=50.0))
    assert c.x == pytest.approx(0.0)
    assert c.y == pytest.approx(100.0)


def test_transform_undoes_rotation():
    c = transform(ImagePoint(x=100.0, y=200.0), _board(rotation=math.pi / 2))
    assert c.x == pytest.approx(100.0)
    assert c.y == pytest.approx(0.0, abs=1e-9)


def test_transform_without_calibration_raises():
    with pytest.raises(NotCalibratedError):
        transform(ImagePoint(x=1.0, y=1.0), None)


def test_calibration_rejects_non_positive_radius():
    with pytest.raises(ValueError):
        _board(radius_x=0.0)


def test_bull_and_miss_bands():
    assert classify(CanonicalPoint(x=0.0, y=0.0), 100.0).value == 50
    assert classify(CanonicalPoint(x=4.0, y=0.0), 100.0).value == 50
    assert classify(CanonicalPoint(x=0.0, y=5.0), 100.0).value == 25
    assert classify(CanonicalPoint(x=7.0, y=0.0), 100.0).value == 25

    miss = classify(CanonicalPoint(x=0.0, y=-101.0), 100.0)
    assert (miss.value, miss.multiplier) == (0, 1)


def test_sector_midpoints_follow_board_order():
    values = []
    for k in range(20):
        angle = -math.pi + k * 2 * math.pi / 20
        r = classify(CanonicalPoint(x=70 * math.cos(angle), y=70 * math.sin(angle)), 100.0)
        assert r.multiplier == 1
        values.append(r.value)
    assert values == list(SEGMENT_VALUES)
    assert values == [20, 1, 18, 4, 13, 6, 10, 15, 2, 17, 3, 19, 7, 16, 8, 11, 14, 9, 12, 5]


def test_ring_sweep_hits_triple_then_double():
    multipliers = []
    for i in range(8, 101):
        r = classify(CanonicalPoint(x=-float(i), y=0.0), 100.0)
        assert r.value == 20
        multipliers.append(r.multiplier)

    collapsed = [m for n, m in enumerate(multipliers) if n == 0 or multipliers[n - 1] != m]
    assert collapsed == [1, 3, 1, 2]

    def mult(i):
        return classify(CanonicalPoint(x=-float(i), y=0.0), 100.0).multiplier

    assert (mult(57), mult(58), mult(65), mult(66)) == (1, 3, 3, 1)
    assert (mult(94), mult(95), mult(100)) == (1, 2, 2)
    assert classify(CanonicalPoint(x=-101.0, y=0.0), 100.0).value == 0


def test_score_point_on_tilted_board():
    board = _board(radius_y=50.0)
    # 30px above centre on a board squashed to half height is 0.6 of the radius.
    r = score_point(ImagePoint(x=100.0, y=70.0), board)
    assert r.multiplier == 3
    assert r.label == f"T{r.value}"


def test_score_point_requires_calibration():
    with pytest.raises(NotCalibratedError):
        score_point(ImagePoint(x=0.0, y=0.0), None)
