import pytest

from babylog.regression import (
    calculate_quadratic_regression,
    evaluate_quadratic,
    generate_trend_line_points,
)


def test_exact_parabola():
    points = [{"x": x, "y": 2 * x * x - 3 * x + 5} for x in range(-3, 4)]
    a, b, c = calculate_quadratic_regression(points)

    assert a == pytest.approx(2)
    assert b == pytest.approx(-3)
    assert c == pytest.approx(5)


def test_straight_line_has_no_curvature():
    points = [{"x": x, "y": 4 * x + 1} for x in (1, 2, 3, 4, 5)]
    a, b, c = calculate_quadratic_regression(points)

    assert a == pytest.approx(0, abs=1e-9)
    assert b == pytest.approx(4)
    assert c == pytest.approx(1)


@pytest.mark.parametrize(
    "points",
    [None, [], [{"x": 1, "y": 1}, {"x": 2, "y": 2}], [{"x": 1, "y": 1}, {"x": 1, "y": 2}, {"x": 1, "y": 3}]],
)
def test_insufficient_or_singular(points):
    assert calculate_quadratic_regression(points) is None


def test_evaluate():
    assert evaluate_quadratic(2, [1, 2, 3]) == 11
    assert evaluate_quadratic(2, None) == 0
    assert evaluate_quadratic(2, [1, 2]) == 0


def test_trend_line_points():
    pts = generate_trend_line_points(0, 10, [0, 1, 0], 11)

    assert len(pts) == 11
    assert pts[0] == {"x": 0, "y": 0}
    assert pts[-1]["x"] == pytest.approx(10)
    assert generate_trend_line_points(0, 10, None) == []
