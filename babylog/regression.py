"""
Quadratic (degree 2) least-squares regression for chart trend lines.

y = a*x^2 + b*x + c, coefficients returned as [a, b, c].
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

SINGULAR_EPS = 1e-10


def calculate_quadratic_regression(points: Optional[Sequence[Dict[str, float]]]) -> Optional[List[float]]:
    """
    Fit y = ax^2 + bx + c to {"x", "y"} points.

    Returns None with fewer than 3 points or when the normal equations are
    singular (e.g. fewer than 3 distinct x values).
    """
    if not points or len(points) < 3:
        return None

    n = float(len(points))
    sx = sy = sx2 = sx3 = sx4 = sxy = sx2y = 0.0
    for p in points:
        x = float(p["x"])
        y = float(p["y"])
        x2 = x * x
        sx += x
        sy += y
        sx2 += x2
        sx3 += x2 * x
        sx4 += x2 * x2
        sxy += x * y
        sx2y += x2 * y

    # Normal equations, solved by Cramer's rule:
    # [n   sx  sx2] [c]   [sy  ]
    # [sx  sx2 sx3] [b] = [sxy ]
    # [sx2 sx3 sx4] [a]   [sx2y]
    det = n * (sx2 * sx4 - sx3 * sx3) - sx * (sx * sx4 - sx3 * sx2) + sx2 * (sx * sx3 - sx2 * sx2)
    if abs(det) < SINGULAR_EPS:
        return None

    det_c = sy * (sx2 * sx4 - sx3 * sx3) - sxy * (sx * sx4 - sx3 * sx2) + sx2y * (sx * sx3 - sx2 * sx2)
    det_b = n * (sxy * sx4 - sx3 * sx2y) - sy * (sx * sx4 - sx3 * sx2) + sx2 * (sx * sx2y - sxy * sx2)
    det_a = n * (sx2 * sx2y - sx3 * sxy) - sx * (sx * sx2y - sxy * sx2) + sy * (sx * sx3 - sx2 * sx2)

    return [det_a / det, det_b / det, det_c / det]


def evaluate_quadratic(x: float, coefficients: Optional[Sequence[float]]) -> float:
    if not coefficients or len(coefficients) != 3:
        return 0.0
    a, b, c = coefficients
    return a * x * x + b * x + c


def generate_trend_line_points(
    min_x: float,
    max_x: float,
    coefficients: Optional[Sequence[float]],
    num_points: int = 50,
) -> List[Dict[str, float]]:
    if not coefficients or num_points < 2:
        return []
    step = (max_x - min_x) / (num_points - 1)
    out = []
    for i in range(num_points):
        x = min_x + i * step
        out.append({"x": x, "y": evaluate_quadratic(x, coefficients)})
    return out
