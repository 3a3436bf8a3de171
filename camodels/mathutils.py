"""Small numeric helpers shared by the camera models."""

from __future__ import annotations

import math
import random
import time
from typing import Iterable, Sequence

import numpy as np

_LONG_MAX = 2**63 - 1
_LONG_MIN = -(2**63)


def clamp(v, a, b):
    """Limit ``v`` to the closed interval ``[a, b]``."""
    return min(b, max(a, v))


def hypot3(x: float, y: float, z: float) -> float:
    """Euclidean length of the vector ``(x, y, z)``."""
    return math.sqrt(square(x) + square(y) + square(z))


def normalize_theta(theta: float) -> float:
    """Wrap an angle in radians into ``[-pi, pi]``."""
    norm_theta = theta
    while norm_theta < -math.pi:
        norm_theta += 2.0 * math.pi
    while norm_theta > math.pi:
        norm_theta -= 2.0 * math.pi
    return norm_theta


def d2r(deg: float) -> float:
    """Degrees to radians."""
    return deg / 180.0 * math.pi


def r2d(rad: float) -> float:
    """Radians to degrees."""
    return rad / math.pi * 180.0


def sinc(theta: float) -> float:
    """Unnormalised sinc, ``sin(theta) / theta``."""
    return math.sin(theta) / theta


def square(x):
    return x * x


def cube(x):
    return x * x * x


def random_uniform(a: float, b: float) -> float:
    """A uniformly distributed value between ``a`` and ``b``."""
    return random.random() * (b - a) + a


def random_normal(sigma: float) -> float:
    """A zero-mean normal sample with standard deviation ``sigma`` (polar method)."""
    while True:
        x1 = 2.0 * random_uniform(0.0, 1.0) - 1.0
        x2 = 2.0 * random_uniform(0.0, 1.0) - 1.0
        w = x1 * x1 + x2 * x2
        if 0.0 < w < 1.0:
            break
    w = math.sqrt((-2.0 * math.log(w)) / w)
    return x1 * w * sigma


def time_in_microseconds() -> int:
    """Wall-clock time in whole microseconds since the epoch."""
    return time.time_ns() // 1000


def time_in_seconds() -> float:
    """Wall-clock time in seconds since the epoch."""
    return time.time_ns() / 1e9


def fit_circle(points: Iterable[Sequence[float]]) -> tuple[float, float, float]:
    """Fit a circle to 2D points by the modified least squares method.

    Returns ``(center_x, center_y, radius)``.
    """
    pts = [(float(x), float(y)) for x, y in points]
    n = len(pts)
    if n == 0:
        raise ValueError("cannot fit a circle to no points")

    sum_x = sum(x for x, _ in pts)
    sum_y = sum(y for _, y in pts)
    sum_xx = sum(x * x for x, _ in pts)
    sum_xy = sum(x * y for x, y in pts)
    sum_yy = sum(y * y for _, y in pts)
    sum_xxx = sum(x * x * x for x, _ in pts)
    sum_xxy = sum(x * x * y for x, y in pts)
    sum_xyy = sum(x * y * y for x, y in pts)
    sum_yyy = sum(y * y * y for _, y in pts)

    a = n * sum_xx - square(sum_x)
    b = n * sum_xy - sum_x * sum_y
    c = n * sum_yy - square(sum_y)
    d = 0.5 * (n * sum_xyy - sum_x * sum_yy + n * sum_xxx - sum_x * sum_xx)
    e = 0.5 * (n * sum_xxy - sum_y * sum_xx + n * sum_yyy - sum_y * sum_yy)

    denom = a * c - square(b)
    if denom == 0.0:
        raise ValueError("points are degenerate; no unique circle fits them")

    center_x = (d * c - b * e) / denom
    center_y = (a * e - b * d) / denom
    radius = sum(math.hypot(x - center_x, y - center_y) for x, y in pts) / n
    return center_x, center_y, radius


def intersect_circles(
    x1: float, y1: float, r1: float, x2: float, y2: float, r2: float
) -> list[tuple[float, float]]:
    """Intersection points of two circles: none, one (touching) or two."""
    d = math.hypot(x1 - x2, y1 - y2)
    if d > r1 + r2:
        return []
    if d < abs(r1 - r2):
        return []

    a = (square(r1) - square(r2) + square(d)) / (2.0 * d)
    h = math.sqrt(max(square(r1) - square(a), 0.0))

    x3 = x1 + a * (x2 - x1) / d
    y3 = y1 + a * (y2 - y1) / d

    if h < 1e-10:
        return [(x3, y3)]

    return [
        (x3 + h * (y2 - y1) / d, y3 - h * (x2 - x1) / d),
        (x3 - h * (y2 - y1) / d, y3 + h * (x2 - x1) / d),
    ]


def timestamp_diff(t1: int, t2: int) -> int:
    """Signed difference ``t2 - t1`` of unsigned timestamps, saturated to 64 bits."""
    if t2 > t1:
        d = t2 - t1
        return _LONG_MAX if d > _LONG_MAX else d
    d = t1 - t2
    return _LONG_MIN if d > _LONG_MAX else -d


def rotate_point(q: Sequence[float], point: Sequence[float]) -> np.ndarray:
    """Rotate a 3D point by quaternion ``q`` given as ``(w, x, y, z)``.

    The quaternion need not be of unit length; it is normalised first.
    """
    q = np.asarray(q, dtype=float)
    p = np.asarray(point, dtype=float)
    norm = math.sqrt(float(q @ q))
    if norm == 0.0:
        raise ValueError("cannot rotate by a zero quaternion")
    a, b, c, d = q / norm

    t2 = a * b
    t3 = a * c
    t4 = a * d
    t5 = -b * b
    t6 = b * c
    t7 = b * d
    t8 = -c * c
    t9 = c * d
    t1 = -d * d

    return np.array(
        [
            2.0 * ((t8 + t1) * p[0] + (t6 - t4) * p[1] + (t3 + t7) * p[2]) + p[0],
            2.0 * ((t4 + t6) * p[0] + (t5 + t1) * p[1] + (t9 - t2) * p[2]) + p[1],
            2.0 * ((t7 - t3) * p[0] + (t2 + t9) * p[1] + (t5 + t8) * p[2]) + p[2],
        ]
    )