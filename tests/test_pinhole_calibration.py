import math

import numpy as np
import pytest

from camodels.pinhole import PinholeCamera, PinholeParameters
from camodels.pinhole_calibration import estimate_pinhole_intrinsics, find_homography


def _apply(H, pts):
    out = []
    for x, y in pts:
        w = H[2, 0] * x + H[2, 1] * y + H[2, 2]
        out.append(
            (
                (H[0, 0] * x + H[0, 1] * y + H[0, 2]) / w,
                (H[1, 0] * x + H[1, 1] * y + H[1, 2]) / w,
            )
        )
    return out


def _quat(axis, angle):
    axis = np.asarray(axis, dtype=float)
    axis = axis / np.linalg.norm(axis)
    s = math.sin(angle / 2.0)
    return [axis[0] * s, axis[1] * s, axis[2] * s, math.cos(angle / 2.0)]


def _board():
    return [
        (x, y, 0.0)
        for y in np.linspace(-0.1, 0.1, 4)
        for x in np.linspace(-0.1, 0.1, 5)
    ]


def _views(true_params):
    poses = [
        (_quat((1, 0, 0), 0.5), [0.0, 0.0, 1.0]),
        (_quat((0, 1, 0), 0.4), [0.05, -0.02, 1.2]),
        (_quat((1, 1, 0), 0.6), [-0.03, 0.04, 1.1]),
    ]
    board = _board()
    objects, images = [], []
    for q, t in poses:
        objects.append(board)
        images.append([tuple(PinholeCamera.project(true_params, q, t, P)) for P in board])
    return objects, images


def test_find_homography_recovers_known_mapping():
    H_true = np.array([[1.2, 0.1, 5.0], [-0.05, 0.9, 3.0], [0.001, 0.002, 1.0]])
    src = [(x, y) for x in range(0, 50, 10) for y in range(0, 40, 10)]
    dst = _apply(H_true, src)
    H = find_homography(src, dst)
    np.testing.assert_allclose(H, H_true, rtol=1e-7, atol=1e-9)


def test_find_homography_maps_points_onto_targets():
    src = [(0, 0), (1, 0), (1, 1), (0, 1), (0.5, 0.3)]
    dst = [(10, 20), (30, 22), (31, 40), (9, 41), (20, 28)]
    H = find_homography(src, dst)
    assert H[2, 2] == pytest.approx(1.0)
    mapped = _apply(H, src[:4])
    np.testing.assert_allclose(mapped, dst[:4], atol=1e-6)


def test_find_homography_needs_four_points():
    with pytest.raises(ValueError):
        find_homography([(0, 0), (1, 0), (0, 1)], [(0, 0), (1, 0), (0, 1)])


def test_find_homography_rejects_mismatched_counts():
    with pytest.raises(ValueError):
        find_homography([(0, 0), (1, 0), (0, 1), (1, 1)], [(0, 0), (1, 0), (0, 1)])


def test_estimate_recovers_focal_lengths():
    true_params = [0.0, 0.0, 0.0, 0.0, 500.0, 450.0, 320.0, 240.0]
    objects, images = _views(true_params)
    camera = PinholeCamera(
        PinholeParameters(
            camera_name="cam", image_width=640, image_height=480,
            k1=0.1, p2=0.01, fx=1.0, fy=1.0,
        )
    )
    result = estimate_pinhole_intrinsics(camera, (5, 4), objects, images)
    assert result.fx == pytest.approx(500.0, rel=1e-5)
    assert result.fy == pytest.approx(450.0, rel=1e-5)
    assert camera.parameters == result


def test_estimate_resets_distortion_and_centre():
    true_params = [0.0, 0.0, 0.0, 0.0, 500.0, 450.0, 320.0, 240.0]
    objects, images = _views(true_params)
    camera = PinholeCamera(
        PinholeParameters(image_width=640, image_height=480, k1=0.2, k2=-0.1, fx=7.0, fy=7.0)
    )
    result = estimate_pinhole_intrinsics(camera, (5, 4), objects, images)
    assert (result.k1, result.k2, result.p1, result.p2) == (0.0, 0.0, 0.0, 0.0)
    assert (result.cx, result.cy) == (320.0, 240.0)
    assert result.image_width == 640


def test_estimate_rejects_mismatched_views():
    camera = PinholeCamera(PinholeParameters(image_width=640, image_height=480, fx=1.0, fy=1.0))
    with pytest.raises(ValueError):
        estimate_pinhole_intrinsics(camera, (5, 4), [_board()], [])


def test_estimate_rejects_no_views():
    camera = PinholeCamera(PinholeParameters(image_width=640, image_height=480, fx=1.0, fy=1.0))
    with pytest.raises(ValueError):
        estimate_pinhole_intrinsics(camera, (5, 4), [], [])