"""Closed-form initial estimate of pinhole intrinsics from planar targets."""

from __future__ import annotations

import dataclasses
import math
from typing import Sequence

import numpy as np

from camodels.pinhole import PinholeCamera, PinholeParameters


def _normalising_transform(points: np.ndarray) -> np.ndarray:
    """Similarity moving the centroid to the origin with mean distance sqrt(2)."""
    centroid = points.mean(axis=0)
    mean_dist = np.mean(np.linalg.norm(points - centroid, axis=1))
    if mean_dist == 0.0:
        raise ValueError("points are all identical")
    s = math.sqrt(2.0) / mean_dist
    return np.array(
        [[s, 0.0, -s * centroid[0]], [0.0, s, -s * centroid[1]], [0.0, 0.0, 1.0]]
    )


def find_homography(
    src_points: Sequence[Sequence[float]], dst_points: Sequence[Sequence[float]]
) -> np.ndarray:
    """Least-squares homography mapping ``src_points`` onto ``dst_points``.

    Uses the normalised direct linear transform over all point pairs. The
    result is scaled so that its bottom-right element is 1 where possible.
    """
    src = np.asarray(src_points, dtype=float).reshape(-1, 2)
    dst = np.asarray(dst_points, dtype=float).reshape(-1, 2)
    if len(src) != len(dst):
        raise ValueError("source and destination point counts differ")
    if len(src) < 4:
        raise ValueError("at least 4 point pairs are needed for a homography")

    t_src = _normalising_transform(src)
    t_dst = _normalising_transform(dst)
    src_h = np.column_stack([src, np.ones(len(src))]) @ t_src.T
    dst_h = np.column_stack([dst, np.ones(len(dst))]) @ t_dst.T

    rows = []
    for (x, y, _), (u, v, _) in zip(src_h, dst_h):
        rows.append([-x, -y, -1.0, 0.0, 0.0, 0.0, u * x, u * y, u])
        rows.append([0.0, 0.0, 0.0, -x, -y, -1.0, v * x, v * y, v])
    _, _, vt = np.linalg.svd(np.asarray(rows))
    h_norm = vt[-1].reshape(3, 3)

    H = np.linalg.inv(t_dst) @ h_norm @ t_src
    if abs(H[2, 2]) > np.finfo(float).eps:
        H = H / H[2, 2]
    return H


def estimate_pinhole_intrinsics(
    camera: PinholeCamera,
    board_size,
    object_points: Sequence[Sequence[Sequence[float]]],
    image_points: Sequence[Sequence[Sequence[float]]],
) -> PinholeParameters:
    """Estimate focal lengths from views of a planar target.

    Distortion is reset to zero and the principal point to the image centre;
    the focal lengths follow from the orthogonality of the target axes in
    each view's homography. The camera is updated and its new parameters are
    returned. ``board_size`` is accepted for interface symmetry and unused.
    """
    if len(object_points) != len(image_points):
        raise ValueError("object and image point lists differ in length")
    if not object_points:
        raise ValueError("no views given")

    params = camera.parameters
    cx = params.image_width / 2.0
    cy = params.image_height / 2.0

    rows_a: list[list[float]] = []
    rows_b: list[float] = []
    for obj, img in zip(object_points, image_points):
        plane = [(float(p[0]), float(p[1])) for p in obj]
        H = find_homography(plane, img)

        H[0] -= H[2] * cx
        H[1] -= H[2] * cy

        h = H[:, 0].copy()
        v = H[:, 1].copy()
        d1 = (h + v) * 0.5
        d2 = (h - v) * 0.5
        h /= np.linalg.norm(h)
        v /= np.linalg.norm(v)
        d1 /= np.linalg.norm(d1)
        d2 /= np.linalg.norm(d2)

        rows_a.append([h[0] * v[0], h[1] * v[1]])
        rows_a.append([d1[0] * d2[0], d1[1] * d2[1]])
        rows_b.append(-h[2] * v[2])
        rows_b.append(-d1[2] * d2[2])

    A = np.asarray(rows_a)
    b = np.asarray(rows_b)
    try:
        f = np.linalg.solve(A.T @ A, A.T @ b)
    except np.linalg.LinAlgError as exc:
        raise ValueError("views do not constrain the focal lengths") from exc
    if f[0] == 0.0 or f[1] == 0.0:
        raise ValueError("views do not constrain the focal lengths")

    new_params = dataclasses.replace(
        params,
        k1=0.0,
        k2=0.0,
        p1=0.0,
        p2=0.0,
        cx=cx,
        cy=cy,
        fx=math.sqrt(abs(1.0 / f[0])),
        fy=math.sqrt(abs(1.0 / f[1])),
    )
    camera.parameters = new_params
    return new_params