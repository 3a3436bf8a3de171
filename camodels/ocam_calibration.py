"""Closed-form initial estimate of omnidirectional (Scaramuzza) intrinsics."""

from __future__ import annotations

import dataclasses
from typing import Sequence

import numpy as np

from camodels.scaramuzza import SCARAMUZZA_POLY_SIZE, OCAMCamera, OCAMParameters

_INV_POLY_FIT_ORDER = 4
_INV_POLY_SAMPLE_STEP = 0.1


def polyfit(x: Sequence[float], y: Sequence[float], poly_order: int) -> np.ndarray:
    """Least-squares polynomial fit of ``y`` against ``x``.

    Returns ``poly_order + 1`` coefficients in order of increasing power.
    Raises ``ValueError`` for a non-positive order, sequences of unequal
    length, or too few samples for the order.
    """
    xs = np.asarray(x, dtype=float).ravel()
    ys = np.asarray(y, dtype=float).ravel()
    if poly_order <= 0:
        raise ValueError("polynomial order must be positive")
    if xs.size != ys.size:
        raise ValueError("x and y differ in length")
    if xs.size <= poly_order:
        raise ValueError(
            f"{xs.size} samples are too few for a polynomial of order {poly_order}"
        )
    design = np.vander(xs, poly_order + 1, increasing=True)
    coeffs, *_ = np.linalg.lstsq(design, ys, rcond=None)
    return coeffs


def _object_points(points) -> np.ndarray:
    arr = np.asarray(points, dtype=float)
    if arr.ndim != 2 or arr.shape[1] not in (2, 3):
        raise ValueError("object points must be a list of 2D or 3D points")
    if arr.shape[1] == 2:
        arr = np.column_stack([arr, np.zeros(len(arr))])
    return arr


def _constraint_terms(r: np.ndarray, t: Sequence[float], plane: np.ndarray, img: np.ndarray):
    """Coefficients of the two projection constraints of each target corner."""
    X, Y = plane[:, 0], plane[:, 1]
    u, v = img[:, 0], img[:, 1]
    third = r[2, 0] * X + r[2, 1] * Y
    A = r[1, 0] * X + r[1, 1] * Y + t[1]
    B = v * third
    C = r[0, 0] * X + r[0, 1] * Y + t[0]
    D = u * third
    rou = np.hypot(u, v)
    return A, B, C, D, rou


def _candidate_transforms(plane: np.ndarray, img: np.ndarray) -> list[np.ndarray]:
    """The four sign-ambiguous ``[r1 r2 t]`` matrices consistent with one view."""
    X, Y = plane[:, 0], plane[:, 1]
    u, v = img[:, 0], img[:, 1]
    M = np.column_stack([-v * X, -v * Y, u * X, u * Y, -v, u])
    _, _, vt = np.linalg.svd(M, full_matrices=True)
    h = -vt[5]

    sr11, sr12, sr21, sr22, st1, st2 = h
    dot = sr11 * sr12 + sr21 * sr22
    aa = dot * dot
    bb = sr11 * sr11 + sr21 * sr21
    cc = sr12 * sr12 + sr22 * sr22

    disc = np.sqrt((cc - bb) ** 2 + 4.0 * aa)
    squared = [s for s in ((-(cc - bb) + disc) / 2.0, (-(cc - bb) - disc) / 2.0) if s > 0]
    if not squared:
        raise ValueError("view does not determine the target orientation")

    transforms = []
    for sr32_squared in squared:
        for sign in (-1.0, 1.0):
            sr32 = sign * np.sqrt(sr32_squared)
            sr31 = -dot / sr32
            lam = 1.0 / np.sqrt(sr11 * sr11 + sr21 * sr21 + sr31 * sr31)
            H = np.array(
                [[sr11, sr12, st1], [sr21, sr22, st2], [sr31, sr32, 0.0]]
            )
            transforms.append(lam * H)
            transforms.append(-lam * H)
    return transforms


def _estimate_extrinsics(plane: np.ndarray, img: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Rotation and (partial) translation of one view of the planar target."""
    candidates = []
    for H in _candidate_transforms(plane, img):
        A, B, C, D, rou = _constraint_terms(H, H[:, 2], plane, img)
        mat = np.empty((2 * len(plane), 4))
        rhs = np.empty(2 * len(plane))
        mat[0::2] = np.column_stack([A, A * rou, A * rou * rou, -img[:, 1]])
        mat[1::2] = np.column_stack([C, C * rou, C * rou * rou, -img[:, 0]])
        rhs[0::2] = B
        rhs[1::2] = D
        x, *_ = np.linalg.lstsq(mat, rhs, rcond=None)
        if x[2] > 0 and x[3] > 0:
            candidates.append(H)

    if len(candidates) != 1:
        raise ValueError(
            f"expected one consistent target pose, found {len(candidates)}"
        )

    H = candidates[0]
    R = np.column_stack([H[:, 0], H[:, 1], np.cross(H[:, 0], H[:, 1])])
    return R, H[:, 2].copy()


def _estimate_poly(views, rotations, translations) -> list[float]:
    """Solve for the projection polynomial and every view's depth offset."""
    n_views = len(views)
    n_points = len(views[0][0])
    n_poly = SCARAMUZZA_POLY_SIZE - 1

    mat = np.zeros((2 * n_views * n_points, n_poly + n_views))
    rhs = np.zeros(2 * n_views * n_points)

    for i, ((plane, img), R, T) in enumerate(zip(views, rotations, translations)):
        A, B, C, D, rou = _constraint_terms(R, T, plane, img)
        powers = np.column_stack(
            [np.ones_like(rou)] + [rou**k for k in range(2, SCARAMUZZA_POLY_SIZE)]
        )
        rows = slice(2 * i * n_points, 2 * (i + 1) * n_points)
        block = mat[rows]
        block[0::2, :n_poly] = A[:, None] * powers
        block[1::2, :n_poly] = C[:, None] * powers
        block[0::2, n_poly + i] = -img[:, 1]
        block[1::2, n_poly + i] = -img[:, 0]
        target = rhs[rows]
        target[0::2] = B
        target[1::2] = D

    x, *_ = np.linalg.lstsq(mat, rhs, rcond=None)
    return [float(x[0]), 0.0] + [float(v) for v in x[1:n_poly]]


def _fit_inverse_poly(poly: Sequence[float], width: int, height: int) -> np.ndarray:
    """Fit image radius as a polynomial of the ray's elevation angle."""
    limit = int((width + height) / 2)
    samples = []
    rou = 0.0
    while rou <= limit:
        samples.append(rou)
        rou += _INV_POLY_SAMPLE_STEP
    rous = np.asarray(samples)
    z = sum(coeff * rous**k for k, coeff in enumerate(poly))
    thetas = np.arctan2(-z, rous)
    # A low order keeps the fit from chasing noise in the forward polynomial.
    return polyfit(thetas, rous, _INV_POLY_FIT_ORDER)


def estimate_ocam_intrinsics(
    camera: OCAMCamera,
    board_size,
    object_points: Sequence[Sequence[Sequence[float]]],
    image_points: Sequence[Sequence[Sequence[float]]],
) -> OCAMParameters:
    """Estimate the projection polynomial from views of a planar target.

    ``board_size`` is ``(columns, rows)`` of target corners. Each view's
    object points must lie in the plane z = 0. The affine part is reset to
    identity and the centre to the middle of the image; the inverse
    polynomial's leading coefficients are refitted. The camera is updated and
    its new parameters are returned.
    """
    if len(object_points) != len(image_points):
        raise ValueError("object and image point lists differ in length")
    if not image_points:
        raise ValueError("no views given")

    board_w, board_h = (int(v) for v in board_size)
    expected = board_w * board_h

    views = []
    for obj, img in zip(object_points, image_points):
        obj_arr = _object_points(obj)
        img_arr = np.asarray(img, dtype=float).reshape(-1, 2)
        if len(obj_arr) != len(img_arr):
            raise ValueError("a view has different numbers of object and image points")
        if len(obj_arr) != expected:
            raise ValueError(
                f"a view has {len(obj_arr)} points, the board has {expected}"
            )
        if np.any(obj_arr[:, 2] != 0.0):
            raise ValueError("object points must lie in the plane z = 0")
        views.append((obj_arr[:, :2], img_arr))

    extrinsics = [_estimate_extrinsics(plane, img) for plane, img in views]
    rotations = [R for R, _ in extrinsics]
    translations = [T for _, T in extrinsics]
    poly = _estimate_poly(views, rotations, translations)

    params = camera.parameters
    width, height = params.image_width, params.image_height
    inv = [float(v) for v in _fit_inverse_poly(poly, width, height)]
    inv_poly = tuple(inv) + tuple(params.inv_poly[len(inv):])

    new_params = dataclasses.replace(
        params,
        c=1.0,
        d=0.0,
        e=0.0,
        center_x=width / 2.0,
        center_y=height / 2.0,
        poly=tuple(poly),
        inv_poly=inv_poly,
    )
    camera.parameters = new_params
    return new_params