"""Radial projection polynomial of the Kannala-Brandt (equidistant) model."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

_TOL = 1e-10


def radial_distance(k2, k3, k4, k5, theta):
    """Image-plane radius for incidence angle ``theta`` (k1 fixed at 1)."""
    return (
        theta
        + k2 * theta**3
        + k3 * theta**5
        + k4 * theta**7
        + k5 * theta**9
    )


def backproject_symmetric(
    k2: float, k3: float, k4: float, k5: float, p_u: Sequence[float]
) -> tuple[float, float]:
    """Invert the radial polynomial for a normalised point.

    Returns ``(theta, phi)``: the incidence angle and the azimuth of ``p_u``.
    The smallest non-negative real root of the polynomial is taken as theta;
    where there is none, theta falls back to the radius of ``p_u``.
    """
    ux, uy = float(p_u[0]), float(p_u[1])
    p_u_norm = math.hypot(ux, uy)
    phi = 0.0 if p_u_norm < _TOL else math.atan2(uy, ux)

    npow = 9 - 2 * sum(1 for k in (k5, k4, k3, k2) if k == 0.0)

    if npow == 1:
        return p_u_norm, phi

    coeffs = np.zeros(npow + 1)
    coeffs[0] = -p_u_norm
    coeffs[1] = 1.0
    for power, k in ((3, k2), (5, k3), (7, k4), (9, k5)):
        if npow >= power:
            coeffs[power] = k

    # Roots of the polynomial are the eigenvalues of its companion matrix.
    companion = np.zeros((npow, npow))
    companion[1:, : npow - 1] = np.eye(npow - 1)
    with np.errstate(divide="ignore", invalid="ignore"):
        companion[:, npow - 1] = -coeffs[:npow] / coeffs[npow]

    if not np.all(np.isfinite(companion)):
        return p_u_norm, phi

    thetas = []
    for root in np.linalg.eigvals(companion):
        if abs(root.imag) > _TOL:
            continue
        t = float(root.real)
        if t < -_TOL:
            continue
        thetas.append(max(t, 0.0))

    theta = min(thetas) if thetas else p_u_norm
    return theta, phi


def fit_odd_poly(x: Sequence[float], y: Sequence[float], n: int) -> list[float]:
    """Least-squares fit of ``y`` by odd powers ``1, 3, ..., <= n`` of ``x``.

    Returns the coefficients in order of increasing power.
    """
    pows = list(range(1, n + 1, 2))
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float).reshape(-1, 1)
    design = np.column_stack([xs**p for p in pows]) if pows else np.zeros((len(xs), 0))
    solution = np.linalg.inv(design.T @ design) @ design.T @ ys
    return [float(v) for v in solution[:, 0]]