"""Scaramuzza omnidirectional camera model (polynomial projection with affine skew)."""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from camodels.mathutils import rotate_point
from camodels.pinhole import _dump_opencv_yaml, _load_opencv_yaml, _number

MODEL_TYPE = "SCARAMUZZA"
_YAML_MODEL = "scaramuzza"

SCARAMUZZA_POLY_SIZE = 5
SCARAMUZZA_INV_POLY_SIZE = 20
SCARAMUZZA_CAMERA_NUM_PARAMS = SCARAMUZZA_POLY_SIZE + SCARAMUZZA_INV_POLY_SIZE + 2 + 3

_POLY_OFFSET = 5
_INV_POLY_OFFSET = _POLY_OFFSET + SCARAMUZZA_POLY_SIZE


def _coefficients(values: Sequence[float], size: int, what: str) -> tuple[float, ...]:
    coeffs = tuple(float(v) for v in values)
    if len(coeffs) > size:
        raise ValueError(f"{what} has {len(coeffs)} coefficients, at most {size} allowed")
    return coeffs + (0.0,) * (size - len(coeffs))


def _sphere_to_plane(c, d, e, center_x, center_y, inv_poly, x, y, z):
    """Map camera-frame coordinates (scalars or arrays) to pixels."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    z = np.asarray(z, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        norm = np.sqrt(x * x + y * y)
        theta = np.arctan2(-z, norm)
        rho = np.zeros_like(theta)
        theta_i = np.ones_like(theta)
        for coeff in inv_poly:
            rho = rho + theta_i * coeff
            theta_i = theta_i * theta
        inv_norm = 1.0 / norm
        xn0 = x * inv_norm * rho
        xn1 = y * inv_norm * rho
        return xn0 * c + xn1 * d + center_x, xn0 * e + xn1 + center_y


def _split_params(params: Sequence[float]):
    values = [float(v) for v in params]
    if len(values) != SCARAMUZZA_CAMERA_NUM_PARAMS:
        raise ValueError(
            f"expected {SCARAMUZZA_CAMERA_NUM_PARAMS} parameters, got {len(values)}"
        )
    c, d, e, center_x, center_y = values[:_POLY_OFFSET]
    poly = values[_POLY_OFFSET:_INV_POLY_OFFSET]
    inv_poly = values[_INV_POLY_OFFSET:]
    return c, d, e, center_x, center_y, poly, inv_poly


def _to_camera_frame(q, t, P) -> np.ndarray:
    return rotate_point((q[3], q[0], q[1], q[2]), P) + np.asarray(t, dtype=float)


@dataclass(frozen=True)
class OCAMParameters:
    """Intrinsics of an omnidirectional camera.

    ``poly`` maps image radius to the ray's z component, ``inv_poly`` maps the
    elevation angle back to image radius, and ``[[c, d], [e, 1]]`` is the
    affine skew about the image centre.
    """

    camera_name: str = ""
    image_width: int = 0
    image_height: int = 0
    poly: tuple[float, ...] = (0.0,) * SCARAMUZZA_POLY_SIZE
    inv_poly: tuple[float, ...] = (0.0,) * SCARAMUZZA_INV_POLY_SIZE
    c: float = 0.0
    d: float = 0.0
    e: float = 0.0
    center_x: float = 0.0
    center_y: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "poly", _coefficients(self.poly, SCARAMUZZA_POLY_SIZE, "poly")
        )
        object.__setattr__(
            self,
            "inv_poly",
            _coefficients(self.inv_poly, SCARAMUZZA_INV_POLY_SIZE, "inv_poly"),
        )

    @property
    def model_type(self) -> str:
        return MODEL_TYPE

    @classmethod
    def from_yaml(cls, filename) -> "OCAMParameters":
        """Load parameters from a calibration file.

        The model type is matched case-insensitively; ``ValueError`` is raised
        when the file names another camera model.
        """
        data = _load_opencv_yaml(filename)
        model = data.get("model_type")
        if model is not None and str(model).lower() != _YAML_MODEL:
            raise ValueError(f"{filename}: model type {model!r} is not {_YAML_MODEL}")

        name = data.get("camera_name")
        poly_node = data.get("poly_parameters")
        inv_node = data.get("inv_poly_parameters")
        affine = data.get("affine_parameters")
        return cls(
            camera_name="" if name is None else str(name),
            image_width=int(data.get("image_width") or 0),
            image_height=int(data.get("image_height") or 0),
            poly=tuple(_number(poly_node, f"p{i}") for i in range(SCARAMUZZA_POLY_SIZE)),
            inv_poly=tuple(
                _number(inv_node, f"p{i}") for i in range(SCARAMUZZA_INV_POLY_SIZE)
            ),
            c=_number(affine, "ac"),
            d=_number(affine, "ad"),
            e=_number(affine, "ae"),
            center_x=_number(affine, "cx"),
            center_y=_number(affine, "cy"),
        )

    def to_yaml(self, filename) -> None:
        """Write the parameters as a calibration file."""
        _dump_opencv_yaml(
            filename,
            {
                "model_type": _YAML_MODEL,
                "camera_name": self.camera_name,
                "image_width": int(self.image_width),
                "image_height": int(self.image_height),
                "poly_parameters": {f"p{i}": float(v) for i, v in enumerate(self.poly)},
                "inv_poly_parameters": {
                    f"p{i}": float(v) for i, v in enumerate(self.inv_poly)
                },
                "affine_parameters": {
                    "ac": float(self.c),
                    "ad": float(self.d),
                    "ae": float(self.e),
                    "cx": float(self.center_x),
                    "cy": float(self.center_y),
                },
            },
        )

    def __str__(self) -> str:
        lines = [
            "Camera Parameters:",
            f"    model_type {_YAML_MODEL}",
            f"   camera_name {self.camera_name}",
            f"   image_width {self.image_width}",
            f"  image_height {self.image_height}",
            "Poly Parameters",
        ]
        lines += [f"p{i}: {v:.10f}" for i, v in enumerate(self.poly)]
        lines.append("Inverse Poly Parameters")
        lines += [f"p{i}: {v:.10f}" for i, v in enumerate(self.inv_poly)]
        lines += [
            "Affine Parameters",
            f"            ac {self.c:.10f}",
            f"            ad {self.d:.10f}",
            f"            ae {self.e:.10f}",
            f"            cx {self.center_x:.10f}",
            f"            cy {self.center_y:.10f}",
        ]
        return "\n".join(lines) + "\n"


class OCAMCamera:
    """Projection and back-projection through an omnidirectional camera."""

    def __init__(self, parameters: OCAMParameters | None = None):
        if parameters is None:
            self._params = OCAMParameters()
            self._inv_scale = 0.0
        else:
            self.parameters = parameters

    @property
    def parameters(self) -> OCAMParameters:
        return self._params

    @parameters.setter
    def parameters(self, parameters: OCAMParameters) -> None:
        det = parameters.c - parameters.d * parameters.e
        if det == 0.0:
            raise ValueError("affine matrix [[c, d], [e, 1]] is singular")
        self._params = parameters
        self._inv_scale = 1.0 / det

    @property
    def model_type(self) -> str:
        return MODEL_TYPE

    @property
    def camera_name(self) -> str:
        return self._params.camera_name

    @property
    def image_width(self) -> int:
        return self._params.image_width

    @property
    def image_height(self) -> int:
        return self._params.image_height

    def _to_plane(self, x, y, z):
        prm = self._params
        return _sphere_to_plane(
            prm.c, prm.d, prm.e, prm.center_x, prm.center_y, prm.inv_poly, x, y, z
        )

    def lift_sphere(self, p: Sequence[float]) -> np.ndarray:
        """Lift an image point onto the unit sphere."""
        P = self.lift_projective(p)
        return P / np.linalg.norm(P)

    def lift_projective(self, p: Sequence[float]) -> np.ndarray:
        """Lift an image point to its projective ray."""
        prm = self._params
        xc0 = float(p[0]) - prm.center_x
        xc1 = float(p[1]) - prm.center_y

        xa0 = self._inv_scale * (xc0 - prm.d * xc1)
        xa1 = self._inv_scale * (-prm.e * xc0 + prm.c * xc1)

        phi = math.sqrt(xa0 * xa0 + xa1 * xa1)
        phi_i = 1.0
        z = 0.0
        for coeff in prm.poly:
            z += phi_i * coeff
            phi_i *= phi

        return np.array([xc0, xc1, -z])

    def space_to_plane(self, P: Sequence[float]) -> np.ndarray:
        """Project a 3D point in camera coordinates to the image plane."""
        x, y, z = (float(v) for v in P)
        u, v = self._to_plane(x, y, z)
        return np.array([float(u), float(v)])

    def undist_to_plane(self, p_u: Sequence[float]) -> np.ndarray:
        """Project the ray ``(p_u[0], p_u[1], 1)`` to the image plane."""
        return self.space_to_plane((float(p_u[0]), float(p_u[1]), 1.0))

    def init_undistort_rectify_map(
        self,
        fx: float = -1.0,
        fy: float = -1.0,
        image_size: tuple[int, int] | None = None,
        cx: float = -1.0,
        cy: float = -1.0,
        rmat=None,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Rectification maps and the rectified camera matrix.

        The focal lengths must be given. ``image_size`` is ``(width, height)``;
        the camera's own size is used when it is missing or ``(0, 0)``. A
        negative ``cx`` or ``cy`` places the principal point at the image centre.
        Returns ``(map_x, map_y, K_rect)``.
        """
        if image_size is None or tuple(image_size) == (0, 0):
            image_size = (self._params.image_width, self._params.image_height)
        width, height = int(image_size[0]), int(image_size[1])

        k_cx = width // 2 if cx < 0 else cx
        k_cy = height // 2 if cy < 0 else cy
        K_rect = np.array(
            [[fx, 0.0, k_cx], [0.0, fy, k_cy], [0.0, 0.0, 1.0]], dtype=np.float32
        )
        if fx < 0 or fy < 0:
            raise ValueError("focal length must be specified")

        K_rect_inv = np.linalg.inv(K_rect)
        R = np.eye(3, dtype=np.float32) if rmat is None else np.asarray(rmat, dtype=np.float32)
        R_inv = np.linalg.inv(R)

        v, u = np.mgrid[0:height, 0:width]
        xo = np.stack([u.ravel(), v.ravel(), np.ones(u.size)]).astype(np.float32)
        uo = ((R_inv @ K_rect_inv) @ xo).astype(float)

        map_x, map_y = self._to_plane(uo[0], uo[1], uo[2])
        return (
            map_x.reshape(height, width).astype(np.float32),
            map_y.reshape(height, width).astype(np.float32),
            K_rect,
        )

    def parameter_count(self) -> int:
        return SCARAMUZZA_CAMERA_NUM_PARAMS

    def read_parameters(self, values: Sequence[float]) -> None:
        """Set the intrinsics from ``[c, d, e, cx, cy, poly..., inv_poly...]``."""
        c, d, e, center_x, center_y, poly, inv_poly = _split_params(values)
        self.parameters = dataclasses.replace(
            self._params,
            c=c,
            d=d,
            e=e,
            center_x=center_x,
            center_y=center_y,
            poly=tuple(poly),
            inv_poly=tuple(inv_poly),
        )

    def write_parameters(self) -> list[float]:
        """The intrinsics as ``[c, d, e, cx, cy, poly..., inv_poly...]``."""
        prm = self._params
        return [prm.c, prm.d, prm.e, prm.center_x, prm.center_y, *prm.poly, *prm.inv_poly]

    def write_parameters_to_yaml_file(self, filename) -> None:
        self._params.to_yaml(filename)

    def parameters_to_string(self) -> str:
        return str(self._params)

    @staticmethod
    def project(
        params: Sequence[float], q: Sequence[float], t: Sequence[float], P: Sequence[float]
    ) -> np.ndarray:
        """Project world point ``P`` given the parameter vector and pose.

        ``q`` is the rotation as ``(x, y, z, w)`` and ``t`` the translation.
        """
        c, d, e, center_x, center_y, _, inv_poly = _split_params(params)
        P_c = _to_camera_frame(q, t, P)
        u, v = _sphere_to_plane(c, d, e, center_x, center_y, inv_poly, *P_c)
        return np.array([float(u), float(v)])

    @staticmethod
    def space_to_sphere(
        params: Sequence[float], q: Sequence[float], t: Sequence[float], P: Sequence[float]
    ) -> np.ndarray:
        """Transform world point ``P`` into the camera frame and onto the unit sphere."""
        _split_params(params)
        P_c = _to_camera_frame(q, t, P)
        norm_sqr = float(P_c @ P_c)
        norm = math.sqrt(norm_sqr) if norm_sqr > 0.0 else 0.0
        with np.errstate(divide="ignore", invalid="ignore"):
            return P_c / np.float64(norm)

    @staticmethod
    def lift_to_sphere(params: Sequence[float], p: Sequence[float]) -> np.ndarray:
        """Lift an image point onto the unit sphere, ignoring the linear poly term."""
        c, d, e, center_x, center_y, poly, _ = _split_params(params)
        xc0 = float(p[0]) - center_x
        xc1 = float(p[1]) - center_y

        inv_scale = 1.0 / (c - d * e)
        xa0 = inv_scale * (xc0 - d * xc1)
        xa1 = inv_scale * (-e * xc0 + c * xc1)

        phi = math.sqrt(xa0 * xa0 + xa1 * xa1)
        phi_i = 1.0
        z = 0.0
        for i, coeff in enumerate(poly):
            if i != 1:
                z += phi_i * coeff
            phi_i *= phi

        P = np.array([xc0, xc1, -z])
        return P / math.sqrt(float(P @ P))

    @staticmethod
    def sphere_to_plane(params: Sequence[float], P: Sequence[float]) -> np.ndarray:
        """Project a camera-frame point to the image plane."""
        c, d, e, center_x, center_y, _, inv_poly = _split_params(params)
        x, y, z = (float(v) for v in P)
        u, v = _sphere_to_plane(c, d, e, center_x, center_y, inv_poly, x, y, z)
        return np.array([float(u), float(v)])