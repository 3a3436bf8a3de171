"""Pinhole camera model with radial-tangential distortion."""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
import yaml

from camodels.mathutils import rotate_point

MODEL_TYPE = "PINHOLE"
_PARAMETER_COUNT = 8
_UNDISTORT_ITERATIONS = 8


def _load_opencv_yaml(filename) -> dict[str, Any]:
    """Read a YAML file as written by OpenCV's file storage."""
    with open(filename, encoding="utf-8") as fh:
        lines = fh.read().splitlines()
    if lines and lines[0].startswith("%YAML:"):
        lines = lines[1:]
    data = yaml.safe_load("\n".join(lines))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{filename}: expected a mapping at the top level")
    return data


def _dump_opencv_yaml(filename, data: dict[str, Any]) -> None:
    with open(filename, "w", encoding="utf-8") as fh:
        fh.write("%YAML:1.0\n---\n")
        yaml.safe_dump(data, fh, sort_keys=False, default_flow_style=False)


def _number(node: Any, key: str) -> float:
    if isinstance(node, dict) and node.get(key) is not None:
        return float(node[key])
    return 0.0


@dataclass(frozen=True)
class PinholeParameters:
    """Intrinsics of a pinhole camera: distortion k1, k2, p1, p2 and projection."""

    camera_name: str = ""
    image_width: int = 0
    image_height: int = 0
    k1: float = 0.0
    k2: float = 0.0
    p1: float = 0.0
    p2: float = 0.0
    fx: float = 0.0
    fy: float = 0.0
    cx: float = 0.0
    cy: float = 0.0

    @property
    def model_type(self) -> str:
        return MODEL_TYPE

    @classmethod
    def from_yaml(cls, filename) -> "PinholeParameters":
        """Load parameters from a calibration file.

        Raises ``ValueError`` when the file names another camera model.
        """
        data = _load_opencv_yaml(filename)
        model = data.get("model_type")
        if model is not None and str(model) != MODEL_TYPE:
            raise ValueError(f"{filename}: model type {model!r} is not {MODEL_TYPE}")

        name = data.get("camera_name")
        dist = data.get("distortion_parameters")
        proj = data.get("projection_parameters")
        return cls(
            camera_name="" if name is None else str(name),
            image_width=int(data.get("image_width") or 0),
            image_height=int(data.get("image_height") or 0),
            k1=_number(dist, "k1"),
            k2=_number(dist, "k2"),
            p1=_number(dist, "p1"),
            p2=_number(dist, "p2"),
            fx=_number(proj, "fx"),
            fy=_number(proj, "fy"),
            cx=_number(proj, "cx"),
            cy=_number(proj, "cy"),
        )

    def to_yaml(self, filename) -> None:
        """Write the parameters as a calibration file."""
        _dump_opencv_yaml(
            filename,
            {
                "model_type": MODEL_TYPE,
                "camera_name": self.camera_name,
                "image_width": int(self.image_width),
                "image_height": int(self.image_height),
                "distortion_parameters": {
                    "k1": float(self.k1),
                    "k2": float(self.k2),
                    "p1": float(self.p1),
                    "p2": float(self.p2),
                },
                "projection_parameters": {
                    "fx": float(self.fx),
                    "fy": float(self.fy),
                    "cx": float(self.cx),
                    "cy": float(self.cy),
                },
            },
        )

    def __str__(self) -> str:
        lines = [
            "Camera Parameters:",
            f"    model_type {MODEL_TYPE}",
            f"   camera_name {self.camera_name}",
            f"   image_width {self.image_width}",
            f"  image_height {self.image_height}",
            "Distortion Parameters",
            f"            k1 {self.k1:g}",
            f"            k2 {self.k2:g}",
            f"            p1 {self.p1:g}",
            f"            p2 {self.p2:g}",
            "Projection Parameters",
            f"            fx {self.fx:g}",
            f"            fy {self.fy:g}",
            f"            cx {self.cx:g}",
            f"            cy {self.cy:g}",
        ]
        return "\n".join(lines) + "\n"


class PinholeCamera:
    """Projection and back-projection through a distorted pinhole camera."""

    def __init__(self, parameters: PinholeParameters | None = None):
        if parameters is None:
            self._params = PinholeParameters()
            self._no_distortion = True
            self._inv_k = (1.0, 0.0, 1.0, 0.0)
        else:
            self.parameters = parameters

    @property
    def parameters(self) -> PinholeParameters:
        return self._params

    @parameters.setter
    def parameters(self, parameters: PinholeParameters) -> None:
        if parameters.fx == 0.0 or parameters.fy == 0.0:
            raise ValueError("focal lengths must be non-zero")
        self._params = parameters
        self._no_distortion = (
            parameters.k1 == 0.0
            and parameters.k2 == 0.0
            and parameters.p1 == 0.0
            and parameters.p2 == 0.0
        )
        self._inv_k = (
            1.0 / parameters.fx,
            -parameters.cx / parameters.fx,
            1.0 / parameters.fy,
            -parameters.cy / parameters.fy,
        )

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

    def _distort(self, x, y):
        """Distortion offset for normalised coordinates (scalars or arrays)."""
        prm = self._params
        mx2 = x * x
        my2 = y * y
        mxy = x * y
        rho2 = mx2 + my2
        rad = prm.k1 * rho2 + prm.k2 * rho2 * rho2
        dx = x * rad + 2.0 * prm.p1 * mxy + prm.p2 * (rho2 + 2.0 * mx2)
        dy = y * rad + 2.0 * prm.p2 * mxy + prm.p1 * (rho2 + 2.0 * my2)
        return dx, dy

    def _normalised_to_plane(self, x, y):
        if not self._no_distortion:
            dx, dy = self._distort(x, y)
            x = x + dx
            y = y + dy
        prm = self._params
        return prm.fx * x + prm.cx, prm.fy * y + prm.cy

    def lift_sphere(self, p: Sequence[float]) -> np.ndarray:
        """Lift an image point onto the unit sphere."""
        P = self.lift_projective(p)
        return P / np.linalg.norm(P)

    def lift_projective(self, p: Sequence[float]) -> np.ndarray:
        """Lift an image point to its projective ray ``(x, y, 1)``."""
        k11, k13, k22, k23 = self._inv_k
        mx_d = k11 * float(p[0]) + k13
        my_d = k22 * float(p[1]) + k23

        if self._no_distortion:
            mx_u, my_u = mx_d, my_d
        else:
            mx_u, my_u = mx_d, my_d
            for _ in range(_UNDISTORT_ITERATIONS):
                dx, dy = self._distort(mx_u, my_u)
                mx_u = mx_d - dx
                my_u = my_d - dy

        return np.array([mx_u, my_u, 1.0])

    def space_to_plane(self, P: Sequence[float]) -> np.ndarray:
        """Project a 3D point in camera coordinates to the image plane."""
        x, y, z = (float(v) for v in P)
        u, v = self._normalised_to_plane(x / z, y / z)
        return np.array([u, v])

    def undist_to_plane(self, p_u: Sequence[float]) -> np.ndarray:
        """Project an undistorted normalised point to the image plane."""
        u, v = self._normalised_to_plane(float(p_u[0]), float(p_u[1]))
        return np.array([u, v])

    def distortion(self, p_u: Sequence[float]) -> np.ndarray:
        """Distortion offset ``d_u`` such that the distorted point is ``p_u + d_u``."""
        dx, dy = self._distort(float(p_u[0]), float(p_u[1]))
        return np.array([dx, dy])

    def distortion_jacobian(self, p_u: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
        """Distortion offset and the Jacobian of the distorted point w.r.t. ``p_u``."""
        prm = self._params
        x, y = float(p_u[0]), float(p_u[1])
        dx, dy = self._distort(x, y)

        mx2 = x * x
        my2 = y * y
        rho2 = mx2 + my2
        rad = prm.k1 * rho2 + prm.k2 * rho2 * rho2

        dxdmx = (
            1.0 + rad + prm.k1 * 2.0 * mx2 + prm.k2 * rho2 * 4.0 * mx2
            + 2.0 * prm.p1 * y + 6.0 * prm.p2 * x
        )
        dydmx = (
            prm.k1 * 2.0 * x * y + prm.k2 * 4.0 * rho2 * x * y
            + prm.p1 * 2.0 * x + 2.0 * prm.p2 * y
        )
        dxdmy = dydmx
        dydmy = (
            1.0 + rad + prm.k1 * 2.0 * my2 + prm.k2 * rho2 * 4.0 * my2
            + 6.0 * prm.p1 * y + 2.0 * prm.p2 * x
        )
        jacobian = np.array([[dxdmx, dxdmy], [dydmx, dydmy]])
        return np.array([dx, dy]), jacobian

    def init_undistort_map(self, f_scale: float = 1.0) -> tuple[np.ndarray, np.ndarray]:
        """Lookup maps from an undistorted image to the distorted source image."""
        k11, k13, k22, k23 = self._inv_k
        width, height = self._params.image_width, self._params.image_height
        v, u = np.mgrid[0:height, 0:width].astype(float)
        mx_u = k11 / f_scale * u + k13 / f_scale
        my_u = k22 / f_scale * v + k23 / f_scale
        map_x, map_y = self._normalised_to_plane(mx_u, my_u)
        return map_x.astype(np.float32), map_y.astype(np.float32)

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

        ``image_size`` is ``(width, height)``; the camera's own size is used when
        it is missing or ``(0, 0)``. Returns ``(map_x, map_y, K_rect)``.
        """
        if image_size is None or tuple(image_size) == (0, 0):
            image_size = (self._params.image_width, self._params.image_height)
        width, height = int(image_size[0]), int(image_size[1])

        R = np.eye(3, dtype=np.float32) if rmat is None else np.asarray(rmat, dtype=np.float32)
        R_inv = np.linalg.inv(R)

        if cx == -1.0 or cy == -1.0:
            k_cx, k_cy = width // 2, height // 2
        else:
            k_cx, k_cy = cx, cy
        K_rect = np.array(
            [[fx, 0.0, k_cx], [0.0, fy, k_cy], [0.0, 0.0, 1.0]], dtype=np.float32
        )
        if fx == -1.0 or fy == -1.0:
            K_rect[0, 0] = self._params.fx
            K_rect[1, 1] = self._params.fy

        K_rect_inv = np.linalg.inv(K_rect)

        v, u = np.mgrid[0:height, 0:width]
        xo = np.stack(
            [u.ravel(), v.ravel(), np.ones(u.size)]
        ).astype(np.float32)
        uo = ((R_inv @ K_rect_inv) @ xo).astype(float)

        map_x, map_y = self._normalised_to_plane(uo[0] / uo[2], uo[1] / uo[2])
        return (
            map_x.reshape(height, width).astype(np.float32),
            map_y.reshape(height, width).astype(np.float32),
            K_rect,
        )

    def parameter_count(self) -> int:
        return _PARAMETER_COUNT

    def read_parameters(self, values: Sequence[float]) -> None:
        """Set the intrinsics from ``[k1, k2, p1, p2, fx, fy, cx, cy]``."""
        values = [float(v) for v in values]
        if len(values) != self.parameter_count():
            raise ValueError(
                f"expected {self.parameter_count()} parameters, got {len(values)}"
            )
        k1, k2, p1, p2, fx, fy, cx, cy = values
        self.parameters = dataclasses.replace(
            self._params, k1=k1, k2=k2, p1=p1, p2=p2, fx=fx, fy=fy, cx=cx, cy=cy
        )

    def write_parameters(self) -> list[float]:
        """The intrinsics as ``[k1, k2, p1, p2, fx, fy, cx, cy]``."""
        prm = self._params
        return [prm.k1, prm.k2, prm.p1, prm.p2, prm.fx, prm.fy, prm.cx, prm.cy]

    def write_parameters_to_yaml_file(self, filename) -> None:
        self._params.to_yaml(filename)

    def parameters_to_string(self) -> str:
        return str(self._params)

    @staticmethod
    def project(params: Sequence[float], q: Sequence[float], t: Sequence[float], P: Sequence[float]) -> np.ndarray:
        """Project world point ``P`` given intrinsics and pose.

        ``params`` is ``[k1, k2, p1, p2, fx, fy, cx, cy]``, ``q`` the rotation as
        ``(x, y, z, w)`` and ``t`` the translation.
        """
        k1, k2, p1, p2, fx, fy, cx, cy = (float(v) for v in params)
        alpha = 0.0
        P_c = rotate_point((q[3], q[0], q[1], q[2]), P) + np.asarray(t, dtype=float)

        u = P_c[0] / P_c[2]
        v = P_c[1] / P_c[2]
        rho_sqr = u * u + v * v
        L = 1.0 + k1 * rho_sqr + k2 * rho_sqr * rho_sqr
        du = 2.0 * p1 * u * v + p2 * (rho_sqr + 2.0 * u * u)
        dv = p1 * (rho_sqr + 2.0 * v * v) + 2.0 * p2 * u * v

        u = L * u + du
        v = L * v + dv
        return np.array([fx * (u + alpha * v) + cx, fy * v + cy])