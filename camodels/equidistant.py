"""Kannala-Brandt (equidistant) camera model for wide-angle and fish-eye lenses."""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from camodels.kannala_brandt import backproject_symmetric, radial_distance
from camodels.mathutils import rotate_point
from camodels.pinhole import _dump_opencv_yaml, _load_opencv_yaml, _number

MODEL_TYPE = "KANNALA_BRANDT"
_PARAMETER_COUNT = 8


@dataclass(frozen=True)
class EquidistantParameters:
    """Intrinsics of an equidistant camera: radial terms k2..k5 and projection."""

    camera_name: str = ""
    image_width: int = 0
    image_height: int = 0
    k2: float = 0.0
    k3: float = 0.0
    k4: float = 0.0
    k5: float = 0.0
    mu: float = 0.0
    mv: float = 0.0
    u0: float = 0.0
    v0: float = 0.0

    @property
    def model_type(self) -> str:
        return MODEL_TYPE

    @classmethod
    def from_yaml(cls, filename) -> "EquidistantParameters":
        """Load parameters from a calibration file.

        Raises ``ValueError`` when the file names another camera model.
        """
        data = _load_opencv_yaml(filename)
        model = data.get("model_type")
        if model is not None and str(model) != MODEL_TYPE:
            raise ValueError(f"{filename}: model type {model!r} is not {MODEL_TYPE}")

        name = data.get("camera_name")
        proj = data.get("projection_parameters")
        return cls(
            camera_name="" if name is None else str(name),
            image_width=int(data.get("image_width") or 0),
            image_height=int(data.get("image_height") or 0),
            k2=_number(proj, "k2"),
            k3=_number(proj, "k3"),
            k4=_number(proj, "k4"),
            k5=_number(proj, "k5"),
            mu=_number(proj, "mu"),
            mv=_number(proj, "mv"),
            u0=_number(proj, "u0"),
            v0=_number(proj, "v0"),
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
                "projection_parameters": {
                    "k2": float(self.k2),
                    "k3": float(self.k3),
                    "k4": float(self.k4),
                    "k5": float(self.k5),
                    "mu": float(self.mu),
                    "mv": float(self.mv),
                    "u0": float(self.u0),
                    "v0": float(self.v0),
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
            "Projection Parameters",
            f"            k2 {self.k2:g}",
            f"            k3 {self.k3:g}",
            f"            k4 {self.k4:g}",
            f"            k5 {self.k5:g}",
            f"            mu {self.mu:g}",
            f"            mv {self.mv:g}",
            f"            u0 {self.u0:g}",
            f"            v0 {self.v0:g}",
        ]
        return "\n".join(lines) + "\n"


class EquidistantCamera:
    """Projection and back-projection through a Kannala-Brandt camera."""

    def __init__(self, parameters: EquidistantParameters | None = None):
        if parameters is None:
            self._params = EquidistantParameters()
            self._inv_k = (1.0, 0.0, 1.0, 0.0)
        else:
            self.parameters = parameters

    @property
    def parameters(self) -> EquidistantParameters:
        return self._params

    @parameters.setter
    def parameters(self, parameters: EquidistantParameters) -> None:
        if parameters.mu == 0.0 or parameters.mv == 0.0:
            raise ValueError("focal lengths must be non-zero")
        self._params = parameters
        self._inv_k = (
            1.0 / parameters.mu,
            -parameters.u0 / parameters.mu,
            1.0 / parameters.mv,
            -parameters.v0 / parameters.mv,
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

    def _backproject(self, mx: float, my: float) -> tuple[float, float]:
        prm = self._params
        return backproject_symmetric(prm.k2, prm.k3, prm.k4, prm.k5, (mx, my))

    def _project_arrays(self, x, y, z):
        """Project camera-frame coordinates (scalars or arrays) to pixels."""
        prm = self._params
        norm = np.sqrt(x * x + y * y + z * z)
        theta = np.arccos(z / norm)
        phi = np.arctan2(y, x)
        r = radial_distance(prm.k2, prm.k3, prm.k4, prm.k5, theta)
        return prm.mu * r * np.cos(phi) + prm.u0, prm.mv * r * np.sin(phi) + prm.v0

    def lift_sphere(self, p: Sequence[float]) -> np.ndarray:
        """Lift an image point onto the unit sphere."""
        return self.lift_projective(p)

    def lift_projective(self, p: Sequence[float]) -> np.ndarray:
        """Lift an image point to its (unit-length) projective ray."""
        k11, k13, k22, k23 = self._inv_k
        theta, phi = self._backproject(k11 * float(p[0]) + k13, k22 * float(p[1]) + k23)
        return np.array(
            [
                math.sin(theta) * math.cos(phi),
                math.sin(theta) * math.sin(phi),
                math.cos(theta),
            ]
        )

    def space_to_plane(self, P: Sequence[float]) -> np.ndarray:
        """Project a 3D point in camera coordinates to the image plane."""
        x, y, z = (float(v) for v in P)
        u, v = self._project_arrays(np.float64(x), np.float64(y), np.float64(z))
        return np.array([float(u), float(v)])

    def init_undistort_map(self, f_scale: float = 1.0) -> tuple[np.ndarray, np.ndarray]:
        """Lookup maps from an undistorted image to the distorted source image."""
        k11, k13, k22, k23 = self._inv_k
        width, height = self._params.image_width, self._params.image_height
        rays = np.empty((height, width, 3))
        for v in range(height):
            my_u = k22 / f_scale * v + k23 / f_scale
            for u in range(width):
                mx_u = k11 / f_scale * u + k13 / f_scale
                theta, phi = self._backproject(mx_u, my_u)
                rays[v, u] = (
                    math.sin(theta) * math.cos(phi),
                    math.sin(theta) * math.sin(phi),
                    math.cos(theta),
                )
        map_x, map_y = self._project_arrays(rays[..., 0], rays[..., 1], rays[..., 2])
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

        if cx == -1.0 and cy == -1.0:
            k_cx, k_cy = width // 2, height // 2
        else:
            k_cx, k_cy = cx, cy
        K_rect = np.array(
            [[fx, 0.0, k_cx], [0.0, fy, k_cy], [0.0, 0.0, 1.0]], dtype=np.float32
        )
        if fx == -1.0 or fy == -1.0:
            K_rect[0, 0] = self._params.mu
            K_rect[1, 1] = self._params.mv

        K_rect_inv = np.linalg.inv(K_rect)
        R = np.eye(3, dtype=np.float32) if rmat is None else np.asarray(rmat, dtype=np.float32)
        R_inv = np.linalg.inv(R)

        v, u = np.mgrid[0:height, 0:width]
        xo = np.stack([u.ravel(), v.ravel(), np.ones(u.size)]).astype(np.float32)
        uo = ((R_inv @ K_rect_inv) @ xo).astype(float)

        map_x, map_y = self._project_arrays(uo[0], uo[1], uo[2])
        return (
            map_x.reshape(height, width).astype(np.float32),
            map_y.reshape(height, width).astype(np.float32),
            K_rect,
        )

    def parameter_count(self) -> int:
        return _PARAMETER_COUNT

    def read_parameters(self, values: Sequence[float]) -> None:
        """Set the intrinsics from ``[k2, k3, k4, k5, mu, mv, u0, v0]``."""
        values = [float(v) for v in values]
        if len(values) != self.parameter_count():
            raise ValueError(
                f"expected {self.parameter_count()} parameters, got {len(values)}"
            )
        k2, k3, k4, k5, mu, mv, u0, v0 = values
        self.parameters = dataclasses.replace(
            self._params, k2=k2, k3=k3, k4=k4, k5=k5, mu=mu, mv=mv, u0=u0, v0=v0
        )

    def write_parameters(self) -> list[float]:
        """The intrinsics as ``[k2, k3, k4, k5, mu, mv, u0, v0]``."""
        prm = self._params
        return [prm.k2, prm.k3, prm.k4, prm.k5, prm.mu, prm.mv, prm.u0, prm.v0]

    def write_parameters_to_yaml_file(self, filename) -> None:
        self._params.to_yaml(filename)

    def parameters_to_string(self) -> str:
        return str(self._params)

    @staticmethod
    def project(
        params: Sequence[float], q: Sequence[float], t: Sequence[float], P: Sequence[float]
    ) -> np.ndarray:
        """Project world point ``P`` given intrinsics and pose.

        ``params`` is ``[k2, k3, k4, k5, mu, mv, u0, v0]``, ``q`` the rotation as
        ``(x, y, z, w)`` and ``t`` the translation.
        """
        k2, k3, k4, k5, mu, mv, u0, v0 = (float(v) for v in params)
        P_c = rotate_point((q[3], q[0], q[1], q[2]), P) + np.asarray(t, dtype=float)

        length = math.sqrt(float(P_c @ P_c))
        theta = math.acos(P_c[2] / length)
        phi = math.atan2(P_c[1], P_c[0])
        r = radial_distance(k2, k3, k4, k5, theta)
        return np.array([mu * r * math.cos(phi) + u0, mv * r * math.sin(phi) + v0])