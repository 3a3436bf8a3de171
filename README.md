# camodels

Camera models for visual odometry and calibration work, written with numpy. There are three:

- **Pinhole** with radial (`k1`, `k2`) and tangential (`p1`, `p2`) distortion, in
  `camodels.pinhole` (`PinholeCamera`, `PinholeParameters`).
- **Kannala-Brandt / equidistant** fisheye, in `camodels.equidistant` (`EquidistantCamera`,
  `EquidistantParameters`). The radial polynomial and its inversion are in
  `camodels.kannala_brandt`.
- **Scaramuzza omnidirectional** (OCam), in `camodels.scaramuzza` (`OCAMCamera`,
  `OCAMParameters`).

Parameters are frozen dataclasses. A camera checks them when they are set and raises
`ValueError` for a zero focal length or, for the OCam model, a singular affine matrix.

## What a camera does

Each camera can:

- project a 3D point in camera coordinates to a pixel with `space_to_plane`;
- lift a pixel back to a ray with `lift_projective`, or onto the unit sphere with `lift_sphere`.
  The equidistant model's projective ray is already of unit length.
- build rectification maps with `init_undistort_rectify_map`, which returns
  `(map_x, map_y, K_rect)`. The pinhole and equidistant cameras also have `init_undistort_map`.
  The OCam camera needs its focal lengths to be given.
- turn its intrinsics into a flat list with `write_parameters` and set them from one with
  `read_parameters`. A list of the wrong length raises `ValueError`. `parameter_count` is 8 for
  pinhole and equidistant, and 30 for OCam.
- read and write its YAML calibration file with `from_yaml` / `to_yaml`. `from_yaml` raises
  `ValueError` when the file names another model. The camera also has
  `write_parameters_to_yaml_file` and `parameters_to_string`.

Each camera class also has a static `project(params, q, t, P)`. It takes the flat parameter
vector, a quaternion in `(x, y, z, w)` order and a translation, and returns the pixel of the
world point `P`. This makes it usable as the projection step of a reprojection residual.

Some methods belong to one model only:

- `PinholeCamera`: `undist_to_plane`, `distortion` and `distortion_jacobian`.
- `OCAMCamera`: `undist_to_plane`, plus the static `space_to_sphere`, `lift_to_sphere` and
  `sphere_to_plane`.

## Example

```python
import numpy as np
from camodels.pinhole import PinholeCamera, PinholeParameters

params = PinholeParameters.from_yaml("camera.yaml")
camera = PinholeCamera(params)

pixel = camera.space_to_plane(np.array([0.1, -0.2, 2.0]))
ray = camera.lift_projective(pixel)        # (x, y, 1) on the normalised plane
unit = camera.lift_sphere(pixel)           # same ray, unit length

vector = camera.write_parameters()         # [k1, k2, p1, p2, fx, fy, cx, cy]
camera.read_parameters(vector)
print(camera.parameters_to_string())
```

A pinhole YAML file looks like this:

```yaml
model_type: PINHOLE
camera_name: camera
image_width: 640
image_height: 480
distortion_parameters:
  k1: -0.28
  k2: 0.07
  p1: 0.0
  p2: 0.0
projection_parameters:
  fx: 460.0
  fy: 460.0
  cx: 320.0
  cy: 240.0
```

A leading `%YAML:1.0` line is accepted when reading and written when saving.

Equidistant files use `model_type: KANNALA_BRANDT` and `projection_parameters` with `k2`, `k3`,
`k4`, `k5`, `mu`, `mv`, `u0` and `v0`.

Scaramuzza files use `model_type: scaramuzza`, matched without regard to case, and hold three
sections:

- `poly_parameters`: `p0` to `p4`
- `inv_poly_parameters`: `p0` to `p19`
- `affine_parameters`: `ac`, `ad`, `ae`, `cx` and `cy`

## First estimates of intrinsics

These helpers update the camera and return its new parameters.

- `camodels.pinhole_calibration.estimate_pinhole_intrinsics(camera, board_size, object_points,
  image_points)` estimates the focal lengths in closed form from the homographies of planar
  target views. It sets distortion to zero and the principal point to the image centre.
  `find_homography` is available on its own.
- `camodels.ocam_calibration.estimate_ocam_intrinsics(camera, board_size, object_points,
  image_points)` estimates the Scaramuzza polynomial linearly and fits its inverse polynomial. It
  resets the affine part to identity and sets the centre to the image middle. `board_size` is
  `(columns, rows)`, and object points must lie in the plane z = 0. It raises `ValueError` when a
  view does not yield exactly one consistent pose. `polyfit` is available on its own.

## Utilities

- `camodels.mathutils` has these helpers:
  - `clamp`, `square` and `cube`;
  - angle helpers `d2r`, `r2d`, `normalize_theta` and `sinc`;
  - `hypot3`, `fit_circle` and `intersect_circles`;
  - `rotate_point`, which rotates by a `(w, x, y, z)` quaternion;
  - `random_uniform` and `random_normal`;
  - `time_in_seconds`, `time_in_microseconds` and `timestamp_diff`.
- `camodels.geodesy` converts between WGS84 latitude/longitude and UTM with `ll_to_utm` and
  `utm_to_ll`. It also has `utm_letter_designator`.
- `camodels.raster` has these functions:
  - `bres_line` and `bres_circle`, which give Bresenham line cells and filled circle cells;
  - `colormap`, which looks up the 128-entry `jet` and `autumn` colour maps;
  - `color_depth_image`, which colours a depth image as BGR `uint8`.

## What the package does not do

It is a library with no command-line program. The calibration helpers give only initial
estimates: they do no nonlinear refinement and no chessboard detection. The undistortion
functions return lookup maps; reading images and resampling them with those maps is left to the
caller.

## Installation and tests

```
pip install .
pip install .[test]
pytest
```

This needs Python 3.10 or later. Installing the package also installs `numpy` and `pyyaml`.