import math

import numpy as np
import pytest

from camodels.scaramuzza import (
    SCARAMUZZA_CAMERA_NUM_PARAMS,
    OCAMCamera,
    OCAMParameters,
)


def make_params(**overrides):
    values = dict(
        camera_name="cam0",
        image_width=64,
        image_height=48,
        poly=(-100.0, 0.0, 0.002, 0.0, 0.0),
        inv_poly=(80.0, 60.0, 10.0),
        c=1.0,
        d=0.0,
        e=0.0,
        center_x=32.0,
        center_y=24.0,
    )
    values.update(overrides)
    return OCAMParameters(**values)


@pytest.fixture
def camera():
    return OCAMCamera(make_params())


IDENTITY_Q = (0.0, 0.0, 0.0, 1.0)


def test_parameter_count(camera):
    assert camera.parameter_count() == SCARAMUZZA_CAMERA_NUM_PARAMS
    assert SCARAMUZZA_CAMERA_NUM_PARAMS == 30
    assert len(camera.write_parameters()) == 30


def test_inv_poly_padded_to_full_size():
    params = make_params()
    assert len(params.inv_poly) == 20
    assert params.inv_poly[:3] == (80.0, 60.0, 10.0)
    assert params.inv_poly[3:] == (0.0,) * 17


def test_too_many_coefficients_rejected():
    with pytest.raises(ValueError):
        make_params(poly=(1.0,) * 6)


def test_read_write_parameters_round_trip(camera):
    values = [float(i + 1) * 0.5 for i in range(30)]
    values[0], values[1], values[2] = 2.0, 0.1, 0.2
    camera.read_parameters(values)
    assert camera.write_parameters() == values
    assert camera.parameters.center_x == values[3]
    assert camera.parameters.poly == tuple(values[5:10])
    assert camera.parameters.inv_poly == tuple(values[10:30])


def test_read_parameters_wrong_length(camera):
    with pytest.raises(ValueError):
        camera.read_parameters([1.0] * 29)


def test_singular_affine_rejected():
    with pytest.raises(ValueError):
        OCAMCamera(make_params(c=0.5, d=0.5, e=1.0))


def test_lift_projective_keeps_offset_from_center(camera):
    P = camera.lift_projective((35.0, 28.0))
    assert P[0] == pytest.approx(3.0)
    assert P[1] == pytest.approx(4.0)
    prm = camera.parameters
    assert P[2] == pytest.approx(-(prm.poly[0] + prm.poly[2] * 25.0))


def test_lift_sphere_is_unit_and_parallel(camera):
    p = (40.0, 10.0)
    S = camera.lift_sphere(p)
    P = camera.lift_projective(p)
    assert np.linalg.norm(S) == pytest.approx(1.0)
    assert np.allclose(np.cross(S, P), 0.0, atol=1e-9)


def test_space_to_plane_is_scale_invariant(camera):
    P = np.array([1.0, 2.0, 5.0])
    assert np.allclose(camera.space_to_plane(P), camera.space_to_plane(3.0 * P))


def test_space_to_plane_direction_from_center(camera):
    P = (1.0, 2.0, 5.0)
    p = camera.space_to_plane(P)
    offset = p - np.array([32.0, 24.0])
    assert offset[0] * 2.0 - offset[1] * 1.0 == pytest.approx(0.0, abs=1e-9)
    assert offset[0] * 1.0 + offset[1] * 2.0 > 0.0


def test_undist_to_plane_matches_space_to_plane(camera):
    assert np.allclose(
        camera.undist_to_plane((0.3, -0.2)), camera.space_to_plane((0.3, -0.2, 1.0))
    )


def test_static_sphere_to_plane_matches_instance(camera):
    params = camera.write_parameters()
    P = (-2.0, 0.5, 3.0)
    assert np.allclose(OCAMCamera.sphere_to_plane(params, P), camera.space_to_plane(P))


def test_project_identity_pose_matches_space_to_plane(camera):
    params = camera.write_parameters()
    P = (0.7, -1.1, 4.0)
    assert np.allclose(
        OCAMCamera.project(params, IDENTITY_Q, (0.0, 0.0, 0.0), P),
        camera.space_to_plane(P),
    )


def test_project_applies_rotation_and_translation(camera):
    params = camera.write_parameters()
    half = math.pi / 4.0
    q = (0.0, 0.0, math.sin(half), math.cos(half))  # 90 degrees about z
    t = (0.5, 0.0, 1.0)
    P = (1.0, 2.0, 3.0)
    expected_camera_point = (-2.0 + 0.5, 1.0, 3.0 + 1.0)
    assert np.allclose(
        OCAMCamera.project(params, q, t, P),
        camera.space_to_plane(expected_camera_point),
    )


def test_space_to_sphere_normalises(camera):
    params = camera.write_parameters()
    P = np.array([3.0, -4.0, 12.0])
    S = OCAMCamera.space_to_sphere(params, IDENTITY_Q, (0.0, 0.0, 0.0), P)
    assert np.allclose(S, P / np.linalg.norm(P))


def test_lift_to_sphere_matches_instance_when_linear_term_zero(camera):
    params = camera.write_parameters()
    p = (50.0, 5.0)
    assert np.allclose(OCAMCamera.lift_to_sphere(params, p), camera.lift_sphere(p))


def test_lift_to_sphere_skips_linear_term(camera):
    params = camera.write_parameters()
    with_linear = list(params)
    with_linear[6] = 7.0
    p = (50.0, 5.0)
    assert np.allclose(
        OCAMCamera.lift_to_sphere(with_linear, p), OCAMCamera.lift_to_sphere(params, p)
    )


def test_static_functions_check_parameter_length():
    with pytest.raises(ValueError):
        OCAMCamera.sphere_to_plane([1.0] * 10, (1.0, 1.0, 1.0))


def test_rectify_map_requires_focal_length(camera):
    with pytest.raises(ValueError):
        camera.init_undistort_rectify_map()


def test_rectify_map_values(camera):
    map_x, map_y, K = camera.init_undistort_rectify_map(
        50.0, 50.0, (8, 6), -1.0, -1.0
    )
    assert map_x.shape == (6, 8)
    assert map_y.shape == (6, 8)
    assert K[0, 2] == 4.0
    assert K[1, 2] == 3.0
    ray = np.linalg.inv(K.astype(float)) @ np.array([5.0, 2.0, 1.0])
    expected = camera.space_to_plane(ray)
    assert map_x[2, 5] == pytest.approx(expected[0], rel=1e-4)
    assert map_y[2, 5] == pytest.approx(expected[1], rel=1e-4)


def test_yaml_round_trip(tmp_path):
    params = make_params(d=0.01, e=-0.02)
    path = tmp_path / "cam.yaml"
    OCAMCamera(params).write_parameters_to_yaml_file(path)
    assert OCAMParameters.from_yaml(path) == params
    assert path.read_text().startswith("%YAML:1.0")


def test_yaml_model_type_case_insensitive(tmp_path):
    path = tmp_path / "cam.yaml"
    path.write_text(
        "%YAML:1.0\n---\n"
        "model_type: SCARAMUZZA\n"
        "camera_name: front\n"
        "image_width: 640\n"
        "image_height: 480\n"
        "affine_parameters:\n"
        "   ac: 1.0\n"
        "   cx: 320.0\n"
    )
    params = OCAMParameters.from_yaml(path)
    assert params.camera_name == "front"
    assert params.image_width == 640
    assert params.c == 1.0
    assert params.center_x == 320.0
    assert params.d == 0.0


def test_yaml_wrong_model_rejected(tmp_path):
    path = tmp_path / "cam.yaml"
    path.write_text("model_type: PINHOLE\n")
    with pytest.raises(ValueError):
        OCAMParameters.from_yaml(path)


def test_parameters_to_string(camera):
    text = camera.parameters_to_string()
    lines = text.splitlines()
    assert lines[0] == "Camera Parameters:"
    assert "    model_type scaramuzza" in lines
    assert "   camera_name cam0" in lines
    assert "p19: 0.0000000000" in lines
    assert "            ac 1.0000000000" in lines
    assert text == str(camera.parameters)


def test_model_type(camera):
    assert camera.model_type == "SCARAMUZZA"
    assert camera.parameters.model_type == camera.model_type