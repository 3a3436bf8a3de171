import math

import numpy as np
import pytest

from camodels.pinhole import PinholeCamera, PinholeParameters


@pytest.fixture
def params():
    return PinholeParameters(
        camera_name="cam",
        image_width=640,
        image_height=480,
        k1=-0.28,
        k2=0.07,
        p1=1e-4,
        p2=-2e-4,
        fx=460.0,
        fy=458.0,
        cx=320.0,
        cy=240.0,
    )


@pytest.fixture
def camera(params):
    return PinholeCamera(params)


@pytest.fixture
def ideal_camera():
    return PinholeCamera(
        PinholeParameters("ideal", 8, 6, 0.0, 0.0, 0.0, 0.0, 10.0, 12.0, 4.0, 3.0)
    )


def test_optical_axis_projects_to_principal_point(camera, params):
    p = camera.space_to_plane([0.0, 0.0, 2.0])
    assert p == pytest.approx([params.cx, params.cy])


@pytest.mark.parametrize("pixel", [(100.0, 50.0), (320.0, 240.0), (500.0, 400.0)])
def test_lift_then_project_round_trip(camera, pixel):
    P = camera.lift_projective(pixel)
    assert P[2] == 1.0
    assert camera.space_to_plane(P) == pytest.approx(pixel, abs=1e-3)


def test_lift_sphere_is_unit_length(camera):
    P = camera.lift_sphere((12.0, 400.0))
    assert math.isclose(np.linalg.norm(P), 1.0)
    assert np.allclose(np.cross(P, camera.lift_projective((12.0, 400.0))), 0.0)


def test_ideal_camera_round_trip_is_exact(ideal_camera):
    P = ideal_camera.lift_projective((7.0, 1.0))
    assert ideal_camera.space_to_plane(P) == pytest.approx([7.0, 1.0])


def test_ideal_camera_has_no_distortion(ideal_camera):
    assert ideal_camera.distortion((0.3, -0.2)) == pytest.approx([0.0, 0.0])


def test_undist_to_plane_matches_space_to_plane(camera):
    assert camera.undist_to_plane((0.1, -0.2)) == pytest.approx(
        camera.space_to_plane((0.2, -0.4, 2.0))
    )


def test_distortion_jacobian_matches_finite_differences(camera):
    p = np.array([0.3, -0.25])
    d_u, J = camera.distortion_jacobian(p)
    assert d_u == pytest.approx(camera.distortion(p))
    eps = 1e-6
    for col in range(2):
        step = np.zeros(2)
        step[col] = eps
        plus = step + p + camera.distortion(p + step)
        minus = p - step + camera.distortion(p - step)
        numeric = (plus - minus) / (2 * eps)
        assert J[:, col] == pytest.approx(numeric, abs=1e-6)


def test_write_parameters_order(camera, params):
    assert camera.write_parameters() == [
        params.k1, params.k2, params.p1, params.p2,
        params.fx, params.fy, params.cx, params.cy,
    ]
    assert camera.parameter_count() == 8


def test_read_parameters_round_trip(camera):
    values = [0.01, -0.002, 0.0003, 0.0004, 300.0, 310.0, 330.0, 250.0]
    camera.read_parameters(values)
    assert camera.write_parameters() == values
    assert camera.parameters.fx == 300.0
    assert camera.parameters.camera_name == "cam"


def test_read_parameters_wrong_length(camera):
    with pytest.raises(ValueError):
        camera.read_parameters([1.0, 2.0, 3.0])


def test_zero_focal_length_rejected():
    with pytest.raises(ValueError):
        PinholeCamera(PinholeParameters(fx=0.0, fy=1.0))


def test_model_type(camera):
    assert camera.model_type == "PINHOLE"
    assert camera.parameters.model_type == "PINHOLE"


def test_yaml_round_trip(tmp_path, camera, params):
    path = tmp_path / "cam.yaml"
    camera.write_parameters_to_yaml_file(path)
    assert path.read_text().startswith("%YAML:1.0")
    assert PinholeParameters.from_yaml(path) == params


def test_yaml_reads_opencv_file(tmp_path):
    path = tmp_path / "calib.yaml"
    path.write_text(
        "%YAML:1.0\n---\n"
        "model_type: PINHOLE\n"
        "camera_name: camera\n"
        "image_width: 752\n"
        "image_height: 480\n"
        "distortion_parameters:\n"
        "   k1: -2.917e-01\n"
        "   k2: 8.228e-02\n"
        "   p1: 5.333e-05\n"
        "   p2: -1.578e-04\n"
        "projection_parameters:\n"
        "   fx: 4.616e+02\n"
        "   fy: 4.603e+02\n"
        "   cx: 3.630e+02\n"
        "   cy: 2.481e+02\n"
    )
    prm = PinholeParameters.from_yaml(path)
    assert prm.camera_name == "camera"
    assert (prm.image_width, prm.image_height) == (752, 480)
    assert prm.k1 == pytest.approx(-2.917e-01)
    assert prm.cy == pytest.approx(2.481e02)


def test_yaml_rejects_other_model(tmp_path):
    path = tmp_path / "calib.yaml"
    path.write_text("%YAML:1.0\n---\nmodel_type: KANNALA_BRANDT\n")
    with pytest.raises(ValueError):
        PinholeParameters.from_yaml(path)


def test_yaml_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        PinholeParameters.from_yaml(tmp_path / "absent.yaml")


def test_parameters_to_string(camera):
    text = camera.parameters_to_string()
    assert "    model_type PINHOLE\n" in text
    assert "   camera_name cam\n" in text
    assert "            fx 460\n" in text


def test_project_identity_pose_matches_space_to_plane(camera):
    P = [0.4, -0.3, 3.0]
    result = PinholeCamera.project(camera.write_parameters(), [0, 0, 0, 1], [0, 0, 0], P)
    assert result == pytest.approx(camera.space_to_plane(P))


def test_project_with_translation(camera):
    P = np.array([0.4, -0.3, 3.0])
    t = np.array([0.1, 0.2, 1.0])
    result = PinholeCamera.project(camera.write_parameters(), [0, 0, 0, 1], t, P)
    assert result == pytest.approx(camera.space_to_plane(P + t))


def test_project_with_rotation(camera):
    s = math.sin(math.pi / 4)
    q = [0.0, 0.0, s, s]
    result = PinholeCamera.project(camera.write_parameters(), q, [0, 0, 0], [1.0, 0.0, 5.0])
    assert result == pytest.approx(camera.space_to_plane([0.0, 1.0, 5.0]))


def test_undistort_map_identity_without_distortion(ideal_camera):
    map_x, map_y = ideal_camera.init_undistort_map(1.0)
    assert map_x.shape == (6, 8)
    assert map_x.dtype == np.float32
    v, u = np.mgrid[0:6, 0:8]
    assert np.allclose(map_x, u)
    assert np.allclose(map_y, v)


def test_undistort_map_distorted_corners_move(camera):
    map_x, map_y = camera.init_undistort_map(1.0)
    center = camera.space_to_plane(camera.lift_projective((320.0, 240.0)))
    assert map_x[240, 320] == pytest.approx(center[0], abs=1e-3)
    assert map_x[0, 0] > 0.0


def test_rectify_map_defaults(ideal_camera):
    map_x, map_y, K = ideal_camera.init_undistort_rectify_map()
    v, u = np.mgrid[0:6, 0:8]
    assert np.allclose(map_x, u, atol=1e-5)
    assert np.allclose(map_y, v, atol=1e-5)
    assert K[0, 0] == 10.0
    assert K[1, 1] == 12.0
    assert K[0, 2] == 4.0
    assert K[1, 2] == 3.0