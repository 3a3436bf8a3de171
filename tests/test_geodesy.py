import pytest

from camodels.geodesy import ll_to_utm, utm_letter_designator, utm_to_ll


@pytest.mark.parametrize(
    "latitude, letter",
    [
        (84.0, "X"),
        (72.0, "X"),
        (50.0, "U"),
        (0.0, "N"),
        (-0.5, "M"),
        (-80.0, "C"),
        (84.5, "Z"),
        (-80.5, "Z"),
    ],
)
def test_letter_designator(latitude, letter):
    assert utm_letter_designator(latitude) == letter


def test_central_meridian_on_equator():
    northing, easting, zone = ll_to_utm(0.0, 3.0)
    assert zone == "31N"
    assert easting == pytest.approx(500000.0)
    assert northing == pytest.approx(0.0, abs=1e-6)


def test_norway_special_zone():
    _, _, zone = ll_to_utm(60.0, 5.0)
    assert zone == "32V"


def test_svalbard_special_zone():
    _, _, zone = ll_to_utm(78.0, 15.0)
    assert zone == "33X"


def test_southern_hemisphere_false_northing():
    northing, easting, zone = ll_to_utm(-10.0, 3.0)
    assert zone.endswith("L")
    assert 0.0 < northing < 10000000.0
    assert easting == pytest.approx(500000.0)


def test_easting_symmetric_about_central_meridian():
    n_east, e_east, _ = ll_to_utm(45.0, 4.0)
    n_west, e_west, _ = ll_to_utm(45.0, 2.0)
    assert e_east - 500000.0 == pytest.approx(500000.0 - e_west)
    assert n_east == pytest.approx(n_west)


@pytest.mark.parametrize(
    "latitude, longitude",
    [
        (48.85, 2.35),
        (-33.87, 151.21),
        (35.68, 139.69),
        (60.0, 5.0),
        (-45.0, -70.0),
    ],
)
def test_round_trip(latitude, longitude):
    northing, easting, zone = ll_to_utm(latitude, longitude)
    lat, lon = utm_to_ll(northing, easting, zone)
    assert lat == pytest.approx(latitude, abs=1e-5)
    assert lon == pytest.approx(longitude, abs=1e-5)


def test_invalid_zone():
    with pytest.raises(ValueError):
        utm_to_ll(0.0, 500000.0, "north")