"""Tests for the haversine distance calculator."""
import pytest

from checkin.services.geo_service import GeoService
from checkin.utils.errors import ValidationError

from conftest import north_of

PARIS = (48.8566, 2.3522)
LONDON = (51.5074, -0.1278)


def test_identical_points_are_zero_apart():
    assert GeoService.calculate_distance(*PARIS, *PARIS) == 0


def test_distance_is_symmetric():
    assert GeoService.calculate_distance(*PARIS, *LONDON) == pytest.approx(
        GeoService.calculate_distance(*LONDON, *PARIS)
    )


def test_paris_to_london():
    assert GeoService.calculate_distance(*PARIS, *LONDON) == pytest.approx(343_500, rel=0.01)


def test_meters_along_a_meridian():
    assert GeoService.calculate_distance(0.0, 0.0, north_of(0.0, 40), 0.0) == pytest.approx(40, abs=0.01)


def test_antipodal_points_do_not_fail():
    distance = GeoService.calculate_distance(0.0, 0.0, 0.0, 180.0)
    assert distance == pytest.approx(3.14159265 * 6371000, rel=1e-6)


@pytest.mark.parametrize('coords', [
    (None, 0.0, 0.0, 0.0),
    (0.0, None, 0.0, 0.0),
    (0.0, 0.0, None, 0.0),
    (0.0, 0.0, 0.0, None),
])
def test_missing_coordinate_is_unknown(coords):
    assert GeoService.calculate_distance(*coords) is None


@pytest.mark.parametrize('lat, lon', [(91, 0), (-91, 0), (0, 181), (0, -181), ('1', 0), (True, 0)])
def test_validate_coordinates_rejects(lat, lon):
    with pytest.raises(ValidationError):
        GeoService.validate_coordinates(lat, lon)


def test_validate_coordinates_accepts_edges():
    GeoService.validate_coordinates(90, -180)
    GeoService.validate_coordinates(-90.0, 180.0)
