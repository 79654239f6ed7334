"""
Unit tests for services.geo.
"""
import math

import pytest

from natours.core.errors import BadRequestError
from natours.services import geo

LOS_ANGELES = {"type": "Point", "coordinates": [-118.2437, 34.0522]}
SAN_FRANCISCO = {"type": "Point", "coordinates": [-122.4194, 37.7749]}


class TestParseLatLng:
    def test_valid(self):
        assert geo.parse_latlng("34.111745,-118.113491") == (34.111745, -118.113491)

    @pytest.mark.parametrize("raw", ["34.1", "a,b", "", "34.1,-118.1,5", "95,10", "10,190"])
    def test_invalid(self, raw):
        with pytest.raises(BadRequestError) as excinfo:
            geo.parse_latlng(raw)
        assert excinfo.value.message == geo.LATLNG_MESSAGE


def test_unit_must_be_mi_or_km():
    assert geo.check_unit("mi") == "mi"
    with pytest.raises(BadRequestError):
        geo.check_unit("yd")


def test_radius_in_radians():
    assert geo.radius_in_radians(3963.2, "mi") == pytest.approx(1.0)
    assert geo.radius_in_radians(6378.1, "km") == pytest.approx(1.0)


def test_angular_distance():
    assert geo.angular_distance(10, 20, 10, 20) == 0
    # Pole to pole is half a great circle
    assert geo.angular_distance(90, 0, -90, 0) == pytest.approx(math.pi)


def test_point_lat_lng_swaps_geojson_order():
    assert geo.point_lat_lng(LOS_ANGELES) == (34.0522, -118.2437)
    assert geo.point_lat_lng(None) is None
    assert geo.point_lat_lng({"type": "Point", "coordinates": []}) is None


def test_distance_between_cities():
    lat, lng = geo.point_lat_lng(SAN_FRANCISCO)
    km = geo.distance_in_unit(LOS_ANGELES, lat, lng, "km")
    mi = geo.distance_in_unit(LOS_ANGELES, lat, lng, "mi")
    assert 550 < km < 570
    assert mi == pytest.approx(km * 1000 * 0.000621371)


def test_within_radius():
    lat, lng = geo.point_lat_lng(SAN_FRANCISCO)
    assert geo.within_radius(LOS_ANGELES, lat, lng, geo.radius_in_radians(400, "mi"))
    assert not geo.within_radius(LOS_ANGELES, lat, lng, geo.radius_in_radians(100, "mi"))
    assert not geo.within_radius(None, lat, lng, 1.0)
