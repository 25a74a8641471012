"""
Geometry utility tests: parsing, unit conversion, UTM metric operations.
"""

import math

import pytest
from shapely.geometry import MultiPolygon, Point, Polygon, shape

from exceptions import ValidationError
from services.geometry import (
    bbox_dict,
    buffer_geometry,
    feature,
    metric_area,
    metric_perimeter,
    parse_geometry,
    reproject_from_wgs84,
    to_meters,
    utm_epsg_for,
)
from tests.factories.model_factories import NYC_POINT, square


class TestParseGeometry:

    @pytest.mark.parametrize("value", [
        None,
        "POINT (0 0)",
        {},
        {"type": "Point"},
        {"type": "Point", "coordinates": []},
        {"type": "Feature", "geometry": None},
    ])
    def test_invalid_values_raise(self, value):
        with pytest.raises(ValidationError, match="Invalid or missing geometry"):
            parse_geometry(value)

    def test_geometry(self):
        geom = parse_geometry(NYC_POINT)
        assert geom.geom_type == "Point"
        assert geom.x == pytest.approx(-74.0059)

    def test_feature_is_unwrapped(self):
        geom = parse_geometry({"type": "Feature", "geometry": square(0, 0, 1, 1), "properties": {}})
        assert geom.geom_type == "Polygon"


class TestUnits:

    @pytest.mark.parametrize("units,expected", [
        ("meters", 5.0),
        ("kilometers", 5000.0),
        ("miles", 5 * 1609.344),
        ("feet", 5 * 0.3048),
    ])
    def test_to_meters(self, units, expected):
        assert to_meters(5, units) == pytest.approx(expected)

    def test_unknown_units_raise(self):
        with pytest.raises(ValidationError, match="Unsupported units"):
            to_meters(1, "furlongs")


class TestUtmZone:

    @pytest.mark.parametrize("lon,lat,epsg", [
        (-74.0059, 40.7128, 32618),   # New York
        (151.2093, -33.8688, 32756),  # Sydney
        (0.5, 0.5, 32631),
        (-180.0, 10.0, 32601),
        (180.0, 10.0, 32660),         # clamped to zone 60
    ])
    def test_zone(self, lon, lat, epsg):
        assert utm_epsg_for(Point(lon, lat)) == epsg

    def test_projected_coordinates_rejected(self):
        with pytest.raises(ValidationError, match="WGS84"):
            utm_epsg_for(Point(500000, 4500000))


class TestMetricOperations:

    def test_point_buffer_area(self):
        buffered = buffer_geometry(Point(-74.0059, 40.7128), 1000.0, steps=64)
        assert buffered.geom_type == "Polygon"
        assert metric_area(buffered) == pytest.approx(math.pi * 1000 ** 2, rel=0.01)

    def test_point_buffer_perimeter(self):
        buffered = buffer_geometry(Point(-74.0059, 40.7128), 1000.0)
        assert metric_perimeter(buffered) == pytest.approx(2 * math.pi * 1000, rel=0.01)

    def test_buffer_output_is_wgs84(self):
        buffered = buffer_geometry(Point(-74.0059, 40.7128), 1000.0)
        min_x, min_y, max_x, max_y = buffered.bounds
        assert -75 < min_x < max_x < -73
        assert 40 < min_y < max_y < 41

    def test_point_and_line_have_no_area(self):
        assert metric_area(Point(0.5, 0.5)) == 0.0
        assert metric_area(shape({"type": "LineString", "coordinates": [[0, 0], [0.1, 0.1]]})) == 0.0

    def test_point_has_no_perimeter(self):
        assert metric_perimeter(Point(0.5, 0.5)) == 0.0

    def test_polygon_perimeter_ignores_holes(self):
        outer = [(0, 0), (0.1, 0), (0.1, 0.1), (0, 0.1), (0, 0)]
        hole = [(0.02, 0.02), (0.04, 0.02), (0.04, 0.04), (0.02, 0.04), (0.02, 0.02)]
        assert metric_perimeter(Polygon(outer, [hole])) == pytest.approx(metric_perimeter(Polygon(outer)))

    def test_multipolygon_perimeter_counts_holes(self):
        outer = [(0, 0), (0.1, 0), (0.1, 0.1), (0, 0.1), (0, 0)]
        hole = [(0.02, 0.02), (0.04, 0.02), (0.04, 0.04), (0.02, 0.04), (0.02, 0.02)]
        with_hole = metric_perimeter(MultiPolygon([Polygon(outer, [hole])]))
        assert with_hole > metric_perimeter(Polygon(outer))

    def test_reproject_identity_for_wgs84(self):
        geom = Point(1, 2)
        assert reproject_from_wgs84(geom, "EPSG:4326") is geom

    def test_reproject_to_web_mercator(self):
        projected = reproject_from_wgs84(Point(0, 0), "EPSG:3857")
        assert projected.x == pytest.approx(0.0, abs=1e-6)
        assert projected.y == pytest.approx(0.0, abs=1e-6)


class TestOutputHelpers:

    def test_bbox_dict(self):
        assert bbox_dict(shape(square(1, 2, 3, 4))) == {"minX": 1, "minY": 2, "maxX": 3, "maxY": 4}

    def test_feature(self):
        result = feature(Point(1, 2), {"name": "a"})
        assert result == {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": (1.0, 2.0)},
            "properties": {"name": "a"},
        }
