# ============================================================================
# GEOMETRY UTILITIES
# ============================================================================
# STATUS: Service - stateless geometry helpers used by processors
# PURPOSE: GeoJSON parsing, unit conversion, metric buffer / area / length / bbox
# EXPORTS: parse_geometry, to_meters, utm_epsg_for, to_metric, buffer_geometry,
#          metric_area, metric_perimeter, reproject_from_wgs84, bbox_dict, feature
# DEPENDENCIES: shapely, pyproj
# ============================================================================
"""
Geometry Utilities

Input geometries are GeoJSON in WGS84 lon/lat. Every distance and area is
computed in meters by projecting to the UTM zone of the geometry's centroid
and projecting results back to WGS84 for output.

Zone selection:
    zone = int((lon + 180) / 6) + 1, clamped to 1..60
    EPSG = 32600 + zone (north) or 32700 + zone (south)
"""

import math
from functools import lru_cache
from typing import Any, Dict, Tuple

from pyproj import Transformer
from shapely.geometry import mapping, shape
from shapely.geometry.base import BaseGeometry
from shapely.ops import transform as shapely_transform

from core.models.enums import DistanceUnit
from exceptions import ValidationError

UNIT_TO_METERS = {
    DistanceUnit.METERS.value: 1.0,
    DistanceUnit.KILOMETERS.value: 1000.0,
    DistanceUnit.MILES.value: 1609.344,
    DistanceUnit.FEET.value: 0.3048,
}

INVALID_GEOMETRY_MESSAGE = "Invalid or missing geometry"


def parse_geometry(value: Any) -> BaseGeometry:
    """
    Parse a GeoJSON geometry (or a Feature wrapping one) into shapely.

    Raises:
        ValidationError: "Invalid or missing geometry" for anything that is
            not a non-empty GeoJSON geometry
    """
    if isinstance(value, dict) and value.get("type") == "Feature":
        value = value.get("geometry")
    if not isinstance(value, dict) or not value.get("type"):
        raise ValidationError(INVALID_GEOMETRY_MESSAGE)
    try:
        geom = shape(value)
    except (ValueError, TypeError, KeyError, IndexError, AttributeError) as e:
        raise ValidationError(INVALID_GEOMETRY_MESSAGE) from e
    if geom.is_empty:
        raise ValidationError(INVALID_GEOMETRY_MESSAGE)
    return geom


def to_meters(distance: float, units: str = "meters") -> float:
    """Convert a distance in the given units to meters."""
    try:
        factor = UNIT_TO_METERS[units]
    except KeyError:
        raise ValidationError(
            f"Unsupported units: {units}. Expected one of {sorted(UNIT_TO_METERS)}"
        )
    return float(distance) * factor


def utm_epsg_for(geom: BaseGeometry) -> int:
    """UTM EPSG code for the zone containing the geometry's centroid."""
    centroid = geom.centroid
    lon, lat = centroid.x, centroid.y
    if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
        raise ValidationError(
            f"Geometry coordinates must be WGS84 lon/lat, got centroid ({lon}, {lat})"
        )
    zone = min(max(int((lon + 180) / 6) + 1, 1), 60)
    return 32600 + zone if lat >= 0 else 32700 + zone


@lru_cache(maxsize=128)
def _transformers(epsg: int) -> Tuple[Transformer, Transformer]:
    to_utm = Transformer.from_crs("EPSG:4326", f"EPSG:{epsg}", always_xy=True)
    to_wgs84 = Transformer.from_crs(f"EPSG:{epsg}", "EPSG:4326", always_xy=True)
    return to_utm, to_wgs84


def to_metric(geom: BaseGeometry) -> Tuple[BaseGeometry, int]:
    """Project a WGS84 geometry to its local UTM zone."""
    epsg = utm_epsg_for(geom)
    to_utm, _ = _transformers(epsg)
    return shapely_transform(to_utm.transform, geom), epsg


def buffer_geometry(geom: BaseGeometry, distance_m: float, steps: int = 64) -> BaseGeometry:
    """
    Buffer by a metric distance and return the result in WGS84.

    Args:
        geom: WGS84 geometry
        distance_m: Buffer distance in meters
        steps: Segments approximating a full circle
    """
    quad_segs = max(1, math.ceil(steps / 4))
    geom_utm, epsg = to_metric(geom)
    buffered_utm = geom_utm.buffer(distance_m, quad_segs=quad_segs)
    _, to_wgs84 = _transformers(epsg)
    return shapely_transform(to_wgs84.transform, buffered_utm)


def metric_area(geom: BaseGeometry) -> float:
    """Area in square meters (0 for points and lines)."""
    if geom.is_empty:
        return 0.0
    geom_utm, _ = to_metric(geom)
    return float(geom_utm.area)


def metric_perimeter(geom: BaseGeometry) -> float:
    """
    Perimeter in meters.

    Polygon: outer ring length. MultiPolygon: sum of every ring of every
    part. Other geometry types have no perimeter and return 0.
    """
    if geom.is_empty:
        return 0.0
    geom_utm, _ = to_metric(geom)
    if geom_utm.geom_type == "Polygon":
        return float(geom_utm.exterior.length)
    if geom_utm.geom_type == "MultiPolygon":
        total = 0.0
        for polygon in geom_utm.geoms:
            total += polygon.exterior.length
            total += sum(ring.length for ring in polygon.interiors)
        return float(total)
    return 0.0


def reproject_from_wgs84(geom: BaseGeometry, dst_crs: str) -> BaseGeometry:
    """Project a WGS84 geometry into dst_crs (no-op for EPSG:4326)."""
    if not dst_crs or dst_crs.upper() in ("EPSG:4326", "OGC:CRS84"):
        return geom
    transformer = Transformer.from_crs("EPSG:4326", dst_crs, always_xy=True)
    return shapely_transform(transformer.transform, geom)


def bbox_dict(geom: BaseGeometry) -> Dict[str, float]:
    min_x, min_y, max_x, max_y = geom.bounds
    return {"minX": min_x, "minY": min_y, "maxX": max_x, "maxY": max_y}


def feature(geom: BaseGeometry, properties: Dict[str, Any] = None) -> Dict[str, Any]:
    """Wrap a shapely geometry as a GeoJSON Feature dict."""
    return {
        "type": "Feature",
        "geometry": mapping(geom),
        "properties": properties or {},
    }
