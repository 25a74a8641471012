"""
Zonal Statistics Processor.

Aggregates raster values inside each zone geometry with rasterstats. Zones
are processed independently: a zone whose geometry is missing or invalid,
or whose aggregation raises, is logged and reported with zero counts and
empty statistics while the remaining zones continue.

Parameters:
    zones (required): geometry, Feature, list of either, FeatureCollection
        or GeometryCollection
    raster_data (required): raster URL or dataset id
    statistics: subset of mean, min, max, sum, count, std
        (default mean, min, max, count)
    zone_id_field: property holding the zone id (default "id")

Exports:
    ZonalStatisticsProcessor
    normalize_zones
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from rasterstats import zonal_stats

from core.models.enums import JobType
from core.models.raster import RasterData
from exceptions import ValidationError
from interfaces.repository import IRasterSource
from services.geometry import metric_area, parse_geometry, reproject_from_wgs84
from .base import JobContext, Processor

SUPPORTED_STATISTICS = ("mean", "min", "max", "sum", "count", "std")
DEFAULT_STATISTICS = ["mean", "min", "max", "count"]

# Points and lines cover no pixel centers; count every pixel they touch
_ALL_TOUCHED_TYPES = {"Point", "MultiPoint", "LineString", "MultiLineString", "LinearRing"}


def normalize_zones(zones: Any) -> List[Dict[str, Any]]:
    """
    Normalize any accepted zones shape to a list of Feature-like dicts.

    Entries are not validated here; a bad entry becomes a zone whose
    geometry fails later and is reported as degraded.
    """
    if zones is None:
        return []
    if isinstance(zones, list):
        items = zones
    elif isinstance(zones, dict) and zones.get("type") == "FeatureCollection":
        items = zones.get("features") or []
    elif isinstance(zones, dict) and zones.get("type") == "GeometryCollection":
        items = zones.get("geometries") or []
    else:
        items = [zones]

    features = []
    for item in items:
        if isinstance(item, dict) and item.get("type") == "Feature":
            features.append({
                "geometry": item.get("geometry"),
                "properties": item.get("properties") or {},
            })
        else:
            features.append({"geometry": item, "properties": {}})
    return features


@dataclass(frozen=True)
class ZonalParams:
    zones: List[Dict[str, Any]]
    raster_reference: str
    statistics: List[str]
    zone_id_field: Optional[str]


class ZonalStatisticsProcessor(Processor):
    job_type = JobType.ZONAL_STATS

    def __init__(self, raster_source: IRasterSource, logger=None):
        super().__init__(logger)
        self.raster_source = raster_source

    def validate(self, parameters: Dict[str, Any]) -> ZonalParams:
        zones = normalize_zones(parameters.get("zones"))
        if not zones:
            raise ValidationError("No valid zones provided")

        raster_reference = parameters.get("raster_data")
        if not raster_reference or not isinstance(raster_reference, str):
            raise ValidationError("No raster data source provided")

        statistics = parameters.get("statistics") or list(DEFAULT_STATISTICS)
        if isinstance(statistics, str):
            statistics = [statistics]
        unknown = [s for s in statistics if s not in SUPPORTED_STATISTICS]
        if unknown:
            raise ValidationError(
                f"Unsupported statistics: {unknown}. Expected a subset of {list(SUPPORTED_STATISTICS)}"
            )

        return ZonalParams(
            zones=zones,
            raster_reference=raster_reference,
            statistics=list(dict.fromkeys(statistics)),
            zone_id_field=parameters.get("zone_id_field"),
        )

    def run(self, params: ZonalParams, context: JobContext) -> Dict[str, Any]:
        started = time.perf_counter()
        raster = self.raster_source.load(params.raster_reference)
        values, nodata = self._prepared_band(raster)

        results = []
        for index, zone in enumerate(params.zones):
            zone_id, zone_name = index, None
            try:
                zone_id, zone_name = self._zone_identity(zone, index, params.zone_id_field)
                results.append(self._zone_statistics(
                    zone, zone_id, zone_name, raster, values, nodata, params.statistics
                ))
            except Exception as e:
                self.logger.warning(
                    f"Failed to process zone {index} for job {context.job_id}: {e}",
                    exc_info=True,
                    extra=context.log_extra(zone_index=index),
                )
                results.append({
                    "zone_id": zone_id,
                    "zone_name": zone_name,
                    "area": 0.0,
                    "pixel_count": 0,
                    "valid_pixel_count": 0,
                    "statistics": {},
                    "geometry": zone.get("geometry"),
                })

        return {
            "zone_statistics": results,
            "summary": self._summary(results, params.statistics),
            "processing_time": self.elapsed(started),
            "statistics_requested": params.statistics,
            "zones_processed": len(results),
        }

    @staticmethod
    def _prepared_band(raster: RasterData) -> Tuple[np.ndarray, float]:
        """Band 1 with NaN folded into a concrete no-data value."""
        nodata = raster.nodata
        if nodata is None or np.isnan(nodata):
            nodata = -9999.0
        values = np.where(np.isfinite(raster.data), raster.data, nodata)
        return values, nodata

    @staticmethod
    def _zone_identity(zone: Dict[str, Any], index: int, zone_id_field: Optional[str]):
        properties = zone.get("properties") or {}
        zone_id = properties.get(zone_id_field or "id")
        if zone_id is None:
            zone_id = index
        return zone_id, properties.get("name")

    def _zone_statistics(
        self,
        zone: Dict[str, Any],
        zone_id: Any,
        zone_name: Optional[str],
        raster: RasterData,
        values: np.ndarray,
        nodata: float,
        requested: List[str],
    ) -> Dict[str, Any]:
        geometry = parse_geometry(zone.get("geometry"))
        zone_geom = reproject_from_wgs84(geometry, raster.crs)

        stats = zonal_stats(
            vectors=[zone_geom],
            raster=values,
            affine=raster.transform,
            nodata=nodata,
            stats=sorted(set(requested) | {"count", "nodata"}),
            all_touched=geometry.geom_type in _ALL_TOUCHED_TYPES,
        )[0]

        valid_count = int(stats.get("count") or 0)
        pixel_count = valid_count + int(stats.get("nodata") or 0)
        statistics = {}
        if valid_count > 0:
            for name in requested:
                value = stats.get(name)
                statistics[name] = int(value) if name == "count" else float(value)

        return {
            "zone_id": zone_id,
            "zone_name": zone_name,
            "area": metric_area(geometry),
            "pixel_count": pixel_count,
            "valid_pixel_count": valid_count,
            "statistics": statistics,
            "geometry": zone.get("geometry"),
        }

    @staticmethod
    def _summary(results: List[Dict[str, Any]], requested: List[str]) -> Dict[str, Any]:
        summary = {
            "total_zones": len(results),
            "total_area": sum(r["area"] for r in results),
            "total_pixels": sum(r["pixel_count"] for r in results),
            "total_valid_pixels": sum(r["valid_pixel_count"] for r in results),
        }
        populated = [r["statistics"] for r in results if r["statistics"]]
        if "mean" in requested:
            means = [s["mean"] for s in populated if s.get("mean") is not None]
            if means:
                summary["overall_mean"] = sum(means) / len(means)
        if "min" in requested:
            mins = [s["min"] for s in populated if s.get("min") is not None]
            if mins:
                summary["overall_min"] = min(mins)
        if "max" in requested:
            maxs = [s["max"] for s in populated if s.get("max") is not None]
            if maxs:
                summary["overall_max"] = max(maxs)
        return summary
