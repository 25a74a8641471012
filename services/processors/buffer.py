"""
Buffer Processor.

Buffers a GeoJSON geometry by a metric distance and reports area,
perimeter and bounding box. The buffered geometry is also stored as a
named geo feature; a failed store is logged and the result is returned
without a stored_feature_id.

Parameters:
    geometry (required): GeoJSON geometry or Feature, WGS84
    distance (required): > 0
    units: meters | kilometers | miles | feet (default meters)
    steps: segments approximating a full circle (default 64)

Exports:
    BufferProcessor
"""

import math
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

from core.models.enums import JobType
from exceptions import ValidationError
from interfaces.repository import IGeoDataRepository
from services.geometry import (
    bbox_dict,
    buffer_geometry,
    feature,
    metric_area,
    metric_perimeter,
    parse_geometry,
    to_meters,
)
from .base import JobContext, Processor

DEFAULT_STEPS = 64


@dataclass(frozen=True)
class BufferParams:
    geometry: BaseGeometry
    distance: float
    units: str
    units_given: Optional[str]
    distance_m: float
    steps: int


class BufferProcessor(Processor):
    job_type = JobType.BUFFER

    def __init__(self, geo_repo: IGeoDataRepository, logger=None):
        super().__init__(logger)
        self.geo_repo = geo_repo

    def validate(self, parameters: Dict[str, Any]) -> BufferParams:
        geometry = parse_geometry(parameters.get("geometry"))

        distance = parameters.get("distance")
        if isinstance(distance, bool):
            raise ValidationError("Distance must be a positive number")
        try:
            distance = float(distance)
        except (TypeError, ValueError):
            raise ValidationError("Distance must be a positive number")
        if not math.isfinite(distance) or distance <= 0:
            raise ValidationError("Distance must be a positive number")

        units_given = parameters.get("units")
        units = units_given or "meters"
        distance_m = to_meters(distance, units)

        steps = parameters.get("steps")
        if steps is None:
            steps = DEFAULT_STEPS
        if isinstance(steps, bool) or not isinstance(steps, int) or steps < 1:
            raise ValidationError("Steps must be a positive integer")

        return BufferParams(
            geometry=geometry,
            distance=distance,
            units=units,
            units_given=units_given,
            distance_m=distance_m,
            steps=steps,
        )

    def run(self, params: BufferParams, context: JobContext) -> Dict[str, Any]:
        started = time.perf_counter()
        buffered = buffer_geometry(params.geometry, params.distance_m, params.steps)

        distance = int(params.distance) if params.distance.is_integer() else params.distance
        statistics = {
            "original_area": metric_area(params.geometry),
            "buffered_area": metric_area(buffered),
            "buffer_distance": distance,
            "buffer_units": params.units,
            "perimeter": metric_perimeter(buffered),
            "bbox": bbox_dict(buffered),
        }

        stored_feature_id = self._store_feature(buffered, params, distance, context)

        return {
            "buffered_geometry": feature(buffered),
            "stored_feature_id": stored_feature_id,
            "statistics": statistics,
            "processing_time": self.elapsed(started),
            "operation_type": "buffer",
        }

    def _store_feature(
        self,
        buffered: BaseGeometry,
        params: BufferParams,
        distance: float,
        context: JobContext,
    ) -> Optional[str]:
        record = {
            "name": f"Buffer {distance}{params.units_given or 'm'}",
            "feature_type": buffered.geom_type,
            "geometry": mapping(buffered),
            "properties": {
                "buffer_distance": distance,
                "buffer_units": params.units,
                "original_job_id": context.job_id,
                "created_from": "buffer_operation",
            },
            "session_id": context.session_id,
            "project_id": context.project_id,
        }
        try:
            return self.geo_repo.insert_geo_feature(record)
        except Exception as e:
            self.logger.error(
                f"Failed to store buffered geometry for job {context.job_id}: {e}",
                exc_info=True,
                extra=context.log_extra(),
            )
            return None
