"""
Change Detection Processor.

Compares two co-registered rasters pixel by pixel and writes a signed
change-magnitude map. Pixels where either image is no-data, or which fall
outside the optional mask geometry, are excluded: they are not counted in
the change statistics and carry the output no-data value in the map.

Methods:
    simple_difference:      after - before
    normalized_difference:  (after - before) / (after + before), 0 when the sum is 0
    ratio:                  after / before; for before == 0: 1 if after > 0 else 0

Values with |v| <= threshold are snapped to 0.

Exports:
    ChangeDetectionProcessor
    compute_change
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np
from shapely.geometry.base import BaseGeometry

from core.models.enums import ChangeMethod, JobType
from core.models.raster import RasterData
from exceptions import ValidationError
from interfaces.repository import IArtifactStorage, IRasterSource
from services.geometry import parse_geometry, reproject_from_wgs84
from services.raster_ops import encode_geotiff, rasterize_mask, valid_pixels
from .base import JobContext, Processor

DEFAULT_THRESHOLD = 0.1


def compute_change(
    before: np.ndarray,
    after: np.ndarray,
    method: ChangeMethod,
    threshold: float,
) -> np.ndarray:
    """
    Per-pixel change values with sub-threshold magnitudes snapped to 0.

    Inputs must already be restricted to comparable pixels; the caller
    masks the result.
    """
    before = before.astype("float64")
    after = after.astype("float64")

    with np.errstate(divide="ignore", invalid="ignore"):
        if method == ChangeMethod.SIMPLE_DIFFERENCE:
            change = after - before
        elif method == ChangeMethod.NORMALIZED_DIFFERENCE:
            total = after + before
            change = np.where(total != 0, (after - before) / total, 0.0)
        else:
            change = np.where(
                before != 0,
                after / before,
                np.where(after > 0, 1.0, 0.0),
            )

    return np.where(np.abs(change) > threshold, change, 0.0)


@dataclass(frozen=True)
class ChangeParams:
    before_reference: str
    after_reference: str
    threshold: float
    method: ChangeMethod
    mask_geometry: Optional[BaseGeometry]


class ChangeDetectionProcessor(Processor):
    job_type = JobType.CHANGE_DETECTION

    def __init__(
        self,
        raster_source: IRasterSource,
        storage: IArtifactStorage,
        output_nodata: float = -9999.0,
        logger=None,
    ):
        super().__init__(logger)
        self.raster_source = raster_source
        self.storage = storage
        self.output_nodata = output_nodata

    def validate(self, parameters: Dict[str, Any]) -> ChangeParams:
        before = parameters.get("before_image")
        after = parameters.get("after_image")
        if not before or not after:
            raise ValidationError("Both before_image and after_image are required")

        threshold = parameters.get("threshold")
        if threshold is None:
            threshold = DEFAULT_THRESHOLD
        if isinstance(threshold, bool):
            raise ValidationError("Threshold must be a non-negative number")
        try:
            threshold = float(threshold)
        except (TypeError, ValueError):
            raise ValidationError("Threshold must be a non-negative number")
        if not np.isfinite(threshold) or threshold < 0:
            raise ValidationError("Threshold must be a non-negative number")

        method = parameters.get("method") or ChangeMethod.SIMPLE_DIFFERENCE.value
        try:
            method = ChangeMethod(method)
        except ValueError:
            raise ValidationError(
                f"Unsupported method: {method}. Expected one of {[m.value for m in ChangeMethod]}"
            )

        mask_geometry = None
        if parameters.get("mask_geometry") is not None:
            mask_geometry = parse_geometry(parameters["mask_geometry"])

        return ChangeParams(
            before_reference=str(before),
            after_reference=str(after),
            threshold=threshold,
            method=method,
            mask_geometry=mask_geometry,
        )

    def run(self, params: ChangeParams, context: JobContext) -> Dict[str, Any]:
        started = time.perf_counter()

        before = self.raster_source.load(params.before_reference)
        after = self.raster_source.load(params.after_reference)
        if (before.width, before.height) != (after.width, after.height):
            raise ValidationError("Input images must have the same dimensions")

        compared = valid_pixels(before.data, before.nodata) & valid_pixels(after.data, after.nodata)
        if params.mask_geometry is not None:
            mask_geom = reproject_from_wgs84(params.mask_geometry, before.crs)
            compared &= rasterize_mask([mask_geom], before)

        change = compute_change(before.data, after.data, params.method, params.threshold)
        change_map = np.where(compared, change, np.nan)

        statistics = self._statistics(change, compared, before)
        self.logger.debug(
            f"Change detection compared {statistics['total_pixels']} pixels, "
            f"{statistics['changed_pixels']} changed",
            extra=context.log_extra(method=params.method.value),
        )

        content = encode_geotiff(change_map, before, self.output_nodata)
        change_map_url = self.storage.upload(
            f"change-detection/{context.job_id}/change_map.tif", content, "image/tiff"
        )

        return {
            "change_map_url": change_map_url,
            "statistics": statistics,
            "method_used": params.method.value,
            "threshold_used": params.threshold,
            "processing_metadata": {
                "before_image_info": before.info(),
                "after_image_info": after.info(),
                "processing_time": self.elapsed(started),
            },
        }

    @staticmethod
    def _statistics(change: np.ndarray, compared: np.ndarray, raster: RasterData) -> Dict[str, Any]:
        values = change[compared]
        total = int(values.size)
        positive = int(np.count_nonzero(values > 0))
        negative = int(np.count_nonzero(values < 0))
        changed = positive + negative
        unchanged = total - changed
        pixel_area = raster.pixel_area

        return {
            "total_pixels": total,
            "changed_pixels": changed,
            "unchanged_pixels": unchanged,
            "excluded_pixels": int(compared.size - total),
            "change_percentage": (changed / total * 100.0) if total else 0.0,
            "change_areas": {
                "positive_change": positive * pixel_area,
                "negative_change": negative * pixel_area,
                "no_change": unchanged * pixel_area,
            },
        }
