"""
Vegetation Index (NDVI) Processor.

NDVI = (NIR - Red) / (NIR + Red), clipped to [-1, 1]. A pixel is skipped
when either band is no-data or when NIR + Red is zero. The index raster is
uploaded as GeoTIFF (float32, georeferenced) or PNG (8-bit, [-1, 1]
rescaled to 0..255) and an ndvi_results record is inserted. A failed
insert fails the job.

Exports:
    VegetationIndexProcessor
    compute_ndvi
    ndvi_statistics
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np

from core.models.enums import JobType, NdviOutputFormat
from exceptions import PersistenceError, ValidationError
from interfaces.repository import IArtifactStorage, IGeoDataRepository, IRasterSource
from services.raster_ops import encode_geotiff, encode_png, valid_pixels
from .base import JobContext, Processor

# (name, lower bound inclusive, upper bound exclusive)
VEGETATION_CLASSES = (
    ("water", -np.inf, 0.0),
    ("bare_soil", 0.0, 0.2),
    ("low_vegetation", 0.2, 0.4),
    ("moderate_vegetation", 0.4, 0.6),
    ("high_vegetation", 0.6, np.inf),
)
VEGETATED = ("low_vegetation", "moderate_vegetation", "high_vegetation")

_OUTPUTS = {
    NdviOutputFormat.GEOTIFF: ("tif", "image/tiff"),
    NdviOutputFormat.PNG: ("png", "image/png"),
}


def compute_ndvi(red: np.ndarray, nir: np.ndarray, valid: np.ndarray) -> np.ndarray:
    """
    Per-pixel NDVI. Invalid pixels and zero denominators are NaN.
    """
    red = red.astype("float64")
    nir = nir.astype("float64")
    denominator = nir + red
    usable = valid & (denominator != 0)
    ndvi = np.full(red.shape, np.nan, dtype="float64")
    ndvi[usable] = np.clip((nir[usable] - red[usable]) / denominator[usable], -1.0, 1.0)
    return ndvi


def ndvi_statistics(ndvi: np.ndarray) -> Dict[str, Any]:
    """Summary statistics and vegetation-density histogram over finite values."""
    values = ndvi[np.isfinite(ndvi)]
    count = int(values.size)
    categories = {
        name: int(np.count_nonzero((values >= low) & (values < high)))
        for name, low, high in VEGETATION_CLASSES
    }
    if count == 0:
        return {
            "min": None,
            "max": None,
            "mean": None,
            "std": None,
            "count": 0,
            "categories": categories,
            "vegetation_percentage": 0.0,
        }
    vegetated = sum(categories[name] for name in VEGETATED)
    return {
        "min": float(values.min()),
        "max": float(values.max()),
        "mean": float(values.mean()),
        "std": float(values.std()),
        "count": count,
        "categories": categories,
        "vegetation_percentage": vegetated / count * 100.0,
    }


def _band_index(value: Any, default: int, name: str) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"{name} must be a positive integer band index")
    return value


@dataclass(frozen=True)
class NdviParams:
    reference: str
    red_band: int
    nir_band: int
    output_format: NdviOutputFormat


class VegetationIndexProcessor(Processor):
    job_type = JobType.VEGETATION_INDEX

    def __init__(
        self,
        geo_repo: IGeoDataRepository,
        raster_source: IRasterSource,
        storage: IArtifactStorage,
        output_nodata: float = -9999.0,
        logger=None,
    ):
        super().__init__(logger)
        self.geo_repo = geo_repo
        self.raster_source = raster_source
        self.storage = storage
        self.output_nodata = output_nodata

    def validate(self, parameters: Dict[str, Any]) -> NdviParams:
        reference: Optional[str] = parameters.get("raster_url") or parameters.get("dataset_id")
        if not reference:
            raise ValidationError("No raster data source provided")

        red_band = _band_index(parameters.get("red_band"), 1, "red_band")
        nir_band = _band_index(parameters.get("nir_band"), 2, "nir_band")

        output_format = parameters.get("output_format") or NdviOutputFormat.GEOTIFF.value
        try:
            output_format = NdviOutputFormat(output_format)
        except ValueError:
            raise ValidationError(
                f"Unsupported output_format: {output_format}. Expected geotiff or png"
            )

        return NdviParams(
            reference=str(reference),
            red_band=red_band,
            nir_band=nir_band,
            output_format=output_format,
        )

    def run(self, params: NdviParams, context: JobContext) -> Dict[str, Any]:
        started = time.perf_counter()

        raster = self.raster_source.load(params.reference)
        red = raster.band(params.red_band)
        nir = raster.band(params.nir_band)
        valid = valid_pixels(red, raster.nodata) & valid_pixels(nir, raster.nodata)

        ndvi = compute_ndvi(red, nir, valid)
        statistics = ndvi_statistics(ndvi)
        self.logger.debug(
            f"NDVI computed over {statistics['count']} valid pixels",
            extra=context.log_extra(),
        )

        extension, content_type = _OUTPUTS[params.output_format]
        if params.output_format == NdviOutputFormat.PNG:
            content = encode_png(ndvi)
        else:
            content = encode_geotiff(ndvi, raster, self.output_nodata)
        raster_url = self.storage.upload(
            f"ndvi/{context.job_id}/ndvi.{extension}", content, content_type
        )

        processing_time = self.elapsed(started)
        record = {
            "job_id": context.job_id,
            "organization_id": context.organization_id,
            "project_id": context.project_id,
            "raster_data_url": raster_url,
            "statistics": statistics,
            "metadata": {
                "red_band": params.red_band,
                "nir_band": params.nir_band,
                "output_format": params.output_format.value,
                "processing_time": processing_time,
                "file_size": len(content),
            },
        }
        try:
            ndvi_result_id = self.geo_repo.insert_ndvi_result(record)
        except Exception as e:
            raise PersistenceError(f"Failed to save NDVI results: {e}") from e

        return {
            "ndvi_result_id": ndvi_result_id,
            "raster_url": raster_url,
            "statistics": statistics,
            "processing_time": processing_time,
            "output_format": params.output_format.value,
        }
