# ============================================================================
# RASTER UTILITIES
# ============================================================================
# STATUS: Service - stateless raster helpers used by processors
# PURPOSE: Validity masks, geometry rasterisation, GeoTIFF / PNG encoding
# EXPORTS: valid_pixels, rasterize_mask, encode_geotiff, encode_png
# DEPENDENCIES: numpy, rasterio, shapely
# ============================================================================
"""
Raster Utilities

Operates on RasterData grids. Encoding uses rasterio MemoryFile so no
temporary files touch disk.
"""

from typing import Iterable, Optional

import numpy as np
from rasterio.features import geometry_mask
from rasterio.io import MemoryFile
from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

from core.models.raster import RasterData


def valid_pixels(values: np.ndarray, nodata: Optional[float]) -> np.ndarray:
    """True where values are finite and not the no-data marker."""
    mask = np.isfinite(values)
    if nodata is not None and not np.isnan(nodata):
        mask &= values != nodata
    return mask


def rasterize_mask(
    geometries: Iterable[BaseGeometry],
    raster: RasterData,
    all_touched: bool = False,
) -> np.ndarray:
    """
    Boolean grid, True for pixels covered by any of the geometries.

    Geometries must be in the raster's CRS.
    """
    shapes = [mapping(g) for g in geometries if g is not None and not g.is_empty]
    if not shapes:
        return np.zeros((raster.height, raster.width), dtype=bool)
    return geometry_mask(
        shapes,
        out_shape=(raster.height, raster.width),
        transform=raster.transform,
        invert=True,
        all_touched=all_touched,
    )


def encode_geotiff(values: np.ndarray, template: RasterData, nodata: float) -> bytes:
    """
    Single-band float32 GeoTIFF on the template raster's grid.

    NaN cells are written as nodata.
    """
    out = np.where(np.isfinite(values), values, nodata).astype("float32")
    profile = {
        "driver": "GTiff",
        "height": template.height,
        "width": template.width,
        "count": 1,
        "dtype": "float32",
        "nodata": nodata,
        "transform": template.transform,
        "compress": "deflate",
    }
    if template.crs:
        profile["crs"] = template.crs
    with MemoryFile() as memfile:
        with memfile.open(**profile) as dst:
            dst.write(out, 1)
        return memfile.read()


def encode_png(values: np.ndarray, low: float = -1.0, high: float = 1.0) -> bytes:
    """
    Grayscale 8-bit PNG, linearly rescaling [low, high] to 0..255.

    Non-finite cells become 0.
    """
    scaled = (np.clip(values, low, high) - low) / (high - low) * 255.0
    out = np.where(np.isfinite(values), np.round(scaled), 0).astype("uint8")
    height, width = out.shape
    with MemoryFile() as memfile:
        with memfile.open(driver="PNG", height=height, width=width, count=1, dtype="uint8") as dst:
            dst.write(out, 1)
        return memfile.read()
