"""
In-memory raster representation.

Every raster reference (direct URL or dataset id) resolves to a RasterData
before a processor sees it. Processors depend on this shape only, never on
the decode library.

Exports:
    RasterData: Band stack with georeferencing and no-data marker
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np
from rasterio.transform import from_bounds

from exceptions import ValidationError


@dataclass
class RasterData:
    """
    Band stack with georeferencing.

    Attributes:
        bands: float array shaped (count, height, width)
        bounds: (min_x, min_y, max_x, max_y) in raster CRS units
        pixel_size: (x, y) pixel dimensions, both positive
        nodata: Value marking missing pixels (NaN is always treated as missing)
        crs: CRS identifier (e.g. "EPSG:4326"), informational
        source: URL or path the raster was read from
    """

    bands: np.ndarray
    bounds: Tuple[float, float, float, float]
    pixel_size: Tuple[float, float]
    nodata: Optional[float] = None
    crs: Optional[str] = None
    source: Optional[str] = None

    def __post_init__(self):
        bands = np.asarray(self.bands, dtype="float64")
        if bands.ndim == 2:
            bands = bands[np.newaxis, :, :]
        if bands.ndim != 3:
            raise ValueError(f"Raster bands must be 2D or 3D, got {bands.ndim}D")
        self.bands = bands
        self.bounds = tuple(float(v) for v in self.bounds)
        self.pixel_size = (abs(float(self.pixel_size[0])), abs(float(self.pixel_size[1])))

    @classmethod
    def from_array(
        cls,
        data: np.ndarray,
        bounds: Tuple[float, float, float, float],
        nodata: Optional[float] = None,
        crs: Optional[str] = "EPSG:4326",
        source: Optional[str] = None,
    ) -> "RasterData":
        """Build a raster from an array, deriving pixel size from bounds."""
        arr = np.asarray(data, dtype="float64")
        height, width = arr.shape[-2], arr.shape[-1]
        min_x, min_y, max_x, max_y = bounds
        pixel_size = ((max_x - min_x) / width, (max_y - min_y) / height)
        return cls(bands=arr, bounds=bounds, pixel_size=pixel_size,
                   nodata=nodata, crs=crs, source=source)

    @property
    def count(self) -> int:
        return self.bands.shape[0]

    @property
    def height(self) -> int:
        return self.bands.shape[1]

    @property
    def width(self) -> int:
        return self.bands.shape[2]

    @property
    def data(self) -> np.ndarray:
        """First band."""
        return self.bands[0]

    @property
    def pixel_area(self) -> float:
        return self.pixel_size[0] * self.pixel_size[1]

    @property
    def transform(self):
        """Affine transform (north-up) for this raster's grid."""
        min_x, min_y, max_x, max_y = self.bounds
        return from_bounds(min_x, min_y, max_x, max_y, self.width, self.height)

    def band(self, index: int) -> np.ndarray:
        """Return band by 1-based index."""
        if not isinstance(index, int) or isinstance(index, bool) or index < 1 or index > self.count:
            raise ValidationError(
                f"Band {index} out of range: raster has {self.count} band(s)"
            )
        return self.bands[index - 1]

    def info(self) -> Dict[str, Any]:
        """Dimensions and bounds, as reported in processing metadata."""
        min_x, min_y, max_x, max_y = self.bounds
        return {
            "width": self.width,
            "height": self.height,
            "bounds": {"minX": min_x, "minY": min_y, "maxX": max_x, "maxY": max_y},
        }
