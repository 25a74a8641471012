"""
Raster Pipeline Configuration.

Exports:
    RasterConfig: Pydantic raster configuration model
"""

import os

from pydantic import BaseModel, Field

from .defaults import RasterDefaults


class RasterConfig(BaseModel):
    """
    Raster fetch and output settings.
    """

    fetch_timeout_seconds: float = Field(
        default=RasterDefaults.FETCH_TIMEOUT_SECONDS,
        gt=0,
        description="Network timeout for fetching raster bytes (RASTER_FETCH_TIMEOUT)"
    )

    output_nodata: float = Field(
        default=RasterDefaults.OUTPUT_NODATA,
        description="No-data value written into derived GeoTIFFs (RASTER_OUTPUT_NODATA)"
    )

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            fetch_timeout_seconds=float(os.environ.get(
                "RASTER_FETCH_TIMEOUT", str(RasterDefaults.FETCH_TIMEOUT_SECONDS)
            )),
            output_nodata=float(os.environ.get(
                "RASTER_OUTPUT_NODATA", str(RasterDefaults.OUTPUT_NODATA)
            )),
        )
