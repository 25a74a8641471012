"""
Deterministic model factories.

Every value is fixed or derived from the arguments so a failing test
reproduces exactly. Rasters are small synthetic grids, never random.
"""

from typing import Any, Dict, List, Optional

import numpy as np


# ============================================================================
# JOBS
# ============================================================================

def make_submission(job_type: str = "buffer", parameters: Optional[Dict[str, Any]] = None, **overrides):
    """
    Build a JobSubmission.

    Returns:
        JobSubmission instance
    """
    from core.models.job import JobSubmission

    base = {
        "job_type": job_type,
        "parameters": parameters if parameters is not None else {},
        "session_id": "session-1",
        "project_id": "project-1",
        "organization_id": "org-1",
        "user_id": "user-1",
    }
    base.update(overrides)
    return JobSubmission(**base)


def make_job_record(job_type: str = "buffer", parameters: Optional[Dict[str, Any]] = None, **overrides):
    """
    Build a queued JobRecord.

    Returns:
        JobRecord instance
    """
    from core.models.job import JobRecord

    base = {
        "job_type": job_type,
        "parameters": parameters if parameters is not None else {},
        "session_id": "session-1",
        "project_id": "project-1",
        "organization_id": "org-1",
        "user_id": "user-1",
    }
    base.update(overrides)
    return JobRecord(**base)


def make_context(job_id: str = "job-1", job_type: str = "buffer", **overrides):
    """Build a JobContext for calling processors directly."""
    from services.processors.base import JobContext

    base = {
        "job_id": job_id,
        "job_type": job_type,
        "session_id": "session-1",
        "project_id": "project-1",
        "organization_id": "org-1",
        "user_id": "user-1",
    }
    base.update(overrides)
    return JobContext(**base)


# ============================================================================
# GEOMETRY
# ============================================================================

NYC_POINT = {"type": "Point", "coordinates": [-74.0059, 40.7128]}


def square(min_x: float, min_y: float, max_x: float, max_y: float) -> Dict[str, Any]:
    """GeoJSON Polygon for an axis-aligned box."""
    return {
        "type": "Polygon",
        "coordinates": [[
            [min_x, min_y], [max_x, min_y], [max_x, max_y], [min_x, max_y], [min_x, min_y],
        ]],
    }


def make_zone(geometry, zone_id=None, name: Optional[str] = None) -> Dict[str, Any]:
    """GeoJSON Feature usable as a zonal statistics zone."""
    properties = {}
    if zone_id is not None:
        properties["id"] = zone_id
    if name is not None:
        properties["name"] = name
    return {"type": "Feature", "geometry": geometry, "properties": properties}


# ============================================================================
# RASTERS
# ============================================================================

def make_raster(values, bounds=(0.0, 0.0, 10.0, 10.0), nodata: Optional[float] = None,
                crs: str = "EPSG:4326"):
    """
    Build a RasterData from an array (2D single band or 3D band stack).

    Default bounds give 1-degree pixels on a 10x10 grid.
    """
    from core.models.raster import RasterData

    return RasterData.from_array(np.asarray(values, dtype="float64"), bounds=bounds,
                                 nodata=nodata, crs=crs)


def gradient_raster(size: int = 10, **kwargs):
    """size x size grid holding 0..size*size-1 in row-major order (row 0 is north)."""
    return make_raster(np.arange(size * size, dtype="float64").reshape(size, size), **kwargs)


def two_band_raster(red, nir, **kwargs):
    """Red in band 1, NIR in band 2."""
    return make_raster(np.stack([np.asarray(red, dtype="float64"),
                                 np.asarray(nir, dtype="float64")]), **kwargs)


# ============================================================================
# COLLABORATOR FAKES
# ============================================================================

class StaticRasterSource:
    """IRasterSource backed by a reference -> RasterData dict."""

    def __init__(self, rasters: Dict[str, Any]):
        self.rasters = dict(rasters)
        self.loaded: List[str] = []

    def load(self, reference: str):
        from exceptions import ResourceNotFoundError

        self.loaded.append(reference)
        if reference not in self.rasters:
            raise ResourceNotFoundError(f"Dataset not found: {reference}")
        return self.rasters[reference]


class RecordingStorage:
    """IArtifactStorage that keeps uploads in memory."""

    def __init__(self, base_url: str = "https://artifacts.test"):
        self.base_url = base_url
        self.uploads: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}

    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        self.uploads[path] = data
        self.content_types[path] = content_type
        return f"{self.base_url}/{path}"
