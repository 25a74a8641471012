"""
Pure Enumeration Types for Core Framework.

Defines valid states and closed vocabularies for jobs and processors.
No business logic - pure type definitions only.

Exports:
    JobStatus: Job state enumeration
    JobType: Job type tags (one per processor)
    LifecycleEventType: Observable worker lifecycle events
    ReportType: Report generation presets
    ReportFormat: Report serialization formats
    ChangeMethod: Change detection pixel methods
    NdviOutputFormat: Encoded NDVI raster formats
    DistanceUnit: Buffer distance units
"""

from enum import Enum


class JobStatus(str, Enum):
    """
    Valid status values for jobs.

    State transitions:
    - QUEUED -> RUNNING -> COMPLETED (normal flow)
    - QUEUED -> RUNNING -> FAILED (processor raised)
    - QUEUED -> FAILED (job could not be claimed, e.g. malformed payload)
    """

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobType(str, Enum):
    """Job type tags. Each tag selects exactly one processor."""

    BUFFER = "buffer"
    VEGETATION_INDEX = "vegetation_index"
    ZONAL_STATS = "zonal_stats"
    CHANGE_DETECTION = "change_detection"
    REPORT_GENERATION = "report_generation"


class LifecycleEventType(str, Enum):
    """Events emitted for external monitoring."""

    WAITING = "waiting"      # Enqueued by the producer
    ACTIVE = "active"        # Claimed by a worker, status=running
    COMPLETED = "completed"  # Carries the processor return value
    FAILED = "failed"        # Carries the failure reason


class ReportType(str, Enum):
    SUMMARY = "summary"
    DETAILED = "detailed"
    SPATIAL_ANALYSIS = "spatial_analysis"
    CUSTOM = "custom"


class ReportFormat(str, Enum):
    JSON = "json"
    HTML = "html"
    PDF = "pdf"


class ChangeMethod(str, Enum):
    SIMPLE_DIFFERENCE = "simple_difference"
    NORMALIZED_DIFFERENCE = "normalized_difference"
    RATIO = "ratio"


class NdviOutputFormat(str, Enum):
    GEOTIFF = "geotiff"
    PNG = "png"


class DistanceUnit(str, Enum):
    """Units accepted for buffer distances. Converted to meters internally."""

    METERS = "meters"
    KILOMETERS = "kilometers"
    MILES = "miles"
    FEET = "feet"
