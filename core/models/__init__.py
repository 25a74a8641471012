"""
Core Data Models Package.

Contains pure data structures without business logic.
All business logic is in the core.logic package.

Exports:
    JobRecord, JobSubmission: Job persistence models
    RasterData: In-memory raster representation
    JobStatus, JobType, LifecycleEventType: Lifecycle enums
    ReportType, ReportFormat, ChangeMethod, NdviOutputFormat, DistanceUnit:
        Parameter vocabularies
"""

from .enums import (
    JobStatus,
    JobType,
    LifecycleEventType,
    ReportType,
    ReportFormat,
    ChangeMethod,
    NdviOutputFormat,
    DistanceUnit,
)
from .job import JobRecord, JobSubmission, generate_job_id
from .raster import RasterData

__all__ = [
    'JobStatus',
    'JobType',
    'LifecycleEventType',
    'ReportType',
    'ReportFormat',
    'ChangeMethod',
    'NdviOutputFormat',
    'DistanceUnit',
    'JobRecord',
    'JobSubmission',
    'generate_job_id',
    'RasterData',
]
