"""
Geospatial processors, one per job type.

Exports:
    Processor: Abstract validate -> run base class
    JobContext: Job identity and tenancy passed to run()
    ProcessorDependencies: Collaborators used to build the registry
    BufferProcessor, VegetationIndexProcessor, ZonalStatisticsProcessor,
    ChangeDetectionProcessor, ReportGenerationProcessor
"""

from .base import JobContext, Processor, ProcessorDependencies
from .buffer import BufferProcessor
from .vegetation_index import VegetationIndexProcessor
from .zonal_statistics import ZonalStatisticsProcessor
from .change_detection import ChangeDetectionProcessor
from .report_generation import ReportGenerationProcessor

__all__ = [
    "Processor",
    "JobContext",
    "ProcessorDependencies",
    "BufferProcessor",
    "VegetationIndexProcessor",
    "ZonalStatisticsProcessor",
    "ChangeDetectionProcessor",
    "ReportGenerationProcessor",
]
