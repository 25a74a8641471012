# ============================================================================
# PROCESSOR REGISTRY
# ============================================================================
# STATUS: Service - job type -> processor lookup
# PURPOSE: Explicit, closed mapping built once at worker startup
# EXPORTS: ProcessorRegistry, build_registry
# ============================================================================
"""
Processor Registry - Explicit Registration (No Decorators)

Every processor is constructed and registered in build_registry(). If a job
type is not listed there, it is not registered. Adding a job type means:

    1. Add the tag to core.models.enums.JobType
    2. Implement a Processor subclass in services/processors/
    3. Add one line to build_registry()

Lookup miss raises ProcessorNotFoundError; the worker pool records it as
the job's failure and keeps running.
"""

from typing import Dict, Iterable, List, Optional

from core.models.enums import JobType
from exceptions import ProcessorNotFoundError
from services.processors import (
    BufferProcessor,
    ChangeDetectionProcessor,
    Processor,
    ProcessorDependencies,
    ReportGenerationProcessor,
    VegetationIndexProcessor,
    ZonalStatisticsProcessor,
)


class ProcessorRegistry:
    """Immutable job type -> Processor mapping."""

    def __init__(self, processors: Iterable[Processor]):
        self._processors: Dict[str, Processor] = {}
        for processor in processors:
            key = processor.job_type.value
            if key in self._processors:
                raise ValueError(
                    f"Job type '{key}' already registered to "
                    f"{type(self._processors[key]).__name__}. "
                    f"Cannot register {type(processor).__name__}."
                )
            self._processors[key] = processor

    def get(self, job_type: str) -> Processor:
        """
        Resolve the processor for a job type tag.

        Raises:
            ProcessorNotFoundError: "No processor found for job type: <type>"
        """
        key = job_type.value if isinstance(job_type, JobType) else job_type
        processor = self._processors.get(key)
        if processor is None:
            raise ProcessorNotFoundError(str(key))
        return processor

    def is_registered(self, job_type: str) -> bool:
        key = job_type.value if isinstance(job_type, JobType) else job_type
        return key in self._processors

    def job_types(self) -> List[str]:
        return sorted(self._processors)

    def __len__(self) -> int:
        return len(self._processors)


def build_registry(deps: ProcessorDependencies, logger=None) -> ProcessorRegistry:
    """
    Construct every processor with its collaborators.

    Args:
        deps: Shared repositories, raster source and artifact storage
        logger: Optional logger passed to every processor (tests)
    """
    return ProcessorRegistry([
        BufferProcessor(deps.geo_repo, logger=logger),
        VegetationIndexProcessor(
            deps.geo_repo, deps.raster_source, deps.storage,
            output_nodata=deps.output_nodata, logger=logger,
        ),
        ZonalStatisticsProcessor(deps.raster_source, logger=logger),
        ChangeDetectionProcessor(
            deps.raster_source, deps.storage,
            output_nodata=deps.output_nodata, logger=logger,
        ),
        ReportGenerationProcessor(deps.geo_repo, deps.storage, logger=logger),
    ])


__all__ = ["ProcessorRegistry", "build_registry"]
