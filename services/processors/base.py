# ============================================================================
# PROCESSOR BASE
# ============================================================================
# STATUS: Service - processor extension contract
# PURPOSE: Shared validate -> run flow, timing and logging for all processors
# EXPORTS: Processor, JobContext, ProcessorDependencies
# ============================================================================
"""
Processor Base

Each job type has exactly one Processor. A processor is a synchronous
transformation, parameters -> JSON-serializable result dict, run on the
worker pool's executor threads.

Flow enforced by Processor.process():
    1. validate(parameters)  pure; raises ValidationError before any I/O
    2. run(params, context)  raster fetches, storage uploads, store writes

Collaborators (repositories, raster source, artifact storage, logger) are
injected through the constructor so a processor is testable with fakes.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from core.models.enums import JobType
from interfaces.repository import IArtifactStorage, IGeoDataRepository, IRasterSource
from util_logger import LoggerFactory, ComponentType, LogContext


@dataclass(frozen=True)
class JobContext:
    """Identity and tenancy of the job being processed."""

    job_id: str
    job_type: str
    session_id: Optional[str] = None
    project_id: Optional[str] = None
    organization_id: Optional[str] = None
    user_id: Optional[str] = None

    def log_extra(self, **fields: Any) -> Dict[str, Any]:
        return LogContext(
            job_id=self.job_id,
            job_type=self.job_type,
            session_id=self.session_id,
            project_id=self.project_id,
            organization_id=self.organization_id,
            user_id=self.user_id,
        ).as_extra(**fields)


@dataclass
class ProcessorDependencies:
    """Everything the registry needs to build the processors."""

    geo_repo: IGeoDataRepository
    raster_source: IRasterSource
    storage: IArtifactStorage
    output_nodata: float = -9999.0


class Processor(ABC):
    """
    Abstract base class for all processors.

    Subclasses set job_type and implement validate() and run().
    """

    job_type: JobType

    def __init__(self, logger: Optional[logging.LoggerAdapter] = None):
        self.logger = logger or LoggerFactory.create_logger(
            ComponentType.PROCESSOR, type(self).__name__
        )

    @abstractmethod
    def validate(self, parameters: Dict[str, Any]) -> Any:
        """
        Check and normalize raw job parameters.

        Raises:
            ValidationError: With a user-actionable message
        """

    @abstractmethod
    def run(self, params: Any, context: JobContext) -> Dict[str, Any]:
        """Execute the processor on validated parameters."""

    def process(self, parameters: Dict[str, Any], context: JobContext) -> Dict[str, Any]:
        """
        Validate, then run.

        Exceptions propagate unlogged; the worker pool logs the failure once
        and records it on the job.
        """
        self.logger.info(
            f"Starting {self.job_type.value} processing for job {context.job_id}",
            extra=context.log_extra(),
        )
        params = self.validate(parameters or {})
        return self.run(params, context)

    @staticmethod
    def elapsed(started: float) -> float:
        """Seconds since a time.perf_counter() reading, rounded to ms."""
        return round(time.perf_counter() - started, 3)
