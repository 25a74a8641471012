# ============================================================================
# REPOSITORY INTERFACES
# ============================================================================
# STATUS: Interface - abstract contracts for every external collaborator
# PURPOSE: Let processors and the worker pool depend on behavior, not backends
# EXPORTS: IJobRepository, IGeoDataRepository, IJobQueue, QueuedJob,
#          IArtifactStorage, IRasterSource
# PATTERNS: Interface segregation, dependency inversion
# ============================================================================

"""
Repository Interfaces

Defines the contracts between the job core and its collaborators:

    IJobRepository      - job lifecycle rows (the worker is the sole status writer)
    IGeoDataRepository  - project data read by processors, derived records they insert
    IJobQueue           - at-least-once work queue (async)
    IArtifactStorage    - job-id-namespaced object storage for rasters / reports
    IRasterSource       - raster reference -> in-memory RasterData

PostgreSQL / Service Bus / Blob implementations live in infrastructure/;
in-memory implementations with identical semantics back standalone mode
and the test suite.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


class IJobRepository(ABC):
    """
    Job store operations.

    Every write is a single-row update scoped to one job id and guarded
    by the job's current status, so no cross-job locking is needed.
    """

    @abstractmethod
    def create_job(self, job) -> bool:
        """Insert a queued job. Returns False if the id already exists."""
        pass

    @abstractmethod
    def get_job(self, job_id: str):
        """Return the JobRecord or None."""
        pass

    @abstractmethod
    def mark_running(self, job_id: str) -> bool:
        """status=running, started_at=now. Allowed from queued or running."""
        pass

    @abstractmethod
    def mark_completed(self, job_id: str, result: Dict[str, Any]) -> bool:
        """status=completed, result_data, completed_at=now. Allowed from running."""
        pass

    @abstractmethod
    def mark_failed(self, job_id: str, error_message: str) -> bool:
        """status=failed, error_message, completed_at=now. Allowed from queued or running."""
        pass


class IGeoDataRepository(ABC):
    """
    Project data consumed and produced by processors.
    """

    @abstractmethod
    def resolve_dataset_url(self, dataset_id: str) -> Optional[str]:
        """Return the stored file URL/path for a project dataset, or None."""
        pass

    @abstractmethod
    def insert_geo_feature(self, feature: Dict[str, Any]) -> str:
        """Insert a named feature; returns its id."""
        pass

    @abstractmethod
    def insert_ndvi_result(self, record: Dict[str, Any]) -> str:
        """Insert an NDVI result record; returns its id."""
        pass

    @abstractmethod
    def insert_report(self, record: Dict[str, Any]) -> str:
        """Insert a report record; returns its id."""
        pass

    @abstractmethod
    def get_project(self, project_id: str, organization_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Return the project joined with its organization name.

        When organization_id is given, only a project owned by that
        organization is returned.
        """
        pass

    @abstractmethod
    def list_project_datasets(self, project_id: str) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def list_project_jobs(
        self,
        project_id: str,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Jobs for a project, newest first."""
        pass

    @abstractmethod
    def list_ndvi_results(self, project_id: str) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def list_geo_features(self, project_id: str) -> List[Dict[str, Any]]:
        pass


@dataclass
class QueuedJob:
    """
    A received queue message.

    body: decoded JSON payload (None when the payload was not valid JSON)
    raw: backend handle needed to settle the message
    delivery_count: how many times the queue has delivered this message
    """
    body: Optional[Dict[str, Any]]
    raw: Any = None
    delivery_count: int = 1
    decode_error: Optional[str] = None


class IJobQueue(ABC):
    """
    Durable at-least-once work queue.

    A received message stays locked until it is settled with complete,
    abandon (redeliver) or dead_letter (park for inspection).
    """

    @abstractmethod
    async def send(self, body: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def receive(self, max_count: int, max_wait: float) -> List[QueuedJob]:
        pass

    @abstractmethod
    async def complete(self, item: QueuedJob) -> None:
        pass

    @abstractmethod
    async def abandon(self, item: QueuedJob) -> None:
        pass

    @abstractmethod
    async def dead_letter(self, item: QueuedJob, reason: str, description: str = "") -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


class IArtifactStorage(ABC):
    """
    Object storage for derived artifacts.
    """

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """
        Store bytes at path.

        Returns:
            Retrievable URL for the stored object
        """
        pass


class IRasterSource(ABC):
    """
    Resolves a raster reference (URL or dataset id) to RasterData.
    """

    @abstractmethod
    def load(self, reference: str):
        """
        Raises:
            ValidationError: Empty reference
            ResourceNotFoundError: Unknown dataset id
            UpstreamError: Fetch failure, timeout or undecodable bytes
        """
        pass
