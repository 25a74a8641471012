# ============================================================================
# IN-MEMORY REPOSITORIES
# ============================================================================
# STATUS: Infrastructure - standalone mode backends
# PURPOSE: Job store, project data and work queue held in process memory
# EXPORTS: InMemoryJobRepository, InMemoryGeoDataRepository, InMemoryJobQueue
# INTERFACES: IJobRepository, IGeoDataRepository, IJobQueue
# ============================================================================
"""
In-Memory Repositories

Same semantics as the PostgreSQL / Service Bus implementations:

- status writes are guarded by get_job_update_sources()
- every write touches exactly one job id
- the queue redelivers abandoned messages with an incremented
  delivery count and keeps dead-lettered messages for inspection

Store writes run on executor threads, so the repositories lock
around every mutation. The queue is only touched from the event loop.
"""

import asyncio
import json
import threading
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional, Tuple

from core.logic.transitions import get_job_update_sources
from core.models.enums import JobStatus
from core.models.job import JobRecord
from interfaces.repository import (
    IGeoDataRepository,
    IJobQueue,
    IJobRepository,
    QueuedJob,
)
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "InMemoryRepository")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ============================================================================
# JOB REPOSITORY
# ============================================================================

class InMemoryJobRepository(IJobRepository):
    """Job rows keyed by id."""

    def __init__(self):
        self._lock = threading.Lock()
        self._jobs: Dict[str, JobRecord] = {}

    def create_job(self, job: JobRecord) -> bool:
        with self._lock:
            if job.id in self._jobs:
                logger.info(f"Job already exists: {job.id} (idempotent)")
                return False
            self._jobs[job.id] = job.model_copy(deep=True)
        logger.debug(f"Job created: {job.id} type={job.job_type}")
        return True

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def list_jobs(self) -> List[JobRecord]:
        with self._lock:
            return [job.model_copy(deep=True) for job in self._jobs.values()]

    def _guarded_update(self, job_id: str, target: JobStatus, **fields: Any) -> bool:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                logger.warning(f"Job not found for update: {job_id}")
                return False
            if job.status not in get_job_update_sources(target):
                logger.warning(
                    f"Rejected {job.status.value} -> {target.value} for job {job_id}"
                )
                return False
            self._jobs[job_id] = job.model_copy(update={"status": target, **fields})
            return True

    def mark_running(self, job_id: str) -> bool:
        return self._guarded_update(job_id, JobStatus.RUNNING, started_at=_utc_now())

    def mark_completed(self, job_id: str, result: Dict[str, Any]) -> bool:
        return self._guarded_update(
            job_id, JobStatus.COMPLETED,
            result_data=result, error_message=None, completed_at=_utc_now(),
        )

    def mark_failed(self, job_id: str, error_message: str) -> bool:
        return self._guarded_update(
            job_id, JobStatus.FAILED,
            error_message=error_message, result_data=None, completed_at=_utc_now(),
        )


# ============================================================================
# GEO DATA REPOSITORY
# ============================================================================

class InMemoryGeoDataRepository(IGeoDataRepository):
    """
    Organizations, projects, datasets and processor output tables.

    Job listings for reports are read through the job repository so a
    report sees the same lifecycle rows the worker writes.
    """

    def __init__(self, jobs: Optional[InMemoryJobRepository] = None):
        self._lock = threading.Lock()
        self.jobs = jobs
        self.organizations: Dict[str, Dict[str, Any]] = {}
        self.projects: Dict[str, Dict[str, Any]] = {}
        self.datasets: Dict[str, Dict[str, Any]] = {}
        self.geo_features: Dict[str, Dict[str, Any]] = {}
        self.ndvi_results: Dict[str, Dict[str, Any]] = {}
        self.reports: Dict[str, Dict[str, Any]] = {}

    # ------------------------------------------------------------------
    # Seeding (standalone mode bootstrap and tests)
    # ------------------------------------------------------------------

    def add_organization(self, name: str, organization_id: Optional[str] = None) -> str:
        organization_id = organization_id or _new_id()
        with self._lock:
            self.organizations[organization_id] = {"id": organization_id, "name": name}
        return organization_id

    def add_project(
        self,
        title: str,
        organization_id: str,
        project_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> str:
        project_id = project_id or _new_id()
        now = _utc_now()
        with self._lock:
            self.projects[project_id] = {
                "id": project_id,
                "title": title,
                "description": description,
                "organization_id": organization_id,
                "created_at": now,
                "updated_at": now,
            }
        return project_id

    def add_dataset(
        self,
        project_id: str,
        name: str,
        file_path: str,
        data_type: str = "raster",
        file_size: int = 0,
        dataset_id: Optional[str] = None,
    ) -> str:
        dataset_id = dataset_id or _new_id()
        with self._lock:
            self.datasets[dataset_id] = {
                "id": dataset_id,
                "project_id": project_id,
                "name": name,
                "file_path": file_path,
                "data_type": data_type,
                "file_size": file_size,
                "created_at": _utc_now(),
            }
        return dataset_id

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def resolve_dataset_url(self, dataset_id: str) -> Optional[str]:
        with self._lock:
            dataset = self.datasets.get(dataset_id)
            return dataset["file_path"] if dataset else None

    def get_project(self, project_id: str, organization_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        with self._lock:
            project = self.projects.get(project_id)
            if project is None:
                return None
            if organization_id is not None and project["organization_id"] != organization_id:
                return None
            organization = self.organizations.get(project["organization_id"], {})
            return {**project, "organization_name": organization.get("name")}

    def list_project_datasets(self, project_id: str) -> List[Dict[str, Any]]:
        with self._lock:
            rows = [dict(d) for d in self.datasets.values() if d["project_id"] == project_id]
        return sorted(rows, key=lambda r: r["created_at"], reverse=True)

    def list_project_jobs(
        self,
        project_id: str,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        if self.jobs is None:
            return []
        rows = [
            {
                "id": job.id,
                "job_type": job.job_type,
                "status": job.status.value,
                "created_at": job.created_at,
                "started_at": job.started_at,
                "completed_at": job.completed_at,
                "result_data": job.result_data,
                "error_message": job.error_message,
            }
            for job in self.jobs.list_jobs()
            if job.project_id == project_id and (status is None or job.status.value == status)
        ]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return rows[:limit] if limit is not None else rows

    def list_ndvi_results(self, project_id: str) -> List[Dict[str, Any]]:
        with self._lock:
            rows = [dict(r) for r in self.ndvi_results.values() if r["project_id"] == project_id]
        return sorted(rows, key=lambda r: r["created_at"], reverse=True)

    def list_geo_features(self, project_id: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(f) for f in self.geo_features.values() if f.get("project_id") == project_id]

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def _insert(self, table: Dict[str, Dict[str, Any]], record: Dict[str, Any]) -> str:
        record_id = _new_id()
        with self._lock:
            table[record_id] = {**record, "id": record_id, "created_at": _utc_now()}
        return record_id

    def insert_geo_feature(self, feature: Dict[str, Any]) -> str:
        return self._insert(self.geo_features, feature)

    def insert_ndvi_result(self, record: Dict[str, Any]) -> str:
        return self._insert(self.ndvi_results, record)

    def insert_report(self, record: Dict[str, Any]) -> str:
        return self._insert(self.reports, record)


# ============================================================================
# WORK QUEUE
# ============================================================================

class InMemoryJobQueue(IJobQueue):
    """
    Process-local work queue.

    Bodies are JSON round-tripped on send so the worker sees exactly what a
    network queue would deliver.
    """

    POLL_INTERVAL_SECONDS = 0.01

    def __init__(self):
        self._pending: Deque[Tuple[str, int]] = deque()
        self._in_flight = 0
        self.completed: List[Dict[str, Any]] = []
        self.dead_lettered: List[Tuple[Optional[Dict[str, Any]], str, str]] = []
        self._closed = False

    async def send(self, body: Dict[str, Any]) -> None:
        self._pending.append((json.dumps(body, default=str), 1))

    def put_raw(self, payload: str) -> None:
        """Enqueue an undecoded payload (tests exercise malformed messages with this)."""
        self._pending.append((payload, 1))

    async def receive(self, max_count: int, max_wait: float) -> List[QueuedJob]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + max_wait
        while True:
            items = []
            while self._pending and len(items) < max_count:
                payload, delivery_count = self._pending.popleft()
                items.append(self._decode(payload, delivery_count))
            if items or self._closed or loop.time() >= deadline:
                self._in_flight += len(items)
                return items
            await asyncio.sleep(self.POLL_INTERVAL_SECONDS)

    @staticmethod
    def _decode(payload: str, delivery_count: int) -> QueuedJob:
        try:
            body = json.loads(payload)
        except json.JSONDecodeError as e:
            return QueuedJob(body=None, raw=payload, delivery_count=delivery_count, decode_error=str(e))
        return QueuedJob(body=body, raw=payload, delivery_count=delivery_count)

    async def complete(self, item: QueuedJob) -> None:
        self._in_flight -= 1
        self.completed.append(item.body)

    async def abandon(self, item: QueuedJob) -> None:
        self._in_flight -= 1
        self._pending.append((item.raw, item.delivery_count + 1))

    async def dead_letter(self, item: QueuedJob, reason: str, description: str = "") -> None:
        self._in_flight -= 1
        self.dead_lettered.append((item.body, reason, description))

    async def close(self) -> None:
        self._closed = True

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_drained(self) -> bool:
        """Nothing waiting and nothing received-but-unsettled."""
        return not self._pending and self._in_flight == 0
