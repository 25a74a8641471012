# ============================================================================
# WORKER CONTRACTS
# ============================================================================
# STATUS: Core - Message schemas for the job queue and lifecycle events
# PURPOSE: Define JobMessage (input), JobOutcome (output), LifecycleEvent
# ============================================================================
"""
Worker Contracts

JobMessage: what the producer puts on the queue
JobOutcome: what one execution produced (drives queue settlement)
LifecycleEvent: what observers receive (waiting, active, completed, failed)
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from core.models.enums import JobStatus, LifecycleEventType
from core.models.job import JobRecord

ERROR_MESSAGE_LIMIT = 2000


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JobMessage(BaseModel):
    """
    Queue payload for one job.

    The job store record is authoritative; the message carries a copy of
    the submission so a consumer can log and route before reading it.
    """
    # Identity
    job_id: str = Field(..., min_length=1, max_length=64)
    job_type: str = Field(..., min_length=1, max_length=64)

    # What to execute
    parameters: Dict[str, Any] = Field(default_factory=dict)

    # Tenancy
    session_id: Optional[str] = None
    project_id: Optional[str] = None
    organization_id: Optional[str] = None
    user_id: Optional[str] = None

    enqueued_at: Optional[datetime] = None

    @classmethod
    def from_queue_message(cls, data: Dict[str, Any]) -> "JobMessage":
        """
        Deserialize from a queue message body.

        Args:
            data: Parsed JSON from message body

        Raises:
            pydantic.ValidationError: Body does not describe a job
        """
        data = dict(data)
        if isinstance(data.get("enqueued_at"), str):
            data["enqueued_at"] = datetime.fromisoformat(
                data["enqueued_at"].replace("Z", "+00:00")
            )
        return cls(**data)

    @classmethod
    def from_record(cls, job: JobRecord) -> "JobMessage":
        return cls(
            job_id=job.id,
            job_type=job.job_type,
            parameters=job.parameters,
            session_id=job.session_id,
            project_id=job.project_id,
            organization_id=job.organization_id,
            user_id=job.user_id,
            enqueued_at=_utc_now(),
        )

    def to_queue_body(self) -> Dict[str, Any]:
        """JSON-safe body for IJobQueue.send()."""
        return self.model_dump(mode="json")


class JobOutcome(BaseModel):
    """
    Result of executing one queue message.

    skipped is set when the job was already terminal (a redelivery) and
    the processor was not run again.
    """
    job_id: str
    job_type: str
    status: JobStatus
    result: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = Field(default=None, max_length=ERROR_MESSAGE_LIMIT)
    duration_ms: int = Field(default=0, ge=0)
    worker_id: Optional[str] = None
    skipped: bool = False

    @classmethod
    def success(
        cls,
        message: JobMessage,
        result: Dict[str, Any],
        duration_ms: int,
        worker_id: Optional[str] = None,
    ) -> "JobOutcome":
        """Factory for a completed job."""
        return cls(
            job_id=message.job_id,
            job_type=message.job_type,
            status=JobStatus.COMPLETED,
            result=result,
            duration_ms=duration_ms,
            worker_id=worker_id,
        )

    @classmethod
    def failure(
        cls,
        message: JobMessage,
        error_message: str,
        duration_ms: int,
        worker_id: Optional[str] = None,
    ) -> "JobOutcome":
        """Factory for a failed job."""
        return cls(
            job_id=message.job_id,
            job_type=message.job_type,
            status=JobStatus.FAILED,
            error_message=error_message[:ERROR_MESSAGE_LIMIT],
            duration_ms=duration_ms,
            worker_id=worker_id,
        )

    @classmethod
    def already_terminal(cls, job: JobRecord, worker_id: Optional[str] = None) -> "JobOutcome":
        return cls(
            job_id=job.id,
            job_type=job.job_type,
            status=job.status,
            result=job.result_data,
            error_message=(job.error_message or "")[:ERROR_MESSAGE_LIMIT] or None,
            worker_id=worker_id,
            skipped=True,
        )

    @property
    def succeeded(self) -> bool:
        return self.status == JobStatus.COMPLETED


class LifecycleEvent(BaseModel):
    """Observable job lifecycle event."""
    event_type: LifecycleEventType
    job_id: str
    job_type: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utc_now)
    worker_id: Optional[str] = None
    return_value: Optional[Dict[str, Any]] = None
    failed_reason: Optional[str] = None

    @classmethod
    def waiting(cls, message: JobMessage, worker_id: Optional[str] = None) -> "LifecycleEvent":
        return cls(
            event_type=LifecycleEventType.WAITING,
            job_id=message.job_id,
            job_type=message.job_type,
            worker_id=worker_id,
        )

    @classmethod
    def active(cls, message: JobMessage, worker_id: Optional[str] = None) -> "LifecycleEvent":
        return cls(
            event_type=LifecycleEventType.ACTIVE,
            job_id=message.job_id,
            job_type=message.job_type,
            worker_id=worker_id,
        )

    @classmethod
    def from_outcome(cls, outcome: JobOutcome) -> "LifecycleEvent":
        if outcome.succeeded:
            return cls(
                event_type=LifecycleEventType.COMPLETED,
                job_id=outcome.job_id,
                job_type=outcome.job_type,
                worker_id=outcome.worker_id,
                return_value=outcome.result,
            )
        return cls(
            event_type=LifecycleEventType.FAILED,
            job_id=outcome.job_id,
            job_type=outcome.job_type,
            worker_id=outcome.worker_id,
            failed_reason=outcome.error_message,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for HTTP POST."""
        return self.model_dump(mode="json")
