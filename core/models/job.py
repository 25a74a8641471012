"""
Job Database Models - Persistence Boundary

JobRecord is the durable record of one unit of work. It is created by the
producer (status=queued) and afterwards only updated by the worker pool,
which is the sole writer of status transitions. The core never deletes a job.

JobSubmission is the minimum a producer must provide to create a job.

Exports:
    JobRecord: Pydantic model for job rows
    JobSubmission: Producer-side submission payload
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import JobStatus


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_job_id() -> str:
    """Opaque, immutable job identifier."""
    return str(uuid.uuid4())


class JobSubmission(BaseModel):
    """
    Job submission record (producer -> queue).

    job_type is kept as a free string: queue payloads are not statically
    typed, so an unknown tag must still be representable and fail at
    dispatch time rather than at parse time.
    """

    job_type: str = Field(..., min_length=1, max_length=64)
    parameters: Dict[str, Any] = Field(default_factory=dict)
    session_id: str = Field(..., min_length=1)
    project_id: Optional[str] = None
    organization_id: Optional[str] = None
    user_id: Optional[str] = None


class JobRecord(BaseModel):
    """
    Database representation of a job.

    Invariant: after a terminal transition exactly one of result_data /
    error_message is set; before it, neither is.
    """

    model_config = ConfigDict(validate_assignment=False)

    id: str = Field(default_factory=generate_job_id)
    job_type: str = Field(..., min_length=1, max_length=64)
    parameters: Dict[str, Any] = Field(default_factory=dict)
    status: JobStatus = JobStatus.QUEUED

    # Tenancy / ownership, passed through untouched
    session_id: Optional[str] = None
    project_id: Optional[str] = None
    organization_id: Optional[str] = None
    user_id: Optional[str] = None

    result_data: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None

    created_at: datetime = Field(default_factory=_utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_terminal_payload(self) -> "JobRecord":
        has_result = self.result_data is not None
        has_error = self.error_message is not None

        if self.status == JobStatus.COMPLETED and (not has_result or has_error):
            raise ValueError("completed job must carry result_data and no error_message")
        if self.status == JobStatus.FAILED and (not has_error or has_result):
            raise ValueError("failed job must carry error_message and no result_data")
        if self.status in (JobStatus.QUEUED, JobStatus.RUNNING) and (has_result or has_error):
            raise ValueError(f"{self.status.value} job cannot carry a result or error")
        return self

    @classmethod
    def from_submission(cls, submission: JobSubmission) -> "JobRecord":
        """Build the initial queued record for a submission."""
        return cls(
            job_type=submission.job_type,
            parameters=submission.parameters,
            session_id=submission.session_id,
            project_id=submission.project_id,
            organization_id=submission.organization_id,
            user_id=submission.user_id,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)
