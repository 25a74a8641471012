# ============================================================================
# JOB SUBMISSION SERVICE
# ============================================================================
# STATUS: Service layer - Job creation and queue submission (producer side)
# PURPOSE: Create the queued job record and enqueue its message
# EXPORTS: submit_job
# DEPENDENCIES: interfaces.repository (IJobRepository, IJobQueue)
# ============================================================================
"""
Job Submission Service.

The web app is the real producer; this helper gives the CLI, the
standalone mode and the tests the same two steps it performs:

    1. Insert a JobRecord with status=queued
    2. Send the JobMessage to the work queue

The "waiting" lifecycle event is published by the worker's listener when
it receives the message, so it is emitted for every producer.
"""

from core.models.job import JobRecord, JobSubmission
from exceptions import DatabaseError
from interfaces.repository import IJobQueue, IJobRepository
from util_logger import LoggerFactory, ComponentType, LogContext
from worker.contracts import JobMessage

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "job_submission")


async def submit_job(
    submission: JobSubmission,
    job_repo: IJobRepository,
    queue: IJobQueue,
) -> JobRecord:
    """
    Create a job record and enqueue it.

    Args:
        submission: Producer payload (job_type, parameters, tenancy ids)
        job_repo: Job store the worker will update
        queue: Work queue the worker listens on

    Returns:
        The created JobRecord (status=queued)

    Raises:
        DatabaseError: Record could not be created (duplicate id)
    """
    job = JobRecord.from_submission(submission)
    log_extra = LogContext(
        job_id=job.id,
        job_type=job.job_type,
        session_id=job.session_id,
        project_id=job.project_id,
    ).as_extra()

    if not job_repo.create_job(job):
        raise DatabaseError(f"Job {job.id} already exists")

    await queue.send(JobMessage.from_record(job).to_queue_body())
    logger.info(f"Submitted job {job.id} ({job.job_type}) to queue", extra=log_extra)

    return job
