"""
State Transition Logic for Jobs.

Contains business rules for valid state transitions.
Separated from data models for clean architecture.

Exports:
    can_job_transition: Check if job state transition is valid
    get_job_terminal_states: Get terminal states for jobs
    get_job_active_states: Get non-terminal states for jobs
    is_job_terminal: Check if job is in terminal state
    get_job_update_sources: Status guard for repository writes

Dependencies:
    core.models.enums: JobStatus
"""

from typing import List

from ..models.enums import JobStatus


def can_job_transition(current: JobStatus, target: JobStatus) -> bool:
    """
    Check if a job can transition from current to target status.

    Status only moves forward. A job that is RUNNING may be claimed again
    (same-status no-op) when its message is redelivered after a worker crash.

    Args:
        current: Current job status
        target: Target job status

    Returns:
        True if transition is valid, False otherwise
    """
    # Same status is always allowed (no-op)
    if current == target:
        return True

    transitions = {
        JobStatus.QUEUED: [JobStatus.RUNNING, JobStatus.FAILED],
        JobStatus.RUNNING: [JobStatus.COMPLETED, JobStatus.FAILED],
        JobStatus.COMPLETED: [],  # Terminal state
        JobStatus.FAILED: [],  # Terminal state
    }

    return target in transitions.get(current, [])


def get_job_terminal_states() -> List[JobStatus]:
    """
    Get list of terminal states for jobs.

    Returns:
        List of terminal job statuses
    """
    return [
        JobStatus.COMPLETED,
        JobStatus.FAILED,
    ]


def get_job_active_states() -> List[JobStatus]:
    """
    Get list of active (non-terminal) states for jobs.

    Returns:
        List of active job statuses
    """
    return [
        JobStatus.QUEUED,
        JobStatus.RUNNING,
    ]


def is_job_terminal(status: JobStatus) -> bool:
    """
    Check if a job status is terminal.

    Args:
        status: Job status to check

    Returns:
        True if status is terminal, False otherwise
    """
    return status in get_job_terminal_states()


def get_job_update_sources(target: JobStatus) -> List[JobStatus]:
    """
    Statuses from which a write of `target` is applied.

    Repositories use this as the status guard on their single-row
    updates. A terminal status is never overwritten, including by
    itself, so a redelivered message cannot replace a stored result.

    Args:
        target: Status being written

    Returns:
        List of statuses the row must currently hold
    """
    sources = {
        JobStatus.QUEUED: [],
        JobStatus.RUNNING: [JobStatus.QUEUED, JobStatus.RUNNING],
        JobStatus.COMPLETED: [JobStatus.RUNNING],
        JobStatus.FAILED: [JobStatus.QUEUED, JobStatus.RUNNING],
    }
    return sources[target]
