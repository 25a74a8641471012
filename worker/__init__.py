# ============================================================================
# WORKER POOL
# ============================================================================
# STATUS: Core - Job execution for the geoai worker service
# PURPOSE: Listen for jobs, execute processors, record lifecycle, emit events
# ============================================================================
"""
Worker Pool

Components:
    - config.py:     WorkerConfig (concurrency, timeouts, webhook)
    - contracts.py:  JobMessage, JobOutcome, LifecycleEvent
    - executor.py:   JobExecutor (one job lifecycle), ExecutorPool (bounded by C)
    - listener.py:   JobListener (receive, dispatch, settle, drain)
    - events.py:     LifecycleEventBus, WebhookEventReporter

Usage:
    from worker import ExecutorPool, JobListener, WorkerConfig

    pool = ExecutorPool(job_repo, registry, config, events)
    listener = JobListener(queue, pool, config)
    await listener.run()  # Runs until request_shutdown()
"""

from .config import WorkerConfig
from .contracts import JobMessage, JobOutcome, LifecycleEvent
from .events import LifecycleEventBus, WebhookEventReporter
from .executor import ExecutorPool, JobExecutor
from .listener import JobListener

__all__ = [
    "WorkerConfig",
    "JobMessage",
    "JobOutcome",
    "LifecycleEvent",
    "LifecycleEventBus",
    "WebhookEventReporter",
    "JobExecutor",
    "ExecutorPool",
    "JobListener",
]
