# ============================================================================
# JOB EXECUTOR
# ============================================================================
# STATUS: Core - Job lifecycle execution with timeout and error capture
# PURPOSE: Claim -> run processor -> write terminal status, bounded by C
# EXPORTS: JobExecutor, ExecutorPool
# ============================================================================
"""
Job Executor

Executes one job message through its full lifecycle:

    1. Claim:    read the job record; skip if already terminal; mark running
    2. Announce: publish the "active" lifecycle event
    3. Run:      resolve the processor and run it on a worker thread under
                 the job-level timeout
    4. Record:   mark completed (result) or failed (error message)
    5. Announce: publish "completed" or "failed"

Processors run on the pool's processor threads so CPU-bound pixel work
never blocks the event loop. Job store calls use a separate thread pool:
a processor still running after its timeout cannot delay the terminal
write of its own job or the claims of other jobs.

Store failures while claiming or recording propagate to the listener,
which abandons the message so the queue redelivers it. Processor failures
never propagate: they are recorded on the job and returned as a failed
JobOutcome.
"""

import asyncio
import functools
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional

from core.models.job import JobRecord
from exceptions import ContractViolationError, DatabaseError
from interfaces.repository import IJobRepository
from services.processors.base import JobContext
from services.registry import ProcessorRegistry
from util_logger import LoggerFactory, ComponentType, LogContext
from .config import WorkerConfig
from .contracts import JobMessage, JobOutcome, LifecycleEvent
from .events import LifecycleEventBus

logger = LoggerFactory.create_logger(ComponentType.WORKER, "JobExecutor")


class JobExecutor:
    """
    Runs job messages against the registry and the job store.
    """

    def __init__(
        self,
        job_repo: IJobRepository,
        registry: ProcessorRegistry,
        worker_id: str,
        job_timeout_seconds: float,
        events: Optional[LifecycleEventBus] = None,
        thread_pool: Optional[ThreadPoolExecutor] = None,
        store_pool: Optional[ThreadPoolExecutor] = None,
    ):
        self.job_repo = job_repo
        self.registry = registry
        self.worker_id = worker_id
        self.job_timeout_seconds = job_timeout_seconds
        self.events = events or LifecycleEventBus()
        self._thread_pool = thread_pool
        self._store_pool = store_pool

    async def _call(self, func: Callable, *args: Any) -> Any:
        """Run a job store call on the store threads."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._store_pool, functools.partial(func, *args))

    async def _run_processor(self, processor, parameters, context) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._thread_pool, functools.partial(processor.process, parameters, context)
        )

    async def execute(self, message: JobMessage) -> JobOutcome:
        """
        Execute one job.

        Returns:
            JobOutcome (completed, failed, or skipped for a terminal job)

        Raises:
            DatabaseError: Claim or terminal write could not reach the store
        """
        start_time = time.monotonic()
        log_ctx = LogContext(job_id=message.job_id, job_type=message.job_type, worker_id=self.worker_id)

        job = await self._claim(message)
        if job.is_terminal:
            logger.info(
                f"Job {job.id} already {job.status.value}, not running it again",
                extra=log_ctx.as_extra(),
            )
            return JobOutcome.already_terminal(job, worker_id=self.worker_id)

        logger.info(f"Job {job.id} started: type={job.job_type}", extra=log_ctx.as_extra())
        await self.events.publish(LifecycleEvent.active(message, worker_id=self.worker_id))

        result = None
        error = None
        error_message = None
        try:
            processor = self.registry.get(job.job_type)
            context = JobContext(
                job_id=job.id,
                job_type=job.job_type,
                session_id=job.session_id,
                project_id=job.project_id,
                organization_id=job.organization_id,
                user_id=job.user_id,
            )
            result = await asyncio.wait_for(
                self._run_processor(processor, job.parameters, context),
                timeout=self.job_timeout_seconds,
            )
            if not isinstance(result, dict):
                raise ContractViolationError(
                    f"Processor for {job.job_type} returned {type(result).__name__}, expected dict"
                )
        except asyncio.TimeoutError as e:
            error = e
            error_message = f"Job timed out after {self.job_timeout_seconds:g} seconds"
        except Exception as e:
            error = e
            error_message = str(e) or type(e).__name__

        duration_ms = int((time.monotonic() - start_time) * 1000)

        if error_message is None:
            outcome = JobOutcome.success(message, result, duration_ms, worker_id=self.worker_id)
            written = await self._call(self.job_repo.mark_completed, job.id, result)
            logger.info(
                f"Job {job.id} completed in {duration_ms}ms",
                extra=log_ctx.as_extra(duration_ms=duration_ms),
            )
        else:
            outcome = JobOutcome.failure(message, error_message, duration_ms, worker_id=self.worker_id)
            written = await self._call(self.job_repo.mark_failed, job.id, outcome.error_message)
            logger.error(
                f"Job {job.id} failed after {duration_ms}ms: {error_message}",
                exc_info=error,
                extra=log_ctx.as_extra(duration_ms=duration_ms, error=error_message),
            )

        if not written:
            logger.warning(
                f"Terminal write for job {job.id} matched no running row",
                extra=log_ctx.as_extra(),
            )

        await self.events.publish(LifecycleEvent.from_outcome(outcome))
        return outcome

    async def fail_unclaimed(self, job_id: str, error_message: str) -> bool:
        """Mark a job failed without running it (its message could not be parsed)."""
        return await self._call(self.job_repo.mark_failed, job_id, error_message[:2000])

    async def _claim(self, message: JobMessage) -> JobRecord:
        """
        Mark the job running, or return it unchanged when already terminal.

        A message whose record does not exist yet (producer wrote the queue
        before the store) gets its record created from the message.
        """
        job = await self._call(self.job_repo.get_job, message.job_id)
        if job is None:
            logger.warning(f"Job {message.job_id} not in store, creating it from the queue message")
            job = JobRecord(
                id=message.job_id,
                job_type=message.job_type,
                parameters=message.parameters,
                session_id=message.session_id,
                project_id=message.project_id,
                organization_id=message.organization_id,
                user_id=message.user_id,
            )
            await self._call(self.job_repo.create_job, job)

        if job.is_terminal:
            return job

        if not await self._call(self.job_repo.mark_running, job.id):
            current = await self._call(self.job_repo.get_job, job.id)
            if current is not None and current.is_terminal:
                return current
            raise DatabaseError(f"Could not claim job {job.id}")

        return await self._call(self.job_repo.get_job, job.id) or job


class ExecutorPool:
    """
    Bounded pool of concurrent job executions.

    At most config.concurrency jobs run at once; processors run on a
    thread pool of the same size and store calls on a pool of their own.
    """

    def __init__(
        self,
        job_repo: IJobRepository,
        registry: ProcessorRegistry,
        config: WorkerConfig,
        events: Optional[LifecycleEventBus] = None,
    ):
        self.config = config
        self.max_concurrent = config.concurrency
        self._semaphore = asyncio.Semaphore(config.concurrency)
        self._thread_pool = ThreadPoolExecutor(
            max_workers=config.concurrency, thread_name_prefix="geoai-job"
        )
        self._store_pool = ThreadPoolExecutor(
            max_workers=config.concurrency, thread_name_prefix="geoai-store"
        )
        self._executor = JobExecutor(
            job_repo=job_repo,
            registry=registry,
            worker_id=config.worker_id,
            job_timeout_seconds=config.job_timeout_seconds,
            events=events,
            thread_pool=self._thread_pool,
            store_pool=self._store_pool,
        )
        self.events = self._executor.events
        self._active_count = 0

    async def execute(self, message: JobMessage) -> JobOutcome:
        """Execute a job, respecting the concurrency limit."""
        async with self._semaphore:
            self._active_count += 1
            try:
                return await self._executor.execute(message)
            finally:
                self._active_count -= 1

    async def record_failure(self, job_id: str, error_message: str) -> bool:
        """Mark a job failed without running it (unparseable message)."""
        return await self._executor.fail_unclaimed(job_id, error_message)

    def shutdown(self, wait: bool = False) -> None:
        """Release worker threads. Threads still running a processor finish in the background."""
        self._thread_pool.shutdown(wait=wait, cancel_futures=True)
        self._store_pool.shutdown(wait=wait, cancel_futures=True)

    @property
    def active_count(self) -> int:
        return self._active_count

    @property
    def available_slots(self) -> int:
        return self.max_concurrent - self._active_count
