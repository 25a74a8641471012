# ============================================================================
# JOB QUEUE LISTENER
# ============================================================================
# STATUS: Core - Work queue consumer
# PURPOSE: Receive job messages, dispatch to the executor pool, settle them
# EXPORTS: JobListener
# ============================================================================
"""
Job Queue Listener

Receives up to the number of free executor slots per poll and runs each
message as its own task. For each message:

1. Deserialize to JobMessage
   and publish the "waiting" lifecycle event
2. Execute via ExecutorPool
3. Settle the message:
     completed / already terminal     -> complete
     job recorded failed              -> dead-letter (reason JobFailed)
     malformed payload                -> dead-letter (InvalidJSON / InvalidMessage)
     store unreachable during claim   -> abandon (queue redelivers)

Shutdown: request_shutdown() stops receiving; in-flight jobs get up to
shutdown_timeout_seconds to finish, then are cancelled and their messages
abandoned.
"""

import asyncio
from typing import Set

from pydantic import ValidationError as PydanticValidationError

from interfaces.repository import IJobQueue, QueuedJob
from util_logger import LoggerFactory, ComponentType
from .config import WorkerConfig
from .contracts import JobMessage, LifecycleEvent
from .executor import ExecutorPool

logger = LoggerFactory.create_logger(ComponentType.WORKER, "JobListener")

DESCRIPTION_LIMIT = 1024


class JobListener:
    """
    Listens for jobs on the work queue.

    This is the main loop of the worker. It runs until request_shutdown()
    is called (signal handler, health app lifespan, or tests).
    """

    def __init__(
        self,
        queue: IJobQueue,
        pool: ExecutorPool,
        config: WorkerConfig,
        max_wait_seconds: float = 5.0,
    ):
        self.queue = queue
        self.pool = pool
        self.config = config
        self.max_wait_seconds = max_wait_seconds
        self._shutdown = asyncio.Event()
        self._in_flight: Set[asyncio.Task] = set()
        self._running = False
        self._jobs_processed = 0
        self._jobs_failed = 0

    def request_shutdown(self) -> None:
        """Stop receiving new messages; in-flight jobs drain."""
        if not self._shutdown.is_set():
            logger.info("Shutdown requested, no further messages will be received")
        self._shutdown.set()

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown.is_set()

    async def run(self) -> None:
        """
        Main listener loop.

        Runs until shutdown is requested, then drains.
        """
        self._running = True
        logger.info(
            f"Job listener started: worker={self.config.worker_id}, "
            f"concurrency={self.config.concurrency}"
        )
        try:
            while not self._shutdown.is_set():
                await self._receive_batch()
        finally:
            await self._drain()
            self._running = False
            logger.info(
                f"Job listener stopped. Processed: {self._jobs_processed}, "
                f"Failed: {self._jobs_failed}"
            )

    async def _receive_batch(self) -> None:
        """Receive up to the free slot count and start a task per message."""
        free = self.pool.max_concurrent - len(self._in_flight)
        if free <= 0:
            await asyncio.wait(self._in_flight, return_when=asyncio.FIRST_COMPLETED)
            return

        try:
            items = await self.queue.receive(max_count=free, max_wait=self.max_wait_seconds)
        except Exception as e:
            logger.exception(f"Error receiving messages: {e}")
            await asyncio.sleep(1)
            return

        if items:
            logger.debug(f"Received {len(items)} messages")
        for item in items:
            task = asyncio.create_task(self._process_message(item))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

    async def _process_message(self, item: QueuedJob) -> None:
        """Execute one message and settle it."""
        if item.decode_error is not None:
            logger.error(f"Invalid message JSON: {item.decode_error}")
            await self._settle(item, "dead_letter", reason="InvalidJSON", description=item.decode_error)
            self._jobs_failed += 1
            return

        try:
            message = JobMessage.from_queue_message(item.body)
        except (PydanticValidationError, TypeError, ValueError) as e:
            await self._reject_invalid(item, e)
            return

        await self.pool.events.publish(
            LifecycleEvent.waiting(message, worker_id=self.config.worker_id)
        )

        try:
            outcome = await self.pool.execute(message)
        except asyncio.CancelledError:
            logger.warning(f"Job {message.job_id} interrupted by shutdown, message abandoned")
            await self._settle(item, "abandon")
            raise
        except Exception as e:
            logger.exception(f"Error processing job {message.job_id}, message abandoned: {e}")
            await self._settle(item, "abandon")
            self._jobs_failed += 1
            return

        if outcome.succeeded or outcome.skipped:
            await self._settle(item, "complete")
            self._jobs_processed += 1
        else:
            await self._settle(
                item, "dead_letter", reason="JobFailed", description=outcome.error_message or ""
            )
            self._jobs_failed += 1

    async def _reject_invalid(self, item: QueuedJob, error: Exception) -> None:
        """
        Dead-letter a body that is not a job message. If it still names a
        job, that job is failed so it does not stay queued forever.
        """
        logger.error(f"Invalid job message: {error}")
        body = item.body if isinstance(item.body, dict) else {}
        job_id = body.get("job_id")
        if isinstance(job_id, str) and job_id:
            try:
                await self.pool.record_failure(job_id, f"Invalid job message: {error}")
            except Exception as e:
                logger.exception(f"Could not record failure for job {job_id}: {e}")
        await self._settle(item, "dead_letter", reason="InvalidMessage", description=str(error))
        self._jobs_failed += 1

    async def _settle(
        self,
        item: QueuedJob,
        action: str,
        reason: str = "",
        description: str = "",
    ) -> None:
        try:
            if action == "complete":
                await self.queue.complete(item)
            elif action == "abandon":
                await self.queue.abandon(item)
            else:
                await self.queue.dead_letter(item, reason, description[:DESCRIPTION_LIMIT])
        except Exception as e:
            logger.exception(f"Failed to {action} message: {e}")

    async def _drain(self) -> None:
        """Wait for in-flight jobs, cancelling whatever outlives the timeout."""
        if not self._in_flight:
            return
        pending_tasks = set(self._in_flight)
        logger.info(
            f"Draining {len(pending_tasks)} in-flight jobs "
            f"(timeout {self.config.shutdown_timeout_seconds:g}s)"
        )
        _, still_running = await asyncio.wait(
            pending_tasks, timeout=self.config.shutdown_timeout_seconds
        )
        if still_running:
            logger.warning(f"Cancelling {len(still_running)} jobs that did not finish in time")
            for task in still_running:
                task.cancel()
            await asyncio.gather(*still_running, return_exceptions=True)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict:
        return {
            "running": self._running,
            "jobs_processed": self._jobs_processed,
            "jobs_failed": self._jobs_failed,
            "active_jobs": self.pool.active_count,
            "in_flight": len(self._in_flight),
        }

