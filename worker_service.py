# ============================================================================
# GEOAI WORKER SERVICE
# ============================================================================
# STATUS: Entry point - long-running job worker
# PURPOSE: Wire config -> repositories -> registry -> listener; health app; CLI
# EXPORTS: WorkerLifecycle, WorkerService, create_app, main
# ============================================================================
"""
GeoAI Worker Service.

Runs the job listener until SIGTERM/SIGINT, then drains in-flight jobs.

Two ways to run:
    1. Listener only (HEALTH_CHECK_PORT unset):
           geoai-worker
    2. Listener inside a FastAPI app serving /health and /livez
       (HEALTH_CHECK_PORT set); uvicorn owns the signals and the listener
       drains from the app lifespan:
           HEALTH_CHECK_PORT=8080 geoai-worker

Submitting from the command line:
    geoai-worker --submit job.json

In standalone mode (in-memory queue) the submitted job is processed in the
same process and the final job record is printed. In service mode the job
is only enqueued.
"""

import argparse
import asyncio
import json
import signal
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI

from config import AppConfig, __version__, get_config
from core.models.job import JobRecord, JobSubmission
from exceptions import ConfigurationError
from infrastructure.factory import RepositoryFactory
from services.job_submission import submit_job
from services.processors import ProcessorDependencies
from services.registry import ProcessorRegistry, build_registry
from util_logger import LoggerFactory, ComponentType
from worker import (
    ExecutorPool,
    JobListener,
    LifecycleEventBus,
    WebhookEventReporter,
    WorkerConfig,
)

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "WorkerService")


# ============================================================================
# LIFECYCLE (graceful shutdown)
# ============================================================================

class WorkerLifecycle:
    """
    Tracks uptime and coordinates graceful shutdown.

    initiate_shutdown() tells the attached listener to stop receiving; the
    listener then drains its in-flight jobs.
    """

    def __init__(self):
        self.started_at = datetime.now(timezone.utc)
        self._shutdown_initiated_at: Optional[datetime] = None
        self._shutdown_reason: Optional[str] = None
        self._listener: Optional[JobListener] = None

    def attach(self, listener: JobListener) -> None:
        self._listener = listener
        if self.is_shutting_down:
            listener.request_shutdown()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutdown_initiated_at is not None

    @property
    def uptime_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.started_at).total_seconds()

    def register_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        """
        SIGTERM: sent by Docker/Kubernetes when stopping the container
        SIGINT: Ctrl+C in local runs
        """
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self.initiate_shutdown, sig.name)
            except NotImplementedError:
                signal.signal(sig, lambda signum, frame: self.initiate_shutdown(signal.Signals(signum).name))
        logger.info("📡 Signal handlers registered (SIGTERM, SIGINT)")

    def initiate_shutdown(self, reason: str = "manual") -> None:
        if self.is_shutting_down:
            logger.warning(f"🛑 Shutdown already initiated, ignoring duplicate request: {reason}")
            return
        self._shutdown_initiated_at = datetime.now(timezone.utc)
        self._shutdown_reason = reason
        logger.warning(f"🛑 Graceful shutdown initiated: {reason}")
        if self._listener is not None:
            self._listener.request_shutdown()

    def get_status(self) -> Dict[str, Any]:
        status = {
            "status": "shutting_down" if self.is_shutting_down else "healthy",
            "uptime": round(self.uptime_seconds, 1),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if self.is_shutting_down:
            status["shutdown_reason"] = self._shutdown_reason
        return status


# ============================================================================
# WIRING
# ============================================================================

@dataclass
class WorkerService:
    """Everything one worker process runs, wired from configuration."""

    app_config: AppConfig
    worker_config: WorkerConfig
    repos: Dict[str, Any]
    registry: ProcessorRegistry
    events: LifecycleEventBus
    pool: ExecutorPool
    listener: JobListener
    webhook: Optional[WebhookEventReporter] = None

    @classmethod
    def create(
        cls,
        app_config: Optional[AppConfig] = None,
        worker_config: Optional[WorkerConfig] = None,
        repos: Optional[Dict[str, Any]] = None,
        max_wait_seconds: Optional[float] = None,
    ) -> "WorkerService":
        """
        Raises:
            ConfigurationError: Invalid app or worker configuration
        """
        app_config = app_config or get_config()
        worker_config = worker_config or WorkerConfig.from_env()
        errors = worker_config.validate()
        if (not app_config.is_standalone
                and app_config.queues.lock_renewal_seconds < worker_config.job_timeout_seconds):
            errors.append(
                "SERVICE_BUS_LOCK_RENEWAL must be at least WORKER_JOB_TIMEOUT "
                "or a running job's message is redelivered"
            )
        if errors:
            raise ConfigurationError("; ".join(errors))

        repos = repos or RepositoryFactory.create_repositories(app_config)
        registry = build_registry(ProcessorDependencies(
            geo_repo=repos["geo_repo"],
            raster_source=repos["raster_source"],
            storage=repos["storage"],
            output_nodata=app_config.raster.output_nodata,
        ))

        events = LifecycleEventBus()
        webhook = None
        if worker_config.events_webhook_url:
            webhook = WebhookEventReporter(
                worker_config.events_webhook_url,
                retries=worker_config.webhook_retries,
                timeout_seconds=worker_config.webhook_timeout_seconds,
            )
            events.subscribe(webhook)

        pool = ExecutorPool(repos["job_repo"], registry, worker_config, events)
        if max_wait_seconds is None:
            max_wait_seconds = app_config.queues.max_wait_seconds
        listener = JobListener(repos["queue"], pool, worker_config, max_wait_seconds=max_wait_seconds)

        logger.info(
            f"✅ Worker wired: mode={app_config.app_mode.value}, "
            f"job_types={registry.job_types()}, concurrency={worker_config.concurrency}"
        )
        return cls(app_config, worker_config, repos, registry, events, pool, listener, webhook)

    async def submit(self, submission: JobSubmission) -> JobRecord:
        return await submit_job(submission, self.repos["job_repo"], self.repos["queue"])

    async def close(self) -> None:
        if self.webhook is not None:
            await self.webhook.close()
        await self.repos["queue"].close()
        self.pool.shutdown(wait=False)


# ============================================================================
# HEALTH APP
# ============================================================================

def create_app(lifecycle: WorkerLifecycle, service: Optional[WorkerService] = None) -> FastAPI:
    """
    FastAPI app exposing /health and /livez.

    With a service, the listener runs as a background task for the app's
    lifetime and drains when the app shuts down.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        listener_task = None
        if service is not None:
            lifecycle.attach(service.listener)
            listener_task = asyncio.create_task(service.listener.run())
        yield
        if not lifecycle.is_shutting_down:
            lifecycle.initiate_shutdown("lifespan_exit")
        if listener_task is not None:
            await listener_task
            await service.close()

    app = FastAPI(
        title="GeoAI Worker",
        description="Geospatial job worker health API",
        version=__version__,
        lifespan=lifespan,
    )

    @app.get("/livez")
    def liveness_probe():
        """Returns 200 while the process is running."""
        return {"status": "ok"}

    @app.get("/health")
    def health_check():
        status = lifecycle.get_status()
        if service is not None:
            status["worker"] = service.listener.stats
        return status

    return app


# ============================================================================
# RUNNERS
# ============================================================================

async def run_worker(service: WorkerService, lifecycle: WorkerLifecycle) -> None:
    """Run the listener until a signal arrives, then drain and close."""
    lifecycle.register_signal_handlers(asyncio.get_running_loop())
    lifecycle.attach(service.listener)
    try:
        await service.listener.run()
    finally:
        await service.close()


async def run_until_terminal(service: WorkerService, job_id: str, poll_seconds: float = 0.1) -> JobRecord:
    """
    Run the listener until one job is terminal and its message settled.

    Standalone mode only: the in-memory queue reports when nothing is
    left unsettled, so the listener is not stopped mid-settlement.
    """
    listener_task = asyncio.create_task(service.listener.run())
    job_repo = service.repos["job_repo"]
    queue = service.repos["queue"]
    try:
        while True:
            job = job_repo.get_job(job_id)
            if job is not None and job.is_terminal and queue.is_drained:
                return job
            if listener_task.done():
                listener_task.result()
            await asyncio.sleep(poll_seconds)
    finally:
        service.listener.request_shutdown()
        await listener_task
        await service.close()


async def _submit_from_file(service: WorkerService, path: str) -> int:
    with open(path, "r", encoding="utf-8") as f:
        submission = JobSubmission(**json.load(f))
    job = await service.submit(submission)
    print(json.dumps({"job_id": job.id, "status": job.status.value}))

    if not service.app_config.is_standalone:
        await service.close()
        return 0

    final = await run_until_terminal(service, job.id)
    print(final.model_dump_json(indent=2))
    return 0 if final.status.value == "completed" else 1


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="geoai-worker",
        description="Asynchronous geospatial job worker",
    )
    parser.add_argument(
        "--submit", metavar="FILE", default=None,
        help="Submit the job described in a JSON file ({job_type, parameters, session_id, ...})",
    )
    args = parser.parse_args(argv)

    try:
        service = WorkerService.create()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    try:
        if args.submit:
            return asyncio.run(_submit_from_file(service, args.submit))

        lifecycle = WorkerLifecycle()
        port = service.worker_config.health_check_port
        if port:
            import uvicorn

            logger.info(f"Serving /health and /livez on port {port}")
            uvicorn.run(create_app(lifecycle, service), host="0.0.0.0", port=port)
        else:
            asyncio.run(run_worker(service, lifecycle))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
