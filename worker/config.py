# ============================================================================
# WORKER CONFIGURATION
# ============================================================================
# STATUS: Core - Environment-based worker pool configuration
# PURPOSE: Concurrency, timeouts, identity and event webhook settings
# ============================================================================
"""
Worker Configuration

All settings are loaded from environment variables. Connection settings
for the store, queue and storage live in the config package; this covers
only the worker pool itself.
"""

import os
import socket
from dataclasses import dataclass, field
from typing import List, Optional

from config.defaults import WorkerDefaults


@dataclass
class WorkerConfig:
    """
    Configuration for the worker pool.

    Loaded from environment variables at startup.
    """
    # Worker identity
    worker_id: str = field(default_factory=socket.gethostname)

    # Execution settings
    concurrency: int = WorkerDefaults.CONCURRENCY
    job_timeout_seconds: float = WorkerDefaults.JOB_TIMEOUT_SECONDS
    shutdown_timeout_seconds: float = WorkerDefaults.SHUTDOWN_TIMEOUT_SECONDS

    # Health app (disabled when None)
    health_check_port: Optional[int] = None

    # Lifecycle event webhook (disabled when None)
    events_webhook_url: Optional[str] = None
    webhook_retries: int = WorkerDefaults.WEBHOOK_RETRIES
    webhook_timeout_seconds: float = WorkerDefaults.WEBHOOK_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "WorkerConfig":
        """
        Load configuration from environment variables.

        Environment Variables:
            WORKER_ID: Worker identifier (default: hostname)
            WORKER_CONCURRENCY: Max parallel jobs (default: 5)
            WORKER_JOB_TIMEOUT: Hard per-job timeout in seconds (default: 3600)
            WORKER_SHUTDOWN_TIMEOUT: Drain timeout in seconds (default: 30)
            HEALTH_CHECK_PORT: Serve /health on this port when set
            EVENTS_WEBHOOK_URL: POST lifecycle events here when set
            EVENTS_WEBHOOK_RETRIES / EVENTS_WEBHOOK_TIMEOUT
        """
        port = os.environ.get("HEALTH_CHECK_PORT")
        return cls(
            worker_id=os.environ.get("WORKER_ID") or socket.gethostname(),
            concurrency=int(os.environ.get("WORKER_CONCURRENCY", WorkerDefaults.CONCURRENCY)),
            job_timeout_seconds=float(
                os.environ.get("WORKER_JOB_TIMEOUT", WorkerDefaults.JOB_TIMEOUT_SECONDS)
            ),
            shutdown_timeout_seconds=float(
                os.environ.get("WORKER_SHUTDOWN_TIMEOUT", WorkerDefaults.SHUTDOWN_TIMEOUT_SECONDS)
            ),
            health_check_port=int(port) if port else None,
            events_webhook_url=os.environ.get("EVENTS_WEBHOOK_URL") or None,
            webhook_retries=int(
                os.environ.get("EVENTS_WEBHOOK_RETRIES", WorkerDefaults.WEBHOOK_RETRIES)
            ),
            webhook_timeout_seconds=float(
                os.environ.get("EVENTS_WEBHOOK_TIMEOUT", WorkerDefaults.WEBHOOK_TIMEOUT_SECONDS)
            ),
        )

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not 1 <= self.concurrency <= WorkerDefaults.MAX_CONCURRENCY:
            errors.append(
                f"WORKER_CONCURRENCY must be between 1 and {WorkerDefaults.MAX_CONCURRENCY}, "
                f"got {self.concurrency}"
            )
        if self.job_timeout_seconds <= 0:
            errors.append("WORKER_JOB_TIMEOUT must be positive")
        if self.shutdown_timeout_seconds < 0:
            errors.append("WORKER_SHUTDOWN_TIMEOUT must not be negative")
        if self.webhook_retries < 1:
            errors.append("EVENTS_WEBHOOK_RETRIES must be at least 1")
        if self.health_check_port is not None and not 0 < self.health_check_port < 65536:
            errors.append(f"HEALTH_CHECK_PORT out of range: {self.health_check_port}")

        return errors

    @property
    def is_valid(self) -> bool:
        return len(self.validate()) == 0
