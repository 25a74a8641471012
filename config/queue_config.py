"""
Azure Service Bus Queue Configuration.

Provides configuration for:
    - Service Bus connection settings (connection string or managed identity)
    - Jobs queue name
    - Receive wait time

Exports:
    QueueConfig: Pydantic queue configuration model
"""

import os
from typing import Optional
from pydantic import BaseModel, Field

from .defaults import QueueDefaults


class QueueConfig(BaseModel):
    """
    Azure Service Bus queue configuration.

    When connection_string is unset, namespace is used with
    DefaultAzureCredential.
    """

    connection_string: Optional[str] = Field(
        default=None,
        repr=False,
        description="Service Bus connection string (SERVICE_BUS_CONNECTION)"
    )

    namespace: Optional[str] = Field(
        default=None,
        description="Fully qualified Service Bus namespace for managed identity auth"
    )

    jobs_queue: str = Field(
        default=QueueDefaults.JOBS_QUEUE,
        description="Queue carrying job messages from producers to the worker pool"
    )

    max_wait_seconds: int = Field(
        default=QueueDefaults.MAX_WAIT_SECONDS,
        ge=1,
        le=60,
        description="Seconds a receive call waits for messages before returning empty"
    )

    lock_renewal_seconds: int = Field(
        default=QueueDefaults.LOCK_RENEWAL_SECONDS,
        ge=60,
        description="Seconds a received message lock is kept renewed; must outlast WORKER_JOB_TIMEOUT"
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.connection_string or self.namespace)

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            connection_string=os.environ.get("SERVICE_BUS_CONNECTION"),
            namespace=os.environ.get("SERVICE_BUS_NAMESPACE"),
            jobs_queue=os.environ.get("SERVICE_BUS_JOBS_QUEUE", QueueDefaults.JOBS_QUEUE),
            max_wait_seconds=int(os.environ.get(
                "SERVICE_BUS_MAX_WAIT", str(QueueDefaults.MAX_WAIT_SECONDS)
            )),
            lock_renewal_seconds=int(os.environ.get(
                "SERVICE_BUS_LOCK_RENEWAL", str(QueueDefaults.LOCK_RENEWAL_SECONDS)
            )),
        )
