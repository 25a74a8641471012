"""
Main Application Configuration.

Composes domain-specific configuration modules:
    - DatabaseConfig (PostgreSQL job store)
    - QueueConfig (Service Bus jobs queue)
    - StorageConfig (artifact storage)
    - RasterConfig (raster fetch / encode)

Worker pool settings (concurrency, timeouts, health port) live with the
worker itself in worker.config.WorkerConfig.

Exports:
    AppMode: Deployment mode enum
    AppConfig: Main configuration class

Pattern:
    Composition over inheritance - domain configs are composed, not inherited.
"""

import os
from enum import Enum
from typing import List

from pydantic import BaseModel, Field

from .defaults import AppDefaults
from .database_config import DatabaseConfig
from .queue_config import QueueConfig
from .storage_config import StorageConfig
from .raster_config import RasterConfig


class AppMode(str, Enum):
    """
    Deployment modes.

    STANDALONE: in-memory job store and queue, local artifact directory.
                Single process, used for local runs and tests.
    SERVICE:    PostgreSQL job store, Service Bus queue, Blob artifacts.
    """

    STANDALONE = "standalone"
    SERVICE = "service"


class AppConfig(BaseModel):
    """
    Application configuration composed from domain configs.
    """

    app_mode: AppMode = Field(
        default=AppMode(AppDefaults.APP_MODE),
        description="Backend selection: standalone (in-memory) or service (PostgreSQL + Service Bus)"
    )

    environment: str = Field(
        default=AppDefaults.ENVIRONMENT,
        description="Deployment environment label (dev, test, prod)"
    )

    debug_mode: bool = Field(
        default=AppDefaults.DEBUG_MODE,
        description="Enables verbose diagnostics"
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    queues: QueueConfig = Field(default_factory=QueueConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    raster: RasterConfig = Field(default_factory=RasterConfig)

    @property
    def is_standalone(self) -> bool:
        return self.app_mode == AppMode.STANDALONE

    def validate_for_mode(self) -> List[str]:
        """
        Validate that the selected mode has what it needs.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.app_mode == AppMode.SERVICE:
            if not self.database.is_configured:
                errors.append("DATABASE_URL or POSTGIS_HOST/POSTGIS_DATABASE is required when APP_MODE=service")
            if not self.queues.is_configured:
                errors.append("SERVICE_BUS_CONNECTION or SERVICE_BUS_NAMESPACE is required when APP_MODE=service")
            if not self.storage.uses_blob:
                errors.append("AZURE_STORAGE_CONNECTION_STRING or AZURE_STORAGE_ACCOUNT is required when APP_MODE=service")

        return errors

    @classmethod
    def from_environment(cls):
        """Load all configs from environment."""
        return cls(
            app_mode=AppMode(os.environ.get("APP_MODE", AppDefaults.APP_MODE).lower()),
            environment=os.environ.get("ENVIRONMENT", AppDefaults.ENVIRONMENT),
            debug_mode=os.environ.get("DEBUG_MODE", str(AppDefaults.DEBUG_MODE).lower()).lower() == "true",
            database=DatabaseConfig.from_environment(),
            queues=QueueConfig.from_environment(),
            storage=StorageConfig.from_environment(),
            raster=RasterConfig.from_environment(),
        )
