# ============================================================================
# REPOSITORY FACTORY
# ============================================================================
# STATUS: Infrastructure - Central factory for all backend instances
# PURPOSE: Select job store, queue, artifact storage and raster source by app mode
# EXPORTS: RepositoryFactory
# INTERFACES: Creates IJobRepository, IGeoDataRepository, IJobQueue,
#             IArtifactStorage, IRasterSource implementations
# ENTRY_POINTS: RepositoryFactory.create_repositories(config)
# ============================================================================

"""
Repository Factory - Central Creation Point

APP_MODE=standalone  in-memory job store and queue, local artifact directory
APP_MODE=service     PostgreSQL job store, Service Bus queue, Blob artifacts

Backend modules are imported inside the factory methods so standalone runs
never touch psycopg or the Azure SDKs.
"""

from typing import Any, Dict, Optional

from config import AppConfig, get_config
from exceptions import ConfigurationError
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "RepositoryFactory")


class RepositoryFactory:
    """
    Factory for creating backend instances.
    """

    @staticmethod
    def create_repositories(config: Optional[AppConfig] = None) -> Dict[str, Any]:
        """
        Create every collaborator the worker needs.

        Returns:
            Dict with keys job_repo, geo_repo, queue, storage, raster_source
        """
        config = config or get_config()
        errors = config.validate_for_mode()
        if errors:
            raise ConfigurationError("; ".join(errors))

        job_repo = RepositoryFactory.create_job_repository(config)
        geo_repo = RepositoryFactory.create_geo_repository(config, job_repo)
        repos = {
            "job_repo": job_repo,
            "geo_repo": geo_repo,
            "queue": RepositoryFactory.create_job_queue(config),
            "storage": RepositoryFactory.create_artifact_storage(config),
            "raster_source": RepositoryFactory.create_raster_source(config, geo_repo),
        }
        logger.info(f"✅ Repositories created (mode={config.app_mode.value})")
        return repos

    @staticmethod
    def create_job_repository(config: Optional[AppConfig] = None):
        config = config or get_config()
        if config.is_standalone:
            from .memory import InMemoryJobRepository
            return InMemoryJobRepository()
        from .postgresql import PostgreSQLJobRepository
        return PostgreSQLJobRepository(config=config)

    @staticmethod
    def create_geo_repository(config: Optional[AppConfig] = None, job_repo=None):
        """
        In standalone mode the geo repository reads job listings from the
        in-memory job repository, so pass the one the worker writes to.
        """
        config = config or get_config()
        if config.is_standalone:
            from .memory import InMemoryGeoDataRepository
            return InMemoryGeoDataRepository(jobs=job_repo)
        from .postgresql import PostgreSQLGeoDataRepository
        return PostgreSQLGeoDataRepository(config=config)

    @staticmethod
    def create_job_queue(config: Optional[AppConfig] = None):
        config = config or get_config()
        if config.is_standalone:
            from .memory import InMemoryJobQueue
            return InMemoryJobQueue()
        from .service_bus import ServiceBusJobQueue
        return ServiceBusJobQueue(config.queues)

    @staticmethod
    def create_artifact_storage(config: Optional[AppConfig] = None):
        config = config or get_config()
        from .blob import BlobArtifactStorage, LocalArtifactStorage
        if config.storage.uses_blob and not config.is_standalone:
            return BlobArtifactStorage(config.storage)
        return LocalArtifactStorage.from_config(config.storage)

    @staticmethod
    def create_raster_source(config: Optional[AppConfig] = None, geo_repo=None):
        config = config or get_config()
        from .raster_source import HttpRasterSource
        if geo_repo is None:
            geo_repo = RepositoryFactory.create_geo_repository(config)
        return HttpRasterSource(geo_repo, timeout=config.raster.fetch_timeout_seconds)
