"""
Infrastructure Package - Lazy Loading Implementation.

Concrete backends behind the interfaces in interfaces/repository.py.
Imports are deferred until a name is accessed, so importing the package
does not read the environment or pull in psycopg / the Azure SDKs.

Usage:
    from infrastructure import RepositoryFactory
    repos = RepositoryFactory.create_repositories()
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .factory import RepositoryFactory as _RepositoryFactory
    from .memory import (
        InMemoryJobRepository as _InMemoryJobRepository,
        InMemoryGeoDataRepository as _InMemoryGeoDataRepository,
        InMemoryJobQueue as _InMemoryJobQueue,
    )
    from .postgresql import (
        PostgreSQLJobRepository as _PostgreSQLJobRepository,
        PostgreSQLGeoDataRepository as _PostgreSQLGeoDataRepository,
    )
    from .service_bus import ServiceBusJobQueue as _ServiceBusJobQueue
    from .blob import (
        BlobArtifactStorage as _BlobArtifactStorage,
        LocalArtifactStorage as _LocalArtifactStorage,
    )
    from .raster_source import HttpRasterSource as _HttpRasterSource


def __getattr__(name: str):
    """
    Lazy import mechanism - only imports when actually accessed.
    """
    # Factory - most common import
    if name == "RepositoryFactory":
        from .factory import RepositoryFactory
        return RepositoryFactory

    # Standalone backends
    elif name == "InMemoryJobRepository":
        from .memory import InMemoryJobRepository
        return InMemoryJobRepository
    elif name == "InMemoryGeoDataRepository":
        from .memory import InMemoryGeoDataRepository
        return InMemoryGeoDataRepository
    elif name == "InMemoryJobQueue":
        from .memory import InMemoryJobQueue
        return InMemoryJobQueue

    # PostgreSQL
    elif name == "PostgreSQLJobRepository":
        from .postgresql import PostgreSQLJobRepository
        return PostgreSQLJobRepository
    elif name == "PostgreSQLGeoDataRepository":
        from .postgresql import PostgreSQLGeoDataRepository
        return PostgreSQLGeoDataRepository

    # Queue
    elif name == "ServiceBusJobQueue":
        from .service_bus import ServiceBusJobQueue
        return ServiceBusJobQueue

    # Artifact storage
    elif name == "BlobArtifactStorage":
        from .blob import BlobArtifactStorage
        return BlobArtifactStorage
    elif name == "LocalArtifactStorage":
        from .blob import LocalArtifactStorage
        return LocalArtifactStorage

    # Raster source
    elif name == "HttpRasterSource":
        from .raster_source import HttpRasterSource
        return HttpRasterSource

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "RepositoryFactory",
    "InMemoryJobRepository",
    "InMemoryGeoDataRepository",
    "InMemoryJobQueue",
    "PostgreSQLJobRepository",
    "PostgreSQLGeoDataRepository",
    "ServiceBusJobQueue",
    "BlobArtifactStorage",
    "LocalArtifactStorage",
    "HttpRasterSource",
]
