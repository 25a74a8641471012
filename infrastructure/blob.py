# ============================================================================
# ARTIFACT STORAGE
# ============================================================================
# STATUS: Infrastructure - derived raster / report storage
# PURPOSE: Store processor artifacts under job-id namespaced paths
# EXPORTS: BlobArtifactStorage, LocalArtifactStorage
# INTERFACES: IArtifactStorage
# DEPENDENCIES: azure-storage-blob, azure-identity, config
# ============================================================================

"""
Artifact Storage

Processors never embed binary output in job results. They upload bytes
here and return the URL. Paths are namespaced by job id, e.g.
ndvi/<job_id>/ndvi.tif, so concurrent jobs never overwrite each other.

Authentication for Blob Storage:
1. AZURE_STORAGE_CONNECTION_STRING when present
2. DefaultAzureCredential against https://<account>.blob.core.windows.net
"""

from pathlib import Path
from typing import Optional

from azure.core.exceptions import AzureError
from azure.identity import DefaultAzureCredential
from azure.storage.blob import BlobServiceClient, ContainerClient, ContentSettings

from config import StorageConfig
from exceptions import PersistenceError
from interfaces.repository import IArtifactStorage
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "ArtifactStorage")


class BlobArtifactStorage(IArtifactStorage):
    """
    Azure Blob Storage backend.
    """

    def __init__(self, config: StorageConfig):
        self.container = config.container
        if config.connection_string:
            logger.info("Initializing BlobArtifactStorage with connection string")
            self.blob_service = BlobServiceClient.from_connection_string(config.connection_string)
        elif config.account_name:
            account_url = f"https://{config.account_name}.blob.core.windows.net"
            logger.info(f"Initializing BlobArtifactStorage with DefaultAzureCredential for account: {config.account_name}")
            self.blob_service = BlobServiceClient(account_url=account_url, credential=DefaultAzureCredential())
        else:
            raise PersistenceError("AZURE_STORAGE_CONNECTION_STRING or AZURE_STORAGE_ACCOUNT must be set")
        self._container_client: Optional[ContainerClient] = None

    def _get_container_client(self) -> ContainerClient:
        if self._container_client is None:
            self._container_client = self.blob_service.get_container_client(self.container)
        return self._container_client

    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        blob_client = self._get_container_client().get_blob_client(path)
        try:
            blob_client.upload_blob(
                data,
                overwrite=True,
                content_settings=ContentSettings(content_type=content_type),
            )
        except AzureError as e:
            logger.error(f"Failed to write blob {self.container}/{path}: {e}")
            raise PersistenceError(f"Failed to upload artifact {path}: {e}") from e
        logger.info(f"✅ Wrote blob: {self.container}/{path} ({len(data)} bytes)")
        return blob_client.url


class LocalArtifactStorage(IArtifactStorage):
    """
    Filesystem backend for standalone mode.

    Returns file:// URLs unless a public base URL is configured.
    """

    def __init__(self, root: str, public_base_url: Optional[str] = None):
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

    @classmethod
    def from_config(cls, config: StorageConfig) -> "LocalArtifactStorage":
        return cls(config.local_root, config.public_base_url)

    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        target = (self.root / path).resolve()
        if self.root not in target.parents:
            raise PersistenceError(f"Artifact path escapes storage root: {path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise PersistenceError(f"Failed to write artifact {path}: {e}") from e
        logger.debug(f"Wrote artifact {target} ({len(data)} bytes)")
        if self.public_base_url:
            return f"{self.public_base_url}/{path}"
        return target.as_uri()
