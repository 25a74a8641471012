"""
Artifact Storage Configuration.

Derived rasters (NDVI, change maps) and rendered reports are written to
Azure Blob Storage in service mode, or to a local directory in standalone
mode. Artifact paths are always namespaced by job id.

Exports:
    StorageConfig: Pydantic storage configuration model
"""

import os
from typing import Optional

from pydantic import BaseModel, Field

from .defaults import StorageDefaults


class StorageConfig(BaseModel):
    """
    Artifact storage configuration.
    """

    connection_string: Optional[str] = Field(
        default=None,
        repr=False,
        description="Storage account connection string (AZURE_STORAGE_CONNECTION_STRING)"
    )

    account_name: Optional[str] = Field(
        default=None,
        description="Storage account name for DefaultAzureCredential auth (AZURE_STORAGE_ACCOUNT)"
    )

    container: str = Field(
        default=StorageDefaults.ARTIFACT_CONTAINER,
        description="Blob container receiving job artifacts"
    )

    local_root: str = Field(
        default=StorageDefaults.LOCAL_ROOT,
        description="Directory receiving job artifacts in standalone mode"
    )

    public_base_url: Optional[str] = Field(
        default=None,
        description="Base URL prefixed to local artifact paths (instead of file:// URLs)"
    )

    @property
    def uses_blob(self) -> bool:
        return bool(self.connection_string or self.account_name)

    def debug_dict(self) -> dict:
        return {
            "connection_string": "***MASKED***" if self.connection_string else None,
            "account_name": self.account_name,
            "container": self.container,
            "local_root": self.local_root,
            "public_base_url": self.public_base_url,
        }

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            connection_string=os.environ.get("AZURE_STORAGE_CONNECTION_STRING"),
            account_name=os.environ.get("AZURE_STORAGE_ACCOUNT"),
            container=os.environ.get("ARTIFACT_CONTAINER", StorageDefaults.ARTIFACT_CONTAINER),
            local_root=os.environ.get("ARTIFACT_LOCAL_ROOT", StorageDefaults.LOCAL_ROOT),
            public_base_url=os.environ.get("ARTIFACT_PUBLIC_BASE_URL"),
        )
