"""
PostgreSQL Job Store Configuration.

Either DATABASE_URL or the POSTGIS_* variables identify the database.
Password-based auth only; the connection string is never logged.

Exports:
    DatabaseConfig: Pydantic database configuration model
"""

import os
from typing import Optional

from pydantic import BaseModel, Field

from .defaults import DatabaseDefaults


class DatabaseConfig(BaseModel):
    """
    PostgreSQL configuration for the job store.
    """

    url: Optional[str] = Field(
        default=None,
        repr=False,
        description="Full connection URL (DATABASE_URL). Takes precedence over host/user fields."
    )

    host: Optional[str] = Field(
        default=None,
        description="PostgreSQL server hostname"
    )

    port: int = Field(
        default=DatabaseDefaults.PORT,
        description="PostgreSQL server port number"
    )

    user: Optional[str] = Field(default=None, description="PostgreSQL username")

    password: Optional[str] = Field(default=None, repr=False, description="PostgreSQL password")

    database: Optional[str] = Field(default=None, description="PostgreSQL database name")

    schema_name: str = Field(
        default=DatabaseDefaults.APP_SCHEMA,
        description="Schema holding jobs, project_datasets, geo_features, ndvi_results, reports"
    )

    connection_timeout_seconds: int = Field(
        default=DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS,
        ge=1,
        description="Connection timeout in seconds"
    )

    @property
    def is_configured(self) -> bool:
        """True when enough settings exist to open a connection."""
        return bool(self.url or (self.host and self.database))

    @property
    def connection_string(self) -> str:
        """
        Build PostgreSQL connection string.

        Raises:
            ValueError: If neither DATABASE_URL nor host/database are set
        """
        if self.url:
            return self.url
        if not self.is_configured:
            raise ValueError("DATABASE_URL or POSTGIS_HOST/POSTGIS_DATABASE must be set")
        parts = [f"host={self.host}", f"port={self.port}", f"dbname={self.database}",
                 f"connect_timeout={self.connection_timeout_seconds}"]
        if self.user:
            parts.append(f"user={self.user}")
        if self.password:
            parts.append(f"password={self.password}")
        return " ".join(parts)

    def debug_dict(self) -> dict:
        """Debug output with masked secrets."""
        return {
            "url": "***MASKED***" if self.url else None,
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "database": self.database,
            "password": "***MASKED***" if self.password else None,
            "schema_name": self.schema_name,
        }

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            url=os.environ.get("DATABASE_URL"),
            host=os.environ.get("POSTGIS_HOST"),
            port=int(os.environ.get("POSTGIS_PORT", str(DatabaseDefaults.PORT))),
            user=os.environ.get("POSTGIS_USER"),
            password=os.environ.get("POSTGIS_PASSWORD"),
            database=os.environ.get("POSTGIS_DATABASE"),
            schema_name=os.environ.get("APP_SCHEMA", DatabaseDefaults.APP_SCHEMA),
            connection_timeout_seconds=int(os.environ.get(
                "DB_CONNECTION_TIMEOUT", str(DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS)
            )),
        )
