"""
Config test fixtures: clean environment via monkeypatch.
"""

import pytest

CONFIG_ENV_VARS = [
    "APP_MODE", "ENVIRONMENT", "DEBUG_MODE",
    "DATABASE_URL", "POSTGIS_HOST", "POSTGIS_PORT", "POSTGIS_USER", "POSTGIS_PASSWORD",
    "POSTGIS_DATABASE", "APP_SCHEMA", "DB_CONNECTION_TIMEOUT",
    "SERVICE_BUS_CONNECTION", "SERVICE_BUS_NAMESPACE", "SERVICE_BUS_JOBS_QUEUE", "SERVICE_BUS_MAX_WAIT", "SERVICE_BUS_LOCK_RENEWAL",
    "AZURE_STORAGE_CONNECTION_STRING", "AZURE_STORAGE_ACCOUNT", "ARTIFACT_CONTAINER",
    "ARTIFACT_LOCAL_ROOT", "ARTIFACT_PUBLIC_BASE_URL",
    "RASTER_FETCH_TIMEOUT", "RASTER_OUTPUT_NODATA",
    "WORKER_ID", "WORKER_CONCURRENCY", "WORKER_JOB_TIMEOUT", "WORKER_SHUTDOWN_TIMEOUT",
    "HEALTH_CHECK_PORT", "EVENTS_WEBHOOK_URL", "EVENTS_WEBHOOK_RETRIES", "EVENTS_WEBHOOK_TIMEOUT",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all env vars that config modules might read, for isolation."""
    for var in CONFIG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch
