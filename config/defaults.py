"""
Configuration Defaults - Single source of truth for all default values.

Every default here is safe for a local standalone run. Service mode
deployments override connection settings through environment variables.

Usage:
    from config.defaults import QueueDefaults

    # In Pydantic Field definitions:
    jobs_queue: str = Field(default=QueueDefaults.JOBS_QUEUE, ...)
"""


# =============================================================================
# APPLICATION DEFAULTS
# =============================================================================

class AppDefaults:
    """Application-wide defaults."""

    APP_MODE = "standalone"
    ENVIRONMENT = "dev"
    DEBUG_MODE = False


# =============================================================================
# DATABASE DEFAULTS
# =============================================================================

class DatabaseDefaults:
    """PostgreSQL connection defaults."""

    PORT = 5432
    APP_SCHEMA = "app"
    CONNECTION_TIMEOUT_SECONDS = 30


# =============================================================================
# QUEUE DEFAULTS
# =============================================================================

class QueueDefaults:
    """Service Bus defaults."""

    JOBS_QUEUE = "geoai-jobs"
    MAX_WAIT_SECONDS = 5
    LOCK_RENEWAL_SECONDS = 7200


# =============================================================================
# STORAGE DEFAULTS
# =============================================================================

class StorageDefaults:
    """Artifact storage defaults."""

    ARTIFACT_CONTAINER = "geoai-artifacts"
    LOCAL_ROOT = "./artifacts"


# =============================================================================
# RASTER DEFAULTS
# =============================================================================

class RasterDefaults:
    """Raster fetch and encode defaults."""

    # A fetch exceeding this fails the job instead of holding a worker slot
    FETCH_TIMEOUT_SECONDS = 300
    OUTPUT_NODATA = -9999.0


# =============================================================================
# WORKER DEFAULTS
# =============================================================================

class WorkerDefaults:
    """Worker pool defaults."""

    CONCURRENCY = 5
    MAX_CONCURRENCY = 64
    JOB_TIMEOUT_SECONDS = 3600
    SHUTDOWN_TIMEOUT_SECONDS = 30
    WEBHOOK_RETRIES = 3
    WEBHOOK_TIMEOUT_SECONDS = 30
