"""
Configuration Package - Domain-Specific Configuration Modules

Structure:
    config/
    ├── __init__.py              # This file - exports and singleton
    ├── app_config.py            # Main config (composes domain configs)
    ├── database_config.py       # PostgreSQL job store
    ├── queue_config.py          # Service Bus jobs queue
    ├── storage_config.py        # Blob / local artifact storage
    ├── raster_config.py         # Raster fetch and output settings
    └── defaults.py              # Default values

Usage:
    # Singleton pattern (preferred)
    from config import get_config
    config = get_config()
    timeout = config.raster.fetch_timeout_seconds

    # Debug output
    from config import debug_config
    info = debug_config()  # Secrets masked
"""

from typing import Optional

__version__ = "1.0.0"

from .database_config import DatabaseConfig
from .queue_config import QueueConfig
from .storage_config import StorageConfig
from .raster_config import RasterConfig
from .app_config import AppConfig, AppMode


# ============================================================================
# SINGLETON PATTERN
# ============================================================================

_config_instance: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get global configuration singleton.

    Returns:
        AppConfig instance loaded from environment
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = AppConfig.from_environment()
    return _config_instance


def reset_config() -> None:
    """Drop the cached singleton so the next get_config() re-reads the environment."""
    global _config_instance
    _config_instance = None


def debug_config() -> dict:
    """
    Get sanitized configuration for debugging (masks sensitive values).

    Returns:
        Dictionary with configuration values, secrets masked
    """
    try:
        config = get_config()
        return {
            'app_mode': config.app_mode.value,
            'environment': config.environment,
            'debug_mode': config.debug_mode,
            'database': config.database.debug_dict(),
            'queues': {
                'jobs_queue': config.queues.jobs_queue,
                'namespace': config.queues.namespace,
                'connection': '***MASKED***' if config.queues.connection_string else None,
            },
            'storage': config.storage.debug_dict(),
            'raster': {
                'fetch_timeout_seconds': config.raster.fetch_timeout_seconds,
                'output_nodata': config.raster.output_nodata,
            },
        }
    except Exception as e:
        return {'error': f'Configuration validation failed: {e}'}


__all__ = [
    '__version__',
    'AppConfig',
    'AppMode',
    'get_config',
    'reset_config',
    'debug_config',
    'DatabaseConfig',
    'QueueConfig',
    'StorageConfig',
    'RasterConfig',
]
