"""
Structured logging for the worker.

Every logger writes one JSON object per line to stdout. Job correlation
fields (job id, job type, tenancy ids, worker id) travel under
customDimensions so a log collector can filter one job's lifecycle
across the listener, the executor and the processor that ran it.

Levels:
    LOG_LEVEL=DEBUG|INFO|WARNING|ERROR sets every component's level.
    DEBUG_LOGGING=true is accepted as a shorthand for LOG_LEVEL=DEBUG.

Exports:
    ComponentType: Which layer a logger belongs to
    LogContext: Correlation fields for one job
    LoggerFactory: Creates component loggers
    JSONFormatter: Formatter emitting one JSON object per record
"""

from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from dataclasses import dataclass, asdict
import logging
import sys
import os
import json


class ComponentType(Enum):
    """Layer a logger belongs to; becomes the logger name prefix."""
    WORKER = "worker"          # Queue listener / executor pool
    PROCESSOR = "processor"    # Job type processors
    SERVICE = "service"        # Shared logic (geometry, registry, submission)
    REPOSITORY = "repository"  # Job store, geo store, queue backends
    ADAPTER = "adapter"        # Raster fetch, artifact storage
    TRIGGER = "trigger"        # Entry points (CLI, health app)


@dataclass
class LogContext:
    """
    Correlation fields for one job.
    """
    job_id: Optional[str] = None
    job_type: Optional[str] = None

    # Tenancy
    session_id: Optional[str] = None
    project_id: Optional[str] = None
    organization_id: Optional[str] = None
    user_id: Optional[str] = None

    worker_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Set fields only."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def as_extra(self, **fields: Any) -> Dict[str, Any]:
        """
        Build the `extra` argument for a log call.

        Usage:
            logger.info("Job started", extra=ctx.as_extra(attempt=1))
        """
        dims = self.to_dict()
        dims.update({k: v for k, v in fields.items() if v is not None})
        return {'custom_dimensions': dims}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Output keys: timestamp, level, logger, message, module, function, line,
    plus customDimensions and exception when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        dims = getattr(record, 'custom_dimensions', None)
        if dims:
            log_obj['customDimensions'] = dims

        if record.exc_info and record.exc_info[0] is not None:
            log_obj['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info),
            }

        return json.dumps(log_obj, default=str)


def _configured_level() -> int:
    if os.getenv('DEBUG_LOGGING', '').lower() == 'true':
        return logging.DEBUG
    name = os.getenv('LOG_LEVEL', 'INFO').upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


class _ComponentAdapter(logging.LoggerAdapter):
    """Merges the component identity into each record's customDimensions."""

    def process(self, msg, kwargs):
        extra = dict(kwargs.get('extra') or {})
        dims = dict(self.extra)
        dims.update(extra.get('custom_dimensions') or {})
        extra['custom_dimensions'] = dims
        kwargs['extra'] = extra
        return msg, kwargs


class LoggerFactory:
    """
    Creates component loggers.

    Example:
        logger = LoggerFactory.create_logger(ComponentType.PROCESSOR, "BufferProcessor")
        logger.info("Buffer complete", extra=ctx.as_extra(duration_ms=12))
    """

    @classmethod
    def create_logger(
        cls,
        component_type: ComponentType,
        name: str,
        context: Optional[LogContext] = None,
    ) -> logging.LoggerAdapter:
        """
        Args:
            component_type: Layer of the component
            name: Component name (e.g., "JobExecutor")
            context: Correlation fields added to every record of this logger

        Returns:
            Logger adapter; records carry component_type and component_name
        """
        logger = logging.getLogger(f"{component_type.value}.{name}")
        level = _configured_level()
        logger.setLevel(level)

        if not any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers):
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(JSONFormatter())
            logger.addHandler(handler)
        # Parent handlers (uvicorn, pytest caplog) still receive records
        logger.propagate = True

        base_dims = context.to_dict() if context else {}
        base_dims.update({
            'component_type': component_type.value,
            'component_name': name,
        })
        return _ComponentAdapter(logger, base_dims)
